"""
Result reshaping and annotation.
"""

from comets_pipeline.annotation.annotator import (
    RESULT_COLUMNS,
    STRATA_COLUMNS,
    ResultAnnotator,
)

__all__ = [
    "RESULT_COLUMNS",
    "STRATA_COLUMNS",
    "ResultAnnotator",
]
