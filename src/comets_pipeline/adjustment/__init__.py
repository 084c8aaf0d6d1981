"""
Adjustment covariate preprocessing.
"""

from comets_pipeline.adjustment.preprocessor import (
    AdjustedDataset,
    AdjustmentPreprocessor,
    category_levels,
    numeric_column,
)

__all__ = [
    "AdjustedDataset",
    "AdjustmentPreprocessor",
    "category_levels",
    "numeric_column",
]
