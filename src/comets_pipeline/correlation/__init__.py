"""
Correlation analysis pipeline.

Spearman and Spearman partial correlation between outcome and exposure
variables, with sample counts and p-values.
"""

from comets_pipeline.correlation.significance import correlation_pvalue
from comets_pipeline.correlation.spearman import (
    spearman_correlation,
    SpearmanCorrelator,
)
from comets_pipeline.correlation.partial import (
    partial_correlation,
    PartialCorrelator,
)
from comets_pipeline.correlation.engine import (
    CorrelationEngine,
    EngineResult,
)

__all__ = [
    "correlation_pvalue",
    # Spearman
    "spearman_correlation",
    "SpearmanCorrelator",
    # Partial
    "partial_correlation",
    "PartialCorrelator",
    # Engine
    "CorrelationEngine",
    "EngineResult",
]
