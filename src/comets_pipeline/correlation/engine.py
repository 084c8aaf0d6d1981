"""
Correlation engine: unadjusted or partial Spearman correlation for every
outcome/exposure pair of a prepared model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from comets_pipeline.adjustment.preprocessor import AdjustedDataset
from comets_pipeline.core.config import CorrelationConfig
from comets_pipeline.correlation.partial import PartialCorrelator
from comets_pipeline.correlation.spearman import SpearmanCorrelator

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    """Correlation matrices of one model (outcomes x exposures)."""

    corr: pd.DataFrame
    """Spearman (partial) correlation coefficients."""

    n: pd.DataFrame
    """Observations used per pair."""

    pvalue: pd.DataFrame
    """Two-sided p-values."""

    adjusted: bool = False
    """Whether adjustment columns were partialed out."""

    @property
    def shape(self) -> tuple[int, int]:
        return self.corr.shape


class CorrelationEngine:
    """
    Computes correlation, sample size and p-value per outcome/exposure pair.

    Runs plain Spearman correlation when the prepared model has no
    adjustment columns, and Spearman partial correlation otherwise.

    Example:
        >>> engine = CorrelationEngine()
        >>> result = engine.run(AdjustmentPreprocessor().prepare(modeldata))
        >>> result.corr.loc["lactose", "age"]
    """

    def __init__(self, config: Optional[CorrelationConfig] = None):
        self.config = config or CorrelationConfig()

    def run(self, prepared: AdjustedDataset) -> EngineResult:
        data = prepared.data
        outcomes = data[prepared.rcovs]
        exposures = data[prepared.ccovs]

        if not prepared.adjusted:
            logger.debug("running unadjusted")
            correlator = SpearmanCorrelator(precision=self.config.precision)
            corr, n, pval = correlator.correlate(outcomes, exposures)
        else:
            logger.debug("running adjusted for %s", ", ".join(prepared.acovs))
            correlator = PartialCorrelator(precision=self.config.precision)
            corr, n, pval = correlator.correlate(
                outcomes, exposures, data[prepared.acovs]
            )

        return EngineResult(corr=corr, n=n, pvalue=pval, adjusted=prepared.adjusted)
