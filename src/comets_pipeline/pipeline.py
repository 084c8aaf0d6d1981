"""
Single-stratum correlation pipeline: adjustment preprocessing, correlation
and annotation for one model dataset.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import pandas as pd

from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
from comets_pipeline.annotation.annotator import RESULT_COLUMNS, ResultAnnotator
from comets_pipeline.core.config import CorrelationConfig
from comets_pipeline.core.exceptions import ConfigurationError
from comets_pipeline.correlation.engine import CorrelationEngine
from comets_pipeline.data.models import CorrelationResult, MetaData, ModelDataset

logger = logging.getLogger(__name__)


def empty_result(ptime: str, diagnostics=None, columns=None) -> CorrelationResult:
    """Zero-row result carrying an explanatory note."""
    table = pd.DataFrame(columns=list(columns or RESULT_COLUMNS))
    return CorrelationResult(table=table, ptime=ptime, diagnostics=list(diagnostics or []))


class CorrelationPipeline:
    """
    Correlation analysis of one (sub)dataset.

    Example:
        >>> pipeline = CorrelationPipeline()
        >>> result = pipeline.run(modeldata, metadata, cohort="DPP")
        >>> result.table[["outcomespec", "exposurespec", "corr", "pvalue"]]
    """

    def __init__(self, config: Optional[CorrelationConfig] = None):
        """
        Initialize pipeline.

        Args:
            config: Pipeline configuration.
        """
        self.config = config or CorrelationConfig()
        self.preprocessor = AdjustmentPreprocessor(self.config)
        self.engine = CorrelationEngine(self.config)
        self.annotator = ResultAnnotator(self.config)

    def run(
        self,
        modeldata: ModelDataset,
        metadata: MetaData,
        cohort: str = "",
    ) -> CorrelationResult:
        """
        Run the correlation analysis.

        A dataset below the minimum number of observations is a
        configuration error unless the model is stratified, in which case
        an empty result is returned and the caller decides what to report.

        Args:
            modeldata: Model to analyse (not modified).
            metadata: Metabolite table and variable map.
            cohort: Cohort label.

        Returns:
            CorrelationResult with one record per outcome/exposure pair.
        """
        if modeldata.n_rows < self.config.min_observations:
            if modeldata.scovs is not None:
                return empty_result("Processing time: 0 sec")
            raise ConfigurationError(
                f"{modeldata.modlabel} has less than "
                f"{self.config.min_observations} observations."
            )

        start = time.time()

        prepared = self.preprocessor.prepare(modeldata)
        matrices = self.engine.run(prepared)
        table = self.annotator.annotate(
            matrices,
            modeldata,
            metadata,
            cohort=cohort,
            adjvars=prepared.adjvars,
        )

        elapsed = time.time() - start
        logger.debug(
            "Model '%s': %d records in %.3fs", modeldata.modlabel, len(table), elapsed
        )
        return CorrelationResult(
            table=table,
            ptime=f"Processing time: {round(elapsed, 3)} sec",
            diagnostics=prepared.diagnostics,
        )


def calc_corr(
    modeldata: ModelDataset,
    metadata: MetaData,
    cohort: str = "",
    config: Optional[CorrelationConfig] = None,
) -> CorrelationResult:
    """
    Correlation matrix of one model without stratification handling.

    Args:
        modeldata: Model to analyse.
        metadata: Metabolite table and variable map.
        cohort: Cohort label.
        config: Pipeline configuration.

    Returns:
        CorrelationResult.
    """
    return CorrelationPipeline(config).run(modeldata, metadata, cohort=cohort)
