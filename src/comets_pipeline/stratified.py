"""
Stratified correlation analysis.

Repeats the single-stratum pipeline for every value of a stratification
variable and stacks the results in stratum order.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import numpy as np
import pandas as pd

from comets_pipeline.annotation.annotator import RESULT_COLUMNS, STRATA_COLUMNS
from comets_pipeline.core.config import CorrelationConfig
from comets_pipeline.core.exceptions import ConfigurationError
from comets_pipeline.data.models import (
    CorrelationResult,
    Diagnostic,
    MetaData,
    ModelDataset,
    StratumFilter,
    check_overlap,
    report,
)
from comets_pipeline.pipeline import CorrelationPipeline, empty_result

logger = logging.getLogger(__name__)

NO_SAMPLES_PTIME = (
    "No time elapsed because model cannot run "
    "(no samples are input with given criteria)"
)


def _plain(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


class StratificationDriver:
    """
    Runs a model once, or once per stratum of its stratification variable.

    Example:
        >>> driver = StratificationDriver()
        >>> result = driver.run(modeldata, metadata, cohort="DPP")
        >>> result.table.groupby("strata").size()
    """

    def __init__(
        self,
        config: Optional[CorrelationConfig] = None,
        pipeline: Optional[CorrelationPipeline] = None,
    ):
        """
        Initialize stratification driver.

        Args:
            config: Pipeline configuration.
            pipeline: Single-stratum pipeline; built from ``config`` if omitted.
        """
        self.config = config or CorrelationConfig()
        self.pipeline = pipeline or CorrelationPipeline(self.config)

    def strata(self, modeldata: ModelDataset) -> list[Any]:
        """Distinct non-missing stratum values in order of appearance."""
        values = modeldata.data[modeldata.scovs].dropna().unique()
        strata = [_plain(v) for v in values]

        if len(strata) > self.config.max_strata:
            raise ConfigurationError(
                f"The stratification variable {modeldata.scovs} contains more than "
                f"{self.config.max_strata} unique values, which is too many. "
                "Please check your stratification variable"
            )
        return strata

    def run(
        self,
        modeldata: ModelDataset,
        metadata: MetaData,
        cohort: str = "",
    ) -> CorrelationResult:
        """
        Run the model, stratified if a stratification variable is set.

        Args:
            modeldata: Model to analyse (not modified).
            metadata: Metabolite table and variable map.
            cohort: Cohort label.

        Returns:
            CorrelationResult; possibly empty, with a processing-time note.
        """
        if modeldata.n_rows == 0:
            diagnostics: list[Diagnostic] = []
            report(
                diagnostics,
                "empty_dataset",
                f"The number of samples for model '{modeldata.modlabel}' is zero "
                "so the model will not be run",
                log=logger,
            )
            return empty_result(NO_SAMPLES_PTIME, diagnostics=diagnostics)

        start = time.time()

        if modeldata.scovs is None:
            result = self.pipeline.run(modeldata, metadata, cohort=cohort)
            tables = [result.table]
            diagnostics = list(result.diagnostics)
            columns = RESULT_COLUMNS
        else:
            tables, diagnostics = self._run_strata(modeldata, metadata, cohort)
            columns = RESULT_COLUMNS + STRATA_COLUMNS

        tables = [t for t in tables if len(t) > 0]
        if tables:
            table = pd.concat(tables, ignore_index=True)
        else:
            table = pd.DataFrame(columns=columns)

        elapsed = time.time() - start
        return CorrelationResult(
            table=table,
            ptime=f"Processing time: {round(elapsed, 3)} sec",
            diagnostics=diagnostics,
        )

    def _run_strata(
        self,
        modeldata: ModelDataset,
        metadata: MetaData,
        cohort: str,
    ) -> tuple[list[pd.DataFrame], list[Diagnostic]]:
        tables: list[pd.DataFrame] = []
        diagnostics: list[Diagnostic] = []

        for value in self.strata(modeldata):
            stratum = StratumFilter(modeldata.scovs, value)
            subset = modeldata.with_data(stratum.apply(modeldata.data))
            logger.debug("Stratum %s=%s: %d rows", stratum.variable, value, subset.n_rows)

            result = self.pipeline.run(subset, metadata, cohort=cohort)
            diagnostics.extend(result.diagnostics)

            if result.empty:
                message = (
                    f"Model {modeldata.modlabel} has strata "
                    f"({modeldata.scovs}={value}) with less than "
                    f"{self.config.min_observations} observations. Model will not be run"
                )
                report(diagnostics, "stratum_skipped", message, [modeldata.scovs], log=logger)
                continue

            table = result.table.copy()
            table["stratavar"] = modeldata.scovs
            table["strata"] = value
            tables.append(table)

        return tables, diagnostics


def run_corr(
    modeldata: ModelDataset,
    metadata: MetaData,
    cohort: str = "",
    config: Optional[CorrelationConfig] = None,
) -> CorrelationResult:
    """
    Correlation analysis of a model, stratified when the model says so.

    Args:
        modeldata: Model to analyse.
        metadata: Metabolite table and variable map.
        cohort: Cohort label (e.g. DPP, NCI, Shanghai).
        config: Pipeline configuration.

    Returns:
        CorrelationResult with one record per outcome/exposure pair (and
        stratum), plus ``stratavar``/``strata`` columns when stratified.

    Raises:
        ConfigurationError: Overlapping variable roles, too few observations
            without stratification, or too many strata.
    """
    check_overlap(modeldata.rcovs, modeldata.ccovs, modeldata.acovs)

    if modeldata.scovs is not None:
        roles = set(modeldata.rcovs) | set(modeldata.ccovs) | set(modeldata.acovs)
        if modeldata.scovs in roles:
            raise ConfigurationError(
                f"Stratification variable {modeldata.scovs} is also used as an "
                "outcome, exposure or adjustment"
            )
        if modeldata.scovs not in modeldata.data.columns:
            raise ConfigurationError(
                f"Stratification variable {modeldata.scovs} is not in the data"
            )

    driver = StratificationDriver(config)
    return driver.run(modeldata, metadata, cohort=cohort)
