"""
Adjustment covariate preparation: validation, dummy encoding and
collinearity repair ahead of partial correlation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from comets_pipeline.core.config import CorrelationConfig
from comets_pipeline.data.models import Diagnostic, ModelDataset, report

logger = logging.getLogger(__name__)


@dataclass
class AdjustedDataset:
    """Numeric model data ready for the correlation engine."""

    data: pd.DataFrame
    """Final adjustment, outcome and exposure columns as floats."""

    rcovs: list[str]
    ccovs: list[str]

    acovs: list[str]
    """Final (encoded, de-duplicated) adjustment columns."""

    adjvars: list[str]
    """Original adjustment variables that survived validation."""

    encoding: dict[str, list[str]] = field(default_factory=dict)
    """Original adjustment name -> produced column names."""

    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def adjusted(self) -> bool:
        return len(self.acovs) > 0


def category_levels(series: pd.Series) -> list:
    """Levels of a categorical column; the first one is the reference."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        return list(series.cat.categories)
    values = series.dropna().unique().tolist()
    try:
        return sorted(values)
    except TypeError:
        # mixed numbers and strings in an object column
        return sorted(values, key=str)


def numeric_column(series: pd.Series, categorical: bool) -> pd.Series:
    """Float view of a column; categorical values become level codes."""
    if categorical:
        levels = category_levels(series)
        codes = pd.Categorical(series, categories=levels).codes.astype(np.float64)
        codes[codes < 0] = np.nan
        return pd.Series(codes, index=series.index, name=series.name)
    return pd.to_numeric(series, errors="coerce").astype(np.float64)


class AdjustmentPreprocessor:
    """
    Prepares adjustment covariates for partial correlation.

    Drops constant adjustments, dummy-encodes categorical ones and removes
    encoded columns that are perfectly correlated with an earlier column.

    Example:
        >>> prep = AdjustmentPreprocessor()
        >>> adjusted = prep.prepare(modeldata)
        >>> adjusted.acovs
        ['sexM']
    """

    def __init__(self, config: Optional[CorrelationConfig] = None):
        """
        Initialize preprocessor.

        Args:
            config: Pipeline configuration.
        """
        self.config = config or CorrelationConfig()

    @staticmethod
    def _report(
        diagnostics: Optional[list[Diagnostic]],
        code: str,
        message: str,
        variables: list[str],
    ) -> None:
        report(
            diagnostics if diagnostics is not None else [],
            code,
            message,
            variables,
            log=logger,
        )

    def validate(
        self,
        dataset: ModelDataset,
        acovs: list[str],
        diagnostics: Optional[list[Diagnostic]] = None,
    ) -> list[str]:
        """
        Drop adjustment variables with at most one distinct non-missing value.

        Args:
            dataset: Model data.
            acovs: Adjustment variable names.
            diagnostics: Collects data-quality events when given.

        Returns:
            Adjustment variables that can be used.
        """
        kept = []
        for name in acovs:
            if dataset.data[name].nunique(dropna=True) <= 1:
                self._report(
                    diagnostics,
                    "constant_adjustment",
                    f"Model '{dataset.modlabel}' specifies {name} as an adjustment but "
                    f"that variable only has one possible value. Model will run "
                    f"without {name} adjusted.",
                    [name],
                )
                continue
            kept.append(name)
        return kept

    def encode(
        self,
        dataset: ModelDataset,
        acovs: list[str],
        diagnostics: Optional[list[Diagnostic]] = None,
    ) -> tuple[pd.DataFrame, dict[str, list[str]]]:
        """
        Dummy-encode categorical adjustment variables.

        A categorical variable with k levels becomes k-1 indicator columns
        named ``<variable><level>``, one per non-reference level. Rows
        where the source is missing are missing in every indicator.

        Args:
            dataset: Model data.
            acovs: Validated adjustment variable names.
            diagnostics: Collects data-quality events when given.

        Returns:
            Tuple of (encoded adjustment frame, mapping original -> columns).
        """
        columns: dict[str, pd.Series] = {}
        encoding: dict[str, list[str]] = {}

        for name in acovs:
            series = dataset.data[name]
            if not dataset.is_categorical(name):
                columns[name] = numeric_column(series, categorical=False)
                encoding[name] = [name]
                continue

            # unobserved categories would give all-zero indicators
            levels = [lv for lv in category_levels(series) if (series == lv).any()]
            missing = series.isna().to_numpy()
            produced = []
            for level in levels[1:]:
                col = f"{name}{level}"
                values = series.eq(level).fillna(False).astype(bool).to_numpy(dtype=np.float64)
                values[missing] = np.nan
                columns[col] = pd.Series(values, index=series.index, name=col)
                produced.append(col)
            encoding[name] = produced

            if missing.any():
                self._report(
                    diagnostics,
                    "missing_categorical",
                    f"You have blank/missing values for variable {name}, please "
                    "check the coding for missingness in the varmap sheet",
                    [name],
                )

        encoded = pd.DataFrame(columns, index=dataset.data.index)
        return encoded, encoding

    def resolve_collinearity(
        self,
        data: pd.DataFrame,
        encoded_acovs: list[str],
        diagnostics: Optional[list[Diagnostic]] = None,
    ) -> list[str]:
        """
        Remove encoded adjustment columns perfectly correlated with an earlier one.

        The upper triangle of the correlation matrix is scanned in column
        order; for each pair with correlation 1 the second column is dropped.

        Args:
            data: Frame holding the encoded adjustment columns.
            encoded_acovs: Encoded adjustment column names, in order.
            diagnostics: Collects data-quality events when given.

        Returns:
            Remaining adjustment columns.
        """
        if len(encoded_acovs) < 2:
            return list(encoded_acovs)

        corr = data[encoded_acovs].corr().to_numpy()
        tol = self.config.collinearity_tolerance
        to_remove: list[str] = []
        for i in range(len(encoded_acovs)):
            for j in range(i + 1, len(encoded_acovs)):
                value = corr[i, j]
                if np.isfinite(value) and abs(value - 1.0) <= tol:
                    col = encoded_acovs[j]
                    if col not in to_remove:
                        to_remove.append(col)

        if to_remove:
            self._report(
                diagnostics,
                "collinear_adjustment",
                f"Dummy variables {' '.join(to_remove)} are removed because they are "
                "perfectly correlated with other adjustment covariables",
                to_remove,
            )
        return [c for c in encoded_acovs if c not in to_remove]

    def prepare(self, dataset: ModelDataset) -> AdjustedDataset:
        """
        Run validation, encoding and collinearity repair.

        Args:
            dataset: Model data (not modified).

        Returns:
            AdjustedDataset with the numeric frame for the engine.
        """
        diagnostics: list[Diagnostic] = []
        adjvars = self.validate(dataset, dataset.acovs, diagnostics)
        encoded, encoding = self.encode(dataset, adjvars, diagnostics)
        encoded_acovs = list(encoded.columns)
        acovs = self.resolve_collinearity(encoded, encoded_acovs, diagnostics)

        if adjvars and not acovs:
            logger.info(
                "No adjustment columns left for model '%s'; running unadjusted",
                dataset.modlabel,
            )

        model_vars = list(dict.fromkeys(dataset.rcovs + dataset.ccovs))
        numeric = {
            name: numeric_column(dataset.data[name], dataset.is_categorical(name))
            for name in model_vars
        }
        frame = pd.concat(
            [encoded[acovs], pd.DataFrame(numeric, index=dataset.data.index)],
            axis=1,
        )

        return AdjustedDataset(
            data=frame,
            rcovs=list(dataset.rcovs),
            ccovs=list(dataset.ccovs),
            acovs=acovs,
            adjvars=adjvars if acovs else [],
            encoding=encoding,
            diagnostics=diagnostics,
        )
