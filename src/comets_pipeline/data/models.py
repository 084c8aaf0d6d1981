"""
Data containers passed between the correlation pipeline stages.
"""

from __future__ import annotations

import dataclasses
import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from comets_pipeline.core.config import MetaboliteColumns, VarMapColumns
from comets_pipeline.core.exceptions import ConfigurationError, DataQualityWarning

logger = logging.getLogger(__name__)


class VariableKind(str, Enum):
    """How a variable is treated when used as an adjustment."""

    CATEGORICAL = "categorical"
    CONTINUOUS = "continuous"


class ModelSpec(str, Enum):
    """How the model was configured upstream."""

    INTERACTIVE = "Interactive"
    BATCH = "Batch"


def infer_kind(series: pd.Series) -> VariableKind:
    """Tag a column from its dtype."""
    if (
        isinstance(series.dtype, pd.CategoricalDtype)
        or ptypes.is_object_dtype(series)
        or ptypes.is_string_dtype(series)
        or ptypes.is_bool_dtype(series)
    ):
        return VariableKind.CATEGORICAL
    return VariableKind.CONTINUOUS


def check_overlap(rcovs: list[str], ccovs: list[str], acovs: list[str]) -> None:
    """Adjustment variables must be neither outcomes nor exposures."""
    exposures = sorted(set(acovs) & set(ccovs))
    if exposures:
        raise ConfigurationError(
            f"Adjustment covariates are also exposures: {', '.join(exposures)}. "
            "Please make sure adjusted covariates are not exposures."
        )
    outcomes = sorted(set(acovs) & set(rcovs))
    if outcomes:
        raise ConfigurationError(
            f"Adjustment covariates are also outcomes: {', '.join(outcomes)}. "
            "Please make sure adjusted covariates are not outcomes."
        )


@dataclass
class ModelDataset:
    """
    A resolved correlation model: the observations plus the variable roles.

    Example:
        >>> model = ModelDataset(
        ...     data=df,
        ...     rcovs=["lactose", "lactate"],
        ...     ccovs=["age"],
        ...     acovs=["sex"],
        ...     modlabel="1 Gender adjusted",
        ... )
    """

    data: pd.DataFrame
    """Observations (rows) by variables (columns)."""

    rcovs: list[str]
    """Outcome (row) variables."""

    ccovs: list[str]
    """Exposure (column) variables."""

    acovs: list[str] = field(default_factory=list)
    """Adjustment variables."""

    modelspec: ModelSpec = ModelSpec.INTERACTIVE
    """Interactive or Batch."""

    modlabel: str = ""
    """Free-text model label."""

    scovs: Optional[str] = None
    """Stratification variable."""

    kinds: dict[str, VariableKind] = field(default_factory=dict)
    """Variable kind per column; filled from dtypes where not given."""

    def __post_init__(self):
        self.rcovs = list(self.rcovs)
        self.ccovs = list(self.ccovs)
        self.acovs = list(self.acovs or [])
        self.modelspec = ModelSpec(self.modelspec)

        kinds = {name: VariableKind(kind) for name, kind in self.kinds.items()}
        for name in self.data.columns:
            if name not in kinds:
                kinds[name] = infer_kind(self.data[name])
        self.kinds = kinds

    @property
    def n_rows(self) -> int:
        return len(self.data)

    def is_categorical(self, name: str) -> bool:
        return self.kinds.get(name) is VariableKind.CATEGORICAL

    def with_data(self, data: pd.DataFrame, **changes: Any) -> "ModelDataset":
        """Copy of this model on different observations."""
        kinds = {k: v for k, v in self.kinds.items() if k in data.columns}
        return dataclasses.replace(self, data=data, kinds=kinds, **changes)


@dataclass
class MetaData:
    """
    Metabolite and cohort-variable annotation tables.

    ``metab`` maps metabolite ids to universal ids and display names;
    ``vmap`` maps cohort variable names to definitions and reference ids.
    Column names follow ``CorrelationConfig.metabolite_columns`` and
    ``CorrelationConfig.varmap_columns``.
    """

    metab: pd.DataFrame
    vmap: pd.DataFrame
    models: Optional[pd.DataFrame] = None
    """Named batch model definitions."""

    metabolites: list[str] = field(default_factory=list)
    """Metabolite columns present in the cohort data."""

    @classmethod
    def empty(
        cls,
        metabolite_columns: Optional[MetaboliteColumns] = None,
        varmap_columns: Optional[VarMapColumns] = None,
    ) -> "MetaData":
        """Metadata without any entries; every name passes through unchanged."""
        mc = metabolite_columns or MetaboliteColumns()
        vc = varmap_columns or VarMapColumns()
        return cls(
            metab=pd.DataFrame(columns=[mc.id, mc.uid, mc.name]),
            vmap=pd.DataFrame(columns=[vc.cohort_variable, vc.definition, vc.reference]),
        )


@dataclass(frozen=True)
class StratumFilter:
    """Selects the rows of one stratum: ``variable == value``."""

    variable: str
    value: Any

    def mask(self, frame: pd.DataFrame) -> pd.Series:
        column = frame[self.variable]
        return column.notna() & (column == self.value)

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Rows of the stratum, without the stratification column."""
        subset = frame.loc[self.mask(frame)].drop(columns=[self.variable])
        for name in subset.columns:
            if isinstance(subset[name].dtype, pd.CategoricalDtype):
                subset[name] = subset[name].cat.remove_unused_categories()
        return subset


@dataclass
class Diagnostic:
    """A recovered data-quality event."""

    code: str
    """One of constant_adjustment, missing_categorical, collinear_adjustment,
    stratum_skipped, empty_dataset."""

    message: str
    variables: list[str] = field(default_factory=list)


def report(
    diagnostics: list[Diagnostic],
    code: str,
    message: str,
    variables: Optional[list[str]] = None,
    log: Optional[logging.Logger] = None,
) -> Diagnostic:
    """Log a data-quality event, raise it as a warning and keep a record."""
    (log or logger).warning(message)
    warnings.warn(message, DataQualityWarning, stacklevel=3)
    diagnostic = Diagnostic(code=code, message=message, variables=list(variables or []))
    diagnostics.append(diagnostic)
    return diagnostic


@dataclass
class CorrelationResult:
    """
    Annotated correlation records for one model run.

    ``table`` holds one row per outcome/exposure pair (and stratum);
    ``ptime`` is a free-text processing-time note kept for diagnostics.
    """

    table: pd.DataFrame
    ptime: str = ""
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def __post_init__(self):
        self.table.attrs["ptime"] = self.ptime

    def __len__(self) -> int:
        return len(self.table)

    @property
    def empty(self) -> bool:
        return len(self.table) == 0

    @property
    def warnings(self) -> list[str]:
        return [d.message for d in self.diagnostics]

    def to_records(self) -> list[dict[str, Any]]:
        """Rows as plain dictionaries with numpy scalars unwrapped."""
        records = self.table.to_dict(orient="records")
        return [
            {k: v.item() if isinstance(v, np.generic) else v for k, v in rec.items()}
            for rec in records
        ]
