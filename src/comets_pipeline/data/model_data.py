"""
Resolve which variables form a model, in Interactive or Batch mode.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

import pandas as pd

from comets_pipeline.core.exceptions import ConfigurationError
from comets_pipeline.data.models import (
    MetaData,
    ModelDataset,
    ModelSpec,
    VariableKind,
    check_overlap,
)

logger = logging.getLogger(__name__)

ALL_METABOLITES = "All metabolites"

VarList = Union[str, Sequence[str], None]


def _split(value: VarList) -> list[str]:
    """Accept a space-separated string or a list of names."""
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    names: list[str] = []
    for item in value:
        names.extend(str(item).split())
    return names


def _expand(value: VarList, metabolites: list[str]) -> list[str]:
    """Replace the ``All metabolites`` keyword by the metabolite columns."""
    if _is_missing(value):
        return []
    items = [value] if isinstance(value, str) else list(value)
    if ALL_METABOLITES not in items:
        return _split(value)
    others = _split([v for v in items if v != ALL_METABOLITES])
    return list(dict.fromkeys(others + list(metabolites)))


def _is_missing(value) -> bool:
    """None, NaN or empty string (batch table cells)."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return bool(pd.isna(value))


def get_model_data(
    data: pd.DataFrame,
    metadata: MetaData,
    modelspec: Union[ModelSpec, str] = ModelSpec.BATCH,
    modbatch: str = "",
    rowvars: VarList = ALL_METABOLITES,
    colvars: VarList = "",
    adjvars: VarList = None,
    strvars: Optional[str] = None,
    modlabel: Optional[str] = None,
    kinds: Optional[dict[str, VariableKind]] = None,
) -> ModelDataset:
    """
    Build a ModelDataset from cohort data and a model definition.

    Args:
        data: Cohort observations (samples x variables).
        metadata: Metabolite/variable annotations and batch model table.
        modelspec: "Interactive" to use rowvars/colvars/adjvars directly,
            "Batch" to look the model up in ``metadata.models``.
        modbatch: Batch model name.
        rowvars: Outcome variables (Interactive).
        colvars: Exposure variables (Interactive).
        adjvars: Adjustment variables (Interactive).
        strvars: Stratification variable (Interactive).
        modlabel: Model label; defaults to ``modbatch`` or a generated label.
        kinds: Explicit variable kinds.

    Returns:
        ModelDataset restricted to the needed columns.
    """
    modelspec = ModelSpec(modelspec)
    metabolites = list(metadata.metabolites)

    if modelspec is ModelSpec.INTERACTIVE:
        if modbatch:
            logger.warning(
                "Interactive mode is set yet modbatch is also assigned. "
                "modbatch is ignored and model is assumed to be in Interactive mode"
            )
        rcovs = _expand(rowvars, metabolites)
        ccovs = _expand(colvars, metabolites)
        acovs = _split(adjvars)
        scovs = strvars or None
        if modlabel:
            label = modlabel
        elif acovs:
            label = f"{' '.join(ccovs)} adjusted for {' '.join(acovs)}"
        else:
            label = f"{' '.join(ccovs)} unadjusted"
    else:
        if not modbatch:
            raise ConfigurationError(
                "modelspec is set to 'Batch' yet model batch (modbatch) is empty."
            )
        models = metadata.models
        if models is None or "model" not in models.columns:
            raise ConfigurationError("No batch model table is available")
        row = models.loc[models["model"] == modbatch]
        if row.empty:
            raise ConfigurationError(
                f"The model batch '{modbatch}' does not exist in the model table"
            )
        row = row.iloc[0]

        rcovs = _expand(row.get("outcomes"), metabolites)
        ccovs = _expand(row.get("exposure"), metabolites)
        adjustment = row.get("adjustment")
        acovs = [] if _is_missing(adjustment) else _split(adjustment)
        stratification = row.get("stratification")
        scovs = None if _is_missing(stratification) else str(stratification).strip()
        label = modlabel or modbatch

    if not rcovs or not ccovs:
        raise ConfigurationError(f"Model '{label}' needs at least one outcome and one exposure")

    check_overlap(rcovs, ccovs, acovs)

    needed = list(dict.fromkeys(acovs + ccovs + rcovs + ([scovs] if scovs else [])))
    missing = [name for name in needed if name not in data.columns]
    if missing:
        raise ConfigurationError(
            f"Variables not found in the data for model '{label}': {', '.join(missing)}"
        )

    return ModelDataset(
        data=data.loc[:, needed].copy(),
        rcovs=rcovs,
        ccovs=ccovs,
        acovs=acovs,
        modelspec=modelspec,
        modlabel=label,
        scovs=scovs,
        kinds={k: v for k, v in (kinds or {}).items() if k in needed},
    )
