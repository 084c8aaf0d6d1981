"""
Long-form reshaping and labelling of correlation matrices.

Each outcome/exposure pair becomes one record carrying the model
description, display labels and universal ids looked up from the
metabolite table and the cohort variable map.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

from comets_pipeline.core.config import CorrelationConfig
from comets_pipeline.correlation.engine import EngineResult
from comets_pipeline.data.models import MetaData, ModelDataset, ModelSpec

RESULT_COLUMNS = [
    "cohort",
    "spec",
    "model",
    "outcomespec",
    "exposurespec",
    "corr",
    "n",
    "pvalue",
    "adjvars",
    "outcome",
    "outcome_uid",
    "exposure",
    "exposure_uid",
]

STRATA_COLUMNS = ["stratavar", "strata"]


def _melt(frame: pd.DataFrame, value_name: str) -> pd.DataFrame:
    """Matrix to long form, all outcomes of the first exposure first."""
    return (
        frame.rename_axis(index="outcomespec", columns="exposurespec")
        .reset_index()
        .melt(id_vars="outcomespec", var_name="exposurespec", value_name=value_name)
    )


def _strip_definition(definition) -> Optional[str]:
    """Variable definition without its parenthesised suffix."""
    if pd.isna(definition):
        return None
    text = str(definition)
    if "(" in text:
        text = text[: text.index("(")]
    return text.strip() or None


class ResultAnnotator:
    """
    Turns correlation matrices into annotated per-pair records.

    Example:
        >>> annotator = ResultAnnotator()
        >>> table = annotator.annotate(engine_result, modeldata, metadata,
        ...                            cohort="DPP", adjvars=["age", "sex"])
    """

    def __init__(self, config: Optional[CorrelationConfig] = None):
        self.config = config or CorrelationConfig()

    def reshape(
        self,
        result: EngineResult,
        cohort: str,
        spec: ModelSpec,
        model: str,
        adjvars: list[str],
    ) -> pd.DataFrame:
        """One record per outcome/exposure pair."""
        long = _melt(result.corr, "corr")
        long["n"] = _melt(result.n, "n")["n"].to_numpy().astype("int64")
        long["pvalue"] = _melt(result.pvalue, "pvalue")["pvalue"].to_numpy()

        long.insert(0, "cohort", cohort)
        long.insert(1, "spec", ModelSpec(spec).value)
        long.insert(2, "model", model)
        long["adjvars"] = " ".join(adjvars) if adjvars else "None"
        long["outcomespec"] = long["outcomespec"].astype(str)
        long["exposurespec"] = long["exposurespec"].astype(str)
        return long

    def add_metabolite_info(self, long: pd.DataFrame, metadata: MetaData) -> pd.DataFrame:
        """Display name and universal id for specs found in the metabolite table."""
        cols = self.config.metabolite_columns
        metab = metadata.metab
        if metab is not None and cols.id in metab.columns:
            metab = metab.dropna(subset=[cols.id]).drop_duplicates(subset=[cols.id])
            keys = metab[cols.id].astype(str)
            uid_map = dict(zip(keys, metab[cols.uid])) if cols.uid in metab else {}
            name_map = dict(zip(keys, metab[cols.name])) if cols.name in metab else {}
        else:
            uid_map, name_map = {}, {}

        for role in ("outcome", "exposure"):
            specs = long[f"{role}spec"]
            label = specs.map(name_map)
            uid = specs.map(uid_map)
            long[role] = label.where(label.notna(), specs).astype(str)
            long[f"{role}_uid"] = uid.where(uid.notna(), specs).astype(str)
        return long

    def add_variable_info(
        self,
        long: pd.DataFrame,
        metadata: MetaData,
        spec: ModelSpec,
    ) -> pd.DataFrame:
        """
        Labels from the cohort variable map.

        Interactive models name variables by cohort variable (matched
        case-insensitively); batch models name them by reference id and
        get the cohort variable name back as their spec.
        """
        cols = self.config.varmap_columns
        vmap = metadata.vmap
        usable = (
            vmap is not None and not vmap.empty and cols.cohort_variable in vmap.columns
        )
        interactive = ModelSpec(spec) is ModelSpec.INTERACTIVE

        if not usable:
            if interactive:
                return self._apply_interactive(long, {}, {})
            return long

        vmap = vmap.assign(
            _definition=vmap[cols.definition].map(_strip_definition)
            if cols.definition in vmap
            else None,
            _reference=vmap[cols.reference] if cols.reference in vmap else None,
        )

        if interactive:
            vmap = vmap.dropna(subset=[cols.cohort_variable])
            vmap = vmap.assign(_key=vmap[cols.cohort_variable].astype(str).str.lower())
            vmap = vmap.drop_duplicates(subset=["_key"])
            definitions = dict(zip(vmap["_key"], vmap["_definition"]))
            references = dict(zip(vmap["_key"], vmap["_reference"]))
            return self._apply_interactive(long, definitions, references)

        if cols.reference not in vmap.columns:
            return long
        vmap = vmap.dropna(subset=["_reference"])
        vmap = vmap.assign(_key=vmap["_reference"].astype(str))
        vmap = vmap.drop_duplicates(subset=["_key"])
        definitions = dict(zip(vmap["_key"], vmap["_definition"]))
        cohort_names = dict(zip(vmap["_key"], vmap[cols.cohort_variable]))

        for role in ("outcome", "exposure"):
            specs = long[f"{role}spec"]
            label = specs.map(definitions)
            cohort_name = specs.map(cohort_names)
            long[role] = label.where(label.notna(), long[role])
            long[f"{role}spec"] = cohort_name.where(cohort_name.notna(), specs).astype(str)
        return long

    def _apply_interactive(
        self,
        long: pd.DataFrame,
        definitions: dict,
        references: dict,
    ) -> pd.DataFrame:
        """Label by cohort variable; unmatched names keep the raw spec for both."""
        for role in ("outcome", "exposure"):
            specs = long[f"{role}spec"]
            keys = specs.str.lower()
            label = keys.map(definitions)
            uid = keys.map(references)
            long[role] = label.where(label.notna(), specs)
            long[f"{role}_uid"] = uid.where(uid.notna(), specs).astype(str)
        return long

    def annotate(
        self,
        result: EngineResult,
        modeldata: ModelDataset,
        metadata: MetaData,
        cohort: str = "",
        adjvars: Optional[list[str]] = None,
    ) -> pd.DataFrame:
        """
        Reshape and label the correlation matrices of one model.

        Args:
            result: Engine output.
            modeldata: The model the matrices were computed for.
            metadata: Metabolite table and variable map.
            cohort: Cohort label.
            adjvars: Adjustment variables actually used.

        Returns:
            DataFrame with the columns of ``RESULT_COLUMNS``.
        """
        long = self.reshape(
            result,
            cohort=cohort,
            spec=modeldata.modelspec,
            model=modeldata.modlabel,
            adjvars=adjvars or [],
        )
        long = self.add_metabolite_info(long, metadata)
        long = self.add_variable_info(long, metadata, modeldata.modelspec)
        return long[RESULT_COLUMNS].reset_index(drop=True)
