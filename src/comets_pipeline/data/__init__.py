"""
Model data containers and model resolution.
"""

from comets_pipeline.data.models import (
    CorrelationResult,
    Diagnostic,
    MetaData,
    ModelDataset,
    ModelSpec,
    StratumFilter,
    VariableKind,
    check_overlap,
    report,
)
from comets_pipeline.data.model_data import ALL_METABOLITES, get_model_data

__all__ = [
    "CorrelationResult",
    "Diagnostic",
    "MetaData",
    "ModelDataset",
    "ModelSpec",
    "StratumFilter",
    "VariableKind",
    "check_overlap",
    "report",
    "ALL_METABOLITES",
    "get_model_data",
]
