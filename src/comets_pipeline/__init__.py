"""
COMETS Pipeline - Spearman correlation analysis of metabolomics cohort data.

This package provides:
- Adjustment covariate preparation (dummy encoding, collinearity repair)
- Spearman and partial Spearman correlation with exact t-based p-values
- Long-form results annotated with metabolite and variable metadata
- Stratified analysis over a categorical variable

Example:
    >>> from comets_pipeline import ModelDataset, MetaData, run_corr
    >>>
    >>> model = ModelDataset(
    ...     data=cohort_df,
    ...     rcovs=["lactose", "lactate"],
    ...     ccovs=["age"],
    ...     acovs=["sex"],
    ...     modlabel="1 Gender adjusted",
    ... )
    >>> result = run_corr(model, metadata, cohort="DPP")
    >>> result.table.head()
"""

__version__ = "0.1.0"

# Core infrastructure
from comets_pipeline.core.config import CorrelationConfig
from comets_pipeline.core.exceptions import (
    CometsError,
    ConfigurationError,
    DataQualityWarning,
)

# Data model
from comets_pipeline.data.models import (
    CorrelationResult,
    Diagnostic,
    MetaData,
    ModelDataset,
    ModelSpec,
    StratumFilter,
    VariableKind,
)
from comets_pipeline.data.model_data import get_model_data

# Pipeline
from comets_pipeline.pipeline import CorrelationPipeline, calc_corr
from comets_pipeline.stratified import StratificationDriver, run_corr

__all__ = [
    # Version
    "__version__",
    # Pipeline
    "CorrelationPipeline",
    "StratificationDriver",
    "calc_corr",
    "run_corr",
    # Core
    "CorrelationConfig",
    "CometsError",
    "ConfigurationError",
    "DataQualityWarning",
    # Data
    "CorrelationResult",
    "Diagnostic",
    "MetaData",
    "ModelDataset",
    "ModelSpec",
    "StratumFilter",
    "VariableKind",
    "get_model_data",
]
