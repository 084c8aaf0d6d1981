"""
Core infrastructure for comets-pipeline.

Provides:
- Configuration management
- Exception and warning types
- Logging setup
"""

from comets_pipeline.core.config import (
    CorrelationConfig,
    MetaboliteColumns,
    VarMapColumns,
)
from comets_pipeline.core.exceptions import (
    CometsError,
    ConfigurationError,
    DataQualityWarning,
)
from comets_pipeline.core.log import configure_logging

__all__ = [
    "CorrelationConfig",
    "MetaboliteColumns",
    "VarMapColumns",
    "CometsError",
    "ConfigurationError",
    "DataQualityWarning",
    "configure_logging",
]
