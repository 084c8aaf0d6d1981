"""
Pipeline configuration management.

Provides dataclass-based configuration with validation and serialization.
"""

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Any
import json
import os

import yaml


@dataclass
class MetaboliteColumns:
    """Column names of the metabolite metadata table."""

    id: str = "metabid"
    """Metabolite id as used for data column names."""

    uid: str = "uid_01"
    """Universal (cross-cohort) identifier."""

    name: str = "biochemical"
    """Display name."""


@dataclass
class VarMapColumns:
    """Column names of the cohort variable map."""

    cohort_variable: str = "cohortvariable"
    """Cohort-specific variable name."""

    definition: str = "vardefinition"
    """Human-readable variable definition."""

    reference: str = "varreference"
    """Canonical reference id shared across cohorts."""


@dataclass
class CorrelationConfig:
    """
    Correlation pipeline configuration.

    Example:
        >>> config = CorrelationConfig(min_observations=20)
        >>> result = run_corr(modeldata, metadata, cohort="DPP", config=config)
    """

    min_observations: int = 15
    """Minimum number of rows a (sub)dataset needs to be analysed."""

    max_strata: int = 10
    """Maximum distinct values allowed for a stratification variable."""

    precision: float = 1e-300
    """Floor applied to 1 - r^2 when deriving t statistics."""

    collinearity_tolerance: float = 0.0
    """Distance from 1 at which two adjustment columns count as collinear."""

    metabolite_columns: MetaboliteColumns = field(default_factory=MetaboliteColumns)
    varmap_columns: VarMapColumns = field(default_factory=VarMapColumns)

    # Logging
    verbose: bool = False
    """Enable verbose logging."""

    log_file: Optional[Path] = None
    """Log file path."""

    def __post_init__(self):
        """Validate values and normalize paths."""
        if self.min_observations < 3:
            raise ValueError(
                f"min_observations must be at least 3, got {self.min_observations}"
            )
        if self.max_strata < 1:
            raise ValueError(f"max_strata must be positive, got {self.max_strata}")
        if not 0 < self.precision < 1:
            raise ValueError(f"precision must be in (0, 1), got {self.precision}")
        if self.collinearity_tolerance < 0:
            raise ValueError("collinearity_tolerance must be non-negative")

        if self.log_file is not None:
            self.log_file = Path(self.log_file)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        d = asdict(self)
        if isinstance(d.get("log_file"), Path):
            d["log_file"] = str(d["log_file"])
        return d

    def to_json(self, path: Path | str) -> None:
        """Save configuration to JSON file."""
        path = Path(path)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "CorrelationConfig":
        """Create from dictionary."""
        d = dict(d)
        # Handle nested configs
        if "metabolite_columns" in d and isinstance(d["metabolite_columns"], dict):
            d["metabolite_columns"] = MetaboliteColumns(**d["metabolite_columns"])
        if "varmap_columns" in d and isinstance(d["varmap_columns"], dict):
            d["varmap_columns"] = VarMapColumns(**d["varmap_columns"])
        return cls(**d)

    @classmethod
    def from_json(cls, path: Path | str) -> "CorrelationConfig":
        """Load configuration from JSON file."""
        path = Path(path)
        with open(path) as f:
            d = json.load(f)
        return cls.from_dict(d)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "CorrelationConfig":
        """
        Load configuration from a YAML file.

        Settings may sit at the top level or under a ``correlation`` key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            d = yaml.safe_load(f) or {}

        if "correlation" in d and isinstance(d["correlation"], dict):
            d = d["correlation"]
        return cls.from_dict(d)

    @classmethod
    def from_env(cls) -> "CorrelationConfig":
        """Create configuration from environment variables."""
        return cls(
            min_observations=int(os.getenv("COMETS_MIN_OBSERVATIONS", "15")),
            max_strata=int(os.getenv("COMETS_MAX_STRATA", "10")),
            precision=float(os.getenv("COMETS_PRECISION", "1e-300")),
            verbose=os.getenv("COMETS_VERBOSE", "").lower() in ("1", "true", "yes"),
        )
