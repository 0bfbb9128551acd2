"""
Configuration file support for omicscompare analyses.

Supports YAML and JSON config files. Each section maps onto a dataclass
holding the defaults of one group of functions:

    expression:
      threshold: 0.0
      cutoff: 0.5
    affected:
      regulation: up
      stddev: 2.0
      paired: true
    tests:
      n_jobs: 4
      levene_location: median
      fdr_method: BH
    missing:
      max_missing_fraction: 0.5
      k: 10
"""

import functools
import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict

import yaml

from omicscompare.stats.affected import Regulation
from omicscompare.stats.missing import knn_impute
from omicscompare.stats.rowwise import LEVENE_CENTERS


@dataclass
class ExpressionConfig:
    """Expression call configuration."""
    threshold: float = 0.0
    cutoff: float = 0.5

    def __post_init__(self):
        if not 0.0 <= self.cutoff <= 1.0:
            raise ValueError(f"expression.cutoff must be in [0, 1], got {self.cutoff}")


@dataclass
class AffectedConfig:
    """Affected-sample counting configuration."""
    regulation: str = "up"
    stddev: float = 1.0
    paired: bool = True

    def __post_init__(self):
        self.regulation = Regulation.parse(self.regulation).value
        if self.stddev < 0:
            raise ValueError(f"affected.stddev must be >= 0, got {self.stddev}")


@dataclass
class RowTestConfig:
    """Row-wise test configuration."""
    n_jobs: int = 1
    levene_location: str = "median"
    fdr_method: str = "BH"

    def __post_init__(self):
        if self.levene_location not in LEVENE_CENTERS:
            raise ValueError(
                f"tests.levene_location must be one of {list(LEVENE_CENTERS)}, "
                f"got '{self.levene_location}'"
            )
        if self.fdr_method not in ("BH", "BY", "bonferroni"):
            raise ValueError(f"tests.fdr_method unsupported: '{self.fdr_method}'")
        if self.n_jobs == 0:
            raise ValueError("tests.n_jobs must be non-zero")


@dataclass
class MissingConfig:
    """Missing value handling configuration."""
    max_missing_fraction: float = 0.5
    k: int = 10

    def __post_init__(self):
        if not 0.0 <= self.max_missing_fraction <= 1.0:
            raise ValueError(
                f"missing.max_missing_fraction must be in [0, 1], got {self.max_missing_fraction}"
            )
        if self.k < 1:
            raise ValueError(f"missing.k must be >= 1, got {self.k}")

    def imputer(self) -> Callable:
        """knn_impute with ``k`` bound, matching the imputer contract."""
        return functools.update_wrapper(functools.partial(knn_impute, k=self.k), knn_impute)


@dataclass
class AnalysisConfig:
    """
    Complete configuration for a tumor/normal comparison.

    Examples:
        >>> config = AnalysisConfig.from_file(Path("analysis.yaml"))
        >>> result = count_affected(features, tumors, normals, **config.affected_kwargs())
    """
    expression: ExpressionConfig = field(default_factory=ExpressionConfig)
    affected: AffectedConfig = field(default_factory=AffectedConfig)
    tests: RowTestConfig = field(default_factory=RowTestConfig)
    missing: MissingConfig = field(default_factory=MissingConfig)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "AnalysisConfig":
        """
        Build a configuration from a nested dictionary.

        Raises:
            ValueError: On unknown sections or keys, or invalid values
        """
        sections = {f.name: f.default_factory for f in fields(cls)}
        unknown = set(config) - set(sections)
        if unknown:
            raise ValueError(f"Unknown config sections: {sorted(unknown)}")

        built = {}
        for name, section_cls in sections.items():
            values = config.get(name) or {}
            if not isinstance(values, dict):
                raise ValueError(f"Config section '{name}' must be a mapping")
            allowed = {f.name for f in fields(section_cls)}
            bad_keys = set(values) - allowed
            if bad_keys:
                raise ValueError(f"Unknown keys in '{name}': {sorted(bad_keys)}")
            built[name] = section_cls(**values)
        return cls(**built)

    @classmethod
    def from_file(cls, config_path: Path) -> "AnalysisConfig":
        return cls.from_dict(load_config(Path(config_path)))

    def affected_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for count_affected()."""
        return asdict(self.affected)

    def expression_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for gene_expressed() / genes_expressed()."""
        return asdict(self.expression)

    def rowwise_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for pairwise_test() / do_wilcox() / do_bartlett()."""
        return {"n_jobs": self.tests.n_jobs}

    def levene_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for do_levene()."""
        return {"location": self.tests.levene_location, "n_jobs": self.tests.n_jobs}

    def adjust_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for adjust_pvalues()."""
        return {"method": self.tests.fdr_method}

    def missing_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for handle_missing_values() / MissingValueFilter."""
        return {
            "imputer": self.missing.imputer(),
            "max_missing_fraction": self.missing.max_missing_fraction,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    try:
        with open(config_path, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                config = yaml.safe_load(f)
            elif suffix == '.json':
                config = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported config format: {suffix}. "
                    f"Use .yaml, .yml, or .json"
                )
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config
