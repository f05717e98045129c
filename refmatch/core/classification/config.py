"""Configuration classes for classification.

Run-time options for the classifiers, plus the YAML-backed configuration
used by the engine and CLI.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..scoring.aggregate import check_quantile
from ...utils.parallel import check_num_threads


@dataclass
class ClassifySingleOptions:
    """Options for ``classify_single``.

    Attributes
    ----------
    quantile : float
        Quantile of the per-profile correlations used as the label score
    fine_tune : bool
        Iteratively rescore the top labels on their own markers
    fine_tune_threshold : float
        Labels within this distance of the top score stay in fine-tuning
    num_threads : int
        Number of worker threads
    """

    quantile: float = 0.8
    fine_tune: bool = True
    fine_tune_threshold: float = 0.05
    num_threads: int = 1

    def __post_init__(self) -> None:
        self.quantile = check_quantile(self.quantile)
        self.num_threads = check_num_threads(self.num_threads)
        if self.fine_tune_threshold < 0:
            raise ValueError(
                f"fine_tune_threshold must be non-negative, got {self.fine_tune_threshold}"
            )


@dataclass
class ClassifyIntegratedOptions:
    """Options for ``classify_integrated``.

    Attributes
    ----------
    quantile : float
        Quantile of the per-profile correlations used as the score,
        with the same meaning as in ``ClassifySingleOptions``
    num_threads : int
        Number of worker threads
    """

    quantile: float = 0.8
    num_threads: int = 1

    def __post_init__(self) -> None:
        self.quantile = check_quantile(self.quantile)
        self.num_threads = check_num_threads(self.num_threads)


@dataclass
class TrainConfig:
    """Configuration for reference training.

    Attributes
    ----------
    top : int, optional
        Markers kept per label pair (None keeps all)
    """

    top: Optional[int] = None

    def __post_init__(self) -> None:
        if self.top is not None and self.top < 0:
            raise ValueError(f"top must be non-negative or None, got {self.top}")


@dataclass
class SingleConfig:
    """Configuration for per-reference classification."""

    quantile: float = 0.8
    fine_tune: bool = True
    fine_tune_threshold: float = 0.05


@dataclass
class IntegratedConfig:
    """Configuration for cross-reference integration."""

    quantile: float = 0.8


@dataclass
class RefMatchConfig:
    """Master configuration for a classification run.

    Attributes
    ----------
    train : TrainConfig
        Reference training configuration
    single : SingleConfig
        Per-reference classification configuration
    integrated : IntegratedConfig
        Integration configuration
    label_key : str
        Column of reference ``obs`` holding the labels
    layer : str, optional
        Expression layer to use (None = X)
    num_threads : int
        Number of worker threads for both classification steps
    """

    train: TrainConfig = field(default_factory=TrainConfig)
    single: SingleConfig = field(default_factory=SingleConfig)
    integrated: IntegratedConfig = field(default_factory=IntegratedConfig)
    label_key: str = "cell_type"
    layer: Optional[str] = None
    num_threads: int = 1

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RefMatchConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        # Handle nested refmatch section
        if "refmatch" in data:
            data = data["refmatch"]

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefMatchConfig":
        """Build configuration from a (possibly partial) dictionary."""
        return cls(
            train=TrainConfig(**data.get("train", {})),
            single=SingleConfig(**data.get("single", {})),
            integrated=IntegratedConfig(**data.get("integrated", {})),
            label_key=data.get("label_key", "cell_type"),
            layer=data.get("layer"),
            num_threads=int(data.get("num_threads", 1)),
        )

    @classmethod
    def default(cls) -> "RefMatchConfig":
        """Create default configuration."""
        return cls()

    def single_options(self) -> ClassifySingleOptions:
        return ClassifySingleOptions(
            quantile=self.single.quantile,
            fine_tune=self.single.fine_tune,
            fine_tune_threshold=self.single.fine_tune_threshold,
            num_threads=self.num_threads,
        )

    def integrated_options(self) -> ClassifyIntegratedOptions:
        return ClassifyIntegratedOptions(
            quantile=self.integrated.quantile,
            num_threads=self.num_threads,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "train": {
                "top": self.train.top,
            },
            "single": {
                "quantile": self.single.quantile,
                "fine_tune": self.single.fine_tune,
                "fine_tune_threshold": self.single.fine_tune_threshold,
            },
            "integrated": {
                "quantile": self.integrated.quantile,
            },
            "label_key": self.label_key,
            "layer": self.layer,
            "num_threads": self.num_threads,
        }
