"""
LatticeFlow Configuration System
==================================
Centralized configuration for all LatticeFlow components using Python
dataclasses. Every size, hyperparameter, and path lives here.

Usage:
    # Load from YAML file:
    >>> config = LatticeFlowConfig.from_yaml("configs/default.yaml")

    # Create programmatically:
    >>> config = LatticeFlowConfig(
    ...     model=ModelConfig(input_size=16, filter_size=3),
    ...     training=TrainingConfig(learning_rate=1e-4),
    ... )

    # Save to YAML:
    >>> config.to_yaml("configs/my_experiment.yaml")

    # Access nested values:
    >>> config.model.flat_size           # input_size * filter_count
    >>> config.training.learning_rate    # 0.0001
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Literal

import torch
import yaml

from latticeflow.errors import ConfigurationError

logger = logging.getLogger(__name__)

_DTYPES = {
    "float32": torch.float32,
    "float64": torch.float64,
}


def check_integer(name: str, value) -> None:
    """Reject anything that is not an integer (bools included)."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(
            f"{name} must be an integer, got {type(value).__name__} ({value!r})"
        )


def check_size(name: str, value) -> None:
    """Reject non-integer and non-positive sizes (bools included)."""
    check_integer(name, value)
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")


def coerce_float(name: str, value) -> float:
    """
    Convert a real-valued setting to float.

    PyYAML reads exponent forms without a dot (``1e-4``) as strings, so
    numeric strings are accepted here.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


# =============================================================================
# Model Configuration
# =============================================================================

@dataclass
class ModelConfig:
    """
    Size parameters for the LatticeFlow model.

    Parameters
    ----------
    input_size : int
        Number of lattice positions (rows) in one sample.

    filter_size : int
        Number of channels per lattice position (columns of a sample),
        e.g. 3 for ``u, v, p``. Also the row count of the primary
        weight matrix.

    filter_count : int
        Number of projections the "convolution-like" stage produces per
        lattice position.

    dense1_units : int
        Width of the dense layer, which is also the output dimension.

    fluid_feature_size : int
        Length of the fluid-feature vector (one scalar per lattice row).
        Must be at least ``filter_size`` for the connection modulator to
        index every primary-weight row.
    """
    input_size: int = 16
    filter_size: int = 3
    filter_count: int = 4
    dense1_units: int = 8
    fluid_feature_size: int = 16

    def validate(self) -> None:
        """
        Check that every size is a positive integer.

        Raises
        ------
        ConfigurationError
            If any size is invalid.
        """
        for name in (
            "input_size", "filter_size", "filter_count",
            "dense1_units", "fluid_feature_size",
        ):
            check_size(name, getattr(self, name))
        if self.fluid_feature_size < self.filter_size:
            raise ConfigurationError(
                f"fluid_feature_size ({self.fluid_feature_size}) must be >= "
                f"filter_size ({self.filter_size}): the connection modulator "
                f"scales primary-weight row i by feature i."
            )

    @property
    def flat_size(self) -> int:
        """Width of the flattened projection (input_size * filter_count)."""
        return self.input_size * self.filter_count

    @property
    def output_size(self) -> int:
        """Length of a prediction vector."""
        return self.dense1_units

    @property
    def total_params(self) -> int:
        """Exact number of learnable scalars in the parameter store."""
        return (
            self.filter_size * self.filter_count       # primary weights
            + self.flat_size                           # bias1
            + self.flat_size * self.dense1_units       # dense weights 1
            + self.dense1_units                        # bias2
            + self.dense1_units                        # dense weights 2
            + self.fluid_feature_size * self.dense1_units
            + self.dense1_units                        # fluid bias
        )


# =============================================================================
# Training Configuration
# =============================================================================

@dataclass
class TrainingConfig:
    """
    Hyperparameters for the sample-by-sample training loop.

    Parameters
    ----------
    learning_rate : float
        Step size applied to every heuristic gradient.

    epochs : int
        Number of full passes over the training samples.

    seed : int
        Seed for parameter initialization and sample shuffling.
        Same seed = same run.

    shuffle : bool
        Whether to visit samples in a (seeded) random order each epoch.

    log_every : int
        Log the running loss every N training steps. 0 disables.

    skip_malformed : bool
        If True, a sample that raises ShapeMismatchError is logged and
        skipped instead of aborting training.

    dtype : str
        Floating point precision for all tensors: "float32" or "float64".
    """
    learning_rate: float = 1e-4
    epochs: int = 10
    seed: int = 42
    shuffle: bool = True
    log_every: int = 100
    skip_malformed: bool = False
    dtype: Literal["float32", "float64"] = "float32"

    def validate(self) -> None:
        """Validate training parameters."""
        self.learning_rate = coerce_float("learning_rate", self.learning_rate)
        if not math.isfinite(self.learning_rate) or self.learning_rate <= 0:
            raise ConfigurationError(
                f"learning_rate must be positive and finite, got {self.learning_rate}"
            )
        for name in ("epochs", "seed", "log_every"):
            check_integer(name, getattr(self, name))
        if self.epochs < 1:
            raise ConfigurationError(f"epochs must be >= 1, got {self.epochs}")
        if self.log_every < 0:
            raise ConfigurationError(
                f"log_every must be >= 0, got {self.log_every}"
            )
        if self.dtype not in _DTYPES:
            raise ConfigurationError(
                f"Unknown dtype: '{self.dtype}'. "
                f"Choose from: {', '.join(_DTYPES)}"
            )

    def resolve_dtype(self) -> torch.dtype:
        """Map the configured dtype name to a torch dtype."""
        return _DTYPES[self.dtype]


# =============================================================================
# Data Configuration
# =============================================================================

@dataclass
class DataConfig:
    """
    Configuration for the data source feeding the model.

    Parameters
    ----------
    n_samples : int
        Number of synthetic training samples to generate when no data
        file is given.

    n_val_samples : int
        Number of synthetic validation samples. 0 disables validation.

    noise_amplitude : float
        Standard deviation of the Gaussian noise added to synthetic
        velocity and pressure fields.

    data_path : str or None
        Optional ``.npz`` file with ``samples``, ``features`` and
        ``targets`` arrays. None = generate synthetic data.
    """
    n_samples: int = 256
    n_val_samples: int = 64
    noise_amplitude: float = 0.01
    data_path: Optional[str] = None

    def validate(self) -> None:
        """Validate data parameters."""
        check_integer("n_samples", self.n_samples)
        check_integer("n_val_samples", self.n_val_samples)
        self.noise_amplitude = coerce_float("noise_amplitude", self.noise_amplitude)
        if self.n_samples < 1:
            raise ConfigurationError(
                f"n_samples must be >= 1, got {self.n_samples}"
            )
        if self.n_val_samples < 0:
            raise ConfigurationError(
                f"n_val_samples must be >= 0, got {self.n_val_samples}"
            )
        if self.noise_amplitude < 0:
            raise ConfigurationError(
                f"noise_amplitude must be >= 0, got {self.noise_amplitude}"
            )


# =============================================================================
# Master Configuration
# =============================================================================

@dataclass
class LatticeFlowConfig:
    """
    Master configuration combining all sub-configurations.

    Usage:
        >>> config = LatticeFlowConfig.from_yaml("configs/default.yaml")
        >>> config = LatticeFlowConfig()
        >>> config.validate()
        >>> config.to_yaml("configs/my_experiment.yaml")
    """
    model: ModelConfig = field(default_factory=ModelConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    data: DataConfig = field(default_factory=DataConfig)

    def validate(self) -> None:
        """
        Validate all sub-configurations.

        Raises
        ------
        ConfigurationError
            If any parameter is invalid.
        """
        self.model.validate()
        self.training.validate()
        self.data.validate()

        logger.info(
            f"Config validated: {self.model.total_params} params, "
            f"lr={self.training.learning_rate}, epochs={self.training.epochs}"
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> LatticeFlowConfig:
        """
        Load configuration from a YAML file.

        Parameters
        ----------
        path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        LatticeFlowConfig
            Loaded and validated configuration.

        Raises
        ------
        FileNotFoundError
            If the YAML file does not exist.
        ConfigurationError
            If the file is empty or contains unknown keys or bad values.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(
                f"Config file not found: {path}. "
                f"Create one from configs/default.yaml as a template."
            )

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)

        if raw is None:
            raise ConfigurationError(f"Config file is empty: {path}")

        try:
            config = cls(
                model=ModelConfig(**raw.get("model", {})),
                training=TrainingConfig(**raw.get("training", {})),
                data=DataConfig(**raw.get("data", {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid config file {path}: {e}") from e

        config.validate()
        return config

    def to_yaml(self, path: str | Path) -> None:
        """
        Save configuration to a YAML file.

        Creates parent directories if they don't exist.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.to_dict(),
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

        logger.info(f"Config saved to {path}")

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)

    @classmethod
    def for_smoke_test(cls) -> LatticeFlowConfig:
        """
        Create a minimal configuration for quick smoke testing.

        Tiny lattice and few samples so a full run finishes in seconds.
        """
        return cls(
            model=ModelConfig(
                input_size=4,
                filter_size=2,
                filter_count=2,
                dense1_units=2,
                fluid_feature_size=4,
            ),
            training=TrainingConfig(
                learning_rate=1e-4,
                epochs=2,
                seed=0,
                shuffle=True,
                log_every=0,
                skip_malformed=False,
                dtype="float32",
            ),
            data=DataConfig(
                n_samples=16,
                n_val_samples=4,
                noise_amplitude=0.0,
                data_path=None,
            ),
        )

    def __repr__(self) -> str:
        """Pretty-print the configuration."""
        m = self.model
        lines = [
            "LatticeFlowConfig(",
            f"  Model:    {m.total_params} params, lattice {m.input_size}x"
            f"{m.filter_size} -> {m.filter_count} filters -> "
            f"{m.dense1_units} outputs, {m.fluid_feature_size} fluid features",
            f"  Training: lr={self.training.learning_rate}, "
            f"epochs={self.training.epochs}, seed={self.training.seed}, "
            f"dtype={self.training.dtype}",
            f"  Data:     {self.data.data_path or 'synthetic'} "
            f"({self.data.n_samples} train / {self.data.n_val_samples} val)",
            ")",
        ]
        return "\n".join(lines)
