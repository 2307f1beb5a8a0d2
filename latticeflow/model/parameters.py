"""
LatticeFlow Parameter Store
=============================
Owns every learnable tensor of one LatticeFlow model instance.

Tensors and shapes (fixed at construction, never reshaped):

    primary_weights   [filter_size, filter_count]
    bias1             [input_size * filter_count]
    dense_weights1    [input_size * filter_count, dense1_units]
    bias2             [dense1_units]
    dense_weights2    [dense1_units]
    fluid_weights     [fluid_feature_size, dense1_units]
    fluid_bias        [dense1_units]

Initialization:
    Every tensor is filled with independent draws from a standard normal
    distribution N(0, 1), taken from a private ``torch.Generator`` seeded
    with the ``seed`` argument. Tensors are drawn in the order listed
    above, so the same sizes and seed always give the same store.

Mutation:
    Only ``assign`` and ``apply_update`` change values, and both refuse
    any value whose shape differs from the stored tensor. Read sites get
    the stored tensor itself and must treat it as read-only; use
    ``snapshot`` for a private copy.

Usage:
    >>> store = ParameterStore(16, 3, 4, 8, 16, seed=0)
    >>> store.primary_weights.shape
    torch.Size([3, 4])
    >>> store.apply_update("bias2", 0.01 * error)
"""

from __future__ import annotations

import logging
from typing import Optional

import torch

from latticeflow.config import ModelConfig, check_size
from latticeflow.errors import ConfigurationError, ShapeMismatchError

logger = logging.getLogger(__name__)

PARAMETER_NAMES = (
    "primary_weights",
    "bias1",
    "dense_weights1",
    "bias2",
    "dense_weights2",
    "fluid_weights",
    "fluid_bias",
)


class ParameterStore:
    """
    The full set of a model instance's learnable tensors.

    Parameters
    ----------
    input_size : int
        Lattice positions per sample (rows).
    filter_size : int
        Channels per lattice position (columns).
    filter_count : int
        Projections produced per lattice position.
    dense1_units : int
        Dense layer width and output dimension.
    fluid_feature_size : int
        Length of the fluid-feature vector.
    seed : int or None
        Seed for the initialization generator. None draws a fresh seed
        from the OS, so construction is only reproducible with a seed.
    dtype : torch.dtype
        Floating point type of every tensor.

    Raises
    ------
    ConfigurationError
        If any size is not a positive integer.
    """

    def __init__(
        self,
        input_size: int,
        filter_size: int,
        filter_count: int,
        dense1_units: int,
        fluid_feature_size: int,
        seed: Optional[int] = None,
        dtype: torch.dtype = torch.float32,
    ):
        check_size("input_size", input_size)
        check_size("filter_size", filter_size)
        check_size("filter_count", filter_count)
        check_size("dense1_units", dense1_units)
        check_size("fluid_feature_size", fluid_feature_size)
        if not dtype.is_floating_point:
            raise ConfigurationError(f"dtype must be floating point, got {dtype}")

        # NumPy integers pass the check; store plain ints.
        input_size, filter_size, filter_count, dense1_units, fluid_feature_size = (
            int(input_size), int(filter_size), int(filter_count),
            int(dense1_units), int(fluid_feature_size),
        )

        self.input_size = input_size
        self.filter_size = filter_size
        self.filter_count = filter_count
        self.dense1_units = dense1_units
        self.fluid_feature_size = fluid_feature_size
        self.dtype = dtype

        flat_size = input_size * filter_count
        if flat_size <= 0:
            raise ConfigurationError(
                f"Flattened projection width must be positive, got {flat_size}"
            )
        self.flat_size = flat_size

        self._shapes: dict[str, tuple[int, ...]] = {
            "primary_weights": (filter_size, filter_count),
            "bias1": (flat_size,),
            "dense_weights1": (flat_size, dense1_units),
            "bias2": (dense1_units,),
            "dense_weights2": (dense1_units,),
            "fluid_weights": (fluid_feature_size, dense1_units),
            "fluid_bias": (dense1_units,),
        }

        generator = torch.Generator()
        if seed is None:
            generator.seed()
        else:
            generator.manual_seed(seed)
        self.seed = generator.initial_seed()

        self._tensors: dict[str, torch.Tensor] = {
            name: torch.randn(self._shapes[name], generator=generator, dtype=dtype)
            for name in PARAMETER_NAMES
        }

        logger.debug(
            f"ParameterStore initialized: {self.n_params} params, "
            f"seed={self.seed}, dtype={dtype}"
        )

    @classmethod
    def from_config(
        cls,
        config: ModelConfig,
        seed: Optional[int] = None,
        dtype: torch.dtype = torch.float32,
    ) -> ParameterStore:
        """Build a store from a validated ModelConfig."""
        config.validate()
        return cls(
            input_size=config.input_size,
            filter_size=config.filter_size,
            filter_count=config.filter_count,
            dense1_units=config.dense1_units,
            fluid_feature_size=config.fluid_feature_size,
            seed=seed,
            dtype=dtype,
        )

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def names(self) -> tuple[str, ...]:
        return PARAMETER_NAMES

    def get(self, name: str) -> torch.Tensor:
        """Return the stored tensor (read-only by convention)."""
        try:
            return self._tensors[name]
        except KeyError:
            raise KeyError(
                f"Unknown parameter '{name}'. "
                f"Choose from: {', '.join(PARAMETER_NAMES)}"
            ) from None

    def __getattr__(self, name: str) -> torch.Tensor:
        # Only reached when normal lookup fails, i.e. for tensor names.
        tensors = self.__dict__.get("_tensors")
        if tensors is not None and name in tensors:
            return tensors[name]
        raise AttributeError(
            f"'{type(self).__name__}' object has no attribute '{name}'"
        )

    def shape_of(self, name: str) -> tuple[int, ...]:
        self.get(name)
        return self._shapes[name]

    def shapes(self) -> dict[str, tuple[int, ...]]:
        """Name → shape mapping; identical for the lifetime of the store."""
        return dict(self._shapes)

    def snapshot(self) -> dict[str, torch.Tensor]:
        """Cloned copies of all tensors, safe to keep across updates."""
        return {name: t.clone() for name, t in self._tensors.items()}

    @property
    def n_params(self) -> int:
        """Total number of learnable scalars."""
        return sum(t.numel() for t in self._tensors.values())

    # ------------------------------------------------------------------
    # Designated update entry points
    # ------------------------------------------------------------------

    def check_shape(self, name: str, value: torch.Tensor) -> None:
        """
        Raise ShapeMismatchError unless ``value`` has ``name``'s shape.

        No broadcasting: a scalar or a differently shaped tensor is
        rejected even when torch could broadcast it.
        """
        expected = self.shape_of(name)
        actual = tuple(value.shape)
        if actual != expected:
            raise ShapeMismatchError(
                f"Shape mismatch for '{name}': expected {expected}, got {actual}"
            )

    def assign(self, name: str, value) -> None:
        """Replace the values of ``name`` in place with ``value``."""
        value = torch.as_tensor(value, dtype=self.dtype)
        self.check_shape(name, value)
        self._tensors[name].copy_(value)

    def apply_update(self, name: str, delta: torch.Tensor) -> None:
        """Subtract ``delta`` from ``name`` in place (``tensor -= delta``)."""
        delta = torch.as_tensor(delta, dtype=self.dtype)
        self.check_shape(name, delta)
        self._tensors[name].sub_(delta)

    def load_snapshot(self, snapshot: dict[str, torch.Tensor]) -> None:
        """
        Restore values from a ``snapshot()`` dict.

        Every shape is checked before any tensor is written, so a bad
        snapshot leaves the store untouched.
        """
        missing = set(PARAMETER_NAMES) - set(snapshot)
        if missing:
            raise KeyError(f"Snapshot is missing parameters: {sorted(missing)}")
        converted = {
            name: torch.as_tensor(snapshot[name], dtype=self.dtype)
            for name in PARAMETER_NAMES
        }
        for name, value in converted.items():
            self.check_shape(name, value)
        for name, value in converted.items():
            self._tensors[name].copy_(value)

    def __repr__(self) -> str:
        shapes = ", ".join(
            f"{name}={list(shape)}" for name, shape in self._shapes.items()
        )
        return f"ParameterStore({shapes}, seed={self.seed})"
