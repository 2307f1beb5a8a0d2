"""
LatticeFlow Forward Engine
============================
Computes a prediction from one lattice sample and one fluid-feature
vector using the current contents of a ParameterStore.

Architecture:
    sample [input_size, filter_size]
      → × primary_weights             "convolution-like" projection
      → flatten (row-major)           [input_size * filter_count]
      → + bias1, ReLU                 hidden1
      → · dense_weights1, + bias2     [dense1_units]
      → ReLU                          hidden2

    features [fluid_feature_size]
      → · fluid_weights, ReLU         [dense1_units]
      → + fluid_bias                  fluid_hidden

    prediction = hidden2 + fluid_hidden

Note that the fluid branch applies ReLU *before* adding its bias, so
``fluid_hidden`` can be negative while ``hidden2`` never is.

Usage:
    >>> engine = ForwardEngine(store)
    >>> prediction = engine.predict(sample, features)
    >>> trace = engine.trace(sample, features)   # with intermediates
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import torch

from latticeflow.errors import ShapeMismatchError
from latticeflow.model.parameters import ParameterStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForwardTrace:
    """
    Every intermediate of one forward pass.

    TrainingStep reads the ReLU masks from here; ``predict`` only
    returns ``prediction``.
    """
    projected: torch.Tensor      # [input_size, filter_count]
    pre1: torch.Tensor           # [flat_size], before ReLU
    hidden1: torch.Tensor        # [flat_size]
    pre2: torch.Tensor           # [dense1_units], before ReLU
    hidden2: torch.Tensor        # [dense1_units]
    fluid_hidden: torch.Tensor   # [dense1_units]
    prediction: torch.Tensor     # [dense1_units]

    @property
    def mask1(self) -> torch.Tensor:
        """Where layer 1 was active (pre-activation > 0)."""
        return self.pre1 > 0

    @property
    def mask2(self) -> torch.Tensor:
        """Where layer 2 was active (pre-activation > 0)."""
        return self.pre2 > 0


class ForwardEngine:
    """
    Stateless forward pass over a ParameterStore.

    The engine holds a reference to the store, never a copy, so it
    always sees the latest trained values.

    Parameters
    ----------
    parameters : ParameterStore
        The store to read weights and biases from.
    """

    def __init__(self, parameters: ParameterStore):
        self.parameters = parameters

    def _as_input(self, value) -> torch.Tensor:
        return torch.as_tensor(value, dtype=self.parameters.dtype)

    def check_inputs(self, sample: torch.Tensor, features: torch.Tensor) -> None:
        """
        Validate input shapes against the store.

        Raises
        ------
        ShapeMismatchError
            If ``sample`` is not 2-D with ``filter_size`` columns and
            ``input_size`` rows, or ``features`` is not 1-D of length
            ``fluid_feature_size``.
        """
        p = self.parameters
        if sample.dim() != 2:
            raise ShapeMismatchError(
                f"sample must be 2-D [lattice rows, channels], "
                f"got shape {tuple(sample.shape)}"
            )
        if sample.shape[1] != p.filter_size:
            raise ShapeMismatchError(
                f"sample has {sample.shape[1]} columns but primary_weights "
                f"has {p.filter_size} rows"
            )
        if sample.shape[0] * p.filter_count != p.flat_size:
            raise ShapeMismatchError(
                f"Flattened projection has {sample.shape[0] * p.filter_count} "
                f"entries but bias1 has {p.flat_size} "
                f"(sample rows={sample.shape[0]}, expected {p.input_size})"
            )
        if features.dim() != 1 or features.shape[0] != p.fluid_feature_size:
            raise ShapeMismatchError(
                f"features must be 1-D of length {p.fluid_feature_size}, "
                f"got shape {tuple(features.shape)}"
            )

    @torch.no_grad()
    def trace(self, sample, features) -> ForwardTrace:
        """
        Run the forward pass and keep every intermediate.

        Parameters
        ----------
        sample : tensor-like [input_size, filter_size]
        features : tensor-like [fluid_feature_size]

        Returns
        -------
        ForwardTrace
        """
        sample = self._as_input(sample)
        features = self._as_input(features)
        self.check_inputs(sample, features)
        p = self.parameters

        projected = sample @ p.primary_weights
        flat = projected.reshape(-1)

        pre1 = flat + p.bias1
        hidden1 = torch.relu(pre1)

        pre2 = hidden1 @ p.dense_weights1 + p.bias2
        hidden2 = torch.relu(pre2)

        fluid_hidden = torch.relu(features @ p.fluid_weights) + p.fluid_bias

        if hidden2.shape != fluid_hidden.shape:
            raise ShapeMismatchError(
                f"Cannot combine dense output {tuple(hidden2.shape)} with "
                f"fluid output {tuple(fluid_hidden.shape)}"
            )

        return ForwardTrace(
            projected=projected,
            pre1=pre1,
            hidden1=hidden1,
            pre2=pre2,
            hidden2=hidden2,
            fluid_hidden=fluid_hidden,
            prediction=hidden2 + fluid_hidden,
        )

    def predict(self, sample, features) -> torch.Tensor:
        """Prediction vector of length ``dense1_units``."""
        return self.trace(sample, features).prediction
