"""
LatticeFlow Dynamic Connection Modulator
==========================================
Rescales a weight matrix row by row using the fluid-feature vector,
outside the gradient path.

    scale_i      = max(floor, 1 + gain * features[i])
    weights'[i]  = weights[i] * scale_i

With the defaults (floor = 0.5, gain = 0.5) a feature can grow a row's
connections without bound but can at most halve them; it never zeroes a
weight or flips its sign.

Usage:
    >>> modulator = DynamicConnectionModulator()
    >>> modulator.modulate(torch.tensor([[2.0]]), torch.tensor([-1.0]))
    tensor([[1.]])
"""

from __future__ import annotations

import math

import torch

from latticeflow.errors import ConfigurationError, ShapeMismatchError

DEFAULT_FLOOR = 0.5
DEFAULT_GAIN = 0.5


class DynamicConnectionModulator:
    """
    Pure, feature-conditioned elementwise rescaling of a weight matrix.

    Parameters
    ----------
    floor : float
        Lower bound on every row's scale factor. Must be positive.
    gain : float
        How strongly a feature value moves its row's scale.
    """

    def __init__(self, floor: float = DEFAULT_FLOOR, gain: float = DEFAULT_GAIN):
        if not math.isfinite(floor) or floor <= 0:
            raise ConfigurationError(f"floor must be positive, got {floor}")
        if not math.isfinite(gain):
            raise ConfigurationError(f"gain must be finite, got {gain}")
        self.floor = floor
        self.gain = gain

    def check_inputs(self, weights: torch.Tensor, features: torch.Tensor) -> None:
        """Raise ShapeMismatchError unless every weight row has a feature."""
        if weights.dim() != 2:
            raise ShapeMismatchError(
                f"weights must be 2-D, got shape {tuple(weights.shape)}"
            )
        if features.dim() != 1:
            raise ShapeMismatchError(
                f"features must be 1-D, got shape {tuple(features.shape)}"
            )
        if features.shape[0] < weights.shape[0]:
            raise ShapeMismatchError(
                f"features has {features.shape[0]} entries but weights has "
                f"{weights.shape[0]} rows"
            )

    def scales(self, features: torch.Tensor, n_rows: int) -> torch.Tensor:
        """Per-row scale factors for the first ``n_rows`` features."""
        return torch.clamp(1.0 + self.gain * features[:n_rows], min=self.floor)

    @torch.no_grad()
    def modulate(self, weights, features) -> torch.Tensor:
        """
        Return a rescaled copy of ``weights``; the input is not modified.

        Parameters
        ----------
        weights : tensor-like [rows, cols]
        features : tensor-like [>= rows]

        Raises
        ------
        ShapeMismatchError
            If ``features`` is shorter than ``weights`` has rows.
        """
        weights = torch.as_tensor(weights)
        features = torch.as_tensor(features)
        # Integer weights would truncate fractional features.
        dtype = torch.promote_types(weights.dtype, torch.get_default_dtype())
        weights = weights.to(dtype)
        features = features.to(dtype)
        self.check_inputs(weights, features)
        return weights * self.scales(features, weights.shape[0]).unsqueeze(1)

    def __repr__(self) -> str:
        return f"DynamicConnectionModulator(floor={self.floor}, gain={self.gain})"


def modulate(weights, features) -> torch.Tensor:
    """Modulate with the default floor and gain."""
    return DynamicConnectionModulator().modulate(weights, features)
