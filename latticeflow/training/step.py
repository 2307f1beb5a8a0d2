"""
LatticeFlow Training Step
===========================
One manual gradient-descent update on a single (sample, features,
target) triple, followed by dynamic connection modulation.

Update rule:
    The gradients below are heuristics, not the exact derivative of the
    squared error. They are reproduced as-is so that trained parameters
    match across implementations.

        error          = prediction - target                [units]

        dense_weights1 -= lr * (error broadcast to [flat, units]
                                masked where pre1 <= 0 (rows)
                                or pre2 <= 0 (columns))
        bias2          -= lr * error
        expansion       = dense_weights1 @ (error * dense_weights2)
                          reshaped to [input_size, filter_count]
        primary_weights -= lr * (sample.T @ expansion)

        primary_weights  = modulate(primary_weights, features)

    All gradients are computed from the pre-update parameters, and every
    shape is checked before the first write, so a failing step leaves the
    store exactly as it was. fluid_weights, fluid_bias, bias1 and
    dense_weights2 are never written.
"""

from __future__ import annotations

import logging
import math

import torch

from latticeflow.errors import ConfigurationError, ShapeMismatchError
from latticeflow.evaluation.metrics import squared_error
from latticeflow.model.forward import ForwardEngine
from latticeflow.model.modulator import DynamicConnectionModulator

logger = logging.getLogger(__name__)


class TrainingStep:
    """
    Forward, heuristic backward, update, then modulate.

    Parameters
    ----------
    engine : ForwardEngine
        Forward pass bound to the ParameterStore being trained.
    modulator : DynamicConnectionModulator or None
        Post-update rescaling of primary_weights. None uses the default
        floor and gain.
    """

    def __init__(
        self,
        engine: ForwardEngine,
        modulator: DynamicConnectionModulator | None = None,
    ):
        self.engine = engine
        self.parameters = engine.parameters
        self.modulator = modulator or DynamicConnectionModulator()

    def gradients(self, sample, features, target) -> tuple[dict[str, torch.Tensor], float]:
        """
        Compute the heuristic gradients without touching the store.

        Returns
        -------
        (dict, float)
            Gradient per updated parameter name, and the squared error
            of the pre-update prediction.

        Raises
        ------
        ShapeMismatchError
            If any input disagrees with the store's shapes.
        """
        p = self.parameters
        sample = torch.as_tensor(sample, dtype=p.dtype)
        features = torch.as_tensor(features, dtype=p.dtype)
        target = torch.as_tensor(target, dtype=p.dtype)

        trace = self.engine.trace(sample, features)
        if tuple(target.shape) != tuple(trace.prediction.shape):
            raise ShapeMismatchError(
                f"target must have shape {tuple(trace.prediction.shape)}, "
                f"got {tuple(target.shape)}"
            )
        # Modulation happens after the update; check it can before writing.
        self.modulator.check_inputs(p.primary_weights, features)

        with torch.no_grad():
            error = trace.prediction - target

            mask = trace.mask1.unsqueeze(1) & trace.mask2.unsqueeze(0)
            grad_dense1 = error.expand(p.flat_size, p.dense1_units) * mask

            expansion = p.dense_weights1 @ (error * p.dense_weights2)
            expansion = expansion.reshape(p.input_size, p.filter_count)
            grad_primary = sample.T @ expansion

        grads = {
            "dense_weights1": grad_dense1,
            "bias2": error.clone(),
            "primary_weights": grad_primary,
        }
        return grads, squared_error(trace.prediction, target)

    def run(self, sample, features, target, learning_rate: float) -> float:
        """
        Apply one update to the store.

        Parameters
        ----------
        sample : tensor-like [input_size, filter_size]
        features : tensor-like [fluid_feature_size]
        target : tensor-like [dense1_units]
        learning_rate : float
            Positive, finite step size.

        Returns
        -------
        float
            Squared error of the prediction made before the update.
        """
        try:
            lr = float(learning_rate)
        except (TypeError, ValueError):
            lr = float("nan")
        if isinstance(learning_rate, bool) or not math.isfinite(lr) or lr <= 0:
            raise ConfigurationError(
                f"learning_rate must be positive and finite, got {learning_rate!r}"
            )

        grads, loss = self.gradients(sample, features, target)
        features = torch.as_tensor(features, dtype=self.parameters.dtype)

        for name, grad in grads.items():
            self.parameters.apply_update(name, lr * grad)

        modulated = self.modulator.modulate(self.parameters.primary_weights, features)
        self.parameters.assign("primary_weights", modulated)

        return loss
