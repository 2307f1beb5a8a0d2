"""
LatticeFlow Model
===================
The external interface of the core: one object that owns a
ParameterStore and wires the forward engine, training step, modulator
and evaluator around it.

Information Flow:
    ParameterStore → ForwardEngine → (loss) → TrainingStep
        → ParameterStore (mutated) → DynamicConnectionModulator
        → ParameterStore

    Evaluator only reads the store through the ForwardEngine.

Concurrency:
    A model and its store belong to a single training loop. Nothing here
    is thread-safe; parallel training needs independent model instances
    and an explicit merge policy on the caller's side.

Usage:
    >>> model = LatticeFlowModel(16, 3, 4, 8, 16, seed=0)
    >>> prediction = model.predict(sample, features)
    >>> loss = model.train_one_step(sample, features, target, 1e-3)
    >>> mse = model.evaluate(dataset)
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import torch

from latticeflow.config import ModelConfig
from latticeflow.evaluation.evaluator import Evaluator
from latticeflow.model.forward import ForwardEngine
from latticeflow.model.modulator import DynamicConnectionModulator
from latticeflow.model.parameters import ParameterStore
from latticeflow.training.step import TrainingStep

logger = logging.getLogger(__name__)


class LatticeFlowModel:
    """
    Fluid-field regression model trained by manual gradient descent.

    Parameters
    ----------
    input_size, filter_size, filter_count, dense1_units, fluid_feature_size : int
        Sizes passed straight to ParameterStore.
    seed : int or None
        Initialization seed.
    dtype : torch.dtype
        Floating point type of all parameters.
    modulator : DynamicConnectionModulator or None
        Post-update rescaling rule. None uses floor=0.5, gain=0.5.
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
        modulator: Optional[DynamicConnectionModulator] = None,
    ):
        self.parameters = ParameterStore(
            input_size=input_size,
            filter_size=filter_size,
            filter_count=filter_count,
            dense1_units=dense1_units,
            fluid_feature_size=fluid_feature_size,
            seed=seed,
            dtype=dtype,
        )
        self.engine = ForwardEngine(self.parameters)
        self.modulator = modulator or DynamicConnectionModulator()
        self.step = TrainingStep(self.engine, self.modulator)
        self.evaluator = Evaluator(self.engine)

        logger.info(
            f"LatticeFlowModel initialized: {self.parameters.n_params} "
            f"parameters, seed={self.parameters.seed}"
        )

    @classmethod
    def from_config(
        cls,
        config: ModelConfig,
        seed: Optional[int] = None,
        dtype: torch.dtype = torch.float32,
    ) -> LatticeFlowModel:
        """Build a model from a ModelConfig (validated first)."""
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

    @property
    def output_size(self) -> int:
        return self.parameters.dense1_units

    def predict(self, sample, features) -> torch.Tensor:
        """Prediction for one sample; does not modify any parameter."""
        return self.engine.predict(sample, features)

    def train_one_step(self, sample, features, target, learning_rate: float) -> float:
        """
        Update the parameters from one example.

        Returns the squared error of the prediction made before the
        update. On any error the parameters are left unchanged.
        """
        return self.step.run(sample, features, target, learning_rate)

    def evaluate(self, dataset: Iterable) -> float:
        """Mean squared error over (sample, features, target) triples."""
        return self.evaluator.evaluate(dataset)

    def __repr__(self) -> str:
        p = self.parameters
        return (
            f"LatticeFlowModel(input_size={p.input_size}, "
            f"filter_size={p.filter_size}, filter_count={p.filter_count}, "
            f"dense1_units={p.dense1_units}, "
            f"fluid_feature_size={p.fluid_feature_size})"
        )
