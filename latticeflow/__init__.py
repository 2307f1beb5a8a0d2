"""
LatticeFlow
===========
A small fluid-field regression model trained by manual gradient descent,
with physics-conditioned modulation of its learned connections.

This package provides:
    1. A parameter store with fixed shapes and seeded initialization
    2. A forward pass from a lattice sample (velocity + pressure per
       lattice point) and a fluid-feature vector to a prediction
    3. A heuristic single-sample update rule followed by dynamic
       connection modulation driven by the fluid features
    4. Evaluation, a training driver, and a synthetic data source

Quick Start:
    >>> from latticeflow.config import LatticeFlowConfig
    >>> from latticeflow.model.network import LatticeFlowModel
    >>> config = LatticeFlowConfig.for_smoke_test()
    >>> model = LatticeFlowModel.from_config(config.model, seed=0)

Subpackages:
    - latticeflow.model      — Parameter store, forward pass, modulator, model facade
    - latticeflow.training   — Single-sample update rule and epoch loop
    - latticeflow.evaluation — Squared error and dataset evaluation
    - latticeflow.data       — Dataset container and synthetic lattice generator
"""

__version__ = "0.1.0"
