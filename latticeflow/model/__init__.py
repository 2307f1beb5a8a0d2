"""
latticeflow.model — Model Core
===============================
The learnable state and the computations over it.

    ┌─ LatticeFlowModel ──────────────────────────────────────┐
    │                                                         │
    │   ParameterStore ──► ForwardEngine ──► prediction       │
    │         ▲                   │                           │
    │         │                   ▼                           │
    │         └──── TrainingStep (heuristic update)           │
    │         │                   │                           │
    │         └──── DynamicConnectionModulator (features)     │
    └─────────────────────────────────────────────────────────┘

Components:
    - parameters.py — ParameterStore (all weights and biases)
    - forward.py    — ForwardEngine and ForwardTrace
    - modulator.py  — DynamicConnectionModulator
    - network.py    — LatticeFlowModel, the external interface
                      (import it from latticeflow.model.network)
"""

from latticeflow.model.parameters import ParameterStore
from latticeflow.model.forward import ForwardEngine, ForwardTrace
from latticeflow.model.modulator import DynamicConnectionModulator, modulate
