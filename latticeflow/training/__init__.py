"""
latticeflow.training — Training Engine
=======================================
    - step.py    — TrainingStep: one heuristic update + modulation
    - trainer.py — Trainer: epochs over samples, logging, validation

Information Flow:
    (sample, features, target) → TrainingStep → ParameterStore (mutated)
    Dataset → Trainer → TrainingStep per sample → Evaluator per epoch
"""

from latticeflow.training.step import TrainingStep
from latticeflow.training.trainer import Trainer
