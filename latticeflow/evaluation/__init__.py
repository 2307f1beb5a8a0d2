"""
latticeflow.evaluation — Metrics & Evaluation
==============================================
    - metrics.py   — squared_error (per-sample MSE) and Timer
    - evaluator.py — Evaluator: mean squared error over a dataset
"""

from latticeflow.evaluation.metrics import squared_error, Timer
from latticeflow.evaluation.evaluator import Evaluator
