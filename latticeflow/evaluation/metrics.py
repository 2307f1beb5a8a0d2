"""
LatticeFlow Evaluation Metrics
================================
Loss and timing utilities shared by training and evaluation.

1. SQUARED ERROR
   Mean squared error over one prediction vector:
       squared_error(p, t) = sum((p - t)^2) / len(p)
   Always >= 0; 0 only for a perfect prediction.

2. TIMING
   Wall-clock time for training and evaluation passes.

Usage:
    >>> from latticeflow.evaluation.metrics import squared_error
    >>> squared_error(torch.tensor([1.0, 2.0]), torch.tensor([1.0, 0.0]))
    2.0
"""

from __future__ import annotations

import logging
import time

import torch

from latticeflow.errors import ShapeMismatchError

logger = logging.getLogger(__name__)


def squared_error(prediction, target) -> float:
    """
    Mean squared error between one prediction and its target.

    Parameters
    ----------
    prediction : tensor-like, 1-D
    target : tensor-like, same shape as ``prediction``

    Returns
    -------
    float
        ``sum((prediction - target)^2) / len(prediction)``.

    Raises
    ------
    ShapeMismatchError
        If the shapes differ or the vectors are empty.
    """
    prediction = torch.as_tensor(prediction)
    target = torch.as_tensor(target, dtype=prediction.dtype)
    if prediction.shape != target.shape:
        raise ShapeMismatchError(
            f"prediction shape {tuple(prediction.shape)} does not match "
            f"target shape {tuple(target.shape)}"
        )
    if prediction.numel() == 0:
        raise ShapeMismatchError("Cannot compute squared error of empty vectors")

    diff = prediction - target
    return (diff * diff).sum().item() / prediction.numel()


class Timer:
    """
    Simple context manager for timing operations.

    Usage:
        >>> with Timer("Training") as t:
        ...     train()
        >>> print(f"Took: {t.elapsed:.2f}s")
    """

    def __init__(self, label: str = "operation"):
        self.label = label
        self.elapsed: float = 0.0
        self._start: float = 0.0

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed = time.perf_counter() - self._start
        logger.debug(f"[{self.label}] Time: {self.elapsed:.3f}s")
