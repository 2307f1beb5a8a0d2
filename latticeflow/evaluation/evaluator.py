"""
LatticeFlow Evaluator
=======================
Mean squared error of a model's predictions over a dataset.

Predictions are recomputed on every call; nothing is cached, because
parameters change between epochs.

Usage:
    >>> evaluator = Evaluator(engine)
    >>> mse = evaluator.evaluate(val_dataset)
    >>> report = evaluator.evaluate_detailed(val_dataset)
"""

from __future__ import annotations

import logging
from typing import Iterable

from latticeflow.evaluation.metrics import Timer, squared_error
from latticeflow.model.forward import ForwardEngine

logger = logging.getLogger(__name__)


class Evaluator:
    """
    Read-only evaluation over (sample, features, target) triples.

    Parameters
    ----------
    engine : ForwardEngine
        Forward pass bound to the store being evaluated.
    """

    def __init__(self, engine: ForwardEngine):
        self.engine = engine

    def _errors(self, dataset: Iterable) -> list[float]:
        errors = []
        for sample, features, target in dataset:
            prediction = self.engine.predict(sample, features)
            errors.append(squared_error(prediction, target))
        if not errors:
            raise ValueError("Cannot evaluate an empty dataset.")
        return errors

    def evaluate(self, dataset: Iterable) -> float:
        """
        Mean of the per-sample squared error.

        Parameters
        ----------
        dataset : iterable of (sample, features, target)

        Returns
        -------
        float
            Mean squared error, always >= 0.

        Raises
        ------
        ValueError
            If ``dataset`` yields no samples.
        ShapeMismatchError
            If any sample disagrees with the model's shapes.
        """
        errors = self._errors(dataset)
        return sum(errors) / len(errors)

    def evaluate_detailed(self, dataset: Iterable) -> dict:
        """
        Evaluate and collect summary statistics.

        Returns
        -------
        dict
            ``mse``, ``n_samples``, ``max_error``, ``min_error`` and
            ``time_seconds``.
        """
        with Timer("Evaluation") as timer:
            errors = self._errors(dataset)

        results = {
            "mse": sum(errors) / len(errors),
            "n_samples": len(errors),
            "max_error": max(errors),
            "min_error": min(errors),
            "time_seconds": timer.elapsed,
        }
        logger.info(
            f"Evaluation — mse={results['mse']:.6f} over "
            f"{results['n_samples']} samples "
            f"(min={results['min_error']:.6f}, max={results['max_error']:.6f})"
        )
        return results
