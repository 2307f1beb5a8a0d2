"""
LatticeFlow Trainer
====================
The epoch/sample loop that drives a LatticeFlowModel. The model does
the learning; this class handles the surrounding concerns.

What This Handles:
    - Epoch loop, one sample per update (no batching)
    - Seeded per-epoch shuffling
    - Skipping malformed samples (optional)
    - Periodic loss logging and a tqdm progress bar
    - Validation after every epoch via the Evaluator
    - Result bookkeeping (losses, best validation loss, timing)

Usage:
    >>> trainer = Trainer(model, config, train_data, val_data)
    >>> results = trainer.train()
    >>> results["final_train_loss"]
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Optional

import torch
from tqdm import tqdm

from latticeflow.config import LatticeFlowConfig
from latticeflow.data.dataset import LatticeDataset
from latticeflow.errors import ShapeMismatchError

if TYPE_CHECKING:
    from latticeflow.model.network import LatticeFlowModel

logger = logging.getLogger(__name__)


class Trainer:
    """
    Sequential, single-sample training loop.

    Parameters
    ----------
    model : LatticeFlowModel
        The model to train. Its parameters are mutated in place.
    config : LatticeFlowConfig
        Full configuration; ``config.training`` drives the loop.
    train_data : LatticeDataset
        Training triples.
    val_data : LatticeDataset or None
        Validation triples. If None, validation is skipped.
    name : str
        Human-readable name for this run (for logging).
    progress : bool
        Whether to show a tqdm progress bar.
    """

    def __init__(
        self,
        model: LatticeFlowModel,
        config: LatticeFlowConfig,
        train_data: LatticeDataset,
        val_data: Optional[LatticeDataset] = None,
        name: str = "trainer",
        progress: bool = True,
    ):
        config.training.validate()
        if len(train_data) == 0:
            raise ValueError("Cannot train on an empty dataset.")

        self.model = model
        self.config = config
        self.train_data = train_data
        self.val_data = val_data
        self.name = name
        self.progress = progress

        self.generator = torch.Generator().manual_seed(config.training.seed)
        self.global_step = 0
        self.skipped_samples = 0
        self.best_val_loss = float("inf")

        logger.info(
            f"Trainer '{name}' initialized: {len(train_data)} training samples, "
            f"{len(val_data) if val_data is not None else 0} validation samples, "
            f"lr={config.training.learning_rate}"
        )

    def _epoch_order(self) -> list[int]:
        n = len(self.train_data)
        if self.config.training.shuffle:
            return torch.randperm(n, generator=self.generator).tolist()
        return list(range(n))

    def train(self) -> dict:
        """
        Run the complete training loop.

        Returns
        -------
        dict
            Training results containing:
            - train_losses: mean training loss per epoch
            - val_losses: validation MSE per epoch (empty without val data)
            - final_train_loss, final_val_loss, best_val_loss
            - total_steps: number of successful updates
            - skipped_samples: malformed samples skipped
            - total_time_seconds
        """
        epochs = self.config.training.epochs
        logger.info(
            f"[{self.name}] Starting training: {epochs} epochs, "
            f"{len(self.train_data)} steps/epoch"
        )
        start_time = time.time()
        self.best_val_loss = float("inf")

        results = {
            "train_losses": [],
            "val_losses": [],
            "final_train_loss": None,
            "final_val_loss": None,
            "best_val_loss": None,
            "total_steps": 0,
            "skipped_samples": 0,
            "total_time_seconds": 0.0,
        }

        for epoch in range(epochs):
            epoch_loss = self._train_epoch(epoch, epochs)
            results["train_losses"].append(epoch_loss)
            results["final_train_loss"] = epoch_loss

            message = (
                f"[{self.name}] Epoch {epoch + 1}/{epochs} — "
                f"train_loss={epoch_loss:.6f}"
            )

            if self.val_data is not None:
                val_loss = self.model.evaluate(self.val_data)
                results["val_losses"].append(val_loss)
                results["final_val_loss"] = val_loss
                message += f", val_loss={val_loss:.6f}"

                if val_loss < self.best_val_loss:
                    self.best_val_loss = val_loss
                    results["best_val_loss"] = val_loss
                    logger.info(f"[{self.name}] New best val loss: {val_loss:.6f}")

            logger.info(message)

        results["total_steps"] = self.global_step
        results["skipped_samples"] = self.skipped_samples
        results["total_time_seconds"] = time.time() - start_time

        logger.info(
            f"[{self.name}] Training complete in "
            f"{results['total_time_seconds']:.1f}s — "
            f"final_loss={results['final_train_loss']:.6f}, "
            f"{self.global_step} steps, {self.skipped_samples} skipped"
        )
        return results

    def _train_epoch(self, epoch: int, total_epochs: int) -> float:
        """
        Run one pass over the training data.

        Returns
        -------
        float
            Mean pre-update squared error over the samples trained on
            (nan if every sample was skipped).
        """
        lr = self.config.training.learning_rate
        log_every = self.config.training.log_every
        total_loss = 0.0
        n_steps = 0

        order = tqdm(
            self._epoch_order(),
            desc=f"{self.name} epoch {epoch + 1}/{total_epochs}",
            disable=not self.progress,
            leave=False,
        )
        for idx in order:
            sample, features, target = self.train_data[idx]
            try:
                loss = self.model.train_one_step(sample, features, target, lr)
            except ShapeMismatchError as e:
                if not self.config.training.skip_malformed:
                    raise
                self.skipped_samples += 1
                logger.warning(f"[{self.name}] Skipping sample {idx}: {e}")
                continue

            total_loss += loss
            n_steps += 1
            self.global_step += 1

            if log_every > 0 and self.global_step % log_every == 0:
                avg_loss = total_loss / n_steps
                order.set_postfix(loss=f"{avg_loss:.4f}")
                logger.info(
                    f"[{self.name}] step={self.global_step}, loss={avg_loss:.6f}"
                )

        if n_steps == 0:
            logger.warning(f"[{self.name}] Epoch {epoch + 1}: no samples trained")
            return float("nan")
        return total_loss / n_steps

    def __repr__(self) -> str:
        return f"Trainer(name={self.name}, step={self.global_step})"
