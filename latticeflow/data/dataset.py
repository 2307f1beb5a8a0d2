"""
LatticeFlow Dataset
====================
PyTorch Dataset of (sample, features, target) triples with shapes
checked once, at construction, against the model's sizes.

Shapes:
    samples   [N, input_size, filter_size]   lattice patches
    features  [N, fluid_feature_size]       per-row fluid descriptors
    targets   [N, dense1_units]             ground truth

Sources:
    - tensors or NumPy arrays already in memory (``from_arrays``)
    - an ``.npz`` file with ``samples``, ``features`` and ``targets``
      arrays (``from_npz``), as written by ``save_npz``

Usage:
    >>> dataset = LatticeDataset.from_npz("data/cavity.npz", config.model)
    >>> sample, features, target = dataset[0]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import torch
from torch.utils.data import Dataset

from latticeflow.config import ModelConfig
from latticeflow.errors import ShapeMismatchError

logger = logging.getLogger(__name__)


class LatticeDataset(Dataset):
    """
    In-memory (sample, features, target) triples.

    Parameters
    ----------
    samples : torch.Tensor [N, input_size, filter_size]
    features : torch.Tensor [N, fluid_feature_size]
    targets : torch.Tensor [N, dense1_units]
    model_config : ModelConfig or None
        If given, every array's trailing shape must match these sizes.

    Raises
    ------
    ValueError
        If the dataset is empty.
    ShapeMismatchError
        If array ranks, sample counts, or trailing shapes disagree.
    """

    def __init__(
        self,
        samples: torch.Tensor,
        features: torch.Tensor,
        targets: torch.Tensor,
        model_config: Optional[ModelConfig] = None,
    ):
        if samples.dim() != 3:
            raise ShapeMismatchError(
                f"samples must be 3-D [N, rows, channels], "
                f"got shape {tuple(samples.shape)}"
            )
        if features.dim() != 2 or targets.dim() != 2:
            raise ShapeMismatchError(
                f"features and targets must be 2-D, got "
                f"{tuple(features.shape)} and {tuple(targets.shape)}"
            )
        n = samples.shape[0]
        if features.shape[0] != n or targets.shape[0] != n:
            raise ShapeMismatchError(
                f"Sample counts disagree: samples={n}, "
                f"features={features.shape[0]}, targets={targets.shape[0]}"
            )
        if n == 0:
            raise ValueError("Cannot create dataset with zero samples.")

        if model_config is not None:
            expected = {
                "samples": (model_config.input_size, model_config.filter_size),
                "features": (model_config.fluid_feature_size,),
                "targets": (model_config.dense1_units,),
            }
            actual = {
                "samples": tuple(samples.shape[1:]),
                "features": tuple(features.shape[1:]),
                "targets": tuple(targets.shape[1:]),
            }
            for name, shape in expected.items():
                if actual[name] != shape:
                    raise ShapeMismatchError(
                        f"{name} entries have shape {actual[name]}, "
                        f"model expects {shape}"
                    )

        self.samples = samples
        self.features = features
        self.targets = targets

        logger.info(
            f"Dataset created: {n} samples, lattice "
            f"{tuple(samples.shape[1:])}, {features.shape[1]} features, "
            f"{targets.shape[1]} targets"
        )

    @classmethod
    def from_arrays(
        cls,
        samples,
        features,
        targets,
        model_config: Optional[ModelConfig] = None,
        dtype: torch.dtype = torch.float32,
    ) -> LatticeDataset:
        """Build from array-likes (lists, NumPy arrays, tensors)."""
        return cls(
            torch.as_tensor(np.asarray(samples), dtype=dtype),
            torch.as_tensor(np.asarray(features), dtype=dtype),
            torch.as_tensor(np.asarray(targets), dtype=dtype),
            model_config=model_config,
        )

    @classmethod
    def from_npz(
        cls,
        path: str | Path,
        model_config: Optional[ModelConfig] = None,
        dtype: torch.dtype = torch.float32,
    ) -> LatticeDataset:
        """
        Load from an ``.npz`` archive.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        KeyError
            If a required array is missing.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Data file not found: {path}")

        with np.load(path) as archive:
            missing = [k for k in ("samples", "features", "targets") if k not in archive.files]
            if missing:
                raise KeyError(f"{path} is missing arrays: {missing}")
            arrays = (archive["samples"], archive["features"], archive["targets"])

        logger.info(f"Loaded {arrays[0].shape[0]} samples from {path}")
        return cls.from_arrays(*arrays, model_config=model_config, dtype=dtype)

    def save_npz(self, path: str | Path) -> None:
        """Write the triples to an ``.npz`` archive readable by ``from_npz``."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savez(
            path,
            samples=self.samples.numpy(),
            features=self.features.numpy(),
            targets=self.targets.numpy(),
        )
        logger.info(f"Dataset saved to {path}")

    def __len__(self) -> int:
        return self.samples.shape[0]

    def __getitem__(self, idx: int) -> tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        return self.samples[idx], self.features[idx], self.targets[idx]

    def __iter__(self):
        for idx in range(len(self)):
            yield self[idx]

    def split(self, n_first: int) -> tuple[LatticeDataset, LatticeDataset]:
        """Split into the first ``n_first`` samples and the rest."""
        if not 0 < n_first < len(self):
            raise ValueError(
                f"n_first must be in (0, {len(self)}), got {n_first}"
            )
        head = LatticeDataset(
            self.samples[:n_first], self.features[:n_first], self.targets[:n_first]
        )
        tail = LatticeDataset(
            self.samples[n_first:], self.features[n_first:], self.targets[n_first:]
        )
        return head, tail
