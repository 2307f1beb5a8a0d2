"""
LatticeFlow Synthetic Lattice Generator
=========================================
Stand-in for a CFD case reader: produces lattice samples, fluid
features and stub targets from random incompressible 2-D flows, so the
model can be trained and tested without solver output.

Flow construction:
    Each sample draws a stream function made of a few Fourier modes

        psi(x, y) = sum_k a_k * sin(kx_k * x + ky_k * y + phi_k)

    on a 3-row strip of lattice points. Velocity is u = dpsi/dy,
    v = -dpsi/dx (divergence-free by construction), pressure follows
    the Bernoulli relation p = -|u|^2 / 2. Derivatives are taken
    numerically with ``torch.gradient``.

Per lattice row (the strip's middle line) the channels are, in order:

    u, v, p, speed, vorticity

and ``filter_size`` picks the first N of them. The fluid feature is the
vorticity dv/dx - du/dy divided by its largest magnitude on the strip
(so it lies in [-1, 1] and modulation scales stay in [0.5, 1.5]),
linearly resampled to ``fluid_feature_size``.
Targets are the speed profile average-pooled to ``dense1_units`` bins.

Usage:
    >>> gen = SyntheticLatticeGenerator(config.model, seed=0)
    >>> dataset = gen.generate(256)
"""

from __future__ import annotations

import logging
import math

import torch
import torch.nn.functional as F

from latticeflow.config import ModelConfig
from latticeflow.data.dataset import LatticeDataset
from latticeflow.errors import ConfigurationError

logger = logging.getLogger(__name__)

CHANNELS = ("u", "v", "p", "speed", "vorticity")


class SyntheticLatticeGenerator:
    """
    Seeded generator of (sample, features, target) triples.

    Parameters
    ----------
    model_config : ModelConfig
        Sizes the generated arrays must match.
    seed : int
        Seed for the private random generator.
    n_modes : int
        Fourier modes per stream function.
    noise_amplitude : float
        Std of Gaussian noise added to the sample channels.
    spacing : float
        Lattice spacing.
    dtype : torch.dtype
        Floating point type of the generated tensors.
    """

    def __init__(
        self,
        model_config: ModelConfig,
        seed: int = 0,
        n_modes: int = 3,
        noise_amplitude: float = 0.0,
        spacing: float = 1.0,
        dtype: torch.dtype = torch.float32,
    ):
        model_config.validate()
        if model_config.filter_size > len(CHANNELS):
            raise ConfigurationError(
                f"Synthetic data provides {len(CHANNELS)} channels "
                f"({', '.join(CHANNELS)}), filter_size={model_config.filter_size}"
            )
        if model_config.input_size < 2:
            raise ConfigurationError(
                f"Synthetic data needs input_size >= 2 to take derivatives, "
                f"got {model_config.input_size}"
            )
        if n_modes < 1:
            raise ConfigurationError(f"n_modes must be >= 1, got {n_modes}")
        if noise_amplitude < 0:
            raise ConfigurationError(
                f"noise_amplitude must be >= 0, got {noise_amplitude}"
            )
        if spacing <= 0:
            raise ConfigurationError(f"spacing must be positive, got {spacing}")

        self.config = model_config
        self.n_modes = n_modes
        self.noise_amplitude = noise_amplitude
        self.spacing = spacing
        self.dtype = dtype
        self.generator = torch.Generator().manual_seed(seed)

    def _uniform(self, n: int, low: float, high: float) -> torch.Tensor:
        return low + (high - low) * torch.rand(n, generator=self.generator, dtype=torch.float64)

    def _flow_fields(self) -> dict[str, torch.Tensor]:
        """Channels along the middle row of a random 3-row strip."""
        n = self.config.input_size
        h = self.spacing
        length = n * h

        x = torch.arange(n, dtype=torch.float64) * h
        y = torch.arange(3, dtype=torch.float64) * h
        yy, xx = torch.meshgrid(y, x, indexing="ij")

        amplitude = torch.randn(self.n_modes, generator=self.generator, dtype=torch.float64)
        kx = self._uniform(self.n_modes, 0.5, 2.0) * 2 * math.pi / length
        ky = self._uniform(self.n_modes, 0.5, 2.0) * 2 * math.pi / length
        phase = self._uniform(self.n_modes, 0.0, 2 * math.pi)

        psi = torch.zeros_like(xx)
        for k in range(self.n_modes):
            psi = psi + amplitude[k] * torch.sin(kx[k] * xx + ky[k] * yy + phase[k])

        dpsi_dy, dpsi_dx = torch.gradient(psi, spacing=h)
        u, v = dpsi_dy, -dpsi_dx
        du_dy, _ = torch.gradient(u, spacing=h)
        _, dv_dx = torch.gradient(v, spacing=h)

        speed_sq = u * u + v * v
        fields = {
            "u": u,
            "v": v,
            "p": -0.5 * speed_sq,
            "speed": torch.sqrt(speed_sq),
            "vorticity": dv_dx - du_dy,
        }
        return {name: field[1] for name, field in fields.items()}

    @staticmethod
    def _resample(profile: torch.Tensor, size: int, pool: bool) -> torch.Tensor:
        """Resample a 1-D profile to ``size`` points."""
        if profile.shape[0] == size:
            return profile
        batched = profile.view(1, 1, -1)
        if pool:
            out = F.adaptive_avg_pool1d(batched, size)
        else:
            out = F.interpolate(batched, size=size, mode="linear", align_corners=True)
        return out.view(-1)

    def sample(self) -> tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        """Draw one (sample, features, target) triple."""
        fields = self._flow_fields()

        channels = [fields[name] for name in CHANNELS[: self.config.filter_size]]
        lattice = torch.stack(channels, dim=1)
        if self.noise_amplitude > 0:
            lattice = lattice + self.noise_amplitude * torch.randn(
                lattice.shape, generator=self.generator, dtype=lattice.dtype
            )

        vorticity = fields["vorticity"]
        vorticity = vorticity / vorticity.abs().max().clamp(min=1e-12)
        features = self._resample(vorticity, self.config.fluid_feature_size, pool=False)
        target = self._resample(fields["speed"], self.config.dense1_units, pool=True)

        return lattice.to(self.dtype), features.to(self.dtype), target.to(self.dtype)

    def generate(self, n_samples: int) -> LatticeDataset:
        """Draw ``n_samples`` triples into a LatticeDataset."""
        if n_samples < 1:
            raise ValueError(f"n_samples must be >= 1, got {n_samples}")

        triples = [self.sample() for _ in range(n_samples)]
        samples, features, targets = (torch.stack(column) for column in zip(*triples))

        logger.info(
            f"Generated {n_samples} synthetic lattice samples "
            f"(channels: {', '.join(CHANNELS[: self.config.filter_size])})"
        )
        return LatticeDataset(samples, features, targets, model_config=self.config)
