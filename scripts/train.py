#!/usr/bin/env python3
"""
LatticeFlow — Training Script
===============================
Builds a model, loads (or synthesizes) lattice data, trains it sample by
sample and reports the final validation error.

Usage:
    python scripts/train.py --config configs/default.yaml
    python scripts/train.py --smoke-test
    python scripts/train.py --data data/cavity.npz --epochs 20
"""

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from latticeflow.config import LatticeFlowConfig
from latticeflow.data.dataset import LatticeDataset
from latticeflow.data.synthetic import SyntheticLatticeGenerator
from latticeflow.model.network import LatticeFlowModel
from latticeflow.training.trainer import Trainer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_data(config: LatticeFlowConfig, dtype):
    """Return (train, val) datasets from the configured source."""
    if config.data.data_path:
        dataset = LatticeDataset.from_npz(
            config.data.data_path, model_config=config.model, dtype=dtype
        )
        n_val = min(config.data.n_val_samples, len(dataset) - 1)
        if n_val <= 0:
            return dataset, None
        return dataset.split(len(dataset) - n_val)

    generator = SyntheticLatticeGenerator(
        config.model,
        seed=config.training.seed + 1,
        noise_amplitude=config.data.noise_amplitude,
        dtype=dtype,
    )
    train_data = generator.generate(config.data.n_samples)
    val_data = None
    if config.data.n_val_samples > 0:
        val_data = generator.generate(config.data.n_val_samples)
    return train_data, val_data


def main():
    parser = argparse.ArgumentParser(
        description="LatticeFlow Training",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Train from a config file on synthetic data:
    python scripts/train.py --config configs/default.yaml

    # Quick smoke test:
    python scripts/train.py --smoke-test

    # Train on extracted solver data:
    python scripts/train.py --data data/cavity.npz --output outputs/results.json
        """,
    )
    parser.add_argument("--config", type=str, default="configs/default.yaml")
    parser.add_argument("--smoke-test", action="store_true")
    parser.add_argument(
        "--data", type=str, default=None,
        help=".npz file with samples, features and targets arrays",
    )
    parser.add_argument("--epochs", type=int, default=None)
    parser.add_argument("--learning-rate", type=float, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument(
        "--output", type=str, default=None,
        help="Write training results as JSON to this path",
    )
    parser.add_argument(
        "--no-progress", action="store_true",
        help="Disable the progress bar",
    )
    args = parser.parse_args()

    if args.smoke_test:
        config = LatticeFlowConfig.for_smoke_test()
    else:
        config = LatticeFlowConfig.from_yaml(args.config)

    if args.data is not None:
        config.data.data_path = args.data
    if args.epochs is not None:
        config.training.epochs = args.epochs
    if args.learning_rate is not None:
        config.training.learning_rate = args.learning_rate
    if args.seed is not None:
        config.training.seed = args.seed
    config.validate()
    logger.info(f"\n{config}")

    dtype = config.training.resolve_dtype()
    train_data, val_data = load_data(config, dtype)

    model = LatticeFlowModel.from_config(
        config.model, seed=config.training.seed, dtype=dtype
    )
    trainer = Trainer(
        model, config, train_data, val_data, progress=not args.no_progress,
    )
    results = trainer.train()

    if val_data is not None:
        results["evaluation"] = model.evaluator.evaluate_detailed(val_data)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(
                {"config": config.to_dict(), "results": results}, f, indent=2,
            )
        logger.info(f"Results saved to {output_path}")

    logger.info("=" * 60)
    logger.info(f"Final train loss: {results['final_train_loss']:.6f}")
    if results["final_val_loss"] is not None:
        logger.info(f"Final val loss:   {results['final_val_loss']:.6f}")
    logger.info("=" * 60)


if __name__ == "__main__":
    main()
