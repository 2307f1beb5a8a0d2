"""
latticeflow.data — Data Source
===============================
Supplies (sample, features, target) triples shaped for the model.

    - dataset.py   — LatticeDataset (in-memory, from arrays or .npz)
    - synthetic.py — SyntheticLatticeGenerator (random divergence-free
                     flows with vorticity features)
"""

from latticeflow.data.dataset import LatticeDataset
from latticeflow.data.synthetic import SyntheticLatticeGenerator
