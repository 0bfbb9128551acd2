"""
Pytest configuration and shared fixtures.

Provides synthetic tumor/normal matrices with known structure so tests can
assert exact affected-sample sets and p-value behavior.
"""

import numpy as np
import pandas as pd
import pytest

from omicscompare.core.biomatrix import BioMatrix


def generate_tumor_normal_pair(
    n_genes: int,
    n_tumors: int,
    n_normals: int,
    n_matched: int,
    shift: float = 3.0,
    n_shifted: int = 5,
    seed: int = 42,
) -> tuple[BioMatrix, BioMatrix]:
    """
    Generate tumor and normal log-ratio matrices.

    Args:
        n_genes: Number of features
        n_tumors: Number of tumor samples
        n_normals: Number of normal samples
        n_matched: How many of the first tumors have a normal with the
            same sample id
        shift: Mean shift added to the first ``n_shifted`` genes in tumors
        n_shifted: Number of up-shifted genes
        seed: Random seed for reproducibility

    Design:
        - Normals ~ N(0, 1)
        - Tumors ~ N(0, 1), genes 0..n_shifted-1 shifted by ``shift``
        - Sample ids P000.. for matched pairs, T/N prefixes otherwise
    """
    rng = np.random.default_rng(seed)

    normal_data = rng.normal(0.0, 1.0, size=(n_genes, n_normals))
    tumor_data = rng.normal(0.0, 1.0, size=(n_genes, n_tumors))
    tumor_data[:n_shifted, :] += shift

    feature_ids = pd.Index([f"GENE_{i:04d}" for i in range(n_genes)])
    matched = [f"P{i:03d}" for i in range(n_matched)]
    tumor_ids = pd.Index(matched + [f"T{i:03d}" for i in range(n_tumors - n_matched)])
    normal_ids = pd.Index(matched + [f"N{i:03d}" for i in range(n_normals - n_matched)])

    tumors = BioMatrix(data=tumor_data, feature_ids=feature_ids, sample_ids=tumor_ids)
    normals = BioMatrix(data=normal_data, feature_ids=feature_ids, sample_ids=normal_ids)
    return tumors, normals


@pytest.fixture
def tumor_normal_pair():
    """50 genes, 20 tumors, 12 normals, 8 matched pairs, genes 0-4 up."""
    return generate_tumor_normal_pair(
        n_genes=50, n_tumors=20, n_normals=12, n_matched=8, seed=42
    )


@pytest.fixture
def small_frame():
    """Tiny hand-checked expression frame."""
    return pd.DataFrame(
        {
            "S1": [2.0, 0.0, np.nan],
            "S2": [-1.0, 0.5, 1.0],
            "S3": [3.0, -0.5, 2.0],
        },
        index=["TP53", "MYC", "EGFR"],
    )
