"""
Expression calls for individual features.

A feature is called "expressed" when a large enough share of samples shows a
value above an expression threshold. The default threshold of 0 only makes
sense for log-ratio data, where positive values mean above-reference
expression.

Policy for degenerate input:
    - A matrix without samples calls every feature not expressed (False)
    - NaN values never exceed the threshold but still count as samples, so
      missingness lowers the expressed fraction
"""

from __future__ import annotations

from typing import Hashable, Sequence

import numpy as np
import pandas as pd

from omicscompare.core.biomatrix import BioMatrix, as_biomatrix

__all__ = ['expressed_fraction', 'gene_expressed', 'genes_expressed']


def expressed_fraction(
    matrix: BioMatrix | pd.DataFrame,
    feature: Hashable,
    threshold: float = 0.0,
) -> float:
    """
    Fraction of samples in which ``feature`` is above ``threshold``.

    Returns NaN for a matrix without samples.

    Raises:
        KeyError: If the feature is not in the matrix
    """
    matrix = as_biomatrix(matrix)
    values = matrix.row(feature)
    if values.size == 0:
        return float("nan")
    with np.errstate(invalid="ignore"):
        above = values > threshold
    return float(np.count_nonzero(above)) / values.size


def gene_expressed(
    matrix: BioMatrix | pd.DataFrame,
    feature: Hashable,
    threshold: float = 0.0,
    cutoff: float = 0.5,
) -> bool:
    """
    Test whether a feature is expressed in at least ``cutoff`` of the samples.

    Args:
        matrix: Expression matrix with features in rows, samples in columns
        feature: Feature to test
        threshold: Value above which a sample counts as expressing the feature
        cutoff: Minimum fraction of expressing samples

    Returns:
        True if the expressed fraction is >= cutoff. False for a matrix
        without samples.

    Examples:
        >>> frame = pd.DataFrame([[2, -1, 3]], index=["TP53"], columns=["a", "b", "c"])
        >>> gene_expressed(frame, "TP53")
        True
        >>> gene_expressed(frame, "TP53", cutoff=0.7)
        False
    """
    fraction = expressed_fraction(matrix, feature, threshold)
    if np.isnan(fraction):
        return False
    return fraction >= cutoff


def genes_expressed(
    matrix: BioMatrix | pd.DataFrame,
    features: Sequence[Hashable],
    threshold: float = 0.0,
    cutoff: float = 0.5,
) -> pd.Series:
    """Expression call for each feature, as a boolean Series in input order."""
    matrix = as_biomatrix(matrix)
    calls = [gene_expressed(matrix, f, threshold, cutoff) for f in features]
    return pd.Series(calls, index=pd.Index(list(features)), dtype=bool)
