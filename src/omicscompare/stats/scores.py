"""
Per-row summary scores.

Small helpers for prioritizing features: how many samples lie beyond a
cutoff, and the combined score of a feature across data types.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from omicscompare.core.biomatrix import BioMatrix, as_biomatrix

__all__ = [
    'data_type_score',
    'count_above',
    'count_below',
    'fraction_above',
    'fraction_below',
]


def data_type_score(scores: pd.DataFrame) -> pd.Series:
    """
    Prioritization score summed over data types.

    Args:
        scores: Features in rows, one column per data type (e.g. expression,
            copy number, methylation), NaN where a data type has no value

    Returns:
        Row sums ignoring NaN; a row without any value scores 0
    """
    return scores.sum(axis=1, skipna=True)


def _beyond(matrix: BioMatrix | pd.DataFrame, cutoff: float, above: bool) -> tuple[pd.Index, np.ndarray, int]:
    matrix = as_biomatrix(matrix)
    with np.errstate(invalid="ignore"):
        mask = matrix.data > cutoff if above else matrix.data < cutoff
    return matrix.feature_ids, mask, matrix.n_samples


def count_above(matrix: BioMatrix | pd.DataFrame, cutoff: float) -> pd.Series:
    """Number of samples per feature strictly greater than ``cutoff``."""
    index, mask, _ = _beyond(matrix, cutoff, above=True)
    return pd.Series(mask.sum(axis=1), index=index, dtype=np.int64)


def count_below(matrix: BioMatrix | pd.DataFrame, cutoff: float) -> pd.Series:
    """Number of samples per feature strictly less than ``cutoff``."""
    index, mask, _ = _beyond(matrix, cutoff, above=False)
    return pd.Series(mask.sum(axis=1), index=index, dtype=np.int64)


def fraction_above(matrix: BioMatrix | pd.DataFrame, cutoff: float) -> pd.Series:
    """
    Fraction (0 to 1) of samples per feature strictly greater than ``cutoff``.

    The denominator is the number of columns, NaN included. NaN for a
    matrix without samples.
    """
    index, mask, n_samples = _beyond(matrix, cutoff, above=True)
    if n_samples == 0:
        return pd.Series(np.nan, index=index, dtype=np.float64)
    return pd.Series(mask.sum(axis=1) / n_samples, index=index, dtype=np.float64)


def fraction_below(matrix: BioMatrix | pd.DataFrame, cutoff: float) -> pd.Series:
    """Fraction (0 to 1) of samples per feature strictly less than ``cutoff``."""
    index, mask, n_samples = _beyond(matrix, cutoff, above=False)
    if n_samples == 0:
        return pd.Series(np.nan, index=index, dtype=np.float64)
    return pd.Series(mask.sum(axis=1) / n_samples, index=index, dtype=np.float64)
