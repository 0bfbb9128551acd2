"""
Row-wise statistical testing with per-row failure isolation.

Every function here applies one univariate test to each feature (row) of a
matrix and returns a p-value per feature. A row whose test cannot be
computed (too few observations, all values tied, zero variance) gets NaN
instead of aborting the run, so a single degenerate probe never costs the
results for the other twenty thousand.

Tests:
    - Two-sample rank tests (Mann-Whitney U / Wilcoxon signed-rank) for
      tumor vs normal location shifts, paired or unpaired
    - Bartlett and Levene tests for equality of variances across >= 2 groups

The underlying test is a plain callable, so callers can plug in another
implementation with the same signature:

    two-sample:  test(a, b, paired) -> p-value
    k-sample:    test(values, groups) -> p-value

Any ValueError / ArithmeticError / LinAlgError raised by the callable, and
any non-finite p-value it returns, becomes NaN for that row.

Examples:
    >>> from omicscompare.stats.rowwise import pairwise_test, adjust_pvalues
    >>> pvals = pairwise_test(tumors, normals, paired=True)
    >>> qvals = adjust_pvalues(pvals, method="BH")
"""

from __future__ import annotations

import logging
import warnings
from typing import Callable, Hashable, Literal, Mapping, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import stats as scipy_stats

from omicscompare.core.alignment import (
    align_samples,
    common_features,
    common_samples,
    ordered_intersection,
)
from omicscompare.core.biomatrix import BioMatrix, as_biomatrix

logger = logging.getLogger(__name__)

__all__ = [
    'DegenerateTestError',
    'wilcoxon_test',
    'variance_test',
    'run_rowwise',
    'pairwise_test',
    'do_wilcox',
    'do_bartlett',
    'do_levene',
    'adjust_pvalues',
]

TwoSampleTest = Callable[[np.ndarray, np.ndarray, bool], float]
KSampleTest = Callable[[np.ndarray, np.ndarray], float]

# Failures that mark a single row as untestable
ROW_FAILURES = (ValueError, ArithmeticError, np.linalg.LinAlgError)

LEVENE_CENTERS = {
    "median": "median",
    "mean": "mean",
    "trim.mean": "trimmed",
}


class DegenerateTestError(ValueError):
    """Input to a statistical test cannot produce a meaningful p-value."""


# =============================================================================
# Default test implementations
# =============================================================================


def wilcoxon_test(a: NDArray, b: NDArray, paired: bool = False) -> float:
    """
    Two-sided Wilcoxon test with normal approximation.

    Unpaired input runs the rank-sum (Mann-Whitney U) test; paired input runs
    the signed-rank test on a - b. Both use the asymptotic p-value with
    continuity correction, never the exact distribution.

    Non-finite values are dropped first (pairwise when paired).

    Raises:
        DegenerateTestError: If a group is empty, all pooled values are tied,
            or every paired difference is zero
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    if paired:
        if a.shape != b.shape:
            raise DegenerateTestError(
                f"Paired test needs equal-length vectors, got {a.size} and {b.size}"
            )
        keep = np.isfinite(a) & np.isfinite(b)
        diffs = a[keep] - b[keep]
        if diffs.size == 0:
            raise DegenerateTestError("No complete pairs")
        if not np.any(diffs != 0):
            raise DegenerateTestError("All paired differences are zero")
        result = scipy_stats.wilcoxon(
            a[keep], b[keep],
            zero_method="wilcox",
            correction=True,
            alternative="two-sided",
            method="approx",
        )
        return float(result.pvalue)

    a = a[np.isfinite(a)]
    b = b[np.isfinite(b)]
    if a.size == 0 or b.size == 0:
        raise DegenerateTestError(
            f"Both groups need observations, got {a.size} and {b.size}"
        )
    pooled = np.concatenate([a, b])
    if np.all(pooled == pooled[0]):
        raise DegenerateTestError("All values are tied")
    result = scipy_stats.mannwhitneyu(
        a, b,
        use_continuity=True,
        alternative="two-sided",
        method="asymptotic",
    )
    return float(result.pvalue)


def variance_test(
    values: NDArray,
    groups: NDArray,
    method: Literal["bartlett", "levene"] = "bartlett",
    location: str = "median",
) -> float:
    """
    Test equality of variances across the groups present in ``groups``.

    NaN values are dropped along with their labels. Each group needs at
    least two observations and at least two groups must remain.

    Args:
        values: Measurements for one feature
        groups: Group label per measurement
        method: "bartlett" or "levene"
        location: Levene centering, one of "median", "mean", "trim.mean"

    Raises:
        DegenerateTestError: If fewer than two usable groups remain
        ValueError: If method or location is unknown
    """
    values = np.asarray(values, dtype=np.float64)
    groups = np.asarray(groups)
    keep = np.isfinite(values) & pd.notna(groups)
    values = values[keep]
    groups = groups[keep]

    levels = pd.unique(groups)
    samples = [values[groups == level] for level in levels]
    if len(samples) < 2:
        raise DegenerateTestError(f"Need at least 2 groups, got {len(samples)}")
    small = [str(level) for level, s in zip(levels, samples) if s.size < 2]
    if small:
        raise DegenerateTestError(f"Groups with fewer than 2 observations: {small}")

    if method == "bartlett":
        return float(scipy_stats.bartlett(*samples).pvalue)
    if method == "levene":
        if location not in LEVENE_CENTERS:
            raise ValueError(
                f"Unknown location '{location}'. Valid: {list(LEVENE_CENTERS)}"
            )
        return float(
            scipy_stats.levene(
                *samples, center=LEVENE_CENTERS[location], proportiontocut=0.25
            ).pvalue
        )
    raise ValueError(f"Unknown variance test '{method}'. Valid: ['bartlett', 'levene']")


# =============================================================================
# Runner
# =============================================================================


def _safe_pvalue(test: Callable[..., float], *args) -> float:
    """Run one row's test; failures and non-finite results become NaN."""
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            with np.errstate(all="ignore"):
                pvalue = float(test(*args))
    except ROW_FAILURES as e:
        logger.debug("Row test failed: %s", e)
        return np.nan
    if not np.isfinite(pvalue):
        return np.nan
    return pvalue


def run_rowwise(
    feature_ids: Sequence[Hashable],
    row_test: Callable[[int], float],
    n_jobs: int = 1,
) -> pd.Series:
    """
    Evaluate ``row_test(i)`` for every row and key the results by feature.

    Rows are independent, so with ``n_jobs != 1`` they are dispatched through
    joblib; results are reassembled by position, not completion order.

    Returns:
        Float Series of p-values indexed by ``feature_ids``
    """
    n_rows = len(feature_ids)
    if n_jobs == 1 or n_rows < 2:
        pvalues = [row_test(i) for i in range(n_rows)]
    else:
        from joblib import Parallel, delayed

        pvalues = Parallel(n_jobs=n_jobs)(delayed(row_test)(i) for i in range(n_rows))

    result = pd.Series(pvalues, index=pd.Index(list(feature_ids)), dtype=np.float64)
    n_failed = int(result.isna().sum())
    logger.debug("Tested %d rows, %d without a p-value", n_rows, n_failed)
    return result


# =============================================================================
# Two-group runners
# =============================================================================


def pairwise_test(
    matrix1: BioMatrix | pd.DataFrame,
    matrix2: BioMatrix | pd.DataFrame,
    paired: bool,
    test: TwoSampleTest = wilcoxon_test,
    n_jobs: int = 1,
) -> pd.Series:
    """
    Compare two matrices feature by feature.

    Only features present in both matrices are tested, in matrix1's row
    order. Paired testing first restricts both matrices to their shared
    samples in matrix1's column order, so column i of one is the partner of
    column i of the other. Unpaired testing uses all columns of each matrix
    as the two independent groups.

    Args:
        matrix1: First group, e.g. tumors (features × samples)
        matrix2: Second group, e.g. normals (features × samples)
        paired: Whether to run a paired test on shared sample identifiers
        test: Two-sample test ``(a, b, paired) -> p-value``
        n_jobs: joblib workers for the row loop

    Returns:
        p-value per shared feature; NaN where the test failed

    Warns:
        UserWarning: If paired is requested but no sample is shared; the
            matrices are then compared unpaired
    """
    matrix1 = as_biomatrix(matrix1)
    matrix2 = as_biomatrix(matrix2)

    features = common_features(matrix1, matrix2)
    left = matrix1.subset(features=features)
    right = matrix2.subset(features=features)
    if paired:
        samples = common_samples(left, right)
        if samples:
            left, right = align_samples(left, right, samples)
        else:
            message = (
                "Paired test requested but the matrices share no samples; "
                "using unpaired test"
            )
            logger.warning(message)
            warnings.warn(message, UserWarning, stacklevel=2)
            paired = False

    logger.debug(
        "pairwise_test: %d shared features, %d vs %d samples, paired=%s",
        len(features), left.n_samples, right.n_samples, paired,
    )

    def row_test(i: int) -> float:
        return _safe_pvalue(test, left.data[i, :], right.data[i, :], paired)

    return run_rowwise(features, row_test, n_jobs=n_jobs)


def do_wilcox(
    matrix: BioMatrix | pd.DataFrame,
    matched_samples: Sequence[Hashable] | None = None,
    groups: Mapping[Hashable, int] | pd.Series | None = None,
    test: TwoSampleTest = wilcoxon_test,
    n_jobs: int = 1,
) -> pd.Series:
    """
    Wilcoxon test on every row of a single combined matrix.

    Paired mode (``matched_samples`` given): the first
    ``len(matched_samples)`` columns hold group 1 and the remaining columns
    hold group 2, both in matched order.

    Unpaired mode (``groups`` given): ``groups`` maps sample id to 1 or 2;
    columns are split by membership. Columns with any other label, or no
    label, are ignored.

    Returns:
        p-value per feature in row order; NaN where the test failed

    Raises:
        ValueError: If neither argument is given, or the paired layout does
            not split into two equal halves
    """
    matrix = as_biomatrix(matrix)
    paired = matched_samples is not None

    if paired:
        n_matched = len(matched_samples)
        if n_matched == 0 or matrix.n_samples != 2 * n_matched:
            raise ValueError(
                f"Paired layout needs 2 × {n_matched} columns, matrix has {matrix.n_samples}"
            )
        group1 = np.arange(n_matched)
        group2 = np.arange(n_matched, matrix.n_samples)
    elif groups is not None:
        labels = pd.Series(groups)
        in_group1 = set(labels.index[labels == 1])
        in_group2 = set(labels.index[labels == 2])
        group1 = np.array([i for i, s in enumerate(matrix.sample_ids) if s in in_group1], dtype=int)
        group2 = np.array([i for i, s in enumerate(matrix.sample_ids) if s in in_group2], dtype=int)
    else:
        raise ValueError("Either matched_samples or groups must be given")

    data = matrix.data

    def row_test(i: int) -> float:
        return _safe_pvalue(test, data[i, group1], data[i, group2], paired)

    return run_rowwise(matrix.feature_ids, row_test, n_jobs=n_jobs)


# =============================================================================
# Variance-equality runners
# =============================================================================


def _column_groups(matrix: BioMatrix, groups: Sequence | pd.Series) -> np.ndarray:
    """Group labels aligned with the matrix columns."""
    if isinstance(groups, pd.Series) and not isinstance(groups.index, pd.RangeIndex):
        shared = ordered_intersection(matrix.sample_ids, groups.index)
        if len(shared) != matrix.n_samples:
            raise ValueError(
                f"groups cover {len(shared)} of {matrix.n_samples} matrix samples"
            )
        return groups.reindex(matrix.sample_ids).to_numpy()

    labels = np.asarray(groups)
    if labels.shape != (matrix.n_samples,):
        raise ValueError(
            f"groups length ({labels.size}) must match n_samples ({matrix.n_samples})"
        )
    return labels


def do_bartlett(
    matrix: BioMatrix | pd.DataFrame,
    groups: Sequence | pd.Series,
    test: KSampleTest | None = None,
    n_jobs: int = 1,
) -> pd.Series:
    """
    Bartlett's test for equal variances on every row.

    Args:
        matrix: Features × samples matrix
        groups: Group label per column, either in column order or as a
            Series indexed by sample id

    Returns:
        p-value per feature; NaN where the test failed
    """
    matrix = as_biomatrix(matrix)
    labels = _column_groups(matrix, groups)
    if test is None:
        def test(values, g):
            return variance_test(values, g, method="bartlett")

    data = matrix.data

    def row_test(i: int) -> float:
        return _safe_pvalue(test, data[i, :], labels)

    return run_rowwise(matrix.feature_ids, row_test, n_jobs=n_jobs)


def do_levene(
    matrix: BioMatrix | pd.DataFrame,
    groups: Sequence | pd.Series,
    location: Literal["median", "mean", "trim.mean"] = "median",
    test: KSampleTest | None = None,
    n_jobs: int = 1,
) -> pd.Series:
    """
    Levene's test for equal variances on every row.

    ``location`` selects the centering: "median" (Brown-Forsythe), "mean"
    (classic Levene) or "trim.mean" (25% trimmed mean).

    Raises:
        ValueError: If location is not one of the three options
    """
    if location not in LEVENE_CENTERS:
        raise ValueError(
            f"Unknown location '{location}'. Valid: {list(LEVENE_CENTERS)}"
        )
    matrix = as_biomatrix(matrix)
    labels = _column_groups(matrix, groups)
    if test is None:
        def test(values, g):
            return variance_test(values, g, method="levene", location=location)

    data = matrix.data

    def row_test(i: int) -> float:
        return _safe_pvalue(test, data[i, :], labels)

    return run_rowwise(matrix.feature_ids, row_test, n_jobs=n_jobs)


# =============================================================================
# Multiple testing
# =============================================================================


def adjust_pvalues(
    pvalues: pd.Series,
    method: Literal["BH", "BY", "bonferroni"] = "BH",
) -> pd.Series:
    """
    Multiple-testing adjustment over the non-missing p-values.

    Missing p-values stay missing and do not count towards the number of
    tests.

    Args:
        pvalues: p-values keyed by feature
        method: "BH" (Benjamini-Hochberg), "BY" (Benjamini-Yekutieli) or
            "bonferroni"

    Returns:
        Adjusted p-values with the same index
    """
    from statsmodels.stats.multitest import multipletests

    method_map = {"BH": "fdr_bh", "BY": "fdr_by", "bonferroni": "bonferroni"}
    if method not in method_map:
        raise ValueError(f"Unknown adjustment '{method}'. Valid: {list(method_map)}")

    values = pvalues.to_numpy(dtype=np.float64)
    valid_mask = ~np.isnan(values)
    adjusted = np.full_like(values, np.nan)

    if np.any(valid_mask):
        _, adjusted[valid_mask], _, _ = multipletests(
            values[valid_mask],
            method=method_map[method],
        )

    return pd.Series(adjusted, index=pvalues.index, name=pvalues.name)
