"""
Count tumor samples that deviate from the normal baseline.

For each requested feature, decide which tumor samples lie more than
``stddev`` standard deviations above (regulation="up") or below
(regulation="down") what the normal samples predict, and report the count,
the fraction, and the affected sample identifiers.

Comparison Modes:
    Paired:
        Tumors with a matched normal (same sample identifier in both
        matrices) are compared against their own normal. For each feature
        the per-sample delta is tumor - normal, and a sample is affected if

            delta - k * sd(deltas) > 0      (up)
            delta + k * sd(deltas) < 0      (down)

        The fraction is relative to the number of matched samples.

    Unpaired:
        All tumor samples are compared against the normal distribution of
        the feature:

            tumor > mean(normals) + k * sd(normals)    (up)
            tumor < mean(normals) - k * sd(normals)    (down)

        The fraction is relative to the total number of tumor samples.

    The two denominators differ on purpose: in paired mode only matched
    tumors can be evaluated at all.

    Paired mode is the default. When the two matrices share no sample
    identifier (bare lists and arrays never do), the counter falls back to
    unpaired mode and records a warning on the result.

Missing Data:
    - NaN values are ignored when computing means and standard deviations
    - Comparisons involving NaN never mark a sample as affected
    - Features not present in both matrices stay in the result as explicit
      missing entries (<NA> count, NaN fraction, None sample set)

Examples:
    >>> from omicscompare.stats.affected import count_affected
    >>> result = count_affected(
    ...     features=["TP53", "MYC"],
    ...     tumors=tumor_frame,
    ...     normals=normal_frame,
    ...     regulation="up",
    ...     stddev=2.0,
    ... )
    >>> result.summary
          absolute  relative
    TP53         3      0.15
    MYC          0      0.00
    >>> result.samples["TP53"]
    frozenset({'P04', 'P11', 'P17'})
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable, Sequence

import numpy as np
import pandas as pd

from omicscompare.core.alignment import (
    align_samples,
    common_samples,
    ordered_difference,
    ordered_intersection,
)
from omicscompare.core.biomatrix import BioMatrix, as_biomatrix, has_sample_labels

logger = logging.getLogger(__name__)

__all__ = ['Regulation', 'AffectedSamplesResult', 'count_affected']


class Regulation(Enum):
    """Direction of the deviation being counted."""

    UP = "up"      # tumor above the normal baseline
    DOWN = "down"  # tumor below the normal baseline

    @classmethod
    def parse(cls, value: Regulation | str) -> Regulation:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown regulation '{value}'. Valid: {[r.value for r in cls]}"
            ) from None


@dataclass
class AffectedSamplesResult:
    """
    Affected-sample counts for a list of features.

    Attributes:
        summary: DataFrame indexed by the requested features with columns
            ``absolute`` (nullable Int64) and ``relative`` (float)
        samples: Series indexed by the requested features holding the
            frozenset of affected sample identifiers, or None when the
            feature could not be evaluated
        regulation: Direction that was tested
        stddev: Standard deviation multiplier as given (non-negative)
        paired: Mode actually used (False after a fallback)
        denominator: Number of samples the relative fraction refers to
        warnings: Non-fatal issues raised while computing the result
    """

    summary: pd.DataFrame
    samples: pd.Series
    regulation: Regulation
    stddev: float
    paired: bool
    denominator: int
    warnings: list[str] = field(default_factory=list)

    @property
    def missing_features(self) -> list:
        """Requested features that could not be evaluated."""
        return self.summary.index[self.summary["absolute"].isna()].tolist()

    def to_dict(self) -> dict:
        """Serialize to JSON-compatible dict."""
        absolute = self.summary["absolute"]
        relative = self.summary["relative"]
        return {
            "regulation": self.regulation.value,
            "stddev": self.stddev,
            "paired": self.paired,
            "denominator": self.denominator,
            "warnings": list(self.warnings),
            "features": [
                {
                    "feature": feature,
                    "absolute": None if pd.isna(absolute.iloc[i]) else int(absolute.iloc[i]),
                    "relative": None if pd.isna(relative.iloc[i]) else float(relative.iloc[i]),
                    "samples": None if self.samples.iloc[i] is None else sorted(self.samples.iloc[i]),
                }
                for i, feature in enumerate(self.summary.index)
            ],
        }


def _validate_stddev(stddev: float) -> float:
    stddev = float(stddev)
    if not np.isfinite(stddev) or stddev < 0:
        raise ValueError(f"stddev must be a finite number >= 0, got {stddev}")
    return stddev


def _exceeds(values: np.ndarray, bound: np.ndarray | float, regulation: Regulation) -> np.ndarray:
    """Strict comparison in the tested direction; NaN compares False."""
    with np.errstate(invalid="ignore"):
        if regulation is Regulation.UP:
            return values > bound
        return values < bound


def _row_sd(values: np.ndarray) -> np.ndarray:
    """Sample standard deviation per row ignoring NaN; NaN when < 2 values."""
    if values.shape[1] == 0:
        return np.full(values.shape[0], np.nan)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        return np.nanstd(values, axis=1, ddof=1)


def _row_mean(values: np.ndarray) -> np.ndarray:
    if values.shape[1] == 0:
        return np.full(values.shape[0], np.nan)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        return np.nanmean(values, axis=1)


def _affected_paired(
    tumors: BioMatrix,
    normals: BioMatrix,
    matched: list,
    multiplier: float,
    regulation: Regulation,
) -> np.ndarray:
    """Affected mask (common features × matched samples) against own normal."""
    tumors, normals = align_samples(tumors, normals, matched)
    deltas = tumors.data - normals.data
    spread = _row_sd(deltas)
    return _exceeds(deltas - multiplier * spread[:, None], 0.0, regulation)


def _affected_unpaired(
    tumors: BioMatrix,
    normals: BioMatrix,
    multiplier: float,
    regulation: Regulation,
) -> np.ndarray:
    """Affected mask (common features × tumor samples) against the normal baseline."""
    baseline = _row_mean(normals.data) + multiplier * _row_sd(normals.data)
    return _exceeds(tumors.data, baseline[:, None], regulation)


def count_affected(
    features: Sequence[Hashable],
    tumors: BioMatrix | pd.DataFrame | pd.Series | Sequence[float] | np.ndarray,
    normals: BioMatrix | pd.DataFrame | pd.Series | Sequence[float] | np.ndarray,
    regulation: Regulation | str,
    stddev: float = 1.0,
    paired: bool = True,
) -> AffectedSamplesResult:
    """
    Count tumor samples deviating from normals for each requested feature.

    Args:
        features: Feature identifiers to evaluate; the result follows this
            list exactly, including features absent from the matrices
        tumors: Tumor matrix (features × samples), or a bare vector when a
            single feature is requested
        normals: Normal matrix (features × samples), or a bare vector when
            a single feature is requested
        regulation: "up" for values above normal, "down" for values below
        stddev: How many standard deviations a sample must be away
        paired: Compare tumors against their matched normal sample. Falls
            back to unpaired mode when no sample identifier is shared.

    Returns:
        AffectedSamplesResult

    Raises:
        ValueError: If regulation is unknown or stddev is negative
    """
    regulation = Regulation.parse(regulation)
    stddev = _validate_stddev(stddev)
    features = list(features)
    run_warnings: list[str] = []

    if not features:
        return AffectedSamplesResult(
            summary=pd.DataFrame(
                {
                    "absolute": pd.Series([], dtype="Int64"),
                    "relative": pd.Series([], dtype=np.float64),
                }
            ),
            samples=pd.Series([], dtype=object),
            regulation=regulation,
            stddev=stddev,
            paired=paired,
            denominator=0,
        )

    # Below-baseline deviations point the band downwards in both modes
    multiplier = stddev if regulation is Regulation.UP else -stddev

    labeled = has_sample_labels(tumors) and has_sample_labels(normals)
    tumors = as_biomatrix(tumors, features)
    normals = as_biomatrix(normals, features)

    common = ordered_intersection(features, tumors.feature_ids, normals.feature_ids)
    missing = ordered_difference(features, common)
    if missing:
        logger.debug(
            "%d of %d features not present in both matrices", len(set(missing)), len(set(features))
        )

    # Positional labels of bare vectors never identify a matched pair
    matched = common_samples(tumors, normals) if labeled else []
    if paired and not matched:
        message = (
            "Paired comparison requested but tumors and normals share no samples; "
            "using unpaired comparison"
        )
        logger.warning(message)
        run_warnings.append(message)
        paired = False

    tumors = tumors.subset(features=common)
    normals = normals.subset(features=common)

    if paired:
        affected = _affected_paired(tumors, normals, matched, multiplier, regulation)
        sample_ids = pd.Index(matched)
        denominator = len(matched)
    else:
        affected = _affected_unpaired(tumors, normals, multiplier, regulation)
        sample_ids = tumors.sample_ids
        denominator = tumors.n_samples

    counts = affected.sum(axis=1).astype(np.int64)
    with np.errstate(invalid="ignore", divide="ignore"):
        fractions = counts / denominator if denominator else np.full(len(counts), np.nan)
    sample_sets = [frozenset(sample_ids[row].tolist()) for row in affected]

    logger.debug(
        "count_affected: %d features, regulation=%s, stddev=%s, paired=%s, denominator=%d",
        len(common), regulation.value, stddev, paired, denominator,
    )

    # Reassemble against the requested order; absent features stay missing
    index = pd.Index(features)
    absolute = pd.Series(counts, index=pd.Index(common), dtype="Int64").reindex(index)
    relative = pd.Series(fractions, index=pd.Index(common), dtype=np.float64).reindex(index)
    by_feature = dict(zip(common, sample_sets))
    samples = pd.Series([by_feature.get(f) for f in features], index=index, dtype=object)

    return AffectedSamplesResult(
        summary=pd.DataFrame({"absolute": absolute, "relative": relative}),
        samples=samples,
        regulation=regulation,
        stddev=stddev,
        paired=paired,
        denominator=denominator,
        warnings=run_warnings,
    )
