"""
Missing value handling before row-wise testing.

Imputation is a collaborator with a fixed contract:

    imputer(matrix, max_missing_fraction) -> BioMatrix

The imputer is free to drop rows it cannot fill. ``knn_impute`` is the
default implementation, backed by scikit-learn's KNNImputer.

When no imputer is supplied, the fallback is deliberately stricter: every
row containing any missing value is dropped, and ``max_missing_fraction``
plays no role. The result's ``method`` ("drop" vs the imputer's name) tells
callers which policy was applied.

References:
    - Troyanskaya et al. (2001) "Missing value estimation methods for DNA
      microarrays"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from omicscompare.core.biomatrix import BioMatrix, as_biomatrix
from omicscompare.core.transform import Transform

logger = logging.getLogger(__name__)

__all__ = [
    'ImputationResult',
    'Imputer',
    'missing_fraction',
    'drop_incomplete_features',
    'knn_impute',
    'handle_missing_values',
    'MissingValueFilter',
]

Imputer = Callable[[BioMatrix, float], BioMatrix]


@dataclass
class ImputationResult:
    """Result of missing value handling.

    Attributes:
        matrix: Matrix after imputation or row removal
        method: "drop" for the fallback, else the imputer's name
        n_imputed: Number of values filled in
        dropped_features: Features removed entirely
        max_missing_fraction: Row threshold handed to the imputer; None for
            the drop fallback, which removes any incomplete row
        imputation_mask: Positions (in ``matrix``) that were filled in
    """

    matrix: BioMatrix
    method: str
    n_imputed: int
    dropped_features: list = field(default_factory=list)
    max_missing_fraction: Optional[float] = None
    imputation_mask: Optional[NDArray[np.bool_]] = None


def missing_fraction(matrix: BioMatrix | pd.DataFrame) -> pd.Series:
    """Fraction of missing values per feature."""
    matrix = as_biomatrix(matrix)
    if matrix.n_samples == 0:
        return pd.Series(np.nan, index=matrix.feature_ids, dtype=np.float64)
    return pd.Series(
        np.isnan(matrix.data).sum(axis=1) / matrix.n_samples,
        index=matrix.feature_ids,
        dtype=np.float64,
    )


def drop_incomplete_features(
    matrix: BioMatrix,
    max_missing_fraction: float = 0.0,
) -> tuple[BioMatrix, list]:
    """
    Remove features whose missing fraction exceeds ``max_missing_fraction``.

    With the default of 0 every feature containing any NaN is removed.

    Returns:
        (filtered matrix, list of dropped feature ids)
    """
    fractions = missing_fraction(matrix)
    keep = (fractions <= max_missing_fraction).to_numpy()
    dropped = fractions.index[~keep].tolist()
    if dropped:
        logger.warning(
            "Dropping %d of %d features with more than %.0f%% missing values",
            len(dropped), matrix.n_features, 100 * max_missing_fraction,
        )
    return matrix.subset(features=fractions.index[keep]), dropped


def knn_impute(
    matrix: BioMatrix,
    max_missing_fraction: float = 0.5,
    k: int = 10,
) -> BioMatrix:
    """
    K-nearest neighbor imputation of the remaining missing values.

    Rows with more than ``max_missing_fraction`` missing values are dropped
    first; the rest are filled from the ``k`` most similar samples.

    Args:
        matrix: Features × samples matrix with NaN for missing
        max_missing_fraction: Row threshold above which a feature is dropped
        k: Number of neighbors

    Returns:
        New matrix without missing values
    """
    from sklearn.impute import KNNImputer

    kept, _ = drop_incomplete_features(matrix, max_missing_fraction)
    if kept.n_features == 0 or not np.isnan(kept.data).any():
        return kept

    # KNNImputer expects (n_samples, n_features), our data is (n_features, n_samples)
    imputer = KNNImputer(n_neighbors=k, keep_empty_features=True)
    imputed = imputer.fit_transform(kept.data.T).T

    return BioMatrix(
        data=imputed,
        feature_ids=kept.feature_ids,
        sample_ids=kept.sample_ids,
        sample_metadata=kept.sample_metadata,
    )


def handle_missing_values(
    matrix: BioMatrix | pd.DataFrame,
    imputer: Optional[Imputer] = None,
    max_missing_fraction: float = 0.5,
) -> ImputationResult:
    """
    Impute missing values, or drop incomplete rows when no imputer is given.

    Args:
        matrix: Features × samples matrix
        imputer: Imputation routine ``(matrix, max_missing_fraction) ->
            matrix``. None selects the drop fallback.
        max_missing_fraction: Row threshold passed to the imputer. Ignored by
            the fallback, which drops any row with a missing value.

    Returns:
        ImputationResult describing the applied policy

    Raises:
        ValueError: If max_missing_fraction is outside [0, 1], or the imputer
            returns features that are not in the input
    """
    if not 0.0 <= max_missing_fraction <= 1.0:
        raise ValueError(
            f"max_missing_fraction must be in [0, 1], got {max_missing_fraction}"
        )
    matrix = as_biomatrix(matrix)
    missing_mask = np.isnan(matrix.data)

    if imputer is None:
        cleaned, dropped = drop_incomplete_features(matrix, 0.0)
        return ImputationResult(
            matrix=cleaned,
            method="drop",
            n_imputed=0,
            dropped_features=dropped,
        )

    imputed = imputer(matrix, max_missing_fraction)
    dropped = [f for f in matrix.feature_ids if f not in imputed.feature_ids]
    kept_rows = matrix.feature_ids.get_indexer(imputed.feature_ids)
    if (kept_rows < 0).any():
        unknown = imputed.feature_ids[kept_rows < 0].tolist()
        raise ValueError(f"Imputer returned features not in the input: {unknown}")
    mask = missing_mask[kept_rows, :] & ~np.isnan(imputed.data)

    return ImputationResult(
        matrix=imputed,
        method=getattr(imputer, "__name__", type(imputer).__name__),
        n_imputed=int(mask.sum()),
        dropped_features=dropped,
        max_missing_fraction=max_missing_fraction,
        imputation_mask=mask,
    )


class MissingValueFilter(Transform):
    """
    Transform wrapper around handle_missing_values.

    Examples:
        >>> step = MissingValueFilter(imputer=knn_impute, max_missing_fraction=0.2)
        >>> complete = step.apply(matrix)
    """

    def __init__(
        self,
        max_missing_fraction: float = 0.5,
        imputer: Optional[Imputer] = None,
    ):
        super().__init__(
            name="MissingValueFilter",
            params={
                "max_missing_fraction": max_missing_fraction,
                "imputer": getattr(imputer, "__name__", None) if imputer else None,
            },
        )
        self.max_missing_fraction = max_missing_fraction
        self.imputer = imputer

    def validate(self, matrix: BioMatrix) -> list[str]:
        errors = super().validate(matrix)
        if not 0.0 <= self.max_missing_fraction <= 1.0:
            errors.append(
                f"max_missing_fraction must be in [0, 1], got {self.max_missing_fraction}"
            )
        return errors

    def apply(self, matrix: BioMatrix) -> BioMatrix:
        errors = self.validate(matrix)
        if errors:
            raise ValueError("; ".join(errors))
        return handle_missing_values(
            matrix,
            imputer=self.imputer,
            max_missing_fraction=self.max_missing_fraction,
        ).matrix
