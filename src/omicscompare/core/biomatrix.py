"""
Core data structure for labeled omics matrices.

BioMatrix couples a numerical features × samples array with the row and
column identifiers needed to line up heterogeneous inputs (tumor vs normal
matrices, paired designs, single-feature vectors).

Biological Context:
    Expression matrices are the fundamental data structure in genomics:
    - Rows = features (genes, probes, proteins)
    - Columns = samples (tumors, matched normals, cell lines)
    - Values = measurements (log-ratios, intensities), NaN when missing

    Comparing tumors against normals only works when both matrices are
    indexed by the same identifiers, so every selection in this module is
    label-based and preserves the requested order.

Engineering Design:
    - Immutable: Operations return new instances
    - Type-safe: NumPy arrays for data, Pandas indexes for labels
    - Validated: Constructor checks shape consistency and label uniqueness

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from omicscompare.core.biomatrix import BioMatrix
    >>>
    >>> matrix = BioMatrix(
    ...     data=np.array([[1.0, 2.0], [3.0, np.nan]]),
    ...     feature_ids=pd.Index(["TP53", "MYC"]),
    ...     sample_ids=pd.Index(["T01", "T02"]),
    ... )
    >>> matrix.subset(samples=["T02"]).row("TP53")
    array([2.])
"""

from __future__ import annotations

from typing import Hashable, Iterable, Optional, Sequence

import numpy as np
import pandas as pd

__all__ = ['BioMatrix', 'as_biomatrix', 'has_sample_labels']


class BioMatrix:
    """
    Immutable container for a labeled features × samples matrix.

    Attributes:
        data: Numerical matrix (features × samples), float64
        feature_ids: Unique row identifiers
        sample_ids: Unique column identifiers
        sample_metadata: Optional per-sample annotations indexed by sample_ids

    Shape Invariants:
        - data.shape[0] == len(feature_ids)
        - data.shape[1] == len(sample_ids)
        - sample_metadata.index equals sample_ids
    """

    def __init__(
        self,
        data: np.ndarray,
        feature_ids: pd.Index,
        sample_ids: pd.Index,
        sample_metadata: Optional[pd.DataFrame] = None,
    ):
        """
        Initialize BioMatrix with validation.

        Args:
            data: Numeric matrix (features × samples)
            feature_ids: Row identifiers, must be unique
            sample_ids: Column identifiers, must be unique
            sample_metadata: DataFrame indexed by sample_ids. Defaults to an
                empty frame with that index.

        Raises:
            TypeError: If data or identifiers have the wrong type
            ValueError: If shapes are inconsistent or identifiers repeat
        """
        if not isinstance(data, np.ndarray):
            raise TypeError(f"data must be np.ndarray, got {type(data)}")
        if not isinstance(feature_ids, pd.Index):
            raise TypeError(f"feature_ids must be pd.Index, got {type(feature_ids)}")
        if not isinstance(sample_ids, pd.Index):
            raise TypeError(f"sample_ids must be pd.Index, got {type(sample_ids)}")

        if data.ndim != 2:
            raise ValueError(f"data must be 2D, got shape {data.shape}")

        n_features, n_samples = data.shape

        if len(feature_ids) != n_features:
            raise ValueError(
                f"feature_ids length ({len(feature_ids)}) must match data rows ({n_features})"
            )
        if len(sample_ids) != n_samples:
            raise ValueError(
                f"sample_ids length ({len(sample_ids)}) must match data columns ({n_samples})"
            )
        if not feature_ids.is_unique:
            dupes = feature_ids[feature_ids.duplicated()].unique().tolist()
            raise ValueError(f"feature_ids must be unique, duplicated: {dupes[:5]}")
        if not sample_ids.is_unique:
            dupes = sample_ids[sample_ids.duplicated()].unique().tolist()
            raise ValueError(f"sample_ids must be unique, duplicated: {dupes[:5]}")

        if sample_metadata is None:
            sample_metadata = pd.DataFrame(index=sample_ids)
        elif not isinstance(sample_metadata, pd.DataFrame):
            raise TypeError(f"sample_metadata must be pd.DataFrame, got {type(sample_metadata)}")
        elif not sample_metadata.index.equals(sample_ids):
            raise ValueError(
                "sample_metadata.index must match sample_ids exactly. "
                f"Got {len(sample_metadata.index)} metadata rows for {len(sample_ids)} samples."
            )

        self._data = data.astype(np.float64, copy=False)
        self._feature_ids = feature_ids
        self._sample_ids = sample_ids
        self._sample_metadata = sample_metadata

    @classmethod
    def from_dataframe(
        cls,
        frame: pd.DataFrame,
        sample_metadata: Optional[pd.DataFrame] = None,
    ) -> BioMatrix:
        """Build a matrix from a DataFrame with features in rows, samples in columns."""
        return cls(
            data=frame.to_numpy(dtype=np.float64, copy=True),
            feature_ids=pd.Index(frame.index),
            sample_ids=pd.Index(frame.columns),
            sample_metadata=sample_metadata,
        )

    @classmethod
    def from_vector(
        cls,
        values: pd.Series | Sequence[float] | np.ndarray,
        feature_id: Hashable,
        sample_ids: Optional[Iterable[Hashable]] = None,
    ) -> BioMatrix:
        """
        Build a one-row matrix from a bare vector.

        Sample identifiers come from ``sample_ids`` when given, else from the
        Series index, else positional labels 0..n-1.

        Examples:
            >>> vec = pd.Series([5.0, 1.0], index=["T01", "T02"])
            >>> BioMatrix.from_vector(vec, "TP53").shape
            (1, 2)
        """
        if sample_ids is not None:
            columns = pd.Index(list(sample_ids))
        elif isinstance(values, pd.Series):
            columns = pd.Index(values.index)
        else:
            columns = pd.RangeIndex(len(values))

        row = np.asarray(values, dtype=np.float64).reshape(1, -1)
        return cls(
            data=row,
            feature_ids=pd.Index([feature_id]),
            sample_ids=columns,
        )

    @property
    def data(self) -> np.ndarray:
        """Numeric matrix (features × samples)."""
        return self._data

    @property
    def feature_ids(self) -> pd.Index:
        """Row identifiers."""
        return self._feature_ids

    @property
    def sample_ids(self) -> pd.Index:
        """Column identifiers."""
        return self._sample_ids

    @property
    def sample_metadata(self) -> pd.DataFrame:
        """Per-sample annotations."""
        return self._sample_metadata

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_features, n_samples)."""
        return self._data.shape

    @property
    def n_features(self) -> int:
        return self._data.shape[0]

    @property
    def n_samples(self) -> int:
        return self._data.shape[1]

    def has_feature(self, feature: Hashable) -> bool:
        return feature in self._feature_ids

    def row(self, feature: Hashable) -> np.ndarray:
        """
        Values of one feature across all samples.

        Raises:
            KeyError: If the feature is not a row of this matrix
        """
        if feature not in self._feature_ids:
            raise KeyError(f"Feature not found: {feature!r}")
        return self._data[self._feature_ids.get_loc(feature), :]

    def subset(
        self,
        features: Optional[Iterable[Hashable]] = None,
        samples: Optional[Iterable[Hashable]] = None,
    ) -> BioMatrix:
        """
        Restrict the matrix by labels, in the order given.

        Args:
            features: Row identifiers to keep (None keeps all rows)
            samples: Column identifiers to keep (None keeps all columns)

        Returns:
            New BioMatrix with rows and columns reordered to match the request

        Raises:
            KeyError: If any requested label is absent

        Examples:
            >>> # Line up tumor columns with their matched normals
            >>> shared = ["P01", "P02"]
            >>> tumors.subset(samples=shared).data - normals.subset(samples=shared).data
        """
        row_idx = slice(None)
        col_idx = slice(None)
        feature_ids = self._feature_ids
        sample_ids = self._sample_ids

        if features is not None:
            feature_ids = pd.Index(list(features))
            row_idx = self._positions(self._feature_ids, feature_ids, "Features")
        if samples is not None:
            sample_ids = pd.Index(list(samples))
            col_idx = self._positions(self._sample_ids, sample_ids, "Samples")

        return BioMatrix(
            data=self._data[row_idx, :][:, col_idx],
            feature_ids=feature_ids,
            sample_ids=sample_ids,
            sample_metadata=self._sample_metadata.loc[sample_ids],
        )

    @staticmethod
    def _positions(index: pd.Index, labels: pd.Index, kind: str) -> np.ndarray:
        positions = index.get_indexer(labels)
        if np.any(positions < 0):
            absent = labels[positions < 0].tolist()
            raise KeyError(f"{kind} not found: {absent[:5]}")
        return positions

    def to_dataframe(self) -> pd.DataFrame:
        """Features × samples DataFrame copy of the data."""
        return pd.DataFrame(
            self._data.copy(),
            index=self._feature_ids.copy(),
            columns=self._sample_ids.copy(),
        )

    def copy(self, deep: bool = True) -> BioMatrix:
        if deep:
            return BioMatrix(
                data=self._data.copy(),
                feature_ids=self._feature_ids.copy(),
                sample_ids=self._sample_ids.copy(),
                sample_metadata=self._sample_metadata.copy(),
            )
        return BioMatrix(
            data=self._data,
            feature_ids=self._feature_ids,
            sample_ids=self._sample_ids,
            sample_metadata=self._sample_metadata,
        )

    def __repr__(self) -> str:
        if self.n_features == 0 or self.n_samples == 0:
            return f"BioMatrix({self.n_features} features × {self.n_samples} samples)"
        return (
            f"BioMatrix({self.n_features} features × {self.n_samples} samples)\n"
            f"  Features: {self.feature_ids[0]}...{self.feature_ids[-1]}\n"
            f"  Samples: {self.sample_ids[0]}...{self.sample_ids[-1]}"
        )


def as_biomatrix(
    obj: BioMatrix | pd.DataFrame | pd.Series | Sequence[float] | np.ndarray,
    features: Optional[Sequence[Hashable]] = None,
) -> BioMatrix:
    """
    Normalize caller input into a BioMatrix at the API boundary.

    DataFrames are taken as features × samples. Bare vectors (Series, 1-D
    arrays, lists) become a one-row matrix labeled by the single entry of
    ``features``, which enables single-feature calls such as
    ``count_affected(["TP53"], tumor_vector, normal_vector, "up")``.

    Raises:
        ValueError: If a vector is given without exactly one feature
        TypeError: If the object cannot be interpreted as a matrix
    """
    if isinstance(obj, BioMatrix):
        return obj
    if isinstance(obj, pd.DataFrame):
        return BioMatrix.from_dataframe(obj)

    if isinstance(obj, pd.Series) or isinstance(obj, (list, tuple)):
        is_vector = True
    elif isinstance(obj, np.ndarray):
        if obj.ndim == 2:
            raise TypeError("Unlabeled 2D arrays are ambiguous; pass a DataFrame or BioMatrix")
        is_vector = obj.ndim == 1
    else:
        is_vector = False

    if not is_vector:
        raise TypeError(f"Cannot interpret {type(obj).__name__} as a labeled matrix")

    if features is None or len(features) != 1:
        n = 0 if features is None else len(features)
        raise ValueError(
            f"A single vector can only be labeled by exactly one feature, got {n}"
        )
    return BioMatrix.from_vector(obj, features[0])


def has_sample_labels(obj) -> bool:
    """
    Whether caller input carries real sample identifiers.

    Lists, tuples, 1-D arrays and Series with a default RangeIndex only get
    positional labels from ``as_biomatrix``; those labels say nothing about
    which tumor belongs to which normal and must not be used for pairing.
    """
    if isinstance(obj, (BioMatrix, pd.DataFrame)):
        return True
    if isinstance(obj, pd.Series):
        return not isinstance(obj.index, pd.RangeIndex)
    return False
