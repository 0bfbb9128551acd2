"""
Core data structures for tumor/normal comparison.

1. BioMatrix: Labeled features × samples matrix, immutable
2. Alignment helpers: shared and missing identifiers across matrices
3. Transform: Abstract base class for immutable matrix transformations

Examples:
    >>> from omicscompare.core import BioMatrix, common_features
    >>> tumors = BioMatrix.from_dataframe(tumor_frame)
    >>> normals = BioMatrix.from_dataframe(normal_frame)
    >>> shared = common_features(tumors, normals)
"""

from omicscompare.core.biomatrix import BioMatrix, as_biomatrix, has_sample_labels
from omicscompare.core.alignment import (
    ordered_intersection,
    ordered_difference,
    common_features,
    common_samples,
    align_samples,
)
from omicscompare.core.transform import Transform

__all__ = [
    'BioMatrix',
    'as_biomatrix',
    'has_sample_labels',
    'ordered_intersection',
    'ordered_difference',
    'common_features',
    'common_samples',
    'align_samples',
    'Transform',
]
