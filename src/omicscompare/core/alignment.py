"""
Identifier alignment across labeled matrices.

Tumor and normal matrices rarely share exactly the same rows or columns:
probes get filtered differently, and only some tumors have a matched normal.
These helpers compute the shared and missing identifiers while keeping the
order of the first collection, so results can be reassembled against the
caller's feature list later on.

All functions are pure; nothing here holds state.
"""

from __future__ import annotations

from typing import Hashable, Iterable, Optional

from omicscompare.core.biomatrix import BioMatrix

__all__ = [
    'ordered_intersection',
    'ordered_difference',
    'common_features',
    'common_samples',
    'align_samples',
]


def ordered_intersection(first: Iterable[Hashable], *others: Iterable[Hashable]) -> list:
    """
    Identifiers of ``first`` that occur in every other collection.

    Order follows ``first``; repeated identifiers are kept once.

    Examples:
        >>> ordered_intersection(["b", "a", "b", "c"], ["a", "b"])
        ['b', 'a']
    """
    lookups = [set(other) for other in others]
    seen: set = set()
    shared = []
    for item in first:
        if item in seen:
            continue
        if all(item in lookup for lookup in lookups):
            shared.append(item)
            seen.add(item)
    return shared


def ordered_difference(first: Iterable[Hashable], other: Iterable[Hashable]) -> list:
    """
    Identifiers of ``first`` not present in ``other``, in ``first`` order.

    Repeats in ``first`` are preserved; this is used to flag every requested
    feature that cannot be evaluated.
    """
    exclude = set(other)
    return [item for item in first if item not in exclude]


def common_features(*matrices: BioMatrix) -> list:
    """Feature identifiers shared by all matrices, in the first matrix's row order."""
    if not matrices:
        return []
    return ordered_intersection(
        matrices[0].feature_ids, *(m.feature_ids for m in matrices[1:])
    )


def common_samples(*matrices: BioMatrix) -> list:
    """Sample identifiers shared by all matrices, in the first matrix's column order."""
    if not matrices:
        return []
    return ordered_intersection(
        matrices[0].sample_ids, *(m.sample_ids for m in matrices[1:])
    )


def align_samples(
    first: BioMatrix,
    second: BioMatrix,
    samples: Optional[Iterable[Hashable]] = None,
) -> tuple[BioMatrix, BioMatrix]:
    """
    Restrict two matrices to the same samples in the same column order.

    Args:
        first: Matrix whose column order wins when ``samples`` is None
        second: Matrix to line up against ``first``
        samples: Explicit shared sample list (defaults to common_samples)

    Returns:
        Both matrices restricted to the shared samples, columns matched
        position by position
    """
    if samples is None:
        samples = common_samples(first, second)
    samples = list(samples)
    return first.subset(samples=samples), second.subset(samples=samples)
