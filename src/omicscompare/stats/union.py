"""
Union of sample identifier collections.

Used to pool the samples affected by several features (or several data
types) into one set, optionally restricted to a selection.
"""

from __future__ import annotations

from typing import Hashable, Iterable, Mapping, Optional, Sequence

__all__ = ['sample_union']


def sample_union(
    sample_sets: Mapping[Hashable, Optional[Iterable[Hashable]]] | Sequence[Optional[Iterable[Hashable]]],
    use: Optional[Mapping[Hashable, int]] = None,
) -> set:
    """
    Union of sample identifiers across a keyed collection of sample lists.

    Args:
        sample_sets: Sample id collections keyed by a selection index. A
            mapping keeps its own keys; a plain sequence is keyed by
            position (0, 1, ...). None entries contribute nothing, which
            lets the ``samples`` Series of an affected-sample result be
            passed in directly.
        use: Optional selection, key -> 0/1. Only keys mapped to 1
            contribute; keys missing from ``use`` are left out.

    Returns:
        Set of all selected sample identifiers

    Examples:
        >>> sample_union({"TP53": ["P01", "P02"], "MYC": ["P02", "P03"]})
        {'P01', 'P02', 'P03'}
        >>> sample_union([["P01"], ["P02"]], use={0: 0, 1: 1})
        {'P02'}
    """
    if hasattr(sample_sets, "items"):
        keyed = list(sample_sets.items())
    else:
        keyed = list(enumerate(sample_sets))

    union: set = set()
    for key, samples in keyed:
        if use is not None and use.get(key, 0) != 1:
            continue
        if samples is None:
            continue
        union.update(samples)
    return union
