"""
Statistical comparison of tumor and normal matrices.

Exports core functions for:
- Expression calls per feature
- Row-wise two-group and variance-equality tests with FDR adjustment
- Counting tumor samples that deviate from the normal baseline
- Sample set unions and per-row scores
- Missing value handling
"""

from .expression import (
    expressed_fraction,
    gene_expressed,
    genes_expressed,
)
from .rowwise import (
    DegenerateTestError,
    wilcoxon_test,
    variance_test,
    pairwise_test,
    do_wilcox,
    do_bartlett,
    do_levene,
    adjust_pvalues,
)
from .affected import (
    Regulation,
    AffectedSamplesResult,
    count_affected,
)
from .union import sample_union
from .scores import (
    data_type_score,
    count_above,
    count_below,
    fraction_above,
    fraction_below,
)
from .missing import (
    ImputationResult,
    knn_impute,
    handle_missing_values,
    MissingValueFilter,
)

__all__ = [
    "expressed_fraction",
    "gene_expressed",
    "genes_expressed",
    "DegenerateTestError",
    "wilcoxon_test",
    "variance_test",
    "pairwise_test",
    "do_wilcox",
    "do_bartlett",
    "do_levene",
    "adjust_pvalues",
    "Regulation",
    "AffectedSamplesResult",
    "count_affected",
    "sample_union",
    "data_type_score",
    "count_above",
    "count_below",
    "fraction_above",
    "fraction_below",
    "ImputationResult",
    "knn_impute",
    "handle_missing_values",
    "MissingValueFilter",
]
