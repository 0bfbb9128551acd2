"""Tests for per-row scores."""

import numpy as np
import pandas as pd

from omicscompare.stats.scores import (
    count_above,
    count_below,
    data_type_score,
    fraction_above,
    fraction_below,
)


class TestCutoffCounts:

    def test_counts(self, small_frame):
        assert count_above(small_frame, 0.0).tolist() == [2, 1, 2]
        assert count_below(small_frame, 0.0).tolist() == [1, 1, 0]

    def test_fractions(self, small_frame):
        np.testing.assert_allclose(fraction_above(small_frame, 0.0), [2 / 3, 1 / 3, 2 / 3])
        np.testing.assert_allclose(fraction_below(small_frame, 1.0), [1 / 3, 1.0, 0.0])

    def test_index_follows_matrix(self, small_frame):
        assert list(count_above(small_frame, 0.0).index) == ["TP53", "MYC", "EGFR"]


class TestDataTypeScore:

    def test_row_sums_ignore_missing(self):
        scores = pd.DataFrame(
            {"expression": [1.0, np.nan, np.nan], "copy_number": [2.0, 3.0, np.nan]},
            index=["TP53", "MYC", "EGFR"],
        )
        result = data_type_score(scores)
        assert result.tolist() == [3.0, 3.0, 0.0]
