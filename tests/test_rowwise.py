"""Tests for row-wise statistical testing and failure isolation."""

import logging

import numpy as np
import pandas as pd
import pytest
from scipy import stats as scipy_stats

from omicscompare.core.biomatrix import BioMatrix
from omicscompare.stats.rowwise import (
    DegenerateTestError,
    adjust_pvalues,
    do_bartlett,
    do_levene,
    do_wilcox,
    pairwise_test,
    variance_test,
    wilcoxon_test,
)


class TestWilcoxonTest:

    def test_unpaired_matches_mann_whitney(self):
        a = np.array([1.1, 2.3, 3.5, 4.2, 5.9])
        b = np.array([6.4, 7.7, 8.1, 9.6])
        expected = scipy_stats.mannwhitneyu(
            a, b, alternative="two-sided", method="asymptotic"
        ).pvalue
        assert wilcoxon_test(a, b, paired=False) == pytest.approx(expected)

    def test_unpaired_drops_nan(self):
        a = np.array([1.0, np.nan, 3.0, 4.0])
        b = np.array([6.0, 7.0, np.nan, 9.0])
        assert wilcoxon_test(a, b, False) == pytest.approx(
            wilcoxon_test(np.array([1.0, 3.0, 4.0]), np.array([6.0, 7.0, 9.0]), False)
        )

    def test_paired_signed_rank(self):
        a = np.array([5.0, 6.0, 7.5, 8.0, 9.5, 11.0])
        b = np.array([4.0, 4.5, 5.0, 7.9, 6.0, 7.0])
        p = wilcoxon_test(a, b, paired=True)
        assert 0.0 < p < 1.0

    def test_constant_values_are_degenerate(self):
        with pytest.raises(DegenerateTestError):
            wilcoxon_test(np.ones(4), np.ones(3), paired=False)

    def test_zero_differences_are_degenerate(self):
        with pytest.raises(DegenerateTestError):
            wilcoxon_test(np.arange(4.0), np.arange(4.0), paired=True)

    def test_empty_group_is_degenerate(self):
        with pytest.raises(DegenerateTestError):
            wilcoxon_test(np.array([np.nan]), np.array([1.0, 2.0]), paired=False)

    def test_degenerate_error_is_value_error(self):
        assert issubclass(DegenerateTestError, ValueError)


class TestPairwiseTest:

    def test_output_keys_are_shared_features(self):
        m1 = pd.DataFrame(
            np.arange(12, dtype=float).reshape(3, 4),
            index=["g1", "g2", "g3"], columns=["a", "b", "c", "d"],
        )
        m2 = pd.DataFrame(
            np.arange(8, dtype=float).reshape(2, 4) + 20,
            index=["g3", "g1"], columns=["e", "f", "g", "h"],
        )
        result = pairwise_test(m1, m2, paired=False)
        assert list(result.index) == ["g1", "g3"]
        assert result.notna().all()

    def test_constant_row_is_missing_not_fatal(self):
        m1 = pd.DataFrame(
            [[1.0, 1.0, 1.0], [1.0, 2.0, 3.0]],
            index=["flat", "varied"], columns=["a", "b", "c"],
        )
        m2 = pd.DataFrame(
            [[1.0, 1.0, 1.0], [7.0, 8.0, 9.0]],
            index=["flat", "varied"], columns=["d", "e", "f"],
        )
        result = pairwise_test(m1, m2, paired=False)
        assert np.isnan(result["flat"])
        assert not np.isnan(result["varied"])

    def test_paired_uses_shared_samples_in_order(self):
        tumors = pd.DataFrame(
            [[5.0, 6.0, 7.5, 8.0, 9.5, 11.0, 100.0]],
            index=["g"], columns=["P1", "P2", "P3", "P4", "P5", "P6", "T1"],
        )
        # Same pairs, shuffled columns plus an unmatched normal
        normals = pd.DataFrame(
            [[7.0, 4.0, -50.0, 4.5, 5.0, 7.9, 6.0]],
            index=["g"], columns=["P6", "P1", "N1", "P2", "P3", "P4", "P5"],
        )
        result = pairwise_test(tumors, normals, paired=True)
        expected = wilcoxon_test(
            np.array([5.0, 6.0, 7.5, 8.0, 9.5, 11.0]),
            np.array([4.0, 4.5, 5.0, 7.9, 6.0, 7.0]),
            paired=True,
        )
        assert result["g"] == pytest.approx(expected)

    def test_paired_without_shared_samples_falls_back(self, caplog):
        m1 = pd.DataFrame([[1.0, 2.0, 3.0]], index=["g"], columns=["a", "b", "c"])
        m2 = pd.DataFrame([[4.0, 5.0, 6.0]], index=["g"], columns=["d", "e", "f"])
        with caplog.at_level(logging.WARNING, logger="omicscompare.stats.rowwise"):
            with pytest.warns(UserWarning, match="share no samples"):
                fallback = pairwise_test(m1, m2, paired=True)
        unpaired = pairwise_test(m1, m2, paired=False)
        pd.testing.assert_series_equal(fallback, unpaired)
        assert any("using unpaired test" in r.getMessage() for r in caplog.records)

    def test_custom_test_failure_isolated(self):
        def flaky(a, b, paired):
            if a[0] < 0:
                raise ZeroDivisionError("boom")
            return 0.5

        m1 = pd.DataFrame([[-1.0, 2.0], [1.0, 2.0]], index=["bad", "good"], columns=["a", "b"])
        m2 = pd.DataFrame([[0.0, 0.0], [0.0, 0.0]], index=["bad", "good"], columns=["c", "d"])
        result = pairwise_test(m1, m2, paired=False, test=flaky)
        assert np.isnan(result["bad"])
        assert result["good"] == 0.5

    def test_other_exceptions_propagate(self):
        def broken(a, b, paired):
            raise KeyError("not a statistical failure")

        m1 = pd.DataFrame([[1.0, 2.0]], index=["g"], columns=["a", "b"])
        with pytest.raises(KeyError):
            pairwise_test(m1, m1, paired=False, test=broken)

    def test_failures_logged_at_debug(self, caplog):
        m1 = pd.DataFrame([[1.0, 1.0]], index=["g"], columns=["a", "b"])
        with caplog.at_level(logging.DEBUG, logger="omicscompare.stats.rowwise"):
            pairwise_test(m1, m1, paired=False)
        messages = [record.getMessage() for record in caplog.records]
        assert any("1 without a p-value" in m for m in messages)

    def test_parallel_matches_sequential(self, tumor_normal_pair):
        tumors, normals = tumor_normal_pair
        sequential = pairwise_test(tumors, normals, paired=False)
        parallel = pairwise_test(tumors, normals, paired=False, n_jobs=2)
        pd.testing.assert_series_equal(sequential, parallel)

    def test_shifted_genes_rank_first(self, tumor_normal_pair):
        tumors, normals = tumor_normal_pair
        pvalues = pairwise_test(tumors, normals, paired=False)
        top = set(pvalues.sort_values().index[:5])
        assert top == {f"GENE_{i:04d}" for i in range(5)}


class TestDoWilcox:

    @pytest.fixture
    def combined(self):
        return pd.DataFrame(
            [
                [5.0, 6.0, 7.5, 8.0, 4.0, 4.5, 5.0, 7.9],
                [1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0],
            ],
            index=["g1", "flat"],
            columns=["t1", "t2", "t3", "t4", "n1", "n2", "n3", "n4"],
        )

    def test_paired_layout(self, combined):
        result = do_wilcox(combined, matched_samples=["p1", "p2", "p3", "p4"])
        expected = wilcoxon_test(
            np.array([5.0, 6.0, 7.5, 8.0]), np.array([4.0, 4.5, 5.0, 7.9]), paired=True
        )
        assert result["g1"] == pytest.approx(expected)
        assert np.isnan(result["flat"])

    def test_unpaired_groups(self, combined):
        groups = {"t1": 1, "t2": 1, "t3": 1, "t4": 1, "n1": 2, "n2": 2, "n3": 2}
        result = do_wilcox(combined, groups=groups)
        expected = wilcoxon_test(
            np.array([5.0, 6.0, 7.5, 8.0]), np.array([4.0, 4.5, 5.0]), paired=False
        )
        assert result["g1"] == pytest.approx(expected)
        assert list(result.index) == ["g1", "flat"]

    def test_paired_layout_must_split_evenly(self, combined):
        with pytest.raises(ValueError, match="Paired layout"):
            do_wilcox(combined, matched_samples=["p1", "p2", "p3"])

    def test_requires_groups_or_pairs(self, combined):
        with pytest.raises(ValueError):
            do_wilcox(combined)


class TestVarianceTests:

    @pytest.fixture
    def grouped(self):
        rng = np.random.default_rng(7)
        narrow = rng.normal(0, 0.1, 10)
        wide = rng.normal(0, 5.0, 10)
        data = np.vstack([
            np.concatenate([narrow, wide]),
            np.ones(20),
            np.concatenate([rng.normal(0, 1, 10), rng.normal(0, 1, 10)]),
        ])
        samples = [f"S{i:02d}" for i in range(20)]
        frame = pd.DataFrame(data, index=["hetero", "flat", "homo"], columns=samples)
        groups = ["A"] * 10 + ["B"] * 10
        return frame, groups

    def test_bartlett_detects_unequal_variance(self, grouped):
        frame, groups = grouped
        result = do_bartlett(frame, groups)
        assert result["hetero"] < 0.001
        assert result["homo"] > result["hetero"]

    def test_bartlett_zero_variance_row_missing(self, grouped):
        frame, groups = grouped
        assert np.isnan(do_bartlett(frame, groups)["flat"])

    @pytest.mark.parametrize("location", ["median", "mean", "trim.mean"])
    def test_levene_locations(self, grouped, location):
        frame, groups = grouped
        result = do_levene(frame, groups, location=location)
        assert result["hetero"] < 0.01
        assert np.isnan(result["flat"])

    def test_levene_matches_scipy(self, grouped):
        frame, groups = grouped
        row = frame.loc["hetero"].to_numpy()
        expected = scipy_stats.levene(row[:10], row[10:], center="mean").pvalue
        assert do_levene(frame, groups, location="mean")["hetero"] == pytest.approx(expected)

    def test_levene_unknown_location(self, grouped):
        frame, groups = grouped
        with pytest.raises(ValueError, match="Unknown location"):
            do_levene(frame, groups, location="mode")

    def test_groups_series_aligned_by_sample(self, grouped):
        frame, groups = grouped
        labels = pd.Series(groups, index=frame.columns)[::-1]
        by_label = do_bartlett(frame, labels)
        by_position = do_bartlett(frame, groups)
        pd.testing.assert_series_equal(by_label, by_position)

    def test_groups_length_mismatch(self, grouped):
        frame, _ = grouped
        with pytest.raises(ValueError, match="groups length"):
            do_bartlett(frame, ["A", "B"])

    def test_single_group_degenerate(self):
        with pytest.raises(DegenerateTestError):
            variance_test(np.arange(4.0), np.array(["A"] * 4))

    def test_small_group_degenerate(self):
        with pytest.raises(DegenerateTestError):
            variance_test(np.arange(4.0), np.array(["A", "A", "A", "B"]))


class TestAdjustPvalues:

    def test_missing_stays_missing(self):
        pvalues = pd.Series([0.01, np.nan, 0.04, 0.03], index=["a", "b", "c", "d"])
        adjusted = adjust_pvalues(pvalues)
        assert np.isnan(adjusted["b"])
        # BH over the three observed values
        assert adjusted["a"] == pytest.approx(0.03)
        assert adjusted["c"] == pytest.approx(0.04)
        assert adjusted["d"] == pytest.approx(0.04)

    def test_all_missing(self):
        pvalues = pd.Series([np.nan, np.nan], index=["a", "b"])
        assert adjust_pvalues(pvalues).isna().all()

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            adjust_pvalues(pd.Series([0.1]), method="holm-ish")
