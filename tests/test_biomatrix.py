"""Tests for the labeled matrix and boundary coercion."""

import numpy as np
import pandas as pd
import pytest

from omicscompare.core.biomatrix import BioMatrix, as_biomatrix, has_sample_labels


class TestBioMatrixConstruction:
    """Validation in BioMatrix.__init__."""

    def test_shapes_and_labels(self):
        matrix = BioMatrix(
            data=np.arange(6).reshape(2, 3),
            feature_ids=pd.Index(["g1", "g2"]),
            sample_ids=pd.Index(["s1", "s2", "s3"]),
        )
        assert matrix.shape == (2, 3)
        assert matrix.n_features == 2
        assert matrix.n_samples == 3
        assert matrix.data.dtype == np.float64
        assert list(matrix.sample_metadata.index) == ["s1", "s2", "s3"]

    def test_rejects_duplicate_features(self):
        with pytest.raises(ValueError, match="feature_ids must be unique"):
            BioMatrix(
                data=np.zeros((2, 1)),
                feature_ids=pd.Index(["g1", "g1"]),
                sample_ids=pd.Index(["s1"]),
            )

    def test_rejects_duplicate_samples(self):
        with pytest.raises(ValueError, match="sample_ids must be unique"):
            BioMatrix(
                data=np.zeros((1, 2)),
                feature_ids=pd.Index(["g1"]),
                sample_ids=pd.Index(["s1", "s1"]),
            )

    def test_rejects_shape_mismatch(self):
        with pytest.raises(ValueError, match="must match data columns"):
            BioMatrix(
                data=np.zeros((1, 2)),
                feature_ids=pd.Index(["g1"]),
                sample_ids=pd.Index(["s1"]),
            )

    def test_rejects_wrong_types(self):
        with pytest.raises(TypeError):
            BioMatrix(
                data=[[1.0]],
                feature_ids=pd.Index(["g1"]),
                sample_ids=pd.Index(["s1"]),
            )
        with pytest.raises(TypeError):
            BioMatrix(
                data=np.zeros((1, 1)),
                feature_ids=["g1"],
                sample_ids=pd.Index(["s1"]),
            )


class TestBioMatrixSelection:
    """Label-based subsetting keeps the requested order."""

    @pytest.fixture
    def matrix(self, small_frame):
        return BioMatrix.from_dataframe(small_frame)

    def test_subset_reorders(self, matrix):
        sub = matrix.subset(features=["EGFR", "TP53"], samples=["S3", "S1"])
        assert list(sub.feature_ids) == ["EGFR", "TP53"]
        assert list(sub.sample_ids) == ["S3", "S1"]
        np.testing.assert_array_equal(sub.data, np.array([[2.0, np.nan], [3.0, 2.0]]))

    def test_subset_missing_label_raises(self, matrix):
        with pytest.raises(KeyError):
            matrix.subset(features=["NOPE"])

    def test_subset_empty_features(self, matrix):
        sub = matrix.subset(features=[])
        assert sub.shape == (0, 3)

    def test_subset_does_not_mutate(self, matrix):
        before = matrix.data.copy()
        sub = matrix.subset(samples=["S1"])
        sub.data[0, 0] = 100.0
        np.testing.assert_array_equal(matrix.data, before)

    def test_row(self, matrix):
        np.testing.assert_array_equal(matrix.row("MYC"), [0.0, 0.5, -0.5])
        with pytest.raises(KeyError):
            matrix.row("NOPE")

    def test_to_dataframe_roundtrip_labels(self, matrix, small_frame):
        pd.testing.assert_frame_equal(matrix.to_dataframe(), small_frame)


class TestAsBioMatrix:
    """Boundary coercion of caller input."""

    def test_passthrough(self, small_frame):
        matrix = BioMatrix.from_dataframe(small_frame)
        assert as_biomatrix(matrix) is matrix

    def test_dataframe(self, small_frame):
        assert as_biomatrix(small_frame).shape == (3, 3)

    def test_series_becomes_single_row(self):
        vec = pd.Series([5.0, 1.0], index=["T1", "T2"])
        matrix = as_biomatrix(vec, ["TP53"])
        assert matrix.shape == (1, 2)
        assert list(matrix.feature_ids) == ["TP53"]
        assert list(matrix.sample_ids) == ["T1", "T2"]

    def test_list_gets_positional_samples(self):
        matrix = as_biomatrix([1.0, 2.0, 3.0], ["TP53"])
        assert list(matrix.sample_ids) == [0, 1, 2]

    def test_vector_needs_exactly_one_feature(self):
        with pytest.raises(ValueError, match="exactly one feature"):
            as_biomatrix(pd.Series([1.0, 2.0]), ["A", "B"])
        with pytest.raises(ValueError):
            as_biomatrix(np.array([1.0, 2.0]))

    def test_unlabeled_2d_array_rejected(self):
        with pytest.raises(TypeError):
            as_biomatrix(np.zeros((2, 2)), ["A"])

    def test_sample_labels_detected(self, small_frame):
        assert has_sample_labels(small_frame)
        assert has_sample_labels(BioMatrix.from_dataframe(small_frame))
        assert has_sample_labels(pd.Series([1.0, 2.0], index=["T1", "T2"]))
        assert not has_sample_labels(pd.Series([1.0, 2.0]))
        assert not has_sample_labels([1.0, 2.0])
        assert not has_sample_labels(np.array([1.0, 2.0]))
