"""
Tests for the principal component decomposition engine.

Validates:
    1. Loadings are orthonormal
    2. Explained variance sums to 1, eigenvalues sum to C
    3. Eigenvalues are non-increasing
    4. Score variance equals eigenvalue
    5. Sign and tie-break conventions are deterministic
    6. eigh and svd solvers agree
    7. Rank-deficient input is annotated, not NaN
"""

import re
import warnings

import numpy as np
import polars as pl
import pytest

from biplot.core.decomposition import (
    InsufficientRowsWarning,
    PrincipalComponentResult,
    anchor_index,
    apply_sign_convention,
    covariance_matrix,
    decompose,
    order_components,
    standardize_and_decompose,
)
from biplot.core.normalization import DegenerateColumnError, StandardizedMatrix, standardize
from biplot.validation import InvalidInputError


class TestOutputGuarantees:
    """Numeric invariants of every decomposition."""

    @pytest.mark.parametrize('method', ['eigh', 'svd'])
    def test_orthonormal_loadings(self, random_matrix, method):
        """dot(v_i, v_i) = 1 and dot(v_i, v_j) = 0."""
        result = standardize_and_decompose(random_matrix, method=method)
        gram = result.components @ result.components.T
        np.testing.assert_allclose(gram, np.eye(5), atol=1e-10)

    @pytest.mark.parametrize('method', ['eigh', 'svd'])
    def test_variance_conservation(self, random_matrix, method):
        """Explained ratios sum to 1; eigenvalues sum to the trace (= C)."""
        result = standardize_and_decompose(random_matrix, method=method)

        assert result.explained_ratio.sum() == pytest.approx(1.0, abs=1e-12)
        assert result.eigenvalues.sum() == pytest.approx(5.0, abs=1e-9)
        assert result.total_variance == pytest.approx(5.0, abs=1e-9)

    def test_trace_matches_covariance(self, random_matrix):
        z = standardize(random_matrix)
        result = decompose(z)
        assert result.eigenvalues.sum() == pytest.approx(np.trace(covariance_matrix(z.values)))

    def test_non_increasing(self, random_matrix):
        result = standardize_and_decompose(random_matrix)
        assert np.all(np.diff(result.eigenvalues) <= 1e-12)
        assert np.all(result.eigenvalues >= 0)

    def test_score_variance_equals_eigenvalue(self, random_matrix):
        """var(Z v_k, ddof=1) == lambda_k."""
        result = standardize_and_decompose(random_matrix)
        np.testing.assert_allclose(
            result.scores.var(axis=0, ddof=1), result.eigenvalues, atol=1e-9
        )

    def test_scores_are_uncorrelated(self, random_matrix):
        result = standardize_and_decompose(random_matrix)
        cov = np.cov(result.scores, rowvar=False)
        off = cov - np.diag(np.diag(cov))
        np.testing.assert_allclose(off, 0.0, atol=1e-9)

    def test_shapes(self, random_matrix):
        result = standardize_and_decompose(random_matrix)
        assert isinstance(result, PrincipalComponentResult)
        assert result.components.shape == (5, 5)
        assert result.loadings.shape == (5, 5)
        assert result.scores.shape == (60, 5)
        assert result.n_rows == 60
        assert result.n_components == 5

    def test_result_is_read_only(self, random_matrix):
        result = standardize_and_decompose(random_matrix)
        with pytest.raises(ValueError):
            result.scores[0, 0] = 1.0
        for arr in (result.components, result.eigenvalues, result.explained_ratio):
            assert not arr.flags.writeable

    def test_result_owns_its_arrays(self, random_matrix):
        """Scores never alias the standardized input."""
        z = standardize(random_matrix)
        result = decompose(z)
        assert not np.shares_memory(result.scores, z.values)
        assert not np.shares_memory(result.components, z.values)


class TestSignConvention:
    """Largest-magnitude loading of each component is positive."""

    @pytest.mark.parametrize('method', ['eigh', 'svd'])
    def test_anchor_positive(self, random_matrix, method):
        result = standardize_and_decompose(random_matrix, method=method)
        for row in result.components:
            assert row[anchor_index(row)] > 0

    def test_flip(self):
        comps = np.array([[0.1, -0.9, 0.3], [0.8, 0.1, -0.2]])
        fixed = apply_sign_convention(comps)
        np.testing.assert_allclose(fixed[0], [-0.1, 0.9, -0.3])
        np.testing.assert_allclose(fixed[1], comps[1])

    def test_magnitude_tie_uses_lowest_index(self):
        """|v0| == |v1|: index 0 decides the sign."""
        s = 1.0 / np.sqrt(2.0)
        fixed = apply_sign_convention(np.array([[-s, s]]))
        np.testing.assert_allclose(fixed[0], [s, -s])

    def test_input_not_mutated(self):
        comps = np.array([[-1.0, 0.0]])
        apply_sign_convention(comps)
        assert comps[0, 0] == -1.0

    def test_deterministic(self, random_matrix):
        """Repeated calls are bit-identical."""
        a = standardize_and_decompose(random_matrix)
        b = standardize_and_decompose(random_matrix)
        np.testing.assert_array_equal(a.components, b.components)
        np.testing.assert_array_equal(a.scores, b.scores)

    def test_eigh_and_svd_agree(self, random_matrix):
        """Both solvers agree exactly up to round-off once signs are fixed."""
        z = standardize(random_matrix)
        a = decompose(z, method='eigh')
        b = decompose(z, method='svd')

        np.testing.assert_allclose(a.eigenvalues, b.eigenvalues, atol=1e-10)
        np.testing.assert_allclose(a.components, b.components, atol=1e-8)
        np.testing.assert_allclose(a.scores, b.scores, atol=1e-7)


class TestTieBreak:
    """Equal eigenvalues are ordered by column index of the anchor loading."""

    def test_order_components_ties(self):
        eigenvalues = np.array([1.0, 2.0, 1.0])
        comps = np.array([
            [0.0, 0.0, 1.0],   # anchor 2
            [1.0, 0.0, 0.0],   # anchor 0
            [0.0, 1.0, 0.0],   # anchor 1
        ])
        order = order_components(eigenvalues, comps)
        assert list(order) == [1, 2, 0]

    def test_orthogonal_columns_all_tied(self):
        """Uncorrelated columns: every eigenvalue is 1, anchors ascend."""
        data = np.array([
            [1.0, 1.0, 1.0],
            [-1.0, 1.0, -1.0],
            [1.0, -1.0, -1.0],
            [-1.0, -1.0, 1.0],
        ])
        result = standardize_and_decompose(data)

        np.testing.assert_allclose(result.eigenvalues, 1.0, atol=1e-10)
        anchors = [anchor_index(row) for row in result.components]
        assert anchors == sorted(anchors)
        np.testing.assert_allclose(result.components @ result.components.T, np.eye(3), atol=1e-10)


class TestInsufficientRows:
    """R < C is annotated, not fatal."""

    def test_warns_and_annotates(self):
        np.random.seed(7)
        data = np.random.randn(3, 5)

        with pytest.warns(InsufficientRowsWarning):
            result = standardize_and_decompose(data)

        assert result.warnings
        assert 'Fewer rows' in result.warnings[0]
        assert result.eigenvalues.shape == (5,)
        assert np.all(np.isfinite(result.eigenvalues))
        assert np.all(result.eigenvalues >= 0)
        # Centered rank is at most R - 1 = 2
        np.testing.assert_allclose(result.eigenvalues[2:], 0.0, atol=1e-9)
        assert result.explained_ratio.sum() == pytest.approx(1.0)

    @pytest.mark.parametrize('method', ['eigh', 'svd'])
    def test_rank_deficient_still_orthonormal(self, method):
        np.random.seed(11)
        data = np.random.randn(3, 4)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', InsufficientRowsWarning)
            result = standardize_and_decompose(data, method=method)
        np.testing.assert_allclose(result.components @ result.components.T, np.eye(4), atol=1e-9)
        assert np.all(np.isfinite(result.scores))

    def test_no_warning_when_square(self, random_matrix):
        with warnings.catch_warnings():
            warnings.simplefilter('error', InsufficientRowsWarning)
            result = standardize_and_decompose(random_matrix[:5])
        assert result.warnings == ()


class TestErrors:
    """Failures surface at the core boundary."""

    def test_degenerate_column(self, random_matrix):
        data = random_matrix.copy()
        data[:, 0] = 3.0
        with pytest.raises(DegenerateColumnError):
            standardize_and_decompose(data)

    def test_nan_rejected(self, random_matrix):
        data = random_matrix.copy()
        data[4, 1] = np.nan
        with pytest.raises(InvalidInputError):
            standardize_and_decompose(data)

    def test_ragged_rejected(self):
        with pytest.raises(InvalidInputError):
            standardize_and_decompose([[1.0, 2.0], [3.0]])

    def test_empty_rejected(self):
        with pytest.raises(InvalidInputError):
            standardize_and_decompose(np.empty((0, 3)))

    def test_unknown_method(self, random_matrix):
        with pytest.raises(InvalidInputError):
            standardize_and_decompose(random_matrix, method='qr')

    def test_label_mismatch(self, random_matrix):
        z = standardize(random_matrix)
        with pytest.raises(InvalidInputError):
            decompose(z, labels=['a', 'b'])

    def test_all_constant_raw_array(self):
        """decompose() on a raw array with no variance does not divide by zero."""
        with pytest.raises(InvalidInputError):
            decompose(np.ones((4, 2)))

    def test_single_row_standardized_matrix(self):
        """A hand-built one-row StandardizedMatrix fails with a typed error."""
        z = StandardizedMatrix(
            values=np.array([[0.5, -0.5]]),
            mean=np.zeros(2),
            std=np.ones(2),
            columns=('a', 'b'),
        )
        with pytest.raises(InvalidInputError):
            decompose(z)

    def test_non_finite_standardized_matrix(self):
        z = StandardizedMatrix(
            values=np.array([[np.nan, 1.0], [np.nan, -1.0], [np.nan, 0.0]]),
            mean=np.zeros(2),
            std=np.ones(2),
            columns=('a', 'b'),
        )
        with pytest.raises(InvalidInputError):
            decompose(z)


class TestPlainArrayInput:

    def test_centers_array_input(self, random_matrix):
        """A pre-scaled array is centered, then decomposed."""
        z = standardize(random_matrix)
        shifted = np.asarray(z.values) + 10.0
        a = decompose(z)
        b = decompose(shifted, columns=list(z.columns))
        np.testing.assert_allclose(a.components, b.components, atol=1e-10)
        np.testing.assert_allclose(a.scores, b.scores, atol=1e-9)
        assert b.columns == z.columns


class TestResultTables:
    """Frames handed to plotting collaborators."""

    def test_axis_labels(self, random_matrix):
        result = standardize_and_decompose(random_matrix)
        labels = result.axis_labels()
        assert len(labels) == 5
        assert re.fullmatch(r"PC1 \(\d+\.\d%\)", labels[0])
        assert labels[0] == f"PC1 ({100 * result.explained_ratio[0]:.1f}%)"
        assert result.axis_labels(n_components=2, decimals=2)[1].startswith('PC2 (')

    def test_loadings_frame(self, random_matrix):
        result = standardize_and_decompose(random_matrix, columns=list('abcde'))
        df = result.loadings_frame(n_components=2)
        assert df.columns == ['variable', 'PC1', 'PC2']
        assert df['variable'].to_list() == list('abcde')
        np.testing.assert_allclose(df['PC1'].to_numpy(), result.components[0])

    def test_scores_frame_with_labels(self, random_matrix):
        labels = ['A' if i % 2 else 'B' for i in range(60)]
        result = standardize_and_decompose(random_matrix, labels=labels)
        df = result.scores_frame(n_components=3, label_column='species')
        assert df.columns == ['row', 'species', 'PC1', 'PC2', 'PC3']
        assert df.height == 60
        assert df['species'].to_list() == labels

    def test_scores_frame_label_collision(self, random_matrix):
        """A label column may not shadow the row index or a score column."""
        labels = ['A'] * 60
        result = standardize_and_decompose(random_matrix, labels=labels)
        with pytest.raises(ValueError):
            result.scores_frame(label_column='row')
        with pytest.raises(ValueError):
            result.scores_frame(n_components=2, label_column='PC2')
        assert 'PC3' in result.scores_frame(n_components=2, label_column='PC3').columns

    def test_scores_frame_without_labels(self, random_matrix):
        df = standardize_and_decompose(random_matrix).scores_frame()
        assert 'group' not in df.columns

    def test_variance_frame(self, random_matrix):
        df = standardize_and_decompose(random_matrix).variance_frame()
        assert isinstance(df, pl.DataFrame)
        assert df['cumulative_ratio'][-1] == pytest.approx(1.0)
        assert df['component'].to_list() == ['PC1', 'PC2', 'PC3', 'PC4', 'PC5']

    def test_bad_n_components(self, random_matrix):
        result = standardize_and_decompose(random_matrix)
        with pytest.raises(ValueError):
            result.loadings_frame(n_components=6)

    def test_effective_dim_bounds(self, random_matrix):
        result = standardize_and_decompose(random_matrix)
        assert 1.0 <= result.effective_dim <= 5.0

    def test_to_dict(self, random_matrix):
        d = standardize_and_decompose(random_matrix).to_dict()
        assert d['method'] == 'eigh'
        assert len(d['eigenvalues']) == 5
        assert d['warnings'] == []


class TestAgainstScikitLearn:
    """Cross-check with sklearn.decomposition.PCA (up to sign)."""

    def test_matches_sklearn(self, penguin_matrix):
        sk = pytest.importorskip('sklearn.decomposition')

        z = standardize(penguin_matrix)
        ours = decompose(z)
        ref = sk.PCA().fit(np.asarray(z.values))

        np.testing.assert_allclose(ours.eigenvalues, ref.explained_variance_, rtol=1e-8)
        np.testing.assert_allclose(ours.explained_ratio, ref.explained_variance_ratio_, rtol=1e-8)
        np.testing.assert_allclose(
            np.abs(ours.components), np.abs(ref.components_), atol=1e-8
        )
