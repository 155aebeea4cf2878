"""
Shared fixtures: synthetic penguin measurements.

Rows are drawn from a multivariate normal with the published means,
standard deviations and correlation structure of the Palmer penguins
measurements (bill length, bill depth, flipper length, body mass),
so the PCA structure matches the real dataset.
"""

import numpy as np
import polars as pl
import pytest


PENGUIN_COLUMNS = ['bill_length_mm', 'bill_depth_mm', 'flipper_length_mm', 'body_mass_g']

PENGUIN_MEANS = np.array([43.92, 17.15, 200.92, 4201.75])
PENGUIN_SDS = np.array([5.46, 1.97, 14.06, 801.95])
PENGUIN_CORR = np.array([
    [1.000, -0.235, 0.656, 0.595],
    [-0.235, 1.000, -0.584, -0.472],
    [0.656, -0.584, 1.000, 0.871],
    [0.595, -0.472, 0.871, 1.000],
])

SPECIES = ['Adelie', 'Chinstrap', 'Gentoo']


def make_penguin_matrix(n_rows=342, seed=1337):
    """(n_rows, 4) measurements plus species labels."""
    rng = np.random.default_rng(seed)
    cov = PENGUIN_CORR * np.outer(PENGUIN_SDS, PENGUIN_SDS)
    x = rng.multivariate_normal(PENGUIN_MEANS, cov, size=n_rows)
    x[:, :3] = np.round(x[:, :3], 1)
    x[:, 3] = np.round(x[:, 3] / 25.0) * 25.0
    labels = list(rng.choice(SPECIES, size=n_rows, p=[0.44, 0.20, 0.36]))
    return x, labels


def make_penguin_frame(n_rows=344, missing_rows=(3, 271), seed=1337):
    """Penguin-shaped table with a couple of incomplete rows, like the real export."""
    x, labels = make_penguin_matrix(n_rows=n_rows, seed=seed)
    data = {'species': labels}
    for j, name in enumerate(PENGUIN_COLUMNS):
        col = [float(v) for v in x[:, j]]
        for i in missing_rows:
            col[i] = None
        data[name] = col
    data['year'] = [2007 + (i % 3) for i in range(n_rows)]
    return pl.DataFrame(data)


@pytest.fixture
def penguin_matrix():
    x, _ = make_penguin_matrix()
    return x


@pytest.fixture
def penguin_labels():
    _, labels = make_penguin_matrix()
    return labels


@pytest.fixture
def penguin_frame():
    return make_penguin_frame()


@pytest.fixture
def penguin_csv(tmp_path, penguin_frame):
    path = tmp_path / 'penguins.csv'
    penguin_frame.write_csv(str(path))
    return path


@pytest.fixture
def random_matrix():
    np.random.seed(42)
    return np.random.randn(60, 5) * np.array([1.0, 10.0, 0.1, 3.0, 100.0]) + 7.0
