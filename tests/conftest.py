"""
Shared fixtures for the local correlation test suite.

Datasets are generated from seeded numpy Generators so every run sees
the same samples.
"""

import numpy as np
import pytest

from local_correlation.core.observers import BootstrapObserver


@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(12345)


@pytest.fixture
def identity_data():
    """x = y = 1..10."""
    values = np.arange(1.0, 11.0)
    return values.copy(), values.copy()


@pytest.fixture
def linear_data(rng):
    """y = 2x + 1 over 200 normal x values."""
    x = rng.normal(0.0, 1.0, size=200)
    return x, 2.0 * x + 1.0


@pytest.fixture
def independent_data(rng):
    """Two independent standard normal samples of 400 points."""
    return rng.normal(size=400), rng.normal(size=400)


@pytest.fixture
def correlated_data(rng):
    """Bivariate normal sample with correlation 0.6."""
    cov = [[1.0, 0.6], [0.6, 1.0]]
    sample = rng.multivariate_normal([0.0, 0.0], cov, size=300)
    return sample[:, 0], sample[:, 1]


@pytest.fixture
def csv_file(tmp_path, correlated_data):
    """CSV file with two numeric columns and a few unusable rows."""
    x, y = correlated_data
    lines = ["income,spending,label"]
    lines += [f"{a:.6f},{b:.6f},row{i}" for i, (a, b) in enumerate(zip(x, y))]
    lines += ["n/a,1.0,bad", "2.0,,missing"]
    path = tmp_path / "data.csv"
    path.write_text("\n".join(lines) + "\n")
    return path


class RecordingObserver(BootstrapObserver):
    """Observer that records every event it receives."""

    def __init__(self):
        self.events = []

    def on_bootstrap_start(self, iterations, n_samples, grid_shape):
        self.events.append(("start", iterations, n_samples, grid_shape))

    def on_bootstrap_progress(self, fraction, completed_iterations):
        self.events.append(("progress", fraction, completed_iterations))

    def on_bootstrap_complete(self, result):
        self.events.append(("complete", result.iterations))

    def on_error(self, error, context):
        self.events.append(("error", type(error).__name__, context))

    def progress_values(self):
        return [event[1] for event in self.events if event[0] == "progress"]


@pytest.fixture
def recording_observer():
    """Observer recording bootstrap events in order."""
    return RecordingObserver()
