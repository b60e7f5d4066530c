"""
Tests for simulate_dataset.
"""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from tests.config import MOMENT_RTOL, N_SMALL, SEED
from timbersim import (
    AsymptoticMomentSampler,
    SubsampleDefinition,
    build_basis,
    build_grouped_basis,
    default_simbase,
    simulate_dataset,
)
from timbersim.core.dataset import INDEX_COLUMN
from timbersim.errors import InvalidSubsampleDefinitionError


class TestDefaults:
    """Built-in subsamples and basis."""

    def test_columns(self):
        data = simulate_dataset(n=N_SMALL, random_seed=SEED)
        assert len(data) == N_SMALL
        expected = [INDEX_COLUMN, "country", "subsample", "loadtype", "f", "E", "rho", "ip_f", "E_dyn", "ip_rho", "E_dyn_u"]
        assert list(data.columns) == expected
        assert not data.isna().any().any()

    def test_rows_grouped_by_definition(self):
        data = simulate_dataset(n=N_SMALL, random_seed=SEED)
        assert data[INDEX_COLUMN].is_monotonic_increasing
        assert data.groupby("subsample").size().tolist() == [50, 50, 50, 50]

    def test_strength_positive(self):
        data = simulate_dataset(n=N_SMALL, random_seed=SEED)
        assert np.all(data["f"] > 0)

    def test_reproducible(self):
        a = simulate_dataset(n=N_SMALL, random_seed=SEED)
        b = simulate_dataset(n=N_SMALL, random_seed=SEED)
        pd.testing.assert_frame_equal(a, b)

    def test_unseeded_runs_differ(self):
        a = simulate_dataset(n=N_SMALL)
        b = simulate_dataset(n=N_SMALL)
        assert not np.allclose(a["f"], b["f"])

    def test_seed_matters(self):
        a = simulate_dataset(n=N_SMALL, random_seed=SEED)
        b = simulate_dataset(n=N_SMALL, random_seed=SEED + 1)
        assert not np.allclose(a["f"], b["f"])


class TestAnchors:
    """Anchor moments per definition."""

    def test_exact_moments_per_definition(self, two_subsamples):
        data = simulate_dataset(two_subsamples, n=301, random_seed=SEED)
        for i, definition in enumerate(two_subsamples):
            rows = data[data[INDEX_COLUMN] == i]
            assert (rows["country"] == definition.keys["country"]).all()
            for name, (mean, sd) in definition.targets.items():
                assert rows[name].mean() == pytest.approx(mean, rel=MOMENT_RTOL)
                assert rows[name].std(ddof=1) == pytest.approx(sd, rel=MOMENT_RTOL)

    def test_asymptotic_sampler(self, two_subsamples):
        data = simulate_dataset(two_subsamples, n=3, random_seed=SEED, sampler=AsymptoticMomentSampler())
        assert len(data) == 3

    def test_anchor_outside_basis(self):
        definitions = [SubsampleDefinition(keys={"country": "AT"}, targets={"E": (11500.0, 2400.0), "moisture": (12.0, 1.5)})]
        data = simulate_dataset(definitions, n=50, random_seed=SEED)
        assert data["moisture"].mean() == pytest.approx(12.0, rel=MOMENT_RTOL)
        assert "ip_f" in data.columns

    def test_anchor_transform_override(self):
        definitions = [SubsampleDefinition(keys={}, targets={"E": (11500.0, 2400.0)})]
        data = simulate_dataset(definitions, n=500, random_seed=SEED, anchor_transforms={"E": "log"})
        assert data["E"].std() == pytest.approx(2400.0, rel=MOMENT_RTOL)
        assert stats.skew(data["E"]) > 0

    def test_anchor_transform_for_non_anchor(self, two_subsamples):
        with pytest.raises(ValueError, match="non-anchor"):
            simulate_dataset(two_subsamples, n=100, anchor_transforms={"ip_f": "log"})

    def test_log_anchor_with_negative_mean(self):
        definitions = [SubsampleDefinition(keys={}, targets={"f": (-5.0, 1.0)})]
        with pytest.raises(InvalidSubsampleDefinitionError, match="positive mean"):
            simulate_dataset(definitions, n=100)

    def test_unattainable_target(self):
        definitions = [SubsampleDefinition(keys={}, targets={"f": (1.0, 50.0)})]
        with pytest.raises(InvalidSubsampleDefinitionError, match="cannot be matched") as excinfo:
            simulate_dataset(definitions, n=3)
        assert excinfo.value.variable == "f"


class TestRowCounts:
    """Allocation of n over definitions."""

    def test_weights(self, two_subsamples):
        weighted = [
            SubsampleDefinition(keys=d.keys, targets=d.targets, weight=w) for d, w in zip(two_subsamples, [3.0, 1.0])
        ]
        data = simulate_dataset(weighted, n=400, random_seed=SEED)
        assert data.groupby(INDEX_COLUMN).size().tolist() == [300, 100]

    def test_n_none_uses_weights_as_counts(self, two_subsamples):
        counted = [SubsampleDefinition(keys=d.keys, targets=d.targets, weight=w) for d, w in zip(two_subsamples, [40, 25])]
        data = simulate_dataset(counted, n=None, random_seed=SEED)
        assert data.groupby(INDEX_COLUMN).size().tolist() == [40, 25]

    def test_too_few_rows_for_exact_sampler(self):
        with pytest.raises(InvalidSubsampleDefinitionError, match="at least 2") as excinfo:
            simulate_dataset(n=3, random_seed=SEED)
        assert excinfo.value.definition == 0

    def test_invalid_n(self, two_subsamples):
        with pytest.raises(InvalidSubsampleDefinitionError):
            simulate_dataset(two_subsamples, n=0)


class TestInputs:
    """Definition sources and basis types."""

    def test_definitions_from_dataframe(self):
        table = pd.DataFrame(
            {
                "country": ["AT", "DE"],
                "f_mean": [32.0, 38.0],
                "f_sd": [9.0, 10.0],
                "E_mean": [11000.0, 12000.0],
                "E_sd": [2300.0, 2500.0],
                "weight": [1.0, 3.0],
            }
        )
        data = simulate_dataset(table, n=200, random_seed=SEED)
        assert data.groupby("country").size().to_dict() == {"AT": 50, "DE": 150}
        assert "rho" in data.columns

    def test_custom_basis(self, reference_boards, two_subsamples):
        noise = np.random.RandomState(SEED).normal(0.0, 5.0, len(reference_boards))
        reference_boards["width"] = 100.0 + reference_boards["E"] / 100.0 + noise
        basis = build_basis(reference_boards, ["f", "E", "rho", "width"], transforms="f=log")
        data = simulate_dataset(two_subsamples, basis=basis, n=100, random_seed=SEED)
        assert list(data.columns)[-1] == "width"
        assert "ip_f" not in data.columns

    def test_grouped_basis(self, grouped_reference_boards):
        grouped = build_grouped_basis(grouped_reference_boards, ["country"], ["f", "E", "rho"], transforms={"f": "log"})
        definitions = [
            SubsampleDefinition(keys={"country": "AT"}, targets="f=32/9, E=11000/2300"),
            SubsampleDefinition(keys={"country": "DE"}, targets="f=38/10, E=12000/2500"),
        ]
        data = simulate_dataset(definitions, basis=grouped, n=200, random_seed=SEED)
        assert not data["rho"].isna().any()

    def test_grouped_basis_needs_key_columns(self, grouped_reference_boards, two_subsamples):
        grouped = build_grouped_basis(grouped_reference_boards, ["country"], ["f", "E", "rho"])
        definitions = [SubsampleDefinition(keys={"loadtype": "bending"}, targets=d.targets) for d in two_subsamples[:1]]
        with pytest.raises(InvalidSubsampleDefinitionError, match="keyed by country"):
            simulate_dataset(definitions, basis=grouped, n=100)

    def test_unused_basis_group_warns(self, grouped_reference_boards):
        grouped = build_grouped_basis(grouped_reference_boards, ["country"], ["f", "E", "rho"], transforms={"f": "log"})
        definitions = [SubsampleDefinition(keys={"country": "AT"}, targets="f=32/9")]
        with pytest.warns(UserWarning, match="unused"):
            simulate_dataset(definitions, basis=grouped, n=50, random_seed=SEED)

    def test_bad_basis_type(self, two_subsamples):
        with pytest.raises(TypeError):
            simulate_dataset(two_subsamples, basis="default")

    def test_default_basis_is_shared(self):
        assert default_simbase() is default_simbase()


class TestProgress:
    """Progress callback reporting."""

    def test_callback_sequence(self, two_subsamples):
        calls = []
        simulate_dataset(two_subsamples, n=100, random_seed=SEED, progress_callback=lambda c, t: calls.append((c, t)))
        assert calls == [(0, 200), (50, 200), (100, 200), (200, 200)]

    def test_large_run_throttled(self, two_subsamples):
        calls = []
        simulate_dataset(two_subsamples, n=5000, random_seed=SEED, progress_callback=lambda c, t: calls.append(c))
        assert calls == [0, 2500, 5000, 10000]

    def test_progress_does_not_change_result(self, two_subsamples):
        a = simulate_dataset(two_subsamples, n=100, random_seed=SEED, progress_callback=lambda c, t: None)
        b = simulate_dataset(two_subsamples, n=100, random_seed=SEED)
        pd.testing.assert_frame_equal(a, b)
