"""
Tests for simulate_conditionally.
"""

import numpy as np
import pandas as pd
import pytest

from tests.config import REF_E, REF_LOG_F, REF_RHO, SEED
from timbersim import SimulationBasis, build_grouped_basis, simulate_conditionally
from timbersim.errors import DomainError, NoObservedVariablesError, SingularCovarianceError
from timbersim.stats.gaussian import conditional_normal


@pytest.fixture
def observed_boards():
    return pd.DataFrame(
        {
            "board_id": [1, 2, 3, 4],
            "f": [28.0, 35.0, 41.0, 52.0],
            "E": [10100.0, 11500.0, 12700.0, 14900.0],
        }
    )


class TestOutputShape:
    """Columns, order and untouched input."""

    def test_appends_missing_variable(self, observed_boards, basis_3x3):
        result = simulate_conditionally(observed_boards, basis_3x3, random_state=SEED)
        assert list(result.columns) == ["board_id", "f", "E", "rho"]
        assert not result["rho"].isna().any()
        pd.testing.assert_series_equal(result["f"], observed_boards["f"])
        pd.testing.assert_series_equal(result["E"], observed_boards["E"])

    def test_input_not_modified(self, observed_boards, basis_3x3):
        before = observed_boards.copy()
        simulate_conditionally(observed_boards, basis_3x3, random_state=SEED)
        pd.testing.assert_frame_equal(observed_boards, before)

    def test_new_columns_in_basis_order(self, basis_3x3):
        result = simulate_conditionally(pd.DataFrame({"rho": [430.0, 470.0]}), basis_3x3, random_state=SEED)
        assert list(result.columns) == ["rho", "f", "E"]
        assert np.all(result["f"] > 0)

    def test_fills_missing_cells(self, observed_boards, basis_3x3):
        observed_boards.loc[2, "E"] = np.nan
        result = simulate_conditionally(observed_boards, basis_3x3, random_state=SEED)
        assert not result["E"].isna().any()
        assert result.loc[[0, 1, 3], "E"].tolist() == [10100.0, 11500.0, 14900.0]

    def test_all_observed_is_noop(self, basis_3x3):
        data = pd.DataFrame({"f": [30.0, 40.0], "E": [11000.0, 12000.0], "rho": [440.0, 460.0]})
        result = simulate_conditionally(data, basis_3x3, random_state=SEED)
        pd.testing.assert_frame_equal(result, data)

    def test_zero_rows_get_basis_columns(self, basis_3x3):
        result = simulate_conditionally(pd.DataFrame({"f": pd.Series([], dtype=float)}), basis_3x3, random_state=SEED)
        assert list(result.columns) == ["f", "E", "rho"]
        assert len(result) == 0
        assert result["rho"].dtype == float

    def test_dict_input(self, basis_3x3):
        result = simulate_conditionally({"f": [30.0], "E": [11000.0]}, basis_3x3, random_state=SEED)
        assert result.shape == (1, 3)


class TestReproducibility:
    """Seeded results repeat; rows depend on their own draw only."""

    def test_same_seed_same_result(self, observed_boards, basis_3x3):
        a = simulate_conditionally(observed_boards, basis_3x3, random_state=SEED)
        b = simulate_conditionally(observed_boards, basis_3x3, random_state=SEED)
        pd.testing.assert_frame_equal(a, b)

    def test_random_state_object(self, observed_boards, basis_3x3):
        a = simulate_conditionally(observed_boards, basis_3x3, random_state=np.random.RandomState(SEED))
        b = simulate_conditionally(observed_boards, basis_3x3, random_state=SEED)
        pd.testing.assert_frame_equal(a, b)

    def test_different_seed_differs(self, observed_boards, basis_3x3):
        a = simulate_conditionally(observed_boards, basis_3x3, random_state=SEED)
        b = simulate_conditionally(observed_boards, basis_3x3, random_state=SEED + 1)
        assert not np.allclose(a["rho"], b["rho"])

    def test_row_uses_own_draw(self, observed_boards, basis_3x3):
        full = simulate_conditionally(observed_boards, basis_3x3, random_state=SEED)
        head = simulate_conditionally(observed_boards.head(2), basis_3x3, random_state=SEED)
        np.testing.assert_allclose(full["rho"].to_numpy()[:2], head["rho"].to_numpy(), rtol=1e-12)

    def test_draw_matches_conditional_formula(self, basis_3x3):
        data = pd.DataFrame({"f": [30.0], "E": [11000.0]})
        result = simulate_conditionally(data, basis_3x3, random_state=SEED)

        B, cond_cov = conditional_normal(basis_3x3.covariance, [0, 1], [2])
        x_obs = np.array([np.log(30.0), 11000.0])
        z = np.random.RandomState(SEED).standard_normal((1, 1))
        expected = basis_3x3.mean[2] + (x_obs - basis_3x3.mean[:2]) @ B.T + z * np.sqrt(cond_cov[0, 0])
        assert result.loc[0, "rho"] == pytest.approx(expected[0, 0])


class TestConditionalDistribution:
    """Simulated values follow the conditional Gaussian."""

    def test_conditional_mean_and_sd(self, basis_3x3):
        n = 20000
        f_value, e_value = 42.0, 12500.0
        data = pd.DataFrame({"f": np.full(n, f_value), "E": np.full(n, e_value)})
        result = simulate_conditionally(data, basis_3x3, random_state=SEED)

        B, cond_cov = conditional_normal(basis_3x3.covariance, [0, 1], [2])
        x_obs = np.array([np.log(f_value), e_value])
        expected_mean = basis_3x3.mean[2] + B[0] @ (x_obs - basis_3x3.mean[:2])
        expected_sd = np.sqrt(cond_cov[0, 0])

        assert result["rho"].mean() == pytest.approx(expected_mean, abs=5 * expected_sd / np.sqrt(n))
        assert result["rho"].std() == pytest.approx(expected_sd, rel=0.03)

    def test_log_target_positive(self, basis_3x3):
        data = pd.DataFrame({"E": np.full(1000, REF_E[0]), "rho": np.full(1000, REF_RHO[0])})
        result = simulate_conditionally(data, basis_3x3, random_state=SEED)
        assert np.all(result["f"] > 0)
        assert np.log(result["f"]).mean() == pytest.approx(REF_LOG_F[0], abs=0.05)


class TestErrors:
    """Failure modes."""

    def test_no_overlapping_column(self, basis_3x3):
        with pytest.raises(NoObservedVariablesError, match="nothing to condition on"):
            simulate_conditionally(pd.DataFrame({"width": [100.0]}), basis_3x3)

    def test_row_without_observed_values(self, observed_boards, basis_3x3):
        observed_boards.loc[1, ["f", "E"]] = np.nan
        with pytest.raises(NoObservedVariablesError, match="Row 1"):
            simulate_conditionally(observed_boards, basis_3x3)

    def test_singular_observed_block(self, correlation_matrix_3x3):
        basis = SimulationBasis.from_moments(["f", "E", "rho"], [3.5, 11500.0, 450.0], [0.3, 0.0, 48.0], correlation_matrix_3x3)
        with pytest.raises(SingularCovarianceError, match="singular"):
            simulate_conditionally(pd.DataFrame({"f": [30.0], "E": [11500.0]}), basis)

    def test_domain_violation(self, observed_boards, basis_3x3):
        observed_boards.loc[0, "f"] = -1.0
        with pytest.raises(DomainError) as excinfo:
            simulate_conditionally(observed_boards, basis_3x3)
        assert excinfo.value.variable == "f"

    def test_non_numeric_basis_column(self, basis_3x3):
        with pytest.raises(ValueError, match="must be numeric"):
            simulate_conditionally(pd.DataFrame({"f": ["weak", "strong"]}), basis_3x3)

    def test_bad_basis_type(self, observed_boards):
        with pytest.raises(TypeError):
            simulate_conditionally(observed_boards, {"f": 1})


class TestGroupedBasis:
    """Per-row dispatch on group keys."""

    @pytest.fixture
    def grouped(self, grouped_reference_boards):
        return build_grouped_basis(grouped_reference_boards, ["country"], ["f", "E", "rho"], transforms={"f": "log"})

    def test_uses_group_basis(self, grouped):
        n = 4000
        data = pd.DataFrame({"country": ["AT"] * n + ["DE"] * n, "rho": np.full(2 * n, 450.0)})
        result = simulate_conditionally(data, grouped, random_state=SEED)
        at_mean = result.loc[result["country"] == "AT", "E"].mean()
        de_mean = result.loc[result["country"] == "DE", "E"].mean()
        assert de_mean - at_mean == pytest.approx(1500.0, abs=600.0)

    def test_group_rows_match_single_basis(self, grouped):
        data = pd.DataFrame({"country": ["DE", "DE"], "f": [30.0, 45.0]})
        via_group = simulate_conditionally(data, grouped, random_state=SEED)
        via_basis = simulate_conditionally(data.drop(columns="country"), grouped["DE"], random_state=SEED)
        np.testing.assert_allclose(via_group["E"], via_basis["E"])
        np.testing.assert_allclose(via_group["rho"], via_basis["rho"])

    def test_unmatched_group_left_missing(self, grouped):
        data = pd.DataFrame({"country": ["AT", "CH", "DE"], "f": [30.0, 35.0, 40.0]})
        with pytest.warns(UserWarning, match="No simulation basis"):
            result = simulate_conditionally(data, grouped, random_state=SEED)
        assert result.loc[1, ["E", "rho"]].isna().all()
        assert not result.loc[[0, 2], ["E", "rho"]].isna().any().any()
        assert result.loc[1, "f"] == 35.0

    def test_unmatched_group_without_observed_values(self, grouped):
        data = pd.DataFrame({"country": ["AT", "XX"], "f": [30.0, np.nan]})
        with pytest.warns(UserWarning, match="No simulation basis"):
            result = simulate_conditionally(data, grouped, random_state=SEED)
        assert result.loc[1, ["f", "E", "rho"]].isna().all()
        assert not result.loc[0, ["f", "E", "rho"]].isna().any()

    def test_matched_group_without_observed_values(self, grouped):
        data = pd.DataFrame({"country": ["XX", "AT"], "f": [30.0, np.nan]})
        with pytest.warns(UserWarning):
            with pytest.raises(NoObservedVariablesError, match="Row 1"):
                simulate_conditionally(data, grouped)

    def test_missing_group_column(self, grouped):
        with pytest.raises(ValueError, match="not found"):
            simulate_conditionally(pd.DataFrame({"f": [30.0]}), grouped)

    def test_incomplete_group_column(self, grouped):
        data = pd.DataFrame({"country": ["AT", None], "f": [30.0, 35.0]})
        with pytest.raises(ValueError, match="fully populated"):
            simulate_conditionally(data, grouped)
