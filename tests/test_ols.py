import numpy as np
import pandas as pd
import pytest

from dualband import config
from dualband.ols import coef, coefficient_table, design_matrix, fit, parse_formula
from dualband.utils import EstimationError, ols_fit


@pytest.mark.parametrize(
    ("formula", "expected"),
    [
        ("y ~ x1 + x2", [(), ("x1",), ("x2",)]),
        ("y ~ x1 + x2 + x1:x2", [(), ("x1",), ("x2",), ("x1", "x2")]),
        ("y ~ x1 * x2", [(), ("x1",), ("x2",), ("x1", "x2")]),
        ("y ~ x1 * x2 + x2:x1 + x1", [(), ("x1",), ("x2",), ("x1", "x2")]),
        ("y ~ x1 - 1", [("x1",)]),
        ("y ~ 0 + x1 + x2", [("x1",), ("x2",)]),
        ("y~x1", [(), ("x1",)]),
    ],
)
def test_parse_formula(formula, expected):
    outcome, terms = parse_formula(formula)
    assert outcome == "y"
    assert terms == expected


@pytest.mark.parametrize(
    "formula",
    ["y x1", "y ~", "y ~ x1 +", "y ~ x1 - x2", "y ~ 3x", "y ~ x1 ~ x2", "~ x1", "y ~ 0"],
)
def test_malformed_formula_fails_at_fit_stage(formula):
    with pytest.raises(EstimationError) as info:
        parse_formula(formula)
    assert info.value.stage == "fit"
    assert str(info.value).startswith("[fit]")


def test_design_matrix_interaction_column(base_data):
    X = design_matrix(base_data, [(), ("x1",), ("x1", "x2")])
    np.testing.assert_allclose(X[:, 0], 1.0)
    np.testing.assert_allclose(X[:, 2], base_data["x1"] * base_data["x2"])


def test_fit_matches_lstsq(base_data, base_model):
    X = design_matrix(base_data, [(), ("x1",), ("x2",)])
    y = base_data["y"].to_numpy()
    b = np.linalg.lstsq(X, y, rcond=None)[0]
    np.testing.assert_allclose(base_model["beta"], b)
    np.testing.assert_allclose(base_model["se"], np.sqrt(np.diag(base_model["vcov"])))
    np.testing.assert_allclose(base_model["vcov"], base_model["vcov"].T)
    assert base_model["names"] == ["(Intercept)", "x1", "x2"]
    assert base_model["df_resid"] == len(base_data) - 3
    np.testing.assert_allclose(base_model["fitted"] + base_model["residuals"], y)


def test_base_model_recovers_true_coefficients(base_data, base_model):
    truth = np.array([base_data.attrs["truth"][name] for name in base_model["names"]])
    assert np.all(np.abs(base_model["beta"] - truth) < 4 * base_model["se"])


def test_interaction_model_recovers_interaction(interaction_model):
    b, se = coef(interaction_model, "x1:x2")
    assert abs(b - config.BETA_X1X2) < 4 * se
    assert b < 0


def test_coef_accepts_reordered_interaction(interaction_model):
    assert coef(interaction_model, "x2:x1") == coef(interaction_model, "x1:x2")
    with pytest.raises(KeyError):
        coef(interaction_model, "x3")


def test_means_and_ranges_recorded(base_data, base_model):
    assert base_model["variables"] == ["x1", "x2"]
    assert base_model["means"]["x1"] == pytest.approx(base_data["x1"].mean())
    assert base_model["ranges"]["x2"] == (base_data["x2"].min(), base_data["x2"].max())


def test_collinear_covariates_fail_at_fit_stage(base_data):
    data = base_data.assign(x3=2 * base_data["x1"])
    with pytest.raises(EstimationError) as info:
        fit(data, "y ~ x1 + x3")
    assert info.value.stage == "fit"
    assert "rank-deficient" in str(info.value)


def test_too_few_observations_fail(base_data):
    with pytest.raises(EstimationError, match="degrees of freedom"):
        fit(base_data.head(3), "y ~ x1 + x2")


def test_missing_values_fail(base_data):
    data = base_data.copy()
    data.loc[0, "x1"] = np.nan
    with pytest.raises(EstimationError, match="non-finite"):
        fit(data, "y ~ x1 + x2")


@pytest.mark.parametrize("formula", ["y ~ x1 + x9", "z ~ x1"])
def test_unknown_variables_fail(base_data, formula):
    with pytest.raises(EstimationError):
        fit(base_data, formula)


def test_ols_fit_without_intercept():
    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    y = np.array([2.0, 4.1, 5.9, 8.0])
    b, vcov, e, s2 = ols_fit(X, y)
    assert b[0] == pytest.approx((X[:, 0] @ y) / (X[:, 0] @ X[:, 0]))
    assert vcov.shape == (1, 1)
    assert s2 == pytest.approx((e @ e) / 3)


def test_coefficient_table(base_model):
    table = coefficient_table(base_model)
    assert list(table.columns) == ["estimate", "std_error", "t_value", "p_value"]
    assert list(table.index) == base_model["names"]
    np.testing.assert_allclose(table["t_value"], table["estimate"] / table["std_error"])
    assert table["p_value"].between(0, 1).all()
    # x2 has a large true slope relative to its noise
    assert table.loc["x2", "p_value"] < 1e-6


def test_r2_perfect_fit():
    data = pd.DataFrame({"x1": [0.0, 1.0, 2.0, 3.0, 4.0], "x2": [1.0, 0.0, 3.0, 1.0, 2.0]})
    data["y"] = 1 + 2 * data["x1"] - data["x2"]
    model = fit(data, "y ~ x1 + x2")
    assert model["r2"] == pytest.approx(1.0)
    np.testing.assert_allclose(model["beta"], [1, 2, -1], atol=1e-10)
