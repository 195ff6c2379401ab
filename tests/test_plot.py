"""Plotting tests: mostly smoke tests that check the figures build.

To see the plots created during testing, replace plt.close("all") in
conftest.py with plt.show()
"""

import matplotlib.pyplot as plt
import pytest
from matplotlib.collections import PolyCollection

from dualband.bands import BAND_COLUMNS, dual_bands
from dualband.plot import (
    BAND_ALPHAS,
    plot_coefficients,
    plot_data,
    plot_dual_band,
    plot_faceted,
    stack_estimates,
)
from dualband.predict import make_grid, marginal_effect, predict


@pytest.fixture
def prediction_tables(base_model):
    return {
        f"Prediction over {var}": dual_bands(
            predict(base_model, make_grid(base_model, var, n_points=6))
        )
        for var in ("x1", "x2")
    }


def test_wide_band_drawn_below_narrow_band(prediction_tables):
    table = prediction_tables["Prediction over x1"]
    fig, ax = plt.subplots()
    plot_dual_band(table, ax=ax, reference=0)
    fills = [c for c in ax.collections if isinstance(c, PolyCollection)]
    assert len(fills) == 2
    wide, narrow = fills
    alpha_narrow, alpha_wide = BAND_ALPHAS
    assert wide.get_alpha() == alpha_wide
    assert narrow.get_alpha() == alpha_narrow
    assert wide.get_zorder() < narrow.get_zorder()
    labels = ax.get_legend_handles_labels()[1]
    assert sorted(labels) == ["90% CI", "99% CI", "Estimate"]
    assert ax.get_ylabel() == "Predicted y"
    assert ax.get_xlabel() == "x1"


def test_plot_dual_band_requires_bands(base_model):
    table = predict(base_model, make_grid(base_model, "x1"))
    with pytest.raises(ValueError, match="dual_bands"):
        plot_dual_band(table)


def test_plot_dual_band_marginal_effect_label(interaction_model):
    table = dual_bands(marginal_effect(interaction_model, "x1", conditioning="x2"))
    ax = plot_dual_band(table, title="Effect")
    assert ax.get_ylabel() == "Marginal effect of x1"
    assert ax.get_xlabel() == "x2"


def test_stack_estimates(prediction_tables):
    stacked = stack_estimates(prediction_tables)
    assert list(stacked.columns[:5]) == ["facet", "variable", "value", "estimate", "std_error"]
    assert set(BAND_COLUMNS) <= set(stacked.columns)
    assert len(stacked) == 12
    assert list(stacked["facet"].unique()) == list(prediction_tables)
    assert set(stacked["variable"]) == {"x1", "x2"}
    assert stacked.attrs["levels"] == (0.90, 0.99)


def test_stack_estimates_needs_varying_column(prediction_tables):
    table = prediction_tables["Prediction over x1"].copy()
    table.attrs = {}
    with pytest.raises(ValueError):
        stack_estimates({"a": table})


def test_plot_faceted_grid(prediction_tables, interaction_model):
    tables = dict(prediction_tables)
    tables["Effect of x1 across x2"] = dual_bands(
        marginal_effect(interaction_model, "x1", conditioning="x2", n_points=6)
    )
    fig, axes = plot_faceted(tables, ncols=2, reference=0, suptitle="All")
    assert axes.shape == (2, 2)
    assert [ax.get_title() for ax in axes.flat[:3]] == list(tables)
    assert not axes.flat[3].axison
    assert axes.flat[0].get_legend() is not None
    assert axes.flat[1].get_legend() is None


def test_plot_faceted_single_panel(prediction_tables):
    fig, axes = plot_faceted({"only": prediction_tables["Prediction over x2"]}, ncols=3)
    assert axes.shape == (1, 1)


def test_plot_coefficients(base_model, base_data):
    ax = plot_coefficients(base_model, levels=(0.90, 0.95), truth=base_data.attrs["truth"])
    ax.figure.canvas.draw()
    assert {t.get_text() for t in ax.get_yticklabels()} == {"x1", "x2"}


def test_plot_coefficients_with_intercept(base_model):
    ax = plot_coefficients(base_model, c_low=1.0, c_high=2.0, include_intercept=True)
    assert len(ax.get_yticks()) == 3


def test_plot_data(base_data):
    fig, axes = plot_data(base_data)
    assert axes.shape == (1, 2)


def test_faceting_keeps_levels_per_panel(base_model):
    estimates = predict(base_model, make_grid(base_model, "x1", n_points=4))
    tables = {
        "90/99": dual_bands(estimates, levels=(0.90, 0.99)),
        "90/95": dual_bands(estimates, levels=(0.90, 0.95)),
    }
    stacked = stack_estimates(tables)
    assert "levels" not in stacked.attrs
    assert "critical_values" not in stacked.attrs
    assert stacked.attrs["band_labels"] == {
        "90/99": ("90% CI", "99% CI"),
        "90/95": ("90% CI", "95% CI"),
    }

    fig, axes = plot_faceted(tables)
    for ax, wide in zip(axes.flat, ("99% CI", "95% CI")):
        assert ax.get_legend() is not None
        assert wide in ax.get_legend_handles_labels()[1]
