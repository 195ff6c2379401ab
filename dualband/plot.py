"""
Stage 4b: Rendering

Draws estimate tables as a central line inside two shaded bands. The
wide band goes down first with low opacity and the narrow band on top
of it with higher opacity, so the narrow band stays visible wherever the
two overlap. Several tables compose into one faceted figure.
"""

from math import ceil

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .bands import BAND_COLUMNS, band_labels, dual_bands
from .ols import coefficient_table

# -- Style --
STYLE = {
    "figure.facecolor": "#FAFAFA", "axes.facecolor": "#FAFAFA",
    "axes.edgecolor": "#333", "axes.labelcolor": "#222",
    "xtick.color": "#555", "ytick.color": "#555", "text.color": "#222",
    "font.size": 10, "axes.titlesize": 12, "axes.titleweight": "bold",
    "axes.grid": True, "grid.alpha": 0.25, "grid.color": "#AAA", "figure.dpi": 140,
}
CB, CR, CY = "#2171B5", "#DE2D26", "#888"

# (narrow, wide) fill opacity
BAND_ALPHAS = (0.40, 0.15)


def apply_style():
    """Apply the tutorial's matplotlib look."""
    plt.rcParams.update(STYLE)


def _default_ylabel(attrs):
    if attrs.get("quantity") == "marginal_effect":
        return f"Marginal effect of {attrs.get('effect_of', '?')}"
    if attrs.get("quantity") == "prediction":
        return f"Predicted {attrs.get('outcome', 'outcome')}"
    return "Estimate"


def plot_dual_band(table, ax=None, x=None, color=CB, alphas=BAND_ALPHAS,
                   reference=None, labels=None, xlabel=None, ylabel=None,
                   title=None, legend=True):
    """
    Plot one estimate table with its narrow and wide band.

    Parameters
    ----------
    table : DataFrame
        Output of :func:`dualband.bands.dual_bands`.
    ax : Axes or None
        Target axes; the current axes when None.
    x : str or None
        Column on the horizontal axis; defaults to ``attrs["varying"]``.
    color : str
        Colour shared by the line and both bands.
    alphas : tuple of float
        (narrow, wide) fill opacity; narrow should be the more opaque.
    reference : float or None
        Draw a dashed horizontal line here (0 for marginal effects).
    labels : tuple of str or None
        (narrow, wide) legend labels; derived from the table by default.

    Returns
    -------
    Axes
    """
    missing = [c for c in BAND_COLUMNS if c not in table.columns]
    if missing:
        raise ValueError(f"table lacks band columns {missing}; run dual_bands first")
    x = table.attrs.get("varying") if x is None else x
    if x is None or x not in table.columns:
        raise ValueError(f"cannot find x column {x!r} in table")

    ax = plt.gca() if ax is None else ax
    narrow_label, wide_label = band_labels(table) if labels is None else labels
    alpha_narrow, alpha_wide = alphas
    t = table.sort_values(x)
    xs = t[x].to_numpy()

    ax.fill_between(xs, t["lower_wide"], t["upper_wide"], color=color,
                    alpha=alpha_wide, lw=0, zorder=1, label=wide_label)
    ax.fill_between(xs, t["lower_narrow"], t["upper_narrow"], color=color,
                    alpha=alpha_narrow, lw=0, zorder=2, label=narrow_label)
    ax.plot(xs, t["estimate"], color=color, lw=2, zorder=3, label="Estimate")
    if reference is not None:
        ax.axhline(reference, color=CY, ls="--", lw=1, zorder=0)

    ax.set_xlabel(x if xlabel is None else xlabel)
    ax.set_ylabel(_default_ylabel(table.attrs) if ylabel is None else ylabel)
    if title is not None:
        ax.set_title(title)
    if legend:
        ax.legend(fontsize=8)
    return ax


def stack_estimates(tables):
    """
    Reshape several band tables into one long table for faceting.

    Parameters
    ----------
    tables : dict
        Maps a facet name to a table with ``attrs["varying"]`` set.

    Returns
    -------
    DataFrame with columns facet, variable, value, estimate, std_error
    and any band columns, in facet order. ``attrs["band_labels"]`` maps
    each facet to its (narrow, wide) legend labels; ``levels`` and
    ``critical_values`` are kept only when every table shares them.
    """
    frames = []
    for name, table in tables.items():
        x = table.attrs.get("varying")
        if x is None:
            raise ValueError(f"table {name!r} does not record its varying column")
        cols = ["estimate", "std_error"] + [c for c in BAND_COLUMNS if c in table.columns]
        long = table[cols].copy()
        long.insert(0, "value", table[x].to_numpy())
        long.insert(0, "variable", x)
        long.insert(0, "facet", name)
        frames.append(long)
    if not frames:
        raise ValueError("no tables to stack")
    stacked = pd.concat(frames, ignore_index=True)
    stacked.attrs = {}
    for key in ("critical_values", "levels"):
        values = {table.attrs.get(key) for table in tables.values()}
        if len(values) == 1 and None not in values:
            stacked.attrs[key] = values.pop()
    stacked.attrs["band_labels"] = {
        name: band_labels(table) if set(BAND_COLUMNS) <= set(table.columns) else None
        for name, table in tables.items()
    }
    return stacked


def plot_faceted(tables, ncols=2, color=CB, reference=None, ylabel=None,
                 suptitle=None, panel_size=(5.0, 4.0)):
    """
    One dual-band panel per table, wrapped into a grid.

    Parameters
    ----------
    tables : dict
        Facet name -> band table (as produced by ``dual_bands``).
    ncols : int
        Number of columns before wrapping.
    reference : float or None
        Horizontal reference line drawn on every panel.
    ylabel : str or None
        Shared y label; derived from the first table when None.

    Returns
    -------
    fig : Figure
    axes : ndarray of Axes, shape (nrows, ncols)
    """
    stacked = stack_estimates(tables)
    facets = list(tables)
    ncols = min(ncols, len(facets))
    nrows = ceil(len(facets) / ncols)
    fig, axes = plt.subplots(
        nrows=nrows, ncols=ncols,
        figsize=(panel_size[0] * ncols, panel_size[1] * nrows),
        squeeze=False,
    )
    if ylabel is None:
        ylabel = _default_ylabel(next(iter(tables.values())).attrs)

    labels = stacked.attrs["band_labels"]
    shared_labels = len(set(labels.values())) == 1
    for i, (facet, ax) in enumerate(zip(facets, axes.flat)):
        panel = stacked[stacked["facet"] == facet]
        plot_dual_band(panel, ax=ax, x="value", color=color, reference=reference,
                       labels=labels[facet], xlabel=panel["variable"].iloc[0],
                       ylabel=ylabel, title=facet, legend=i == 0 or not shared_labels)
    for ax in axes.flat[len(facets):]:
        ax.axis("off")

    if suptitle is not None:
        fig.suptitle(suptitle, fontweight="bold")
    fig.tight_layout()
    return fig, axes


def plot_coefficients(model, c_low=None, c_high=None, levels=None,
                      include_intercept=False, truth=None, ax=None, color=CB):
    """
    Dot-and-whisker chart of the fitted coefficients with two intervals.

    The narrow interval is the thick whisker and the wide interval the
    thin one. ``truth`` (name -> value) adds the data-generating values.
    """
    coefs = coefficient_table(model)
    if not include_intercept:
        coefs = coefs.drop(index="(Intercept)", errors="ignore")
    table = dual_bands(coefs, c_low=c_low, c_high=c_high, levels=levels)
    narrow_label, wide_label = band_labels(table)

    ax = plt.gca() if ax is None else ax
    pos = np.arange(len(table))[::-1]
    ax.hlines(pos, table["lower_wide"], table["upper_wide"], color=color,
              lw=1.5, label=wide_label)
    ax.hlines(pos, table["lower_narrow"], table["upper_narrow"], color=color,
              lw=5, alpha=0.7, label=narrow_label)
    ax.plot(table["estimate"], pos, "o", color=color, ms=6, label="Estimate")
    if truth is not None:
        true_vals = [truth.get(name, np.nan) for name in table.index]
        ax.plot(true_vals, pos, "x", color=CR, ms=8, mew=2, label="True value")
    ax.axvline(0, color=CY, ls="--", lw=1)
    ax.set_yticks(pos)
    ax.set_yticklabels(table.index)
    ax.set_xlabel("Coefficient")
    ax.legend(fontsize=8)
    return ax


def plot_data(data, outcome="y", covariates=None, color=CB):
    """Scatter the outcome against each covariate; returns ``(fig, axes)``."""
    covariates = [c for c in data.columns if c != outcome] if covariates is None else covariates
    fig, axes = plt.subplots(1, len(covariates), figsize=(5 * len(covariates), 4),
                             squeeze=False)
    for var, ax in zip(covariates, axes.flat):
        ax.scatter(data[var], data[outcome], s=14, alpha=0.7, color=color)
        ax.set_xlabel(var)
        ax.set_ylabel(outcome)
    fig.tight_layout()
    return fig, axes
