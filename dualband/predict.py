"""
Stage 3: Estimate derivation

Predictions and marginal effects from a fitted OLS model, each with its
standard error. Both are linear combinations w'beta of the coefficients,
so both share one formula for the standard error:

    SE(w'beta) = sqrt(w' V w)

For predictions w is the row of term values at a grid point. For the
marginal effect of x, w is the gradient of the terms with respect to x;
with an x1:x2 interaction the effect of x1 is b_x1 + b_x1x2 * x2 with
variance V_11 + x2^2 V_33 + 2 x2 V_13.
"""

import logging

import numpy as np
import pandas as pd

from . import config
from .ols import term_columns
from .utils import EstimationError, quad_form_se

logger = logging.getLogger(__name__)


def linear_combination(model, weights):
    """
    Estimate and standard error of w'beta.

    Parameters
    ----------
    model : dict
        Output of :func:`dualband.ols.fit`.
    weights : array_like, shape (k,) or (m, k)
        One weight vector per linear combination.

    Returns
    -------
    estimate : ndarray, shape (m,)
    std_error : ndarray, shape (m,)
    """
    W = np.atleast_2d(np.asarray(weights, dtype=float))
    if W.shape[1] != len(model["beta"]):
        raise EstimationError(
            "evaluate", f"weights have {W.shape[1]} entries but the model "
                        f"has {len(model['beta'])} coefficients"
        )
    return W @ model["beta"], quad_form_se(W, model["vcov"])


def _check_variable(model, var):
    if var not in model["variables"]:
        raise ValueError(f"{var!r} is not a covariate of {model['formula']!r}; "
                         f"choose from {model['variables']}")


def make_grid(model, varying, n_points=config.GRID_POINTS, at=None):
    """
    Evenly spaced values of one covariate, others held fixed.

    Parameters
    ----------
    model : dict
        Fitted model; supplies the observed range and sample means.
    varying : str
        Covariate swept from its observed minimum to its maximum.
    n_points : int
        Number of grid points (at least 2).
    at : dict or None
        Values for the non-varying covariates. Unlisted ones are held at
        their sample mean.

    Returns
    -------
    DataFrame with one column per model covariate; ``attrs["varying"]``
    names the swept column.
    """
    _check_variable(model, varying)
    if n_points < 2:
        raise ValueError(f"n_points must be at least 2, got {n_points}")
    at = {} if at is None else dict(at)
    for var in at:
        _check_variable(model, var)

    lo, hi = model["ranges"][varying]
    grid = pd.DataFrame({varying: np.linspace(lo, hi, n_points)})
    for var in model["variables"]:
        if var != varying:
            grid[var] = at.get(var, model["means"][var])
    grid = grid[model["variables"]]
    grid.attrs["varying"] = varying
    return grid


def predict(model, grid):
    """
    Predicted outcome and its standard error at each grid row.

    Returns
    -------
    DataFrame: the grid columns plus ``estimate`` and ``std_error``.
    """
    missing = [v for v in model["variables"] if v not in grid.columns]
    if missing:
        raise EstimationError("evaluate", f"grid lacks covariates {missing}")
    W = term_columns(grid, model["terms"], len(grid))
    estimate, std_error = linear_combination(model, W)

    out = grid.copy()
    out["estimate"] = estimate
    out["std_error"] = std_error
    out.attrs.update(grid.attrs)
    out.attrs["quantity"] = "prediction"
    out.attrs["outcome"] = model["outcome"]
    return out


def gradient(model, varying, grid):
    """
    Derivative of each term with respect to ``varying`` at every grid row.

    A term containing ``varying`` m times contributes
    m * varying^(m-1) * (product of its other variables); terms without
    it contribute zero.

    Returns
    -------
    ndarray, shape (len(grid), k)
    """
    n = len(grid)
    cols = []
    for term in model["terms"]:
        power = term.count(varying)
        if power == 0:
            cols.append(np.zeros(n))
            continue
        col = power * np.ones(n)
        others = list(term)
        others.remove(varying)
        for v in others:
            col = col * grid[v].to_numpy(dtype=float)
        cols.append(col)
    return np.column_stack(cols)


def marginal_effect(model, varying, conditioning=None,
                    n_points=config.GRID_POINTS, at=None, grid=None):
    """
    Marginal effect d E[y] / d varying with its standard error.

    Parameters
    ----------
    model : dict
        Fitted model.
    varying : str
        Covariate whose effect is computed.
    conditioning : str or None
        Covariate the effect is evaluated across. ``None`` sweeps
        ``varying`` itself; without an interaction the effect is then
        flat and equal to its slope.
    n_points, at :
        Passed to :func:`make_grid` when ``grid`` is not given.
    grid : DataFrame or None
        Explicit evaluation points.

    Returns
    -------
    DataFrame: the grid columns plus ``estimate`` and ``std_error``;
    ``attrs`` carries ``effect_of`` and ``varying`` (the swept column).
    """
    try:
        _check_variable(model, varying)
        if conditioning is not None:
            _check_variable(model, conditioning)
    except ValueError as exc:
        raise EstimationError("evaluate", str(exc)) from exc
    if grid is None:
        grid = make_grid(model, conditioning or varying, n_points=n_points, at=at)
    missing = [v for v in model["variables"] if v not in grid.columns]
    if missing:
        raise EstimationError("evaluate", f"grid lacks covariates {missing}")

    estimate, std_error = linear_combination(model, gradient(model, varying, grid))
    out = grid.copy()
    out["estimate"] = estimate
    out["std_error"] = std_error
    out.attrs.update(grid.attrs)
    out.attrs["quantity"] = "marginal_effect"
    out.attrs["effect_of"] = varying
    logger.debug("Marginal effect of %s over %s at %d points",
                 varying, out.attrs.get("varying"), len(out))
    return out
