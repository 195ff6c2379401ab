"""
Stage 4a: Dual-band composition

Turns an estimate table into two nested confidence bands around the same
point estimate:

    narrow:  estimate +/- c_low  * std_error
    wide:    estimate +/- c_high * std_error

with c_low <= c_high, so the wide band always contains the narrow one.
"""

import numpy as np
from scipy import stats

from . import config

BAND_COLUMNS = ("lower_narrow", "upper_narrow", "lower_wide", "upper_wide")


def critical_value(level, df=None):
    """
    Two-sided critical value for a confidence level.

    Parameters
    ----------
    level : float
        Confidence level in (0, 1), e.g. 0.90.
    df : float or None
        Degrees of freedom. ``None`` uses the standard normal, otherwise
        Student's t.

    Returns
    -------
    float
        E.g. 1.645 for 0.90 and 2.576 for 0.99 under the normal.
    """
    if not 0 < level < 1:
        raise ValueError(f"confidence level must lie in (0, 1), got {level}")
    q = (1 + level) / 2
    if df is None:
        return float(stats.norm.ppf(q))
    if df <= 0:
        raise ValueError(f"degrees of freedom must be positive, got {df}")
    return float(stats.t.ppf(q, df))


def critical_values(levels=config.DEFAULT_LEVELS, df=None):
    """Critical values ``(c_low, c_high)`` for a (narrow, wide) pair of levels."""
    low, high = levels
    if low > high:
        raise ValueError(f"levels must be ordered (narrow, wide), got {levels}")
    return critical_value(low, df), critical_value(high, df)


def dual_bands(table, c_low=None, c_high=None, levels=None, df=None):
    """
    Add the narrow and wide band bounds to an estimate table.

    Give either both critical values or a pair of confidence levels; with
    neither, ``config.DEFAULT_LEVELS`` is used.

    Parameters
    ----------
    table : DataFrame
        Must hold ``estimate`` and ``std_error``.
    c_low, c_high : float or None
        Critical values of the narrow and wide band, 0 <= c_low <= c_high.
    levels : tuple of float or None
        (narrow, wide) confidence levels, converted with
        :func:`critical_values`.
    df : float or None
        Degrees of freedom used when converting levels.

    Returns
    -------
    DataFrame
        Copy of ``table`` with lower_narrow, upper_narrow, lower_wide,
        upper_wide. ``attrs["critical_values"]`` holds (c_low, c_high) and
        ``attrs["levels"]`` the levels when they were given.
    """
    missing = [c for c in ("estimate", "std_error") if c not in table.columns]
    if missing:
        raise ValueError(f"estimate table lacks {missing}; bands need a point "
                         "estimate and its standard error")

    if c_low is None and c_high is None:
        levels = config.DEFAULT_LEVELS if levels is None else tuple(levels)
        c_low, c_high = critical_values(levels, df)
    elif c_low is None or c_high is None:
        raise ValueError("give both c_low and c_high, or neither")
    elif levels is not None:
        raise ValueError("give critical values or levels, not both")

    for name, c in (("c_low", c_low), ("c_high", c_high)):
        if not np.isfinite(c) or c < 0:
            raise ValueError(f"{name} must be finite and non-negative, got {c}")
    if c_low > c_high:
        raise ValueError(f"c_low ({c_low}) must not exceed c_high ({c_high})")

    se = table["std_error"].to_numpy(dtype=float)
    if np.any(~np.isfinite(se)) or np.any(se < 0):
        raise ValueError("std_error must be finite and non-negative")
    est = table["estimate"].to_numpy(dtype=float)

    out = table.copy()
    out["lower_narrow"] = est - c_low * se
    out["upper_narrow"] = est + c_low * se
    out["lower_wide"] = est - c_high * se
    out["upper_wide"] = est + c_high * se
    out.attrs.update(table.attrs)
    out.attrs["critical_values"] = (float(c_low), float(c_high))
    if levels is not None:
        out.attrs["levels"] = tuple(levels)
    else:
        out.attrs.pop("levels", None)
    return out


def band_labels(table):
    """Legend labels for the narrow and wide band of a band table."""
    if "levels" in table.attrs:
        return tuple(f"{100 * lv:g}% CI" for lv in table.attrs["levels"])
    c_low, c_high = table.attrs.get("critical_values", (None, None))
    if c_low is None:
        return "narrow band", "wide band"
    return f"+/-{c_low:.3g} SE", f"+/-{c_high:.3g} SE"
