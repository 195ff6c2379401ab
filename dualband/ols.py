"""
Stage 2: Model fitting

OLS with R-style formulas. Supports main effects, interactions written
``x1:x2`` or expanded with ``x1 * x2``, and ``- 1`` / ``+ 0`` to drop the
intercept. The fitted model is a plain dict of arrays; downstream stages
only read from it.
"""

import itertools
import logging
import re

import numpy as np
import pandas as pd
from scipy import stats

from .utils import EstimationError, ols_fit

logger = logging.getLogger(__name__)

INTERCEPT_NAME = "(Intercept)"
_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")


def term_name(term):
    """Coefficient label of a term: ``(Intercept)``, ``x1`` or ``x1:x2``."""
    return ":".join(term) if term else INTERCEPT_NAME


def _check_name(name, formula):
    if not _NAME_RE.match(name):
        raise EstimationError("fit", f"cannot parse {name!r} in formula {formula!r}")
    return name


def parse_formula(formula):
    """
    Parse ``"y ~ x1 + x2 + x1:x2"`` into an outcome and a list of terms.

    Each term is a tuple of variable names; the intercept is the empty
    tuple and comes first when present. ``a * b`` expands to ``a + b +
    a:b``. Duplicate terms (including reordered interactions such as
    ``x2:x1``) are dropped.

    Returns
    -------
    outcome : str
    terms : list of tuple
    """
    if formula.count("~") != 1:
        raise EstimationError("fit", f"formula {formula!r} needs exactly one '~'")
    lhs, rhs = (side.strip() for side in formula.split("~"))
    outcome = _check_name(lhs, formula)
    if not rhs:
        raise EstimationError("fit", f"formula {formula!r} has no right-hand side")

    intercept = True
    terms = []
    pieces = re.split(r"\s*([+-])\s*", rhs)
    signs = ["+"] + pieces[1::2]
    for i, (sign, piece) in enumerate(zip(signs, pieces[0::2])):
        piece = piece.strip()
        if not piece:
            # a leading sign ("- 1 + x1") leaves an empty first piece
            if i > 0:
                raise EstimationError("fit", f"empty term in formula {formula!r}")
            continue
        if piece in ("0", "1"):
            intercept = sign == "+" and piece == "1"
            continue
        if sign == "-":
            raise EstimationError(
                "fit", f"only '- 1' may be subtracted, got '- {piece}' in {formula!r}"
            )
        if "*" in piece:
            factors = [_check_name(f.strip(), formula) for f in piece.split("*")]
            for size in range(1, len(factors) + 1):
                terms.extend(itertools.combinations(factors, size))
        else:
            terms.append(tuple(_check_name(v.strip(), formula) for v in piece.split(":")))

    seen = set()
    unique = []
    for term in terms:
        key = tuple(sorted(term))
        if key not in seen:
            seen.add(key)
            unique.append(term)
    if intercept:
        unique.insert(0, ())
    if not unique:
        raise EstimationError("fit", f"formula {formula!r} has no terms")
    return outcome, unique


def term_variables(terms):
    """Distinct variables used by the terms, in order of first appearance."""
    variables = []
    for term in terms:
        for v in term:
            if v not in variables:
                variables.append(v)
    return variables


def term_columns(values, terms, n):
    """
    Evaluate each term on a mapping of variable -> array.

    Returns an (n, k) matrix whose column j is the product of term j's
    variables (ones for the intercept).
    """
    cols = []
    for term in terms:
        col = np.ones(n)
        for v in term:
            col = col * np.asarray(values[v], dtype=float)
        cols.append(col)
    return np.column_stack(cols)


def design_matrix(data, terms):
    """
    Build the design matrix for ``terms`` from a DataFrame.

    Raises
    ------
    EstimationError
        If a variable is missing or any entry is non-finite.
    """
    missing = [v for v in term_variables(terms) if v not in data.columns]
    if missing:
        raise EstimationError("fit", f"variables not found in data: {missing}")
    X = term_columns(data, terms, len(data))
    if not np.all(np.isfinite(X)):
        raise EstimationError("fit", "design matrix contains missing or non-finite values")
    return X


def fit(data, formula):
    """
    Fit an OLS regression described by an R-style formula.

    Parameters
    ----------
    data : DataFrame
        Observation table.
    formula : str
        E.g. ``"y ~ x1 + x2"`` or ``"y ~ x1 * x2"``.

    Returns
    -------
    dict with keys:
        formula, outcome : the model specification
        terms     : list of term tuples (``()`` is the intercept)
        names     : coefficient labels
        beta      : coefficient estimates
        se        : homoskedastic standard errors
        vcov      : coefficient covariance matrix
        s2        : residual variance
        df_resid  : residual degrees of freedom n - k
        nobs      : number of observations
        residuals, fitted : per-observation arrays
        r2        : coefficient of determination
        variables : covariates used by the terms
        means     : covariate sample means (grid defaults)
        ranges    : covariate (min, max) (grid limits)
    """
    outcome, terms = parse_formula(formula)
    if outcome not in data.columns:
        raise EstimationError("fit", f"outcome {outcome!r} not found in data")
    X = design_matrix(data, terms)
    y = data[outcome].to_numpy(dtype=float)
    if not np.all(np.isfinite(y)):
        raise EstimationError("fit", f"outcome {outcome!r} contains missing or non-finite values")

    b, vcov, e, s2 = ols_fit(X, y)
    n, k = X.shape
    tss = np.sum((y - y.mean()) ** 2)
    variables = term_variables(terms)

    model = dict(
        formula=formula,
        outcome=outcome,
        terms=terms,
        names=[term_name(t) for t in terms],
        beta=b,
        se=np.sqrt(np.diag(vcov)),
        vcov=vcov,
        s2=s2,
        df_resid=n - k,
        nobs=n,
        residuals=e,
        fitted=X @ b,
        r2=1 - (e @ e) / tss if tss > 0 else np.nan,
        variables=variables,
        means={v: float(data[v].mean()) for v in variables},
        ranges={v: (float(data[v].min()), float(data[v].max())) for v in variables},
    )
    logger.info("Fitted %s on %d observations (R^2 = %.3f)", formula, n, model["r2"])
    return model


def coefficient_table(model):
    """
    Coefficient summary in the layout of a regression table.

    Returns
    -------
    DataFrame indexed by coefficient name with columns estimate,
    std_error, t_value, p_value (two-sided, t with df_resid).
    """
    t_value = model["beta"] / model["se"]
    p_value = 2 * stats.t.sf(np.abs(t_value), model["df_resid"])
    return pd.DataFrame(
        {
            "estimate": model["beta"],
            "std_error": model["se"],
            "t_value": t_value,
            "p_value": p_value,
        },
        index=pd.Index(model["names"], name="term"),
    )


def coef(model, name):
    """Point estimate and standard error of the coefficient called ``name``."""
    names = model["names"]
    if name not in names:
        # x2:x1 is the same coefficient as x1:x2
        wanted = sorted(name.split(":"))
        matches = [nm for nm in names if sorted(nm.split(":")) == wanted]
        if not matches:
            raise KeyError(f"no coefficient {name!r} in {names}")
        name = matches[0]
    j = names.index(name)
    return model["beta"][j], model["se"][j]
