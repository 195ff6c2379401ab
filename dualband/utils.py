"""
Shared linear-algebra helpers used by the fitting and evaluation modules.
"""

import numpy as np


class EstimationError(RuntimeError):
    """
    Fatal failure while fitting a model or evaluating estimates from it.

    Parameters
    ----------
    stage : str
        Pipeline stage that failed, ``"fit"`` or ``"evaluate"``.
    message : str
        What went wrong.
    """

    def __init__(self, stage, message):
        self.stage = stage
        self.reason = message
        super().__init__(f"[{stage}] {message}")


def ols_fit(X, y):
    """
    OLS estimation via the normal equations.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Design matrix (should include a constant column if an intercept is desired).
    y : ndarray, shape (n,)
        Outcome vector.

    Returns
    -------
    b : ndarray, shape (k,)
        Coefficient estimates  beta_hat = (X'X)^{-1} X'y.
    vcov : ndarray, shape (k, k)
        Homoskedastic covariance matrix  s2 * (X'X)^{-1}.
    e : ndarray, shape (n,)
        Residuals  y - X @ b.
    s2 : float
        Estimated error variance  e'e / (n - k).

    Raises
    ------
    EstimationError
        If X has less than full column rank or leaves no residual
        degrees of freedom.
    """
    n, k = X.shape
    if n <= k:
        raise EstimationError(
            "fit", f"{n} observations leave no residual degrees of freedom "
                   f"for {k} coefficients"
        )
    rank = np.linalg.matrix_rank(X)
    if rank < k:
        raise EstimationError(
            "fit", f"design matrix is rank-deficient (rank {rank} < {k} columns); "
                   "check for collinear covariates"
        )
    b = np.linalg.lstsq(X, y, rcond=None)[0]
    e = y - X @ b
    s2 = (e @ e) / (n - k)
    vcov = s2 * np.linalg.inv(X.T @ X)
    return b, vcov, e, s2



def quad_form_se(W, vcov):
    """
    Standard errors of the linear combinations W @ beta.

    SE_j = sqrt(w_j' V w_j) for each row w_j of W.

    Parameters
    ----------
    W : ndarray, shape (m, k) or (k,)
        Weight rows, one per linear combination.
    vcov : ndarray, shape (k, k)
        Coefficient covariance matrix.

    Returns
    -------
    se : ndarray, shape (m,)

    Raises
    ------
    EstimationError
        If any quadratic form is negative or non-finite.
    """
    W = np.atleast_2d(W)
    var = np.einsum("ij,jk,ik->i", W, vcov, W)
    # round-off can leave exact zeros slightly negative
    var = np.where((var < 0) & (var > -1e-12 * (1 + np.abs(var).max(initial=0.0))), 0.0, var)
    if not np.all(np.isfinite(var)) or np.any(var < 0):
        raise EstimationError(
            "evaluate", "covariance quadratic form is negative or non-finite; "
                        "the coefficient covariance matrix is not positive semi-definite"
        )
    return np.sqrt(var)
