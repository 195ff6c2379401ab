"""
Stage 1: Data simulation

Draws the toy observation table used throughout the tutorial:

    x1 ~ N(x1_mean, x1_sd)
    x2 ~ N(x2_mean, x2_sd)
    y  = intercept + beta_x1*x1 + beta_x2*x2 + beta_x1x2*x1*x2 + e,
    e  ~ N(noise_mean, noise_sd)

Draws come from a local MT19937 generator (numpy RandomState) in the
fixed order x1, x2, e, so a given seed always reproduces the same table.
"""

import logging

import numpy as np
import pandas as pd

from . import config

logger = logging.getLogger(__name__)


def simulate_data(n=config.N_OBS, seed=config.DEFAULT_SEED,
                  x1_mean=config.X1_MEAN, x1_sd=config.X1_SD,
                  x2_mean=config.X2_MEAN, x2_sd=config.X2_SD,
                  intercept=config.INTERCEPT,
                  beta_x1=config.BETA_X1, beta_x2=config.BETA_X2,
                  beta_x1x2=0.0,
                  noise_mean=config.NOISE_MEAN, noise_sd=config.NOISE_SD):
    """
    Simulate the observation table.

    Parameters
    ----------
    n : int
        Number of simulated units.
    seed : int
        Seed of the RandomState generator.
    x1_mean, x1_sd, x2_mean, x2_sd : float
        Normal parameters of the two covariates.
    intercept, beta_x1, beta_x2, beta_x1x2 : float
        Outcome coefficients. ``beta_x1x2 = 0`` gives the additive model.
    noise_mean, noise_sd : float
        Normal parameters of the outcome noise. A non-zero noise mean
        shifts the effective intercept.

    Returns
    -------
    DataFrame with columns x1, x2, y. ``attrs["truth"]`` maps coefficient
    names to their data-generating values (the intercept includes the
    noise mean).
    """
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")
    for name, sd in (("x1_sd", x1_sd), ("x2_sd", x2_sd), ("noise_sd", noise_sd)):
        if sd < 0:
            raise ValueError(f"{name} must be non-negative, got {sd}")

    rng = np.random.RandomState(seed)
    x1 = rng.normal(x1_mean, x1_sd, n)
    x2 = rng.normal(x2_mean, x2_sd, n)
    noise = rng.normal(noise_mean, noise_sd, n)
    y = intercept + beta_x1 * x1 + beta_x2 * x2 + beta_x1x2 * x1 * x2 + noise

    data = pd.DataFrame({"x1": x1, "x2": x2, "y": y})
    truth = {"(Intercept)": intercept + noise_mean, "x1": beta_x1, "x2": beta_x2}
    if beta_x1x2 != 0:
        truth["x1:x2"] = beta_x1x2
    data.attrs["truth"] = truth
    data.attrs["seed"] = seed

    logger.info("Simulated %d observations (seed=%s, interaction=%s)",
                n, seed, beta_x1x2)
    return data


def simulate_interaction_data(n=config.N_OBS, seed=config.DEFAULT_SEED,
                              beta_x1x2=config.BETA_X1X2, **kwargs):
    """
    Simulate the table with an x1*x2 interaction in the outcome equation.

    Same draws as :func:`simulate_data` for the same seed; only the
    outcome differs by ``beta_x1x2 * x1 * x2``.
    """
    return simulate_data(n=n, seed=seed, beta_x1x2=beta_x1x2, **kwargs)
