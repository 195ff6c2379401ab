"""
Two Confidence Bands for OLS Predictions and Marginal Effects
=============================================================

The tutorial document. Simulates a toy dataset, fits an additive and an
interactive OLS model, derives predictions and marginal effects with
their standard errors, and draws each with a narrow and a wide
confidence band. Writes one PNG per figure and a PDF that interleaves
the narrative with the figures.

Usage:
    dualband-tutorial --outdir output --levels 0.90 0.99
"""

import argparse
import logging
from pathlib import Path

import matplotlib
import matplotlib.pyplot as plt

from . import config
from .bands import critical_values, dual_bands
from .ols import coefficient_table, fit
from .plot import (
    apply_style,
    plot_coefficients,
    plot_data,
    plot_dual_band,
    plot_faceted,
)
from .predict import make_grid, marginal_effect, predict
from .report import build_pdf, save_figure
from .simulate import simulate_data, simulate_interaction_data
from .utils import EstimationError

logger = logging.getLogger(__name__)

TITLE = "TWO CONFIDENCE BANDS ARE BETTER THAN ONE"
SUBTITLE = "OLS predictions and marginal effects with nested intervals"


def _pct(level):
    return f"{100 * level:g}%"


def _coef_text(model):
    table = coefficient_table(model)
    return table.to_string(float_format=lambda v: f"{v:9.4f}")


def _range_text(table):
    return (f"{table['estimate'].min():.3f} .. {table['estimate'].max():.3f} "
            f"(SE {table['std_error'].min():.3f} .. {table['std_error'].max():.3f})")


def run(outdir=config.OUTPUT_DIR, seed=config.DEFAULT_SEED,
        levels=config.DEFAULT_LEVELS, n_points=config.GRID_POINTS, pdf=True):
    """
    Run the whole tutorial and write its figures and document.

    Parameters
    ----------
    outdir : path
        Directory for the PNGs and the PDF.
    seed : int
        Simulation seed.
    levels : tuple of float
        (narrow, wide) confidence levels of the two bands.
    n_points : int
        Grid points per covariate.
    pdf : bool
        Also assemble the PDF document.

    Returns
    -------
    dict with keys:
        data, interaction_data : simulated tables
        base_model, interaction_model : fitted models
        predictions, effects, conditional_effects : facet name -> band table
        figures : list of PNG paths
        pdf     : PDF path or None
    """
    outdir = Path(outdir)
    apply_style()
    c_low, c_high = critical_values(levels)
    lo_pct, hi_pct = _pct(levels[0]), _pct(levels[1])
    sections = []

    print("=" * 60)
    print(TITLE)
    print("=" * 60)

    # =====================================================================
    # 1. Data
    # =====================================================================
    data = simulate_data(seed=seed)
    text = f"""\
Section 1: Simulated data

We draw n = {len(data)} units with seed {seed}:
  x1 ~ N({config.X1_MEAN:g}, {config.X1_SD:g})
  x2 ~ N({config.X2_MEAN:g}, {config.X2_SD:g})
  y  = {config.INTERCEPT:g} + {config.BETA_X1:g}*x1 + {config.BETA_X2:g}*x2 + e,   e ~ N({config.NOISE_MEAN:g}, {config.NOISE_SD:g})

The noise has mean {config.NOISE_MEAN:g}, so the true intercept is {data.attrs["truth"]["(Intercept)"]:g}.

{data.describe().round(3).to_string()}
"""
    print(text)
    fig, _ = plot_data(data)
    sections.append((text, save_figure(fig, outdir, "fig01_data.png")))

    # =====================================================================
    # 2. Additive model
    # =====================================================================
    base = fit(data, config.BASE_FORMULA)
    text = f"""\
Section 2: Fitting {config.BASE_FORMULA}

OLS via the normal equations:
  beta_hat = (X'X)^(-1) X'y,   V = s2 (X'X)^(-1),   SE = sqrt(diag(V))

{_coef_text(base)}

R^2 = {base['r2']:.3f}, residual df = {base['df_resid']}.

The figure shows every slope with two intervals around the same
estimate: the thick whisker is the {lo_pct} interval (+/-{c_low:.3f} SE),
the thin whisker the {hi_pct} interval (+/-{c_high:.3f} SE). Crosses mark
the data-generating values.
"""
    print(text)
    fig, ax = plt.subplots(figsize=(7, 3.5))
    plot_coefficients(base, levels=levels, truth=data.attrs["truth"], ax=ax)
    ax.set_title(f"Coefficients, {lo_pct} and {hi_pct} intervals")
    sections.append((text, save_figure(fig, outdir, "fig02_coefficients.png")))

    # =====================================================================
    # 3. Predictions
    # =====================================================================
    predictions = {}
    for var in base["variables"]:
        grid = make_grid(base, var, n_points=n_points)
        predictions[f"Prediction over {var}"] = dual_bands(predict(base, grid),
                                                          levels=levels)
    lines = "\n".join(f"  {name}: {_range_text(t)}" for name, t in predictions.items())
    text = f"""\
Section 3: Predictions with two bands

Each covariate is swept over {n_points} evenly spaced values between its
observed minimum and maximum; the other covariate stays at its mean.
For a grid row x the prediction is x'beta_hat with standard error
sqrt(x' V x). Both bands use that one standard error:

  narrow: estimate +/- {c_low:.3f} * SE   ({lo_pct})
  wide:   estimate +/- {c_high:.3f} * SE   ({hi_pct})

{lines}

The wide band is drawn first and lighter, the narrow band on top of it
and darker, so both stay readable where they overlap.
"""
    print(text)
    fig, _ = plot_faceted(predictions, suptitle="Predicted y")
    sections.append((text, save_figure(fig, outdir, "fig03_predictions.png")))

    # =====================================================================
    # 4. Marginal effects, additive model
    # =====================================================================
    effects = {
        f"Effect of {var}": dual_bands(marginal_effect(base, var, n_points=n_points),
                                       levels=levels)
        for var in base["variables"]
    }
    lines = "\n".join(f"  {name}: {_range_text(t)}" for name, t in effects.items())
    text = f"""\
Section 4: Marginal effects without an interaction

In an additive model dy/dx is the slope itself, so the marginal effect
is flat and its standard error is the slope's standard error.

{lines}
"""
    print(text)
    fig, _ = plot_faceted(effects, reference=0, suptitle="Marginal effects, additive model")
    sections.append((text, save_figure(fig, outdir, "fig04_marginal_effects.png")))

    # =====================================================================
    # 5. Interaction model
    # =====================================================================
    int_data = simulate_interaction_data(seed=seed)
    inter = fit(int_data, config.INTERACTION_FORMULA)
    conditional = {
        "Effect of x1 across x2": dual_bands(
            marginal_effect(inter, "x1", conditioning="x2", n_points=n_points),
            levels=levels),
        "Effect of x2 across x1": dual_bands(
            marginal_effect(inter, "x2", conditioning="x1", n_points=n_points),
            levels=levels),
    }
    at_zero = marginal_effect(inter, "x1", n_points=2, at={"x2": 0.0})
    text = f"""\
Section 5: Marginal effects with an interaction

Same draws, now with y += {config.BETA_X1X2:g}*x1*x2. Fitting {config.INTERACTION_FORMULA}:

{_coef_text(inter)}

The effect of x1 now depends on x2:
  dy/dx1 = b_x1 + b_x1:x2 * x2
  Var    = V[x1,x1] + x2^2 V[x1:x2,x1:x2] + 2 x2 V[x1,x1:x2]

At x2 = 0 it reduces to b_x1 = {at_zero['estimate'].iloc[0]:.3f}
(SE {at_zero["std_error"].iloc[0]:.3f}; true value {int_data.attrs["truth"]["x1"]:g}).
Where the {hi_pct} band crosses zero but the {lo_pct} band does not, the
evidence for a non-zero effect is only moderate.
"""
    print(text)
    fig, _ = plot_faceted(conditional, reference=0,
                          suptitle="Conditional marginal effects, interaction model")
    sections.append((text, save_figure(fig, outdir, "fig05_conditional_effects.png")))

    # =====================================================================
    # 6. Choice of levels
    # =====================================================================
    alt = config.ALT_LEVELS if tuple(levels) != tuple(config.ALT_LEVELS) else config.DEFAULT_LEVELS
    effect_x1 = marginal_effect(inter, "x1", conditioning="x2", n_points=n_points)
    fig, axes = plt.subplots(1, 2, figsize=(10, 4), sharey=True)
    for ax, pair in zip(axes, (levels, alt)):
        plot_dual_band(dual_bands(effect_x1, levels=pair), ax=ax, reference=0,
                       title=f"{_pct(pair[0])} / {_pct(pair[1])}")
    fig.tight_layout()
    text = f"""\
Section 6: Choosing the pair of levels

The two bands differ only in the multiplier on one standard error. The
figure repeats the conditional effect of x1 with {_pct(levels[0])}/{_pct(levels[1])} and
{_pct(alt[0])}/{_pct(alt[1])} bands.
"""
    print(text)
    sections.append((text, save_figure(fig, outdir, "fig06_levels.png")))

    pdf_path = None
    if pdf:
        pdf_path = build_pdf(
            sections, outdir / config.PDF_NAME, TITLE, SUBTITLE,
            intro_lines=[
                "A single confidence band hides how quickly evidence fades as",
                "the level rises. Drawing two nested bands around the same",
                "estimate shows both at once.",
                "",
                f"Bands: {lo_pct} and {hi_pct}. Seed: {seed}.",
            ],
        )
    print(f"Done! {len(sections)} PNGs" + (f" + {pdf_path}" if pdf_path else ""))

    return dict(
        data=data,
        interaction_data=int_data,
        base_model=base,
        interaction_model=inter,
        predictions=predictions,
        effects=effects,
        conditional_effects=conditional,
        figures=[path for _, path in sections],
        pdf=pdf_path,
    )


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Render the two-confidence-band OLS tutorial"
    )
    parser.add_argument("--outdir", type=Path, default=config.OUTPUT_DIR,
                        help=f"Output directory (default: {config.OUTPUT_DIR})")
    parser.add_argument("--seed", type=int, default=config.DEFAULT_SEED,
                        help=f"Simulation seed (default: {config.DEFAULT_SEED})")
    parser.add_argument("--levels", type=float, nargs=2, metavar=("NARROW", "WIDE"),
                        default=config.DEFAULT_LEVELS,
                        help="Confidence levels of the two bands (default: 0.90 0.99)")
    parser.add_argument("--points", type=int, default=config.GRID_POINTS,
                        help=f"Grid points per covariate (default: {config.GRID_POINTS})")
    parser.add_argument("--no-pdf", action="store_true",
                        help="Only write the PNG figures")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else config.LOG_LEVEL,
                        format=config.LOG_FORMAT)
    try:
        critical_values(tuple(args.levels))
    except ValueError as exc:
        parser.error(str(exc))
    if args.points < 2:
        parser.error("--points must be at least 2")

    matplotlib.use("Agg")
    try:
        run(outdir=args.outdir, seed=args.seed, levels=tuple(args.levels),
            n_points=args.points, pdf=not args.no_pdf)
    except EstimationError as exc:
        logger.error("Tutorial aborted at the %s stage: %s", exc.stage, exc.reason)
        raise SystemExit(f"Aborted: {exc}") from exc


if __name__ == "__main__":
    main()
