"""
Tutorial configuration.

Simulation parameters, band levels and output locations live here so the
tutorial, the tests and any ad-hoc script agree on the same defaults.
Command-line flags in ``dualband.tutorial`` override them.
"""

import os
from pathlib import Path

###############################################################################
# Simulation (data generating process)
###############################################################################

DEFAULT_SEED = 42
N_OBS = 100

X1_MEAN, X1_SD = 5.0, 5.0
X2_MEAN, X2_SD = -3.0, 10.0

# y = INTERCEPT + BETA_X1*x1 + BETA_X2*x2 [+ BETA_X1X2*x1*x2] + N(NOISE_MEAN, NOISE_SD)
INTERCEPT = 0.0
BETA_X1 = 0.4
BETA_X2 = 2.0
BETA_X1X2 = -0.3
NOISE_MEAN, NOISE_SD = 2.0, 13.0

BASE_FORMULA = "y ~ x1 + x2"
INTERACTION_FORMULA = "y ~ x1 + x2 + x1:x2"

###############################################################################
# Estimates and bands
###############################################################################

# Number of evenly spaced points between a covariate's observed min and max
GRID_POINTS = 25

# (narrow, wide) two-sided confidence levels
DEFAULT_LEVELS = (0.90, 0.99)
ALT_LEVELS = (0.90, 0.95)

###############################################################################
# Output and logging
###############################################################################

OUTPUT_DIR = Path(os.getenv("DUALBAND_OUTDIR", Path.cwd() / "output"))
PDF_NAME = "dual_confidence_bands.pdf"

LOG_LEVEL = os.getenv("DUALBAND_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
