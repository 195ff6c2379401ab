"""
dualband -- OLS predictions and marginal effects drawn with two
confidence bands instead of one.

The pipeline is simulate -> fit -> derive -> render; each stage is a
sub-module built on numpy / scipy / pandas, with matplotlib for the
figures and reportlab for the document.
"""

from .utils import EstimationError, ols_fit
from .simulate import simulate_data, simulate_interaction_data
from .ols import fit, coefficient_table, parse_formula
from .predict import make_grid, predict, marginal_effect, linear_combination
from .bands import critical_value, critical_values, dual_bands
from . import config
from . import plot
from . import report

__version__ = "0.1.0"
