import numpy as np
from pathlib import Path

########################################################################################################################
# PHYSICAL CONSTANTS AND UNITS
# Concentrations are expressed in nM and time in seconds throughout the engine.
# Sweep results carry an extra `time_in_hours` column for downstream plotting.
########################################################################################################################
# Avogadro constant (1/mol).
AVOGADRO = 6.02214076e23
# Litres per picolitre, used to turn a cell volume into a molar scale.
LITRES_PER_PICOLITRE = 1e-12
# Molar -> nanomolar.
NANOMOLAR_PER_MOLAR = 1e9
SECONDS_PER_HOUR = 3600.0
SECONDS_PER_MINUTE = 60.0
# Species reported by every trajectory, in output order.
SPECIES = ("target", "enzyme", "complex")
########################################################################################################################
# KINETIC PARAMETERS
# Order-of-magnitude values for a miRNA-loaded Argonaute acting on a complementary site.
#   K_ON        : association rate constant (1/(nM*s))
#   K_OFF       : dissociation rate constant (1/s)
#   K_CAT_MAX   : catalytic (slicing) rate of the reference pathway (1/s)
#   EFFICIENCY  : relative catalytic efficiency of the miRNA pathway, in (0, 1]
########################################################################################################################
K_ON = 0.36
K_OFF = 2.4e-4
K_CAT_MAX = 8.1e-3
EFFICIENCY = 1.0
# Rate constants a robustness sweep may perturb.
ROBUSTNESS_RATES = ("k_on", "k_off", "k_cat")
########################################################################################################################
# SOLVER SETTINGS
# LSODA through scipy.integrate.odeint. The tolerances keep the linear
# conservation laws within 1e-6 relative error at every output point.
#   ODE_REL_TOL / ODE_ABS_TOL : local error tolerances
#   ODE_MAX_STEPS             : step budget per output interval (odeint mxstep)
#   NEGATIVE_TOLERANCE        : concentrations below -NEGATIVE_TOLERANCE are a failure
#   CONSERVATION_TOLERANCE    : relative tolerance of the mass balances
#   EQUILIBRIUM_TOLERANCE     : relative tolerance of the equilibrium ratio check
########################################################################################################################
ODE_REL_TOL = 1e-10
ODE_ABS_TOL = 1e-12
ODE_MAX_STEPS = 50000
NEGATIVE_TOLERANCE = 1e-9
CONSERVATION_TOLERANCE = 1e-6
EQUILIBRIUM_TOLERANCE = 1e-3
########################################################################################################################
# TIME GRID
# 0 .. 48 h, hourly, in seconds.
########################################################################################################################
TIME_HORIZON_HOURS = 48.0
TIME_STEP_HOURS = 1.0
TIME_POINTS = np.arange(0.0, TIME_HORIZON_HOURS + TIME_STEP_HOURS, TIME_STEP_HOURS) * SECONDS_PER_HOUR
########################################################################################################################
# CELL TYPES
# volume_pl       : cell volume in picolitres
# mrna_per_cell   : total mRNA copies per cell, target counts are a fraction of it
########################################################################################################################
CELL_TYPES = {
    "oocyte": {"volume_pl": 270.0, "mrna_per_cell": 1.0e8},
    "somatic": {"volume_pl": 2.0, "mrna_per_cell": 3.6e5},
}
########################################################################################################################
# PATHS, DIRECTORIES, AND FILES
# - PROJECT_ROOT: directory containing config.toml.
# - RESULTS_DIR: sweep tables and summaries.
# - CACHE_DIR: persisted sweep results.
# - LOG_DIR: rotating log files.
########################################################################################################################
PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONFIG_FILE = PROJECT_ROOT / "config.toml"
RESULTS_DIR = PROJECT_ROOT / "results"
CACHE_DIR = RESULTS_DIR / "cache"
LOG_DIR = RESULTS_DIR / "logs"
