"""Physical constants and tuned defaults."""

WATER_DENSITY = 1.0  # g/mL, reference density used for partial densities
WATER_ID = "water"
ETHANOL_ID = "ethanol"

KW = 1e-14  # ion product of water at 25 C
DEBYE_HUCKEL_SLOPE = 0.5  # simplified limiting-law slope

PH_NEUTRAL = 7.0
H_MIN = 1e-14  # bisection bracket for [H+] (mol/L)
H_MAX = 1.0
PH_TOLERANCE = 1e-9

# Masses below this are stored as the negative of their previous magnitude
NEAR_ZERO_MASS = 1e-6

VOLUME_SOLVE_FAILED = -1.0
