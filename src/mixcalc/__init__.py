"""mixcalc core package."""

from mixcalc.catalog import CatalogInterface, StaticCatalog, default_catalog
from mixcalc.components import SubstanceComponent
from mixcalc.errors import (
    ConvergenceError,
    DeserializationError,
    InvalidInputError,
    MixtureError,
    UnbracketedRootError,
    UnknownSubstanceError,
)
from mixcalc.factories import new_citrus_juice, new_spirit, new_syrup
from mixcalc.mixture import Mixture
from mixcalc.models import MixtureAnalysis, SolverTarget, Substance
from mixcalc.ph import calculate_ph, solve_ph
from mixcalc.solver import SolverConfig, solve
from mixcalc.volume import VolumeConfig, mass_for_volume

__all__ = [
    "CatalogInterface",
    "StaticCatalog",
    "default_catalog",
    "SubstanceComponent",
    "ConvergenceError",
    "DeserializationError",
    "InvalidInputError",
    "MixtureError",
    "UnbracketedRootError",
    "UnknownSubstanceError",
    "new_citrus_juice",
    "new_spirit",
    "new_syrup",
    "Mixture",
    "MixtureAnalysis",
    "SolverTarget",
    "Substance",
    "calculate_ph",
    "solve_ph",
    "SolverConfig",
    "solve",
    "VolumeConfig",
    "mass_for_volume",
]
