"""Ready-made mixtures: spirits, syrups and citrus juices."""

from __future__ import annotations

import logging
from typing import Dict, Tuple

from scipy.optimize import brentq

from mixcalc.catalog.base import CatalogInterface
from mixcalc.citrus import citrus_id
from mixcalc.constants import ETHANOL_ID, WATER_ID
from mixcalc.errors import InvalidInputError
from mixcalc.mixture import Mixture

logger = logging.getLogger(__name__)

# Composition per 100 g of juice; water makes up the balance.
CITRUS_COMPOSITIONS: Dict[str, Tuple[Tuple[str, float], ...]] = {
    "lemon": (("citric-acid", 7.0), ("glucose", 1.2), ("fructose", 1.3)),
    "lime": (("citric-acid", 7.3), ("glucose", 0.7), ("fructose", 0.8)),
    "orange": (("citric-acid", 1.8), ("sucrose", 4.2), ("glucose", 2.4), ("fructose", 2.4)),
    "grapefruit": (("citric-acid", 2.0), ("sucrose", 2.0), ("glucose", 2.0), ("fructose", 2.2)),
}


def _check_volume(volume: float) -> None:
    if volume < 0:
        raise InvalidInputError(f"Volume must be non-negative, got {volume}")


def spirit_weight_fraction(catalog: CatalogInterface, abv: float) -> float:
    """Ethanol weight fraction of an ethanol/water solution at `abv` %."""
    if not 0 <= abv <= 100:
        raise InvalidInputError(f"ABV must be between 0 and 100, got {abv}")
    if abv in (0, 100):
        return abv / 100.0
    ethanol = catalog.component(ETHANOL_ID)
    water = catalog.component(WATER_ID)

    def residual(fraction: float) -> float:
        density = water.partial_density() + ethanol.partial_density(fraction)
        return 100.0 * fraction * density / ethanol.pure_density - abv

    return brentq(residual, 0.0, 1.0, xtol=1e-12)


def new_spirit(catalog: CatalogInterface, volume: float, abv: float) -> Mixture:
    """Ethanol and water making `volume` mL at `abv` % alcohol by volume."""
    _check_volume(volume)
    fraction = spirit_weight_fraction(catalog, abv)
    ethanol = catalog.component(ETHANOL_ID)
    water = catalog.component(WATER_ID)
    density = water.partial_density() + ethanol.partial_density(fraction)
    mass = volume * density
    logger.debug("Spirit %.1f%% ABV: weight fraction %.5f, density %.4f", abv, fraction, density)
    return (
        Mixture(catalog)
        .add_ingredient(water, mass * (1.0 - fraction), name="water")
        .add_ingredient(ethanol, mass * fraction, name="ethanol")
    )


def new_syrup(
    catalog: CatalogInterface, volume: float, brix: float, sweetener: str = "sucrose"
) -> Mixture:
    """Sweetener and water making `volume` mL at `brix` degrees."""
    _check_volume(volume)
    if not 0 <= brix <= 100:
        raise InvalidInputError(f"Brix must be between 0 and 100, got {brix}")
    sugar = catalog.component(sweetener)
    sweetness = sugar.substance.sweetness
    if sweetness <= 0:
        raise InvalidInputError(f"{sweetener} is not a sweetener")
    fraction = brix / (100.0 * sweetness)
    if fraction > 1:
        raise InvalidInputError(f"{brix} Brix is out of reach for {sweetener}")

    water = catalog.component(WATER_ID)
    density = water.partial_density() + sugar.partial_density(fraction)
    mass = volume * density
    return (
        Mixture(catalog)
        .add_ingredient(water, mass * (1.0 - fraction), name="water")
        .add_ingredient(sugar, mass * fraction, name=sugar.name)
    )


def new_citrus_juice(catalog: CatalogInterface, fruit: str, volume: float) -> Mixture:
    """Fresh juice of `fruit`, carrying the citrus id prefix."""
    _check_volume(volume)
    juice = Mixture(catalog, id=citrus_id(fruit))
    solids = CITRUS_COMPOSITIONS[fruit]
    juice.add_ingredient(
        catalog.component(WATER_ID), 100.0 - sum(mass for _, mass in solids), name="water"
    )
    for substance_id, mass in solids:
        component = catalog.component(substance_id)
        juice.add_ingredient(component, mass, name=component.name)
    return juice.set_volume(volume)
