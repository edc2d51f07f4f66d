"""Substance references used as ingredient items."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Literal

import numpy as np

from mixcalc.constants import ETHANOL_ID, WATER_DENSITY, WATER_ID
from mixcalc.models import Substance

if TYPE_CHECKING:
    from mixcalc.catalog.base import CatalogInterface


class SubstanceComponent:
    """A massless reference to one catalog substance.

    Masses live on the ingredient edge that points here; every method that
    needs an amount takes it as an argument.
    """

    kind: Literal["substance"] = "substance"

    def __init__(self, substance: Substance, catalog: "CatalogInterface"):
        self.substance = substance
        self.catalog = catalog

    def __repr__(self) -> str:
        return f"SubstanceComponent({self.substance_id!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SubstanceComponent):
            return NotImplemented
        return self.substance_id == other.substance_id

    def __hash__(self) -> int:
        return hash(self.substance_id)

    @property
    def id(self) -> str:
        return self.substance.id

    @property
    def substance_id(self) -> str:
        return self.substance.id

    @property
    def name(self) -> str:
        return self.substance.name

    @property
    def pure_density(self) -> float:
        return self.substance.pure_density

    @property
    def pka(self) -> tuple:
        return self.substance.pka

    @property
    def is_valid(self) -> bool:
        return self.substance_id in self.catalog

    def clone(self) -> "SubstanceComponent":
        return SubstanceComponent(self.substance, self.catalog)

    def serialize(self) -> Dict[str, str]:
        return {"id": self.substance_id}

    def describe(self) -> str:
        return self.substance.name

    def partial_density(self, weight_fraction: float = 1.0) -> float:
        """Density contribution (g/mL) of this substance at a weight fraction.

        Water always contributes the reference density. Other substances add
        their deviation from water, read from the measured curve when there
        is one and linearly interpolated towards the pure density otherwise.
        """
        if self.substance_id == WATER_ID:
            return WATER_DENSITY
        weight_fraction = min(1.0, max(0.0, weight_fraction))
        curve = self.substance.density_curve
        if curve:
            fractions, densities = zip(*curve)
            return float(np.interp(weight_fraction, fractions, densities)) - WATER_DENSITY
        return weight_fraction * (self.pure_density - WATER_DENSITY)

    def volume(self, mass: float) -> float:
        return mass / self.pure_density

    def moles(self, mass: float) -> float:
        return mass / self.substance.molecular_mass

    def equivalent_sugar_mass(self, mass: float) -> float:
        return mass * self.substance.sweetness

    def kcal(self, mass: float) -> float:
        return mass * self.substance.kcal_per_gram

    def alcohol_mass(self, mass: float) -> float:
        return mass if self.substance_id == ETHANOL_ID else 0.0

    def water_mass(self, mass: float) -> float:
        return mass if self.substance_id == WATER_ID else 0.0

    @property
    def abv(self) -> float:
        return 100.0 if self.substance_id == ETHANOL_ID else 0.0

    @property
    def brix(self) -> float:
        return self.substance.sweetness * 100.0
