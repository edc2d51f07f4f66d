"""Data structures for substances, ingredients and analyses."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple, Union

if TYPE_CHECKING:
    from mixcalc.components import SubstanceComponent
    from mixcalc.mixture import Mixture

    IngredientItem = Union[SubstanceComponent, Mixture]


def component_id() -> str:
    """Return a new random 12 character id."""
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class Substance:
    id: str
    name: str
    pure_density: float  # g/mL
    molecular_mass: float  # g/mol
    pka: Tuple[float, ...] = ()
    sweetness: float = 0.0  # relative to sucrose
    kcal_per_gram: float = 0.0
    # (weight fraction, solution density g/mL) measured in water
    density_curve: Tuple[Tuple[float, float], ...] = ()
    conjugate_acid: Optional[str] = None

    @property
    def is_acid(self) -> bool:
        return len(self.pka) > 0

    @property
    def max_charge(self) -> int:
        return len(self.pka)


@dataclass(frozen=True)
class DecoratedSubstance:
    """A substance reached by flattening a mixture.

    Attributes:
        substance_id: Catalog id of the substance.
        ingredient_id: Id of the top-level edge the substance was reached through.
        mixture_id: Id of the mixture that directly owns the substance edge.
        mass: Absolute mass of the substance in the flattened mixture (g).
        component: The substance component itself.
    """

    substance_id: str
    ingredient_id: str
    mixture_id: str
    mass: float
    component: "SubstanceComponent"


@dataclass
class Ingredient:
    id: str
    name: str
    mass: float  # g; negative means "zeroed, remember this proportion"
    item: "IngredientItem"
    notes: Optional[str] = None

    @property
    def effective_mass(self) -> float:
        return self.mass if self.mass > 0 else 0.0


@dataclass(frozen=True)
class MixtureAnalysis:
    volume: float
    mass: float
    abv: float
    brix: float
    kcal: float
    proof: float
    equivalent_sugar_mass: float
    ph: float


@dataclass(frozen=True)
class SolverTarget:
    """Requested properties for the composition solver.

    Attributes:
        volume: Target volume (mL), must be positive.
        abv: Alcohol by volume (%), 0-100.
        brix: Sucrose-equivalent sugar concentration (%), 0-100.
        ph: Target pH, 0-7.
    """

    volume: float
    abv: float
    brix: float
    ph: float


@dataclass(frozen=True)
class MappedSubstance:
    mass: float
    component: "SubstanceComponent"


@dataclass(frozen=True)
class WorkingTarget:
    """Solver quantities; pH is carried as [H+] which maps more linearly to acid mass."""

    volume: float
    abv: float
    brix: float
    moles_h: float

    @classmethod
    def from_target(cls, target: SolverTarget) -> "WorkingTarget":
        return cls(
            volume=target.volume,
            abv=target.abv,
            brix=target.brix,
            moles_h=10.0 ** -target.ph,
        )
