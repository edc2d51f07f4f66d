"""Ingredient classification.

The composition solver reasons about ingredients by what they provide
(ethanol, sweetener, acid, conjugate base or water) rather than by what
they are. Mixture kind predicates used for labels live here as well.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Mapping

from mixcalc.constants import ETHANOL_ID, WATER_ID
from mixcalc.models import WorkingTarget
from mixcalc.ph import AcidGroup, acid_groups

if TYPE_CHECKING:
    from mixcalc.components import SubstanceComponent
    from mixcalc.mixture import Mixture
    from mixcalc.models import IngredientItem

INGREDIENT_CLASSES = ("ethanol", "sweetener", "acid", "base", "water")

Provisions = Dict[str, float]


def _classes(initial: float = 0.0) -> Dict[str, float]:
    return {name: initial for name in INGREDIENT_CLASSES}


def substance_provides(
    component: "SubstanceComponent", mass: float, groups: Mapping[str, AcidGroup]
) -> Provisions:
    """Mass of `component` attributed to its (single) ingredient class."""
    provides = _classes()
    substance_id = component.substance_id
    if substance_id == WATER_ID:
        provides["water"] = mass
    elif substance_id == ETHANOL_ID:
        provides["ethanol"] = mass
    elif component.substance.sweetness > 0:
        provides["sweetener"] = mass
    elif component.pka:
        provides["acid"] = mass
    elif any(acid_id in groups for acid_id in component.catalog.conjugate_acids(substance_id)):
        provides["base"] = mass
    return provides


def mixture_provides(mixture: "Mixture") -> Provisions:
    provides = _classes()
    groups = acid_groups(mixture.each_substance())
    for mapped in mixture.substance_map().values():
        for name, value in substance_provides(mapped.component, mapped.mass, groups).items():
            provides[name] += value
    return provides


def ingredient_provides(
    item: "IngredientItem", mass: float, groups: Mapping[str, AcidGroup]
) -> Provisions:
    if item.kind == "mixture":
        return mixture_provides(item)
    return substance_provides(item, mass, groups)


def derive_needs(
    deviations: WorkingTarget,
    groups: Mapping[str, AcidGroup],
    scale: float = 0.5,
    ph_step: float = 0.5,
) -> Dict[str, float]:
    """Multiplicative mass change wanted for each ingredient class.

    Deviations are signed (``1 - target/actual``): positive means the
    mixture overshoots the target. Needs start at 1 (no change).
    """
    needs = _classes(1.0)

    # too strong -> less ethanol, more water
    needs["ethanol"] -= scale * deviations.abv
    needs["water"] += scale * deviations.abv

    # too sweet -> less sweetener, more water
    needs["sweetener"] -= scale * deviations.brix
    needs["water"] += scale * deviations.brix

    excess_h = deviations.moles_h
    step = scale * ph_step * abs(excess_h)
    pairs = [group for group in groups.values() if group.is_buffer_pair]
    if pairs:
        acid_mass = sum(group.acid_mass for group in pairs)
        base_mass = sum(group.base_mass for group in pairs)
        # move the minority species of the buffer pairs
        if excess_h > 0:
            if acid_mass > base_mass:
                needs["base"] += step
            else:
                needs["acid"] -= step
        elif excess_h < 0:
            if base_mass > acid_mass:
                needs["acid"] += step
            else:
                needs["base"] -= step
    elif excess_h > 0:
        needs["acid"] -= step
    elif excess_h < 0:
        needs["acid"] += step
    return needs


def mass_factor(provides: Mapping[str, float], needs: Mapping[str, float]) -> float:
    """Combine the needs of every class an ingredient provides."""
    factor = 1.0
    for name, value in provides.items():
        if value <= 0:
            continue
        need = needs[name]
        if need > 0 and need != 1:
            factor *= need
        elif need < 0:
            factor *= -1.0 / need
    return factor


def is_sweetener_substance(component: "SubstanceComponent") -> bool:
    return component.substance.sweetness > 0


def is_sweetener(item: "IngredientItem") -> bool:
    if item.kind == "substance":
        return is_sweetener_substance(item)
    substances = item.substances
    return bool(substances) and all(is_sweetener_substance(s.component) for s in substances)


def is_water(item: "IngredientItem") -> bool:
    if item.kind == "substance":
        return item.substance_id == WATER_ID
    return item.has_every_substance(WATER_ID) and all(
        s.substance_id == WATER_ID for s in item.each_substance()
    )


def is_spirit(item: "IngredientItem") -> bool:
    return (
        item.kind == "mixture"
        and item.has_every_substance(ETHANOL_ID, WATER_ID)
        and all(s.substance_id in (ETHANOL_ID, WATER_ID) for s in item.each_substance())
    )


def is_syrup(item: "IngredientItem") -> bool:
    if item.kind != "mixture" or not item.has_every_substance(WATER_ID):
        return False
    substances = item.substances
    return any(is_sweetener_substance(s.component) for s in substances if s.mass > 0) and all(
        s.substance_id == WATER_ID or is_sweetener_substance(s.component) for s in substances
    )


def is_liqueur(item: "IngredientItem") -> bool:
    return item.kind == "mixture" and item.abv > 0 and item.brix > 0
