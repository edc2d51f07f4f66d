"""Recursive mixture composition tree.

A mixture is an ordered set of ingredient edges. Each edge carries a mass
and points at either a substance component or a nested mixture, which it
owns. Every physical property is derived on demand by flattening the tree
into substances; nothing is cached, so mutating an edge is always safe.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Literal,
    Mapping,
    Optional,
    Set,
    Tuple,
)

from mixcalc import citrus, classify
from mixcalc.components import SubstanceComponent
from mixcalc.constants import ETHANOL_ID, NEAR_ZERO_MASS, VOLUME_SOLVE_FAILED, WATER_DENSITY, WATER_ID
from mixcalc.errors import ConvergenceError, DeserializationError, InvalidInputError
from mixcalc.models import (
    DecoratedSubstance,
    Ingredient,
    MappedSubstance,
    MixtureAnalysis,
    SolverTarget,
    component_id,
)
from mixcalc.ph import PhResult, solve_ph
from mixcalc.solver import SolverConfig, solve
from mixcalc.volume import VolumeConfig, mass_for_volume

if TYPE_CHECKING:
    from mixcalc.catalog.base import CatalogInterface
    from mixcalc.models import IngredientItem

logger = logging.getLogger(__name__)

EDITABLE_PROPERTIES = ("abv", "brix", "ph", "volume", "mass")


def _round(value: float, precision: Optional[int]) -> float:
    return value if precision is None else round(value, precision)


def _syrup_proportion(brix: float) -> str:
    """Express a Brix value as a sugar:water ratio, e.g. 66.7 -> '2:1'."""
    if brix >= 100:
        return "pure"
    ratio = brix / (100.0 - brix)
    if ratio >= 1:
        return f"{ratio:.3g}:1"
    return f"1:{1 / ratio:.3g}" if ratio > 0 else "0:1"


class Mixture:
    """A mutable composition tree bound to a substance catalog."""

    kind: Literal["mixture"] = "mixture"

    def __init__(self, catalog: "CatalogInterface", id: Optional[str] = None):
        self.catalog = catalog
        self._id = id or component_id()
        self._ingredients: Dict[str, Ingredient] = {}

    def __repr__(self) -> str:
        return f"Mixture({self._id!r}, ingredients={len(self._ingredients)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mixture):
            return NotImplemented
        return self._id == other._id and self._edges() == other._edges()

    __hash__ = None  # type: ignore[assignment]

    def _edges(self) -> List[Tuple[str, str, float, Optional[str], Any]]:
        return [
            (ing.id, ing.name, ing.mass, ing.notes, ing.item)
            for ing in self._ingredients.values()
        ]

    @property
    def id(self) -> str:
        return self._id

    @property
    def ingredients(self) -> Mapping[str, Ingredient]:
        return MappingProxyType(self._ingredients)

    @property
    def ingredient_ids(self) -> List[str]:
        return list(self._ingredients)

    def _node(self) -> Dict[str, Any]:
        entries = []
        for ingredient in self._ingredients.values():
            entry: Dict[str, Any] = {
                "id": ingredient.id,
                "mass": ingredient.mass,
                "name": ingredient.name,
            }
            if ingredient.notes is not None:
                entry["notes"] = ingredient.notes
            entries.append(entry)
        return {"id": self._id, "ingredients": entries}

    def _rows(self) -> Iterator[List[Any]]:
        for ingredient in self._ingredients.values():
            item = ingredient.item
            if item.kind == "mixture":
                yield [ingredient.id, item._node()]
                yield from item._rows()
            else:
                yield [ingredient.id, item.serialize()]

    def serialize(self) -> Dict[str, Any]:
        """Flatten the tree into ``{"rootId", "ingredientDb"}``."""
        rows = [[self._id, self._node()]]
        rows.extend(self._rows())
        return {"rootId": self._id, "ingredientDb": rows}

    @classmethod
    def deserialize(cls, catalog: "CatalogInterface", data: Mapping[str, Any]) -> "Mixture":
        """Rebuild a mixture from its serialized form.

        Raises:
            DeserializationError: The table is malformed or an id is missing.
            UnknownSubstanceError: A substance id does not resolve in the catalog.
        """
        try:
            root_id = data["rootId"]
            rows = data["ingredientDb"]
            table = {row[0]: row[1] for row in rows}
        except (KeyError, TypeError, IndexError) as exc:
            raise DeserializationError(f"Malformed mixture data: {exc}") from exc
        return cls._build(catalog, table, root_id, set())

    @classmethod
    def _build(
        cls,
        catalog: "CatalogInterface",
        table: Mapping[str, Any],
        node_id: str,
        path: Set[str],
    ) -> "Mixture":
        node = table.get(node_id)
        if not isinstance(node, Mapping) or "ingredients" not in node:
            raise DeserializationError(f"Mixture {node_id} not found in ingredient table")
        if node_id in path:
            raise DeserializationError(f"Mixture {node_id} contains itself")
        if "id" not in node:
            raise DeserializationError(f"Mixture {node_id} has no id")

        mixture = cls(catalog, id=node["id"])
        for entry in node["ingredients"]:
            edge_id = entry.get("id")
            if edge_id is None:
                raise DeserializationError(f"Ingredient without id in mixture {node_id}")
            child = table.get(edge_id)
            if not isinstance(child, Mapping):
                raise DeserializationError(f"Ingredient {edge_id} not found in ingredient table")
            if "ingredients" in child:
                item = cls._build(catalog, table, edge_id, path | {node_id})
            elif "id" in child:
                item = catalog.component(child["id"])
            else:
                raise DeserializationError(f"Ingredient {edge_id} has no substance id")
            try:
                mass = float(entry["mass"])
            except (KeyError, TypeError, ValueError) as exc:
                raise DeserializationError(f"Ingredient {edge_id} has no valid mass") from exc
            mixture._ingredients[edge_id] = Ingredient(
                id=edge_id,
                name=entry.get("name", ""),
                mass=mass,
                item=item,
                notes=entry.get("notes"),
            )
        return mixture

    def clone(self) -> "Mixture":
        return Mixture.deserialize(self.catalog, self.serialize())

    def update_from(self, other: "Mixture") -> "Mixture":
        """Copy the edges of `other` into this mixture, keeping this id."""
        self._ingredients.clear()
        for ingredient in other._ingredients.values():
            self._ingredients[ingredient.id] = Ingredient(
                id=ingredient.id,
                name=ingredient.name,
                mass=ingredient.mass,
                item=ingredient.item.clone(),
                notes=ingredient.notes,
            )
        return self

    def update_ids(self) -> "Mixture":
        """Mint fresh mixture ids throughout the tree, keeping id prefixes."""
        self._id = f"{citrus.id_prefix(self._id) or ''}{component_id()}"
        renamed: Dict[str, Ingredient] = {}
        for ingredient in self._ingredients.values():
            item = ingredient.item
            if item.kind == "mixture":
                was_item_id = ingredient.id == item.id
                item.update_ids()
                if was_item_id:
                    ingredient.id = item.id
            renamed[ingredient.id] = ingredient
        self._ingredients = renamed
        return self

    def add_ingredient(
        self,
        item: "IngredientItem",
        mass: float,
        name: Optional[str] = None,
        id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> "Mixture":
        if mass < 0:
            raise InvalidInputError(f"Ingredient mass must be non-negative, got {mass}")
        if id is None:
            # a sub-mixture keys its edge by its own id unless another portion of it is present
            reuse = item.kind == "mixture" and item.id not in self._ingredients
            id = item.id if reuse else component_id()
        elif id in self._ingredients:
            raise InvalidInputError(f"Ingredient id already in use: {id}")
        self._ingredients[id] = Ingredient(
            id=id,
            name=name if name is not None else item.describe(),
            mass=float(mass),
            item=item,
            notes=notes,
        )
        return self

    def remove_ingredient(self, ingredient_id: str) -> bool:
        return self._ingredients.pop(ingredient_id, None) is not None

    def replace_ingredient(
        self,
        ingredient_id: str,
        item: "IngredientItem",
        mass: Optional[float] = None,
        name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> bool:
        """Swap the item of an edge in place; the edge id is re-minted."""
        old = self._ingredients.get(ingredient_id)
        if old is None:
            return False
        if mass is not None and mass < 0:
            raise InvalidInputError(f"Ingredient mass must be non-negative, got {mass}")
        new_id = item.id if item.kind == "mixture" else component_id()
        if new_id != ingredient_id and new_id in self._ingredients:
            raise InvalidInputError(f"Ingredient id already in use: {new_id}")
        replacement = Ingredient(
            id=new_id,
            name=name if name is not None else old.name,
            mass=float(mass) if mass is not None else old.mass,
            item=item,
            notes=notes,
        )
        self._ingredients = {
            (new_id if key == ingredient_id else key): (replacement if key == ingredient_id else value)
            for key, value in self._ingredients.items()
        }
        return True

    def replace_ingredient_component(self, ingredient_id: str, item: "IngredientItem") -> bool:
        """Replace the item of the first edge with this id anywhere in the tree."""
        ingredient = self._ingredients.get(ingredient_id)
        if ingredient is not None:
            ingredient.item = item
            return True
        for ingredient in self._ingredients.values():
            if ingredient.item.kind == "mixture":
                if ingredient.item.replace_ingredient_component(ingredient_id, item):
                    return True
        return False

    def get_ingredient(self, ingredient_id: str) -> Ingredient:
        return self._ingredients[ingredient_id]

    def find_ingredient(self, predicate: Callable[["IngredientItem"], bool]) -> Optional[Ingredient]:
        for ingredient in self._ingredients.values():
            if predicate(ingredient.item):
                return ingredient
        return None

    @property
    def mass(self) -> float:
        return sum(ingredient.effective_mass for ingredient in self._ingredients.values())

    def set_mass(self, mass: float) -> "Mixture":
        """Rescale every edge so the mixture weighs `mass` grams.

        A massless mixture is rebuilt from the remembered (negative) edge
        masses; with no memory at all the mass is split equally.
        """
        if mass < 0:
            raise InvalidInputError(f"Mass must be non-negative, got {mass}")
        current = self.mass
        if current > 0:
            factor = mass / current
            for ingredient_id in list(self._ingredients):
                self.scale_ingredient_mass(ingredient_id, factor)
            return self

        remembered = sum(abs(ingredient.mass) for ingredient in self._ingredients.values())
        count = len(self._ingredients)
        for ingredient in list(self._ingredients.values()):
            if remembered > 0:
                share = abs(ingredient.mass) / remembered
            else:
                share = 1.0 / count
            self.set_ingredient_mass(share * mass, ingredient.id)
        return self

    def get_ingredient_mass(self, ingredient_id: str) -> float:
        return self._ingredients[ingredient_id].effective_mass

    def set_ingredient_mass(self, mass: float, ingredient_id: Optional[str] = None) -> bool:
        """Set the mass of one edge, or of the whole mixture when no id is given.

        Masses below the near-zero threshold are stored as the negative of
        the previous magnitude so the proportion can be restored later.
        """
        if mass < 0:
            raise InvalidInputError(f"Mass must be non-negative, got {mass}")
        if ingredient_id is None:
            self.set_mass(mass)
            return True
        ingredient = self._ingredients.get(ingredient_id)
        if ingredient is None:
            return False
        ingredient.mass = -abs(ingredient.mass) if mass < NEAR_ZERO_MASS else float(mass)
        return True

    def scale_ingredient_mass(self, ingredient_id: str, factor: float) -> "Mixture":
        self.set_ingredient_mass(self.get_ingredient_mass(ingredient_id) * factor, ingredient_id)
        return self

    def each_ingredient(self) -> Iterator[Tuple[Ingredient, float]]:
        for ingredient in self._ingredients.values():
            yield ingredient, ingredient.effective_mass

    def each_substance(self, *substance_ids: str) -> Iterator[DecoratedSubstance]:
        """Depth-first walk yielding each substance with its absolute mass.

        Every call returns a new generator over the current state of the tree.
        """
        for ingredient, mass in self.each_ingredient():
            item = ingredient.item
            if item.kind == "substance":
                if not substance_ids or item.substance_id in substance_ids:
                    yield DecoratedSubstance(
                        substance_id=item.substance_id,
                        ingredient_id=ingredient.id,
                        mixture_id=self._id,
                        mass=mass,
                        component=item,
                    )
                continue
            sub_mass = item.mass
            for sub in item.each_substance(*substance_ids):
                yield DecoratedSubstance(
                    substance_id=sub.substance_id,
                    ingredient_id=ingredient.id,
                    mixture_id=sub.mixture_id,
                    mass=(sub.mass / sub_mass) * mass if sub_mass > 0 else 0.0,
                    component=sub.component,
                )

    @property
    def substances(self) -> List[DecoratedSubstance]:
        return list(self.each_substance())

    def substance_map(self) -> Dict[str, MappedSubstance]:
        """Total mass per substance id."""
        totals: Dict[str, float] = {}
        components: Dict[str, SubstanceComponent] = {}
        for substance in self.each_substance():
            sid = substance.substance_id
            totals[sid] = totals.get(sid, 0.0) + substance.mass
            components.setdefault(sid, substance.component)
        return {
            sid: MappedSubstance(mass=totals[sid], component=components[sid])
            for sid in totals
        }

    def has_every_substance(self, *substance_ids: str) -> bool:
        present = {s.substance_id for s in self.each_substance(*substance_ids) if s.mass > 0}
        return present.issuperset(substance_ids)

    def density(self) -> float:
        """Solution density (g/mL) from additive partial densities.

        Water is the solvent baseline; a mixture without water still starts
        from the water reference so pure solutes keep their own density.
        """
        total = self.mass
        if total <= 0:
            return 0.0
        mapped = self.substance_map()
        density = 0.0 if WATER_ID in mapped else WATER_DENSITY
        for entry in mapped.values():
            density += entry.component.partial_density(entry.mass / total)
        return density

    @property
    def volume(self) -> float:
        mass = self.mass
        density = self.density()
        return mass / density if mass > 0 and density > 0 else 0.0

    @property
    def alcohol_mass(self) -> float:
        return sum(s.mass for s in self.each_substance(ETHANOL_ID))

    @property
    def water_mass(self) -> float:
        return sum(s.mass for s in self.each_substance(WATER_ID))

    @property
    def abv(self) -> float:
        ethanol_mass = self.alcohol_mass
        volume = self.volume
        if ethanol_mass <= 0 or volume <= 0:
            return 0.0
        ethanol_density = self.catalog.get(ETHANOL_ID).pure_density
        return 100.0 * (ethanol_mass / ethanol_density) / volume

    @property
    def proof(self) -> float:
        return self.abv * 2.0

    @property
    def equivalent_sugar_mass(self) -> float:
        return sum(s.component.equivalent_sugar_mass(s.mass) for s in self.each_substance())

    @property
    def brix(self) -> float:
        mass = self.mass
        return 100.0 * self.equivalent_sugar_mass / mass if mass > 0 else 0.0

    @property
    def kcal(self) -> float:
        return sum(s.component.kcal(s.mass) for s in self.each_substance())

    def ph_result(self) -> PhResult:
        return solve_ph(self.volume, self.each_substance())

    @property
    def ph(self) -> float:
        return self.ph_result().ph

    @property
    def is_valid(self) -> bool:
        substances_ok = all(
            s.component.is_valid and s.mass >= 0 for s in self.each_substance()
        )
        return substances_ok and all(
            ingredient.item.is_valid for ingredient in self._ingredients.values()
        )

    def analyze(self, precision: Optional[int] = None) -> MixtureAnalysis:
        abv = self.abv
        return MixtureAnalysis(
            volume=_round(self.volume, precision),
            mass=_round(self.mass, precision),
            abv=_round(abv, precision),
            brix=_round(self.brix, precision),
            kcal=_round(self.kcal, precision),
            proof=_round(abv * 2.0, precision),
            equivalent_sugar_mass=_round(self.equivalent_sugar_mass, precision),
            ph=_round(self.ph, precision),
        )

    def analyze_ingredient(self, ingredient_id: str, precision: Optional[int] = None) -> MixtureAnalysis:
        """Analyze a single edge as if it were poured on its own."""
        ingredient = self._ingredients[ingredient_id]
        alone = Mixture(self.catalog)
        alone.add_ingredient(
            ingredient.item.clone(), ingredient.effective_mass, name=ingredient.name, id=ingredient.id
        )
        return alone.analyze(precision)

    def get_ingredient_volume(self, ingredient_id: str) -> float:
        ingredient = self._ingredients[ingredient_id]
        mass = ingredient.effective_mass
        if ingredient.item.kind == "substance":
            return ingredient.item.volume(mass)
        density = ingredient.item.density()
        return mass / density if density > 0 else 0.0

    def set_ingredient_volume(self, ingredient_id: str, volume: float) -> bool:
        if volume < 0:
            raise InvalidInputError(f"Volume must be non-negative, got {volume}")
        ingredient = self._ingredients.get(ingredient_id)
        if ingredient is None:
            return False
        if volume == 0:
            return self.set_ingredient_mass(0.0, ingredient_id)
        if ingredient.item.kind == "substance":
            return self.set_ingredient_mass(volume * ingredient.item.pure_density, ingredient_id)
        mass = mass_for_volume(ingredient.item, volume)
        if mass == VOLUME_SOLVE_FAILED:
            raise ConvergenceError(f"Cannot set volume of ingredient {ingredient_id} to {volume}")
        return self.set_ingredient_mass(mass, ingredient_id)

    def get_ingredient_abv(self, ingredient_id: str) -> float:
        return self._ingredients[ingredient_id].item.abv

    def get_ingredient_brix(self, ingredient_id: str) -> float:
        return self._ingredients[ingredient_id].item.brix

    def set_volume(self, volume: float, config: Optional[VolumeConfig] = None) -> "Mixture":
        if volume < 0:
            raise InvalidInputError(f"Volume must be non-negative, got {volume}")
        if volume == 0:
            return self.set_mass(0.0)
        mass = mass_for_volume(self, volume, config)
        if mass == VOLUME_SOLVE_FAILED:
            raise ConvergenceError(f"Cannot set volume of mixture {self._id} to {volume}")
        logger.debug("Mixture %s: %.3f mL needs %.4f g", self._id, volume, mass)
        return self.set_mass(mass)

    def _solve_for(self, config: Optional[SolverConfig] = None, **changes: float) -> "Mixture":
        current = dict(volume=self.volume, abv=self.abv, brix=self.brix, ph=self.ph)
        current.update(changes)
        working = solve(self, SolverTarget(**current), config)
        return self.update_from(working)

    def set_abv(self, abv: float, config: Optional[SolverConfig] = None) -> "Mixture":
        if abs(abv - self.abv) < 0.001:
            return self
        return self._solve_for(config, abv=abv)

    def set_brix(self, brix: float, config: Optional[SolverConfig] = None) -> "Mixture":
        if abs(brix - self.brix) < 0.01:
            return self
        return self._solve_for(config, brix=brix)

    def set_ph(self, ph: float, config: Optional[SolverConfig] = None) -> "Mixture":
        if abs(ph - self.ph) < 0.01:
            return self
        return self._solve_for(config, ph=ph)

    def can_edit(self, key: str) -> bool:
        if key not in EDITABLE_PROPERTIES:
            raise InvalidInputError(f"Unknown property: {key}")
        if key in ("volume", "mass"):
            return True
        if key == "abv":
            return any(True for _ in self.each_substance(ETHANOL_ID))
        if key == "brix":
            return any(classify.is_sweetener(s.component) for s in self.each_substance())
        if key == "ph":
            return any(s.component.pka for s in self.each_substance())
        return False

    @property
    def label(self) -> str:
        if classify.is_spirit(self):
            return "spirit"
        if classify.is_syrup(self):
            return "simple syrup"
        if classify.is_liqueur(self):
            return "liqueur"
        return "mixture"

    def describe(self) -> str:
        if classify.is_syrup(self):
            sweeteners = sorted(
                (s for s in self.each_substance() if classify.is_sweetener(s.component)),
                key=lambda s: s.component.equivalent_sugar_mass(s.mass),
                reverse=True,
            )
            names = "/".join(dict.fromkeys(s.component.name.lower() for s in sweeteners))
            summary = f"{_syrup_proportion(self.brix)} {names} syrup"
            return summary.replace("sucrose syrup", "simple syrup")
        if classify.is_spirit(self):
            return "spirit"
        if classify.is_liqueur(self):
            return f"{self.proof:.0f} proof {self.brix:.0f} brix liqueur"
        return ", ".join(ingredient.item.describe() for ingredient in self._ingredients.values())
