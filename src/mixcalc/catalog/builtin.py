"""Built-in substance table and JSON-backed catalogs."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping

from mixcalc.catalog.base import CatalogInterface
from mixcalc.errors import InvalidInputError, UnknownSubstanceError
from mixcalc.models import Substance

logger = logging.getLogger(__name__)

# Ethanol in water at 20 C, weight fraction -> g/mL. The zero point is pinned
# to the reference water density so trace ethanol does not jump the density.
ETHANOL_DENSITY_CURVE = (
    (0.00, 1.0000),
    (0.05, 0.9894),
    (0.10, 0.9819),
    (0.15, 0.9751),
    (0.20, 0.9686),
    (0.25, 0.9617),
    (0.30, 0.9538),
    (0.35, 0.9449),
    (0.40, 0.9352),
    (0.45, 0.9247),
    (0.50, 0.9138),
    (0.55, 0.9026),
    (0.60, 0.8911),
    (0.65, 0.8795),
    (0.70, 0.8677),
    (0.75, 0.8556),
    (0.80, 0.8434),
    (0.85, 0.8310),
    (0.90, 0.8180),
    (0.95, 0.8042),
    (1.00, 0.7890),
)

SUCROSE_DENSITY_CURVE = (
    (0.0, 1.0000),
    (0.1, 1.0343),
    (0.2, 1.0727),
    (0.3, 1.1153),
    (0.4, 1.1621),
    (0.5, 1.2130),
    (0.6, 1.2681),
    (0.7, 1.3274),
    (0.8, 1.3909),
    (1.0, 1.5900),
)

BUILTIN_SUBSTANCES = (
    Substance("water", "Water", 1.0, 18.015),
    Substance(
        "ethanol",
        "Ethanol",
        0.789,
        46.068,
        kcal_per_gram=7.1,
        density_curve=ETHANOL_DENSITY_CURVE,
    ),
    Substance(
        "sucrose",
        "Sucrose",
        1.59,
        342.3,
        sweetness=1.0,
        kcal_per_gram=3.87,
        density_curve=SUCROSE_DENSITY_CURVE,
    ),
    Substance("glucose", "Glucose", 1.54, 180.156, sweetness=0.74, kcal_per_gram=3.75),
    Substance("fructose", "Fructose", 1.69, 180.156, sweetness=1.73, kcal_per_gram=3.75),
    Substance("allulose", "Allulose", 1.6, 180.156, sweetness=0.7, kcal_per_gram=0.4),
    Substance("erythritol", "Erythritol", 1.45, 122.12, sweetness=0.7, kcal_per_gram=0.24),
    Substance("sucralose", "Sucralose", 1.66, 397.64, sweetness=600.0),
    Substance(
        "citric-acid", "Citric acid", 1.665, 192.12, pka=(3.13, 4.76, 6.40), kcal_per_gram=2.47
    ),
    Substance("malic-acid", "Malic acid", 1.609, 134.09, pka=(3.40, 5.20), kcal_per_gram=2.39),
    Substance("tartaric-acid", "Tartaric acid", 1.79, 150.087, pka=(2.98, 4.34), kcal_per_gram=2.0),
    Substance("lactic-acid", "Lactic acid", 1.206, 90.08, pka=(3.86,), kcal_per_gram=3.62),
    Substance("acetic-acid", "Acetic acid", 1.049, 60.052, pka=(4.76,), kcal_per_gram=3.4),
    Substance("ascorbic-acid", "Ascorbic acid", 1.65, 176.12, pka=(4.10, 11.6)),
    Substance("sodium-citrate", "Sodium citrate", 1.7, 258.07, conjugate_acid="citric-acid"),
    Substance("sodium-malate", "Sodium malate", 1.6, 178.05, conjugate_acid="malic-acid"),
    Substance("sodium-acetate", "Sodium acetate", 1.528, 82.03, conjugate_acid="acetic-acid"),
)


class StaticCatalog(CatalogInterface):
    """Immutable in-memory catalog keyed by substance id."""

    def __init__(self, substances: Iterable[Substance]):
        table: Dict[str, Substance] = {}
        for substance in substances:
            if substance.id in table:
                raise InvalidInputError(f"Duplicate substance id: {substance.id}")
            table[substance.id] = substance
        for substance in table.values():
            if substance.conjugate_acid and substance.conjugate_acid not in table:
                raise InvalidInputError(
                    f"{substance.id} names unknown conjugate acid {substance.conjugate_acid}"
                )
        self._table: Mapping[str, Substance] = MappingProxyType(table)

    def get(self, substance_id: str) -> Substance:
        try:
            return self._table[substance_id]
        except KeyError:
            raise UnknownSubstanceError(substance_id) from None

    def ids(self) -> Iterable[str]:
        return iter(self._table)

    def __contains__(self, substance_id: object) -> bool:
        return substance_id in self._table

    def __len__(self) -> int:
        return len(self._table)

    @classmethod
    def from_json(cls, path: str | Path) -> "StaticCatalog":
        """Load a catalog from a JSON list of substance records."""
        with open(path, "r") as f:
            records = json.load(f)
        if isinstance(records, dict):
            records = records.get("substances", [])
        substances = [_parse_substance(record) for record in records]
        logger.debug("Loaded %d substances from %s", len(substances), path)
        return cls(substances)


def _parse_substance(data: Mapping[str, Any]) -> Substance:
    try:
        return Substance(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            pure_density=float(data["pure_density"]),
            molecular_mass=float(data["molecular_mass"]),
            pka=tuple(float(pka) for pka in data.get("pka", ())),
            sweetness=float(data.get("sweetness", 0.0)),
            kcal_per_gram=float(data.get("kcal_per_gram", 0.0)),
            density_curve=tuple(
                (float(w), float(rho)) for w, rho in data.get("density_curve", ())
            ),
            conjugate_acid=data.get("conjugate_acid"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidInputError(f"Invalid substance record {data!r}: {exc}") from exc


@lru_cache(maxsize=None)
def default_catalog() -> StaticCatalog:
    """Return the built-in catalog (created once per process)."""
    return StaticCatalog(BUILTIN_SUBSTANCES)
