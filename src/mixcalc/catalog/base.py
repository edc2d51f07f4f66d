"""Base interface for substance catalogs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Tuple

from mixcalc.components import SubstanceComponent
from mixcalc.models import Substance


class CatalogInterface(ABC):
    """Abstract base class for read-only substance tables."""

    @abstractmethod
    def get(self, substance_id: str) -> Substance:
        """Return the substance for `substance_id` or raise UnknownSubstanceError."""
        pass

    @abstractmethod
    def ids(self) -> Iterable[str]:
        """Iterate over every substance id in the catalog."""
        pass

    def __contains__(self, substance_id: object) -> bool:
        return substance_id in set(self.ids())

    def substances(self) -> Tuple[Substance, ...]:
        return tuple(self.get(substance_id) for substance_id in self.ids())

    def conjugate_acids(self, base_id: str) -> Tuple[str, ...]:
        """Ids of the acids that `base_id` is a conjugate base of."""
        if base_id not in self:
            return ()
        acid_id = self.get(base_id).conjugate_acid
        return (acid_id,) if acid_id else ()

    def conjugate_bases(self, acid_id: str) -> Tuple[str, ...]:
        """Ids of the registered conjugate bases of `acid_id`."""
        return tuple(s.id for s in self.substances() if s.conjugate_acid == acid_id)

    def component(self, substance_id: str) -> SubstanceComponent:
        return SubstanceComponent(self.get(substance_id), self)
