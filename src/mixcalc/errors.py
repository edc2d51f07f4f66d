"""Exception hierarchy for mixcalc."""

from __future__ import annotations


class MixtureError(Exception):
    """Base class for all mixcalc failures."""


class InvalidInputError(MixtureError, ValueError):
    """Negative mass/volume or a target outside its valid range."""


class DeserializationError(InvalidInputError):
    """Serialized mixture data references a missing or malformed node."""


class UnknownSubstanceError(DeserializationError):
    def __init__(self, substance_id: str):
        super().__init__(f"Unknown substance: {substance_id}")
        self.substance_id = substance_id


class UnbracketedRootError(MixtureError, ArithmeticError):
    """The charge balance has no sign change over the [H+] bracket."""


class ConvergenceError(MixtureError, RuntimeError):
    """A solver exhausted its iteration budget above tolerance."""
