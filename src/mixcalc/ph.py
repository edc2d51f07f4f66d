"""Acid-base equilibrium and pH.

The pH of a mixture is estimated per acid group. A group is one acid
(a substance with at least one pKa) plus any of its registered conjugate
bases present in the same mixture, e.g. citric acid with sodium citrate.

For each group the charge balance of a polyprotic acid HnA

    [H+] + n*Cb = [OH-] + C_T * sum_i(i * alpha_i)

is solved for [H+] by bisection, where Cb is the conjugate base (the
n-fold sodium salt) molarity, C_T = Ca + Cb the total analytical
concentration and alpha_i the fraction of the acid in its i-th
deprotonated form:

    alpha_i = prod(Ka_1..Ka_i) / [H+]^i / (1 + sum_j prod(Ka_1..Ka_j) / [H+]^j)

The contributions of all groups are summed before taking -log10.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Sequence

import numpy as np
from scipy.optimize import bisect

from mixcalc import citrus
from mixcalc.components import SubstanceComponent
from mixcalc.constants import DEBYE_HUCKEL_SLOPE, H_MAX, H_MIN, KW, PH_NEUTRAL, PH_TOLERANCE
from mixcalc.errors import InvalidInputError, UnbracketedRootError
from mixcalc.models import DecoratedSubstance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhResult:
    ph: float
    total_moles_h: float  # [H+] in mol/L


@dataclass
class AcidGroup:
    acid: SubstanceComponent
    acids: List[DecoratedSubstance] = field(default_factory=list)
    bases: List[DecoratedSubstance] = field(default_factory=list)

    @property
    def acid_mass(self) -> float:
        return sum(member.mass for member in self.acids)

    @property
    def base_mass(self) -> float:
        return sum(member.mass for member in self.bases)

    @property
    def is_buffer_pair(self) -> bool:
        return self.base_mass > 0

    def acid_molarity(self, volume_ml: float) -> float:
        """Free acid molarity, discounting acid that came from citrus juice."""
        moles = 0.0
        for member in self.acids:
            free_mass = member.mass * (1.0 - citrus.dissociation_factor(member.mixture_id))
            moles += member.component.moles(free_mass)
        return moles / (volume_ml / 1000.0)

    def base_molarity(self, volume_ml: float) -> float:
        moles = sum(member.component.moles(member.mass) for member in self.bases)
        return moles / (volume_ml / 1000.0)


def acid_groups(substances: Iterable[DecoratedSubstance]) -> Dict[str, AcidGroup]:
    """Group flattened substances into acids and their conjugate bases."""
    substances = [s for s in substances if s.mass > 0]
    groups: Dict[str, AcidGroup] = {}
    for substance in substances:
        if substance.component.pka:
            group = groups.setdefault(substance.substance_id, AcidGroup(substance.component))
            group.acids.append(substance)
    for substance in substances:
        catalog = substance.component.catalog
        for acid_id in catalog.conjugate_acids(substance.substance_id):
            if acid_id in groups:
                groups[acid_id].bases.append(substance)
    return groups


def molarity(component: SubstanceComponent, mass: float, volume_ml: float) -> float:
    return component.moles(mass) / (volume_ml / 1000.0)


def activity_coefficient(acid_molarity: float, base_molarity: float, max_charge: int) -> float:
    """Simplified Debye-Huckel coefficient, floored at zero."""
    ionic_strength = acid_molarity + max_charge * base_molarity
    return max(0.0, 1.0 - DEBYE_HUCKEL_SLOPE * math.sqrt(ionic_strength))


def charge_balance(
    acid_molarity: float, base_molarity: float, pka: Sequence[float]
) -> Callable[[float], float]:
    """Build the charge-balance residual f([H+]) for one acid group."""
    ka = 10.0 ** -np.asarray(pka, dtype=float)
    cumulative = np.cumprod(ka)
    charges = np.arange(1, len(ka) + 1)
    total = acid_molarity + base_molarity
    cations = len(ka) * base_molarity

    def residual(h: float) -> float:
        terms = cumulative / h ** charges
        denominator = 1.0 + terms.sum()
        anions = total * (charges * terms).sum() / denominator
        return float((h + cations) - (KW / h + anions))

    return residual


def solve_h(residual: Callable[[float], float], low: float = H_MIN, high: float = H_MAX) -> float:
    """Bisect the residual for [H+]; the bracket must straddle a root."""
    f_low, f_high = residual(low), residual(high)
    if not (math.isfinite(f_low) and math.isfinite(f_high)) or f_low * f_high >= 0:
        raise UnbracketedRootError(
            f"Charge balance is not bracketed: f({low})={f_low}, f({high})={f_high}"
        )
    return bisect(residual, low, high, xtol=PH_TOLERANCE)


def calculate_ph(
    acid_molarity: float,
    conjugate_base_molarity: float,
    pka: Sequence[float],
    dissociation_factor: float = 0.0,
) -> PhResult:
    """Solve the pH of a single acid/conjugate-base pair.

    Args:
        acid_molarity: Free acid concentration (mol/L).
        conjugate_base_molarity: Concentration of the fully deprotonated salt (mol/L).
        pka: Ordered dissociation constants of the acid.
        dissociation_factor: Fraction of the acid treated as already
            dissociated (citrus juices); removed from the free acid.

    Raises:
        UnbracketedRootError: No acid or base is present, or the residual has
            no sign change over the [H+] bracket.
    """
    if not pka:
        return PhResult(PH_NEUTRAL, 0.0)
    if acid_molarity < 0 or conjugate_base_molarity < 0:
        raise InvalidInputError("Molarities must be non-negative")

    acid_molarity *= 1.0 - dissociation_factor
    if acid_molarity + conjugate_base_molarity <= 0:
        raise UnbracketedRootError("No acid or conjugate base present; charge balance has no root")

    gamma = activity_coefficient(acid_molarity, conjugate_base_molarity, len(pka))
    base_activity = conjugate_base_molarity * gamma

    h = solve_h(charge_balance(acid_molarity, base_activity, pka))
    return PhResult(-math.log10(h), h)


def solve_ph(volume_ml: float, substances: Iterable[DecoratedSubstance]) -> PhResult:
    """pH of a flattened mixture of `volume_ml` millilitres."""
    groups = acid_groups(substances)
    if not groups:
        return PhResult(PH_NEUTRAL, 0.0)
    if volume_ml <= 0:
        raise InvalidInputError("Volume must be positive when acids are present")

    total_h = 0.0
    for acid_id, group in groups.items():
        result = calculate_ph(
            acid_molarity=group.acid_molarity(volume_ml),
            conjugate_base_molarity=group.base_molarity(volume_ml),
            pka=group.acid.pka,
        )
        logger.debug("Acid group %s: pH %.3f", acid_id, result.ph)
        total_h += result.total_moles_h

    if total_h <= 0:
        return PhResult(PH_NEUTRAL, 0.0)
    return PhResult(-math.log10(total_h), total_h)


def buffer_capacity(pka: Sequence[float], total_molarity: float, ph: float) -> float:
    """Van Slyke buffer capacity (mol/L per pH unit).

    Each dissociation step is treated as an independent monoprotic buffer
    of the full analytical concentration.
    """
    h = 10.0 ** -ph
    ka = 10.0 ** -np.asarray(pka, dtype=float)
    acid_term = float(np.sum(total_molarity * ka * h / (ka + h) ** 2))
    return math.log(10.0) * (KW / h + h + acid_term)
