"""Composition solver.

Searches ingredient masses for a composition that hits a target volume,
ABV, Brix and pH. Each move rescales the top-level ingredients according
to what they provide and what the current deviations call for, then
re-solves the total mass for the target volume. Moves are accepted by a
simulated annealing loop; the best state seen is tracked separately.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from mixcalc.annealing import Annealer, linear_schedule
from mixcalc.classify import derive_needs, ingredient_provides, mass_factor
from mixcalc.errors import ConvergenceError, InvalidInputError
from mixcalc.models import SolverTarget, WorkingTarget
from mixcalc.ph import acid_groups
from mixcalc.volume import VolumeConfig

if TYPE_CHECKING:
    from mixcalc.mixture import Mixture

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverConfig:
    """Tuning of the composition solver.

    Attributes:
        tolerance: Error below which the search stops early.
        max_iterations: Annealing step budget.
        needs_scale: Damping applied to every deviation when deriving needs.
        ph_step: Additional damping of pH moves.
        failure_factor: The result is rejected when its error exceeds
            ``tolerance * failure_factor``.
        initial_temperature: Starting annealing temperature.
        min_temperature: Floor of the linear cooling schedule.
        seed: Seed of the acceptance random source; None for a random seed.
        volume: Settings of the volume/mass converter used after every move.
    """

    tolerance: float = 1e-4
    max_iterations: int = 100
    needs_scale: float = 0.5
    ph_step: float = 0.5
    failure_factor: float = 10.0
    initial_temperature: float = 1.0
    min_temperature: float = 0.05
    seed: Optional[int] = None
    volume: VolumeConfig = field(default_factory=VolumeConfig)


@dataclass(frozen=True)
class MixtureState:
    mixture: "Mixture"
    targets: WorkingTarget
    actual: WorkingTarget
    deviations: WorkingTarget
    error: float


def deviation(actual: float, target: float) -> float:
    """Signed relative deviation ``1 - target/actual``."""
    if target < 0:
        raise InvalidInputError(f"Target value must be non-negative, got {target}")
    if target == 0:
        return 0.0 if actual == 0 else 1.0
    if actual == 0:
        return 1.0
    return 1.0 - target / actual


def analyze_state(mixture: "Mixture", targets: WorkingTarget) -> MixtureState:
    if targets.moles_h <= 0:
        raise InvalidInputError("Target [H+] must be positive")
    if targets.volume <= 0:
        raise InvalidInputError("Target volume must be positive")

    actual = WorkingTarget(
        volume=mixture.volume,
        abv=mixture.abv,
        brix=mixture.brix,
        moles_h=10.0 ** -mixture.ph,
    )
    deviations = WorkingTarget(
        volume=deviation(actual.volume, targets.volume),
        abv=deviation(actual.abv, targets.abv),
        brix=deviation(actual.brix, targets.brix),
        moles_h=deviation(actual.moles_h, targets.moles_h),
    )
    # pH error is measured on the pH scale, not in [H+]
    ph_deviation = deviation(-math.log10(actual.moles_h), -math.log10(targets.moles_h))
    error = math.sqrt(
        deviations.abv ** 2 + deviations.brix ** 2 + deviations.volume ** 2 + ph_deviation ** 2
    )
    return MixtureState(mixture, targets, actual, deviations, error)


def validate_target(target: SolverTarget) -> None:
    if target.volume <= 0:
        raise InvalidInputError(f"Target volume must be positive, got {target.volume}")
    if not 0 <= target.abv <= 100:
        raise InvalidInputError(f"Target ABV must be between 0 and 100, got {target.abv}")
    if not 0 <= target.brix <= 100:
        raise InvalidInputError(f"Target Brix must be between 0 and 100, got {target.brix}")
    if not 0 <= target.ph <= 7:
        raise InvalidInputError(f"Target pH must be between 0 and 7, got {target.ph}")


def solve(
    mixture: "Mixture", target: SolverTarget, config: Optional[SolverConfig] = None
) -> "Mixture":
    """Find a composition of `mixture` that matches `target`.

    The input mixture is never modified; a new mixture is returned.

    Raises:
        InvalidInputError: A target is outside its valid range.
        ConvergenceError: The best composition found is still off target.
    """
    validate_target(target)
    config = config or SolverConfig()
    targets = WorkingTarget.from_target(target)
    ingredient_ids = mixture.ingredient_ids

    best = analyze_state(mixture.clone(), targets)

    def track(state: MixtureState) -> None:
        nonlocal best
        if state.error < best.error:
            best = state
        if best.error < config.tolerance:
            annealer.abort()

    def choose_move(state: MixtureState, step: int):
        track(state)
        if best.error < config.tolerance:
            return state, 0.0
        candidate = state.mixture.clone()
        groups = acid_groups(candidate.each_substance())
        needs = derive_needs(state.deviations, groups, config.needs_scale, config.ph_step)
        temperature = annealer.current_temperature
        for ingredient_id in ingredient_ids:
            ingredient = candidate.get_ingredient(ingredient_id)
            mass = candidate.get_ingredient_mass(ingredient_id)
            factor = mass_factor(ingredient_provides(ingredient.item, mass, groups), needs)
            if factor != 1:
                # large moves while hot, fine tuning as it cools
                candidate.scale_ingredient_mass(ingredient_id, 1 + (factor - 1) * temperature)
        candidate.set_volume(targets.volume, config.volume)

        provisional = analyze_state(candidate, targets)
        logger.debug(
            "Step %d (T=%.3f): error %.6f -> %.6f", step, temperature, state.error, provisional.error
        )
        track(provisional)
        return provisional, provisional.error - state.error

    annealer: Annealer[MixtureState, MixtureState] = Annealer(
        choose_move=choose_move,
        apply_move=lambda state, move: move,
        schedule=linear_schedule(config.initial_temperature, config.min_temperature),
        rng=random.Random(config.seed),
    )
    result = annealer.run(best, config.max_iterations)

    final = best if best.error < result.state.error else result.state
    logger.debug(
        "Solver finished after %d steps (aborted=%s) with error %.6f",
        result.steps,
        result.aborted,
        final.error,
    )
    if final.error > config.tolerance * config.failure_factor:
        raise ConvergenceError(
            f"Composition did not converge: error {final.error:.6f} "
            f"(abv {final.actual.abv:.3f}, brix {final.actual.brix:.3f}, "
            f"volume {final.actual.volume:.3f})"
        )
    return final.mixture
