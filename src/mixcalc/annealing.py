"""Generic simulated annealing driver."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Tuple, TypeVar

StateT = TypeVar("StateT")
MoveT = TypeVar("MoveT")

# (remaining fraction of the budget, step) -> temperature
Schedule = Callable[[float, int], float]


def clamp(value: float, low: float, high: float) -> float:
    return max(min(value, high), low)


def linear_schedule(initial_temperature: float, floor: float = 0.0) -> Schedule:
    return lambda remaining, step: max(floor, initial_temperature * remaining)


# alpha between 0.8 and 0.9 works well
def exponential_schedule(initial_temperature: float, alpha: float = 0.85) -> Schedule:
    return lambda remaining, step: initial_temperature * (alpha ** step)


def linear_step_schedule(initial_temperature: float, alpha: float = 1.0) -> Schedule:
    return lambda remaining, step: initial_temperature / (1 + alpha * step)


@dataclass(frozen=True)
class AnnealingResult(Generic[StateT]):
    state: StateT
    steps: int
    aborted: bool


class Annealer(Generic[StateT, MoveT]):
    """Metropolis acceptance loop over caller-defined moves.

    `choose_move(state, step)` proposes a move and returns it together with
    the change in error it would cause; `apply_move(state, move)` turns an
    accepted move into the next state. Either callback may call `abort()`
    to stop the run before the next move is applied.
    """

    def __init__(
        self,
        choose_move: Callable[[StateT, int], Tuple[MoveT, float]],
        apply_move: Callable[[StateT, MoveT], StateT],
        schedule: Optional[Schedule] = None,
        rng: Optional[random.Random] = None,
    ):
        self.choose_move = choose_move
        self.apply_move = apply_move
        self.schedule = schedule or linear_schedule(1.0)
        self.rng = rng or random.Random()
        self._temperature = 0.0
        self._aborted = False

    @property
    def current_temperature(self) -> float:
        return self._temperature

    def abort(self) -> None:
        self._aborted = True

    def accept(self, error_delta: float) -> bool:
        if error_delta <= 0:
            return True
        if self._temperature <= 0:
            return False
        # Costs vary a lot from one step to the next; clamp the exponent.
        probability = math.exp(clamp(-error_delta / self._temperature, -100, 100))
        return probability >= self.rng.uniform(0.0, 1.0)

    def run(self, state: StateT, max_steps: int) -> AnnealingResult[StateT]:
        self._aborted = False
        steps = 0
        for step in range(max_steps):
            self._temperature = self.schedule(1.0 - step / max_steps, step)
            move, error_delta = self.choose_move(state, step)
            if self._aborted:
                break
            steps += 1
            if self.accept(error_delta):
                state = self.apply_move(state, move)
        return AnnealingResult(state=state, steps=steps, aborted=self._aborted)
