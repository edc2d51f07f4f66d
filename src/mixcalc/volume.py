"""Volume to mass conversion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from mixcalc.constants import NEAR_ZERO_MASS, VOLUME_SOLVE_FAILED
from mixcalc.errors import InvalidInputError

if TYPE_CHECKING:
    from mixcalc.mixture import Mixture

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VolumeConfig:
    """Tuning of the volume/mass converter.

    Attributes:
        tolerance: Accepted volume error (mL).
        max_rounds: Number of corrective rounds after the first scaling.
        overshoot: Fraction of the residual added on top of it when
            correcting the requested volume.
    """

    tolerance: float = 0.001
    max_rounds: int = 10
    overshoot: float = 0.1


def mass_for_volume(
    mixture: "Mixture", target_volume: float, config: Optional[VolumeConfig] = None
) -> float:
    """Return the total mass at which `mixture` fills `target_volume` mL.

    The mixture itself is not modified. Density depends on composition, so
    a plain proportional rescale can miss the target; the requested volume
    is then corrected by the residual (plus an overshoot) and the scaling
    repeated.

    Returns:
        The mass in grams, or ``VOLUME_SOLVE_FAILED`` when the mixture cannot
        be scaled or the rounds run out.

    Raises:
        InvalidInputError: `target_volume` is not positive.
    """
    if target_volume <= 0:
        raise InvalidInputError(f"Target volume must be positive, got {target_volume}")
    config = config or VolumeConfig()

    working = mixture.clone()
    if abs(working.volume - target_volume) < config.tolerance:
        return working.mass

    if working.mass < NEAR_ZERO_MASS:
        working.set_mass(1.0)

    request = target_volume
    for round_number in range(config.max_rounds + 1):
        volume = working.volume
        if volume <= 0 or request <= 0:
            logger.warning("Mixture %s cannot be scaled to %.3f mL", mixture.id, target_volume)
            return VOLUME_SOLVE_FAILED

        working.set_mass(working.mass * request / volume)
        residual = target_volume - working.volume
        logger.debug(
            "Volume round %d: requested %.4f mL, residual %.6f mL", round_number, request, residual
        )
        if abs(residual) < config.tolerance:
            return working.mass
        request += residual * (1.0 + config.overshoot)

    logger.warning(
        "Volume of mixture %s did not converge to %.3f mL in %d rounds",
        mixture.id,
        target_volume,
        config.max_rounds,
    )
    return VOLUME_SOLVE_FAILED
