"""
Analytical binding equilibrium of the target/enzyme/complex system.

With conserved totals T (target) and E (enzyme) and a dissociation constant
K_D, the complex concentration c satisfies

    c / ((T - c) * (E - c)) = K_D

which is the quadratic

    K_D * c**2 + ((-T - E) * K_D - 1) * c + K_D * T * E = 0.

The larger root always exceeds min(T, E), so the smaller root is taken. The
root is computed in the cancellation-free form c = K_D*T*E / q with
q = (-b + sqrt(disc)) / 2, and the result is then checked against the
defining ratio; that check is what decides whether the state is accepted.
"""
import math

from config.constants import EQUILIBRIUM_TOLERANCE
from config.logconf import setup_logger
from models.kinetics import SimulationState
from utils.errors import ConfigurationError, PhysicalInfeasibility

logger = setup_logger()


def _validate_inputs(total_target, total_enzyme, kd):
    for name, value in (("total_target", total_target), ("total_enzyme", total_enzyme), ("K_D", kd)):
        if not math.isfinite(value):
            raise ConfigurationError(f"{name} must be finite, got {value}")
    if total_target < 0 or total_enzyme < 0:
        raise ConfigurationError(
            f"Total concentrations must be >= 0, got target={total_target}, enzyme={total_enzyme}"
        )
    if kd <= 0:
        raise ConfigurationError(f"K_D must be > 0, got {kd}")


def equilibrium_complex(total_target: float, total_enzyme: float, kd: float,
                        tolerance: float = EQUILIBRIUM_TOLERANCE) -> float:
    """
    Steady-state complex concentration for conserved totals.

    Args:
        total_target: total target concentration (free + bound), >= 0.
        total_enzyme: total enzyme concentration (free + bound), >= 0.
        kd: dissociation constant, > 0.
        tolerance: maximal relative deviation of the implied ratio from kd.

    Returns:
        float: complex concentration in [0, min(total_target, total_enzyme)].

    Raises:
        ConfigurationError: non-finite or out-of-range inputs.
        PhysicalInfeasibility: negative discriminant, negative free species
            or an implied ratio inconsistent with kd.
    """
    total_target = float(total_target)
    total_enzyme = float(total_enzyme)
    kd = float(kd)
    _validate_inputs(total_target, total_enzyme, kd)

    if total_target == 0.0 or total_enzyme == 0.0:
        return 0.0

    context = dict(total_target=total_target, total_enzyme=total_enzyme, kd=kd)

    a = kd
    b = (-total_target - total_enzyme) * kd - 1.0
    c = kd * total_target * total_enzyme
    disc = b * b - 4.0 * a * c
    if disc < 0.0:
        raise PhysicalInfeasibility(
            f"Negative discriminant ({disc:.3e}) for T={total_target}, E={total_enzyme}, K_D={kd}",
            **context,
        )

    # b < 0 always, so q > 0 and c / q is the smaller root
    q = 0.5 * (-b + math.sqrt(disc))
    complex_ = c / q

    free_target = total_target - complex_
    free_enzyme = total_enzyme - complex_
    if complex_ < 0.0 or free_target < 0.0 or free_enzyme < 0.0:
        raise PhysicalInfeasibility(
            f"Negative equilibrium concentration: complex={complex_:.6g}, "
            f"free target={free_target:.6g}, free enzyme={free_enzyme:.6g} "
            f"(T={total_target}, E={total_enzyme}, K_D={kd})",
            **context,
        )

    denominator = free_target * free_enzyme
    if denominator <= 0.0:
        raise PhysicalInfeasibility(
            f"Free species fully depleted, equilibrium ratio undefined "
            f"(T={total_target}, E={total_enzyme}, K_D={kd})",
            **context,
        )
    ratio = complex_ / denominator
    deviation = abs(ratio - kd) / kd
    if deviation > tolerance:
        raise PhysicalInfeasibility(
            f"Equilibrium ratio {ratio:.6g} deviates from K_D={kd} by {deviation:.2e} "
            f"(T={total_target}, E={total_enzyme})",
            **context,
        )
    return complex_


def equilibrium_state(total_target: float, total_enzyme: float, kd: float) -> SimulationState:
    """Free target, free enzyme and complex at binding equilibrium."""
    complex_ = equilibrium_complex(total_target, total_enzyme, kd)
    logger.debug(f"[Equilibrium] T={total_target:.4g} E={total_enzyme:.4g} K_D={kd:.4g} -> C={complex_:.4g}")
    return SimulationState(
        target=float(total_target) - complex_,
        enzyme=float(total_enzyme) - complex_,
        complex=complex_,
    )
