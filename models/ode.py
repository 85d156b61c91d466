import warnings
from dataclasses import dataclass

import numpy as np
from numba import njit
from scipy.integrate import odeint, ODEintWarning

from config.constants import (
    ODE_REL_TOL, ODE_ABS_TOL, ODE_MAX_STEPS, NEGATIVE_TOLERANCE, CONSERVATION_TOLERANCE
)
from utils.errors import ConfigurationError, IntegrationFailure

_SUCCESS = "Integration successful."


@njit(cache=True)
def ode_core(y, t, k_on, k_off, k_cat, synthesis):
    """
    Binding/cleavage ODE system.

    Args:
        y: [target, enzyme, complex, cleaved]
        t: time (unused, the system is autonomous)
        k_on: association rate constant
        k_off: dissociation rate constant
        k_cat: effective catalytic rate
        synthesis: constant target production rate

    Returns:
        dydt: array of derivatives
    """
    target = y[0]
    enzyme = y[1]
    complex_ = y[2]

    binding = k_on * enzyme * target
    release = k_off * complex_
    cleavage = k_cat * complex_

    dydt = np.empty_like(y)
    dydt[0] = synthesis - binding + release
    dydt[1] = -binding + release + cleavage
    dydt[2] = binding - release - cleavage
    # cumulative cleaved target, not reported, closes the target mass balance
    dydt[3] = cleavage
    return dydt


@njit(cache=True)
def ode_jacobian(y, t, k_on, k_off, k_cat, synthesis):
    """
    Analytic Jacobian of `ode_core`, row i holds d(dy_i/dt)/dy_j.
    """
    target = y[0]
    enzyme = y[1]

    jac = np.zeros((4, 4))
    # d/d target
    jac[0, 0] = -k_on * enzyme
    jac[1, 0] = -k_on * enzyme
    jac[2, 0] = k_on * enzyme
    # d/d enzyme
    jac[0, 1] = -k_on * target
    jac[1, 1] = -k_on * target
    jac[2, 1] = k_on * target
    # d/d complex
    jac[0, 2] = k_off
    jac[1, 2] = k_off + k_cat
    jac[2, 2] = -k_off - k_cat
    jac[3, 2] = k_cat
    return jac


@dataclass(frozen=True)
class SolverSettings:
    """
    Tolerances and step budget handed to odeint.

    `max_steps` is odeint's `mxstep`: the budget of internal steps between
    two consecutive output times, not for the whole trajectory. Exhausting
    it on any interval marks the condition as failed.
    """
    rtol: float = ODE_REL_TOL
    atol: float = ODE_ABS_TOL
    max_steps: int = ODE_MAX_STEPS
    negative_tolerance: float = NEGATIVE_TOLERANCE
    conservation_tolerance: float = CONSERVATION_TOLERANCE

    def __post_init__(self):
        if not (self.rtol > 0 and self.atol > 0):
            raise ConfigurationError(f"Solver tolerances must be > 0, got rtol={self.rtol}, atol={self.atol}")
        if int(self.max_steps) <= 0:
            raise ConfigurationError(f"max_steps must be > 0, got {self.max_steps}")


@dataclass(frozen=True)
class IntegrationResult:
    """
    time: output times, shape (T,)
    states: target, enzyme, complex per output time, shape (T, 3)
    cleaved: cumulative cleaved target per output time, shape (T,)
    """
    time: np.ndarray
    states: np.ndarray
    cleaved: np.ndarray


def validate_time_points(time_points):
    """
    Return time points as a float array, or raise ConfigurationError if they
    are empty, non-finite or not strictly increasing.
    """
    t = np.asarray(time_points, dtype=np.float64)
    if t.ndim != 1 or t.size == 0:
        raise ConfigurationError("Time points must be a non-empty 1-D sequence")
    if not np.all(np.isfinite(t)):
        raise ConfigurationError("Time points must be finite")
    if t.size > 1 and not np.all(np.diff(t) > 0):
        raise ConfigurationError("Time points must be strictly increasing")
    return t


def _relative_error(actual, expected, floor):
    scale = np.maximum(np.abs(expected), floor)
    return np.max(np.abs(actual - expected) / scale)


def _check_invariants(t, y, y0, synthesis, settings):
    """Non-negativity and the two linear mass balances."""
    states = y[:, :3]
    lowest = states.min()
    if lowest < -settings.negative_tolerance:
        raise IntegrationFailure(f"Negative concentration {lowest:.3e} in trajectory")

    # absolute errors up to atol are always tolerated
    floor = settings.atol / settings.conservation_tolerance
    enzyme_total = y0[1] + y0[2]
    err_enzyme = _relative_error(y[:, 1] + y[:, 2], np.full(t.shape, enzyme_total), floor)
    if err_enzyme > settings.conservation_tolerance:
        raise IntegrationFailure(f"Enzyme mass balance violated (relative error {err_enzyme:.3e})")

    target_expected = y0[0] + y0[2] + y0[3] + synthesis * (t - t[0])
    err_target = _relative_error(y[:, 0] + y[:, 2] + y[:, 3], target_expected, floor)
    if err_target > settings.conservation_tolerance:
        raise IntegrationFailure(f"Target mass balance violated (relative error {err_target:.3e})")


def integrate(state, k_on, k_off, k_cat, synthesis, time_points, settings=None):
    """
    Integrate the silencing ODE system from `state` over `time_points`.

    Uses LSODA (scipy odeint) with the analytic Jacobian; it switches between
    Adams and BDF as the system becomes stiff, which happens when the rate
    constants of a condition span several orders of magnitude.

    Args:
        state: initial (target, enzyme, complex) concentrations.
        k_on, k_off, k_cat: effective rate constants of the condition.
        synthesis: constant target production rate.
        time_points: strictly increasing output times, the first one is the initial time.
        settings: SolverSettings, defaults from config.constants.

    Returns:
        IntegrationResult with the state at every requested time point.

    Raises:
        ConfigurationError: malformed inputs.
        IntegrationFailure: solver failure or an invariant broken beyond tolerance.
    """
    settings = settings or SolverSettings()
    t = validate_time_points(time_points)

    initial = np.asarray(state, dtype=np.float64)
    if initial.shape != (3,) or not np.all(np.isfinite(initial)):
        raise ConfigurationError(f"Initial state must be three finite concentrations, got {state}")
    if np.any(initial < 0):
        raise ConfigurationError(f"Initial state must be non-negative, got {tuple(initial)}")
    y0 = np.append(initial, 0.0)

    args = (float(k_on), float(k_off), float(k_cat), float(synthesis))

    if t.size == 1:
        return IntegrationResult(time=t, states=initial[np.newaxis, :].copy(), cleaved=np.zeros(1))

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ODEintWarning)
        y, info = odeint(
            ode_core,
            y0,
            t,
            args=args,
            Dfun=ode_jacobian,
            col_deriv=False,
            rtol=settings.rtol,
            atol=settings.atol,
            mxstep=int(settings.max_steps),
            full_output=True,
        )

    message = info.get("message", "")
    if message != _SUCCESS:
        if "Excess work" in message:
            raise IntegrationFailure(
                f"odeint exhausted its step budget ({settings.max_steps} steps per output interval): {message}",
                solver_message=message,
            )
        raise IntegrationFailure(f"odeint did not converge: {message}", solver_message=message)
    if not np.all(np.isfinite(y)):
        raise IntegrationFailure("odeint returned non-finite values", solver_message=message)

    _check_invariants(t, y, y0, args[3], settings)

    # clamp the tolerated round-off below zero
    states = np.clip(y[:, :3], 0.0, None)
    return IntegrationResult(
        time=t,
        states=np.ascontiguousarray(states),
        cleaved=np.ascontiguousarray(y[:, 3]),
    )
