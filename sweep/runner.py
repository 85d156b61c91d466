from models.kinetics import Condition, KineticParameters, SimulationState
from models.ode import SolverSettings, integrate
from steadystate.equilibrium import equilibrium_state
from sweep.trajectory import Trajectory
from utils.errors import IntegrationFailure, PhysicalInfeasibility


def initial_state(condition: Condition, params: KineticParameters, equilibrium_init: bool) -> SimulationState:
    """
    Starting concentrations of a condition: binding equilibrium of the totals,
    or everything free with no complex.
    """
    if equilibrium_init:
        return equilibrium_state(condition.total_target, condition.total_enzyme, params.kd)
    return SimulationState(condition.total_target, condition.total_enzyme, 0.0)


def run_condition(condition: Condition, time_points, params: KineticParameters,
                  equilibrium_init: bool = True, solver: SolverSettings = None) -> Trajectory:
    """
    Simulate one sweep condition.

    The base parameters are perturbed by the condition's rate multipliers and
    the catalytic rate is k_cat_max times the condition's efficiency, or the
    base efficiency when the condition does not set one. The returned
    Trajectory carries the condition with that effective efficiency.

    Args:
        condition: sweep point.
        time_points: output times in seconds, strictly increasing.
        params: base kinetic parameters of the sweep.
        equilibrium_init: start from binding equilibrium instead of (T, E, 0).
        solver: integrator settings.

    Returns:
        Trajectory of the three species.

    Raises:
        PhysicalInfeasibility, IntegrationFailure: with the condition attached.
    """
    condition = condition.resolved(params)
    kinetics = condition.kinetics(params)
    try:
        state = initial_state(condition, kinetics, equilibrium_init)
        result = integrate(
            state,
            kinetics.k_on,
            kinetics.k_off,
            kinetics.k_cat,
            condition.synthesis,
            time_points,
            settings=solver,
        )
    except (PhysicalInfeasibility, IntegrationFailure) as e:
        raise e.with_condition(condition) from e
    return Trajectory(condition=condition, time=result.time, states=result.states)
