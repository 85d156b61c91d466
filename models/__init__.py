from models.kinetics import KineticParameters, Condition, SimulationState, CONDITION_FIELDS
from models.ode import integrate, SolverSettings, IntegrationResult

__all__ = [
    "KineticParameters",
    "Condition",
    "SimulationState",
    "CONDITION_FIELDS",
    "integrate",
    "SolverSettings",
    "IntegrationResult",
]
