"""
Exception types raised by the simulation engine.

Every error raised while simulating a single condition carries that condition
(when known) so a failed sweep can be diagnosed without re-running it.
"""
from __future__ import annotations


class MirnakinError(Exception):
    """Base class for all errors of the package."""


class ConfigurationError(MirnakinError, ValueError):
    """Malformed sweep specification, parameter set or config file."""


class PhysicalInfeasibility(MirnakinError, ValueError):
    """
    The equilibrium solver produced negative concentrations or a complex
    concentration whose implied equilibrium ratio disagrees with K_D.
    """

    def __init__(self, message, *, total_target=None, total_enzyme=None, kd=None, condition=None):
        self.total_target = total_target
        self.total_enzyme = total_enzyme
        self.kd = kd
        self.condition = condition
        super().__init__(message)

    def with_condition(self, condition):
        return PhysicalInfeasibility(
            f"{self.args[0]} [condition: {condition}]",
            total_target=self.total_target,
            total_enzyme=self.total_enzyme,
            kd=self.kd,
            condition=condition,
        )


class IntegrationFailure(MirnakinError, RuntimeError):
    """The ODE solver diverged, ran out of steps or broke an invariant."""

    def __init__(self, message, *, solver_message=None, condition=None):
        self.solver_message = solver_message
        self.condition = condition
        super().__init__(message)

    def with_condition(self, condition):
        return IntegrationFailure(
            f"{self.args[0]} [condition: {condition}]",
            solver_message=self.solver_message,
            condition=condition,
        )


class CacheMismatch(MirnakinError):
    """A persisted sweep result does not match the requested sweep."""


class SweepFailure(MirnakinError):
    """
    One or more conditions of a parallel sweep failed.

    `failures` holds `(index, condition, error)` triples in enumeration order.
    """

    def __init__(self, failures):
        self.failures = list(failures)
        lines = [f"{len(self.failures)} condition(s) failed:"]
        for index, condition, error in self.failures:
            lines.append(f"  #{index} {condition}: {type(error).__name__}: {error}")
        super().__init__("\n".join(lines))
