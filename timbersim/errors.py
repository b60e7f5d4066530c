"""
Error taxonomy for timbersim.

Every error carries the identity of what triggered it (variable, group
and/or subsample definition) so callers can fix their input data or
configuration. All errors derive from ``SimulationError``, itself a
``ValueError``, matching the validation errors raised elsewhere.
"""

from typing import Any, Optional


class SimulationError(ValueError):
    """Base class for simulation engine errors.

    Attributes:
        variable: Offending variable name, if any.
        group: Offending group-key tuple, if any.
        definition: Index of the offending subsample definition, if any.
    """

    def __init__(
        self,
        message: str,
        variable: Optional[str] = None,
        group: Optional[Any] = None,
        definition: Optional[int] = None,
    ):
        self.variable = variable
        self.group = group
        self.definition = definition
        self.message = message
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        context = []
        if self.variable:
            context.append(f"variable '{self.variable}'")
        if self.group is not None:
            context.append(f"group {self.group!r}")
        if self.definition is not None:
            context.append(f"subsample definition {self.definition}")
        if not context:
            return message
        return f"{message} ({', '.join(context)})"

    def with_context(self, **context) -> "SimulationError":
        """Return a copy of this error with additional context filled in."""
        fields = {"variable": self.variable, "group": self.group, "definition": self.definition}
        fields.update({k: v for k, v in context.items() if v is not None})
        return type(self)(self.message, **fields)


class DomainError(SimulationError):
    """A transform received input outside its valid domain."""

    pass


class InsufficientDataError(SimulationError):
    """Reference sample too small (or degenerate) to estimate a covariance matrix."""

    pass


class SingularCovarianceError(SimulationError):
    """The observed-variable covariance block is not invertible."""

    pass


class NoObservedVariablesError(SimulationError):
    """Conditional simulation was requested with nothing to condition on."""

    pass


class InvalidSubsampleDefinitionError(SimulationError):
    """A subsample definition is malformed or contradicts another one."""

    pass
