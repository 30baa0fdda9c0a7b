"""Exception hierarchy for the Aenea engine.

Only configuration and validation errors are meant to escape to callers.
Persona call failures, cycle failures and sleep failures are raised inside
the pipeline and converted into events and log entries at the boundary
that owns them, so the scheduler can always admit the next cycle.
"""


class AeneaError(Exception):
    """Base class for all engine errors."""
    pass


class PersonaConfigurationError(AeneaError):
    """Persona registry or selection tables are inconsistent."""
    pass


class UnknownPersonaError(AeneaError, KeyError):
    """Requested persona id is not in the registry."""

    def __init__(self, persona_id: str):
        super().__init__(persona_id)
        self.persona_id = persona_id

    def __str__(self) -> str:
        return f"Unknown persona: {self.persona_id}"


class TriggerValidationError(AeneaError):
    """A trigger failed intake validation."""
    pass


class PersonaCallError(AeneaError):
    """A single persona's generation call failed or timed out."""

    def __init__(self, persona_id: str, reason: str):
        super().__init__(f"{persona_id}: {reason}")
        self.persona_id = persona_id
        self.reason = reason


class CycleFailure(AeneaError):
    """A thought cycle could not produce a usable result."""
    pass


class CycleSealedError(AeneaError):
    """Attempted to mutate a cycle that has already finished."""
    pass


class SleepPhaseError(AeneaError):
    """A sleep phase raised while running."""

    def __init__(self, phase: str, cause: BaseException):
        super().__init__(f"Sleep phase '{phase}' failed: {cause}")
        self.phase = phase
        self.cause = cause
