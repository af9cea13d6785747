"""Exceptions raised by the phase plan services."""


class PhasePlanServiceError(Exception):
    """Base exception for phase plan service errors."""
    pass


class NotFoundError(PhasePlanServiceError):
    """Raised when a phase targeted by an update does not exist."""
    pass


class GenerationFailure(PhasePlanServiceError):
    """
    Raised when plan generation did not produce a usable phase set.

    Covers timeouts, transport errors, malformed responses, empty plans and
    generated phases that fail validation. No phase is ever persisted when
    this is raised.
    """

    def __init__(self, message: str, details: dict = None):
        self.details = details or {}
        super().__init__(message)
