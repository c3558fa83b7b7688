"""Structured error hierarchy for culturevo."""


class CulturevoError(Exception):
    """Base for all culturevo errors."""

    pass


class ConfigurationError(CulturevoError):
    """Invalid parameters, raised before any generation runs."""

    def __init__(self, message: str, fields: list[str] | None = None):
        self.fields = list(fields or [])
        super().__init__(message)


class NumericDomainError(CulturevoError):
    """A sampling or mutation primitive was asked for something outside its domain."""

    pass


class EngineStateError(CulturevoError):
    """Driver in invalid state for requested operation."""

    pass


class SerializationError(CulturevoError):
    """Experiment config or report I/O failed."""

    pass
