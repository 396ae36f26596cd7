"""
Production Timeline Exceptions

Domain-specific errors raised at the configuration and interchange seams.
KPI derivations themselves never raise: they coerce bad numbers to zero.
"""


class ConfigValidationError(ValueError):
    """Raised when a configuration transition is rejected (e.g. per-shift basis without a valid shift)."""


class PayloadImportError(ValueError):
    """Raised when an interchange payload is malformed. Nothing is imported when this is raised."""


__all__ = ["ConfigValidationError", "PayloadImportError"]
