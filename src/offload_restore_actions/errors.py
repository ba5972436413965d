from __future__ import annotations


class OffloadRestoreError(RuntimeError):
    """Base class for failures that abort an item mutation."""


class ConfigFetchError(OffloadRestoreError):
    """Raised when the plugin configuration record cannot be located unambiguously."""


class ConfigValidationError(OffloadRestoreError):
    """Raised when a configuration value is malformed or violates request <= limit."""

    def __init__(self, *, field: str, value: str, reason: str) -> None:
        super().__init__(f'{field} "{value}" {reason}')
        self.field = field
        self.value = value


class ConversionError(OffloadRestoreError):
    """Raised when an item cannot be converted between its generic and typed forms."""

    def __init__(self, *, direction: str, reason: str) -> None:
        normalized_reason = reason.strip() or "unknown error"
        super().__init__(f"unable to convert {direction}: {normalized_reason}")
        self.direction = direction


class GateEvaluationError(OffloadRestoreError):
    """Raised when restore metadata is not shaped like an annotation mapping."""
