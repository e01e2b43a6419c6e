"""
Custom exceptions for the detection engine.

Most problems met while analysing traffic are absorbed and degrade a single
session or signature. The classes here cover the cases that callers can see:
invalid configuration, an unusable signature catalog, records without a
timestamp and a missing identity key for a batch.
"""

from typing import Optional


class DetectionError(Exception):
    """
    Base exception for all detection-engine errors.

    All other engine exceptions inherit from this class,
    allowing for broad exception catching when needed.
    """

    pass


class ConfigurationError(DetectionError):
    """
    Raised when detection settings fail validation.

    Attributes:
        errors: Every validation problem found, one message per entry
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with every validation problem."""
        if not self.errors:
            return "Invalid detection settings"
        return "Invalid detection settings: " + "; ".join(self.errors)


class SignatureCatalogError(DetectionError):
    """
    Raised when a signature catalog cannot be read as a whole.

    Attributes:
        path: Location of the catalog (optional)
        reason: Why the catalog was rejected (optional)
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.path = path
        self.reason = reason
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with catalog context."""
        parts = [self.message]
        if self.path:
            parts.append(f"path='{self.path}'")
        if self.reason:
            parts.append(f"reason: {self.reason}")
        return " - ".join(parts)


class InvalidSignatureError(DetectionError):
    """
    Raised when a single signature record is malformed.

    The catalog loader catches this, logs it and skips the record.

    Attributes:
        name: Signature name, if the record had one
        reason: What is wrong with the record
    """

    def __init__(self, reason: str, name: Optional[str] = None):
        self.name = name
        self.reason = reason
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.name:
            return f"Invalid signature '{self.name}': {self.reason}"
        return f"Invalid signature: {self.reason}"


class InvalidLogEntryError(DetectionError):
    """
    Raised when a raw record cannot be turned into a log entry.

    Attributes:
        field: The field name that failed (optional)
        value: The offending value (optional)
        message: Detailed error message
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[object] = None,
    ):
        self.field = field
        self.value = value
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with field and value context."""
        if self.field and self.value is not None:
            return f"{self.message} (field='{self.field}', value={self.value!r})"
        elif self.field:
            return f"{self.message} (field='{self.field}')"
        return self.message


class MissingIdentityKeyError(DetectionError):
    """Raised when a batch is analysed without an identity key."""

    def __init__(self, identity_key: object = None):
        self.identity_key = identity_key
        super().__init__(
            f"An identity key is required to analyse a batch, got {identity_key!r}"
        )
