from typing import Any, List, Optional


class SigningError(Exception):
    """Base class for every error raised while producing a signed request."""


class EncodingError(SigningError, ValueError):
    """A value could not be encoded into its canonical form."""


class ConfigurationError(SigningError, ValueError):
    """Credentials, region or service are missing or malformed."""


class SchemaError(SigningError):
    """A service response did not match the expected schema."""

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []
