"""
Exception hierarchy for the VC toolkit.

Every failure in the verification chain raises one of these. Each class
carries the process exit status the CLI uses when it surfaces the error.
"""

from __future__ import annotations

from dataclasses import dataclass


class VCToolkitError(Exception):
    """Base class for all toolkit errors."""

    exit_code: int = 1

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(VCToolkitError):
    """Missing or invalid configuration (issuer DID, key file, ...)."""

    exit_code = 2


class MalformedInputError(VCToolkitError):
    """Signed object could not be parsed."""

    exit_code = 10


class MissingIssuerError(VCToolkitError):
    """Payload has no issuer (or holder, for presentations)."""

    exit_code = 11


class IssuerKeyMismatchError(VCToolkitError):
    """Signing key is not owned by the claimed issuer."""

    exit_code = 12


class ControllerNotFoundError(VCToolkitError):
    """No controller document could be found for a DID."""

    exit_code = 13


class KeyNotFoundError(VCToolkitError):
    """Key identifier is not part of the requested verification role."""

    exit_code = 14


class KeyMismatchError(VCToolkitError):
    """Header kid differs from the kid the verifier was resolved for."""

    exit_code = 15


class SignatureInvalidError(VCToolkitError):
    """Signature does not verify against the public key."""

    exit_code = 16

    def __init__(self, message: str = "Signature verification failed") -> None:
        super().__init__(message)


class SchemaNotFoundError(VCToolkitError):
    """No schema registered under the requested id."""

    exit_code = 17


@dataclass(frozen=True)
class SchemaError:
    """A single schema violation."""

    instance_path: str
    message: str

    def __str__(self) -> str:
        return f"{self.instance_path or '(root)'}: {self.message}"


class SchemaValidationError(VCToolkitError):
    """Payload (or schema itself) failed JSON Schema validation."""

    exit_code = 18

    def __init__(self, message: str, errors: list[SchemaError] | None = None) -> None:
        super().__init__(message)
        self.errors: list[SchemaError] = list(errors or [])


class UnsupportedAlgorithmError(VCToolkitError):
    """Algorithm or curve outside ES256 / ES384."""

    exit_code = 19


class ValidityError(VCToolkitError):
    """Token is outside its exp / nbf validity window."""


class ExpiredError(ValidityError):
    """exp lies in the past."""

    exit_code = 20


class NotYetValidError(ValidityError):
    """nbf lies in the future."""

    exit_code = 21
