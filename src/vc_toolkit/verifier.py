"""
Verifiable Credentials and Presentations verifier.

Verifies compact JWS credentials issued by did:web identifiers:

1. Parse the JWS
2. Bind the signing key to the claimed issuer
3. Resolve the issuer's controller document
4. Verify the signature with the issuer's assertion key
5. Optionally validate every credentialSchema
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any

from vc_toolkit import jws
from vc_toolkit.credential import parse_enveloped_credential
from vc_toolkit.did_resolver import ControllerResolver
from vc_toolkit.errors import (
    ExpiredError,
    IssuerKeyMismatchError,
    MalformedInputError,
    MissingIssuerError,
    NotYetValidError,
    SchemaError,
    SchemaValidationError,
)
from vc_toolkit.schema_resolver import SchemaResolver

logger = logging.getLogger(__name__)


def issuer_owns_key(issuer_did: str, kid: str) -> bool:
    """Check that a key identifier belongs to the issuer's DID.

    The kid must start with the issuer DID, and the DID must end there
    (at a fragment or the end of the string).
    """
    if not issuer_did or not kid.startswith(issuer_did):
        return False
    rest = kid[len(issuer_did):]
    return rest == "" or rest.startswith("#")


def extract_did(value: Any) -> str | None:
    """Normalize an issuer/holder value (DID string or {id: DID})."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        did = value.get("id")
        return did if isinstance(did, str) and did else None
    return None


def check_validity_window(payload: dict[str, Any], now: float | None = None) -> None:
    """Enforce the numeric exp / nbf claims against the current time.

    Raises:
        ExpiredError: If exp lies in the past.
        NotYetValidError: If nbf lies in the future.
        MalformedInputError: If a claim is not a finite number.
    """
    if now is None:
        now = time.time()

    for claim in ("exp", "nbf"):
        value = payload.get(claim)
        if value is not None and not is_numeric_date(value):
            raise MalformedInputError(f"{claim} must be a numeric date, got {value!r}")

    exp = payload.get("exp")
    if exp is not None and exp < now:
        raise ExpiredError(f"Expired at {format_numeric_date(exp)}")

    nbf = payload.get("nbf")
    if nbf is not None and nbf > now:
        raise NotYetValidError(f"Not valid before {format_numeric_date(nbf)}")


def is_numeric_date(value: Any) -> bool:
    """True for finite int/float values (bool excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def format_numeric_date(value: float) -> str:
    """ISO 8601 UTC rendering, or the raw number when out of range."""
    try:
        return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(value))
    except (OverflowError, OSError, ValueError):
        return str(value)


def validate_credential_schemas(payload: dict[str, Any], schema_resolver: SchemaResolver) -> None:
    """Validate a credential against each schema it references.

    A credential without credentialSchema passes.

    Raises:
        SchemaNotFoundError: If a referenced schema is unknown.
        SchemaValidationError: With every failing instance path.
    """
    entries = payload.get("credentialSchema")
    if entries is None:
        return
    if isinstance(entries, dict):
        entries = [entries]

    errors: list[SchemaError] = []
    failed: list[str] = []
    for entry in entries:
        schema_id = entry.get("id") if isinstance(entry, dict) else None
        if not isinstance(schema_id, str) or not schema_id:
            raise MalformedInputError("credentialSchema entry must have an id")
        compiled = schema_resolver.resolve_schema(schema_id)
        schema_errors = compiled.validate(payload)
        if schema_errors:
            failed.append(schema_id)
            errors.extend(schema_errors)

    if errors:
        raise SchemaValidationError(
            f"Credential does not match schema(s): {', '.join(failed)}", errors
        )


class CredentialVerifier:
    """Verifies signed credentials against did:web issuers."""

    def __init__(
        self,
        controller_resolver: ControllerResolver | None = None,
        schema_resolver: SchemaResolver | None = None,
    ) -> None:
        """Initialize the verifier.

        Args:
            controller_resolver: Custom controller resolver. Created if not provided.
            schema_resolver: Schema store used for credentialSchema validation.
        """
        self.controller_resolver = controller_resolver or ControllerResolver()
        self.schema_resolver = schema_resolver or SchemaResolver()

    async def verify(self, jws_string: str, validate_schema: bool = False) -> dict[str, Any]:
        """Verify a signed credential.

        Args:
            jws_string: The compact JWS credential.
            validate_schema: Also validate against every credentialSchema.

        Returns:
            The verified credential payload.

        Raises:
            VCToolkitError: The specific failure; nothing is returned unless
                every step succeeded.
        """
        parsed = jws.parse(jws_string)
        credential = parsed.payload

        if "issuer" not in credential:
            raise MissingIssuerError("Credential must have an issuer")
        issuer_did = extract_did(credential["issuer"])
        if issuer_did is None:
            raise MissingIssuerError("Credential issuer must have an id")

        assertion_key_id = parsed.kid
        if not issuer_owns_key(issuer_did, assertion_key_id):
            raise IssuerKeyMismatchError(
                f"Credential issuer {issuer_did} does not match assertion key {assertion_key_id}"
            )

        issuer = await self.controller_resolver.resolve_controller(assertion_key_id)
        key_verifier = issuer.assertion.resolve(assertion_key_id)
        verified = key_verifier.verify(jws_string)

        if validate_schema:
            validate_credential_schemas(verified, self.schema_resolver)

        logger.info("Verified credential from %s", issuer_did)
        return verified


@dataclass
class VerifiedPresentation:
    """A verified presentation and the credentials it carries."""

    presentation: dict[str, Any]
    holder: str
    credentials: list[dict[str, Any]] = field(default_factory=list)


class PresentationVerifier:
    """Verifies presentations signed by a holder's authentication key."""

    def __init__(
        self,
        controller_resolver: ControllerResolver | None = None,
        schema_resolver: SchemaResolver | None = None,
    ) -> None:
        self.controller_resolver = controller_resolver or ControllerResolver()
        self.credential_verifier = CredentialVerifier(self.controller_resolver, schema_resolver)

    async def verify(
        self,
        jws_string: str,
        validate_schema: bool = False,
        now: float | None = None,
    ) -> VerifiedPresentation:
        """Verify a presentation, its validity window, and each credential."""
        parsed = jws.parse(jws_string)
        presentation = parsed.payload

        holder_did = extract_did(presentation.get("holder"))
        if holder_did is None:
            raise MissingIssuerError("Presentation must have a holder")

        authentication_key_id = parsed.kid
        if not issuer_owns_key(holder_did, authentication_key_id):
            raise IssuerKeyMismatchError(
                f"Presentation holder {holder_did} does not match "
                f"authentication key {authentication_key_id}"
            )

        holder = await self.controller_resolver.resolve_controller(authentication_key_id)
        verified = holder.authentication.resolve(authentication_key_id).verify(jws_string)
        check_validity_window(verified, now)

        entries = verified.get("verifiableCredential") or []
        if not isinstance(entries, list):
            entries = [entries]

        credentials = []
        for entry in entries:
            credential = await self.credential_verifier.verify(
                parse_enveloped_credential(entry), validate_schema=validate_schema
            )
            check_validity_window(credential, now)
            credentials.append(credential)

        logger.info(
            "Verified presentation from %s with %d credential(s)", holder_did, len(credentials)
        )
        return VerifiedPresentation(presentation=verified, holder=holder_did, credentials=credentials)


async def verify_credential(
    jws_string: str,
    validate_schema: bool = False,
) -> dict[str, Any]:
    """Convenience function to verify a credential.

    Args:
        jws_string: The compact JWS credential.
        validate_schema: Also validate credentialSchema entries.

    Returns:
        The verified credential payload.
    """
    verifier = CredentialVerifier()
    return await verifier.verify(jws_string, validate_schema=validate_schema)
