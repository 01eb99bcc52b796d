"""
Issuance helpers for Verifiable Credentials and Presentations.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

from vc_toolkit.errors import MalformedInputError
from vc_toolkit.keys import PrivateKey
from vc_toolkit.signer import Signer

logger = logging.getLogger(__name__)

CREDENTIALS_V2_CONTEXT = "https://www.w3.org/ns/credentials/v2"
BASE_CREDENTIAL_TYPE = "VerifiableCredential"
PRESENTATION_TYPE = "VerifiablePresentation"
ENVELOPED_CREDENTIAL_TYPE = "EnvelopedVerifiableCredential"
ENVELOPED_CREDENTIAL_PREFIX = "data:application/vc+jwt,"


def normalize_credential_types(credential_types: Sequence[str]) -> list[str]:
    """Ensure the base type comes first and at least one specific type follows."""
    specific = [t for t in credential_types if t and t != BASE_CREDENTIAL_TYPE]
    if not specific:
        raise MalformedInputError(
            "Credential type must include at least one type besides VerifiableCredential"
        )
    return [BASE_CREDENTIAL_TYPE, *dict.fromkeys(specific)]


def build_credential(
    issuer_did: str,
    credential_types: Sequence[str],
    credential_subject: dict[str, Any],
    valid_from: str | None = None,
    valid_until: str | None = None,
    credential_schema: Sequence[dict[str, str]] | dict[str, str] | None = None,
) -> dict[str, Any]:
    """Assemble an unsigned credential.

    The subject data is passed through unchanged.
    """
    credential: dict[str, Any] = {
        "@context": [CREDENTIALS_V2_CONTEXT],
        "type": normalize_credential_types(credential_types),
        "issuer": issuer_did,
        "credentialSubject": credential_subject,
    }
    if valid_from:
        credential["validFrom"] = valid_from
    if valid_until:
        credential["validUntil"] = valid_until
    if isinstance(credential_schema, dict):
        credential_schema = [credential_schema]
    if credential_schema:
        if not all(isinstance(entry, dict) for entry in credential_schema):
            raise MalformedInputError("credentialSchema entries must be objects")
        credential["credentialSchema"] = [dict(entry) for entry in credential_schema]
    return credential


def sign_credential(credential: dict[str, Any], issuer_did: str, assertion_key: PrivateKey) -> str:
    """Sign a credential with the issuer's assertion key.

    The header kid is ``<issuer_did>#<key kid>``.
    """
    kid = f"{issuer_did}#{assertion_key.kid}"
    logger.info("Signing credential for %s with %s", issuer_did, kid)
    return Signer(assertion_key).sign(credential, kid=kid)


def issue_credential(
    issuer_did: str,
    assertion_key: PrivateKey,
    credential_types: Sequence[str],
    data: dict[str, Any],
    valid_from: str | None = None,
    valid_until: str | None = None,
    credential_schema: Sequence[dict[str, str]] | dict[str, str] | None = None,
) -> str:
    """Issue a credential from extracted document data.

    Args:
        issuer_did: DID of the issuer.
        assertion_key: The issuer's assertion private key.
        credential_types: e.g. ["VerifiableCredential", "MillTestReportCredential"].
        data: Structured data; becomes credentialSubject as is.
        valid_from: Optional ISO 8601 start of validity.
        valid_until: Optional ISO 8601 end of validity.
        credential_schema: Optional [{id, type}] schema references.

    Returns:
        The signed credential as a compact JWS.
    """
    credential = build_credential(
        issuer_did,
        credential_types,
        data,
        valid_from=valid_from,
        valid_until=valid_until,
        credential_schema=credential_schema,
    )
    return sign_credential(credential, issuer_did, assertion_key)


def create_enveloped_credential(jws_string: str) -> dict[str, Any]:
    """Wrap a signed credential for inclusion in a presentation."""
    return {
        "@context": [CREDENTIALS_V2_CONTEXT],
        "id": f"{ENVELOPED_CREDENTIAL_PREFIX}{jws_string}",
        "type": ENVELOPED_CREDENTIAL_TYPE,
    }


def parse_enveloped_credential(enveloped: Any) -> str:
    """Extract the signed credential from an enveloped credential.

    Raises:
        MalformedInputError: If the entry is not an enveloped credential.
    """
    if not isinstance(enveloped, dict) or enveloped.get("type") != ENVELOPED_CREDENTIAL_TYPE:
        raise MalformedInputError("Presentation entry is not an EnvelopedVerifiableCredential")
    data_uri = enveloped.get("id")
    if not isinstance(data_uri, str) or not data_uri.startswith(ENVELOPED_CREDENTIAL_PREFIX):
        raise MalformedInputError(
            f"Enveloped credential id must start with {ENVELOPED_CREDENTIAL_PREFIX}"
        )
    return data_uri[len(ENVELOPED_CREDENTIAL_PREFIX):]


def build_presentation(holder_did: str, credential_jws: Sequence[str]) -> dict[str, Any]:
    return {
        "@context": [CREDENTIALS_V2_CONTEXT],
        "type": [PRESENTATION_TYPE],
        "holder": holder_did,
        "verifiableCredential": [create_enveloped_credential(c) for c in credential_jws],
    }


def create_presentation(
    holder_did: str,
    authentication_key: PrivateKey,
    credential_jws: Sequence[str],
    expires_in: int | None = None,
    now: int | None = None,
) -> str:
    """Package signed credentials into a presentation signed by the holder.

    Args:
        holder_did: DID of the holder.
        authentication_key: The holder's authentication private key.
        credential_jws: Signed credentials to envelope.
        expires_in: Lifetime in seconds; sets iat and exp when given.
        now: Current epoch seconds (defaults to the wall clock).

    Returns:
        The signed presentation as a compact JWS.
    """
    presentation = build_presentation(holder_did, credential_jws)
    kid = f"{holder_did}#{authentication_key.kid}"

    iat = exp = None
    if expires_in is not None:
        iat = int(time.time()) if now is None else int(now)
        exp = iat + int(expires_in)

    logger.info(
        "Signing presentation of %d credential(s) for %s", len(credential_jws), holder_did
    )
    return Signer(authentication_key).sign(presentation, kid=kid, iat=iat, exp=exp)
