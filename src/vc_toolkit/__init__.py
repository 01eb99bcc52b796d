"""
VC Toolkit - issue and verify Verifiable Credentials anchored to did:web.

Supports:
- Compact JWS credentials and presentations (ES256 / ES384)
- did:web controller resolution
- JSON Schema validation of credentialSchema entries
"""

__version__ = "0.1.0"

from vc_toolkit.credential import (
    create_enveloped_credential,
    create_presentation,
    issue_credential,
)
from vc_toolkit.did_resolver import ControllerKeys, ControllerResolver, did_to_url
from vc_toolkit.errors import (
    ControllerNotFoundError,
    ExpiredError,
    IssuerKeyMismatchError,
    KeyMismatchError,
    KeyNotFoundError,
    MalformedInputError,
    MissingIssuerError,
    NotYetValidError,
    SchemaNotFoundError,
    SchemaValidationError,
    SignatureInvalidError,
    UnsupportedAlgorithmError,
    VCToolkitError,
)
from vc_toolkit.keys import Algorithm, PrivateKey, PublicKey, export_public_key, generate_private_key
from vc_toolkit.schema_resolver import SchemaResolver
from vc_toolkit.signer import Signer
from vc_toolkit.verifier import (
    CredentialVerifier,
    PresentationVerifier,
    check_validity_window,
    issuer_owns_key,
    verify_credential,
)

__all__ = [
    "Algorithm",
    "ControllerKeys",
    "ControllerNotFoundError",
    "ControllerResolver",
    "CredentialVerifier",
    "ExpiredError",
    "IssuerKeyMismatchError",
    "KeyMismatchError",
    "KeyNotFoundError",
    "MalformedInputError",
    "MissingIssuerError",
    "NotYetValidError",
    "PresentationVerifier",
    "PrivateKey",
    "PublicKey",
    "SchemaNotFoundError",
    "SchemaResolver",
    "SchemaValidationError",
    "SignatureInvalidError",
    "Signer",
    "UnsupportedAlgorithmError",
    "VCToolkitError",
    "check_validity_window",
    "create_enveloped_credential",
    "create_presentation",
    "did_to_url",
    "export_public_key",
    "generate_private_key",
    "issue_credential",
    "issuer_owns_key",
    "verify_credential",
]
