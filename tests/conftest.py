"""Shared fixtures for VC toolkit tests."""

import pytest

from vc_toolkit.controller import build_controller_document
from vc_toolkit.did_resolver import ControllerResolver
from vc_toolkit.keys import export_public_key, generate_private_key

ISSUER_DID = "did:web:example.com"
DID_URL = "https://example.com/.well-known/did.json"


@pytest.fixture
def assertion_key():
    """ES256 assertion key of the test issuer."""
    return generate_private_key("ES256")


@pytest.fixture
def authentication_key():
    """ES256 authentication key of the test issuer."""
    return generate_private_key("ES256")


@pytest.fixture
def did_document(assertion_key, authentication_key):
    """Controller document for did:web:example.com as JSON."""
    return build_controller_document(
        ISSUER_DID,
        export_public_key(assertion_key),
        export_public_key(authentication_key),
    ).to_dict()


@pytest.fixture
def controller_resolver(did_document):
    """Resolver pre-seeded with the test issuer."""
    return ControllerResolver(controllers={ISSUER_DID: did_document})


@pytest.fixture
def credential():
    """An unsigned credential from the test issuer."""
    return {
        "@context": ["https://www.w3.org/ns/credentials/v2"],
        "type": ["VerifiableCredential", "MillTestReportCredential"],
        "issuer": ISSUER_DID,
        "validFrom": "2025-01-01T00:00:00Z",
        "credentialSubject": {
            "id": "did:example:holder",
            "heatNumber": "H-4471",
        },
    }
