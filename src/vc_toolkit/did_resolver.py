"""
Controller resolver for the did:web method.

Keeps controller documents in memory by DID and falls back to fetching
did:web documents over HTTPS.
https://w3c-ccg.github.io/did-method-web/
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union
from urllib.parse import quote

import httpx

from vc_toolkit.controller import DID_WEB_PREFIX, ControllerDocument
from vc_toolkit.errors import ControllerNotFoundError
from vc_toolkit.key_verifier import KeyVerifierSet

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

ControllerInput = Union[ControllerDocument, dict[str, Any]]


def did_from_key_id(key_id: str) -> str:
    """Strip the fragment from a key identifier."""
    return key_id.split("#", 1)[0]


def did_to_url(did: str) -> str:
    """Convert a did:web identifier to its resolution URL.

    did:web:example.com -> https://example.com/.well-known/did.json
    did:web:example.com:path:to:doc -> https://example.com/path/to/doc/did.json
    did:web:example.com%3A8080 -> https://example.com:8080/.well-known/did.json

    Args:
        did: The did:web identifier (a fragment is ignored).

    Returns:
        The HTTPS URL to fetch the controller document.

    Raises:
        ControllerNotFoundError: If the DID is not a did:web identifier.
    """
    if not did.startswith(DID_WEB_PREFIX):
        raise ControllerNotFoundError(f"Invalid did:web identifier: {did}")

    parts = did_from_key_id(did)[len(DID_WEB_PREFIX):].split(":")

    # First part is the domain (with potential port encoded as %3A)
    domain = parts[0].replace("%3A", ":").replace("%3a", ":")
    if not domain:
        raise ControllerNotFoundError(f"Invalid did:web identifier: {did}")

    # Remaining parts form the path
    if len(parts) > 1:
        path = "/" + "/".join(quote(p, safe="") for p in parts[1:]) + "/did.json"
    else:
        path = "/.well-known/did.json"

    return f"https://{domain}{path}"


def _as_document(document: ControllerInput) -> ControllerDocument:
    if isinstance(document, ControllerDocument):
        return document
    return ControllerDocument.from_dict(document)


@dataclass
class ControllerKeys:
    """Role-scoped verifiers of a resolved controller."""

    document: ControllerDocument
    assertion: KeyVerifierSet
    authentication: KeyVerifierSet


class ControllerResolver:
    """Resolves controllers from an in-memory store with did:web fallback."""

    def __init__(
        self,
        controllers: Mapping[str, ControllerInput] | Iterable[tuple[str, ControllerInput]] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the controller resolver.

        Args:
            controllers: Documents to pre-seed, keyed by DID.
            timeout: HTTP request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
            client: Shared HTTP client. A short-lived one is used per fetch
                if not provided.
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._client = client
        self._controllers: dict[str, ControllerDocument] = {}

        if controllers:
            items = controllers.items() if isinstance(controllers, Mapping) else controllers
            for did, document in items:
                self.add_controller(did, document)

    def add_controller(self, did: str, document: ControllerInput) -> None:
        """Store a controller document. Last write wins, nothing is merged."""
        self._controllers[did] = _as_document(document)
        logger.debug("Stored controller %s", did)

    def get_controller(self, did: str) -> ControllerDocument | None:
        return self._controllers.get(did)

    def clear_cache(self) -> None:
        """Drop every stored controller."""
        self._controllers.clear()

    async def resolve_controller(self, key_id: str) -> ControllerKeys:
        """Resolve the controller that owns a key identifier.

        Args:
            key_id: A DID or DID URL (e.g. did:web:example.com#key-1).

        Returns:
            ControllerKeys with assertion and authentication verifier sets.

        Raises:
            ControllerNotFoundError: If no document is stored and none could
                be fetched.
        """
        did = did_from_key_id(key_id)
        document = self._controllers.get(did)

        if document is None and did.startswith(DID_WEB_PREFIX):
            try:
                document = await self.fetch_controller_document(did)
            except ControllerNotFoundError as e:
                # Not cached: a later call may succeed once the DID is published
                logger.warning("Could not fetch controller for %s: %s", did, e)
            else:
                self._controllers[did] = document

        if document is None:
            raise ControllerNotFoundError(f"Controller not found for id: {key_id}")

        return ControllerKeys(
            document=document,
            assertion=KeyVerifierSet(document.keys_for(document.assertion_method), "assertion"),
            authentication=KeyVerifierSet(
                document.keys_for(document.authentication), "authentication"
            ),
        )

    async def fetch_controller_document(self, did: str) -> ControllerDocument:
        """Fetch a did:web controller document over HTTPS.

        Does not touch the store.

        Raises:
            ControllerNotFoundError: On HTTP errors, network failures,
                timeouts, invalid JSON or an id that does not match the DID.
        """
        url = did_to_url(did)
        logger.info("Fetching controller document %s", url)

        try:
            if self._client is not None:
                response = await self._get(self._client, url)
            else:
                async with httpx.AsyncClient(
                    timeout=self.timeout, verify=self.verify_ssl
                ) as client:
                    response = await self._get(client, url)
            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            raise ControllerNotFoundError(
                f"HTTP error resolving {did}: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ControllerNotFoundError(f"Network error resolving {did}: {e}") from e
        except ValueError as e:
            raise ControllerNotFoundError(f"Invalid JSON in controller document for {did}") from e

        try:
            document = ControllerDocument.from_dict(data)
        except ValueError as e:
            raise ControllerNotFoundError(f"Invalid controller document for {did}: {e}") from e

        if document.id != did:
            raise ControllerNotFoundError(
                f"Controller document id mismatch: expected {did}, got {document.id}"
            )

        return document

    async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        return await client.get(
            url,
            headers={"Accept": "application/did+json, application/json"},
            timeout=self.timeout,
        )
