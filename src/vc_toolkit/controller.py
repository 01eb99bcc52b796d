"""
Controller documents (DID documents) for did:web identifiers.

Parsing, structural validation, and generation of the documents an issuer
publishes at its well-known location.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from vc_toolkit.keys import PublicKey
from vc_toolkit.schema_resolver import CompiledSchema

DID_WEB_PREFIX = "did:web:"
CONTROLLER_CONTEXT = "https://www.w3.org/ns/cid/v1"
LEI_URN_PREFIX = "urn:ietf:spice:glue:lei:"

_NON_EMPTY_STRING = {"type": "string", "minLength": 1}

CONTROLLER_DOCUMENT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["id", "verificationMethod"],
    "properties": {
        "id": {"type": "string", "pattern": "^did:"},
        "verificationMethod": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["id", "type", "controller", "publicKeyJwk"],
                "properties": {
                    "id": _NON_EMPTY_STRING,
                    "type": _NON_EMPTY_STRING,
                    "controller": _NON_EMPTY_STRING,
                    "publicKeyJwk": {
                        "type": "object",
                        "required": ["kty", "crv", "x", "y"],
                        "not": {"required": ["d"]},
                    },
                },
            },
        },
        "assertionMethod": {"type": "array", "items": _NON_EMPTY_STRING},
        "authentication": {"type": "array", "items": _NON_EMPTY_STRING},
        "alsoKnownAs": {"type": "array", "items": {"type": "string"}},
    },
}

_document_schema = CompiledSchema("controller-document", CONTROLLER_DOCUMENT_SCHEMA)


def _list_member(data: dict[str, Any], name: str) -> list[Any]:
    value = data.get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    return value


@dataclass
class VerificationMethod:
    """Controller document verification method."""

    id: str
    type: str
    controller: str
    public_key_jwk: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VerificationMethod:
        for name in ("id", "type", "controller"):
            if not isinstance(data.get(name, ""), str):
                raise ValueError(f"verification method {name} must be a string")
        public_key_jwk = data.get("publicKeyJwk")
        if public_key_jwk is not None and not isinstance(public_key_jwk, dict):
            raise ValueError("publicKeyJwk must be an object")
        return cls(
            id=data.get("id", ""),
            type=data.get("type", ""),
            controller=data.get("controller", ""),
            public_key_jwk=public_key_jwk,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "controller": self.controller,
        }
        if self.public_key_jwk is not None:
            data["publicKeyJwk"] = self.public_key_jwk
        return data


@dataclass
class ControllerDocument:
    """W3C controller document."""

    id: str
    verification_methods: list[VerificationMethod]
    assertion_method: list[str]
    authentication: list[str]
    also_known_as: list[str] = field(default_factory=list)
    context: list[str] = field(default_factory=lambda: [CONTROLLER_CONTEXT])

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ControllerDocument:
        """Parse a controller document from JSON.

        Verification relationships may reference methods by id or embed
        them; embedded methods are added to the verification methods.

        Raises:
            ValueError: If a member has the wrong JSON type.
        """
        if not isinstance(data, dict):
            raise ValueError("Controller document must be a JSON object")
        if not isinstance(data.get("id", ""), str):
            raise ValueError("id must be a string")

        verification_methods: list[VerificationMethod] = []
        for vm in _list_member(data, "verificationMethod"):
            if not isinstance(vm, dict):
                raise ValueError("verificationMethod entries must be objects")
            verification_methods.append(VerificationMethod.from_dict(vm))
        known = {vm.id for vm in verification_methods}

        def relationship(name: str) -> list[str]:
            ids: list[str] = []
            for item in _list_member(data, name):
                if isinstance(item, str):
                    ids.append(item)
                elif isinstance(item, dict) and "id" in item:
                    method = VerificationMethod.from_dict(item)
                    ids.append(method.id)
                    if method.id not in known:
                        verification_methods.append(method)
                        known.add(method.id)
                else:
                    raise ValueError(f"{name} entries must be ids or verification methods")
            return ids

        also_known_as = _list_member(data, "alsoKnownAs")
        if not all(isinstance(alias, str) for alias in also_known_as):
            raise ValueError("alsoKnownAs entries must be strings")

        context = data.get("@context", [CONTROLLER_CONTEXT])
        if isinstance(context, str):
            context = [context]
        elif not isinstance(context, list):
            raise ValueError("@context must be a string or a list")

        return cls(
            id=data.get("id", ""),
            verification_methods=verification_methods,
            assertion_method=relationship("assertionMethod"),
            authentication=relationship("authentication"),
            also_known_as=list(also_known_as),
            context=list(context),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "@context": list(self.context),
            "id": self.id,
            "verificationMethod": [vm.to_dict() for vm in self.verification_methods],
            "assertionMethod": list(self.assertion_method),
            "authentication": list(self.authentication),
        }
        if self.also_known_as:
            data["alsoKnownAs"] = list(self.also_known_as)
        return data

    def get_verification_method(self, method_id: str) -> VerificationMethod | None:
        """Get a verification method by ID."""
        for vm in self.verification_methods:
            if vm.id == method_id:
                return vm
        return None

    def keys_for(self, relationship: list[str]) -> list[tuple[str, dict[str, Any]]]:
        """(id, publicKeyJwk) pairs for the methods listed in a relationship."""
        listed = set(relationship)
        return [
            (vm.id, vm.public_key_jwk)
            for vm in self.verification_methods
            if vm.id in listed and vm.public_key_jwk is not None
        ]

    def validate(self) -> list[str]:
        """Check document structure against CONTROLLER_DOCUMENT_SCHEMA.

        Returns:
            List of problems (empty if valid).
        """
        errors = [str(e) for e in _document_schema.validate(self.to_dict())]

        known = {vm.id for vm in self.verification_methods}
        for name, ids in (
            ("assertionMethod", self.assertion_method),
            ("authentication", self.authentication),
        ):
            for method_id in ids:
                if method_id not in known:
                    errors.append(f"{name} references unknown verification method {method_id}")

        return errors


def did_from_domain(domain_input: str) -> str:
    """Build a did:web identifier from a domain with optional path.

    contoso.com -> did:web:contoso.com
    contoso.com/organizations/123 -> did:web:contoso.com:organizations:123
    localhost:8080 -> did:web:localhost%3A8080
    """
    parts = domain_input.strip().split("/")
    domain = parts[0].replace(":", "%3A")
    if not domain:
        raise ValueError(f"Invalid domain: {domain_input!r}")
    path_parts = [p for p in parts[1:] if p]
    return DID_WEB_PREFIX + ":".join([domain, *path_parts])


def build_controller_document(
    did: str,
    assertion_key: PublicKey,
    authentication_key: PublicKey,
    lei: str | None = None,
) -> ControllerDocument:
    """Build the controller document for a freshly generated identity.

    Each key is listed under its own relationship, identified as
    ``<did>#<kid>``.
    """

    def method(key: PublicKey) -> VerificationMethod:
        return VerificationMethod(
            id=f"{did}#{key.kid}",
            type="JsonWebKey",
            controller=did,
            public_key_jwk=key.to_jwk(),
        )

    assertion = method(assertion_key)
    authentication = method(authentication_key)

    return ControllerDocument(
        id=did,
        verification_methods=[assertion, authentication],
        assertion_method=[assertion.id],
        authentication=[authentication.id],
        also_known_as=[f"{LEI_URN_PREFIX}{lei}"] if lei else [],
    )
