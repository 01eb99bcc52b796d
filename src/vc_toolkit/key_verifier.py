"""
Role-scoped public key verifiers.

A KeyVerifierSet holds the keys a controller authorizes for one role
(assertion or authentication) and hands out a KeyVerifier per key id.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from vc_toolkit import jws
from vc_toolkit.errors import (
    KeyMismatchError,
    KeyNotFoundError,
    SignatureInvalidError,
    UnsupportedAlgorithmError,
    VCToolkitError,
)
from vc_toolkit.keys import PublicKey

logger = logging.getLogger(__name__)

KeyInput = Union[PublicKey, dict[str, Any]]


class KeyVerifier:
    """Verifies JWS signatures made by one specific key."""

    def __init__(self, key_id: str, public_key: PublicKey) -> None:
        self.key_id = key_id
        self.public_key = public_key
        self.algorithm = public_key.algorithm
        self._ec_key = public_key.to_cryptography()

    def verify(self, jws_string: str) -> dict[str, Any]:
        """Verify a compact JWS and return its payload.

        Raises:
            MalformedInputError: If the JWS cannot be parsed.
            KeyMismatchError: If the header kid is not this verifier's key id.
            UnsupportedAlgorithmError: If the header alg does not match the key.
            SignatureInvalidError: If the signature does not verify.
        """
        parsed = jws.parse(jws_string)

        if parsed.kid != self.key_id:
            raise KeyMismatchError(
                f"JWS kid {parsed.kid} does not match verifier key {self.key_id}"
            )
        if parsed.alg != self.algorithm.value:
            raise UnsupportedAlgorithmError(
                f"JWS algorithm {parsed.alg} does not match key algorithm {self.algorithm.value}"
            )

        signature = parsed.signature
        size = self.algorithm.coordinate_size
        if len(signature) != self.algorithm.signature_size:
            raise SignatureInvalidError(
                f"Signature must be {self.algorithm.signature_size} bytes for "
                f"{self.algorithm.value}, got {len(signature)}"
            )

        r = int.from_bytes(signature[:size], byteorder="big")
        s = int.from_bytes(signature[size:], byteorder="big")
        try:
            self._ec_key.verify(
                encode_dss_signature(r, s),
                parsed.signing_input,
                ec.ECDSA(self.algorithm.hash_algorithm),
            )
        except InvalidSignature as e:
            raise SignatureInvalidError() from e

        logger.debug("Signature valid for %s", self.key_id)
        return parsed.payload


class KeyVerifierSet:
    """Verifiers for the keys of one verification role."""

    def __init__(self, keys: Iterable[tuple[str, KeyInput]], role: str) -> None:
        self.role = role
        self._keys: dict[str, PublicKey] = {}
        # Unusable keys are reported when someone actually asks for them.
        self._invalid: dict[str, VCToolkitError] = {}
        for key_id, key in keys:
            if isinstance(key, PublicKey):
                self._keys[key_id] = key
                continue
            try:
                self._keys[key_id] = PublicKey.from_dict(key)
            except VCToolkitError as e:
                logger.warning("Ignoring %s key %s: %s", role, key_id, e)
                self._invalid[key_id] = e

    def __contains__(self, key_id: object) -> bool:
        return key_id in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def key_ids(self) -> list[str]:
        return list(self._keys)

    def resolve(self, key_id: str) -> KeyVerifier:
        """Get the verifier for a key id.

        Raises:
            KeyNotFoundError: If the key is not authorized for this role.
        """
        if key_id in self._invalid:
            error = self._invalid[key_id]
            raise type(error)(f"Key {key_id} is unusable: {error.message}")
        public_key = self._keys.get(key_id)
        if public_key is None:
            raise KeyNotFoundError(f"Key {key_id} not found in {self.role} keys")
        return KeyVerifier(key_id, public_key)
