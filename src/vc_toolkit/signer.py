"""
JWS signer bound to a single private key.
"""

from __future__ import annotations

import logging
from typing import Any

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from vc_toolkit import jws
from vc_toolkit.errors import MalformedInputError, SignatureInvalidError
from vc_toolkit.keys import PrivateKey

logger = logging.getLogger(__name__)


class Signer:
    """Produces compact JWS objects with an ES256/ES384 private key."""

    def __init__(self, private_key: PrivateKey) -> None:
        self.private_key = private_key
        self.algorithm = private_key.algorithm
        self._ec_key = private_key.to_cryptography()

    def sign(
        self,
        payload: dict[str, Any],
        *,
        kid: str,
        iat: int | None = None,
        exp: int | None = None,
        nbf: int | None = None,
    ) -> str:
        """Sign a JSON payload.

        Registered claims are only added when passed explicitly.

        Args:
            payload: The credential, presentation or other JSON object.
            kid: Key identifier placed in the protected header.
            iat: Issued-at, epoch seconds.
            exp: Expiration, epoch seconds.
            nbf: Not-before, epoch seconds.

        Returns:
            The compact JWS string.
        """
        if not isinstance(payload, dict):
            raise MalformedInputError("JWS payload must be a JSON object")

        claims = dict(payload)
        for name, value in (("iat", iat), ("exp", exp), ("nbf", nbf)):
            if value is not None:
                claims[name] = int(value)

        header = {"alg": self.algorithm.value, "kid": kid}
        jws.validate_header(header)

        message = jws.signing_input(header, claims)
        der_signature = self._ec_key.sign(message, ec.ECDSA(self.algorithm.hash_algorithm))
        signature = self._to_fixed_length(der_signature)

        logger.debug("Signed %s payload with %s", self.algorithm.value, kid)
        return jws.serialize(header, claims, signature)

    def _to_fixed_length(self, der_signature: bytes) -> bytes:
        """Convert a DER ECDSA signature to raw r||s."""
        r, s = decode_dss_signature(der_signature)
        size = self.algorithm.coordinate_size
        try:
            signature = r.to_bytes(size, byteorder="big") + s.to_bytes(size, byteorder="big")
        except OverflowError as e:
            raise SignatureInvalidError(f"Signature component exceeds {size} bytes") from e
        if len(signature) != self.algorithm.signature_size:
            raise SignatureInvalidError(
                f"Signature must be {self.algorithm.signature_size} bytes, got {len(signature)}"
            )
        return signature
