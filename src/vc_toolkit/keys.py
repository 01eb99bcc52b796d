"""
EC key model for ES256 (P-256) and ES384 (P-384).

Keys are held in JWK shape. The key identifier defaults to the RFC 7638
JWK thumbprint of the public key.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from vc_toolkit.errors import (
    ConfigurationError,
    MalformedInputError,
    UnsupportedAlgorithmError,
)
from vc_toolkit.jws import b64url_decode, b64url_encode

logger = logging.getLogger(__name__)

KEY_ROLES = ("assertion", "authentication")


class Algorithm(Enum):
    """Supported JWS signature algorithms."""

    ES256 = "ES256"
    ES384 = "ES384"

    @classmethod
    def from_name(cls, name: str) -> Algorithm:
        """Look up an algorithm by its JWS name (case-insensitive)."""
        try:
            return cls(str(name).upper())
        except ValueError:
            raise UnsupportedAlgorithmError(
                f"Unsupported algorithm: {name} (available: ES256, ES384)"
            ) from None

    @classmethod
    def from_curve(cls, crv: str) -> Algorithm:
        for alg in cls:
            if alg.crv == crv:
                return alg
        raise UnsupportedAlgorithmError(f"Unsupported curve: {crv}")

    @property
    def crv(self) -> str:
        return _CURVE_NAMES[self]

    @property
    def curve(self) -> ec.EllipticCurve:
        return ec.SECP256R1() if self is Algorithm.ES256 else ec.SECP384R1()

    @property
    def hash_algorithm(self) -> hashes.HashAlgorithm:
        return hashes.SHA256() if self is Algorithm.ES256 else hashes.SHA384()

    @property
    def coordinate_size(self) -> int:
        """Byte length of one coordinate (and of r and s)."""
        return 32 if self is Algorithm.ES256 else 48

    @property
    def signature_size(self) -> int:
        return 2 * self.coordinate_size


_CURVE_NAMES = {Algorithm.ES256: "P-256", Algorithm.ES384: "P-384"}


def _int_to_b64url(value: int, size: int) -> str:
    return b64url_encode(value.to_bytes(size, byteorder="big"))


def _b64url_to_int(value: str, name: str) -> int:
    try:
        return int.from_bytes(b64url_decode(value), byteorder="big")
    except ValueError as e:
        raise MalformedInputError(f"Invalid JWK member '{name}': {e}") from e


@dataclass
class PublicKey:
    """EC public key in JWK format."""

    kty: str
    crv: str
    alg: str
    x: str
    y: str
    kid: str = ""

    def __post_init__(self) -> None:
        for name in ("kty", "crv", "alg", "x", "y", "kid"):
            if not isinstance(getattr(self, name), str):
                raise MalformedInputError(f"JWK member '{name}' must be a string")
        if self.kty != "EC":
            raise UnsupportedAlgorithmError(f"Unsupported key type: {self.kty}")
        expected = Algorithm.from_curve(self.crv)
        if Algorithm.from_name(self.alg) is not expected:
            raise UnsupportedAlgorithmError(
                f"Algorithm {self.alg} does not match curve {self.crv}"
            )
        if not self.x or not self.y:
            raise MalformedInputError("EC key requires x and y coordinates")
        if not self.kid:
            self.kid = self.thumbprint()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublicKey:
        """Create a PublicKey from a JWK dictionary.

        A missing alg is inferred from the curve.
        """
        if not isinstance(data, dict):
            raise MalformedInputError("JWK must be a JSON object")
        crv = data.get("crv", "")
        alg = data.get("alg") or Algorithm.from_curve(crv).value
        return cls(
            kty=data.get("kty", ""),
            crv=crv,
            alg=alg,
            x=data.get("x", ""),
            y=data.get("y", ""),
            kid=data.get("kid", ""),
        )

    @property
    def algorithm(self) -> Algorithm:
        return Algorithm.from_name(self.alg)

    def to_jwk(self) -> dict[str, str]:
        """Public JWK members, as published in a controller document."""
        return {"kty": self.kty, "crv": self.crv, "alg": self.alg, "x": self.x, "y": self.y}

    def to_dict(self) -> dict[str, str]:
        return {**self.to_jwk(), "kid": self.kid}

    def thumbprint(self) -> str:
        """RFC 7638 JWK thumbprint (SHA-256)."""
        canonical = json.dumps(
            {"crv": self.crv, "kty": self.kty, "x": self.x, "y": self.y},
            sort_keys=True,
            separators=(",", ":"),
        )
        return b64url_encode(hashlib.sha256(canonical.encode("utf-8")).digest())

    def to_cryptography(self) -> ec.EllipticCurvePublicKey:
        """Convert to a cryptography EC public key object."""
        x = _b64url_to_int(self.x, "x")
        y = _b64url_to_int(self.y, "y")
        try:
            return ec.EllipticCurvePublicNumbers(x, y, self.algorithm.curve).public_key()
        except ValueError as e:
            raise MalformedInputError(f"Invalid EC public key: {e}") from e


@dataclass
class PrivateKey(PublicKey):
    """EC private key in JWK format. Never logged, never published."""

    d: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.d or not isinstance(self.d, str):
            raise MalformedInputError("Private JWK requires the 'd' member")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PrivateKey:
        public = PublicKey.from_dict(data)
        return cls(
            kty=public.kty,
            crv=public.crv,
            alg=public.alg,
            x=public.x,
            y=public.y,
            kid=public.kid,
            d=data.get("d", ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {**super().to_dict(), "d": self.d}

    def public_key(self) -> PublicKey:
        return PublicKey(
            kty=self.kty, crv=self.crv, alg=self.alg, x=self.x, y=self.y, kid=self.kid
        )

    def to_cryptography(self) -> ec.EllipticCurvePrivateKey:
        public_numbers = super().to_cryptography().public_numbers()
        d = _b64url_to_int(self.d, "d")
        try:
            return ec.EllipticCurvePrivateNumbers(d, public_numbers).private_key()
        except ValueError as e:
            raise MalformedInputError(f"Invalid EC private key: {e}") from e


def generate_private_key(algorithm: Algorithm | str = Algorithm.ES256) -> PrivateKey:
    """Generate a fresh key pair for the given algorithm.

    Raises:
        UnsupportedAlgorithmError: If the algorithm is not ES256 or ES384.
    """
    if not isinstance(algorithm, Algorithm):
        algorithm = Algorithm.from_name(algorithm)

    key = ec.generate_private_key(algorithm.curve)
    numbers = key.private_numbers()
    size = algorithm.coordinate_size

    private_key = PrivateKey(
        kty="EC",
        crv=algorithm.crv,
        alg=algorithm.value,
        x=_int_to_b64url(numbers.public_numbers.x, size),
        y=_int_to_b64url(numbers.public_numbers.y, size),
        d=_int_to_b64url(numbers.private_value, size),
    )
    logger.debug("Generated %s key %s", algorithm.value, private_key.kid)
    return private_key


def export_public_key(private_key: PrivateKey) -> PublicKey:
    """Strip the private scalar from a key pair."""
    return private_key.public_key()


def load_private_keys(path: str | Path) -> dict[str, PrivateKey]:
    """Load a persisted key file ``{assertion: JWK, authentication: JWK}``.

    Only roles present in the file are returned.

    Raises:
        ConfigurationError: If the file is missing or not valid key JSON.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Private key file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Could not read private key file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Private key file {path} must contain a JSON object")

    keys: dict[str, PrivateKey] = {}
    for role in KEY_ROLES:
        if role in data:
            try:
                keys[role] = PrivateKey.from_dict(data[role])
            except (MalformedInputError, UnsupportedAlgorithmError) as e:
                raise ConfigurationError(f"Invalid {role} key in {path}: {e}") from e

    logger.debug("Loaded %s key(s) from %s", ", ".join(keys) or "no", path)
    return keys
