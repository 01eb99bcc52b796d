"""
Compact JWS codec.

A signed object is three base64url segments joined by dots:
protected header, payload, signature. Only ES256 and ES384 headers are
accepted.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Any

from vc_toolkit.errors import MalformedInputError, UnsupportedAlgorithmError

SUPPORTED_ALGORITHMS = frozenset({"ES256", "ES384"})

_B64URL_SEGMENT = re.compile(r"^[A-Za-z0-9_-]*$")


def b64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(data: str) -> bytes:
    """Decode base64url without padding.

    Raises:
        ValueError: If the input is not valid base64url.
    """
    if not _B64URL_SEGMENT.match(data):
        raise ValueError("Invalid base64url characters")
    # Add padding if needed
    padding = 4 - (len(data) % 4)
    if padding != 4:
        data += "=" * padding
    try:
        return base64.urlsafe_b64decode(data)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64url data: {e}") from e


def _encode_json(obj: dict[str, Any]) -> str:
    return b64url_encode(
        json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    )


@dataclass(frozen=True)
class ParsedJWS:
    """A decoded compact JWS."""

    header: dict[str, Any]
    payload: dict[str, Any]
    signing_input: bytes
    signature: bytes

    @property
    def alg(self) -> str:
        return self.header["alg"]

    @property
    def kid(self) -> str:
        return self.header["kid"]


def validate_header(header: dict[str, Any]) -> None:
    """Check that a protected header carries a supported alg and a kid.

    Raises:
        UnsupportedAlgorithmError: If alg is not ES256 or ES384.
        MalformedInputError: If kid is missing or empty.
    """
    alg = header.get("alg")
    if alg not in SUPPORTED_ALGORITHMS:
        raise UnsupportedAlgorithmError(f"Unsupported JWS algorithm: {alg}")
    kid = header.get("kid")
    if not isinstance(kid, str) or not kid:
        raise MalformedInputError("JWS header must contain a non-empty kid")


def signing_input(header: dict[str, Any], payload: dict[str, Any]) -> bytes:
    """Build the bytes covered by the signature."""
    return f"{_encode_json(header)}.{_encode_json(payload)}".encode("ascii")


def serialize(header: dict[str, Any], payload: dict[str, Any], signature: bytes) -> str:
    """Produce the three-segment compact form."""
    validate_header(header)
    return f"{_encode_json(header)}.{_encode_json(payload)}.{b64url_encode(signature)}"


def _decode_json_segment(segment: str, name: str) -> dict[str, Any]:
    try:
        value = json.loads(b64url_decode(segment).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedInputError(f"Invalid JWS {name}: {e}") from e
    if not isinstance(value, dict):
        raise MalformedInputError(f"JWS {name} must be a JSON object")
    return value


def parse(jws: str) -> ParsedJWS:
    """Parse a compact JWS string.

    Args:
        jws: The compact serialization.

    Returns:
        ParsedJWS with decoded header and payload.

    Raises:
        MalformedInputError: If the string is not three base64url segments
            or a JSON segment fails to decode.
        UnsupportedAlgorithmError: If the header names another algorithm.
    """
    if not isinstance(jws, str):
        raise MalformedInputError("JWS must be a string")

    parts = jws.strip().split(".")
    if len(parts) != 3:
        raise MalformedInputError(
            f"JWS must have exactly three segments, got {len(parts)}"
        )

    header_b64, payload_b64, signature_b64 = parts
    header = _decode_json_segment(header_b64, "header")
    payload = _decode_json_segment(payload_b64, "payload")

    try:
        signature = b64url_decode(signature_b64)
    except ValueError as e:
        raise MalformedInputError(f"Invalid JWS signature encoding: {e}") from e

    validate_header(header)

    return ParsedJWS(
        header=header,
        payload=payload,
        signing_input=f"{header_b64}.{payload_b64}".encode("ascii"),
        signature=signature,
    )
