"""Tests for the EC key model."""

import json

import pytest

from vc_toolkit.errors import ConfigurationError, MalformedInputError, UnsupportedAlgorithmError
from vc_toolkit.jws import b64url_decode
from vc_toolkit.keys import (
    Algorithm,
    PrivateKey,
    PublicKey,
    export_public_key,
    generate_private_key,
    load_private_keys,
)


class TestAlgorithm:
    """Tests for the closed algorithm set."""

    def test_from_name(self):
        assert Algorithm.from_name("ES256") is Algorithm.ES256
        assert Algorithm.from_name("es384") is Algorithm.ES384

    @pytest.mark.parametrize("name", ["RS256", "EdDSA", "ES512", ""])
    def test_unsupported(self, name):
        """Anything outside ES256/ES384 is rejected at construction."""
        with pytest.raises(UnsupportedAlgorithmError):
            Algorithm.from_name(name)

    def test_sizes(self):
        assert Algorithm.ES256.signature_size == 64
        assert Algorithm.ES384.signature_size == 96
        assert Algorithm.ES256.crv == "P-256"
        assert Algorithm.ES384.crv == "P-384"


class TestGenerate:
    """Tests for key generation."""

    @pytest.mark.parametrize(
        "alg,crv,size", [("ES256", "P-256", 32), ("ES384", "P-384", 48)]
    )
    def test_generate(self, alg, crv, size):
        """Generated keys have the curve's coordinate length."""
        key = generate_private_key(alg)

        assert key.kty == "EC"
        assert key.crv == crv
        assert key.alg == alg
        assert len(b64url_decode(key.x)) == size
        assert len(b64url_decode(key.y)) == size
        assert len(b64url_decode(key.d)) == size

    def test_kid_is_thumbprint(self):
        """kid is the JWK thumbprint and differs per key."""
        first = generate_private_key()
        second = generate_private_key()

        assert first.kid == first.thumbprint()
        assert first.kid != second.kid

    def test_thumbprint_is_stable(self):
        """The thumbprint survives a JSON round trip."""
        key = generate_private_key()
        restored = PublicKey.from_dict(json.loads(json.dumps(key.to_jwk())))
        assert restored.kid == key.kid

    def test_unsupported_algorithm(self):
        with pytest.raises(UnsupportedAlgorithmError):
            generate_private_key("RS256")


class TestExport:
    """Tests for public key export."""

    def test_export_strips_private_scalar(self):
        key = generate_private_key()
        public = export_public_key(key)

        assert isinstance(public, PublicKey)
        assert not isinstance(public, PrivateKey)
        assert "d" not in public.to_dict()
        assert public.kid == key.kid
        assert public.x == key.x

    def test_repr_hides_private_scalar(self):
        key = generate_private_key()
        assert key.d not in repr(key)

    def test_private_from_dict(self):
        key = generate_private_key("ES384")
        restored = PrivateKey.from_dict(key.to_dict())
        assert restored == key

    def test_private_requires_d(self):
        key = generate_private_key()
        with pytest.raises(MalformedInputError):
            PrivateKey.from_dict(export_public_key(key).to_dict())

    def test_alg_curve_mismatch(self):
        jwk = generate_private_key("ES256").to_jwk()
        jwk["alg"] = "ES384"
        with pytest.raises(UnsupportedAlgorithmError):
            PublicKey.from_dict(jwk)

    def test_unsupported_curve(self):
        with pytest.raises(UnsupportedAlgorithmError):
            PublicKey.from_dict({"kty": "OKP", "crv": "Ed25519", "x": "abc"})

    @pytest.mark.parametrize("member,value", [("x", 1), ("y", None), ("kid", ["a"]), ("kty", 2)])
    def test_non_string_members(self, member, value):
        jwk = generate_private_key().to_dict()
        jwk[member] = value
        with pytest.raises(MalformedInputError):
            PublicKey.from_dict(jwk)


class TestLoadPrivateKeys:
    """Tests for the persisted key file."""

    def test_load(self, tmp_path):
        assertion = generate_private_key()
        authentication = generate_private_key()
        path = tmp_path / "private-key.json"
        path.write_text(
            json.dumps(
                {"assertion": assertion.to_dict(), "authentication": authentication.to_dict()}
            )
        )

        keys = load_private_keys(path)

        assert keys["assertion"] == assertion
        assert keys["authentication"] == authentication

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_private_keys(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "private-key.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_private_keys(path)

    def test_invalid_key(self, tmp_path):
        path = tmp_path / "private-key.json"
        path.write_text(json.dumps({"assertion": {"kty": "EC", "crv": "P-521"}}))
        with pytest.raises(ConfigurationError):
            load_private_keys(path)
