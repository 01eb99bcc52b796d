"""Tests for the signer and role-scoped key verifiers."""

import pytest

from vc_toolkit import jws
from vc_toolkit.errors import (
    KeyMismatchError,
    KeyNotFoundError,
    SignatureInvalidError,
    UnsupportedAlgorithmError,
)
from vc_toolkit.key_verifier import KeyVerifier, KeyVerifierSet
from vc_toolkit.keys import export_public_key, generate_private_key
from vc_toolkit.signer import Signer

KID = "did:web:example.com#key-1"


def tamper_signature(token: str, index: int) -> str:
    header, payload, signature = token.split(".")
    raw = bytearray(jws.b64url_decode(signature))
    raw[index] ^= 0x01
    return f"{header}.{payload}.{jws.b64url_encode(bytes(raw))}"


class TestSigner:
    """Tests for JWS signing."""

    @pytest.mark.parametrize("alg,size", [("ES256", 64), ("ES384", 96)])
    def test_fixed_length_signature(self, alg, size):
        """Signatures are raw r||s of the curve's length."""
        signer = Signer(generate_private_key(alg))
        parsed = jws.parse(signer.sign({"a": 1}, kid=KID))

        assert len(parsed.signature) == size
        assert parsed.header == {"alg": alg, "kid": KID}

    def test_registered_claims_only_when_passed(self):
        signer = Signer(generate_private_key())

        plain = jws.parse(signer.sign({"a": 1}, kid=KID)).payload
        timed = jws.parse(signer.sign({"a": 1}, kid=KID, iat=100, exp=200, nbf=90)).payload

        assert plain == {"a": 1}
        assert timed == {"a": 1, "iat": 100, "exp": 200, "nbf": 90}

    def test_does_not_mutate_payload(self):
        payload = {"a": 1}
        Signer(generate_private_key()).sign(payload, kid=KID, exp=5)
        assert payload == {"a": 1}


class TestKeyVerifier:
    """Tests for single-key verification."""

    @pytest.mark.parametrize("alg", ["ES256", "ES384"])
    def test_round_trip(self, alg):
        """verify(sign(payload)) returns the payload."""
        key = generate_private_key(alg)
        payload = {"issuer": "did:web:example.com", "nested": {"list": [1, "two"]}}
        token = Signer(key).sign(payload, kid=KID)

        verifier = KeyVerifier(KID, export_public_key(key))
        assert verifier.verify(token) == payload

    @pytest.mark.parametrize("alg", ["ES256", "ES384"])
    @pytest.mark.parametrize("index", [0, 20, -1])
    def test_tampered_signature(self, alg, index):
        """Changing any signature byte breaks verification."""
        key = generate_private_key(alg)
        token = Signer(key).sign({"a": 1}, kid=KID)

        verifier = KeyVerifier(KID, export_public_key(key))
        with pytest.raises(SignatureInvalidError):
            verifier.verify(tamper_signature(token, index))

    def test_tampered_payload(self):
        key = generate_private_key()
        header, _, signature = Signer(key).sign({"a": 1}, kid=KID).split(".")
        forged = jws.b64url_encode(b'{"a":2}')

        verifier = KeyVerifier(KID, export_public_key(key))
        with pytest.raises(SignatureInvalidError):
            verifier.verify(f"{header}.{forged}.{signature}")

    def test_wrong_key(self):
        """A valid signature from another key is rejected."""
        token = Signer(generate_private_key()).sign({"a": 1}, kid=KID)

        verifier = KeyVerifier(KID, export_public_key(generate_private_key()))
        with pytest.raises(SignatureInvalidError):
            verifier.verify(token)

    def test_kid_mismatch(self):
        """A verifier refuses tokens whose kid is another key's."""
        key = generate_private_key()
        token = Signer(key).sign({"a": 1}, kid="did:web:example.com#key-2")

        verifier = KeyVerifier(KID, export_public_key(key))
        with pytest.raises(KeyMismatchError):
            verifier.verify(token)

    def test_algorithm_mismatch(self):
        token = Signer(generate_private_key("ES384")).sign({"a": 1}, kid=KID)

        verifier = KeyVerifier(KID, export_public_key(generate_private_key("ES256")))
        with pytest.raises(UnsupportedAlgorithmError):
            verifier.verify(token)

    def test_der_signature_rejected(self):
        """Only fixed-length r||s signatures are accepted."""
        key = generate_private_key()
        header, payload, _ = Signer(key).sign({"a": 1}, kid=KID).split(".")
        token = f"{header}.{payload}.{jws.b64url_encode(b'0' * 70)}"

        verifier = KeyVerifier(KID, export_public_key(key))
        with pytest.raises(SignatureInvalidError):
            verifier.verify(token)


class TestKeyVerifierSet:
    """Tests for role-scoped verifier sets."""

    def test_resolve(self):
        key = generate_private_key()
        keys = KeyVerifierSet([(KID, export_public_key(key).to_jwk())], "assertion")

        assert KID in keys
        assert len(keys) == 1
        assert keys.resolve(KID).verify(Signer(key).sign({"a": 1}, kid=KID)) == {"a": 1}

    def test_unknown_key(self):
        keys = KeyVerifierSet([], "assertion")
        with pytest.raises(KeyNotFoundError):
            keys.resolve(KID)

    def test_unsupported_key_reported_on_resolve(self):
        """An unusable key does not break the other keys of the set."""
        good = generate_private_key()
        keys = KeyVerifierSet(
            [
                ("did:web:example.com#ed", {"kty": "OKP", "crv": "Ed25519", "x": "abc"}),
                (KID, export_public_key(good)),
            ],
            "authentication",
        )

        assert keys.resolve(KID).public_key.kid == good.kid
        with pytest.raises(UnsupportedAlgorithmError):
            keys.resolve("did:web:example.com#ed")
