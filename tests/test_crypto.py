"""
HEMSAEUCC - Cryptography tests.

Tests key agreement, sealing and opening, and tamper detection.
"""

import dataclasses

import pytest

from hemsaeucc import crypto
from hemsaeucc.errors import (
    AuthenticationFailure,
    CryptoError,
    KeyAgreementError,
    RandomSourceError,
)


def _flip_bit(data: bytes, bit: int) -> bytes:
    buf = bytearray(data)
    buf[bit // 8] ^= 1 << (bit % 8)
    return bytes(buf)


def test_keypair_generation():
    """Test X25519 keypair generation."""
    keypair = crypto.KeyPair.generate()

    assert len(keypair.get_public_key_bytes()) == 32
    assert len(keypair.get_private_key_bytes()) == 32
    assert keypair.get_public_key_bytes() != keypair.get_private_key_bytes()


def test_keypair_from_private_bytes():
    """Reloading the private scalar gives the same public key."""
    original = crypto.KeyPair.generate()
    restored = crypto.KeyPair.from_private_bytes(original.get_private_key_bytes())

    assert restored.get_public_key_bytes() == original.get_public_key_bytes()
    assert crypto.derive_public_key(original.get_private_key_bytes()) == original.get_public_key_bytes()


def test_keypair_rejects_wrong_length():
    with pytest.raises(CryptoError):
        crypto.KeyPair.from_private_bytes(b"\x01" * 31)


def test_key_exchange_matches():
    """Both sides of X25519 compute the same secret."""
    a = crypto.KeyPair.generate()
    b = crypto.KeyPair.generate()

    ab = crypto.compute_shared_secret(a.private_key, b.get_public_key_bytes())
    ba = crypto.compute_shared_secret(b.private_key, a.get_public_key_bytes())

    assert ab == ba
    assert len(ab) == 32


@pytest.mark.parametrize(
    "peer",
    [
        bytes(32),
        b"\x01" + bytes(31),
    ],
)
def test_low_order_public_key_rejected(peer):
    """Low-order points produce an all-zero secret and must fail."""
    keypair = crypto.KeyPair.generate()
    with pytest.raises(KeyAgreementError):
        crypto.compute_shared_secret(keypair.private_key, peer)


def test_wrong_size_public_key_rejected():
    keypair = crypto.KeyPair.generate()
    with pytest.raises(KeyAgreementError):
        crypto.compute_shared_secret(keypair.private_key, b"\x09" * 31)


def test_non_canonical_public_key_rejected():
    keypair = crypto.KeyPair.generate()
    canonical = crypto.KeyPair.generate().get_public_key_bytes()

    assert crypto.is_canonical_public_key(canonical)
    high_bit = _flip_bit(canonical, 255)
    assert not crypto.is_canonical_public_key(high_bit)
    with pytest.raises(KeyAgreementError):
        crypto.compute_shared_secret(keypair.private_key, high_bit)


def test_seal_and_open(alice, bob):
    """Test that the recipient recovers the plaintext."""
    packet = crypto.seal(b"hello", alice, bob.public_key, bob.public_id)

    assert packet.from_id == alice.public_id
    assert packet.to_id == bob.public_id
    assert len(packet.ephemeral_pk) == 32
    assert len(packet.nonce) == 24
    assert len(packet.ciphertext) == len(b"hello") + 16

    assert crypto.open_packet(packet, bob) == b"hello"


def test_seal_defaults_to_id_from_key(alice, bob):
    packet = crypto.seal(b"x", alice, bob.public_key)
    assert packet.to_id == bob.public_key.hex()


def test_seal_empty_and_binary_plaintext(alice, bob):
    for plaintext in (b"", bytes(range(256)) * 4):
        packet = crypto.seal(plaintext, alice, bob.public_key)
        assert crypto.open_packet(packet, bob) == plaintext


def test_seal_is_randomized(alice, bob):
    """Sealing the same message twice gives unrelated packets."""
    first = crypto.seal(b"same message", alice, bob.public_key)
    second = crypto.seal(b"same message", alice, bob.public_key)

    assert first.ephemeral_pk != second.ephemeral_pk
    assert first.nonce != second.nonce
    assert first.ciphertext != second.ciphertext


def test_wrong_recipient_cannot_open(alice, bob):
    packet = crypto.seal(b"for bob only", alice, bob.public_key)
    with pytest.raises(AuthenticationFailure):
        crypto.open_packet(packet, alice)


def test_seal_to_invalid_key_fails(alice):
    with pytest.raises(KeyAgreementError):
        crypto.seal(b"hello", alice, bytes(32))


@pytest.mark.parametrize("field", ["ciphertext", "nonce", "ephemeral_pk"])
def test_any_single_bit_flip_is_detected(alice, bob, field):
    """Flipping any bit of ciphertext, nonce or ephemeral key fails to open."""
    packet = crypto.seal(b"hi", alice, bob.public_key)
    original = getattr(packet, field)

    for bit in range(len(original) * 8):
        tampered = dataclasses.replace(packet, **{field: _flip_bit(original, bit)})
        with pytest.raises(AuthenticationFailure):
            crypto.open_packet(tampered, bob)


def test_from_id_is_not_authenticated(alice, bob):
    """Rewriting the claimed sender does not break decryption."""
    packet = crypto.seal(b"hello", alice, bob.public_key)
    forged = dataclasses.replace(packet, from_id="f" * 64)

    assert crypto.open_packet(forged, bob) == b"hello"


def test_fingerprint_is_stable():
    keypair = crypto.KeyPair.generate()
    pub = keypair.get_public_key_bytes()

    assert crypto.generate_fingerprint(pub) == crypto.generate_fingerprint(pub)
    assert len(crypto.generate_fingerprint(pub)) == 64


def test_random_bytes_length():
    assert len(crypto.random_bytes(24)) == 24
    assert crypto.random_bytes(32) != crypto.random_bytes(32)


def test_random_bytes_entropy_failure(monkeypatch):
    def broken_urandom(n):
        raise OSError("no entropy")

    monkeypatch.setattr(crypto.os, "urandom", broken_urandom)
    with pytest.raises(RandomSourceError):
        crypto.random_bytes(32)


def test_random_bytes_short_read(monkeypatch):
    monkeypatch.setattr(crypto.os, "urandom", lambda n: b"\x00" * (n - 1))
    with pytest.raises(RandomSourceError):
        crypto.random_bytes(32)


def test_seal_fails_without_entropy(alice, bob, monkeypatch):
    monkeypatch.setattr(crypto.os, "urandom", lambda n: b"")
    with pytest.raises(RandomSourceError):
        crypto.seal(b"hello", alice, bob.public_key)
