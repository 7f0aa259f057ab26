"""
This module defines the ciphersuites the FROST protocol engine runs over.

A Ciphersuite bundles the three capabilities the protocol needs: the scalar
field (integers modulo the group order), the prime-order group (Point) and a
family of domain-separated hash functions. Key generation, signing and
aggregation only ever talk to a Ciphersuite, so one engine serves every
instantiation.

Two instantiations over secp256k1 are provided:
- Secp256k1Sha256: plain Schnorr signatures, as in RFC 9591.
- Secp256k1Taproot: BIP340-compatible signatures with even-Y normalization of
  the group commitment and the group public key.
"""

from hashlib import sha256
from typing import Dict, Tuple
from .constants import Q, SCALAR_SIZE, ELEMENT_SIZE, XONLY_SIZE
from .errors import InvalidConfiguration
from .point import Point, G


def expand_message_xmd(msg: bytes, dst: bytes, len_in_bytes: int) -> bytes:
    """
    Expand msg into len_in_bytes uniformly random bytes using SHA-256
    (RFC 9380, section 5.3.1).
    """
    b_in_bytes = 32
    r_in_bytes = 64
    ell = -(-len_in_bytes // b_in_bytes)
    if ell > 255 or len_in_bytes > 65535 or len(dst) > 255:
        raise ValueError("Requested output or domain separation tag is too long.")

    dst_prime = dst + len(dst).to_bytes(1, "big")
    z_pad = bytes(r_in_bytes)
    l_i_b_str = len_in_bytes.to_bytes(2, "big")
    msg_prime = z_pad + msg + l_i_b_str + b"\x00" + dst_prime
    b_0 = sha256(msg_prime).digest()
    b_i = sha256(b_0 + b"\x01" + dst_prime).digest()
    uniform_bytes = b_i
    for i in range(2, ell + 1):
        chained = bytes(x ^ y for x, y in zip(b_0, b_i))
        b_i = sha256(chained + i.to_bytes(1, "big") + dst_prime).digest()
        uniform_bytes += b_i
    return uniform_bytes[:len_in_bytes]


def tagged_hash(tag: str, msg: bytes) -> bytes:
    """BIP340 tagged hash: SHA256(SHA256(tag) || SHA256(tag) || msg)."""
    tag_hash = sha256(tag.encode()).digest()
    return sha256(tag_hash + tag_hash + msg).digest()


class Ciphersuite:
    """
    Base ciphersuite over secp256k1 and SHA-256.

    Subclasses choose the context string, the challenge hash and the signature
    encoding. The base behaviour is plain Schnorr: no parity adjustments and
    signatures encoded as a compressed R followed by z.
    """

    NAME = "secp256k1"
    CONTEXT_STRING = b"FROST-secp256k1-SHA256-v1"

    # hash_to_field output length: ceil((ceil(log2(Q)) + 128) / 8)
    HASH_TO_FIELD_BYTES = 48

    order: int = Q

    def generator(self) -> Point:
        return G

    def identity(self) -> Point:
        return Point()

    def serialize_element(self, element: Point) -> bytes:
        """
        Serialize a group element. The identity element has no encoding.

        Raises:
        ValueError: If the element is the point at infinity.
        """
        return element.to_bytes_compressed()

    def deserialize_element(self, data: bytes) -> Point:
        return Point.from_bytes_compressed(data)

    def serialize_scalar(self, scalar: int) -> bytes:
        return (scalar % self.order).to_bytes(SCALAR_SIZE, "big")

    def deserialize_scalar(self, data: bytes) -> int:
        """
        Raises:
        ValueError: If the encoding has the wrong length or is not reduced.
        """
        if len(data) != SCALAR_SIZE:
            raise ValueError(f"Scalars must be exactly {SCALAR_SIZE} bytes long.")
        scalar = int.from_bytes(data, "big")
        if scalar >= self.order:
            raise ValueError("Scalar is not reduced modulo the group order.")
        return scalar

    def hash_to_scalar(self, tag: bytes, msg: bytes) -> int:
        """Map msg to a scalar under the domain separation tag CONTEXT || tag."""
        uniform_bytes = expand_message_xmd(
            msg, self.CONTEXT_STRING + tag, self.HASH_TO_FIELD_BYTES
        )
        return int.from_bytes(uniform_bytes, "big") % self.order

    def hash_to_bytes(self, tag: bytes, msg: bytes) -> bytes:
        return sha256(self.CONTEXT_STRING + tag + msg).digest()

    # H1
    def hash_binding_factor(self, msg: bytes) -> int:
        return self.hash_to_scalar(b"rho", msg)

    # H2
    def hash_challenge(self, msg: bytes) -> int:
        return self.hash_to_scalar(b"chal", msg)

    # H3
    def hash_nonce(self, msg: bytes) -> int:
        return self.hash_to_scalar(b"nonce", msg)

    # H4
    def hash_message(self, msg: bytes) -> bytes:
        return self.hash_to_bytes(b"msg", msg)

    # H5
    def hash_commitments(self, msg: bytes) -> bytes:
        return self.hash_to_bytes(b"com", msg)

    def hash_dkg_challenge(self, msg: bytes) -> int:
        return self.hash_to_scalar(b"dkg", msg)

    def hash_identifier(self, msg: bytes) -> int:
        return self.hash_to_scalar(b"id", msg)

    def challenge(self, group_commitment: Point, public_key: Point, message: bytes) -> int:
        # c = H2(R, Y, m)
        return self.hash_challenge(
            self.serialize_element(group_commitment)
            + self.serialize_element(public_key)
            + message
        )

    def nonce_parity(self, group_commitment: Point) -> int:
        """Factor (1 or -1 mod Q) applied to every nonce for this group commitment."""
        return 1

    def key_parity(self, public_key: Point) -> int:
        """Factor (1 or -1 mod Q) applied to every signing share for this group key."""
        return 1

    def serialize_signature(self, group_commitment: Point, z: int) -> bytes:
        return self.serialize_element(group_commitment) + self.serialize_scalar(z)

    def deserialize_signature(self, data: bytes) -> Tuple[Point, int]:
        if len(data) != ELEMENT_SIZE + SCALAR_SIZE:
            raise ValueError(
                f"Signatures must be exactly {ELEMENT_SIZE + SCALAR_SIZE} bytes long."
            )
        return (
            self.deserialize_element(data[:ELEMENT_SIZE]),
            self.deserialize_scalar(data[ELEMENT_SIZE:]),
        )

    def verify_signature(
        self, message: bytes, group_commitment: Point, z: int, public_key: Point
    ) -> bool:
        """Check z * G == R + c * Y."""
        if group_commitment.is_zero() or public_key.is_zero():
            return False
        c = self.challenge(group_commitment, public_key, message)
        return z * self.generator() == group_commitment + c * public_key

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Secp256k1Taproot(Ciphersuite):
    """FROST(secp256k1, SHA-256) producing BIP340 Schnorr signatures."""

    NAME = "secp256k1-tr"
    CONTEXT_STRING = b"FROST-secp256k1-SHA256-TR-v1"

    def challenge(self, group_commitment: Point, public_key: Point, message: bytes) -> int:
        # c = H_2(R, Y, m), with the BIP340 challenge tag and x-only keys
        challenge_hash = tagged_hash(
            "BIP0340/challenge",
            group_commitment.to_bytes_xonly() + public_key.to_bytes_xonly() + message,
        )
        return int.from_bytes(challenge_hash, "big") % self.order

    def nonce_parity(self, group_commitment: Point) -> int:
        # Negate d_i and e_i if R is odd
        return 1 if group_commitment.has_even_y() else self.order - 1

    def key_parity(self, public_key: Point) -> int:
        # Negate s_i if Y is odd
        return 1 if public_key.has_even_y() else self.order - 1

    def serialize_signature(self, group_commitment: Point, z: int) -> bytes:
        return group_commitment.to_bytes_xonly() + self.serialize_scalar(z)

    def deserialize_signature(self, data: bytes) -> Tuple[Point, int]:
        if len(data) != XONLY_SIZE + SCALAR_SIZE:
            raise ValueError(
                f"Signatures must be exactly {XONLY_SIZE + SCALAR_SIZE} bytes long."
            )
        return (
            Point.from_bytes_xonly(data[:XONLY_SIZE]),
            self.deserialize_scalar(data[XONLY_SIZE:]),
        )

    def verify_signature(
        self, message: bytes, group_commitment: Point, z: int, public_key: Point
    ) -> bool:
        """BIP340 verification against the x-only group key."""
        if group_commitment.is_zero() or public_key.is_zero():
            return False
        even_key = public_key if public_key.has_even_y() else -public_key
        c = self.challenge(group_commitment, even_key, message)
        # R ≟ g^z * Y^-c
        expected = (z * self.generator()) + ((self.order - c) * even_key)
        if expected.is_zero() or not expected.has_even_y():
            return False
        return expected.x == group_commitment.x


class Secp256k1Sha256(Ciphersuite):
    """FROST(secp256k1, SHA-256) with plain Schnorr signatures."""


CIPHERSUITES: Dict[str, Ciphersuite] = {
    Secp256k1Sha256.NAME: Secp256k1Sha256(),
    Secp256k1Taproot.NAME: Secp256k1Taproot(),
}

DEFAULT_CIPHERSUITE: Ciphersuite = CIPHERSUITES[Secp256k1Taproot.NAME]


def get_ciphersuite(name: str) -> Ciphersuite:
    """Look up a ciphersuite by name."""
    try:
        return CIPHERSUITES[name]
    except KeyError:
        raise InvalidConfiguration(
            f"Unknown ciphersuite {name!r}, expected one of {sorted(CIPHERSUITES)}"
        ) from None
