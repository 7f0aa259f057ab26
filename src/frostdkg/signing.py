"""
Signing round 1 and the values exchanged during a signing session.

Each signer generates a fresh pair of nonces (hiding d_i, binding e_i) and
publishes the commitments (D_i, E_i). The coordinator collects the commitments
of the chosen quorum into a SigningPackage together with the message.
"""

from __future__ import annotations
from secrets import token_bytes
from typing import Dict, Mapping, NamedTuple, Optional, Tuple
import logging
from .ciphersuite import Ciphersuite, DEFAULT_CIPHERSUITE
from .constants import ELEMENT_SIZE, SCALAR_SIZE
from .identifier import Identifier
from .keys import KeyPackage, OneTimeSecret
from .point import Point
from .polynomial import RandomBytes

logger = logging.getLogger(__name__)


class SigningCommitments(NamedTuple):
    """Public commitments (D_i, E_i) = (g^d_i, g^e_i) to a signer's nonces."""

    hiding: Point
    binding: Point

    def to_bytes(self) -> bytes:
        return self.hiding.to_bytes_compressed() + self.binding.to_bytes_compressed()

    @classmethod
    def from_bytes(cls, data: bytes) -> SigningCommitments:
        if len(data) != 2 * ELEMENT_SIZE:
            raise ValueError(
                f"Signing commitments must be exactly {2 * ELEMENT_SIZE} bytes long."
            )
        return cls(
            Point.from_bytes_compressed(data[:ELEMENT_SIZE]),
            Point.from_bytes_compressed(data[ELEMENT_SIZE:]),
        )


class SigningNonces(OneTimeSecret):
    """
    A signer's secret nonce pair (d_i, e_i) for a single signing session.

    The nonces are consumed by participant.sign: the object then holds nothing
    and cannot produce a second signature share. They are never serialized.
    """

    __slots__ = ("commitments", "_hiding", "_binding")

    def __init__(self, hiding: int, binding: int, ciphersuite: Optional[Ciphersuite] = None):
        super().__init__()
        self._hiding: Optional[int] = hiding
        self._binding: Optional[int] = binding
        # (D_i, E_i) = (g^d_i, g^e_i)
        generator = (ciphersuite or DEFAULT_CIPHERSUITE).generator()
        self.commitments = SigningCommitments(hiding * generator, binding * generator)

    @classmethod
    def generate(
        cls,
        signing_share: int,
        random_bytes: Optional[RandomBytes] = None,
        ciphersuite: Optional[Ciphersuite] = None,
    ) -> SigningNonces:
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        return cls(
            _nonce_generate(signing_share, random_bytes, suite),
            _nonce_generate(signing_share, random_bytes, suite),
            suite,
        )

    def _take(self) -> Tuple[int, int]:
        self._mark_consumed()
        hiding, binding = self._hiding, self._binding
        self._hiding = None
        self._binding = None
        return hiding, binding

    def discard(self) -> None:
        """Destroy unused nonces, e.g. when a signing session is abandoned."""
        if not self.consumed:
            self._take()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(consumed={self.consumed})"


def _nonce_generate(
    secret: int, random_bytes: Optional[RandomBytes], ciphersuite: Ciphersuite
) -> int:
    # H3(random_bytes(32) || SerializeScalar(secret)); fresh randomness on every
    # call and never a function of the message.
    random_bytes = random_bytes or token_bytes
    while True:
        nonce = ciphersuite.hash_nonce(
            random_bytes(32) + ciphersuite.serialize_scalar(secret)
        )
        if nonce != 0:
            return nonce


def commit(
    key_package: KeyPackage,
    random_bytes: Optional[RandomBytes] = None,
    ciphersuite: Optional[Ciphersuite] = None,
) -> Tuple[SigningNonces, SigningCommitments]:
    """
    Perform signing round 1.

    Returns:
    Tuple[SigningNonces, SigningCommitments]: The one-time secret nonces to
    keep for this session and the commitments to send to the coordinator.
    """
    # (d_i_j, e_i_j) ⭠ $ ℤ*_q x ℤ*_q
    nonces = SigningNonces.generate(key_package.signing_share, random_bytes, ciphersuite)
    logger.debug("Generated signing commitments for %r", key_package.identifier)
    return nonces, nonces.commitments


class SigningPackage:
    """
    The inputs of one signing session: the message and the commitments of
    every participating signer, ordered by identifier.
    """

    __slots__ = ("message", "commitments")

    def __init__(
        self, commitments: Mapping[Identifier, SigningCommitments], message: bytes
    ):
        if not commitments:
            raise ValueError("A signing package needs at least one commitment.")
        if not isinstance(message, bytes):
            raise ValueError("The message must be bytes.")
        # m
        self.message = message
        # B = ⟨(i, D_i, E_i)⟩_i∈S
        self.commitments: Dict[Identifier, SigningCommitments] = {
            identifier: commitments[identifier] for identifier in sorted(commitments)
        }

    @property
    def signer_identifiers(self) -> Tuple[Identifier, ...]:
        return tuple(self.commitments)

    def signing_commitment(self, identifier: Identifier) -> Optional[SigningCommitments]:
        return self.commitments.get(identifier)

    def encode_commitment_list(self) -> bytes:
        """Serialize B as id || D || E for every signer, in identifier order."""
        return b"".join(
            identifier.to_bytes() + commitments.to_bytes()
            for identifier, commitments in self.commitments.items()
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SigningPackage):
            return NotImplemented
        return self.message == other.message and self.commitments == other.commitments

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(signers={list(self.commitments)!r}, "
            f"message={self.message!r})"
        )


class SignatureShare(NamedTuple):
    """A signer's partial signature z_i."""

    share: int

    def to_bytes(self) -> bytes:
        return self.share.to_bytes(SCALAR_SIZE, "big")

    @classmethod
    def from_bytes(cls, data: bytes) -> SignatureShare:
        if len(data) != SCALAR_SIZE:
            raise ValueError(f"Signature shares must be exactly {SCALAR_SIZE} bytes long.")
        return cls(int.from_bytes(data, "big"))


class Signature(NamedTuple):
    """An aggregated Schnorr signature σ = (R, z)."""

    R: Point
    z: int

    def to_bytes(self, ciphersuite: Optional[Ciphersuite] = None) -> bytes:
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        return suite.serialize_signature(self.R, self.z)

    def hex(self, ciphersuite: Optional[Ciphersuite] = None) -> str:
        return self.to_bytes(ciphersuite).hex()

    @classmethod
    def from_bytes(cls, data: bytes, ciphersuite: Optional[Ciphersuite] = None) -> Signature:
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        return cls(*suite.deserialize_signature(data))

    def verify(
        self,
        message: bytes,
        public_key: Point,
        ciphersuite: Optional[Ciphersuite] = None,
    ) -> bool:
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        return suite.verify_signature(message, self.R, self.z, public_key)
