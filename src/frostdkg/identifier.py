"""
Participant identifiers.

An Identifier is a nonzero scalar naming one party. It is the x-coordinate at
which the party's secret share is evaluated, so two parties must never share
one. Identifiers are either given directly as small integers or derived
deterministically from an arbitrary byte seed.
"""

from __future__ import annotations
from functools import total_ordering
from typing import Iterable, List, Optional
import logging
from .ciphersuite import Ciphersuite, DEFAULT_CIPHERSUITE
from .constants import Q, SCALAR_SIZE, IDENTIFIER_DERIVATION_ATTEMPTS
from .errors import DuplicateIdentifier, IdentifierDerivationFailure

logger = logging.getLogger(__name__)


@total_ordering
class Identifier:
    """A nonzero scalar identifying one party."""

    __slots__ = ("_value",)

    def __init__(self, value: int):
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError("Identifier value must be an integer.")
        if not 0 < value < Q:
            raise ValueError("Identifier value must be a nonzero scalar.")
        self._value = value

    @classmethod
    def derive(
        cls, seed: bytes, ciphersuite: Optional[Ciphersuite] = None
    ) -> Identifier:
        """
        Derive an identifier from an arbitrary byte seed.

        The result is a pure function of the seed. If the hash maps to zero,
        the seed is rehashed with an attempt counter appended.

        Raises:
        IdentifierDerivationFailure: If every attempt produced zero.
        """
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        for attempt in range(IDENTIFIER_DERIVATION_ATTEMPTS):
            data = seed if attempt == 0 else seed + attempt.to_bytes(4, "big")
            value = suite.hash_identifier(data)
            if value != 0:
                return cls(value)
            logger.debug("Identifier seed hashed to zero, attempt %d", attempt)
        raise IdentifierDerivationFailure(
            f"No nonzero identifier after {IDENTIFIER_DERIVATION_ATTEMPTS} attempts"
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> Identifier:
        if len(data) != SCALAR_SIZE:
            raise ValueError(f"Identifiers must be exactly {SCALAR_SIZE} bytes long.")
        return cls(int.from_bytes(data, "big"))

    def to_bytes(self) -> bytes:
        return self._value.to_bytes(SCALAR_SIZE, "big")

    def __int__(self) -> int:
        return self._value

    def __index__(self) -> int:
        return self._value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identifier):
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other: Identifier) -> bool:
        if not isinstance(other, Identifier):
            return NotImplemented
        return self._value < other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __str__(self) -> str:
        return self.to_bytes().hex()

    def __repr__(self) -> str:
        if self._value < 2**16:
            return f"{self.__class__.__name__}({self._value})"
        return f"{self.__class__.__name__}(0x{self.to_bytes().hex()})"


def check_identifiers(identifiers: Iterable[Identifier]) -> None:
    """
    Reject a set of session identifiers containing a repeat.

    Raises:
    DuplicateIdentifier: Naming the first identifier seen twice.
    """
    seen = set()
    for identifier in identifiers:
        if identifier in seen:
            raise DuplicateIdentifier(identifier)
        seen.add(identifier)


def derive_session_identifiers(
    count: int, ciphersuite: Optional[Ciphersuite] = None
) -> List[Identifier]:
    """
    Derive identifiers for parties 1..count from 16-byte seeds tagged with
    the party index in the first byte.

    Raises:
    DuplicateIdentifier: If two seeds map to the same identifier.
    """
    if not 0 < count < 256:
        raise ValueError("Party count must be between 1 and 255.")
    identifiers = []
    for index in range(1, count + 1):
        seed = bytearray(16)
        seed[0] = index
        identifiers.append(Identifier.derive(bytes(seed), ciphersuite))
    check_identifiers(identifiers)
    return identifiers
