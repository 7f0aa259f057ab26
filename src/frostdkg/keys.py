"""
Long-lived key material produced by distributed key generation.

A KeyPackage holds one party's signing share and never leaves that party. A
PublicKeyPackage holds the group verifying key and every party's verifying
share; it is public and identical for every honest party.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
from .ciphersuite import Ciphersuite, DEFAULT_CIPHERSUITE
from .errors import SecretAlreadyConsumed
from .identifier import Identifier
from .point import Point


class KeyPackage:
    """A party's secret signing material."""

    __slots__ = (
        "identifier",
        "signing_share",
        "verifying_share",
        "verifying_key",
        "min_signers",
        "ciphersuite",
    )

    def __init__(
        self,
        identifier: Identifier,
        signing_share: int,
        verifying_share: Point,
        verifying_key: Point,
        min_signers: int,
        ciphersuite: Optional[Ciphersuite] = None,
    ):
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        if not 0 < signing_share < suite.order:
            raise ValueError("Signing share must be a nonzero scalar.")
        if signing_share * suite.generator() != verifying_share:
            raise ValueError("Verifying share does not match the signing share.")
        self.identifier = identifier
        self.signing_share = signing_share
        self.verifying_share = verifying_share
        self.verifying_key = verifying_key
        self.min_signers = min_signers
        self.ciphersuite = suite

    def to_dict(self) -> Dict[str, Any]:
        """Hex encoding for local storage. The result contains the secret share."""
        suite = self.ciphersuite
        return {
            "identifier": self.identifier.to_bytes().hex(),
            "signing_share": suite.serialize_scalar(self.signing_share).hex(),
            "verifying_share": suite.serialize_element(self.verifying_share).hex(),
            "verifying_key": suite.serialize_element(self.verifying_key).hex(),
            "min_signers": self.min_signers,
        }

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], ciphersuite: Optional[Ciphersuite] = None
    ) -> KeyPackage:
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        try:
            return cls(
                Identifier.from_bytes(bytes.fromhex(data["identifier"])),
                suite.deserialize_scalar(bytes.fromhex(data["signing_share"])),
                suite.deserialize_element(bytes.fromhex(data["verifying_share"])),
                suite.deserialize_element(bytes.fromhex(data["verifying_key"])),
                int(data["min_signers"]),
                suite,
            )
        except (KeyError, TypeError) as e:
            raise ValueError("Malformed key package.") from e

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyPackage):
            return NotImplemented
        return (
            self.identifier == other.identifier
            and self.signing_share == other.signing_share
            and self.verifying_key == other.verifying_key
            and self.min_signers == other.min_signers
        )

    def __hash__(self) -> int:
        return hash((self.identifier, self.verifying_share))

    def __repr__(self) -> str:
        # Omits the signing share.
        return (
            f"{self.__class__.__name__}(identifier={self.identifier!r}, "
            f"verifying_share={self.verifying_share}, "
            f"verifying_key={self.verifying_key}, min_signers={self.min_signers})"
        )


class PublicKeyPackage:
    """
    The public output of key generation.

    Immutable and hashable: verifying_shares is a read-only view over a
    private copy of the mapping it was built from.
    """

    __slots__ = ("_verifying_shares", "_verifying_key", "_min_signers", "ciphersuite")

    def __init__(
        self,
        verifying_shares: Mapping[Identifier, Point],
        verifying_key: Point,
        min_signers: int,
        ciphersuite: Optional[Ciphersuite] = None,
    ):
        self._verifying_shares = {
            identifier: verifying_shares[identifier] for identifier in sorted(verifying_shares)
        }
        self._verifying_key = verifying_key
        self._min_signers = min_signers
        self.ciphersuite = ciphersuite or DEFAULT_CIPHERSUITE

    @property
    def verifying_key(self) -> Point:
        return self._verifying_key

    @property
    def min_signers(self) -> int:
        return self._min_signers

    @property
    def verifying_shares(self) -> Mapping[Identifier, Point]:
        return MappingProxyType(self._verifying_shares)

    @property
    def max_signers(self) -> int:
        return len(self._verifying_shares)

    def to_bytes(self) -> bytes:
        """Canonical encoding, with verifying shares ordered by identifier."""
        suite = self.ciphersuite
        data = self.min_signers.to_bytes(2, "big")
        data += len(self._verifying_shares).to_bytes(2, "big")
        for identifier, share in self._verifying_shares.items():
            data += identifier.to_bytes()
            data += suite.serialize_element(share)
        return data + suite.serialize_element(self.verifying_key)

    def to_dict(self) -> Dict[str, Any]:
        suite = self.ciphersuite
        return {
            "verifying_shares": {
                identifier.to_bytes().hex(): suite.serialize_element(share).hex()
                for identifier, share in self._verifying_shares.items()
            },
            "verifying_key": suite.serialize_element(self.verifying_key).hex(),
            "min_signers": self.min_signers,
        }

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], ciphersuite: Optional[Ciphersuite] = None
    ) -> PublicKeyPackage:
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        try:
            return cls(
                {
                    Identifier.from_bytes(bytes.fromhex(identifier)): suite.deserialize_element(
                        bytes.fromhex(share)
                    )
                    for identifier, share in data["verifying_shares"].items()
                },
                suite.deserialize_element(bytes.fromhex(data["verifying_key"])),
                int(data["min_signers"]),
                suite,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError("Malformed public key package.") from e

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKeyPackage):
            return NotImplemented
        return (
            self._verifying_shares == other._verifying_shares
            and self.verifying_key == other.verifying_key
            and self.min_signers == other.min_signers
        )

    def __hash__(self) -> int:
        return hash(
            (tuple(self._verifying_shares.items()), self.verifying_key, self.min_signers)
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(verifying_key={self.verifying_key}, "
            f"min_signers={self.min_signers}, max_signers={self.max_signers})"
        )


class OneTimeSecret:
    """
    Base class for secrets that may be used exactly once.

    Consuming the secret hands its contents to the caller and drops every
    reference the object holds, so the object is useless afterwards and any
    further use raises SecretAlreadyConsumed.
    """

    __slots__ = ("_consumed",)

    def __init__(self) -> None:
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def _check_unconsumed(self) -> None:
        if self._consumed:
            raise SecretAlreadyConsumed(
                f"{self.__class__.__name__} has already been consumed"
            )

    def _mark_consumed(self) -> None:
        self._check_unconsumed()
        self._consumed = True
