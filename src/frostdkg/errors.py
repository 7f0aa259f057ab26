"""
Exceptions raised by the FROST key generation and signing protocols.

There are two kinds of failures:
  - ValueError indicates that an input does not conform to a function
    precondition (wrong length, malformed encoding, out-of-range integer).
  - FrostError subclasses indicate that the protocol cannot continue. Where
    the failure can be attributed to another party, the exception carries the
    offending identifier so the caller can exclude that party.

No exception is ever accompanied by partial key material or a partial
signature.
"""

from typing import Any, Iterable, Optional, Tuple


class FrostError(Exception):
    """Base exception for every protocol failure."""


class IdentifierDerivationFailure(FrostError):
    """Raised if a seed cannot be mapped to a nonzero identifier."""


class InvalidConfiguration(FrostError):
    """Raised if the threshold parameters or session settings are unusable."""

    def __init__(
        self,
        message: str,
        min_signers: Optional[int] = None,
        max_signers: Optional[int] = None,
    ):
        self.min_signers = min_signers
        self.max_signers = max_signers
        super().__init__(message)


class DuplicateIdentifier(FrostError):
    """Raised if an identifier appears twice where identifiers must be distinct.

    Attributes:
        identifier (Identifier): The repeated identifier.
    """

    def __init__(self, identifier: Any, *args: Any):
        self.identifier = identifier
        super().__init__(identifier, *args)


class IncompletePackageSet(FrostError):
    """Raised if a phase receives the wrong number of packages.

    Attributes:
        expected (int): Number of packages the phase requires.
        got (int): Number of packages actually supplied.
        phase (str): The phase that detected the mismatch.
    """

    def __init__(self, expected: int, got: int, phase: str):
        self.expected = expected
        self.got = got
        self.phase = phase
        super().__init__(
            f"{phase}: expected {expected} packages, received {got}"
        )


class InvalidProofOfKnowledge(FrostError):
    """Raised if a Round 1 package carries an invalid proof of knowledge.

    Attributes:
        culprit (Identifier): The sender of the package.
    """

    def __init__(self, culprit: Any, *args: Any):
        self.culprit = culprit
        super().__init__(culprit, *args)


class InvalidCommitment(FrostError):
    """Raised if a party's commitment is malformed or does not match its nonces.

    Attributes:
        culprit (Identifier): The party the commitment belongs to.
    """

    def __init__(self, culprit: Any, *args: Any):
        self.culprit = culprit
        super().__init__(culprit, *args)


class InvalidShare(FrostError):
    """Raised if a received secret share does not match the sender's commitments.

    Attributes:
        culprit (Identifier): The sender of the share.
    """

    def __init__(self, culprit: Any, *args: Any):
        self.culprit = culprit
        super().__init__(culprit, *args)


class MissingPackage(FrostError):
    """Raised if a package for a required identifier is absent.

    Attributes:
        identifier (Identifier): The identifier whose package is missing.
        phase (str): The phase that detected the gap.
    """

    def __init__(self, identifier: Any, phase: str):
        self.identifier = identifier
        self.phase = phase
        super().__init__(f"{phase}: missing package for {identifier!r}")


class InsufficientSigners(FrostError):
    """Raised if a signing quorum is smaller than the threshold."""

    def __init__(self, required: int, got: int):
        self.required = required
        self.got = got
        super().__init__(f"at least {required} signers are required, got {got}")


class InvalidSignatureShare(FrostError):
    """Raised by aggregation if one or more signature shares are invalid.

    Every share is checked before this is raised, so `culprits` names all
    misbehaving parties at once.

    Attributes:
        culprits (Tuple[Identifier, ...]): Every party with an invalid share.
        culprit (Identifier): The first of them.
    """

    def __init__(self, culprits: Iterable[Any]):
        self.culprits: Tuple[Any, ...] = tuple(culprits)
        if not self.culprits:
            raise ValueError("At least one culprit is required.")
        super().__init__(*self.culprits)

    @property
    def culprit(self) -> Any:
        return self.culprits[0]


class SignatureVerificationFailed(FrostError):
    """Raised if an aggregated signature does not verify under the group key."""


class SecretAlreadyConsumed(FrostError):
    """Raised if a one-time secret (secret package or nonces) is used twice."""


class InvalidPhase(FrostError):
    """Raised if a participant is driven through its phases out of order.

    Attributes:
        expected: The state the operation requires.
        actual: The participant's current state.
    """

    def __init__(self, expected: Any, actual: Any):
        self.expected = expected
        self.actual = actual
        super().__init__(f"operation requires {expected}, participant is {actual}")
