"""
This module defines the Participant class for the FROST (Flexible
Round-Optimized Schnorr Threshold) signature scheme, together with the
signing round 2 operation.

A Participant is a phase-indexed state machine:

    AWAITING_ROUND1 -> AWAITING_ROUND2 -> AWAITING_ROUND3 -> READY

Each key generation round takes ownership of the secret package produced by
the previous round. A call made in the wrong state is rejected before any
work is done. Once READY, the participant can commit to nonces and produce
signature shares; each set of nonces signs at most once.
"""

from enum import Enum
from secrets import token_bytes
from typing import Dict, Mapping, Optional, Tuple, Union
import logging
from .aggregator import Aggregator
from .ciphersuite import Ciphersuite, DEFAULT_CIPHERSUITE
from .constants import PHASE_SIGN
from .dkg import (
    Round1Package,
    Round1SecretPackage,
    Round2Package,
    Round2SecretPackage,
    part1,
    part2,
    part3,
    validate_threshold,
)
from .errors import (
    InsufficientSigners,
    InvalidCommitment,
    InvalidPhase,
    MissingPackage,
    SecretAlreadyConsumed,
)
from .identifier import Identifier
from .keys import KeyPackage, PublicKeyPackage
from .polynomial import RandomBytes, lagrange_coefficient
from .signing import SignatureShare, SigningCommitments, SigningNonces, SigningPackage, commit

logger = logging.getLogger(__name__)


def sign(
    signing_package: SigningPackage,
    nonces: SigningNonces,
    key_package: KeyPackage,
    ciphersuite: Optional[Ciphersuite] = None,
) -> SignatureShare:
    """
    Perform signing round 2: produce this signer's signature share.

    Once the input checks pass the nonces are consumed and can never be used
    again.

    Parameters:
    signing_package (SigningPackage): The message and the quorum's commitments.
    nonces (SigningNonces): The nonces generated by commit for this session.
    key_package (KeyPackage): The signer's key material.

    Returns:
    SignatureShare: z_i = d_i + (e_i * p_i) + λ_i * s_i * c.

    Raises:
    SecretAlreadyConsumed: If the nonces were already used.
    MissingPackage: If the signer's identifier is not in the signing package.
    InsufficientSigners: If the quorum is smaller than the threshold.
    InvalidCommitment: If the package holds a commitment that does not match
        the nonces.
    """
    suite = ciphersuite or DEFAULT_CIPHERSUITE
    nonces._check_unconsumed()
    identifier = key_package.identifier

    commitments = signing_package.signing_commitment(identifier)
    if commitments is None:
        raise MissingPackage(identifier, PHASE_SIGN)
    if len(signing_package.commitments) < key_package.min_signers:
        raise InsufficientSigners(key_package.min_signers, len(signing_package.commitments))
    if commitments != nonces.commitments:
        raise InvalidCommitment(identifier)

    session = Aggregator.session_values(signing_package, key_package.verifying_key, suite)

    # d_i, e_i
    first_nonce, second_nonce = nonces._take()
    # p_i = H_1(Y, m, B, i), i ∈ S
    binding_factor = session.binding_factors[identifier]
    # λ_i
    lagrange = lagrange_coefficient(
        signing_package.signer_identifiers, identifier, ciphersuite=suite
    )
    # s_i, negated alongside the nonces where the ciphersuite requires even Y
    signing_share = (key_package.signing_share * session.key_parity) % suite.order
    nonce_share = (first_nonce + second_nonce * binding_factor) * session.nonce_parity

    # z_i = d_i + (e_i * p_i) + λ_i * s_i * c
    share = (nonce_share + lagrange * signing_share * session.challenge) % suite.order
    logger.debug("Produced signature share for %r", identifier)
    return SignatureShare(share)


class ParticipantState(Enum):
    AWAITING_ROUND1 = "awaiting round 1"
    AWAITING_ROUND2 = "awaiting round 2"
    AWAITING_ROUND3 = "awaiting round 3"
    READY = "ready"


class Participant:
    """Class representing a FROST participant."""

    def __init__(
        self,
        identifier: Identifier,
        min_signers: int,
        max_signers: int,
        ciphersuite: Optional[Ciphersuite] = None,
        random_bytes: Optional[RandomBytes] = None,
    ):
        """
        Initialize a new Participant for the FROST signature scheme.

        Parameters:
        identifier (Identifier): The unique identifier of the participant.
        min_signers (int): The minimum number of participants required to
            generate a valid signature.
        max_signers (int): The total number of participants in the scheme.
        ciphersuite (Ciphersuite, optional): Defaults to the Taproot suite.
        random_bytes (Callable[[int], bytes], optional): This participant's
            own CSPRNG. Defaults to secrets.token_bytes.

        Raises:
        InvalidConfiguration: If min_signers is zero or greater than max_signers.
        """
        if not isinstance(identifier, Identifier):
            raise ValueError("identifier must be an Identifier.")
        validate_threshold(min_signers, max_signers)

        self.identifier = identifier
        self.min_signers = min_signers
        self.max_signers = max_signers
        self.ciphersuite = ciphersuite or DEFAULT_CIPHERSUITE
        self._random_bytes = random_bytes or token_bytes

        self._state = ParticipantState.AWAITING_ROUND1
        # The secret of the current phase: Round1SecretPackage while awaiting
        # round 2, Round2SecretPackage while awaiting round 3, the
        # (KeyPackage, PublicKeyPackage) pair once ready.
        self._secret: Union[
            None, Round1SecretPackage, Round2SecretPackage, Tuple[KeyPackage, PublicKeyPackage]
        ] = None
        self._round1_packages: Dict[Identifier, Round1Package] = {}
        self._nonces: Optional[SigningNonces] = None

    @property
    def state(self) -> ParticipantState:
        return self._state

    def _require(self, state: ParticipantState) -> None:
        if self._state is not state:
            raise InvalidPhase(state, self._state)

    def round1(self) -> Round1Package:
        """
        Run key generation round 1.

        Returns:
        Round1Package: The package to broadcast to every other participant.
        """
        self._require(ParticipantState.AWAITING_ROUND1)
        secret_package, package = part1(
            self.identifier,
            self.max_signers,
            self.min_signers,
            self._random_bytes,
            self.ciphersuite,
        )
        self._secret = secret_package
        self._state = ParticipantState.AWAITING_ROUND2
        return package

    def round2(
        self, round1_packages: Mapping[Identifier, Round1Package]
    ) -> Dict[Identifier, Round2Package]:
        """
        Run key generation round 2.

        Parameters:
        round1_packages (Mapping[Identifier, Round1Package]): The packages
            broadcast by every other participant.

        Returns:
        Dict[Identifier, Round2Package]: One package per recipient, to be
        delivered privately.
        """
        self._require(ParticipantState.AWAITING_ROUND2)
        round1_secret = self._secret
        round2_secret, round2_packages = part2(
            round1_secret, round1_packages, self.ciphersuite
        )
        self._secret = round2_secret
        self._round1_packages = dict(round1_packages)
        self._state = ParticipantState.AWAITING_ROUND3
        return round2_packages

    def round3(
        self, round2_packages: Mapping[Identifier, Round2Package]
    ) -> PublicKeyPackage:
        """
        Run key generation round 3.

        Parameters:
        round2_packages (Mapping[Identifier, Round2Package]): The packages
            received from every other participant, keyed by sender.

        Returns:
        PublicKeyPackage: The group's public output.
        """
        self._require(ParticipantState.AWAITING_ROUND3)
        key_package, public_key_package = part3(
            self._secret, self._round1_packages, round2_packages, self.ciphersuite
        )
        self._secret = (key_package, public_key_package)
        self._round1_packages = {}
        self._state = ParticipantState.READY
        return public_key_package

    @property
    def key_package(self) -> KeyPackage:
        self._require(ParticipantState.READY)
        return self._secret[0]

    @property
    def public_key_package(self) -> PublicKeyPackage:
        self._require(ParticipantState.READY)
        return self._secret[1]

    def commit(self) -> SigningCommitments:
        """
        Run signing round 1.

        Any nonces still pending from an earlier, abandoned session are
        destroyed first.

        Returns:
        SigningCommitments: The commitments to send to the coordinator.
        """
        self._require(ParticipantState.READY)
        self.discard_nonces()
        nonces, commitments = commit(self.key_package, self._random_bytes, self.ciphersuite)
        self._nonces = nonces
        return commitments

    def sign(self, signing_package: SigningPackage) -> SignatureShare:
        """
        Run signing round 2 with the nonces from the latest commit.

        Raises:
        SecretAlreadyConsumed: If there are no pending nonces.
        """
        self._require(ParticipantState.READY)
        nonces, self._nonces = self._nonces, None
        if nonces is None:
            raise SecretAlreadyConsumed(
                f"{self.identifier!r} has no pending nonces, commit first"
            )
        try:
            return sign(signing_package, nonces, self.key_package, self.ciphersuite)
        finally:
            nonces.discard()

    def discard_nonces(self) -> None:
        """Destroy pending nonces, e.g. after a cancelled signing session."""
        nonces, self._nonces = self._nonces, None
        if nonces is not None:
            nonces.discard()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(identifier={self.identifier!r}, state={self._state.name})"
