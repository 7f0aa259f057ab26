"""
This module implements the three rounds of FROST distributed key generation.

Round 1 (part1): every party samples a secret polynomial, commits to its
coefficients and proves knowledge of the constant term. The Round1Package is
broadcast to every other party.

Round 2 (part2): every party checks the other parties' proofs of knowledge and
evaluates its polynomial at each peer's identifier. Each Round2Package is sent
to exactly one peer.

Round 3 (part3): every party checks the shares it received against the
senders' commitments and derives its KeyPackage and the group's
PublicKeyPackage.

Secret packages are one-time values: each round consumes the secret package
of the previous round.
"""

from __future__ import annotations
from typing import Dict, Mapping, NamedTuple, Optional, Tuple
import logging
from .ciphersuite import Ciphersuite, DEFAULT_CIPHERSUITE
from .constants import (
    ELEMENT_SIZE,
    SCALAR_SIZE,
    PHASE_ROUND2,
    PHASE_ROUND3,
)
from .errors import (
    DuplicateIdentifier,
    IncompletePackageSet,
    InvalidCommitment,
    InvalidConfiguration,
    InvalidProofOfKnowledge,
    InvalidShare,
    MissingPackage,
)
from .identifier import Identifier
from .keys import KeyPackage, OneTimeSecret, PublicKeyPackage
from .point import Point
from .polynomial import CoefficientCommitment, Polynomial, RandomBytes, random_scalar

logger = logging.getLogger(__name__)


class ProofOfKnowledge(NamedTuple):
    """
    Schnorr proof of knowledge of a polynomial's constant term, σ = (R, μ).

    R is kept in its serialized form and only decoded during verification, so
    a malformed nonce commitment is attributed to its sender as an invalid
    proof rather than failing to parse.
    """

    R: bytes
    mu: int


class Round1Package(NamedTuple):
    """Public Round 1 broadcast: coefficient commitments and the proof of knowledge."""

    commitment: CoefficientCommitment
    proof_of_knowledge: ProofOfKnowledge

    def to_bytes(self) -> bytes:
        return (
            self.proof_of_knowledge.R
            + self.proof_of_knowledge.mu.to_bytes(SCALAR_SIZE, "big")
            + self.commitment.to_bytes()
        )

    @classmethod
    def from_bytes(
        cls, data: bytes, ciphersuite: Optional[Ciphersuite] = None
    ) -> Round1Package:
        header = ELEMENT_SIZE + SCALAR_SIZE
        if len(data) <= header:
            raise ValueError("Round 1 package is too short.")
        R = bytes(data[:ELEMENT_SIZE])
        mu = int.from_bytes(data[ELEMENT_SIZE:header], "big")
        return cls(
            CoefficientCommitment.from_bytes(data[header:], ciphersuite),
            ProofOfKnowledge(R, mu),
        )


class Round2Package(NamedTuple):
    """A Shamir share f_i(l), sent privately from party i to party l."""

    signing_share: int

    def to_bytes(self) -> bytes:
        return self.signing_share.to_bytes(SCALAR_SIZE, "big")

    @classmethod
    def from_bytes(cls, data: bytes) -> Round2Package:
        if len(data) != SCALAR_SIZE:
            raise ValueError(f"Round 2 package must be exactly {SCALAR_SIZE} bytes long.")
        return cls(int.from_bytes(data, "big"))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(signing_share=<hidden>)"


class _PolynomialSecretPackage(OneTimeSecret):
    """A party's secret polynomial and public commitment, held between rounds."""

    __slots__ = ("identifier", "commitment", "min_signers", "max_signers", "_polynomial")

    def __init__(
        self,
        identifier: Identifier,
        polynomial: Polynomial,
        commitment: CoefficientCommitment,
        min_signers: int,
        max_signers: int,
    ):
        super().__init__()
        self.identifier = identifier
        self.commitment = commitment
        self.min_signers = min_signers
        self.max_signers = max_signers
        self._polynomial: Optional[Polynomial] = polynomial

    def _take_polynomial(self) -> Polynomial:
        self._mark_consumed()
        polynomial, self._polynomial = self._polynomial, None
        return polynomial

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(identifier={self.identifier!r}, "
            f"consumed={self.consumed})"
        )


class Round1SecretPackage(_PolynomialSecretPackage):
    """Private state kept by a party between Round 1 and Round 2."""

    __slots__ = ()


class Round2SecretPackage(_PolynomialSecretPackage):
    """Private state kept by a party between Round 2 and Round 3."""

    __slots__ = ()


def validate_threshold(min_signers: int, max_signers: int) -> None:
    """
    Raises:
    InvalidConfiguration: Unless 1 ≤ min_signers ≤ max_signers.
    """
    if not isinstance(min_signers, int) or not isinstance(max_signers, int):
        raise InvalidConfiguration(
            "min_signers and max_signers must be integers.", min_signers, max_signers
        )
    if min_signers == 0:
        raise InvalidConfiguration("min_signers must be at least 1.", min_signers, max_signers)
    if min_signers < 0 or min_signers > max_signers:
        raise InvalidConfiguration(
            f"min_signers ({min_signers}) must be between 1 and max_signers ({max_signers}).",
            min_signers,
            max_signers,
        )


def _dkg_challenge(
    identifier: Identifier, verifying_key: Point, R: bytes, ciphersuite: Ciphersuite
) -> int:
    # c_i = H(i, 𝚽, g^a_i_0, R_i), 𝚽 being the ciphersuite's context string
    return ciphersuite.hash_dkg_challenge(
        identifier.to_bytes()
        + ciphersuite.serialize_element(verifying_key)
        + R
    )


def compute_proof_of_knowledge(
    identifier: Identifier,
    polynomial: Polynomial,
    commitment: CoefficientCommitment,
    random_bytes: Optional[RandomBytes] = None,
    ciphersuite: Optional[Ciphersuite] = None,
) -> ProofOfKnowledge:
    """Prove knowledge of a_i_0, bound to the party's identifier."""
    suite = ciphersuite or DEFAULT_CIPHERSUITE
    # k ⭠ ℤ_q
    nonce = random_scalar(random_bytes, suite)
    # R_i = g^k
    nonce_commitment = suite.serialize_element(nonce * suite.generator())
    challenge = _dkg_challenge(
        identifier, commitment.verifying_key(), nonce_commitment, suite
    )
    # μ_i = k + a_i_0 * c_i
    mu = (nonce + polynomial.secret * challenge) % suite.order
    return ProofOfKnowledge(nonce_commitment, mu)


def verify_proof_of_knowledge(
    identifier: Identifier,
    commitment: CoefficientCommitment,
    proof: ProofOfKnowledge,
    ciphersuite: Optional[Ciphersuite] = None,
) -> bool:
    """Check R_l ≟ g^μ_l * 𝜙_l_0^-c_l."""
    suite = ciphersuite or DEFAULT_CIPHERSUITE
    R_bytes, mu = proof
    if not isinstance(R_bytes, bytes) or not isinstance(mu, int):
        return False
    try:
        R = suite.deserialize_element(R_bytes)
    except ValueError:
        return False
    if R.is_zero() or not 0 <= mu < suite.order:
        return False
    verifying_key = commitment.verifying_key()
    if verifying_key.is_zero():
        return False
    challenge = _dkg_challenge(identifier, verifying_key, R_bytes, suite)
    return R == (mu * suite.generator()) + ((suite.order - challenge) * verifying_key)


def part1(
    identifier: Identifier,
    max_signers: int,
    min_signers: int,
    random_bytes: Optional[RandomBytes] = None,
    ciphersuite: Optional[Ciphersuite] = None,
) -> Tuple[Round1SecretPackage, Round1Package]:
    """
    Perform Round 1 of key generation.

    Parameters:
    identifier (Identifier): This party's identifier.
    max_signers (int): The number of parties n.
    min_signers (int): The threshold t.
    random_bytes (Callable[[int], bytes], optional): This party's CSPRNG.
        Defaults to secrets.token_bytes.

    Returns:
    Tuple[Round1SecretPackage, Round1Package]: The private state to keep and
    the package to broadcast to every other party.

    Raises:
    InvalidConfiguration: If min_signers is zero or greater than max_signers.
    """
    suite = ciphersuite or DEFAULT_CIPHERSUITE
    validate_threshold(min_signers, max_signers)

    # 1. Generate polynomial with random coefficients, and with degree
    # equal to the threshold minus one.
    polynomial = Polynomial.generate(min_signers, random_bytes, suite)
    # 2. Compute coefficient commitments.
    commitment = polynomial.commit()
    # 3. Compute proof of knowledge of secret a_i_0.
    proof = compute_proof_of_knowledge(
        identifier, polynomial, commitment, random_bytes, suite
    )

    logger.debug("Round 1 complete for %r", identifier)
    secret_package = Round1SecretPackage(
        identifier, polynomial, commitment, min_signers, max_signers
    )
    return secret_package, Round1Package(commitment, proof)


def _check_round1_packages(
    identifier: Identifier,
    min_signers: int,
    max_signers: int,
    round1_packages: Mapping[Identifier, Round1Package],
    phase: str,
) -> None:
    if len(round1_packages) != max_signers - 1:
        raise IncompletePackageSet(max_signers - 1, len(round1_packages), phase)
    if identifier in round1_packages:
        raise DuplicateIdentifier(identifier)
    for sender, package in round1_packages.items():
        if len(package.commitment) != min_signers:
            logger.warning(
                "%r sent %d commitments, expected %d",
                sender,
                len(package.commitment),
                min_signers,
            )
            raise InvalidCommitment(sender)


def part2(
    secret_package: Round1SecretPackage,
    round1_packages: Mapping[Identifier, Round1Package],
    ciphersuite: Optional[Ciphersuite] = None,
) -> Tuple[Round2SecretPackage, Dict[Identifier, Round2Package]]:
    """
    Perform Round 2 of key generation.

    Parameters:
    secret_package (Round1SecretPackage): The state returned by part1. It is
        consumed by this call.
    round1_packages (Mapping[Identifier, Round1Package]): The Round 1
        packages of every other party, keyed by sender.

    Returns:
    Tuple[Round2SecretPackage, Dict[Identifier, Round2Package]]: The private
    state to keep and one package per peer, keyed by recipient.

    Raises:
    IncompletePackageSet: If round1_packages does not hold exactly n - 1 entries.
    DuplicateIdentifier: If this party's own identifier is among the senders.
    InvalidCommitment: If a peer committed to the wrong number of coefficients.
    InvalidProofOfKnowledge: If a peer's proof of knowledge does not verify.
    SecretAlreadyConsumed: If secret_package was already used.
    """
    suite = ciphersuite or DEFAULT_CIPHERSUITE
    secret_package._check_unconsumed()
    identifier = secret_package.identifier

    _check_round1_packages(
        identifier,
        secret_package.min_signers,
        secret_package.max_signers,
        round1_packages,
        PHASE_ROUND2,
    )

    # σ_l, l ≠ i
    for sender in sorted(round1_packages):
        package = round1_packages[sender]
        if not verify_proof_of_knowledge(
            sender, package.commitment, package.proof_of_knowledge, suite
        ):
            logger.warning("Invalid proof of knowledge from %r", sender)
            raise InvalidProofOfKnowledge(sender)

    polynomial = secret_package._take_polynomial()
    # (l, f_i(l)), l ≠ i
    round2_packages = {
        recipient: Round2Package(polynomial.evaluate(int(recipient)))
        for recipient in sorted(round1_packages)
    }

    logger.debug("Round 2 complete for %r, %d shares", identifier, len(round2_packages))
    round2_secret = Round2SecretPackage(
        identifier,
        polynomial,
        secret_package.commitment,
        secret_package.min_signers,
        secret_package.max_signers,
    )
    return round2_secret, round2_packages


def part3(
    secret_package: Round2SecretPackage,
    round1_packages: Mapping[Identifier, Round1Package],
    round2_packages: Mapping[Identifier, Round2Package],
    ciphersuite: Optional[Ciphersuite] = None,
) -> Tuple[KeyPackage, PublicKeyPackage]:
    """
    Perform Round 3 of key generation.

    Parameters:
    secret_package (Round2SecretPackage): The state returned by part2. It is
        consumed by this call.
    round1_packages (Mapping[Identifier, Round1Package]): The same Round 1
        packages passed to part2.
    round2_packages (Mapping[Identifier, Round2Package]): The shares received
        from every other party, keyed by sender.

    Returns:
    Tuple[KeyPackage, PublicKeyPackage]: This party's long-lived signing
    material and the group's public output.

    Raises:
    IncompletePackageSet: If either mapping does not hold exactly n - 1 entries.
    MissingPackage: If a share arrived from a party without a Round 1 package.
    InvalidShare: If a received share does not match its sender's commitments.
    SecretAlreadyConsumed: If secret_package was already used.
    """
    suite = ciphersuite or DEFAULT_CIPHERSUITE
    secret_package._check_unconsumed()
    identifier = secret_package.identifier
    min_signers = secret_package.min_signers
    max_signers = secret_package.max_signers

    _check_round1_packages(
        identifier, min_signers, max_signers, round1_packages, PHASE_ROUND3
    )
    if len(round2_packages) != max_signers - 1:
        raise IncompletePackageSet(max_signers - 1, len(round2_packages), PHASE_ROUND3)
    if identifier in round2_packages:
        raise DuplicateIdentifier(identifier)

    # s_i = ∑ f_l(i), 1 ≤ l ≤ n
    signing_share = 0
    x = int(identifier)
    for sender in sorted(round2_packages):
        if sender not in round1_packages:
            raise MissingPackage(sender, PHASE_ROUND3)
        share = round2_packages[sender].signing_share
        # g^f_l(i) ≟ ∏ 𝜙_l_k^i^k mod q, 0 ≤ k ≤ t - 1
        commitment = round1_packages[sender].commitment
        if not 0 <= share < suite.order or not commitment.verify_share(share, x):
            logger.warning("Invalid share from %r", sender)
            raise InvalidShare(sender)
        signing_share = (signing_share + share) % suite.order

    polynomial = secret_package._take_polynomial()
    signing_share = (signing_share + polynomial.evaluate(x)) % suite.order
    polynomial.zeroize()

    commitments = {sender: package.commitment for sender, package in round1_packages.items()}
    commitments[identifier] = secret_package.commitment
    group_commitment = CoefficientCommitment.sum(
        commitments[party] for party in sorted(commitments)
    )
    # Y = ∏ 𝜙_j_0, 1 ≤ j ≤ n
    verifying_key = group_commitment.verifying_key()
    # Y_j = g^s_j, derived for every party from the summed commitments
    verifying_shares = {
        party: group_commitment.evaluate(int(party)) for party in sorted(commitments)
    }

    key_package = KeyPackage(
        identifier,
        signing_share,
        verifying_shares[identifier],
        verifying_key,
        min_signers,
        suite,
    )
    public_key_package = PublicKeyPackage(
        verifying_shares, verifying_key, min_signers, suite
    )
    logger.debug("Round 3 complete for %r", identifier)
    return key_package, public_key_package
