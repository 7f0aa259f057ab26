"""
This module defines the Aggregator class used in the FROST (Flexible
Round-Optimized Schnorr Threshold) signature scheme. The Aggregator is
responsible for coordinating and processing the cryptographic elements
necessary to construct a joint signature from multiple participants.

It also computes the per-session values every signer needs: the binding
factors, the group commitment R and the challenge c. Signers and the
aggregator derive them with the same code so their views cannot diverge.
"""

from typing import Dict, List, Mapping, NamedTuple, Optional
import logging
from .ciphersuite import Ciphersuite, DEFAULT_CIPHERSUITE
from .constants import PHASE_AGGREGATE
from .errors import (
    IncompletePackageSet,
    InsufficientSigners,
    InvalidSignatureShare,
    MissingPackage,
    SignatureVerificationFailed,
)
from .identifier import Identifier
from .keys import PublicKeyPackage
from .point import Point
from .polynomial import lagrange_coefficient
from .signing import Signature, SignatureShare, SigningPackage

logger = logging.getLogger(__name__)


class SessionValues(NamedTuple):
    """Values shared by every signer of one signing session."""

    binding_factors: Dict[Identifier, int]
    group_commitment: Point
    challenge: int
    nonce_parity: int
    key_parity: int


class Aggregator:
    """Class representing the signature aggregator."""

    def __init__(
        self,
        signing_package: SigningPackage,
        public_key_package: PublicKeyPackage,
        ciphersuite: Optional[Ciphersuite] = None,
    ):
        """
        Initialize the Aggregator for one signing session.

        Parameters:
        signing_package (SigningPackage): The message and the commitments of
            the signers taking part.
        public_key_package (PublicKeyPackage): The group's public output of key
            generation.
        ciphersuite (Ciphersuite, optional): Defaults to the Taproot suite.

        Raises:
        InsufficientSigners: If the session has fewer signers than the threshold.
        MissingPackage: If a signer has no verifying share in the public key package.
        """
        self.ciphersuite = ciphersuite or DEFAULT_CIPHERSUITE
        self.signing_package = signing_package
        self.public_key_package = public_key_package

        signers = signing_package.signer_identifiers
        if len(signers) < public_key_package.min_signers:
            raise InsufficientSigners(public_key_package.min_signers, len(signers))
        for identifier in signers:
            if identifier not in public_key_package.verifying_shares:
                raise MissingPackage(identifier, PHASE_AGGREGATE)

        self.session = self.session_values(
            signing_package, public_key_package.verifying_key, self.ciphersuite
        )

    @classmethod
    def binding_factors(
        cls,
        signing_package: SigningPackage,
        verifying_key: Point,
        ciphersuite: Optional[Ciphersuite] = None,
    ) -> Dict[Identifier, int]:
        """
        Compute the binding factor of every signer in the session.

        Each factor commits to the group key, the message, the full commitment
        list and the signer's identifier.
        """
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        prefix = (
            suite.serialize_element(verifying_key)
            + suite.hash_message(signing_package.message)
            + suite.hash_commitments(signing_package.encode_commitment_list())
        )
        # p_l = H_1(Y, m, B, l), l ∈ S
        return {
            identifier: suite.hash_binding_factor(prefix + identifier.to_bytes())
            for identifier in signing_package.signer_identifiers
        }

    @classmethod
    def group_commitment(
        cls,
        signing_package: SigningPackage,
        binding_factors: Mapping[Identifier, int],
        ciphersuite: Optional[Ciphersuite] = None,
    ) -> Point:
        # R = ∏ D_l * (E_l)^p_l, l ∈ S
        group_commitment = (ciphersuite or DEFAULT_CIPHERSUITE).identity()
        for identifier, commitments in signing_package.commitments.items():
            group_commitment += commitments.hiding + (
                binding_factors[identifier] * commitments.binding
            )
        return group_commitment

    @classmethod
    def session_values(
        cls,
        signing_package: SigningPackage,
        verifying_key: Point,
        ciphersuite: Optional[Ciphersuite] = None,
    ) -> SessionValues:
        """
        Raises:
        ValueError: If the group commitment is the point at infinity.
        """
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        binding_factors = cls.binding_factors(signing_package, verifying_key, suite)
        group_commitment = cls.group_commitment(signing_package, binding_factors, suite)
        if group_commitment.is_zero():
            raise ValueError("Group commitment is the point at infinity.")
        # c = H_2(R, Y, m)
        challenge = suite.challenge(group_commitment, verifying_key, signing_package.message)
        return SessionValues(
            binding_factors,
            group_commitment,
            challenge,
            suite.nonce_parity(group_commitment),
            suite.key_parity(verifying_key),
        )

    def verify_signature_share(
        self, identifier: Identifier, signature_share: SignatureShare
    ) -> bool:
        """
        Check one signer's share against its commitments and verifying share.

        g^z_i ≟ (D_i * E_i^p_i) * Y_i^(c * λ_i)
        """
        suite = self.ciphersuite
        session = self.session
        z_i = signature_share.share
        if not 0 <= z_i < suite.order:
            return False
        commitments = self.signing_package.commitments[identifier]
        verifying_share = self.public_key_package.verifying_shares[identifier]
        lagrange = lagrange_coefficient(
            self.signing_package.signer_identifiers, identifier, ciphersuite=suite
        )
        commitment_share = commitments.hiding + (
            session.binding_factors[identifier] * commitments.binding
        )
        expected = (session.nonce_parity * commitment_share) + (
            (session.challenge * lagrange * session.key_parity) % suite.order
        ) * verifying_share
        return z_i * suite.generator() == expected

    def signature(self, signature_shares: Mapping[Identifier, SignatureShare]) -> Signature:
        """
        Verify every share, then combine them into the group signature.

        Raises:
        IncompletePackageSet: If the number of shares differs from the number of signers.
        MissingPackage: If a signer of the session has no share.
        InvalidSignatureShare: Naming every signer whose share is invalid.
        SignatureVerificationFailed: If the combined signature does not verify.
        """
        signers = self.signing_package.signer_identifiers
        if len(signature_shares) != len(signers):
            raise IncompletePackageSet(len(signers), len(signature_shares), PHASE_AGGREGATE)
        for identifier in signers:
            if identifier not in signature_shares:
                raise MissingPackage(identifier, PHASE_AGGREGATE)

        culprits: List[Identifier] = []
        for identifier in signers:
            if not self.verify_signature_share(identifier, signature_shares[identifier]):
                logger.warning("Invalid signature share from %r", identifier)
                culprits.append(identifier)
        if culprits:
            raise InvalidSignatureShare(culprits)

        # z = ∑ z_i, i ∈ S
        z = sum(signature_shares[identifier].share for identifier in signers) % (
            self.ciphersuite.order
        )
        group_commitment = self.session.group_commitment
        if self.session.nonce_parity != 1:
            group_commitment = -group_commitment

        # σ = (R, z)
        signature = Signature(group_commitment, z)
        if not signature.verify(
            self.signing_package.message,
            self.public_key_package.verifying_key,
            self.ciphersuite,
        ):
            raise SignatureVerificationFailed(
                "Aggregated signature does not verify under the group key"
            )
        logger.debug("Aggregated signature from %d signers", len(signers))
        return signature


def aggregate(
    signing_package: SigningPackage,
    signature_shares: Mapping[Identifier, SignatureShare],
    public_key_package: PublicKeyPackage,
    ciphersuite: Optional[Ciphersuite] = None,
) -> Signature:
    """
    Combine the signature shares of a signing session into a verified signature.

    See Aggregator.signature for the failure modes.
    """
    return Aggregator(signing_package, public_key_package, ciphersuite).signature(
        signature_shares
    )
