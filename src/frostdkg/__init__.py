"""
Copyright (c) 2021-2024 Jesse Posner

Distributed under the MIT software license, see the accompanying file LICENSE
or http://www.opensource.org/licenses/mit-license.php.

This code is a research implementation. It has not been audited and makes no
constant-time guarantees. DO NOT USE IT TO PROTECT REAL FUNDS.

This package implements FROST distributed key generation and two-round
threshold Schnorr signing over secp256k1.

Modules:
- point: Defines the Point class for handling points on an elliptic curve.
- ciphersuite: Bundles the group, the scalar field and the domain-separated
  hashes. Provides plain Schnorr and BIP340 (Taproot) instantiations.
- identifier: Defines the Identifier class naming each party.
- polynomial: Secret polynomials, Feldman commitments and Lagrange
  interpolation.
- dkg: The three rounds of distributed key generation.
- keys: KeyPackage and PublicKeyPackage, the outputs of key generation.
- signing: Signing round 1 (nonce commitments) and the signing package.
- aggregator: Implements the Aggregator class that checks signature shares and
  combines them into a group signature.
- participant: Contains the Participant state machine and signing round 2.
- network: The transport contract and an asyncio simulation of full sessions.
- constants: Holds cryptographic constants like P, Q, and G, crucial for
  elliptic curve operations.
"""

from .constants import P, Q
from .point import Point, G
from .ciphersuite import (
    Ciphersuite,
    Secp256k1Sha256,
    Secp256k1Taproot,
    DEFAULT_CIPHERSUITE,
    get_ciphersuite,
)
from .errors import (
    FrostError,
    IdentifierDerivationFailure,
    InvalidConfiguration,
    DuplicateIdentifier,
    IncompletePackageSet,
    InvalidProofOfKnowledge,
    InvalidCommitment,
    InvalidShare,
    MissingPackage,
    InsufficientSigners,
    InvalidSignatureShare,
    SignatureVerificationFailed,
    SecretAlreadyConsumed,
    InvalidPhase,
)
from .identifier import Identifier
from .polynomial import Polynomial, CoefficientCommitment, lagrange_coefficient
from .keys import KeyPackage, PublicKeyPackage
from .dkg import (
    Round1Package,
    Round2Package,
    Round1SecretPackage,
    Round2SecretPackage,
    part1,
    part2,
    part3,
)
from .signing import (
    SigningCommitments,
    SigningNonces,
    SigningPackage,
    SignatureShare,
    Signature,
    commit,
)
from .aggregator import Aggregator, aggregate
from .participant import Participant, ParticipantState, sign
from .network import (
    Transport,
    InMemoryNetwork,
    SessionConfig,
    simulate_dkg,
    simulate_signing,
)
