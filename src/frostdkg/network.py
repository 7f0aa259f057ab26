"""
Message transport contract and an in-process simulation of a FROST session.

The protocol core never talks to a network. Orchestration code moves packages
between parties through a Transport, which is assumed to be reliable, ordered
and authenticated. A delivery failure surfaces as IncompletePackageSet.

InMemoryNetwork is a simulation for tests and demos: every party runs as its
own asyncio task and the phase barriers are the collect_all calls. It provides
no confidentiality or authentication and must not stand in for a real
transport between mutually distrusting parties.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence
import logging
from .aggregator import aggregate
from .ciphersuite import Ciphersuite, get_ciphersuite
from .constants import (
    PHASE_AGGREGATE,
    PHASE_COMMIT,
    PHASE_ROUND1,
    PHASE_ROUND2,
    PHASE_SIGN,
)
from .dkg import validate_threshold
from .errors import (
    DuplicateIdentifier,
    FrostError,
    IncompletePackageSet,
    InsufficientSigners,
    InvalidConfiguration,
    MissingPackage,
)
from .identifier import Identifier, check_identifiers, derive_session_identifiers
from .keys import PublicKeyPackage
from .participant import Participant
from .signing import Signature, SigningPackage

logger = logging.getLogger(__name__)

# Endpoint name of the signing coordinator, which is not a key holder
COORDINATOR = None

DEFAULT_TIMEOUT = 30.0


class SessionConfig(NamedTuple):
    """Parameters of a simulated key generation or signing session."""

    min_signers: int
    max_signers: int
    ciphersuite: str = "secp256k1-tr"
    timeout: float = DEFAULT_TIMEOUT

    def validate(self) -> None:
        """
        Raises:
        InvalidConfiguration: If the threshold, ciphersuite or timeout is unusable.
        """
        validate_threshold(self.min_signers, self.max_signers)
        get_ciphersuite(self.ciphersuite)
        if self.timeout <= 0:
            raise InvalidConfiguration("timeout must be positive.")

    @property
    def suite(self) -> Ciphersuite:
        return get_ciphersuite(self.ciphersuite)


class Transport(ABC):
    """One party's view of the message layer."""

    identifier: Optional[Identifier]

    @abstractmethod
    def broadcast(self, phase: str, payload: Any) -> None:
        """Deliver payload to every other key holder."""

    @abstractmethod
    def send(self, to: Optional[Identifier], phase: str, payload: Any) -> None:
        """Deliver payload to a single endpoint."""

    @abstractmethod
    async def collect_all(
        self, phase: str, senders: Optional[Iterable[Optional[Identifier]]] = None
    ) -> Dict[Optional[Identifier], Any]:
        """
        Wait until a payload for phase has arrived from every sender (by
        default every other key holder) and return them keyed by sender.

        Raises:
        IncompletePackageSet: If some sender's payload never arrives.
        """


class InMemoryNetwork:
    """Simulated message layer connecting a fixed set of parties and a coordinator."""

    def __init__(self, identifiers: Sequence[Identifier], timeout: float = DEFAULT_TIMEOUT):
        check_identifiers(identifiers)
        self.identifiers = tuple(identifiers)
        self.timeout = timeout
        self._mailboxes: Dict[Any, asyncio.Queue] = {}

    def _mailbox(self, recipient: Optional[Identifier], phase: str) -> asyncio.Queue:
        key = (recipient, phase)
        if key not in self._mailboxes:
            self._mailboxes[key] = asyncio.Queue()
        return self._mailboxes[key]

    def deliver(
        self, sender: Optional[Identifier], recipient: Optional[Identifier], phase: str, payload: Any
    ) -> None:
        if recipient is not COORDINATOR and recipient not in self.identifiers:
            raise MissingPackage(recipient, phase)
        self._mailbox(recipient, phase).put_nowait((sender, payload))

    def transport(self, identifier: Optional[Identifier]) -> "InMemoryTransport":
        if identifier is not COORDINATOR and identifier not in self.identifiers:
            raise ValueError(f"{identifier!r} is not part of this network.")
        return InMemoryTransport(self, identifier)


class InMemoryTransport(Transport):
    def __init__(self, network: InMemoryNetwork, identifier: Optional[Identifier]):
        self.network = network
        self.identifier = identifier

    def peers(self) -> List[Identifier]:
        return [i for i in self.network.identifiers if i != self.identifier]

    def broadcast(self, phase: str, payload: Any) -> None:
        for peer in self.peers():
            self.network.deliver(self.identifier, peer, phase, payload)

    def send(self, to: Optional[Identifier], phase: str, payload: Any) -> None:
        self.network.deliver(self.identifier, to, phase, payload)

    async def collect_all(
        self, phase: str, senders: Optional[Iterable[Optional[Identifier]]] = None
    ) -> Dict[Optional[Identifier], Any]:
        expected = set(self.peers() if senders is None else senders)
        mailbox = self.network._mailbox(self.identifier, phase)
        received: Dict[Optional[Identifier], Any] = {}
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.network.timeout
        while len(received) < len(expected):
            remaining = deadline - loop.time()
            try:
                sender, payload = await asyncio.wait_for(mailbox.get(), max(remaining, 0))
            except asyncio.TimeoutError:
                logger.warning(
                    "%r timed out in %s with %d of %d payloads",
                    self.identifier,
                    phase,
                    len(received),
                    len(expected),
                )
                raise IncompletePackageSet(len(expected), len(received), phase) from None
            if sender not in expected:
                logger.warning("Dropping unexpected %s payload from %r", phase, sender)
                continue
            if sender in received:
                raise DuplicateIdentifier(sender)
            received[sender] = payload
        return received


async def run_dkg_party(participant: Participant, transport: Transport) -> PublicKeyPackage:
    """Drive one participant through the three key generation rounds."""
    transport.broadcast(PHASE_ROUND1, participant.round1())
    round1_packages = await transport.collect_all(PHASE_ROUND1)

    round2_packages = participant.round2(round1_packages)
    for recipient, package in round2_packages.items():
        transport.send(recipient, PHASE_ROUND2, package)
    received = await transport.collect_all(PHASE_ROUND2)

    return participant.round3(received)


async def run_signer(participant: Participant, transport: Transport) -> None:
    """Drive one participant through signing rounds 1 and 2."""
    transport.send(COORDINATOR, PHASE_COMMIT, participant.commit())
    signing_package = (await transport.collect_all(PHASE_SIGN, [COORDINATOR]))[COORDINATOR]
    transport.send(COORDINATOR, PHASE_AGGREGATE, participant.sign(signing_package))


async def run_coordinator(
    transport: Transport,
    signers: Sequence[Identifier],
    message: bytes,
    public_key_package: PublicKeyPackage,
    ciphersuite: Ciphersuite,
) -> Signature:
    """Collect commitments, distribute the signing package and aggregate the shares."""
    commitments = await transport.collect_all(PHASE_COMMIT, signers)
    signing_package = SigningPackage(commitments, message)
    for signer in signers:
        transport.send(signer, PHASE_SIGN, signing_package)
    shares = await transport.collect_all(PHASE_AGGREGATE, signers)
    return aggregate(signing_package, shares, public_key_package, ciphersuite)


def simulate_dkg(
    config: SessionConfig, identifiers: Optional[Sequence[Identifier]] = None
) -> Dict[Identifier, Participant]:
    """
    Run a complete key generation session in-process.

    Parameters:
    config (SessionConfig): Threshold, party count, ciphersuite and timeout.
    identifiers (Sequence[Identifier], optional): One identifier per party.
        Derived from index-tagged seeds when omitted.

    Returns:
    Dict[Identifier, Participant]: Every participant, in the READY state.
    """
    config.validate()
    suite = config.suite
    if identifiers is None:
        identifiers = derive_session_identifiers(config.max_signers, suite)
    check_identifiers(identifiers)
    if len(identifiers) != config.max_signers:
        raise InvalidConfiguration(
            f"Expected {config.max_signers} identifiers, got {len(identifiers)}.",
            config.min_signers,
            config.max_signers,
        )

    participants = [
        Participant(identifier, config.min_signers, config.max_signers, suite)
        for identifier in identifiers
    ]

    async def session():
        network = InMemoryNetwork(identifiers, config.timeout)
        return await asyncio.gather(
            *(run_dkg_party(p, network.transport(p.identifier)) for p in participants)
        )

    logger.info(
        "Starting key generation with %d parties, threshold %d",
        config.max_signers,
        config.min_signers,
    )
    public_key_packages = asyncio.run(session())
    if any(package != public_key_packages[0] for package in public_key_packages):
        raise FrostError("Participants derived different public key packages")
    return {participant.identifier: participant for participant in participants}


def simulate_signing(
    participants: Mapping[Identifier, Participant],
    public_key_package: PublicKeyPackage,
    message: bytes,
    signers: Sequence[Identifier],
    timeout: float = DEFAULT_TIMEOUT,
) -> Signature:
    """
    Run a complete signing session in-process with the given quorum.

    Pending nonces of every signer are destroyed if the session fails, so a
    retry always starts from a fresh commit.
    """
    check_identifiers(signers)
    for signer in signers:
        if signer not in participants:
            raise MissingPackage(signer, PHASE_COMMIT)
    if not signers:
        raise InsufficientSigners(public_key_package.min_signers, 0)
    suite = participants[signers[0]].ciphersuite

    async def session():
        network = InMemoryNetwork(list(participants), timeout)
        results = await asyncio.gather(
            run_coordinator(
                network.transport(COORDINATOR), signers, message, public_key_package, suite
            ),
            *(run_signer(participants[s], network.transport(s)) for s in signers),
        )
        return results[0]

    logger.info("Starting signing session with %d signers", len(signers))
    try:
        return asyncio.run(session())
    except FrostError:
        for signer in signers:
            participants[signer].discard_nonces()
        raise
