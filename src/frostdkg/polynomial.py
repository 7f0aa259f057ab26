"""
Polynomial secret sharing with Feldman commitments.

Each party's contribution to the group secret is the constant term of a
random polynomial of degree t - 1. Evaluating the polynomial at another
party's identifier yields that party's Shamir share, and the commitments
(coefficient * G) let the recipient check the share without learning the
polynomial.

All arithmetic goes through a Ciphersuite: scalars are reduced modulo its
order and commitments are multiples of its generator.
"""

from __future__ import annotations
from secrets import token_bytes
from typing import Callable, Iterable, Optional, Sequence, Tuple
from .ciphersuite import Ciphersuite, DEFAULT_CIPHERSUITE
from .constants import ELEMENT_SIZE
from .errors import DuplicateIdentifier, MissingPackage
from .identifier import Identifier
from .point import Point

RandomBytes = Callable[[int], bytes]


def random_scalar(
    random_bytes: Optional[RandomBytes] = None, ciphersuite: Optional[Ciphersuite] = None
) -> int:
    """
    Sample a uniform nonzero scalar.

    48 bytes are drawn and reduced modulo the group order so the bias is
    negligible.
    """
    suite = ciphersuite or DEFAULT_CIPHERSUITE
    random_bytes = random_bytes or token_bytes
    while True:
        scalar = int.from_bytes(random_bytes(suite.HASH_TO_FIELD_BYTES), "big") % suite.order
        if scalar != 0:
            return scalar


class Polynomial:
    """A secret polynomial f(x) = a_0 + a_1 * x + ... + a_(t-1) * x^(t-1)."""

    def __init__(self, coefficients: Sequence[int], ciphersuite: Optional[Ciphersuite] = None):
        if not coefficients:
            raise ValueError("A polynomial needs at least one coefficient.")
        self.ciphersuite = ciphersuite or DEFAULT_CIPHERSUITE
        self._coefficients = [c % self.ciphersuite.order for c in coefficients]

    @classmethod
    def generate(
        cls,
        min_signers: int,
        random_bytes: Optional[RandomBytes] = None,
        ciphersuite: Optional[Ciphersuite] = None,
    ) -> Polynomial:
        # (a_i_0, . . ., a_i_(t - 1)) ⭠ $ ℤ_q
        return cls(
            [random_scalar(random_bytes, ciphersuite) for _ in range(min_signers)],
            ciphersuite,
        )

    @property
    def coefficients(self) -> Tuple[int, ...]:
        return tuple(self._coefficients)

    @property
    def secret(self) -> int:
        return self._coefficients[0]

    def evaluate(self, x: int) -> int:
        """Evaluate the polynomial at x using Horner's method."""
        order = self.ciphersuite.order
        x = int(x)
        if x % order == 0:
            # f(0) is the secret itself and is never handed out as a share.
            raise ValueError("Refusing to evaluate the polynomial at zero.")
        y = 0
        for coefficient in reversed(self._coefficients):
            y = (y * x + coefficient) % order
        return y

    def commit(self) -> CoefficientCommitment:
        # C_i = ⟨𝜙_i_0, ..., 𝜙_i_(t - 1)⟩, 𝜙_i_j = g^a_i_j
        generator = self.ciphersuite.generator()
        return CoefficientCommitment(
            tuple(coefficient * generator for coefficient in self._coefficients),
            self.ciphersuite,
        )

    def zeroize(self) -> None:
        for i in range(len(self._coefficients)):
            self._coefficients[i] = 0
        self._coefficients.clear()

    def __len__(self) -> int:
        return len(self._coefficients)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(degree={len(self._coefficients) - 1})"


class CoefficientCommitment:
    """Feldman commitments to the coefficients of one party's polynomial."""

    __slots__ = ("points", "ciphersuite")

    def __init__(self, points: Sequence[Point], ciphersuite: Optional[Ciphersuite] = None):
        self.points: Tuple[Point, ...] = tuple(points)
        self.ciphersuite = ciphersuite or DEFAULT_CIPHERSUITE

    def verifying_key(self) -> Point:
        """The commitment to the constant term, g^a_0."""
        return self.points[0]

    def evaluate(self, x: int) -> Point:
        """
        Compute g^f(x) from the commitments alone: ∏ 𝜙_k^(x^k), 0 ≤ k ≤ t - 1.
        """
        order = self.ciphersuite.order
        x = int(x)
        result = self.ciphersuite.identity()
        power = 1
        for commitment in self.points:
            result += power * commitment
            power = (power * x) % order
        return result

    def verify_share(self, share: int, x: int) -> bool:
        # g^f_l(i) ≟ ∏ 𝜙_l_k^i^k
        return share * self.ciphersuite.generator() == self.evaluate(x)

    @classmethod
    def sum(cls, commitments: Iterable[CoefficientCommitment]) -> CoefficientCommitment:
        """Element-wise sum of commitments of equal length."""
        commitments = list(commitments)
        if not commitments:
            raise ValueError("At least one commitment is required.")
        suite = commitments[0].ciphersuite
        length = len(commitments[0])
        if any(len(c) != length for c in commitments):
            raise ValueError("Commitments must all have the same length.")
        columns = []
        for column in zip(*(c.points for c in commitments)):
            total = suite.identity()
            for point in column:
                total += point
            columns.append(total)
        return cls(columns, suite)

    def to_bytes(self) -> bytes:
        return b"".join(self.ciphersuite.serialize_element(point) for point in self.points)

    @classmethod
    def from_bytes(
        cls, data: bytes, ciphersuite: Optional[Ciphersuite] = None
    ) -> CoefficientCommitment:
        suite = ciphersuite or DEFAULT_CIPHERSUITE
        if not data or len(data) % ELEMENT_SIZE != 0:
            raise ValueError(
                f"Commitment length must be a nonzero multiple of {ELEMENT_SIZE} bytes."
            )
        return cls(
            tuple(
                suite.deserialize_element(data[i : i + ELEMENT_SIZE])
                for i in range(0, len(data), ELEMENT_SIZE)
            ),
            suite,
        )

    def __len__(self) -> int:
        return len(self.points)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CoefficientCommitment):
            return NotImplemented
        return self.points == other.points

    def __hash__(self) -> int:
        return hash(self.points)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({[str(p) for p in self.points]})"


def lagrange_coefficient(
    identifiers: Sequence[Identifier],
    identifier: Identifier,
    x: int = 0,
    ciphersuite: Optional[Ciphersuite] = None,
) -> int:
    """
    Calculate the Lagrange coefficient of `identifier` relative to the set
    `identifiers`, evaluated at x.

    Raises:
    DuplicateIdentifier: If the set contains a repeated identifier.
    MissingPackage: If `identifier` is not a member of the set.
    """
    order = (ciphersuite or DEFAULT_CIPHERSUITE).order
    seen = set()
    for other in identifiers:
        if other in seen:
            raise DuplicateIdentifier(other)
        seen.add(other)
    if identifier not in seen:
        raise MissingPackage(identifier, "interpolation")

    # λ_i(x) = ∏ (x - p_j)/(p_i - p_j), j ≠ i
    x_i = int(identifier)
    numerator = 1
    denominator = 1
    for other in identifiers:
        if other == identifier:
            continue
        x_j = int(other)
        numerator = (numerator * (x - x_j)) % order
        denominator = (denominator * (x_i - x_j)) % order
    return (numerator * pow(denominator, -1, order)) % order
