"""
This module defines the Point class, the group element type the FROST
protocol is expressed over. It implements secp256k1 point arithmetic
(addition, doubling, negation and scalar multiplication) along with the SEC 1
compressed and BIP340 x-only encodings used on the wire.

Scalars are plain Python integers reduced modulo the group order Q.
"""

from __future__ import annotations
from typing import Optional
from .constants import P, Q, G_x, G_y, ELEMENT_SIZE, XONLY_SIZE


class Point:
    """Class representing an elliptic curve point."""

    __slots__ = ("x", "y")

    def __init__(self, x: Optional[int] = None, y: Optional[int] = None):
        """
        Initialize a point on an elliptic curve.

        Parameters:
        x (Optional[int], optional): The x-coordinate of the point.
            Defaults to None, representing the point at infinity.
        y (Optional[int], optional): The y-coordinate of the point.
            Defaults to None, also representing the point at infinity.

        The point at infinity serves as the identity element in elliptic curve addition.
        """

        self.x = x
        self.y = y

    @classmethod
    def lift_x(cls, x: int) -> Point:
        """
        Return the point with the given x-coordinate and an even y-coordinate.

        Raises:
        ValueError: If x is not the x-coordinate of a point on the curve.
        """
        if not 0 <= x < P:
            raise ValueError("The x-coordinate is out of range.")
        y_squared = (pow(x, 3, P) + 7) % P
        y = pow(y_squared, (P + 1) // 4, P)
        if pow(y, 2, P) != y_squared:
            raise ValueError("The x-coordinate is not on the curve.")
        return cls(x, y if y % 2 == 0 else P - y)

    @classmethod
    def from_bytes_compressed(cls, data: bytes) -> Point:
        """
        Decode a SEC 1 compressed point.

        Parameters:
        data (bytes): 33 bytes, a 0x02/0x03 prefix followed by the x-coordinate.

        Returns:
        Point: The decoded point, never the point at infinity.

        Raises:
        ValueError: If the encoding has the wrong length, prefix, or does not
        describe a point on the curve.
        """
        if len(data) != ELEMENT_SIZE:
            raise ValueError(
                f"Input must be exactly {ELEMENT_SIZE} bytes long for SEC 1 compressed format."
            )
        if data[0] not in (2, 3):
            raise ValueError("Invalid SEC 1 compressed prefix.")
        point = cls.lift_x(int.from_bytes(data[1:], "big"))
        if data[0] == 3:
            return -point
        return point

    @classmethod
    def from_bytes_xonly(cls, data: bytes) -> Point:
        """Decode a 32-byte x-only point, choosing the even y-coordinate."""
        if len(data) != XONLY_SIZE:
            raise ValueError(
                f"Input must be exactly {XONLY_SIZE} bytes long for x-only format."
            )
        return cls.lift_x(int.from_bytes(data, "big"))

    def to_bytes_compressed(self) -> bytes:
        """
        Serialize the point to its SEC 1 compressed format.

        Raises:
        ValueError: If the point is at infinity.
        """
        if self.x is None or self.y is None:
            raise ValueError("Cannot serialize the point at infinity.")

        prefix = b"\x02" if self.y % 2 == 0 else b"\x03"
        return prefix + self.x.to_bytes(32, "big")

    def to_bytes_xonly(self) -> bytes:
        """Serialize the x-coordinate of the point to 32 big-endian bytes."""
        if self.x is None:
            raise ValueError("The x-coordinate is not finite.")

        return self.x.to_bytes(32, "big")

    def has_even_y(self) -> bool:
        if self.y is None:
            raise ValueError("The point at infinity has no y-coordinate.")
        return self.y % 2 == 0

    def is_zero(self) -> bool:
        """
        Check if the point is the identity element (point at infinity) in elliptic curve arithmetic.
        """
        return self.x is None or self.y is None

    def is_on_curve(self) -> bool:
        if self.is_zero():
            return True
        return (self.y * self.y - self.x * self.x * self.x - 7) % P == 0

    @classmethod
    def sum(cls, *points: Point) -> Point:
        """Add up any number of points, starting from the point at infinity."""
        total = cls()
        for point in points:
            total += point
        return total

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def __hash__(self) -> int:
        return hash((self.x, self.y))

    def __neg__(self) -> Point:
        if self.x is None or self.y is None:
            return self

        return self.__class__(self.x, (P - self.y) % P)

    def _dbl(self) -> Point:
        """
        Double the point on the elliptic curve. If the point is at infinity or the y-coordinate
        is zero (implying the point is of order 2), the result is the point at infinity.
        """
        if self.x is None or self.y is None or self.y == 0:
            return self.__class__()

        x = self.x
        y = self.y
        s = (3 * x * x * pow(2 * y, -1, P)) % P
        sum_x = (s * s - 2 * x) % P
        sum_y = (s * (x - sum_x) - y) % P

        return self.__class__(sum_x, sum_y)

    def __add__(self, other: Point) -> Point:
        """
        Add two points on an elliptic curve.

        Raises:
        ValueError: If other is not a Point.
        """
        if not isinstance(other, Point):
            raise ValueError("The other object must be an instance of Point")

        if self.x is None or self.y is None:
            return other
        if other.x is None or other.y is None:
            return self
        if self == other:
            return self._dbl()
        if self.x == other.x:
            return self.__class__()  # Point at infinity
        s = ((other.y - self.y) * pow(other.x - self.x, -1, P)) % P
        sum_x = (s * s - self.x - other.x) % P
        sum_y = (s * (self.x - sum_x) - self.y) % P

        return self.__class__(sum_x, sum_y)

    def __sub__(self, other: Point) -> Point:
        if not isinstance(other, Point):
            raise ValueError("The other object must be an instance of Point")

        return self + -other

    def __rmul__(self, scalar: int) -> Point:
        """
        Multiply this point by an integer scalar, reduced modulo the curve order.

        A Montgomery ladder walks every one of the 256 scalar bits, so the
        sequence of group operations does not depend on the scalar value.

        Raises:
        ValueError: If the scalar is not an integer.
        """
        if not isinstance(scalar, int):
            raise ValueError("The scalar must be an integer")
        scalar = scalar % Q

        r0 = self.__class__()
        r1 = self
        for i in reversed(range(256)):
            if (scalar >> i) & 1:
                r0, r1 = r0 + r1, r1._dbl()
            else:
                r0, r1 = r0._dbl(), r0 + r1

        return r0

    def __str__(self) -> str:
        if self.is_zero():
            return "0"
        return self.to_bytes_compressed().hex()

    def __repr__(self) -> str:
        if self.is_zero():
            return f"{self.__class__.__name__}(x=None, y=None)"
        return f"{self.__class__.__name__}(x={self.x}, y={self.y})"


# The generator point G
G: Point = Point(G_x, G_y)
