"""
These constants define the elliptic curve secp256k1 together with the
protocol-level constants shared by the FROST key generation and signing
modules. The curve operates over a finite field of prime order P, with a base
point G of order Q, specified by its coordinates G_x and G_y.
"""

# secp256k1 constants for elliptic curve cryptography

# The prime modulus of the field
P: int = 2**256 - 2**32 - 977

# The order of the curve
Q: int = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# X-coordinate of the generator point G
G_x: int = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798

# Y-coordinate of the generator point G
G_y: int = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8

# Byte lengths of the wire encodings
SCALAR_SIZE: int = 32
ELEMENT_SIZE: int = 33
XONLY_SIZE: int = 32

# Number of rehash attempts before identifier derivation gives up
IDENTIFIER_DERIVATION_ATTEMPTS: int = 16

# Phase labels carried by errors and used as transport channel names
PHASE_ROUND1: str = "round1"
PHASE_ROUND2: str = "round2"
PHASE_ROUND3: str = "round3"
PHASE_COMMIT: str = "commit"
PHASE_SIGN: str = "sign"
PHASE_AGGREGATE: str = "aggregate"
