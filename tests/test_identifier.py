import unittest

from frostdkg import Identifier, Q
from frostdkg.ciphersuite import Secp256k1Sha256
from frostdkg.errors import DuplicateIdentifier, IdentifierDerivationFailure
from frostdkg.identifier import check_identifiers, derive_session_identifiers


class ZeroHashCiphersuite(Secp256k1Sha256):
    def hash_identifier(self, msg):
        return 0


class Tests(unittest.TestCase):
    def test_from_integer(self):
        self.assertEqual(int(Identifier(1)), 1)
        self.assertEqual(int(Identifier(Q - 1)), Q - 1)
        for value in (0, -1, Q, Q + 1):
            with self.assertRaises(ValueError):
                Identifier(value)
        with self.assertRaises(ValueError):
            Identifier(True)
        with self.assertRaises(ValueError):
            Identifier("1")

    def test_ordering_and_hashing(self):
        self.assertLess(Identifier(1), Identifier(2))
        self.assertEqual(sorted([Identifier(3), Identifier(1)]), [Identifier(1), Identifier(3)])
        self.assertEqual(len({Identifier(7), Identifier(7)}), 1)
        self.assertNotEqual(Identifier(1), 1)

    def test_encoding(self):
        identifier = Identifier(0xABCDEF)
        data = identifier.to_bytes()
        self.assertEqual(len(data), 32)
        self.assertEqual(Identifier.from_bytes(data), identifier)
        self.assertEqual(str(identifier), data.hex())
        with self.assertRaises(ValueError):
            Identifier.from_bytes(bytes(32))
        with self.assertRaises(ValueError):
            Identifier.from_bytes(b"\x01")

    def test_derive_is_deterministic(self):
        a = Identifier.derive(b"alice@example.com")
        self.assertEqual(a, Identifier.derive(b"alice@example.com"))
        self.assertNotEqual(a, Identifier.derive(b"bob@example.com"))
        # Derivation depends on the ciphersuite's context string
        self.assertNotEqual(a, Identifier.derive(b"alice@example.com", Secp256k1Sha256()))

    def test_derive_failure(self):
        with self.assertRaises(IdentifierDerivationFailure):
            Identifier.derive(b"seed", ZeroHashCiphersuite())

    def test_check_identifiers(self):
        check_identifiers([Identifier(1), Identifier(2)])
        with self.assertRaises(DuplicateIdentifier) as cm:
            check_identifiers([Identifier(1), Identifier(2), Identifier(1)])
        self.assertEqual(cm.exception.identifier, Identifier(1))

    def test_session_identifiers(self):
        identifiers = derive_session_identifiers(5)
        self.assertEqual(len(set(identifiers)), 5)
        self.assertEqual(identifiers, derive_session_identifiers(5))
        self.assertEqual(identifiers[0], Identifier.derive(b"\x01" + bytes(15)))
        with self.assertRaises(ValueError):
            derive_session_identifiers(0)


if __name__ == "__main__":
    unittest.main()
