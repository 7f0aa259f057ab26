import unittest

from frostdkg import (
    CoefficientCommitment,
    Identifier,
    KeyPackage,
    Point,
    PublicKeyPackage,
    Q,
    G,
    lagrange_coefficient,
    part1,
    part2,
    part3,
)
from frostdkg.dkg import (
    ProofOfKnowledge,
    Round1Package,
    Round1SecretPackage,
    Round2Package,
    Round2SecretPackage,
)
from frostdkg.errors import (
    DuplicateIdentifier,
    IncompletePackageSet,
    InvalidCommitment,
    InvalidConfiguration,
    InvalidProofOfKnowledge,
    InvalidShare,
    MissingPackage,
    SecretAlreadyConsumed,
)


def others(packages, identifier):
    return {sender: package for sender, package in packages.items() if sender != identifier}


def received(round2_packages, identifier):
    return {
        sender: packages[identifier]
        for sender, packages in round2_packages.items()
        if sender != identifier
    }


class Tests(unittest.TestCase):
    def setUp(self):
        self.identifiers = [Identifier(1), Identifier(2), Identifier(3)]

        # Round 1
        self.round1_secrets = {}
        self.round1_packages = {}
        for i in self.identifiers:
            self.round1_secrets[i], self.round1_packages[i] = part1(i, 3, 2)

    def run_round2(self):
        round2_secrets = {}
        round2_packages = {}
        for i in self.identifiers:
            round2_secrets[i], round2_packages[i] = part2(
                self.round1_secrets[i], others(self.round1_packages, i)
            )
        return round2_secrets, round2_packages

    def test_keygen(self):
        for package in self.round1_packages.values():
            self.assertEqual(len(package.commitment), 2)

        round2_secrets, round2_packages = self.run_round2()
        for i in self.identifiers:
            self.assertEqual(set(round2_packages[i]), set(self.identifiers) - {i})

        key_packages = {}
        public_key_packages = []
        for i in self.identifiers:
            key_packages[i], public_key_package = part3(
                round2_secrets[i],
                others(self.round1_packages, i),
                received(round2_packages, i),
            )
            public_key_packages.append(public_key_package)

        self.assertEqual(public_key_packages[0], public_key_packages[1])
        self.assertEqual(public_key_packages[1], public_key_packages[2])
        self.assertEqual(
            public_key_packages[0].to_bytes(), public_key_packages[2].to_bytes()
        )
        public_key_package = public_key_packages[0]
        self.assertEqual(public_key_package.max_signers, 3)
        self.assertEqual(public_key_package.min_signers, 2)

        for i, key_package in key_packages.items():
            self.assertEqual(key_package.identifier, i)
            self.assertEqual(key_package.signing_share * G, key_package.verifying_share)
            self.assertEqual(public_key_package.verifying_shares[i], key_package.verifying_share)
            self.assertEqual(key_package.verifying_key, public_key_package.verifying_key)

        # Any two shares reconstruct the group secret
        pk = public_key_package.verifying_key
        for pair in ((1, 2), (1, 3), (2, 3)):
            quorum = [Identifier(i) for i in pair]
            secret = sum(
                lagrange_coefficient(quorum, i) * key_packages[i].signing_share
                for i in quorum
            ) % Q
            self.assertEqual(secret * G, pk)

        # The group key is the sum of every party's constant-term commitment
        self.assertEqual(
            pk,
            Point.sum(
                *(package.commitment.verifying_key() for package in self.round1_packages.values())
            ),
        )

        # Secret packages are one-time values
        for i in self.identifiers:
            self.assertTrue(self.round1_secrets[i].consumed)
            self.assertTrue(round2_secrets[i].consumed)

    def test_invalid_threshold(self):
        for min_signers, max_signers in ((0, 3), (4, 3), (-1, 3)):
            with self.assertRaises(InvalidConfiguration):
                part1(Identifier(1), max_signers, min_signers)

    def test_proof_of_knowledge_tampering(self):
        p1 = Identifier(1)
        commitment, (R, mu) = self.round1_packages[p1]
        tampered = Round1Package(commitment, ProofOfKnowledge(R, (mu + 1) % Q))

        for recipient in (Identifier(2), Identifier(3)):
            packages = others(self.round1_packages, recipient)
            packages[p1] = tampered
            with self.assertRaises(InvalidProofOfKnowledge) as cm:
                part2(self.round1_secrets[recipient], packages)
            self.assertEqual(cm.exception.culprit, p1)

        # A proof replayed under another identifier does not verify
        p2 = Identifier(2)
        packages = {
            Identifier(1): self.round1_packages[p2],
            Identifier(2): self.round1_packages[p2],
        }
        with self.assertRaises(InvalidProofOfKnowledge) as cm:
            part2(self.round1_secrets[Identifier(3)], packages)
        self.assertEqual(cm.exception.culprit, Identifier(1))

    def test_wrong_nonce_commitment(self):
        p1 = Identifier(1)
        commitment, (R, mu) = self.round1_packages[p1]
        shifted = (Point.from_bytes_compressed(R) + G).to_bytes_compressed()
        tampered = Round1Package(commitment, ProofOfKnowledge(shifted, mu))
        packages = others(self.round1_packages, Identifier(2))
        packages[p1] = tampered
        with self.assertRaises(InvalidProofOfKnowledge):
            part2(self.round1_secrets[Identifier(2)], packages)

    def test_proof_of_knowledge_bit_flips(self):
        # Every single-bit corruption of the encoded proof (R || mu) still
        # decodes and is blamed on its sender.
        p1, p2 = Identifier(1), Identifier(2)
        encoded = bytearray(self.round1_packages[p1].to_bytes())
        proof_bits = 8 * (33 + 32)
        packages = others(self.round1_packages, p2)
        for bit in range(proof_bits):
            corrupted = bytearray(encoded)
            corrupted[bit // 8] ^= 1 << (bit % 8)
            packages[p1] = Round1Package.from_bytes(bytes(corrupted))
            with self.assertRaises(InvalidProofOfKnowledge) as cm:
                part2(self.round1_secrets[p2], packages)
            self.assertEqual(cm.exception.culprit, p1)
        self.assertFalse(self.round1_secrets[p2].consumed)

    def test_undecodable_nonce_commitment(self):
        p1 = Identifier(1)
        commitment, (_, mu) = self.round1_packages[p1]
        for R in (b"\x04" + bytes(32), b"\x02" + (2**256 - 1).to_bytes(32, "big"), b"\x02"):
            packages = others(self.round1_packages, Identifier(3))
            packages[p1] = Round1Package(commitment, ProofOfKnowledge(R, mu))
            with self.assertRaises(InvalidProofOfKnowledge) as cm:
                part2(self.round1_secrets[Identifier(3)], packages)
            self.assertEqual(cm.exception.culprit, p1)

    def test_round1_package_checks(self):
        p3 = Identifier(3)
        packages = others(self.round1_packages, p3)

        with self.assertRaises(IncompletePackageSet) as cm:
            part2(self.round1_secrets[p3], {Identifier(1): packages[Identifier(1)]})
        self.assertEqual((cm.exception.expected, cm.exception.got), (2, 1))

        with self.assertRaises(DuplicateIdentifier):
            part2(
                self.round1_secrets[p3],
                {Identifier(1): packages[Identifier(1)], p3: self.round1_packages[p3]},
            )

        commitment, proof = packages[Identifier(2)]
        long_commitment = CoefficientCommitment(commitment.points + (G,))
        packages[Identifier(2)] = Round1Package(long_commitment, proof)
        with self.assertRaises(InvalidCommitment) as cm:
            part2(self.round1_secrets[p3], packages)
        self.assertEqual(cm.exception.culprit, Identifier(2))

        # Failed checks leave the secret package usable
        self.assertFalse(self.round1_secrets[p3].consumed)

    def test_secret_package_reuse(self):
        p1 = Identifier(1)
        part2(self.round1_secrets[p1], others(self.round1_packages, p1))
        with self.assertRaises(SecretAlreadyConsumed):
            part2(self.round1_secrets[p1], others(self.round1_packages, p1))

    def test_round2_secret_package(self):
        round2_secrets, round2_packages = self.run_round2()
        p2 = Identifier(2)
        secret = round2_secrets[p2]
        self.assertIsInstance(secret, Round2SecretPackage)
        self.assertNotIsInstance(secret, Round1SecretPackage)
        self.assertIs(secret.commitment, self.round1_packages[p2].commitment)
        self.assertEqual((secret.min_signers, secret.max_signers), (2, 3))
        self.assertIn("Round2SecretPackage", repr(secret))
        self.assertNotIn("polynomial", repr(secret).lower())
        with self.assertRaises(AttributeError):
            secret.extra = 1

        part3(secret, others(self.round1_packages, p2), received(round2_packages, p2))
        self.assertTrue(secret.consumed)
        with self.assertRaises(SecretAlreadyConsumed):
            part3(secret, others(self.round1_packages, p2), received(round2_packages, p2))

    def test_invalid_share(self):
        round2_secrets, round2_packages = self.run_round2()
        p1, p3 = Identifier(1), Identifier(3)
        shares = received(round2_packages, p3)
        shares[p1] = Round2Package((shares[p1].signing_share + 1) % Q)
        with self.assertRaises(InvalidShare) as cm:
            part3(round2_secrets[p3], others(self.round1_packages, p3), shares)
        self.assertEqual(cm.exception.culprit, p1)

    def test_round2_package_checks(self):
        round2_secrets, round2_packages = self.run_round2()
        p3 = Identifier(3)
        round1_packages = others(self.round1_packages, p3)
        shares = received(round2_packages, p3)

        with self.assertRaises(IncompletePackageSet):
            part3(round2_secrets[p3], round1_packages, {Identifier(1): shares[Identifier(1)]})

        unknown = {Identifier(1): shares[Identifier(1)], Identifier(4): shares[Identifier(2)]}
        with self.assertRaises(MissingPackage) as cm:
            part3(round2_secrets[p3], round1_packages, unknown)
        self.assertEqual(cm.exception.identifier, Identifier(4))

    def test_threshold_of_one(self):
        identifiers = [Identifier(1), Identifier(2)]
        secrets = {}
        round1 = {}
        for i in identifiers:
            secrets[i], round1[i] = part1(i, 2, 1)
        round2 = {}
        for i in identifiers:
            secrets[i], round2[i] = part2(secrets[i], others(round1, i))
        outputs = [
            part3(secrets[i], others(round1, i), received(round2, i)) for i in identifiers
        ]
        # With t = 1 every party holds the full group secret
        for key_package, public_key_package in outputs:
            self.assertEqual(key_package.signing_share * G, public_key_package.verifying_key)

    def test_encodings(self):
        package = self.round1_packages[Identifier(1)]
        self.assertEqual(Round1Package.from_bytes(package.to_bytes()), package)
        self.assertNotIn(str(Round2Package(12345).signing_share), repr(Round2Package(12345)))


class KeyPackageTests(unittest.TestCase):
    def setUp(self):
        self.identifier = Identifier(1)
        self.signing_share = 0x1234
        self.verifying_key = 0x5678 * G
        self.key_package = KeyPackage(
            self.identifier, self.signing_share, self.signing_share * G, self.verifying_key, 2
        )

    def test_dict_encoding(self):
        data = self.key_package.to_dict()
        self.assertEqual(KeyPackage.from_dict(data), self.key_package)
        del data["verifying_key"]
        with self.assertRaises(ValueError):
            KeyPackage.from_dict(data)

    def test_validation(self):
        with self.assertRaises(ValueError):
            KeyPackage(self.identifier, 0, G, self.verifying_key, 2)
        with self.assertRaises(ValueError):
            KeyPackage(self.identifier, self.signing_share, G, self.verifying_key, 2)

    def test_repr_hides_share(self):
        self.assertNotIn(self.signing_share.to_bytes(32, "big").hex(), repr(self.key_package))

    def test_public_key_package_dict_encoding(self):
        package = PublicKeyPackage(
            {Identifier(1): 2 * G, Identifier(2): 3 * G}, self.verifying_key, 2
        )
        self.assertEqual(PublicKeyPackage.from_dict(package.to_dict()), package)
        with self.assertRaises(ValueError):
            PublicKeyPackage.from_dict({"verifying_key": "00"})

    def test_public_key_package_is_hashable(self):
        shares = {Identifier(2): 3 * G, Identifier(1): 2 * G}
        package = PublicKeyPackage(shares, self.verifying_key, 2)
        same = PublicKeyPackage(dict(reversed(list(shares.items()))), self.verifying_key, 2)
        self.assertEqual(package, same)
        self.assertEqual(hash(package), hash(same))
        self.assertEqual(len({package, same}), 1)
        self.assertNotEqual(package, PublicKeyPackage(shares, self.verifying_key, 1))

        # Later changes to the source mapping do not leak into the package
        shares[Identifier(3)] = 4 * G
        self.assertEqual(package.max_signers, 2)
        with self.assertRaises(TypeError):
            package.verifying_shares[Identifier(3)] = 4 * G
        with self.assertRaises(AttributeError):
            package.extra = 1
        with self.assertRaises(AttributeError):
            package.min_signers = 1


if __name__ == "__main__":
    unittest.main()
