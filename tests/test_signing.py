import unittest

from frostdkg import (
    Aggregator,
    Identifier,
    Q,
    G,
    Secp256k1Sha256,
    Secp256k1Taproot,
    Signature,
    SignatureShare,
    SigningPackage,
    aggregate,
    commit,
    part1,
    part2,
    part3,
    sign,
)
from frostdkg.errors import (
    IncompletePackageSet,
    InsufficientSigners,
    InvalidCommitment,
    InvalidSignatureShare,
    MissingPackage,
    SecretAlreadyConsumed,
)


def run_dkg(identifiers, min_signers, ciphersuite):
    max_signers = len(identifiers)
    secrets = {}
    round1 = {}
    for i in identifiers:
        secrets[i], round1[i] = part1(i, max_signers, min_signers, ciphersuite=ciphersuite)
    round2 = {}
    for i in identifiers:
        secrets[i], round2[i] = part2(
            secrets[i], {j: p for j, p in round1.items() if j != i}, ciphersuite
        )
    key_packages = {}
    public_key_package = None
    for i in identifiers:
        key_packages[i], public_key_package = part3(
            secrets[i],
            {j: p for j, p in round1.items() if j != i},
            {j: packages[i] for j, packages in round2.items() if j != i},
            ciphersuite,
        )
    return key_packages, public_key_package


class Tests(unittest.TestCase):
    ciphersuite = Secp256k1Taproot()

    def setUp(self):
        self.p1 = Identifier(1)
        self.p2 = Identifier(2)
        self.p3 = Identifier(3)
        self.key_packages, self.public_key_package = run_dkg(
            [self.p1, self.p2, self.p3], 2, self.ciphersuite
        )
        self.msg = b"Hello, FROST!"

    def signing_round1(self, signers):
        nonces = {}
        commitments = {}
        for i in signers:
            nonces[i], commitments[i] = commit(self.key_packages[i], ciphersuite=self.ciphersuite)
        return nonces, SigningPackage(commitments, self.msg)

    def signing_round2(self, signing_package, nonces):
        return {
            i: sign(signing_package, nonces[i], self.key_packages[i], self.ciphersuite)
            for i in signing_package.signer_identifiers
        }

    def test_sign(self):
        pk = self.public_key_package.verifying_key
        for signers in ((self.p1, self.p2), (self.p2, self.p3), (self.p1, self.p2, self.p3)):
            nonces, signing_package = self.signing_round1(signers)
            shares = self.signing_round2(signing_package, nonces)
            signature = aggregate(
                signing_package, shares, self.public_key_package, self.ciphersuite
            )
            self.assertTrue(signature.verify(self.msg, pk, self.ciphersuite))
            self.assertFalse(signature.verify(b"fnord!", pk, self.ciphersuite))

            data = signature.to_bytes(self.ciphersuite)
            decoded = Signature.from_bytes(data, self.ciphersuite)
            self.assertTrue(decoded.verify(self.msg, pk, self.ciphersuite))

    def test_many_sessions(self):
        # Group commitments of either parity must produce valid signatures
        pk = self.public_key_package.verifying_key
        for _ in range(4):
            nonces, signing_package = self.signing_round1((self.p1, self.p3))
            shares = self.signing_round2(signing_package, nonces)
            signature = aggregate(
                signing_package, shares, self.public_key_package, self.ciphersuite
            )
            self.assertTrue(signature.verify(self.msg, pk, self.ciphersuite))

    def test_share_verification(self):
        nonces, signing_package = self.signing_round1((self.p1, self.p2))
        shares = self.signing_round2(signing_package, nonces)
        aggregator = Aggregator(signing_package, self.public_key_package, self.ciphersuite)
        for i, share in shares.items():
            self.assertTrue(aggregator.verify_signature_share(i, share))
            self.assertFalse(
                aggregator.verify_signature_share(i, SignatureShare((share.share + 1) % Q))
            )
        self.assertFalse(aggregator.verify_signature_share(self.p1, SignatureShare(Q)))

    def test_corrupted_share(self):
        nonces, signing_package = self.signing_round1((self.p1, self.p2))
        shares = self.signing_round2(signing_package, nonces)
        shares[self.p1] = SignatureShare((shares[self.p1].share + 1) % Q)
        with self.assertRaises(InvalidSignatureShare) as cm:
            aggregate(signing_package, shares, self.public_key_package, self.ciphersuite)
        self.assertEqual(cm.exception.culprit, self.p1)
        self.assertEqual(cm.exception.culprits, (self.p1,))

    def test_every_culprit_is_reported(self):
        nonces, signing_package = self.signing_round1((self.p1, self.p2, self.p3))
        shares = self.signing_round2(signing_package, nonces)
        shares[self.p3] = SignatureShare(1)
        shares[self.p1] = SignatureShare(2)
        with self.assertRaises(InvalidSignatureShare) as cm:
            aggregate(signing_package, shares, self.public_key_package, self.ciphersuite)
        self.assertEqual(cm.exception.culprits, (self.p1, self.p3))

    def test_insufficient_signers(self):
        nonces, signing_package = self.signing_round1((self.p1,))
        with self.assertRaises(InsufficientSigners) as cm:
            sign(signing_package, nonces[self.p1], self.key_packages[self.p1], self.ciphersuite)
        self.assertEqual((cm.exception.required, cm.exception.got), (2, 1))
        # The nonces survive a rejected request
        self.assertFalse(nonces[self.p1].consumed)

        with self.assertRaises(InsufficientSigners):
            aggregate(
                signing_package,
                {self.p1: SignatureShare(1)},
                self.public_key_package,
                self.ciphersuite,
            )

    def test_nonce_reuse(self):
        nonces, signing_package = self.signing_round1((self.p1, self.p2))
        sign(signing_package, nonces[self.p1], self.key_packages[self.p1], self.ciphersuite)
        self.assertTrue(nonces[self.p1].consumed)
        with self.assertRaises(SecretAlreadyConsumed):
            sign(signing_package, nonces[self.p1], self.key_packages[self.p1], self.ciphersuite)

        nonces[self.p2].discard()
        with self.assertRaises(SecretAlreadyConsumed):
            sign(signing_package, nonces[self.p2], self.key_packages[self.p2], self.ciphersuite)

    def test_signer_not_in_package(self):
        nonces, signing_package = self.signing_round1((self.p1, self.p2))
        p3_nonces, _ = commit(self.key_packages[self.p3], ciphersuite=self.ciphersuite)
        with self.assertRaises(MissingPackage) as cm:
            sign(signing_package, p3_nonces, self.key_packages[self.p3], self.ciphersuite)
        self.assertEqual(cm.exception.identifier, self.p3)

    def test_mismatched_commitments(self):
        nonces, signing_package = self.signing_round1((self.p1, self.p2))
        fresh_nonces, _ = commit(self.key_packages[self.p1], ciphersuite=self.ciphersuite)
        with self.assertRaises(InvalidCommitment) as cm:
            sign(signing_package, fresh_nonces, self.key_packages[self.p1], self.ciphersuite)
        self.assertEqual(cm.exception.culprit, self.p1)

    def test_share_set_checks(self):
        nonces, signing_package = self.signing_round1((self.p1, self.p2))
        shares = self.signing_round2(signing_package, nonces)

        with self.assertRaises(IncompletePackageSet):
            aggregate(
                signing_package,
                {self.p1: shares[self.p1]},
                self.public_key_package,
                self.ciphersuite,
            )
        with self.assertRaises(MissingPackage) as cm:
            aggregate(
                signing_package,
                {self.p1: shares[self.p1], self.p3: shares[self.p2]},
                self.public_key_package,
                self.ciphersuite,
            )
        self.assertEqual(cm.exception.identifier, self.p2)

    def test_signing_package(self):
        nonces, signing_package = self.signing_round1((self.p3, self.p1))
        self.assertEqual(signing_package.signer_identifiers, (self.p1, self.p3))
        self.assertIsNone(signing_package.signing_commitment(self.p2))
        self.assertEqual(len(signing_package.encode_commitment_list()), 2 * (32 + 33 + 33))
        with self.assertRaises(ValueError):
            SigningPackage({}, self.msg)
        with self.assertRaises(ValueError):
            SigningPackage(dict(signing_package.commitments), "text")

    def test_nonces_are_fresh(self):
        first, _ = commit(self.key_packages[self.p1], ciphersuite=self.ciphersuite)
        second, _ = commit(self.key_packages[self.p1], ciphersuite=self.ciphersuite)
        self.assertNotEqual(first.commitments, second.commitments)
        self.assertNotIn("_hiding", repr(first))


class PlainSchnorrTests(Tests):
    ciphersuite = Secp256k1Sha256()

    def test_signature_encoding(self):
        nonces, signing_package = self.signing_round1((self.p1, self.p2))
        shares = self.signing_round2(signing_package, nonces)
        signature = aggregate(signing_package, shares, self.public_key_package, self.ciphersuite)
        self.assertEqual(len(signature.to_bytes(self.ciphersuite)), 65)
        # Plain Schnorr: z * G == R + c * Y
        c = self.ciphersuite.challenge(
            signature.R, self.public_key_package.verifying_key, self.msg
        )
        self.assertEqual(
            signature.z * G, signature.R + c * self.public_key_package.verifying_key
        )


class TaprootTests(unittest.TestCase):
    def test_signature_is_bip340(self):
        suite = Secp256k1Taproot()
        identifiers = [Identifier(1), Identifier(2), Identifier(3)]
        key_packages, public_key_package = run_dkg(identifiers, 2, suite)
        msg = b"Hello, FROST!"
        nonces = {}
        commitments = {}
        for i in identifiers[:2]:
            nonces[i], commitments[i] = commit(key_packages[i], ciphersuite=suite)
        signing_package = SigningPackage(commitments, msg)
        shares = {
            i: sign(signing_package, nonces[i], key_packages[i], suite) for i in identifiers[:2]
        }
        signature = aggregate(signing_package, shares, public_key_package, suite)
        data = signature.to_bytes(suite)
        self.assertEqual(len(data), 64)
        self.assertTrue(signature.R.has_even_y())

        # BIP340: R = z * G - e * P with P the even-y lift of the x-only key
        pk = public_key_package.verifying_key
        if not pk.has_even_y():
            pk = -pk
        e = suite.challenge(signature.R, pk, msg)
        self.assertEqual(signature.R, (signature.z * G) + ((Q - e) * pk))


if __name__ == "__main__":
    unittest.main()
