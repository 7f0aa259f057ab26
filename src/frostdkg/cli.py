import argparse
import json
import logging
import os
from typing import List, Optional, Tuple
from .aggregator import aggregate
from .ciphersuite import CIPHERSUITES, DEFAULT_CIPHERSUITE, Ciphersuite, get_ciphersuite
from .errors import FrostError, InsufficientSigners
from .keys import KeyPackage, PublicKeyPackage
from .network import SessionConfig, simulate_dkg, simulate_signing
from .participant import sign as sign_share
from .point import Point
from .signing import Signature, SigningPackage, commit

logger = logging.getLogger(__name__)

PUBLIC_KEY_PACKAGE_FILE = "public_key_package.json"


def key_package_file(index: int) -> str:
    return f"key_package_{index}.json"


def _write_json(path: str, data) -> None:
    with open(path, "w") as f:
        json.dump(data, f, indent=2, sort_keys=True)
        f.write("\n")


def _read_json(path: str):
    with open(path) as f:
        return json.load(f)


def demo(args) -> int:
    # Key generation and signing with every party in this process
    config = SessionConfig(args.threshold, args.signers, args.ciphersuite)
    suite = config.suite
    participants = simulate_dkg(config)
    identifiers = list(participants)
    public_key_package = participants[identifiers[0]].public_key_package

    print(f"Ciphersuite: {suite.NAME}")
    print(f"Threshold: {config.min_signers} of {config.max_signers}")
    for index, identifier in enumerate(identifiers, 1):
        print(f"Participant {index}: {identifier}")
        print(f"  verifying share: {public_key_package.verifying_shares[identifier]}")
    print(f"Group public key: {public_key_package.verifying_key}")

    quorum = args.quorum or config.min_signers
    signers = identifiers[:quorum]
    message = args.message.encode()
    print(f"Signing {args.message!r} with participants 1..{quorum}")
    signature = simulate_signing(participants, public_key_package, message, signers)
    print(f"Signature: {signature.hex(suite)}")
    valid = signature.verify(message, public_key_package.verifying_key, suite)
    print(f"Valid: {valid}")
    return 0 if valid else 1


def keygen(args) -> int:
    config = SessionConfig(args.threshold, args.signers, args.ciphersuite)
    participants = simulate_dkg(config)
    os.makedirs(args.out_dir, exist_ok=True)

    public_key_package = None
    for index, participant in enumerate(participants.values(), 1):
        data = participant.key_package.to_dict()
        data["ciphersuite"] = config.ciphersuite
        _write_json(os.path.join(args.out_dir, key_package_file(index)), data)
        public_key_package = participant.public_key_package

    data = public_key_package.to_dict()
    data["ciphersuite"] = config.ciphersuite
    _write_json(os.path.join(args.out_dir, PUBLIC_KEY_PACKAGE_FILE), data)
    print(public_key_package.verifying_key)
    logger.info("Wrote %d key packages to %s", len(participants), args.out_dir)
    return 0


def load_key_dir(key_dir: str) -> Tuple[List[KeyPackage], PublicKeyPackage, Ciphersuite]:
    """Load the key packages written by keygen, in party order."""
    public_data = _read_json(os.path.join(key_dir, PUBLIC_KEY_PACKAGE_FILE))
    suite = get_ciphersuite(public_data.get("ciphersuite", DEFAULT_CIPHERSUITE.NAME))
    public_key_package = PublicKeyPackage.from_dict(public_data, suite)

    key_packages = []
    index = 1
    while os.path.exists(os.path.join(key_dir, key_package_file(index))):
        data = _read_json(os.path.join(key_dir, key_package_file(index)))
        key_packages.append(KeyPackage.from_dict(data, suite))
        index += 1
    return key_packages, public_key_package, suite


def sign(args) -> int:
    key_packages, public_key_package, suite = load_key_dir(args.key_dir)
    quorum = args.quorum or public_key_package.min_signers
    if quorum > len(key_packages):
        raise InsufficientSigners(quorum, len(key_packages))
    key_packages = key_packages[:quorum]
    message = args.message.encode()

    # Round 1
    nonces = {}
    commitments = {}
    for key_package in key_packages:
        nonces[key_package.identifier], commitments[key_package.identifier] = commit(
            key_package, ciphersuite=suite
        )
    signing_package = SigningPackage(commitments, message)

    # Round 2
    shares = {
        key_package.identifier: sign_share(
            signing_package, nonces[key_package.identifier], key_package, suite
        )
        for key_package in key_packages
    }
    signature = aggregate(signing_package, shares, public_key_package, suite)
    print(signature.hex(suite))
    return 0


def parse_public_key(data: str) -> Point:
    raw = bytes.fromhex(data)
    if len(raw) == 32:
        return Point.from_bytes_xonly(raw)
    return Point.from_bytes_compressed(raw)


def verify(args) -> int:
    suite = get_ciphersuite(args.ciphersuite)
    public_key = parse_public_key(args.public_key)
    signature = Signature.from_bytes(bytes.fromhex(args.signature), suite)
    if signature.verify(args.message.encode(), public_key, suite):
        print("Signature is valid.")
        return 0
    print("Signature is invalid.")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="frostdkg", description="FROST threshold Schnorr signatures over secp256k1."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log protocol progress.")
    subparsers = parser.add_subparsers()

    parser_demo = subparsers.add_parser("demo", help="Run key generation and signing in-process.")
    parser_demo.add_argument("--threshold", type=int, default=2, help="Signers required.")
    parser_demo.add_argument("--signers", type=int, default=3, help="Number of participants.")
    parser_demo.add_argument("--message", type=str, default="Hello, FROST!", help="Message to sign.")
    parser_demo.add_argument("--quorum", type=int, help="Participants taking part in signing.")
    parser_demo.add_argument(
        "--ciphersuite",
        choices=sorted(CIPHERSUITES),
        default=DEFAULT_CIPHERSUITE.NAME,
        help="Signature flavour.",
    )
    parser_demo.set_defaults(func=demo)

    parser_keygen = subparsers.add_parser("keygen", help="Generate key packages.")
    parser_keygen.add_argument("--threshold", type=int, required=True, help="Signers required.")
    parser_keygen.add_argument("--signers", type=int, required=True, help="Number of participants.")
    parser_keygen.add_argument("--out-dir", type=str, required=True, help="Output directory.")
    parser_keygen.add_argument(
        "--ciphersuite", choices=sorted(CIPHERSUITES), default=DEFAULT_CIPHERSUITE.NAME
    )
    parser_keygen.set_defaults(func=keygen)

    parser_sign = subparsers.add_parser("sign", help="Sign a message.")
    parser_sign.add_argument("--key-dir", type=str, required=True, help="Directory written by keygen.")
    parser_sign.add_argument("--message", type=str, required=True, help="Message to sign.")
    parser_sign.add_argument("--quorum", type=int, help="Participants taking part in signing.")
    parser_sign.set_defaults(func=sign)

    parser_verify = subparsers.add_parser("verify", help="Verify a message")
    parser_verify.add_argument("--public-key", type=str, required=True, help="Public key for verification.")
    parser_verify.add_argument("--message", type=str, required=True, help="Message to verify.")
    parser_verify.add_argument("--signature", type=str, required=True, help="Signature hex.")
    parser_verify.add_argument(
        "--ciphersuite", choices=sorted(CIPHERSUITES), default=DEFAULT_CIPHERSUITE.NAME
    )
    parser_verify.set_defaults(func=verify)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not hasattr(args, "func"):
        parser.print_help()
        return 2
    try:
        return args.func(args)
    except (FrostError, ValueError) as e:
        logger.error("%s: %s", e.__class__.__name__, e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
