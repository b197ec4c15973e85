# localca/cli.py
"""
Command line entry point.

  localca [identity] [--ca-dir DIR] [--cert-dir DIR] [--verify] [-v]

Bootstraps the CA in --ca-dir (if needed) and issues a fresh certificate for
`identity` into --cert-dir. With --verify, only checks an existing
certificate against the CA.
"""
import argparse
import sys

from localca.ca import ensure_ca, load_ca
from localca.common import config
from localca.common.errors import LocalCAError
from localca.common.log import configure
from localca.common.utils import colon_hex, hex_serial
from localca.crypto import pki
from localca.issuer import issue_certificate, normalize_identity


def build_parser():
    parser = argparse.ArgumentParser(
        prog="localca",
        description="Create a local certificate authority and issue a server certificate signed by it.",
    )
    parser.add_argument("identity", nargs="?", default=config.DEFAULT_IDENTITY,
                        help=f"hostname or IP to issue for (default: {config.DEFAULT_IDENTITY})")
    parser.add_argument("--ca-dir", default=config.CA_DIR,
                        help=f"CA directory (default: {config.CA_DIR})")
    parser.add_argument("--cert-dir", default=config.CERT_DIR,
                        help=f"certificate output directory (default: {config.CERT_DIR})")
    parser.add_argument("--verify", action="store_true",
                        help="only verify an existing certificate against the CA")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def do_issue(identity, ca_dir, cert_dir):
    normalize_identity(identity)
    policy = config.load_policy()
    ca = ensure_ca(ca_dir, policy)
    issued = issue_certificate(ca, identity, cert_dir, policy)
    print("CA Certificate:     ", ca.cert_path)
    print("Server Certificate: ", issued.cert_path)
    print("Server Private Key: ", issued.key_path)
    print("Serial:             ", hex_serial(issued.serial_number))
    print("SAN:                ", ", ".join(str(e) for e in issued.san.entries))
    print("SHA256 Fingerprint: ", colon_hex(pki.cert_fingerprint(issued.certificate)))


def do_verify(identity, ca_dir, cert_dir):
    name, _ = normalize_identity(identity)
    ca = load_ca(ca_dir)
    cert_path = config.leaf_path(cert_dir, name, "cert.pem")
    cert = pki.verify_files(cert_path, ca.cert_path)
    print(f"{cert_path}: OK")
    print("Serial:             ", hex_serial(cert.serial_number))
    print("SAN:                ", ", ".join(pki.san_entries(cert)))
    print("Not After:          ", cert.not_valid_after_utc.isoformat())


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    log = configure(args.verbose)
    try:
        if args.verify:
            do_verify(args.identity, args.ca_dir, args.cert_dir)
        else:
            do_issue(args.identity, args.ca_dir, args.cert_dir)
    except LocalCAError as e:
        log.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
