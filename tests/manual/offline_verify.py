# tests/manual/offline_verify.py
# Check an issued certificate on disk against the CA, the way
# `openssl verify -CAfile ssl_ca/ca-cert.pem ssl_certs/<name>-cert.pem` would.
# Usage: python tests/manual/offline_verify.py [name] [ca_dir] [cert_dir]
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from localca.common import config
from localca.common.errors import LocalCAError
from localca.crypto import keys, pki


def main():
    name = sys.argv[1] if len(sys.argv) > 1 else config.DEFAULT_IDENTITY
    ca_dir = sys.argv[2] if len(sys.argv) > 2 else config.CA_DIR
    cert_dir = sys.argv[3] if len(sys.argv) > 3 else config.CERT_DIR

    _, ca_cert_path, serial_path = config.ca_paths(ca_dir)
    cert_path = config.leaf_path(cert_dir, name, "cert.pem")
    key_path = config.leaf_path(cert_dir, name, "key.pem")
    print(f"Using:\n  CA:   {ca_cert_path}\n  Cert: {cert_path}\n")

    try:
        cert = pki.verify_files(cert_path, ca_cert_path)
    except LocalCAError as e:
        print("Chain valid?: False")
        print("Error:", e)
        return 1
    print("Chain valid?: True")
    print("SAN:", ", ".join(pki.san_entries(cert)))
    print("Serial:", format(cert.serial_number, "X"))
    print("Counter file:", open(serial_path).read().strip() if os.path.exists(serial_path) else "(missing)")

    try:
        leaf = keys.load_private_key_file(key_path)
        print("Key matches cert?:", keys.public_keys_match(leaf.private_key, cert))
    except (LocalCAError, ValueError) as e:
        print("Key check skipped:", e)

    print("SHA256:", pki.cert_fingerprint_hex(cert))
    print("\nOffline verification complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
