# scripts/gen_ca.py
"""
Create the local Root CA if it does not exist yet. Writes:
  <ca_dir>/ca-key.pem   (private, 0400)  -- DO NOT COMMIT
  <ca_dir>/ca-cert.pem  (public)
Usage: python scripts/gen_ca.py [ca_dir]
"""
import os
import sys

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from localca.ca import ensure_ca
from localca.common import config
from localca.common.errors import LocalCAError
from localca.common.log import configure
from localca.crypto import pki


def main():
    configure()
    ca_dir = sys.argv[1] if len(sys.argv) > 1 else config.CA_DIR
    try:
        ca = ensure_ca(ca_dir)
    except LocalCAError as e:
        print("CA bootstrap failed:", e)
        return 1
    print("CA ready:", ca.key_path, ca.cert_path)
    print("Fingerprint:", pki.cert_fingerprint_hex(ca.certificate))
    print(f"Do NOT commit {ca.key_path} to git.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
