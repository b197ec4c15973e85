# scripts/gen_cert.py
"""
Issue a server certificate signed by the local CA (bootstrapping it if needed).
Usage: python scripts/gen_cert.py <hostname> [ca_dir] [cert_dir]
Produces:
  <cert_dir>/<hostname>-key.pem
  <cert_dir>/<hostname>-csr.pem
  <cert_dir>/<hostname>-cert.pem
  <cert_dir>/<hostname>-san.cnf
"""
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from localca.ca import ensure_ca
from localca.common import config
from localca.common.errors import LocalCAError
from localca.common.log import configure
from localca.issuer import issue_certificate


def issue(name, ca_dir=config.CA_DIR, cert_dir=config.CERT_DIR):
    try:
        ca = ensure_ca(ca_dir)
        issued = issue_certificate(ca, name, cert_dir)
    except LocalCAError as e:
        print("Issuance failed:", e)
        return 1
    print("Wrote:", issued.key_path, issued.csr_path, issued.cert_path, issued.san_path)
    return 0


if __name__ == "__main__":
    configure()
    if len(sys.argv) < 2:
        print("Usage: python scripts/gen_cert.py <hostname> [ca_dir] [cert_dir]")
        sys.exit(2)
    sys.exit(issue(*sys.argv[1:4]))
