# localca/ca.py
"""
CA bootstrap: make sure a CA key and self-signed certificate exist in a
directory, creating only what is missing.

  <ca_dir>/ca-key.pem    (private, 0400)
  <ca_dir>/ca-cert.pem   (public)
  <ca_dir>/ca-cert.srl   (serial counter, created on first issuance)

Key and certificate are checked independently, so a run interrupted after
the key was written resumes by creating only the certificate.
"""
from pathlib import Path

from localca.common.config import PUBLIC_MODE, Policy, ca_paths, load_policy
from localca.common.errors import BootstrapFailed, FilesystemError
from localca.common.log import get_logger
from localca.common.models import CertificateAuthority
from localca.crypto import keys, pki
from localca.storage import files

log = get_logger(__name__)


def load_ca(ca_dir) -> CertificateAuthority:
    """Load an existing CA from `ca_dir` without creating anything."""
    ca_dir = Path(ca_dir)
    key_path, cert_path, serial_path = ca_paths(ca_dir)
    for p in (key_path, cert_path):
        if not p.is_file():
            raise BootstrapFailed("CA file not found", step="load", path=p)

    try:
        key = keys.load_private_key_file(key_path)
    except (FilesystemError, ValueError) as e:
        raise BootstrapFailed(f"cannot load CA private key: {e}", step="load", path=key_path) from e
    try:
        cert = pki.load_cert_file(cert_path)
    except (FilesystemError, ValueError) as e:
        raise BootstrapFailed(f"cannot load CA certificate: {e}", step="load", path=cert_path) from e

    if not keys.public_keys_match(key.private_key, cert):
        raise BootstrapFailed("CA certificate does not match CA private key", step="load", path=cert_path)

    return CertificateAuthority(
        ca_dir=ca_dir,
        key=key,
        certificate=cert,
        key_path=key_path,
        cert_path=cert_path,
        serial_path=serial_path,
    )


def ensure_ca(ca_dir, policy: Policy = None) -> CertificateAuthority:
    """
    Return the CA in `ca_dir`, creating its key and/or certificate if absent.

    Calling this again once both files exist writes nothing. A certificate
    without its key is refused, since a fresh key could never match it.
    Raises BootstrapFailed on any problem.
    """
    policy = policy or load_policy()
    ca_dir = Path(ca_dir)
    key_path, cert_path, _ = ca_paths(ca_dir)

    try:
        files.ensure_dir(ca_dir)
    except FilesystemError as e:
        raise BootstrapFailed(f"cannot create CA directory: {e.msg}", step="mkdir", path=ca_dir) from e

    if not key_path.exists():
        if cert_path.exists():
            raise BootstrapFailed(
                "CA certificate exists but its private key is missing; "
                "restore the key or remove the certificate",
                step="ca-key",
                path=key_path,
            )
        log.info("Generating CA private key (%d bits)", policy.ca_key_size)
        try:
            key = keys.generate_rsa_key(policy.ca_key_size, policy.public_exponent)
            keys.save_private_key(key, key_path)
        except (FilesystemError, ValueError) as e:
            raise BootstrapFailed(f"cannot create CA private key: {e}", step="ca-key", path=key_path) from e
        log.info("CA private key created: %s", key_path)
    else:
        log.info("CA private key already exists: %s", key_path)

    if not cert_path.exists():
        log.info("Creating CA certificate (valid for %d days)", policy.ca_validity_days)
        try:
            key = keys.load_private_key_file(key_path)
        except (FilesystemError, ValueError) as e:
            raise BootstrapFailed(f"cannot load CA private key: {e}", step="ca-cert", path=key_path) from e
        try:
            cert = pki.build_ca_certificate(key.private_key, policy.ca_subject, policy.ca_validity_days)
            files.write_file(cert_path, pki.cert_pem(cert), mode=PUBLIC_MODE)
        except (FilesystemError, ValueError) as e:
            raise BootstrapFailed(f"cannot create CA certificate: {e}", step="ca-cert", path=cert_path) from e
        log.info("CA certificate created: %s", cert_path)
    else:
        log.info("CA certificate already exists: %s", cert_path)

    return load_ca(ca_dir)
