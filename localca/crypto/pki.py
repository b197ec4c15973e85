# localca/crypto/pki.py

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization, hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from localca.common.errors import VerificationFailed
from localca.common.models import DistinguishedName, SubjectAltNameSet
from localca.common.utils import days_after, utcnow
from localca.storage import files


def load_cert(pem_bytes: bytes) -> x509.Certificate:
    """Load a PEM-encoded certificate and return an x509.Certificate object."""
    return x509.load_pem_x509_certificate(pem_bytes)


def load_cert_file(path) -> x509.Certificate:
    return load_cert(files.read_file(path))


def cert_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def csr_pem(csr: x509.CertificateSigningRequest) -> bytes:
    return csr.public_bytes(serialization.Encoding.PEM)


def build_ca_certificate(key, subject: DistinguishedName, validity_days: int, now=None) -> x509.Certificate:
    """Self-sign a CA certificate for `key` (issuer == subject)."""
    now = now or utcnow()
    name = subject.to_x509_name()
    pub = key.public_key()
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(pub)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(days_after(now, validity_days))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(pub), critical=False)
        .add_extension(x509.AuthorityKeyIdentifier.from_issuer_public_key(pub), critical=False)
        .sign(key, hashes.SHA256())
    )


def build_csr(key, subject: DistinguishedName) -> x509.CertificateSigningRequest:
    return (
        x509.CertificateSigningRequestBuilder()
        .subject_name(subject.to_x509_name())
        .sign(key, hashes.SHA256())
    )


def sign_csr(csr, ca_key, ca_cert, serial: int, san: SubjectAltNameSet, validity_days: int, now=None) -> x509.Certificate:
    """
    Issue a server certificate for `csr`, signed by the CA.

    The CSR's own signature is checked first; subject and public key are taken
    from the CSR, extensions come from the server profile (keyEncipherment,
    dataEncipherment, serverAuth, the SAN set).
    Raises ValueError if the CSR signature is invalid.
    """
    if not csr.is_signature_valid:
        raise ValueError("CSR signature is invalid")
    now = now or utcnow()
    return (
        x509.CertificateBuilder()
        .subject_name(csr.subject)
        .issuer_name(ca_cert.subject)
        .public_key(csr.public_key())
        .serial_number(serial)
        .not_valid_before(now)
        .not_valid_after(days_after(now, validity_days))
        .add_extension(
            x509.KeyUsage(
                digital_signature=False,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=True,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=False,
        )
        .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        .add_extension(san.to_x509(), critical=False)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(csr.public_key()), critical=False)
        .add_extension(x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_cert.public_key()), critical=False)
        .sign(ca_key, hashes.SHA256())
    )


def verify_cert_signed_by_ca(cert: x509.Certificate, ca_cert: x509.Certificate, now=None) -> None:
    """
    Verify that `cert` was signed by `ca_cert`.

    Raises VerificationFailed if the issuer does not match the CA subject, the
    signature does not verify with the CA public key, or the certificate is
    outside its validity window.
    """
    # Check issuer matches CA subject
    if cert.issuer != ca_cert.subject:
        raise VerificationFailed("certificate issuer does not match CA subject", step="verify")

    # Verify signature using CA public key. Must pass the signature algorithm.
    ca_pub = ca_cert.public_key()
    try:
        ca_pub.verify(
            cert.signature,
            cert.tbs_certificate_bytes,
            padding.PKCS1v15(),
            cert.signature_hash_algorithm,
        )
    except InvalidSignature as e:
        raise VerificationFailed("certificate signature does not verify with CA key", step="verify") from e

    # Check validity window
    now = now or utcnow()
    if now < cert.not_valid_before_utc or now > cert.not_valid_after_utc:
        raise VerificationFailed("certificate is not valid at the current time", step="verify")


def verify_files(cert_path, ca_cert_path) -> x509.Certificate:
    """File-based chain check, the equivalent of `openssl verify -CAfile`."""
    try:
        cert = load_cert_file(cert_path)
        ca_cert = load_cert_file(ca_cert_path)
    except ValueError as e:
        raise VerificationFailed(f"cannot parse certificate: {e}", step="verify", path=cert_path) from e
    try:
        verify_cert_signed_by_ca(cert, ca_cert)
    except VerificationFailed as e:
        e.path = str(cert_path)
        raise
    return cert


def check_cn(cert: x509.Certificate, expected_cn: str) -> None:
    """Check the Common Name (CN) in cert subject matches expected_cn. Raises ValueError on mismatch."""
    attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        raise ValueError("certificate has no Common Name (CN)")
    cn = attrs[0].value
    if cn != expected_cn:
        raise ValueError(f"CN mismatch: expected '{expected_cn}', got '{cn}'")


def san_entries(cert: x509.Certificate) -> list:
    """SAN values as strings in certificate order; IP addresses rendered as text."""
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    return [str(name.value) for name in ext.value]


def cert_fingerprint(cert: x509.Certificate) -> bytes:
    return cert.fingerprint(hashes.SHA256())


def cert_fingerprint_hex(cert: x509.Certificate) -> str:
    """Return the SHA-256 fingerprint of the certificate as a hex string."""
    return cert_fingerprint(cert).hex()
