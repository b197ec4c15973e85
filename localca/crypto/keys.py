# localca/crypto/keys.py
"""
RSA key helpers using cryptography.
Provides:
 - generate_rsa_key(key_size) -> RSAPrivateKey
 - private_key_pem(key) -> PEM bytes (TraditionalOpenSSL, unencrypted)
 - load_private_key(pem_bytes) / load_private_key_file(path)
 - save_private_key(key, path)  # mode 0400
 - public_keys_match(key, cert)
"""
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from localca.common.config import PRIVATE_MODE
from localca.common.models import KeyPair
from localca.storage import files


def generate_rsa_key(key_size: int, public_exponent: int = 65537) -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=public_exponent, key_size=key_size)


def private_key_pem(key) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def load_private_key(pem_bytes: bytes) -> rsa.RSAPrivateKey:
    """
    Load a PEM-encoded RSA private key (no password).
    Raises ValueError for anything that is not an unencrypted RSA key.
    """
    try:
        key = serialization.load_pem_private_key(pem_bytes, password=None)
    except (TypeError, UnsupportedAlgorithm) as e:
        raise ValueError(f"unsupported private key: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ValueError(f"expected an RSA private key, got {type(key).__name__}")
    return key


def load_private_key_file(path) -> KeyPair:
    key = load_private_key(files.read_file(path))
    return KeyPair(private_key=key, path=path)


def save_private_key(key, path) -> KeyPair:
    """Persist `key` as PEM, owner read-only."""
    files.write_file(path, private_key_pem(key), mode=PRIVATE_MODE)
    return KeyPair(private_key=key, path=path)


def public_keys_match(key, cert) -> bool:
    """True when the certificate carries the public half of `key`."""
    fmt = serialization.PublicFormat.SubjectPublicKeyInfo
    enc = serialization.Encoding.DER
    return key.public_key().public_bytes(enc, fmt) == cert.public_key().public_bytes(enc, fmt)
