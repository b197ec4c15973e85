# localca/common/config.py
"""
Defaults for directories, file names and the issuance policy.
Every default can be overridden from the environment.
"""
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from localca.common.errors import InvalidInput
from localca.common.models import DistinguishedName

CA_DIR = os.environ.get("LOCALCA_CA_DIR", "ssl_ca")
CERT_DIR = os.environ.get("LOCALCA_CERT_DIR", "ssl_certs")
DEFAULT_IDENTITY = "localhost"

CA_KEY_NAME = "ca-key.pem"
CA_CERT_NAME = "ca-cert.pem"
CA_SERIAL_NAME = "ca-cert.srl"

# owner read-only for private keys, world readable for everything else
PRIVATE_MODE = 0o400
PUBLIC_MODE = 0o644

CA_SUBJECT = DistinguishedName(
    country="US",
    state="State",
    locality="City",
    organization="Local CA",
    organizational_unit="IT",
    common_name="Local Certificate Authority",
)

LEAF_SUBJECT = DistinguishedName(
    country="US",
    state="State",
    locality="City",
    organization="Organization",
    organizational_unit="IT",
    common_name=DEFAULT_IDENTITY,
)


class Policy(BaseModel):
    """Key sizes, validity windows and subject templates used for issuance."""
    model_config = ConfigDict(frozen=True)

    ca_key_size: int = Field(default=4096, ge=2048)
    leaf_key_size: int = Field(default=2048, ge=2048)
    public_exponent: int = 65537
    ca_validity_days: int = Field(default=3650, gt=0)
    leaf_validity_days: int = Field(default=825, gt=0)
    ca_subject: DistinguishedName = CA_SUBJECT
    leaf_subject: DistinguishedName = LEAF_SUBJECT


def load_policy(environ=None) -> Policy:
    """Build a Policy from LOCALCA_* environment variables, falling back to defaults."""
    env = os.environ if environ is None else environ
    overrides = {}
    for var, field in (
        ("LOCALCA_CA_DAYS", "ca_validity_days"),
        ("LOCALCA_CERT_DAYS", "leaf_validity_days"),
        ("LOCALCA_CA_KEY_SIZE", "ca_key_size"),
        ("LOCALCA_CERT_KEY_SIZE", "leaf_key_size"),
    ):
        if env.get(var):
            overrides[field] = env[var]
    try:
        return Policy(**overrides)
    except ValidationError as e:
        raise InvalidInput(f"invalid policy settings in environment: {e}", step="config") from e


def ca_paths(ca_dir):
    """Return (key, certificate, serial) paths inside a CA directory."""
    ca_dir = Path(ca_dir)
    return ca_dir / CA_KEY_NAME, ca_dir / CA_CERT_NAME, ca_dir / CA_SERIAL_NAME


def leaf_path(cert_dir, identity: str, suffix: str) -> Path:
    """<cert_dir>/<identity>-<suffix>, e.g. leaf_path(d, "example.com", "cert.pem")."""
    return Path(cert_dir) / f"{identity}-{suffix}"
