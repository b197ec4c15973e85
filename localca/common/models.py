# localca/common/models.py
"""
Data model shared by the bootstrapper and the issuer.

Plain value objects (names, SAN sets) are validated pydantic models; the
models that wrap key and certificate objects from `cryptography` allow
arbitrary types and are frozen once built.
"""
import ipaddress
from enum import Enum
from pathlib import Path
from typing import Literal, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DistinguishedName(BaseModel):
    model_config = ConfigDict(frozen=True)

    country: str = Field(min_length=2, max_length=2)
    state: str = Field(min_length=1)
    locality: str = Field(min_length=1)
    organization: str = Field(min_length=1)
    organizational_unit: str = Field(min_length=1)
    common_name: str = Field(min_length=1, max_length=64)

    def to_x509_name(self) -> x509.Name:
        """Convert to an x509.Name in C, ST, L, O, OU, CN order."""
        return x509.Name([
            x509.NameAttribute(NameOID.COUNTRY_NAME, self.country),
            x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, self.state),
            x509.NameAttribute(NameOID.LOCALITY_NAME, self.locality),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, self.organization),
            x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
            x509.NameAttribute(NameOID.COMMON_NAME, self.common_name),
        ])

    def with_common_name(self, common_name: str) -> "DistinguishedName":
        return DistinguishedName(**{**self.model_dump(), "common_name": common_name})


class SanEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["DNS", "IP"]
    value: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_ip(self):
        if self.kind == "IP":
            ipaddress.ip_address(self.value)
        return self

    def key(self) -> Tuple[str, str]:
        # DNS names compare case-insensitively, IPs by canonical form
        if self.kind == "DNS":
            return ("DNS", self.value.lower())
        return ("IP", str(ipaddress.ip_address(self.value)))

    def to_x509(self) -> x509.GeneralName:
        if self.kind == "DNS":
            return x509.DNSName(self.value)
        return x509.IPAddress(ipaddress.ip_address(self.value))

    def __str__(self):
        return f"{self.kind}:{self.value}"


class SubjectAltNameSet(BaseModel):
    """Ordered, de-duplicated, non-empty list of SAN entries."""
    model_config = ConfigDict(frozen=True)

    entries: Tuple[SanEntry, ...] = Field(min_length=1)

    @field_validator("entries")
    @classmethod
    def _dedupe(cls, entries):
        seen = set()
        out = []
        for e in entries:
            k = e.key()
            if k in seen:
                continue
            seen.add(k)
            out.append(e)
        return tuple(out)

    @classmethod
    def of(cls, *names: str) -> "SubjectAltNameSet":
        """Build from plain strings; anything parsing as an IP address becomes an IP entry."""
        entries = []
        for name in names:
            try:
                ipaddress.ip_address(name)
                entries.append(SanEntry(kind="IP", value=name))
            except ValueError:
                entries.append(SanEntry(kind="DNS", value=name))
        return cls(entries=tuple(entries))

    @property
    def dns_names(self):
        return [e.value for e in self.entries if e.kind == "DNS"]

    @property
    def ip_addresses(self):
        return [e.value for e in self.entries if e.kind == "IP"]

    def values(self):
        return [e.value for e in self.entries]

    def to_x509(self) -> x509.SubjectAlternativeName:
        return x509.SubjectAlternativeName([e.to_x509() for e in self.entries])


class KeyPair(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    private_key: rsa.RSAPrivateKey
    path: Optional[Path] = None

    @property
    def key_size(self) -> int:
        return self.private_key.key_size

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self.private_key.public_key()


class CertificateAuthority(BaseModel):
    """A CA key plus its self-signed certificate, as found in one directory."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ca_dir: Path
    key: KeyPair
    certificate: x509.Certificate
    key_path: Path
    cert_path: Path
    serial_path: Path

    @property
    def subject(self) -> x509.Name:
        return self.certificate.subject


class IssuanceState(str, Enum):
    KEY_GENERATED = "KeyGenerated"
    REQUEST_BUILT = "RequestBuilt"
    SIGNED = "Signed"
    VERIFIED = "Verified"
    PERSISTED = "Persisted"
    FAILED = "Failed"


class IssuedCertificate(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    identity: str
    key: KeyPair
    certificate: x509.Certificate
    san: SubjectAltNameSet
    serial_number: int
    key_path: Path
    csr_path: Path
    cert_path: Path
    san_path: Path
