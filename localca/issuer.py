# localca/issuer.py
"""
Issue a server certificate signed by the local CA.

Every call generates a fresh key and certificate for the identity:

  KeyGenerated -> RequestBuilt -> Signed -> Verified -> Persisted

Any failing step aborts the rest (state Failed). Files are only written once
the certificate has verified against the CA, and the certificate is written
last, so a failed run never leaves a certificate at <identity>-cert.pem.
"""
import ipaddress
import re
from pathlib import Path

import idna

from localca.common.config import PUBLIC_MODE, Policy, leaf_path, load_policy
from localca.common.errors import FilesystemError, InvalidInput, IssuanceFailed, VerificationFailed
from localca.common.log import get_logger
from localca.common.models import (
    CertificateAuthority,
    DistinguishedName,
    IssuanceState,
    IssuedCertificate,
    KeyPair,
    SanEntry,
    SubjectAltNameSet,
)
from localca.common.utils import hex_serial, utcnow
from localca.crypto import keys, pki
from localca.storage import files, serial as serial_store

log = get_logger(__name__)

_LABEL = re.compile(r"^(?!-)[a-z0-9_-]{1,63}(?<!-)$")
# ub-common-name from RFC 5280
MAX_CN_LENGTH = 64


def normalize_identity(identity: str):
    """
    Validate a hostname/IP identity and return (name, is_ip).

    DNS names are lower-cased and IDNA encoded; a trailing dot is dropped.
    Raises InvalidInput for empty names, path characters, wildcards, bad
    labels and names too long for a certificate CN.
    """
    if identity is None or not str(identity).strip():
        raise InvalidInput("identity must not be empty", step="validate")
    name = str(identity).strip()
    if any(c in name for c in ("/", "\\", "\0")) or name in (".", ".."):
        raise InvalidInput(f"identity {name!r} contains path characters", step="validate")
    if name.startswith("*"):
        raise InvalidInput(
            f"identity {name!r} is a wildcard; the wildcard SAN is derived from the bare name",
            step="validate",
        )

    try:
        return str(ipaddress.ip_address(name)), True
    except ValueError:
        pass

    name = name.rstrip(".").lower()
    if not name.isascii():
        # IDNA 2008 with UTS 46 mapping; keeps deviation characters such as ß
        try:
            name = idna.encode(name, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            raise InvalidInput(f"identity {identity!r} is not a valid hostname: {e}", step="validate") from e
    labels = name.split(".")
    if not all(_LABEL.match(label) for label in labels):
        raise InvalidInput(f"identity {identity!r} is not a valid hostname", step="validate")
    if labels[-1].isdigit():
        raise InvalidInput(f"identity {identity!r} looks like an IP address but is not one", step="validate")
    if len(name) > MAX_CN_LENGTH:
        raise InvalidInput(
            f"identity {identity!r} is longer than {MAX_CN_LENGTH} characters", step="validate"
        )
    return name, False


def build_san(name: str, is_ip: bool = False) -> SubjectAltNameSet:
    """
    Server SAN policy: the name, its wildcard, localhost and 127.0.0.1.
    IP identities get no wildcard. Duplicates collapse (see SubjectAltNameSet).
    """
    if is_ip:
        entries = [SanEntry(kind="IP", value=name)]
    else:
        entries = [SanEntry(kind="DNS", value=name), SanEntry(kind="DNS", value=f"*.{name}")]
    entries += [SanEntry(kind="DNS", value="localhost"), SanEntry(kind="IP", value="127.0.0.1")]
    return SubjectAltNameSet(entries=tuple(entries))


def render_san_config(subject: DistinguishedName, san: SubjectAltNameSet, serial: int = None) -> str:
    """
    OpenSSL-style record of the request and extensions used for an issuance.
    Written for auditing only; nothing reads it back.
    """
    lines = []
    if serial is not None:
        lines.append(f"# serial = {hex_serial(serial)}")
    lines.append(f"# issued = {utcnow().strftime('%Y-%m-%dT%H:%M:%SZ')}")
    lines += [
        "[req]",
        "distinguished_name = req_distinguished_name",
        "req_extensions = v3_req",
        "prompt = no",
        "",
        "[req_distinguished_name]",
        f"C = {subject.country}",
        f"ST = {subject.state}",
        f"L = {subject.locality}",
        f"O = {subject.organization}",
        f"OU = {subject.organizational_unit}",
        f"CN = {subject.common_name}",
        "",
        "[v3_req]",
        "keyUsage = keyEncipherment, dataEncipherment",
        "extendedKeyUsage = serverAuth",
        "subjectAltName = @alt_names",
        "",
        "[alt_names]",
    ]
    counters = {"DNS": 0, "IP": 0}
    for entry in san.entries:
        counters[entry.kind] += 1
        lines.append(f"{entry.kind}.{counters[entry.kind]} = {entry.value}")
    return "\n".join(lines) + "\n"


def _advance(name, state: IssuanceState) -> IssuanceState:
    log.info("%s: %s", name, state.value)
    return state


def issue_certificate(ca: CertificateAuthority, identity: str, cert_dir, policy: Policy = None) -> IssuedCertificate:
    """
    Generate a key, CSR and CA-signed certificate for `identity` in `cert_dir`.

    Raises InvalidInput for a rejected identity, VerificationFailed if the
    signed certificate does not chain to the CA, IssuanceFailed otherwise.
    """
    policy = policy or load_policy()
    name, is_ip = normalize_identity(identity)
    cert_dir = Path(cert_dir)
    key_path = leaf_path(cert_dir, name, "key.pem")
    csr_path = leaf_path(cert_dir, name, "csr.pem")
    cert_path = leaf_path(cert_dir, name, "cert.pem")
    san_path = leaf_path(cert_dir, name, "san.cnf")

    try:
        files.ensure_dir(cert_dir)
    except FilesystemError as e:
        raise IssuanceFailed(f"cannot create certificate directory: {e.msg}", step="mkdir", path=cert_dir) from e

    step_paths = {
        "key": key_path,
        "csr": csr_path,
        "sign": ca.serial_path,
        "verify": cert_path,
        "persist": cert_path,
    }
    step = "key"
    try:
        key = keys.generate_rsa_key(policy.leaf_key_size, policy.public_exponent)
        _advance(name, IssuanceState.KEY_GENERATED)

        step = "csr"
        subject = policy.leaf_subject.with_common_name(name)
        san = build_san(name, is_ip)
        csr = pki.build_csr(key, subject)
        _advance(name, IssuanceState.REQUEST_BUILT)

        step = "sign"
        serial = serial_store.next_serial(ca.serial_path)
        cert = pki.sign_csr(
            csr, ca.key.private_key, ca.certificate, serial, san, policy.leaf_validity_days
        )
        _advance(name, IssuanceState.SIGNED)
        log.info("%s: signed with serial %s (valid for %d days)", name, hex_serial(serial), policy.leaf_validity_days)

        step = "verify"
        pki.verify_cert_signed_by_ca(cert, ca.certificate)
        _advance(name, IssuanceState.VERIFIED)

        step = "persist"
        # drop the previous certificate first so it never sits next to a new key
        files.remove_file(cert_path)
        keys.save_private_key(key, key_path)
        files.write_file(csr_path, pki.csr_pem(csr), mode=PUBLIC_MODE)
        files.write_file(san_path, render_san_config(subject, san, serial).encode("utf-8"), mode=PUBLIC_MODE)
        files.write_file(cert_path, pki.cert_pem(cert), mode=PUBLIC_MODE)
        _advance(name, IssuanceState.PERSISTED)
    except VerificationFailed as e:
        e.path = str(cert_path)
        log.error("%s: %s at step %s: %s", name, IssuanceState.FAILED.value, step, e)
        raise
    except (FilesystemError, ValueError, TypeError) as e:
        path = e.path if isinstance(e, FilesystemError) and e.path else step_paths[step]
        log.error("%s: %s at step %s: %s", name, IssuanceState.FAILED.value, step, e)
        raise IssuanceFailed(f"{step} failed: {e}", step=step, path=path) from e

    return IssuedCertificate(
        identity=name,
        key=KeyPair(private_key=key, path=key_path),
        certificate=cert,
        san=san,
        serial_number=serial,
        key_path=key_path,
        csr_path=csr_path,
        cert_path=cert_path,
        san_path=san_path,
    )
