# localca/storage/serial.py
"""
Running serial-number counter kept next to the CA files.

The file holds one line of uppercase hex, the same format `openssl x509
-CAserial` uses. Each call to next_serial() takes an exclusive flock on the
file for the read-increment-write cycle so that concurrent issuers against the
same CA directory never hand out the same number.
"""
import fcntl
import os
from pathlib import Path
from typing import Optional

from cryptography import x509

from localca.common.errors import FilesystemError
from localca.common.log import get_logger
from localca.common.utils import hex_serial

log = get_logger(__name__)


def _parse(raw: bytes, path) -> Optional[int]:
    text = raw.decode("ascii", errors="replace").strip()
    if not text:
        return None
    try:
        value = int(text, 16)
    except ValueError:
        raise FilesystemError(f"serial file is corrupt: {text[:32]!r}", path=path)
    if value <= 0:
        raise FilesystemError("serial file holds a non-positive value", path=path)
    return value


def current_serial(path) -> Optional[int]:
    """Return the last serial handed out, or None if the counter does not exist yet."""
    path = Path(path)
    try:
        with open(path, "rb") as f:
            return _parse(f.read(), path)
    except FileNotFoundError:
        return None
    except OSError as e:
        raise FilesystemError(f"cannot read serial file: {e.strerror or e}", path=path) from e


def next_serial(path) -> int:
    """
    Reserve and return the next serial number.
    A missing or empty counter is initialized with a random 159-bit serial.
    """
    path = Path(path)
    try:
        fd = os.open(str(path), os.O_RDWR | os.O_CREAT, 0o644)
    except OSError as e:
        raise FilesystemError(f"cannot open serial file: {e.strerror or e}", path=path) from e
    with os.fdopen(fd, "r+b") as f:
        try:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            raise FilesystemError(f"cannot lock serial file: {e.strerror or e}", path=path) from e
        try:
            stored = _parse(f.read(), path)
            if stored is None:
                serial = x509.random_serial_number()
                log.info("initialized serial counter %s", path)
            else:
                serial = stored + 1
            f.seek(0)
            f.truncate()
            f.write((hex_serial(serial) + "\n").encode("ascii"))
            f.flush()
            os.fsync(f.fileno())
        except OSError as e:
            raise FilesystemError(f"cannot update serial file: {e.strerror or e}", path=path) from e
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    log.debug("reserved serial %s", hex_serial(serial))
    return serial
