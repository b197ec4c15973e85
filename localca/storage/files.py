# localca/storage/files.py
"""
Flat-file persistence for keys, certificates and audit records.

Writes go to a temporary file in the target directory which is then renamed
over the destination, so a reader never sees a half-written PEM and a
read-only (0400) previous key can be replaced without chmod games.
"""
import os
import tempfile
from pathlib import Path

from localca.common.errors import FilesystemError
from localca.common.log import get_logger

log = get_logger(__name__)


def ensure_dir(path) -> Path:
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"cannot create directory: {e.strerror or e}", path=path) from e
    if not path.is_dir():
        raise FilesystemError("not a directory", path=path)
    return path


def write_file(path, data: bytes, mode: int = 0o644) -> Path:
    """Atomically write `data` to `path` and leave it with permission bits `mode`."""
    path = Path(path)
    try:
        fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    except OSError as e:
        raise FilesystemError(f"cannot write file: {e.strerror or e}", path=path) from e
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except OSError as e:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise FilesystemError(f"cannot write file: {e.strerror or e}", path=path) from e
    log.debug("wrote %s (%d bytes, mode %o)", path, len(data), mode)
    return path


def read_file(path) -> bytes:
    path = Path(path)
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise FilesystemError(f"cannot read file: {e.strerror or e}", path=path) from e


def remove_file(path) -> bool:
    """Delete `path` if present. Returns True when something was removed."""
    path = Path(path)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise FilesystemError(f"cannot remove file: {e.strerror or e}", path=path) from e
    log.debug("removed %s", path)
    return True


def file_mode(path) -> int:
    return Path(path).stat().st_mode & 0o777
