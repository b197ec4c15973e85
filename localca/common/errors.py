# localca/common/errors.py
"""
Exception taxonomy for CA bootstrap and certificate issuance.

Every error carries the pipeline step and the file path involved (when there
is one) so the operator can tell what failed and where.
"""
from typing import Optional


class LocalCAError(Exception):
    def __init__(self, msg: str, step: Optional[str] = None, path=None):
        super().__init__(msg)
        self.msg = msg
        self.step = step
        self.path = str(path) if path is not None else None

    def __str__(self):
        parts = []
        if self.step:
            parts.append(f"[{self.step}]")
        parts.append(self.msg)
        if self.path:
            parts.append(f"({self.path})")
        return " ".join(parts)


class BootstrapFailed(LocalCAError):
    """CA directory, key or certificate could not be created or loaded."""


class IssuanceFailed(LocalCAError):
    """Leaf key, CSR, signing or persisting failed."""


class VerificationFailed(IssuanceFailed):
    """A signed certificate does not chain to the CA certificate."""


class FilesystemError(LocalCAError):
    """Permission, disk or path problem in the storage layer."""


class InvalidInput(LocalCAError, ValueError):
    """Identity string rejected by the naming policy."""
