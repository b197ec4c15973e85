import pytest

from localca.ca import ensure_ca
from localca.common.config import Policy


@pytest.fixture
def policy():
    # 2048-bit CA keys keep the suite fast; defaults are covered separately
    return Policy(ca_key_size=2048)


@pytest.fixture
def ca_dir(tmp_path):
    return tmp_path / "ssl_ca"


@pytest.fixture
def cert_dir(tmp_path):
    return tmp_path / "ssl_certs"


@pytest.fixture
def ca(ca_dir, policy):
    return ensure_ca(ca_dir, policy)
