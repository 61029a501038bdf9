"""
Shared fixtures for the ledger tests.
"""
import shutil
import tempfile

import pytest

from rvt_ledger.config import Config
from rvt_ledger.core import Account, Principal
from rvt_ledger.crypto import ed25519_der, generate_identity
from rvt_ledger.ledger import TokenLedger


class FakeClock:
    """Deterministic nanosecond clock."""

    def __init__(self, start: int = 1_700_000_000_000_000_000, step: int = 1_000):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


def new_principal() -> Principal:
    return Principal.self_authenticating(ed25519_der(generate_identity().verify_key))


@pytest.fixture
def db_dir():
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(db_dir, clock):
    """A fresh, uninitialized ledger."""
    chain = TokenLedger(db_path=db_dir, config=Config.default(), clock=clock)
    yield chain
    chain.close()


@pytest.fixture
def minter():
    return new_principal()


@pytest.fixture
def initialized_ledger(ledger, minter):
    """A ledger whose token was created by `minter`."""
    ledger.initialize_token(minter)
    return ledger


@pytest.fixture
def alice():
    return new_principal()


@pytest.fixture
def bob():
    return new_principal()


@pytest.fixture
def alice_account(alice):
    return Account(owner=alice)
