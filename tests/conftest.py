import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey


@pytest.fixture
def wallet() -> Keypair:
    return Keypair()


@pytest.fixture
def mint() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def destination() -> Pubkey:
    return Pubkey.new_unique()
