import pytest

from voi_lottery.config import Settings
from voi_lottery.project_constants import DEFAULT_INDEXER_URL, NETWORK_GENESIS_ID


@pytest.fixture
def env(monkeypatch):
    for var in ("ALGOD_URL", "ALGOD_TOKEN", "INDEXER_URL", "NETWORK"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("TOKEN_ID", "390001")
    monkeypatch.setenv("CUSTODY_ADDRESS", "CUSTODY")
    return monkeypatch


def test_defaults(env):
    s = Settings.from_env()
    assert s.token_id == 390001
    assert s.custody_address == "CUSTODY"
    assert s.indexer_url == DEFAULT_INDEXER_URL
    assert s.network == NETWORK_GENESIS_ID


def test_override_wins(env):
    env.setenv("ALGOD_URL", "http://env-node")
    s = Settings.from_env(algod_url_override="http://cli-node/")
    assert s.algod_url == "http://cli-node"


def test_missing_token_id(env):
    env.delenv("TOKEN_ID")
    with pytest.raises(RuntimeError, match="TOKEN_ID"):
        Settings.from_env()


def test_non_integer_token_id(env):
    env.setenv("TOKEN_ID", "abc")
    with pytest.raises(RuntimeError, match="integer"):
        Settings.from_env()
