import os
import sys
from collections import defaultdict
from unittest.mock import AsyncMock

import pytest

# Ensure the repository root (holding the game modules) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from config import LedgerConfig  # noqa: E402
from ledger import ZERO_ADDRESS, LedgerClient  # noqa: E402

PLAYER = "0x1111111111111111111111111111111111111111"
OTHER_PLAYER = "0x2222222222222222222222222222222222222222"
CONTRACT_ADDRESS = "0x3333333333333333333333333333333333333333"


class FakeWalletProvider:
    """
    In-memory wallet provider. `responses` maps an RPC method to a value, an
    exception to raise, or a callable taking the params.
    """

    def __init__(self, responses=None):
        self.responses = {
            "eth_requestAccounts": [PLAYER],
            "eth_chainId": "0x2105",
        }
        self.responses.update(responses or {})
        self.calls = []
        self.listeners = defaultdict(list)

    async def request(self, method, params=None):
        self.calls.append((method, params))
        result = self.responses.get(method)
        if callable(result):
            result = result(params)
        if isinstance(result, Exception):
            raise result
        return result

    def on(self, event, handler):
        self.listeners[event].append(handler)

    def remove_listener(self, event, handler):
        self.listeners[event].remove(handler)

    def emit(self, event, *args):
        for handler in list(self.listeners[event]):
            handler(*args)

    def methods(self):
        return [method for method, _ in self.calls]


def make_contract(players=None, scores=None, best=0, status=1):
    contract = AsyncMock()
    contract.submit_score.return_value = "0xfeed"
    contract.wait_for_receipt.return_value = {"status": status, "transactionHash": "0xfeed"}
    contract.get_leaderboard.return_value = (
        players if players is not None else [PLAYER, OTHER_PLAYER, ZERO_ADDRESS],
        scores if scores is not None else [2048, 1024, 0],
    )
    contract.get_my_best_score.return_value = best
    return contract


@pytest.fixture
def ledger_config():
    return LedgerConfig(contract_address=CONTRACT_ADDRESS, rpc_url="http://localhost:8545")


@pytest.fixture
def provider():
    return FakeWalletProvider()


@pytest.fixture
def contract():
    return make_contract()


@pytest.fixture
def ledger(provider, contract, ledger_config):
    return LedgerClient(provider, contract, ledger_config)
