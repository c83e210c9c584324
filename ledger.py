"""
Ledger client: wallet connection, network selection and ScoreBoard contract
calls. No game logic lives here.

The client talks to two collaborators:
1. a wallet provider (request/response RPC plus account/chain events)
2. the ScoreBoard contract (submitScore, getLeaderboard, getMyBestScore)

`RpcWalletProvider` and `Web3ScoreBoard` implement both on top of web3.py for
a JSON-RPC node holding unlocked accounts.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Protocol

from pydantic import BaseModel, ConfigDict
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted

from config import LedgerConfig

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# EIP-1193 / EIP-3085 error codes
USER_REJECTED = 4001
UNRECOGNIZED_CHAIN = 4902

SCOREBOARD_ABI = [
    {
        "type": "function",
        "name": "submitScore",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "score", "type": "uint256"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "getLeaderboard",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "players", "type": "address[]"},
            {"name": "scores", "type": "uint256[]"},
        ],
    },
    {
        "type": "function",
        "name": "getMyBestScore",
        "stateMutability": "view",
        "inputs": [{"name": "player", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


class LedgerError(Exception):
    """Base class for wallet and contract failures."""

    default_message = "ledger request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def kind(self) -> str:
        return type(self).__name__


class NoWalletAvailable(LedgerError):
    default_message = "no wallet available, connect a wallet first"


class ConnectionRejected(LedgerError):
    default_message = "wallet connection was rejected"


class WrongNetwork(LedgerError):
    default_message = "wallet is not on a supported network"


class UnrecognizedNetwork(LedgerError):
    default_message = "network is not known to the wallet"


class InvalidScore(LedgerError):
    default_message = "score must be greater than 0"


class TransactionRejected(LedgerError):
    default_message = "transaction was rejected"


class ContractReverted(LedgerError):
    default_message = "transaction reverted"

    def __init__(self, reason: str | None = None):
        super().__init__(reason)
        self.reason = reason


class NetworkOrProviderError(LedgerError):
    default_message = "submission failed"


class LedgerDisabled(LedgerError):
    default_message = "no scoreboard contract configured"


class SubmissionInProgress(LedgerError):
    default_message = "a submission is already in progress"


class ProviderRpcError(Exception):
    """An error response from the wallet provider."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


def _rpc_error_code(exc: Exception) -> int | None:
    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return code
    response = getattr(exc, "rpc_response", None)
    if isinstance(response, dict) and isinstance(response.get("error"), dict):
        return response["error"].get("code")
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0].get("code")
    return None


def _error_message(exc: Exception) -> str | None:
    for attr in ("reason", "short_message", "message"):
        value = getattr(exc, attr, None)
        if isinstance(value, str) and value:
            return value
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0].get("message")
    return str(exc) or None


def normalize_error(exc: Exception, during: str = "submit") -> LedgerError:
    """
    Map a provider or web3 exception onto the ledger error taxonomy.

    `during` is "connect", "switch" or "submit"; a user rejection means a
    declined connection for the first two and a declined signature otherwise.
    """
    if isinstance(exc, LedgerError):
        return exc

    code = _rpc_error_code(exc)
    message = _error_message(exc)

    if code == USER_REJECTED:
        if during == "submit":
            return TransactionRejected(message)
        return ConnectionRejected(message)
    if code == UNRECOGNIZED_CHAIN:
        return UnrecognizedNetwork(message)
    if isinstance(exc, ContractLogicError):
        return ContractReverted(message)
    if isinstance(exc, TimeExhausted):
        return NetworkOrProviderError(message or "timed out waiting for confirmation")
    return NetworkOrProviderError(message)


def parse_chain_id(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    return int(value)


class WalletProvider(Protocol):
    async def request(self, method: str, params: list | None = None) -> Any: ...

    def on(self, event: str, handler: Callable[..., None]) -> None: ...

    def remove_listener(self, event: str, handler: Callable[..., None]) -> None: ...


class ScoreBoardContract(Protocol):
    async def submit_score(self, score: int, sender: str) -> str: ...

    async def wait_for_receipt(self, tx_hash: str) -> dict: ...

    async def get_leaderboard(self) -> tuple[list[str], list[int]]: ...

    async def get_my_best_score(self, address: str) -> int: ...


class WalletSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    account: str | None = None
    chain_id: int | None = None

    @property
    def connected(self) -> bool:
        return self.account is not None


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    player: str
    score: int


class LedgerClient:
    """
    Typed boundary over the wallet provider and the ScoreBoard contract.

    Reads need only a provider; writes need a connected account. When no
    contract address is configured every contract call raises LedgerDisabled.
    """

    def __init__(
        self,
        provider: WalletProvider | None,
        contract: ScoreBoardContract | None,
        config: LedgerConfig,
    ):
        self.provider = provider
        self.contract = contract
        self.config = config
        self.wallet = WalletSession()
        self._handlers: tuple[Callable, Callable] | None = None

    @property
    def enabled(self) -> bool:
        return self.config.enabled and self.contract is not None

    def is_accepted_network(self, chain_id: int | None = None) -> bool:
        if chain_id is None:
            chain_id = self.wallet.chain_id
        return chain_id in self.config.accepted_chain_ids

    def network_name(self, chain_id: int | None = None) -> str | None:
        network = self.config.network(
            self.wallet.chain_id if chain_id is None else chain_id
        )
        return network.name if network else None

    def _require_provider(self) -> WalletProvider:
        if self.provider is None:
            raise NoWalletAvailable()
        return self.provider

    def _require_contract(self) -> ScoreBoardContract:
        if not self.enabled:
            raise LedgerDisabled()
        return self.contract

    async def chain_id(self) -> int | None:
        provider = self._require_provider()
        try:
            return parse_chain_id(await provider.request("eth_chainId", []))
        except Exception as e:
            raise normalize_error(e, during="connect") from e

    async def connect(self) -> WalletSession:
        """Ask the wallet for an account and read the current chain id."""
        provider = self._require_provider()
        try:
            accounts = await provider.request("eth_requestAccounts", [])
        except Exception as e:
            raise normalize_error(e, during="connect") from e
        if not accounts:
            self.wallet = WalletSession()
            raise ConnectionRejected("wallet returned no accounts")

        chain_id = await self.chain_id()
        self.wallet = WalletSession(account=accounts[0], chain_id=chain_id)
        logger.info(
            "connected %s on chain %s (%s)",
            self.wallet.account,
            chain_id,
            self.network_name(chain_id) or "unsupported",
        )
        return self.wallet

    async def switch_network(self, chain_id: int) -> WalletSession:
        """
        Switch the wallet to `chain_id`. If the wallet does not know the chain,
        add it from the configured network parameters and retry once.
        """
        provider = self._require_provider()
        network = self.config.network(chain_id)
        if network is None:
            raise UnrecognizedNetwork(f"chain {chain_id} is not a supported network")

        switch_params = [{"chainId": network.hex_chain_id}]
        try:
            await provider.request("wallet_switchEthereumChain", switch_params)
        except Exception as e:
            if _rpc_error_code(e) != UNRECOGNIZED_CHAIN:
                raise normalize_error(e, during="switch") from e
            logger.info("wallet does not know %s, adding it", network.name)
            try:
                await provider.request(
                    "wallet_addEthereumChain", [network.add_chain_params()]
                )
                await provider.request("wallet_switchEthereumChain", switch_params)
            except Exception as add_error:
                raise normalize_error(add_error, during="switch") from add_error

        self.wallet = self.wallet.model_copy(update={"chain_id": await self.chain_id()})
        return self.wallet

    def attach(
        self,
        on_accounts_changed: Callable[[list[str]], None] | None = None,
        on_chain_changed: Callable[[Any], None] | None = None,
    ) -> None:
        """
        Subscribe to account and chain change events. Handlers default to this
        client's own; a dispatcher passes handlers that route through it.
        """
        if self._handlers is not None or self.provider is None:
            return
        self._handlers = (
            on_accounts_changed or self.handle_accounts_changed,
            on_chain_changed or self.handle_chain_changed,
        )
        self.provider.on("accountsChanged", self._handlers[0])
        self.provider.on("chainChanged", self._handlers[1])

    def detach(self) -> None:
        if self._handlers is None or self.provider is None:
            return
        self.provider.remove_listener("accountsChanged", self._handlers[0])
        self.provider.remove_listener("chainChanged", self._handlers[1])
        self._handlers = None

    async def __aenter__(self):
        self.attach()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.detach()
        return False

    def handle_accounts_changed(self, accounts: list[str]) -> None:
        if not accounts:
            logger.info("wallet reported no accounts, disconnecting")
            self.wallet = WalletSession()
            return
        self.wallet = self.wallet.model_copy(update={"account": accounts[0]})

    def handle_chain_changed(self, chain_id: Any) -> None:
        self.wallet = self.wallet.model_copy(
            update={"chain_id": parse_chain_id(chain_id)}
        )

    async def get_leaderboard(self) -> list[LeaderboardEntry]:
        """Leaderboard in contract order, without unfilled (zero address) slots."""
        contract = self._require_contract()
        try:
            players, scores = await contract.get_leaderboard()
        except Exception as e:
            raise normalize_error(e, during="read") from e
        return [
            LeaderboardEntry(player=player, score=int(score))
            for player, score in zip(players, scores)
            if player.lower() != ZERO_ADDRESS
        ]

    async def get_my_best_score(self, address: str) -> int:
        contract = self._require_contract()
        try:
            return int(await contract.get_my_best_score(address))
        except Exception as e:
            raise normalize_error(e, during="read") from e

    async def submit_score(self, score: int, account: str) -> dict:
        """Send submitScore from `account` and wait for the receipt."""
        contract = self._require_contract()
        try:
            tx_hash = await contract.submit_score(score, account)
            logger.info("submitted score %d in %s, waiting for receipt", score, tx_hash)
            receipt = await contract.wait_for_receipt(tx_hash)
        except Exception as e:
            raise normalize_error(e, during="submit") from e
        if receipt.get("status", 1) == 0:
            raise ContractReverted(f"transaction {tx_hash} reverted")
        return dict(receipt)


class RpcWalletProvider:
    """
    Wallet provider backed by a JSON-RPC node with unlocked accounts.

    There is no push channel over HTTP, so account and chain events are only
    delivered when `emit` is called.
    """

    def __init__(self, rpc_url: str):
        self.rpc_url = rpc_url
        self._provider = AsyncWeb3.AsyncHTTPProvider(rpc_url)
        self._listeners: dict[str, list[Callable[..., None]]] = defaultdict(list)

    async def request(self, method: str, params: list | None = None) -> Any:
        if method == "eth_requestAccounts":
            # plain nodes expose their unlocked accounts through eth_accounts
            method = "eth_accounts"
        response = await self._provider.make_request(method, params or [])
        error = response.get("error")
        if error:
            if isinstance(error, dict):
                raise ProviderRpcError(
                    error.get("code", -32603), error.get("message", ""), error.get("data")
                )
            raise ProviderRpcError(-32603, str(error))
        return response.get("result")

    def on(self, event: str, handler: Callable[..., None]) -> None:
        self._listeners[event].append(handler)

    def remove_listener(self, event: str, handler: Callable[..., None]) -> None:
        if handler in self._listeners[event]:
            self._listeners[event].remove(handler)

    def emit(self, event: str, *args) -> None:
        for handler in list(self._listeners[event]):
            handler(*args)


class Web3ScoreBoard:
    """ScoreBoard contract bound through web3.py."""

    def __init__(self, rpc_url: str, address: str, receipt_timeout: float = 120.0):
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self.contract = self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address), abi=SCOREBOARD_ABI
        )
        self.receipt_timeout = receipt_timeout

    async def submit_score(self, score: int, sender: str) -> str:
        tx_hash = await self.contract.functions.submitScore(score).transact(
            {"from": AsyncWeb3.to_checksum_address(sender)}
        )
        return AsyncWeb3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str) -> dict:
        receipt = await self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.receipt_timeout
        )
        receipt = dict(receipt)
        receipt["transactionHash"] = AsyncWeb3.to_hex(receipt["transactionHash"])
        return receipt

    async def get_leaderboard(self) -> tuple[list[str], list[int]]:
        players, scores = await self.contract.functions.getLeaderboard().call()
        return list(players), [int(s) for s in scores]

    async def get_my_best_score(self, address: str) -> int:
        return await self.contract.functions.getMyBestScore(
            AsyncWeb3.to_checksum_address(address)
        ).call()


def build_ledger_client(config: LedgerConfig) -> LedgerClient:
    """
    Wire a LedgerClient from configuration. Without an RPC URL there is no
    wallet; without a contract address the contract features stay disabled.
    """
    if not config.rpc_url:
        return LedgerClient(None, None, config)

    provider = RpcWalletProvider(config.rpc_url)
    contract = None
    if config.enabled:
        contract = Web3ScoreBoard(
            config.rpc_url, config.contract_address, config.receipt_timeout
        )
    return LedgerClient(provider, contract, config)
