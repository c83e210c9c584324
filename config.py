"""Runtime configuration for the game and the on-chain scoreboard."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

from game import TARGET


class NetworkConfig(BaseModel):
    """Parameters a wallet needs to switch to (or add) a network."""

    chain_id: int
    name: str
    rpc_urls: list[str]
    block_explorer_urls: list[str] = Field(default_factory=list)
    currency_name: str = "ETH"
    currency_symbol: str = "ETH"
    currency_decimals: int = 18

    @property
    def hex_chain_id(self) -> str:
        return hex(self.chain_id)

    def add_chain_params(self) -> dict:
        """Payload for `wallet_addEthereumChain`."""
        return {
            "chainId": self.hex_chain_id,
            "chainName": self.name,
            "nativeCurrency": {
                "name": self.currency_name,
                "symbol": self.currency_symbol,
                "decimals": self.currency_decimals,
            },
            "rpcUrls": self.rpc_urls,
            "blockExplorerUrls": self.block_explorer_urls,
        }


BASE_MAINNET = NetworkConfig(
    chain_id=8453,
    name="Base Mainnet",
    rpc_urls=["https://mainnet.base.org"],
    block_explorer_urls=["https://basescan.org"],
)

BASE_SEPOLIA = NetworkConfig(
    chain_id=84532,
    name="Base Sepolia",
    rpc_urls=["https://sepolia.base.org"],
    block_explorer_urls=["https://sepolia-explorer.base.org"],
)


class LedgerConfig(BaseModel):
    # empty address disables submission and the leaderboard
    contract_address: str = ""
    rpc_url: str | None = None
    networks: list[NetworkConfig] = Field(
        default_factory=lambda: [BASE_MAINNET, BASE_SEPOLIA]
    )
    receipt_timeout: float = 120.0

    @property
    def enabled(self) -> bool:
        return bool(self.contract_address)

    @property
    def accepted_chain_ids(self) -> set[int]:
        return {n.chain_id for n in self.networks}

    def network(self, chain_id: int | None) -> NetworkConfig | None:
        for n in self.networks:
            if n.chain_id == chain_id:
                return n
        return None


class GameConfig(BaseModel):
    target: int = TARGET
    seed: int | None = None
    best_score_path: Path = Path.home() / ".game1024" / "best.json"


class AppConfig(BaseModel):
    game: GameConfig = Field(default_factory=GameConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "AppConfig":
        """
        Build the configuration from environment variables.

        SCOREBOARD_ADDRESS: contract address (features disabled when unset)
        LEDGER_RPC_URL: JSON-RPC endpoint of the wallet node
        BEST_SCORE_PATH: file holding the local best score
        GAME_TARGET: winning tile value
        GAME_SEED: seed for tile spawning
        """
        env = os.environ if environ is None else environ

        game = GameConfig()
        if env.get("BEST_SCORE_PATH"):
            game.best_score_path = Path(env["BEST_SCORE_PATH"])
        if env.get("GAME_TARGET"):
            game.target = int(env["GAME_TARGET"])
        if env.get("GAME_SEED"):
            game.seed = int(env["GAME_SEED"])

        ledger = LedgerConfig(
            contract_address=env.get("SCOREBOARD_ADDRESS", "").strip(),
            rpc_url=env.get("LEDGER_RPC_URL") or None,
        )
        return cls(game=game, ledger=ledger)
