"""Single entry point for inbound events: keyboard input and wallet notifications."""

from dataclasses import dataclass

from game import Direction
from ledger import LedgerClient
from session import GameSession

KEY_DIRECTIONS: dict[str, Direction] = {
    "ArrowUp": Direction.UP,
    "ArrowDown": Direction.DOWN,
    "ArrowLeft": Direction.LEFT,
    "ArrowRight": Direction.RIGHT,
    "w": Direction.UP,
    "s": Direction.DOWN,
    "a": Direction.LEFT,
    "d": Direction.RIGHT,
    # terminal escape sequences
    "\x1b[A": Direction.UP,
    "\x1b[B": Direction.DOWN,
    "\x1b[D": Direction.LEFT,
    "\x1b[C": Direction.RIGHT,
}


def direction_for_key(key: str) -> Direction | None:
    if key in KEY_DIRECTIONS:
        return KEY_DIRECTIONS[key]
    return KEY_DIRECTIONS.get(key.lower())


@dataclass(frozen=True)
class KeyPressed:
    direction: Direction


@dataclass(frozen=True)
class NewGame:
    pass


@dataclass(frozen=True)
class AccountsChanged:
    accounts: tuple[str, ...]


@dataclass(frozen=True)
class ChainChanged:
    chain_id: int | str


type Event = KeyPressed | NewGame | AccountsChanged | ChainChanged


class Dispatcher:
    """
    Routes events to the game session or the ledger client. Returns True when
    the event changed state the caller should redraw.
    """

    def __init__(self, session: GameSession, ledger: LedgerClient | None = None):
        self.session = session
        self.ledger = ledger

    def dispatch(self, event: Event) -> bool:
        match event:
            case KeyPressed(direction=direction):
                return self.session.apply_move(direction)
            case NewGame():
                self.session.reset()
                return True
            case AccountsChanged(accounts=accounts):
                if self.ledger is None:
                    return False
                self.ledger.handle_accounts_changed(list(accounts))
                return True
            case ChainChanged(chain_id=chain_id):
                if self.ledger is None:
                    return False
                self.ledger.handle_chain_changed(chain_id)
                return True
        raise TypeError(f"unknown event: {event!r}")

    def attach(self) -> None:
        """Route the wallet provider's account and chain events through `dispatch`."""
        if self.ledger is None:
            return
        self.ledger.attach(
            on_accounts_changed=lambda accounts: self.dispatch(
                AccountsChanged(tuple(accounts or ()))
            ),
            on_chain_changed=lambda chain_id: self.dispatch(ChainChanged(chain_id)),
        )

    def detach(self) -> None:
        if self.ledger is not None:
            self.ledger.detach()

    async def __aenter__(self):
        self.attach()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.detach()
        return False
