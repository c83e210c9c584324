"""
Game session: turn semantics on top of the grid engine.

The transition functions (`start_session`, `apply_move`, `reset_session`) are
pure and return new `SessionState` values. `GameSession` hosts the current
state together with the random source and the persisted best score.
"""

import json
import logging
import random
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from game import (
    TARGET,
    Direction,
    Grid,
    grid_sum,
    grids_equal,
    has_any_legal_move,
    max_tile_value,
    move,
    new_grid,
    spawn_random_tile,
)

logger = logging.getLogger(__name__)

BEST_SCORE_KEY = "1024-best"


class SessionStatus(Enum):
    PLAYING = "playing"
    WON = "won"
    OVER = "over"


@dataclass(frozen=True)
class SessionState:
    grid: Grid
    score: int
    best_score: int
    won: bool = False
    over: bool = False
    moves: int = 0
    target: int = TARGET

    @property
    def status(self) -> SessionStatus:
        # won and over can both be set; a finished game reports OVER
        if self.over:
            return SessionStatus.OVER
        if self.won:
            return SessionStatus.WON
        return SessionStatus.PLAYING

    def to_dict(self) -> dict:
        return {
            "grid": [list(row) for row in self.grid],
            "score": self.score,
            "best_score": self.best_score,
            "won": self.won,
            "over": self.over,
            "moves": self.moves,
            "target": self.target,
            "status": self.status.value,
        }


def start_session(
    rng: random.Random, best_score: int = 0, target: int = TARGET
) -> SessionState:
    """A fresh session with two random tiles."""
    grid = new_grid(rng)
    score = grid_sum(grid)
    return SessionState(
        grid=grid,
        score=score,
        best_score=best_score,
        target=target,
    )


def apply_move(
    state: SessionState, direction: Direction, rng: random.Random
) -> SessionState:
    """
    Apply one move and return the next state.

    A null move (no tile can slide or merge) returns `state` itself: no tile is
    spawned and no turn is consumed. A finished session accepts no moves.
    """
    if state.over:
        return state

    candidate = move(state.grid, direction)
    if grids_equal(state.grid, candidate):
        return state

    grid = spawn_random_tile(candidate, rng)
    score = grid_sum(grid)
    return replace(
        state,
        grid=grid,
        score=score,
        best_score=max(state.best_score, score),
        won=state.won or max_tile_value(grid) >= state.target,
        over=not has_any_legal_move(grid),
        moves=state.moves + 1,
    )


def reset_session(state: SessionState, rng: random.Random) -> SessionState:
    """
    Start over with two fresh tiles and a score of 0, keeping the best score.
    The score catches up with the grid on the first accepted move.
    """
    fresh = start_session(rng, best_score=state.best_score, target=state.target)
    return replace(fresh, score=0)


class BestScoreStore:
    """
    Local persistence for the best score: a single integer stored under
    `BEST_SCORE_KEY` in a JSON file. Reads and writes never raise; a missing or
    unreadable file counts as 0.
    """

    def __init__(self, path: str | Path | None):
        self.path = Path(path) if path is not None else None

    def load(self) -> int:
        if self.path is None:
            return 0
        try:
            with open(self.path) as fp:
                data = json.load(fp)
            value = int(data.get(BEST_SCORE_KEY, 0))
        except FileNotFoundError:
            return 0
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("could not read best score from %s: %s", self.path, e)
            return 0
        return max(value, 0)

    def save(self, value: int) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as fp:
                json.dump({BEST_SCORE_KEY: int(value)}, fp)
        except OSError as e:
            logger.warning("could not write best score to %s: %s", self.path, e)


class GameSession:
    """
    Single-owner host for the session state.

    Usage:
        session = GameSession(rng=random.Random(7), store=BestScoreStore(path))
        session.apply_move(Direction.LEFT)
        session.state.score
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        store: BestScoreStore | None = None,
        target: int = TARGET,
    ):
        self.rng = rng if rng is not None else random.Random()
        self.store = store if store is not None else BestScoreStore(None)
        self.state = start_session(
            self.rng, best_score=self.store.load(), target=target
        )

    @property
    def grid(self) -> Grid:
        return self.state.grid

    @property
    def score(self) -> int:
        return self.state.score

    @property
    def best_score(self) -> int:
        return self.state.best_score

    @property
    def won(self) -> bool:
        return self.state.won

    @property
    def over(self) -> bool:
        return self.state.over

    def apply_move(self, direction: Direction) -> bool:
        """
        Move in `direction`. Returns True if the grid changed, False for a null
        move or a finished game.
        """
        previous = self.state
        self.state = apply_move(previous, direction, self.rng)
        if self.state is previous:
            return False
        self._persist_best(previous.best_score)
        return True

    def reset(self) -> None:
        self.state = reset_session(self.state, self.rng)

    def _persist_best(self, previous_best: int) -> None:
        if self.state.best_score > previous_best:
            self.store.save(self.state.best_score)
