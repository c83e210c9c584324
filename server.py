"""
JSON server hosting a single game session.
Serves the session state and the on-chain leaderboard to a rendering frontend.

Usage: python server.py [--port PORT] [--seed SEED]
"""

import argparse
import asyncio
import logging
import random

from flask import Flask, abort, jsonify, request

from config import AppConfig
from game import Direction
from ledger import LedgerClient, LedgerError, build_ledger_client
from session import BestScoreStore, GameSession

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig | None = None,
    session: GameSession | None = None,
    ledger: LedgerClient | None = None,
) -> Flask:
    config = config or AppConfig.from_env()
    if session is None:
        session = GameSession(
            rng=random.Random(config.game.seed),
            store=BestScoreStore(config.game.best_score_path),
            target=config.game.target,
        )
    if ledger is None:
        ledger = build_ledger_client(config.ledger)

    app = Flask(__name__)
    app.config["SESSION"] = session
    app.config["LEDGER"] = ledger

    @app.route("/api/state")
    def state():
        """Return the current session state."""
        return jsonify(session.state.to_dict())

    @app.route("/api/move", methods=["POST"])
    def move():
        """Apply a move. Null moves are not errors: `moved` is false."""
        payload = request.get_json(silent=True) or {}
        try:
            direction = Direction(str(payload.get("direction", "")).lower())
        except ValueError:
            abort(400, "direction must be one of up, down, left, right")

        moved = session.apply_move(direction)
        return jsonify({"moved": moved, **session.state.to_dict()})

    @app.route("/api/reset", methods=["POST"])
    def reset():
        """Start a new game, keeping the best score."""
        session.reset()
        return jsonify(session.state.to_dict())

    @app.route("/api/leaderboard")
    def leaderboard():
        """Return the on-chain leaderboard, empty when no contract is configured."""
        if not ledger.enabled:
            return jsonify({"enabled": False, "entries": []})

        try:
            entries = asyncio.run(ledger.get_leaderboard())
        except LedgerError as e:
            logger.warning("leaderboard read failed: %s", e.message)
            return jsonify({"enabled": True, "entries": [], "error": e.message}), 502

        return jsonify({
            "enabled": True,
            "entries": [entry.model_dump() for entry in entries],
        })

    return app


def main():
    parser = argparse.ArgumentParser(description="1024 game session server")
    parser.add_argument(
        "--port", type=int, default=5050, help="Port to run server on (default: 5050)"
    )
    parser.add_argument(
        "--seed", type=int, default=None, help="Seed for tile spawning"
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    config = AppConfig.from_env()
    if args.seed is not None:
        config.game.seed = args.seed

    app = create_app(config)
    print(f"Starting game server...")
    print(f"  Scoreboard: {config.ledger.contract_address or 'disabled'}")
    print(f"  Open http://localhost:{args.port}/api/state")

    app.run(host="0.0.0.0", port=args.port, debug=False)


if __name__ == "__main__":
    main()
