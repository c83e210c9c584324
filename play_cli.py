"""
CLI 1024 game client for terminal play, with optional on-chain score submission.
Run with: python play_cli.py [command]
"""

import asyncio
import logging
import random
import sys
import termios
import tty
from pathlib import Path
from typing import Optional

import typer

from config import AppConfig
from coordinator import ScoreSubmissionCoordinator
from dispatcher import Dispatcher, KeyPressed, NewGame, direction_for_key
from game import format_grid
from ledger import LedgerClient, LedgerError, build_ledger_client
from logger import SessionLogger
from session import BestScoreStore, GameSession

CTRL_C = "\x03"

app = typer.Typer(help="Play 1024 in the terminal and record scores on-chain")


def get_key():
    """Get a single keypress from the terminal."""
    fd = sys.stdin.fileno()
    old_settings = termios.tcgetattr(fd)
    try:
        tty.setraw(sys.stdin.fileno())
        ch = sys.stdin.read(1)
        # Handle arrow keys (they send 3 characters: ESC [ A/B/C/D)
        if ch == "\x1b":
            ch += sys.stdin.read(2)
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
    return ch


def clear_screen():
    """Clear the terminal screen."""
    typer.echo("\033[2J\033[H", nl=False)


def short_address(address: str | None) -> str:
    if not address:
        return ""
    return f"{address[:6]}…{address[-4:]}"


def draw_board(
    session: GameSession,
    coordinator: ScoreSubmissionCoordinator | None = None,
    message: str = "",
):
    """Draw the game board and wallet status in the terminal."""
    clear_screen()

    state = session.state
    typer.echo("=" * 30)
    typer.echo("         1024 GAME")
    typer.echo("=" * 30)
    typer.echo(f"Score: {state.score}    Best: {state.best_score}")

    if coordinator is not None:
        ledger = coordinator.ledger
        if ledger.wallet.connected:
            network = ledger.network_name() or f"unsupported chain {ledger.wallet.chain_id}"
            typer.echo(f"Wallet: {short_address(ledger.wallet.account)} on {network}")
        if coordinator.my_best_on_chain:
            typer.echo(f"On-chain best: {coordinator.my_best_on_chain}")
    typer.echo()
    typer.echo(format_grid(state.grid))
    typer.echo()

    if state.over:
        typer.echo("GAME OVER! Press R to restart or Q to quit.")
    elif state.won:
        typer.echo(f"You reached {state.target}! Keep going or press R.")

    if message:
        typer.echo(message)

    typer.echo("\nControls:")
    typer.echo("  ↑/W: Up    ↓/S: Down")
    typer.echo("  ←/A: Left  →/D: Right")
    typer.echo("  R: Restart  Q: Quit")
    if coordinator is not None and coordinator.can_offer(state.score):
        typer.echo("  U: Submit score on-chain")


def _build_session(config: AppConfig) -> GameSession:
    rng = random.Random(config.game.seed)
    store = BestScoreStore(config.game.best_score_path)
    return GameSession(rng=rng, store=store, target=config.game.target)


async def _connect(ledger: LedgerClient, log: SessionLogger) -> str:
    try:
        wallet = await ledger.connect()
    except LedgerError as e:
        log.log("wallet", {"connected": False, "reason": e.kind})
        return f"Wallet not connected: {e.message}"
    log.log("wallet", {"connected": True, "account": wallet.account, "chain_id": wallet.chain_id})
    return f"Connected {short_address(wallet.account)}"


async def _play(config: AppConfig, log: SessionLogger, use_wallet: bool) -> None:
    session = _build_session(config)
    ledger = build_ledger_client(config.ledger)
    coordinator = ScoreSubmissionCoordinator(ledger) if ledger.enabled else None
    dispatcher = Dispatcher(session, ledger)

    message = "Welcome! Use arrow keys or WASD to play."
    async with dispatcher:
        if coordinator is not None and use_wallet:
            message = await _connect(ledger, log)
            await coordinator.refresh()

        draw_board(session, coordinator, message)
        while True:
            key = await asyncio.to_thread(get_key)

            # raw mode delivers Ctrl-C as a plain character
            if key.lower() == "q" or key == CTRL_C:
                clear_screen()
                typer.echo("Thanks for playing!")
                log.log("quit", {"score": session.score, "best": session.best_score})
                return

            if key.lower() == "r":
                dispatcher.dispatch(NewGame())
                log.log("reset", {"best": session.best_score})
                draw_board(session, coordinator, "Game restarted!")
                continue

            if key.lower() == "u" and coordinator is not None:
                if not coordinator.can_offer(session.score):
                    draw_board(session, coordinator, "Nothing to submit: score does not beat your on-chain best.")
                    continue
                draw_board(session, coordinator, "Submitting score, confirm in your wallet…")
                result = await coordinator.submit(session.score)
                log.log("submission", result.model_dump())
                if result.ok:
                    draw_board(session, coordinator, f"Score {result.score} recorded on-chain.")
                else:
                    draw_board(session, coordinator, f"Submission failed: {result.error}")
                continue

            direction = direction_for_key(key)
            if direction is None:
                continue

            if not dispatcher.dispatch(KeyPressed(direction)):
                draw_board(session, coordinator, "Invalid move! Try another direction.")
                continue

            state = session.state
            log.log("move", {"direction": direction.value, "score": state.score, "moves": state.moves})
            if state.over:
                log.log("game_over", {"score": state.score, "best": state.best_score, "moves": state.moves})
            draw_board(session, coordinator)


@app.command()
def play(
    seed: Optional[int] = typer.Option(None, help="Seed for tile spawning"),
    best_file: Optional[Path] = typer.Option(None, help="File holding the local best score"),
    log_dir: Optional[Path] = typer.Option(None, help="Directory for JSONL session logs"),
    wallet: bool = typer.Option(True, help="Connect the wallet when a scoreboard is configured"),
):
    """Play an interactive game in the terminal."""
    config = AppConfig.from_env()
    if seed is not None:
        config.game.seed = seed
    if best_file is not None:
        config.game.best_score_path = best_file

    with SessionLogger(log_dir=log_dir) as log:
        asyncio.run(_play(config, log, use_wallet=wallet))


@app.command()
def leaderboard():
    """Show the on-chain leaderboard."""
    config = AppConfig.from_env()
    ledger = build_ledger_client(config.ledger)
    if not ledger.enabled:
        typer.echo("No scoreboard configured. Set SCOREBOARD_ADDRESS and LEDGER_RPC_URL.")
        raise typer.Exit(code=1)

    try:
        entries = asyncio.run(ledger.get_leaderboard())
    except LedgerError as e:
        typer.echo(f"Could not read leaderboard: {e.message}")
        raise typer.Exit(code=1)

    if not entries:
        typer.echo("No scores recorded yet.")
        return
    for rank, entry in enumerate(entries, start=1):
        typer.echo(f"{rank:>3}. {short_address(entry.player):<14} {entry.score:>8}")


@app.command()
def best():
    """Show the local best score."""
    config = AppConfig.from_env()
    typer.echo(BestScoreStore(config.game.best_score_path).load())


@app.command("switch-network")
def switch_network(chain_id: int = typer.Argument(..., help="Target chain id, e.g. 8453")):
    """Ask the wallet to switch to a supported network."""
    config = AppConfig.from_env()
    ledger = build_ledger_client(config.ledger)

    try:
        wallet = asyncio.run(ledger.switch_network(chain_id))
    except LedgerError as e:
        typer.echo(f"Could not switch network ({e.kind}): {e.message}")
        raise typer.Exit(code=1)
    typer.echo(f"Wallet is on {ledger.network_name(wallet.chain_id)} ({wallet.chain_id})")


def main():
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.WARNING,
    )
    app()


if __name__ == "__main__":
    main()
