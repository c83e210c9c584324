"""
Score submission coordinator.

Sequences wallet/network checks, the submitScore transaction and the refresh
reads that follow it:

    IDLE -> SUBMITTING -> (CONFIRMED | FAILED) -> IDLE

Every failure is recovered here and returned as a SubmissionResult; nothing
raised by the ledger reaches the caller.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable

from pydantic import BaseModel

from ledger import (
    InvalidScore,
    LeaderboardEntry,
    LedgerClient,
    LedgerDisabled,
    LedgerError,
    NoWalletAvailable,
    SubmissionInProgress,
    WrongNetwork,
    normalize_error,
)

logger = logging.getLogger(__name__)


class SubmissionState(Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class SubmissionResult(BaseModel):
    ok: bool
    score: int
    reason: str | None = None
    error: str | None = None
    tx_hash: str | None = None


class SubmissionAttempt(BaseModel):
    score: int
    status: str = "pending"  # pending, confirmed or failed
    error: str | None = None


def should_offer_submission(score: int, best_on_chain: int | None) -> bool:
    """Only offer a submission that would raise the on-chain best."""
    return score > 0 and score > (best_on_chain or 0)


class ScoreSubmissionCoordinator:
    """
    Owns at most one outstanding submission. A second `submit` while one is in
    flight is declined rather than queued. The account and chain used for a
    submission are snapshot when it starts, so wallet events arriving during
    confirmation cannot redirect it.

    `submit` does not compare the score with the on-chain best; callers gate
    with `should_offer_submission` before offering it.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        on_state_change: Callable[[SubmissionState], None] | None = None,
    ):
        self.ledger = ledger
        self.on_state_change = on_state_change
        self.state = SubmissionState.IDLE
        self.leaderboard: list[LeaderboardEntry] = []
        self.my_best_on_chain: int | None = None
        self.last_attempt: SubmissionAttempt | None = None

    @property
    def is_submitting(self) -> bool:
        return self.state is SubmissionState.SUBMITTING

    def can_offer(self, score: int) -> bool:
        return (
            not self.is_submitting
            and self.ledger.enabled
            and self.ledger.wallet.connected
            and self.ledger.is_accepted_network()
            and should_offer_submission(score, self.my_best_on_chain)
        )

    def _transition(self, state: SubmissionState) -> None:
        self.state = state
        logger.debug("submission state -> %s", state.value)
        if self.on_state_change is not None:
            self.on_state_change(state)

    def _check_preconditions(self, score: int) -> None:
        if self.is_submitting:
            raise SubmissionInProgress()
        if not self.ledger.wallet.connected:
            raise NoWalletAvailable()
        if not self.ledger.enabled:
            raise LedgerDisabled()
        if not self.ledger.is_accepted_network():
            raise WrongNetwork(
                f"chain {self.ledger.wallet.chain_id} is not a supported network"
            )
        if score <= 0:
            raise InvalidScore()

    async def submit(self, score: int) -> SubmissionResult:
        try:
            self._check_preconditions(score)
        except LedgerError as e:
            logger.info("submission of %d declined: %s", score, e.message)
            return SubmissionResult(ok=False, score=score, reason=e.kind, error=e.message)

        wallet = self.ledger.wallet
        self.last_attempt = SubmissionAttempt(score=score)
        self._transition(SubmissionState.SUBMITTING)
        try:
            receipt = await self.ledger.submit_score(score, wallet.account)
        except asyncio.CancelledError:
            # a caller timeout or task cancel still ends the attempt
            logger.warning("submission of %d cancelled", score)
            self._fail(score, "submission cancelled")
            raise
        except Exception as e:
            error = normalize_error(e, during="submit")
            logger.warning("submission of %d failed (%s): %s", score, error.kind, error.message)
            self._fail(score, error.message)
            return SubmissionResult(
                ok=False, score=score, reason=error.kind, error=error.message
            )

        self.last_attempt = SubmissionAttempt(score=score, status="confirmed")
        self._transition(SubmissionState.CONFIRMED)
        try:
            await self.refresh(account=wallet.account)
        finally:
            self._transition(SubmissionState.IDLE)

        tx_hash = receipt.get("transactionHash")
        return SubmissionResult(
            ok=True,
            score=score,
            tx_hash=tx_hash if isinstance(tx_hash, str) else None,
        )

    def _fail(self, score: int, message: str) -> None:
        self.last_attempt = SubmissionAttempt(score=score, status="failed", error=message)
        self._transition(SubmissionState.FAILED)
        self._transition(SubmissionState.IDLE)

    async def refresh_my_best(self, account: str | None = None) -> int | None:
        account = account or self.ledger.wallet.account
        if not self.ledger.enabled or account is None:
            return self.my_best_on_chain
        try:
            self.my_best_on_chain = await self.ledger.get_my_best_score(account)
        except LedgerError as e:
            logger.warning("could not read best score for %s: %s", account, e.message)
        return self.my_best_on_chain

    async def refresh_leaderboard(self) -> list[LeaderboardEntry]:
        if not self.ledger.enabled:
            return self.leaderboard
        try:
            self.leaderboard = await self.ledger.get_leaderboard()
        except LedgerError as e:
            logger.warning("could not read leaderboard: %s", e.message)
        return self.leaderboard

    async def refresh(self, account: str | None = None) -> None:
        await self.refresh_my_best(account)
        await self.refresh_leaderboard()
