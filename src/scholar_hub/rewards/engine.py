"""Reward engine: owns the live reward session, its countdown timer and side effects."""

import asyncio
from collections.abc import Callable
from typing import Protocol

import structlog

from scholar_hub.models.reward import RewardSession, RewardState
from scholar_hub.rewards import transitions
from scholar_hub.storage.repositories import PointsLedger

logger = structlog.get_logger()

TICK_INTERVAL_SECONDS = 1.0


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def loop_scheduler(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Schedule ``callback`` on the running asyncio loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


class RewardEngine:
    """Drives one reward session at a time through verify-then-claim.

    The balance changes only in :meth:`claim`. The countdown advances only
    when the scheduled one-second timer fires; there is no way to skip it.

    Args:
        ledger: Points balance to credit on claim.
        open_link: Side effect run once per verification click.
        scheduler: ``(delay, callback) -> handle`` used for the countdown.
        verification_seconds: Countdown length.
    """

    def __init__(
        self,
        ledger: PointsLedger,
        open_link: Callable[[], None] | None = None,
        scheduler: Scheduler = loop_scheduler,
        verification_seconds: int = transitions.DEFAULT_VERIFICATION_SECONDS,
    ):
        self.ledger = ledger
        self._open_link = open_link
        self._schedule = scheduler
        self.verification_seconds = verification_seconds
        self._session = RewardSession()
        self._timer: TimerHandle | None = None
        self._on_claim: Callable[[], None] | None = None
        self._claim_listeners: list[Callable[[int], None]] = []

    @property
    def session(self) -> RewardSession:
        return self._session

    @property
    def timer_active(self) -> bool:
        return self._timer is not None

    def on_claimed(self, listener: Callable[[int], None]) -> None:
        """Register a callback receiving the new balance after each credited claim."""
        self._claim_listeners.append(listener)

    def trigger(self, amount: int, on_claim: Callable[[], None] | None = None) -> RewardSession:
        """Open a pending session for ``amount`` points.

        Any open session is discarded, including its countdown.

        Args:
            amount: Points credited on claim.
            on_claim: Optional action run when this session is claimed.
        """
        self._cancel_timer()
        previous = self._session
        self._session = transitions.trigger(self._session, amount)
        self._on_claim = on_claim
        if previous.is_open:
            logger.info("reward_session_replaced", discarded_points=previous.pending_points)
        logger.info("reward_triggered", amount=amount, generation=self._session.generation)
        return self._session

    def click_verify(self) -> RewardSession:
        if self._session.state != RewardState.PENDING:
            return self._session
        self._session = transitions.click_verify(self._session, self.verification_seconds)
        if self._open_link is not None:
            self._open_link()
        self._schedule_tick()
        logger.info("reward_verification_started", seconds=self.verification_seconds)
        return self._session

    def claim(self) -> int:
        """Credit the pending points if claimable.

        Returns:
            Points credited (0 when nothing was claimable).
        """
        if self._session.state != RewardState.CLAIMABLE:
            return 0
        self._session, amount = transitions.claim(self._session)
        on_claim, self._on_claim = self._on_claim, None
        if amount > 0:
            balance = self.ledger.credit(amount)
            for listener in self._claim_listeners:
                listener(balance)
        if on_claim is not None:
            on_claim()
        logger.info("reward_claimed", amount=amount)
        return amount

    def dismiss(self) -> RewardSession:
        """Close the session, forfeiting its points. Cancels a running countdown."""
        if self._session.is_open:
            logger.info(
                "reward_dismissed",
                state=self._session.state.value,
                forfeited_points=self._session.pending_points,
            )
        self._cancel_timer()
        self._on_claim = None
        self._session = transitions.dismiss(self._session)
        return self._session

    def _schedule_tick(self) -> None:
        generation = self._session.generation
        self._timer = self._schedule(TICK_INTERVAL_SECONDS, lambda: self._on_tick(generation))

    def _on_tick(self, generation: int) -> None:
        if generation != self._session.generation or self._session.state != RewardState.VERIFYING:
            # Stale timer from a replaced or closed session
            return
        self._timer = None
        self._session = transitions.tick(self._session)
        if self._session.state == RewardState.VERIFYING:
            self._schedule_tick()
        else:
            logger.info("reward_claimable", amount=self._session.pending_points)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
