"""Reward session model for the verify-then-claim points flow."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, computed_field


class RewardState(StrEnum):
    """Reward session lifecycle states."""

    IDLE = "idle"
    PENDING = "pending"
    VERIFYING = "verifying"
    CLAIMABLE = "claimable"


class RewardSession(BaseModel):
    """Immutable snapshot of the single live reward session.

    ``generation`` increases on every trigger so that timer callbacks bound
    to an older session can recognise themselves as stale.
    """

    model_config = ConfigDict(frozen=True)

    generation: int = 0
    state: RewardState = RewardState.IDLE
    pending_points: int = 0
    has_verified: bool = False
    countdown_seconds_remaining: int = 0

    @computed_field
    @property
    def is_open(self) -> bool:
        return self.state != RewardState.IDLE
