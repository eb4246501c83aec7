"""Serializable snapshot of application state handed to views."""

from pydantic import BaseModel, Field

from scholar_hub.models.profile import ProfileRecord
from scholar_hub.models.reward import RewardSession
from scholar_hub.models.study import Achievement


class AppState(BaseModel):
    points: int
    profile: ProfileRecord
    reward: RewardSession = Field(default_factory=RewardSession)
    unlocked_badge: Achievement | None = None
    signed_in: bool = False
