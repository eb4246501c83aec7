"""Pure reward-session transitions.

Every function takes the current session and returns the next one. Invalid
transitions return the session unchanged.
"""

from scholar_hub.models.reward import RewardSession, RewardState

DEFAULT_VERIFICATION_SECONDS = 5


def trigger(session: RewardSession, amount: int) -> RewardSession:
    """Open a fresh pending session, discarding whatever was open."""
    if amount < 0:
        raise ValueError("reward amount must be non-negative")
    return RewardSession(
        generation=session.generation + 1,
        state=RewardState.PENDING,
        pending_points=amount,
    )


def click_verify(
    session: RewardSession, seconds: int = DEFAULT_VERIFICATION_SECONDS
) -> RewardSession:
    if session.state != RewardState.PENDING:
        return session
    return session.model_copy(
        update={
            "state": RewardState.VERIFYING,
            "has_verified": True,
            "countdown_seconds_remaining": seconds,
        }
    )


def tick(session: RewardSession) -> RewardSession:
    if session.state != RewardState.VERIFYING:
        return session
    if session.countdown_seconds_remaining > 1:
        return session.model_copy(
            update={"countdown_seconds_remaining": session.countdown_seconds_remaining - 1}
        )
    return session.model_copy(
        update={"state": RewardState.CLAIMABLE, "countdown_seconds_remaining": 0}
    )


def claim(session: RewardSession) -> tuple[RewardSession, int]:
    """Close a claimable session.

    Returns:
        The idle session and the number of points to credit (0 when the
        session was not claimable, in which case it is returned unchanged).
    """
    if session.state != RewardState.CLAIMABLE:
        return session, 0
    return RewardSession(generation=session.generation), session.pending_points


def dismiss(session: RewardSession) -> RewardSession:
    """Close any open session without crediting points."""
    if session.state == RewardState.IDLE:
        return session
    return RewardSession(generation=session.generation)
