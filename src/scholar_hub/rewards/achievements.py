"""Badge unlocking."""

from datetime import datetime

import structlog

from scholar_hub.models.study import Achievement, AchievementKind

logger = structlog.get_logger()


def unlock_achievements(
    achievements: list[Achievement], kind: AchievementKind, value: int
) -> tuple[list[Achievement], list[Achievement]]:
    """Unlock every locked badge of ``kind`` whose requirement ``value`` meets.

    Returns:
        The updated list and the badges unlocked by this call.
    """
    updated = []
    unlocked = []
    for achievement in achievements:
        if (
            achievement.type == kind
            and not achievement.is_unlocked
            and value >= achievement.requirement
        ):
            achievement = achievement.model_copy(
                update={"is_unlocked": True, "unlocked_at": datetime.now()}
            )
            unlocked.append(achievement)
            logger.info("achievement_unlocked", achievement_id=achievement.id, kind=kind.value)
        updated.append(achievement)
    return updated, unlocked
