"""Fixed seed lists used when the subject and achievement keys are empty."""

from scholar_hub.models.study import Achievement, AchievementKind, Subject


def default_subjects() -> list[Subject]:
    return [
        Subject(id="1", name="Mathematics", color="brand-blue"),
        Subject(id="2", name="Science", color="brand-purple"),
        Subject(id="3", name="History", color="brand-orange"),
    ]


def default_achievements() -> list[Achievement]:
    return [
        Achievement(
            id="first-task",
            title="First Step",
            description="Complete your first task.",
            icon="CheckCircle",
            requirement=1,
            type=AchievementKind.TASKS,
        ),
        Achievement(
            id="task-master",
            title="Task Master",
            description="Complete 10 tasks.",
            icon="Trophy",
            requirement=10,
            type=AchievementKind.TASKS,
        ),
        Achievement(
            id="habit-builder",
            title="Habit Builder",
            description="Complete 5 routines in a day.",
            icon="Zap",
            requirement=5,
            type=AchievementKind.ROUTINE,
        ),
        Achievement(
            id="point-collector",
            title="Point Collector",
            description="Reach 100 Scholar Points.",
            icon="Star",
            requirement=100,
            type=AchievementKind.POINTS,
        ),
        Achievement(
            id="curious-mind",
            title="Curious Mind",
            description="Ask the AI coach your first question.",
            icon="Brain",
            requirement=1,
            type=AchievementKind.AI,
        ),
    ]
