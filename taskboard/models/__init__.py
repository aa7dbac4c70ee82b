"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from taskboard.models.activities import Activity
from taskboard.models.board_members import BoardMember
from taskboard.models.boards import Board
from taskboard.models.lists import BoardList
from taskboard.models.notifications import Notification
from taskboard.models.task_assignees import TaskAssignee
from taskboard.models.tasks import Task
from taskboard.models.users import User

__all__ = [
    "Activity",
    "Board",
    "BoardList",
    "BoardMember",
    "Notification",
    "Task",
    "TaskAssignee",
    "User",
]
