"""Public schema exports shared across API route modules."""

from taskboard.schemas.activity import ActivityCreate, ActivityRead
from taskboard.schemas.board_members import MemberAdd, MemberRead, MemberRoleUpdate
from taskboard.schemas.boards import BoardCreate, BoardDetailRead, BoardRead, BoardUpdate
from taskboard.schemas.lists import ListCreate, ListDeleted, ListRead, ListUpdate
from taskboard.schemas.notifications import NotificationRead
from taskboard.schemas.tasks import (
    TaskAssign,
    TaskCreate,
    TaskDeleted,
    TaskMove,
    TaskRead,
    TaskUpdate,
)
from taskboard.schemas.users import UserRead, UserSummary, UserUpdate

__all__ = [
    "ActivityCreate",
    "ActivityRead",
    "BoardCreate",
    "BoardDetailRead",
    "BoardRead",
    "BoardUpdate",
    "ListCreate",
    "ListDeleted",
    "ListRead",
    "ListUpdate",
    "MemberAdd",
    "MemberRead",
    "MemberRoleUpdate",
    "NotificationRead",
    "TaskAssign",
    "TaskCreate",
    "TaskDeleted",
    "TaskMove",
    "TaskRead",
    "TaskUpdate",
    "UserRead",
    "UserSummary",
    "UserUpdate",
]
