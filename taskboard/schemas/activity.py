"""Activity log schemas.

Each action carries its own metadata shape. `ActivityDetails` is a tagged union
keyed by `action`, so a logged entry can only be built with the fields that
belong to its action, and stored JSON round-trips into the same model.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from taskboard.models.activities import ActivityAction
from taskboard.schemas.users import UserSummary

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class _Details(BaseModel):
    model_config = ConfigDict(extra="ignore")


class BoardCreatedDetails(_Details):
    action: Literal[ActivityAction.BOARD_CREATED] = ActivityAction.BOARD_CREATED
    title: str


class BoardUpdatedDetails(_Details):
    action: Literal[ActivityAction.BOARD_UPDATED] = ActivityAction.BOARD_UPDATED
    title: str
    changed_fields: list[str] = Field(default_factory=list)


class MemberAddedDetails(_Details):
    action: Literal[ActivityAction.MEMBER_ADDED] = ActivityAction.MEMBER_ADDED
    member_name: str
    member_email: str
    role: str


class MemberRemovedDetails(_Details):
    action: Literal[ActivityAction.MEMBER_REMOVED] = ActivityAction.MEMBER_REMOVED
    member_name: str


class MemberRoleUpdatedDetails(_Details):
    action: Literal[ActivityAction.MEMBER_ROLE_UPDATED] = ActivityAction.MEMBER_ROLE_UPDATED
    member_name: str
    role: str
    previous_role: str


class ListCreatedDetails(_Details):
    action: Literal[ActivityAction.LIST_CREATED] = ActivityAction.LIST_CREATED
    title: str


class ListUpdatedDetails(_Details):
    action: Literal[ActivityAction.LIST_UPDATED] = ActivityAction.LIST_UPDATED
    title: str
    position: int | None = None
    previous_position: int | None = None


class ListDeletedDetails(_Details):
    action: Literal[ActivityAction.LIST_DELETED] = ActivityAction.LIST_DELETED
    title: str


class TaskCreatedDetails(_Details):
    action: Literal[ActivityAction.TASK_CREATED] = ActivityAction.TASK_CREATED
    title: str
    list_title: str


class TaskUpdatedDetails(_Details):
    action: Literal[ActivityAction.TASK_UPDATED] = ActivityAction.TASK_UPDATED
    title: str
    changed_fields: list[str] = Field(default_factory=list)


class TaskMovedDetails(_Details):
    action: Literal[ActivityAction.TASK_MOVED] = ActivityAction.TASK_MOVED
    title: str
    from_list: str
    to_list: str
    new_position: int


class TaskDeletedDetails(_Details):
    action: Literal[ActivityAction.TASK_DELETED] = ActivityAction.TASK_DELETED
    title: str


class TaskAssignedDetails(_Details):
    action: Literal[ActivityAction.TASK_ASSIGNED] = ActivityAction.TASK_ASSIGNED
    title: str
    assigned_user: str
    assigned_user_id: UUID


class TaskUnassignedDetails(_Details):
    action: Literal[ActivityAction.TASK_UNASSIGNED] = ActivityAction.TASK_UNASSIGNED
    title: str
    unassigned_user: str
    unassigned_user_id: UUID


ActivityDetails = Annotated[
    BoardCreatedDetails
    | BoardUpdatedDetails
    | MemberAddedDetails
    | MemberRemovedDetails
    | MemberRoleUpdatedDetails
    | ListCreatedDetails
    | ListUpdatedDetails
    | ListDeletedDetails
    | TaskCreatedDetails
    | TaskUpdatedDetails
    | TaskMovedDetails
    | TaskDeletedDetails
    | TaskAssignedDetails
    | TaskUnassignedDetails,
    Field(discriminator="action"),
]
ACTIVITY_DETAILS_ADAPTER: TypeAdapter[ActivityDetails] = TypeAdapter(ActivityDetails)


class ActivityCreate(BaseModel):
    """One activity entry to record; `action` is taken from `details`."""

    board_id: UUID
    user_id: UUID
    entity_type: str
    entity_id: UUID
    details: ActivityDetails

    @property
    def action(self) -> ActivityAction:
        return self.details.action


class ActivityRead(BaseModel):
    """Activity entry as returned by the board history endpoint and broadcasts."""

    id: UUID
    board_id: UUID
    user_id: UUID
    action: str
    entity_type: str
    entity_id: UUID
    metadata: dict[str, object] = Field(default_factory=dict)
    created_at: datetime
    user: UserSummary | None = None
