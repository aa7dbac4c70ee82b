"""Board lifecycle and membership management."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func
from sqlmodel import col, select

from taskboard.core.errors import ConflictError, NotFoundError, ValidationFailedError
from taskboard.core.logging import get_logger
from taskboard.core.time import utcnow
from taskboard.db.transactions import atomic
from taskboard.models.activities import Activity
from taskboard.models.board_members import BoardMember, BoardRole
from taskboard.models.boards import Board
from taskboard.models.lists import BoardList
from taskboard.models.task_assignees import TaskAssignee
from taskboard.models.tasks import Task
from taskboard.models.users import User
from taskboard.schemas.activity import (
    ActivityCreate,
    BoardCreatedDetails,
    BoardUpdatedDetails,
    MemberAddedDetails,
    MemberRemovedDetails,
    MemberRoleUpdatedDetails,
)
from taskboard.schemas.board_members import MemberRead
from taskboard.schemas.boards import BoardDetailRead, BoardRead
from taskboard.schemas.users import UserSummary
from taskboard.services.access import get_board_or_404, get_membership, require_admin
from taskboard.services.activity import ActivityLogger
from taskboard.services.lists import delete_tasks_of_lists, read_lists
from taskboard.services.realtime import (
    BOARD_DELETED,
    BOARD_UPDATED,
    MEMBER_ADDED,
    MEMBER_REMOVED,
    MEMBER_UPDATED,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.sql import Select
    from sqlmodel.ext.asyncio.session import AsyncSession

    from taskboard.schemas.board_members import MemberAdd, MemberRoleUpdate
    from taskboard.schemas.boards import BoardCreate, BoardUpdate
    from taskboard.services.realtime import Broadcaster

logger = get_logger(__name__)


def board_to_read(board: Board, *, role: str | None = None) -> BoardRead:
    return BoardRead(**board.model_dump(), role=role)


def member_to_read(member: BoardMember, user: User | None) -> MemberRead:
    return MemberRead(
        **member.model_dump(),
        user=UserSummary.model_validate(user, from_attributes=True) if user else None,
    )


def boards_for_user_statement(user: User, *, search: str | None = None) -> Select[Any]:
    """Boards the user belongs to, most recently updated first."""
    statement = (
        select(Board, BoardMember.role)
        .join(BoardMember, col(BoardMember.board_id) == col(Board.id))
        .where(col(BoardMember.user_id) == user.id)
    )
    term = (search or "").strip()
    if term:
        statement = statement.where(
            func.lower(col(Board.title)).contains(term.lower(), autoescape=True),
        )
    return statement.order_by(col(Board.updated_at).desc(), col(Board.id))


def board_rows_to_read(rows: Sequence[Any]) -> Sequence[Any]:
    return [board_to_read(board, role=role) for board, role in rows]


async def read_members(session: AsyncSession, board_id: UUID) -> list[MemberRead]:
    rows = await session.exec(
        select(BoardMember, User)
        .join(User, col(User.id) == col(BoardMember.user_id))
        .where(col(BoardMember.board_id) == board_id)
        .order_by(col(BoardMember.created_at).asc()),
    )
    return [member_to_read(member, user) for member, user in rows]


class BoardService:
    """Board CRUD and membership administration."""

    def __init__(
        self,
        session: AsyncSession,
        broadcaster: Broadcaster,
        activity: ActivityLogger | None = None,
    ) -> None:
        self.session = session
        self.broadcaster = broadcaster
        self.activity = activity or ActivityLogger(session, broadcaster)

    async def _log(
        self,
        board_id: UUID,
        actor: User,
        entity_type: str,
        entity_id: UUID,
        details: Any,
    ) -> None:
        await self.activity.log(
            ActivityCreate(
                board_id=board_id,
                user_id=actor.id,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details,
            ),
        )

    async def create_board(self, payload: BoardCreate, actor: User) -> BoardRead:
        """Create a board; the creator becomes its first ADMIN."""
        board = Board(
            title=payload.title,
            description=payload.description,
            created_by_user_id=actor.id,
        )
        async with atomic(self.session):
            self.session.add(board)
            await self.session.flush()
            self.session.add(
                BoardMember(board_id=board.id, user_id=actor.id, role=BoardRole.ADMIN.value),
            )
        logger.info("board.created", extra={"board_id": str(board.id), "user_id": str(actor.id)})
        read = board_to_read(board, role=BoardRole.ADMIN.value)
        await self._log(board.id, actor, "Board", board.id, BoardCreatedDetails(title=board.title))
        return read

    async def get_board_detail(self, board_id: UUID, actor: User) -> BoardDetailRead:
        """Board with members, lists and tasks. Non-members get a 404."""
        membership = await get_membership(self.session, board_id, actor.id)
        if membership is None:
            raise NotFoundError("Board not found or access denied")
        board = await get_board_or_404(self.session, board_id)
        return BoardDetailRead(
            **board_to_read(board, role=membership.role).model_dump(),
            members=await read_members(self.session, board.id),
            lists=await read_lists(self.session, board.id),
        )

    async def update_board(self, board_id: UUID, payload: BoardUpdate, actor: User) -> BoardRead:
        board = await get_board_or_404(self.session, board_id)
        membership = await require_admin(self.session, board.id, actor.id)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("title", "") is None:
            changes.pop("title")
        async with atomic(self.session):
            for field, value in changes.items():
                setattr(board, field, value)
            board.updated_at = utcnow()
            self.session.add(board)
        read = board_to_read(board, role=membership.role)
        self.broadcaster.emit_to_board(board.id, BOARD_UPDATED, read)
        await self._log(
            board.id,
            actor,
            "Board",
            board.id,
            BoardUpdatedDetails(title=board.title, changed_fields=sorted(changes)),
        )
        return read

    async def delete_board(self, board_id: UUID, actor: User) -> None:
        """Delete the board and everything it owns."""
        board = await get_board_or_404(self.session, board_id)
        await require_admin(self.session, board.id, actor.id)
        list_ids = list(
            await self.session.exec(select(BoardList.id).where(col(BoardList.board_id) == board.id)),
        )
        async with atomic(self.session):
            await delete_tasks_of_lists(self.session, list_ids)
            for statement in (
                delete(BoardList).where(col(BoardList.board_id) == board.id),
                delete(Activity).where(col(Activity.board_id) == board.id),
                delete(BoardMember).where(col(BoardMember.board_id) == board.id),
            ):
                await self.session.exec(statement)  # type: ignore[call-overload]
            await self.session.delete(board)
        logger.info("board.deleted", extra={"board_id": str(board_id), "user_id": str(actor.id)})
        self.broadcaster.emit_to_board(board_id, BOARD_DELETED, {"board_id": board_id})

    async def add_member(self, board_id: UUID, payload: MemberAdd, actor: User) -> MemberRead:
        board = await get_board_or_404(self.session, board_id)
        await require_admin(self.session, board.id, actor.id)
        user = await User.objects.filter_by(email=payload.email.strip().lower()).first(self.session)
        if user is None:
            raise NotFoundError("User not found with that email")
        if await get_membership(self.session, board.id, user.id) is not None:
            raise ConflictError("User is already a member of this board")
        member = BoardMember(board_id=board.id, user_id=user.id, role=payload.role.value)
        async with atomic(self.session):
            self.session.add(member)
        read = member_to_read(member, user)
        self.broadcaster.emit_to_board(board.id, MEMBER_ADDED, read)
        await self._log(
            board.id,
            actor,
            "BoardMember",
            member.id,
            MemberAddedDetails(member_name=user.name, member_email=user.email, role=member.role),
        )
        return read

    async def remove_member(self, board_id: UUID, user_id: UUID, actor: User) -> None:
        """Remove a member and drop their task assignments on this board."""
        board = await get_board_or_404(self.session, board_id)
        await require_admin(self.session, board.id, actor.id)
        if user_id == actor.id:
            raise ValidationFailedError("Cannot remove yourself from the board")
        member = await get_membership(self.session, board.id, user_id)
        if member is None:
            raise NotFoundError("Member not found")
        user = await User.objects.by_id(user_id).first(self.session)
        board_task_ids = (
            select(Task.id)
            .join(BoardList, col(BoardList.id) == col(Task.list_id))
            .where(col(BoardList.board_id) == board.id)
        )
        async with atomic(self.session):
            await self.session.exec(  # type: ignore[call-overload]
                delete(TaskAssignee)
                .where(col(TaskAssignee.user_id) == user_id)
                .where(col(TaskAssignee.task_id).in_(board_task_ids)),
            )
            await self.session.delete(member)
        self.broadcaster.emit_to_board(
            board.id,
            MEMBER_REMOVED,
            {"board_id": board.id, "user_id": user_id, "member_id": member.id},
        )
        await self._log(
            board.id,
            actor,
            "BoardMember",
            member.id,
            MemberRemovedDetails(member_name=user.name if user is not None else ""),
        )

    async def update_member_role(
        self,
        board_id: UUID,
        user_id: UUID,
        payload: MemberRoleUpdate,
        actor: User,
    ) -> MemberRead:
        board = await get_board_or_404(self.session, board_id)
        await require_admin(self.session, board.id, actor.id)
        if user_id == actor.id:
            raise ValidationFailedError("Cannot change your own role")
        member = await get_membership(self.session, board.id, user_id)
        if member is None:
            raise NotFoundError("Member not found")
        previous_role = member.role
        async with atomic(self.session):
            member.role = payload.role.value
            self.session.add(member)
        user = await User.objects.by_id(user_id).first(self.session)
        read = member_to_read(member, user)
        self.broadcaster.emit_to_board(board.id, MEMBER_UPDATED, read)
        await self._log(
            board.id,
            actor,
            "BoardMember",
            member.id,
            MemberRoleUpdatedDetails(
                member_name=user.name if user is not None else "",
                role=member.role,
                previous_role=previous_role,
            ),
        )
        return read
