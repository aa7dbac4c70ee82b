# ruff: noqa: INP001
"""Board lifecycle, role checks and membership administration."""

from __future__ import annotations

import pytest
from conftest import make_user
from sqlmodel import col, select

from taskboard.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from taskboard.models.activities import Activity
from taskboard.models.board_members import BoardMember, BoardRole
from taskboard.models.boards import Board
from taskboard.models.lists import BoardList
from taskboard.models.task_assignees import TaskAssignee
from taskboard.models.tasks import Task
from taskboard.schemas.board_members import MemberAdd, MemberRoleUpdate
from taskboard.schemas.boards import BoardCreate, BoardUpdate
from taskboard.schemas.tasks import TaskCreate
from taskboard.services.boards import BoardService, boards_for_user_statement
from taskboard.services.lists import ListMutationService
from taskboard.services.tasks import TaskMutationService


async def _board_with_member(session, broadcaster):
    admin = await make_user(session, "Admin")
    member = await make_user(session, "Member")
    service = BoardService(session, broadcaster)
    board = await service.create_board(BoardCreate(title="Sprint 12"), admin)
    await service.add_member(board.id, MemberAdd(email=member.email), admin)
    return service, board, admin, member


@pytest.mark.asyncio
async def test_creator_becomes_admin(session, broadcaster) -> None:
    owner = await make_user(session, "Owner")

    board = await BoardService(session, broadcaster).create_board(
        BoardCreate(title="Q3", description="planning"),
        owner,
    )

    assert board.role == BoardRole.ADMIN.value
    membership = (
        await session.exec(select(BoardMember).where(col(BoardMember.board_id) == board.id))
    ).one()
    assert membership.user_id == owner.id
    assert membership.is_admin


@pytest.mark.asyncio
async def test_board_detail_nests_members_lists_and_tasks(session, broadcaster) -> None:
    service, board, admin, member = await _board_with_member(session, broadcaster)
    lists = ListMutationService(session, broadcaster)
    todo = await lists.create_list(board.id, "Todo", admin)
    await lists.create_list(board.id, "Done", admin)
    await TaskMutationService(session, broadcaster).create_task(
        TaskCreate(list_id=todo.id, title="Write notes"),
        member,
    )

    detail = await service.get_board_detail(board.id, member)

    assert detail.role == BoardRole.MEMBER.value
    assert [item.title for item in detail.lists] == ["Todo", "Done"]
    assert [task.title for task in detail.lists[0].tasks] == ["Write notes"]
    assert {item.user_id for item in detail.members} == {admin.id, member.id}


@pytest.mark.asyncio
async def test_board_detail_hides_board_from_outsiders(session, broadcaster) -> None:
    service, board, _admin, _member = await _board_with_member(session, broadcaster)
    outsider = await make_user(session, "Outsider")

    with pytest.raises(NotFoundError):
        await service.get_board_detail(board.id, outsider)


@pytest.mark.asyncio
async def test_only_admin_updates_board(session, broadcaster) -> None:
    service, board, admin, member = await _board_with_member(session, broadcaster)

    with pytest.raises(ForbiddenError):
        await service.update_board(board.id, BoardUpdate(title="Hijacked"), member)

    updated = await service.update_board(board.id, BoardUpdate(title="Sprint 13"), admin)
    assert updated.title == "Sprint 13"
    assert "board:updated" in broadcaster.names()


@pytest.mark.asyncio
async def test_duplicate_member_is_conflict(session, broadcaster) -> None:
    service, board, admin, member = await _board_with_member(session, broadcaster)

    with pytest.raises(ConflictError):
        await service.add_member(board.id, MemberAdd(email=member.email.upper()), admin)


@pytest.mark.asyncio
async def test_unknown_email_is_not_found(session, broadcaster) -> None:
    service, board, admin, _member = await _board_with_member(session, broadcaster)

    with pytest.raises(NotFoundError):
        await service.add_member(board.id, MemberAdd(email="nobody@example.com"), admin)


@pytest.mark.asyncio
async def test_members_cannot_manage_membership(session, broadcaster) -> None:
    service, board, admin, member = await _board_with_member(session, broadcaster)
    newcomer = await make_user(session, "Newcomer")

    with pytest.raises(ForbiddenError):
        await service.add_member(board.id, MemberAdd(email=newcomer.email), member)
    with pytest.raises(ForbiddenError):
        await service.remove_member(board.id, admin.id, member)


@pytest.mark.asyncio
async def test_admin_cannot_remove_or_demote_self(session, broadcaster) -> None:
    service, board, admin, _member = await _board_with_member(session, broadcaster)

    with pytest.raises(ValidationFailedError):
        await service.remove_member(board.id, admin.id, admin)
    with pytest.raises(ValidationFailedError):
        await service.update_member_role(
            board.id,
            admin.id,
            MemberRoleUpdate(role=BoardRole.MEMBER),
            admin,
        )


@pytest.mark.asyncio
async def test_role_change_is_broadcast_and_logged(session, broadcaster) -> None:
    service, board, admin, member = await _board_with_member(session, broadcaster)

    promoted = await service.update_member_role(
        board.id,
        member.id,
        MemberRoleUpdate(role=BoardRole.ADMIN),
        admin,
    )

    assert promoted.role == BoardRole.ADMIN.value
    assert "member:updated" in broadcaster.names()
    logged = (
        await session.exec(
            select(Activity).where(col(Activity.action) == "MEMBER_ROLE_UPDATED"),
        )
    ).one()
    assert logged.details == {
        "member_name": "Member",
        "role": "ADMIN",
        "previous_role": "MEMBER",
    }


@pytest.mark.asyncio
async def test_removing_member_drops_their_assignments(session, broadcaster) -> None:
    service, board, admin, member = await _board_with_member(session, broadcaster)
    board_list = await ListMutationService(session, broadcaster).create_list(board.id, "Todo", admin)
    tasks = TaskMutationService(session, broadcaster)
    task = await tasks.create_task(TaskCreate(list_id=board_list.id, title="Ship"), admin)
    await tasks.assign_task(task.id, member.id, admin)

    await service.remove_member(board.id, member.id, admin)

    assignments = await session.exec(
        select(TaskAssignee).where(col(TaskAssignee.task_id) == task.id),
    )
    assert assignments.all() == []
    with pytest.raises(ForbiddenError):
        await tasks.get_task(task.id, member)


@pytest.mark.asyncio
async def test_delete_board_cascades(session, broadcaster) -> None:
    service, board, admin, member = await _board_with_member(session, broadcaster)
    board_list = await ListMutationService(session, broadcaster).create_list(board.id, "Todo", admin)
    tasks = TaskMutationService(session, broadcaster)
    task = await tasks.create_task(TaskCreate(list_id=board_list.id, title="Ship"), admin)
    await tasks.assign_task(task.id, member.id, admin)

    with pytest.raises(ForbiddenError):
        await service.delete_board(board.id, member)
    await service.delete_board(board.id, admin)

    for model, column in (
        (Board, Board.id),
        (BoardList, BoardList.board_id),
        (BoardMember, BoardMember.board_id),
        (Activity, Activity.board_id),
    ):
        rows = await session.exec(select(model).where(col(column) == board.id))
        assert rows.all() == []
    assert (await session.exec(select(Task).where(col(Task.id) == task.id))).all() == []
    assert broadcaster.events[-1][1] == "board:deleted"


@pytest.mark.asyncio
async def test_board_listing_filters_by_membership_and_search(session, broadcaster) -> None:
    owner = await make_user(session, "Owner")
    other = await make_user(session, "Other")
    service = BoardService(session, broadcaster)
    await service.create_board(BoardCreate(title="Marketing 100%"), owner)
    await service.create_board(BoardCreate(title="Engineering"), owner)
    await service.create_board(BoardCreate(title="Marketing (private)"), other)

    all_rows = (await session.exec(boards_for_user_statement(owner))).all()
    assert sorted(board.title for board, _role in all_rows) == ["Engineering", "Marketing 100%"]

    searched = (await session.exec(boards_for_user_statement(owner, search="100%"))).all()
    assert [board.title for board, _role in searched] == ["Marketing 100%"]
