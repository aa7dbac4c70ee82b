"""List endpoints: create, read, rename/reposition, delete."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status

from taskboard.api.deps import LIST_SERVICE_DEP, USER_DEP
from taskboard.models.users import User
from taskboard.schemas.lists import ListCreate, ListDeleted, ListRead, ListUpdate
from taskboard.services.lists import ListMutationService

router = APIRouter(prefix="/lists", tags=["lists"])


@router.post("", response_model=ListRead, status_code=status.HTTP_201_CREATED)
async def create_list(
    payload: ListCreate,
    service: ListMutationService = LIST_SERVICE_DEP,
    user: User = USER_DEP,
) -> ListRead:
    """Append a list to the end of a board."""
    return await service.create_list(payload.board_id, payload.title, user)


@router.get("/{list_id}", response_model=ListRead)
async def get_list(
    list_id: UUID,
    service: ListMutationService = LIST_SERVICE_DEP,
    user: User = USER_DEP,
) -> ListRead:
    return await service.get_list(list_id, user)


@router.patch("/{list_id}", response_model=ListRead)
async def update_list(
    list_id: UUID,
    payload: ListUpdate,
    service: ListMutationService = LIST_SERVICE_DEP,
    user: User = USER_DEP,
) -> ListRead:
    """Rename a list and/or move it to another position on its board."""
    return await service.update_list(list_id, payload, user)


@router.delete("/{list_id}", response_model=ListDeleted)
async def delete_list(
    list_id: UUID,
    service: ListMutationService = LIST_SERVICE_DEP,
    user: User = USER_DEP,
) -> ListDeleted:
    """Delete a list and its tasks; later lists move up one slot."""
    return await service.delete_list(list_id, user)
