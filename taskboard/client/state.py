"""Local board state mirrored from the board detail payload."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LocalUser:
    id: str
    name: str
    email: str = ""
    avatar: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> LocalUser:
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            email=str(payload.get("email") or ""),
            avatar=payload.get("avatar"),
        )


@dataclass
class LocalTask:
    id: str
    list_id: str
    title: str
    position: int
    description: str | None = None
    due_date: str | None = None
    assignees: list[LocalUser] = field(default_factory=list)
    pending: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> LocalTask:
        return cls(
            id=str(payload["id"]),
            list_id=str(payload["list_id"]),
            title=str(payload["title"]),
            position=int(payload["position"]),
            description=payload.get("description"),
            due_date=payload.get("due_date"),
            assignees=[LocalUser.from_payload(user) for user in payload.get("assignees") or []],
        )


@dataclass
class LocalList:
    id: str
    board_id: str
    title: str
    position: int
    tasks: list[LocalTask] = field(default_factory=list)
    pending: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> LocalList:
        tasks = [LocalTask.from_payload(task) for task in payload.get("tasks") or []]
        return cls(
            id=str(payload["id"]),
            board_id=str(payload["board_id"]),
            title=str(payload["title"]),
            position=int(payload["position"]),
            tasks=sorted(tasks, key=lambda task: task.position),
        )


@dataclass
class LocalMember:
    user_id: str
    role: str
    user: LocalUser | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> LocalMember:
        user = payload.get("user")
        return cls(
            user_id=str(payload["user_id"]),
            role=str(payload["role"]),
            user=LocalUser.from_payload(user) if user else None,
        )


@dataclass
class LocalBoard:
    """Client copy of one board. Lists and tasks are kept sorted by position."""

    id: str
    title: str
    description: str | None = None
    lists: list[LocalList] = field(default_factory=list)
    members: list[LocalMember] = field(default_factory=list)
    deleted: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> LocalBoard:
        lists = [LocalList.from_payload(item) for item in payload.get("lists") or []]
        return cls(
            id=str(payload["id"]),
            title=str(payload["title"]),
            description=payload.get("description"),
            lists=sorted(lists, key=lambda item: item.position),
            members=[LocalMember.from_payload(item) for item in payload.get("members") or []],
        )

    def find_list(self, list_id: str) -> LocalList | None:
        return next((item for item in self.lists if item.id == list_id), None)

    def find_task(self, task_id: str) -> tuple[LocalList, LocalTask] | None:
        for board_list in self.lists:
            for task in board_list.tasks:
                if task.id == task_id:
                    return board_list, task
        return None

    def find_member_user(self, user_id: str) -> LocalUser | None:
        member = next((item for item in self.members if item.user_id == user_id), None)
        return member.user if member is not None else None

    def snapshot(self) -> LocalBoard:
        return copy.deepcopy(self)

    def restore(self, snapshot: LocalBoard) -> None:
        """Reset this board in place to a previously taken snapshot."""
        self.title = snapshot.title
        self.description = snapshot.description
        self.lists = snapshot.lists
        self.members = snapshot.members
        self.deleted = snapshot.deleted

    def clear(self) -> None:
        self.lists = []
        self.members = []
        self.deleted = True
