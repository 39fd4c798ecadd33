"""
Coil tree - request groups and the cursor-based builder.

Groups at the same level run in parallel; a group's children run after all of
its requests have settled.

Usage:
    coil = Coil()
    coil.start_group("users").add_request(R.get("list", "http://api/users"))
    coil.start_group("details").add_request(R.get("user1", "http://api/users/1"))
    coil.from_the_beginning().start_group("audit").add_request(...)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from ..errors import ConfigurationError
from ..request import Request

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class RequestGroup:
    """A node of the execution tree."""
    id: str
    requests: List[Request] = field(default_factory=list)
    children: List["RequestGroup"] = field(default_factory=list)
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def duration_ms(self) -> Optional[float]:
        if self.start_time is None or self.end_time is None:
            return None
        return (self.end_time - self.start_time) * 1000

    def find(self, group_id: str) -> Optional["RequestGroup"]:
        """Pre-order search of this subtree."""
        if self.id == group_id:
            return self
        for child in self.children:
            found = child.find(group_id)
            if found is not None:
                return found
        return None

    def walk(self) -> Iterator["RequestGroup"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "requests": [r.to_dict() for r in self.requests],
            "children": [c.to_dict() for c in self.children],
        }


class Coil:
    """
    Builds a tree of request groups.

    The builder keeps a cursor on the group that new groups and requests are
    attached to. An empty cursor means the root level.
    """

    def __init__(self) -> None:
        self._groups: List[RequestGroup] = []
        self._current_group_id = ""
        self._total_groups = 0

    @property
    def groups(self) -> List[RequestGroup]:
        """Root-level groups."""
        return self._groups

    @property
    def current_group_id(self) -> str:
        return self._current_group_id

    def find_group(self, group_id: str) -> Optional[RequestGroup]:
        """Return the first group with ``group_id`` in pre-order, or None."""
        for group in self._groups:
            found = group.find(group_id)
            if found is not None:
                return found
        return None

    def iter_groups(self) -> Iterator[RequestGroup]:
        for group in self._groups:
            yield from group.walk()

    def start_group(self, group_id: str) -> "Coil":
        """
        Create a group under the cursor and move the cursor to it.

        Raises:
            ConfigurationError: if ``group_id`` already exists in the tree
        """
        if not group_id:
            raise ConfigurationError("Request group id cannot be empty")
        if self.find_group(group_id) is not None:
            raise ConfigurationError(f"Request group {group_id} already exists in your coil")

        group = RequestGroup(id=group_id)
        if self._current_group_id:
            self._cursor_group().children.append(group)
        else:
            self._groups.append(group)

        self._current_group_id = group_id
        self._total_groups += 1
        logger.debug(f"Started request group '{group_id}'")
        return self

    def after_group(self, group_id: str) -> "Coil":
        """
        Move the cursor to an existing group.

        Raises:
            ConfigurationError: if the group is not in the tree
        """
        if self.find_group(group_id) is None:
            raise ConfigurationError(f"Request group {group_id} not found in your coil")
        self._current_group_id = group_id
        return self

    def add_request(self, request: Request) -> "Coil":
        """
        Append a request to the group under the cursor.

        Raises:
            ConfigurationError: if no group was started or ``request`` is not a Request
        """
        if not self._current_group_id:
            raise ConfigurationError("Cannot add requests without starting a group first")
        if not isinstance(request, Request):
            raise ConfigurationError(f"Invalid Request object: {request!r}")

        group = self._cursor_group()
        if any(r.name == request.name for r in group.requests):
            logger.warning(
                f"Request '{request.name}' is already in group '{group.id}'; "
                f"its records will overwrite each other"
            )
        group.requests.append(request)
        return self

    def from_the_beginning(self) -> "Coil":
        """Reset the cursor to the root level."""
        self._current_group_id = ""
        return self

    def request_groups_count(self) -> int:
        return self._total_groups

    def _cursor_group(self) -> RequestGroup:
        group = self.find_group(self._current_group_id)
        if group is None:
            raise ConfigurationError(f"Request group {self._current_group_id} not found in your coil")
        return group

    def to_dict(self) -> dict:
        return {"groups": [g.to_dict() for g in self._groups]}


__all__ = ["RequestGroup", "Coil"]
