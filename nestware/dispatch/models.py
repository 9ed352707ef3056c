from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from ..schema.models import RelationDescriptor

NESTED_WRITE_ACTIONS = frozenset({"create", "update", "upsert", "connectOrCreate"})
WRITE_ACTIONS = NESTED_WRITE_ACTIONS | frozenset(
    {"createMany", "updateMany", "delete", "deleteMany"}
)
SHAPING_ACTIONS = frozenset({"include", "select"})


class ActionKind(str, Enum):
    WRITE_NESTABLE = "write_nestable"
    WRITE_FLAT = "write_flat"
    INCLUDE = "include"
    SELECT = "select"
    READ = "read"


def classify_action(action: str) -> ActionKind:
    if action in NESTED_WRITE_ACTIONS:
        return ActionKind.WRITE_NESTABLE
    if action in WRITE_ACTIONS:
        return ActionKind.WRITE_FLAT
    if action == "include":
        return ActionKind.INCLUDE
    if action == "select":
        return ActionKind.SELECT
    return ActionKind.READ


def is_write_action(action: str) -> bool:
    return action in WRITE_ACTIONS


@dataclass(frozen=True)
class Operation:
    """
    One data-access call flowing through the middleware chain.

    Nested writes and shaping clauses are dispatched as Operations of their
    own, with ``parent`` pointing at the enclosing Operation.
    """
    model: Optional[str]
    action: str
    args: Any = None
    parent: Optional["Operation"] = None

    @property
    def kind(self) -> ActionKind:
        return classify_action(self.action)

    @property
    def depth(self) -> int:
        depth = 0
        scope = self.parent
        while scope is not None:
            depth += 1
            scope = scope.parent
        return depth

    def replace(self, **changes: Any) -> "Operation":
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class WriteSite:
    """
    A nested write clause found inside a parent operation's args.
    """
    relation: RelationDescriptor
    arg_path: str  # dotted prefix holding the write keys, e.g. "data.posts"
    action: str
    operation: Operation
    index: Optional[int] = None  # position when the write key holds a list

    @property
    def path(self) -> str:
        path = f"{self.arg_path}.{self.action}"
        if self.index is not None:
            path = f"{path}.{self.index}"
        return path


@dataclass(frozen=True)
class ShapingSite:
    """
    A relation field inside an ``include`` or ``select`` clause.
    """
    relation: RelationDescriptor
    clause: str
    value: Any  # the original flag or mapping
    operation: Operation

    @property
    def path(self) -> str:
        return f"{self.clause}.{self.relation.name}"


Next = Callable[[Operation], Union[Awaitable[Any], Any]]
Middleware = Callable[[Operation, Next], Union[Awaitable[Any], Any]]
