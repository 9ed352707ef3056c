from __future__ import annotations

from collections.abc import Iterable, Mapping

from ..schema.models import RelationDescriptor
from .helpers import get_path
from .models import SHAPING_ACTIONS, Operation, ShapingSite, WriteSite, is_write_action


def extract_write_sites(
    operation: Operation,
    relation: RelationDescriptor,
    arg_path: str,
) -> list[WriteSite]:
    """
    Collect the write clauses stored under ``arg_path`` for one relation.

    Every key under the sub-tree that names a write action becomes a child
    Operation on the relation's target model. A key holding a list yields
    one site per element.
    """
    subtree = get_path(operation.args, arg_path, {})
    if not isinstance(subtree, Mapping):
        return []

    sites: list[WriteSite] = []
    for action, value in subtree.items():
        if not is_write_action(action):
            continue
        if isinstance(value, list):
            for index, item in enumerate(value):
                sites.append(
                    WriteSite(
                        relation=relation,
                        arg_path=arg_path,
                        action=action,
                        index=index,
                        operation=Operation(
                            model=relation.target,
                            action=action,
                            args=item,
                            parent=operation,
                        ),
                    )
                )
            continue
        sites.append(
            WriteSite(
                relation=relation,
                arg_path=arg_path,
                action=action,
                operation=Operation(
                    model=relation.target,
                    action=action,
                    args=value,
                    parent=operation,
                ),
            )
        )
    return sites


def extract_nested_write_sites(
    operation: Operation,
    relation: RelationDescriptor,
) -> list[WriteSite]:
    """
    Probe the locations where ``operation.action`` keeps nested relation data.
    """
    name = relation.name
    action = operation.action

    if action == "upsert":
        return [
            *extract_write_sites(operation, relation, f"update.{name}"),
            *extract_write_sites(operation, relation, f"create.{name}"),
        ]
    if action == "create":
        # a create nested inside another write carries its fields directly,
        # without the top-level "data" wrapper
        if operation.parent is not None:
            return extract_write_sites(operation, relation, name)
        return extract_write_sites(operation, relation, f"data.{name}")
    if action in ("update", "updateMany", "createMany"):
        return extract_write_sites(operation, relation, f"data.{name}")
    if action == "connectOrCreate":
        return extract_write_sites(operation, relation, f"create.{name}")
    return []


def extract_shaping_sites(
    operation: Operation,
    relations: Iterable[RelationDescriptor],
) -> list[ShapingSite]:
    """
    Collect relation fields requested by the operation's include/select clauses.

    A ``True`` flag is handed to the child as an empty clause; ``False`` and
    ``None`` are left alone.
    """
    args = operation.args
    if not isinstance(args, Mapping):
        return []

    by_name = {relation.name: relation for relation in relations}
    sites: list[ShapingSite] = []
    for clause in sorted(SHAPING_ACTIONS):
        body = args.get(clause)
        if not isinstance(body, Mapping):
            continue
        for field, value in body.items():
            relation = by_name.get(field)
            if relation is None:
                continue
            if value is True:
                child_args = {}
            elif isinstance(value, Mapping):
                child_args = value
            else:
                continue
            sites.append(
                ShapingSite(
                    relation=relation,
                    clause=clause,
                    value=value,
                    operation=Operation(
                        model=relation.target,
                        action=clause,
                        args=child_args,
                        parent=operation,
                    ),
                )
            )
    return sites
