from __future__ import annotations

import asyncio
import copy
import inspect
import logging
import time
from collections.abc import Collection, Mapping, MutableMapping, Sequence
from typing import Any, Optional

from ..config import NestingConfig
from ..errors import ContinuationError
from ..schema.catalog import RelationCatalog
from ..schema.models import RelationDescriptor
from .extract import extract_nested_write_sites, extract_shaping_sites
from .helpers import delete_path, get_path, set_path
from .metrics import observe_barrier_wait, observe_dispatch, observe_nested_site
from .models import ActionKind, Middleware, Next, Operation, ShapingSite
from .pending import PendingNestedInvocation

logger = logging.getLogger(__name__)

_MISSING = object()


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _result_slice(result: Any, name: str) -> Any:
    if isinstance(result, Mapping):
        return result.get(name)
    return None


def _merge_outcomes(
    result: Mapping[str, Any],
    pendings: Sequence[PendingNestedInvocation],
    outcomes: Sequence[Any],
) -> dict[str, Any]:
    """
    Pick one outcome per relation name.

    Sites sharing a relation (list elements, upsert branches) were all handed
    the same slice. The first outcome in site order that differs from that
    slice wins; when none does, the slice is kept.
    """
    merged: dict[str, Any] = {}
    changed: set[str] = set()
    for pending, outcome in zip(pendings, outcomes):
        name = pending.site.relation.name
        if name in changed:
            continue
        value = _result_slice(result, name)
        if outcome is not value and outcome != value:
            merged[name] = outcome
            changed.add(name)
        else:
            merged.setdefault(name, outcome)
    return merged


def _place(args: MutableMapping[str, Any], path: str, items: Sequence[Any], single: bool) -> None:
    """
    Put items under path, joining whatever is already stored there.
    """
    existing = get_path(args, path, _MISSING)
    if existing is _MISSING or existing is None:
        value = items[0] if single and len(items) == 1 else list(items)
    elif isinstance(existing, list):
        value = [*existing, *items]
    else:
        value = [existing, *items]
    set_path(args, path, value)


def merge_nested_updates(
    args: MutableMapping[str, Any],
    pendings: Sequence[PendingNestedInvocation],
) -> None:
    """
    Write the operations passed to nested continuations back into args.

    Sites whose action is unchanged are replaced in place. A site whose
    middleware switched to another action is removed from its original key
    and stored under the new one. List elements keep their relative order.
    Sites that never reached next() keep their original value.
    """
    moves: list[tuple[str, str, list[Any], bool]] = []
    lists: dict[tuple[str, str], list[PendingNestedInvocation]] = {}

    for pending in pendings:
        site = pending.site
        if site.index is not None:
            lists.setdefault((site.arg_path, site.action), []).append(pending)
            continue
        updated = pending.updated
        if updated is None:
            continue
        if updated.action == site.action:
            set_path(args, site.path, updated.args)
        else:
            delete_path(args, site.path)
            moves.append((site.arg_path, updated.action, [updated.args], True))

    for (arg_path, action), members in lists.items():
        path = f"{arg_path}.{action}"
        current = get_path(args, path, [])
        kept: list[Any] = []
        moved: dict[str, list[Any]] = {}
        for pending in sorted(members, key=lambda p: p.site.index):
            updated = pending.updated
            if updated is None:
                kept.append(current[pending.site.index])
            elif updated.action == action:
                kept.append(updated.args)
            else:
                moved.setdefault(updated.action, []).append(updated.args)
        if kept:
            set_path(args, path, kept)
        else:
            delete_path(args, path)
        for new_action, items in moved.items():
            moves.append((arg_path, new_action, items, False))

    for arg_path, action, items, single in moves:
        _place(args, f"{arg_path}.{action}", items, single)


class NestedDispatcher:
    """
    Applies one middleware to an operation and to every nested write and
    include/select clause inside it.

    For a write, each nested write runs the middleware as its own task. The
    parent calls the middleware only once every nested invocation has called
    its ``next`` (so their argument changes are merged), then hands each
    nested ``next`` its slice of the downstream result.

    Usage:
        dispatcher = NestedDispatcher(middleware, catalog)
        result = await dispatcher(Operation("User", "create", args), call_next)
    """

    def __init__(
        self,
        middleware: Middleware,
        catalog: RelationCatalog,
        config: Optional[NestingConfig] = None,
    ) -> None:
        self.middleware = middleware
        self.catalog = catalog
        self.config = config or NestingConfig()

    async def __call__(self, operation: Operation, call_next: Next) -> Any:
        return await self.dispatch(operation, call_next)

    async def dispatch(self, operation: Operation, call_next: Next) -> Any:
        """
        Run the middleware for operation and everything nested inside it.

        Failures from the middleware (at any depth) or from call_next are
        propagated unchanged.
        """
        start_time = time.monotonic()
        status = "success"
        try:
            return await self._dispatch(operation, call_next)
        except Exception:
            status = "error"
            raise
        finally:
            self._observe(observe_dispatch, operation.model or "", operation.action, status, time.monotonic() - start_time)

    async def _dispatch(self, operation: Operation, call_next: Next) -> Any:
        relations = self.catalog.relations_for(operation.model)
        working = operation.replace(args=copy.deepcopy(operation.args))
        pendings = self._start_nested_writes(operation, relations)

        logger.debug(
            "Dispatching %s.%s at depth %d with %d nested writes",
            operation.model,
            operation.action,
            operation.depth,
            len(pendings),
        )

        origin: Optional[PendingNestedInvocation] = None
        try:
            if self.config.nest_shaping and relations:
                await self._apply_shaping(operation, working, relations)
            origin = await self._barrier(operation, pendings)
            if origin is not None:
                raise origin.ready.exception()
            if pendings:
                merge_nested_updates(working.args, pendings)
            result = await _resolve(self.middleware(working, call_next))
        except Exception as exc:
            await self._drain(operation, pendings, exc, origin)
            raise

        return await self._fan_out(operation, result, pendings)

    def _start_nested_writes(
        self,
        operation: Operation,
        relations: Sequence[RelationDescriptor],
    ) -> list[PendingNestedInvocation]:
        if operation.kind is not ActionKind.WRITE_NESTABLE:
            return []

        pendings: list[PendingNestedInvocation] = []
        for relation in relations:
            for site in extract_nested_write_sites(operation, relation):
                pending = PendingNestedInvocation(site)
                pending.start(self.dispatch(site.operation, pending.continuation))
                pendings.append(pending)
                self._observe(observe_nested_site, site.operation.model or "", site.action)
        return pendings

    async def _barrier(
        self,
        operation: Operation,
        pendings: Sequence[PendingNestedInvocation],
    ) -> Optional[PendingNestedInvocation]:
        """
        Wait until every nested invocation reached next(), or one failed.

        Returns:
            The first failed invocation in site order, or None
        """
        if not pendings:
            return None

        start_time = time.monotonic()
        await asyncio.wait([p.ready for p in pendings], return_when=asyncio.FIRST_EXCEPTION)
        self._observe(observe_barrier_wait, operation.model or "", time.monotonic() - start_time)

        for pending in pendings:
            if pending.ready.done() and pending.ready.exception() is not None:
                logger.debug(
                    "Nested %s at %r failed before next(); aborting %s.%s",
                    pending.site.action,
                    pending.site.path,
                    operation.model,
                    operation.action,
                )
                return pending
        return None

    async def _fan_out(
        self,
        operation: Operation,
        result: Any,
        pendings: Sequence[PendingNestedInvocation],
    ) -> Any:
        """
        Resolve each nested next() with its relation's slice of result and
        collect what the nested middleware returned.
        """
        if not pendings:
            return result

        async def _settle(pending: PendingNestedInvocation) -> Any:
            pending.settle(_result_slice(result, pending.site.relation.name))
            return await pending.task

        outcomes = await asyncio.gather(*(_settle(p) for p in pendings), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        if isinstance(result, MutableMapping):
            for name, outcome in _merge_outcomes(result, pendings, outcomes).items():
                if name in result or outcome is not None:
                    result[name] = outcome

        logger.debug("Settled %d nested writes of %s.%s", len(pendings), operation.model, operation.action)
        return result

    async def _drain(
        self,
        operation: Operation,
        pendings: Sequence[PendingNestedInvocation],
        exc: BaseException,
        origin: Optional[PendingNestedInvocation] = None,
    ) -> None:
        """
        Reject every nested next() with exc and wait for the nested
        invocations to finish.

        When exc is origin's own failure it is kept. Otherwise the parent
        failed itself and the first failure raised by a nested invocation
        takes precedence over exc.
        """
        if not pendings:
            return

        for pending in pendings:
            pending.reject(exc)

        outcomes = await asyncio.gather(*(p.task for p in pendings), return_exceptions=True)
        first: Optional[BaseException] = None
        for pending, outcome in zip(pendings, outcomes):
            if not isinstance(outcome, BaseException):
                continue
            if outcome is not exc:
                logger.warning(
                    "Nested %s at %r raised %r while %s.%s was failing with %r",
                    pending.site.action,
                    pending.site.path,
                    outcome,
                    operation.model,
                    operation.action,
                    exc,
                )
            if first is None:
                first = outcome

        if origin is None and first is not None:
            raise first

    async def _apply_shaping(
        self,
        operation: Operation,
        working: Operation,
        relations: Sequence[RelationDescriptor],
        visited: Collection[str] = (),
    ) -> None:
        """
        Run the middleware over each relation named in include/select and
        store the clause each invocation passed to next().

        Clause paths in visited were already dispatched and are skipped.
        """
        sites = [s for s in extract_shaping_sites(operation, relations) if s.path not in visited]
        if not sites:
            return

        updates = await asyncio.gather(*(self._dispatch_shaping(site) for site in sites))
        for site, updated in zip(sites, updates):
            if updated is None:
                continue
            new_args = updated.args
            if isinstance(site.value, bool) and new_args == {}:
                continue
            working.args[site.clause][site.relation.name] = new_args

    async def _dispatch_shaping(self, site: ShapingSite) -> Optional[Operation]:
        captured: list[Operation] = []

        async def _record(updated: Operation) -> None:
            if captured:
                raise ContinuationError(f"next() called more than once for {site.path!r}")
            captured.append(updated)
            return None

        await self.dispatch(site.operation, _record)
        if not captured:
            return None

        # the middleware may have requested relations of its own
        updated = captured[0]
        relations = self.catalog.relations_for(updated.model)
        visited = {s.path for s in extract_shaping_sites(site.operation, relations)}
        if all(s.path in visited for s in extract_shaping_sites(updated, relations)):
            return updated

        logger.debug("Dispatching shaping clauses added under %r", site.path)
        working = updated.replace(args=copy.deepcopy(updated.args))
        await self._apply_shaping(updated, working, relations, visited)
        return working

    def _observe(self, observe, *args: Any) -> None:
        if not self.config.metrics_enabled:
            return
        try:
            observe(*args)
        except Exception:
            # Metric failures must not mask real outcomes
            logger.debug("Failed to record %s", observe.__name__, exc_info=True)
