from __future__ import annotations

import copy

from nestware.dispatch.coordinator import NestedDispatcher
from nestware.dispatch.models import Operation

from .._support import Downstream, passthrough, run

USER_RESULT = {
    "id": 1,
    "email": "a@b.com",
    "posts": [{"id": 10, "title": "t", "comments": [{"id": 100, "content": "c"}]}],
    "profile": {"id": 5, "bio": "b"},
}


def _create_user() -> Operation:
    return Operation(
        "User",
        "create",
        {
            "data": {
                "email": "a@b.com",
                "posts": {"create": {"title": "t", "comments": {"create": {"content": "c"}}}},
                "profile": {"create": {"bio": "b"}},
            },
            "include": {"posts": {"include": {"comments": True}}, "profile": True},
        },
    )


class TestResultSlices:
    def test_noop_middleware_returns_downstream_result_unchanged(self, catalog) -> None:
        downstream = Downstream(result=copy.deepcopy(USER_RESULT))

        result = run(NestedDispatcher(passthrough, catalog)(_create_user(), downstream))

        assert result == USER_RESULT
        assert len(downstream.calls) == 1

    def test_nested_next_resolves_with_relation_slice(self, catalog) -> None:
        received: dict[str, object] = {}

        async def middleware(operation, call_next):
            value = await call_next(operation)
            if operation.parent is not None and operation.action == "create":
                received[operation.model] = value
            return value

        downstream = Downstream(result=copy.deepcopy(USER_RESULT))

        run(NestedDispatcher(middleware, catalog)(_create_user(), downstream))

        assert received["Post"] == USER_RESULT["posts"]
        assert received["Profile"] == USER_RESULT["profile"]
        # a Post result slice is a list, so comments have no slice of their own
        assert received["Comment"] is None

    def test_nested_middleware_can_transform_its_slice(self, catalog) -> None:
        async def middleware(operation, call_next):
            value = await call_next(operation)
            if operation.model == "Post" and operation.action == "create":
                return [{**post, "decorated": True} for post in value]
            return value

        downstream = Downstream(result=copy.deepcopy(USER_RESULT))

        result = run(NestedDispatcher(middleware, catalog)(_create_user(), downstream))

        assert [post["decorated"] for post in result["posts"]] == [True]
        assert result["profile"] == USER_RESULT["profile"]

    def test_list_element_transform_survives_passthrough_siblings(self, catalog) -> None:
        async def middleware(operation, call_next):
            value = await call_next(operation)
            if operation.model == "Post" and operation.args.get("title") == "a":
                return [{**post, "decorated": True} for post in value]
            return value

        operation = Operation("User", "create", {"data": {"posts": {"create": [{"title": "a"}, {"title": "b"}]}}})
        downstream = Downstream(result={"id": 1, "posts": [{"id": 10}, {"id": 11}]})

        result = run(NestedDispatcher(middleware, catalog)(operation, downstream))

        assert result["posts"] == [{"id": 10, "decorated": True}, {"id": 11, "decorated": True}]

    def test_first_transformed_list_element_wins(self, catalog) -> None:
        async def middleware(operation, call_next):
            value = await call_next(operation)
            if operation.model == "Post":
                return [{**post, "by": operation.args["title"]} for post in value]
            return value

        operation = Operation("User", "create", {"data": {"posts": {"create": [{"title": "a"}, {"title": "b"}]}}})
        downstream = Downstream(result={"id": 1, "posts": [{"id": 10}]})

        result = run(NestedDispatcher(middleware, catalog)(operation, downstream))

        assert result["posts"] == [{"id": 10, "by": "a"}]

    def test_relation_not_returned_gives_none_slice(self, catalog) -> None:
        received: list[object] = []

        async def middleware(operation, call_next):
            value = await call_next(operation)
            if operation.model == "Post":
                received.append(value)
            return value

        downstream = Downstream(result={"id": 1, "email": "a@b.com"})
        operation = Operation("User", "create", {"data": {"email": "a@b.com", "posts": {"create": {"title": "t"}}}})

        result = run(NestedDispatcher(middleware, catalog)(operation, downstream))

        assert received == [None]
        assert result == {"id": 1, "email": "a@b.com"}

    def test_short_circuited_nested_value_lands_in_result(self, catalog) -> None:
        async def middleware(operation, call_next):
            if operation.model == "Profile":
                return {"id": 99, "bio": "cached"}
            return await call_next(operation)

        downstream = Downstream(result={"id": 1})
        operation = Operation("User", "create", {"data": {"profile": {"create": {"bio": "b"}}}})

        result = run(NestedDispatcher(middleware, catalog)(operation, downstream))

        assert result == {"id": 1, "profile": {"id": 99, "bio": "cached"}}

    def test_non_mapping_result_passes_through(self, catalog) -> None:
        downstream = Downstream(result=3)
        operation = Operation("User", "create", {"data": {"posts": {"createMany": {"data": [{"title": "a"}]}}}})

        result = run(NestedDispatcher(passthrough, catalog)(operation, downstream))

        assert result == 3

    def test_shaping_continuation_returns_none(self, catalog) -> None:
        received: list[object] = []

        async def middleware(operation, call_next):
            value = await call_next(operation)
            if operation.action == "include":
                received.append(value)
            return value

        downstream = Downstream(result={"id": 1, "posts": []})
        operation = Operation("User", "findUnique", {"where": {"id": 1}, "include": {"posts": True}})

        result = run(NestedDispatcher(middleware, catalog)(operation, downstream))

        assert received == [None]
        assert result == {"id": 1, "posts": []}
