from __future__ import annotations

import asyncio
from typing import Any, Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from nestware.dispatch.models import Operation


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255))
    posts: Mapped[list["Post"]] = relationship(back_populates="author")
    comments: Mapped[list["Comment"]] = relationship(back_populates="author")
    profile: Mapped[Optional["Profile"]] = relationship(back_populates="user")


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    bio: Mapped[str] = mapped_column(String(255))
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True)
    user: Mapped["User"] = relationship(back_populates="profile")


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255))
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    author: Mapped["User"] = relationship(back_populates="posts")
    comments: Mapped[list["Comment"]] = relationship(back_populates="post")


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(primary_key=True)
    content: Mapped[str] = mapped_column(String(255))
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    post_id: Mapped[Optional[int]] = mapped_column(ForeignKey("posts.id"))
    replied_to_id: Mapped[Optional[int]] = mapped_column(ForeignKey("comments.id"))
    author: Mapped["User"] = relationship(back_populates="comments")
    post: Mapped[Optional["Post"]] = relationship(back_populates="comments")
    replies: Mapped[list["Comment"]] = relationship(back_populates="replied_to")
    replied_to: Mapped[Optional["Comment"]] = relationship(
        back_populates="replies", remote_side="Comment.id"
    )


DMMF_DOCUMENT: dict[str, Any] = {
    "datamodel": {
        "models": [
            {
                "name": "User",
                "fields": [
                    {"name": "id", "kind": "scalar", "type": "Int"},
                    {"name": "email", "kind": "scalar", "type": "String"},
                    {"name": "posts", "kind": "object", "type": "Post", "relationName": "PostToUser"},
                    {"name": "profile", "kind": "object", "type": "Profile", "relationName": "ProfileToUser"},
                ],
            },
            {
                "name": "Post",
                "fields": [
                    {"name": "id", "kind": "scalar", "type": "Int"},
                    {"name": "author", "kind": "object", "type": "User", "relationName": "PostToUser"},
                    # composite types are objects without a relation name
                    {"name": "meta", "kind": "object", "type": "PostMeta"},
                ],
            },
            {"name": "Profile", "fields": []},
        ]
    }
}


class Downstream:
    """
    Stand-in for the host chain's terminal continuation.
    """

    def __init__(self, result: Any = None, error: Optional[BaseException] = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[Operation] = []

    async def __call__(self, operation: Operation) -> Any:
        self.calls.append(operation)
        if self.error is not None:
            raise self.error
        return self.result


async def passthrough(operation: Operation, call_next) -> Any:
    return await call_next(operation)


def run(coro):
    return asyncio.run(coro)


