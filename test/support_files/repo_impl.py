"""Async repository with a wrapped protocol, an ABC and a generated interface."""

import abc
import asyncio
import typing

import typing_extensions

from suspendwrap import ExecutionScope, Module

scope = ExecutionScope()

wrapper_module = Module("repo_wrappers", scope_provider="repo_impl.scope")


class User:
    def __init__(self, id: str, name: str):
        self.id = id
        self.name = name

    def __eq__(self, other):
        return isinstance(other, User) and (self.id, self.name) == (other.id, other.name)

    def __repr__(self):
        return f"User({self.id!r}, {self.name!r})"


@wrapper_module.wrap_interface(name="NamedWrapper")
class Named(typing.Protocol):
    async def name(self) -> str: ...


class Closeable(abc.ABC):
    @abc.abstractmethod
    def close(self) -> None: ...


@wrapper_module.wrap_class(interface="RepoInterface")
class Repo(Named, Closeable):
    """A repository of users."""

    def __init__(self):
        self._users = {"1": User("1", "ada"), "2": User("2", "grace")}
        self.closed = False

    async def name(self) -> str:
        return "users"

    async def fetch(self, id: str) -> User:
        """Fetch a single user."""
        await asyncio.sleep(0.01)
        if id not in self._users:
            raise KeyError(id)
        return self._users[id]

    async def stream_ids(self, limit: int) -> typing.AsyncGenerator[str, None]:
        for id in sorted(self._users)[:limit]:
            await asyncio.sleep(0.01)
            yield id

    def count(self) -> int:
        return len(self._users)

    @typing_extensions.override
    def close(self) -> None:
        self.closed = True

    def find(self, *ids: str, strict: bool = False) -> list[User]:
        if strict:
            return [self._users[id] for id in ids]
        return [self._users[id] for id in ids if id in self._users]

    def _reset(self) -> None:
        self._users.clear()
