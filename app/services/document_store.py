"""
File-backed JSON document store.
Holds users, orders and the menu in one document that is rewritten after each mutation.
"""

import asyncio
import copy
import json
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import structlog

from app.models.database import Catalog, OrderRecord, StoreDocument, UserRecord

logger = structlog.get_logger()

T = TypeVar("T")


class JsonDocumentStore:
    """
    Process-wide document store.

    Callers mutate one top-level key at a time through with_users, with_orders
    or with_catalog. Each key has its own lock so read-modify-write sequences on
    the same key never interleave; file writes are serialized by a separate lock.
    Mutators work on a copy, so a failed write leaves the document untouched.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.data = StoreDocument()
        self._key_locks = {
            "users": asyncio.Lock(),
            "orders": asyncio.Lock(),
            "menu": asyncio.Lock(),
        }
        self._write_lock = asyncio.Lock()

    def _load(self) -> StoreDocument:
        if not self.path.exists():
            return StoreDocument()
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return StoreDocument()
        return StoreDocument.model_validate(json.loads(raw))

    def _dump(self, payload: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(payload, tmp, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def read(self) -> StoreDocument:
        """Reload the document from disk, replacing the in-memory copy."""
        async with self._write_lock:
            self.data = await asyncio.to_thread(self._load)
        logger.debug(
            "Document store loaded",
            path=str(self.path),
            users=len(self.data.users),
            orders=len(self.data.orders),
            products=len(self.data.menu.products),
        )
        return self.data

    async def read_catalog(self) -> Catalog:
        """Reload only the menu from disk."""
        async with self._key_locks["menu"]:
            document = await asyncio.to_thread(self._load)
            self.data.menu = document.menu
            return self.data.menu

    async def _commit(self, key: str, value: Any) -> None:
        """Persist the document with `key` replaced, then swap the value in."""
        async with self._write_lock:
            document = self.data.model_copy(update={key: value})
            await asyncio.to_thread(self._dump, document.to_json_dict())
            setattr(self.data, key, value)

    async def _transaction(self, key: str, apply: Callable[[Any], tuple[Any, T]]) -> T:
        """
        Run `apply` on a deep copy of one top-level key.
        The in-memory document only changes once the write has succeeded.
        """
        async with self._key_locks[key]:
            draft = copy.deepcopy(getattr(self.data, key))
            value, result = apply(draft)
            await self._commit(key, value)
            return result

    async def with_users(self, mutator: Callable[[dict[str, UserRecord]], T]) -> T:
        return await self._transaction("users", lambda users: (users, mutator(users)))

    async def with_orders(self, mutator: Callable[[list[OrderRecord]], T]) -> T:
        return await self._transaction("orders", lambda orders: (orders, mutator(orders)))

    async def with_catalog(self, mutator: Callable[[Catalog], Catalog | None]) -> Catalog:
        """Replace or edit the menu; a mutator returning a Catalog replaces it wholesale."""

        def apply(menu: Catalog) -> tuple[Catalog, Catalog]:
            replacement = mutator(menu)
            if replacement is not None:
                menu = replacement
            return menu, menu

        return await self._transaction("menu", apply)

    async def upsert_user(self, user_id: int | str, first_name: str | None) -> UserRecord:
        """Create the user record once; later calls never overwrite it."""

        def mutate(users: dict[str, UserRecord]) -> UserRecord:
            key = str(user_id)
            if key not in users:
                users[key] = UserRecord(id=user_id, first_name=first_name)
            return users[key]

        return await self.with_users(mutate)

    @property
    def catalog(self) -> Catalog:
        return self.data.menu

    @property
    def orders(self) -> list[OrderRecord]:
        return self.data.orders
