from __future__ import annotations

import copy
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
from pymongo.errors import OperationFailure

from mongodb_session.config.settings import get_settings


class FakeCollection:
    """Coleção em memória com o subconjunto da API pymongo usado pelos stores."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.indexes: dict[str, dict[str, Any]] = {}

    def find_one(self, filter: dict[str, Any]) -> dict[str, Any] | None:
        document = self.documents.get(filter["session_id"])
        return copy.deepcopy(document) if document is not None else None

    def replace_one(
        self, filter: dict[str, Any], replacement: dict[str, Any], upsert: bool = False
    ) -> SimpleNamespace:
        key = filter["session_id"]
        matched = key in self.documents
        if matched or upsert:
            self.documents[key] = copy.deepcopy(replacement)
        return SimpleNamespace(matched_count=int(matched), upserted_id=None if matched else key)

    def delete_one(self, filter: dict[str, Any]) -> SimpleNamespace:
        deleted = self.documents.pop(filter["session_id"], None)
        return SimpleNamespace(deleted_count=0 if deleted is None else 1)

    def drop(self) -> None:
        self.documents.clear()
        self.indexes.clear()

    def create_indexes(self, indexes: list[Any]) -> list[str]:
        names = []
        for index in indexes:
            spec = dict(index.document)
            spec["key"] = dict(spec["key"])
            existing = self.indexes.get(spec["name"])
            if existing is not None and existing != spec:
                raise OperationFailure("Index with name already exists", code=85)
            self.indexes[spec["name"]] = spec
            names.append(spec["name"])
        return names


class FakeAsyncCollection:
    """Versão awaitable da FakeCollection (API AsyncCollection)."""

    def __init__(self, inner: FakeCollection) -> None:
        self.inner = inner

    async def find_one(self, *args: Any, **kwargs: Any) -> Any:
        return self.inner.find_one(*args, **kwargs)

    async def replace_one(self, *args: Any, **kwargs: Any) -> Any:
        return self.inner.replace_one(*args, **kwargs)

    async def delete_one(self, *args: Any, **kwargs: Any) -> Any:
        return self.inner.delete_one(*args, **kwargs)

    async def drop(self) -> None:
        self.inner.drop()

    async def create_indexes(self, indexes: list[Any]) -> list[str]:
        return self.inner.create_indexes(indexes)


def client_for(collection: Any) -> MagicMock:
    """MagicMock de cliente onde client[db][coll] retorna a coleção dada."""
    client = MagicMock()
    client.__getitem__.return_value.__getitem__.return_value = collection
    return client


@pytest.fixture()
def fake_collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture()
def fake_client(fake_collection: FakeCollection) -> MagicMock:
    return client_for(fake_collection)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def fake_async_client(fake_collection: FakeCollection) -> MagicMock:
    return client_for(FakeAsyncCollection(fake_collection))


@pytest.fixture()
def make_client():
    return client_for
