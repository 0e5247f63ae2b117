"""Testes para SessionStore baseado em MongoDB (pymongo)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from pymongo.errors import AutoReconnect, OperationFailure, ServerSelectionTimeoutError

from mongodb_session.config.settings import Settings
from mongodb_session.domain.session import Session
from mongodb_session.infra import session_store_mongodb
from mongodb_session.infra.session_contract import (
    DatabaseOperationError,
    MalformedCookieError,
    SessionSerializationError,
    SessionStoreConnectionError,
)
from mongodb_session.infra.session_document import CREATED_INDEX_NAME, EXPIRE_INDEX_NAME
from mongodb_session.infra.session_store_mongodb import MongoSessionStore


@pytest.fixture()
def store(fake_client) -> MongoSessionStore:
    return MongoSessionStore.from_client(fake_client, "db_name", "collection")


def _session_with(key: str = "key-1", value: str = "value-1") -> Session:
    session = Session.new()
    session.insert(key, value)
    return session


class TestMongoSessionStoreConstruction:
    """Testes para connect/from_client/configuração."""

    def test_from_client_defaults(self, fake_client):
        store = MongoSessionStore.from_client(fake_client, "db_name", "collection")

        assert store.client is fake_client
        assert store.database_name == "db_name"
        assert store.collection_name == "collection"
        assert store.default_ttl_seconds == 1200

    def test_set_default_ttl(self, store):
        store.set_default_ttl(60)
        assert store.default_ttl_seconds == 60

    def test_set_default_ttl_rejects_non_positive(self, store):
        with pytest.raises(ValueError):
            store.set_default_ttl(0)

    def test_connect_pings_and_sets_tz_aware(self, monkeypatch):
        client = MagicMock()
        factory = MagicMock(return_value=client)
        monkeypatch.setattr(session_store_mongodb, "MongoClient", factory)

        store = MongoSessionStore.connect(
            "mongodb://127.0.0.1:27017/",
            "db_name",
            "collection",
            client_options={"serverSelectionTimeoutMS": 500},
            default_ttl_seconds=30,
        )

        factory.assert_called_once_with(
            "mongodb://127.0.0.1:27017/", tz_aware=True, serverSelectionTimeoutMS=500
        )
        client.admin.command.assert_called_once_with("ping")
        assert store.default_ttl_seconds == 30
        # connect não provisiona índices
        client.__getitem__.return_value.__getitem__.return_value.create_indexes.assert_not_called()

    def test_connect_failure_raises_connection_error(self, monkeypatch):
        client = MagicMock()
        client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")
        monkeypatch.setattr(session_store_mongodb, "MongoClient", MagicMock(return_value=client))

        with pytest.raises(SessionStoreConnectionError):
            MongoSessionStore.connect("mongodb://10.255.255.1:27017/", "db", "coll")

        client.close.assert_called_once()

    def test_from_settings(self, monkeypatch):
        captured = {}

        def fake_connect(cls, uri, database, collection, **kwargs):
            captured.update(uri=uri, database=database, collection=collection, **kwargs)
            return "store"

        monkeypatch.setattr(MongoSessionStore, "connect", classmethod(fake_connect))
        monkeypatch.delenv("MONGODB_URI", raising=False)
        settings = Settings(
            mongodb_host="mongo",
            mongodb_port=27018,
            mongodb_database="app",
            mongodb_collection="sessions",
            session_default_ttl_seconds=600,
            session_created_ttl_seconds=86400,
        )

        assert MongoSessionStore.from_settings(settings) == "store"
        assert captured["uri"] == "mongodb://mongo:27018/"
        assert captured["database"] == "app"
        assert captured["collection"] == "sessions"
        assert captured["default_ttl_seconds"] == 600
        assert captured["created_ttl_seconds"] == 86400
        assert captured["reprovision_on_clear"] is True


class TestMongoSessionStoreStore:
    """Testes para método store."""

    def test_store_returns_cookie(self, store, fake_collection):
        session = _session_with()

        cookie = store.store(session)

        assert cookie == session.into_cookie_value()
        assert session.id in fake_collection.documents

    def test_store_envelope_fields(self, store, fake_collection):
        """created = agora e expireAt = created + TTL padrão."""
        session = _session_with()
        before = datetime.now(tz=UTC)

        store.store(session)

        document = fake_collection.documents[session.id]
        assert document["session_id"] == session.id
        assert document["session"]["data"] == {"key-1": "value-1"}
        assert before <= document["created"] <= datetime.now(tz=UTC)
        assert document["expireAt"] - document["created"] == timedelta(seconds=1200)

    def test_store_uses_session_expiry(self, store, fake_collection):
        session = _session_with()
        session.expire_in(5)

        store.store(session)

        assert fake_collection.documents[session.id]["expireAt"] == session.expiry

    def test_store_uses_updated_default_ttl(self, store, fake_collection):
        store.set_default_ttl(60)
        session = _session_with()

        store.store(session)

        document = fake_collection.documents[session.id]
        assert document["expireAt"] - document["created"] == timedelta(seconds=60)

    def test_store_is_single_upsert(self, make_client):
        collection = MagicMock()
        store = MongoSessionStore.from_client(make_client(collection), "db", "coll")
        session = _session_with()

        store.store(session)

        collection.replace_one.assert_called_once()
        args, kwargs = collection.replace_one.call_args
        assert args[0] == {"session_id": session.id}
        assert kwargs == {"upsert": True}
        collection.find_one.assert_not_called()

    def test_upsert_keeps_single_record_with_latest_payload(self, store, fake_collection):
        session = _session_with("counter", 1)
        cookie = store.store(session)

        session.insert("counter", 2)
        store.store(session)

        assert len(fake_collection.documents) == 1
        assert store.load(cookie).get("counter") == 2

    def test_store_refreshes_created(self, store, fake_collection):
        session = _session_with()
        store.store(session)
        first_created = fake_collection.documents[session.id]["created"]

        store.store(session)

        assert fake_collection.documents[session.id]["created"] >= first_created

    def test_store_expired_session_returns_none(self, store):
        session = _session_with()
        session.expire_in(-10)

        assert store.store(session) is None

    def test_store_loaded_session_returns_none(self, store):
        cookie = store.store(_session_with())
        loaded = store.load(cookie)

        assert store.store(loaded) is None

    def test_store_unencodable_payload(self, make_client):
        collection = MagicMock()
        store = MongoSessionStore.from_client(make_client(collection), "db", "coll")
        session = _session_with()
        session.insert("bad", object())

        with pytest.raises(SessionSerializationError):
            store.store(session)

        collection.replace_one.assert_not_called()

    def test_store_database_error(self, make_client):
        collection = MagicMock()
        collection.replace_one.side_effect = AutoReconnect("connection reset")
        store = MongoSessionStore.from_client(make_client(collection), "db", "coll")

        with pytest.raises(DatabaseOperationError):
            store.store(_session_with())


class TestMongoSessionStoreLoad:
    """Testes para método load."""

    def test_round_trip(self, store):
        session = _session_with()

        cookie = store.store(session)
        loaded = store.load(cookie)

        assert loaded is not None
        assert loaded.id == session.id
        assert loaded.get("key-1") == "value-1"

    def test_load_not_found(self, store):
        assert store.load(Session.new().into_cookie_value()) is None

    def test_load_malformed_cookie(self, make_client):
        collection = MagicMock()
        store = MongoSessionStore.from_client(make_client(collection), "db", "coll")

        with pytest.raises(MalformedCookieError):
            store.load("not-a-valid-cookie")

        collection.find_one.assert_not_called()

    def test_load_logically_expired(self, store, fake_collection):
        """Registro ainda presente mas com expireAt passado é ausente."""
        session = _session_with()
        cookie = store.store(session)
        fake_collection.documents[session.id]["expireAt"] = datetime.now(tz=UTC) - timedelta(
            seconds=1
        )

        assert store.load(cookie) is None
        assert session.id in fake_collection.documents

    def test_load_missing_payload_returns_empty_session(self, store, fake_collection):
        session = _session_with()
        cookie = store.store(session)
        del fake_collection.documents[session.id]["session"]

        loaded = store.load(cookie)

        assert isinstance(loaded, Session)
        assert loaded.is_empty()

    def test_load_empty_session_is_truthy(self, store):
        cookie = store.store(Session.new())

        if not (loaded := store.load(cookie)):
            pytest.fail("sessão vazia carregada foi tratada como ausente")
        assert loaded.is_empty()

    def test_load_corrupted_payload_returns_none(self, store, fake_collection):
        session = _session_with()
        cookie = store.store(session)
        fake_collection.documents[session.id]["session"] = {"expiry": "garbage"}

        assert store.load(cookie) is None

    def test_load_database_error(self, make_client):
        collection = MagicMock()
        collection.find_one.side_effect = ServerSelectionTimeoutError("timeout")
        store = MongoSessionStore.from_client(make_client(collection), "db", "coll")

        with pytest.raises(DatabaseOperationError):
            store.load(Session.new().into_cookie_value())


class TestMongoSessionStoreDestroy:
    """Testes para método destroy."""

    def test_destroy_removes_record(self, store, fake_collection):
        session = _session_with()
        cookie = store.store(session)

        store.destroy(session)

        assert fake_collection.documents == {}
        assert store.load(cookie) is None

    def test_destroy_is_idempotent(self, store):
        session = _session_with()
        store.store(session)

        store.destroy(session)
        store.destroy(session)

    def test_destroy_filters_by_session_id(self, make_client):
        collection = MagicMock()
        store = MongoSessionStore.from_client(make_client(collection), "db", "coll")
        session = Session.new()

        store.destroy(session)

        collection.delete_one.assert_called_once_with({"session_id": session.id})

    def test_destroy_database_error(self, make_client):
        collection = MagicMock()
        collection.delete_one.side_effect = AutoReconnect("reset")
        store = MongoSessionStore.from_client(make_client(collection), "db", "coll")

        with pytest.raises(DatabaseOperationError):
            store.destroy(Session.new())


class TestMongoSessionStoreClear:
    """Testes para método clear."""

    def test_clear_removes_everything_and_stays_writable(self, store, fake_collection):
        cookies = [store.store(_session_with()) for _ in range(3)]

        store.clear()

        assert all(store.load(cookie) is None for cookie in cookies)
        new_cookie = store.store(_session_with("after", "clear"))
        assert store.load(new_cookie).get("after") == "clear"

    def test_clear_reprovisions_expiry_index(self, store, fake_collection):
        store.provision_expiry_index()

        store.clear()

        assert EXPIRE_INDEX_NAME in fake_collection.indexes

    def test_clear_reprovisions_created_index_when_configured(self, fake_client, fake_collection):
        store = MongoSessionStore.from_client(
            fake_client, "db_name", "collection", created_ttl_seconds=3600
        )

        store.clear()

        assert set(fake_collection.indexes) == {EXPIRE_INDEX_NAME, CREATED_INDEX_NAME}

    def test_clear_without_reprovision(self, fake_client, fake_collection):
        store = MongoSessionStore.from_client(
            fake_client, "db_name", "collection", reprovision_on_clear=False
        )
        store.provision_expiry_index()

        store.clear()

        assert fake_collection.indexes == {}

    def test_clear_database_error(self, make_client):
        collection = MagicMock()
        collection.drop.side_effect = OperationFailure("not authorized", code=13)
        store = MongoSessionStore.from_client(make_client(collection), "db", "coll")

        with pytest.raises(DatabaseOperationError):
            store.clear()

        collection.create_indexes.assert_not_called()


class TestMongoSessionStoreIndexes:
    """Testes para provisionamento de índices TTL."""

    def test_expiry_index_spec(self, store, fake_collection):
        store.provision_expiry_index()

        spec = fake_collection.indexes[EXPIRE_INDEX_NAME]
        assert spec["key"] == {"expireAt": 1}
        assert spec["expireAfterSeconds"] == 0

    def test_expiry_index_idempotent(self, store, fake_collection):
        store.provision_expiry_index()
        store.provision_expiry_index()

        assert list(fake_collection.indexes) == [EXPIRE_INDEX_NAME]

    def test_created_index_spec(self, store, fake_collection):
        store.provision_created_index(3600)
        store.provision_created_index(3600)

        spec = fake_collection.indexes[CREATED_INDEX_NAME]
        assert spec["key"] == {"created": 1}
        assert spec["expireAfterSeconds"] == 3600

    def test_created_index_conflict_surfaces(self, store):
        store.provision_created_index(3600)

        with pytest.raises(DatabaseOperationError):
            store.provision_created_index(60)

    def test_created_index_rejects_negative_ttl(self, store):
        with pytest.raises(ValueError):
            store.provision_created_index(-1)

    def test_initialize(self, fake_client, fake_collection):
        store = MongoSessionStore.from_client(
            fake_client, "db_name", "collection", created_ttl_seconds=120
        )

        store.initialize()

        assert fake_collection.indexes[CREATED_INDEX_NAME]["expireAfterSeconds"] == 120
        assert EXPIRE_INDEX_NAME in fake_collection.indexes
