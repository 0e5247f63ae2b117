"""Camada de infraestrutura: adapters de persistência de sessão.

Este módulo exporta:

- Contratos: SessionStore, AsyncSessionStore
- Implementações: MongoSessionStore, AsyncMongoSessionStore, InMemorySessionStore
- Erros: SessionStoreError e subclasses
- Factory: create_session_store

Uso típico:
    from mongodb_session.infra import MongoSessionStore

    store = MongoSessionStore.connect("mongodb://127.0.0.1:27017/", "db", "sessions")
    store.initialize()
"""

from mongodb_session.infra.session_contract import (
    DatabaseOperationError,
    MalformedCookieError,
    SessionSerializationError,
    SessionStore,
    SessionStoreConnectionError,
    SessionStoreError,
)
from mongodb_session.infra.session_contract_async import AsyncSessionStore
from mongodb_session.infra.session_store import create_session_store
from mongodb_session.infra.session_store_memory import InMemorySessionStore
from mongodb_session.infra.session_store_mongodb import MongoSessionStore
from mongodb_session.infra.session_store_mongodb_async import AsyncMongoSessionStore

__all__ = [
    # Contratos
    "SessionStore",
    "AsyncSessionStore",
    # Implementações
    "MongoSessionStore",
    "AsyncMongoSessionStore",
    "InMemorySessionStore",
    "create_session_store",
    # Erros
    "SessionStoreError",
    "SessionStoreConnectionError",
    "MalformedCookieError",
    "SessionSerializationError",
    "DatabaseOperationError",
]
