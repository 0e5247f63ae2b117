"""Implementação assíncrona de SessionStore usando MongoDB (pymongo AsyncMongoClient)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from bson.errors import InvalidDocument
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from mongodb_session.config.settings import DEFAULT_SESSION_TTL_SECONDS
from mongodb_session.domain.session import Session
from mongodb_session.infra.session_contract import (
    DatabaseOperationError,
    SessionSerializationError,
    SessionStoreConnectionError,
)
from mongodb_session.infra.session_contract_async import AsyncSessionStore
from mongodb_session.infra.session_document import (
    SESSION_ID_FIELD,
    build_session_document,
    check_ttl_seconds,
    created_index_model,
    decode_session,
    expiry_index_model,
    session_filter,
)
from mongodb_session.infra.session_validations import ensure_storable_id, resolve_session_id
from mongodb_session.observability.logging import get_logger, mask_session_id

if TYPE_CHECKING:
    from pymongo import IndexModel
    from pymongo.asynchronous.collection import AsyncCollection

    from mongodb_session.config.settings import Settings
    from mongodb_session.domain.protocols.session_model import SessionModel

logger: logging.Logger = get_logger(__name__)


class AsyncMongoSessionStore(AsyncSessionStore):
    """Armazenamento assíncrono de sessão em MongoDB via AsyncMongoClient.

    Mesmo documento e mesma regra de TTL do MongoSessionStore.
    """

    def __init__(
        self,
        client: AsyncMongoClient,
        database: str,
        collection: str,
        *,
        session_type: type[SessionModel] = Session,
        default_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        created_ttl_seconds: int | None = None,
        reprovision_on_clear: bool = True,
    ) -> None:
        self._client = client
        self._database = database
        self._collection_name = collection
        self._session_type = session_type
        self._default_ttl_seconds = check_ttl_seconds(default_ttl_seconds)
        self._created_ttl_seconds = (
            check_ttl_seconds(created_ttl_seconds, allow_zero=True)
            if created_ttl_seconds is not None
            else None
        )
        self._reprovision_on_clear = reprovision_on_clear

    @classmethod
    async def connect(
        cls,
        uri: str,
        database: str,
        collection: str,
        *,
        client_options: Mapping[str, Any] | None = None,
        **store_options: Any,
    ) -> AsyncMongoSessionStore:
        """Conecta ao MongoDB e valida acesso com ping (assíncrono).

        Raises:
            SessionStoreConnectionError: Se o servidor estiver inacessível
        """
        options = {"tz_aware": True, **(client_options or {})}
        client: AsyncMongoClient | None = None
        try:
            client = AsyncMongoClient(uri, **options)
            await client.admin.command("ping")
        except PyMongoError as e:
            logger.error(
                "Failed to connect to MongoDB",
                extra={"database": database, "error": type(e).__name__},
            )
            if client is not None:
                await client.close()
            raise SessionStoreConnectionError(f"MongoDB connection failed: {e}") from e

        logger.info(
            "Connected to MongoDB session store",
            extra={"database": database, "collection": collection},
        )
        return cls.from_client(client, database, collection, **store_options)

    @classmethod
    def from_client(
        cls,
        client: AsyncMongoClient,
        database: str,
        collection: str,
        **store_options: Any,
    ) -> AsyncMongoSessionStore:
        return cls(client, database, collection, **store_options)

    @classmethod
    async def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        session_type: type[SessionModel] = Session,
    ) -> AsyncMongoSessionStore:
        if settings is None:
            from mongodb_session.config.settings import get_settings

            settings = get_settings()

        return await cls.connect(
            settings.connection_string,
            settings.mongodb_database,
            settings.mongodb_collection,
            client_options=settings.client_options,
            session_type=session_type,
            default_ttl_seconds=settings.session_default_ttl_seconds,
            created_ttl_seconds=settings.session_created_ttl_seconds,
            reprovision_on_clear=settings.session_reprovision_indexes_on_clear,
        )

    @property
    def default_ttl_seconds(self) -> int:
        return self._default_ttl_seconds

    def set_default_ttl(self, ttl_seconds: int) -> None:
        self._default_ttl_seconds = check_ttl_seconds(ttl_seconds)

    @property
    def _collection(self) -> AsyncCollection:
        return self._client[self._database][self._collection_name]

    async def store(self, session: SessionModel) -> str | None:
        """Persiste sessão em MongoDB (assíncrono)."""
        now = datetime.now(tz=UTC)
        document = build_session_document(session, self._default_ttl_seconds, now)
        session_id = document[SESSION_ID_FIELD]

        try:
            await self._collection.replace_one(
                session_filter(session_id), document, upsert=True
            )
        except InvalidDocument as e:
            logger.error(
                "Failed to encode session for MongoDB",
                extra={"session_id": mask_session_id(session_id), "error": str(e)},
            )
            raise SessionSerializationError(f"MongoDB encode failed: {e}") from e
        except PyMongoError as e:
            logger.error(
                "Failed to save session to MongoDB",
                extra={"session_id": mask_session_id(session_id), "error": str(e)},
            )
            raise DatabaseOperationError(
                f"Failed to save session to MongoDB: {e}"
            ) from e

        logger.debug(
            "Session saved (MongoDB)",
            extra={"session_id": mask_session_id(session_id)},
        )
        return session.into_cookie_value()

    async def load(self, cookie_value: str) -> SessionModel | None:
        """Carrega sessão de MongoDB (assíncrono)."""
        session_id = resolve_session_id(self._session_type, cookie_value)

        try:
            document = await self._collection.find_one(session_filter(session_id))
        except PyMongoError as e:
            logger.error(
                "Failed to load session from MongoDB",
                extra={"session_id": mask_session_id(session_id), "error": str(e)},
            )
            raise DatabaseOperationError(
                f"Failed to load session from MongoDB: {e}"
            ) from e

        return decode_session(document, self._session_type)

    async def destroy(self, session: SessionModel) -> None:
        """Remove sessão de MongoDB."""
        session_id = ensure_storable_id(session)

        try:
            result = await self._collection.delete_one(session_filter(session_id))
        except PyMongoError as e:
            logger.error(
                "Failed to delete session from MongoDB",
                extra={"session_id": mask_session_id(session_id), "error": str(e)},
            )
            raise DatabaseOperationError(
                f"Failed to delete session from MongoDB: {e}"
            ) from e

        logger.debug(
            "Session deleted (MongoDB)",
            extra={"session_id": mask_session_id(session_id), "deleted": result.deleted_count},
        )

    async def clear(self) -> None:
        """Remove a coleção inteira e reprovisiona os índices TTL."""
        try:
            await self._collection.drop()
        except PyMongoError as e:
            logger.error(
                "Failed to drop MongoDB session collection",
                extra={"collection": self._collection_name, "error": str(e)},
            )
            raise DatabaseOperationError(f"Failed to drop session collection: {e}") from e

        logger.info(
            "Session collection cleared (MongoDB)",
            extra={"collection": self._collection_name},
        )
        if self._reprovision_on_clear:
            await self.initialize()

    async def initialize(self) -> None:
        await self.provision_expiry_index()
        if self._created_ttl_seconds is not None:
            await self.provision_created_index(self._created_ttl_seconds)

    async def provision_expiry_index(self) -> None:
        await self._create_index(expiry_index_model())

    async def provision_created_index(self, ttl_seconds: int) -> None:
        check_ttl_seconds(ttl_seconds, allow_zero=True)
        await self._create_index(created_index_model(ttl_seconds))

    async def _create_index(self, index: IndexModel) -> None:
        name = index.document["name"]
        try:
            await self._collection.create_indexes([index])
        except PyMongoError as e:
            logger.error(
                "Failed to create MongoDB TTL index",
                extra={"index": name, "error": str(e)},
            )
            raise DatabaseOperationError(f"Failed to create TTL index {name}: {e}") from e

        logger.debug("TTL index provisioned (MongoDB)", extra={"index": name})
