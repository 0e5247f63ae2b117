"""Implementação de SessionStore usando MongoDB (pymongo, síncrono)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from bson.errors import InvalidDocument
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from mongodb_session.config.settings import DEFAULT_SESSION_TTL_SECONDS
from mongodb_session.domain.session import Session
from mongodb_session.infra.session_contract import (
    DatabaseOperationError,
    SessionSerializationError,
    SessionStore,
    SessionStoreConnectionError,
)
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
    from pymongo.collection import Collection

    from mongodb_session.config.settings import Settings
    from mongodb_session.domain.protocols.session_model import SessionModel

logger: logging.Logger = get_logger(__name__)


class MongoSessionStore(SessionStore):
    """Armazenamento de sessão em uma coleção MongoDB.

    Documento: {session_id, session, created, expireAt}
    TTL: índices TTL do próprio MongoDB (provision_*); load aplica
    expiração lógica porque o reaper do servidor roda a cada ~60s.

    Não há estado mutável além da configuração: cada operação é um
    round trip ao banco. Timeouts vêm do cliente (timeoutMS,
    pymongo.timeout()) e são propagados sem alteração.
    """

    def __init__(
        self,
        client: MongoClient,
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
    def connect(
        cls,
        uri: str,
        database: str,
        collection: str,
        *,
        client_options: Mapping[str, Any] | None = None,
        **store_options: Any,
    ) -> MongoSessionStore:
        """Conecta ao MongoDB e valida acesso com ping.

        Não provisiona índices (ver initialize()).

        Raises:
            SessionStoreConnectionError: Se o servidor estiver inacessível,
                a URI for inválida ou a autenticação falhar
        """
        options = {"tz_aware": True, **(client_options or {})}
        client: MongoClient | None = None
        try:
            client = MongoClient(uri, **options)
            client.admin.command("ping")
        except PyMongoError as e:
            logger.error(
                "Failed to connect to MongoDB",
                extra={"database": database, "error": type(e).__name__},
            )
            if client is not None:
                client.close()
            raise SessionStoreConnectionError(f"MongoDB connection failed: {e}") from e

        logger.info(
            "Connected to MongoDB session store",
            extra={"database": database, "collection": collection},
        )
        return cls.from_client(client, database, collection, **store_options)

    @classmethod
    def from_client(
        cls,
        client: MongoClient,
        database: str,
        collection: str,
        **store_options: Any,
    ) -> MongoSessionStore:
        """Cria store a partir de um cliente já aberto (nunca falha)."""
        return cls(client, database, collection, **store_options)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        session_type: type[SessionModel] = Session,
    ) -> MongoSessionStore:
        """Conecta usando MONGODB_* e SESSION_* do ambiente."""
        if settings is None:
            from mongodb_session.config.settings import get_settings

            settings = get_settings()

        return cls.connect(
            settings.connection_string,
            settings.mongodb_database,
            settings.mongodb_collection,
            client_options=settings.client_options,
            session_type=session_type,
            default_ttl_seconds=settings.session_default_ttl_seconds,
            created_ttl_seconds=settings.session_created_ttl_seconds,
            reprovision_on_clear=settings.session_reprovision_indexes_on_clear,
        )

    # ------------------------------------------------------------------
    # Configuração
    # ------------------------------------------------------------------

    @property
    def client(self) -> MongoClient:
        return self._client

    @property
    def database_name(self) -> str:
        return self._database

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @property
    def default_ttl_seconds(self) -> int:
        return self._default_ttl_seconds

    def set_default_ttl(self, ttl_seconds: int) -> None:
        """Altera o TTL aplicado a sessões sem expiração própria."""
        self._default_ttl_seconds = check_ttl_seconds(ttl_seconds)

    @property
    def _collection(self) -> Collection:
        return self._client[self._database][self._collection_name]

    # ------------------------------------------------------------------
    # Operações
    # ------------------------------------------------------------------

    def store(self, session: SessionModel) -> str | None:
        now = datetime.now(tz=UTC)
        document = build_session_document(session, self._default_ttl_seconds, now)
        session_id = document[SESSION_ID_FIELD]

        try:
            self._collection.replace_one(session_filter(session_id), document, upsert=True)
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
            raise DatabaseOperationError(f"MongoDB replace_one failed: {e}") from e

        logger.debug(
            "Session saved (MongoDB)",
            extra={"session_id": mask_session_id(session_id)},
        )
        return session.into_cookie_value()

    def load(self, cookie_value: str) -> SessionModel | None:
        session_id = resolve_session_id(self._session_type, cookie_value)

        try:
            document = self._collection.find_one(session_filter(session_id))
        except PyMongoError as e:
            logger.error(
                "Failed to load session from MongoDB",
                extra={"session_id": mask_session_id(session_id), "error": str(e)},
            )
            raise DatabaseOperationError(f"MongoDB find_one failed: {e}") from e

        return decode_session(document, self._session_type)

    def destroy(self, session: SessionModel) -> None:
        session_id = ensure_storable_id(session)

        try:
            result = self._collection.delete_one(session_filter(session_id))
        except PyMongoError as e:
            logger.error(
                "Failed to delete session from MongoDB",
                extra={"session_id": mask_session_id(session_id), "error": str(e)},
            )
            raise DatabaseOperationError(f"MongoDB delete_one failed: {e}") from e

        logger.debug(
            "Session deleted (MongoDB)",
            extra={
                "session_id": mask_session_id(session_id),
                "deleted": result.deleted_count,
            },
        )

    def clear(self) -> None:
        try:
            self._collection.drop()
        except PyMongoError as e:
            logger.error(
                "Failed to drop MongoDB session collection",
                extra={"collection": self._collection_name, "error": str(e)},
            )
            raise DatabaseOperationError(f"MongoDB drop failed: {e}") from e

        logger.info(
            "Session collection cleared (MongoDB)",
            extra={"collection": self._collection_name},
        )
        if self._reprovision_on_clear:
            self.initialize()

    # ------------------------------------------------------------------
    # Índices TTL
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Provisiona os índices TTL configurados para este store."""
        self.provision_expiry_index()
        if self._created_ttl_seconds is not None:
            self.provision_created_index(self._created_ttl_seconds)

    def provision_expiry_index(self) -> None:
        self._create_index(expiry_index_model())

    def provision_created_index(self, ttl_seconds: int) -> None:
        check_ttl_seconds(ttl_seconds, allow_zero=True)
        self._create_index(created_index_model(ttl_seconds))

    def _create_index(self, index: IndexModel) -> None:
        name = index.document["name"]
        try:
            self._collection.create_indexes([index])
        except PyMongoError as e:
            logger.error(
                "Failed to create MongoDB TTL index",
                extra={"index": name, "error": str(e)},
            )
            raise DatabaseOperationError(f"MongoDB create_indexes failed: {e}") from e

        logger.debug("TTL index provisioned (MongoDB)", extra={"index": name})
