"""Public interface for the ratebook package."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

from ratebook.db import default_json_path
from ratebook.db.base_gateway import PersistenceGateway, PersistenceResult, TransientGateway
from ratebook.db.json_gateway import JsonFileGateway
from ratebook.store.errors import (
    DuplicateError,
    InternalError,
    NotAllowedError,
    NotFoundError,
    PersistenceError,
    RatebookError,
    ValidationError,
)
from ratebook.store.models import Currency, RateRecord, RateType
from ratebook.store.rate_store import DEFAULT_PAGE_SIZE, RateStore
from ratebook.utils.logger import get_logger

__all__ = [
    "__version__",
    "Currency",
    "DuplicateError",
    "InternalError",
    "NotAllowedError",
    "NotFoundError",
    "PersistenceError",
    "PersistenceResult",
    "RateRecord",
    "RateStore",
    "RateType",
    "Ratebook",
    "RatebookError",
    "StorageBackend",
    "StorageConnectionInfo",
    "ValidationError",
]

LOGGER = get_logger(__name__)

try:
    __version__ = importlib_metadata.version("ratebook")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "0.1.0"


class StorageBackend(str, Enum):
    """Supported storage engines for Ratebook."""

    MEMORY = "memory"
    JSON = "json"
    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MONGODB = "mongodb"

    @classmethod
    def resolve_backend_and_scheme(cls, scheme: str) -> tuple["StorageBackend", str]:
        """Return backend enum + canonical scheme used in storage URLs."""

        if not scheme:
            raise ValueError("Storage URL must include a scheme (e.g. file:// or sqlite://)")
        scheme_lower = scheme.lower()
        base_scheme, _, driver = scheme_lower.partition("+")
        if base_scheme in {"memory", "mem", "transient"}:
            return cls.MEMORY, "memory"
        if base_scheme in {"file", "json"}:
            return cls.JSON, "file"
        if base_scheme in {"postgresql", "postgres"}:
            canonical_scheme = f"postgresql+{driver}" if driver else "postgresql"
            return cls.POSTGRES, canonical_scheme
        if base_scheme == "sqlite":
            return cls.SQLITE, "sqlite"
        if base_scheme == "mysql":
            # Preserve optional driver hints such as ``mysql+pymysql``.
            canonical_scheme = scheme_lower if driver else "mysql"
            return cls.MYSQL, canonical_scheme
        if base_scheme == "mongodb":
            # Keep srv-style schemes intact so pymongo can route via DNS.
            canonical_scheme = scheme_lower if driver else "mongodb"
            return cls.MONGODB, canonical_scheme
        raise ValueError(
            "Unsupported storage backend. Supported values are memory, JSON files, "
            "SQLite, MySQL, Postgres, and MongoDB."
        )

    @classmethod
    def from_scheme(cls, scheme: str) -> "StorageBackend":
        """Normalise URL schemes into a StorageBackend value."""

        backend, _ = cls.resolve_backend_and_scheme(scheme)
        return backend


@dataclass(slots=True)
class StorageConnectionInfo:
    """Represents where Ratebook should checkpoint its rates."""

    backend: StorageBackend
    url: str
    path: Path | None = None
    name: str | None = None
    username: str | None = None
    password: str | None = None
    host: str | None = None
    port: int | None = None

    @classmethod
    def memory(cls) -> "StorageConnectionInfo":
        return cls(backend=StorageBackend.MEMORY, url="memory://")

    @classmethod
    def from_url(cls, url: str) -> "StorageConnectionInfo":
        """Create a connection object by parsing a storage URL/DSN.

        A bare filesystem path ending in ``.json`` is accepted as shorthand for
        ``file://<path>``.
        """

        cleaned = (url or "").strip()
        if "://" not in cleaned and cleaned.lower().endswith(".json"):
            path = Path(cleaned).expanduser().resolve()
            return cls(backend=StorageBackend.JSON, url=path.as_uri(), path=path)
        parsed = urlparse(cleaned)
        if not parsed.scheme or "://" not in cleaned:
            raise ValueError("Storage URL must include a scheme (e.g. file:// or sqlite://)")
        backend, canonical_scheme = StorageBackend.resolve_backend_and_scheme(parsed.scheme)
        if parsed.scheme != canonical_scheme:
            parsed = parsed._replace(scheme=canonical_scheme)
            cleaned = parsed.geturl()

        if backend is StorageBackend.MEMORY:
            return cls.memory()
        if backend is StorageBackend.JSON:
            raw_path = unquote(parsed.netloc + parsed.path)
            path = Path(raw_path).expanduser().resolve() if raw_path else default_json_path()
            return cls(backend=backend, url=path.as_uri(), path=path)
        if backend is StorageBackend.SQLITE:
            # ``sqlite:///relative.db`` keeps one leading slash per SQLAlchemy rules.
            raw_path = unquote(parsed.path[1:]) if parsed.path.startswith("/") else parsed.path
            path = Path(raw_path) if raw_path and raw_path != ":memory:" else None
            return cls(backend=backend, url=cleaned, path=path, name=raw_path or None)

        resolved_name = parsed.path[1:] if parsed.path and parsed.path != "/" else None
        return cls(
            backend=backend,
            url=cleaned,
            name=resolved_name,
            username=parsed.username,
            password=parsed.password,
            host=parsed.hostname,
            port=parsed.port,
        )

    @property
    def is_transient(self) -> bool:
        """Return True when nothing is written anywhere."""

        return self.backend is StorageBackend.MEMORY


def build_gateway(info: StorageConnectionInfo, *, persistent: bool = True) -> PersistenceGateway:
    """Return the gateway matching ``info``."""

    backend = info.backend
    if backend is StorageBackend.MEMORY:
        return TransientGateway()
    if backend is StorageBackend.JSON:
        return JsonFileGateway(info.path, persistent=persistent)
    if backend in {StorageBackend.SQLITE, StorageBackend.POSTGRES, StorageBackend.MYSQL}:
        from ratebook.db.relational_gateway import RelationalGateway

        return RelationalGateway(info.url, persistent=persistent)
    if backend is StorageBackend.MONGODB:
        from ratebook.db.mongo_gateway import MongoGateway

        return MongoGateway(info.url, database=info.name, persistent=persistent)
    raise ValueError(f"Unsupported backend: {backend}")


class Ratebook:
    """Package facade: one rate store wired to the configured storage."""

    __slots__ = ("connection_info", "gateway", "store")

    # Provide direct access to the package version as a class attribute.
    __version__ = __version__

    def __init__(
        self,
        storage: StorageConnectionInfo | str | None = None,
        *,
        persistent: bool = True,
    ) -> None:
        """Configure where rates are checkpointed.

        ``storage`` may be a ``StorageConnectionInfo`` or a URL such as
        ``file:///var/lib/ratebook/rates.json``, ``sqlite:///rates.db`` or
        ``mongodb://host/ratebook``. When omitted the rates only live in
        memory. ``persistent=False`` keeps the configured gateway but disables
        every write to it, and makes the initial import return nothing.
        """

        if isinstance(storage, StorageConnectionInfo):
            self.connection_info = storage
        elif isinstance(storage, str):
            self.connection_info = StorageConnectionInfo.from_url(storage)
        else:
            self.connection_info = StorageConnectionInfo.memory()
        self.gateway = build_gateway(self.connection_info, persistent=persistent)
        self.store = RateStore(self.gateway)
        LOGGER.info(
            "Ratebook ready on %s storage (persistent=%s)",
            self.connection_info.backend.value,
            self.gateway.persistent,
        )

    def list(
        self,
        query: str | None = None,
        query_type: str | None = None,
        position: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
    ) -> list[RateRecord]:
        return self.store.list(query, query_type, position, size)

    def create(self, rate: RateRecord, principal: str) -> RateRecord:
        return self.store.create(rate, principal)

    def read(self, rate_id: str) -> RateRecord:
        return self.store.read(rate_id)

    def update(self, rate_id: str, rate: RateRecord, principal: str) -> RateRecord:
        return self.store.update(rate_id, rate, principal)

    def delete(self, rate_id: str) -> None:
        self.store.delete(rate_id)

    def migrate(self, target: StorageConnectionInfo | str) -> PersistenceResult:
        """Copy the current rate set into another storage backend."""

        info = target if isinstance(target, StorageConnectionInfo) else StorageConnectionInfo.from_url(target)
        if info.is_transient:
            raise ValueError("Migration needs a persistent target.")
        target_gateway = build_gateway(info)
        try:
            target_gateway.ensure_schema()
            result = target_gateway.export_rates(self.store.snapshot())
        finally:
            target_gateway.close()
        LOGGER.info("Migrated %s rates to %s storage", result.written, info.backend.value)
        return result

    def close(self) -> None:
        self.gateway.close()

    def __enter__(self) -> "Ratebook":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
