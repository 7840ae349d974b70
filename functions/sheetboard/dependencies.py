"""
Dependency wiring for the FastAPI app.

Services are built once per application (lazily, on the first request) and
kept on ``app.state`` so configuration and cache live in one explicit object.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from fastapi import Depends, Request

from sheetboard.board_config import ConfigService
from sheetboard.cache import PostCache
from sheetboard.config import Settings
from sheetboard.errors import BoardError, InitializationError
from sheetboard.gemini import GeminiTextGenerator
from sheetboard.google_api import (
    build_drive_service,
    build_sheets_service,
    get_credentials,
)
from sheetboard.locks import BoardLock, LocalLock, RedisLock
from sheetboard.posts import PostService
from sheetboard.retry import RetryPolicy
from sheetboard.settings_store import (
    InMemorySettingsStore,
    SettingsStore,
    SheetsSettingsStore,
    SqlSettingsStore,
)
from sheetboard.storage import (
    BlobStore,
    CosStorageClient,
    DriveBlobStore,
    InMemoryBlobStore,
)
from sheetboard.table import (
    InMemoryPostTable,
    PostTable,
    SheetsPostTable,
    SqlPostTable,
    create_sql_sessionmaker,
)
from sheetboard.uploads import BlobUploader

logger = logging.getLogger(__name__)

DOCUMENT_LOCK_LEASE_SECONDS = 60.0
GENERATION_LOCK_LEASE_SECONDS = 300.0


@dataclass
class BoardServices:
    posts: PostService
    config: ConfigService
    uploader: BlobUploader
    generator: GeminiTextGenerator


def _build_locks(settings: Settings) -> tuple[BoardLock, BoardLock]:
    if settings.redis_url:
        return (
            RedisLock(
                url=settings.redis_url,
                name=f"{settings.redis_lock_prefix}:document",
                lease_seconds=DOCUMENT_LOCK_LEASE_SECONDS,
            ),
            RedisLock(
                url=settings.redis_url,
                name=f"{settings.redis_lock_prefix}:generation",
                lease_seconds=GENERATION_LOCK_LEASE_SECONDS,
            ),
        )
    return LocalLock(), LocalLock()


def _build_stores(settings: Settings) -> tuple[PostTable, SettingsStore]:
    if settings.use_in_memory_backends:
        return InMemoryPostTable(), InMemorySettingsStore()

    if settings.spreadsheet_id:
        credentials = get_credentials(settings.google_service_account_file)
        service = build_sheets_service(credentials)
        return (
            SheetsPostTable(
                service, settings.spreadsheet_id, settings.posts_sheet_name
            ),
            SheetsSettingsStore(
                service, settings.spreadsheet_id, settings.settings_sheet_name
            ),
        )

    if settings.database_url:
        session_factory = create_sql_sessionmaker(settings.database_url)
        return (
            SqlPostTable(session_factory, settings.posts_sheet_name),
            SqlSettingsStore(session_factory, settings.settings_sheet_name),
        )

    logger.warning("No SPREADSHEET_ID or DATABASE_URL configured; using memory")
    return InMemoryPostTable(), InMemorySettingsStore()


def _build_blob_store(settings: Settings, folder_name: str) -> BlobStore:
    if settings.use_in_memory_backends:
        return InMemoryBlobStore(folder_name=folder_name)

    if settings.cos_bucket:
        return CosStorageClient(
            bucket=settings.cos_bucket,
            region=settings.cos_region or "",
            endpoint=settings.cos_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            folder_name=folder_name,
        )

    if settings.spreadsheet_id:
        credentials = get_credentials(settings.google_service_account_file)
        return DriveBlobStore(build_drive_service(credentials), folder_name)

    return InMemoryBlobStore(folder_name=folder_name)


def build_services(settings: Settings) -> BoardServices:
    document_lock, generation_lock = _build_locks(settings)
    cache = PostCache(ttl_seconds=settings.cache_ttl_seconds)

    table, store = _build_stores(settings)
    table.ensure_header()
    store.ensure_defaults(
        settings.default_password,
        settings.default_folder_name,
        settings.default_page_size,
    )

    config = ConfigService(
        store,
        document_lock,
        cache,
        lock_timeout=settings.write_lock_timeout_seconds,
    )
    posts = PostService(
        table,
        config,
        cache,
        document_lock,
        lock_timeout=settings.write_lock_timeout_seconds,
    )
    uploader = BlobUploader(_build_blob_store(settings, config.folder_name))
    generator = GeminiTextGenerator.from_api_key(
        settings.gemini_api_key,
        generation_lock,
        model=settings.gemini_model,
        lock_timeout=settings.generation_lock_timeout_seconds,
        retry_policy=RetryPolicy(
            max_attempts=settings.generation_max_attempts,
            base_delay=settings.generation_retry_delay_seconds,
        ),
    )
    return BoardServices(
        posts=posts, config=config, uploader=uploader, generator=generator
    )


def init_app_state(app, settings: Settings, services: BoardServices | None = None):
    app.state.settings = settings
    app.state.services = services
    app.state.services_lock = threading.Lock()


def get_services(request: Request) -> BoardServices:
    """
    Return the application's services, building them on first use. A failed
    build is retried on the next request.
    """
    state = request.app.state
    if state.services is not None:
        return state.services
    with state.services_lock:
        if state.services is None:
            try:
                state.services = build_services(state.settings)
            except BoardError:
                raise
            except Exception as e:
                logger.exception("Initialization failed")
                raise InitializationError(f"Initialization failed: {e}") from e
    return state.services


def get_post_service(services: BoardServices = Depends(get_services)) -> PostService:
    return services.posts


def get_config_service(
    services: BoardServices = Depends(get_services),
) -> ConfigService:
    return services.config


def get_uploader(services: BoardServices = Depends(get_services)) -> BlobUploader:
    return services.uploader


def get_generator(
    services: BoardServices = Depends(get_services),
) -> GeminiTextGenerator:
    return services.generator
