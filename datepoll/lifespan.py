"""Application startup and shutdown."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import psycopg
import redis.asyncio as redis
from fastapi import FastAPI
from redis.asyncio import BlockingConnectionPool as RedisConnectionPool

from datepoll import db, state
from datepoll.bus import EventBus
from datepoll.config import get_settings
from datepoll.store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class LifespanResources:
    """Container for resources initialized during lifespan."""

    redis_client: redis.Redis | None = None
    event_bus: EventBus | None = None
    store: DocumentStore | None = None
    db_enabled: bool = False


async def init_redis() -> redis.Redis:
    """Initialize Redis connection with connection pool."""
    settings = get_settings()

    redis_pool = RedisConnectionPool(
        host=settings.redis.host,
        port=settings.redis.port,
        password=settings.redis.password if settings.redis.password else None,
        max_connections=settings.redis.max_connections,
        timeout=settings.redis.pool_timeout_sec,
        health_check_interval=settings.redis.health_check_interval,
        socket_timeout=settings.redis.socket_timeout,
        socket_connect_timeout=settings.redis.socket_connect_timeout,
        decode_responses=True,
    )

    candidate_client = redis.Redis(connection_pool=redis_pool, decode_responses=True)
    if hasattr(candidate_client, "__await__"):
        return await candidate_client
    return candidate_client


async def init_database() -> bool:
    """Initialize the database pool and apply migrations.

    Returns:
        True if the database is usable, False otherwise.
    """
    if not get_settings().features.db:
        return False
    try:
        await db.init_pool()
        return True
    except (psycopg.Error, OSError) as e:
        logger.warning("Failed to initialize database: %s", e)
    return False


async def setup_resources(store: DocumentStore | None = None) -> LifespanResources:
    """Set up all shared resources.

    Args:
        store: Use this store instead of PostgreSQL (tests, embedded use).
    """
    resources = LifespanResources()

    resources.redis_client = await init_redis()
    resources.event_bus = EventBus(resources.redis_client)

    if store is not None:
        resources.store = store
    else:
        resources.db_enabled = await init_database()
        if resources.db_enabled:
            resources.store = db.PostgresDocumentStore()

    state.redis_client = resources.redis_client
    state.event_bus = resources.event_bus
    state.store = resources.store
    return resources


async def cleanup_resources(resources: LifespanResources) -> None:
    """Clean up all resources on shutdown."""
    if resources.db_enabled:
        try:
            await db.close_pool()
        except psycopg.Error as e:
            logger.warning("Error closing database pool: %s", e)

    if resources.redis_client:
        aclose = getattr(resources.redis_client, "aclose", None)
        if callable(aclose):
            await aclose()
        else:
            await resources.redis_client.close()

    state.redis_client = None
    state.event_bus = None
    state.store = None


def build_lifespan(store: DocumentStore | None = None):
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        resources = await setup_resources(store=store)
        logger.info("datepoll started (db=%s)", resources.db_enabled or store is not None)
        try:
            yield
        finally:
            await cleanup_resources(resources)

    return lifespan
