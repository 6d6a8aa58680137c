from typing import Dict

from fastapi import APIRouter
from redis.exceptions import RedisError

from datepoll import db, state

router = APIRouter()


@router.get("/health")
async def health() -> Dict[str, str]:
    redis_status = "disconnected"
    if state.redis_client:
        try:
            await state.redis_client.ping()
            redis_status = "healthy"
        except RedisError:
            redis_status = "unhealthy"

    db_status = "disabled"
    if isinstance(state.store, db.PostgresDocumentStore):
        db_status = "healthy" if await db.check_database() else "unhealthy"
    elif state.store is not None:
        db_status = "external"

    return {"status": "ok", "redis": redis_status, "database": db_status}
