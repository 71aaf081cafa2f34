from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, WebSocket, status
import redis

from tradingroom.api.deps import get_redis
from tradingroom.api.models import CatalogEntry, HighscoreEntry
from tradingroom.gateway import SessionGateway
from tradingroom.registry import get_registry
from tradingroom.store import HIGHSCORE_LIMIT, list_highscores, load_catalog
from tradingroom.websocket_hub import hub

router = APIRouter()


@router.websocket("/ws")
async def session_ws(websocket: WebSocket) -> None:
    gateway = SessionGateway(registry=get_registry(), hub=hub)
    await gateway.serve(websocket)


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/commodities", response_model=list[CatalogEntry], response_model_by_alias=True)
async def list_commodities_route(r: redis.Redis = Depends(get_redis)) -> list[CatalogEntry]:
    return load_catalog(r=r)


@router.get("/api/highscores", response_model=list[HighscoreEntry], response_model_by_alias=True)
async def list_highscores_route(limit: int = HIGHSCORE_LIMIT, r: redis.Redis = Depends(get_redis)) -> list[HighscoreEntry]:
    if limit < 1 or limit > HIGHSCORE_LIMIT:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"limit must be between 1 and {HIGHSCORE_LIMIT}",
        )
    return list_highscores(r=r, limit=limit)
