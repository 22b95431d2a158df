"""
Token API: new and featured lists, manual listing, search and the
notification WebSocket.

File: backend/hypescreener/api/tokens.py
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket
from pydantic import BaseModel

from ..core.exceptions import CacheError
from ..services.query import QueryService
from ..ws.hub import NotificationHub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["tokens"])
ws_router = APIRouter(tags=["notifications"])


class ListTokenRequest(BaseModel):
    """Manual listing submission."""
    name: Optional[str] = None
    address: Optional[str] = None


class ListTokenResponse(BaseModel):
    success: bool


def get_query_service(request: Request) -> QueryService:
    """Query service wired up at startup."""
    return request.app.state.query_service


@router.get("/new-tokens")
async def get_new_tokens(
    refresh: bool = Query(False, description="Run discovery before reading"),
    service: QueryService = Depends(get_query_service),
) -> List[Dict[str, Any]]:
    """Top ranked freshly created tokens."""
    try:
        tokens = await service.get_new_tokens(refresh=refresh)
    except CacheError as e:
        logger.error(f"Error fetching new tokens: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to fetch new tokens")
    return [token.to_public() for token in tokens]


@router.get("/featured-tokens")
async def get_featured_tokens(
    service: QueryService = Depends(get_query_service),
) -> List[Dict[str, Any]]:
    """Manually listed tokens."""
    try:
        tokens = await service.get_featured_tokens()
    except CacheError as e:
        logger.error(f"Error fetching featured tokens: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to fetch featured tokens")
    return [token.to_public() for token in tokens]


@router.post("/list-token", response_model=ListTokenResponse)
async def list_token(
    request: ListTokenRequest,
    service: QueryService = Depends(get_query_service),
) -> ListTokenResponse:
    """Submit a sponsored token for the featured list."""
    try:
        await service.list_token(request.name, request.address)
    except CacheError as e:
        logger.error(f"Error listing token: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to list token")
    return ListTokenResponse(success=True)


@router.get("/search")
async def search_token(
    q: Optional[str] = Query(None, description="Token address"),
    service: QueryService = Depends(get_query_service),
) -> Dict[str, Any]:
    """Find a token by address."""
    try:
        token = await service.search(q)
    except CacheError as e:
        logger.error(f"Error searching token: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to search token")
    return token.to_public()


@ws_router.websocket("/ws/{channel}")
async def notifications_websocket(websocket: WebSocket, channel: str) -> None:
    """Stream events published on a notification channel."""
    hub: NotificationHub = websocket.app.state.hub
    await hub.serve(websocket, channel)
