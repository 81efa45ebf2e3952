# backend/notesearch/router/search.py
from __future__ import annotations
import logging
from fastapi import APIRouter, HTTPException, Request, status

from notesearch.core.errors import InvalidArgument, SynthesisFailed
from notesearch.core.services.search_service import MultiStoreSearchService
from notesearch.models.schemas import (
    MultiStoreSearchRequest,
    MultiStoreSearchResponse,
    StoreInfo,
    StoreListResponse,
)

logger = logging.getLogger("notesearch.router.search")

router = APIRouter(prefix="/search", tags=["search"])


def _container(request: Request):
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Search service not ready")
    return container


@router.post("/multi-store", response_model=MultiStoreSearchResponse, response_model_by_alias=True)
async def multi_store_search(payload: MultiStoreSearchRequest, request: Request):
    service: MultiStoreSearchService = _container(request).search_service
    logger.info(
        "📨 Multi-store search received | stores=%d | query_len=%d | timeout=%s",
        len(payload.store_ids or []), len(payload.query or ""), payload.per_store_timeout_ms,
    )

    timeout = payload.per_store_timeout_ms / 1000.0 if payload.per_store_timeout_ms else None
    try:
        result = await service.search(payload.query, payload.store_ids, per_store_timeout=timeout)
    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SynthesisFailed as e:
        logger.error(f"❌ Multi-store search failed during synthesis: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Multi-store search failed: {e}")
    except Exception as e:
        logger.exception("❌ Multi-store search failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Multi-store search failed: {type(e).__name__}",
        )

    return MultiStoreSearchResponse.of(result)


@router.get("/stores", response_model=StoreListResponse, response_model_by_alias=True)
async def list_stores(request: Request):
    container = _container(request)
    prefixes = tuple(request.app.state.settings.system_prefixes)
    try:
        await container.registry.refresh()
        refs = container.registry.list_stores()
    except Exception as e:
        logger.error(f"Failed to list stores: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to list stores: {e}")

    # System stores (per-user / internal) are never offered as search sources
    stores = [
        StoreInfo(id=r.id, display_name=r.display_name)
        for r in refs
        if not (prefixes and r.display_name.startswith(prefixes))
    ]
    return StoreListResponse(stores=stores, total=len(stores))
