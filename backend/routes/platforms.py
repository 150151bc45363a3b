"""Platform spec registry routes."""

from fastapi import APIRouter, HTTPException

from amx.errors import UnknownPlatformError
from amx.export.platforms import DEFAULT_REGISTRY, PlatformSpec

router = APIRouter()


@router.get("/platforms", response_model=list[PlatformSpec])
async def list_platforms():
    return DEFAULT_REGISTRY.list_specs()


@router.get("/platforms/{platform}/{placement}", response_model=PlatformSpec)
async def get_platform_spec(platform: str, placement: str):
    try:
        return DEFAULT_REGISTRY.resolve(platform, placement)
    except UnknownPlatformError as e:
        raise HTTPException(status_code=404, detail=str(e))
