"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.geocoding import AddressResolver, check_health
from ..deps import get_resolver

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/geocoder", status_code=status.HTTP_200_OK)
async def health_geocoder(resolver: AddressResolver = Depends(get_resolver)) -> dict:
    """Check the geocoding provider with a single reverse lookup."""
    try:
        healthy = await check_health(resolver)
        return {"service": "geocoder", "healthy": healthy, "base_url": resolver.base_url}
    except Exception as e:
        return {"service": "geocoder", "healthy": False, "error": str(e)}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check whether the tracking database is configured and reachable."""
    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set GEOTRACK_SUPABASE_URL and GEOTRACK_SUPABASE_KEY environment variables.",
        }

    try:
        supabase.table("deliveries").select("id").limit(1).execute()
        return {"configured": True, "connected": True, "message": "Database connected."}
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
