"""Health check endpoints."""

from fastapi import APIRouter, Request

from gatesend import __version__
from gatesend.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "gatesend"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration and wallet info."""
    settings = get_settings()
    services = getattr(request.app.state, "services", None)
    wallet = None
    if services is not None:
        signer = services.signer
        wallet = {
            "connected": bool(signer and signer.is_connected),
            "address": signer.address if signer else None,
            "fee_polling": services.aggregator.is_polling,
            "transfer_status": services.orchestrator.session.status.value,
        }
    return {
        "status": "healthy",
        "service": "gatesend",
        "version": __version__,
        "config": settings.get_safe_dict(),
        "wallet": wallet,
    }
