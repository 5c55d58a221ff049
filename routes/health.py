"""Health check routes."""
from fastapi import APIRouter
from routes import webhook

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {"status": "ok", "service": "chatrelay"}


@router.get("/health/drivers")
async def health_drivers():
    """Which drivers have credentials."""
    drivers = webhook.driver_manager.drivers
    return {
        "status": "ok",
        "drivers": {driver.NAME: driver.is_configured() for driver in drivers},
        "configured_count": sum(1 for driver in drivers if driver.is_configured())
    }
