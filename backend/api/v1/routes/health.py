from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from common.core.config import settings
from common.db.session import get_db
from common.core.otel_axiom_exporter import get_logger
from packages.billing.providers.payment.factory import get_payment_gateway
from packages.billing.providers.payment.interface import PaymentGatewayInterface

logger = get_logger(__name__)

router = APIRouter()


@router.get("/")
async def health_check():
    # No logging - probes hit this every few seconds
    return {"status": "healthy", "service": settings.app_name}


@router.get("/db")
async def db_check(db: AsyncSession = Depends(get_db)):
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": "disconnected"}


@router.get("/payments")
async def payments_check(
    gateway: PaymentGatewayInterface = Depends(get_payment_gateway),
):
    healthy = await gateway.health_check()
    return {
        "status": "healthy" if healthy else "unhealthy",
        "payments": "reachable" if healthy else "unreachable",
    }
