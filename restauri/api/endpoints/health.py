from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from restauri.core.circuit_breaker import CircuitBreaker, CircuitOpenError
from restauri.core.database import get_db, ping
from restauri.core.dependencies import get_current_admin, get_db_breaker
from restauri.core.logger import get_logger
from restauri.schemas.circuit_breaker import CircuitBreakerHealth

logger = get_logger(__name__)

router = APIRouter()

@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": "df-restauri-api"}

@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check(
    db: Session = Depends(get_db),
    breaker: CircuitBreaker = Depends(get_db_breaker)
):
    try:
        await breaker.execute(lambda: run_in_threadpool(ping, db))
    except CircuitOpenError:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "database": "circuit open"}
        )
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "database": "unreachable"}
        )
    return {"status": "ready", "database": "ok"}

@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check():
    return {"status": "alive"}

@router.get("/circuit-breaker", response_model=CircuitBreakerHealth, dependencies=[Depends(get_current_admin)])
async def circuit_breaker_health(breaker: CircuitBreaker = Depends(get_db_breaker)):
    """State and call metrics of the database circuit breaker."""
    return breaker.get_health()
