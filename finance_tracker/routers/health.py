"""
Health Check Router
Liveness and DynamoDB reachability endpoints
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from finance_tracker.core.config import settings
from finance_tracker.core.deps import get_store
from finance_tracker.db.dynamo import DynamoStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/status")
def storage_status(store: DynamoStore = Depends(get_store)):
    """
    Check connectivity of every DynamoDB table the service uses.
    """
    tables = store.table_status()
    connected = all(table["status"] == "accessible" for table in tables.values())
    if not connected:
        logger.warning("One or more DynamoDB tables are unreachable")

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "dynamodb": {
                "connected": connected,
                "region": settings.DYNAMO_REGION,
                "tables": tables,
            }
        },
        "overall_status": "healthy" if connected else "degraded",
    }
