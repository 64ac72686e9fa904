from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from finance_tracker.core.config import settings
from finance_tracker.core.errors import NotAuthenticated
from finance_tracker.core.security import decode_access_token
from finance_tracker.db.dynamo import DynamoStore


@lru_cache()
def get_store() -> DynamoStore:
    return DynamoStore.from_settings(settings)


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """Extract user_id from the bearer JWT"""
    if not authorization or not authorization.startswith("Bearer "):
        raise NotAuthenticated()

    token = authorization[len("Bearer "):].strip()
    payload = decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise NotAuthenticated()
    return user_id


def get_current_user(
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
) -> dict:
    user = store.get_user_by_id(user_id)
    if not user:
        raise NotAuthenticated()
    return user
