import json
import logging
from typing import Optional
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from finance_tracker.core.config import settings
from finance_tracker.core.deps import get_current_user, get_store
from finance_tracker.core.errors import FinanceTrackerError
from finance_tracker.core.security import create_oauth_state, verify_oauth_state
from finance_tracker.db.dynamo import DynamoStore
from finance_tracker.models.user import AuthResponse, UserCreate, UserLogin, UserPublic
from finance_tracker.utils.accounts import AccountService
from finance_tracker.utils.google_oauth import GoogleOAuthClient, get_google_client

router = APIRouter()
logger = logging.getLogger(__name__)


def get_account_service(store: DynamoStore = Depends(get_store)) -> AccountService:
    return AccountService(store)


def _frontend_redirect(path: str, **params: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.FRONTEND_URL}{path}?{urlencode(params, quote_via=quote)}")


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, accounts: AccountService = Depends(get_account_service)):
    return accounts.register(user)


@router.post("/login", response_model=AuthResponse, response_model_exclude_none=True)
def login(login_data: UserLogin, accounts: AccountService = Depends(get_account_service)):
    return accounts.login(login_data)


@router.get("/status", response_model=UserPublic)
def auth_status(user: dict = Depends(get_current_user)):
    """Profile of the bearer's user"""
    return UserPublic.from_record(user)


@router.get("/google")
def google_login(google: GoogleOAuthClient = Depends(get_google_client)):
    if not google.enabled:
        logger.warning("Google sign-in requested but no credentials are configured")
        return _frontend_redirect("/login", error="google_not_configured")
    return RedirectResponse(google.authorization_url(create_oauth_state()))


@router.get("/google/callback")
def google_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    google: GoogleOAuthClient = Depends(get_google_client),
    accounts: AccountService = Depends(get_account_service),
):
    if error or not code or not verify_oauth_state(state):
        logger.warning(f"Google callback rejected (error={error}, code present={bool(code)})")
        return _frontend_redirect("/login", error="google_auth_failed")

    try:
        result = accounts.federated_sign_in(google.fetch_profile(code))
    except FinanceTrackerError as e:
        logger.error(f"Google sign-in failed: {e.message}")
        return _frontend_redirect("/login", error="google_auth_failed")

    user_data = json.dumps(result.user.model_dump(mode="json"))
    return _frontend_redirect("/auth/google-success", token=result.token, user=user_data)
