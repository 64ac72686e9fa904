"""
Google OAuth 2.0 client
Builds the consent URL and turns an authorization code into a provider profile
"""
import logging
from functools import lru_cache
from typing import Optional
from urllib.parse import urlencode

import requests
from pydantic import ValidationError as PydanticValidationError

from finance_tracker.core.config import Settings, settings
from finance_tracker.core.errors import FederatedLoginFailed
from finance_tracker.models.user import ProviderProfile

logger = logging.getLogger(__name__)

AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
USERINFO_ENDPOINT = "https://openidconnect.googleapis.com/v1/userinfo"


class GoogleOAuthClient:
    def __init__(self, config: Settings, session: Optional[requests.Session] = None):
        self._config = config
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    @property
    def enabled(self) -> bool:
        return self._config.google_enabled

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self._config.GOOGLE_CLIENT_ID,
            "redirect_uri": self._config.GOOGLE_CALLBACK_URL,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "prompt": "select_account",
        }
        return f"{AUTHORIZATION_ENDPOINT}?{urlencode(params)}"

    def fetch_profile(self, code: str) -> ProviderProfile:
        """Exchange the authorization code and read the signed-in user's profile."""
        timeout = self._config.HTTP_TIMEOUT_SECONDS
        try:
            token_response = self._session.post(
                TOKEN_ENDPOINT,
                data={
                    "code": code,
                    "client_id": self._config.GOOGLE_CLIENT_ID,
                    "client_secret": self._config.GOOGLE_CLIENT_SECRET,
                    "redirect_uri": self._config.GOOGLE_CALLBACK_URL,
                    "grant_type": "authorization_code",
                },
                timeout=timeout,
            )
            token_response.raise_for_status()
            access_token = token_response.json()["access_token"]

            userinfo_response = self._session.get(
                USERINFO_ENDPOINT,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=timeout,
            )
            userinfo_response.raise_for_status()
            userinfo = userinfo_response.json()
        except (requests.RequestException, KeyError, ValueError) as e:
            logger.error(f"Google OAuth exchange failed: {str(e)}")
            raise FederatedLoginFailed()

        if not userinfo.get("sub") or not userinfo.get("email"):
            logger.error("Google userinfo response is missing sub or email")
            raise FederatedLoginFailed()

        try:
            return ProviderProfile(
                provider_id=userinfo["sub"],
                email=userinfo["email"],
                display_name=userinfo.get("name"),
                avatar=userinfo.get("picture"),
            )
        except PydanticValidationError as e:
            logger.error(f"Google profile rejected: {str(e)}")
            raise FederatedLoginFailed()


@lru_cache()
def get_google_client() -> GoogleOAuthClient:
    """One client, and so one pooled HTTP session, per process."""
    return GoogleOAuthClient(settings)
