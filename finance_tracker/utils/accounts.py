import logging
from typing import Optional

from finance_tracker.core.errors import DuplicateEmail, FederatedLoginFailed, InvalidCredentials
from finance_tracker.core.security import create_access_token, get_password_hash, verify_password
from finance_tracker.db.dynamo import DynamoStore
from finance_tracker.models.user import (
    AuthProvider,
    AuthResponse,
    ProviderProfile,
    UserCreate,
    UserInDB,
    UserLogin,
    UserPublic,
)

logger = logging.getLogger(__name__)


class AccountService:
    """Registration, password login and federated sign-in on top of the user table."""

    def __init__(self, store: DynamoStore):
        self._store = store

    @staticmethod
    def issue_token(user: dict) -> str:
        return create_access_token(data={"sub": user["user_id"], "email": user["email"]})

    def _auth_response(self, user: dict, message: Optional[str] = None) -> AuthResponse:
        return AuthResponse(user=UserPublic.from_record(user), token=self.issue_token(user), message=message)

    def register(self, data: UserCreate) -> AuthResponse:
        if self._store.get_user_by_email(data.email):
            logger.info(f"Registration rejected, email already in use: {data.email}")
            raise DuplicateEmail()

        user_db = UserInDB(
            name=data.name,
            email=data.email,
            password_hash=get_password_hash(data.password),
            provider=AuthProvider.LOCAL,
        )
        user = user_db.model_dump(mode="json")
        if not self._store.create_user(user):
            logger.info(f"Registration lost a race for email: {data.email}")
            raise DuplicateEmail()
        logger.info(f"Registered user {user['user_id']}")
        return self._auth_response(user, message="User registered successfully")

    def login(self, data: UserLogin) -> AuthResponse:
        logger.info(f"Login attempt for email: {data.email}")
        user = self._store.get_user_by_email(data.email)
        if not user:
            logger.warning(f"User not found: {data.email}")
            raise InvalidCredentials()

        if not verify_password(data.password, user.get("password_hash")):
            logger.warning(f"Invalid password for user: {data.email}")
            raise InvalidCredentials()

        logger.info(f"Login successful for user: {data.email}")
        return self._auth_response(user)

    def federated_sign_in(self, profile: Optional[ProviderProfile], _retry: bool = True) -> AuthResponse:
        """
        Resolve a provider identity to a local user: by provider id first,
        then by email (linking the account), otherwise create a new user.
        If a concurrent request claims the email first, the lookup runs once
        more and links to that account.
        """
        if profile is None:
            raise FederatedLoginFailed("Provider returned no profile")

        user = self._store.get_user_by_google_id(profile.provider_id)
        if user:
            return self._auth_response(user)

        user = self._store.get_user_by_email(profile.email)
        if user:
            updates = {"google_id": profile.provider_id}
            if not user.get("avatar") and profile.avatar:
                updates["avatar"] = profile.avatar
            if not user.get("name") and profile.display_name:
                updates["name"] = profile.display_name
            if not user.get("password_hash"):
                updates["provider"] = AuthProvider.GOOGLE.value
            linked = self._store.update_user(user["user_id"], updates)
            if linked is None:
                raise FederatedLoginFailed("Account disappeared while linking")
            logger.info(f"Linked Google account to user {user['user_id']}")
            return self._auth_response(linked)

        name = profile.display_name or profile.email.split("@")[0] or "Google User"
        user_db = UserInDB(
            name=name,
            email=profile.email,
            google_id=profile.provider_id,
            avatar=profile.avatar or "",
            provider=AuthProvider.GOOGLE,
        )
        user = user_db.model_dump(mode="json")
        if not self._store.create_user(user):
            if not _retry:
                raise FederatedLoginFailed("Could not claim email for new account")
            logger.info(f"Email {profile.email} was claimed concurrently, retrying lookup")
            return self.federated_sign_in(profile, _retry=False)
        logger.info(f"Created user {user['user_id']} from Google sign-in")
        return self._auth_response(user)
