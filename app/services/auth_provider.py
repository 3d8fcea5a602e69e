"""
Credential store and token issuer.

Accounts live in ``auth_accounts``; profiles in ``users`` share the account id.
Access and refresh tokens are HS256 JWTs carrying ``sub`` (account id) and
``type``; every request re-checks that the account still exists.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import commit
from app.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models.auth_account import AuthAccount
from app.models.driver import Driver
from app.models.user import User
from app.schemas.schemas import AccountStatusEnum, SignupRequest, UserTypeEnum

logger = logging.getLogger(__name__)
settings = get_settings()

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def normalize_role(role: Optional[str]) -> UserTypeEnum:
    value = (role or "").strip().lower()
    if value in (UserTypeEnum.driver.value, UserTypeEnum.admin.value):
        return UserTypeEnum(value)
    return UserTypeEnum.passenger


def role_required_message(role: UserTypeEnum | str) -> str:
    value = role.value if isinstance(role, UserTypeEnum) else role
    return f"{value.capitalize()} access required"


def _encode(subject: str, token_type: str, minutes: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(subject: str) -> str:
    return _encode(subject, "access", settings.access_token_expire_minutes)


def create_refresh_token(subject: str) -> str:
    return _encode(subject, "refresh", settings.refresh_token_expire_minutes)


def decode_token(token: str, expected_type: str) -> str:
    """Return the subject of a valid token of the given type."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise AuthenticationError("Invalid token")
    subject = payload.get("sub")
    if not subject or payload.get("type") != expected_type:
        raise AuthenticationError("Invalid token")
    return subject


class AuthProvider:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _account_by_email(self, email: str) -> Optional[AuthAccount]:
        result = await self.db.execute(select(AuthAccount).where(AuthAccount.email == email))
        return result.scalar_one_or_none()

    async def sign_up(self, payload: SignupRequest, role: UserTypeEnum) -> User:
        if not payload.email or not payload.password or not payload.full_name:
            raise ValidationError("Missing required fields")
        if role == UserTypeEnum.driver and (not payload.vehicle_type or not payload.vehicle_plate):
            raise ValidationError("Vehicle type and plate are required")

        email = str(payload.email).lower()
        if await self._account_by_email(email):
            raise ConflictError("A user with this email address has already been registered")

        account = AuthAccount(
            email=email,
            password_hash=pwd_context.hash(payload.password),
            full_name=payload.full_name,
        )
        self.db.add(account)
        await self.db.flush()

        user = User(
            id=account.id,
            email=email,
            full_name=payload.full_name,
            phone=payload.phone or "",
            user_type=role.value,
            rating=5.0,
            total_reviews=0,
            payment_method=payload.payment_method,
            notifications_enabled=(
                payload.notifications_enabled if payload.notifications_enabled is not None else True
            ),
            is_active=True,
            created_at=datetime.now(timezone.utc),
        )
        if role == UserTypeEnum.admin:
            user.status = AccountStatusEnum.approved.value
        elif role == UserTypeEnum.driver:
            user.status = AccountStatusEnum.pending.value
        self.db.add(user)

        if role == UserTypeEnum.driver:
            self.db.add(Driver(
                user_id=account.id,
                vehicle_type=payload.vehicle_type,
                vehicle_plate=payload.vehicle_plate,
                is_online=False,
            ))

        await commit(self.db)
        await self.db.refresh(user)
        logger.info("Signed up %s user=%s", role.value, user.id)
        return user

    async def sign_in(self, email: Optional[str], password: Optional[str], role: UserTypeEnum) -> dict:
        if not email or not password:
            raise ValidationError("Email and password are required")

        account = await self._account_by_email(email.strip().lower())
        if account is None or not pwd_context.verify(password, account.password_hash):
            raise AuthenticationError("Invalid login credentials")

        user = await self.db.get(User, account.id)
        if user is None and role == UserTypeEnum.passenger:
            # Accounts created outside the signup flow get a minimal passenger profile
            user = User(
                id=account.id,
                email=account.email,
                full_name=account.full_name or "Passenger",
                user_type=UserTypeEnum.passenger.value,
                created_at=datetime.now(timezone.utc),
            )
            self.db.add(user)
            await commit(self.db)
            await self.db.refresh(user)
        if user is None:
            raise NotFoundError("User profile not found")
        if user.user_type != role.value:
            raise AuthorizationError(role_required_message(role))

        return {
            "token": create_access_token(account.id),
            "refresh_token": create_refresh_token(account.id),
            "user": user,
        }

    async def refresh(self, refresh_token: str) -> dict:
        subject = decode_token(refresh_token, "refresh")
        account = await self.db.get(AuthAccount, subject)
        if account is None:
            raise AuthenticationError("Invalid token")
        user = await self.db.get(User, subject)
        if user is None:
            raise NotFoundError("User profile not found")
        return {
            "token": create_access_token(subject),
            "refresh_token": create_refresh_token(subject),
            "user": user,
        }

    async def verify(self, token: str) -> str:
        """Validate an access token and return the account id."""
        subject = decode_token(token, "access")
        if await self.db.get(AuthAccount, subject) is None:
            raise AuthenticationError("Invalid token")
        return subject
