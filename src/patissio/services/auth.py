"""Account registration, login and bearer token authentication."""

from dataclasses import dataclass
from datetime import timedelta

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.config.settings import Settings
from patissio.core.exceptions import (
    AccountSuspendedError,
    AuthenticationError,
    ConflictError,
    InvalidRequestError,
)
from patissio.core.tenancy import slug_problem
from patissio.db.models import AccessToken, PatissierProfile, PlanTier, User, UserRole
from patissio.db.repositories import AccessTokenRepository, ProfileRepository, UserRepository
from patissio.security.passwords import hash_password, verify_password
from patissio.security.tokens import generate_token, hash_token
from patissio.utils.time import as_utc, utcnow

logger = structlog.get_logger()

# last_used_at is refreshed at most this often
TOKEN_TOUCH_INTERVAL = timedelta(minutes=5)

_SLUG_MESSAGES = {
    "too_short": "Slug must be at least 3 characters",
    "invalid": "Slug may only contain lowercase letters, digits and hyphens",
    "reserved": "This slug is reserved",
}


@dataclass
class AuthResult:
    """A signed-in user and the raw token issued to them."""

    user: User
    token: str
    profile: PatissierProfile | None = None


class AuthService:
    """Register users, sign them in and resolve bearer tokens."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings
        self.users = UserRepository(db)
        self.tokens = AccessTokenRepository(db)
        self.profiles = ProfileRepository(db)

    async def register(
        self,
        *,
        email: str,
        password: str,
        full_name: str | None = None,
        role: UserRole = UserRole.PATISSIER,
        slug: str | None = None,
        business_name: str | None = None,
    ) -> AuthResult:
        """Create an account, and a starter profile for patissiers.

        Raises:
            ConflictError: If the email or slug is already taken
            InvalidRequestError: If a patissier omits or misshapes the slug
        """
        email = email.strip().lower()
        if await self.users.get_by_email(email) is not None:
            raise ConflictError("Email already taken", "email", email)

        profile: PatissierProfile | None = None
        if role == UserRole.PATISSIER:
            if not slug or not business_name:
                raise InvalidRequestError(
                    "slug and business_name are required for patissier registration", "slug"
                )
            slug = slug.strip().lower()
            problem = slug_problem(slug)
            if problem is not None:
                raise InvalidRequestError(_SLUG_MESSAGES[problem], "slug")
            if await self.profiles.slug_taken(slug):
                raise ConflictError("Slug already taken", "slug", slug)

        user = User(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            role=role.value,
        )
        try:
            await self.users.create(user, commit=False)
            if role == UserRole.PATISSIER:
                profile = PatissierProfile(
                    user_id=user.id,
                    slug=slug,
                    business_name=business_name,
                    plan=PlanTier.STARTER.value,
                )
                await self.profiles.create(profile, commit=False)
            raw_token = await self._issue_token(user)
            await self.db.commit()
        except IntegrityError as exc:
            # Lost a race on the unique email or slug
            await self.db.rollback()
            raise ConflictError("Email or slug already taken", "email", email) from exc

        logger.info("user_registered", user_id=str(user.id), role=user.role)
        return AuthResult(user=user, token=raw_token, profile=profile)

    async def login(self, email: str, password: str) -> AuthResult:
        """Check credentials and issue a token.

        Raises:
            AuthenticationError: If the email or password is wrong
            AccountSuspendedError: If the account is suspended
        """
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("login_failed", email=email.strip().lower())
            raise AuthenticationError("Invalid credentials")
        if user.is_suspended:
            logger.warning("login_rejected_suspended", user_id=str(user.id))
            raise AccountSuspendedError(user.id)

        raw_token = await self._issue_token(user)
        await self.db.commit()
        logger.info("user_logged_in", user_id=str(user.id))
        return AuthResult(user=user, token=raw_token)

    async def authenticate(self, raw_token: str) -> tuple[User, AccessToken]:
        """Resolve a bearer token to its user.

        Raises:
            AuthenticationError: If the token is unknown or expired
            AccountSuspendedError: If the user has been suspended
        """
        token = await self.tokens.get_by_hash(hash_token(raw_token))
        if token is None:
            raise AuthenticationError("Invalid or expired token")

        now = utcnow()
        expires_at = as_utc(token.expires_at)
        if expires_at is not None and expires_at <= now:
            raise AuthenticationError("Invalid or expired token")

        user = await self.users.get(token.user_id)
        if user is None:
            raise AuthenticationError("Invalid or expired token")
        if user.is_suspended:
            raise AccountSuspendedError(user.id)

        last_used = as_utc(token.last_used_at)
        if last_used is None or now - last_used > TOKEN_TOUCH_INTERVAL:
            await self.tokens.update(token, {"last_used_at": now})
        return user, token

    async def logout(self, token: AccessToken) -> None:
        """Revoke the token the request was made with."""
        await self.tokens.delete(token)
        logger.info("user_logged_out", user_id=str(token.user_id))

    async def _issue_token(self, user: User) -> str:
        raw_token = generate_token()
        await self.tokens.create(
            AccessToken(
                user_id=user.id,
                token_hash=hash_token(raw_token),
                expires_at=utcnow() + timedelta(days=self.settings.ACCESS_TOKEN_TTL_DAYS),
            ),
            commit=False,
        )
        return raw_token
