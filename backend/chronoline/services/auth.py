"""
Authentication service.

Handles registration, credential checks and bearer-token issue/verification.
Tokens are stateless HS256 JWTs carrying the user id and username.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import aiosqlite
from jose import JWTError, jwt
from passlib.context import CryptContext

from chronoline.config import settings
from chronoline.errors import AuthError, ConflictError, ValidationError
from chronoline.logging import get_logger
from chronoline.models import AuthResponse, TokenIdentity, User

logger = get_logger('services.auth')

MIN_PASSWORD_LENGTH = 6
INVALID_CREDENTIALS = "Invalid username or password"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_user(row: dict) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        created_at=row["created_at"],
    )


class AuthService:
    """User registration, login and token handling."""

    def __init__(
        self,
        db_path: str,
        secret: str | None = None,
        algorithm: str | None = None,
        token_expire_days: int | None = None,
        hash_rounds: int | None = None,
    ):
        self.db_path = db_path
        self.secret = secret or settings.JWT_SECRET
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.token_ttl = timedelta(days=token_expire_days or settings.TOKEN_EXPIRE_DAYS)
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=hash_rounds or settings.PASSWORD_HASH_ROUNDS,
        )

    async def _get_db(self) -> aiosqlite.Connection:
        db = await aiosqlite.connect(self.db_path)
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys = ON")
        return db

    # ── Tokens ──

    def issue_token(self, user_id: str, username: str) -> str:
        expire = datetime.now(timezone.utc) + self.token_ttl
        claims = {"id": user_id, "username": username, "exp": expire}
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str | None) -> TokenIdentity:
        """
        Decode a bearer token.

        :param token: Raw token from the Authorization header
        :type token: str | None
        :return: Identity claims carried by the token
        :rtype: TokenIdentity
        :raises AuthError: 401 when no token is given, 403 when it is invalid or expired
        """
        if not token:
            raise AuthError("Access token required", 401)
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            raise AuthError("Invalid or expired token", 403) from exc

        user_id = payload.get("id")
        username = payload.get("username")
        if not user_id or not username:
            raise AuthError("Invalid or expired token", 403)
        return TokenIdentity(id=str(user_id), username=str(username))

    def refresh_token(self, identity: TokenIdentity) -> str:
        return self.issue_token(identity.id, identity.username)

    # ── Users ──

    async def get_user(self, user_id: str) -> User | None:
        db = await self._get_db()
        try:
            cursor = await db.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = await cursor.fetchone()
            return _row_to_user(dict(row)) if row else None
        finally:
            await db.close()

    async def _get_user_row(self, username: str) -> dict | None:
        db = await self._get_db()
        try:
            cursor = await db.execute("SELECT * FROM users WHERE username = ?", (username,))
            row = await cursor.fetchone()
            return dict(row) if row else None
        finally:
            await db.close()

    async def register(
        self,
        username: str | None,
        email: str | None,
        password: str | None,
    ) -> AuthResponse:
        username = (username or "").strip()
        email = (email or "").strip()
        if not username or not email or not password:
            raise ValidationError("Username, email, and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        if await self._get_user_row(username):
            raise ConflictError("Username already exists")

        now = _now()
        user_id = str(uuid4())
        password_hash = self.pwd_context.hash(password)

        db = await self._get_db()
        try:
            await db.execute(
                """INSERT INTO users (id, username, email, password_hash, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (user_id, username, email, password_hash, now, now),
            )
            await db.commit()
        except aiosqlite.IntegrityError as exc:
            # Either a concurrent registration took the username or the email is in use.
            message = "Email already registered" if "email" in str(exc) else "Username already exists"
            raise ConflictError(message) from exc
        finally:
            await db.close()

        logger.info(f"Registered user {username} ({user_id[:8]})")
        user = User(id=user_id, username=username, email=email, created_at=now)
        return AuthResponse(user=user, token=self.issue_token(user_id, username))

    async def login(self, username: str | None, password: str | None) -> AuthResponse:
        if not username or not password:
            raise ValidationError("Username and password are required")

        row = await self._get_user_row(username)
        if not row or not self.pwd_context.verify(password, row["password_hash"]):
            raise AuthError(INVALID_CREDENTIALS, 401)

        user = _row_to_user(row)
        return AuthResponse(user=user, token=self.issue_token(user.id, user.username))
