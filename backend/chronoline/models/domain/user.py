"""User and authentication models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from chronoline.models.base import ApiModel


class RegisterRequest(ApiModel):
    """Payload for registering a user. Presence is checked by the auth service."""
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(ApiModel):
    """Payload for logging in."""
    username: Optional[str] = None
    password: Optional[str] = None


class User(ApiModel):
    """A registered user as exposed over the API; never carries the password hash."""
    id: str
    username: str
    email: str
    created_at: Optional[datetime] = None


class AuthResponse(ApiModel):
    user: User
    token: str


class TokenResponse(ApiModel):
    token: str


class TokenIdentity(BaseModel):
    """Identity claims decoded from a verified bearer token."""
    id: str
    username: str
