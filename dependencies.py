import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import FrozenSet, Optional

from fastapi import Depends, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from errors import Forbidden, Unauthenticated
from event_store import EventStore
from models import User
from permissions import normalize_roles, primary_role, resolve
from schemas import TokenData

logger = logging.getLogger(__name__)

# Security setup
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class Identity:
    """Authenticated caller with roles already normalized and resolved."""

    id: str
    email: str
    name: str
    roles: FrozenSet[str]
    capabilities: FrozenSet[str]
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @property
    def role(self) -> Optional[str]:
        return primary_role(self.roles)

    def can(self, capability: str) -> bool:
        return capability in self.capabilities

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "roles": sorted(self.roles),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
        }


def user_roles(user: User) -> FrozenSet[str]:
    return normalize_roles(user.role, user.roles)


def identity_from_user(user: User) -> Identity:
    roles = user_roles(user)
    return Identity(
        id=str(user.id),
        email=user.email,
        name=user.name,
        roles=roles,
        capabilities=resolve(roles),
        is_active=bool(user.is_active),
        created_at=user.created_at,
        updated_at=user.updated_at,
        last_login=user.last_login,
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt

def decode_token(token: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected session token: {e}")
        return None
    user_id = payload.get("sub")
    if user_id is None:
        return None
    return TokenData(user_id=str(user_id))

def verify(token: Optional[str], db: Session) -> Optional[Identity]:
    """Resolve a session token to an active identity, or None."""
    if not token:
        return None
    token_data = decode_token(token)
    if token_data is None:
        return None
    try:
        user_id = int(token_data.user_id)
    except ValueError:
        return None
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        return None
    return identity_from_user(user)


def extract_token(request: Request) -> Optional[str]:
    # Prefer the cookie for browser flows
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return None


async def get_current_identity(request: Request, db: Session = Depends(get_db)) -> Identity:
    token = extract_token(request)
    if not token:
        raise Unauthenticated("Authentication required")
    identity = verify(token, db)
    if identity is None:
        raise Unauthenticated("Invalid or expired token")
    return identity


def require_capability(capability: str):
    """Dependency factory: authenticate, then demand one capability."""

    async def checker(identity: Identity = Depends(get_current_identity)) -> Identity:
        if not identity.can(capability):
            raise Forbidden(f"Insufficient permissions. Required: {capability}")
        return identity

    return checker


@lru_cache()
def get_event_store() -> EventStore:
    return EventStore(settings.EVENTS_DATA_FILE, snapshot_env=settings.EVENTS_SNAPSHOT_ENV)


def seed_super_admin(db: Session):
    """Create the configured super admin when the users table is empty."""
    if db.query(User).first() is not None:
        return
    admin = User(
        email=settings.ADMIN_EMAIL.lower(),
        name=settings.ADMIN_NAME,
        password=get_password_hash(settings.ADMIN_PASSWORD),
        role="super_admin",
        roles=["super_admin"],
        is_active=True,
    )
    db.add(admin)
    db.commit()
    logger.info(f"Seeded super admin {settings.ADMIN_EMAIL}")
