import logging
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from dependencies import Identity, get_current_identity, get_password_hash, require_capability, user_roles
from errors import Conflict, Forbidden, InternalError, NotFound, ValidationFailed, validation_message
from models import User
from permissions import ASSIGNABLE_ROLES, SUPER_ADMIN, USERS, is_super_admin, normalize_roles, primary_role
from schemas import User as UserSchema, UserCreate, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def serialize(user: User) -> dict:
    roles = user_roles(user)
    return UserSchema(
        id=user.id,
        email=user.email,
        name=user.name,
        role=primary_role(roles),
        roles=sorted(roles),
        is_active=bool(user.is_active),
        created_at=user.created_at,
        updated_at=user.updated_at,
        last_login=user.last_login,
        created_by=user.created_by,
    ).model_dump(by_alias=True, mode="json")


def parse_user_id(user_id: str) -> int:
    """Path id as the integer primary key; unparseable ids name no user."""
    try:
        return int(user_id)
    except ValueError:
        raise NotFound("User not found")


def is_self(identity: Identity, pk: int) -> bool:
    return int(identity.id) == pk


def find_user(db: Session, pk: int) -> Optional[User]:
    return db.query(User).filter(User.id == pk).first()


def requested_roles(role: Optional[str], roles: Optional[Iterable[str]]) -> FrozenSet[str]:
    """Normalize and validate the roles a caller wants to assign."""
    wanted = normalize_roles(role, roles)
    if not wanted:
        raise ValidationFailed("At least one role is required")
    invalid = sorted(wanted - set(ASSIGNABLE_ROLES))
    if invalid:
        raise ValidationFailed(f"Invalid role: {', '.join(invalid)}")
    return wanted


def assign_roles(user: User, roles: FrozenSet[str]):
    user.role = primary_role(roles)
    user.roles = sorted(roles)


def email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(User).filter(User.email == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


@router.get("")
def list_users(
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_capability(USERS)),
):
    """Active users, newest first"""
    query = db.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    users: List[User] = query.order_by(User.created_at.desc(), User.id.desc()).all()
    return {"success": True, "data": [serialize(u) for u in users], "count": len(users)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: dict = Body(...),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_capability(USERS)),
):
    """Create a back-office user (users capability)"""
    if not all(user_data.get(f) for f in ("email", "name", "password")) or not (
        user_data.get("role") or user_data.get("roles")
    ):
        raise ValidationFailed("All fields are required")

    try:
        user_in = UserCreate.model_validate(user_data)
    except ValidationError as e:
        raise ValidationFailed(validation_message(e))

    roles = requested_roles(user_in.role, user_in.roles)
    if SUPER_ADMIN in roles and not is_super_admin(identity.roles):
        raise Forbidden("Only super administrators can create other super administrators")

    email = str(user_in.email).lower()
    if email_taken(db, email):
        raise Conflict("User with this email already exists")

    now = datetime.now(timezone.utc)
    user = User(
        email=email,
        name=user_in.name,
        password=get_password_hash(user_in.password),
        is_active=True,
        created_by=int(identity.id),
        created_at=now,
        updated_at=now,
    )
    assign_roles(user, roles)
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise Conflict("User with this email already exists")
    except Exception:
        db.rollback()
        logger.exception("Error creating user")
        raise InternalError("Failed to create user")

    logger.info(f"User {user.email} created by {identity.email}")
    return {"success": True, "message": "User created successfully", "data": serialize(user)}


@router.get("/{user_id}")
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """One user; inactive users are visible here"""
    pk = parse_user_id(user_id)
    if not identity.can(USERS) and not is_self(identity, pk):
        raise Forbidden("Insufficient permissions")

    user = find_user(db, pk)
    if not user:
        raise NotFound("User not found")
    return {"success": True, "data": serialize(user)}


@router.put("/{user_id}")
def update_user(
    user_id: str,
    user_data: dict = Body(...),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Update a user; anyone may edit their own name, email and password"""
    pk = parse_user_id(user_id)
    if not identity.can(USERS) and not is_self(identity, pk):
        raise Forbidden("Insufficient permissions")

    try:
        changes = UserUpdate.model_validate(user_data)
    except ValidationError as e:
        raise ValidationFailed(validation_message(e))

    changing_roles = changes.role is not None or changes.roles is not None
    if (changing_roles or changes.is_active is not None) and not identity.can(USERS):
        raise Forbidden("Insufficient permissions to change role or status")

    roles = requested_roles(changes.role, changes.roles) if changing_roles else None
    if roles and SUPER_ADMIN in roles and not is_super_admin(identity.roles):
        raise Forbidden("Only super administrators can assign super admin role")

    user = find_user(db, pk)
    if not user:
        raise NotFound("User not found")

    if changes.email is not None:
        email = str(changes.email).lower()
        if email_taken(db, email, exclude_id=user.id):
            raise Conflict("User with this email already exists")
        user.email = email
    if changes.name:
        user.name = changes.name
    if changes.password:
        user.password = get_password_hash(changes.password)
    if roles is not None:
        assign_roles(user, roles)
    if changes.is_active is not None:
        user.is_active = changes.is_active

    try:
        user.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise Conflict("User with this email already exists")
    except Exception:
        db.rollback()
        logger.exception(f"Error updating user {user_id}")
        raise InternalError("Failed to update user")

    return {"success": True, "message": "User updated successfully", "data": serialize(user)}


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_capability(USERS)),
):
    """Deactivate a user (users capability)"""
    pk = parse_user_id(user_id)
    if is_self(identity, pk):
        raise ValidationFailed("Cannot delete your own account")

    user = find_user(db, pk)
    if not user or not user.is_active:
        raise NotFound("User not found")

    try:
        user.is_active = False
        user.updated_at = datetime.now(timezone.utc)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Error deleting user {user_id}")
        raise InternalError("Failed to delete user")

    logger.info(f"User {user_id} deactivated by {identity.email}")
    return {"success": True, "message": "User deleted successfully"}


@router.patch("/{user_id}/toggle-status")
def toggle_user_status(
    user_id: str,
    payload: Optional[dict] = Body(None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_capability(USERS)),
):
    """Activate or deactivate a user (users capability)"""
    pk = parse_user_id(user_id)
    if is_self(identity, pk):
        raise ValidationFailed("Cannot change your own status")

    user = find_user(db, pk)
    if not user:
        raise NotFound("User not found")

    is_active = (payload or {}).get("is_active")
    if not isinstance(is_active, bool):
        raise ValidationFailed("is_active must be a boolean value")

    try:
        user.is_active = is_active
        user.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(user)
    except Exception:
        db.rollback()
        logger.exception(f"Error toggling status of user {user_id}")
        raise InternalError("Failed to update user status")

    action = "activated" if is_active else "deactivated"
    return {"success": True, "message": f"User {action} successfully", "data": serialize(user)}
