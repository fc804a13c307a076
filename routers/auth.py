import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from dependencies import (
    Identity,
    create_access_token,
    get_current_identity,
    identity_from_user,
    verify,
    verify_password,
)
from errors import InternalError, Unauthenticated, ValidationFailed, error_response, validation_message
from models import User
from permissions import ASSIGNABLE_ROLES, ROLE_PERMISSIONS
from schemas import LoginRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path="/",
    )


def clear_session_cookie(response: Response):
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value="",
        max_age=0,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path="/",
    )


@router.post("/login")
def login(credentials: dict = Body(...), db: Session = Depends(get_db)):
    if not credentials.get("email") or not credentials.get("password"):
        raise ValidationFailed("Email and password are required")
    try:
        login_in = LoginRequest.model_validate(credentials)
    except ValidationError as e:
        if e.errors()[0].get("loc", ())[:1] == ("email",):
            raise ValidationFailed("Invalid email format")
        raise ValidationFailed(validation_message(e))

    email = str(login_in.email).lower()
    user = db.query(User).filter(User.email == email).first()
    if not user or not user.is_active or not verify_password(login_in.password, user.password):
        logger.info(f"Failed login for {email}")
        raise Unauthenticated("Invalid email or password")

    try:
        user.last_login = datetime.now(timezone.utc)
        db.commit()
        db.refresh(user)
    except Exception:
        db.rollback()
        logger.exception("Error recording login")
        raise InternalError("Internal server error. Please try again.")

    token = create_access_token(data={"sub": str(user.id)})
    identity = identity_from_user(user)
    response = JSONResponse({
        "success": True,
        "message": "Login successful",
        "admin": identity.to_public(),
    })
    set_session_cookie(response, token)
    logger.info(f"User {user.email} logged in")
    return response


@router.get("/verify")
def verify_session(request: Request, db: Session = Depends(get_db)):
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token:
        return error_response(401, "No authentication token")

    identity = verify(token, db)
    if identity is None:
        response = error_response(401, "Invalid or expired token")
        clear_session_cookie(response)
        return response

    return {"success": True, "admin": identity.to_public()}


@router.post("/logout")
def logout():
    # Tokens are stateless; expiring the cookie ends the browser session
    response = JSONResponse({"success": True, "message": "Logged out successfully"})
    clear_session_cookie(response)
    return response


@router.get("/profile")
def profile(identity: Identity = Depends(get_current_identity)):
    """Current identity plus the capabilities its roles grant."""
    return {
        "success": True,
        "admin": identity.to_public(),
        "permissions": sorted(identity.capabilities),
    }


roles_router = APIRouter()


@roles_router.get("")
def list_roles(identity: Identity = Depends(get_current_identity)):
    return {
        "success": True,
        "roles": [
            {"name": name, "permissions": sorted(ROLE_PERMISSIONS[name])}
            for name in ASSIGNABLE_ROLES
        ],
    }
