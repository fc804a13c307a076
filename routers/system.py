import asyncio
import logging
import time

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from errors import ValidationFailed
from schemas import ContactMessage

logger = logging.getLogger(__name__)

router = APIRouter()


def ping_database(db: Session):
    db.execute(text("SELECT 1"))


@router.get("/test-db")
async def test_database(db: Session = Depends(get_db)):
    """Connectivity probe bounded by DB_TEST_TIMEOUT"""
    started = time.monotonic()
    loop = asyncio.get_running_loop()
    try:
        # On timeout the query thread is abandoned, not interrupted
        await asyncio.wait_for(loop.run_in_executor(None, ping_database, db), timeout=settings.DB_TEST_TIMEOUT)
    except asyncio.TimeoutError:
        logger.error(f"Database test timed out after {settings.DB_TEST_TIMEOUT}s")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Database connection failed",
                "error": f"Connection timeout after {settings.DB_TEST_TIMEOUT:g} seconds",
            },
        )
    except Exception as e:
        logger.error(f"Database test failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Database connection failed", "error": str(e)},
        )

    duration_ms = int((time.monotonic() - started) * 1000)
    return {"success": True, "message": "Database connection successful", "duration": f"{duration_ms}ms"}


@router.post("/contact")
def contact(payload: dict = Body(...)):
    """Accept a contact form submission; delivery is out of band"""
    if not all(payload.get(f) for f in ("name", "email", "message")):
        raise ValidationFailed("Name, email, and message are required")
    try:
        message = ContactMessage.model_validate(payload)
    except ValidationError:
        raise ValidationFailed("Invalid email address")

    logger.info(
        f"Contact form submission from {message.name} <{message.email}>"
        f"{' (' + message.company + ')' if message.company else ''}: {message.message}"
    )
    return {"success": True, "message": "Thank you for your message! We will get back to you soon."}
