import logging
import re
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from dependencies import Identity, require_capability
from errors import Conflict, InternalError, NotFound, ValidationFailed, validation_message
from models import NewsArticle
from permissions import NEWS
from schemas import News as NewsSchema, NewsCreate, NewsUpdate

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "excerpt", "content", "category", "author")

router = APIRouter()


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "article"


def serialize(article: NewsArticle) -> dict:
    return NewsSchema.model_validate(article).model_dump(by_alias=True, mode="json")


def next_news_id(db: Session) -> str:
    candidate = int(time.time() * 1000)
    while db.query(NewsArticle.id).filter(NewsArticle.id == f"news_{candidate}").first():
        candidate += 1
    return f"news_{candidate}"


def ensure_unique_slug(db: Session, slug: str, exclude_id: Optional[str] = None):
    query = db.query(NewsArticle).filter(NewsArticle.slug == slug)
    if exclude_id is not None:
        query = query.filter(NewsArticle.id != exclude_id)
    if query.first():
        raise Conflict(f"A news article with slug '{slug}' already exists")


@router.get("")
def get_news(
    limit: Optional[int] = Query(None, gt=0),
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    """Published articles, newest first"""
    query = db.query(NewsArticle).filter(NewsArticle.status == "published")
    if category:
        query = query.filter(NewsArticle.category == category)
    if featured is not None:
        query = query.filter(NewsArticle.featured == featured)
    query = query.order_by(NewsArticle.created_at.desc())
    if limit:
        query = query.limit(limit)

    articles = [serialize(a) for a in query.all()]
    return {"success": True, "data": articles, "count": len(articles)}


@router.get("/slug/{slug}")
def get_news_by_slug(slug: str, db: Session = Depends(get_db)):
    article = db.query(NewsArticle).filter(NewsArticle.slug == slug).first()
    if not article:
        raise NotFound("News article not found")
    return {"success": True, "data": serialize(article)}


@router.get("/{news_id}")
def get_news_article(
    news_id: str,
    increment_views: bool = Query(False, alias="incrementViews"),
    db: Session = Depends(get_db),
):
    article = db.query(NewsArticle).filter(NewsArticle.id == news_id).first()
    if not article:
        raise NotFound("News article not found")

    if increment_views:
        try:
            article.views = (article.views or 0) + 1
            db.commit()
            db.refresh(article)
        except Exception:
            db.rollback()
            logger.exception(f"Error incrementing views for {news_id}")
            raise InternalError("Failed to increment news views")

    return {"success": True, "data": serialize(article)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_news(
    news_data: dict = Body(...),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_capability(NEWS)),
):
    """Create a news article (news capability)"""
    missing = [field for field in REQUIRED_FIELDS if not news_data.get(field)]
    if missing:
        raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")
    try:
        article_in = NewsCreate.model_validate(news_data)
    except ValidationError as e:
        raise ValidationFailed(validation_message(e))

    slug = slugify(article_in.slug or article_in.title)
    ensure_unique_slug(db, slug)

    now = datetime.now(timezone.utc)
    values = article_in.model_dump(exclude={"slug"})
    article = NewsArticle(
        id=next_news_id(db),
        slug=slug,
        views=0,
        created_at=now,
        updated_at=now,
        **values,
    )
    try:
        db.add(article)
        db.commit()
        db.refresh(article)
    except IntegrityError:
        db.rollback()
        raise Conflict(f"A news article with slug '{slug}' already exists")
    except Exception:
        db.rollback()
        logger.exception("Error creating news article")
        raise InternalError("Failed to create news article")

    logger.info(f"News article {article.id} created by {identity.email}")
    return {"success": True, "data": serialize(article), "message": "News article created successfully"}


@router.put("/{news_id}")
def update_news(
    news_id: str,
    news_data: dict = Body(...),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_capability(NEWS)),
):
    """Update a news article (news capability)"""
    article = db.query(NewsArticle).filter(NewsArticle.id == news_id).first()
    if not article:
        raise NotFound("News article not found")

    try:
        changes = NewsUpdate.model_validate(news_data).model_dump(exclude_unset=True, exclude_none=True)
    except ValidationError as e:
        raise ValidationFailed(validation_message(e))

    if "slug" in changes:
        changes["slug"] = slugify(changes["slug"])
        ensure_unique_slug(db, changes["slug"], exclude_id=news_id)

    try:
        for field, value in changes.items():
            setattr(article, field, value)
        article.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(article)
    except IntegrityError:
        db.rollback()
        raise Conflict("A news article with this slug already exists")
    except Exception:
        db.rollback()
        logger.exception(f"Error updating news article {news_id}")
        raise InternalError("Failed to update news article")

    return {"success": True, "data": serialize(article), "message": "News article updated successfully"}


@router.delete("/{news_id}")
def delete_news(
    news_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_capability(NEWS)),
):
    """Delete a news article (news capability)"""
    article = db.query(NewsArticle).filter(NewsArticle.id == news_id).first()
    if not article:
        raise NotFound("News article not found")

    try:
        db.delete(article)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Error deleting news article {news_id}")
        raise InternalError("Failed to delete news article")

    logger.info(f"News article {news_id} deleted by {identity.email}")
    return {"success": True, "message": "News article deleted successfully"}
