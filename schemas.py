from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from event_store import DEFAULT_IMAGE

EventStatus = Literal["upcoming", "registration-open", "completed", "cancelled"]
NewsStatus = Literal["draft", "published", "archived"]


def _camel(name: str, snake: str):
    return Field(None, validation_alias=AliasChoices(name, snake), serialization_alias=name)


# Event schemas
class EventCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    date: str  # Format: YYYY-MM-DD
    time: str
    location: str
    description: str
    category: str
    attendees: str = "0"
    image: str = DEFAULT_IMAGE
    status: EventStatus = "upcoming"
    max_capacity: int = Field(
        100,
        validation_alias=AliasChoices("maxCapacity", "max_capacity"),
        serialization_alias="maxCapacity",
    )
    current_registrations: int = Field(
        0,
        validation_alias=AliasChoices("currentRegistrations", "current_registrations"),
        serialization_alias="currentRegistrations",
    )

    @field_validator("attendees", mode="before")
    @classmethod
    def attendees_as_text(cls, v):
        return str(v) if isinstance(v, (int, float)) else v


class EventUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    attendees: Optional[str] = None
    image: Optional[str] = None
    status: Optional[EventStatus] = None
    max_capacity: Optional[int] = _camel("maxCapacity", "max_capacity")
    current_registrations: Optional[int] = _camel("currentRegistrations", "current_registrations")

    @field_validator("attendees", mode="before")
    @classmethod
    def attendees_as_text(cls, v):
        return str(v) if isinstance(v, (int, float)) else v


# News schemas
class NewsCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    slug: Optional[str] = None
    excerpt: str
    content: str
    category: str
    author: str
    author_title: Optional[str] = _camel("authorTitle", "author_title")
    date: Optional[str] = None
    read_time: Optional[str] = _camel("readTime", "read_time")
    image: Optional[str] = None
    featured: bool = False
    status: NewsStatus = "draft"
    tags: List[str] = []


class NewsUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    author: Optional[str] = None
    author_title: Optional[str] = _camel("authorTitle", "author_title")
    date: Optional[str] = None
    read_time: Optional[str] = _camel("readTime", "read_time")
    image: Optional[str] = None
    featured: Optional[bool] = None
    status: Optional[NewsStatus] = None
    tags: Optional[List[str]] = None


class News(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    slug: str
    excerpt: str
    content: str
    category: str
    author: str
    author_title: Optional[str] = Field(None, serialization_alias="authorTitle")
    date: Optional[str] = None
    read_time: Optional[str] = Field(None, serialization_alias="readTime")
    image: Optional[str] = None
    featured: bool = False
    status: NewsStatus
    tags: List[str] = []
    views: int = 0
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")


# User schemas
class UserCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    name: str
    password: str
    role: Optional[str] = None
    roles: Optional[List[str]] = None


class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[EmailStr] = None
    name: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    roles: Optional[List[str]] = None
    is_active: Optional[bool] = _camel("isActive", "is_active")


class User(BaseModel):
    id: str
    email: str
    name: str
    role: Optional[str] = None
    roles: List[str] = []
    is_active: bool = Field(True, serialization_alias="isActive")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")
    last_login: Optional[datetime] = Field(None, serialization_alias="lastLogin")
    created_by: Optional[str] = Field(None, serialization_alias="createdBy")

    @field_validator("id", "created_by", mode="before")
    @classmethod
    def id_as_text(cls, v: Union[int, str, None]):
        return str(v) if v is not None else v


# Authentication schemas
class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: str


class TokenData(BaseModel):
    user_id: Optional[str] = None


class ContactMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    email: EmailStr
    company: Optional[str] = None
    message: str
