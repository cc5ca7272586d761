"""
Pydantic schemas for the canonical Tender import entities
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class EntityType(str, Enum):
    """Entity types accepted by the archive store"""
    USER = "user"
    CATEGORY = "category"
    SECTION = "section"
    DISCUSSION = "discussion"
    KB = "kb"


USER_STATES = ("user", "support")


class ImportEntity(BaseModel):
    """
    Base for all archive entities.

    Entities are frozen once constructed and reject fields they do not
    declare. Serialization only emits the fields that were supplied.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    def to_json(self) -> str:
        """One compact JSON object, newline-terminated"""
        return self.model_dump_json(exclude_unset=True) + "\n"


class User(ImportEntity):
    email: str = Field(..., min_length=1)
    name: Optional[str] = None
    state: Literal["user", "support"] = "user"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Category(ImportEntity):
    name: str = Field(..., min_length=1)
    summary: Optional[str] = None


class Section(ImportEntity):
    title: str = Field(..., min_length=1)
    summary: Optional[str] = None


class Comment(ImportEntity):
    author_email: str = Field(..., min_length=1)
    body: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Discussion(ImportEntity):
    """A threaded conversation; the first comment is the opening post."""

    author_email: str = Field(..., min_length=1)
    comments: List[Comment] = Field(..., min_length=1)
    title: Optional[str] = None
    state: Optional[str] = None
    private: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class KBArticle(ImportEntity):
    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    keywords: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


ENTITY_MODELS = {
    EntityType.USER: User,
    EntityType.CATEGORY: Category,
    EntityType.SECTION: Section,
    EntityType.DISCUSSION: Discussion,
    EntityType.KB: KBArticle,
}
