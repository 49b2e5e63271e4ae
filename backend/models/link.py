# Link (graph edge) models. Manual links are persisted; stream/interest links are derived.
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class LinkType(str, Enum):
    COLLABORATOR = "collaborator"
    MENTOR = "mentor"
    STUDENT = "student"
    COLLEAGUE = "colleague"
    FRIEND = "friend"
    ADVISOR = "advisor"
    COAUTHOR = "coauthor"
    STREAM = "stream"
    INTEREST = "interest"
    OTHER = "other"


DERIVED_LINK_TYPES = frozenset({LinkType.STREAM, LinkType.INTEREST})


class Link(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source_id: str = Field(..., alias="sourceId")
    target_id: str = Field(..., alias="targetId")
    description: str
    type: LinkType
    url: Optional[str] = None
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")

    @property
    def is_derived(self) -> bool:
        return self.type in DERIVED_LINK_TYPES

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LinkDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_id: str = Field(..., alias="sourceId")
    target_id: str = Field(..., alias="targetId")
    description: str
    type: LinkType = LinkType.OTHER
    url: Optional[str] = None


class LinkCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    source_id: Optional[str] = Field(None, alias="sourceId")
    target_id: Optional[str] = Field(None, alias="targetId")
    description: Optional[str] = None
    type: Optional[LinkType] = None
    url: Optional[str] = None
    created_at: Optional[str] = Field(None, alias="createdAt")
    updated_at: Optional[str] = Field(None, alias="updatedAt")


class LinkUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_id: Optional[str] = Field(None, alias="sourceId")
    target_id: Optional[str] = Field(None, alias="targetId")
    description: Optional[str] = None
    type: Optional[LinkType] = None
    url: Optional[str] = None
    updated_at: Optional[str] = Field(None, alias="updatedAt")
