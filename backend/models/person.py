# Person (graph node) models and their camelCase wire shape.
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Position(BaseModel):
    x: float
    y: float


class Person(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    affiliations: Optional[List[str]] = None
    photo_url: Optional[str] = Field(None, alias="photoUrl")
    # External profile reference
    peeps: Optional[str] = None
    stream: Optional[str] = None
    interests: Optional[List[str]] = None
    position: Position
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PersonDraft(BaseModel):
    """What the user fills in before a person exists (no id, no timestamps)."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    affiliations: Optional[List[str]] = None
    photo_url: Optional[str] = Field(None, alias="photoUrl")
    peeps: Optional[str] = None
    stream: Optional[str] = None
    interests: Optional[List[str]] = None
    position: Position = Field(default_factory=lambda: Position(x=0, y=0))


class PersonCreate(BaseModel):
    # Everything optional so the route can answer 400 with a readable message
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    affiliations: Optional[List[str]] = None
    photo_url: Optional[str] = Field(None, alias="photoUrl")
    peeps: Optional[str] = None
    stream: Optional[str] = None
    interests: Optional[List[str]] = None
    position: Optional[Position] = None
    created_at: Optional[str] = Field(None, alias="createdAt")
    updated_at: Optional[str] = Field(None, alias="updatedAt")


class PersonUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    affiliations: Optional[List[str]] = None
    photo_url: Optional[str] = Field(None, alias="photoUrl")
    peeps: Optional[str] = None
    stream: Optional[str] = None
    interests: Optional[List[str]] = None
    position: Optional[Position] = None
    updated_at: Optional[str] = Field(None, alias="updatedAt")
