# User-submitted feature requests.
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class FeatureRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    author_name: Optional[str] = Field(None, alias="authorName")
    request_text: str = Field(..., alias="requestText")
    created_at: str = Field(..., alias="createdAt")

    def to_wire(self) -> Dict[str, Any]:
        # authorName is always present on the wire, null when anonymous
        return self.model_dump(mode="json", by_alias=True)


class FeatureRequestCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    author_name: Optional[str] = Field(None, alias="authorName")
    request_text: Optional[str] = Field(None, alias="requestText")
    created_at: Optional[str] = Field(None, alias="createdAt")
