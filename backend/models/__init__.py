"""
Pydantic models for People Web.

Python attributes are snake_case; JSON on the wire is camelCase (`photoUrl`,
`sourceId`, `createdAt`, ...). Every model accepts either spelling on input.
"""
from .person import Person, PersonCreate, PersonDraft, PersonUpdate, Position
from .link import DERIVED_LINK_TYPES, Link, LinkCreate, LinkDraft, LinkType, LinkUpdate
from .feature_request import FeatureRequest, FeatureRequestCreate
from .viewport import Viewport

__all__ = [
    "Person",
    "PersonCreate",
    "PersonDraft",
    "PersonUpdate",
    "Position",
    "Link",
    "LinkCreate",
    "LinkDraft",
    "LinkType",
    "LinkUpdate",
    "DERIVED_LINK_TYPES",
    "FeatureRequest",
    "FeatureRequestCreate",
    "Viewport",
]
