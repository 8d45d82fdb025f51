"""
Category (taxon) domain model
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List


class Taxon(BaseModel):
    """
    Category tree node

    Root taxons have no parent. The permalink is the slash separated path,
    e.g. "categories/shoes".
    """

    id: int = Field(..., description="Taxon ID")
    parent_id: Optional[int] = Field(None, description="Parent taxon ID")
    name: str = Field(..., description="Taxon name")
    permalink: Optional[str] = Field(None, description="Path-like permalink")
    description: Optional[str] = None
    position: int = 0
    attachment_url: Optional[str] = Field(None, description="Category image URL")

    children: List["Taxon"] = Field(default_factory=list)
    parent: Optional["Taxon"] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        return self.model_dump()


Taxon.model_rebuild()
