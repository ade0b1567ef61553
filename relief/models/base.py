# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and validation.
"""

from datetime import datetime
from typing import Any, Dict
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


class BaseEntity(BaseModel):
    """Base entity with common fields for all domain objects."""

    model_config = ConfigDict(
        # Stored documents use camelCase keys
        alias_generator=to_camel,
        # Allow population by field name or alias
        populate_by_name=True,
        # Validate assignment
        validate_assignment=True
    )

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Last update timestamp")

    def touch(self) -> None:
        """Update the modification timestamp."""
        self.updated_at = datetime.utcnow()

    def to_document(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe, camelCase document for persistence."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: Dict[str, Any]):
        """Build an entity from a stored document."""
        return cls.model_validate(document)
