# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Typed actors for core operations.

Every service call receives one of these instead of a role string. Staff and
resident actors carry the barangay they are scoped to.
"""

from typing import Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict

from .entities import User
from .enums import UserRole


class AdminActor(BaseModel):
    """Municipal administrator; global scope."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["admin"] = "admin"
    user_id: str = Field(..., description="Authenticated user ID")


class BarangayStaffActor(BaseModel):
    """Barangay official scoped to the barangay they manage."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["barangay_staff"] = "barangay_staff"
    user_id: str = Field(..., description="Authenticated user ID")
    barangay_id: str = Field(..., description="Managed barangay")


class ResidentActor(BaseModel):
    """Resident scoped to the barangay they live in."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["resident"] = "resident"
    user_id: str = Field(..., description="Authenticated user ID")
    barangay_id: Optional[str] = Field(None, description="Barangay of residence, None while pending")


Actor = Union[AdminActor, BarangayStaffActor, ResidentActor]


def actor_for(user: User) -> Actor:
    """Build the typed actor for an authenticated user."""
    if user.role == UserRole.ADMIN:
        return AdminActor(user_id=user.id)
    if user.role == UserRole.BARANGAY:
        if not user.barangay_id:
            raise ValueError("Barangay user is not assigned to a barangay")
        return BarangayStaffActor(user_id=user.id, barangay_id=user.barangay_id)
    return ResidentActor(user_id=user.id, barangay_id=user.barangay_id)
