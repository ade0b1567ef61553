# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for typed actors.

This module contains pure functions for actor-kind checks and barangay
scoping. Access to an entity outside the actor's barangay is reported as
absence so that callers learn nothing about other tenants.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Type

from relief.errors import AuthorizationError, NotFoundError
from relief.models.actors import Actor, AdminActor, BarangayStaffActor, ResidentActor


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None


def check_actor_kind(actor: Actor, allowed: Tuple[Type, ...]) -> AuthorizationResult:
    """
    Check if the actor is one of the allowed variants.

    Args:
        actor: Typed actor
        allowed: Accepted actor classes

    Returns:
        AuthorizationResult indicating if the operation is permitted
    """
    if isinstance(actor, allowed):
        return AuthorizationResult(allowed=True)

    names = ", ".join(cls.__name__ for cls in allowed)
    return AuthorizationResult(
        allowed=False,
        reason=f"Operation requires one of: {names}"
    )


def check_barangay_access(actor: Actor, target_barangay_id: Optional[str]) -> AuthorizationResult:
    """
    Check if the actor may act on an entity of a barangay.

    Args:
        actor: Typed actor
        target_barangay_id: Barangay owning the entity

    Returns:
        AuthorizationResult indicating if access is granted
    """
    if isinstance(actor, AdminActor):
        return AuthorizationResult(allowed=True)

    if actor.barangay_id is not None and actor.barangay_id == target_barangay_id:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Access denied to barangay {target_barangay_id}"
    )


def require_staff(actor: Actor) -> BarangayStaffActor:
    """Return the actor if it is barangay staff, else raise AuthorizationError."""
    result = check_actor_kind(actor, (BarangayStaffActor,))
    if not result.allowed:
        raise AuthorizationError(result.reason)
    return actor


def require_resident(actor: Actor) -> ResidentActor:
    """Return the actor if it is a resident, else raise AuthorizationError."""
    result = check_actor_kind(actor, (ResidentActor,))
    if not result.allowed:
        raise AuthorizationError(result.reason)
    return actor


def require_access(actor: Actor, target_barangay_id: Optional[str], entity: str) -> None:
    """Raise NotFoundError when the entity is outside the actor's barangay."""
    if not check_barangay_access(actor, target_barangay_id).allowed:
        raise NotFoundError(f"{entity} not found")
