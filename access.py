"""
Access policy.

Guards take the calling Actor explicitly and raise before any store access.

| Action                          | ADMIN | MANAGER          | SALES_AGENT |
|---------------------------------|-------|------------------|-------------|
| Create/Update/Delete Customer   | yes   | no               | no          |
| Create/Update/Delete Product    | yes   | no               | no          |
| Create/Update/Delete Order      | yes   | yes              | no          |
| Create User                     | any   | SALES_AGENT only | no          |
| Delete User                     | yes   | no               | no          |
| View any list                   | yes   | yes              | yes         |
"""
from typing import Optional
from pydantic import BaseModel

from errors import AccessDenied, Unauthenticated
from schemas import Role

INVALID_AUTH = "Invalid authentication"
NO_ACCESS = "You don't have access to this action"


class Actor(BaseModel):
    id: str
    role: Role


def require_authenticated(actor: Optional[Actor]) -> Actor:
    if actor is None:
        raise Unauthenticated(INVALID_AUTH)
    return actor


def require_admin(actor: Optional[Actor]) -> Actor:
    actor = require_authenticated(actor)
    if actor.role != Role.ADMIN:
        raise AccessDenied(NO_ACCESS)
    return actor


def require_admin_or_manager(actor: Optional[Actor]) -> Actor:
    actor = require_authenticated(actor)
    if actor.role not in (Role.ADMIN, Role.MANAGER):
        raise AccessDenied(NO_ACCESS)
    return actor


def can_create_role(creator: Role, target: Role) -> bool:
    if creator == Role.ADMIN:
        return True
    if creator == Role.MANAGER:
        return target == Role.SALES_AGENT
    if creator == Role.SALES_AGENT:
        return False
    raise ValueError(f"Unknown role: {creator}")
