"""
Session actor resolution and capability enforcement for route handlers.
The login flow stores user_id, organization_id and role on request.session.
"""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status

from freightfee.services.permissions import Capability, Role, has_capability, is_admin, parse_role


@dataclass
class Actor:
    user_id: int
    organization_id: int | None
    role: Role

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)


def get_current_actor(request: Request) -> Actor:
    """Raises 401 when the session carries no user or an unknown role."""
    user_id = request.session.get("user_id")
    role = parse_role(request.session.get("role"))
    if not user_id or role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"status": "error", "message": "auth_required"},
        )
    return Actor(
        user_id=int(user_id),
        organization_id=request.session.get("organization_id"),
        role=role,
    )


def require_capability(capability: Capability):
    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not has_capability(actor.role, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"message": "Insufficient permissions.", "code": "forbidden", "capability": capability.value},
            )
        return actor

    return dependency
