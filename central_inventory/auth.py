from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, HTTPException, Request, status


class Role(str, Enum):
    ADMIN = "ADMIN"
    CENTRAL_INVENTORY_MANAGER = "CENTRAL_INVENTORY_MANAGER"
    SERVICE_CENTER_MANAGER = "SERVICE_CENTER_MANAGER"
    SERVICE_CENTER_STAFF = "SERVICE_CENTER_STAFF"


@dataclass
class Principal:
    id: str
    name: str
    role: Role
    service_center_id: str | None = None


CENTRAL_ROLES = (Role.ADMIN, Role.CENTRAL_INVENTORY_MANAGER)
SERVICE_CENTER_ROLES = (Role.SERVICE_CENTER_MANAGER, Role.SERVICE_CENTER_STAFF)


def get_current_principal(request: Request) -> Principal:
    principal = getattr(request.state, "principal", None)
    if not principal:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return principal


def is_central_role(role: Role) -> bool:
    return role in CENTRAL_ROLES


def require_role(*allowed: Role):
    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
        return principal

    return _dep


def assert_service_center_scope(principal: Principal, target_service_center_id: str) -> None:
    if is_central_role(principal.role):
        return
    if principal.service_center_id != target_service_center_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
