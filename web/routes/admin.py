"""Admin routes: user management and audit trail."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request

from medportal.constants import Database as DatabaseDefaults
from medportal.constants import Pagination
from medportal.core.enums import AccountStatus, Role
from medportal.core.exceptions import RecordNotFoundError, ValidationError
from medportal.models.identity import Identity
from medportal.repositories import AuditStore, UserStore
from medportal.services.auth_service import AuthService
from web.dependencies import (
    AuthContext,
    get_audit_store,
    get_auth_service,
    get_client_ip,
    get_user_store,
    require_roles,
)
from web.models.users import UpdateUserStatusRequest

router = APIRouter(prefix="/admin", tags=["admin"])

require_admin = require_roles(Role.ADMIN)


def _admin_view(identity: Identity) -> Dict[str, Any]:
    return {
        **identity.profile_dict(),
        "lastLogin": identity.last_login.isoformat() if identity.last_login else None,
    }


async def _set_status(
    request: Request,
    admin: AuthContext,
    user_id: int,
    status: AccountStatus,
    action: str,
    users: UserStore,
    audit: AuditStore,
    auth_service: AuthService,
) -> Identity:
    if user_id == admin.id:
        raise ValidationError("Administrators cannot change their own status", field="status")

    updated = await users.update_status(user_id, status)
    if updated is None:
        raise RecordNotFoundError("User", user_id)

    if status != AccountStatus.ACTIVE:
        await auth_service.end_sessions(user_id)

    await audit.record(
        admin.id,
        action,
        {"targetUserId": user_id, "status": status.value},
        get_client_ip(request),
    )
    return updated


@router.get("/users")
async def list_users(
    role: Optional[Role] = Query(default=None, description="Filter by role"),
    status: Optional[AccountStatus] = Query(default=None, description="Filter by status"),
    search: Optional[str] = Query(default=None, max_length=100, description="Name or email"),
    limit: int = Query(default=Pagination.DEFAULT_LIMIT, ge=1, le=Pagination.MAX_LIMIT),
    offset: int = Query(default=0, ge=0),
    admin: AuthContext = Depends(require_admin),
    users: UserStore = Depends(get_user_store),
) -> Dict[str, Any]:
    """List users with optional role, status and free-text filters."""
    identities = await users.list_users(
        role=role, status=status, search=search, limit=limit, offset=offset
    )
    return {"success": True, "data": [_admin_view(i) for i in identities]}


@router.patch("/users/{user_id}/status")
async def update_user_status(
    request: Request,
    user_id: int,
    body: UpdateUserStatusRequest,
    admin: AuthContext = Depends(require_admin),
    users: UserStore = Depends(get_user_store),
    audit: AuditStore = Depends(get_audit_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Activate, deactivate or suspend a user. Audited."""
    if body.status == AccountStatus.DELETED:
        raise ValidationError("Use DELETE /admin/users/{id} to delete a user", field="status")

    updated = await _set_status(
        request, admin, user_id, body.status, "UPDATE_USER_STATUS", users, audit, auth_service
    )
    return {
        "success": True,
        "data": _admin_view(updated),
        "message": "User status updated successfully",
    }


@router.delete("/users/{user_id}")
async def delete_user(
    request: Request,
    user_id: int,
    admin: AuthContext = Depends(require_admin),
    users: UserStore = Depends(get_user_store),
    audit: AuditStore = Depends(get_audit_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Soft-delete a user (status becomes ``deleted``). Audited."""
    await _set_status(
        request, admin, user_id, AccountStatus.DELETED, "DELETE_USER", users, audit, auth_service
    )
    return {"success": True, "message": "User deleted successfully"}


@router.get("/audit-logs")
async def list_audit_logs(
    admin: AuthContext = Depends(require_admin),
    audit: AuditStore = Depends(get_audit_store),
) -> Dict[str, Any]:
    """Return the most recent audit entries, newest first."""
    entries = await audit.list_recent(DatabaseDefaults.AUDIT_LOG_LIMIT)
    return {"success": True, "data": [entry.to_dict() for entry in entries]}
