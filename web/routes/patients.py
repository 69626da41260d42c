"""Patient directory routes for clinical staff."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from medportal.constants import Pagination
from medportal.core.enums import CLINICAL_STAFF, Role
from medportal.core.exceptions import InsufficientPermissionsError, RecordNotFoundError
from medportal.repositories import UserStore
from web.dependencies import (
    AuthContext,
    get_user_store,
    rate_limit,
    require_auth,
    require_roles,
)

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("", dependencies=[Depends(rate_limit("api"))])
async def list_patients(
    search: Optional[str] = Query(default=None, max_length=100),
    limit: int = Query(default=Pagination.DEFAULT_LIMIT, ge=1, le=Pagination.MAX_LIMIT),
    offset: int = Query(default=0, ge=0),
    user: AuthContext = Depends(require_roles(*CLINICAL_STAFF)),
    users: UserStore = Depends(get_user_store),
) -> Dict[str, Any]:
    """List active patients. Doctors, nurses and admins only."""
    patients = await users.list_patients(search=search, limit=limit, offset=offset)
    return {"success": True, "data": patients}


@router.get("/{patient_id}", dependencies=[Depends(rate_limit("api"))])
async def get_patient(
    patient_id: int,
    user: AuthContext = Depends(require_auth),
    users: UserStore = Depends(get_user_store),
) -> Dict[str, Any]:
    """Get one patient. Clinical staff, or the patient themself."""
    if user.role not in CLINICAL_STAFF and not (
        user.role == Role.PATIENT and user.id == patient_id
    ):
        raise InsufficientPermissionsError()

    patient = await users.get_patient(patient_id)
    if patient is None:
        raise RecordNotFoundError("Patient", patient_id)
    return {"success": True, "data": patient}
