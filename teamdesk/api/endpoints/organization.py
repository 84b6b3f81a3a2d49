"""
Organization Endpoints

Organization listing and leaving live under /user; this router holds
checks made while naming an organization.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.models.user import User
from teamdesk.schemas.onboarding import validate_display_name
from teamdesk.schemas.organization import AvailabilityResponse, OrganizationNameCheck
from teamdesk.services.organization_service import OrganizationService
from teamdesk.core.exceptions import InvalidInputError
from teamdesk.api.deps import get_current_user

router = APIRouter(prefix="/organization", tags=["organization"])


@router.post("/check-name", response_model=AvailabilityResponse)
async def check_organization_name(
    check: OrganizationNameCheck,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Whether an organization name is free. Names are unique across all organizations."""
    try:
        name = validate_display_name(check.name, "Organization name")
    except ValueError:
        raise InvalidInputError("Invalid organization name format")

    taken = OrganizationService(db).name_exists(name, exclude_id=check.current_organization_id)
    if taken:
        return AvailabilityResponse(
            available=False,
            message="This organization name is already taken. Please choose a different name."
        )
    return AvailabilityResponse(available=True, message="This organization name is available")
