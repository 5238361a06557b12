"""Group lifecycle endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from whereabouts.api.models import (
    AddMembersRequest,
    CreateGroupRequest,
    GroupResponse,
    MemberResponse,
)
from whereabouts.attestation.resolver import ResolvedIdentity
from whereabouts.auth import require_identity
from whereabouts.db.models import Group, as_utc
from whereabouts.db.session import get_db
from whereabouts.exceptions import (
    GroupNotFoundError,
    NotAMemberError,
    UnknownMembersError,
    ValidationError,
)
from whereabouts.sharing.groups import GroupGate

router = APIRouter(prefix="/groups", tags=["groups"])
log = logging.getLogger(__name__)


def group_to_response(group: Group) -> GroupResponse:
    return GroupResponse(
        id=group.id,
        name=group.name,
        created_at=as_utc(group.created_at),
        members=[
            MemberResponse(fingerprint=member.fingerprint, name=member.name)
            for member in group.members
        ],
    )


@router.post("", response_model=GroupResponse, status_code=201)
def create_group(
    request: CreateGroupRequest,
    caller: ResolvedIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Create a group with the caller as its first member."""
    try:
        group = GroupGate(db).create_group(
            caller.fingerprint, request.name, request.member_fingerprints
        )
    except (ValidationError, UnknownMembersError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        log.exception("Failed to create group")
        raise HTTPException(status_code=500, detail="Failed to create group")

    return group_to_response(group)


@router.get("", response_model=list[GroupResponse])
def list_groups(
    caller: ResolvedIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """List the groups the caller belongs to."""
    try:
        groups = GroupGate(db).list_groups(caller.fingerprint)
    except SQLAlchemyError:
        log.exception("Failed to fetch groups")
        raise HTTPException(status_code=500, detail="Failed to fetch groups")

    return [group_to_response(group) for group in groups]


@router.patch("", response_model=GroupResponse)
def add_members(
    request: AddMembersRequest,
    caller: ResolvedIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Add registered identities to a group the caller belongs to."""
    try:
        group = GroupGate(db).add_members(
            caller.fingerprint, request.group_id, request.new_fingerprints
        )
    except GroupNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotAMemberError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except UnknownMembersError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        log.exception("Failed to add members to group")
        raise HTTPException(status_code=500, detail="Failed to add members to group")

    return group_to_response(group)
