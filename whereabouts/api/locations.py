"""Encrypted location update endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from whereabouts.api.models import MAX_ROW_ID, GroupRef, LocationResponse, PublishLocationRequest
from whereabouts.attestation.resolver import ResolvedIdentity
from whereabouts.auth import require_identity
from whereabouts.config import DEFAULT_LOCATION_LIMIT
from whereabouts.db.models import LocationRecord, as_utc
from whereabouts.db.session import get_db
from whereabouts.exceptions import NotAMemberError, ValidationError
from whereabouts.sharing.ledger import LocationLedger

router = APIRouter(prefix="/locations", tags=["locations"])
log = logging.getLogger(__name__)


def location_to_response(record: LocationRecord) -> LocationResponse:
    return LocationResponse(
        id=record.id,
        sender_fingerprint=record.sender_fingerprint,
        sender_name=record.sender.name if record.sender else None,
        ciphertext=record.ciphertext,
        created_at=as_utc(record.created_at),
        expires_at=as_utc(record.expires_at),
        groups=[GroupRef(id=group.id, name=group.name) for group in record.groups],
    )


@router.post("", response_model=LocationResponse, status_code=201)
def publish_location(
    request: PublishLocationRequest,
    caller: ResolvedIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Publish an encrypted location update to the listed groups."""
    try:
        record = LocationLedger(db).publish(
            caller.fingerprint, request.ciphertext, request.group_ids
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotAMemberError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except SQLAlchemyError:
        log.exception("Failed to create location update")
        raise HTTPException(status_code=500, detail="Failed to create location update")

    return location_to_response(record)


@router.get("", response_model=list[LocationResponse])
def fetch_locations(
    limit: int = Query(DEFAULT_LOCATION_LIMIT, description="Maximum records per author"),
    group_id: Optional[int] = Query(
        None, alias="groupId", ge=1, le=MAX_ROW_ID, description="Restrict to one group"
    ),
    caller: ResolvedIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Fetch the most recent location updates visible to the caller."""
    try:
        records = LocationLedger(db).fetch(caller.fingerprint, limit=limit, group_id=group_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        log.exception("Failed to fetch location updates")
        raise HTTPException(status_code=500, detail="Failed to fetch location updates")

    return [location_to_response(record) for record in records]
