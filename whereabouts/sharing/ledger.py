"""Location distribution ledger.

Stores opaque ciphertext scoped to groups and serves the most recent
records per author to requesters who share a group with that author.
Records are never decrypted or inspected here.
"""
import logging
from datetime import datetime, timedelta
from itertools import groupby
from typing import Callable, Optional

from sqlalchemy.orm import Session

from whereabouts.config import DEFAULT_LOCATION_LIMIT, LOCATION_TTL_SECONDS, MAX_LOCATION_LIMIT
from whereabouts.db.models import LocationRecord, utc_now
from whereabouts.exceptions import InvalidLimitError, NotAMemberError, ValidationError
from whereabouts.sharing.store import GroupStore, LocationStore

log = logging.getLogger(__name__)


class LocationLedger:
    """Publishes and fetches group-scoped location ciphertext."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self.groups = GroupStore(db)
        self.locations = LocationStore(db)

    def publish(
        self,
        sender_fingerprint: str,
        ciphertext: str,
        group_ids: list[int],
    ) -> LocationRecord:
        """Store a location update visible to every listed group.

        Raises:
            ValidationError: If ciphertext or group_ids is empty
            NotAMemberError: Listing the groups the sender does not belong to
        """
        if not ciphertext:
            raise ValidationError("Ciphertext is required")
        if not group_ids:
            raise ValidationError("At least one group is required")

        requested = list(dict.fromkeys(group_ids))
        member_of = self.groups.member_group_ids(sender_fingerprint, requested)
        missing = [gid for gid in requested if gid not in member_of]
        if missing:
            raise NotAMemberError(missing)

        now = self.clock()
        record = self.locations.add(
            sender_fingerprint,
            ciphertext,
            self.groups.get_many(requested),
            created_at=now,
            expires_at=now + timedelta(seconds=LOCATION_TTL_SECONDS),
        )
        self.db.commit()

        log.info(f"Location {record.id} from {sender_fingerprint} shared with groups {requested}")
        return record

    def fetch(
        self,
        requester_fingerprint: str,
        limit: int = DEFAULT_LOCATION_LIMIT,
        group_id: Optional[int] = None,
    ) -> list[LocationRecord]:
        """Most recent visible records, capped at `limit` per author.

        The cap applies to each author separately, not to the result as
        a whole.

        Raises:
            InvalidLimitError: If limit is outside [1, MAX_LOCATION_LIMIT]
        """
        if limit < 1 or limit > MAX_LOCATION_LIMIT:
            raise InvalidLimitError(limit, MAX_LOCATION_LIMIT)

        records = self.locations.visible_to(requester_fingerprint, self.clock(), group_id)

        limited: list[LocationRecord] = []
        for _, authored in groupby(records, key=lambda r: r.sender_fingerprint):
            limited.extend(list(authored)[:limit])
        return limited
