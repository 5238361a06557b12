"""Group and location-record repositories.

Membership is always read from the database at the time of the check;
nothing here caches it.
"""
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from whereabouts.db.models import Group, Identity, LocationRecord, group_members


class GroupStore:
    """Persistence for groups and their member sets."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, name: str, members: list[Identity]) -> Group:
        group = Group(name=name)
        group.members.extend(members)
        self.db.add(group)
        self.db.flush()
        return group

    def get(self, group_id: int) -> Optional[Group]:
        return (
            self.db.query(Group)
            .options(selectinload(Group.members))
            .filter(Group.id == group_id)
            .first()
        )

    def get_many(self, group_ids: Iterable[int]) -> list[Group]:
        wanted = set(group_ids)
        if not wanted:
            return []
        return self.db.query(Group).filter(Group.id.in_(wanted)).order_by(Group.id).all()

    def list_for(self, fingerprint: str) -> list[Group]:
        return (
            self.db.query(Group)
            .options(selectinload(Group.members))
            .join(group_members, group_members.c.group_id == Group.id)
            .filter(group_members.c.identity_fingerprint == fingerprint)
            .order_by(Group.id)
            .all()
        )

    def is_member(self, group_id: int, fingerprint: str) -> bool:
        row = self.db.execute(
            select(group_members.c.group_id).where(
                group_members.c.group_id == group_id,
                group_members.c.identity_fingerprint == fingerprint,
            )
        ).first()
        return row is not None

    def member_group_ids(self, fingerprint: str, group_ids: Iterable[int]) -> set[int]:
        """Return the subset of group_ids the fingerprint is a member of."""
        wanted = set(group_ids)
        if not wanted:
            return set()
        rows = self.db.execute(
            select(group_members.c.group_id).where(
                group_members.c.group_id.in_(wanted),
                group_members.c.identity_fingerprint == fingerprint,
            )
        ).all()
        return {row.group_id for row in rows}


class LocationStore:
    """Persistence and visibility queries for location records."""

    def __init__(self, db: Session):
        self.db = db

    def add(
        self,
        sender_fingerprint: str,
        ciphertext: str,
        groups: list[Group],
        created_at: datetime,
        expires_at: datetime,
    ) -> LocationRecord:
        record = LocationRecord(
            sender_fingerprint=sender_fingerprint,
            ciphertext=ciphertext,
            created_at=created_at,
            expires_at=expires_at,
        )
        record.groups.extend(groups)
        self.db.add(record)
        self.db.flush()
        return record

    def visible_to(
        self,
        fingerprint: str,
        now: datetime,
        group_id: Optional[int] = None,
    ) -> list[LocationRecord]:
        """All unexpired records the requester can see through shared groups.

        The candidate authors are the members of the requester's groups
        (restricted to group_id if given), and each record must itself
        be linked to one of those groups. Ordered by author, then newest
        first.
        """
        shared_groups = select(group_members.c.group_id).where(
            group_members.c.identity_fingerprint == fingerprint
        )
        if group_id is not None:
            shared_groups = shared_groups.where(group_members.c.group_id == group_id)

        co_members = select(group_members.c.identity_fingerprint).where(
            group_members.c.group_id.in_(shared_groups)
        )

        return (
            self.db.query(LocationRecord)
            .options(
                selectinload(LocationRecord.groups),
                selectinload(LocationRecord.sender),
            )
            .filter(
                LocationRecord.expires_at > now,
                LocationRecord.sender_fingerprint.in_(co_members),
                LocationRecord.groups.any(Group.id.in_(shared_groups)),
            )
            .order_by(
                LocationRecord.sender_fingerprint.asc(),
                LocationRecord.created_at.desc(),
                LocationRecord.id.desc(),
            )
            .all()
        )
