"""Group authorization gate.

Decides who may act on a group. Membership is monotonic: members can be
added but never removed.
"""
import logging

from sqlalchemy.orm import Session

from whereabouts.attestation.store import IdentityStore
from whereabouts.db.models import Group
from whereabouts.exceptions import (
    GroupNotFoundError,
    NotAMemberError,
    UnknownMembersError,
    ValidationError,
)
from whereabouts.pgp import normalize_fingerprint
from whereabouts.sharing.store import GroupStore

log = logging.getLogger(__name__)


def _clean_fingerprints(fingerprints: list[str] | None) -> list[str]:
    """Normalize, drop empty entries and de-duplicate preserving order."""
    seen: dict[str, None] = {}
    for fp in fingerprints or []:
        if not fp or not fp.strip():
            continue
        seen.setdefault(normalize_fingerprint(fp), None)
    return list(seen)


class GroupGate:
    """Group lifecycle and per-request membership checks."""

    def __init__(self, db: Session):
        self.db = db
        self.groups = GroupStore(db)
        self.identities = IdentityStore(db)

    def require_membership(self, fingerprint: str, group_id: int) -> Group:
        """Return the group if fingerprint is currently a member.

        Raises:
            GroupNotFoundError: If the group does not exist
            NotAMemberError: If the fingerprint is not a member
        """
        group = self.groups.get(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        if not self.groups.is_member(group_id, fingerprint):
            raise NotAMemberError([group_id])
        return group

    def create_group(
        self,
        creator_fingerprint: str,
        name: str,
        member_fingerprints: list[str] | None = None,
    ) -> Group:
        """Create a group containing the creator and the listed members.

        Empty entries are dropped. Listed members must be registered
        identities, matching the check add_members performs.

        Raises:
            ValidationError: If the name is empty
            UnknownMembersError: If any listed fingerprint is unregistered
        """
        if not name or not name.strip():
            raise ValidationError("Group name is required")

        wanted = _clean_fingerprints([creator_fingerprint] + list(member_fingerprints or []))
        self._require_registered(wanted)

        members = [self.identities.get(fp) for fp in wanted]
        group = self.groups.create(name.strip(), members)
        self.db.commit()

        log.info(f"Created group {group.id} by {creator_fingerprint} with {len(members)} members")
        return group

    def list_groups(self, fingerprint: str) -> list[Group]:
        """All groups the fingerprint is a member of."""
        return self.groups.list_for(fingerprint)

    def add_members(
        self,
        requester_fingerprint: str,
        group_id: int,
        new_fingerprints: list[str],
    ) -> Group:
        """Add registered identities to a group the requester belongs to.

        All-or-nothing: if any fingerprint is unregistered, nothing is
        added. Re-adding an existing member is a no-op.

        Raises:
            GroupNotFoundError: If the group does not exist
            NotAMemberError: If the requester is not a member
            UnknownMembersError: Listing exactly the unregistered fingerprints
        """
        group = self.require_membership(requester_fingerprint, group_id)

        wanted = _clean_fingerprints(new_fingerprints)
        self._require_registered(wanted)

        current = {member.fingerprint for member in group.members}
        added = [fp for fp in wanted if fp not in current]
        for fp in added:
            group.members.append(self.identities.get(fp))
        self.db.commit()

        if added:
            log.info(f"Added {len(added)} members to group {group_id} by {requester_fingerprint}")
        return self.groups.get(group_id)

    def _require_registered(self, fingerprints: list[str]) -> None:
        existing = self.identities.existing_fingerprints(fingerprints)
        unknown = [fp for fp in fingerprints if fp not in existing]
        if unknown:
            raise UnknownMembersError(unknown)
