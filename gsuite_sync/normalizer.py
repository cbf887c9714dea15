"""
Mapping of raw Directory API records onto UserEntry and GroupEntry.

Records that fail the inclusion rules are dropped without raising: a user with
a blank email that is not a deletion tombstone, and any group member that is
not an active direct member of type user or group.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from gsuite_sync.models import UserEntry, GroupEntry

logger = logging.getLogger(__name__)

MEMBER_ROLE = 'member'
ACTIVE_STATUS = 'active'
USER_TYPE = 'user'
GROUP_TYPE = 'group'


def _matches(value: Optional[str], expected: str) -> bool:
    return value is not None and value.lower() == expected


def normalize_user(raw: Dict[str, Any], deleted: bool) -> Optional[UserEntry]:
    """
    Build a UserEntry from a Directory API user record.
    
    Args:
        raw: User resource (id, primaryEmail, suspended)
        deleted: True when the record came from the deleted users listing
        
    Returns:
        The entry, or None when the email is blank and the user is not deleted
    """
    entry = UserEntry(
        reference_id=raw.get('id'),
        external_id=raw.get('id'),
        email=raw.get('primaryEmail'),
        disabled=bool(raw.get('suspended') or False),
        deleted=deleted
    )
    
    if entry.deleted:
        return entry
    
    if not entry.email or not entry.email.strip():
        logger.debug(f"Dropping user {entry.external_id} without an email address")
        return None
    
    return entry


def normalize_group(raw_group: Dict[str, Any],
                    raw_members: Optional[Iterable[Dict[str, Any]]]) -> GroupEntry:
    """
    Build a GroupEntry from a group record and its member records.
    
    Args:
        raw_group: Group resource (id, name)
        raw_members: Member resources (id, type, role, status), or None when
            membership was not fetched for this group
            
    Returns:
        Group entry holding the active direct user and group members
    """
    entry = GroupEntry(
        reference_id=raw_group.get('id'),
        external_id=raw_group.get('id'),
        name=raw_group.get('name'),
        members_loaded=raw_members is not None
    )
    
    for member in raw_members or []:
        member_id = member.get('id')
        if member_id is None:
            logger.debug(f"Skipping member without an id in group {entry.external_id}")
            continue
        
        if not _matches(member.get('role'), MEMBER_ROLE) or \
                not _matches(member.get('status'), ACTIVE_STATUS):
            logger.debug(f"Skipping member {member_id} of group {entry.external_id}: "
                         f"role={member.get('role')} status={member.get('status')}")
            continue
        
        if _matches(member.get('type'), USER_TYPE):
            entry.user_member_external_ids.add(member_id)
        elif _matches(member.get('type'), GROUP_TYPE):
            entry.group_member_reference_ids.add(member_id)
    
    return entry
