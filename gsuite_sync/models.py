"""
Provider-agnostic directory entry model.

These are the values handed to the downstream sync engine. Nothing here is
persisted by this package.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Set


@dataclass
class UserEntry:
    """A directory user. Deleted entries are tombstones and may lack an email."""
    reference_id: str
    external_id: str
    email: Optional[str] = None
    disabled: bool = False
    deleted: bool = False
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'reference_id': self.reference_id,
            'external_id': self.external_id,
            'email': self.email,
            'disabled': self.disabled,
            'deleted': self.deleted
        }


@dataclass
class GroupEntry:
    """
    A directory group with its direct members.
    
    Nested group references are recorded as given and may form cycles.
    """
    reference_id: str
    external_id: str
    name: Optional[str] = None
    user_member_external_ids: Set[str] = field(default_factory=set)
    group_member_reference_ids: Set[str] = field(default_factory=set)
    members_loaded: bool = True
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'reference_id': self.reference_id,
            'external_id': self.external_id,
            'name': self.name,
            'user_member_external_ids': sorted(self.user_member_external_ids),
            'group_member_reference_ids': sorted(self.group_member_reference_ids),
            'members_loaded': self.members_loaded
        }


@dataclass
class DirectorySnapshot:
    """Result of a single fetch. None means that entity type was not synced."""
    groups: Optional[List[GroupEntry]] = None
    users: Optional[List[UserEntry]] = None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'groups': None if self.groups is None else [g.to_dict() for g in self.groups],
            'users': None if self.users is None else [u.to_dict() for u in self.users]
        }


@dataclass
class AuthContext:
    """Session state of the calling application."""
    authenticated: bool = False
    organization_id: Optional[str] = None
    
    @property
    def organization_set(self) -> bool:
        return bool(self.organization_id)
    
    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'AuthContext':
        """
        Build the context from the organization section of the configuration.
        
        The caller counts as authenticated when both client_id and
        client_secret are configured.
        """
        organization = config.get('organization') or {}
        return cls(
            authenticated=bool(organization.get('client_id') and organization.get('client_secret')),
            organization_id=organization.get('id')
        )
