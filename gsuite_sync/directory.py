"""
Directory snapshot builder for Google Workspace.

This module contains the fetch logic that reads users and groups from the
Admin SDK Directory API and assembles them into a DirectorySnapshot for the
downstream sync engine.
"""

import logging
from typing import Dict, Any, List, Optional

from gsuite_sync.config import MissingProviderConfigError, MissingSyncConfigError
from gsuite_sync.models import AuthContext, DirectorySnapshot, GroupEntry, UserEntry
from gsuite_sync.normalizer import normalize_group, normalize_user
from gsuite_sync.pagination import ListRequest, PageStreamer

logger = logging.getLogger(__name__)


class NotAuthenticatedError(Exception):
    """Raised when the caller is not logged in or has no organization set."""
    pass


class GSuiteDirectoryService:
    """
    Builds directory snapshots from a Google Workspace domain.
    
    Holds no state between calls besides the injected client, whose directory
    service handle is built once and shared read-only.
    """
    
    def __init__(self, client, auth_context: AuthContext, config: Dict[str, Any]):
        """
        Initialize directory service.
        
        Args:
            client: DirectoryClient (anything exposing get_service())
            auth_context: Session state of the calling application
            config: Loaded configuration with gsuite and sync sections
        """
        self.client = client
        self.auth_context = auth_context
        self.config = config
        
        self.user_streamer = PageStreamer.for_collection('users')
        self.group_streamer = PageStreamer.for_collection('groups')
        self.member_streamer = PageStreamer.for_collection('members')
    
    @property
    def gsuite_config(self) -> Optional[Dict[str, Any]]:
        return self.config.get('gsuite')
    
    @property
    def sync_config(self) -> Optional[Dict[str, Any]]:
        return self.config.get('sync')
    
    def fetch_snapshot(self, force: bool = False) -> DirectorySnapshot:
        """
        Fetch the current users and groups of the directory.
        
        Args:
            force: Request a full group membership refresh
            
        Returns:
            Snapshot whose users/groups are None when that sync is disabled
            
        Raises:
            NotAuthenticatedError: If the caller is not logged in or has no org
            MissingProviderConfigError: If the gsuite section is missing
            MissingSyncConfigError: If the sync section is missing
        """
        self._check_preconditions()
        
        service = self.client.get_service()
        
        users = None
        if self.sync_config.get('sync_users', True):
            users = self._get_users(service)
        
        groups = None
        if self.sync_config.get('sync_groups', True):
            refresh_members = force or self._has_active_users(users)
            groups = self._get_groups(service, refresh_members)
        
        return DirectorySnapshot(groups=groups, users=users)
    
    def _check_preconditions(self):
        if not self.auth_context.authenticated or not self.auth_context.organization_set:
            raise NotAuthenticatedError("Not logged in or have an org set.")
        
        if not self.gsuite_config:
            raise MissingProviderConfigError("No configuration for directory server.")

        missing = [field for field in ('admin_user', 'secret_file') if not self.gsuite_config.get(field)]
        if not (self.gsuite_config.get('domain') or self.gsuite_config.get('customer')):
            missing.append('domain or customer')
        if missing:
            raise MissingProviderConfigError(
                f"Incomplete configuration for directory server, missing: {', '.join(missing)}"
            )

        if not self.sync_config:
            raise MissingSyncConfigError("No configuration for sync.")
    
    @staticmethod
    def _has_active_users(users: Optional[List[UserEntry]]) -> bool:
        return any(not user.deleted and not user.disabled for user in users or [])
    
    def _scope_params(self) -> Dict[str, Any]:
        """Domain and customer parameters shared by the users and groups listings."""
        params = {}
        for key in ('domain', 'customer'):
            value = self.gsuite_config.get(key)
            if value:
                params[key] = value
        return params
    
    def _get_users(self, service) -> List[UserEntry]:
        """Fetch active users followed by deleted users."""
        params = self._scope_params()
        user_filter = self.sync_config.get('user_filter')
        if user_filter:
            params['query'] = user_filter
        
        logger.info(f"Retrieving users (filter: {user_filter or 'none'})")
        
        entries = []
        dropped = 0
        try:
            request = ListRequest(service.users().list, **params)
            for user in self.user_streamer.fetch(request):
                entry = normalize_user(user, False)
                if entry is None:
                    dropped += 1
                    continue
                entries.append(entry)
            
            active_count = len(entries)
            
            deleted_request = ListRequest(service.users().list, showDeleted='true', **params)
            for user in self.user_streamer.fetch(deleted_request):
                entries.append(normalize_user(user, True))
        except Exception as e:
            logger.error(f"Failed to retrieve users: {e}")
            raise
        
        logger.info(f"Retrieved {active_count} users and {len(entries) - active_count} deleted users "
                    f"({dropped} dropped without email)")
        return entries
    
    def _get_groups(self, service, refresh_members: bool) -> List[GroupEntry]:
        """Fetch groups, with their memberships when refresh_members is set."""
        logger.info(f"Retrieving groups (membership refresh: {refresh_members})")
        
        entries = []
        try:
            request = ListRequest(service.groups().list, **self._scope_params())
            for group in self.group_streamer.fetch(request):
                members = None
                if refresh_members:
                    member_request = ListRequest(service.members().list, groupKey=group['id'])
                    members = self.member_streamer.fetch(member_request)
                entry = normalize_group(group, members)
                logger.debug(f"Group {entry.name} ({entry.external_id}): "
                             f"{len(entry.user_member_external_ids)} users, "
                             f"{len(entry.group_member_reference_ids)} groups")
                entries.append(entry)
        except Exception as e:
            logger.error(f"Failed to retrieve groups: {e}")
            raise
        
        logger.info(f"Retrieved {len(entries)} groups")
        return entries
