"""
Command-line entry point for GSuite User Sync.

Loads configuration, fetches one directory snapshot and writes it as JSON for
the downstream sync engine.
"""

import sys
import json
import logging
from datetime import datetime
from typing import Dict, Any, Optional

from googleapiclient.errors import HttpError

from gsuite_sync.config import load_config, ConfigurationError
from gsuite_sync.credentials import DirectoryClient
from gsuite_sync.directory import GSuiteDirectoryService, NotAuthenticatedError
from gsuite_sync.logging_setup import setup_logging
from gsuite_sync.models import AuthContext, DirectorySnapshot

logger = logging.getLogger(__name__)


class SnapshotRunner:
    """
    Runs a single snapshot fetch and reports its outcome.
    
    Maps each error category to its own exit code.
    """
    
    def __init__(self, config_path: Optional[str] = None, force: bool = False,
                 output_path: Optional[str] = None):
        self.config_path = config_path
        self.force = force
        self.output_path = output_path
        self.config = None
        
        self.stats = {
            'users': None,
            'deleted_users': None,
            'groups': None,
            'start_time': None,
            'end_time': None,
            'runtime_seconds': 0
        }
    
    def run(self) -> int:
        """
        Fetch and emit a snapshot.
        
        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            self.stats['start_time'] = datetime.now()
            
            self.config = load_config(self.config_path)
            setup_logging(self.config.get('logging', {}))
            
            logger.info("Starting GSuite directory fetch")
            
            snapshot = self._create_service().fetch_snapshot(force=self.force)
            self._write_snapshot(snapshot)
            
            self.stats['end_time'] = datetime.now()
            self.stats['runtime_seconds'] = (
                self.stats['end_time'] - self.stats['start_time']
            ).total_seconds()
            self._record_counts(snapshot)
            self._log_summary()
            
            logger.info("Directory fetch completed successfully")
            return 0
        
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return 2
        except NotAuthenticatedError as e:
            logger.error(f"Authentication error: {e}")
            return 3
        except HttpError as e:
            logger.error(f"Directory API error: {e}")
            return 4
        except Exception as e:
            logger.error(f"Unexpected error: {e}", exc_info=True)
            return 5
    
    def _create_service(self) -> GSuiteDirectoryService:
        client = DirectoryClient(self.config.get('gsuite'), base_path=self.config.get('config_dir'))
        return GSuiteDirectoryService(client, AuthContext.from_config(self.config), self.config)
    
    def _write_snapshot(self, snapshot: DirectorySnapshot):
        payload = json.dumps(snapshot.to_dict(), indent=2)
        if self.output_path:
            with open(self.output_path, 'w') as f:
                f.write(payload)
            logger.info(f"Snapshot written to {self.output_path}")
        else:
            print(payload)
    
    def _record_counts(self, snapshot: DirectorySnapshot):
        if snapshot.users is not None:
            deleted = sum(1 for user in snapshot.users if user.deleted)
            self.stats['users'] = len(snapshot.users) - deleted
            self.stats['deleted_users'] = deleted
        if snapshot.groups is not None:
            self.stats['groups'] = len(snapshot.groups)
    
    def _log_summary(self):
        """Log final fetch statistics."""
        stats = self.stats
        logger.info("=== Fetch Summary ===")
        logger.info(f"Total runtime: {stats['runtime_seconds']:.2f} seconds")
        logger.info(f"Users: {stats['users'] if stats['users'] is not None else 'not synced'}")
        logger.info(f"Deleted users: {stats['deleted_users'] if stats['deleted_users'] is not None else 'not synced'}")
        logger.info(f"Groups: {stats['groups'] if stats['groups'] is not None else 'not synced'}")
    
    def health_check(self) -> Dict[str, Any]:
        """
        Check configuration, session and credentials without calling the directory.
        
        Returns:
            Dictionary containing health status and details
        """
        health_status = {
            'status': 'healthy',
            'timestamp': datetime.now().isoformat(),
            'checks': {}
        }
        
        try:
            self.config = load_config(self.config_path)
            health_status['checks']['configuration'] = {
                'status': 'pass',
                'message': 'Configuration loaded successfully'
            }
        except ConfigurationError as e:
            health_status['checks']['configuration'] = {
                'status': 'fail',
                'message': f'Configuration error: {e}'
            }
            health_status['status'] = 'unhealthy'
            return health_status
        
        auth_context = AuthContext.from_config(self.config)
        if auth_context.authenticated and auth_context.organization_set:
            health_status['checks']['organization'] = {
                'status': 'pass',
                'message': f'Organization {auth_context.organization_id} configured'
            }
        else:
            health_status['checks']['organization'] = {
                'status': 'fail',
                'message': 'Not logged in or have an org set'
            }
            health_status['status'] = 'unhealthy'
        
        try:
            client = DirectoryClient(self.config.get('gsuite'), base_path=self.config.get('config_dir'))
            client.load_credentials()
            health_status['checks']['credentials'] = {
                'status': 'pass',
                'message': 'Service account credential valid'
            }
        except ConfigurationError as e:
            health_status['checks']['credentials'] = {
                'status': 'fail',
                'message': f'Credential error: {e}'
            }
            health_status['status'] = 'unhealthy'
        
        if not self.config.get('sync'):
            health_status['checks']['sync'] = {
                'status': 'fail',
                'message': 'No configuration for sync'
            }
            health_status['status'] = 'unhealthy'
        else:
            health_status['checks']['sync'] = {
                'status': 'pass',
                'message': f"users={self.config['sync']['sync_users']} groups={self.config['sync']['sync_groups']}"
            }
        
        return health_status


def main():
    """Main entry point for the application."""
    import argparse
    
    parser = argparse.ArgumentParser(description='GSuite directory fetch')
    parser.add_argument('--config', '-c', help='Path to configuration file')
    parser.add_argument('--force', action='store_true',
                        help='Refresh group memberships even without active user changes')
    parser.add_argument('--output', '-o', help='Write the snapshot JSON to this file')
    parser.add_argument('--health-check', action='store_true',
                        help='Validate configuration and credentials instead of fetching')
    
    args = parser.parse_args()
    
    runner = SnapshotRunner(config_path=args.config, force=args.force, output_path=args.output)
    
    if args.health_check:
        health_status = runner.health_check()
        print(json.dumps(health_status, indent=2))
        sys.exit(0 if health_status['status'] == 'healthy' else 1)
    
    sys.exit(runner.run())


if __name__ == "__main__":
    main()
