"""
Configuration loading and management for GSuite User Sync.

This module handles loading configuration from YAML files and environment variables,
with validation and defaults.
"""

import os
import yaml
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing required fields."""
    pass


class MissingProviderConfigError(ConfigurationError):
    """Raised when the directory server (gsuite) section is not configured."""
    pass


class MissingSyncConfigError(ConfigurationError):
    """Raised when the sync section is not configured."""
    pass


class ConfigLoader:
    """Handles loading and validation of application configuration."""
    
    # Environment variable mappings for sensitive fields
    ENV_OVERRIDES = {
        'organization.client_secret': 'ORGANIZATION_CLIENT_SECRET',
        'gsuite.secret_file': 'GSUITE_SECRET_FILE',
        'gsuite.admin_user': 'GSUITE_ADMIN_USER',
    }
    
    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize config loader.
        
        Args:
            config_path: Path to config file. If None, uses CONFIG_PATH env var or 'config.yaml'
        """
        self.config_path = config_path or os.getenv('CONFIG_PATH', 'config.yaml')
        self.config = {}
    
    def load(self) -> Dict[str, Any]:
        """
        Load configuration from file and apply environment overrides.
        
        Returns:
            Parsed and validated configuration dictionary
            
        Raises:
            ConfigurationError: If config file not found or validation fails
        """
        try:
            with open(self.config_path, 'r') as f:
                self.config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        
        if not isinstance(self.config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {self.config_path}")
        
        self._apply_env_overrides()
        self._validate()
        self._apply_defaults()
        
        # Relative secret files are resolved against the config file location
        self.config['config_dir'] = os.path.dirname(os.path.abspath(self.config_path))
        
        logger.info(f"Configuration loaded successfully from {self.config_path}")
        return self.config
    
    def _apply_env_overrides(self):
        """Apply environment variable overrides for sensitive fields."""
        for config_key, env_var in self.ENV_OVERRIDES.items():
            env_value = os.getenv(env_var)
            if env_value:
                self._set_nested_value(self.config, config_key, env_value)
                logger.debug(f"Applied environment override for {config_key}")
    
    def _set_nested_value(self, config: Dict, key_path: str, value: Any):
        """Set a nested configuration value using dot notation."""
        keys = key_path.split('.')
        current = config
        for key in keys[:-1]:
            if current.get(key) is None:
                current[key] = {}
            current = current[key]
        current[keys[-1]] = value
    
    def _validate(self):
        """Validate required configuration fields."""
        errors = []
        
        # Missing sections are reported by the directory service at fetch time
        gsuite_config = self.config.get('gsuite')
        if gsuite_config is not None:
            if not isinstance(gsuite_config, dict):
                errors.append("gsuite section must be a mapping")
            else:
                for field in ['admin_user', 'secret_file']:
                    if not gsuite_config.get(field):
                        errors.append(f"Missing required gsuite field: {field}")
                if not (gsuite_config.get('domain') or gsuite_config.get('customer')):
                    errors.append("gsuite section requires a domain or a customer id")
        else:
            logger.warning("No gsuite section configured")
        
        sync_config = self.config.get('sync')
        if sync_config is not None:
            if not isinstance(sync_config, dict):
                errors.append("sync section must be a mapping")
            else:
                for field in ['sync_users', 'sync_groups']:
                    if field in sync_config and not isinstance(sync_config[field], bool):
                        errors.append(f"sync.{field} must be true or false")
                user_filter = sync_config.get('user_filter')
                if user_filter is not None and not isinstance(user_filter, str):
                    errors.append("sync.user_filter must be a string")
        else:
            logger.warning("No sync section configured")
        
        if errors:
            raise ConfigurationError("Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors))
    
    def _apply_defaults(self):
        """Apply default values for optional configuration fields."""
        sync_config = self.config.get('sync')
        if sync_config is not None:
            sync_defaults = {
                'sync_users': True,
                'sync_groups': True,
                'user_filter': None
            }
            for key, value in sync_defaults.items():
                sync_config.setdefault(key, value)
        
        # Logging defaults
        logging_defaults = {
            'level': 'INFO',
            'log_dir': 'logs',
            'rotation': 'daily',
            'retention_days': 7,
            'console_output': True,
            'console_level': 'WARNING'
        }
        logging_config = self.config.get('logging') or {}
        self.config['logging'] = logging_config
        for key, value in logging_defaults.items():
            logging_config.setdefault(key, value)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Convenience function to load configuration.
    
    Args:
        config_path: Path to config file
        
    Returns:
        Loaded configuration dictionary
    """
    loader = ConfigLoader(config_path)
    return loader.load()
