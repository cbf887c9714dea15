"""
Service account credentials and directory client construction.

This module loads and validates the service account credential document,
creates delegated read-only credentials for the configured admin user and
lazily builds the Admin SDK Directory API client shared across fetches.
"""

import os
import json
import logging
import threading
from typing import Dict, Any, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from google.oauth2 import service_account
from googleapiclient.discovery import build

from gsuite_sync.config import ConfigurationError, MissingProviderConfigError
from gsuite_sync.logging_setup import audit_logger

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_TYPE = 'service_account'

DIRECTORY_SCOPES = [
    'https://www.googleapis.com/auth/admin.directory.user.readonly',
    'https://www.googleapis.com/auth/admin.directory.group.readonly',
    'https://www.googleapis.com/auth/admin.directory.group.member.readonly',
]


class CredentialError(ConfigurationError):
    """Raised when the credential document is missing, malformed or of the wrong type."""
    pass


def load_credential_document(path: str) -> Dict[str, Any]:
    """
    Read a service account credential document from disk.
    
    Args:
        path: Path to the JSON key file
        
    Returns:
        Parsed credential document
        
    Raises:
        CredentialError: If the file cannot be read or is not a JSON object
    """
    try:
        with open(path, 'r') as f:
            document = json.load(f)
    except FileNotFoundError:
        raise CredentialError(f"Credential file not found: {path}")
    except json.JSONDecodeError as e:
        raise CredentialError(f"Invalid JSON in credential file {path}: {e}")
    except OSError as e:
        raise CredentialError(f"Could not read credential file {path}: {e}")
    
    if not isinstance(document, dict):
        raise CredentialError(f"Credential file {path} does not contain a JSON object")
    
    return document


def validate_credential_document(document: Dict[str, Any]) -> None:
    """
    Check that a document represents a usable service account credential.
    
    Raises:
        CredentialError: On a wrong type discriminator, missing client email,
            missing private key or a private key that is not valid PEM
    """
    if document.get('type') != SERVICE_ACCOUNT_TYPE:
        raise CredentialError(
            f"JSON data does not represent a valid service account credential "
            f"(type={document.get('type')!r})"
        )
    
    if not document.get('client_email'):
        raise CredentialError("Service account credential is missing client_email")
    
    private_key = document.get('private_key')
    if not private_key or not isinstance(private_key, str):
        raise CredentialError("Service account credential is missing private_key")
    
    try:
        serialization.load_pem_private_key(private_key.encode('utf-8'), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CredentialError(f"Service account private key is not a valid PEM key: {e}")


def create_service_account_credentials(document: Dict[str, Any],
                                       admin_user: str) -> service_account.Credentials:
    """
    Create read-only delegated credentials from a credential document.
    
    Args:
        document: Service account credential document
        admin_user: Admin identity the service account impersonates
        
    Returns:
        Scoped google-auth service account credentials
    """
    validate_credential_document(document)
    
    try:
        credentials = service_account.Credentials.from_service_account_info(
            document,
            scopes=DIRECTORY_SCOPES,
            subject=admin_user
        )
    except ValueError as e:
        raise CredentialError(f"Service account credential rejected: {e}")
    
    audit_logger.log_impersonation(document['client_email'], admin_user)
    return credentials


class DirectoryClient:
    """
    Caller-owned handle to the Admin SDK Directory API.
    
    The underlying service is built on first use and reused read-only by
    every later fetch. Construction itself does no I/O.
    """
    
    def __init__(self, gsuite_config: Optional[Dict[str, Any]], base_path: Optional[str] = None):
        """
        Initialize directory client.
        
        Args:
            gsuite_config: The gsuite configuration section
            base_path: Directory that relative secret file paths are resolved against
        """
        self.gsuite_config = gsuite_config
        self.base_path = base_path
        self._service = None
        self._lock = threading.Lock()
    
    @property
    def secret_file(self) -> str:
        secret_file = self.gsuite_config.get('secret_file', '')
        if self.base_path and not os.path.isabs(secret_file):
            return os.path.join(self.base_path, secret_file)
        return secret_file
    
    def load_credentials(self) -> service_account.Credentials:
        """
        Load and validate the configured credential document.
        
        Raises:
            MissingProviderConfigError: If there is no gsuite configuration
            CredentialError: If the credential material is unusable
        """
        if not self.gsuite_config:
            raise MissingProviderConfigError("No configuration for directory server.")
        
        secret_file = self.secret_file
        document = load_credential_document(secret_file)
        try:
            credentials = create_service_account_credentials(
                document, self.gsuite_config.get('admin_user')
            )
        except CredentialError:
            audit_logger.log_credential_load(secret_file, document.get('client_email', 'unknown'), False)
            raise
        
        audit_logger.log_credential_load(secret_file, document['client_email'], True)
        return credentials
    
    def get_service(self):
        """
        Return the directory service, building it once.
        
        Returns:
            googleapiclient Resource for admin directory_v1
        """
        if self._service is None:
            with self._lock:
                if self._service is None:
                    credentials = self.load_credentials()
                    self._service = build(
                        'admin', 'directory_v1',
                        credentials=credentials,
                        cache_discovery=False
                    )
                    logger.info("Directory API client initialized")
        return self._service
