"""
GSuite User Sync - Fetch users and groups from a Google Workspace directory.

This package retrieves the directory roster through the Admin SDK Directory API
and normalizes it into provider-agnostic entries for a downstream sync engine.
"""

__version__ = "1.0.0"
__author__ = "GSuite Sync Team"
