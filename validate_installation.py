#!/usr/bin/env python3
"""
Validation script for GSuite User Sync.

Checks that the required libraries are importable and that the fetch pipeline
works end to end against an in-memory directory, without network access.
"""

import sys
import importlib


def check_dependency(package_name, import_name=None):
    """Check if a package/module can be imported."""
    if import_name is None:
        import_name = package_name

    try:
        importlib.import_module(import_name)
        return True, f"✓ {package_name} available"
    except ImportError as e:
        return False, f"✗ {package_name} missing: {e}"


def validate_dependencies():
    """Validate all required dependencies."""
    print("=== Dependency Validation ===")

    dependencies = [
        ("PyYAML", "yaml"),
        ("cryptography", "cryptography"),
        ("google-auth", "google.oauth2.service_account"),
        ("google-api-python-client", "googleapiclient.discovery"),
    ]

    all_ok = True
    for pkg_name, import_name in dependencies:
        ok, message = check_dependency(pkg_name, import_name)
        print(f"  {message}")
        if not ok:
            all_ok = False

    return all_ok


def validate_core_modules():
    """Validate core application modules."""
    print("\n=== Core Module Validation ===")

    modules = [
        "gsuite_sync.config",
        "gsuite_sync.logging_setup",
        "gsuite_sync.credentials",
        "gsuite_sync.pagination",
        "gsuite_sync.normalizer",
        "gsuite_sync.directory",
        "gsuite_sync.main",
    ]

    all_ok = True
    for module in modules:
        ok, message = check_dependency(module, module)
        print(f"  {message}")
        if not ok:
            all_ok = False

    return all_ok


class _Request:
    def __init__(self, response):
        self.response = response

    def execute(self):
        return self.response


class _Collection:
    def __init__(self, response):
        self.response = response

    def list(self, **params):
        return _Request(self.response)


class _InMemoryDirectory:
    """Single-page directory with one user in one group."""

    def users(self):
        if not hasattr(self, '_deleted_served'):
            self._deleted_served = True
            return _Collection({'users': [{'id': 'u1', 'primaryEmail': 'u1@example.com'}]})
        return _Collection({'users': []})

    def groups(self):
        return _Collection({'groups': [{'id': 'g1', 'name': 'Staff'}]})

    def members(self):
        return _Collection({'members': [
            {'id': 'u1', 'type': 'USER', 'role': 'MEMBER', 'status': 'ACTIVE'}
        ]})


class _InMemoryClient:
    def get_service(self):
        return _InMemoryDirectory()


def validate_functionality():
    """Validate the fetch pipeline against an in-memory directory."""
    print("\n=== Functionality Validation ===")

    try:
        from gsuite_sync.directory import GSuiteDirectoryService
        from gsuite_sync.models import AuthContext

        config = {
            'gsuite': {'domain': 'example.com', 'admin_user': 'admin@example.com',
                       'secret_file': 'unused.json'},
            'sync': {'sync_users': True, 'sync_groups': True, 'user_filter': None}
        }
        service = GSuiteDirectoryService(
            _InMemoryClient(), AuthContext(authenticated=True, organization_id='org'), config
        )
        snapshot = service.fetch_snapshot()

        assert len(snapshot.users) == 1
        print("  ✓ User retrieval")

        assert snapshot.groups[0].user_member_external_ids == {'u1'}
        print("  ✓ Group membership retrieval")

        return True

    except Exception as e:
        print(f"  ✗ Functionality test failed: {e}")
        return False


def validate_cli():
    """Validate command-line interface."""
    print("\n=== CLI Validation ===")

    try:
        import subprocess

        result = subprocess.run([sys.executable, "-m", "gsuite_sync.main", "--help"],
                                capture_output=True, text=True)
        if result.returncode == 0:
            print("  ✓ Help command working")
            return True

        print("  ✗ Help command failed")
        return False

    except Exception as e:
        print(f"  ✗ CLI validation failed: {e}")
        return False


def main():
    """Run all validations."""
    print("GSuite User Sync - Installation Validation")
    print("=" * 50)

    all_validations = [
        validate_dependencies(),
        validate_core_modules(),
        validate_functionality(),
        validate_cli(),
    ]

    print("\n=== Summary ===")
    if all(all_validations):
        print("✓ All validations passed!")
        print("\nNext steps:")
        print("  1. Configure the gsuite, sync and organization sections in config.yaml")
        print("  2. Test with: python -m gsuite_sync.main --health-check")
        print("  3. Fetch a snapshot: python -m gsuite_sync.main --output snapshot.json")
        return 0
    else:
        print("✗ Some validations failed!")
        print("Please resolve the issues above before using the application.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
