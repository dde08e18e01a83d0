#!/usr/bin/env python3
"""
GitHub Enterprise Users Exporter — Entry Point.

This is the main script that users run to export the members of a GitHub
Enterprise account to CSV. It reads configuration from a .env file
(GITHUB_TOKEN, ENTERPRISE_SLUG), then runs one of three commands:

  test    Check the token, enterprise access, member sample, rate limit and
          2FA/SAML permissions. Run this first.
  basic   Export profile data (email, company, location, website, twitter,
          site admin, organizations) to enterprise-users-export-basic.csv.
  full    Export security data (2FA status, SAML NameID, organization roles)
          to enterprise-users-export.csv. Needs org owner access for 2FA/SAML;
          members without it get empty/N/A columns.

Usage:
    python run.py test              # Connection and permission test
    python run.py basic             # Basic export
    python run.py full              # Full export with 2FA/SAML data
    python run.py full --debug      # Verbose output
    python run.py basic --env /path # Use alternate .env file
    python run.py --version         # Show version
"""

import sys
import argparse
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from core import ExportOrchestrator

DISTRIBUTION = "ghe-users-export"
VERSION_FILE = Path(__file__).resolve().parent / "VERSION"


def get_version() -> str:
    """Installed distribution version, else the VERSION file of a source checkout."""
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return VERSION_FILE.read_text().strip() if VERSION_FILE.exists() else "unknown"


VERSION = get_version()

TITLES = {
    "test": "CONNECTION TEST",
    "basic": "BASIC EXPORT",
    "full": "FULL EXPORT",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="GitHub Enterprise Users Exporter - Export enterprise members to CSV"
    )
    parser.add_argument("command", nargs="?", choices=sorted(TITLES),
                        help="test, basic or full")
    parser.add_argument("--env", "-e", default="./.env", help="Path to .env file")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--version", "-v", action="store_true", help="Show version and exit")
    return parser


def main(argv=None) -> int:
    """Parse CLI arguments and run the selected command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"{DISTRIBUTION} {VERSION}")
        return 0
    if not args.command:
        parser.print_help()
        return 1

    # Initialize the orchestrator (loads .env and builds internal config)
    orchestrator = ExportOrchestrator(env_file=args.env)

    # Apply CLI overrides on top of .env values
    if args.debug:
        orchestrator.debug = True

    # Print header
    print(f"\n{'='*60}")
    print(f"GITHUB ENTERPRISE USERS EXPORTER v{VERSION} - {TITLES[args.command]}")
    print("="*60)
    print(f"Enterprise: {orchestrator.enterprise_slug or '(not set)'}")

    # Validate required configuration before any network call
    if not orchestrator.validate_config():
        return 1

    if args.command == "test":
        results = orchestrator.run_connection_test()
        return 0 if results.get("ready") else 1

    # Cleanup old output folders based on retention policy
    if orchestrator.output_manager.retention_days > 0:
        deleted = orchestrator.output_manager.cleanup_old_folders(orchestrator.debug)
        if deleted > 0:
            print(f"Cleaned up {deleted} old output folder(s)")

    results = orchestrator.run_export(args.command)
    orchestrator.print_summary(results)

    # Exit with error code if the export failed or was interrupted
    return 0 if results.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
