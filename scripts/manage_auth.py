#!/usr/bin/env python3
"""
E-Bike Tracker Authentication Management CLI

Utility script for managing:
- Secret keys (SECRET_KEY)
- The rider's password (APP_PASSWORD)
- Bearer tokens for scripted access

Usage:
    python scripts/manage_auth.py generate-secret-key
    python scripts/manage_auth.py hash-password <password>
    python scripts/manage_auth.py issue-token
    python scripts/manage_auth.py list-config
"""

import argparse
import os
import sys

from ebike_tracker.config import Config
from ebike_tracker.utils.auth_utils import (
    STATIC_USER_ID,
    Identity,
    StaticCredentialProvider,
    generate_secret_key,
    hash_password,
)


def generate_secret_key_command(args):
    """Generate a new Flask SECRET_KEY."""
    key = generate_secret_key(length=32)
    print("Generated Flask SECRET_KEY:")
    print(f"  {key}")
    print("\nAdd to your .env file:")
    print(f"  SECRET_KEY={key}")
    print("\n⚠️  WARNING: Changing SECRET_KEY will invalidate issued tokens and sessions!")


def hash_password_command(args):
    """Hash a password for APP_PASSWORD."""
    hashed = hash_password(args.password, method=args.method)
    print(f"Hashed password ({args.method}):")
    print(f"  {hashed}")
    print("\nAdd to your .env file:")
    print(f"  APP_PASSWORD={hashed}")


def issue_token_command(args):
    """Issue a bearer token for the configured rider without logging in."""
    if Config.SECRET_KEY == "dev-secret-key-change-in-production":
        print("Warning: SECRET_KEY is the development default", file=sys.stderr)

    provider = StaticCredentialProvider(
        secret_key=Config.SECRET_KEY,
        username=Config.APP_USERNAME,
        password=Config.APP_PASSWORD,
        max_age=Config.TOKEN_MAX_AGE_SECONDS,
    )
    token = provider.issue_token(Identity(user_id=STATIC_USER_ID, username=Config.APP_USERNAME))
    print(f"Bearer token for {Config.APP_USERNAME} (valid {Config.TOKEN_MAX_AGE_SECONDS // 86400} days):")
    print(f"  {token}")
    print("\nUse with:")
    print(f"  curl -H 'Authorization: Bearer {token}' http://localhost:{Config.FLASK_PORT}/api/data")


def list_env_vars_command(args):
    """Show current authentication configuration from environment."""
    print("Current Authentication Configuration")
    print("=" * 60)

    vars_to_check = {
        "AUTH_STRATEGY": "static or oauth",
        "APP_USERNAME": "Rider username",
        "APP_PASSWORD": "Rider password (plain or hashed)",
        "SECRET_KEY": "Token and session signing key",
        "TOKEN_MAX_AGE_SECONDS": "Bearer token lifetime",
        "CORS_ORIGIN": "Allowed browser origin",
    }
    sensitive = {"APP_PASSWORD", "SECRET_KEY"}

    for var, description in vars_to_check.items():
        value = os.environ.get(var)
        if value:
            display_value = (f"{value[:10]}..." if len(value) > 10 else "***") if var in sensitive else value
            print(f"✓ {var:25s} = {display_value:20s} # {description}")
        else:
            print(f"✗ {var:25s} = NOT SET                  # {description}")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="E-Bike Tracker Authentication Management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate a Flask SECRET_KEY
  python scripts/manage_auth.py generate-secret-key

  # Hash a password for APP_PASSWORD
  python scripts/manage_auth.py hash-password mypassword123

  # Issue a bearer token for curl
  python scripts/manage_auth.py issue-token

  # Show current configuration
  python scripts/manage_auth.py list-config
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    secret_parser = subparsers.add_parser("generate-secret-key", help="Generate a Flask SECRET_KEY")
    secret_parser.set_defaults(func=generate_secret_key_command)

    hash_parser = subparsers.add_parser("hash-password", help="Hash a password for APP_PASSWORD")
    hash_parser.add_argument("password", help="Password to hash")
    hash_parser.add_argument(
        "--method",
        default="pbkdf2:sha256",
        choices=["pbkdf2:sha256", "scrypt:32768:8:1"],
        help="Hashing method"
    )
    hash_parser.set_defaults(func=hash_password_command)

    token_parser = subparsers.add_parser("issue-token", help="Issue a bearer token for the configured rider")
    token_parser.set_defaults(func=issue_token_command)

    list_parser = subparsers.add_parser("list-config", help="Show current authentication configuration")
    list_parser.set_defaults(func=list_env_vars_command)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
