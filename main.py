#!/usr/bin/env python3
"""
SSO -- credential issuance service: login, registration, admin checks.

Usage:
  python main.py serve
  python main.py serve --config ./config/local.env
  python main.py create-app --id 1 --name web --secret "$(openssl rand -hex 32)"
  python main.py grant-admin 42
  python main.py grant-admin 42 --revoke

Configuration:
  --config PATH   Env-style settings file. Falls back to CONFIG_PATH, then ./.env.
  TOKEN_TTL_SECONDS, DATABASE_URL, BCRYPT_ROUNDS, ENV, LOG_LEVEL, HOST, PORT
"""

import argparse
import sys

from auth.models import App
from auth.protocols import StorageError
from core.config import Settings, get_settings, load_settings
from core.logger import setup_logging
from storage.sql import SQLStore


def _serve(settings: Settings, args: argparse.Namespace) -> int:
    import uvicorn

    from api.main import app

    # The lifespan prefers these over get_settings(), so --config reaches the server.
    app.state.settings = settings
    uvicorn.run(
        app,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,
    )
    return 0


def _create_app(settings: Settings, args: argparse.Namespace) -> int:
    store = SQLStore(settings.database_url)
    try:
        store.create_app(App(id=args.id, name=args.name, secret=args.secret))
    except (StorageError, ValueError) as e:
        print(f"  [!] Could not create app: {e}", file=sys.stderr)
        return 1
    finally:
        store.close()
    print(f"  App {args.id} ({args.name}) created.")
    return 0


def _grant_admin(settings: Settings, args: argparse.Namespace) -> int:
    store = SQLStore(settings.database_url)
    try:
        store.set_admin(args.user_id, not args.revoke)
    except StorageError as e:
        print(f"  [!] Could not update user {args.user_id}: {e}", file=sys.stderr)
        return 1
    finally:
        store.close()
    state = "revoked from" if args.revoke else "granted to"
    print(f"  Admin {state} user {args.user_id}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sso",
        description="Credential issuance service for registered applications.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Path to an env-style settings file (overrides CONFIG_PATH)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting)")
    serve.set_defaults(handler=_serve)

    create_app = sub.add_parser("create-app", help="Provision an application and its signing secret")
    create_app.add_argument("--id", type=int, required=True, help="Application id clients send on login")
    create_app.add_argument("--name", required=True, help="Unique display name")
    create_app.add_argument("--secret", required=True, help="HMAC signing secret for this application's tokens")
    create_app.set_defaults(handler=_create_app)

    grant = sub.add_parser("grant-admin", help="Set or clear a user's admin flag")
    grant.add_argument("user_id", type=int, metavar="USER_ID")
    grant.add_argument("--revoke", action="store_true", help="Clear the flag instead of setting it")
    grant.set_defaults(handler=_grant_admin)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args.config) if args.config else get_settings()
    except FileNotFoundError as e:
        print(f"  [!] {e}", file=sys.stderr)
        return 2
    setup_logging(settings.env, settings.log_level)
    return args.handler(settings, args)


if __name__ == "__main__":
    sys.exit(main())
