"""
tenantvault CLI — entry point for all operations.

Usage:
    tenantvault serve                    # Start the API server
    tenantvault serve --memory           # ... on a throwaway in-memory store
    tenantvault migrate                  # Show migration status
    tenantvault migrate apply            # Apply pending migrations
    tenantvault init --email a@x.com     # Bootstrap the first super admin
    tenantvault version                  # Show version
"""

from __future__ import annotations

import argparse
import logging

from tenantvault.config import get_config

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tenantvault",
        description="tenantvault — multi-tenant credential manager backend.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: config)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: config)")
    serve_parser.add_argument(
        "--memory", action="store_true", help="Use an in-memory store (data is lost on exit)"
    )

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Database migrations")
    migrate_parser.add_argument(
        "action", nargs="?", choices=["status", "apply"], default="status", help="What to do"
    )
    migrate_parser.add_argument("target", nargs="?", default=None, help="Only this version")
    migrate_parser.add_argument("--dry-run", action="store_true", help="List without applying")

    # init
    init_parser = subparsers.add_parser("init", help="Bootstrap the first super admin")
    init_parser.add_argument("--email", required=True, help="Super admin email")
    init_parser.add_argument("--password", default=None, help="Password (generated if omitted)")
    init_parser.add_argument("--name", default="Super Admin", help="Display name")

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from tenantvault import __version__

        print(f"tenantvault {__version__}")
        return 0

    _configure_logging(get_config().log_level)

    if args.command == "serve":
        return _cmd_serve(args)
    elif args.command == "migrate":
        return _cmd_migrate(args)
    elif args.command == "init":
        return _cmd_init(args)
    else:
        parser.print_help()
        return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is required. Install with: pip install tenantvault")
        return 1

    from tenantvault.api.app import create_app

    cfg = get_config()
    services = None
    if args.memory:
        from tenantvault.services import build_services
        from tenantvault.store.memory import MemoryStore

        services = build_services(MemoryStore(), cfg)
        print("Using in-memory store; nothing will be persisted.")

    host = args.host or cfg.api.host
    port = args.port or cfg.api.port
    print(f"Starting tenantvault API on {host}:{port}...")
    uvicorn.run(create_app(services=services, config=cfg), host=host, port=port)
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    from tenantvault.db import Database
    from tenantvault.db.migrate import apply, status
    from tenantvault.errors import StoreError

    db = Database(get_config().db)
    try:
        if args.action == "apply":
            done = apply(db, version=args.target, dry_run=args.dry_run)
            if not done:
                print("Nothing to apply.")
            elif args.dry_run:
                print(f"Would apply {len(done)} migration(s): {', '.join(done)}")
            else:
                print(f"Applied {len(done)} migration(s): {', '.join(done)}")
            return 0

        rows = status(db)
        if not rows:
            print("No migration files found.")
            return 0
        for r in rows:
            at = str(r["applied_at"])[:19] if r["applied_at"] else ""
            print(f"{r['version']:<10} {r['filename']:<40} {r['status']:<10} {at}")
        return 0
    except StoreError:
        print("Error: cannot reach PostgreSQL. Check TENANTVAULT_DB_* environment variables.")
        return 1
    finally:
        db.close()


def _cmd_init(args: argparse.Namespace) -> int:
    import psycopg2

    from tenantvault.crypto import generate_password
    from tenantvault.db import Database
    from tenantvault.db.migrate import apply
    from tenantvault.errors import TenantVaultError
    from tenantvault.services import build_services
    from tenantvault.store.postgres import PostgresStore

    cfg = get_config()
    password = args.password or generate_password()
    db = Database(cfg.db)
    store = PostgresStore(db)
    try:
        applied = apply(db)
        if applied:
            print(f"Applied {len(applied)} migration(s): {', '.join(applied)}")
        user, created = build_services(store, cfg).users.bootstrap_super_admin(
            args.email, password, args.name
        )
    except TenantVaultError as e:
        print(f"Error: {e.message}")
        return 1
    except psycopg2.Error as e:
        print(f"Error: migration failed ({type(e).__name__})")
        return 1
    finally:
        store.close()

    if not created:
        print(f"Super admin already exists: {user.email}")
        return 0
    print(f"Created super admin {user.email} (id {user.id})")
    if not args.password:
        print(f"Generated password: {password}")
    return 0
