"""
Schema migrations for ``tenantvault/db/migrations/*.sql``.

Each file is applied in its own transaction together with its ledger row in
``schema_migrations``; the file's SHA-256 is stored so later edits to an
applied file show up as ``drift`` in the status listing.

Usage:
    tenantvault migrate                 # status
    tenantvault migrate apply           # apply everything pending
    tenantvault migrate apply 002       # only version 002
    tenantvault migrate apply --dry-run
"""

from __future__ import annotations

import hashlib
import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path

from psycopg2.extras import RealDictCursor

from tenantvault.db.connection import Database

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# 001_initial_schema.sql, 004b_backfill.sql
_FILENAME_RE = re.compile(r"^(?P<version>\d+[a-z]?)_[\w-]+\.sql$")

_LEDGER_DDL = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version     TEXT PRIMARY KEY,
        filename    TEXT NOT NULL,
        checksum    TEXT,
        applied_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


@dataclass(frozen=True)
class Migration:
    version: str
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.path.read_bytes()).hexdigest()


def discover(migrations_dir: Path | None = None) -> list[Migration]:
    """Migration files in version order; anything not named ``NNN_name.sql`` is skipped."""
    found = []
    for path in (migrations_dir or MIGRATIONS_DIR).glob("*.sql"):
        match = _FILENAME_RE.match(path.name)
        if match:
            found.append(Migration(match["version"], path))
    return sorted(found, key=lambda m: m.version)


def _ledger(db: Database) -> dict[str, dict]:
    with db.connection() as conn:
        cur = conn.cursor(cursor_factory=RealDictCursor)
        cur.execute(_LEDGER_DDL)
        cur.execute("SELECT version, filename, checksum, applied_at FROM schema_migrations")
        return {row["version"]: dict(row) for row in cur.fetchall()}


def status(db: Database, migrations_dir: Path | None = None) -> list[dict]:
    """One row per migration file: version, filename, status (applied/pending/drift), applied_at."""
    ledger = _ledger(db)
    rows = []
    for migration in discover(migrations_dir):
        entry = ledger.get(migration.version)
        if entry is None:
            state, applied_at = "pending", None
        else:
            recorded = entry.get("checksum")
            state = "drift" if recorded and recorded != migration.checksum else "applied"
            applied_at = entry["applied_at"]
        rows.append(
            {
                "version": migration.version,
                "filename": migration.filename,
                "status": state,
                "applied_at": applied_at,
            }
        )
    return rows


def apply(
    db: Database,
    version: str | None = None,
    dry_run: bool = False,
    migrations_dir: Path | None = None,
) -> list[str]:
    """Apply pending migrations (or just ``version``). Returns the versions handled."""
    ledger = _ledger(db)
    pending = [
        m
        for m in discover(migrations_dir)
        if m.version not in ledger and (version is None or m.version == version)
    ]
    if not pending:
        logger.info("Schema is up to date")
        return []
    if dry_run:
        for m in pending:
            logger.info("[dry-run] would apply %s", m.filename)
        return [m.version for m in pending]

    done: list[str] = []
    for m in pending:
        try:
            with db.connection() as conn:
                cur = conn.cursor()
                cur.execute(m.path.read_text())
                cur.execute(
                    "INSERT INTO schema_migrations (version, filename, checksum) VALUES (%s, %s, %s)",
                    (m.version, m.filename, m.checksum),
                )
        except Exception:
            logger.error("Migration %s failed; %d earlier file(s) stay applied", m.filename, len(done))
            raise
        logger.info("Applied migration %s", m.filename)
        done.append(m.version)
    return done


if __name__ == "__main__":
    from tenantvault.cli import main

    sys.exit(main(["migrate", *sys.argv[1:]]))
