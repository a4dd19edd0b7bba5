"""Database backup gateway.

Provides:
- BackupGateway: Protocol the account destruction workflow calls
- backup_locator: derive the locator (file name) returned to callers
- JsonExportBackup: default gateway writing a JSON export of every table

A backup is taken before a destructive workflow opens its transaction and
is never rolled back: it is the operator's recovery path if the workflow
fails or turns out to be wrong.
"""

import json
from datetime import UTC, datetime
from pathlib import Path, PurePath
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from quill.db.models import Base
from quill.errors import BackupError
from quill.logging import get_logger

logger = get_logger(__name__)

EXPORT_VERSION = "1.0"


class BackupGateway(Protocol):
    """Protocol for point-in-time store snapshots."""

    def backup(self) -> str:
        """Write a snapshot and return its file path.

        Raises:
            BackupError: The snapshot could not be written.
        """
        ...


def backup_locator(backup_path: str) -> str:
    """Return the base name (name + extension) of a backup file path."""
    parsed = PurePath(backup_path)
    return f"{parsed.stem}{parsed.suffix}"


class JsonExportBackup:
    """Export every table to a timestamped JSON file.

    Reads through its own session so the export never joins a workflow's
    transaction.
    """

    def __init__(self, engine: Engine, backup_dir: str | Path, site_slug: str = "quill"):
        self.engine = engine
        self.backup_dir = Path(backup_dir)
        self.site_slug = site_slug

    def _export(self) -> dict[str, Any]:
        data: dict[str, list[dict[str, Any]]] = {}
        with Session(self.engine) as session:
            for table in Base.metadata.sorted_tables:
                rows = session.execute(select(table)).mappings().all()
                data[table.name] = [dict(row) for row in rows]
        return {
            "meta": {
                "exported_on": int(datetime.now(UTC).timestamp() * 1000),
                "version": EXPORT_VERSION,
            },
            "data": data,
        }

    def backup(self) -> str:
        """Write the export and return its path."""
        stamp = datetime.now(UTC).strftime("%Y-%m-%d-%H-%M-%S-%f")
        path = self.backup_dir / f"{self.site_slug}.quill.{stamp}.json"

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(self._export(), default=str)
            path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            logger.error("backup_write_failed", path=str(path), error=str(exc))
            raise BackupError(f"Could not write backup to {path}") from exc

        logger.info("backup_written", path=str(path))
        return str(path)
