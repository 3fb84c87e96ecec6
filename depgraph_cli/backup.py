"""Snapshots of the source tree taken before in-place rewrites.

Each backup lives in ``<project>/.backup/backup-<timestamp>/`` and mirrors
the project layout, with a ``backup-metadata.json`` describing it.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from . import __version__, config
from .config_manager import Settings
from .errors import BackupError
from .models import BackupMetadata, RestoreResult
from .scanner import scan

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup-"


def current_git_commit(cwd: Path) -> Optional[str]:
    """HEAD commit of the repository containing *cwd*, if there is one."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("No git commit for %s: %s", cwd, exc)
        return None
    return result.stdout.strip() or None


class BackupManager:
    """Create, list, restore and delete project snapshots."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.project_root = Path(os.path.abspath(self.settings.project_root))
        self.backup_dir = self.project_root / config.BACKUP_DIR_NAME

    def files_to_backup(self) -> List[Path]:
        """Source tree files plus known project-root config files."""
        files: List[Path] = []
        src_root = Path(self.settings.src_root)
        if src_root.is_dir():
            for path in scan(src_root, self.settings.exclude_dirs, config.BACKUP_EXTENSIONS):
                if self._relative(path) is None:
                    logger.warning("Not backing up %s: outside %s", path, self.project_root)
                    continue
                files.append(path)
        for name in config.BACKUP_ROOT_FILES:
            path = self.project_root / name
            if path.is_file():
                files.append(path)
        return files

    def _relative(self, path: Path) -> Optional[str]:
        rel = os.path.relpath(os.path.abspath(path), self.project_root)
        if rel == os.pardir or rel.startswith(os.pardir + os.sep) or os.path.isabs(rel):
            return None
        return Path(rel).as_posix()

    def _path_for(self, backup_id: str) -> Path:
        if not backup_id.startswith(BACKUP_PREFIX) or "/" in backup_id or os.sep in backup_id:
            raise BackupError(f"Invalid backup id '{backup_id}'")
        return self.backup_dir / backup_id

    def create(self, description: str = "Manual backup") -> BackupMetadata:
        now = datetime.now(timezone.utc)
        backup_id = BACKUP_PREFIX + now.strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        target = self.backup_dir / backup_id
        try:
            target.mkdir(parents=True)
        except OSError as exc:
            raise BackupError(f"Cannot create backup directory {target}: {exc}") from exc

        copied: List[str] = []
        for path in self.files_to_backup():
            rel = self._relative(path)
            destination = target / rel
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(path, destination)
            except OSError as exc:
                logger.warning("Could not back up %s: %s", path, exc)
                continue
            copied.append(rel)

        metadata = BackupMetadata(
            backup_id=backup_id,
            timestamp=now.isoformat(),
            version=__version__,
            description=description,
            files=copied,
            git_commit=current_git_commit(self.project_root),
        )
        try:
            (target / config.BACKUP_METADATA).write_text(
                json.dumps(metadata.to_dict(), indent=2), encoding="utf-8",
            )
        except OSError as exc:
            raise BackupError(f"Cannot write backup metadata in {target}: {exc}") from exc

        logger.info("Created %s with %d files", backup_id, len(copied))
        return metadata

    def list_backups(self) -> List[BackupMetadata]:
        """Available backups, newest first."""
        backups: List[BackupMetadata] = []
        if not self.backup_dir.is_dir():
            return backups
        for entry in sorted(self.backup_dir.iterdir()):
            if not entry.is_dir() or not entry.name.startswith(BACKUP_PREFIX):
                continue
            metadata_file = entry / config.BACKUP_METADATA
            if not metadata_file.is_file():
                continue
            try:
                data = json.loads(metadata_file.read_text(encoding="utf-8"))
                backups.append(BackupMetadata.from_dict(data))
            except (OSError, ValueError, KeyError, TypeError) as exc:
                logger.warning("Ignoring unreadable backup metadata %s: %s", metadata_file, exc)
        backups.sort(key=lambda b: b.timestamp, reverse=True)
        return backups

    def get(self, backup_id: Optional[str] = None) -> BackupMetadata:
        """The backup named *backup_id*, or the newest one."""
        if backup_id is not None:
            self._path_for(backup_id)
        backups = self.list_backups()
        if not backups:
            raise BackupError(f"No backups found in {self.backup_dir}")
        if backup_id is None:
            return backups[0]
        for backup in backups:
            if backup.backup_id == backup_id:
                return backup
        raise BackupError(f"Backup not found: {backup_id}")

    def restore(self, backup_id: Optional[str] = None, dry_run: bool = False) -> RestoreResult:
        """Copy the files of a backup back into the project.

        With ``dry_run`` the files that would be restored are listed and
        nothing is copied.
        """
        metadata = self.get(backup_id)
        source_dir = self._path_for(metadata.backup_id)
        result = RestoreResult(backup_id=metadata.backup_id, dry_run=dry_run)

        for rel in metadata.files:
            source = source_dir / rel
            destination = self.project_root / rel
            if self._relative(destination) is None or not source.is_file():
                logger.warning("Backup file missing or outside the project: %s", rel)
                result.failed.append(rel)
                continue
            if dry_run:
                result.restored.append(rel)
                continue
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, destination)
            except OSError as exc:
                logger.warning("Could not restore %s: %s", rel, exc)
                result.failed.append(rel)
                continue
            result.restored.append(rel)

        logger.info(
            "%s %d files from %s (%d failed)",
            "Would restore" if dry_run else "Restored",
            len(result.restored), metadata.backup_id, len(result.failed),
        )
        return result

    def delete(self, backup_id: str) -> None:
        target = self._path_for(backup_id)
        if not target.is_dir():
            raise BackupError(f"Backup not found: {backup_id}")
        try:
            shutil.rmtree(target)
        except OSError as exc:
            raise BackupError(f"Cannot delete {backup_id}: {exc}") from exc
        logger.info("Deleted %s", backup_id)
