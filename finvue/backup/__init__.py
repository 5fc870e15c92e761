"""Backup and restore package."""

from finvue.backup.service import BackupService, InvalidBackupFormat

__all__ = ["BackupService", "InvalidBackupFormat"]
