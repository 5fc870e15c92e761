"""Backup validation package."""

from finvue.validation.validator import BackupValidator

__all__ = ["BackupValidator"]
