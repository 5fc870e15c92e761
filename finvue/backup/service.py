"""
Backup Service

Serializes every collection into one JSON document and restores it.

DESIGN DECISION: Import is all or nothing. The payload is validated in
full before the store is touched; a payload with any schema error is
rejected with InvalidBackupFormat and the current data stays as it was.
A valid import replaces the store's contents in one atomic step.
"""

import json
from typing import Any, Optional, Union
from uuid import UUID

from finvue.audit import AuditLogger, create_correlation_id
from finvue.models.backup import BackupDocument
from finvue.models.entities import EntityKind
from finvue.models.results import ValidationIssue, ValidationResult
from finvue.services.storage import EntityStoreInterface
from finvue.validation import BackupValidator


class InvalidBackupFormat(Exception):
    """The backup payload is malformed or missing required keys."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []


class BackupService:
    """Export and import of the whole store."""

    def __init__(
        self,
        store: EntityStoreInterface,
        validator: Optional[BackupValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        version: str = "1.0",
    ):
        self._store = store
        self._validator = validator or BackupValidator()
        self._audit_logger = audit_logger
        self._version = version

    async def export_document(self) -> BackupDocument:
        """Read every collection into a BackupDocument."""
        collections = {
            kind.value: await self._store.get_all(kind)
            for kind in EntityKind
            if not kind.is_singleton
        }
        document = BackupDocument(
            version=self._version,
            profile=await self._store.get_profile(),
            settings=await self._store.get_settings(),
            **collections,
        )

        if self._audit_logger:
            await self._audit_logger.log_backup_exported(
                record_counts=self._record_counts(document),
            )

        return document

    async def export_json(self, indent: Optional[int] = 2) -> str:
        """The backup document as a JSON string."""
        document = await self.export_document()
        return json.dumps(document.to_payload(), indent=indent)

    async def import_payload(
        self,
        payload: Union[dict[str, Any], str, bytes],
        correlation_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Replace the store's contents with a backup.

        Args:
            payload: Parsed JSON object, or raw JSON text

        Returns:
            The validation result (may carry warnings)

        Raises:
            InvalidBackupFormat: If the payload fails validation;
                                 nothing is written in that case
            StorageUnavailable: If the store write fails; nothing is changed
        """
        correlation_id = correlation_id or create_correlation_id()

        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                await self._reject([ValidationIssue(
                    field="$",
                    issue_type="invalid_format",
                    message=f"Backup is not valid JSON: {e}",
                    severity="error",
                )], correlation_id)

        document, result = self._validator.validate(payload)
        if document is None or result.has_errors:
            await self._reject(result.issues, correlation_id)

        await self._store.replace_all(document.records())

        if self._audit_logger:
            await self._audit_logger.log_backup_imported(
                record_counts=self._record_counts(document),
                warnings=len(result.warnings),
                correlation_id=correlation_id,
            )

        return result

    async def _reject(
        self,
        issues: list[ValidationIssue],
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_backup_rejected(
                issues=[issue.model_dump() for issue in issues],
                correlation_id=correlation_id,
            )
        errors = [issue for issue in issues if issue.severity == "error"]
        summary = "; ".join(f"{issue.field}: {issue.message}" for issue in errors[:5])
        raise InvalidBackupFormat(f"Invalid backup: {summary}", issues)

    @staticmethod
    def _record_counts(document: BackupDocument) -> dict[str, int]:
        counts = {
            kind.value: len(getattr(document, kind.value))
            for kind in EntityKind
            if not kind.is_singleton
        }
        counts[EntityKind.PROFILE.value] = int(document.profile is not None)
        counts[EntityKind.SETTINGS.value] = int(document.settings is not None)
        return counts
