"""
Two-Stage Backup Validation

DESIGN DECISION: A backup payload is validated in two distinct stages
before a single record is written:

STAGE 1 - SCHEMA VALIDATION:
- Payload is a JSON object
- Every collection key is present
- Collections are lists, singletons are objects or null
- Every record parses into its model
Any failure here rejects the whole import.

STAGE 2 - SEMANTIC VALIDATION:
- Duplicate ids within a collection (error: records would collapse)
- Transactions owned by accounts missing from the backup (warning)
- Goal links to accounts missing from the backup (warning)

IMPORTANT: Validation never fixes anything. Dangling references are
reported here and pruned later by the integrity manager's repair pass.
"""

from collections import Counter
from typing import Any, Optional

from pydantic import ValidationError

from finvue.models.backup import REQUIRED_KEYS, BackupDocument
from finvue.models.entities import EntityKind
from finvue.models.results import ValidationIssue, ValidationResult


class BackupValidator:
    """
    Validates backup payloads through a two-stage pipeline.

    Stage 2 only runs when stage 1 produced a document.
    """

    def _validate_schema(
        self,
        payload: Any,
    ) -> tuple[Optional[BackupDocument], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (document_or_None, list_of_issues)
        """
        issues = []

        if not isinstance(payload, dict):
            issues.append(ValidationIssue(
                field="$",
                issue_type="invalid_format",
                message="Backup must be a JSON object",
                severity="error",
            ))
            return None, issues

        for key in REQUIRED_KEYS:
            if key not in payload:
                issues.append(ValidationIssue(
                    field=key,
                    issue_type="missing",
                    message=f"Required key '{key}' is missing",
                    severity="error",
                ))
                continue

            value = payload[key]
            if EntityKind(key).is_singleton:
                if value is not None and not isinstance(value, dict):
                    issues.append(ValidationIssue(
                        field=key,
                        issue_type="invalid_format",
                        message=f"'{key}' must be an object or null",
                        severity="error",
                    ))
            elif not isinstance(value, list):
                issues.append(ValidationIssue(
                    field=key,
                    issue_type="invalid_format",
                    message=f"'{key}' must be a list",
                    severity="error",
                ))

        if issues:
            return None, issues

        try:
            document = BackupDocument.model_validate(payload)
        except ValidationError as e:
            for error in e.errors():
                location = ".".join(str(part) for part in error["loc"])
                issues.append(ValidationIssue(
                    field=location or "$",
                    issue_type="invalid_record",
                    message=error["msg"],
                    severity="error",
                ))
            return None, issues

        return document, issues

    def _validate_semantics(
        self,
        document: BackupDocument,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Unique ids per collection
        - Transactions reference known accounts
        - Goals link known accounts
        """
        issues = []

        for kind in EntityKind:
            if kind.is_singleton:
                continue
            counts = Counter(record.id for record in getattr(document, kind.value))
            for record_id, count in counts.items():
                if count > 1:
                    issues.append(ValidationIssue(
                        field=kind.value,
                        issue_type="duplicate_id",
                        message=f"Id '{record_id}' appears {count} times in '{kind.value}'",
                        severity="error",
                    ))

        account_ids = {account.id for account in document.portfolios}

        for index, transaction in enumerate(document.transactions):
            if transaction.account_id not in account_ids:
                issues.append(ValidationIssue(
                    field=f"transactions[{index}].account_id",
                    issue_type="orphaned_reference",
                    message=f"Transaction '{transaction.id}' belongs to unknown account '{transaction.account_id}'",
                    severity="warning",
                ))

        for index, goal in enumerate(document.goals):
            for account_id in goal.linked_account_ids:
                if account_id not in account_ids:
                    issues.append(ValidationIssue(
                        field=f"goals[{index}].linked_account_ids",
                        issue_type="orphaned_reference",
                        message=f"Goal '{goal.id}' links unknown account '{account_id}'",
                        severity="warning",
                    ))

        return issues

    def validate(
        self,
        payload: Any,
    ) -> tuple[Optional[BackupDocument], ValidationResult]:
        """
        Run both stages.

        Returns the parsed document (None when stage 1 failed) and the
        combined result.
        """
        document, schema_issues = self._validate_schema(payload)
        if document is None:
            return None, ValidationResult(
                schema_valid=False,
                semantic_valid=False,
                issues=schema_issues,
            )

        semantic_issues = self._validate_semantics(document)
        semantic_valid = not any(issue.severity == "error" for issue in semantic_issues)

        return document, ValidationResult(
            schema_valid=True,
            semantic_valid=semantic_valid,
            issues=schema_issues + semantic_issues,
        )
