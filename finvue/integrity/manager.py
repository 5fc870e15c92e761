"""
Referential Integrity Manager

DESIGN DECISION: Cross-entity rules live here and nowhere else:
- An Account exclusively owns its Transactions (cascade delete)
- A Goal holds weak references to Accounts (prune on delete)

ORDERING: children are handled before the Account record is removed.
If the process dies halfway, the only possible leftovers are
Transactions or Goal links pointing at an Account that no longer
exists. `repair()` removes exactly those on the next full re-scan;
no other account is ever touched.

Orphaned references are never surfaced as errors.
"""

from typing import Optional
from uuid import UUID

from finvue.audit import AuditLogger, create_correlation_id
from finvue.models.entities import EntityKind, Goal
from finvue.models.results import IntegrityReport
from finvue.services.storage import EntityStoreInterface


class ReferentialIntegrityManager:
    """Applies cascade and unlink rules against the entity store."""

    def __init__(
        self,
        store: EntityStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    async def delete_account(
        self,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> IntegrityReport:
        """
        Delete an account together with everything that depends on it.

        Steps, in order:
        1. Delete every owned Transaction
        2. Remove the id from every Goal that links it (Goals survive,
           even with an empty link list)
        3. Delete the Account record

        Safe to retry: every step is idempotent by id.
        """
        correlation_id = correlation_id or create_correlation_id()
        report = IntegrityReport(account_id=account_id)

        # 1. Owned transactions
        for transaction in await self._store.get_by_account(account_id):
            await self._store.delete(EntityKind.TRANSACTION, transaction.id)
            report.transactions_deleted.append(transaction.id)

        # 2. Weak references
        for goal in await self._store.get_all(EntityKind.GOAL):
            if goal.links(account_id):
                await self._unlink(goal, {account_id}, correlation_id)
                report.goals_updated.append(goal.id)

        # 3. The account itself
        await self._store.delete(EntityKind.ACCOUNT, account_id)

        if self._audit_logger:
            await self._audit_logger.log_account_deleted(
                account_id=account_id,
                transactions_deleted=len(report.transactions_deleted),
                goals_updated=len(report.goals_updated),
                correlation_id=correlation_id,
            )

        return report

    async def repair(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> IntegrityReport:
        """
        Full re-scan that removes references to missing accounts.

        Deletes Transactions whose owner is gone and prunes dangling
        Goal links. Returns what was changed.
        """
        correlation_id = correlation_id or create_correlation_id()
        report = IntegrityReport()

        account_ids = {a.id for a in await self._store.get_all(EntityKind.ACCOUNT)}

        for transaction in await self._store.get_all(EntityKind.TRANSACTION):
            if transaction.account_id not in account_ids:
                await self._store.delete(EntityKind.TRANSACTION, transaction.id)
                report.transactions_deleted.append(transaction.id)

        for goal in await self._store.get_all(EntityKind.GOAL):
            dangling = set(goal.linked_account_ids) - account_ids
            if dangling:
                await self._unlink(goal, dangling, correlation_id)
                report.goals_updated.append(goal.id)

        if report.changed and self._audit_logger:
            await self._audit_logger.log_orphans_repaired(
                transactions_deleted=report.transactions_deleted,
                goals_updated=report.goals_updated,
                correlation_id=correlation_id,
            )

        return report

    async def _unlink(
        self,
        goal: Goal,
        account_ids: set[str],
        correlation_id: UUID,
    ) -> None:
        """Persist the goal without the given account links."""
        goal.linked_account_ids = [
            linked for linked in goal.linked_account_ids if linked not in account_ids
        ]
        goal.touch()
        await self._store.put(goal)

        if self._audit_logger:
            for account_id in sorted(account_ids):
                await self._audit_logger.log_goal_link_pruned(
                    goal_id=goal.id,
                    account_id=account_id,
                    correlation_id=correlation_id,
                )
