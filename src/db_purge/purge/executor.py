"""Transactional execution of a deletion plan.

Runs every step of a ``DeletionPlan`` inside one transaction opened on a
``PurgeExecutor``.  Either every step is committed or none is: any failure
rolls the whole transaction back before ``ExecutionError`` is raised.

Usage:
    from db_purge.purge.executor import apply_plan, execute_plan

    # Raises ExecutionError on failure (already rolled back)
    await execute_plan(plan, executor)

    # Or with dry-run/confirm guards and a result object
    result = await apply_plan(executor, plan, dry_run=False, confirm=True)
"""

import logging
from typing import TYPE_CHECKING

from db_purge.purge.models import DeletionPlan, GroupStep, PurgeResult, Step

if TYPE_CHECKING:
    from db_purge.adapters.base import PurgeExecutor

logger = logging.getLogger(__name__)


class ExecutionError(Exception):
    """Raised when the transactional deletion fails.

    The transaction has always been rolled back by the time this is raised.

    Attributes:
        failed_step: The step that failed, or ``None`` if the failure was in
            opening or committing the transaction.
        cause: The underlying exception.
    """

    def __init__(self, failed_step: Step | None, cause: BaseException) -> None:
        self.failed_step = failed_step
        self.cause = cause
        if failed_step is None:
            where = "transaction"
        else:
            where = f"step '{failed_step.describe()}'"
        super().__init__(f"Purge failed at {where}: {cause}")


async def _run_step(executor: "PurgeExecutor", step: Step) -> None:
    if isinstance(step, GroupStep):
        logger.info("Clearing group: %s", step.describe())
        await executor.delete_all_rows_group(step.tables)
    else:
        logger.info("Clearing table: %s", step.describe())
        await executor.delete_all_rows(step.table, self_referencing=step.self_referencing)


async def _rollback(executor: "PurgeExecutor") -> None:
    logger.warning("Rolling back purge transaction")
    try:
        await executor.rollback()
    except Exception:
        logger.exception("Rollback failed")


async def execute_plan(plan: DeletionPlan, executor: "PurgeExecutor") -> None:
    """Execute a deletion plan in a single transaction.

    Opens a transaction, runs each step in order (``delete_all_rows`` for a
    ``SingleStep``, ``delete_all_rows_group`` for a ``GroupStep``) and
    commits.  On any failure the remaining steps are skipped, the
    transaction is rolled back once and commit is never called.

    A plan without steps opens no transaction.

    Args:
        plan: Plan from ``plan_deletion()``.
        executor: Transactional executor implementing ``PurgeExecutor``.

    Raises:
        ExecutionError: If any step (or begin/commit) failed.  The store is
            left in its pre-invocation state.
    """
    if not plan.has_steps:
        logger.info("Nothing to clear")
        return

    try:
        await executor.begin()
    except Exception as e:
        raise ExecutionError(None, e) from e

    current: Step | None = None
    try:
        for current in plan.steps:
            await _run_step(executor, current)
        current = None
        await executor.commit()
    except Exception as e:
        await _rollback(executor)
        raise ExecutionError(current, e) from e

    logger.info("Purge committed: %d steps, %d tables", plan.step_count, len(plan.tables))


# Name used by callers that think in plan/run pairs
run_plan = execute_plan


async def apply_plan(
    executor: "PurgeExecutor",
    plan: DeletionPlan,
    dry_run: bool = True,
    confirm: bool = False,
) -> PurgeResult:
    """Apply a deletion plan with dry-run and confirmation guards.

    Args:
        executor: Transactional executor implementing ``PurgeExecutor``.
        plan: Plan from ``plan_deletion()``.
        dry_run: If True, only report what would be done without executing.
        confirm: Must be True to actually delete (safety guard).

    Returns:
        ``PurgeResult`` with outcome.  Execution failures are reported in
        ``error``/``failed_step`` rather than raised.

    Example:
        result = await apply_plan(executor, plan, dry_run=False, confirm=True)
        if result.success:
            print(f"Cleared {result.tables_cleared} tables")
    """
    result = PurgeResult()

    if not plan.has_steps:
        result.success = True
        return result

    if dry_run:
        result.success = True
        result.steps_applied = plan.step_count
        result.tables_cleared = len(plan.tables)
        return result

    if not confirm:
        result.error = "Purge requires confirm=True"
        return result

    try:
        await execute_plan(plan, executor)
    except ExecutionError as e:
        result.error = str(e.cause)
        if e.failed_step is not None:
            result.failed_step = e.failed_step.describe()
        return result

    result.success = True
    result.steps_applied = plan.step_count
    result.tables_cleared = len(plan.tables)
    return result
