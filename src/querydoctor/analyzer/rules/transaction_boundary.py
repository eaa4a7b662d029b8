"""
Rule: Transaction Boundaries

Follows BEGIN / COMMIT / ROLLBACK through the trace and reports:

- transaction_nested: BEGIN while a transaction is already open. Most
  platforms either reject it or silently commit the outer transaction.
- transaction_multiple_flush: a transaction holding more write statements
  than max_writes_per_transaction, the shape several flush() calls inside
  one transaction leave behind.
- transaction_unclosed: the trace ends with a transaction still open.
- transaction_too_long: a committed transaction whose statements took
  longer than max_duration_ms in total; locks are held for all of it.

Each transaction is numbered in BEGIN order and reported with subject
"tx:<n>", so problems of two different transactions never merge.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from pydantic import Field

from querydoctor.analyzer.collections import IssueCollection, QueryTrace
from querydoctor.analyzer.models import Issue, IssueCategory, QueryRecord
from querydoctor.analyzer.registry import register_rule
from querydoctor.analyzer.rules.base import Rule, RuleConfig


class TransactionBoundaryConfig(RuleConfig):
    max_writes_per_transaction: int = Field(
        default=1,
        ge=1,
        description="Write statements one transaction may hold before it is reported",
    )
    max_duration_ms: float = Field(
        default=1000.0,
        gt=0,
        description="Total statement time of a committed transaction",
    )


def is_begin(sql: str) -> bool:
    statement = sql.strip().upper()
    return (
        statement.startswith("START TRANSACTION")
        or statement.startswith("BEGIN")
        or "BEGIN TRANSACTION" in statement
    )


def is_commit(sql: str) -> bool:
    return sql.strip().upper().startswith("COMMIT")


def is_rollback(sql: str) -> bool:
    return sql.strip().upper().startswith("ROLLBACK")


@dataclass
class _Transaction:
    ordinal: int
    records: list[QueryRecord] = field(default_factory=list)
    writes: list[QueryRecord] = field(default_factory=list)

    @property
    def subject(self) -> str:
        return f"tx:{self.ordinal}"

    @property
    def duration_ms(self) -> float:
        return sum(r.execution_ms for r in self.records)


@register_rule
class TransactionBoundary(Rule):
    """Report nested, unclosed, overlong and write-heavy transactions."""

    rule_id = "transaction_boundary"
    version = "1.0.0"
    category = IssueCategory.INTEGRITY
    description = "Detects transaction boundary problems"
    config_schema = TransactionBoundaryConfig

    def analyze(self, trace: QueryTrace) -> IssueCollection:
        return IssueCollection.from_generator(self._iter_issues(trace))

    def _iter_issues(self, trace: QueryTrace) -> Iterator[Issue]:
        open_transactions: list[_Transaction] = []
        ordinal = 0

        for record in trace:
            sql = record.sql
            if is_begin(sql):
                ordinal += 1
                transaction = _Transaction(ordinal, records=[record])
                if open_transactions:
                    yield self._nested(transaction, depth=len(open_transactions) + 1)
                open_transactions.append(transaction)
                continue

            if not open_transactions:
                continue
            current = open_transactions[-1]
            current.records.append(record)

            if is_commit(sql) or is_rollback(sql):
                open_transactions.pop()
                yield from self._closed(current, committed=is_commit(sql))
            elif record.is_insert or record.is_update or record.is_delete:
                current.writes.append(record)

        for transaction in open_transactions:
            yield self._issue(
                "unclosed",
                title="Transaction Never Closed",
                description=(
                    f"Transaction {transaction.ordinal} was started but never committed "
                    f"or rolled back. Its changes are lost and its locks held until the "
                    f"connection closes."
                ),
                transaction=transaction,
                queries=transaction.records,
                metrics={"queries": len(transaction.records)},
            )

    def _closed(self, transaction: _Transaction, committed: bool) -> Iterator[Issue]:
        config: TransactionBoundaryConfig = self.config  # type: ignore[assignment]
        write_count = len(transaction.writes)
        if write_count > config.max_writes_per_transaction:
            yield self._issue(
                "multiple_flush",
                title=f"Multiple Flushes In Transaction ({write_count} writes)",
                description=(
                    f"Transaction {transaction.ordinal} executed {write_count} write "
                    f"statements (threshold: {config.max_writes_per_transaction}). Several "
                    f"flush() calls inside one transaction make partial failures harder "
                    f"to reason about. Flush once at the end of the unit of work."
                ),
                transaction=transaction,
                queries=transaction.writes,
                metrics={"writes": write_count},
            )

        duration = transaction.duration_ms
        if committed and duration > config.max_duration_ms:
            yield self._issue(
                "too_long",
                title=f"Long Transaction ({duration:.0f}ms)",
                description=(
                    f"Transaction {transaction.ordinal} ran for {duration:.0f}ms "
                    f"(threshold: {config.max_duration_ms:.0f}ms). Locks are held for "
                    f"the whole duration. Move slow reads out of the transaction."
                ),
                transaction=transaction,
                queries=transaction.records,
                metrics={"duration_ms": round(duration, 3)},
            )

    def _nested(self, transaction: _Transaction, depth: int) -> Issue:
        return self._issue(
            "nested",
            title=f"Nested Transaction Detected (Depth: {depth})",
            description=(
                f"Transaction {transaction.ordinal} was started while another transaction "
                f"was open. Use savepoints or let the outer transaction own the boundary."
            ),
            transaction=transaction,
            queries=transaction.records,
            metrics={"depth": depth},
        )

    def _issue(
        self,
        problem: str,
        *,
        title: str,
        description: str,
        transaction: _Transaction,
        queries: list[QueryRecord],
        metrics: dict[str, int | float],
    ) -> Issue:
        return self.make_issue(
            title=title,
            description=description,
            severity=self.severity.for_transaction_boundary(problem),
            queries=queries,
            template_key=f"Integrity/transaction_{problem}",
            context={"transaction": transaction.ordinal, **metrics},
            metrics=metrics,
            subject=transaction.subject,
            issue_type=f"transaction_{problem}",
        )
