"""Data Access Layer for budgets, groups, the spend ledger and alert records.

Responsibilities
----------------
- Read budgets, groups and memberships, and resolve who to notify for a budget.
- Aggregate completed expenses per scope filter within a period.
- Persist alert attempts and answer the "already sent this period" question.
- Hold the (budget, threshold, period) claim used to serialise concurrent checks.

Every method opens its own short-lived connection so concurrent checks for
different budgets never share state.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
import sqlite3
from typing import Any, Dict, Iterator, List, Optional

from spendwatch.models import (
    AlertStatus,
    Budget,
    BudgetScope,
    ByGroup,
    ByIndividual,
    Channel,
    MemberRole,
    Recipient,
    ScopeFilter,
)
from spendwatch.services.period import to_sql_ts

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"
_UNSET = object()


class Database:
    def __init__(self, db_path: Path, busy_timeout: float = 5.0):
        self.db_path = db_path
        self.busy_timeout = busy_timeout

    # ------------------------------------------------------------------
    # Connection helpers
    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Users
    def create_user(
        self, name: str, email: Optional[str] = None, phone_number: Optional[str] = None
    ) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO users (name, email, phone_number) VALUES (?, ?, ?)",
                (name, email, phone_number),
            )
            return int(cur.lastrowid)

    def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return dict(row) if row else None

    # ------------------------------------------------------------------
    # Groups & membership
    def create_group(self, name: str, owner_id: int, monthly_limit: int = 0) -> int:
        """Create a group with `owner_id` as its first (OWNER) member."""
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO groups (name, monthly_limit) VALUES (?, ?)",
                (name, monthly_limit),
            )
            group_id = int(cur.lastrowid)
            conn.execute(
                "INSERT INTO group_members (group_id, user_id, role) VALUES (?, ?, ?)",
                (group_id, owner_id, MemberRole.OWNER.value),
            )
            return group_id

    def add_group_member(
        self, group_id: int, user_id: int, role: MemberRole = MemberRole.MEMBER
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO group_members (group_id, user_id, role)
                VALUES (?, ?, ?)
                ON CONFLICT(group_id, user_id) DO NOTHING
                """,
                (group_id, user_id, MemberRole(role).value),
            )

    def remove_group_member(self, group_id: int, user_id: int) -> None:
        with self._connect() as conn:
            count = conn.execute(
                "SELECT COUNT(*) FROM group_members WHERE group_id = ?", (group_id,)
            ).fetchone()[0]
            if count <= 1:
                raise ValueError("group must keep at least one member")
            conn.execute(
                "DELETE FROM group_members WHERE group_id = ? AND user_id = ?",
                (group_id, user_id),
            )

    def get_group(self, group_id: int) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM groups WHERE id = ?", (group_id,)).fetchone()
            if not row:
                return None
            group = dict(row)
            members = conn.execute(
                """
                SELECT user_id, role, joined_at FROM group_members
                WHERE group_id = ?
                ORDER BY joined_at ASC, user_id ASC
                """,
                (group_id,),
            ).fetchall()
            group["members"] = [dict(m) for m in members]
            return group

    # ------------------------------------------------------------------
    # Budgets
    def create_budget(
        self,
        scope: BudgetScope,
        name: str,
        monthly_limit: int,
        owner_id: Optional[int] = None,
        group_id: Optional[int] = None,
        is_active: bool = True,
    ) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO budgets (scope, owner_id, group_id, monthly_limit, name, is_active)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    BudgetScope(scope).value,
                    owner_id,
                    group_id,
                    monthly_limit,
                    name,
                    1 if is_active else 0,
                ),
            )
            return int(cur.lastrowid)

    def get_budget(self, budget_id: int) -> Optional[Budget]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM budgets WHERE id = ?", (budget_id,)).fetchone()
            return Budget.from_row(dict(row)) if row else None

    def update_budget(
        self,
        budget_id: int,
        monthly_limit: Any = _UNSET,
        name: Any = _UNSET,
        is_active: Any = _UNSET,
    ) -> None:
        assignments: List[str] = []
        params: List[Any] = []
        if monthly_limit is not _UNSET:
            assignments.append("monthly_limit = ?")
            params.append(monthly_limit)
        if name is not _UNSET:
            assignments.append("name = ?")
            params.append(name)
        if is_active is not _UNSET:
            assignments.append("is_active = ?")
            params.append(1 if is_active else 0)
        if not assignments:
            return
        assignments.append(f"updated_at = ({UTC_NOW_SQL})")
        params.append(budget_id)
        with self._connect() as conn:
            cur = conn.execute(
                f"UPDATE budgets SET {', '.join(assignments)} WHERE id = ?", params
            )
            if cur.rowcount == 0:
                raise ValueError("Budget not found")

    def delete_budget(self, budget_id: int) -> bool:
        """Remove a budget together with its alert history and threshold claims."""
        with self._connect() as conn:
            conn.execute("DELETE FROM threshold_claims WHERE budget_id = ?", (budget_id,))
            conn.execute("DELETE FROM alerts WHERE budget_id = ?", (budget_id,))
            cur = conn.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
            return cur.rowcount > 0

    def list_active_budget_ids(self) -> List[int]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id FROM budgets WHERE is_active = 1 ORDER BY id"
            ).fetchall()
            return [int(r[0]) for r in rows]

    def list_budgets_for_user(self, user_id: int) -> List[Budget]:
        """Active budgets the user owns or shares through group membership."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT b.* FROM budgets b
                WHERE b.is_active = 1
                  AND (
                    (b.scope = 'INDIVIDUAL' AND b.owner_id = ?)
                    OR (b.scope = 'GROUP' AND b.group_id IN (
                        SELECT group_id FROM group_members WHERE user_id = ?
                    ))
                  )
                ORDER BY b.scope DESC, b.id ASC
                """,
                (user_id, user_id),
            ).fetchall()
            return [Budget.from_row(dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # Spend ledger
    def insert_transaction(
        self,
        amount: int,
        occurred_at: datetime,
        user_id: Optional[int] = None,
        group_id: Optional[int] = None,
        type: str = "EXPENSE",
        status: str = "COMPLETED",
        description: Optional[str] = None,
    ) -> int:
        """occurred_at must be a datetime; naive values are taken as UTC."""
        if not isinstance(occurred_at, datetime):
            raise TypeError(f"occurred_at must be a datetime, got {occurred_at.__class__.__name__}")
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO transactions (user_id, group_id, type, status, amount, description, occurred_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, group_id, type, status, amount, description, to_sql_ts(occurred_at)),
            )
            return int(cur.lastrowid)

    def sum_completed_expenses(
        self, scope: ScopeFilter, period_start: str, period_end: str
    ) -> int:
        """Sum of COMPLETED EXPENSE amounts (minor units) for the scope, bounds inclusive."""
        if isinstance(scope, ByIndividual):
            column, owner = "user_id", scope.user_id
        elif isinstance(scope, ByGroup):
            column, owner = "group_id", scope.group_id
        else:  # pragma: no cover
            raise TypeError(f"unsupported scope filter {scope!r}")
        with self._connect() as conn:
            row = conn.execute(
                f"""
                SELECT COALESCE(SUM(amount), 0) FROM transactions
                WHERE {column} = ?
                  AND type = 'EXPENSE'
                  AND status = 'COMPLETED'
                  AND occurred_at >= ?
                  AND occurred_at <= ?
                """,
                (owner, period_start, period_end),
            ).fetchone()
            return int(row[0] or 0)

    # ------------------------------------------------------------------
    # Recipient resolution
    def recipients_for(self, budget: Budget) -> List[Recipient]:
        """Owner of an individual budget, or every current member of the group."""
        with self._connect() as conn:
            if budget.scope is BudgetScope.INDIVIDUAL:
                rows = conn.execute(
                    "SELECT id, name, email, phone_number FROM users WHERE id = ?",
                    (budget.owner_id,),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT u.id, u.name, u.email, u.phone_number
                    FROM group_members m
                    JOIN users u ON u.id = m.user_id
                    WHERE m.group_id = ?
                    ORDER BY m.joined_at ASC, m.user_id ASC
                    """,
                    (budget.group_id,),
                ).fetchall()
            return [
                Recipient(
                    user_id=r["id"],
                    name=r["name"],
                    email=r["email"] or None,
                    phone_number=r["phone_number"] or None,
                )
                for r in rows
            ]

    # ------------------------------------------------------------------
    # Alerts
    def insert_alert(
        self,
        user_id: int,
        budget_id: int,
        group_id: Optional[int],
        channel: Channel,
        threshold: int,
        status: AlertStatus,
        spent: int,
        budget_limit: int,
        percentage_used: float,
        period_key: str,
        created_at: str,
        sent_at: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO alerts (
                    user_id, budget_id, group_id, channel, threshold, status,
                    sent_at, error_message, spent, budget_limit, percentage_used,
                    period_key, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    budget_id,
                    group_id,
                    Channel(channel).value,
                    int(threshold),
                    AlertStatus(status).value,
                    sent_at,
                    error_message,
                    spent,
                    budget_limit,
                    percentage_used,
                    period_key,
                    created_at,
                ),
            )
            return int(cur.lastrowid)

    def has_sent_alert(self, budget_id: int, threshold: int, since: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM alerts
                WHERE budget_id = ? AND threshold = ? AND status = 'SENT'
                  AND created_at >= ?
                LIMIT 1
                """,
                (budget_id, int(threshold), since),
            ).fetchone()
            return row is not None

    def list_alerts(
        self,
        user_id: int,
        limit: int,
        budget_id: Optional[int] = None,
        status: Optional[AlertStatus] = None,
        threshold: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        clauses = ["a.user_id = ?"]
        params: List[Any] = [user_id]
        if budget_id is not None:
            clauses.append("a.budget_id = ?")
            params.append(budget_id)
        if status is not None:
            clauses.append("a.status = ?")
            params.append(AlertStatus(status).value)
        if threshold is not None:
            clauses.append("a.threshold = ?")
            params.append(int(threshold))
        params.append(limit)
        sql = f"""
            SELECT a.*, b.name AS budget_name, b.scope AS budget_scope, g.name AS group_name
            FROM alerts a
            LEFT JOIN budgets b ON b.id = a.budget_id
            LEFT JOIN groups g ON g.id = a.group_id
            WHERE {" AND ".join(clauses)}
            ORDER BY a.created_at DESC, a.id DESC
            LIMIT ?
        """
        with self._connect() as conn:
            return [dict(r) for r in conn.execute(sql, params).fetchall()]

    def get_alert_for_user(self, alert_id: int, user_id: int) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT a.*, b.name AS budget_name, b.scope AS budget_scope, g.name AS group_name
                FROM alerts a
                LEFT JOIN budgets b ON b.id = a.budget_id
                LEFT JOIN groups g ON g.id = a.group_id
                WHERE a.id = ? AND a.user_id = ?
                """,
                (alert_id, user_id),
            ).fetchone()
            return dict(row) if row else None

    def acknowledge_alert(self, alert_id: int, user_id: int, acknowledged_at: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE alerts SET acknowledged = 1, acknowledged_at = COALESCE(acknowledged_at, ?)
                WHERE id = ? AND user_id = ?
                """,
                (acknowledged_at, alert_id, user_id),
            )
            return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Threshold claims
    def claim_threshold(self, budget_id: int, threshold: int, period_key: str) -> bool:
        """Atomically claim (budget, threshold, period); False if already claimed."""
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO threshold_claims (budget_id, threshold, period_key) VALUES (?, ?, ?)",
                    (budget_id, int(threshold), period_key),
                )
        except sqlite3.IntegrityError:
            return False
        return True

    def release_threshold_claim(self, budget_id: int, threshold: int, period_key: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM threshold_claims WHERE budget_id = ? AND threshold = ? AND period_key = ?",
                (budget_id, int(threshold), period_key),
            )
