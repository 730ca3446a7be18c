"""Database schema DDL definitions and initialization utilities.

Tables:
  - users: people who can be notified (email / phone optional)
  - groups: shared budgeting groups with a legacy monthly limit
  - group_members: membership with role, at least one per group
  - budgets: INDIVIDUAL (owner_id) or GROUP (group_id) monthly limits
  - transactions: external spend ledger (amounts in minor units)
  - alerts: one row per channel dispatch attempt
  - threshold_claims: (budget, threshold, period) guard against concurrent checks
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

USERS_DDL = f"""
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT,
    phone_number TEXT,
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

GROUPS_DDL = f"""
CREATE TABLE IF NOT EXISTS groups (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    monthly_limit INTEGER NOT NULL DEFAULT 0 CHECK (monthly_limit >= 0),
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

GROUP_MEMBERS_DDL = f"""
CREATE TABLE IF NOT EXISTS group_members (
    group_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    role TEXT NOT NULL DEFAULT 'MEMBER' CHECK (role IN ('OWNER','MEMBER','VIEWER')),
    joined_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    PRIMARY KEY (group_id, user_id),
    FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE CASCADE,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);
"""

BUDGETS_DDL = f"""
CREATE TABLE IF NOT EXISTS budgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    scope TEXT NOT NULL CHECK (scope IN ('INDIVIDUAL','GROUP')),
    owner_id INTEGER,
    group_id INTEGER,
    monthly_limit INTEGER NOT NULL DEFAULT 0 CHECK (monthly_limit >= 0), -- minor units
    name TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    CHECK (
        (scope = 'INDIVIDUAL' AND owner_id IS NOT NULL AND group_id IS NULL)
        OR (scope = 'GROUP' AND group_id IS NOT NULL AND owner_id IS NULL)
    ),
    FOREIGN KEY (owner_id) REFERENCES users(id),
    FOREIGN KEY (group_id) REFERENCES groups(id)
);
"""

TRANSACTIONS_DDL = f"""
CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    group_id INTEGER,
    type TEXT NOT NULL CHECK (type IN ('EXPENSE','INCOME')),
    status TEXT NOT NULL DEFAULT 'COMPLETED' CHECK (status IN ('PENDING','COMPLETED','CANCELLED')),
    amount INTEGER NOT NULL CHECK (amount >= 0), -- minor units
    description TEXT,
    occurred_at TEXT NOT NULL, -- UTC ISO timestamp
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

ALERTS_DDL = """
CREATE TABLE IF NOT EXISTS alerts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    budget_id INTEGER NOT NULL,
    group_id INTEGER,
    channel TEXT NOT NULL CHECK (channel IN ('EMAIL','SMS')),
    threshold INTEGER NOT NULL CHECK (threshold IN (70, 90, 100)),
    status TEXT NOT NULL DEFAULT 'PENDING' CHECK (status IN ('PENDING','SENT','FAILED')),
    sent_at TEXT,
    error_message TEXT,
    spent INTEGER NOT NULL, -- snapshot, minor units
    budget_limit INTEGER NOT NULL, -- snapshot, minor units
    percentage_used REAL NOT NULL, -- snapshot, unclamped
    period_key TEXT NOT NULL, -- 'YYYY-MM'
    acknowledged INTEGER NOT NULL DEFAULT 0,
    acknowledged_at TEXT,
    created_at TEXT NOT NULL,
    CHECK ((status = 'SENT') = (sent_at IS NOT NULL)),
    CHECK ((status = 'FAILED') = (error_message IS NOT NULL)),
    FOREIGN KEY (budget_id) REFERENCES budgets(id)
);
"""

THRESHOLD_CLAIMS_DDL = f"""
CREATE TABLE IF NOT EXISTS threshold_claims (
    budget_id INTEGER NOT NULL,
    threshold INTEGER NOT NULL,
    period_key TEXT NOT NULL,
    claimed_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    PRIMARY KEY (budget_id, threshold, period_key)
);
"""

INDEX_DDL: Sequence[str] = (
    "CREATE INDEX IF NOT EXISTS idx_members_user ON group_members(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_budgets_owner ON budgets(owner_id, is_active);",
    "CREATE INDEX IF NOT EXISTS idx_budgets_group ON budgets(group_id, is_active);",
    "CREATE INDEX IF NOT EXISTS idx_tx_user_date ON transactions(user_id, occurred_at);",
    "CREATE INDEX IF NOT EXISTS idx_tx_group_date ON transactions(group_id, occurred_at);",
    "CREATE INDEX IF NOT EXISTS idx_alerts_dedup ON alerts(budget_id, threshold, status, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_alerts_user_created ON alerts(user_id, created_at DESC);",
)

DDL_ORDER: Sequence[str] = (
    USERS_DDL,
    GROUPS_DDL,
    GROUP_MEMBERS_DDL,
    BUDGETS_DDL,
    TRANSACTIONS_DDL,
    ALERTS_DDL,
    THRESHOLD_CLAIMS_DDL,
)


def init_db(path: Path) -> None:
    """Create all tables and indexes idempotently.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        for ddl in INDEX_DDL:
            cur.execute(ddl)
        conn.commit()
    finally:
        conn.close()
