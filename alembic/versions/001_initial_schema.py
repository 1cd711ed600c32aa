"""001 – Initial schema: users, settings, working Saturdays, delegates, leave, audit log.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-05 09:30:00.000000+07:00
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

SEED_SETTINGS: list[dict[str, str]] = [
    {"key": "AUTH_MODE", "value": "LOCAL", "description": "Login method offered on the login page"},
    {"key": "LEAVE_ADVANCE_DAYS", "value": "3", "description": "Days of notice required for vacation leave"},
    {"key": "LEAVE_SICK_CERT_DAYS", "value": "3", "description": "Sick days from which a medical certificate is required"},
    {"key": "WORK_HOURS_PER_DAY", "value": "8", "description": "Hours in a standard working day"},
]

# Yearly entitlement copied into balances opened automatically
SEED_QUOTAS: dict[str, float] = {
    "VACATION": 6,
    "SICK": 30,
    "PERSONAL": 3,
    "MATERNITY": 98,
    "MILITARY": 60,
    "ORDINATION": 15,
    "STERILIZATION": 1,
    "TRAINING": 30,
}

TABLES_IN_DROP_ORDER = [
    "audit_logs",
    "leave_request_year_splits",
    "leave_requests",
    "leave_balances",
    "leave_quotas",
    "delegate_approvers",
    "working_saturdays",
    "system_settings",
    "users",
]


# ---------------------------------------------------------------------------
# Upgrade
# ---------------------------------------------------------------------------

def upgrade() -> None:
    # ── Users ─────────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id                  SERIAL PRIMARY KEY,
            employee_id         VARCHAR(50)  NOT NULL UNIQUE,
            email               VARCHAR(255),
            password            VARCHAR(255),
            first_name          VARCHAR(100) NOT NULL,
            last_name           VARCHAR(100) NOT NULL DEFAULT '',
            role                VARCHAR(20)  NOT NULL DEFAULT 'EMPLOYEE',
            company             VARCHAR(50),
            department          VARCHAR(150),
            gender              VARCHAR(1),
            start_date          DATE,
            department_head_id  INTEGER,
            auth_provider       VARCHAR(20)  NOT NULL DEFAULT 'LOCAL',
            is_active           BOOLEAN      NOT NULL DEFAULT TRUE,
            created_at          TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_users_role
                CHECK (role IN ('EMPLOYEE', 'MANAGER', 'HR', 'ADMIN')),
            CONSTRAINT ck_users_manager_not_self
                CHECK (department_head_id IS NULL OR department_head_id <> id),
            CONSTRAINT fk_users_department_head
                FOREIGN KEY (department_head_id) REFERENCES users(id) ON DELETE SET NULL
        )
    """)
    op.execute("CREATE INDEX ix_users_department ON users (department)")

    # ── System settings (key/value strings) ───────────────────────────────
    op.execute("""
        CREATE TABLE system_settings (
            setting_key    VARCHAR(100) PRIMARY KEY,
            setting_value  TEXT,
            description    VARCHAR(255),
            updated_by     INTEGER REFERENCES users(id) ON DELETE SET NULL,
            updated_at     TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── Working Saturdays ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE working_saturdays (
            id           SERIAL PRIMARY KEY,
            work_date    DATE         NOT NULL UNIQUE,
            start_time   TIME         NOT NULL,
            end_time     TIME         NOT NULL,
            work_hours   DOUBLE PRECISION NOT NULL,
            description  VARCHAR(255),
            company      VARCHAR(50),
            created_by   INTEGER REFERENCES users(id) ON DELETE SET NULL,
            created_at   TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_working_saturdays_bounds CHECK (end_time > start_time)
        )
    """)

    # ── Delegate approvers ────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE delegate_approvers (
            id                SERIAL PRIMARY KEY,
            manager_id        INTEGER NOT NULL REFERENCES users(id),
            delegate_user_id  INTEGER NOT NULL REFERENCES users(id),
            start_date        DATE    NOT NULL,
            end_date          DATE    NOT NULL,
            is_active         BOOLEAN NOT NULL DEFAULT TRUE,
            created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_delegate_dates CHECK (end_date >= start_date)
        )
    """)
    op.execute(
        "CREATE INDEX ix_delegate_approvers_delegate "
        "ON delegate_approvers (delegate_user_id, is_active)"
    )
    op.execute("CREATE INDEX ix_delegate_approvers_manager ON delegate_approvers (manager_id)")

    # ── Leave quotas, balances, requests ──────────────────────────────────
    op.execute("""
        CREATE TABLE leave_quotas (
            leave_type    VARCHAR(20) PRIMARY KEY,
            default_days  DOUBLE PRECISION NOT NULL DEFAULT 0,
            updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_leave_quotas_type CHECK (leave_type IN (
                'VACATION', 'SICK', 'PERSONAL', 'MATERNITY', 'MILITARY',
                'ORDINATION', 'STERILIZATION', 'TRAINING', 'OTHER'
            ))
        )
    """)
    op.execute("""
        CREATE TABLE leave_balances (
            id               SERIAL PRIMARY KEY,
            user_id          INTEGER NOT NULL REFERENCES users(id),
            leave_type       VARCHAR(20) NOT NULL,
            year             INTEGER NOT NULL,
            entitlement      DOUBLE PRECISION NOT NULL DEFAULT 0,
            used             DOUBLE PRECISION NOT NULL DEFAULT 0,
            remaining        DOUBLE PRECISION NOT NULL DEFAULT 0,
            carry_over       DOUBLE PRECISION NOT NULL DEFAULT 0,
            is_auto_created  BOOLEAN NOT NULL DEFAULT FALSE,
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_leave_balance UNIQUE (user_id, leave_type, year),
            CONSTRAINT ck_leave_balances_type CHECK (leave_type IN (
                'VACATION', 'SICK', 'PERSONAL', 'MATERNITY', 'MILITARY',
                'ORDINATION', 'STERILIZATION', 'TRAINING', 'OTHER'
            ))
        )
    """)
    op.execute("""
        CREATE TABLE leave_requests (
            id                SERIAL PRIMARY KEY,
            user_id           INTEGER NOT NULL REFERENCES users(id),
            leave_type        VARCHAR(20) NOT NULL,
            start_date        DATE NOT NULL,
            end_date          DATE NOT NULL,
            time_slot         VARCHAR(20) NOT NULL DEFAULT 'FULL_DAY',
            start_time        TIME,
            end_time          TIME,
            usage_amount      DOUBLE PRECISION NOT NULL,
            reason            TEXT NOT NULL,
            has_medical_cert  BOOLEAN NOT NULL DEFAULT FALSE,
            status            VARCHAR(20) NOT NULL DEFAULT 'PENDING',
            approver_id       INTEGER REFERENCES users(id),
            approved_at       TIMESTAMPTZ,
            rejection_reason  TEXT,
            created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_leave_requests_dates CHECK (end_date >= start_date),
            CONSTRAINT ck_leave_requests_type CHECK (leave_type IN (
                'VACATION', 'SICK', 'PERSONAL', 'MATERNITY', 'MILITARY',
                'ORDINATION', 'STERILIZATION', 'TRAINING', 'OTHER'
            )),
            CONSTRAINT ck_leave_requests_slot
                CHECK (time_slot IN ('FULL_DAY', 'HALF_MORNING', 'HALF_AFTERNOON', 'HOURLY')),
            CONSTRAINT ck_leave_requests_status
                CHECK (status IN ('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED'))
        )
    """)
    op.execute("CREATE INDEX ix_leave_requests_user_status ON leave_requests (user_id, status)")
    op.execute("CREATE INDEX ix_leave_requests_status ON leave_requests (status)")
    op.execute("""
        CREATE TABLE leave_request_year_splits (
            id                SERIAL PRIMARY KEY,
            leave_request_id  INTEGER NOT NULL REFERENCES leave_requests(id) ON DELETE CASCADE,
            year              INTEGER NOT NULL,
            usage_amount      DOUBLE PRECISION NOT NULL
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_request_year_splits_request "
        "ON leave_request_year_splits (leave_request_id)"
    )

    # ── Audit log (append-only) ───────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_logs (
            id            BIGSERIAL PRIMARY KEY,
            user_id       INTEGER REFERENCES users(id) ON DELETE SET NULL,
            action        VARCHAR(50)  NOT NULL,
            target_table  VARCHAR(50)  NOT NULL,
            target_id     INTEGER,
            old_value     TEXT,
            new_value     TEXT,
            ip_address    VARCHAR(45),
            created_at    TIMESTAMPTZ  NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_logs_user_id ON audit_logs (user_id)")
    op.execute("CREATE INDEX ix_audit_logs_created_at ON audit_logs (created_at)")
    op.execute("CREATE INDEX ix_audit_logs_target ON audit_logs (target_table, target_id)")

    # ── Seed settings ─────────────────────────────────────────────────────
    settings_table = sa.table(
        "system_settings",
        sa.column("setting_key", sa.String),
        sa.column("setting_value", sa.Text),
        sa.column("description", sa.String),
    )
    op.bulk_insert(
        settings_table,
        [
            {"setting_key": s["key"], "setting_value": s["value"], "description": s["description"]}
            for s in SEED_SETTINGS
        ],
    )

    quotas_table = sa.table(
        "leave_quotas",
        sa.column("leave_type", sa.String),
        sa.column("default_days", sa.Float),
    )
    op.bulk_insert(
        quotas_table,
        [{"leave_type": k, "default_days": v} for k, v in SEED_QUOTAS.items()],
    )


# ---------------------------------------------------------------------------
# Downgrade
# ---------------------------------------------------------------------------

def downgrade() -> None:
    for table in TABLES_IN_DROP_ORDER:
        op.drop_table(table)
