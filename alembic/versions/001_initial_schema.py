"""Initial schema: companies, users, plank logs, milestones, feed, community, auth tokens.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Companies & users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS companies (
            id SERIAL PRIMARY KEY,
            company_name VARCHAR(128) NOT NULL,
            company_code VARCHAR(32) UNIQUE NOT NULL,
            challenge_start_date DATE NOT NULL,
            challenge_end_date DATE NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true,
            total_plank_seconds BIGINT NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_companies_dates CHECK (challenge_end_date > challenge_start_date),
            CONSTRAINT ck_companies_total CHECK (total_plank_seconds >= 0)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            company_id INTEGER NOT NULL REFERENCES companies(id),
            email VARCHAR(320) UNIQUE NOT NULL,
            password_hash VARCHAR(256),
            full_name VARCHAR(128) NOT NULL,
            is_admin BOOLEAN NOT NULL DEFAULT false,
            is_banned BOOLEAN NOT NULL DEFAULT false,
            total_plank_seconds BIGINT NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            last_login TIMESTAMPTZ,
            login_count INTEGER NOT NULL DEFAULT 0,
            CONSTRAINT ck_users_total CHECK (total_plank_seconds >= 0)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_company_id ON users(company_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_users_total ON users(total_plank_seconds DESC)")

    # --- Auth tokens ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS refresh_tokens (
            id VARCHAR(36) PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash VARCHAR(128) NOT NULL,
            issued_at TIMESTAMPTZ NOT NULL,
            expires_at TIMESTAMPTZ NOT NULL,
            revoked_at TIMESTAMPTZ,
            ip_address VARCHAR(45),
            user_agent VARCHAR(512),
            is_revoked BOOLEAN NOT NULL DEFAULT false,
            replaced_by VARCHAR(36)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_refresh_tokens_user ON refresh_tokens(user_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS password_reset_tokens (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash VARCHAR(128) UNIQUE NOT NULL,
            created_at TIMESTAMPTZ NOT NULL,
            expires_at TIMESTAMPTZ NOT NULL,
            used_at TIMESTAMPTZ,
            ip_address VARCHAR(45)
        )
    """)

    # --- Plank logs ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS plank_logs (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            duration_seconds INTEGER NOT NULL CHECK (duration_seconds > 0),
            logged_at TIMESTAMPTZ NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_plank_logs_user_id ON plank_logs(user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_plank_logs_created_at ON plank_logs(created_at DESC)")

    # --- Milestones ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS milestones (
            id SERIAL PRIMARY KEY,
            name VARCHAR(64) UNIQUE NOT NULL,
            description TEXT,
            threshold_seconds INTEGER NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_milestones (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            milestone_id INTEGER NOT NULL REFERENCES milestones(id),
            milestone_name VARCHAR(64) NOT NULL,
            achieved_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_milestones_user_id_milestone_name_key UNIQUE (user_id, milestone_name)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS company_milestones (
            id SERIAL PRIMARY KEY,
            name VARCHAR(64) UNIQUE NOT NULL,
            emoji VARCHAR(16),
            description TEXT,
            threshold_seconds BIGINT NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS company_milestone_achievements (
            id BIGSERIAL PRIMARY KEY,
            company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            milestone_id INTEGER NOT NULL REFERENCES company_milestones(id),
            milestone_name VARCHAR(64) NOT NULL,
            total_seconds_at_achievement BIGINT NOT NULL,
            achieved_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT company_milestone_ach_company_name_key UNIQUE (company_id, milestone_name)
        )
    """)

    # --- Activity feed ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS activity_feed (
            id BIGSERIAL PRIMARY KEY,
            company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            activity_type VARCHAR(32) NOT NULL,
            message TEXT NOT NULL,
            metadata JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_activity_type CHECK (
                activity_type IN ('plank_logged', 'milestone_achieved', 'company_milestone_achieved')
            )
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_activity_feed_company_id ON activity_feed(company_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_activity_feed_created_at ON activity_feed(created_at DESC)")

    # --- Community ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS community_posts (
            id BIGSERIAL PRIMARY KEY,
            company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            content TEXT,
            emoji_type VARCHAR(16),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_post_body CHECK (content IS NOT NULL OR emoji_type IS NOT NULL)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_community_posts_company_id ON community_posts(company_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_community_posts_created_at ON community_posts(created_at DESC)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS post_reactions (
            id BIGSERIAL PRIMARY KEY,
            post_id BIGINT NOT NULL REFERENCES community_posts(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            emoji VARCHAR(16) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT post_reactions_post_user_emoji_key UNIQUE (post_id, user_id, emoji)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_post_reactions_post_id ON post_reactions(post_id)")


def downgrade() -> None:
    for table in (
        "post_reactions",
        "community_posts",
        "activity_feed",
        "company_milestone_achievements",
        "company_milestones",
        "user_milestones",
        "milestones",
        "plank_logs",
        "password_reset_tokens",
        "refresh_tokens",
        "users",
        "companies",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
