"""Create identity users table with TOTP two-factor columns."""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Apply identity users schema with TOTP state.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Migration is additive and safe on fresh environments.
    Raises:
        Exception: Postgres execution errors from Alembic runtime.
    Side Effects:
        Creates `identity_users` with constraints and the email index.
    """
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS identity_users (
            user_id UUID PRIMARY KEY,
            email TEXT NULL,
            totp_enabled BOOLEAN NOT NULL DEFAULT FALSE,
            totp_secret_enc TEXT NULL,
            totp_verified_at TIMESTAMPTZ NULL,
            totp_recovery_codes_hash JSONB NULL,
            totp_last_used_step BIGINT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT identity_users_totp_enabled_requires_secret
                CHECK (NOT totp_enabled OR totp_secret_enc IS NOT NULL),
            CONSTRAINT identity_users_totp_last_used_step_non_negative
                CHECK (totp_last_used_step IS NULL OR totp_last_used_step >= 0),
            CONSTRAINT identity_users_totp_recovery_codes_hash_array
                CHECK (
                    totp_recovery_codes_hash IS NULL
                    OR jsonb_typeof(totp_recovery_codes_hash) = 'array'
                )
        )
        """
    )
    op.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS identity_users_email_lower_uq
            ON identity_users (LOWER(email))
            WHERE email IS NOT NULL
        """
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS identity_users_email_lower_uq")
    op.execute("DROP TABLE IF EXISTS identity_users")
