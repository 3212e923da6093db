"""create api tokens table

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # user_id points at the web application's users table, which this
    # service does not own.
    op.execute("""
        CREATE TABLE api_tokens (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL,
            token_prefix TEXT NOT NULL,
            token_hash TEXT NOT NULL,
            name TEXT NOT NULL,
            permissions TEXT[] NOT NULL DEFAULT ARRAY['read'],
            last_used_at TIMESTAMPTZ,
            expires_at TIMESTAMPTZ,
            revoked_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT api_tokens_permissions_check
                CHECK (permissions <@ ARRAY['read', 'create', 'update', 'delete']
                       AND cardinality(permissions) > 0)
        )
    """)

    # Bearer verification looks candidates up by prefix
    op.execute("CREATE INDEX api_tokens_token_prefix_idx ON api_tokens (token_prefix)")
    op.execute("CREATE INDEX api_tokens_user_id_idx ON api_tokens (user_id, created_at DESC)")

    # Enable RLS on api_tokens
    op.execute("ALTER TABLE api_tokens ENABLE ROW LEVEL SECURITY")

    # RLS policy: users can only see/revoke their own tokens. System
    # connections (empty app.user_id) bypass it for bearer verification.
    op.execute("""
        CREATE POLICY api_tokens_user_policy ON api_tokens
            USING (
                CASE WHEN NULLIF(current_setting('app.user_id', true), '') IS NULL THEN true
                ELSE user_id = current_setting('app.user_id', true)::uuid
                END
            )
    """)


def downgrade():
    op.execute("DROP TABLE IF EXISTS api_tokens CASCADE")
