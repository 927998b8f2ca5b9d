"""Pattern matching schema

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS pattern_searches (
            search_id   TEXT PRIMARY KEY,
            uid         TEXT NOT NULL,
            brand       TEXT NOT NULL,
            image_path  TEXT NOT NULL,
            fingerprint CHAR(16),
            client_ref  TEXT,
            is_active   BOOLEAN NOT NULL DEFAULT TRUE,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_pattern_searches_upload UNIQUE (uid, brand, image_path)
        );
        """
    )

    # Read-only to the matcher; populated by the listing service
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS listing_mirrors (
            listing_id TEXT PRIMARY KEY,
            seller_uid TEXT,
            ref_path   TEXT
        );
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS match_audits (
            listing_id      TEXT NOT NULL,
            counterparty_id TEXT NOT NULL,
            score           DOUBLE PRECISION NOT NULL CHECK (score >= 0 AND score <= 1),
            search_id       TEXT,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (listing_id, counterparty_id)
        );
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS match_inbox (
            recipient_id TEXT NOT NULL,
            listing_id   TEXT NOT NULL,
            score        DOUBLE PRECISION NOT NULL CHECK (score >= 0 AND score <= 1),
            source_tag   TEXT NOT NULL,
            seller_uid   TEXT,
            listing_ref  TEXT,
            seen         BOOLEAN NOT NULL DEFAULT FALSE,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (recipient_id, listing_id)
        );
        """
    )

    op.execute("CREATE INDEX IF NOT EXISTS idx_pattern_searches_brand_active ON pattern_searches (brand, is_active);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_match_inbox_unseen           ON match_inbox (recipient_id) WHERE seen = FALSE;")


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_match_inbox_unseen;")
    op.execute("DROP INDEX IF EXISTS idx_pattern_searches_brand_active;")

    op.execute("DROP TABLE IF EXISTS match_inbox;")
    op.execute("DROP TABLE IF EXISTS match_audits;")
    op.execute("DROP TABLE IF EXISTS listing_mirrors;")
    op.execute("DROP TABLE IF EXISTS pattern_searches;")
