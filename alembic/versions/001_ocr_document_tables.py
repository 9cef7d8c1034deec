"""Create the document family tables with OCR state columns.

Revision ID: 001
Create Date: 2026-10-19

docrepo_documents, project_documents and document_attachments share the same
OCR columns; each gets an index on (ocr_status, ocr_last_tried_at) for the
pending queue.
"""

from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

_FAMILY_TABLES = ("docrepo_documents", "project_documents", "document_attachments")


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    for table in _FAMILY_TABLES:
        op.execute(
            f"""
            CREATE TABLE {table} (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                file_name TEXT,
                content_type TEXT,
                storage_ref TEXT NOT NULL,

                ocr_status TEXT NOT NULL DEFAULT 'pending'
                    CHECK (ocr_status IN ('pending', 'succeeded', 'failed', 'skipped')),
                extracted_text TEXT,
                ocr_failure_reason VARCHAR(1000),
                ocr_last_tried_at TIMESTAMPTZ,

                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW(),
                updated_by TEXT,
                deleted_at TIMESTAMPTZ
            )
        """
        )

        # Pending queue: never-tried first, then oldest attempt
        op.execute(
            f"""
            CREATE INDEX ix_{table}_ocr_queue
            ON {table} (ocr_status, ocr_last_tried_at NULLS FIRST)
            WHERE deleted_at IS NULL
        """
        )


def downgrade() -> None:
    for table in reversed(_FAMILY_TABLES):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
