"""Initial schema for the NFT sync backend.

Revision ID: 4f1a9c2e7b10
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f1a9c2e7b10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "sync_checkpoints",
        sa.Column("kind", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        if_not_exists=True,
    )

    op.create_table(
        "sync_leases",
        sa.Column("kind", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("holder", sa.String(length=64), nullable=False),
        sa.Column(
            "acquired_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        if_not_exists=True,
    )

    op.create_table(
        "nfts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("fid", sa.Integer(), nullable=False),
        sa.Column("token_id", sa.Integer(), nullable=True),
        sa.Column("contract_address", sa.String(length=42), nullable=True),
        sa.Column("owner_address", sa.String(length=42), nullable=True),
        sa.Column("minted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("minted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("character_class", sa.String(length=100), nullable=True),
        sa.Column("class_description", sa.Text(), nullable=True),
        sa.Column("gender", sa.String(length=50), nullable=True),
        sa.Column("background", sa.String(length=100), nullable=True),
        sa.Column("background_description", sa.Text(), nullable=True),
        sa.Column("color_palette", sa.String(length=255), nullable=True),
        sa.Column("color_vibe", sa.String(length=255), nullable=True),
        sa.Column("clothing", sa.Text(), nullable=True),
        sa.Column("accessories", sa.Text(), nullable=True),
        sa.Column("items", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.UniqueConstraint("fid"),
        if_not_exists=True,
    )

    op.create_index("ix_nfts_token_id", "nfts", ["token_id"], if_not_exists=True)
    op.create_index("ix_nfts_owner_address", "nfts", ["owner_address"], if_not_exists=True)
    op.create_index("idx_nfts_minted", "nfts", ["minted"], if_not_exists=True)


def downgrade() -> None:
    op.drop_index("idx_nfts_minted", table_name="nfts", if_exists=True)
    op.drop_index("ix_nfts_owner_address", table_name="nfts", if_exists=True)
    op.drop_index("ix_nfts_token_id", table_name="nfts", if_exists=True)

    op.drop_table("nfts", if_exists=True)
    op.drop_table("sync_leases", if_exists=True)
    op.drop_table("sync_checkpoints", if_exists=True)
