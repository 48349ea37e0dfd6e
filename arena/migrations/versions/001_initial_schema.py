"""Initial schema: wallets, ledger, matches and registrations.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from arena.migrations.util import get_json_type, get_timestamp_default, get_uuid_type


# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    uuid = get_uuid_type()
    json_type = get_json_type()

    op.create_table(
        "wallets",
        sa.Column("wallet_id", uuid, nullable=False),
        sa.Column("user_id", uuid, nullable=False),
        sa.Column("user_name", sa.String(length=100), nullable=False),
        sa.Column("user_email", sa.String(length=255), nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_deposits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_withdrawals", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("last_transaction_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=get_timestamp_default()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=get_timestamp_default()),
        sa.PrimaryKeyConstraint("wallet_id"),
        sa.CheckConstraint("balance >= 0", name="ck_wallets_balance_non_negative"),
        sa.CheckConstraint("total_deposits >= 0", name="ck_wallets_total_deposits_non_negative"),
        sa.CheckConstraint("total_withdrawals >= 0", name="ck_wallets_total_withdrawals_non_negative"),
    )
    op.create_index("ix_wallets_user_id", "wallets", ["user_id"], unique=True)
    op.create_index("ix_wallets_user_email", "wallets", ["user_email"], unique=False)
    op.create_index("ix_wallets_status", "wallets", ["status"], unique=False)

    op.create_table(
        "wallet_transactions",
        sa.Column("transaction_id", uuid, nullable=False),
        sa.Column("wallet_id", uuid, nullable=False),
        sa.Column("type", sa.String(length=10), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("reference_id", sa.String(length=128), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(length=30), nullable=False, server_default="system"),
        sa.Column("metadata", json_type, nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=get_timestamp_default()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=get_timestamp_default()),
        sa.PrimaryKeyConstraint("transaction_id"),
        sa.ForeignKeyConstraint(["wallet_id"], ["wallets.wallet_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("reference_id", name="uq_wallet_transactions_reference_id"),
        sa.CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
    )
    op.create_index("ix_wallet_transactions_wallet_id", "wallet_transactions", ["wallet_id"], unique=False)
    op.create_index("ix_wallet_transactions_status", "wallet_transactions", ["status"], unique=False)
    op.create_index("ix_wallet_transactions_created_at", "wallet_transactions", ["created_at"], unique=False)
    op.create_index(
        "ix_wallet_transactions_wallet_created",
        "wallet_transactions",
        ["wallet_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "matches",
        sa.Column("match_id", uuid, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("entry_fee", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("prize_pool", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_players", sa.Integer(), nullable=False),
        sa.Column("map", sa.String(length=20), nullable=False, server_default="Erangel"),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="upcoming"),
        sa.Column("prize_distribution", json_type, nullable=False),
        sa.Column("active_registrations", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("results", json_type, nullable=True),
        sa.Column("results_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("results_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=get_timestamp_default()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=get_timestamp_default()),
        sa.PrimaryKeyConstraint("match_id"),
        sa.CheckConstraint("entry_fee >= 0", name="ck_matches_entry_fee_non_negative"),
        sa.CheckConstraint("prize_pool >= 0", name="ck_matches_prize_pool_non_negative"),
        sa.CheckConstraint("max_players >= 1 AND max_players <= 100", name="ck_matches_max_players_range"),
        sa.CheckConstraint(
            "active_registrations >= 0 AND active_registrations <= max_players",
            name="ck_matches_active_registrations_capacity",
        ),
    )
    op.create_index("ix_matches_start_time", "matches", ["start_time"], unique=False)
    op.create_index("ix_matches_status", "matches", ["status"], unique=False)
    op.create_index("ix_matches_status_start_time", "matches", ["status", "start_time"], unique=False)

    op.create_table(
        "match_registrations",
        sa.Column("registration_id", uuid, nullable=False),
        sa.Column("match_id", uuid, nullable=False),
        sa.Column("user_id", uuid, nullable=False),
        sa.Column("user_name", sa.String(length=100), nullable=True),
        sa.Column("game_id", sa.String(length=64), nullable=True),
        sa.Column("squad_id", uuid, nullable=True),
        sa.Column("squad_name", sa.String(length=100), nullable=True),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=False, server_default=get_timestamp_default()),
        sa.Column("entry_fee_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("entry_fee_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payment_reference", sa.String(length=128), nullable=True),
        sa.Column("refund_reference", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="registered"),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("registration_id"),
        sa.ForeignKeyConstraint(["match_id"], ["matches.match_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("match_id", "user_id", name="uq_match_registrations_match_user"),
    )
    op.create_index("ix_match_registrations_user_id", "match_registrations", ["user_id"], unique=False)
    op.create_index(
        "ix_match_registrations_match_status",
        "match_registrations",
        ["match_id", "status"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_match_registrations_match_status", table_name="match_registrations")
    op.drop_index("ix_match_registrations_user_id", table_name="match_registrations")
    op.drop_table("match_registrations")

    op.drop_index("ix_matches_status_start_time", table_name="matches")
    op.drop_index("ix_matches_status", table_name="matches")
    op.drop_index("ix_matches_start_time", table_name="matches")
    op.drop_table("matches")

    op.drop_index("ix_wallet_transactions_wallet_created", table_name="wallet_transactions")
    op.drop_index("ix_wallet_transactions_created_at", table_name="wallet_transactions")
    op.drop_index("ix_wallet_transactions_status", table_name="wallet_transactions")
    op.drop_index("ix_wallet_transactions_wallet_id", table_name="wallet_transactions")
    op.drop_table("wallet_transactions")

    op.drop_index("ix_wallets_status", table_name="wallets")
    op.drop_index("ix_wallets_user_email", table_name="wallets")
    op.drop_index("ix_wallets_user_id", table_name="wallets")
    op.drop_table("wallets")
