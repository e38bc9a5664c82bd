"""merchant_sampling_core

Revision ID: 5c1e9a7d3b20
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5c1e9a7d3b20"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

MERCHANT_STATES_SQL = "('NEW','SAMPLING','GRADUATED','PAID')"
DEFAULT_CONFIG_ROWS = {
    "limits": {
        "max_activations_per_merchant": 1,
        "min_duration_days": 7,
        "max_duration_days": 14,
        "max_product_units": 20,
        "max_voucher_redemptions": 20,
        "max_cash_prize_usd": 100,
    },
    "graduation_triggers": {
        "redemption_rate_threshold": 0.30,
        "verified_actions_threshold": 25,
        "entry_user_ratio_threshold": 0.60,
    },
}


def upgrade() -> None:
    op.create_table(
        "advertiser_profiles",
        sa.Column("advertiser_id", sa.String(64), primary_key=True),
        sa.Column("company_name", sa.Text(), nullable=True),
        sa.Column("company_website", sa.Text(), nullable=True),
        sa.Column("merchant_state", sa.String(16), nullable=False, server_default=sa.text("'NEW'")),
        sa.Column("sampling_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("graduated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            f"merchant_state IN {MERCHANT_STATES_SQL}",
            name="ck_advertiser_profiles_merchant_state",
        ),
    )
    op.create_index("idx_advertiser_profiles_merchant_state", "advertiser_profiles", ["merchant_state"])

    op.create_table(
        "merchant_state_transitions",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column("advertiser_id", sa.String(64), nullable=False),
        sa.Column("from_state", sa.String(16), nullable=False),
        sa.Column("to_state", sa.String(16), nullable=False),
        sa.Column("trigger_reason", sa.String(64), nullable=False),
        sa.Column(
            "trigger_metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            f"from_state IN {MERCHANT_STATES_SQL}",
            name="ck_merchant_state_transitions_from_state",
        ),
        sa.CheckConstraint(
            f"to_state IN {MERCHANT_STATES_SQL}",
            name="ck_merchant_state_transitions_to_state",
        ),
    )
    op.create_index(
        "idx_merchant_state_transitions_advertiser_created",
        "merchant_state_transitions",
        ["advertiser_id", "created_at"],
    )
    op.create_index(
        "idx_merchant_state_transitions_reason",
        "merchant_state_transitions",
        ["trigger_reason"],
    )

    op.create_table(
        "sampling_activations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("advertiser_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("value_type", sa.String(16), nullable=False),
        sa.Column("value_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("value_unit", sa.String(16), nullable=False, server_default=sa.text("'usd'")),
        sa.Column("max_redemptions", sa.Integer(), nullable=False),
        sa.Column("current_redemptions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("duration_days", sa.SmallInteger(), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("include_in_deals", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("include_in_events", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "include_in_post_proof",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("promoshare_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "social_shield_required",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column(
            "graduation_triggered",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("graduation_reason", sa.String(64), nullable=True),
        sa.Column("graduation_triggered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "value_type IN ('coupon','product','voucher','experience','cash_prize')",
            name="ck_sampling_activations_value_type",
        ),
        sa.CheckConstraint(
            "status IN ('active','expired','completed')",
            name="ck_sampling_activations_status",
        ),
        sa.CheckConstraint("max_redemptions >= 0", name="ck_sampling_activations_max_non_negative"),
        sa.CheckConstraint(
            "current_redemptions >= 0",
            name="ck_sampling_activations_current_non_negative",
        ),
        sa.CheckConstraint(
            "current_redemptions <= max_redemptions",
            name="ck_sampling_activations_current_le_max",
        ),
        sa.CheckConstraint("expires_at > starts_at", name="ck_sampling_activations_window"),
    )
    op.create_index(
        "idx_sampling_activations_advertiser",
        "sampling_activations",
        ["advertiser_id", "created_at"],
    )
    op.create_index(
        "idx_sampling_activations_status_expires",
        "sampling_activations",
        ["status", "expires_at"],
    )

    op.create_table(
        "sampling_participations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("activation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("action_type", sa.String(32), nullable=False),
        sa.Column("user_maturity_state", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "action_metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_method", sa.String(32), nullable=True),
        sa.Column("redeemed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redemption_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["activation_id"], ["sampling_activations.id"]),
        sa.UniqueConstraint(
            "activation_id",
            "user_id",
            "action_type",
            name="uq_sampling_participations_activation_user_action",
        ),
        sa.CheckConstraint(
            "user_maturity_state >= 0",
            name="ck_sampling_participations_maturity_non_negative",
        ),
    )
    op.create_index(
        "idx_sampling_participations_activation",
        "sampling_participations",
        ["activation_id"],
    )
    op.create_index("idx_sampling_participations_user", "sampling_participations", ["user_id"])

    sampling_config = op.create_table(
        "sampling_config",
        sa.Column("config_key", sa.String(64), primary_key=True),
        sa.Column(
            "config_value",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.bulk_insert(
        sampling_config,
        [
            {"config_key": config_key, "config_value": config_value}
            for config_key, config_value in DEFAULT_CONFIG_ROWS.items()
        ],
    )


def downgrade() -> None:
    op.drop_table("sampling_config")
    op.drop_index("idx_sampling_participations_user", table_name="sampling_participations")
    op.drop_index("idx_sampling_participations_activation", table_name="sampling_participations")
    op.drop_table("sampling_participations")
    op.drop_index("idx_sampling_activations_status_expires", table_name="sampling_activations")
    op.drop_index("idx_sampling_activations_advertiser", table_name="sampling_activations")
    op.drop_table("sampling_activations")
    op.drop_index(
        "idx_merchant_state_transitions_reason",
        table_name="merchant_state_transitions",
    )
    op.drop_index(
        "idx_merchant_state_transitions_advertiser_created",
        table_name="merchant_state_transitions",
    )
    op.drop_table("merchant_state_transitions")
    op.drop_index("idx_advertiser_profiles_merchant_state", table_name="advertiser_profiles")
    op.drop_table("advertiser_profiles")
