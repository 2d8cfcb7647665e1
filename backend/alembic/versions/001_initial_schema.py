"""Initial schema: teams, users, wrestlers, mat rules, meets, bouts and pair records

Revision ID: 001_initial
Revises:
Create Date: 2026-01-05 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "team",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("symbol", sa.String(length=4), nullable=True),
        sa.Column("color", sa.String(length=20), nullable=True),
        sa.Column("home_team_prefer_same_mat", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_team_name", "team", ["name"], unique=True)

    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["team_id"], ["team.id"]),
    )
    op.create_index("ix_user_username", "user", ["username"], unique=True)

    op.create_table(
        "wrestler",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("first", sa.String(), nullable=False),
        sa.Column("last", sa.String(), nullable=False),
        sa.Column("birthdate", sa.Date(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("experience_years", sa.Integer(), nullable=False),
        sa.Column("skill", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["team_id"], ["team.id"]),
    )
    op.create_index("ix_wrestler_team_id", "wrestler", ["team_id"])

    # Per-team mat bands, 0-based mat_index
    op.create_table(
        "team_mat_rule",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("mat_index", sa.Integer(), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=True),
        sa.Column("min_experience", sa.Integer(), nullable=False),
        sa.Column("max_experience", sa.Integer(), nullable=False),
        sa.Column("min_age", sa.Float(), nullable=False),
        sa.Column("max_age", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["team_id"], ["team.id"]),
        sa.UniqueConstraint("team_id", "mat_index", name="uq_team_mat_index"),
        sa.CheckConstraint("min_experience <= max_experience", name="ck_experience_range"),
        sa.CheckConstraint("min_age <= max_age", name="ck_age_range"),
    )
    op.create_index("ix_team_mat_rule_team_id", "team_mat_rule", ["team_id"])

    op.create_table(
        "meet",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("meet_date", sa.Date(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("home_team_id", sa.Integer(), nullable=True),
        sa.Column("num_mats", sa.Integer(), nullable=False),
        sa.Column("min_rest_bouts", sa.Integer(), nullable=False),
        sa.Column("rest_penalty", sa.Float(), nullable=False),
        sa.Column("max_matches_per_wrestler", sa.Integer(), nullable=False),
        sa.Column("locked_by_id", sa.Integer(), nullable=True),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lock_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["home_team_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["locked_by_id"], ["user.id"]),
    )
    op.create_index("ix_meet_locked_by_id", "meet", ["locked_by_id"])

    op.create_table(
        "meet_team",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("meet_id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["meet_id"], ["meet.id"]),
        sa.ForeignKeyConstraint(["team_id"], ["team.id"]),
        sa.UniqueConstraint("meet_id", "team_id", name="uq_meet_team"),
    )
    op.create_index("ix_meet_team_meet_id", "meet_team", ["meet_id"])
    op.create_index("ix_meet_team_team_id", "meet_team", ["team_id"])

    op.create_table(
        "meet_wrestler_status",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("meet_id", sa.Integer(), nullable=False),
        sa.Column("wrestler_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["meet_id"], ["meet.id"]),
        sa.ForeignKeyConstraint(["wrestler_id"], ["wrestler.id"]),
        sa.UniqueConstraint("meet_id", "wrestler_id", name="uq_meet_wrestler_status"),
    )
    op.create_index("ix_meet_wrestler_status_meet_id", "meet_wrestler_status", ["meet_id"])
    op.create_index("ix_meet_wrestler_status_wrestler_id", "meet_wrestler_status", ["wrestler_id"])

    op.create_table(
        "bout",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("meet_id", sa.Integer(), nullable=False),
        sa.Column("red_id", sa.Integer(), nullable=False),
        sa.Column("green_id", sa.Integer(), nullable=False),
        sa.Column("pair_key", sa.String(), nullable=False),
        sa.Column("mat_index", sa.Integer(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=True),
        sa.Column("bout_type", sa.String(), nullable=False),
        sa.Column("locked", sa.Boolean(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["meet_id"], ["meet.id"]),
        sa.ForeignKeyConstraint(["red_id"], ["wrestler.id"]),
        sa.ForeignKeyConstraint(["green_id"], ["wrestler.id"]),
        sa.UniqueConstraint("meet_id", "pair_key", name="uq_bout_meet_pair"),
    )
    op.create_index("ix_bout_meet_id", "bout", ["meet_id"])

    # Coach vetoes; enforced by the generator
    op.create_table(
        "excluded_pair",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("meet_id", sa.Integer(), nullable=False),
        sa.Column("pair_key", sa.String(), nullable=False),
        sa.Column("wrestler_a_id", sa.Integer(), nullable=False),
        sa.Column("wrestler_b_id", sa.Integer(), nullable=False),
        sa.Column("created_by_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["meet_id"], ["meet.id"]),
        sa.ForeignKeyConstraint(["wrestler_a_id"], ["wrestler.id"]),
        sa.ForeignKeyConstraint(["wrestler_b_id"], ["wrestler.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["user.id"]),
        sa.UniqueConstraint("meet_id", "pair_key", name="uq_meet_excluded_pair"),
        sa.CheckConstraint("wrestler_a_id < wrestler_b_id", name="ck_excluded_pair_order"),
    )
    op.create_index("ix_excluded_pair_meet_id", "excluded_pair", ["meet_id"])

    # Informational only; explains why a wrestler ended a run short of bouts
    op.create_table(
        "rejected_pair",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("meet_id", sa.Integer(), nullable=False),
        sa.Column("pair_key", sa.String(), nullable=False),
        sa.Column("wrestler_a_id", sa.Integer(), nullable=False),
        sa.Column("wrestler_b_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("run_id", sa.String(), nullable=False),
        sa.Column("created_by_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["meet_id"], ["meet.id"]),
        sa.ForeignKeyConstraint(["wrestler_a_id"], ["wrestler.id"]),
        sa.ForeignKeyConstraint(["wrestler_b_id"], ["wrestler.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["user.id"]),
        sa.UniqueConstraint("meet_id", "pair_key", name="uq_meet_rejected_pair"),
        sa.CheckConstraint("wrestler_a_id < wrestler_b_id", name="ck_rejected_pair_order"),
    )
    op.create_index("ix_rejected_pair_meet_id", "rejected_pair", ["meet_id"])
    op.create_index("ix_rejected_pair_run_id", "rejected_pair", ["run_id"])

    op.create_table(
        "meet_change",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("meet_id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["meet_id"], ["meet.id"]),
        sa.ForeignKeyConstraint(["actor_id"], ["user.id"]),
    )
    op.create_index("ix_meet_change_meet_id", "meet_change", ["meet_id"])


def downgrade() -> None:
    op.drop_table("meet_change")
    op.drop_table("rejected_pair")
    op.drop_table("excluded_pair")
    op.drop_table("bout")
    op.drop_table("meet_wrestler_status")
    op.drop_table("meet_team")
    op.drop_table("meet")
    op.drop_table("team_mat_rule")
    op.drop_table("wrestler")
    op.drop_table("user")
    op.drop_table("team")
