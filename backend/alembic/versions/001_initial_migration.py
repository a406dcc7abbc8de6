"""Initial migration: event context, scores, filters, schedules and domain event outbox

Revision ID: 001_initial
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Event context (populated by the event management service)
    op.create_table(
        "event",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("timezone", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "eventday",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("day_id", sa.String(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.UniqueConstraint("event_id", "day_id", name="uq_event_day"),
    )
    op.create_index(op.f("ix_eventday_event_id"), "eventday", ["event_id"], unique=False)

    op.create_table(
        "category",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("category_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.UniqueConstraint("event_id", "category_id", name="uq_event_category"),
    )
    op.create_index(op.f("ix_category_event_id"), "category", ["event_id"], unique=False)

    op.create_table(
        "wod",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("wod_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("estimated_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("day_id", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.UniqueConstraint("event_id", "wod_id", name="uq_event_wod"),
    )
    op.create_index(op.f("ix_wod_event_id"), "wod", ["event_id"], unique=False)

    op.create_table(
        "athlete",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "athleteregistration",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("athlete_id", sa.String(), nullable=False),
        sa.Column("category_id", sa.String(), nullable=False),
        sa.Column("registered_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["athlete_id"], ["athlete.id"]),
        sa.UniqueConstraint("event_id", "athlete_id", name="uq_event_athlete"),
    )
    op.create_index(op.f("ix_athleteregistration_event_id"), "athleteregistration", ["event_id"], unique=False)

    # Scores (written by the scoring service) and elimination filters
    op.create_table(
        "score",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("filter_id", sa.String(), nullable=False),
        sa.Column("athlete_id", sa.String(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("match_id", sa.String(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["athlete_id"], ["athlete.id"]),
    )
    op.create_index(op.f("ix_score_event_id"), "score", ["event_id"], unique=False)
    op.create_index(op.f("ix_score_filter_id"), "score", ["filter_id"], unique=False)

    op.create_table(
        "classificationfilter",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("filter_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("elimination_count", sa.Integer(), nullable=False),
        sa.Column("elimination_type", sa.String(), nullable=False),
        sa.Column("eliminated_athletes", sa.JSON(), nullable=True),
        sa.Column("remaining_athletes", sa.JSON(), nullable=True),
        sa.Column("eliminated_at", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.UniqueConstraint("event_id", "filter_id", name="uq_event_filter"),
    )
    op.create_index(op.f("ix_classificationfilter_event_id"), "classificationfilter", ["event_id"], unique=False)

    # Schedule aggregate snapshots
    op.create_table(
        "schedule",
        sa.Column("schedule_id", sa.String(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("stage", sa.Integer(), nullable=False),
        sa.Column("parent_schedule_id", sa.String(), nullable=True),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("days", sa.JSON(), nullable=False),
        sa.Column("active_athletes", sa.JSON(), nullable=True),
        sa.Column("progression_results", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("last_progression_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("schedule_id"),
    )
    op.create_index(op.f("ix_schedule_event_id"), "schedule", ["event_id"], unique=False)

    op.create_table(
        "domain_event_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("message_id", sa.String(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("schedule_id", sa.String(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_domain_event_log_event_type"), "domain_event_log", ["event_type"], unique=False)
    op.create_index(op.f("ix_domain_event_log_message_id"), "domain_event_log", ["message_id"], unique=True)
    op.create_index(op.f("ix_domain_event_log_event_id"), "domain_event_log", ["event_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_domain_event_log_message_id"), table_name="domain_event_log")
    op.drop_index(op.f("ix_domain_event_log_event_id"), table_name="domain_event_log")
    op.drop_index(op.f("ix_domain_event_log_event_type"), table_name="domain_event_log")
    op.drop_table("domain_event_log")
    op.drop_index(op.f("ix_schedule_event_id"), table_name="schedule")
    op.drop_table("schedule")
    op.drop_index(op.f("ix_classificationfilter_event_id"), table_name="classificationfilter")
    op.drop_table("classificationfilter")
    op.drop_index(op.f("ix_score_filter_id"), table_name="score")
    op.drop_index(op.f("ix_score_event_id"), table_name="score")
    op.drop_table("score")
    op.drop_index(op.f("ix_athleteregistration_event_id"), table_name="athleteregistration")
    op.drop_table("athleteregistration")
    op.drop_table("athlete")
    op.drop_index(op.f("ix_wod_event_id"), table_name="wod")
    op.drop_table("wod")
    op.drop_index(op.f("ix_category_event_id"), table_name="category")
    op.drop_table("category")
    op.drop_index(op.f("ix_eventday_event_id"), table_name="eventday")
    op.drop_table("eventday")
    op.drop_table("event")
