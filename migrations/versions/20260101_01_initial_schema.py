"""Initial hybrid coach schema."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20260101_01"
down_revision = None
branch_labels = None
depends_on = None


def _enum() -> sa.String:
    # Enums are stored by value in plain VARCHAR columns.
    return sa.String(length=40)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(),
        nullable=True,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(),
        nullable=True,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    # Profile
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=True),
        sa.Column("hyrox_level", _enum(), nullable=False),
        sa.Column("running_level", _enum(), nullable=False),
        sa.Column("strength_level", _enum(), nullable=False),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_user_profiles_user_id", "user_profiles", ["user_id"], unique=True)

    op.create_table(
        "schedule_availability",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("monday", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("tuesday", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("wednesday", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("thursday", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("friday", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("saturday", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sunday", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("minimum_sessions_per_week", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("maximum_sessions_per_week", sa.Integer(), nullable=False, server_default="5"),
    )

    op.create_table(
        "training_backgrounds",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("has_structured_training", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("training_years", sa.Integer(), nullable=True),
        sa.Column("previous_experience", sa.Text(), nullable=True),
    )

    op.create_table(
        "training_goals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("goal_type", _enum(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_date", sa.Date(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", _enum(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_training_goals_profile_id", "training_goals", ["profile_id"], unique=False)

    op.create_table(
        "injury_limitations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "profile_id",
            sa.Integer(),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("body_part", sa.String(length=60), nullable=False),
        sa.Column("injury_type", _enum(), nullable=False),
        sa.Column("reported_date", sa.Date(), nullable=False),
        sa.Column("status", _enum(), nullable=False),
        sa.Column("movement_restrictions", sa.Text(), nullable=True),
        sa.Column("resolved_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_injury_limitations_profile_id", "injury_limitations", ["profile_id"], unique=False)

    # Exercise catalog
    op.create_table(
        "muscle_groups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=60), nullable=False, unique=True),
        sa.Column("category", sa.String(length=40), nullable=True),
    )

    op.create_table(
        "equipment",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=60), nullable=False, unique=True),
    )

    op.create_table(
        "contraindications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("injury_type", sa.String(length=60), nullable=False),
        sa.Column("movement_restriction", sa.String(length=60), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.UniqueConstraint("injury_type", "movement_restriction", name="uq_contraindication"),
    )

    op.create_table(
        "exercises",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("primary_discipline", _enum(), nullable=False),
        sa.Column("difficulty_level", _enum(), nullable=False),
        sa.Column("intensity_level", _enum(), nullable=False),
        sa.Column("session_type", _enum(), nullable=True),
        sa.Column("measure", sa.String(length=10), nullable=False, server_default="reps"),
        sa.Column("base_duration_seconds", sa.Integer(), nullable=True),
    )
    op.create_index("ix_exercises_primary_discipline", "exercises", ["primary_discipline"], unique=False)

    op.create_table(
        "exercise_muscle_groups",
        sa.Column(
            "exercise_id",
            sa.Integer(),
            sa.ForeignKey("exercises.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "muscle_group_id",
            sa.Integer(),
            sa.ForeignKey("muscle_groups.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "exercise_equipment",
        sa.Column(
            "exercise_id",
            sa.Integer(),
            sa.ForeignKey("exercises.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "equipment_id",
            sa.Integer(),
            sa.ForeignKey("equipment.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "exercise_movement_patterns",
        sa.Column(
            "exercise_id",
            sa.Integer(),
            sa.ForeignKey("exercises.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("movement_pattern", _enum(), primary_key=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "exercise_contraindications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "exercise_id",
            sa.Integer(),
            sa.ForeignKey("exercises.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "contraindication_id",
            sa.Integer(),
            sa.ForeignKey("contraindications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("severity", sa.String(length=20), nullable=False, server_default="relative"),
        sa.Column("recommended_substitute_ids", sa.JSON(), nullable=True),
        sa.UniqueConstraint("exercise_id", "contraindication_id", name="uq_exercise_contraindication"),
    )
    op.create_index(
        "ix_exercise_contraindications_exercise_id",
        "exercise_contraindications",
        ["exercise_id"],
        unique=False,
    )

    op.create_table(
        "exercise_progressions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "base_exercise_id",
            sa.Integer(),
            sa.ForeignKey("exercises.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "related_exercise_id",
            sa.Integer(),
            sa.ForeignKey("exercises.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("relation", _enum(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.UniqueConstraint(
            "base_exercise_id", "related_exercise_id", "relation", name="uq_exercise_progression"
        ),
    )
    op.create_index(
        "ix_exercise_progressions_base_exercise_id",
        "exercise_progressions",
        ["base_exercise_id"],
        unique=False,
    )

    # Plans
    op.create_table(
        "training_plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("total_weeks", sa.Integer(), nullable=False),
        sa.Column("training_days_per_week", sa.Integer(), nullable=False),
        sa.Column(
            "primary_goal_id",
            sa.Integer(),
            sa.ForeignKey("training_goals.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", _enum(), nullable=False),
        sa.Column("current_week", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("revision", sa.Integer(), nullable=False),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_training_plans_user_id", "training_plans", ["user_id"], unique=False)

    op.create_table(
        "plan_metadata",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "plan_id",
            sa.Integer(),
            sa.ForeignKey("training_plans.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("algorithm_version", sa.String(length=20), nullable=False),
        sa.Column("generation_parameters", sa.JSON(), nullable=True),
        sa.Column("profile_snapshot", sa.JSON(), nullable=True),
        sa.Column("modification_history", sa.JSON(), nullable=False),
        sa.Column("warnings", sa.JSON(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "training_weeks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "plan_id",
            sa.Integer(),
            sa.ForeignKey("training_plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("phase", _enum(), nullable=False),
        sa.Column("weekly_volume_minutes", sa.Integer(), nullable=False),
        sa.Column("intensity_level", _enum(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.UniqueConstraint("plan_id", "week_number", name="uq_training_week_number"),
    )
    op.create_index("ix_training_weeks_plan_id", "training_weeks", ["plan_id"], unique=False)

    op.create_table(
        "workouts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "week_id",
            sa.Integer(),
            sa.ForeignKey("training_weeks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("discipline", _enum(), nullable=False),
        sa.Column("session_type", _enum(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("estimated_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("intensity_level", _enum(), nullable=False),
        sa.Column("is_key_workout", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_placeholder", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completion_status", _enum(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_workouts_week_id", "workouts", ["week_id"], unique=False)
    op.create_index("ix_workouts_scheduled_date", "workouts", ["scheduled_date"], unique=False)

    op.create_table(
        "workout_exercises",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "workout_id",
            sa.Integer(),
            sa.ForeignKey("workouts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("exercise_id", sa.Integer(), sa.ForeignKey("exercises.id"), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("sets", sa.Integer(), nullable=True),
        sa.Column("reps", sa.Integer(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("rest_seconds", sa.Integer(), nullable=True),
        sa.Column("intensity_guidance", sa.String(length=120), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.UniqueConstraint("workout_id", "order_index", name="uq_workout_exercise_order"),
    )
    op.create_index("ix_workout_exercises_workout_id", "workout_exercises", ["workout_id"], unique=False)

    op.create_table(
        "plan_adaptations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "plan_id",
            sa.Integer(),
            sa.ForeignKey("training_plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("trigger", _enum(), nullable=False),
        sa.Column("adaptation_type", _enum(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("workouts_affected", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("warnings", sa.JSON(), nullable=False),
        sa.Column("applied_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_plan_adaptations_plan_id", "plan_adaptations", ["plan_id"], unique=False)

    # Progress
    op.create_table(
        "completion_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column(
            "workout_id",
            sa.Integer(),
            sa.ForeignKey("workouts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("completed_at", sa.DateTime(), nullable=False),
        sa.Column("actual_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_completion_history_user_id", "completion_history", ["user_id"], unique=False)
    op.create_index("ix_completion_history_workout_id", "completion_history", ["workout_id"], unique=False)
    op.create_index("ix_completion_history_completed_at", "completion_history", ["completed_at"], unique=False)

    op.create_table(
        "user_streaks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_weekly_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_weekly_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_workout_date", sa.Date(), nullable=True),
        _updated_at(),
    )


def downgrade() -> None:
    op.drop_table("user_streaks")
    op.drop_index("ix_completion_history_completed_at", table_name="completion_history")
    op.drop_index("ix_completion_history_workout_id", table_name="completion_history")
    op.drop_index("ix_completion_history_user_id", table_name="completion_history")
    op.drop_table("completion_history")
    op.drop_index("ix_plan_adaptations_plan_id", table_name="plan_adaptations")
    op.drop_table("plan_adaptations")
    op.drop_index("ix_workout_exercises_workout_id", table_name="workout_exercises")
    op.drop_table("workout_exercises")
    op.drop_index("ix_workouts_scheduled_date", table_name="workouts")
    op.drop_index("ix_workouts_week_id", table_name="workouts")
    op.drop_table("workouts")
    op.drop_index("ix_training_weeks_plan_id", table_name="training_weeks")
    op.drop_table("training_weeks")
    op.drop_table("plan_metadata")
    op.drop_index("ix_training_plans_user_id", table_name="training_plans")
    op.drop_table("training_plans")
    op.drop_index("ix_exercise_progressions_base_exercise_id", table_name="exercise_progressions")
    op.drop_table("exercise_progressions")
    op.drop_index("ix_exercise_contraindications_exercise_id", table_name="exercise_contraindications")
    op.drop_table("exercise_contraindications")
    op.drop_table("exercise_movement_patterns")
    op.drop_table("exercise_equipment")
    op.drop_table("exercise_muscle_groups")
    op.drop_index("ix_exercises_primary_discipline", table_name="exercises")
    op.drop_table("exercises")
    op.drop_table("contraindications")
    op.drop_table("equipment")
    op.drop_table("muscle_groups")
    op.drop_index("ix_injury_limitations_profile_id", table_name="injury_limitations")
    op.drop_table("injury_limitations")
    op.drop_index("ix_training_goals_profile_id", table_name="training_goals")
    op.drop_table("training_goals")
    op.drop_table("training_backgrounds")
    op.drop_table("schedule_availability")
    op.drop_index("ix_user_profiles_user_id", table_name="user_profiles")
    op.drop_table("user_profiles")
