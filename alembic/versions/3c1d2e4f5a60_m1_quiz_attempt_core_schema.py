"""m1_quiz_attempt_core_schema

Revision ID: 3c1d2e4f5a60
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3c1d2e4f5a60"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "quizzes",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("course_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("grade_method", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("grade", sa.Numeric(10, 5), nullable=False, server_default=sa.text("10")),
        sa.Column("sum_grades", sa.Numeric(10, 5), nullable=False, server_default=sa.text("0")),
        sa.Column("decimal_points", sa.Integer(), nullable=False, server_default=sa.text("2")),
        sa.Column("time_open", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("time_close", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("time_limit", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("grace_period", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "overdue_handling",
            sa.String(length=16),
            nullable=False,
            server_default=sa.text("'autosubmit'"),
        ),
        sa.Column("attempt_on_last", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("questions_per_page", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("shuffle_answers", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "preferred_behaviour",
            sa.String(length=32),
            nullable=False,
            server_default=sa.text("'deferredfeedback'"),
        ),
        sa.Column("review_attempt", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("review_correctness", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("review_marks", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("review_max_marks", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("review_specific_feedback", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("review_general_feedback", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("review_right_answer", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("review_overall_feedback", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("time_modified", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("grade_method IN (1, 2, 3, 4)", name="ck_quizzes_grade_method"),
        sa.CheckConstraint(
            "overdue_handling IN ('autosubmit','graceperiod','autoabandon')",
            name="ck_quizzes_overdue_handling",
        ),
        sa.CheckConstraint("time_limit >= 0", name="ck_quizzes_time_limit_non_negative"),
        sa.CheckConstraint("grace_period >= 0", name="ck_quizzes_grace_period_non_negative"),
        sa.CheckConstraint(
            "questions_per_page >= 0",
            name="ck_quizzes_questions_per_page_non_negative",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_quizzes"),
    )
    op.create_index("idx_quizzes_course", "quizzes", ["course_id"], unique=False)

    op.create_table(
        "quiz_sections",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("quiz_id", sa.BigInteger(), nullable=False),
        sa.Column("first_slot", sa.Integer(), nullable=False),
        sa.Column("heading", sa.Text(), nullable=True),
        sa.Column("shuffle_questions", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.CheckConstraint("first_slot >= 1", name="ck_quiz_sections_first_slot_positive"),
        sa.ForeignKeyConstraint(["quiz_id"], ["quizzes.id"], name="fk_quiz_sections_quiz_id_quizzes"),
        sa.PrimaryKeyConstraint("id", name="pk_quiz_sections"),
        sa.UniqueConstraint("quiz_id", "first_slot", name="uq_quiz_sections_quiz_first_slot"),
    )

    op.create_table(
        "quiz_slots",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("quiz_id", sa.BigInteger(), nullable=False),
        sa.Column("slot", sa.Integer(), nullable=False),
        sa.Column("page", sa.Integer(), nullable=False),
        sa.Column("max_mark", sa.Numeric(12, 7), nullable=False),
        sa.Column("question_bank_entry_id", sa.BigInteger(), nullable=True),
        sa.Column("requested_version", sa.Integer(), nullable=True),
        sa.Column("filter_condition", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.CheckConstraint("slot >= 1", name="ck_quiz_slots_slot_positive"),
        sa.CheckConstraint("page >= 1", name="ck_quiz_slots_page_positive"),
        sa.CheckConstraint(
            "(question_bank_entry_id IS NOT NULL AND filter_condition IS NULL) "
            "OR (question_bank_entry_id IS NULL AND filter_condition IS NOT NULL)",
            name="ck_quiz_slots_fixed_or_random",
        ),
        sa.ForeignKeyConstraint(["quiz_id"], ["quizzes.id"], name="fk_quiz_slots_quiz_id_quizzes"),
        sa.PrimaryKeyConstraint("id", name="pk_quiz_slots"),
        sa.UniqueConstraint("quiz_id", "slot", name="uq_quiz_slots_quiz_slot"),
    )

    op.create_table(
        "course_groups",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("course_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_course_groups"),
    )
    op.create_index("idx_course_groups_course", "course_groups", ["course_id"], unique=False)

    op.create_table(
        "group_members",
        sa.Column("group_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["course_groups.id"],
            name="fk_group_members_group_id_course_groups",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("group_id", "user_id", name="pk_group_members"),
    )
    op.create_index("idx_group_members_user", "group_members", ["user_id"], unique=False)

    op.create_table(
        "quiz_overrides",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("quiz_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("group_id", sa.BigInteger(), nullable=True),
        sa.Column("time_open", sa.BigInteger(), nullable=True),
        sa.Column("time_close", sa.BigInteger(), nullable=True),
        sa.Column("time_limit", sa.BigInteger(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=True),
        sa.CheckConstraint("(user_id IS NULL) <> (group_id IS NULL)", name="ck_quiz_overrides_user_xor_group"),
        sa.CheckConstraint(
            "time_close IS NULL OR time_close >= 0",
            name="ck_quiz_overrides_time_close_non_negative",
        ),
        sa.CheckConstraint(
            "time_limit IS NULL OR time_limit >= 0",
            name="ck_quiz_overrides_time_limit_non_negative",
        ),
        sa.ForeignKeyConstraint(["quiz_id"], ["quizzes.id"], name="fk_quiz_overrides_quiz_id_quizzes"),
        sa.PrimaryKeyConstraint("id", name="pk_quiz_overrides"),
    )
    op.create_index("idx_quiz_overrides_quiz_user", "quiz_overrides", ["quiz_id", "user_id"], unique=False)
    op.create_index("idx_quiz_overrides_quiz_group", "quiz_overrides", ["quiz_id", "group_id"], unique=False)

    op.create_table(
        "questions",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("bank_entry_id", sa.BigInteger(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("qtype", sa.String(length=32), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("category_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "tags",
            postgresql.ARRAY(sa.String(length=64)),
            nullable=False,
            server_default=sa.text("'{}'"),
        ),
        sa.Column("default_mark", sa.Numeric(12, 7), nullable=False, server_default=sa.text("1")),
        sa.Column("variants", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.CheckConstraint("status IN ('ready','hidden','draft')", name="ck_questions_status"),
        sa.CheckConstraint("variants >= 1", name="ck_questions_variants_positive"),
        sa.PrimaryKeyConstraint("id", name="pk_questions"),
        sa.UniqueConstraint("bank_entry_id", "version", name="uq_questions_entry_version"),
    )
    op.create_index("idx_questions_category_status", "questions", ["category_id", "status"], unique=False)

    op.create_table(
        "question_usages",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("component", sa.String(length=32), nullable=False),
        sa.Column("preferred_behaviour", sa.String(length=32), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_question_usages"),
    )

    op.create_table(
        "question_attempts",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("usage_id", sa.BigInteger(), nullable=False),
        sa.Column("slot", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.BigInteger(), nullable=False),
        sa.Column("max_mark", sa.Numeric(12, 7), nullable=False),
        sa.Column("variant", sa.Integer(), nullable=False),
        sa.Column("shuffle_answers", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("state", sa.String(length=32), nullable=False),
        sa.Column("fraction", sa.Numeric(12, 7), nullable=True),
        sa.Column("response_summary", sa.Text(), nullable=True),
        sa.Column("time_started", sa.BigInteger(), nullable=False),
        sa.Column("started_by_user_id", sa.BigInteger(), nullable=True),
        sa.CheckConstraint("slot >= 1", name="ck_question_attempts_slot_positive"),
        sa.ForeignKeyConstraint(
            ["usage_id"],
            ["question_usages.id"],
            name="fk_question_attempts_usage_id_question_usages",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["question_id"],
            ["questions.id"],
            name="fk_question_attempts_question_id_questions",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_question_attempts"),
        sa.UniqueConstraint("usage_id", "slot", name="uq_question_attempts_usage_slot"),
    )
    op.create_index("idx_question_attempts_question", "question_attempts", ["question_id"], unique=False)

    op.create_table(
        "quiz_attempts",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("quiz_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("attempt", sa.Integer(), nullable=False),
        sa.Column("unique_id", sa.BigInteger(), nullable=True),
        sa.Column("layout", sa.Text(), nullable=False),
        sa.Column("current_page", sa.Integer(), nullable=False),
        sa.Column("preview", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("state", sa.String(length=16), nullable=False),
        sa.Column("time_start", sa.BigInteger(), nullable=False),
        sa.Column("time_finish", sa.BigInteger(), nullable=False),
        sa.Column("time_modified", sa.BigInteger(), nullable=False),
        sa.Column("time_modified_offline", sa.BigInteger(), nullable=False),
        sa.Column("time_check_state", sa.BigInteger(), nullable=True),
        sa.Column("sum_grades", sa.Numeric(10, 5), nullable=True),
        sa.Column("graded_notification_sent_time", sa.BigInteger(), nullable=True),
        sa.CheckConstraint(
            "state IN ('notstarted','inprogress','overdue','submitted','finished','abandoned')",
            name="ck_quiz_attempts_state",
        ),
        sa.CheckConstraint("attempt >= 1", name="ck_quiz_attempts_attempt_positive"),
        sa.ForeignKeyConstraint(["quiz_id"], ["quizzes.id"], name="fk_quiz_attempts_quiz_id_quizzes"),
        sa.ForeignKeyConstraint(
            ["unique_id"],
            ["question_usages.id"],
            name="fk_quiz_attempts_unique_id_question_usages",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_quiz_attempts"),
        sa.UniqueConstraint("quiz_id", "user_id", "attempt", name="uq_quiz_attempts_quiz_user_attempt"),
        sa.UniqueConstraint("unique_id", name="uq_quiz_attempts_unique_id"),
    )
    op.create_index("idx_quiz_attempts_state_check", "quiz_attempts", ["state", "time_check_state"], unique=False)
    op.create_index("idx_quiz_attempts_user_quiz", "quiz_attempts", ["user_id", "quiz_id"], unique=False)

    op.create_table(
        "quiz_grades",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("quiz_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("grade", sa.Numeric(10, 5), nullable=False),
        sa.Column("time_modified", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["quiz_id"], ["quizzes.id"], name="fk_quiz_grades_quiz_id_quizzes"),
        sa.PrimaryKeyConstraint("id", name="pk_quiz_grades"),
        sa.UniqueConstraint("quiz_id", "user_id", name="uq_quiz_grades_quiz_user"),
    )


def downgrade() -> None:
    op.drop_table("quiz_grades")
    op.drop_index("idx_quiz_attempts_user_quiz", table_name="quiz_attempts")
    op.drop_index("idx_quiz_attempts_state_check", table_name="quiz_attempts")
    op.drop_table("quiz_attempts")
    op.drop_index("idx_question_attempts_question", table_name="question_attempts")
    op.drop_table("question_attempts")
    op.drop_table("question_usages")
    op.drop_index("idx_questions_category_status", table_name="questions")
    op.drop_table("questions")
    op.drop_index("idx_quiz_overrides_quiz_group", table_name="quiz_overrides")
    op.drop_index("idx_quiz_overrides_quiz_user", table_name="quiz_overrides")
    op.drop_table("quiz_overrides")
    op.drop_index("idx_group_members_user", table_name="group_members")
    op.drop_table("group_members")
    op.drop_index("idx_course_groups_course", table_name="course_groups")
    op.drop_table("course_groups")
    op.drop_table("quiz_slots")
    op.drop_table("quiz_sections")
    op.drop_index("idx_quizzes_course", table_name="quizzes")
    op.drop_table("quizzes")
