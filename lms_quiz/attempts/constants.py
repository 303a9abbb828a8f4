from __future__ import annotations

ATTEMPT_STATE_NOT_STARTED = "notstarted"
ATTEMPT_STATE_IN_PROGRESS = "inprogress"
ATTEMPT_STATE_OVERDUE = "overdue"
ATTEMPT_STATE_SUBMITTED = "submitted"
ATTEMPT_STATE_FINISHED = "finished"
ATTEMPT_STATE_ABANDONED = "abandoned"

ATTEMPT_STATES: tuple[str, ...] = (
    ATTEMPT_STATE_NOT_STARTED,
    ATTEMPT_STATE_IN_PROGRESS,
    ATTEMPT_STATE_OVERDUE,
    ATTEMPT_STATE_SUBMITTED,
    ATTEMPT_STATE_FINISHED,
    ATTEMPT_STATE_ABANDONED,
)
OPEN_ATTEMPT_STATES: frozenset[str] = frozenset(
    {ATTEMPT_STATE_IN_PROGRESS, ATTEMPT_STATE_OVERDUE}
)
UNFINISHED_ATTEMPT_STATES: frozenset[str] = frozenset(
    {ATTEMPT_STATE_NOT_STARTED, ATTEMPT_STATE_IN_PROGRESS, ATTEMPT_STATE_OVERDUE}
)
TERMINAL_ATTEMPT_STATES: frozenset[str] = frozenset(
    {ATTEMPT_STATE_FINISHED, ATTEMPT_STATE_ABANDONED}
)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    ATTEMPT_STATE_NOT_STARTED: frozenset({ATTEMPT_STATE_IN_PROGRESS}),
    ATTEMPT_STATE_IN_PROGRESS: frozenset(
        {
            ATTEMPT_STATE_OVERDUE,
            ATTEMPT_STATE_SUBMITTED,
            ATTEMPT_STATE_FINISHED,
            ATTEMPT_STATE_ABANDONED,
        }
    ),
    ATTEMPT_STATE_OVERDUE: frozenset(
        {
            ATTEMPT_STATE_SUBMITTED,
            ATTEMPT_STATE_FINISHED,
            ATTEMPT_STATE_ABANDONED,
        }
    ),
    ATTEMPT_STATE_SUBMITTED: frozenset({ATTEMPT_STATE_FINISHED}),
    ATTEMPT_STATE_FINISHED: frozenset(),
    ATTEMPT_STATE_ABANDONED: frozenset(),
}

GRADE_METHOD_HIGHEST = 1
GRADE_METHOD_AVERAGE = 2
GRADE_METHOD_FIRST = 3
GRADE_METHOD_LAST = 4

OVERDUE_HANDLING_AUTOSUBMIT = "autosubmit"
OVERDUE_HANDLING_GRACEPERIOD = "graceperiod"
OVERDUE_HANDLING_AUTOABANDON = "autoabandon"

# Grades closer to zero than this are treated as zero.
ALMOST_ZERO = 0.000005

PAGE_BREAK = 0

EVENT_ATTEMPT_STARTED = "attempt_started"
EVENT_ATTEMPT_PREVIEW_STARTED = "attempt_preview_started"
EVENT_ATTEMPT_DELETED = "attempt_deleted"
EVENT_ATTEMPT_SUBMITTED = "attempt_submitted"
EVENT_ATTEMPT_BECAME_OVERDUE = "attempt_becameoverdue"
EVENT_ATTEMPT_ABANDONED = "attempt_abandoned"
EVENT_QUIZ_REPAGINATED = "quiz_repaginated"
EVENT_ATTEMPT_STATE_CHANGED = "attempt_state_changed"

CAPABILITY_ATTEMPT = "mod/quiz:attempt"
CAPABILITY_PREVIEW = "mod/quiz:preview"
CAPABILITY_GRADE = "mod/quiz:grade"
CAPABILITY_VIEW_REPORTS = "mod/quiz:viewreports"
CAPABILITY_VIEW_HIDDEN_GRADES = "moodle/grade:viewhidden"
CAPABILITY_FLAG_QUESTIONS = "moodle/question:flag"
