from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import IntEnum

from lms_quiz.attempts.constants import ATTEMPT_STATE_FINISHED, ATTEMPT_STATE_IN_PROGRESS
from lms_quiz.attempts.permissions import ViewerCapabilities
from lms_quiz.core.config import get_settings
from lms_quiz.db.models.quiz_attempts import QuizAttempt
from lms_quiz.db.models.quizzes import Quiz

DISPLAY_HIDDEN = 0
DISPLAY_VISIBLE = 1
DISPLAY_EDITABLE = 2

MARKS_HIDDEN = 0
MARKS_MAX_ONLY = 1
MARKS_MARK_AND_MAX = 2


class ReviewPhase(IntEnum):
    DURING = 0x10000
    IMMEDIATELY_AFTER = 0x01000
    LATER_WHILE_OPEN = 0x00100
    AFTER_CLOSE = 0x00010


@dataclass(slots=True)
class ReviewOptions:
    attempt: int = DISPLAY_HIDDEN
    correctness: int = DISPLAY_HIDDEN
    marks: int = MARKS_HIDDEN
    feedback: int = DISPLAY_HIDDEN
    numpartscorrect: int = DISPLAY_HIDDEN
    manualcomment: int = DISPLAY_HIDDEN
    generalfeedback: int = DISPLAY_HIDDEN
    rightanswer: int = DISPLAY_HIDDEN
    overallfeedback: int = DISPLAY_HIDDEN
    history: int = DISPLAY_HIDDEN
    flags: int = DISPLAY_VISIBLE
    userinfoinhistory: int | None = None
    readonly: bool = True


@dataclass(slots=True)
class CombinedReviewOptions:
    feedback: bool
    generalfeedback: bool
    rightanswer: bool
    overallfeedback: bool
    marks: int


def _extract(bitmask: int, phase: ReviewPhase, when_set: int = DISPLAY_VISIBLE, when_not_set: int = DISPLAY_HIDDEN) -> int:
    return when_set if int(bitmask) & int(phase) else when_not_set


def review_options_from_quiz(quiz: Quiz, phase: ReviewPhase) -> ReviewOptions:
    feedback = _extract(quiz.review_specific_feedback, phase)
    return ReviewOptions(
        attempt=_extract(quiz.review_attempt, phase),
        correctness=_extract(quiz.review_correctness, phase),
        marks=_extract(
            quiz.review_max_marks,
            phase,
            _extract(quiz.review_marks, phase, MARKS_MARK_AND_MAX, MARKS_MAX_ONLY),
            MARKS_HIDDEN,
        ),
        feedback=feedback,
        numpartscorrect=feedback,
        manualcomment=feedback,
        generalfeedback=_extract(quiz.review_general_feedback, phase),
        rightanswer=_extract(quiz.review_right_answer, phase),
        overallfeedback=_extract(quiz.review_overall_feedback, phase),
    )


def resolve_review_phase(
    *,
    attempt_state: str,
    time_finish: int,
    time_close: int,
    now: int,
    immediately_after_seconds: int | None = None,
) -> ReviewPhase:
    if attempt_state == ATTEMPT_STATE_IN_PROGRESS:
        return ReviewPhase.DURING
    if immediately_after_seconds is None:
        immediately_after_seconds = get_settings().quiz_immediately_after_seconds
    if time_close and now >= time_close:
        return ReviewPhase.AFTER_CLOSE
    if now < time_finish + immediately_after_seconds:
        return ReviewPhase.IMMEDIATELY_AFTER
    return ReviewPhase.LATER_WHILE_OPEN


def attempt_review_phase(
    quiz: Quiz,
    attempt: QuizAttempt,
    *,
    now: int,
    time_close: int | None = None,
    immediately_after_seconds: int | None = None,
) -> ReviewPhase:
    return resolve_review_phase(
        attempt_state=attempt.state,
        time_finish=int(attempt.time_finish or 0),
        time_close=int(quiz.time_close if time_close is None else time_close),
        now=now,
        immediately_after_seconds=immediately_after_seconds,
    )


def flag_display_option(attempt: QuizAttempt, viewer: ViewerCapabilities) -> int:
    if not viewer.can_flag:
        return DISPLAY_HIDDEN
    if int(attempt.user_id) == viewer.user_id:
        return DISPLAY_EDITABLE
    return DISPLAY_VISIBLE


def get_review_options(
    quiz: Quiz,
    attempt: QuizAttempt,
    viewer: ViewerCapabilities,
    *,
    now: int,
    time_close: int | None = None,
    immediately_after_seconds: int | None = None,
) -> ReviewOptions:
    phase = attempt_review_phase(
        quiz,
        attempt,
        now=now,
        time_close=time_close,
        immediately_after_seconds=immediately_after_seconds,
    )
    options = review_options_from_quiz(quiz, phase)
    options.flags = flag_display_option(attempt, viewer)

    # Comment links only make sense once the attempt is closed.
    if (
        attempt.id is not None
        and attempt.state == ATTEMPT_STATE_FINISHED
        and not attempt.preview
        and viewer.can_grade
    ):
        options.manualcomment = DISPLAY_VISIBLE

    # Previews show staff what students would see.
    if not attempt.preview and viewer.sees_everything:
        options.attempt = DISPLAY_VISIBLE
        options.correctness = DISPLAY_VISIBLE
        options.marks = MARKS_MARK_AND_MAX
        options.feedback = DISPLAY_VISIBLE
        options.numpartscorrect = DISPLAY_VISIBLE
        options.manualcomment = DISPLAY_VISIBLE
        options.generalfeedback = DISPLAY_VISIBLE
        options.rightanswer = DISPLAY_VISIBLE
        options.overallfeedback = DISPLAY_VISIBLE
        options.history = DISPLAY_VISIBLE
        options.userinfoinhistory = int(attempt.user_id)
    return options


_COMBINED_FIELDS = ("feedback", "generalfeedback", "rightanswer", "overallfeedback")


def get_combined_review_options(
    quiz: Quiz,
    attempts: Sequence[QuizAttempt],
    *,
    now: int,
    time_close: int | None = None,
    immediately_after_seconds: int | None = None,
) -> tuple[CombinedReviewOptions, CombinedReviewOptions]:
    """Return (visible in some attempt, visible in all attempts)."""

    some = CombinedReviewOptions(
        feedback=False,
        generalfeedback=False,
        rightanswer=False,
        overallfeedback=False,
        marks=MARKS_HIDDEN,
    )
    every = CombinedReviewOptions(
        feedback=True,
        generalfeedback=True,
        rightanswer=True,
        overallfeedback=True,
        marks=MARKS_MARK_AND_MAX,
    )
    if not attempts:
        return some, replace(some)

    for attempt in attempts:
        phase = attempt_review_phase(
            quiz,
            attempt,
            now=now,
            time_close=time_close,
            immediately_after_seconds=immediately_after_seconds,
        )
        options = review_options_from_quiz(quiz, phase)
        for name in _COMBINED_FIELDS:
            visible = bool(getattr(options, name))
            setattr(some, name, getattr(some, name) or visible)
            setattr(every, name, getattr(every, name) and visible)
        some.marks = max(some.marks, options.marks)
        every.marks = min(every.marks, options.marks)
    return some, every
