from lms_quiz.db.models.course_groups import CourseGroup, GroupMember
from lms_quiz.db.models.question_usages import QuestionAttemptRecord, QuestionUsageRecord
from lms_quiz.db.models.questions import Question
from lms_quiz.db.models.quiz_attempts import QuizAttempt
from lms_quiz.db.models.quiz_events import QuizEvent
from lms_quiz.db.models.quiz_grades import QuizGrade
from lms_quiz.db.models.quiz_overrides import QuizOverride
from lms_quiz.db.models.quiz_sections import QuizSection
from lms_quiz.db.models.quiz_slots import QuizSlot
from lms_quiz.db.models.quizzes import Quiz

__all__ = [
    "CourseGroup",
    "GroupMember",
    "Question",
    "QuestionAttemptRecord",
    "QuestionUsageRecord",
    "Quiz",
    "QuizAttempt",
    "QuizEvent",
    "QuizGrade",
    "QuizOverride",
    "QuizSection",
    "QuizSlot",
]
