class QuizAttemptError(Exception):
    pass


class QuizConfigurationError(QuizAttemptError):
    pass


class UngradeableQuizError(QuizConfigurationError):
    def __init__(self, quiz_id: int, grade: float) -> None:
        super().__init__(
            f"quiz {quiz_id} has a target grade of {grade} but no question marks to scale it from"
        )
        self.quiz_id = quiz_id
        self.grade = grade


class QuestionDraftOnlyError(QuizConfigurationError):
    def __init__(self, question_name: str) -> None:
        super().__init__(f"question '{question_name}' only has a draft version")
        self.question_name = question_name


class NotEnoughRandomQuestionsError(QuizConfigurationError):
    def __init__(self, slot: int) -> None:
        super().__init__(f"not enough questions available to fill random slot {slot}")
        self.slot = slot


class ForcedQuestionUnavailableError(QuizConfigurationError):
    def __init__(self, slot: int, question_id: int) -> None:
        super().__init__(f"forced question {question_id} is not available for slot {slot}")
        self.slot = slot
        self.question_id = question_id


class PreviousAttemptMissingError(QuizConfigurationError):
    pass


class SlotNumberingError(QuizAttemptError):
    def __init__(self, expected_slot: int, assigned_slot: int) -> None:
        super().__init__(
            f"slot numbers have got confused: expected {expected_slot}, engine assigned {assigned_slot}"
        )
        self.expected_slot = expected_slot
        self.assigned_slot = assigned_slot


class InvalidStateTransitionError(QuizAttemptError):
    def __init__(self, from_state: str | None, to_state: str) -> None:
        super().__init__(f"attempt cannot move from {from_state!r} to {to_state!r}")
        self.from_state = from_state
        self.to_state = to_state


class QuizNotFoundError(QuizAttemptError):
    pass


class AttemptNotFoundError(QuizAttemptError):
    pass


class QuestionUsageNotFoundError(QuizAttemptError):
    pass


class AttemptAccessError(QuizAttemptError):
    pass


class AttemptAlreadyClosedError(QuizAttemptError):
    pass
