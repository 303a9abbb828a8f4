class QuestionEngineError(Exception):
    pass


class QuestionNotFoundError(QuestionEngineError):
    pass


class UnknownSlotError(QuestionEngineError):
    pass


class UsageNotFoundError(QuestionEngineError):
    pass
