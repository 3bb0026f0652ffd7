"""Error taxonomy shared by the quiz runner, the socket handlers and the HTTP API.

Every error carries a stable ``code`` (sent to clients next to the message)
and the HTTP status the REST facade answers with.
"""


class QuizError(Exception):
    code = 'QuizError'
    status_code = 400
    default_message = 'Quiz operation failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class ValidationError(QuizError):
    code = 'ValidationError'
    default_message = 'Invalid request'


class AlreadyActive(QuizError):
    code = 'AlreadyActive'
    status_code = 409
    default_message = 'A quiz session is already active. Please end the current session first.'


class NoQuestionsAvailable(QuizError):
    code = 'NoQuestionsAvailable'
    status_code = 409
    default_message = 'No questions available to start quiz'


class NoActiveSession(QuizError):
    code = 'NoActiveSession'
    status_code = 409
    default_message = 'No active quiz session'


class NotJoined(QuizError):
    code = 'NotJoined'
    status_code = 403
    default_message = 'User not found in quiz'


class NoActiveQuestion(QuizError):
    code = 'NoActiveQuestion'
    status_code = 409
    default_message = 'No active question'


class StaleQuestion(QuizError):
    code = 'StaleQuestion'
    status_code = 409
    default_message = 'This question is no longer active'


class TimeExceeded(QuizError):
    code = 'TimeExceeded'
    default_message = 'Response time exceeded question time limit'


class DuplicateAnswer(QuizError):
    code = 'DuplicateAnswer'
    status_code = 409
    default_message = 'You have already answered this question'


class AdminRequired(QuizError):
    code = 'AdminRequired'
    status_code = 403
    default_message = 'Admin access required'


class NotFound(QuizError):
    code = 'NotFound'
    status_code = 404
    default_message = 'Record not found'


class StoreUnavailable(QuizError):
    code = 'StoreUnavailable'
    status_code = 503
    default_message = 'Document store unavailable'


class ConstraintViolation(StoreUnavailable):
    """A write was refused by a uniqueness or integrity constraint."""
    code = 'ConstraintViolation'
    status_code = 409
    default_message = 'Write rejected by a store constraint'
