"""Domain error taxonomy.

Every error carries the HTTP status the boundary maps it to; the global
handler in `examprep.api.error_handlers` renders `{"detail": message}`.
"""


class DomainError(Exception):
    status_code = 400
    message = "bad request"

    def __init__(self, message: str = None):
        self.message = message or self.message
        super().__init__(self.message)


class InvalidMetricError(DomainError):
    message = "invalid metric"


class InvalidRangeError(DomainError):
    message = "invalid range"


class ValidationError(DomainError):
    message = "invalid request"


class NotFoundError(DomainError):
    status_code = 404
    message = "not found"


class UserNotFoundError(NotFoundError):
    message = "user not found"


class ConflictError(DomainError):
    status_code = 409
    message = "conflict"


class DuplicateUsernameError(ConflictError):
    message = "username already exists"


class DuplicateEmailError(ConflictError):
    message = "email already exists"


class DuplicateCouponCodeError(ConflictError):
    message = "coupon code already exists"


class CouponUnavailableError(ConflictError):
    message = "coupon cannot be redeemed"


class AlreadyAnsweredError(ConflictError):
    message = "question already answered"


class SessionClosedError(ConflictError):
    message = "practice session is not in progress"
