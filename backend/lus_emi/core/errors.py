class EMIError(Exception):
    """Base error raised by the service layer; rendered as {"message": ...}."""

    status_code = 400

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra


class ValidationError(EMIError):
    status_code = 400


class LimitExceededError(EMIError):
    status_code = 400


class PermissionDeniedError(EMIError):
    status_code = 403


class NotFoundError(EMIError):
    status_code = 404


class ConflictError(EMIError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"Cannot move {entity} from '{current}' to '{target}'",
            current_status=current,
            requested_status=target,
        )
