class ServiceError(Exception):
    status = 400

    def __init__(self, code="SERVICE_ERROR", message="Service error", details=None, status=None):
        self.code = code
        self.message = message
        self.details = details or {}
        if status is not None:
            self.status = status
        super().__init__(message)


class ValidationFailed(ServiceError):
    status = 400

    def __init__(self, message="Validation failed", details=None, code="VALIDATION_ERROR"):
        super().__init__(code=code, message=message, details=details)


class NotFound(ServiceError):
    status = 404

    def __init__(self, message="Resource not found", details=None):
        super().__init__(code="NOT_FOUND", message=message, details=details)


class Forbidden(ServiceError):
    status = 403

    def __init__(self, message="Not allowed", details=None):
        super().__init__(code="FORBIDDEN", message=message, details=details)


class Conflict(ServiceError):
    status = 409

    def __init__(self, message="Conflict", details=None, code="CONFLICT"):
        super().__init__(code=code, message=message, details=details)


class PersistenceError(ServiceError):
    status = 500

    def __init__(self, message="Could not save changes", details=None):
        super().__init__(code="PERSISTENCE_ERROR", message=message, details=details)
