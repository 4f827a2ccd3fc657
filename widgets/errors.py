class WidgetsAPIError(Exception):
    code = "invalid_request"
    status = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def as_json(self) -> dict:
        return {"error": self.code, "error_description": self.message}


class InvalidRequest(WidgetsAPIError):
    """Malformed request body or parameter."""

    code = "invalid_request"
    status = 400


class InvalidReference(WidgetsAPIError):
    """Unknown sidebar or widget id."""

    code = "invalid_reference"
    status = 400


class InvalidOperation(WidgetsAPIError):
    """A permission predicate broke its contract by returning a non-bool."""

    code = "invalid_operation"
    status = 400


class NotFound(WidgetsAPIError):
    code = "not_found"
    status = 404


class InternalInconsistency(WidgetsAPIError):
    """The placement map holds a widget in more than one place."""

    code = "internal_inconsistency"
    status = 500
