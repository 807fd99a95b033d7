from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base error for anything the API reports to the caller on purpose."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"success": False, "message": self.message}


class ValidationError(ApiError):
    status_code = 400

    def __init__(self, errors, message: str = "Validation failed"):
        super().__init__(message)
        # List of {"field": ..., "message": ...}
        self.errors = list(errors)

    def to_dict(self):
        data = super().to_dict()
        data["errors"] = self.errors
        return data

    @property
    def fields(self):
        return [item["field"] for item in self.errors]

    @classmethod
    def from_pydantic(cls, exc, required_messages=None, invalid_messages=None):
        """Flatten a pydantic ValidationError into field/message pairs.

        Custom ``ValueError`` text raised by field validators is used as is;
        missing and type errors fall back to the per-field message tables so
        the caller never sees pydantic's own wording for known fields.
        """
        required_messages = required_messages or {}
        invalid_messages = invalid_messages or {}
        errors = []
        for err in exc.errors():
            loc = [str(part) for part in err["loc"]]
            field = ".".join(loc) or "body"
            name = loc[-1] if loc else field
            if err["type"] == "value_error":
                message = str(err["ctx"]["error"])
            elif err["type"] == "missing":
                message = required_messages.get(name, f"{name} is required")
            else:
                message = invalid_messages.get(name, err["msg"])
            errors.append({"field": field, "message": message})
        return cls(errors)


class BadRequestError(ApiError):
    status_code = 400


class NotFoundError(ApiError):
    status_code = 404


class AuthenticationError(ApiError):
    status_code = 401


class AuthorizationError(ApiError):
    status_code = 403


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"success": False, "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        # Log the real cause, return nothing internal.
        current_app.logger.exception("Unhandled error: %s", exc)
        return jsonify({"success": False, "message": "Internal server error"}), 500
