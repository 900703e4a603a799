"""Domain errors raised by the session engine.

The API layer maps these onto HTTP status codes (see ``app.main``); services
raise them directly and never return error sentinels.
"""


class EngineError(Exception):
    """Base class for all session-engine errors."""

    status_code = 400


class NoActiveSessionError(EngineError):
    status_code = 409

    def __init__(self, message: str = "No active workout session") -> None:
        super().__init__(message)


class SessionAlreadyActiveError(EngineError):
    status_code = 409

    def __init__(self, message: str = "A workout session is already active") -> None:
        super().__init__(message)


class NoPendingDriftError(EngineError):
    status_code = 409

    def __init__(self, message: str = "No template update is pending") -> None:
        super().__init__(message)


class ExerciseNotFoundError(EngineError):
    status_code = 404

    def __init__(self, exercise_id: str) -> None:
        super().__init__(f"Exercise '{exercise_id}' not found")
        self.exercise_id = exercise_id


class SetNotFoundError(EngineError):
    status_code = 404

    def __init__(self, set_id: str) -> None:
        super().__init__(f"Set '{set_id}' not found")
        self.set_id = set_id


class TemplateNotFoundError(EngineError):
    status_code = 404

    def __init__(self, template_id: str) -> None:
        super().__init__(f"Template '{template_id}' not found")
        self.template_id = template_id


class IncompleteSetError(EngineError):
    """A set needs both reps and weight before it can be marked complete."""

    status_code = 422

    def __init__(self, set_id: str) -> None:
        super().__init__(f"Set '{set_id}' needs reps and weight before it can be completed")
        self.set_id = set_id


class InvalidSetValueError(EngineError, ValueError):
    """Rejected numeric input (over the weight/reps cap)."""

    status_code = 422
