# service_errors.py
# Exceptions raised by the admin services; routers translate them to HTTP errors.


class RecordNotFound(LookupError):
    """The requested row does not exist."""


class InvalidTransition(ValueError):
    """The action is not allowed from the record's current state."""


class ReasonRequired(ValueError):
    """The action needs a non-empty reason."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"A reason is required to {action}")
