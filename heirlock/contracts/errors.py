"""
Rejections raised by the Heirlock state machine.

The class name of every rejection doubles as its ``code`` and as the
assert comment in the TEAL program, so callers see the same name whether
they drive the Python model or the deployed application.
"""


class HeirlockError(Exception):
    """Base class for every rejected Heirlock call."""

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)

    @property
    def code(self) -> str:
        return type(self).__name__


class AuthorizationError(HeirlockError):
    """Caller identity does not match the role the operation requires."""


class ValidationError(HeirlockError):
    """A supplied argument is not acceptable."""


class ResourceError(HeirlockError):
    """The pool cannot cover the request."""


class TemporalError(HeirlockError):
    """The time-lock has not expired yet."""


class OnlyOwnerCanCall(AuthorizationError):
    pass


class OnlyHeirCanCall(AuthorizationError):
    pass


class HeirCannotBeZeroAddress(ValidationError):
    pass


class NotEnoughBalance(ResourceError):
    pass


class NotEnoughTimePassed(TemporalError):
    pass


class ClockWentBackwards(ValueError):
    """The host clock reported a time before the last recorded activity."""
