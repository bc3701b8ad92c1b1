# ============================================
#   Relay — Error taxonomy
# ============================================
# Raised by the registry, pipeline and command interpreter.
# Socket handlers turn them into a private "Server" reply; none is fatal.


class RelayError(Exception):
    """Base error. `str(err)` is the text shown to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UserRejected(RelayError):
    """Throttled, filtered, unauthorized, kicked or banned."""


class InputInvalid(RelayError):
    """Malformed argument; nothing was mutated."""


class LookupFailed(RelayError):
    """Target user not found; nothing was mutated."""
