"""Core error types."""


class CodeTimerError(Exception):
    """Base class for errors raised by the code timer core."""


class InvalidTransition(CodeTimerError):
    """A session command was issued from a state that forbids it.

    Raised inside the session core and caught at its command boundary, where
    the command is dropped. It mirrors a disabled button, not a fault.
    """

    def __init__(self, command, state):
        self.command = command
        self.state = state
        super().__init__(f"'{command.value}' is not allowed while the session is {state.value}")
