"""Exceptions raised by the history core and the bridge."""


class HistoryError(Exception):
    pass


class ParserNotInitializedError(HistoryError):
    """Raised when a session operation runs before the parser is loaded."""

    def __init__(self, message: str = "Claude parser not initialized"):
        super().__init__(message)


class SessionParseError(HistoryError):
    """The session parser could not open or read a session file."""


class UnknownChannelError(HistoryError):
    pass
