"""Exceptions raised by the ban-chess core.

Rule violations during play are not exceptions: ``BanChess.play`` reports
them through a failed ``ActionResult``. Exceptions are reserved for malformed
input text, failed replays and searches with nothing to search.
"""


class BanChessError(Exception):
    """Base class for every error raised by this package."""


class NotationError(BanChessError, ValueError):
    """Malformed BCN, extended FEN, PGN or sync-state input."""


class ReplayError(BanChessError):
    """An action in a replayed sequence could not be applied."""

    def __init__(self, index: int, action: str, reason: str):
        self.index = index
        self.action = action
        self.reason = reason
        super().__init__(f"Failed to replay action {action} at index {index}: {reason}")


class SearchExhaustedError(BanChessError, RuntimeError):
    """The search was asked for an action in a position that has none."""
