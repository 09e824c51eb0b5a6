from typing import Optional, Tuple

from banchess.core.evaluator import Evaluator
from banchess.core.game import BanChess
from banchess.core.notation import serialize_action
from banchess.core.search import SearchEngine
from banchess.core.types import ActionResult


class Engine:
    """A game paired with a search engine that can play either side."""

    def __init__(self, depth: Optional[int] = None, fen: Optional[str] = None,
                 time_limit_ms: Optional[int] = None):
        self.game = BanChess(fen)
        self.search = SearchEngine(Evaluator(), depth=depth, time_limit_ms=time_limit_ms)

    def get_best_action(self) -> Tuple[str, int]:
        """Best action for the side to act, in BCN, with its score."""
        result = self.search.search(self.game)
        return serialize_action(result.best_action), result.score

    def play(self, serialized: str) -> ActionResult:
        return self.game.play_serialized_action(serialized)

    def play_best(self) -> ActionResult:
        result = self.search.search(self.game)
        return self.game.play(result.best_action)

    def fen(self) -> str:
        return self.game.fen()
