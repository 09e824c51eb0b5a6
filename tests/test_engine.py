"""
Test suite for the ban-chess engine components.

Covers:
- Board oracle wrapper
- Evaluator (material, positional, mobility, ban potential, terminal scores)
- Transposition table (keys, collision check, ban/phase sensitivity)
- Search (ban-caused mates, combinations, time budget, TT invariance)
- Move ordering
- Engine wrapper
"""

import logging

import chess
import pytest

from banchess.config import CONFIG
from banchess.core.board import ChessBoard
from banchess.core.errors import SearchExhaustedError
from banchess.core.evaluator import WIN_SCORE, Evaluator
from banchess.core.game import BanChess
from banchess.core.search import INF, SearchEngine
from banchess.core.transposition import TT_EXACT, TT_LOWER, TranspositionTable
from banchess.core.types import Ban, Move
from banchess.main import Engine

BAN_MATE_FEN = "7k/8/8/8/8/8/6q1/7K w - - 0 1 9"
COMBINATION_FEN = "7k/6p1/5Q2/8/8/8/6PP/6K1 w - - 0 1 14"
FOOLS_MATE_FEN = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3 9"


# ════════════════════════════════════════════════════════════════════════════
#  BOARD TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestChessBoard:
    def test_initial_position(self):
        b = ChessBoard()
        assert b.get_fen() == chess.STARTING_FEN
        assert b.turn == chess.WHITE

    def test_make_legal_move(self):
        b = ChessBoard()
        assert b.make_move(chess.Move.from_uci("e2e4")) is True
        assert b.move_history == [chess.Move.from_uci("e2e4")]

    def test_make_illegal_move(self):
        b = ChessBoard()
        assert b.make_move(chess.Move.from_uci("e2e5")) is False
        assert b.move_history == []

    def test_undo_move(self):
        b = ChessBoard()
        b.make_move(chess.Move.from_uci("e2e4"))
        assert b.undo_move() == chess.Move.from_uci("e2e4")
        assert b.get_fen() == chess.STARTING_FEN

    def test_undo_empty(self):
        assert ChessBoard().undo_move() is None

    def test_invalid_fen(self):
        with pytest.raises(ValueError):
            ChessBoard("not a fen")

    def test_san_carries_check(self):
        b = ChessBoard("7k/8/8/8/8/8/8/R6K w - - 0 1")
        assert b.san(chess.Move.from_uci("a1a8")) == "Ra8+"

    def test_fifty_moves(self):
        assert ChessBoard("7k/8/8/8/8/8/8/R6K w - - 100 80").is_fifty_moves()
        assert not ChessBoard("7k/8/8/8/8/8/8/R6K w - - 99 80").is_fifty_moves()


# ════════════════════════════════════════════════════════════════════════════
#  EVALUATOR TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestEvaluator:
    def setup_method(self):
        self.ev = Evaluator()

    def test_symmetric_material_and_position(self):
        board = chess.Board()
        assert self.ev.material(board) == 0
        assert self.ev.position(board) == 0

    def test_material_advantage(self):
        board = chess.Board("rnb1kbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1")
        assert self.ev.material(board) == CONFIG.eval.piece_values["QUEEN"]

    def test_perspective_flips_with_active_player(self):
        game = BanChess("rnb1kbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 1")
        white_view = self.ev.evaluate_white(game)
        assert white_view > 0
        # ply 1: Black is about to act
        assert self.ev.evaluate(game) == -white_view

    def test_mobility_credited_to_active_player(self):
        game = BanChess()
        assert self.ev.mobility(game) == -20 * CONFIG.eval.mobility_per_action
        game.play(Ban(chess.E2, chess.E4))
        assert self.ev.mobility(game) == 19 * CONFIG.eval.mobility_per_action

    def test_checkmate_scores(self):
        game = BanChess(FOOLS_MATE_FEN)
        assert self.ev.evaluate_white(game) == -WIN_SCORE
        assert self.ev.evaluate(game) == WIN_SCORE

    def test_ban_caused_checkmate_scores(self):
        game = BanChess(BAN_MATE_FEN)
        game.play(Ban(chess.H1, chess.G2))
        assert self.ev.evaluate_white(game) == -WIN_SCORE

    def test_draw_is_zero(self):
        game = BanChess("8/8/8/8/8/8/8/K6k w - - 0 1 1")
        assert self.ev.evaluate(game) == 0

    def test_banned_move_impact(self):
        assert self.ev.banned_move_impact(Ban(chess.E2, chess.E4)) == 30
        assert self.ev.banned_move_impact(Ban(chess.G1, chess.F3)) == 25
        assert self.ev.banned_move_impact(Ban(chess.A2, chess.A3)) == 10

    def test_active_ban_hurts_mover(self):
        game = BanChess()
        game.play(Ban(chess.E2, chess.E4))
        # White moves under the ban
        assert self.ev.ban_potential(game) == -30

    def test_ban_values(self):
        board = chess.Board("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
        assert self.ev.ban_value(board, Ban(chess.E1, chess.G1)) == 50
        start = chess.Board()
        assert self.ev.ban_value(start, Ban(chess.G1, chess.F3)) == 30
        assert self.ev.ban_value(start, Ban(chess.E2, chess.E4)) == 40
        assert self.ev.ban_value(start, Ban(chess.A2, chess.A3)) == 0

    def test_only_escape_bonus(self):
        game = BanChess(BAN_MATE_FEN)
        assert self.ev.best_ban_value(game) >= CONFIG.eval.ban_weights["only_escape"]

    def test_custom_weights(self):
        ev = Evaluator(weights={"mobility": 0.0, "ban_potential": 0.0, "position": 0.0})
        game = BanChess("rnb1kbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 1")
        assert ev.evaluate_white(game) == 900

    def test_returns_int(self):
        assert isinstance(self.ev.evaluate(BanChess()), int)


# ════════════════════════════════════════════════════════════════════════════
#  TRANSPOSITION TABLE TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestTranspositionTable:
    def test_store_and_get(self):
        tt = TranspositionTable()
        game = BanChess()
        tt.store(game, 3, 120, TT_EXACT, Ban(chess.E2, chess.E4))
        entry = tt.get(game)
        assert entry is not None
        fen, depth, score, flag, action = entry
        assert fen == game.fen()
        assert (depth, score, flag) == (3, 120, TT_EXACT)
        assert action == Ban(chess.E2, chess.E4)
        assert len(tt) == 1

    def test_missing(self):
        assert TranspositionTable().get(BanChess()) is None

    def test_same_board_different_ply_number(self):
        tt = TranspositionTable()
        early = BanChess("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 1")
        late = BanChess("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 5")
        assert tt.key(early) == tt.key(late)
        tt.store(early, 2, 10, TT_EXACT, None)
        # same key, different extended FEN: treated as a miss
        assert tt.get(late) is None

    def test_ban_changes_key(self):
        tt = TranspositionTable()
        a = BanChess("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 2:e2e4")
        b = BanChess("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 2:d2d4")
        c = BanChess("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 2")
        assert len({tt.key(a), tt.key(b), tt.key(c)}) == 3

    def test_phase_changes_key(self):
        tt = TranspositionTable()
        ban_ply = BanChess("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 1")
        move_ply = BanChess("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 2")
        assert tt.key(ban_ply) != tt.key(move_ply)

    def test_seeded_keys_are_reproducible(self):
        game = BanChess()
        assert TranspositionTable(seed=7).key(game) == TranspositionTable(seed=7).key(game)

    def test_overwrite_and_clear(self):
        tt = TranspositionTable()
        game = BanChess()
        tt.store(game, 1, 5, TT_EXACT, None)
        tt.store(game, 4, 50, TT_LOWER, None)
        assert tt.get(game).depth == 4
        tt.clear()
        assert len(tt) == 0


# ════════════════════════════════════════════════════════════════════════════
#  SEARCH TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestSearch:
    def test_finds_ban_caused_mate(self):
        engine = SearchEngine(depth=2)
        game = BanChess(BAN_MATE_FEN)
        result = engine.search(game)
        assert result.best_action == Ban(chess.H1, chess.G2)
        assert result.score > CONFIG.search.forced_win_threshold
        assert result.depth == 1  # forced win stops the deepening

    def test_finds_combination(self):
        engine = SearchEngine(depth=2)
        game = BanChess(COMBINATION_FEN)
        action = engine.find_best_action(game)
        assert action == Move(chess.F6, chess.G7)

    def test_combination_then_ban(self):
        game = BanChess(COMBINATION_FEN)
        game.play(Move(chess.F6, chess.G7))
        engine = SearchEngine(depth=1)
        assert engine.find_best_action(game) == Ban(chess.H8, chess.G7)
        result = game.play(Ban(chess.H8, chess.G7))
        assert result.flags.ban_caused_checkmate

    def test_returns_legal_action_from_start(self):
        engine = SearchEngine(depth=2, time_limit_ms=10000)
        game = BanChess()
        action = engine.find_best_action(game)
        assert action in game.legal_actions()

    def test_search_does_not_mutate_game(self):
        game = BanChess()
        fen = game.fen()
        SearchEngine(depth=2).search(game)
        assert game.fen() == fen
        assert game.history() == []

    def test_time_budget_stops_deepening(self):
        engine = SearchEngine(depth=6)
        result = engine.search(BanChess(), time_limit_ms=1)
        assert result.depth == 1
        assert result.best_action in BanChess().legal_actions()

    def test_game_over_raises(self):
        engine = SearchEngine(depth=2)
        with pytest.raises(SearchExhaustedError):
            engine.search(BanChess(FOOLS_MATE_FEN))

    def test_statistics(self):
        engine = SearchEngine(depth=2)
        engine.search(BanChess())
        stats = engine.get_statistics()
        assert stats.nodes_evaluated == engine.nodes > 0
        assert stats.transposition_table_size > 0

    def test_statistics_without_tt(self):
        engine = SearchEngine(depth=2, use_transposition_table=False)
        engine.search(BanChess())
        assert engine.get_statistics().transposition_table_size == 0

    @pytest.mark.parametrize("fen,depth", [
        ("4k3/8/8/8/8/8/4P3/4K2R w K - 0 1 2", 3),
        ("7k/6p1/5Q2/8/8/8/6PP/6K1 w - - 0 1 14", 2),
        ("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 1", 2),
    ])
    def test_tt_does_not_change_choice(self, fen, depth):
        with_tt = SearchEngine(depth=depth, use_transposition_table=True, time_limit_ms=60000)
        without_tt = SearchEngine(depth=depth, use_transposition_table=False, time_limit_ms=60000)
        a = with_tt.search(BanChess(fen))
        b = without_tt.search(BanChess(fen))
        assert a.best_action == b.best_action
        assert a.score == b.score

    def test_mate_scores_prefer_sooner(self):
        engine = SearchEngine(depth=3)
        score, action = engine._minimax(BanChess(BAN_MATE_FEN), 3, -INF, INF, True)
        assert action == Ban(chess.H1, chess.G2)
        assert score == WIN_SCORE + 3

    def test_principal_variation(self):
        engine = SearchEngine(depth=2)
        result = engine.search(BanChess(COMBINATION_FEN))
        assert result.pv == (Move(chess.F6, chess.G7), Ban(chess.H8, chess.G7))

    def test_principal_variation_is_playable(self):
        engine = SearchEngine(depth=2, time_limit_ms=60000)
        game = BanChess()
        result = engine.search(game)
        assert result.pv[0] == result.best_action
        assert len(result.pv) <= result.depth
        for action in result.pv:
            assert game.play(action).success

    def test_principal_variation_without_tt(self):
        engine = SearchEngine(depth=2, use_transposition_table=False)
        result = engine.search(BanChess(COMBINATION_FEN))
        assert result.pv == (result.best_action,)

    def test_principal_variation_is_logged(self, caplog):
        engine = SearchEngine(depth=2)
        with caplog.at_level(logging.INFO, logger="banchess.search"):
            engine.search(BanChess(COMBINATION_FEN))
        assert "pv f6g7 h8g7" in caplog.text

    def test_depth_argument_is_per_call(self):
        engine = SearchEngine(depth=3)
        result = engine.search(BanChess(), depth=1)
        assert result.depth == 1
        assert engine.max_depth == 3


# ════════════════════════════════════════════════════════════════════════════
#  MOVE ORDERING TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestMoveOrdering:
    def test_capture_with_check_first(self):
        engine = SearchEngine(depth=1)
        game = BanChess(COMBINATION_FEN)
        ordered = engine._order_actions(game, game.legal_actions())
        assert ordered[0] == Move(chess.F6, chess.G7)

    def test_central_bans_first(self):
        engine = SearchEngine(depth=1)
        game = BanChess()
        ordered = engine._order_actions(game, game.legal_actions())
        assert set(ordered[:2]) == {Ban(chess.E2, chess.E4), Ban(chess.D2, chess.D4)}

    def test_ordering_is_stable(self):
        engine = SearchEngine(depth=1)
        game = BanChess()
        actions = game.legal_actions()
        ordered = engine._order_actions(game, actions)
        quiet = [a for a in actions if engine._priority(game.board, a) == 0]
        assert [a for a in ordered if a in quiet] == quiet
        assert sorted(ordered, key=str) == sorted(actions, key=str)

    def test_cutoffs_fill_killers_and_history(self):
        engine = SearchEngine(depth=2, time_limit_ms=60000)
        engine.search(BanChess())
        assert engine.killers[1][0] is not None
        assert engine.history
        assert all(v > 0 for v in engine.history.values())

    def test_tables_reset_between_searches(self):
        engine = SearchEngine(depth=1)
        engine.killers[3][0] = Move(chess.A2, chess.A3)
        engine.history[Move(chess.A2, chess.A3)] = 5
        engine.search(BanChess())
        assert engine.killers[3] == [None, None]
        assert Move(chess.A2, chess.A3) not in engine.history

    def test_killer_first_below_root(self):
        engine = SearchEngine(depth=1)
        game = BanChess.replay(["b:e2e4"])
        actions = game.legal_actions()
        engine.killers[1][0] = Move(chess.A2, chess.A3)
        assert engine._order_actions(game, actions, height=1)[0] == Move(chess.A2, chess.A3)
        # the root keeps its static order
        assert engine._order_actions(game, actions)[0] == Move(chess.D2, chess.D4)

    def test_history_raises_quiet_moves(self):
        engine = SearchEngine(depth=1)
        game = BanChess.replay(["b:e2e4"])
        engine.history[Move(chess.H2, chess.H3)] = 1000
        ordered = engine._order_actions(game, game.legal_actions(), height=2)
        assert ordered[0] == Move(chess.H2, chess.H3)


# ════════════════════════════════════════════════════════════════════════════
#  ENGINE WRAPPER TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestEngine:
    def test_get_best_action(self):
        e = Engine(depth=1)
        action, score = e.get_best_action()
        assert action.startswith("b:")
        assert isinstance(score, int)

    def test_play(self):
        e = Engine(depth=1)
        assert e.play("b:e2e4").success
        assert not e.play("m:e2e4").success
        assert e.play("m:d2d4").success
        assert e.fen().endswith(" 3")

    def test_play_best(self):
        e = Engine(depth=1, fen=BAN_MATE_FEN)
        result = e.play_best()
        assert result.success
        assert result.flags.ban_caused_checkmate
