"""Text formats of the variant.

* BCN, the serialized action: ``b:e2e4`` for a ban, ``m:e7e8q`` for a move,
  each optionally followed by one indicator (``+`` check, ``#`` checkmate,
  ``=`` stalemate).
* Extended FEN: a standard six-field FEN plus a seventh field
  ``<ply>[:<from><to>][+#=]`` carrying the ply counter, the ban in force and
  the indicator of the current position.
* PGN with bans as ``{banning: e2e4}`` comments in front of the move they
  constrain.
"""

import re
from typing import Iterable, List, Optional, Tuple

import chess

from .errors import NotationError
from .types import Action, ActionType, Ban, HistoryEntry, Move

CHECK = "+"
CHECKMATE = "#"
STALEMATE = "="
INDICATORS = (CHECK, CHECKMATE, STALEMATE)

BCN_RE = re.compile(r"^([bm]):([a-h][1-8])([a-h][1-8])([qrbn])?([+#=])?$")
PLY_FIELD_RE = re.compile(r"^(\d+)(?::([a-h][1-8])([a-h][1-8]))?([+#=])?$")

PGN_TAG_RE = re.compile(r'^\s*\[(\w+)\s+"([^"]*)"\s*\]\s*$')
PGN_TOKEN_RE = re.compile(
    r"\{\s*banning:\s*([a-h][1-8][a-h][1-8])([+#=])?\s*\}"  # ban comment
    r"|\{[^}]*\}"                                            # any other comment
    r"|(\S+)"
)
MOVE_NUMBER_RE = re.compile(r"^\d+\.(\.\.)?$")
RESULTS = ("1-0", "0-1", "1/2-1/2", "*")


def is_white_ply(ply: int) -> bool:
    return ply % 4 in (2, 3)


def mover_for_ply(ply: int) -> chess.Color:
    """The side whose moves are generated at this ply: the mover, or the side being banned."""
    return chess.WHITE if ply % 4 in (1, 2) else chess.BLACK


def action_type_for_ply(ply: int) -> ActionType:
    return ActionType.BAN if ply % 2 == 1 else ActionType.MOVE


def move_number(ply: int) -> int:
    """Full-move number of the move played at an even ply."""
    if is_white_ply(ply):
        return (ply - 2) // 4 + 1
    return (ply - 4) // 4 + 1


def strip_indicator(text: str) -> str:
    if text and text[-1] in INDICATORS:
        return text[:-1]
    return text


# ---------------------------------------------------------------------------
# BCN
# ---------------------------------------------------------------------------

def serialize_action(action: Action, indicator: str = "") -> str:
    prefix = "b" if isinstance(action, Ban) else "m"
    return f"{prefix}:{action.uci()}{indicator}"


def split_serialized_action(text: str) -> Tuple[Action, str]:
    """Parse BCN into the action and its (possibly empty) indicator."""
    m = BCN_RE.fullmatch(text) if isinstance(text, str) else None
    if m is None:
        raise NotationError(f"Invalid serialized action format: {text!r}")
    kind, from_sq, to_sq, promotion, indicator = m.groups()
    if kind == "b":
        if promotion:
            raise NotationError(f"Invalid serialized action format: {text!r}")
        action: Action = Ban(chess.parse_square(from_sq), chess.parse_square(to_sq))
    else:
        action = Move.from_uci(from_sq + to_sq + (promotion or ""))
    return action, indicator or ""


def deserialize_action(text: str) -> Action:
    return split_serialized_action(text)[0]


# ---------------------------------------------------------------------------
# Extended FEN
# ---------------------------------------------------------------------------

def format_ply_field(ply: int, ban: Optional[Ban], indicator: str = "") -> str:
    field = str(ply)
    if ban is not None:
        field += ":" + ban.uci()
    return field + indicator


def format_extended_fen(fen: str, ply: int, ban: Optional[Ban], indicator: str = "") -> str:
    return f"{fen} {format_ply_field(ply, ban, indicator)}"


def parse_extended_fen(text: str) -> Tuple[str, int, Optional[Ban]]:
    """Split an extended FEN into the six-field FEN, the ply and the ban.

    A bare six-field FEN starts at ply 1. The trailing indicator is accepted
    and dropped; it is always recomputed from the position. An explicit ply
    must agree with the side to move: the mover on a move ply, the banned
    side on a ban ply.
    """
    fields = text.split() if isinstance(text, str) else []
    if len(fields) == 6:
        return " ".join(fields), 1, None
    if len(fields) != 7:
        raise NotationError(f"Invalid FEN: expected 6 or 7 fields, got {len(fields)}: {text!r}")
    m = PLY_FIELD_RE.fullmatch(fields[6])
    if m is None:
        raise NotationError(f"Invalid ply field: {fields[6]!r}")
    ply = int(m.group(1))
    if ply < 1:
        raise NotationError(f"Invalid ply: {ply}")
    expected = "w" if mover_for_ply(ply) == chess.WHITE else "b"
    if fields[1] != expected:
        raise NotationError(f"Ply {ply} needs side to move {expected!r}, FEN has {fields[1]!r}")
    ban = None
    if m.group(2):
        if action_type_for_ply(ply) is ActionType.BAN:
            raise NotationError(f"A ban cannot be in force on ban ply {ply}")
        ban = Ban(chess.parse_square(m.group(2)), chess.parse_square(m.group(3)))
    return " ".join(fields[:6]), ply, ban


# ---------------------------------------------------------------------------
# PGN
# ---------------------------------------------------------------------------

def _number_token(ply: int, first: bool) -> Optional[str]:
    if is_white_ply(ply):
        return f"{move_number(ply)}."
    if first:
        return f"{move_number(ply)}..."
    return None


def render_pgn(history: Iterable[HistoryEntry], result: Optional[str] = None,
               indicators: bool = True) -> str:
    tokens: List[str] = []
    previous: Optional[HistoryEntry] = None
    for entry in history:
        text = entry.notation if indicators else strip_indicator(entry.notation)
        if entry.action_type is ActionType.BAN:
            number = _number_token(entry.ply + 1, not tokens)
            if number:
                tokens.append(number)
            tokens.append(f"{{banning: {text}}}")
        else:
            led_by_ban = (previous is not None and previous.action_type is ActionType.BAN
                          and previous.ply == entry.ply - 1)
            if not led_by_ban:
                number = _number_token(entry.ply, not tokens)
                if number:
                    tokens.append(number)
            tokens.append(text)
        previous = entry
    if result:
        tokens.append(result)
    return " ".join(tokens)


def tokenize_pgn(text: str) -> Tuple[Optional[str], List[Tuple[ActionType, object, str]]]:
    """Split PGN text into an optional ``[FEN]`` tag and its action tokens.

    Ban tokens carry a ``Ban``; move tokens carry the SAN with any indicator
    removed. Move numbers, results, tag pairs and other comments are skipped.
    """
    fen = None
    body: List[str] = []
    for line in text.splitlines():
        tag = PGN_TAG_RE.match(line)
        if tag:
            if tag.group(1) == "FEN":
                fen = tag.group(2)
            continue
        body.append(line)

    tokens: List[Tuple[ActionType, object, str]] = []
    for m in PGN_TOKEN_RE.finditer(" ".join(body)):
        raw = m.group(0)
        if m.group(1):
            tokens.append((ActionType.BAN, Ban.from_uci(m.group(1)), raw))
            continue
        word = m.group(3)
        if word is None or word in RESULTS or MOVE_NUMBER_RE.match(word):
            continue
        # "1.e4" style: number glued to the move
        word = re.sub(r"^\d+\.(\.\.)?", "", word)
        san = strip_indicator(word.rstrip("!?"))
        if not san:
            raise NotationError(f"Invalid PGN token: {raw!r}")
        tokens.append((ActionType.MOVE, san, raw))
    return fen, tokens
