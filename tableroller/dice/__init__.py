"""骰点模块"""
from .parser import (
    OPEN_RANGE_MAX,
    DiceNotation,
    DiceParser,
    matches_range,
    parse_range,
)
from .roller import DiceRoller, DiceRollDetail

__all__ = [
    "OPEN_RANGE_MAX", "DiceNotation", "DiceParser",
    "matches_range", "parse_range",
    "DiceRoller", "DiceRollDetail",
]
