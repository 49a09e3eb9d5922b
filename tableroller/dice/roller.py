"""骰点执行器"""
import random
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, TypeVar

from ..errors import InvalidNotationError
from .parser import DiceNotation, DiceParser

T = TypeVar("T")

# 单元格内的行内骰点: [2d10x100], [1d6+2]
INLINE_DICE_PATTERN = re.compile(r"\[([^\]]+)\]")
_INLINE_EXPR_PATTERN = re.compile(
    r"^(\d*d\d+(?:[+-]\d+)?)((?:[*/+-]\d+)+)?$", re.IGNORECASE
)
_INLINE_OP_PATTERN = re.compile(r"^([*/+-])(\d+)(.*)$")


@dataclass
class DiceRollDetail:
    """骰点结果"""

    notation: DiceNotation
    dice: List[int] = field(default_factory=list)  # 每颗骰子的点数
    total: int = 0

    def __str__(self) -> str:
        raw = self.notation.raw or str(self.notation)
        if len(self.dice) == 1 and self.notation.modifier == 0:
            return f"{raw} = {self.total}"

        rolls_str = "+".join(map(str, self.dice))
        if self.notation.modifier != 0:
            return f"{raw} = [{rolls_str}]({self.notation.modifier:+d}) = {self.total}"
        return f"{raw} = [{rolls_str}] = {self.total}"


class DiceRoller:
    """骰点执行器，所有随机数都来自同一个随机源"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def roll(self, notation: str) -> int:
        """按骰点表达式掷骰，返回总点数"""
        return self.roll_detail(notation).total

    def roll_detail(self, notation: str) -> DiceRollDetail:
        """掷骰并保留每颗骰子的点数"""
        expr = DiceParser.parse(notation)
        if expr is None:
            raise InvalidNotationError(notation)

        dice = [self.rng.randint(1, expr.sides) for _ in range(expr.count)]
        total = sum(dice) + expr.modifier
        return DiceRollDetail(notation=expr, dice=dice, total=total)

    def randint(self, low: int, high: int) -> int:
        """闭区间 [low, high] 内的均匀随机整数"""
        return self.rng.randint(low, high)

    def pick(self, items: Sequence[T]) -> T:
        """均匀随机选取一项"""
        if not items:
            raise IndexError("无法从空序列中选取")
        return items[self.randint(0, len(items) - 1)]

    def resolve_inline_dice(self, text: str) -> str:
        """
        替换文本中的行内骰点
        - "[2d10x100] 金币" -> "1300 金币"
        - "[1d6+2]" -> "5"
        - 非骰点的方括号原样保留
        """
        if not text or "[" not in text:
            return text
        return INLINE_DICE_PATTERN.sub(self._replace_inline, text)

    def _replace_inline(self, match: "re.Match") -> str:
        cleaned = re.sub(r"[x×]", "*", match.group(1), flags=re.IGNORECASE)
        cleaned = re.sub(r"\s+", "", cleaned)

        expr_match = _INLINE_EXPR_PATTERN.match(cleaned)
        if not expr_match:
            return match.group(0)

        value = self.roll(expr_match.group(1))
        rest = expr_match.group(2) or ""
        # 从左到右依次计算
        while rest:
            op_match = _INLINE_OP_PATTERN.match(rest)
            if not op_match:
                break
            op, num_str, rest = op_match.groups()
            num = int(num_str)
            if op == "+":
                value += num
            elif op == "-":
                value -= num
            elif op == "*":
                value *= num
            elif op == "/" and num != 0:
                value //= num
        return str(value)
