"""骰点表达式与点数区间解析器"""
import re
from dataclasses import dataclass
from typing import Optional, Tuple

# 开放区间（如 "41+"）在区间运算中的上界
OPEN_RANGE_MAX = 999


@dataclass(frozen=True)
class DiceNotation:
    """骰点表达式 NdM±K"""

    count: int = 1  # 骰子数量
    sides: int = 6  # 骰子面数
    modifier: int = 0  # 常数修正值
    raw: str = ""  # 原始表达式

    @property
    def minimum(self) -> int:
        return self.count + self.modifier

    @property
    def maximum(self) -> int:
        return self.count * self.sides + self.modifier

    def __str__(self) -> str:
        text = f"{self.count}d{self.sides}"
        if self.modifier:
            text += f"{self.modifier:+d}"
        return text


class DiceParser:
    """骰点表达式解析器"""

    # 匹配骰点表达式: d20, 2d6, 1d100-5
    DICE_PATTERN = re.compile(r"(\d*)d(\d+)([+-]\d+)?", re.IGNORECASE)
    # 骰点列的表头: d6, 2d10
    DICE_HEADER_PATTERN = re.compile(r"\d*d\d+", re.IGNORECASE)
    # 多次骰点前缀: "2d6 Loot"
    COUNT_PREFIX_PATTERN = re.compile(
        r"^(\d*d\d+(?:[+-]\d+)?)\s+(.+)$", re.IGNORECASE
    )

    @classmethod
    def parse(cls, notation: str) -> Optional[DiceNotation]:
        """解析骰点表达式，无法解析时返回 None"""
        if not notation:
            return None

        match = cls.DICE_PATTERN.search(notation.strip())
        if not match:
            return None

        count_str, sides_str, modifier_str = match.groups()
        count = int(count_str) if count_str else 1
        sides = int(sides_str)
        modifier = int(modifier_str) if modifier_str else 0

        # 验证合理性
        if count < 1 or sides < 1:
            return None

        return DiceNotation(
            count=count, sides=sides, modifier=modifier, raw=notation.strip()
        )

    @classmethod
    def is_valid(cls, notation: str) -> bool:
        """整个字符串是否为合法的骰点表达式"""
        if not notation:
            return False
        if not cls.DICE_PATTERN.fullmatch(notation.strip()):
            return False
        return cls.parse(notation) is not None

    @classmethod
    def is_dice_header(cls, header: str) -> bool:
        """表头是否为骰点列（如 d6、2d10）"""
        return bool(header) and cls.DICE_HEADER_PATTERN.fullmatch(header.strip()) is not None

    @classmethod
    def split_count_prefix(cls, reference: str) -> Tuple[Optional[str], str]:
        """
        拆分多次骰点前缀
        - "2d6 Loot" -> ("2d6", "Loot")
        - "Loot" -> (None, "Loot")
        """
        reference = reference.strip()
        match = cls.COUNT_PREFIX_PATTERN.match(reference)
        if match:
            return match.group(1), match.group(2).strip()
        return None, reference


# 区间格式: "4", "1-3" (连字符/en-dash/em-dash), "41+"
_SINGLE_PATTERN = re.compile(r"^(\d+)$")
_SPAN_PATTERN = re.compile(r"^(\d+)[-–—](\d+)$")
_OPEN_PATTERN = re.compile(r"^(\d+)\+$")


def parse_range(range_text: str) -> Optional[Tuple[int, int]]:
    """将区间字符串解析为 (min, max)，无法解析时返回 None"""
    if not range_text:
        return None
    range_text = str(range_text).strip()

    match = _SINGLE_PATTERN.match(range_text)
    if match:
        value = int(match.group(1))
        return value, value

    match = _SPAN_PATTERN.match(range_text)
    if match:
        return int(match.group(1)), int(match.group(2))

    match = _OPEN_PATTERN.match(range_text)
    if match:
        return int(match.group(1)), OPEN_RANGE_MAX

    return None


def matches_range(value: int, range_text: str) -> bool:
    """检查点数是否落在区间内，无法解析的区间不匹配任何值"""
    range_text = str(range_text).strip() if range_text else ""
    match = _OPEN_PATTERN.match(range_text)
    if match:
        # 开放区间不受 OPEN_RANGE_MAX 限制
        return value >= int(match.group(1))

    bounds = parse_range(range_text)
    if bounds is None:
        return False
    low, high = bounds
    return low <= value <= high
