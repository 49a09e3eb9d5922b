"""表格骰点核心 - 独立运行模式（命令行）使用的门面"""
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from ..dice import DiceRoller
from .loader import load_directory
from .models import RollResult
from .registry import TableRegistry
from .resolver import RollResolver
from .session import (
    ALL_SESSIONS,
    DEFAULT_HISTORY_LIMIT,
    SessionTracker,
    UniqueRoll,
    roll_unique,
)

# 表达式分隔符: "A, B" 或 "A > B" / "A -> B"
EXPRESSION_SEPARATOR = re.compile(r"\s*(?:,|->|>)\s*")


@dataclass
class ExpressionResult:
    """表达式骰点结果"""
    expression: str
    session_id: str
    rolls: List[UniqueRoll] = field(default_factory=list)

    @property
    def results(self) -> List[RollResult]:
        return [roll.result for roll in self.rolls]


class TableRollerCore:
    """
    表格骰点核心

    组合注册表、解析器和会话记录器，提供加载、防重复骰点、
    表达式骰点与结果格式化。
    """

    def __init__(
        self,
        roller: Optional[DiceRoller] = None,
        unique_attempt_factor: int = 10,
        inline_dice: bool = True,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.roller = roller or DiceRoller()
        self.registry = TableRegistry()
        self.resolver = RollResolver(
            self.registry, self.roller, unique_attempt_factor=unique_attempt_factor
        )
        self.tracker = SessionTracker(history_limit=history_limit)
        self.inline_dice = inline_dice

    def load_tables(
        self,
        directory: Union[str, Path],
        require_frontmatter: bool = False,
    ) -> int:
        """从目录加载全部表格（替换已加载的内容）"""
        handles = load_directory(directory, require_frontmatter=require_frontmatter)
        self.registry.load(handles)
        return len(self.registry)

    def roll(
        self,
        name: str,
        context_namespace: Optional[str] = None,
        modifier: int = 0,
    ) -> RollResult:
        """不做会话去重的骰点"""
        return self.resolver.roll(name, context_namespace, modifier)

    def roll_single(
        self,
        name: str,
        session_id: str = "default",
        max_attempts: int = 100,
        modifier: int = 0,
    ) -> UniqueRoll:
        """在单张表格上骰点，尽量避免本会话中已出现的结果"""
        return roll_unique(
            self.resolver,
            self.tracker,
            name,
            session_id=session_id,
            max_attempts=max_attempts,
            modifier=modifier,
        )

    def roll_expression(
        self,
        expression: str,
        session_id: str = "default",
        max_attempts: int = 100,
        modifier: int = 0,
    ) -> ExpressionResult:
        """按顺序在表达式中的每张表格上骰点"""
        names = [name for name in EXPRESSION_SEPARATOR.split(expression.strip()) if name]
        result = ExpressionResult(expression=expression, session_id=session_id)
        for name in names:
            result.rolls.append(
                self.roll_single(name, session_id, max_attempts, modifier)
            )
        logger.debug(f"EXPR | expr={expression} | tables={len(names)} | session={session_id}")
        return result

    def reset_session(self, session_id: str = ALL_SESSIONS) -> None:
        self.tracker.clear_session(session_id)

    def table_names(self) -> List[str]:
        """可见表格名称（已排序）"""
        return sorted(self.registry.list_visible_names(), key=str.lower)

    # ===== 格式化 =====

    def format_result(self, result: RollResult, indent: int = 0) -> str:
        """将结果树格式化为多行文本"""
        prefix = "  " * indent
        header = f"{prefix}[{result.identifier}]"
        if result.roll is not None:
            header += f" {result.roll}"

        lines = [header]
        for key, value in result.columns.items():
            if self.inline_dice:
                value = self.roller.resolve_inline_dice(value)
            lines.append(f"{prefix}  {key}: {value}")
        for nested in result.nested_rolls:
            lines.append(self.format_result(nested, indent + 1))
        return "\n".join(lines)

    def format_unique(self, roll: UniqueRoll, modifier: int = 0) -> str:
        lines = [self.format_result(roll.result)]
        if modifier:
            lines.append(f"(修正值 {modifier:+d})")
        if roll.duplicate:
            lines.append(f"({roll.attempts} 次尝试后仍为重复结果)")
        elif roll.attempts > 1:
            lines.append(f"(尝试 {roll.attempts} 次得到不重复的结果)")
        return "\n".join(lines)

    def format_expression(self, result: ExpressionResult, modifier: int = 0) -> str:
        return "\n\n".join(self.format_unique(roll, modifier) for roll in result.rolls)
