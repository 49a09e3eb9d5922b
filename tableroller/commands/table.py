"""表格骰点命令"""
import re
from datetime import datetime
from typing import Optional, Tuple

from ..dice import DiceParser, DiceRoller
from ..logging import log_command
from .base import BaseCommand, CommandResult
from .registry import command, get_registry

# 单次命令最多骰点次数
MAX_TIMES = 100

MODIFIER_PATTERN = re.compile(r"^[+-]\d+$")
TRAILING_MODIFIER_PATTERN = re.compile(r"^(.+?)\s*([+-]\d+)$")


def parse_roll_args(args: str, roller: DiceRoller) -> Tuple[str, int, int]:
    """
    解析 roll 命令参数，返回 (表达式, 次数, 修正值)
    - "Loot" -> ("Loot", 1, 0)
    - "3 Loot" / "1d4 Loot" -> 次数为 3 / 掷 1d4
    - "Loot +2" / "Loot+2" -> 修正值 +2
    """
    tokens = args.split()
    times_token: Optional[str] = None

    if len(tokens) > 1 and _is_times_token(tokens[0]):
        times_token = tokens[0]
        tokens = tokens[1:]
    elif len(tokens) > 1 and _is_times_token(tokens[-1]):
        times_token = tokens[-1]
        tokens = tokens[:-1]

    modifier = 0
    if len(tokens) > 1 and MODIFIER_PATTERN.match(tokens[-1]):
        modifier = int(tokens[-1])
        tokens = tokens[:-1]

    expression = " ".join(tokens)
    match = TRAILING_MODIFIER_PATTERN.match(expression)
    if match and not modifier:
        expression, modifier = match.group(1).strip(), int(match.group(2))

    times = 1
    if times_token is not None:
        if times_token.isdigit():
            times = int(times_token)
        else:
            times = roller.roll(times_token)
    times = min(max(times, 1), MAX_TIMES)

    return expression, times, modifier


def _is_times_token(token: str) -> bool:
    return token.isdigit() or DiceParser.is_valid(token)


@command("roll", aliases=["r"])
class RollCommand(BaseCommand):
    """表格骰点命令"""

    description = "在表格上骰点"
    usage = "roll [次数|骰点] <表格[,表格...]> [+/-修正]，如 roll Loot, roll 2d4 Loot +1"

    @log_command
    async def execute(self, args: str) -> CommandResult:
        expression, times, modifier = parse_roll_args(args.strip(), self.ctx.core.roller)
        if not expression:
            return CommandResult.text(f"请指定表格名称\n用法: {self.usage}")

        core = self.ctx.core
        outputs = []
        for i in range(times):
            result = core.roll_expression(
                expression,
                session_id=self.ctx.session_id,
                max_attempts=self.ctx.settings.max_attempts,
                modifier=modifier,
            )
            text = core.format_expression(result, modifier)
            outputs.append(f"# 第{i + 1}次\n{text}" if times > 1 else text)

        return CommandResult.text("\n\n".join(outputs))


@command("dice", aliases=["d"])
class DiceCommand(BaseCommand):
    """骰子命令"""

    description = "掷骰子"
    usage = "dice 2d6+3"

    @log_command
    async def execute(self, args: str) -> CommandResult:
        notation = args.strip() or "1d6"
        detail = self.ctx.core.roller.roll_detail(notation)
        return CommandResult.text(str(detail))


@command("list", aliases=["ls"])
class ListCommand(BaseCommand):
    """列出表格命令"""

    description = "列出可用表格"
    usage = "list"

    @log_command
    async def execute(self, args: str) -> CommandResult:
        names = self.ctx.core.table_names()
        if not names:
            return CommandResult.text("没有已加载的表格")
        return CommandResult.text(f"共 {len(names)} 个表格:\n" + "\n".join(names))


@command("reset")
class ResetCommand(BaseCommand):
    """重置会话命令"""

    description = "清除会话中的已骰结果记录"
    usage = "reset [会话ID|all]"

    @log_command
    async def execute(self, args: str) -> CommandResult:
        session_id = args.strip() or self.ctx.session_id
        self.ctx.core.reset_session(session_id)
        if session_id == "all":
            return CommandResult.text("已清除全部会话记录")
        return CommandResult.text(f"已清除会话记录: {session_id}")


@command("history", aliases=["hist"])
class HistoryCommand(BaseCommand):
    """会话历史命令"""

    description = "查看本会话的骰点历史"
    usage = "history [条数]"

    @log_command
    async def execute(self, args: str) -> CommandResult:
        limit = int(args) if args.strip().isdigit() else 20
        entries = self.ctx.core.tracker.history(self.ctx.session_id)
        if not entries:
            return CommandResult.text("本会话还没有骰点记录")

        lines = []
        for entry in entries[-limit:]:
            stamp = datetime.fromtimestamp(entry.timestamp).strftime("%H:%M:%S")
            text = entry.result.text if entry.result else entry.fingerprint
            lines.append(f"{stamp} [{entry.table}] {text}")
        return CommandResult.text("\n".join(lines))


@command("help", aliases=["h", "?"])
class HelpCommand(BaseCommand):
    """帮助命令"""

    description = "显示帮助信息"
    usage = "help"

    async def execute(self, args: str) -> CommandResult:
        handlers = get_registry().get_all_handlers()
        lines = ["Table Roller 帮助", ""]
        for handler_cls in handlers.values():
            lines.append(handler_cls(self.ctx).help())
        return CommandResult.text("\n".join(lines))
