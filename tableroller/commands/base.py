"""命令基础类"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..config import Settings
    from ..tables import TableRollerCore


@dataclass
class CommandContext:
    """命令执行上下文"""
    session_id: str

    # 服务依赖
    core: "TableRollerCore"
    settings: "Settings"


@dataclass
class CommandResult:
    """命令执行结果"""
    content: Optional[str] = None
    is_error: bool = False

    @classmethod
    def text(cls, content: str) -> "CommandResult":
        """创建文本响应"""
        return cls(content=content)

    @classmethod
    def error(cls, content: str) -> "CommandResult":
        """创建错误响应"""
        return cls(content=content, is_error=True)


class BaseCommand(ABC):
    """命令基类 - 所有命令处理器的父类"""

    name: str = ""  # 命令名称
    aliases: list[str] = []  # 命令别名
    description: str = ""  # 命令描述
    usage: str = ""  # 使用说明

    def __init__(self, ctx: CommandContext):
        self.ctx = ctx

    @abstractmethod
    async def execute(self, args: str) -> CommandResult:
        """执行命令，返回结果"""
        pass

    def help(self) -> str:
        """返回帮助信息"""
        lines = [f"{self.name} - {self.description}"]
        if self.usage:
            lines.append(f"  用法: {self.usage}")
        if self.aliases:
            lines.append(f"  别名: {', '.join(self.aliases)}")
        return "\n".join(lines)
