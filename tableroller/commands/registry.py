"""命令注册器"""
from typing import Callable, Dict, List, Optional, Type

from loguru import logger

from ..errors import TableRollerError
from .base import BaseCommand, CommandContext, CommandResult


class CommandRegistry:
    """命令注册器 - 管理所有命令的注册和路由"""

    def __init__(self):
        self._commands: Dict[str, Type[BaseCommand]] = {}
        self._aliases: Dict[str, str] = {}  # alias -> primary name

    def register(
        self,
        name: str,
        aliases: Optional[List[str]] = None,
    ) -> Callable[[Type[BaseCommand]], Type[BaseCommand]]:
        """
        装饰器：注册命令处理器

        Args:
            name: 命令名称
            aliases: 命令别名列表
        """
        def decorator(cls: Type[BaseCommand]) -> Type[BaseCommand]:
            cls.name = name
            cls.aliases = aliases or []

            self._commands[name] = cls
            logger.debug(f"注册命令: {name}")

            for alias in cls.aliases:
                self._aliases[alias] = name
                logger.debug(f"注册别名: {alias} -> {name}")

            return cls
        return decorator

    def get_handler(self, command: str) -> Optional[Type[BaseCommand]]:
        """根据命令名获取处理器类"""
        command = command.lower()
        if command in self._commands:
            return self._commands[command]

        if command in self._aliases:
            return self._commands.get(self._aliases[command])

        return None

    @staticmethod
    def parse_command(cmd_str: str) -> tuple[str, str]:
        """
        解析命令字符串，返回 (命令名, 参数)
        - "roll Loot +2" -> ("roll", "Loot +2")
        """
        parts = cmd_str.strip().split(maxsplit=1)
        if not parts:
            return "", ""
        command = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ""
        return command, args

    def list_commands(self) -> List[str]:
        """列出所有已注册命令"""
        return list(self._commands.keys())

    def get_all_handlers(self) -> Dict[str, Type[BaseCommand]]:
        return self._commands.copy()

    async def execute(
        self,
        cmd_str: str,
        ctx: CommandContext,
    ) -> Optional[CommandResult]:
        """
        执行命令

        Returns:
            命令执行结果，命令不存在时返回 None
        """
        command, args = self.parse_command(cmd_str)

        handler_cls = self.get_handler(command)
        if not handler_cls:
            return None

        try:
            handler = handler_cls(ctx)
            return await handler.execute(args)
        except TableRollerError as e:
            return CommandResult.error(e.message)
        except Exception as e:
            return CommandResult.error(f"命令执行出错: {type(e).__name__}: {e}")


# 全局命令注册器实例
_registry = CommandRegistry()


def command(
    name: str,
    aliases: Optional[List[str]] = None,
) -> Callable[[Type[BaseCommand]], Type[BaseCommand]]:
    """
    命令装饰器（使用全局注册器）

    用法:
        @command("roll", aliases=["r"])
        class RollCommand(BaseCommand):
            ...
    """
    return _registry.register(name, aliases)


def get_registry() -> CommandRegistry:
    """获取全局命令注册器"""
    return _registry
