"""命令系统模块"""
from .registry import CommandRegistry, command, get_registry
from .base import BaseCommand, CommandContext, CommandResult

# 导入命令模块以触发注册
from . import table

__all__ = [
    "CommandRegistry",
    "command",
    "get_registry",
    "BaseCommand",
    "CommandContext",
    "CommandResult",
]
