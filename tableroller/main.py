"""主入口"""
import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger

from .commands import CommandContext, get_registry
from .config import settings
from .errors import TableLoadError
from .logging import setup_logging as configure_logging
from .tables import TableRollerCore

# 退出交互模式的输入
EXIT_WORDS = {"exit", "quit", "q"}


def parse_args(argv: Optional[List[str]] = None):
    """解析命令行参数"""
    parser = argparse.ArgumentParser(
        description="Table Roller - Markdown 随机表格骰点工具"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="启用 DEBUG 日志级别"
    )
    parser.add_argument(
        "--tables", "-t",
        default=None,
        help=f"表格目录 (默认: {settings.tables_dir})"
    )
    parser.add_argument(
        "--session", "-s",
        default=None,
        help=f"会话 ID，同一会话内尽量不重复 (默认: {settings.default_session})"
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="要执行的命令，如: roll Loot +2；为空时进入交互模式"
    )
    return parser.parse_args(argv)


async def run_command(line: str, ctx: CommandContext) -> int:
    """执行一条命令并输出结果，返回退出码"""
    result = await get_registry().execute(line, ctx)
    if result is None:
        print(f"未知命令: {line.split()[0]}，输入 help 查看帮助", file=sys.stderr)
        return 1
    if result.content:
        print(result.content, file=sys.stderr if result.is_error else sys.stdout)
    return 1 if result.is_error else 0


async def repl(ctx: CommandContext) -> None:
    """交互模式：逐行读取命令"""
    loop = asyncio.get_running_loop()
    print("Table Roller 交互模式，输入 help 查看帮助，exit 退出")
    while True:
        line = await loop.run_in_executor(None, _prompt)
        if line is None or line.strip().lower() in EXIT_WORDS:
            break
        if line.strip():
            await run_command(line, ctx)


def _prompt() -> Optional[str]:
    try:
        return input("> ")
    except EOFError:
        return None


async def main(argv: Optional[List[str]] = None) -> int:
    """主函数"""
    args = parse_args(argv)

    # 命令行 --debug 优先于 .env 配置
    log_level = "DEBUG" if args.debug else settings.log_level
    configure_logging(
        level=log_level,
        log_path=settings.log_path if settings.log_to_file else None,
    )
    logger.debug(f"配置: {settings}")

    core = TableRollerCore(
        unique_attempt_factor=settings.unique_attempt_factor,
        inline_dice=settings.inline_dice,
        history_limit=settings.history_limit,
    )
    tables_dir = args.tables or settings.tables_dir
    try:
        count = core.load_tables(tables_dir, require_frontmatter=settings.require_frontmatter)
    except TableLoadError as e:
        logger.error(e.message)
        return 2
    logger.info(f"已加载 {count} 个表格")

    ctx = CommandContext(
        session_id=args.session or settings.default_session,
        core=core,
        settings=settings,
    )

    if args.command:
        return await run_command(" ".join(args.command), ctx)

    try:
        await repl(ctx)
    except KeyboardInterrupt:
        logger.info("收到退出信号")
    return 0


def cli() -> None:
    """控制台脚本入口"""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
