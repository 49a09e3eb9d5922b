"""日志装饰器

记录命令执行的参数、耗时和结果。
"""
import time
from functools import wraps
from typing import Any, Callable

from loguru import logger


def log_command(func: Callable) -> Callable:
    """命令执行日志装饰器

    用于装饰 BaseCommand.execute，日志格式:
    - 开始: CMD | session=xxx | cmd=xxx | args=xxx
    - 成功: CMD_OK | session=xxx | cmd=xxx | duration=xxxms
    - 失败: CMD_ERR | session=xxx | cmd=xxx | error=xxx
    """
    @wraps(func)
    async def wrapper(self, args: str, *extra_args, **kwargs) -> Any:
        start_time = time.perf_counter()
        session_id = getattr(self.ctx, "session_id", "unknown")
        cmd_name = getattr(self, "name", func.__name__)

        logger.info(f"CMD | session={session_id} | cmd={cmd_name} | args={args}")

        try:
            result = await func(self, args, *extra_args, **kwargs)
        except Exception as e:
            duration = (time.perf_counter() - start_time) * 1000
            logger.exception(
                f"CMD_ERR | session={session_id} | cmd={cmd_name} | "
                f"duration={duration:.2f}ms | error={type(e).__name__}: {e}"
            )
            raise

        duration = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"CMD_OK | session={session_id} | cmd={cmd_name} | "
            f"duration={duration:.2f}ms"
        )
        return result

    return wrapper
