"""会话记录 - 跟踪已骰出的结果，避免同一会话内重复"""
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Set

from loguru import logger

from ..errors import TableNotFoundError
from .models import RollResult
from .resolver import RollResolver

# 表示“全部会话”的会话 ID
ALL_SESSIONS = "all"

# 每个会话保留的历史记录条数
DEFAULT_HISTORY_LIMIT = 500


@dataclass
class HistoryEntry:
    """会话历史记录"""
    timestamp: float
    table: str
    fingerprint: str
    result: Optional[RollResult] = None


@dataclass
class SessionState:
    """单个会话的状态"""
    results: Dict[str, Set[str]] = field(default_factory=dict)  # 表格 -> 已出现的指纹
    history: Deque[HistoryEntry] = field(default_factory=deque)  # 只保留最近的记录


@dataclass
class UniqueRoll:
    """防重复骰点结果"""
    result: RollResult
    attempts: int  # 得到结果所用的次数
    duplicate: bool = False  # 次数用尽，返回的是重复结果


class SessionTracker:
    """会话记录器，线程安全"""

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.history_limit = history_limit
        self._sessions: Dict[str, SessionState] = {}
        self._lock = threading.Lock()

    def has_been_rolled(self, session_id: str, table: str, fingerprint: str) -> bool:
        """结果是否已在该会话中出现过"""
        with self._lock:
            session = self._sessions.get(session_id)
            if not session:
                return False
            return fingerprint in session.results.get(table, set())

    def record(
        self,
        session_id: str,
        table: str,
        fingerprint: str,
        result: Optional[RollResult] = None,
    ) -> None:
        """记录一次结果"""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = SessionState(history=deque(maxlen=self.history_limit))
                self._sessions[session_id] = session
            session.results.setdefault(table, set()).add(fingerprint)
            session.history.append(
                HistoryEntry(
                    timestamp=time.time(),
                    table=table,
                    fingerprint=fingerprint,
                    result=result,
                )
            )

    def results(self, session_id: str, table: str) -> List[str]:
        """该会话中某表格已出现的所有指纹"""
        with self._lock:
            session = self._sessions.get(session_id)
            if not session:
                return []
            return sorted(session.results.get(table, set()))

    def history(self, session_id: str) -> List[HistoryEntry]:
        with self._lock:
            session = self._sessions.get(session_id)
            return list(session.history) if session else []

    def sessions(self) -> List[str]:
        with self._lock:
            return list(self._sessions.keys())

    def clear_session(self, session_id: Optional[str] = None) -> None:
        """清除会话记录，session_id 为空或 'all' 时清除全部"""
        with self._lock:
            if session_id is None or session_id == ALL_SESSIONS:
                self._sessions.clear()
                logger.info("已清除全部会话记录")
            else:
                self._sessions.pop(session_id, None)
                logger.info(f"已清除会话记录: {session_id}")


def roll_unique(
    resolver: RollResolver,
    tracker: SessionTracker,
    name: str,
    session_id: str = "default",
    max_attempts: int = 100,
    modifier: int = 0,
    context_namespace: Optional[str] = None,
) -> UniqueRoll:
    """
    在同一张表格上反复骰点，直到得到本会话未出现过的结果

    最多尝试 max_attempts 次，用尽后返回最后一次（可能重复的）结果。
    """
    handle = resolver.registry.find(name, context_namespace)
    if handle is None:
        raise TableNotFoundError(name)

    table = handle.identity.key
    result: Optional[RollResult] = None
    attempts = 0
    for attempts in range(1, max(1, max_attempts) + 1):
        result = resolver.roll_handle(handle, modifier)
        if not tracker.has_been_rolled(session_id, table, result.fingerprint):
            tracker.record(session_id, table, result.fingerprint, result)
            return UniqueRoll(result=result, attempts=attempts)

    logger.warning(
        f"UNIQUE_EXHAUSTED | session={session_id} | table={table} | attempts={attempts}"
    )
    tracker.record(session_id, table, result.fingerprint, result)
    return UniqueRoll(result=result, attempts=attempts, duplicate=True)
