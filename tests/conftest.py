"""测试公共夹具"""
import random
from typing import List

import pytest
from loguru import logger

from tableroller.dice import DiceRoller
from tableroller.tables import (
    DiceEntry,
    DiceTable,
    RollResolver,
    SimpleTable,
    TableRegistry,
)


class ScriptedRandom(random.Random):
    """先按顺序返回预设的 randint 值，用完后退回固定种子的随机数"""

    def __init__(self):
        super().__init__(20240601)
        self.script: List[int] = []

    def push(self, *values: int) -> "ScriptedRandom":
        self.script.extend(values)
        return self

    def randint(self, a: int, b: int) -> int:
        if self.script:
            value = self.script.pop(0)
            assert a <= value <= b, f"预设值 {value} 不在 [{a}, {b}] 内"
            return value
        return super().randint(a, b)


def dice_table(dice: str, *entries, reroll=None, private=False) -> DiceTable:
    """构造骰点表: entries 为 (min, max, 结果[, 重骰]) 元组"""
    built = []
    for entry in entries:
        low, high, text = entry[:3]
        built.append(
            DiceEntry(
                min=low,
                max=high,
                columns={"Result": text},
                reroll=entry[3] if len(entry) > 3 else None,
            )
        )
    return DiceTable(dice=dice, entries=built, reroll=reroll, private=private)


def simple_table(*results, reroll=None, private=False) -> SimpleTable:
    """构造普通表格: results 为字符串或 (结果, 重骰) 元组"""
    rows = []
    for item in results:
        if isinstance(item, tuple):
            rows.append({"Result": item[0], "Reroll": item[1]})
        else:
            rows.append({"Result": item, "Reroll": ""})
    return SimpleTable(headers=["Result", "Reroll"], rows=rows, reroll=reroll, private=private)


@pytest.fixture
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def registry() -> TableRegistry:
    return TableRegistry()


@pytest.fixture
def resolver(registry, rng) -> RollResolver:
    return RollResolver(registry, DiceRoller(rng))


@pytest.fixture
def log_messages():
    """收集 WARNING 及以上级别的日志消息"""
    messages: List[str] = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]),
        level="WARNING",
    )
    yield messages
    logger.remove(handler_id)
