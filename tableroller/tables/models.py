"""表格与骰点结果模型"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union


class TableKind(Enum):
    """表格类型"""
    DICE = "dice"  # 带骰点列的区间表
    SIMPLE = "simple"  # 随机抽取一行


@dataclass
class DiceEntry:
    """骰点表中的一行"""
    min: int
    max: int
    columns: Dict[str, str] = field(default_factory=dict)  # 显示列（不含骰点列和 reroll 列）
    reroll: Optional[str] = None  # 行级重骰指令

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max


@dataclass
class DiceTable:
    """骰点表"""
    dice: str  # 骰点表达式，同时也是骰点列的表头
    entries: List[DiceEntry] = field(default_factory=list)
    reroll: Optional[str] = None  # 表级重骰指令
    private: bool = False

    kind = TableKind.DICE

    @property
    def min_bound(self) -> int:
        return min(entry.min for entry in self.entries)

    @property
    def max_bound(self) -> int:
        return max(entry.max for entry in self.entries)


@dataclass
class SimpleTable:
    """普通表格，等概率抽取一行"""
    headers: List[str] = field(default_factory=list)
    rows: List[Dict[str, str]] = field(default_factory=list)
    reroll: Optional[str] = None
    private: bool = False

    kind = TableKind.SIMPLE


Table = Union[DiceTable, SimpleTable]


@dataclass(frozen=True)
class TableIdentity:
    """表格标识: (命名空间, 短名)"""
    namespace: str
    short_name: str

    @property
    def key(self) -> str:
        return f"{self.namespace}.{self.short_name}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class TableHandle:
    """注册表中的一项"""
    identity: TableIdentity
    table: Table
    source: Any = None  # 来源标识（如文件路径），由加载方决定

    @property
    def namespace(self) -> str:
        return self.identity.namespace

    @property
    def short_name(self) -> str:
        return self.identity.short_name


def fingerprint(columns: Mapping[str, str]) -> str:
    """
    结果指纹：显示列的 JSON 投影（键排序）

    不包含点数、嵌套结果和来源，重复判定只看显示内容。
    """
    return json.dumps(dict(columns), ensure_ascii=False, sort_keys=True)


@dataclass
class RollResult:
    """一次表格骰点的结果（树形，nested_rolls 为重骰展开）"""
    table_name: str
    namespace: str
    columns: Dict[str, str] = field(default_factory=dict)
    roll: Optional[int] = None
    nested_rolls: List["RollResult"] = field(default_factory=list)
    source: Any = None

    @property
    def identifier(self) -> str:
        return f"{self.namespace}.{self.table_name}"

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.columns)

    @property
    def text(self) -> str:
        """显示文本：各列值以 | 连接"""
        return " | ".join(value for value in self.columns.values() if value)

    def to_dict(self) -> dict:
        """转换为字典"""
        data: Dict[str, Any] = {
            "table": self.table_name,
            "namespace": self.namespace,
            "columns": dict(self.columns),
        }
        if self.roll is not None:
            data["roll"] = self.roll
        if self.nested_rolls:
            data["nested"] = [nested.to_dict() for nested in self.nested_rolls]
        return data
