"""异常定义"""
from typing import Iterable, List, Optional


class TableRollerError(Exception):
    """所有表格骰点错误的基类"""

    def __init__(self, message: str = "表格骰点出错"):
        self.message = message
        super().__init__(self.message)


class InvalidNotationError(TableRollerError):
    """骰点表达式无法解析"""

    def __init__(self, notation: str):
        self.notation = notation
        super().__init__(f"无效的骰点表达式: {notation}")


class TableNotFoundError(TableRollerError):
    """找不到表格"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"未找到表格: {name}")


class AmbiguousReferenceError(TableRollerError):
    """同名表格存在于多个命名空间中，且没有上下文可以消歧"""

    def __init__(self, name: str, namespaces: Iterable[str]):
        self.name = name
        self.namespaces: List[str] = sorted(namespaces)
        candidates = ", ".join(f"{ns}.{name}" for ns in self.namespaces)
        super().__init__(
            f"表格名称 '{name}' 存在歧义，出现在命名空间: {', '.join(self.namespaces)}。"
            f"请使用 Namespace.ShortName 形式指定: {candidates}"
        )


class NoMatchingEntryError(TableRollerError):
    """点数没有匹配到任何条目（表格数据区间有空缺）"""

    def __init__(self, table: str, roll: Optional[int] = None):
        self.table = table
        self.roll = roll
        if roll is None:
            super().__init__(f"表格 {table} 没有任何条目")
        else:
            super().__init__(f"表格 {table} 中没有条目匹配点数 {roll}")


class InfiniteSelfRerollError(TableRollerError):
    """自引用表格的所有条目都会重骰回自身"""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"表格 {table} 的所有条目都会重骰到自身，无法终止")


class TableLoadError(TableRollerError):
    """表格加载失败"""
