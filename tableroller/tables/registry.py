"""表格注册表 - 按命名空间管理已加载的表格"""
from typing import Any, Dict, Iterable, List, Optional, Set

from loguru import logger

from ..errors import AmbiguousReferenceError
from .models import Table, TableHandle, TableIdentity

# 命名空间分隔符
NAMESPACE_SEPARATOR = "."


class TableRegistry:
    """
    表格注册表

    以 TableIdentity 为唯一主键保存表格，短名索引由主表派生，
    每次修改后重建。解析过程中只读。
    """

    def __init__(self):
        self._tables: Dict[TableIdentity, TableHandle] = {}
        self._by_short_name: Optional[Dict[str, List[TableIdentity]]] = None

    def register(
        self,
        namespace: str,
        short_name: str,
        table: Table,
        source: Any = None,
    ) -> TableHandle:
        """注册表格，同一完整名称重复注册时覆盖"""
        identity = TableIdentity(namespace, short_name)
        handle = TableHandle(identity=identity, table=table, source=source)
        if identity in self._tables:
            logger.debug(f"覆盖表格: {identity.key}")
        self._tables[identity] = handle
        self._by_short_name = None
        return handle

    def load(self, handles: Iterable[TableHandle]) -> None:
        """用一批表格替换注册表的全部内容"""
        self._tables = {handle.identity: handle for handle in handles}
        self._by_short_name = None
        logger.info(f"注册表已加载 {len(self._tables)} 个表格")

    def clear(self) -> None:
        self._tables.clear()
        self._by_short_name = None

    def _short_name_index(self) -> Dict[str, List[TableIdentity]]:
        if self._by_short_name is None:
            index: Dict[str, List[TableIdentity]] = {}
            for identity in self._tables:
                index.setdefault(identity.short_name.lower(), []).append(identity)
            self._by_short_name = index
        return self._by_short_name

    def find(
        self,
        search_name: str,
        context_namespace: Optional[str] = None,
    ) -> Optional[TableHandle]:
        """
        按名称查找表格

        1. 含命名空间（Namespace.Name）：只做完整名称匹配（先精确后忽略大小写）
        2. 有上下文命名空间：优先返回 context.Name，不做歧义检查
        3. 否则按短名忽略大小写查找，多个命名空间同名时抛出 AmbiguousReferenceError
        """
        search_name = search_name.strip()
        if not search_name:
            return None

        if NAMESPACE_SEPARATOR in search_name:
            return self._find_qualified(search_name)

        if context_namespace:
            handle = self._find_in_namespace(context_namespace, search_name)
            if handle:
                return handle

        candidates = self._short_name_index().get(search_name.lower(), [])
        if not candidates:
            return None
        if len(candidates) == 1:
            return self._tables[candidates[0]]

        namespaces = {identity.namespace for identity in candidates}
        if len(namespaces) > 1:
            raise AmbiguousReferenceError(search_name, namespaces)

        # 同一命名空间内仅大小写不同，优先精确匹配
        for identity in candidates:
            if identity.short_name == search_name:
                return self._tables[identity]
        return self._tables[candidates[0]]

    def _find_qualified(self, key: str) -> Optional[TableHandle]:
        # 命名空间本身可能包含 "."，按最后一个分隔符拆分
        namespace, _, short_name = key.rpartition(NAMESPACE_SEPARATOR)
        handle = self._tables.get(TableIdentity(namespace, short_name))
        if handle:
            return handle

        lower = key.lower()
        for identity, handle in self._tables.items():
            if identity.key.lower() == lower:
                return handle
        return None

    def _find_in_namespace(self, namespace: str, short_name: str) -> Optional[TableHandle]:
        handle = self._tables.get(TableIdentity(namespace, short_name))
        if handle:
            return handle

        lower = short_name.lower()
        for identity in self._short_name_index().get(lower, []):
            if identity.namespace.lower() == namespace.lower():
                return self._tables[identity]
        return None

    def list_visible_names(self) -> Set[str]:
        """所有非私有表格的短名（重名只保留一个）"""
        return {
            identity.short_name
            for identity, handle in self._tables.items()
            if not handle.table.private
        }

    def namespaces(self) -> Set[str]:
        return {identity.namespace for identity in self._tables}

    def __len__(self) -> int:
        return len(self._tables)

    def __contains__(self, key: str) -> bool:
        return self._find_qualified(key) is not None
