"""Markdown 表格加载器

从 Markdown 文件中解析表格：标题行作为表名，标题下方的
`reroll:` / `private:` 行设置表级选项，随后的管道表格为表格内容。
文件名（不含扩展名）作为命名空间。
"""
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from loguru import logger

from ..dice import DiceParser, parse_range
from ..errors import TableLoadError
from .models import DiceEntry, DiceTable, SimpleTable, Table, TableHandle, TableIdentity
from .registry import NAMESPACE_SEPARATOR
from .resolver import EMPTY_REROLL_VALUES, REROLL_COLUMN

# frontmatter 中标记表格文件的键
TABLE_FILE_KEY = "table-roller"

FRONTMATTER_PATTERN = re.compile(r"^---\r?\n(.*?)\r?\n---\r?\n?(.*)$", re.DOTALL)
HEADING_PATTERN = re.compile(r"^#{1,6}\s+(.+)$")
REROLL_PATTERN = re.compile(r"^reroll:\s*(.+)$", re.IGNORECASE)
PRIVATE_PATTERN = re.compile(r"^private:\s*(true|yes|1)$", re.IGNORECASE)


@dataclass
class ParsedFile:
    """单个文件的解析结果"""
    namespace: str
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    tables: Dict[str, Table] = field(default_factory=dict)

    @property
    def is_table_file(self) -> bool:
        return self.frontmatter.get(TABLE_FILE_KEY) is True


@dataclass
class _PendingTable:
    name: Optional[str] = None
    reroll: Optional[str] = None
    private: bool = False
    lines: List[str] = field(default_factory=list)


class TableParser:
    """Markdown 表格解析器"""

    @staticmethod
    def extract_frontmatter(content: str) -> Tuple[Dict[str, Any], str]:
        """提取 YAML frontmatter，返回 (字段字典, 正文)"""
        match = FRONTMATTER_PATTERN.match(content)
        if not match:
            return {}, content

        try:
            frontmatter = yaml.safe_load(match.group(1))
        except yaml.YAMLError as e:
            logger.warning(f"frontmatter 不是合法的 YAML，已忽略: {e}")
            return {}, match.group(2)

        if frontmatter is None:
            return {}, match.group(2)
        if not isinstance(frontmatter, dict):
            logger.warning(f"frontmatter 不是键值映射，已忽略: {type(frontmatter).__name__}")
            return {}, match.group(2)

        return frontmatter, match.group(2)

    @classmethod
    def parse_tables(cls, content: str, namespace: str) -> ParsedFile:
        """解析文件中的所有表格"""
        frontmatter, body = cls.extract_frontmatter(content)
        parsed = ParsedFile(namespace=namespace, frontmatter=frontmatter)

        pending = _PendingTable()
        in_table = False
        unnamed_count = 0

        def flush():
            name = cls._clean_name(pending.name) if pending.name else None
            if pending.lines and name:
                table = cls._build_table(pending.lines, pending.reroll, pending.private)
                if table is not None:
                    parsed.tables[name] = table

        for raw_line in body.splitlines():
            line = raw_line.strip()

            heading = HEADING_PATTERN.match(line)
            if heading:
                if in_table:
                    flush()
                    in_table = False
                pending = _PendingTable(name=heading.group(1).strip())
                continue

            # 标题下方、表格之前的表级选项
            if pending.name and not in_table:
                reroll = REROLL_PATTERN.match(line)
                if reroll:
                    pending.reroll = reroll.group(1).strip()
                    continue
                if PRIVATE_PATTERN.match(line):
                    pending.private = True
                    continue

            if "|" in line:
                if not in_table:
                    in_table = True
                    pending.lines = []
                    # 没有标题的表格按序号命名
                    if not pending.name:
                        unnamed_count += 1
                        pending.name = f"{namespace}{unnamed_count}"
                pending.lines.append(line)
            elif in_table:
                flush()
                in_table = False
                pending = _PendingTable()

        if in_table:
            flush()

        return parsed

    @staticmethod
    def _clean_name(name: str) -> str:
        """表名中的命名空间分隔符替换为空格，否则无法按短名查找"""
        if NAMESPACE_SEPARATOR not in name:
            return name
        cleaned = re.sub(r"\s+", " ", name.replace(NAMESPACE_SEPARATOR, " ")).strip()
        logger.warning(f"表名不能包含 '{NAMESPACE_SEPARATOR}'，已重命名: {name} -> {cleaned}")
        return cleaned

    @staticmethod
    def _split_cells(line: str) -> List[str]:
        cells = [cell.strip() for cell in line.split("|")]
        # 去掉首尾管道符产生的空单元格
        if cells and cells[0] == "":
            cells = cells[1:]
        if cells and cells[-1] == "":
            cells = cells[:-1]
        return cells

    @classmethod
    def _build_table(
        cls,
        lines: List[str],
        reroll: Optional[str],
        private: bool,
    ) -> Optional[Table]:
        # 表头 + 分隔行 + 至少一行数据
        if len(lines) < 3:
            return None

        headers = [header for header in cls._split_cells(lines[0]) if header]
        if not headers:
            return None

        rows: List[Dict[str, str]] = []
        for line in lines[2:]:
            cells = cls._split_cells(line)
            if not cells:
                continue
            rows.append({
                header: cells[idx] if idx < len(cells) else ""
                for idx, header in enumerate(headers)
            })

        dice_header = next((h for h in headers if DiceParser.is_dice_header(h)), None)
        if dice_header is None:
            return SimpleTable(headers=headers, rows=rows, reroll=reroll, private=private)

        return DiceTable(
            dice=dice_header.strip().lower(),
            entries=[cls._build_entry(row, dice_header) for row in rows],
            reroll=reroll,
            private=private,
        )

    @staticmethod
    def _build_entry(row: Dict[str, str], dice_header: str) -> DiceEntry:
        bounds = parse_range(row.get(dice_header, ""))
        low, high = bounds if bounds else (0, 0)

        columns: Dict[str, str] = {}
        reroll = None
        for key, value in row.items():
            if key == dice_header:
                continue
            if key.strip().lower() == REROLL_COLUMN:
                value = value.strip()
                if value not in EMPTY_REROLL_VALUES:
                    reroll = value
                continue
            if value and value.strip():
                columns[key] = value

        return DiceEntry(min=low, max=high, columns=columns, reroll=reroll)


def load_file(path: Union[str, Path]) -> ParsedFile:
    """读取并解析单个 Markdown 文件"""
    path = Path(path)
    content = path.read_text(encoding="utf-8")
    return TableParser.parse_tables(content, path.stem)


def load_directory(
    directory: Union[str, Path],
    require_frontmatter: bool = False,
) -> List[TableHandle]:
    """
    递归加载目录下所有 .md 文件中的表格

    Args:
        directory: 表格目录
        require_frontmatter: 只加载 frontmatter 中带 `table-roller: true` 的文件

    Returns:
        所有表格的 TableHandle 列表
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise TableLoadError(f"表格目录不存在: {directory}")

    handles: List[TableHandle] = []
    files = sorted(directory.rglob("*.md"))
    for path in files:
        try:
            parsed = load_file(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"读取表格文件失败: {path} ({e})")
            continue

        if require_frontmatter and not parsed.is_table_file:
            logger.debug(f"跳过非表格文件: {path}")
            continue

        for name, table in parsed.tables.items():
            handles.append(
                TableHandle(
                    identity=TableIdentity(parsed.namespace, name),
                    table=table,
                    source=str(path),
                )
            )
        logger.debug(f"加载表格文件: {path} ({len(parsed.tables)} 个表格)")

    logger.info(f"从 {directory} 的 {len(files)} 个文件中加载了 {len(handles)} 个表格")
    return handles
