"""表格骰点解析器 - 掷骰、选取条目并递归展开重骰指令"""
from typing import List, Optional, Set, Tuple

from loguru import logger

from ..dice import DiceParser, DiceRoller
from ..errors import (
    AmbiguousReferenceError,
    InfiniteSelfRerollError,
    InvalidNotationError,
    NoMatchingEntryError,
    TableNotFoundError,
)
from .models import DiceEntry, DiceTable, RollResult, SimpleTable, TableHandle, TableKind
from .registry import TableRegistry

# 调用链: 当前正在展开的表格完整名称，按值传递
CallChain = Tuple[str, ...]

# reroll 列的表头（忽略大小写）
REROLL_COLUMN = "reroll"

# 表示“无重骰”的单元格内容
EMPTY_REROLL_VALUES = {"", "-", "—", "–"}


def split_references(directive: Optional[str]) -> List[str]:
    """拆分逗号分隔的重骰指令"""
    if not directive:
        return []
    return [part.strip() for part in directive.split(",") if part.strip()]


def split_row(row: dict) -> Tuple[dict, Optional[str]]:
    """将普通表格的一行拆分为 (显示列, 行级重骰指令)"""
    columns = {}
    reroll = None
    for key, value in row.items():
        if key.strip().lower() == REROLL_COLUMN:
            value = (value or "").strip()
            if value not in EMPTY_REROLL_VALUES:
                reroll = value
            continue
        if value and str(value).strip():
            columns[key] = value
    return columns, reroll


class RollResolver:
    """
    表格骰点解析器

    roll() 返回一棵 RollResult 树。递归展开时携带调用链，
    表格再次出现在调用链中即进入自引用模式，保证展开必然终止。
    """

    def __init__(
        self,
        registry: TableRegistry,
        roller: Optional[DiceRoller] = None,
        unique_attempt_factor: int = 10,
    ):
        self.registry = registry
        self.roller = roller or DiceRoller()
        self.unique_attempt_factor = unique_attempt_factor

    def roll(
        self,
        name: str,
        context_namespace: Optional[str] = None,
        modifier: int = 0,
    ) -> RollResult:
        """在指定表格上骰点"""
        return self._roll(name, context_namespace, modifier, ())

    def roll_handle(self, handle: TableHandle, modifier: int = 0) -> RollResult:
        """在已解析的表格上骰点"""
        return self._roll_handle(handle, modifier, ())

    def _roll(
        self,
        name: str,
        context_namespace: Optional[str],
        modifier: int,
        call_chain: CallChain,
    ) -> RollResult:
        handle = self.registry.find(name, context_namespace)
        if handle is None:
            raise TableNotFoundError(name)
        return self._roll_handle(handle, modifier, call_chain)

    def _roll_handle(
        self,
        handle: TableHandle,
        modifier: int,
        call_chain: CallChain,
    ) -> RollResult:
        table = handle.table
        identifier = handle.identity.key
        self_reference = identifier in call_chain

        if table.kind is TableKind.DICE:
            roll, columns, row_reroll = self._select_dice_entry(
                handle, table, modifier, call_chain, self_reference
            )
        elif table.kind is TableKind.SIMPLE:
            roll = None
            columns, row_reroll = self._select_simple_row(
                handle, table, call_chain, self_reference
            )
        else:
            raise TypeError(f"未知的表格类型: {table.kind}")

        result = RollResult(
            table_name=handle.short_name,
            namespace=handle.namespace,
            columns=columns,
            roll=roll,
            source=handle.source,
        )
        logger.debug(
            f"ROLL | table={identifier} | roll={roll} | "
            f"self_ref={self_reference} | depth={len(call_chain)}"
        )

        chain = call_chain + (identifier,)
        if row_reroll:
            result.nested_rolls.extend(
                self._resolve_rerolls(row_reroll, handle.namespace, modifier, chain)
            )
        if table.reroll:
            directive = table.reroll
            if self_reference:
                # 自引用模式下不再展开指回调用链的表级重骰
                directive = self._drop_chain_references(directive, handle, call_chain)
            result.nested_rolls.extend(
                self._resolve_rerolls(directive, handle.namespace, modifier, chain)
            )

        return result

    # ===== 条目选取 =====

    def _select_dice_entry(
        self,
        handle: TableHandle,
        table: DiceTable,
        modifier: int,
        call_chain: CallChain,
        self_reference: bool,
    ) -> Tuple[int, dict, Optional[str]]:
        identifier = handle.identity.key
        if not table.entries:
            raise NoMatchingEntryError(identifier)

        if self_reference:
            candidates = [
                entry for entry in table.entries
                if not self._points_into_chain(entry.reroll, handle, call_chain)
            ]
            if not candidates:
                raise InfiniteSelfRerollError(identifier)
            entry: DiceEntry = self.roller.pick(candidates)
            # 点数仅用于显示
            roll = self.roller.randint(entry.min, max(entry.min, entry.max))
            return roll, dict(entry.columns), entry.reroll

        raw = self.roller.roll(table.dice)
        # 修正后越界的点数钳制到表格区间内
        roll = max(table.min_bound, min(table.max_bound, raw + modifier))
        for entry in table.entries:
            if entry.contains(roll):
                return roll, dict(entry.columns), entry.reroll

        raise NoMatchingEntryError(identifier, roll)

    def _select_simple_row(
        self,
        handle: TableHandle,
        table: SimpleTable,
        call_chain: CallChain,
        self_reference: bool,
    ) -> Tuple[dict, Optional[str]]:
        identifier = handle.identity.key
        rows = [split_row(row) for row in table.rows]
        if not rows:
            raise NoMatchingEntryError(identifier)

        if self_reference:
            rows = [
                (columns, reroll) for columns, reroll in rows
                if not self._points_into_chain(reroll, handle, call_chain)
            ]
            if not rows:
                raise InfiniteSelfRerollError(identifier)

        columns, reroll = self.roller.pick(rows)
        return dict(columns), reroll

    def _reference_targets(
        self,
        directive: Optional[str],
        handle: TableHandle,
    ) -> List[Tuple[str, Optional[str]]]:
        """返回 [(引用原文, 目标完整名称或 None)]"""
        targets = []
        for reference in split_references(directive):
            _, target_name = DiceParser.split_count_prefix(reference)
            try:
                target = self.registry.find(target_name, handle.namespace)
            except AmbiguousReferenceError:
                target = None
            targets.append((reference, target.identity.key if target else None))
        return targets

    def _points_into_chain(
        self,
        directive: Optional[str],
        handle: TableHandle,
        call_chain: CallChain,
    ) -> bool:
        """重骰指令是否指回当前表格或调用链中的表格"""
        if not directive:
            return False
        blocked: Set[str] = set(call_chain)
        blocked.add(handle.identity.key)
        short_name = handle.short_name.lower()
        qualified = handle.identity.key.lower()

        for reference, target in self._reference_targets(directive, handle):
            _, target_name = DiceParser.split_count_prefix(reference)
            if target_name.lower() in (short_name, qualified):
                return True
            if target in blocked:
                return True
        return False

    def _drop_chain_references(
        self,
        directive: str,
        handle: TableHandle,
        call_chain: CallChain,
    ) -> str:
        kept = []
        for reference, target in self._reference_targets(directive, handle):
            if target and (target in call_chain or target == handle.identity.key):
                logger.debug(f"跳过指回调用链的表级重骰: {reference} ({handle.identity.key})")
                continue
            kept.append(reference)
        return ", ".join(kept)

    # ===== 重骰展开 =====

    def _resolve_rerolls(
        self,
        directive: str,
        context_namespace: str,
        modifier: int,
        call_chain: CallChain,
    ) -> List[RollResult]:
        """
        展开逗号分隔的重骰指令

        找不到的目标、无效的次数表达式以及无法终止的自引用表格
        都只跳过当前引用，其余引用照常展开。
        """
        results: List[RollResult] = []
        for reference in split_references(directive):
            count_notation, target_name = DiceParser.split_count_prefix(reference)

            handle = self.registry.find(target_name, context_namespace)
            if handle is None:
                logger.warning(f"重骰目标不存在，已跳过: {target_name} (来自 {call_chain[-1]})")
                continue

            count = 1
            if count_notation is not None:
                try:
                    count = self.roller.roll(count_notation)
                except InvalidNotationError as e:
                    logger.warning(f"多次骰点的次数表达式无效，已跳过: {reference} ({e})")
                    continue

            try:
                if count_notation is None:
                    results.append(self._roll_handle(handle, modifier, call_chain))
                else:
                    results.extend(self._roll_many(handle, count, modifier, call_chain))
            except InfiniteSelfRerollError as e:
                # 候选条目只取决于表格和调用链，整条引用一起跳过
                logger.warning(
                    f"SELF_REROLL_SKIP | table={e.table} | ref={reference} | "
                    f"from={call_chain[-1]}"
                )
        return results

    def _roll_many(
        self,
        handle: TableHandle,
        count: int,
        modifier: int,
        call_chain: CallChain,
    ) -> List[RollResult]:
        """
        在同一表格上骰 count 次

        目标已在调用链中时尽量取不重复的结果：最多尝试 count * 10 次，
        用尽后以可能重复的结果补齐，保证恰好返回 count 个。
        """
        if count <= 0:
            return []

        if handle.identity.key not in call_chain:
            return [self._roll_handle(handle, modifier, call_chain) for _ in range(count)]

        results: List[RollResult] = []
        seen: Set[str] = set()
        budget = count * self.unique_attempt_factor
        attempts = 0
        while len(results) < count and attempts < budget:
            attempts += 1
            result = self._roll_handle(handle, modifier, call_chain)
            if result.fingerprint in seen:
                continue
            seen.add(result.fingerprint)
            results.append(result)

        if len(results) < count:
            logger.debug(
                f"UNIQUE_EXHAUSTED | table={handle.identity.key} | "
                f"unique={len(results)} | wanted={count} | attempts={attempts}"
            )
        while len(results) < count:
            results.append(self._roll_handle(handle, modifier, call_chain))

        return results
