"""表格骰点解析器测试"""
import pytest

from tableroller.errors import (
    AmbiguousReferenceError,
    InfiniteSelfRerollError,
    NoMatchingEntryError,
    TableNotFoundError,
)

from .conftest import dice_table, simple_table


def spy_chains(resolver, monkeypatch):
    """记录每次 _roll_handle 调用时的 (表格, 调用链)"""
    calls = []
    original = resolver._roll_handle

    def spy(handle, modifier, call_chain):
        calls.append((handle.identity.key, call_chain))
        return original(handle, modifier, call_chain)

    monkeypatch.setattr(resolver, "_roll_handle", spy)
    return calls


class TestDiceTables:
    """骰点表选取测试"""

    def test_modifier_clamped_to_max(self, registry, resolver, rng):
        registry.register("ns", "Loot", dice_table("d6", (1, 3, "A"), (4, 6, "B")))
        rng.push(1)
        result = resolver.roll("Loot", modifier=10)
        assert result.roll == 6
        assert result.columns == {"Result": "B"}

    def test_modifier_clamped_to_min(self, registry, resolver, rng):
        registry.register("ns", "Loot", dice_table("d6", (1, 3, "A"), (4, 6, "B")))
        rng.push(6)
        result = resolver.roll("Loot", modifier=-10)
        assert result.roll == 1
        assert result.text == "A"

    def test_first_matching_entry_wins(self, registry, resolver, rng):
        registry.register("ns", "Overlap", dice_table("d6", (1, 4, "A"), (3, 6, "B")))
        rng.push(3)
        assert resolver.roll("Overlap").text == "A"

    def test_gap_raises_no_matching_entry(self, registry, resolver, rng):
        registry.register("ns", "Gap", dice_table("d6", (1, 2, "A"), (5, 6, "B")))
        rng.push(3)
        with pytest.raises(NoMatchingEntryError) as exc_info:
            resolver.roll("Gap")
        assert exc_info.value.table == "ns.Gap"
        assert exc_info.value.roll == 3

    def test_empty_table(self, registry, resolver):
        registry.register("ns", "Empty", simple_table())
        with pytest.raises(NoMatchingEntryError):
            resolver.roll("Empty")

    def test_unknown_table(self, resolver):
        with pytest.raises(TableNotFoundError) as exc_info:
            resolver.roll("Dragon")
        assert exc_info.value.name == "Dragon"

    def test_result_identity(self, registry, resolver, rng):
        registry.register("ns", "Loot", dice_table("d6", (1, 6, "A")), source="loot.md")
        rng.push(4)
        result = resolver.roll("ns.Loot")
        assert result.identifier == "ns.Loot"
        assert result.source == "loot.md"
        assert result.to_dict() == {
            "table": "Loot",
            "namespace": "ns",
            "columns": {"Result": "A"},
            "roll": 4,
        }


class TestSimpleTables:
    """普通表格测试"""

    def test_pick_row(self, registry, resolver, rng):
        registry.register("ns", "Names", simple_table("甲", "乙", "丙"))
        rng.push(1)
        result = resolver.roll("Names")
        assert result.roll is None
        assert result.columns == {"Result": "乙"}

    def test_reroll_column_hidden(self, registry, resolver, rng):
        registry.register("ns", "Names", simple_table(("甲", "Title")))
        registry.register("ns", "Title", simple_table("爵士"))
        result = resolver.roll("Names")
        assert "Reroll" not in result.columns
        assert [nested.text for nested in result.nested_rolls] == ["爵士"]


class TestRerolls:
    """重骰展开测试"""

    def test_row_reroll_before_table_reroll(self, registry, resolver, rng):
        registry.register(
            "ns", "Encounter",
            dice_table("d6", (1, 6, "哥布林", "Weapon"), reroll="Mood"),
        )
        registry.register("ns", "Weapon", simple_table("匕首"))
        registry.register("ns", "Mood", simple_table("愤怒"))
        rng.push(2)

        result = resolver.roll("Encounter")
        assert [nested.table_name for nested in result.nested_rolls] == ["Weapon", "Mood"]

    def test_missing_target_skipped(self, registry, resolver):
        registry.register("ns", "Encounter", simple_table(("哥布林", "Ghost, Weapon")))
        registry.register("ns", "Weapon", simple_table("匕首"))

        result = resolver.roll("Encounter")
        assert [nested.table_name for nested in result.nested_rolls] == ["Weapon"]

    def test_multi_roll_count(self, registry, resolver, rng):
        registry.register("ns", "Hoard", simple_table(("宝藏堆", "2d4 Treasure")))
        registry.register("ns", "Treasure", simple_table("金币", "银币", "铜币", "宝石", "卷轴", "药水"))
        rng.push(0, 2, 3)

        result = resolver.roll("Hoard")
        assert len(result.nested_rolls) == 5
        assert all(nested.table_name == "Treasure" for nested in result.nested_rolls)

    def test_multi_roll_allows_duplicates_for_other_tables(self, registry, resolver):
        registry.register("ns", "Bag", simple_table(("袋子", "5d1 Gem")))
        registry.register("ns", "Gem", simple_table("红", "蓝"))

        result = resolver.roll("Bag")
        assert len(result.nested_rolls) == 5

    def test_modifier_applies_to_nested(self, registry, resolver, rng):
        registry.register("ns", "Encounter", dice_table("d6", (1, 6, "哥布林", "Loot")))
        registry.register("ns", "Loot", dice_table("d6", (1, 3, "A"), (4, 6, "B")))
        rng.push(1, 1)

        result = resolver.roll("Encounter", modifier=5)
        assert result.nested_rolls[0].text == "B"

    def test_reroll_uses_own_namespace(self, registry, resolver):
        registry.register("Dungeon", "Encounter", simple_table(("哥布林", "Loot")))
        registry.register("Dungeon", "Loot", simple_table("金币"))
        registry.register("Forest", "Loot", simple_table("浆果"))

        result = resolver.roll("Dungeon.Encounter")
        assert result.nested_rolls[0].namespace == "Dungeon"
        assert result.nested_rolls[0].text == "金币"

    def test_ambiguous_reroll_propagates(self, registry, resolver):
        registry.register("Castle", "Encounter", simple_table(("守卫", "Loot")))
        registry.register("Dungeon", "Loot", simple_table("金币"))
        registry.register("Forest", "Loot", simple_table("浆果"))

        with pytest.raises(AmbiguousReferenceError):
            resolver.roll("Encounter")


class TestSelfReference:
    """自引用与循环测试"""

    def test_self_multi_roll_distinct(self, registry, resolver, rng):
        registry.register("ns", "Gems", dice_table(
            "d6",
            (1, 1, "红宝石"), (2, 2, "蓝宝石"), (3, 3, "翡翠"),
            (4, 4, "蛋白石"), (5, 5, "珍珠"),
            (6, 6, "宝石袋", "3d1 Gems"),
        ))
        rng.push(6)

        result = resolver.roll("Gems")
        texts = [nested.text for nested in result.nested_rolls]
        assert len(texts) == 3
        assert len(set(texts)) == 3
        assert "宝石袋" not in texts

    def test_self_multi_roll_padded_when_exhausted(self, registry, resolver, rng):
        registry.register("ns", "Gems", dice_table(
            "d3",
            (1, 1, "红宝石"), (2, 2, "蛋白石"),
            (3, 3, "宝石袋", "4d1 Gems"),
        ))
        rng.push(3)

        result = resolver.roll("Gems")
        texts = [nested.text for nested in result.nested_rolls]
        assert len(texts) == 4
        assert set(texts[:2]) == {"红宝石", "蛋白石"}
        assert set(texts) == {"红宝石", "蛋白石"}

    def test_self_reference_roll_within_entry_range(self, registry, resolver, rng):
        registry.register("ns", "Gems", dice_table(
            "d20", (1, 10, "碎石"), (11, 20, "再来", "Gems"),
        ))
        rng.push(15)

        result = resolver.roll("Gems")
        nested = result.nested_rolls[0]
        assert nested.text == "碎石"
        assert 1 <= nested.roll <= 10

    def test_all_entries_reroll_self(self, registry, resolver, rng, monkeypatch, log_messages):
        registry.register("ns", "Loop", dice_table(
            "d2", (1, 1, "甲", "Loop"), (2, 2, "乙", "Loop"),
        ))
        calls = spy_chains(resolver, monkeypatch)
        rng.push(1)

        result = resolver.roll("Loop")
        assert result.text == "甲"
        assert result.nested_rolls == []
        assert any("SELF_REROLL_SKIP" in m and "table=ns.Loop" in m for m in log_messages)
        assert max(len(chain) for _, chain in calls) <= 1

    def test_self_reroll_raises_in_self_reference_mode(self, registry, resolver):
        registry.register("ns", "Loop", dice_table(
            "d2", (1, 1, "甲", "Loop"), (2, 2, "乙", "2d6 ns.Loop"),
        ))
        handle = registry.find("Loop")

        with pytest.raises(InfiniteSelfRerollError) as exc_info:
            resolver._roll_handle(handle, 0, ("ns.Loop",))
        assert exc_info.value.table == "ns.Loop"

    def test_self_reroll_failure_keeps_siblings(self, registry, resolver, rng):
        registry.register("ns", "Encounter", dice_table(
            "d2",
            (1, 1, "哥布林", "Encounter, Mood"),
            (2, 2, "兽人", "Encounter, Mood"),
        ))
        registry.register("ns", "Mood", simple_table("愤怒"))
        rng.push(2)

        result = resolver.roll("Encounter")
        assert result.text == "兽人"
        assert [nested.table_name for nested in result.nested_rolls] == ["Mood"]

    def test_looping_table_in_row_reroll_keeps_siblings(self, registry, resolver, rng):
        registry.register("ns", "Loop", dice_table(
            "d2", (1, 1, "甲", "Loop"), (2, 2, "乙", "Loop"),
        ))
        registry.register("ns", "Mood", simple_table("愤怒"))
        registry.register("ns", "Encounter", simple_table(("哥布林", "Loop, Mood")))
        rng.push(0, 2)

        result = resolver.roll("Encounter")
        assert [nested.table_name for nested in result.nested_rolls] == ["Loop", "Mood"]
        assert result.nested_rolls[0].nested_rolls == []
        assert result.nested_rolls[1].text == "愤怒"

    def test_cycle_between_tables_terminates(self, registry, resolver, rng):
        registry.register("ns", "A", simple_table(("甲", "B"), "丁"))
        registry.register("ns", "B", simple_table(("乙", "A"), "丙"))
        rng.push(0, 0)

        result = resolver.roll("A")
        b_result = result.nested_rolls[0]
        assert b_result.text == "乙"
        leaf = b_result.nested_rolls[0]
        assert leaf.table_name == "A"
        assert leaf.text == "丁"
        assert leaf.nested_rolls == []

    def test_table_reroll_into_chain_dropped(self, registry, resolver, rng):
        registry.register("ns", "Echo", simple_table("甲", "乙", reroll="Echo"))

        result = resolver.roll("Echo")
        assert [nested.table_name for nested in result.nested_rolls] == ["Echo"]
        assert result.nested_rolls[0].nested_rolls == []

    def test_sibling_branches_do_not_share_chain(self, registry, resolver, monkeypatch):
        registry.register("ns", "Hub", simple_table(("中心", "Leaf, Leaf")))
        registry.register("ns", "Leaf", dice_table("d2", (1, 2, "叶")))
        calls = spy_chains(resolver, monkeypatch)

        resolver.roll("Hub")
        assert calls == [
            ("ns.Hub", ()),
            ("ns.Leaf", ("ns.Hub",)),
            ("ns.Leaf", ("ns.Hub",)),
        ]
