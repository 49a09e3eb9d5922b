"""表格注册表测试"""
import pytest

from tableroller.errors import AmbiguousReferenceError
from tableroller.tables import TableIdentity

from .conftest import dice_table, simple_table


@pytest.fixture
def loot_registry(registry):
    registry.register("Dungeon", "Loot", simple_table("金币"))
    registry.register("Forest", "Loot", simple_table("浆果"))
    registry.register("Dungeon", "Encounter", dice_table("d6", (1, 6, "哥布林")))
    registry.register("Forest", "Weather", simple_table("晴"), source="forest.md")
    return registry


class TestTableRegistry:
    """TableRegistry 测试"""

    def test_find_unique_short_name(self, loot_registry):
        handle = loot_registry.find("Encounter")
        assert handle.identity == TableIdentity("Dungeon", "Encounter")

    def test_find_case_insensitive(self, loot_registry):
        assert loot_registry.find("encounter").short_name == "Encounter"
        assert loot_registry.find("WEATHER").namespace == "Forest"

    def test_find_not_found(self, loot_registry):
        assert loot_registry.find("Dragon") is None
        assert loot_registry.find("") is None

    def test_ambiguous_without_context(self, loot_registry):
        with pytest.raises(AmbiguousReferenceError) as exc_info:
            loot_registry.find("Loot")

        error = exc_info.value
        assert error.namespaces == ["Dungeon", "Forest"]
        assert "Dungeon.Loot" in error.message
        assert "Forest.Loot" in error.message

    def test_context_namespace_wins(self, loot_registry):
        assert loot_registry.find("Loot", "Forest").namespace == "Forest"
        assert loot_registry.find("loot", "dungeon").namespace == "Dungeon"

    def test_context_without_match_falls_back(self, loot_registry):
        handle = loot_registry.find("Weather", "Dungeon")
        assert handle.namespace == "Forest"

    def test_qualified_name(self, loot_registry):
        assert loot_registry.find("Forest.Loot").table.rows[0]["Result"] == "浆果"
        assert loot_registry.find("dungeon.loot").namespace == "Dungeon"
        assert loot_registry.find("Castle.Loot") is None

    def test_qualified_name_with_dotted_namespace(self, registry):
        registry.register("v1.core", "Names", simple_table("Ann"))
        assert registry.find("v1.core.Names").namespace == "v1.core"

    def test_register_overwrites(self, registry):
        registry.register("Dungeon", "Loot", simple_table("金币"))
        registry.register("Dungeon", "Loot", simple_table("宝石"))
        assert len(registry) == 1
        assert registry.find("Loot").table.rows[0]["Result"] == "宝石"

    def test_same_namespace_case_variants_not_ambiguous(self, registry):
        registry.register("Dungeon", "Loot", simple_table("金币"))
        registry.register("Dungeon", "LOOT", simple_table("宝石"))
        assert registry.find("LOOT").short_name == "LOOT"

    def test_list_visible_names(self, loot_registry):
        loot_registry.register("Dungeon", "Secret", simple_table("密道", private=True))
        assert loot_registry.list_visible_names() == {"Loot", "Encounter", "Weather"}

    def test_source_kept(self, loot_registry):
        assert loot_registry.find("Weather").source == "forest.md"

    def test_load_replaces_contents(self, loot_registry, registry):
        handle = loot_registry.find("Encounter")
        registry.load([handle])
        assert len(registry) == 1
        assert registry.find("Loot") is None
        assert "Dungeon.Encounter" in registry

    def test_namespaces(self, loot_registry):
        assert loot_registry.namespaces() == {"Dungeon", "Forest"}
