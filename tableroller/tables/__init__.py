"""表格模块"""
from .models import (
    DiceEntry,
    DiceTable,
    RollResult,
    SimpleTable,
    Table,
    TableHandle,
    TableIdentity,
    TableKind,
    fingerprint,
)
from .registry import TableRegistry
from .resolver import RollResolver
from .session import SessionTracker, UniqueRoll, roll_unique
from .loader import TableParser, load_directory, load_file
from .core import ExpressionResult, TableRollerCore

__all__ = [
    "DiceEntry", "DiceTable", "RollResult", "SimpleTable", "Table",
    "TableHandle", "TableIdentity", "TableKind", "fingerprint",
    "TableRegistry", "RollResolver",
    "SessionTracker", "UniqueRoll", "roll_unique",
    "TableParser", "load_directory", "load_file",
    "ExpressionResult", "TableRollerCore",
]
