"""Shared testing fixtures for the quazar test suite."""

from .banks import (  # noqa: F401
    CAPITALS_BANK,
    TABLE_ITEM,
    bank_json,
    make_record,
    make_table_record,
)
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "CAPITALS_BANK",
    "TABLE_ITEM",
    "WorkspaceBuilder",
    "bank_json",
    "build_tree",
    "make_record",
    "make_table_record",
]
