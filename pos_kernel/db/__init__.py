"""Database layer - engine, base classes, types."""

from pos_kernel.db.base import UUID, Base, DecimalString, MinorUnits, UTCDateTime, UUIDString
from pos_kernel.db.engine import create_tables, get_engine, get_session_factory, session_scope
from pos_kernel.db.types import MONEY_DECIMAL_PLACES, round_money

__all__ = [
    "get_engine",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "UUIDString",
    "UUID",
    "MinorUnits",
    "DecimalString",
    "UTCDateTime",
    "MONEY_DECIMAL_PLACES",
    "round_money",
]
