"""
Column encoders shared by the repositories.

Id sets are stored as JSON arrays of strings, timestamps as unix
milliseconds, booleans as 0/1.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, Optional, Type, TypeVar

from warden.datatypes.discord_datatypes import Snowflake

S = TypeVar("S", bound=Snowflake)


def dump_ids(ids: Iterable[Snowflake]) -> str:
    return json.dumps(sorted(str(value) for value in ids))


def load_ids(raw: Optional[str], id_type: Type[S]) -> FrozenSet[S]:
    if not raw:
        return frozenset()
    return frozenset(id_type(value) for value in json.loads(raw))


def to_ms(value: Optional[datetime]) -> Optional[int]:
    if value is None:
        return None
    return int(value.timestamp() * 1000)


def from_ms(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def optional_id(raw: Optional[str], id_type: Type[S]) -> Optional[S]:
    return id_type(raw) if raw is not None else None


def optional_str(value: Optional[Snowflake]) -> Optional[str]:
    return str(value) if value is not None else None
