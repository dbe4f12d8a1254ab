"""JSON I/O helpers for profiles, configs and CLI output.

All encoding goes through orjson. Profiles are persisted as compact JSON
strings; files written for humans (configs, exported profiles) are indented
with sorted keys so diffs stay stable.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Save an object as JSON, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    opts = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS if pretty else orjson.OPT_SORT_KEYS
    path.write_bytes(orjson.dumps(obj, option=opts))


def dumps_json(obj: Any) -> str:
    """Encode an object as a compact JSON string (sorted keys)."""
    return orjson.dumps(obj, option=orjson.OPT_SORT_KEYS).decode("utf-8")


def loads_json(raw: str | bytes) -> Any:
    """Decode a JSON string or bytes payload."""
    return orjson.loads(raw)
