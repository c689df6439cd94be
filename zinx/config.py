"""Server settings, with defaults and reloading from a JSON file."""

from __future__ import annotations

import json
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any, Union

DEFAULT_CONFIG_PATH = Path("conf/zinx.json")
DEFAULT_MAX_PACKAGE_SIZE = 4096

_UINT32_MAX = 0xFFFFFFFF
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

# JSON key (matched case-insensitively) -> (attribute, kind)
_JSON_FIELDS = {
    "name": ("name", "str"),
    "host": ("host", "str"),
    "tcpport": ("tcp_port", "int"),
    "version": ("version", "str"),
    "maxconn": ("max_conn", "int"),
    "maxpackagesize": ("max_package_size", "uint32"),
    "maxworkertasklen": ("max_worker_task_len", "uint32"),
    "workerpoolsize": ("worker_pool_size", "uint32"),
}


def _coerce(key: str, value: Any, kind: str) -> Any:
    if kind == "str":
        if not isinstance(value, str):
            raise TypeError(f"{key}: expected a string, got {type(value).__name__}")
        return value
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key}: expected an integer, got {type(value).__name__}")
    low, high = (0, _UINT32_MAX) if kind == "uint32" else (_INT64_MIN, _INT64_MAX)
    if not low <= value <= high:
        raise ValueError(f"{key}: {value} is out of range [{low}, {high}]")
    return value


@dataclass
class GlobalConfig:
    """Settings shared by the server, its connections and its workers."""

    name: str = "ZinxServerApp"
    host: str = "127.0.0.1"
    tcp_port: int = 8999
    version: str = "v0.4"
    max_conn: int = 1000
    max_package_size: int = DEFAULT_MAX_PACKAGE_SIZE
    max_worker_task_len: int = 1024
    worker_pool_size: int = 10

    def reload(self, path: Union[str, PathLike] = DEFAULT_CONFIG_PATH) -> None:
        """Overwrite settings with the values found in a JSON file.

        Keys are matched case-insensitively; unknown keys and nulls are
        ignored. Raises OSError if the file cannot be read, ValueError for
        malformed JSON or out-of-range numbers, TypeError for wrong types.
        """
        document = json.loads(Path(path).read_bytes())
        if document is None:
            return
        if not isinstance(document, dict):
            raise ValueError("configuration must be a JSON object")

        updates = {}
        for key, value in document.items():
            spec = _JSON_FIELDS.get(key.lower())
            if spec is None or value is None:
                continue
            attr, kind = spec
            updates[attr] = _coerce(key, value, kind)

        for attr, value in updates.items():
            setattr(self, attr, value)