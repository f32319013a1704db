# utils/casing.py
"""
Helpers for converting between snake_case (Python/DB) and camelCase (API JSON).
Typical use:
 - dict_keys_to_camel(data)   -> HTTP response
 - dict_keys_to_snake(data)   -> request body sent by the front-end
"""

import re
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, List, Union

JSONType = Union[Dict[str, Any], List[Any], str, int, float, bool, None]

_first_cap_re = re.compile(r"(.)([A-Z][a-z]+)")
_all_cap_re = re.compile(r"([a-z0-9])([A-Z])")


def snake_to_camel(s: str) -> str:
    if not s:
        return s
    parts = s.split("_")
    return parts[0] + "".join(p.capitalize() or "_" for p in parts[1:])


def camel_to_snake(s: str) -> str:
    if not s:
        return s
    s = _first_cap_re.sub(r"\1_\2", s)
    return _all_cap_re.sub(r"\1_\2", s).lower()


def dict_keys_to_camel(data: JSONType) -> JSONType:
    if is_dataclass(data) and not isinstance(data, type):
        data = asdict(data)
    if isinstance(data, list):
        return [dict_keys_to_camel(i) for i in data]
    if isinstance(data, dict):
        return {snake_to_camel(k): dict_keys_to_camel(v) for k, v in data.items()}
    return data


def dict_keys_to_snake(data: JSONType) -> JSONType:
    if isinstance(data, list):
        return [dict_keys_to_snake(i) for i in data]
    if isinstance(data, dict):
        return {camel_to_snake(k): dict_keys_to_snake(v) for k, v in data.items()}
    return data


def sa_model_to_dict(instance, *, camel: bool = True, include=None, exclude=None) -> Dict[str, Any]:
    """
    Turn a SQLAlchemy instance into a plain dict of its columns.
    - camel=True: keys converted to camelCase.
    - include/exclude: collections of column names (snake_case) to filter on.
    Values are returned as loaded (datetimes stay datetimes).
    """
    if instance is None:
        return {}
    raw = {}
    for c in instance.__table__.columns:
        name = c.name
        if include and name not in include:
            continue
        if exclude and name in exclude:
            continue
        raw[name] = getattr(instance, c.key)
    return dict_keys_to_camel(raw) if camel else raw
