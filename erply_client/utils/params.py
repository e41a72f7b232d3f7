"""
utils/params.py
---------------

Form encoding helpers.  The Erply API reads classic
``application/x-www-form-urlencoded`` bodies, so nested structures are
flattened into bracket notation (``attributes[0][name]``) before they
are handed to the transport.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _flatten_into(out: Dict[str, str], prefix: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for k, v in value.items():
            _flatten_into(out, f"{prefix}[{k}]", v)
    elif isinstance(value, (list, tuple)):
        for i, v in enumerate(value):
            _flatten_into(out, f"{prefix}[{i}]", v)
    else:
        out[prefix] = _scalar(value)


def flatten_params(params: Mapping[str, Any]) -> Dict[str, str]:
    """Flatten a parameter mapping into form fields.

    ``None`` values are dropped, booleans become ``"1"``/``"0"`` and
    every other scalar is converted with ``str``.

    >>> flatten_params({"a": 1, "b": {"c": [True, None, "x"]}})
    {'a': '1', 'b[c][0]': '1', 'b[c][2]': 'x'}
    """
    out: Dict[str, str] = {}
    for key, value in params.items():
        _flatten_into(out, str(key), value)
    return out
