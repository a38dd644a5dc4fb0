from __future__ import annotations

import json
import re
from typing import Any, Optional

import yaml

from interpretr.interpretr_datatypes import Node
from interpretr.interpretr_transformer import InterpretrTransformer


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        return data.decode(encoding or 'utf-8', errors='replace')
    if isinstance(data, str):
        return data
    return str(data)


def _encoding_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    m = re.search(r'charset\s*=\s*([^\s;]+)', content_type, re.IGNORECASE)
    if m:
        return m.group(1).strip('"').strip("'")
    return None


def detect_format(content_type: Optional[str] = None, data_hint: Optional[str] = None,
                  path: Optional[str] = None) -> Optional[str]:
    """
    Returns 'json' or 'yaml'.
    Uses Content-Type first, then the file extension, then data sniffing.
    """
    ct = (content_type or "").lower()
    if 'json' in ct:
        return 'json'
    if 'yaml' in ct:
        return 'yaml'

    if path:
        lowered = path.lower()
        if lowered.endswith('.json'):
            return 'json'
        if lowered.endswith(('.yaml', '.yml')):
            return 'yaml'

    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('[') or s.startswith('{'):
            return 'json'
        if s:
            return 'yaml'
    return None


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str,
                *,
                content_type: Optional[str] = None,
                fmt: Optional[str] = None) -> Any:
    """Convert document text into plain Python structures."""
    text = _norm_text(data, encoding=_encoding_from_content_type(content_type))
    f = fmt or detect_format(content_type, text) or 'yaml'
    if f == 'json':
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            # YAML is a superset of JSON; flow-style YAML often sniffs as JSON
            return yaml.safe_load(text)
    if f == 'yaml':
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported document format: {fmt!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = False) -> str:
    f = (fmt or '').lower()
    if f == 'json':
        return json.dumps(value, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(value, sort_keys=False, default_flow_style=None if pretty else True).strip()
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def load_ast(data: bytes | bytearray | str, *, fmt: Optional[str] = None,
             content_type: Optional[str] = None) -> Optional[Node]:
    """Parse an AST document (s-expression arrays or tagged dicts) into a Node."""
    raw = deserialize(data, content_type=content_type, fmt=fmt)
    if raw is None:
        return None
    node = InterpretrTransformer().transform(raw)
    if not isinstance(node, Node):
        raise ValueError(f"document does not describe an AST node: {raw!r}")
    return node


def dump_ast(node: Node, *, fmt: str = 'json', pretty: bool = False) -> str:
    return serialize(node.to_sexp_array(), fmt=fmt, pretty=pretty)


__all__ = [
    "deserialize",
    "serialize",
    "detect_format",
    "load_ast",
    "dump_ast",
]
