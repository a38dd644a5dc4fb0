from __future__ import annotations

import os
from typing import Any, Dict, Optional

from interpretr.interpretr_datatypes import Node
from interpretr.interpretr_serialize import load_ast, detect_format


def _resolve_locator(locator: str, base_dir: Optional[str]) -> str:
    # 'file://...' or a plain path
    rest = locator[7:] if locator.startswith("file://") else locator
    if rest.startswith("~"):
        return os.path.expanduser(rest)
    if os.path.isabs(rest):
        return os.path.normpath(rest)
    base = base_dir or os.getcwd()
    return os.path.normpath(os.path.join(base, rest))


def read_document(locator: str, *, base_dir: Optional[str] = None,
                  config: Optional[Dict[str, Any]] = None, transport=None) -> Optional[Node]:
    """
    Load an AST document from a local path, a file:// URL or an http(s):// URL.
    The format follows the Content-Type or extension, falling back to sniffing.
    """
    if locator.startswith(("http://", "https://")):
        from interpretr.interpretr_http import http_get_text
        text, content_type = http_get_text(locator, config=config, transport=transport)
        fmt = detect_format(content_type, None, locator.split('?', 1)[0])
        return load_ast(text, fmt=fmt, content_type=content_type)

    path = _resolve_locator(locator, base_dir)
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return load_ast(text, fmt=detect_format(None, None, path))
