"""
Transforms raw parse trees into interpretr `Node` trees.

Two raw shapes are accepted:

- nested s-expression arrays, as produced by the `parser` gem's
  ``to_sexp_array`` and found in JSON/YAML dumps:
  ``["send", null, "puts", ["str", "hi"]]``
- tagged dicts, as emitted by PEG parse-tree builders:
  ``{"tag": "send", "children": [null, "puts", {"tag": "str", "text": "hi"}]}``
"""
from typing import Any

from interpretr.interpretr_datatypes import Node, Symbol


class InterpretrTransformer:
    def transform(self, node: Any) -> Any:
        # Already in final form
        if isinstance(node, Node):
            return node

        # s-expression array: tag first, then children
        if isinstance(node, (list, tuple)):
            # Unquoted `true`/`false` tags arrive from YAML as booleans
            if node and isinstance(node[0], bool):
                return self._build('true' if node[0] else 'false', node[1:])
            if not node or not isinstance(node[0], str):
                raise ValueError(f"not an s-expression: {node!r}")
            return self._build(node[0], node[1:])

        # Tagged dict
        if isinstance(node, dict):
            tag = node.get('tag')
            if not isinstance(tag, str):
                raise ValueError(f"parse tree node without a tag: {node!r}")
            if 'children' in node:
                children = node.get('children') or []
            elif 'value' in node:
                children = [node['value']]
            elif 'text' in node:
                children = [node['text']]
            else:
                children = []
            return self._build(tag, children)

        # Primitives (payloads) pass through
        return node

    def _build(self, tag: str, raw_children) -> Node:
        children = []
        for child in raw_children:
            if isinstance(child, (list, tuple, dict, Node)):
                children.append(self.transform(child))
            else:
                children.append(self._payload(tag, child))
        return Node(tag, children)

    def _payload(self, tag: str, value: Any) -> Any:
        match tag:
            case 'sym':
                return Symbol(value)
            case 'int':
                # YAML/JSON may hand integers over as text for big values
                if isinstance(value, str):
                    return int(value)
                return value
            case 'float':
                if isinstance(value, str):
                    return float(value)
                return value
            case _:
                return value
