"""
A pretty-printer for interpretr nodes and values.
"""
import collections.abc
import re

from interpretr.interpretr_datatypes import Node, Symbol, Range, Block


class Printer:
    """Formats nodes as s-expressions and values in inspection style."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        # Subclasses of the builtins fall back to their base formatting
        if isinstance(obj, Node): return self._pformat_node
        if isinstance(obj, Symbol): return self._pformat_symbol
        if isinstance(obj, bool): return self._pformat_bool
        if isinstance(obj, str): return self._pformat_str
        if isinstance(obj, collections.abc.Mapping): return self._pformat_dict
        if isinstance(obj, (list, tuple)): return self._pformat_list
        if isinstance(obj, Block): return self._pformat_block
        # Default to Python's repr for unknown types
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            Node: self._pformat_node,
            str: self._pformat_str,
            Symbol: self._pformat_symbol,
            int: self._pformat_primitive,
            float: self._pformat_primitive,
            bool: self._pformat_bool,
            type(None): self._pformat_none,
            list: self._pformat_list,
            tuple: self._pformat_list,
            dict: self._pformat_dict,
            Range: self._pformat_range,
            re.Pattern: self._pformat_regexp,
            Block: self._pformat_block,
        }

    # --- nodes ---

    def _pformat_node(self, node, level):
        parts = [node.type]
        for child in node.children:
            if isinstance(child, Node):
                parts.append(self._pformat_node(child, level + 1))
            else:
                parts.append(self._pformat_payload(node.type, child))
        return f"({' '.join(parts)})"

    def _pformat_payload(self, node_type, value):
        if value is None:
            return 'nil'
        if isinstance(value, bool):
            return self._pformat_bool(value, 0)
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, Symbol) or node_type not in ('str', 'xstr'):
            # Names (methods, variables, constants) print as symbols
            return f":{value}"
        return self._pformat_str(value, 0)

    # --- values ---

    def _pformat_primitive(self, obj, level):
        return repr(obj)

    def _pformat_str(self, obj, level):
        escaped = str.__str__(obj).replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n')
        return f'"{escaped}"'

    def _pformat_symbol(self, obj, level):
        return f":{str.__str__(obj)}"

    def _pformat_bool(self, obj, level):
        return 'true' if obj else 'false'

    def _pformat_none(self, obj, level):
        return 'nil'

    def _pformat_list(self, obj, level):
        return "[" + ", ".join(self.pformat(item, level) for item in obj) + "]"

    def _pformat_dict(self, obj, level):
        if not obj:
            return "{}"
        items = [f"{self.pformat(k, level)}=>{self.pformat(v, level)}" for k, v in obj.items()]
        return "{" + ", ".join(items) + "}"

    def _pformat_range(self, obj, level):
        dots = '...' if obj.exclude_end else '..'
        return f"{self.pformat(obj.first, level)}{dots}{self.pformat(obj.last, level)}"

    def _pformat_regexp(self, obj, level):
        opts = ''
        if obj.flags & re.IGNORECASE: opts += 'i'
        if obj.flags & re.DOTALL: opts += 'm'
        if obj.flags & re.VERBOSE: opts += 'x'
        return f"/{obj.pattern}/{opts}"

    def _pformat_block(self, obj, level):
        names = [self._param_label(p) for p in obj.params.children] if obj.params is not None else []
        if not names:
            return "#<Block>"
        return f"#<Block |{', '.join(names)}|>"

    def _param_label(self, param):
        if param.type == 'procarg0' and param.children and isinstance(param.children[0], Node):
            inner = [self._param_label(p) for p in param.children]
            return inner[0] if len(inner) == 1 else f"({', '.join(inner)})"
        if param.type == 'mlhs':
            return f"({', '.join(self._param_label(p) for p in param.children)})"
        name = param.children[0] if param.children else ''
        return f"*{name}" if param.type == 'restarg' else str(name)
