"""
Defines the core data types for the interpretr runtime.

This module provides the AST node type the evaluator walks, the runtime
values it produces that have no direct Python counterpart (symbols, ranges,
blocks) and the error hierarchy raised during evaluation.
"""

from typing import Any, Iterator, List, Optional, Tuple


# =================================================================
# Errors
# =================================================================

class InterpretrError(Exception):
    """Base class for every failure raised by the interpreter itself."""
    def __init__(self, message: str, node: Optional['Node'] = None):
        super().__init__(message)
        self.node = node


class UndefinedVariable(InterpretrError):
    """A local variable was read before any frame bound it."""
    def __init__(self, name: str, kind: str = 'local', node: Optional['Node'] = None):
        super().__init__(f"undefined {kind} variable `{name}'", node)
        self.name = name
        self.kind = kind


class UnsupportedConstruct(InterpretrError):
    """The AST contains a node type the evaluator does not handle."""
    def __init__(self, node_type: str, node: Optional['Node'] = None):
        super().__init__(f"unsupported node type: {node_type}", node)
        self.node_type = node_type


class BlockConflict(InterpretrError):
    """A call was given both a block argument and an attached block."""


class AuthorizationDenied(InterpretrError):
    """The capabilities collaborator vetoed a call or constant lookup."""
    def __init__(self, receiver: Any, member: str, node: Optional['Node'] = None):
        super().__init__(f"not authorized: {type(receiver).__name__}#{member}", node)
        self.receiver = receiver
        self.member = member


class HostDispatchError(InterpretrError):
    """The receiver has no member or constant by the requested name."""


# =================================================================
# AST
# =================================================================

class Node:
    """An immutable AST node: a type tag plus an ordered tuple of children.

    Children are either literal payloads (str, int, float, None, ...) or
    nested nodes. The meaning of each child position is fixed by the tag,
    following the node layout of the `parser` gem.
    """
    __slots__ = ('type', 'children')

    def __init__(self, type: str, children=()):
        object.__setattr__(self, 'type', str(type))
        object.__setattr__(self, 'children', tuple(children))

    def __setattr__(self, key, value):
        raise AttributeError("Node is immutable")

    def __iter__(self) -> Iterator[Any]:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    def __getitem__(self, index):
        return self.children[index]

    def __eq__(self, other):
        if not isinstance(other, Node):
            return NotImplemented
        return self.type == other.type and self.children == other.children

    def __hash__(self):
        return hash((self.type, self.children))

    def __repr__(self) -> str:
        from interpretr.interpretr_printer import Printer
        return Printer().pformat(self)

    def to_sexp_array(self) -> list:
        """Nested-list form used by the JSON/YAML documents."""
        out: list = [self.type]
        for child in self.children:
            if isinstance(child, Node):
                out.append(child.to_sexp_array())
            elif isinstance(child, Symbol):
                out.append(str(child))
            else:
                out.append(child)
        return out


def s(type: str, *children) -> Node:
    """Shorthand node builder, e.g. ``s('send', None, 'puts', s('str', 'hi'))``."""
    return Node(type, children)


# =================================================================
# Runtime values
# =================================================================

class Symbol(str):
    """An interned-style name value (``:name``)."""
    def __repr__(self) -> str:
        return f":{str.__str__(self)}"


class Range:
    """A range between two bounds, inclusive unless ``exclude_end`` is set."""
    __slots__ = ('first', 'last', 'exclude_end')

    def __init__(self, first: Any, last: Any, exclude_end: bool = False):
        object.__setattr__(self, 'first', first)
        object.__setattr__(self, 'last', last)
        object.__setattr__(self, 'exclude_end', bool(exclude_end))

    def __setattr__(self, key, value):
        raise AttributeError("Range is immutable")

    def __iter__(self):
        if not isinstance(self.first, int) or not isinstance(self.last, int):
            raise TypeError(f"can't iterate from {type(self.first).__name__}")
        stop = self.last if self.exclude_end else self.last + 1
        return iter(range(self.first, stop))

    def __contains__(self, value) -> bool:
        try:
            if value < self.first:
                return False
            return value < self.last if self.exclude_end else value <= self.last
        except TypeError:
            return False

    def to_list(self) -> list:
        return list(self)

    def __eq__(self, other):
        if not isinstance(other, Range):
            return NotImplemented
        return (self.first, self.last, self.exclude_end) == (other.first, other.last, other.exclude_end)

    def __hash__(self):
        return hash((self.first, self.last, self.exclude_end))

    def __repr__(self) -> str:
        dots = '...' if self.exclude_end else '..'
        return f"Range({self.first!r}{dots}{self.last!r})"


class Block:
    """A block value (closure) created where a call has an attached body.

    Bundles the parameter list and body node with the chain of local frames
    active at creation. Invoking it binds the arguments into a fresh frame on
    top of that chain and evaluates the body.
    """
    def __init__(self, params: Optional[Node], body: Optional[Node], frames: Tuple[dict, ...], evaluator):
        self.params = params
        self.body = body
        self.frames = frames
        self.evaluator = evaluator

    def __call__(self, *args, block=None):
        if block is not None:
            # No block-argument parameters (&blk), so nothing could receive it
            raise InterpretrError("a block cannot be given to a block")
        return self.evaluator.call_block(self, list(args))

    def call(self, *args, block=None):
        return self(*args, block=block)

    @property
    def parameter_names(self) -> List[str]:
        if self.params is None:
            return []
        return self.evaluator.evaluate(self.params)

    def __repr__(self) -> str:
        from interpretr.interpretr_printer import Printer
        return Printer().pformat(self)


# =================================================================
# Value helpers
# =================================================================

def is_truthy(value: Any) -> bool:
    """Only ``None`` and ``False`` are falsey; 0, "" and [] are truthy."""
    return value is not None and value is not False


def to_s(value: Any) -> str:
    """String form used by interpolation (``nil`` renders as empty)."""
    if value is None:
        return ''
    if value is True:
        return 'true'
    if value is False:
        return 'false'
    if isinstance(value, str):
        return str.__str__(value)
    return str(value)
