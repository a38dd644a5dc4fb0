"""
Member invocation and constant resolution on plain Python values.

Scripts see host objects through their own attributes. Operator names are
mapped onto the Python operators so that ``"Joe" * 4`` or ``a < b`` behave
the way the receiver defines them.
"""
import collections.abc
import operator
from typing import Any, Callable, Dict, Optional, Sequence

from interpretr.interpretr_datatypes import HostDispatchError, is_truthy


def _index(receiver, *keys):
    return receiver[keys[0]] if len(keys) == 1 else receiver[keys]


def _index_set(receiver, *keys_and_value):
    *keys, value = keys_and_value
    receiver[keys[0] if len(keys) == 1 else tuple(keys)] = value
    return value


def _compare(a, b):
    try:
        return (a > b) - (a < b)
    except TypeError:
        return None


OPERATORS: Dict[str, Callable[..., Any]] = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.truediv,
    '%': operator.mod,
    '**': operator.pow,
    '==': operator.eq,
    '!=': operator.ne,
    '<': operator.lt,
    '<=': operator.le,
    '>': operator.gt,
    '>=': operator.ge,
    '<=>': _compare,
    '<<': operator.lshift,
    '>>': operator.rshift,
    '&': operator.and_,
    '|': operator.or_,
    '^': operator.xor,
    '-@': operator.neg,
    '+@': operator.pos,
    '~': operator.invert,
    '!': lambda value: not is_truthy(value),
    '[]': _index,
    '[]=': _index_set,
}


def _respond_to(receiver, name):
    return name in OPERATORS or name in UNIVERSAL_MEMBERS or hasattr(receiver, str(name))


def _call(receiver, *args, block=None):
    if not callable(receiver):
        raise HostDispatchError(f"undefined method `call' for {type(receiver).__name__}")
    if block is not None:
        return receiver(*args, block=block)
    return receiver(*args)


# Members every value answers to when it has no attribute of that name.
UNIVERSAL_MEMBERS: Dict[str, Callable[..., Any]] = {
    'nil?': lambda receiver: receiver is None,
    'itself': lambda receiver: receiver,
    'equal?': lambda receiver, other: receiver is other,
    'respond_to?': _respond_to,
    'call': _call,
}


def invoke(receiver: Any, name: str, args: Sequence[Any] = (), block: Optional[Callable] = None) -> Any:
    """Call member `name` on `receiver`.

    Failures raised by the member itself propagate unchanged; a receiver
    without the member raises `HostDispatchError`.
    """
    op = OPERATORS.get(name)
    if op is not None:
        return op(receiver, *args)

    try:
        member = getattr(receiver, name)
    except AttributeError:
        universal = UNIVERSAL_MEMBERS.get(name)
        if universal is None:
            raise HostDispatchError(f"undefined method `{name}' for {_describe(receiver)}")
        if name == 'call':
            return universal(receiver, *args, block=block)
        return universal(receiver, *args)

    if not callable(member):
        if args or block is not None:
            raise HostDispatchError(f"`{name}' of {_describe(receiver)} is not callable")
        return member
    if block is not None:
        return member(*args, block=block)
    return member(*args)


def resolve_constant(owner: Any, name: str) -> Any:
    """Look up constant `name` on `owner` (a mapping key or an attribute)."""
    if isinstance(owner, collections.abc.Mapping):
        if name in owner:
            return owner[name]
        raise HostDispatchError(f"uninitialized constant {name}")
    try:
        return getattr(owner, name)
    except AttributeError:
        raise HostDispatchError(f"uninitialized constant {_describe(owner)}::{name}") from None


def _describe(value: Any) -> str:
    if value is None:
        return 'nil'
    if isinstance(value, type):
        return value.__name__
    return f"an instance of {type(value).__name__}"


class Kernel:
    """A small default execution context offering `proc` and `fail`."""
    def proc(self, *, block):
        return block

    def fail(self, message: str = "unhandled exception"):
        raise RuntimeError(message)

    def __repr__(self) -> str:
        return "main"
