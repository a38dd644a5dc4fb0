"""
The core interpretr interpreter, containing the Evaluator.
"""
import collections.abc
import logging
import re
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import pystache

from interpretr.interpretr_datatypes import (
    Node, Symbol, Range, Block,
    InterpretrError, UndefinedVariable, UnsupportedConstruct, BlockConflict, AuthorizationDenied,
    HostDispatchError,
    is_truthy, to_s,
)
from interpretr.interpretr_variables import Variables
from interpretr.interpretr_capabilities import Capabilities
from interpretr.interpretr_host import invoke, resolve_constant
from interpretr.interpretr_printer import Printer

logger = logging.getLogger(__name__)

# Debug trace of every dispatch, e.g. `(str "Joe").*(int)`
SEND_TRACE = "({{receiver_type}} {{receiver}}).{{member}}({{arg_types}}){{#block}} { ... }{{/block}}"

REGEXP_FLAGS = {'i': re.IGNORECASE, 'm': re.DOTALL, 'x': re.VERBOSE}

REST_TARGETS = ('splat', 'restarg')

# Text is a single value, not a sequence of characters
SCALAR_SEQUENCES = (str, bytes, bytearray)


def is_sequence(value: Any) -> bool:
    return isinstance(value, collections.abc.Sequence) and not isinstance(value, SCALAR_SEQUENCES)


def splat_values(value: Any) -> list:
    """Items a spread contributes to an array literal or argument list."""
    if value is None:
        return []
    if is_sequence(value) or isinstance(value, Range):
        return list(value)
    if isinstance(value, collections.abc.Mapping):
        return [[k, v] for k, v in value.items()]
    return [value]


def to_sequence(value: Any) -> list:
    """Coerce the right-hand side of a destructuring assignment to a list."""
    if is_sequence(value):
        return list(value)
    return [value]


def pair_targets(targets: Sequence[Node], values: Sequence[Any]) -> Iterator[Tuple[Node, Any]]:
    """Pair pattern targets with values left to right.

    A plain target takes one value (``None`` once values run out); a rest
    target takes every remaining value as a list.
    """
    cursor = 0
    for target in targets:
        if target.type in REST_TARGETS:
            yield target, list(values[cursor:])
            cursor = len(values)
        else:
            yield target, values[cursor] if cursor < len(values) else None
            cursor += 1


class Evaluator:
    """The interpretr execution engine.

    One evaluator runs one session at a time. A session binds the execution
    context and capabilities, seeds the global and local frame stacks, walks
    the tree, and always clears the stacks again on the way out.
    """
    def __init__(self):
        self.lvars = Variables('local')
        self.gvars = Variables('global')
        self.context: Any = None
        self.capabilities: Capabilities = Capabilities()
        self.current_node: Optional[Node] = None
        self._running = False
        self._renderer = pystache.Renderer(escape=lambda u: u)
        self._printer = Printer()
        self._handlers = self._create_handlers()

    def _create_handlers(self) -> Dict[str, Callable[[Node], Any]]:
        return {
            # Receivers and dispatch
            'self': self._eval_self,
            'send': self._eval_send,
            'csend': self._eval_send,
            'block_pass': self._eval_block_pass,
            'const': self._eval_const,
            'block': self._eval_block,
            # Literals
            'str': self._leaf_value,
            'int': self._leaf_value,
            'float': self._leaf_value,
            'sym': self._eval_sym,
            'true': lambda node: True,
            'false': lambda node: False,
            'nil': lambda node: None,
            'dstr': self._eval_dstr,
            'dsym': self._eval_dsym,
            'regexp': self._eval_regexp,
            'regopt': self._eval_regopt,
            # Collections
            'splat': self._eval_splat,
            'array': self._eval_array,
            'pair': self._eval_pair,
            'hash': self._eval_hash,
            'irange': self._eval_range,
            'erange': self._eval_range,
            # Variables
            'lvar': self._eval_lvar,
            'gvar': self._eval_gvar,
            'lvasgn': self._eval_lvasgn,
            'mlhs': self._eval_mlhs,
            'masgn': self._eval_masgn,
            # Parameters
            'args': self._eval_args,
            'arg': self._leaf_value,
            'restarg': self._eval_restarg,
            'procarg0': self._eval_procarg0,
            # Control flow
            'and': self._eval_and,
            'or': self._eval_or,
            'if': self._eval_if,
            'rescue': self._eval_rescue,
            'resbody': self._eval_resbody,
            'begin': self._eval_begin,
            'kwbegin': self._eval_begin,
        }

    @property
    def handled_types(self) -> frozenset:
        return frozenset(self._handlers)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self, ast: Optional[Node], *, context: Any = None,
            locals: Optional[Dict[str, Any]] = None,
            globals: Optional[Dict[str, Any]] = None,
            capabilities: Optional[Capabilities] = None) -> Any:
        """Evaluate `ast` as one session and return the root node's value."""
        if self._running:
            raise RuntimeError("evaluator is already running a session")
        self._running = True
        self.lvars.clear()
        self.gvars.clear()
        self.context = context
        self.capabilities = capabilities if capabilities is not None else Capabilities()
        logger.debug("session start: %d locals, %d globals", len(locals or {}), len(globals or {}))
        try:
            with self.gvars.frame(globals):
                with self.lvars.frame(locals):
                    return self.evaluate(ast)
        finally:
            self.context = None
            self.capabilities = Capabilities()
            self.current_node = None
            self.gvars.clear()
            self.lvars.clear()
            self._running = False
            logger.debug("session end")

    def evaluate(self, node: Optional[Node]) -> Any:
        """Recursive dispatcher for evaluating any AST node."""
        if node is None:
            return None
        if not isinstance(node, Node):
            raise TypeError(f"expected a Node, got {type(node).__name__}")
        handler = self._handlers.get(node.type)
        if handler is None:
            raise UnsupportedConstruct(node.type, node)
        self.current_node = node
        return handler(node)

    def call_block(self, block: Block, args: List[Any]) -> Any:
        """Invoke `block`: bind `args` in a fresh frame over its captured chain."""
        bindings: Dict[str, Any] = {}
        if block.params is not None:
            self._bind_params(block.params.children, args, bindings)
        with self.lvars.frame(bindings, base=block.frames):
            return self.evaluate(block.body)

    # ------------------------------------------------------------------
    # Receivers and dispatch
    # ------------------------------------------------------------------

    def _eval_self(self, node):
        return self.context

    def _eval_send(self, node, block: Optional[Callable] = None):
        receiver_node, member, *arg_nodes = node.children
        receiver = self.context if receiver_node is None else self.evaluate(receiver_node)
        # Safe navigation: nil receivers short-circuit before arguments run
        if node.type == 'csend' and receiver is None:
            return None

        block_pass_node = None
        if arg_nodes and isinstance(arg_nodes[-1], Node) and arg_nodes[-1].type == 'block_pass':
            block_pass_node = arg_nodes.pop()
            if block is not None:
                raise BlockConflict("both block arg and actual block given", node)

        args = self._eval_list(arg_nodes)
        if block_pass_node is not None:
            block = self.evaluate(block_pass_node)
        return self._dispatch(receiver, member, args, block, node, receiver_node)

    def _eval_block_pass(self, node):
        value = self.evaluate(node.children[0]) if node.children else None
        if isinstance(value, Symbol):
            return self._symbol_proc(value, node)
        return value

    def _symbol_proc(self, name: Symbol, node: Node) -> Callable:
        """`&:name`: a callable sending `name` to its first argument."""
        def symbol_proc(receiver, *args, block=None):
            return self._dispatch(receiver, str(name), list(args), block, node)
        symbol_proc.__name__ = f"to_proc_{name}"
        return symbol_proc

    def _dispatch(self, receiver, member: str, args: List[Any], block, node: Node,
                  receiver_node: Optional[Node] = None):
        self._authorize(receiver, member, node)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(self._render_send(receiver, member, args, block, receiver_node))
        try:
            return invoke(receiver, member, args, block)
        except InterpretrError as e:
            if e.node is None:
                e.node = node
            raise

    def _authorize(self, receiver, member: str, node: Node) -> None:
        if not self.capabilities.authorize(receiver, member, node):
            logger.warning("capabilities denied %s#%s", type(receiver).__name__, member)
            raise AuthorizationDenied(receiver, member, node)

    def _render_send(self, receiver, member, args, block, receiver_node) -> str:
        return self._renderer.render(SEND_TRACE, {
            'receiver_type': receiver_node.type if receiver_node is not None else 'self',
            'receiver': self._printer.pformat(receiver),
            'member': member,
            'arg_types': ', '.join(type(a).__name__ for a in args),
            'block': block is not None,
        })

    def _eval_const(self, node):
        scope_node, name = node.children
        # Context-only resolution: no walk through enclosing lexical scopes
        owner = self.context if scope_node is None else self.evaluate(scope_node)
        self._authorize(owner, name, node)
        try:
            return resolve_constant(owner, name)
        except HostDispatchError as e:
            if e.node is None:
                e.node = node
            raise

    def _eval_block(self, node):
        send_node, params_node, body_node = node.children
        if send_node.type not in ('send', 'csend'):
            raise UnsupportedConstruct(send_node.type, send_node)
        block = Block(params_node, body_node, self.lvars.snapshot(), self)
        return self._eval_send(send_node, block=block)

    # ------------------------------------------------------------------
    # Literals
    # ------------------------------------------------------------------

    def _leaf_value(self, node):
        return node.children[0]

    def _eval_sym(self, node):
        return Symbol(node.children[0])

    def _eval_dstr(self, node):
        return ''.join(to_s(self.evaluate(part)) for part in node.children)

    def _eval_dsym(self, node):
        return Symbol(self._eval_dstr(node))

    def _eval_regopt(self, node):
        return ''.join(str(opt) for opt in node.children)

    def _eval_regexp(self, node):
        parts = list(node.children)
        options = ''
        if parts and isinstance(parts[-1], Node) and parts[-1].type == 'regopt':
            options = self.evaluate(parts.pop())
        pattern = ''.join(to_s(self.evaluate(part)) for part in parts)
        flags = 0
        for letter in options:
            flags |= REGEXP_FLAGS.get(letter, 0)
        return re.compile(pattern, flags)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def _eval_splat(self, node):
        return self.evaluate(node.children[0]) if node.children else None

    def _eval_list(self, nodes: Sequence[Node]) -> list:
        """Evaluate nodes left to right, splicing spread elements in place."""
        out = []
        for item_node in nodes:
            item = self.evaluate(item_node)
            if isinstance(item_node, Node) and item_node.type == 'splat':
                out.extend(splat_values(item))
            else:
                out.append(item)
        return out

    def _eval_array(self, node):
        return self._eval_list(node.children)

    def _eval_pair(self, node):
        key_node, value_node = node.children
        return self.evaluate(key_node), self.evaluate(value_node)

    def _eval_hash(self, node):
        out = {}
        for pair_node in node.children:
            key, value = self.evaluate(pair_node)
            out[self._hash_key(key, pair_node)] = value
        return out

    def _hash_key(self, key, node):
        """Array keys become tuples; other unhashable keys are rejected."""
        if isinstance(key, list):
            key = tuple(self._hash_key(item, node) for item in key)
        try:
            hash(key)
        except TypeError:
            raise InterpretrError(f"unhashable hash key: {type(key).__name__}", node) from None
        return key

    def _eval_range(self, node):
        lower_node, upper_node = node.children
        return Range(self.evaluate(lower_node), self.evaluate(upper_node), node.type == 'erange')

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def _eval_lvar(self, node):
        name = node.children[0]

        def missing():
            raise UndefinedVariable(name, self.lvars.kind, node)
        return self.lvars.get(name, missing)

    def _eval_gvar(self, node):
        return self.gvars.get(node.children[0], lambda: None)

    def _eval_lvasgn(self, node):
        name = node.children[0]
        value = self.evaluate(node.children[1]) if len(node.children) > 1 else None
        return self.lvars.set(name, value)

    def _eval_masgn(self, node):
        pattern, value_node = node.children
        value = self.evaluate(value_node)
        self._destructure(pattern, value)
        return value

    def _eval_mlhs(self, node):
        """Names a destructuring pattern binds; nested patterns become lists."""
        names = []
        for target in node.children:
            if target.type == 'mlhs':
                names.append(self._eval_mlhs(target))
            elif target.type == 'splat':
                inner = target.children[0] if target.children else None
                names.append(inner.children[0] if inner is not None else None)
            else:
                names.append(target.children[0] if target.children else None)
        return names

    def _destructure(self, pattern: Node, value: Any) -> None:
        for target, item in pair_targets(pattern.children, to_sequence(value)):
            self._assign_target(target, item)

    def _assign_target(self, target: Node, value: Any) -> None:
        match target.type:
            case 'lvasgn':
                self.lvars.set(target.children[0], value)
            case 'gvasgn':
                self.gvars.set(target.children[0], value)
            case 'splat':
                # A bare `*` discards the remainder
                if target.children:
                    self._assign_target(target.children[0], value)
            case 'mlhs':
                self._destructure(target, value)
            case _:
                raise UnsupportedConstruct(target.type, target)

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def _eval_args(self, node):
        return [self.evaluate(param) for param in node.children]

    def _eval_restarg(self, node):
        return node.children[0] if node.children else None

    def _eval_procarg0(self, node):
        if node.children and isinstance(node.children[0], Node):
            names = [self.evaluate(param) for param in node.children]
            return names[0] if len(names) == 1 else names
        return node.children[0]

    def _bind_params(self, params: Sequence[Node], args: Sequence[Any], bindings: Dict[str, Any]) -> None:
        for param, value in pair_targets(params, args):
            match param.type:
                case 'arg' | 'restarg':
                    if param.children:
                        bindings[param.children[0]] = value
                case 'procarg0':
                    if param.children and isinstance(param.children[0], Node):
                        if len(param.children) == 1:
                            self._bind_params(param.children, [value], bindings)
                        else:
                            self._bind_params(param.children, to_sequence(value), bindings)
                    else:
                        bindings[param.children[0]] = value
                case 'mlhs':
                    self._bind_params(param.children, to_sequence(value), bindings)
                case _:
                    raise UnsupportedConstruct(param.type, param)

    # ------------------------------------------------------------------
    # Control flow
    # ------------------------------------------------------------------

    def _eval_and(self, node):
        left_node, right_node = node.children
        left = self.evaluate(left_node)
        if not is_truthy(left):
            return left
        return self.evaluate(right_node)

    def _eval_or(self, node):
        left_node, right_node = node.children
        left = self.evaluate(left_node)
        if is_truthy(left):
            return left
        return self.evaluate(right_node)

    def _eval_if(self, node):
        condition, if_true, if_false = node.children
        if is_truthy(self.evaluate(condition)):
            return self.evaluate(if_true)
        return self.evaluate(if_false)

    def _eval_begin(self, node):
        result = None
        with self.lvars.frame():
            for child in node.children:
                result = self.evaluate(child)
        return result

    def _eval_rescue(self, node):
        # (rescue body resbody... else)
        body_node, *clauses = node.children
        else_node = None
        if clauses and (clauses[-1] is None or clauses[-1].type != 'resbody'):
            else_node = clauses.pop()
        with self.lvars.frame():
            try:
                result = self.evaluate(body_node)
            except Exception as e:
                if not clauses:
                    raise
                # Every failure kind is caught; the failure itself is not bound
                logger.debug("rescued %s: %s", type(e).__name__, e)
                return self.evaluate(clauses[0])
            if else_node is not None:
                return self.evaluate(else_node)
            return result

    def _eval_resbody(self, node):
        # (resbody exception-list variable body): only the body is evaluated
        return self.evaluate(node.children[2])
