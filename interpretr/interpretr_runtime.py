import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional

from interpretr.interpretr_datatypes import (
    Node, InterpretrError, UndefinedVariable, UnsupportedConstruct, BlockConflict,
    AuthorizationDenied, HostDispatchError,
)
from interpretr.interpretr_interpreter import Evaluator
from interpretr.interpretr_capabilities import Capabilities
from interpretr.interpretr_serialize import load_ast
from interpretr.interpretr_transformer import InterpretrTransformer

LOG_LEVEL_ENV = 'INTERPRETR_LOG_LEVEL'

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> int:
    """Set the `interpretr` logger level from `level` or INTERPRETR_LOG_LEVEL (default WARNING)."""
    name = (level or os.environ.get(LOG_LEVEL_ENV) or 'WARNING').upper()
    if name == 'WARN':
        name = 'WARNING'
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {name!r}")
    logging.getLogger('interpretr').setLevel(value)
    return value


def _as_node(source: Any, parser: Callable[[Any], Any] = load_ast) -> Optional[Node]:
    """Run `parser` over anything that is not already a Node."""
    if source is None or isinstance(source, Node):
        return source
    tree = parser(source)
    if tree is None or isinstance(tree, Node):
        return tree
    # Parsers may hand back raw s-expressions or tagged dicts
    node = InterpretrTransformer().transform(tree)
    if not isinstance(node, Node):
        raise ValueError(f"parser did not produce an AST node: {tree!r}")
    return node


class Sandbox:
    """An AST bound to its own evaluator; each `run` is one isolated session.

    A source that is not a `Node` goes through `parser` first (by default the
    JSON/YAML document loader).
    """

    def __init__(self, ast: Any, *, capabilities: Optional[Capabilities] = None,
                 parser: Callable[[Any], Any] = load_ast):
        configure_logging()
        self.ast = _as_node(ast, parser)
        self.capabilities = capabilities
        self.evaluator = Evaluator()

    def run(self, *, context: Any = None, locals: Optional[dict] = None,
            globals: Optional[dict] = None, capabilities: Optional[Capabilities] = None) -> Any:
        return self.evaluator.run(
            self.ast,
            context=context,
            locals=locals,
            globals=globals,
            capabilities=capabilities if capabilities is not None else self.capabilities,
        )


def run(source: Any, *, parser: Callable[[Any], Any] = load_ast, **session) -> Any:
    """Evaluate a Node, or any source `parser` turns into one, in a fresh sandbox."""
    return Sandbox(source, parser=parser).run(**session)


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_node: Optional[Node] = None

    def format_error(self) -> str:
        """Formats an error message with the offending node if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_node is not None:
            from interpretr.interpretr_printer import Printer
            return f"{msg}\n  in {Printer().pformat(self.error_node)}"
        return msg


class ScriptRunner:
    """Loads, evaluates and reports on AST documents."""

    def __init__(self, context: Any = None, *, capabilities: Optional[Capabilities] = None,
                 parser: Callable[[Any], Any] = load_ast):
        configure_logging()
        self.context = context
        self.capabilities = capabilities
        self.parser = parser
        self.globals: dict = {}
        self.evaluator = Evaluator()

    def _format_runtime_error(self, e: Exception) -> str:
        match e:
            case UndefinedVariable():
                kind = "NameError"
            case UnsupportedConstruct():
                kind = "UnsupportedConstruct"
            case BlockConflict():
                kind = "SyntaxError"
            case AuthorizationDenied():
                kind = "SecurityError"
            case HostDispatchError():
                kind = "NoMethodError"
            case InterpretrError():
                kind = "InterpretrError"
            case _:
                kind = type(e).__name__
        return f"{kind}: {e}"

    def handle_script(self, document: Any, *, locals: Optional[dict] = None) -> ExecutionResult:
        """The main entry point to execute a document; never raises on script failure."""
        try:
            ast = _as_node(document, self.parser)
        except Exception as e:
            return ExecutionResult(status='error', error_message=f"ParseError: {e}")
        try:
            value = self.evaluator.run(
                ast,
                context=self.context,
                locals=locals,
                globals=self.globals,
                capabilities=self.capabilities,
            )
        except Exception as e:
            logger.debug("script failed", exc_info=True)
            return ExecutionResult(
                status='error',
                error_message=self._format_runtime_error(e),
                error_node=getattr(e, 'node', None),
            )
        return ExecutionResult(status='success', value=value)
