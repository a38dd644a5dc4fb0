"""A sandboxed tree-walking interpreter for Ruby-shaped ASTs."""

from interpretr.interpretr_datatypes import (
    Node, s, Symbol, Range, Block,
    InterpretrError, UndefinedVariable, UnsupportedConstruct, BlockConflict,
    AuthorizationDenied, HostDispatchError,
)
from interpretr.interpretr_variables import Variables
from interpretr.interpretr_capabilities import Capabilities, RestrictedCapabilities, api_method
from interpretr.interpretr_host import Kernel
from interpretr.interpretr_interpreter import Evaluator
from interpretr.interpretr_runtime import Sandbox, ScriptRunner, ExecutionResult, run, configure_logging
from interpretr.interpretr_serialize import load_ast, dump_ast
from interpretr.interpretr_file import read_document

__version__ = "0.1.0"
