from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Literal, Optional, Sequence, Union

from plbridge.pl_config import BridgeConfig
from plbridge.pl_context import EvaluationContext, LogLevel
from plbridge.pl_datatypes import EvaluationAbort, LiteralValue
from plbridge.pl_files import FileHandleTable
from plbridge.pl_registry import FunctionDescriptor, FunctionRegistry, Namespace, split_qualified_name
from plbridge.pl_stdlib import default_libraries

PermissionHandler = Callable[[FunctionDescriptor], bool]


@dataclass
class CallResult:
    """The structured result of one builtin call."""
    status: Literal['success', 'error']
    value: Optional[LiteralValue] = None
    error_message: Optional[str] = None
    function: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == 'success'

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.function:
            return f"Error in {self.function}: {msg}"
        return msg


class BuiltinSession:
    """
    One evaluation session: owns the registry, the file handle table and the
    permission state, and dispatches builtin calls.

    The registry is filled and frozen here, before any call can happen.
    File handles stay open across calls and across aborted calls; close()
    (or leaving a `with` block) releases them.
    """

    def __init__(self, context: EvaluationContext, config: Optional[BridgeConfig] = None,
                 permission_handler: Optional[PermissionHandler] = None,
                 libraries: Optional[Iterable] = None):
        self.context = context
        self.config = config or BridgeConfig()
        self.permission_handler = permission_handler
        self.files = FileHandleTable()
        if self.config.debug:
            self.context.debug = True

        self.registry = FunctionRegistry()
        for library in (libraries if libraries is not None else default_libraries(self.files, self.config)):
            self.registry.register_library(library)
        self.registry.freeze()

        # Answer of the permission handler in 'ask' mode, asked at most once
        self._dangerous_granted: Optional[bool] = None

    def __enter__(self) -> 'BuiltinSession':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self) -> int:
        """Closes every file handle still open; returns how many were closed."""
        count = self.files.close_all()
        if count:
            self.context._dbg("SESSION", "closed", count, "open file handle(s)")
        return count

    def permission_granted(self, descriptor: FunctionDescriptor) -> bool:
        """
        Standard functions always pass. In "ask" mode the handler is consulted
        on the first dangerous call only, and that single answer then covers
        every dangerous function for the rest of the session (the handler sees
        the descriptor that triggered the question).
        """
        if not descriptor.trust.requires_permission:
            return True
        match self.config.dangerous_functions:
            case "allow":
                return True
            case "deny":
                return False
            case "ask":
                if self._dangerous_granted is None:
                    handler = self.permission_handler
                    self._dangerous_granted = bool(handler(descriptor)) if handler else False
                return self._dangerous_granted
        return False

    def _error(self, message: str, function: Optional[str]) -> CallResult:
        result = CallResult(status='error', error_message=message, function=function)
        self.context.log(LogLevel.ERROR, result.format_error())
        return result

    def call(self, function: Union[str, Sequence[str]], args: Sequence[LiteralValue] = (),
             name: Optional[str] = None) -> CallResult:
        """
        Call a builtin by qualified name ('std::mem::size') or by namespace
        and name (call(('std', 'mem'), name='size')).
        """
        if name is None:
            namespace, name = split_qualified_name(function)
        else:
            namespace = tuple(function)
        qualified = "::".join((*namespace, name))

        descriptor = self.registry.lookup(namespace, name)
        if descriptor is None:
            return self._error(f"no function named {qualified}", qualified)

        params: List[LiteralValue] = list(args)
        if not descriptor.parameter_count.accepts(len(params)):
            return self._error(
                f"invalid number of parameters: expected {descriptor.parameter_count.describe()}, "
                f"got {len(params)}",
                qualified,
            )

        if not self.permission_granted(descriptor):
            return self._error(f"permission denied for dangerous function {qualified}", qualified)

        self.context._dbg("CALL", qualified, "argc", len(params))
        try:
            value = descriptor.implementation(self.context, params)
        except EvaluationAbort as e:
            return self._error(e.message, qualified)
        return CallResult(status='success', value=value, function=qualified)

    def functions(self, namespace: Optional[Namespace] = None) -> Dict[str, FunctionDescriptor]:
        return {
            d.qualified_name: d for d in self.registry
            if namespace is None or d.namespace == tuple(namespace)
        }
