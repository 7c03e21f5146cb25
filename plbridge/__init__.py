from plbridge.pl_datatypes import (
    EvaluationAbort, Pattern, LiteralValue, UnsignedInteger, SignedInteger, FloatingPoint,
    Boolean, Character, String, PatternReference,
)
from plbridge.pl_context import EvaluationContext, MemoryContext, LogLevel
from plbridge.pl_config import BridgeConfig, load_config
from plbridge.pl_registry import (
    FunctionRegistry, FunctionDescriptor, ParameterCount, TrustTier,
    builtin_function, dangerous_function,
)
from plbridge.pl_files import FileHandleTable, FileMode
from plbridge.pl_runtime import BuiltinSession, CallResult
