"""
Builtin function registry.

Functions are declared on library objects with the `builtin_function` /
`dangerous_function` decorators and bound into a FunctionRegistry during
session initialization. Once frozen the registry is read-only.
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, Iterator, Optional, Sequence, Tuple

from plbridge.pl_datatypes import LiteralValue

Namespace = Tuple[str, ...]
Implementation = Callable[..., Optional[LiteralValue]]


class CountKind(Enum):
    NONE = auto()
    EXACTLY = auto()
    AT_LEAST = auto()
    MORE_THAN = auto()


@dataclass(frozen=True)
class ParameterCount:
    """The rule bounding how many arguments a builtin accepts."""
    kind: CountKind
    count: int = 0

    @classmethod
    def none(cls) -> 'ParameterCount':
        return cls(CountKind.NONE, 0)

    @classmethod
    def exactly(cls, n: int) -> 'ParameterCount':
        return cls(CountKind.EXACTLY, n)

    @classmethod
    def at_least(cls, n: int) -> 'ParameterCount':
        return cls(CountKind.AT_LEAST, n)

    @classmethod
    def more_than(cls, n: int) -> 'ParameterCount':
        return cls(CountKind.MORE_THAN, n)

    def accepts(self, argc: int) -> bool:
        match self.kind:
            case CountKind.NONE:
                return argc == 0
            case CountKind.EXACTLY:
                return argc == self.count
            case CountKind.AT_LEAST:
                return argc >= self.count
            case CountKind.MORE_THAN:
                return argc > self.count

    def describe(self) -> str:
        match self.kind:
            case CountKind.NONE:
                return "no parameters"
            case CountKind.EXACTLY:
                return f"exactly {self.count}"
            case CountKind.AT_LEAST:
                return f"at least {self.count}"
            case CountKind.MORE_THAN:
                return f"more than {self.count}"


class TrustTier(Enum):
    STANDARD = "standard"
    DANGEROUS = "dangerous"

    @property
    def requires_permission(self) -> bool:
        return self is TrustTier.DANGEROUS


@dataclass(frozen=True)
class FunctionDescriptor:
    namespace: Namespace
    name: str
    parameter_count: ParameterCount
    trust: TrustTier
    implementation: Implementation

    @property
    def qualified_name(self) -> str:
        return "::".join((*self.namespace, self.name))


def builtin_function(name: str, parameter_count: ParameterCount):
    """Marks a library method as a Standard builtin."""
    def deco(func):
        func._pl_builtin = (name, parameter_count, TrustTier.STANDARD)
        return func
    return deco


def dangerous_function(name: str, parameter_count: ParameterCount):
    """Marks a library method as a builtin that needs host permission."""
    def deco(func):
        func._pl_builtin = (name, parameter_count, TrustTier.DANGEROUS)
        return func
    return deco


def split_qualified_name(qualified: str) -> Tuple[Namespace, str]:
    parts = [p for p in qualified.split("::") if p]
    if not parts:
        raise ValueError("empty function name")
    return tuple(parts[:-1]), parts[-1]


class FunctionRegistry:
    """Maps (namespace, name) to a FunctionDescriptor."""

    def __init__(self):
        self._functions: Dict[Tuple[Namespace, str], FunctionDescriptor] = {}
        self._frozen = False

    def __len__(self) -> int:
        return len(self._functions)

    def __iter__(self) -> Iterator[FunctionDescriptor]:
        return iter(self._functions.values())

    def __contains__(self, qualified: str) -> bool:
        return self.resolve(qualified) is not None

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self):
        self._frozen = True

    def _add(self, namespace: Sequence[str], name: str, parameter_count: ParameterCount,
             trust: TrustTier, implementation: Implementation) -> FunctionDescriptor:
        if self._frozen:
            raise RuntimeError(f"cannot register {name!r}: registry is frozen")
        key = (tuple(namespace), name)
        if key in self._functions:
            raise ValueError(f"function {'::'.join((*key[0], name))} is already registered")
        descriptor = FunctionDescriptor(key[0], name, parameter_count, trust, implementation)
        self._functions[key] = descriptor
        return descriptor

    def add_function(self, namespace: Sequence[str], name: str, parameter_count: ParameterCount,
                     implementation: Implementation) -> FunctionDescriptor:
        return self._add(namespace, name, parameter_count, TrustTier.STANDARD, implementation)

    def add_dangerous_function(self, namespace: Sequence[str], name: str, parameter_count: ParameterCount,
                               implementation: Implementation) -> FunctionDescriptor:
        return self._add(namespace, name, parameter_count, TrustTier.DANGEROUS, implementation)

    def register_library(self, library) -> int:
        """Bind every decorated method of `library` under `library.namespace`."""
        namespace = tuple(library.namespace)
        count = 0
        for _, member in inspect.getmembers(library):
            if not callable(member):
                continue
            # Decorator marks the underlying function; getattr sees it through the bound method
            spec = getattr(member, "_pl_builtin", None)
            if spec is None:
                continue
            name, parameter_count, trust = spec
            if trust is TrustTier.DANGEROUS:
                self.add_dangerous_function(namespace, name, parameter_count, member)
            else:
                self.add_function(namespace, name, parameter_count, member)
            count += 1
        return count

    def lookup(self, namespace: Sequence[str], name: str) -> Optional[FunctionDescriptor]:
        return self._functions.get((tuple(namespace), name))

    def resolve(self, qualified: str) -> Optional[FunctionDescriptor]:
        """Looks up 'std::mem::size'-style names."""
        namespace, name = split_qualified_name(qualified)
        return self.lookup(namespace, name)
