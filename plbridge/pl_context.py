"""
The host capabilities the builtins are allowed to use.

EvaluationContext is what a host implements; MemoryContext is a complete
implementation over an in-memory buffer, used by the command-line runner
and the tests.
"""
from __future__ import annotations

import os
import sys
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional

from plbridge.pl_datatypes import EvaluationAbort


class LogLevel(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class EvaluationContext(ABC):
    """The required base class for any host exposed to the builtins."""

    debug: bool = False

    @abstractmethod
    def log(self, level: LogLevel, message: str): raise NotImplementedError
    @abstractmethod
    def get_env_variable(self, name: str) -> Optional[str]: raise NotImplementedError
    @abstractmethod
    def get_data_base_address(self) -> int: raise NotImplementedError
    @abstractmethod
    def get_data_size(self) -> int: raise NotImplementedError
    @abstractmethod
    def read_data(self, address: int, size: int) -> bytes: raise NotImplementedError

    def _dbg(self, *parts):
        if self.debug or os.environ.get("PLBRIDGE_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)


class MemoryContext(EvaluationContext):
    """
    A host over a bytes buffer.

    Addresses passed to read_data are offsets into the buffer; the base
    address is reported to scripts but does not shift reads. Console output
    is recorded as side-effect events: {'topics': ['info'], 'message': ...}.
    """

    def __init__(self, data: bytes = b"", base_address: int = 0, env: Optional[Dict[str, str]] = None):
        self.data = bytes(data)
        self.base_address = base_address
        self.env: Dict[str, str] = dict(env or {})
        self.console: List[Dict] = []

    def log(self, level: LogLevel, message: str):
        self.console.append({"topics": [level.value], "message": message})
        self._dbg("LOG", level.value, message)

    def messages(self, level: LogLevel) -> List[str]:
        return [e["message"] for e in self.console if e.get("topics") == [level.value]]

    def get_env_variable(self, name: str) -> Optional[str]:
        return self.env.get(name)

    def get_data_base_address(self) -> int:
        return self.base_address

    def get_data_size(self) -> int:
        return len(self.data)

    def read_data(self, address: int, size: int) -> bytes:
        if address < 0 or size < 0 or address + size > len(self.data):
            raise EvaluationAbort(f"cannot read {size} bytes at address 0x{address:X}")
        return self.data[address:address + size]
