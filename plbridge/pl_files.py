from __future__ import annotations
import os
from enum import IntEnum
from typing import Dict, Optional

from plbridge.pl_coerce import encode_text, decode_text
from plbridge.pl_datatypes import EvaluationAbort


class FileMode(IntEnum):
    READ = 1
    WRITE = 2
    CREATE = 3

    @property
    def open_flags(self) -> str:
        # Write edits an existing file in place; Create truncates or creates
        return {FileMode.READ: "rb", FileMode.WRITE: "r+b", FileMode.CREATE: "w+b"}[self]


class HostFile:
    """A file opened on behalf of a script."""

    def __init__(self, path: str, mode: FileMode):
        self.path = os.path.abspath(os.path.expanduser(path))
        self.mode = mode
        try:
            self._fh = open(self.path, mode.open_flags)
        except (OSError, ValueError):
            # ValueError: the path holds a NUL byte
            self._fh = None

    def is_valid(self) -> bool:
        return self._fh is not None and not self._fh.closed

    def read_string(self, size: int) -> str:
        # Never ask the OS for more than is left in the file
        remaining = max(0, self.get_size() - self._fh.tell())
        return decode_text(self._fh.read(min(size, remaining)))

    def write(self, data: str):
        self._fh.write(encode_text(data))

    def seek(self, offset: int):
        self._fh.seek(offset)

    def get_size(self) -> int:
        self._fh.flush()
        return os.fstat(self._fh.fileno()).st_size

    def set_size(self, size: int):
        self._fh.truncate(size)

    def flush(self):
        self._fh.flush()

    def close(self):
        if self.is_valid():
            self._fh.close()

    def remove(self):
        self.close()
        if os.path.isfile(self.path):
            os.remove(self.path)


class FileHandleTable:
    """
    Files opened by scripts, keyed by integer handles.

    Handles start at 1 and are never reused, even after close. Removing a
    file also drops its handle, so any later use of it aborts.
    """

    def __init__(self):
        self._files: Dict[int, HostFile] = {}
        self._counter = 0

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, handle: int) -> bool:
        return handle in self._files

    def require(self, handle: int) -> HostFile:
        file = self._files.get(handle)
        if file is None:
            raise EvaluationAbort("failed to access invalid file")
        return file

    def open(self, path: str, mode_code: int) -> int:
        try:
            mode = FileMode(mode_code)
        except ValueError:
            raise EvaluationAbort("invalid file open mode") from None

        file = HostFile(path, mode)
        if not file.is_valid():
            raise EvaluationAbort(f"failed to open file {path}")

        self._counter += 1
        self._files[self._counter] = file
        return self._counter

    def close(self, handle: int):
        file = self.require(handle)
        del self._files[handle]
        file.close()

    def read(self, handle: int, size: int) -> str:
        return self.require(handle).read_string(size)

    def write(self, handle: int, data: str):
        self.require(handle).write(data)

    def seek(self, handle: int, offset: int):
        self.require(handle).seek(offset)

    def size(self, handle: int) -> int:
        return self.require(handle).get_size()

    def resize(self, handle: int, size: int):
        self.require(handle).set_size(size)

    def flush(self, handle: int):
        self.require(handle).flush()

    def remove(self, handle: int):
        file = self.require(handle)
        del self._files[handle]
        file.remove()

    def get(self, handle: int) -> Optional[HostFile]:
        return self._files.get(handle)

    def close_all(self) -> int:
        count = len(self._files)
        for file in list(self._files.values()):
            file.close()
        self._files.clear()
        return count
