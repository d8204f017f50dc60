"""
Backend capability probing.

A loaded backend exposes some unknown subset of the call shapes below. They are
detected once at load time and cached in a BackendCapabilities descriptor, which
the engine adapter consults in fixed priority order.

Write shapes (priority order):
    write_memfs_file(name, data)   direct virtual-filesystem write
    fs.write_file(name, data)      POSIX-like filesystem object
    write_file(name, data)         generic named write

Compile shapes (priority order):
    compile(entry)                 compile by name
    run(argv)                      argv-style invocation
    exec(command)                  shell-like command string
    build()                        no-argument build

Read shapes, for the artifact filesystem probe (priority order):
    read_memfs_file(name), fs.read_file(name), read_file(name)
"""

import inspect
from dataclasses import dataclass, fields
from typing import Any, Callable, List, Optional


def _callable_attr(obj: Any, name: str) -> Optional[Callable]:
    """Return obj.name if it exists and is callable, else None."""
    attr = getattr(obj, name, None)
    return attr if callable(attr) else None


def _fs_method(backend: Any, name: str) -> Optional[Callable]:
    """Return backend.fs.name if the backend has a filesystem object exposing it."""
    fs = getattr(backend, "fs", None)
    if fs is None:
        return None
    return _callable_attr(fs, name)


WRITE_SHAPES = ("write_memfs", "fs_write", "generic_write")
COMPILE_SHAPES = ("compile", "run", "exec", "build")
READ_SHAPES = ("read_memfs", "fs_read", "generic_read")


@dataclass(frozen=True)
class BackendCapabilities:
    """Which optional call shapes a loaded backend exposes."""

    has_write_memfs: bool = False
    has_fs_write: bool = False
    has_generic_write: bool = False
    has_compile: bool = False
    has_run: bool = False
    has_exec: bool = False
    has_build: bool = False
    has_read_memfs: bool = False
    has_fs_read: bool = False
    has_generic_read: bool = False

    @classmethod
    def probe(cls, backend: Any) -> "BackendCapabilities":
        """Inspect a backend object once and record every call shape it exposes."""
        return cls(
            has_write_memfs=_callable_attr(backend, "write_memfs_file") is not None,
            has_fs_write=_fs_method(backend, "write_file") is not None,
            has_generic_write=_callable_attr(backend, "write_file") is not None,
            has_compile=_callable_attr(backend, "compile") is not None,
            has_run=_callable_attr(backend, "run") is not None,
            has_exec=_callable_attr(backend, "exec") is not None,
            has_build=_callable_attr(backend, "build") is not None,
            has_read_memfs=_callable_attr(backend, "read_memfs_file") is not None,
            has_fs_read=_fs_method(backend, "read_file") is not None,
            has_generic_read=_callable_attr(backend, "read_file") is not None,
        )

    @property
    def can_write(self) -> bool:
        return self.has_write_memfs or self.has_fs_write or self.has_generic_write

    @property
    def can_compile(self) -> bool:
        return self.has_compile or self.has_run or self.has_exec or self.has_build

    @property
    def write_shape(self) -> Optional[str]:
        """Highest-priority write shape available."""
        return next((shape for shape in WRITE_SHAPES if getattr(self, f"has_{shape}")), None)

    @property
    def compile_shape(self) -> Optional[str]:
        """Highest-priority compile shape available."""
        return next((shape for shape in COMPILE_SHAPES if getattr(self, f"has_{shape}")), None)

    @property
    def read_shapes(self) -> List[str]:
        """Every read shape available, in priority order."""
        return [shape for shape in READ_SHAPES if getattr(self, f"has_{shape}")]

    def describe(self) -> List[str]:
        """Names of the detected capabilities (e.g., ['has_generic_write', 'has_compile'])."""
        return [f.name for f in fields(self) if getattr(self, f.name)]


def resolve_writer(backend: Any, shape: str) -> Callable:
    """Return the bound callable implementing a write shape."""
    if shape == "write_memfs":
        return backend.write_memfs_file
    if shape == "fs_write":
        return backend.fs.write_file
    if shape == "generic_write":
        return backend.write_file
    raise ValueError(f"Unknown write shape: {shape}")


def resolve_reader(backend: Any, shape: str) -> Callable:
    """Return the bound callable implementing a read shape."""
    if shape == "read_memfs":
        return backend.read_memfs_file
    if shape == "fs_read":
        return backend.fs.read_file
    if shape == "generic_read":
        return backend.read_file
    raise ValueError(f"Unknown read shape: {shape}")


async def resolve_awaitable(value: Any) -> Any:
    """Await value if a backend handed back an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value
