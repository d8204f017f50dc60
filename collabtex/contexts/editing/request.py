"""Compilation request: the frozen set of files submitted for one compile."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Tuple


@dataclass(frozen=True)
class CompilationRequest:
    """
    Files to compile, captured at the moment compilation was requested.

    Attributes:
        entry: Name of the root document handed to the compiler
        files: Read-only mapping name -> content, in store insertion order,
            always containing entry
    """

    entry: str
    files: Mapping[str, str]

    @classmethod
    def build(cls, entry: str, files: Dict[str, str]) -> "CompilationRequest":
        """
        Copy files into an immutable request.

        Raises:
            ValueError: If entry is not one of the files
        """
        if entry not in files:
            raise ValueError(f"Entry file '{entry}' is not part of the request")
        return cls(entry=entry, files=MappingProxyType(dict(files)))

    @property
    def entry_content(self) -> str:
        return self.files[self.entry]

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self.files.items())

    def __len__(self) -> int:
        return len(self.files)
