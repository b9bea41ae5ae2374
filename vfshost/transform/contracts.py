"""
Compiler Collaborator Contracts

Structural types for the compiler the host is handed to. The compiler
itself (parsing, checking, code generation) lives outside this package;
anything with these methods can be plugged in.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence

CompilerOptions = Mapping[str, Any]

# (file_name, text, write_byte_order_mark, on_error, source_files)
WriteFileCallback = Callable[..., None]

# context -> (source_unit -> source_unit)
TransformerStep = Callable[[Any], Any]
TransformerFactory = Callable[[Any], TransformerStep]


class SourceUnit(Protocol):
    """A parsed source file."""
    file_name: str
    text: str


@dataclass
class Diagnostic:
    """A compiler message tied (optionally) to a file."""
    message: str
    file_name: Optional[str] = None
    code: Optional[int] = None
    category: str = "error"

    def __str__(self) -> str:
        prefix = f"{self.file_name}: " if self.file_name else ""
        code = f" TS{self.code}" if self.code is not None else ""
        return f"{prefix}{self.category}{code}: {self.message}"


@dataclass
class CustomTransformers:
    """Transformation steps handed to Program.emit."""
    before: List[TransformerFactory] = field(default_factory=list)
    after: List[TransformerFactory] = field(default_factory=list)
    after_declarations: List[TransformerFactory] = field(default_factory=list)


@dataclass
class EmitResult:
    """What Program.emit reports back."""
    emit_skipped: bool = False
    diagnostics: List[Diagnostic] = field(default_factory=list)
    emitted_files: List[str] = field(default_factory=list)


class Program(Protocol):
    """The compiler's resolved compilation-unit graph."""

    def get_source_file(self, file_name: str) -> Optional[SourceUnit]:
        ...

    def emit(
        self,
        target_source_file: Optional[SourceUnit] = None,
        write_file: Optional[WriteFileCallback] = None,
        cancellation_token: Any = None,
        emit_only_dts_files: bool = False,
        custom_transformers: Optional[CustomTransformers] = None,
    ) -> EmitResult:
        ...


class CompilerModule(Protocol):
    """Entry points of the compiler used by the host adapter and plugin."""

    def create_source_file(
        self,
        file_name: str,
        text: str,
        language_version: Any,
        set_parent_nodes: bool = False,
    ) -> SourceUnit:
        ...

    def get_default_lib_file_name(self, options: CompilerOptions) -> str:
        ...

    def create_program(
        self,
        root_names: Sequence[str],
        options: CompilerOptions,
        host: Any,
    ) -> Program:
        ...

    def get_pre_emit_diagnostics(
        self,
        program: Program,
        source_file: Optional[SourceUnit] = None,
    ) -> List[Diagnostic]:
        ...
