"""
Transformation Invocation Module

Runs the compiler's emit over one source unit with a custom pre-emit
transformation, capturing every emitted (file name, text) pair.

A failure inside the transformation is a defect, not an expected
condition: it is raised immediately as TransformationError and never
retried.

Author: YSNRFD
Version: 1.0.0
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from .contracts import (
    CompilerModule,
    CompilerOptions,
    CustomTransformers,
    Diagnostic,
    Program,
    SourceUnit,
    TransformerFactory,
)
from vfshost.exceptions import TransformationError
from vfshost.logger import get_logger


OutputCallback = Callable[[str, str], None]


@dataclass(frozen=True)
class EmittedFile:
    """One file produced by emit."""
    file_name: str
    text: str


@dataclass
class EmitOutcome:
    """Everything an emit call produced."""
    files: List[EmittedFile] = field(default_factory=list)
    emit_skipped: bool = False
    diagnostics: List[Diagnostic] = field(default_factory=list)
    hook_calls: Counter = field(default_factory=Counter)

    def text_for(self, file_name: str) -> Optional[str]:
        """Text of the last emit for ``file_name``, or None."""
        for emitted in reversed(self.files):
            if emitted.file_name == file_name:
                return emitted.text
        return None

    @property
    def file_names(self) -> List[str]:
        return [f.file_name for f in self.files]


def build_program(
    compiler: CompilerModule,
    host: Any,
    root_names: Sequence[str],
    options: CompilerOptions
) -> Program:
    """Create a program over ``root_names`` using the given compiler host."""
    return compiler.create_program(list(root_names), options, host)


class TransformationInvocation:
    """
    One emit of one source unit through a custom transformation.

    Args:
        program: Program already built by the compiler
        source_unit: Entry unit to emit
        transformer_factory: ``(program) -> (context) -> (unit) -> unit``
        on_output: Optional callback receiving each (file_name, text) as
            the compiler writes it

    Example:
        >>> invocation = TransformationInvocation(program, unit, runtime_check)
        >>> outcome = invocation.run()
        >>> outcome.text_for('/index.js')
    """

    def __init__(
        self,
        program: Program,
        source_unit: Optional[SourceUnit],
        transformer_factory: Callable[[Program], TransformerFactory],
        on_output: Optional[OutputCallback] = None,
        generation: Optional[int] = None
    ):
        self._program = program
        self._source_unit = source_unit
        self._transformer_factory = transformer_factory
        self._on_output = on_output
        self._generation = generation
        self._logger = get_logger('transform')

    def _failure(self, file_name: str, stage: str, exc: Exception) -> TransformationError:
        self._logger.exception(
            "Transformation hook failed", exc=exc, generation=self._generation,
            context={'file': file_name, 'stage': stage}
        )
        return TransformationError(file_name, exc, context={'stage': stage})

    def _guard(self, step_factory: TransformerFactory, outcome: EmitOutcome) -> TransformerFactory:
        unit_name = getattr(self._source_unit, 'file_name', '<program>')

        def guarded_factory(context: Any):
            try:
                transform = step_factory(context)
            except TransformationError:
                raise
            except Exception as exc:
                raise self._failure(unit_name, 'context', exc) from exc

            def guarded(unit: Any) -> Any:
                file_name = getattr(unit, 'file_name', '<unknown>')
                outcome.hook_calls[file_name] += 1
                try:
                    return transform(unit)
                except TransformationError:
                    raise
                except Exception as exc:
                    raise self._failure(file_name, 'unit', exc) from exc

            return guarded

        return guarded_factory

    def run(self, cancellation_token: Any = None) -> EmitOutcome:
        """
        Emit the source unit with the transformation as a ``before`` step.

        Returns:
            EmitOutcome with emitted files in write order

        Raises:
            TransformationError: If the transformation raised
        """
        outcome = EmitOutcome()

        def write_file(file_name: str, text: str, *_: Any, **__: Any) -> None:
            outcome.files.append(EmittedFile(file_name=file_name, text=text))
            if self._on_output is not None:
                self._on_output(file_name, text)

        try:
            step_factory = self._transformer_factory(self._program)
        except Exception as exc:
            file_name = getattr(self._source_unit, 'file_name', '<program>')
            raise self._failure(file_name, 'program', exc) from exc

        transformers = CustomTransformers(before=[self._guard(step_factory, outcome)])
        result = self._program.emit(
            self._source_unit, write_file, cancellation_token, False, transformers
        )

        outcome.emit_skipped = bool(getattr(result, 'emit_skipped', False))
        outcome.diagnostics.extend(getattr(result, 'diagnostics', None) or [])

        self._logger.info(
            "Emit finished",
            generation=self._generation,
            context={'files': outcome.file_names, 'skipped': outcome.emit_skipped}
        )
        return outcome
