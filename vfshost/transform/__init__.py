"""
vfshost Transform Module

Contracts of the external compiler and the Transformation Invocation
that runs a custom pre-emit hook through it.
"""

from .contracts import (
    CompilerModule,
    CompilerOptions,
    CustomTransformers,
    Diagnostic,
    EmitResult,
    Program,
    SourceUnit,
    TransformerFactory,
)
from .invocation import EmittedFile, EmitOutcome, TransformationInvocation, build_program

__all__ = [
    'CompilerModule',
    'CompilerOptions',
    'CustomTransformers',
    'Diagnostic',
    'EmitResult',
    'Program',
    'SourceUnit',
    'TransformerFactory',
    'EmittedFile',
    'EmitOutcome',
    'TransformationInvocation',
    'build_program',
]
