"""
Test doubles: a miniature compiler, a runtime-check transformation and
a fake aiohttp session. None of this ships in the host itself.
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from vfshost.transform import CustomTransformers, Diagnostic, EmitResult


REGISTRY = "https://cdn.jsdelivr.net/npm"
LIB_CDN = "https://cdn.jsdelivr.net/npm/typescript/lib"
RUNTIME_CHECK = "ts-transform-runtime-check"

RUNTIME_CHECK_DTS = "declare function check<T>(value: unknown): T;\nexport default check;\n"

BUNDLED_LIBS = {
    "lib.d.ts": '/// <reference lib="es5" />\n',
    "lib.es5.d.ts": "interface Array<T> { length: number; }\ndeclare var NaN: number;\n",
}

_IMPORT = re.compile(r'''^\s*import\s+(?:[\w*{}\s,]+\s+from\s+)?['"]([^'"]+)['"]''', re.MULTILINE)
_CHECK_CALL = re.compile(r'check<(string|number|boolean)>\((\w+)\)')
_ANNOTATION = re.compile(r':\s*(string|number|boolean)\b')


@dataclass
class FakeSourceUnit:
    file_name: str
    text: str
    language_version: Any = None


@dataclass
class FakeTransformationContext:
    options: dict


@dataclass
class FakeProgram:
    root_names: List[str]
    options: dict
    host: Any
    units: dict = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    resolutions: dict = field(default_factory=dict)

    def get_source_file(self, file_name: str) -> Optional[FakeSourceUnit]:
        return self.units.get(file_name)

    def emit(
        self,
        target_source_file=None,
        write_file=None,
        cancellation_token=None,
        emit_only_dts_files=False,
        custom_transformers: Optional[CustomTransformers] = None,
    ) -> EmitResult:
        targets = [target_source_file] if target_source_file else [
            self.units[name] for name in self.root_names if name in self.units
        ]
        context = FakeTransformationContext(self.options)
        steps = [factory(context) for factory in (custom_transformers.before if custom_transformers else [])]

        emitted = []
        for unit in targets:
            for step in steps:
                unit = step(unit)
            out_name = re.sub(r'\.tsx?$', '.js', unit.file_name)
            text = _ANNOTATION.sub('', unit.text)
            write_file(out_name, text, False, None, [unit])
            emitted.append(out_name)

        return EmitResult(emit_skipped=False, diagnostics=[], emitted_files=emitted)


class FakeCompiler:
    """Just enough of a compiler to drive the host contract."""

    def create_source_file(self, file_name, text, language_version, set_parent_nodes=False):
        return FakeSourceUnit(file_name, text, language_version)

    def get_default_lib_file_name(self, options) -> str:
        return "lib.es6.d.ts" if options.get("target") in ("es6", "es2015") else "lib.d.ts"

    def create_program(self, root_names, options, host) -> FakeProgram:
        program = FakeProgram(list(root_names), dict(options), host)

        if options.get("simulateExit"):
            host.exit(3)

        lib_name = host.get_default_lib_file_name(options)
        missing: List[str] = []
        lib = host.get_source_file(lib_name, options.get("target"), missing.append)
        if missing or lib is None:
            program.diagnostics.append(
                Diagnostic(f"File '{lib_name}' not found.", code=6053)
            )
        else:
            program.units[lib_name] = lib

        for root in root_names:
            errors: List[str] = []
            unit = host.get_source_file(root, options.get("target"), errors.append)
            program.units[root] = unit
            for error in errors:
                program.diagnostics.append(Diagnostic(error, file_name=root))

            names = _IMPORT.findall(unit.text)
            for name, resolved in zip(names, host.resolve_module_names(names, root)):
                program.resolutions[name] = resolved
                if resolved is None:
                    program.diagnostics.append(Diagnostic(
                        f"Cannot find module '{name}' or its corresponding type declarations.",
                        file_name=root,
                        code=2307,
                    ))
                    continue
                program.units[resolved.resolved_file_name] = host.get_source_file(
                    resolved.resolved_file_name, options.get("target")
                )

        return program

    def get_pre_emit_diagnostics(self, program, source_file=None):
        return list(program.diagnostics)


def runtime_check(program):
    """Replaces ``check<T>(value)`` with an inline typeof guard."""

    def factory(context):
        def step(unit):
            text = _CHECK_CALL.sub(
                lambda m: (
                    f'(typeof {m.group(2)} === "{m.group(1)}" ? {m.group(2)} : '
                    f'(() => {{ throw new TypeError("Expected {m.group(1)}"); }})())'
                ),
                unit.text,
            )
            return FakeSourceUnit(unit.file_name, text, unit.language_version)
        return step

    return factory


def broken_transform(program):
    def factory(context):
        def step(unit):
            raise KeyError("missing symbol table")
        return step
    return factory


class FakeResponse:
    def __init__(self, status: int, body):
        self.status = status
        self._body = body

    async def text(self) -> str:
        # raw bytes are decoded strictly, as aiohttp does for a utf-8 charset
        if isinstance(self._body, bytes):
            return self._body.decode('utf-8')
        return self._body


class _RequestContext:
    def __init__(self, route):
        self._route = route

    async def __aenter__(self):
        if isinstance(self._route, asyncio.Event):
            await self._route.wait()
            return FakeResponse(503, "released")
        if isinstance(self._route, BaseException):
            raise self._route
        status, body = self._route
        return FakeResponse(status, body)

    async def __aexit__(self, *exc_info):
        return False


class FakeHttpSession:
    """
    Stands in for aiohttp.ClientSession. ``routes`` maps URL to
    ``(status, body)`` or to an exception raised on request.
    """

    def __init__(self, routes: Optional[dict] = None):
        self.routes = dict(routes or {})
        self.calls: List[str] = []

    def get(self, url: str, **kwargs):
        self.calls.append(url)
        return _RequestContext(self.routes.get(url, (404, "Not Found")))


def package_routes(name: str = RUNTIME_CHECK, entry: str = "index.d.ts",
                   declaration: str = RUNTIME_CHECK_DTS) -> dict:
    return {
        f"{REGISTRY}/{name}/package.json": (200, json.dumps({"name": name, "types": entry})),
        f"{REGISTRY}/{name}/{entry}": (200, declaration),
    }


@dataclass
class FakeSandbox:
    filepath: str
    text: str
    options: dict = field(default_factory=lambda: {"target": "es5"})

    def get_text(self) -> str:
        return self.text

    def get_compiler_options(self) -> dict:
        return self.options
