#!/usr/bin/env python3
"""
vfshost Integration Tests

Remote fetches, default-library population, the transformation
invocation and the runtime-check plugin, driven end to end through a
fake compiler and a fake aiohttp session.

Run with: python -m pytest vfshost/tests/integration_tests.py -v

Author: YSNRFD
Version: 1.0.0
"""

import asyncio
import json
import sys
import unittest

import aiohttp

from vfshost.core import Session, SessionState
from vfshost.exceptions import RemoteFetchError, SessionClosedError, TransformationError
from vfshost.host import CompilerHostAdapter, HostBridge
from vfshost.packages import DefaultLibraryLoader, PackageFetcher, RegistryClient
from vfshost.plugin import PluginState, RuntimeCheckPlugin
from vfshost.transform import TransformationInvocation, build_program
from vfshost.tests.support import (
    BUNDLED_LIBS,
    LIB_CDN,
    REGISTRY,
    RUNTIME_CHECK,
    RUNTIME_CHECK_DTS,
    FakeCompiler,
    FakeHttpSession,
    FakeSandbox,
    broken_transform,
    package_routes,
    runtime_check,
)


MANIFEST_URL = f"{REGISTRY}/{RUNTIME_CHECK}/package.json"
ENTRY_PATH = f"/node_modules/{RUNTIME_CHECK}/index.d.ts"


class TestPackageFetcher(unittest.IsolatedAsyncioTestCase):
    """Test manifest and declaration retrieval."""

    async def asyncSetUp(self):
        self.session = Session()
        self.http = FakeHttpSession(package_routes())
        self.fetcher = PackageFetcher(
            self.session, RegistryClient(self.session.config.registry, http_session=self.http)
        )

    async def asyncTearDown(self):
        self.session.close()

    async def test_fetch_materializes_entry(self):
        outcome = await self.fetcher.fetch(RUNTIME_CHECK)

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.descriptor.types_entry_path, 'index.d.ts')
        self.assertEqual(self.session.vfs.read_file(ENTRY_PATH), RUNTIME_CHECK_DTS)
        self.assertIs(self.session.get_fetch(RUNTIME_CHECK), outcome)
        self.assertEqual(outcome.unwrap().name, RUNTIME_CHECK)

    async def test_success_is_cached(self):
        first = await self.fetcher.fetch(RUNTIME_CHECK)
        second = await self.fetcher.fetch(RUNTIME_CHECK)

        self.assertIs(first, second)
        self.assertEqual(len(self.http.calls), 2)

    async def test_concurrent_fetches_share_one_request(self):
        first, second = await self.fetcher.fetch_all([RUNTIME_CHECK, RUNTIME_CHECK])

        self.assertIs(first, second)
        self.assertEqual(self.http.calls.count(MANIFEST_URL), 1)

    async def test_manifest_not_found_is_deferred(self):
        """A 404 is stored on the outcome and the session, never raised."""
        self.http.routes[MANIFEST_URL] = (404, "Not Found")

        outcome = await self.fetcher.fetch(RUNTIME_CHECK)

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.error.status, 404)
        self.assertEqual(outcome.error.url, MANIFEST_URL)
        self.assertEqual(self.session.failures(), [outcome.error])
        self.assertFalse(self.session.vfs.exists('/node_modules'))
        with self.assertRaises(RemoteFetchError):
            outcome.unwrap()

    async def test_failed_fetch_is_retried(self):
        self.http.routes[MANIFEST_URL] = (500, "boom")
        self.assertFalse((await self.fetcher.fetch(RUNTIME_CHECK)).ok)

        self.http.routes.update(package_routes())
        outcome = await self.fetcher.fetch(RUNTIME_CHECK)

        self.assertTrue(outcome.ok)
        self.assertEqual(self.session.failures(), [])

    async def test_malformed_manifest(self):
        self.http.routes[MANIFEST_URL] = (200, "{not json")

        outcome = await self.fetcher.fetch(RUNTIME_CHECK)
        self.assertTrue(outcome.error.reason.startswith("malformed JSON"))

    async def test_manifest_variants(self):
        cases = {
            json.dumps({'name': RUNTIME_CHECK}): "manifest declares no types entry",
            json.dumps(['not', 'an', 'object']): "manifest is not a JSON object",
            json.dumps({'types': '/etc/abs.d.ts'}): "invalid types entry: /etc/abs.d.ts",
        }
        for body, reason in cases.items():
            with self.subTest(body=body):
                self.http.routes[MANIFEST_URL] = (200, body)
                outcome = await self.fetcher.fetch(RUNTIME_CHECK)
                self.assertEqual(outcome.error.reason, reason)

    async def test_typings_alias(self):
        self.http.routes[MANIFEST_URL] = (200, json.dumps({'typings': 'index.d.ts'}))

        outcome = await self.fetcher.fetch(RUNTIME_CHECK)
        self.assertTrue(outcome.ok)

    async def test_undecodable_manifest_is_deferred(self):
        """A body that is not valid UTF-8 is stored like any other failure."""
        self.http.routes[MANIFEST_URL] = (200, b'{"types": "\xff\xfe.d.ts"}')

        outcome = await self.fetcher.fetch(RUNTIME_CHECK)

        self.assertFalse(outcome.ok)
        self.assertTrue(outcome.error.reason.startswith("undecodable body"))
        self.assertEqual(outcome.error.status, 200)
        self.assertEqual(self.session.failures(), [outcome.error])
        self.assertFalse(self.session.vfs.exists('/node_modules'))

    async def test_network_error(self):
        self.http.routes[MANIFEST_URL] = aiohttp.ClientConnectionError("connection reset")

        outcome = await self.fetcher.fetch(RUNTIME_CHECK)

        self.assertFalse(outcome.ok)
        self.assertTrue(outcome.error.reason.startswith("network error"))
        self.assertIsNone(outcome.error.status)

    async def test_nested_entry_gets_index_stub(self):
        self.http.routes.update(package_routes(entry='dist/index.d.ts'))

        outcome = await self.fetcher.fetch(RUNTIME_CHECK)
        vfs = self.session.vfs

        self.assertTrue(outcome.ok)
        self.assertEqual(
            vfs.read_file(f"/node_modules/{RUNTIME_CHECK}/dist/index.d.ts"), RUNTIME_CHECK_DTS
        )
        stub = vfs.read_file(ENTRY_PATH)
        self.assertIn("export * from './dist/index';", stub)
        self.assertIn("export { default } from './dist/index';", stub)

    async def test_stale_generation_is_dropped(self):
        """A fetch whose invocation was superseded writes nothing."""
        stale = self.session.next_generation()
        self.session.next_generation()

        outcome = await self.fetcher.fetch(RUNTIME_CHECK, generation=stale)

        self.assertTrue(outcome.stale)
        self.assertFalse(outcome.ok)
        self.assertFalse(self.session.vfs.exists(ENTRY_PATH))
        self.assertIsNone(self.session.get_fetch(RUNTIME_CHECK))


class TestDefaultLibraryLoader(unittest.IsolatedAsyncioTestCase):
    """Test standard-library population under /libs/."""

    async def asyncSetUp(self):
        self.session = Session()
        self.http = FakeHttpSession()
        self.client = RegistryClient(self.session.config.registry, http_session=self.http)

    async def asyncTearDown(self):
        self.session.close()

    async def test_bundled_with_references(self):
        loader = DefaultLibraryLoader(self.session, FakeCompiler(), self.client, bundled=BUNDLED_LIBS)

        libraries = await loader.populate({'target': 'es5'})

        self.assertEqual(set(libraries), {'lib.d.ts', 'lib.es5.d.ts'})
        self.assertEqual(loader.location, '/libs/')
        self.assertEqual(self.session.vfs.read_file('/libs/lib.es5.d.ts'), BUNDLED_LIBS['lib.es5.d.ts'])
        self.assertEqual(self.http.calls, [])

    async def test_options_lib_entries(self):
        bundled = dict(BUNDLED_LIBS, **{'lib.es2015.promise.d.ts': 'interface Promise<T> {}\n'})
        loader = DefaultLibraryLoader(self.session, FakeCompiler(), self.client, bundled=bundled)

        libraries = await loader.populate({'target': 'es5', 'lib': ['ES2015.Promise']})

        self.assertIn('lib.es2015.promise.d.ts', libraries)
        self.assertTrue(self.session.vfs.is_file('/libs/lib.es2015.promise.d.ts'))

    async def test_cdn_fetch_once(self):
        self.http.routes.update({
            f"{LIB_CDN}/lib.d.ts": (200, BUNDLED_LIBS['lib.d.ts']),
            f"{LIB_CDN}/lib.es5.d.ts": (200, BUNDLED_LIBS['lib.es5.d.ts']),
        })
        loader = DefaultLibraryLoader(self.session, FakeCompiler(), self.client)

        await loader.populate({'target': 'es5'})
        await loader.populate({'target': 'es5'})

        self.assertEqual(len(self.http.calls), 2)
        self.assertTrue(self.session.vfs.is_file('/libs/lib.d.ts'))

    async def test_cdn_failure(self):
        loader = DefaultLibraryLoader(self.session, FakeCompiler(), self.client)

        with self.assertRaises(RemoteFetchError) as cm:
            await loader.populate({'target': 'es5'})

        self.assertEqual(cm.exception.package, 'typescript')
        self.assertEqual(cm.exception.status, 404)
        self.assertFalse(self.session.vfs.exists('/libs'))

    async def test_stale_generation_writes_nothing(self):
        loader = DefaultLibraryLoader(self.session, FakeCompiler(), self.client, bundled=BUNDLED_LIBS)
        stale = self.session.next_generation()
        self.session.next_generation()

        libraries = await loader.populate({'target': 'es5'}, stale)

        self.assertIn('lib.d.ts', libraries)
        self.assertFalse(self.session.vfs.exists('/libs/lib.d.ts'))
        self.assertFalse(self.session.has_library_set(loader.options_key({'target': 'es5'})))


class TestTransformationInvocation(unittest.TestCase):
    """Test emit through a custom pre-emit transformation."""

    SOURCE = "const value: number = 42;\nconst checked = check<number>(value);\n"

    def setUp(self):
        self.session = Session()
        self.session.vfs.write_file('/index.ts', self.SOURCE)
        self.compiler = FakeCompiler()
        self.options = {'target': 'es5'}
        host = CompilerHostAdapter(HostBridge(self.session), self.compiler, self.options)
        self.program = build_program(self.compiler, host, ['/index.ts'], self.options)
        self.unit = self.program.get_source_file('/index.ts')

    def tearDown(self):
        self.session.close()

    def test_emit_runs_hook_once(self):
        """The hook sees the unit once and every write is captured."""
        seen = []
        invocation = TransformationInvocation(
            self.program, self.unit, runtime_check, on_output=lambda n, t: seen.append((n, t))
        )

        outcome = invocation.run()

        self.assertEqual(outcome.hook_calls['/index.ts'], 1)
        self.assertEqual(outcome.file_names, ['/index.js'])
        self.assertEqual(seen, [(f.file_name, f.text) for f in outcome.files])
        self.assertFalse(outcome.emit_skipped)

        text = outcome.text_for('/index.js')
        self.assertIn('typeof value === "number"', text)
        self.assertIn('const value = 42;', text)
        self.assertIsNone(outcome.text_for('/other.js'))

    def test_hook_failure_is_chained(self):
        invocation = TransformationInvocation(self.program, self.unit, broken_transform)

        with self.assertRaises(TransformationError) as cm:
            invocation.run()

        self.assertEqual(cm.exception.file_name, '/index.ts')
        self.assertIsInstance(cm.exception.__cause__, KeyError)
        self.assertIs(cm.exception.cause, cm.exception.__cause__)

    def test_factory_failure(self):
        def no_program(program):
            raise RuntimeError("checker unavailable")

        with self.assertRaises(TransformationError) as cm:
            TransformationInvocation(self.program, self.unit, no_program).run()
        self.assertIsInstance(cm.exception.__cause__, RuntimeError)

    def test_context_stage_failure(self):
        """A factory that fails on the transformation context is wrapped too."""
        def needs_checker(program):
            def factory(context):
                return context.type_checker.visit
            return factory

        with self.assertRaises(TransformationError) as cm:
            TransformationInvocation(self.program, self.unit, needs_checker).run()
        self.assertIsInstance(cm.exception.__cause__, AttributeError)
        self.assertEqual(cm.exception.file_name, '/index.ts')
        self.assertEqual(cm.exception.context['stage'], 'context')


class TestRuntimeCheckPlugin(unittest.IsolatedAsyncioTestCase):
    """End-to-end: mount, fetch, populate libraries, compile, emit."""

    SOURCE = (
        "import check from 'ts-transform-runtime-check';\n"
        "const value: number = 42;\n"
        "const checked = check<number>(value);\n"
    )

    async def asyncSetUp(self):
        self.session = Session()
        self.http = FakeHttpSession(package_routes())
        self.compiler = FakeCompiler()
        client = RegistryClient(self.session.config.registry, http_session=self.http)
        self.fetcher = PackageFetcher(self.session, client)
        self.plugin = RuntimeCheckPlugin(
            self.session,
            self.compiler,
            runtime_check,
            fetcher=self.fetcher,
            libraries=DefaultLibraryLoader(self.session, self.compiler, client, bundled=BUNDLED_LIBS),
        )
        self.sandbox = FakeSandbox('/index.ts', self.SOURCE)

    async def asyncTearDown(self):
        self.plugin.did_unmount()

    async def test_run_emits_runtime_checks(self):
        self.plugin.did_mount(self.sandbox)
        outcome = await self.plugin.run(self.sandbox)

        text = outcome.text_for('/index.js')
        self.assertIn('typeof value === "number"', text)
        self.assertIn('throw new TypeError("Expected number")', text)
        self.assertEqual(outcome.diagnostics, [])
        self.assertEqual(self.session.vfs.read_file('/index.ts'), self.SOURCE)
        self.assertTrue(self.session.vfs.is_file('/libs/lib.d.ts'))
        self.assertEqual(self.plugin.info.state, PluginState.MOUNTED)

    async def test_run_without_mount(self):
        outcome = await self.plugin.run(self.sandbox)
        self.assertIsNotNone(outcome.text_for('/index.js'))

    async def test_missing_module_is_a_diagnostic(self):
        """An unresolved import is reported by the compiler, not raised."""
        sandbox = FakeSandbox('/src/app.ts', "import pad from 'left-pad';\nconst n: number = 1;\n")

        outcome = await self.plugin.run(sandbox)

        codes = [d.code for d in outcome.diagnostics]
        self.assertIn(2307, codes)
        self.assertIn("left-pad", outcome.diagnostics[codes.index(2307)].message)
        self.assertEqual(outcome.text_for('/src/app.js'), "import pad from 'left-pad';\nconst n = 1;\n")

    async def test_fetch_failure_surfaces_at_run(self):
        """Mount never fails; the stored error is raised by run()."""
        self.http.routes[MANIFEST_URL] = (404, "Not Found")

        self.plugin.did_mount(self.sandbox)
        await asyncio.sleep(0)

        with self.assertRaises(RemoteFetchError) as cm:
            await self.plugin.run(self.sandbox)
        self.assertEqual(cm.exception.status, 404)

        self.http.routes.update(package_routes())
        outcome = await self.plugin.run(self.sandbox)
        self.assertIn('typeof value === "number"', outcome.text_for('/index.js'))

    async def test_compiler_exit_cancels_run(self):
        sandbox = FakeSandbox('/index.ts', self.SOURCE, {'target': 'es5', 'simulateExit': True})

        self.assertIsNone(await self.plugin.run(sandbox))

    async def test_superseded_run_returns_none(self):
        self.plugin.did_mount(self.sandbox)

        first, second = await asyncio.gather(
            self.plugin.run(self.sandbox), self.plugin.run(self.sandbox)
        )

        self.assertIsNone(first)
        self.assertIsNotNone(second)

    async def test_undecodable_manifest_surfaces_at_run(self):
        self.http.routes[MANIFEST_URL] = (200, b'\xff\xfe')

        with self.assertRaises(RemoteFetchError) as cm:
            await self.plugin.run(self.sandbox)
        self.assertTrue(cm.exception.reason.startswith("undecodable body"))

        self.http.routes.update(package_routes())
        outcome = await self.plugin.run(self.sandbox)
        self.assertIn('typeof value === "number"', outcome.text_for('/index.js'))

    async def test_crashed_setup_is_retried(self):
        """An unexpected error during setup does not stick to later runs."""
        self.http.routes[MANIFEST_URL] = RuntimeError("resolver crashed")

        with self.assertRaises(RuntimeError):
            await self.plugin.run(self.sandbox)

        self.http.routes.update(package_routes())
        outcome = await self.plugin.run(self.sandbox)
        self.assertIn('typeof value === "number"', outcome.text_for('/index.js'))

    async def test_unmount_cancels_pending_fetches(self):
        stalled = asyncio.Event()
        self.http.routes[MANIFEST_URL] = stalled

        self.plugin.did_mount(self.sandbox)
        for _ in range(5):
            await asyncio.sleep(0)
        task = self.fetcher.in_flight[RUNTIME_CHECK]

        self.plugin.did_unmount()
        for _ in range(3):
            await asyncio.sleep(0)

        self.assertTrue(task.cancelled())
        self.assertEqual(self.fetcher.in_flight, {})
        self.assertEqual(self.http.calls, [MANIFEST_URL])

    async def test_unmount_closes_session(self):
        self.plugin.did_mount(self.sandbox)
        self.plugin.did_unmount()

        self.assertIs(self.session.state, SessionState.CLOSED)
        self.assertEqual(self.plugin.info.state, PluginState.CLOSED)
        with self.assertRaises(SessionClosedError):
            await self.plugin.run(self.sandbox)


def run_tests():
    """Run all tests."""
    loader = unittest.TestLoader()
    suite = loader.loadTestsFromModule(sys.modules[__name__])

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
