"""Tests for the bundle() entry point and its error handling.

Covers the success path, build errors, empty bundles and write failures in
both BuildMode.ONCE (process exits) and BuildMode.WATCH (process survives).
"""

from __future__ import annotations

from pathlib import Path

import pytest

from sesbundle.build import (
    BUILD_ERROR_PREFIX,
    WRITE_ERROR_PREFIX,
    build_once,
    bundle,
    remove_destination,
    report_error,
    write_bundle,
)
from sesbundle.core.errors import BuildError, EmptyBundleError, WriteError
from sesbundle.core.logging import BuildLogger
from sesbundle.core.models import BuildMode, BundleOptions
from sesbundle.producer import StaticProducer

BROWSERIFY_OUTPUT = """\
(function(){function r(e,n,t){return e}return r})()({1:[function(require,module,exports){
(function (Buffer){
// uses self for the worker global
module.exports = self.btoa(Buffer.from('x'))
}).call(this,require("buffer").Buffer)
},{}]},{},[1]);
"""


class TestReportError:
    def test_exits_when_not_watching(self, tmp_path, build_logger, recorder):
        dest = tmp_path / "bundle.js"
        dest.write_text("stale", encoding="utf-8")

        with pytest.raises(SystemExit) as excinfo:
            report_error("Build error:", BuildError("boom"), dest, logger=build_logger)

        assert excinfo.value.code == 1
        assert not dest.exists()
        assert recorder.named("build.error")[0]["summary"] == "Build error: boom"

    def test_survives_in_watch_mode(self, tmp_path, build_logger, recorder):
        dest = tmp_path / "bundle.js"
        dest.write_text("stale", encoding="utf-8")

        report_error("Write error: ", WriteError("disk full"), dest, mode=BuildMode.WATCH, logger=build_logger)

        assert not dest.exists()
        assert recorder.named("build.error")[0]["summary"] == "Write error: disk full"
        assert recorder.named("build.cleanup")[0]["removed"] is True

    def test_missing_dest_is_ignored(self, tmp_path, build_logger, recorder):
        report_error("Build error:", BuildError("x"), tmp_path / "absent.js", mode=BuildMode.WATCH, logger=build_logger)
        assert recorder.named("build.cleanup")[0]["removed"] is False

    def test_remove_destination(self, tmp_path):
        dest = tmp_path / "b.js"
        dest.write_text("x", encoding="utf-8")
        assert remove_destination(dest) is True
        assert remove_destination(dest) is False


class TestWriteBundle:
    @pytest.mark.asyncio
    async def test_writes_utf8(self, tmp_path):
        dest = tmp_path / "b.js"
        written = await write_bundle(dest, "() => 'héllo'")
        assert dest.read_text(encoding="utf-8") == "() => 'héllo'"
        assert written == len("() => 'héllo'".encode("utf-8"))

    @pytest.mark.asyncio
    async def test_overwrites(self, tmp_path):
        dest = tmp_path / "b.js"
        dest.write_text("old contents that are longer", encoding="utf-8")
        await write_bundle(dest, "new")
        assert dest.read_text(encoding="utf-8") == "new"

    @pytest.mark.asyncio
    async def test_missing_directory_is_write_error(self, tmp_path):
        with pytest.raises(WriteError, match="Cannot write"):
            await write_bundle(tmp_path / "missing" / "b.js", "x")


class TestBundleSuccess:
    @pytest.mark.asyncio
    async def test_writes_postprocessed_bundle(self, project, build_logger, recorder):
        dest = project / "dist" / "bundle.js"
        producer = StaticProducer(text=BROWSERIFY_OUTPUT)

        assert await bundle(project / "src" / "index.js", dest, producer=producer, logger=build_logger) is True

        output = dest.read_text(encoding="utf-8")
        assert output.startswith("() => (function(){")
        assert "(function (){\n" in output
        assert "window.btoa" in output
        assert "self" not in output
        assert not output.endswith(";")

        success = recorder.named("build.success")
        assert len(success) == 1
        assert success[0]["summary"].startswith("Build success: ")
        assert success[0]["bytes_written"] == len(output.encode("utf-8"))

    @pytest.mark.asyncio
    async def test_options_forwarded(self, project, build_logger):
        dest = project / "dist" / "bundle.js"
        producer = StaticProducer(text=BROWSERIFY_OUTPUT)
        options = BundleOptions(source_maps=True, strip_comments=True)

        await bundle(project / "src" / "index.js", dest, options, producer=producer, logger=build_logger)

        assert producer.calls == [(project / "src" / "index.js", True)]
        assert "uses window for the worker global" not in dest.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_comments_kept_by_default(self, project, build_logger):
        dest = project / "dist" / "bundle.js"
        await bundle(
            project / "src" / "index.js", dest, producer=StaticProducer(text=BROWSERIFY_OUTPUT), logger=build_logger
        )
        assert "// uses window for the worker global" in dest.read_text(encoding="utf-8")


class TestBundleBuildError:
    @pytest.mark.asyncio
    async def test_exits_when_not_watching(self, project, build_logger, recorder):
        dest = project / "dist" / "bundle.js"
        dest.write_text("previous build", encoding="utf-8")
        producer = StaticProducer(error=BuildError("Cannot find module 'x'"))

        with pytest.raises(SystemExit):
            await bundle(project / "src" / "index.js", dest, producer=producer, logger=build_logger)

        assert not dest.exists()
        assert recorder.named("build.error")[0]["summary"] == f"{BUILD_ERROR_PREFIX} Cannot find module 'x'"

    @pytest.mark.asyncio
    async def test_resolves_true_in_watch_mode(self, project, build_logger, recorder):
        dest = project / "dist" / "bundle.js"
        dest.write_text("previous build", encoding="utf-8")
        producer = StaticProducer(error=BuildError("syntax error"))

        result = await bundle(
            project / "src" / "index.js", dest, producer=producer, mode=BuildMode.WATCH, logger=build_logger
        )

        assert result is True
        assert not dest.exists()
        assert recorder.named("build.success") == []

    @pytest.mark.asyncio
    async def test_foreign_error_reported_as_build_error(self, project, build_logger, recorder):
        producer = StaticProducer(error=RuntimeError("bundler crashed"))
        await bundle(
            project / "src" / "index.js",
            project / "dist" / "b.js",
            producer=producer,
            mode=BuildMode.WATCH,
            logger=build_logger,
        )
        event = recorder.named("build.error")[0]
        assert event["summary"] == "Build error: bundler crashed"
        assert event["error_type"] == "BuildError"


class TestBundleWriteError:
    @pytest.mark.asyncio
    async def test_empty_bundle_exits(self, project, build_logger, recorder):
        dest = project / "dist" / "bundle.js"
        dest.write_text("previous build", encoding="utf-8")

        with pytest.raises(SystemExit):
            await bundle(project / "src" / "index.js", dest, producer=StaticProducer(text="  \n"), logger=build_logger)

        assert not dest.exists()
        summary = recorder.named("build.error")[0]["summary"]
        assert summary.startswith(WRITE_ERROR_PREFIX)
        assert "empty" in summary

    @pytest.mark.asyncio
    async def test_empty_bundle_raises_in_watch_mode(self, project, build_logger):
        with pytest.raises(EmptyBundleError):
            await bundle(
                project / "src" / "index.js",
                project / "dist" / "bundle.js",
                producer=StaticProducer(text=""),
                mode=BuildMode.WATCH,
                logger=build_logger,
            )

    @pytest.mark.asyncio
    async def test_unwritable_destination_raises_in_watch_mode(self, project, build_logger, recorder):
        dest = project / "no-such-dir" / "bundle.js"

        with pytest.raises(WriteError):
            await bundle(
                project / "src" / "index.js",
                dest,
                producer=StaticProducer(text="x()"),
                mode=BuildMode.WATCH,
                logger=build_logger,
            )

        assert recorder.named("build.error")[0]["summary"].startswith("Write error: Cannot write")


class TestBuildOnce:
    @pytest.mark.asyncio
    async def test_success_result(self, project, build_logger):
        dest = project / "dist" / "bundle.js"
        result = await build_once(
            project / "src" / "index.js", dest, producer=StaticProducer(text="run();"), logger=build_logger
        )
        assert result.success is True
        assert result.bytes_written == len("() => (\nrun()\n)")
        assert result.dest == str(dest)
        assert dest.read_text(encoding="utf-8") == "() => (\nrun()\n)"

    @pytest.mark.asyncio
    async def test_build_failure_result(self, project, build_logger):
        result = await build_once(
            project / "src" / "index.js",
            project / "dist" / "bundle.js",
            producer=StaticProducer(error=BuildError("nope")),
            logger=build_logger,
        )
        assert result.success is False
        assert result.error_kind == "build"
        assert result.error_message == "nope"

    @pytest.mark.asyncio
    async def test_write_failure_result(self, project, build_logger):
        dest = project / "dist" / "bundle.js"
        dest.write_text("old", encoding="utf-8")
        result = await build_once(
            project / "src" / "index.js", dest, producer=StaticProducer(text=""), logger=build_logger
        )
        assert result.success is False
        assert result.error_kind == "write"
        assert not Path(dest).exists()


class TestSharedPipeline:
    @staticmethod
    def _trace(recorder):
        return [(e["event"], e.get("summary")) for e in recorder.events]

    @pytest.mark.parametrize(
        "producer",
        [
            StaticProducer(text="run();"),
            StaticProducer(error=BuildError("syntax error")),
        ],
        ids=["success", "build-error"],
    )
    @pytest.mark.asyncio
    async def test_bundle_and_build_once_emit_same_events(self, project, producer, recorder):
        source, dest = project / "src" / "index.js", project / "dist" / "bundle.js"
        via_bundle, via_build_once = recorder, type(recorder)()

        await bundle(source, dest, producer=producer, mode=BuildMode.WATCH, logger=BuildLogger(logger=via_bundle))
        await build_once(source, dest, producer=producer, logger=BuildLogger(logger=via_build_once))

        assert self._trace(via_bundle) == self._trace(via_build_once)
        assert self._trace(via_bundle)[0][0] == "build.start"
