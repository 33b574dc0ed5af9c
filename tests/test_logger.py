"""AppLogger tests.

Test coverage:
- Routing of each message kind to the out/err sink
- Verbose gating (no output, nothing queued)
- Color wrapping on/off
- Deferred logger replay
- Exception rendering that never raises
- Failing sinks never surfacing to the caller
- Concurrent use without torn lines
"""

from __future__ import annotations

import io
import threading

import pytest

from cmdutils.applog import AppLogger, OutputSink, StreamSink
from cmdutils.colors import RESET, TerminalColor
from cmdutils.config import ColorMode, Config


# =============================================================================
# Routing
# =============================================================================


class TestRouting:
    """Test which sink each kind lands in."""

    def test_plain_goes_to_out(self, quiet_logger, out_buffer, err_buffer):
        quiet_logger.print("a%s", 1)
        quiet_logger.println("b")
        quiet_logger.println()

        assert out_buffer.getvalue() == "a1b\n\n"
        assert err_buffer.getvalue() == ""

    def test_err_and_warn_go_to_err(self, quiet_logger, out_buffer, err_buffer):
        quiet_logger.println_err("bad %s", "thing")
        quiet_logger.println_warn("careful")
        quiet_logger.print_err("x")
        quiet_logger.print_warn("y")

        assert out_buffer.getvalue() == ""
        assert err_buffer.getvalue() == "bad thing\ncareful\nxy"

    def test_success_goes_to_out(self, quiet_logger, out_buffer, err_buffer):
        quiet_logger.println_success("SUCCESS!!")
        quiet_logger.print_success("%d%%", 100)

        assert out_buffer.getvalue() == "SUCCESS!!\n100%"
        assert err_buffer.getvalue() == ""

    def test_literal_percent_without_args(self, quiet_logger, out_buffer):
        quiet_logger.println("50% done")
        assert out_buffer.getvalue() == "50% done\n"

    def test_format_error_degrades(self, quiet_logger, out_buffer):
        quiet_logger.println("%s %s", "only-one")
        assert out_buffer.getvalue() == "%s %s 'only-one'\n"

    def test_raising_argument_degrades(self, quiet_logger, out_buffer):
        class BadStr:
            def __str__(self):
                raise RuntimeError("boom")

            def __repr__(self):
                return "BadStr()"

        quiet_logger.println("value %s", BadStr())
        assert out_buffer.getvalue() == "value %s BadStr()\n"


# =============================================================================
# Verbose gating
# =============================================================================


VERBOSE_METHODS = [
    "print_verbose",
    "println_verbose",
    "print_err_verbose",
    "println_err_verbose",
    "print_warn_verbose",
    "println_warn_verbose",
    "print_success_verbose",
    "println_success_verbose",
]


class TestVerboseGating:
    """Test verbose-only variants."""

    @pytest.mark.parametrize("method", VERBOSE_METHODS)
    def test_silent_when_not_verbose(self, quiet_logger, out_buffer, err_buffer, method):
        getattr(quiet_logger, method)("hidden %s", "text")

        assert out_buffer.getvalue() == ""
        assert err_buffer.getvalue() == ""

    @pytest.mark.parametrize("method", VERBOSE_METHODS)
    def test_emitted_when_verbose(self, verbose_logger, out_buffer, err_buffer, method):
        getattr(verbose_logger, method)("shown %s", "text")

        combined = out_buffer.getvalue() + err_buffer.getvalue()
        assert combined.startswith("shown text")

    @pytest.mark.parametrize("method", VERBOSE_METHODS)
    def test_nothing_queued_when_not_verbose(self, quiet_logger, method):
        deferred = quiet_logger.deferred()
        getattr(deferred, method)("hidden")
        assert deferred.pending == 0

    def test_exception_verbose_silent(self, quiet_logger, err_buffer):
        quiet_logger.print_exception_verbose(ValueError("boom"))
        assert err_buffer.getvalue() == ""

    def test_verbose_is_read_only(self, quiet_logger):
        with pytest.raises(AttributeError):
            quiet_logger.verbose = True


# =============================================================================
# Colors
# =============================================================================


class TestColors:
    """Test color wrapping."""

    def test_kinds_are_wrapped_once(self):
        out, err = io.StringIO(), io.StringIO()
        app_logger = AppLogger(StreamSink(out), StreamSink(err), colors=True)

        app_logger.println_err("e %d", 1)
        app_logger.println_warn("w")
        app_logger.println_success("s")
        app_logger.println("plain")

        assert err.getvalue() == (
            f"{TerminalColor.BRIGHT_RED.value}e 1{RESET}\n"
            f"{TerminalColor.YELLOW.value}w{RESET}\n"
        )
        assert out.getvalue() == f"{TerminalColor.GREEN.value}s{RESET}\nplain\n"

    def test_deferred_wraps_like_immediate(self):
        out, err = io.StringIO(), io.StringIO()
        app_logger = AppLogger(StreamSink(out), StreamSink(err), colors=True)

        with app_logger.deferred() as deferred:
            deferred.println_success("s")

        assert out.getvalue() == f"{TerminalColor.GREEN.value}s{RESET}\n"

    def test_no_codes_when_disabled(self, quiet_logger, err_buffer):
        quiet_logger.println_err("plain")
        assert "\x1b[" not in err_buffer.getvalue()

    def test_from_config_uses_color_flag(self):
        config = Config(verbose=True, color_mode=ColorMode.ALWAYS)
        app_logger = AppLogger.from_config(config)

        assert app_logger.verbose is True
        assert app_logger.colors is True

    def test_from_config_verbose_override(self):
        config = Config(verbose=False, color_mode=ColorMode.NEVER)
        app_logger = AppLogger.from_config(config, verbose=True)

        assert app_logger.verbose is True
        assert app_logger.colors is False


# =============================================================================
# Deferred logger
# =============================================================================


class TestDeferredLogger:
    """Test deferred output."""

    def test_replay_in_order_exactly_once(self, verbose_logger, out_buffer, err_buffer):
        deferred = verbose_logger.deferred()
        for i in range(5):
            deferred.println("line %d", i)

        assert out_buffer.getvalue() == ""
        assert deferred.pending == 5

        deferred.flush()
        expected = "".join(f"line {i}\n" for i in range(5))
        assert out_buffer.getvalue() == expected
        assert deferred.pending == 0

        deferred.flush()
        assert out_buffer.getvalue() == expected

    def test_out_and_err_share_order(self):
        shared = io.StringIO()
        parent = AppLogger(StreamSink(shared), StreamSink(shared), verbose=True)
        deferred = parent.deferred()

        deferred.println("1")
        deferred.println_err("2")
        deferred.println_warn_verbose("3")
        deferred.println_success("4")
        deferred.close()

        assert shared.getvalue() == "1\n2\n3\n4\n"

    def test_inherits_parent_settings(self, verbose_logger):
        deferred = verbose_logger.deferred()
        assert deferred.verbose is True
        assert deferred.colors is False

    def test_context_manager_flushes(self, verbose_logger, out_buffer):
        with verbose_logger.deferred() as deferred:
            deferred.println("queued")
            assert out_buffer.getvalue() == ""
        assert out_buffer.getvalue() == "queued\n"

    def test_nested_deferred(self, verbose_logger, out_buffer):
        outer = verbose_logger.deferred()
        inner = outer.deferred()

        inner.println("deep")
        inner.flush()
        assert out_buffer.getvalue() == ""

        outer.flush()
        assert out_buffer.getvalue() == "deep\n"

    def test_exception_is_deferred(self, verbose_logger, err_buffer):
        deferred = verbose_logger.deferred()
        try:
            raise RuntimeError("later")
        except RuntimeError as e:
            deferred.print_exception_verbose(e)

        assert err_buffer.getvalue() == ""
        deferred.flush()
        assert "RuntimeError: later" in err_buffer.getvalue()

    def test_immediate_logger_pending_is_zero(self, verbose_logger):
        verbose_logger.println("x")
        assert verbose_logger.pending == 0

    def test_flush_waits_for_parent_lock(self, verbose_logger, out_buffer):
        batch = verbose_logger.deferred()
        batch.println("queued")

        flusher = threading.Thread(target=batch.flush)
        with verbose_logger.lock:
            verbose_logger.print("start ")
            flusher.start()
            flusher.join(timeout=0.2)
            assert flusher.is_alive()
            verbose_logger.println("end")
        flusher.join(timeout=5)

        assert out_buffer.getvalue() == "start end\nqueued\n"


# =============================================================================
# Exceptions
# =============================================================================


class TestExceptions:
    """Test exception rendering."""

    def test_traceback_rendered(self, verbose_logger, err_buffer):
        try:
            raise KeyError("missing")
        except KeyError as e:
            verbose_logger.print_exception_verbose(e)

        text = err_buffer.getvalue()
        assert "Traceback" in text
        assert "KeyError" in text
        assert text.endswith("\n") and not text.endswith("\n\n")

    def test_print_exception_ignores_verbosity(self, quiet_logger, err_buffer):
        quiet_logger.print_exception(ValueError("always"))
        assert "ValueError: always" in err_buffer.getvalue()

    def test_broken_exception_does_not_raise(self, verbose_logger, err_buffer):
        class Broken(Exception):
            def __str__(self):
                raise RuntimeError("no str")

        verbose_logger.print_exception_verbose(Broken())
        assert "Broken" in err_buffer.getvalue()


# =============================================================================
# Failing sinks
# =============================================================================


class RaisingSink(OutputSink):
    """Sink whose every write fails."""

    def __init__(self) -> None:
        self.attempts = 0

    def write(self, fmt: str, *args) -> None:
        self.attempts += 1
        raise RuntimeError("sink down")


class TestSinkFailures:
    """Test that a failing sink never surfaces to the caller."""

    def test_every_kind_swallows_sink_errors(self):
        out, err = RaisingSink(), RaisingSink()
        app_logger = AppLogger(out, err, verbose=True)

        app_logger.print("a")
        app_logger.println("b")
        app_logger.println_err_verbose("c")
        app_logger.println_warn("d")
        app_logger.println_success("e")
        app_logger.print_exception(ValueError("f"))

        assert out.attempts == 3
        assert err.attempts == 3

    def test_lock_released_after_failure(self):
        app_logger = AppLogger(RaisingSink(), RaisingSink())
        app_logger.println("x")

        acquired = []
        worker = threading.Thread(
            target=lambda: acquired.append(app_logger.lock.acquire(timeout=5))
        )
        worker.start()
        worker.join()
        assert acquired == [True]

    def test_deferred_flush_into_failing_sink(self):
        target = RaisingSink()
        batch = AppLogger(target, target, verbose=True).deferred()
        batch.println("one")
        batch.println_err("two")

        batch.flush()

        assert target.attempts == 2
        assert batch.pending == 0


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrency:
    """Test concurrent logging."""

    def test_no_torn_lines(self):
        shared = io.StringIO()
        app_logger = AppLogger(StreamSink(shared), StreamSink(shared), verbose=True)
        per_thread = 300

        def writer(tag: str) -> None:
            for _ in range(per_thread):
                app_logger.println_verbose("%s", tag * 60)
                app_logger.println_err_verbose("%s", tag * 60)

        threads = [threading.Thread(target=writer, args=(t,)) for t in "AB"]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        lines = shared.getvalue().splitlines()
        assert len(lines) == 2 * 2 * per_thread
        assert set(lines) == {"A" * 60, "B" * 60}
