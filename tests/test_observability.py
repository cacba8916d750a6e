"""
Tests for observability — log level resolution, logging setup and run context.
"""

import logging
from pathlib import Path

import pytest

from guided_install.core.observability.logging_config import (
    InstallContextFilter,
    bind_phase,
    log_context,
    resolve_level,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    bind_phase("-")
    yield root
    bind_phase("-")
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    @pytest.mark.parametrize("debug,verbose,quiet,env,expected", [
        (True, True, True, "ERROR", "DEBUG"),
        (False, True, True, "ERROR", "INFO"),
        (False, False, True, "DEBUG", "ERROR"),
        (False, False, False, "INFO", "INFO"),
        (False, False, False, None, "WARNING"),
        (False, False, False, "", "WARNING"),
    ])
    def test_precedence(self, debug, verbose, quiet, env, expected):
        assert resolve_level(debug, verbose, quiet, env) == expected


class TestSetupLogging:
    def test_console_level(self, restore_root_logger):
        setup_logging("INFO")
        root = restore_root_logger
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert root.handlers[0].level == logging.INFO

    def test_unknown_level_falls_back_to_warning(self, restore_root_logger):
        setup_logging("LOUD")
        assert restore_root_logger.level == logging.WARNING

    def test_file_handler_lowers_effective_level(self, restore_root_logger, tmp_path: Path):
        log_file = tmp_path / "install.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        logging.getLogger("guided_install.test").debug("validation attempt 3")
        for h in root.handlers:
            h.flush()
        assert "validation attempt 3" in log_file.read_text()

    def test_handlers_carry_context_filter(self, restore_root_logger, tmp_path: Path):
        setup_logging("INFO", log_file=str(tmp_path / "install.log"))
        for h in restore_root_logger.handlers:
            assert any(isinstance(f, InstallContextFilter) for f in h.filters)

    def test_file_lines_show_phase_and_recipe(self, restore_root_logger, tmp_path: Path):
        log_file = tmp_path / "install.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        log = logging.getLogger("guided_install.test")

        bind_phase("install_optional")
        with log_context(recipe="recipe-a"):
            log.debug("no data yet")
        log.debug("between recipes")
        for h in restore_root_logger.handlers:
            h.flush()

        lines = log_file.read_text().splitlines()
        assert "[install_optional/recipe-a]" in next(line for line in lines if "no data yet" in line)
        assert "[install_optional/-]" in next(line for line in lines if "between recipes" in line)

    def test_repeat_setup_replaces_handlers(self, restore_root_logger):
        setup_logging("INFO")
        setup_logging("ERROR")
        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.level == logging.ERROR


class TestInstallContextFilter:
    def _record(self) -> logging.LogRecord:
        return logging.LogRecord("guided_install.test", logging.INFO, __file__, 1, "msg", None, None)

    def test_defaults_outside_a_run(self, restore_root_logger):
        record = self._record()
        assert InstallContextFilter().filter(record)
        assert (record.phase, record.recipe) == ("-", "-")

    def test_nested_recipe_context_restored(self, restore_root_logger):
        bind_phase("install_required")
        with log_context(recipe="outer"):
            with log_context(recipe="inner"):
                inner = self._record()
                InstallContextFilter().filter(inner)
            outer = self._record()
            InstallContextFilter().filter(outer)

        assert (inner.phase, inner.recipe) == ("install_required", "inner")
        assert outer.recipe == "outer"

    def test_recipe_context_reset_on_error(self, restore_root_logger):
        with pytest.raises(RuntimeError):
            with log_context(recipe="recipe-a"):
                raise RuntimeError("boom")
        record = self._record()
        InstallContextFilter().filter(record)
        assert record.recipe == "-"
