# tests/conftest.py
"""Shared fixtures for the bsl-checkers test suite."""

import logging
import textwrap

import pytest

from bsl_checkers.checkers import CheckerRunner
from bsl_checkers.grammar import parse


@pytest.fixture
def parse_bsl():
    """Parse dedented BSL source into a SyntaxTree."""
    def _parse(source, file_name="Module.bsl"):
        return parse(textwrap.dedent(source), file_name=file_name)
    return _parse


@pytest.fixture
def run_checks():
    """Run the default checker suite on dedented source, return diagnostics."""
    def _run(source, file_name="Module.bsl", configuration=None,
             suppressions=None, checkers=None):
        runner = CheckerRunner(configuration=configuration, suppressions=suppressions)
        results = runner.run_source(textwrap.dedent(source), file_name, checkers=checkers)
        return results.diagnostics
    return _run


@pytest.fixture
def write_module(tmp_path):
    """Write a dedented source file under tmp_path and return its path."""
    def _write(name, source):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path
    return _write


@pytest.fixture(autouse=True)
def _reset_cli_logging():
    yield
    logger = logging.getLogger("bsl_checkers")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
