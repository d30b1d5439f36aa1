"""End-to-end tests: a command tree built with every default step.

Covers:
- --version, --help and handler results
- Typo suggestions next to parse errors
- Contained handler exceptions
- The env, culture, parse and suggest directives
- Suggest-tool registration leaving a sentinel in the cache
"""

from __future__ import annotations

import locale
import os
from pathlib import Path

import pytest

from clipipe.culture import CultureInfo, current_culture, set_current_culture
from clipipe.exceptions import OperationCancelledError
from clipipe.invocation.results import VersionResult
from clipipe.models import Command, PipelineConfig
from clipipe.pipeline.builder import CommandLineBuilder, Parser


def _locale_installed(name: str) -> bool:
    """Whether the C library has a locale for culture *name*."""
    try:
        for candidate in CultureInfo.get(name).locale_candidates():
            try:
                locale.setlocale(locale.LC_NUMERIC, candidate)
            except locale.Error:
                continue
            return True
        return False
    finally:
        locale.setlocale(locale.LC_NUMERIC, "C")


def _build(command: Command, config: PipelineConfig | None = None) -> Parser:
    return CommandLineBuilder(command, config).use_defaults().build()


# ---------------------------------------------------------------------------
# Options and handlers
# ---------------------------------------------------------------------------


class TestDefaultOptions:
    def test_version(self, sample_command, console) -> None:
        parser = _build(sample_command, PipelineConfig(version="2.3.1"))

        assert parser.invoke(["--version"], console) == 0
        assert console.stdout_text == "2.3.1\n"
        assert console.stderr_text == ""

    def test_help_for_subcommand(self, sample_command, console) -> None:
        parser = _build(sample_command)

        assert parser.invoke(["copy", "--help"], console) == 0
        out = console.stdout_text
        assert "Description:\n  Copy files.\n" in out
        assert "  tool copy <source> [options]\n" in out
        assert "--verbose" in out
        assert "--output" not in out

    def test_handler_result_code(self, console) -> None:
        parser = _build(Command(name="tool", arguments=["name"], handler=lambda context: 4))

        assert parser.invoke(["x"], console) == 4
        assert console.stdout_text == ""

    def test_async_handler(self, console) -> None:
        async def handler(context) -> int:
            context.console.write_out(f"Hello, {context.parse_result.arguments[0]}!")
            return 0

        parser = _build(Command(name="greet", arguments=["name"], handler=handler))

        assert parser.invoke(["world"], console) == 0
        assert console.stdout_text == "Hello, world!\n"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_typo_suggestion_and_parse_error(self, sample_command, console) -> None:
        parser = _build(sample_command)

        assert parser.invoke(["--verbos"], console) == 1
        assert console.stdout_text == (
            "'--verbos' was not matched. Did you mean one of the following?\n--verbose\n"
        )
        assert console.stderr_text == "Unrecognized command or argument '--verbos'.\n\n"

    def test_custom_parse_error_exit_code(self, sample_command, console) -> None:
        parser = _build(sample_command, PipelineConfig(parse_error_exit_code=64))

        assert parser.invoke(["--nope"], console) == 64

    def test_handler_exception(self, console) -> None:
        def handler(context) -> int:
            raise ValueError("bad input")

        parser = _build(Command(name="tool", handler=handler))

        assert parser.invoke([], console) == 1
        assert console.stderr_text.startswith("Unhandled exception: Traceback")
        assert "ValueError: bad input" in console.stderr_text

    def test_cancelled_handler_is_reported_as_failure(self, console) -> None:
        def handler(context) -> int:
            raise OperationCancelledError("The operation was cancelled.")

        parser = _build(Command(name="tool", handler=handler))

        assert parser.invoke([], console) == 1
        assert "OperationCancelledError: The operation was cancelled." in console.stderr_text

    def test_unclosed_quote_is_a_parse_error(self, console) -> None:
        calls: list[str] = []

        def handler(context) -> int:
            calls.append("ran")
            return 0

        parser = _build(Command(name="say", arguments=["text"], handler=handler))

        assert parser.invoke('"hello', console) == 1
        assert "Invalid command line: No closing quotation." in console.stderr_text
        assert calls == []


# ---------------------------------------------------------------------------
# Directives
# ---------------------------------------------------------------------------


class TestDirectives:
    def test_env_directive_is_visible_to_handler(self, console, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GREETING", "before")
        seen: list[str] = []

        def handler(context) -> int:
            seen.append(os.environ["GREETING"])
            return 0

        parser = _build(Command(name="tool", handler=handler))

        assert parser.invoke(["[env:GREETING=hi]"], console) == 0
        assert seen == ["hi"]

    def test_culture_directive_beats_environment(
        self, sample_command, console, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CLIPIPE_GLOBALIZATION_CULTURE", "de-DE")
        parser = (
            CommandLineBuilder(sample_command)
            .use_version_option(lambda: str(current_culture()))
            .use_defaults()
            .build()
        )

        assert parser.invoke(["[culture:fr-FR]", "--version"], console) == 0
        assert console.stdout_text == "fr-FR\n"

    def test_result_is_applied_under_the_captured_culture(self, console) -> None:
        def handler(context) -> VersionResult:
            set_current_culture(CultureInfo.get("de-DE"))
            return VersionResult(lambda: str(current_culture()))

        parser = _build(Command(name="tool", handler=handler))

        assert parser.invoke(["[culture:fr-FR]"], console) == 0
        assert console.stdout_text == "fr-FR\n"
        assert current_culture() == CultureInfo("de-DE")

    @pytest.mark.skipif(not _locale_installed("de-DE"), reason="de_DE locale is not installed")
    def test_culture_directive_changes_number_formatting(self, console) -> None:
        def handler(context) -> VersionResult:
            return VersionResult(lambda: locale.format_string("%.1f", 1234.5, grouping=True))

        parser = _build(Command(name="tool", handler=handler))

        assert parser.invoke([], console) == 0
        assert parser.invoke(["[culture:de-DE]"], console) == 0
        assert console.stdout_text.splitlines() == ["1234.5", "1.234,5"]

    def test_parse_directive(self, sample_command, console) -> None:
        parser = _build(sample_command)

        assert parser.invoke(["[parse]", "-o", "a.txt", "copy", "src"], console) == 0
        assert console.stdout_text == "[ tool [ copy [ --output <a.txt> ] <src> ] ]\n"

    def test_parse_directive_with_errors(self, sample_command, console) -> None:
        parser = _build(sample_command)

        assert parser.invoke(["[parse]", "--bogus"], console) == 1
        assert console.stdout_text == "![ tool ]   ???--> --bogus\n"
        assert console.stderr_text == ""

    def test_suggest_directive(self, sample_command, console) -> None:
        parser = _build(sample_command)

        assert parser.invoke(["[suggest]", "co"], console) == 0
        assert console.stdout_text == "copy\n"

    def test_directives_disabled(self, sample_command, console) -> None:
        parser = CommandLineBuilder(sample_command).use_defaults().enable_directives(False).build()

        assert parser.invoke(["[parse]"], console) == 1
        assert "Unrecognized command or argument '[parse]'." in console.stderr_text


# ---------------------------------------------------------------------------
# Suggest-tool registration
# ---------------------------------------------------------------------------


class TestRegistration:
    def test_failed_registration_is_harmless_and_remembered(
        self, sample_command, console, isolated_config: Path
    ) -> None:
        parser = _build(sample_command, PipelineConfig(suggest_tool="clipipe-test-missing-tool"))

        assert parser.invoke(["list"], console) == 0

        sentinels = list((isolated_config / "cache" / "clipipe" / "sentinels").iterdir())
        assert len(sentinels) == 1
        assert sentinels[0].name.startswith("clipipe-suggest-")
        assert sentinels[0].read_text(encoding="utf-8").startswith("Exception during registration:")
