"""Tests for clipipe.culture -- culture names, current culture and snapshots."""

from __future__ import annotations

import locale

import pytest

from clipipe.culture import (
    INVARIANT_CULTURE,
    CultureInfo,
    CultureSnapshot,
    current_culture,
    current_ui_culture,
    reset_culture,
    set_current_culture,
    set_current_ui_culture,
)
from clipipe.exceptions import CultureNotFoundError
from clipipe.exit_codes import EXIT_INVALID_USAGE


class TestCultureInfo:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("fr-FR", "fr-FR"), ("en_us", "en-US"), ("DE", "de"), ("  de-de  ", "de-DE")],
    )
    def test_names_are_normalised(self, name: str, expected: str) -> None:
        assert CultureInfo.get(name).name == expected

    @pytest.mark.parametrize("name", ["", "invariant", "Invariant"])
    def test_invariant_names(self, name: str) -> None:
        culture = CultureInfo.get(name)
        assert culture is INVARIANT_CULTURE
        assert culture.is_invariant

    @pytest.mark.parametrize("name", ["!!bogus!!", "x", "fr FR", "zzq-QQ"])
    def test_unknown_names_raise(self, name: str) -> None:
        with pytest.raises(CultureNotFoundError) as exc_info:
            CultureInfo.get(name)
        assert exc_info.value.exit_code == EXIT_INVALID_USAGE

    def test_language_and_str(self) -> None:
        culture = CultureInfo.get("fr-FR")
        assert culture.language == "fr"
        assert str(culture) == "fr-FR"
        assert str(INVARIANT_CULTURE) == "(invariant)"

    def test_posix_name(self) -> None:
        assert INVARIANT_CULTURE.posix_name == "C"
        assert CultureInfo.get("fr-FR").posix_name.startswith("fr_FR")


class TestFromEnvironment:
    def test_lang(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LANG", "de_DE.UTF-8")
        assert CultureInfo.from_environment() == CultureInfo("de-DE")

    def test_lc_all_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LANG", "de_DE.UTF-8")
        monkeypatch.setenv("LC_ALL", "fr_FR")
        assert CultureInfo.from_environment() == CultureInfo("fr-FR")

    @pytest.mark.parametrize("value", ["C", "POSIX", "C.UTF-8", "garbage!!"])
    def test_invariant_fallbacks(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("LANG", value)
        assert CultureInfo.from_environment().is_invariant


class TestCurrentCulture:
    def test_initialised_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LANG", "fr_FR.UTF-8")
        reset_culture()

        assert current_culture() == CultureInfo("fr-FR")
        assert current_ui_culture() == CultureInfo("fr-FR")

    def test_culture_and_ui_culture_are_independent(self) -> None:
        set_current_culture(CultureInfo.get("de-DE"))
        set_current_ui_culture(CultureInfo.get("fr-FR"))

        assert current_culture() == CultureInfo("de-DE")
        assert current_ui_culture() == CultureInfo("fr-FR")


class TestCultureSnapshot:
    def test_capture_and_restore(self) -> None:
        set_current_culture(CultureInfo.get("de-DE"))
        snapshot = CultureSnapshot.capture()
        set_current_culture(CultureInfo.get("fr-FR"))

        snapshot.restore()

        assert current_culture() == CultureInfo("de-DE")

    def test_applied_context_manager(self) -> None:
        set_current_culture(CultureInfo.get("de-DE"))
        snapshot = CultureSnapshot(CultureInfo.get("fr-FR"), CultureInfo.get("fr-FR"))

        with snapshot.applied():
            assert current_culture() == CultureInfo("fr-FR")
            assert current_ui_culture() == CultureInfo("fr-FR")

        assert current_culture() == CultureInfo("de-DE")
        assert current_ui_culture().is_invariant


class TestLocaleConfiguration:
    @pytest.fixture
    def setlocale_calls(self, monkeypatch: pytest.MonkeyPatch) -> list[tuple[int, str]]:
        calls: list[tuple[int, str]] = []

        def fake_setlocale(category: int, value: str | None = None) -> str:
            calls.append((category, value))
            return value or "C"

        monkeypatch.setattr(locale, "setlocale", fake_setlocale)
        return calls

    def test_locale_candidates(self) -> None:
        assert INVARIANT_CULTURE.locale_candidates() == ["C"]
        assert CultureInfo.get("fr-FR").locale_candidates()[0] == "fr_FR.UTF-8"
        assert CultureInfo.get("de").locale_candidates()[0].startswith("de_DE")

    def test_culture_configures_numeric_and_time(self, setlocale_calls) -> None:
        set_current_culture(CultureInfo.get("fr-FR"))

        assert (locale.LC_NUMERIC, "fr_FR.UTF-8") in setlocale_calls
        assert (locale.LC_TIME, "fr_FR.UTF-8") in setlocale_calls

    @pytest.mark.skipif(not hasattr(locale, "LC_MESSAGES"), reason="no LC_MESSAGES on this platform")
    def test_ui_culture_configures_messages(self, setlocale_calls) -> None:
        set_current_ui_culture(CultureInfo.get("fr-FR"))

        assert setlocale_calls == [(locale.LC_MESSAGES, "fr_FR.UTF-8")]

    def test_missing_locale_is_tolerated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def unavailable(category: int, value: str | None = None) -> str:
            raise locale.Error("unsupported locale setting")

        monkeypatch.setattr(locale, "setlocale", unavailable)

        set_current_culture(CultureInfo.get("fr-FR"))

        assert current_culture() == CultureInfo("fr-FR")

    def test_snapshot_reapplies_the_callers_locale(self, setlocale_calls) -> None:
        set_current_culture(CultureInfo.get("de-DE"))
        snapshot = CultureSnapshot(CultureInfo.get("fr-FR"), INVARIANT_CULTURE)

        def numeric() -> str:
            return [value for category, value in setlocale_calls if category == locale.LC_NUMERIC][-1]

        with snapshot.applied():
            assert numeric() == "fr_FR.UTF-8"

        assert numeric() == "de_DE.UTF-8"
