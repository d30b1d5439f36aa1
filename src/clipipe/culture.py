"""Culture model and process-wide current culture.

A *culture* decides how text is localised and how numbers and dates are
formatted. clipipe keeps two process-wide values, the current culture and the
current UI culture, which the culture directive configures for the
remainder of the invocation. They are never rolled back automatically;
embedders that run several invocations in one process must snapshot and
restore around each run themselves (:class:`CultureSnapshot` does exactly
that).

Setting a culture also points the C library locale at it
(``LC_NUMERIC``, ``LC_TIME``, ``LC_MONETARY`` and ``LC_COLLATE`` for the
culture, ``LC_MESSAGES`` for the UI culture), so :mod:`locale`-aware
formatting such as ``locale.format_string`` and ``time.strftime`` follows
it. Cultures with no installed locale only change the recorded value.

Culture names are BCP-47-like (``fr-FR``, ``en_us``, ``de``) and are
validated against the interpreter's locale alias table. The empty name is
the invariant culture.
"""

from __future__ import annotations

import locale
import logging
import os
import re
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from clipipe.exceptions import CultureNotFoundError

logger = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r"^[A-Za-z]{2,3}(?:[-_][A-Za-z0-9]{2,8})*$")


@dataclass(frozen=True)
class CultureInfo:
    """An immutable, validated culture name.

    Use :meth:`get` rather than the constructor; it normalises the name to
    ``language-REGION`` form and rejects unknown languages.

    Attributes:
        name: Normalised name, ``""`` for the invariant culture.
    """

    name: str

    @classmethod
    def get(cls, name: str) -> CultureInfo:
        """Resolve *name* to a :class:`CultureInfo`.

        Args:
            name: Culture name such as ``"fr-FR"``, ``"en_us"`` or ``""``.

        Returns:
            The normalised culture.

        Raises:
            CultureNotFoundError: If *name* is malformed or its language is
                unknown to the locale alias table.
        """
        name = name.strip()
        if name == "" or name.lower() == "invariant":
            return INVARIANT_CULTURE
        if not _NAME_PATTERN.match(name):
            raise CultureNotFoundError(f"Culture is not supported: '{name}'")

        language, *subtags = re.split(r"[-_]", name)
        language = language.lower()
        alias_key = "_".join([language, *(tag.lower() for tag in subtags)])
        if alias_key not in locale.locale_alias and language not in locale.locale_alias:
            raise CultureNotFoundError(f"Culture is not supported: '{name}'")

        return cls("-".join([language, *(_normalise_subtag(tag) for tag in subtags)]))

    @classmethod
    def from_environment(cls) -> CultureInfo:
        """Derive the culture from ``LC_ALL`` / ``LC_MESSAGES`` / ``LANG``.

        ``C``, ``POSIX`` and unresolvable values map to the invariant culture.
        """
        for var in ("LC_ALL", "LC_MESSAGES", "LANG"):
            value = os.environ.get(var)
            if not value:
                continue
            value = value.split(".", 1)[0].split("@", 1)[0]
            if value in ("C", "POSIX"):
                return INVARIANT_CULTURE
            try:
                return cls.get(value)
            except CultureNotFoundError:
                return INVARIANT_CULTURE
        return INVARIANT_CULTURE

    @property
    def is_invariant(self) -> bool:
        return self.name == ""

    @property
    def language(self) -> str:
        return self.name.split("-", 1)[0]

    @property
    def posix_name(self) -> str:
        """The matching POSIX locale name (``fr_FR.ISO8859-1``), ``C`` when invariant."""
        if self.is_invariant:
            return "C"
        return locale.normalize(self.name.replace("-", "_"))

    def locale_candidates(self) -> list[str]:
        """POSIX locale names to try for this culture, UTF-8 first."""
        if self.is_invariant:
            return ["C"]
        base = self.name.replace("-", "_")
        candidates = [locale.normalize(f"{base}.UTF-8"), self.posix_name]
        return list(dict.fromkeys(candidates))

    def __str__(self) -> str:
        return self.name or "(invariant)"


def _normalise_subtag(tag: str) -> str:
    if len(tag) == 2 and tag.isalpha():
        return tag.upper()
    if len(tag) == 4 and tag.isalpha():
        return tag.title()
    return tag.lower()


INVARIANT_CULTURE = CultureInfo("")
"""The culture-independent culture."""


# ------------------------------------------------------------------ #
# Process-wide current culture
# ------------------------------------------------------------------ #

_lock = threading.RLock()
# Locale categories following the culture and the UI culture respectively.
_CULTURE_CATEGORIES = ("LC_NUMERIC", "LC_TIME", "LC_MONETARY", "LC_COLLATE")
_UI_CULTURE_CATEGORIES = ("LC_MESSAGES",)
_current: Optional[CultureInfo] = None
_current_ui: Optional[CultureInfo] = None


def current_culture() -> CultureInfo:
    """Return the process-wide current culture (initialised from the environment)."""
    global _current
    with _lock:
        if _current is None:
            _current = CultureInfo.from_environment()
        return _current


def _apply_locale(culture: CultureInfo, category_names: tuple[str, ...]) -> bool:
    """Point the C library locale categories at *culture*.

    Tries each of :meth:`CultureInfo.locale_candidates` in turn. A culture
    without an installed locale leaves the categories unchanged.
    """
    categories = [getattr(locale, name) for name in category_names if hasattr(locale, name)]
    if not categories:
        return False
    for candidate in culture.locale_candidates():
        try:
            for category in categories:
                locale.setlocale(category, candidate)
        except locale.Error:
            continue
        return True
    logger.debug("No installed locale for culture %s; locale left unchanged", culture)
    return False


def set_current_culture(culture: CultureInfo) -> None:
    """Make *culture* current and configure the numeric, time, monetary and collation locale."""
    global _current
    with _lock:
        _current = culture
        _apply_locale(culture, _CULTURE_CATEGORIES)


def current_ui_culture() -> CultureInfo:
    """Return the process-wide current UI culture (initialised from the environment)."""
    global _current_ui
    with _lock:
        if _current_ui is None:
            _current_ui = CultureInfo.from_environment()
        return _current_ui


def set_current_ui_culture(culture: CultureInfo) -> None:
    """Make *culture* the current UI culture and configure the messages locale."""
    global _current_ui
    with _lock:
        _current_ui = culture
        _apply_locale(culture, _UI_CULTURE_CATEGORIES)


def reset_culture() -> None:
    """Forget both current cultures so they are re-read from the environment.

    The locale categories go back to ``C``, the state the interpreter starts
    in. Primarily useful in test suites to ensure a clean state between
    tests.
    """
    global _current, _current_ui
    with _lock:
        _current = None
        _current_ui = None
        _apply_locale(INVARIANT_CULTURE, _CULTURE_CATEGORIES + _UI_CULTURE_CATEGORIES)


@dataclass(frozen=True)
class CultureSnapshot:
    """An explicit capture of both current cultures.

    Taken when a step decides what to emit, and reinstated around the later
    write so that the output is formatted the way it was decided.
    """

    culture: CultureInfo
    ui_culture: CultureInfo

    @classmethod
    def capture(cls) -> CultureSnapshot:
        with _lock:
            return cls(current_culture(), current_ui_culture())

    def restore(self) -> None:
        with _lock:
            set_current_culture(self.culture)
            set_current_ui_culture(self.ui_culture)

    @contextmanager
    def applied(self) -> Iterator[CultureSnapshot]:
        """Make this snapshot current for the ``with`` block, then put back the caller's."""
        previous = CultureSnapshot.capture()
        self.restore()
        try:
            yield self
        finally:
            previous.restore()
