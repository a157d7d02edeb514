# =============================================================================
# lib/translations.py - Translation Tables & Language Detection
# =============================================================================
# Two pieces:
#
# Translator
#   Loads lang/<code>/<namespace>.json once at startup and resolves
#   (language, "namespace.key") lookups. Resolution order:
#     1. requested language
#     2. default language
#     3. the key itself (so untranslated strings are visible on the page)
#
# LanguageManager
#   Per-request wrapper that picks the visitor's language from the session,
#   a ?lang= query parameter, or the Accept-Language header, and exposes a
#   t() shortcut bound to that language.
#
# Usage:
#   translator = Translator(BASE_DIR / "lang", supported=["en", "si"])
#   translator.load()
#   translator.translate("si", "cart.title")
#   translator.translate("en", "cart.items_count", {"count": 3})
# =============================================================================

import json
import logging
import re
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "common"
SESSION_KEY = "language"

LANGUAGE_NAMES = {
    "en": "English",
    "si": "සිංහල",
}

_PARAM_PATTERN = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


class Translator:
    """
    Immutable-after-load mapping of (language, namespace, key) to strings.

    Namespaces are the JSON file names; keys inside a file are flat dotted
    strings such as "nav.home".
    """

    def __init__(
        self,
        lang_dir: str | Path,
        supported: list[str] | tuple[str, ...] = ("en", "si"),
        default: str = "en",
    ):
        self.lang_dir = Path(lang_dir)
        self.supported = tuple(supported)
        self.default = default
        self._tables: dict[str, dict[str, dict[str, str]]] = {}

    def load(self) -> "Translator":
        """
        Read every translation file for the supported languages.

        Missing language directories are logged and skipped.
        """
        tables: dict[str, dict[str, dict[str, str]]] = {}
        for language in self.supported:
            language_dir = self.lang_dir / language
            if not language_dir.is_dir():
                logger.warning(f"No translation directory for language '{language}'")
                continue
            namespaces = {}
            for path in sorted(language_dir.glob("*.json")):
                with path.open(encoding="utf-8") as f:
                    namespaces[path.stem] = {str(k): str(v) for k, v in json.load(f).items()}
            tables[language] = namespaces

        self._tables = tables
        logger.info(
            f"Loaded translations for {', '.join(tables) or 'no languages'} from {self.lang_dir}"
        )
        return self

    def is_supported(self, language: str | None) -> bool:
        return language in self.supported

    def languages(self) -> list[str]:
        """Languages that actually have tables loaded."""
        return list(self._tables)

    def lookup(self, language: str, key: str) -> str | None:
        """Return the string for one language only, or None."""
        namespace, _, name = key.partition(".")
        if not name:
            namespace, name = DEFAULT_NAMESPACE, key
        return self._tables.get(language, {}).get(namespace, {}).get(name)

    def translate(
        self,
        language: str,
        key: str,
        params: dict[str, Any] | None = None,
    ) -> str:
        """
        Resolve a dotted key.

        Args:
            language: Language code (unsupported codes use the default)
            key: "namespace.key"; a key without a namespace uses "common"
            params: Values for ":name" placeholders

        Returns:
            The translated string, the default-language string, or the key
        """
        value = self.lookup(language, key)
        if value is None and language != self.default:
            value = self.lookup(self.default, key)
        if value is None:
            return key
        if params:
            value = interpolate(value, params)
        return value

    def has(self, language: str, key: str) -> bool:
        return self.lookup(language, key) is not None

    def namespace(self, language: str, namespace: str) -> dict[str, str]:
        """All strings of a namespace, default language filled in underneath."""
        merged = dict(self._tables.get(self.default, {}).get(namespace, {}))
        merged.update(self._tables.get(language, {}).get(namespace, {}))
        return merged


def interpolate(template: str, params: dict[str, Any]) -> str:
    """Replace ":name" placeholders; unknown placeholders are left alone."""
    def replace(match: re.Match) -> str:
        name = match.group(1)
        return str(params[name]) if name in params else match.group(0)

    return _PARAM_PATTERN.sub(replace, template)


def parse_accept_language(header: str | None) -> list[str]:
    """
    Parse an Accept-Language header into primary language codes by preference.

    Example:
        parse_accept_language("si-LK,si;q=0.9,en;q=0.8")  # ["si", "si", "en"]
    """
    if not header:
        return []
    weighted = []
    for index, part in enumerate(header.split(",")):
        piece = part.strip()
        if not piece:
            continue
        code, _, params = piece.partition(";")
        quality = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                quality = float(params[2:])
            except ValueError:
                quality = 0.0
        primary = code.strip().split("-")[0].lower()
        if primary and primary != "*" and quality > 0:
            weighted.append((-quality, index, primary))
    return [code for _, _, code in sorted(weighted)]


class LanguageManager:
    """
    Language state for one request.

    Detection order: ?lang= (remembered in the session), session,
    Accept-Language, default.
    """

    def __init__(
        self,
        translator: Translator,
        session: Any,
        query: dict[str, Any] | None = None,
        accept_language: str | None = None,
    ):
        self.translator = translator
        self.session = session
        self.current = self._detect(query or {}, accept_language)

    def _detect(self, query: dict[str, Any], accept_language: str | None) -> str:
        requested = query.get("lang")
        if requested and self.translator.is_supported(requested):
            self.session.set(SESSION_KEY, requested)
            return requested

        stored = self.session.get(SESSION_KEY)
        if stored and self.translator.is_supported(stored):
            return stored

        for code in parse_accept_language(accept_language):
            if self.translator.is_supported(code):
                return code

        return self.translator.default

    def set_language(self, language: str) -> bool:
        """Switch and remember the language. Returns False if unsupported."""
        if not self.translator.is_supported(language):
            return False
        self.current = language
        self.session.set(SESSION_KEY, language)
        return True

    def t(self, key: str, **params: Any) -> str:
        return self.translator.translate(self.current, key, params)

    def language_name(self, language: str | None = None) -> str:
        code = language or self.current
        return LANGUAGE_NAMES.get(code, code)

    def available(self) -> list[dict[str, Any]]:
        return [
            {"code": code, "name": LANGUAGE_NAMES.get(code, code), "active": code == self.current}
            for code in self.translator.supported
        ]

    def switcher_url(self, path: str, query: dict[str, Any], language: str) -> str:
        """Current URL with ?lang= replaced."""
        params = {k: v for k, v in query.items() if k != "lang"}
        params["lang"] = language
        return f"{path}?{urlencode(params)}"
