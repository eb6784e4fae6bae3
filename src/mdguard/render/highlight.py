"""Language-aware code highlighting backed by Pygments.

A ``HighlighterRegistry`` maps language identifiers to highlighter callables.
Lookups never miss: a language without an entry gets the registry's default,
which only HTML-escapes the code.
"""

from __future__ import annotations

import html
import logging
from typing import Callable, Iterable, Optional

from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import find_lexer_class_by_name, get_all_lexers
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

Highlighter = Callable[[str], str]


def escape_code(code: str) -> str:
    """Default highlighter: the code, HTML-escaped, with no added markup."""
    return html.escape(code)


class PygmentsHighlighter:
    """Wrap one Pygments lexer as a highlighter callable.

    Lexing never strips or appends newlines, so the output holds every
    character of the input in its original order.
    """

    def __init__(self, lexer_cls: type[Lexer], class_prefix: str = "tok-") -> None:
        self.lexer_cls = lexer_cls
        self.formatter = HtmlFormatter(nowrap=True, classprefix=class_prefix)

    def __call__(self, code: str) -> str:
        lexer = self.lexer_cls(stripnl=False, ensurenl=False, stripall=False)
        return pygments_highlight(code, lexer, self.formatter)

    def __repr__(self) -> str:
        return f"PygmentsHighlighter({self.lexer_cls.__name__})"


class HighlighterRegistry:
    """Language identifier -> highlighter, with a guaranteed default entry."""

    def __init__(self, default: Highlighter = escape_code) -> None:
        self.default = default
        self._entries: dict[str, Highlighter] = {}

    def register(self, language: str, highlighter: Highlighter, aliases: Iterable[str] = ()) -> None:
        for name in (language, *aliases):
            self._entries[name.lower()] = highlighter

    def lookup(self, language: Optional[str]) -> Highlighter:
        if not language:
            return self.default
        return self._entries.get(language.lower(), self.default)

    def highlight(self, code: str, language: Optional[str] = None) -> str:
        """Return ``code`` as HTML, with token spans when ``language`` is known."""
        highlighter = self.lookup(language)
        if highlighter is self.default:
            if language:
                logger.debug("No highlighter for %r, escaping only", language)
            return self.default(code)
        try:
            return highlighter(code)
        except Exception:
            logger.warning("Highlighter for %r failed, escaping only", language, exc_info=True)
            return self.default(code)

    def languages(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, language: object) -> bool:
        return isinstance(language, str) and language.lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def build_registry(languages: Optional[Iterable[str]] = None, class_prefix: str = "tok-") -> HighlighterRegistry:
    """Build a registry of Pygments highlighters.

    With no ``languages`` every lexer alias Pygments ships is registered.
    Lexer modules are only imported once a language is actually highlighted.
    """
    registry = HighlighterRegistry()
    wanted = [lang.lower() for lang in languages or []]

    if not wanted:
        for _name, aliases, _filenames, _mimetypes in get_all_lexers():
            if aliases:
                registry.register(aliases[0], _LazyPygmentsHighlighter(aliases[0], class_prefix), aliases[1:])
        return registry

    for lang in wanted:
        try:
            lexer_cls = find_lexer_class_by_name(lang)
        except ClassNotFound:
            raise ValueError(f"Unknown highlight language: {lang}") from None
        registry.register(lang, PygmentsHighlighter(lexer_cls, class_prefix))
    return registry


class _LazyPygmentsHighlighter:
    """Resolve the lexer class on first use."""

    def __init__(self, alias: str, class_prefix: str) -> None:
        self.alias = alias
        self.class_prefix = class_prefix
        self._inner: Optional[PygmentsHighlighter] = None

    def __call__(self, code: str) -> str:
        if self._inner is None:
            self._inner = PygmentsHighlighter(find_lexer_class_by_name(self.alias), self.class_prefix)
        return self._inner(code)

    def __repr__(self) -> str:
        return f"_LazyPygmentsHighlighter({self.alias!r})"
