"""Markdown to HTML conversion with a per-code-block hook."""

from __future__ import annotations

import html
import re
from bisect import bisect_right
from typing import Callable, Optional, Sequence

import markdown
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor

# (raw code, declared language or None) -> HTML body of the code element
CodeHook = Callable[[str, Optional[str]], str]


def plain_code(code: str, language: Optional[str] = None) -> str:
    return html.escape(code)


class FencedCodeHookPreprocessor(Preprocessor):
    """Replace fenced code blocks with stashed ``<pre><code>`` markup."""

    OPEN_RE = re.compile(r"^(?P<fence>~{3,}|`{3,})[ ]*\.?(?P<lang>[\w#.+-]*)")

    def __init__(self, md: markdown.Markdown, config: dict) -> None:
        super().__init__(md)
        self.hook: CodeHook = config["hook"]
        self.lang_prefix: str = config["lang_prefix"]

    def run(self, lines: list[str]) -> list[str]:
        # line numbers of every possible closing fence, per fence string
        closers: dict[str, list[int]] = {}
        for n, line in enumerate(lines):
            m = self.OPEN_RE.match(line)
            if m and line.rstrip(" ") == m.group("fence"):
                closers.setdefault(m.group("fence"), []).append(n)

        out: list[str] = []
        i = 0
        while i < len(lines):
            m = self.OPEN_RE.match(lines[i])
            candidates = closers.get(m.group("fence"), []) if m else []
            k = bisect_right(candidates, i)
            if k == len(candidates):
                # not a fence, or never closed: literal text
                out.append(lines[i])
                i += 1
                continue

            end = candidates[k]
            lang = m.group("lang") or None
            body = self.hook("\n".join(lines[i + 1:end]), lang)
            class_attr = f' class="{html.escape(self.lang_prefix + lang)}"' if lang else ""
            placeholder = self.md.htmlStash.store(f"<pre><code{class_attr}>{body}</code></pre>")
            out.extend(["", placeholder, ""])
            i = end + 1
        return out


class FencedCodeHookExtension(Extension):
    def __init__(self, **kwargs) -> None:
        # A None default would make Python-Markdown coerce the hook to a bool
        self.config = {
            "hook": [plain_code, "Callable(code, language) returning the block's HTML body"],
            "lang_prefix": ["language-", "Prefix for the language class on <code>"],
        }
        super().__init__(**kwargs)

    def extendMarkdown(self, md: markdown.Markdown) -> None:
        md.registerExtension(self)
        # Ahead of raw HTML (20) and of the stock fenced_code (25) if a caller adds "extra"
        md.preprocessors.register(FencedCodeHookPreprocessor(md, self.getConfigs()), "fenced_code_hook", 26)


# "extra" without its fenced_code, whose block regex is quadratic on unclosed fences
DEFAULT_EXTENSIONS = ("abbr", "attr_list", "def_list", "footnotes", "md_in_html", "tables", "sane_lists")


class MarkdownParser:
    """Render markdown text to (unsanitized) HTML.

    A fresh ``markdown.Markdown`` is built per call; instances carry parse
    state and are not safe to share between threads.
    """

    def __init__(
        self,
        code_hook: CodeHook = plain_code,
        lang_prefix: str = "language-",
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self.code_hook = code_hook
        self.lang_prefix = lang_prefix
        self.extensions = list(extensions)

    def render(self, text: str) -> str:
        md = markdown.Markdown(
            extensions=[
                *self.extensions,
                FencedCodeHookExtension(hook=self.code_hook, lang_prefix=self.lang_prefix),
            ],
        )
        return md.convert(text or "")
