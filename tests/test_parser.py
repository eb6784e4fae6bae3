import time

import markdown
import pytest

from mdguard.render.parser import FencedCodeHookPreprocessor, MarkdownParser, plain_code


@pytest.fixture
def calls():
    return []


@pytest.fixture
def parser(calls):
    def hook(code, language):
        calls.append((code, language))
        return f"[{language}]{code.upper()}"

    return MarkdownParser(code_hook=hook)


def test_heading_and_emphasis():
    out = MarkdownParser().render("# Title\n\nHello **world**.")
    assert "<h1>Title</h1>" in out
    assert "<p>Hello <strong>world</strong>.</p>" in out


def test_fenced_block_goes_through_hook(parser, calls):
    out = parser.render("Intro\n\n```python\nprint(1)\n```\n")
    assert calls == [("print(1)", "python")]
    assert '<pre><code class="language-python">[python]PRINT(1)</code></pre>' in out


def test_fence_without_language(parser, calls):
    out = parser.render("```\nplain\n```\n")
    assert calls == [("plain", None)]
    assert "<pre><code>[None]PLAIN</code></pre>" in out


def test_tilde_fence_and_multiline_code(parser, calls):
    parser.render("~~~go\nfunc main() {\n}\n~~~\n")
    assert calls == [("func main() {\n}", "go")]


def test_several_fences_in_order(parser, calls):
    parser.render("```a\none\n```\n\ntext\n\n```b\ntwo\n```\n")
    assert calls == [("one", "a"), ("two", "b")]


def test_info_string_after_language_is_ignored(parser, calls):
    out = parser.render('```python" onmouseover="alert(1)\nx\n```\n')
    assert calls == [("x", "python")]
    assert "onmouseover" not in out


def test_unterminated_fence_is_literal_text(parser, calls):
    out = parser.render("```python\nprint(1)\n")
    assert calls == []
    assert "print(1)" in out


def test_default_hook_escapes():
    out = MarkdownParser().render("```html\n<b>&</b>\n```\n")
    assert '<code class="language-html">&lt;b&gt;&amp;&lt;/b&gt;</code>' in out
    assert plain_code("<i>", "x") == "&lt;i&gt;"


def test_custom_language_prefix(calls):
    parser = MarkdownParser(code_hook=lambda code, lang: code, lang_prefix="lang-")
    assert '<code class="lang-rust">' in parser.render("```rust\nfn x() {}\n```\n")


def test_table_markup():
    out = MarkdownParser().render("| a | b |\n|---|---|\n| 1 | 2 |\n")
    assert "<table>" in out
    assert "<thead>" in out
    assert "<tbody>" in out
    assert "<td>1</td>" in out


def test_lists_quotes_links_and_inline_code():
    out = MarkdownParser().render("- one\n- two\n\n> quoted\n\n[link](https://example.com) and `code`\n")
    assert "<li>one</li>" in out
    assert "<blockquote>" in out
    assert '<a href="https://example.com">link</a>' in out
    assert "<code>code</code>" in out


@pytest.mark.parametrize(
    "text",
    ["**unclosed *emph [link](", "```", "| a |\n|--", "<div", "[x]: \n\n[x]", "\x00�"],
)
def test_malformed_input_does_not_raise(text):
    assert isinstance(MarkdownParser().render(text), str)


def test_empty_input():
    assert MarkdownParser().render("") == ""


def test_many_unclosed_fences_scan_in_linear_time():
    pre = FencedCodeHookPreprocessor(markdown.Markdown(), {"hook": plain_code, "lang_prefix": "language-"})
    lines = ["```x"] * 20000
    start = time.perf_counter()
    assert pre.run(lines) == lines
    assert time.perf_counter() - start < 2


def test_many_unclosed_fences_render_as_text(parser, calls):
    out = parser.render("```x\n" * 2000)
    assert calls == []
    assert "<pre>" not in out


def test_fence_closes_on_matching_fence_only(parser, calls):
    parser.render("````a\n```\ninner\n````\n")
    assert calls == [("```\ninner", "a")]


def test_closing_fence_may_carry_trailing_spaces(parser, calls):
    parser.render("~~~go\nx\n~~~   \n")
    assert calls == [("x", "go")]
