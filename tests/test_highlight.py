import html
import re

import pytest

from mdguard.render.highlight import HighlighterRegistry, build_registry, escape_code


def _text(markup: str) -> str:
    return html.unescape(re.sub(r"<[^>]+>", "", markup))


@pytest.fixture(scope="module")
def registry():
    return build_registry(["python", "go"])


def test_unknown_language_is_only_escaped(registry):
    code = '<script>alert("x")</script> & more'
    assert registry.highlight(code, "unknown-lang") == html.escape(code)


def test_missing_language_is_only_escaped(registry):
    assert registry.highlight("a < b", None) == "a &lt; b"
    assert registry.highlight("a < b", "") == "a &lt; b"


def test_lookup_falls_back_to_default(registry):
    assert registry.lookup("cobol-2099") is registry.default
    assert registry.default is escape_code


def test_known_language_wraps_tokens_in_spans(registry):
    out = registry.highlight("print(1)", "python")
    assert '<span class="tok-nb">print</span>' in out
    assert _text(out) == "print(1)"


def test_highlighting_keeps_every_character():
    registry = build_registry(["python"])
    code = "\n\n  x = 1\t# tab\n\nif x:\n    pass\n\n"
    assert _text(registry.highlight(code, "python")) == code


def test_highlighted_code_is_escaped(registry):
    out = registry.highlight('s = "<script>alert(1)</script>"', "python")
    assert "<script>" not in out
    assert "&lt;script&gt;" in out


def test_language_lookup_ignores_case(registry):
    assert "Python" in registry
    assert registry.highlight("x", "PYTHON") == registry.highlight("x", "python")


def test_register_custom_highlighter():
    registry = HighlighterRegistry()
    registry.register("shout", lambda code: code.upper(), aliases=["yell"])
    assert registry.highlight("abc", "shout") == "ABC"
    assert registry.highlight("abc", "yell") == "ABC"
    assert registry.languages() == ["shout", "yell"]


def test_failing_highlighter_falls_back_to_escaping():
    def boom(code):
        raise RuntimeError("lexer exploded")

    registry = HighlighterRegistry()
    registry.register("boom", boom)
    assert registry.highlight("<b>", "boom") == "&lt;b&gt;"


def test_build_registry_rejects_unknown_language():
    with pytest.raises(ValueError, match="nosuchlang"):
        build_registry(["nosuchlang"])


def test_build_registry_defaults_to_all_pygments_lexers():
    registry = build_registry()
    assert "python" in registry
    assert "go" in registry
    assert "js" in registry
    assert len(registry) > 100
    assert "print" in registry.highlight("print(1)", "py")
