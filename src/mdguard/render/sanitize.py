"""Whitelist-based HTML sanitization.

The whitelist walk itself is bleach's. Two things are layered on top:

* Strip Policy tags (script, style, ...) lose their whole subtree, not just
  the tag markup. bleach would keep their text, so the html5lib parser is
  told to build those elements and a token filter drops them, content and
  all, before bleach's sanitizer filter runs. Both steps see the same parse.
* Attribute exceptions: predicates consulted for an attribute outside the
  whitelist. ``LanguageClassException`` keeps the ``class="language-..."``
  marker that fenced code blocks carry on their ``<code>`` element, and
  ``TokenClassException`` keeps the ``tok-*`` classes on highlighter spans.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional

from bleach import html5lib_shim
from bleach.sanitizer import BleachSanitizerFilter, Cleaner

from mdguard.core.config import load_config
from mdguard.core.models import SanitizerConfig

logger = logging.getLogger(__name__)

# (tag, attribute name, attribute value) -> keep?
AttributeException = Callable[[str, str, str], bool]


@dataclass(frozen=True)
class LanguageClassException:
    """Keep a highlighter-assigned language class on the inline-code tag."""

    prefix: str = "language-"
    tag: str = "code"
    attribute: str = "class"

    def __call__(self, tag: str, name: str, value: str) -> bool:
        if tag != self.tag or name != self.attribute:
            return False
        return re.fullmatch(re.escape(self.prefix) + r"[\w#.+-]+", value) is not None


@dataclass(frozen=True)
class TokenClassException:
    """Keep token classes on highlighter spans; every class must carry the prefix."""

    prefix: str = "tok-"
    tag: str = "span"
    attribute: str = "class"

    def __call__(self, tag: str, name: str, value: str) -> bool:
        if tag != self.tag or name != self.attribute:
            return False
        classes = value.split()
        pattern = re.escape(self.prefix) + r"[\w-]+"
        return bool(classes) and all(re.fullmatch(pattern, c) for c in classes)


def _freeze_attributes(attributes: Mapping[str, Iterable[str]]) -> Mapping[str, frozenset[str]]:
    return MappingProxyType({tag.lower(): frozenset(a.lower() for a in attrs) for tag, attrs in attributes.items()})


@dataclass(frozen=True)
class SanitizePolicy:
    """Whitelist table, Strip Policy and attribute exceptions. Immutable."""

    tags: frozenset[str]
    attributes: Mapping[str, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))
    global_attributes: frozenset[str] = frozenset()
    strip_content_tags: frozenset[str] = frozenset({"script", "style"})
    protocols: frozenset[str] = frozenset({"http", "https", "mailto"})
    attribute_exceptions: tuple[AttributeException, ...] = ()

    @classmethod
    def build(
        cls,
        tags: Iterable[str],
        attributes: Optional[Mapping[str, Iterable[str]]] = None,
        global_attributes: Iterable[str] = (),
        strip_content_tags: Iterable[str] = ("script", "style"),
        protocols: Iterable[str] = ("http", "https", "mailto"),
        attribute_exceptions: Iterable[AttributeException] = (),
    ) -> SanitizePolicy:
        return cls(
            tags=frozenset(t.lower() for t in tags),
            attributes=_freeze_attributes(attributes or {}),
            global_attributes=frozenset(a.lower() for a in global_attributes),
            strip_content_tags=frozenset(t.lower() for t in strip_content_tags),
            protocols=frozenset(protocols),
            attribute_exceptions=tuple(attribute_exceptions),
        )

    @classmethod
    def from_config(cls, config: SanitizerConfig, token_class_prefix: str = "tok-") -> SanitizePolicy:
        return cls.build(
            tags=config.tags,
            attributes=config.attributes,
            global_attributes=config.global_attributes,
            strip_content_tags=config.strip_content_tags,
            protocols=config.protocols,
            attribute_exceptions=[
                LanguageClassException(prefix=config.code_class_prefix),
                TokenClassException(prefix=token_class_prefix),
            ],
        )

    def allowed_attributes(self, tag: str) -> frozenset[str]:
        return self.attributes.get(tag, frozenset()) | self.global_attributes

    def allows_attribute(self, tag: str, name: str, value: str) -> bool:
        if tag not in self.tags:
            return False
        if name in self.allowed_attributes(tag):
            return True
        return any(exception(tag, name, value) for exception in self.attribute_exceptions)

    def with_exception(self, exception: AttributeException) -> SanitizePolicy:
        """Return a copy of this policy with one more attribute exception."""
        return SanitizePolicy(
            tags=self.tags,
            attributes=self.attributes,
            global_attributes=self.global_attributes,
            strip_content_tags=self.strip_content_tags,
            protocols=self.protocols,
            attribute_exceptions=(*self.attribute_exceptions, exception),
        )


class StripContentFilter(html5lib_shim.Filter):
    """Drop Strip Policy elements from a tree-walker token stream, subtree included."""

    def __init__(self, source, tags: frozenset[str]) -> None:
        super().__init__(source)
        self.tags = tags
        self.dropped = 0

    def __iter__(self):
        depth = 0
        for token in super().__iter__():
            kind = token["type"]
            if depth:
                # tree-walker tokens are balanced, so start/end pairs track the subtree
                if kind == "StartTag":
                    depth += 1
                elif kind == "EndTag":
                    depth -= 1
                continue
            if kind in ("StartTag", "EmptyTag") and token["name"] in self.tags:
                self.dropped += 1
                if kind == "StartTag":
                    depth = 1
                continue
            yield token


class StripContentCleaner(Cleaner):
    """bleach ``Cleaner`` that removes whole Strip Policy subtrees.

    The parser is given the Strip Policy tags as known tags so html5lib builds
    real elements for them, with the same script/rawtext rules a browser
    applies. ``StripContentFilter`` then removes those elements before
    bleach's sanitizer filter sees the stream.
    """

    def __init__(self, strip_content_tags: Iterable[str] = (), **kwargs) -> None:
        super().__init__(**kwargs)
        self.strip_content_tags = frozenset(strip_content_tags)
        self.parser = html5lib_shim.BleachHTMLParser(
            tags=self.tags | self.strip_content_tags,
            strip=self.strip,
            consume_entities=False,
            namespaceHTMLElements=False,
        )

    def clean(self, text: str) -> str:
        if not text:
            return ""

        dom = self.parser.parseFragment(text)
        source = StripContentFilter(self.walker(dom), self.strip_content_tags)
        filtered = BleachSanitizerFilter(
            source=source,
            allowed_tags=self.tags,
            attributes=self.attributes,
            strip_disallowed_tags=self.strip,
            strip_html_comments=self.strip_comments,
            css_sanitizer=self.css_sanitizer,
            allowed_protocols=self.protocols,
        )
        for filter_class in self.filters:
            filtered = filter_class(source=filtered)
        html = self.serializer.render(filtered)
        if source.dropped:
            logger.debug("Dropped %d stripped subtree(s)", source.dropped)
        return html


class HtmlSanitizer:
    """Apply a ``SanitizePolicy`` to HTML strings.

    Safe to share across threads: the policy is immutable and each thread
    gets its own bleach ``Cleaner``.
    """

    def __init__(self, policy: SanitizePolicy) -> None:
        self.policy = policy
        # Strip Policy only matters for tags the whitelist does not admit
        self.doomed_tags = policy.strip_content_tags - policy.tags
        self._local = threading.local()

    def _cleaner(self) -> Cleaner:
        cleaner = getattr(self._local, "cleaner", None)
        if cleaner is None:
            cleaner = StripContentCleaner(
                strip_content_tags=self.doomed_tags,
                tags=self.policy.tags,
                attributes=self.policy.allows_attribute,
                protocols=self.policy.protocols,
                strip=True,
                strip_comments=True,
            )
            self._local.cleaner = cleaner
        return cleaner

    def sanitize(self, html: str) -> str:
        if not html:
            return ""
        return self._cleaner().clean(html)


def default_policy() -> SanitizePolicy:
    return SanitizePolicy.from_config(SanitizerConfig())


@lru_cache(maxsize=1)
def default_sanitizer() -> HtmlSanitizer:
    """Sanitizer for the loaded configuration, built once per process."""
    cfg = load_config()
    return HtmlSanitizer(SanitizePolicy.from_config(cfg.sanitizer, cfg.highlight.token_class_prefix))


def sanitize_html(raw_html: str, policy: Optional[SanitizePolicy] = None) -> str:
    """Clean an HTML fragment with ``policy``, or with the configured whitelist."""
    if policy is not None:
        return HtmlSanitizer(policy).sanitize(raw_html)
    return default_sanitizer().sanitize(raw_html)
