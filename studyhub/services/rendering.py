"""Markdown rendering for post bodies.

Authors write Markdown; readers get HTML. Raw HTML in the source is shown as
text rather than passed through, and links or images with script-capable
URLs lose their target.
"""

import html
import re
import xml.etree.ElementTree as etree
from urllib.parse import urlsplit

import markdown
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor
from markupsafe import Markup

BASE_MD_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]

SAFE_URL_SCHEMES = {"http", "https", "mailto", ""}

# Browsers ignore these inside a URL scheme, e.g. "java\tscript:"
_IGNORED_URL_CHARS_RE = re.compile(r"[\x00-\x20\x7f-\x9f]+")


def is_safe_url(value: str) -> bool:
    """True when the URL, as a browser would decode it, has an allowed scheme."""
    decoded = _IGNORED_URL_CHARS_RE.sub("", html.unescape(value))
    try:
        scheme = urlsplit(decoded).scheme
    except ValueError:
        return False
    return scheme.lower() in SAFE_URL_SCHEMES


class _SafeUrlTreeprocessor(Treeprocessor):
    def run(self, root: etree.Element) -> None:
        for el in root.iter():
            for attr in ("href", "src"):
                value = el.get(attr)
                if value is not None and not is_safe_url(value):
                    el.set(attr, "")


class EscapeHtmlExtension(Extension):
    """Treat raw HTML blocks and inline tags as plain text."""

    def extendMarkdown(self, md_inst: markdown.Markdown) -> None:
        md_inst.preprocessors.deregister("html_block")
        md_inst.inlinePatterns.deregister("html")
        md_inst.treeprocessors.register(
            _SafeUrlTreeprocessor(md_inst), "safe_urls", 0
        )


def _markdown_renderer() -> markdown.Markdown:
    return markdown.Markdown(extensions=[*BASE_MD_EXTENSIONS, EscapeHtmlExtension()])


md = _markdown_renderer()


def render_markdown(text: str | None) -> Markup:
    """Convert post Markdown to HTML safe to embed in a template."""
    if not text:
        return Markup("")
    md.reset()
    return Markup(md.convert(text))
