# safe_dom.py
"""
Helpers for writing untrusted text into a rendering target.

A rendering target is any object with an assignable `inner_html` attribute
and an `append_child(node)` method. The classes below are a small in-memory
implementation used for server-side rendering and tests; a real DOM wrapper
can be passed instead, together with its own document as node factory.

Targets are not thread-safe: callers must not mutate the same element from
several threads at once.
"""
from markupsafe import Markup, escape

from input_sanitization import escape_html


class TextNode:
    """A text-only node. Its content is always rendered literally."""

    def __init__(self, data):
        self.data = str(data)

    def render(self):
        return escape(self.data)

    def __repr__(self):
        return f'TextNode({self.data!r})'


class RawHTML:
    """Markup assigned through `inner_html`. Rendered verbatim."""

    def __init__(self, html):
        self.html = str(html)

    def render(self):
        return Markup(self.html)

    def __repr__(self):
        return f'RawHTML({self.html!r})'


class Element:
    def __init__(self, tag='div', children=None):
        self.tag = tag
        self.children = list(children or [])

    @property
    def inner_html(self):
        return str(Markup('').join(child.render() for child in self.children))

    @inner_html.setter
    def inner_html(self, html):
        # Like the DOM, assigning raw content replaces every existing child.
        self.children = [RawHTML(html)] if html else []

    @property
    def text_content(self):
        return ''.join(child.data for child in self.children if isinstance(child, TextNode))

    def append_child(self, node):
        self.children.append(node)
        return node

    def render(self):
        return Markup(f'<{self.tag}>{self.inner_html}</{self.tag}>')

    def __repr__(self):
        return f'Element({self.tag!r}, children={len(self.children)})'


class Document:
    """Node factory for the in-memory elements."""

    def create_element(self, tag):
        return Element(tag)

    def create_text_node(self, data):
        return TextNode(data)


def set_safe_inner_html(element, html):
    """
    Escapes `html` and assigns it as the element's raw content, replacing
    what was there. Script blocks are escaped, not removed; use
    `sanitize_input` first when both are wanted.
    """
    element.inner_html = escape_html(html)


def append_safe_text_node(parent, text, document=None):
    """
    Appends `text` to `parent` as a text node. No escaping is applied here:
    text nodes are never parsed as markup.
    """
    node = document.create_text_node(text) if document is not None else TextNode(text)
    parent.append_child(node)
