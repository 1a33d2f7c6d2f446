"""
Namespace tolerant attribute lookup and the intermediate span tree.

TTML sources expose the same attribute in several shapes depending on how they
were written: `role`, `ttm:role`, or a Clark-notation `{uri}role` key. Every
element is read through an `AttrTable` so callers only deal in local names.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Iterable

from lxml import etree

XML_NS = "http://www.w3.org/XML/1998/namespace"

TRANSLATION_ROLE = "x-translation"
ROMAN_ROLE = "x-roman"
BG_ROLE = "x-bg"

ANNOTATION_ROLES = frozenset({TRANSLATION_ROLE, ROMAN_ROLE})


def local_name(name: str) -> str:
    if name.startswith("{"):
        return name.split("}", 1)[1]
    if ":" in name:
        return name.rsplit(":", 1)[1]
    return name


def is_element(node: object) -> bool:
    # comments and processing instructions carry a callable tag in lxml
    return isinstance(getattr(node, "tag", None), str)


def tag_name(el: etree._Element) -> str:
    return local_name(el.tag) if is_element(el) else ""


def _qualified_names(el: etree._Element, name: str) -> Iterable[str]:
    if not name.startswith("{"):
        return ()
    uri, local = name[1:].split("}", 1)
    if uri == XML_NS:
        return (f"xml:{local}",)
    return tuple(f"{prefix}:{local}" for prefix, ns in el.nsmap.items() if prefix and ns == uri)


class AttrTable:
    """Attributes of one element, indexed by exact, qualified and local name."""

    __slots__ = ("_exact", "_local")

    def __init__(self, el: etree._Element):
        self._exact: dict[str, str] = {}
        self._local: dict[str, str] = {}
        for name, value in el.attrib.items():
            self._exact[name] = value
            for qname in _qualified_names(el, name):
                self._exact.setdefault(qname, value)
            # first attribute in document order wins
            self._local.setdefault(local_name(name), value)

    def get(self, name: str) -> str | None:
        if name in self._exact:
            return self._exact[name]
        return self._local.get(local_name(name))

    def has(self, name: str) -> bool:
        return self.get(name) is not None


def get_attr(el: etree._Element, name: str) -> str | None:
    return AttrTable(el).get(name)


@dataclass(slots=True)
class SpanNode:
    text: str = ""
    begin: str | None = None
    end: str | None = None
    role: str | None = None
    lang: str | None = None
    empty_beat: str | None = None
    ruby: str | None = None
    children: list[SpanNode] = field(default_factory=list)
    tail: str = ""


def parse_span(el: etree._Element, attrs: AttrTable | None = None) -> SpanNode:
    """
    Text before the first child span is the node's own text; text after a child
    span belongs to that child's tail. Non-span children are skipped, but the
    text following them is kept in place.
    """
    attrs = attrs or AttrTable(el)
    node = SpanNode(
        text=el.text or "",
        begin=attrs.get("begin"),
        end=attrs.get("end"),
        role=attrs.get("role"),
        lang=attrs.get("lang"),
        empty_beat=attrs.get("empty-beat"),
        ruby=attrs.get("ruby"),
    )
    last: SpanNode | None = None
    for child in el:
        if tag_name(child) == "span":
            last = parse_span(child)
            node.children.append(last)
        tail = child.tail or ""
        if last is not None:
            last.tail += tail
        else:
            node.text += tail
    return node


def flatten_span_text(
    node: SpanNode,
    skip_roles: frozenset[str] | set[str] | None = None,
) -> str:
    # a skipped node keeps its tail: the text after it still belongs to the parent
    return flatten_span_inner_text(node, skip_roles) + node.tail


def flatten_span_inner_text(
    node: SpanNode,
    skip_roles: frozenset[str] | set[str] | None = None,
) -> str:
    if node.role and skip_roles and node.role in skip_roles:
        return ""
    parts = [node.text]
    for child in node.children:
        parts.append(flatten_span_text(child, skip_roles))
    return "".join(parts)


def collect_ruby_text_spans(node: SpanNode) -> list[SpanNode]:
    out: list[SpanNode] = []
    if node.ruby == "text":
        out.append(node)
    for child in node.children:
        out.extend(collect_ruby_text_spans(child))
    return out


def inner_markup(el: etree._Element) -> str:
    """Element content as written: its text plus serialized child elements."""
    parts = [el.text or ""]
    for child in el:
        if is_element(child):
            # only declarations the fragment itself uses
            child = copy.deepcopy(child)
            etree.cleanup_namespaces(child)
        parts.append(etree.tostring(child, encoding="unicode", with_tail=False))
        parts.append(child.tail or "")
    return "".join(parts)
