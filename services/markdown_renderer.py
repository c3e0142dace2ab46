"""
Rich-text rendering for the Medical Document Explainer

Parses the markdown produced by the AI Gateway into a tree of display nodes and
serializes that tree to HTML. When a glossary and an activation sink are given,
literal text inside paragraphs and list items is run through the highlighter and
matched terms become interactive nodes. Headings and link labels are left alone.
"""
import html
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from bs4 import BeautifulSoup
from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from models.document import GlossaryTerm
from models.question import Source
from services.highlighter import highlight, PlainSegment

logger = logging.getLogger(__name__)

TermSink = Callable[[GlossaryTerm], None]

# Default class per node kind, used when no glossary styling applies
DEFAULT_CLASSES: Dict[str, str] = {
    "heading1": "md-h1",
    "heading2": "md-h2",
    "heading3": "md-h3",
    "bullet_list": "md-ul",
    "ordered_list": "md-ol",
    "list_item": "md-li",
    "paragraph": "md-p",
    "strong": "md-strong",
    "em": "md-em",
    "link": "md-link",
    "code": "md-code",
    "code_block": "md-pre",
    "blockquote": "md-blockquote",
    "term": "glossary-term",
}

HIGHLIGHT_BLOCKS = {"paragraph", "list_item"}

# Inline tags the AI may use for light styling; anything else is escaped
ALLOWED_INLINE_TAGS = {"span", "b", "i", "u", "em", "strong", "mark", "small", "sub", "sup", "br"}
ALLOWED_ATTRIBUTES = {"class", "style", "title"}
BLOCKED_BLOCK_TAGS = ["script", "style", "iframe", "object", "embed", "form", "link", "meta"]

_CLOSING_TAG = re.compile(r"^</\s*([a-zA-Z][a-zA-Z0-9]*)\s*>$")

_markdown = MarkdownIt("commonmark", {"html": True})


@dataclass
class TermEvent:
    """A user interaction aimed at a highlighted term"""
    type: str
    key: Optional[str] = None
    propagation_stopped: bool = False

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


@dataclass
class Node:
    """A block or inline display node"""
    kind: str
    children: List["Node"] = field(default_factory=list)
    text: str = ""
    attrs: Dict[str, str] = field(default_factory=dict)

    def walk(self) -> Iterator["Node"]:
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class TermNode(Node):
    """A glossary term occurrence that can be activated by click or keyboard"""
    term: Optional[GlossaryTerm] = None
    sink: Optional[TermSink] = None

    def handle_event(self, event: TermEvent) -> bool:
        """
        Dispatch a click or Enter/Space keypress to the activation sink.

        Returns:
            True when the event activated the term
        """
        activates = event.type == "click" or (event.type == "keydown" and event.key in ("Enter", " "))
        if not activates:
            return False
        event.stop_propagation()
        if self.sink is not None and self.term is not None:
            self.sink(self.term)
        return True


@dataclass
class RenderedView:
    """Result of rendering one markup string"""
    root: Node
    highlighted: bool = False

    def terms(self) -> List[TermNode]:
        return [node for node in self.root.walk() if isinstance(node, TermNode)]

    def to_html(self, container_class: str = "markdown") -> str:
        body = "".join(_node_to_html(child) for child in self.root.children)
        return f'<div class="{html.escape(container_class)}">{body}</div>'


def _sanitize_inline_html(raw: str) -> str:
    """Pass through allowlisted inline tags, escape everything else"""
    closing = _CLOSING_TAG.match(raw.strip())
    if closing:
        name = closing.group(1).lower()
        return f"</{name}>" if name in ALLOWED_INLINE_TAGS else html.escape(raw)

    soup = BeautifulSoup(raw, "html.parser")
    tag = soup.find()
    if tag is None or tag.name not in ALLOWED_INLINE_TAGS:
        return html.escape(raw)

    attrs = "".join(
        f' {name}="{html.escape(" ".join(value) if isinstance(value, list) else str(value))}"'
        for name, value in tag.attrs.items()
        if name in ALLOWED_ATTRIBUTES
    )
    return f"<{tag.name}{attrs}>"


def _sanitize_block_html(raw: str) -> str:
    soup = BeautifulSoup(raw, "html.parser")
    for blocked in soup.find_all(BLOCKED_BLOCK_TAGS):
        blocked.decompose()
    for tag in soup.find_all(True):
        for name in list(tag.attrs):
            if name.lower().startswith("on") or (name == "href" and str(tag[name]).strip().lower().startswith("javascript:")):
                del tag[name]
    return str(soup)


def _class_attr(kind: str) -> str:
    css_class = DEFAULT_CLASSES.get(kind)
    return f' class="{css_class}"' if css_class else ""


def _children_html(node: Node) -> str:
    return "".join(_node_to_html(child) for child in node.children)


def _node_to_html(node: Node) -> str:
    kind = node.kind

    if isinstance(node, TermNode):
        term = node.term
        label = html.escape(term.term if term else node.text)
        definition = html.escape(term.definition if term else "")
        return (
            f'<span{_class_attr("term")} role="button" tabindex="0" title="{definition}" '
            f'aria-label="Definition for {label}" data-term="{label}" data-definition="{definition}">'
            f"{html.escape(node.text)}</span>"
        )

    if kind == "text":
        return html.escape(node.text)
    if kind == "softbreak":
        return "\n"
    if kind == "hardbreak":
        return "<br />"
    if kind == "html_inline":
        return _sanitize_inline_html(node.text)
    if kind == "html_block":
        return _sanitize_block_html(node.text)
    if kind == "code":
        return f"<code{_class_attr(kind)}>{html.escape(node.text)}</code>"
    if kind == "code_block":
        return f"<pre{_class_attr(kind)}><code>{html.escape(node.text)}</code></pre>"
    if kind == "rule":
        return "<hr />"
    if kind == "link":
        href = node.attrs.get("href", "")
        if href.strip().lower().startswith("javascript:"):
            href = "#"
        return (
            f'<a{_class_attr(kind)} href="{html.escape(href)}" target="_blank" rel="noopener noreferrer">'
            f"{_children_html(node)}</a>"
        )
    if kind == "heading":
        level = node.attrs.get("level", "1")
        return f"<h{level}{_class_attr('heading' + level)}>{_children_html(node)}</h{level}>"
    if kind == "paragraph":
        if node.attrs.get("hidden"):
            return _children_html(node)
        return f"<p{_class_attr(kind)}>{_children_html(node)}</p>"
    if kind == "bullet_list":
        return f"<ul{_class_attr(kind)}>{_children_html(node)}</ul>"
    if kind == "ordered_list":
        start = node.attrs.get("start")
        start_attr = f' start="{html.escape(start)}"' if start and start != "1" else ""
        return f"<ol{_class_attr(kind)}{start_attr}>{_children_html(node)}</ol>"
    if kind == "list_item":
        return f"<li{_class_attr(kind)}>{_children_html(node)}</li>"
    if kind == "strong":
        return f"<strong{_class_attr(kind)}>{_children_html(node)}</strong>"
    if kind == "em":
        return f"<em{_class_attr(kind)}>{_children_html(node)}</em>"
    if kind == "blockquote":
        return f"<blockquote{_class_attr(kind)}>{_children_html(node)}</blockquote>"

    return _children_html(node)


class MarkdownRenderer:
    """Converts markdown into display nodes, optionally highlighting glossary terms"""

    def __init__(self, glossary: Optional[Sequence[GlossaryTerm]] = None,
                 on_term_activate: Optional[TermSink] = None):
        self.glossary = list(glossary) if glossary else []
        self.on_term_activate = on_term_activate
        self.highlight_enabled = bool(self.glossary) and on_term_activate is not None

    def render(self, markup: str) -> RenderedView:
        """Render markup; never raises"""
        markup = markup or ""
        try:
            tree = SyntaxTreeNode(_markdown.parse(markup))
            root = Node(kind="document", children=self._convert_children(tree, block=None, in_link=False))
        except Exception as e:
            logger.warning(f"Markdown rendering failed, falling back to plain paragraph: {e}")
            root = Node(kind="document", children=[
                Node(kind="paragraph", children=self._text_nodes(markup, block="paragraph", in_link=False))
            ])
        return RenderedView(root=root, highlighted=self.highlight_enabled)

    def _convert_children(self, node: SyntaxTreeNode, block: Optional[str], in_link: bool) -> List[Node]:
        converted: List[Node] = []
        for child in node.children:
            converted.extend(self._convert(child, block, in_link))
        return converted

    def _convert(self, node: SyntaxTreeNode, block: Optional[str], in_link: bool) -> List[Node]:
        kind = node.type

        if kind == "inline":
            return self._convert_children(node, block, in_link)
        if kind == "text":
            return self._text_nodes(node.content, block, in_link)
        if kind in ("softbreak", "hardbreak"):
            return [Node(kind=kind)]
        if kind == "code_inline":
            return [Node(kind="code", text=node.content)]
        if kind in ("fence", "code_block"):
            return [Node(kind="code_block", text=node.content)]
        if kind == "html_inline":
            return [Node(kind="html_inline", text=node.content)]
        if kind == "html_block":
            return [Node(kind="html_block", text=node.content)]
        if kind == "hr":
            return [Node(kind="rule")]
        if kind == "link":
            href = str(node.attrs.get("href", ""))
            return [Node(kind="link", attrs={"href": href},
                         children=self._convert_children(node, block, in_link=True))]
        if kind == "image":
            # Images are not supported; keep their alt text
            return self._text_nodes(node.content or "", block, in_link)
        if kind in ("strong", "em"):
            return [Node(kind=kind, children=self._convert_children(node, block, in_link))]
        if kind == "heading":
            level = str(min(max(int(node.tag[1:]), 1), 3))
            return [Node(kind="heading", attrs={"level": level},
                         children=self._convert_children(node, "heading", in_link))]
        if kind == "paragraph":
            # Paragraphs inside tight list items are hidden and belong to the item
            inner_block = block if node.hidden and block == "list_item" else "paragraph"
            attrs = {"hidden": "1"} if node.hidden else {}
            return [Node(kind="paragraph", attrs=attrs,
                         children=self._convert_children(node, inner_block, in_link))]
        if kind == "list_item":
            return [Node(kind="list_item", children=self._convert_children(node, "list_item", in_link))]
        if kind == "bullet_list":
            return [Node(kind="bullet_list", children=self._convert_children(node, block, in_link))]
        if kind == "ordered_list":
            start = node.attrs.get("start")
            attrs = {"start": str(start)} if start is not None else {}
            return [Node(kind="ordered_list", attrs=attrs, children=self._convert_children(node, block, in_link))]
        if kind == "blockquote":
            return [Node(kind="blockquote", children=self._convert_children(node, block, in_link))]

        logger.debug(f"Unsupported markdown node '{kind}' rendered as its children")
        return self._convert_children(node, block, in_link)

    def _text_nodes(self, text: str, block: Optional[str], in_link: bool) -> List[Node]:
        if not self.highlight_enabled or in_link or block not in HIGHLIGHT_BLOCKS:
            return [Node(kind="text", text=text)]

        nodes: List[Node] = []
        for segment in highlight(text, self.glossary):
            if isinstance(segment, PlainSegment):
                nodes.append(Node(kind="text", text=segment.text))
            else:
                nodes.append(TermNode(kind="term", text=segment.text,
                                      term=segment.term, sink=self.on_term_activate))
        return nodes


def render(markup: str, glossary: Optional[Sequence[GlossaryTerm]] = None,
           on_term_activate: Optional[TermSink] = None) -> RenderedView:
    """Render markup to display nodes (see ``MarkdownRenderer``)"""
    return MarkdownRenderer(glossary=glossary, on_term_activate=on_term_activate).render(markup)


def render_html(markup: str, glossary: Optional[Sequence[GlossaryTerm]] = None,
                on_term_activate: Optional[TermSink] = None,
                container_class: str = "markdown") -> str:
    """Render markup straight to an HTML fragment"""
    return render(markup, glossary, on_term_activate).to_html(container_class)


def render_sources_html(sources: Optional[Sequence[Source]], css_class: str = "answer-sources") -> str:
    """Titled list of citation links; empty when there are no sources"""
    if not sources:
        return ""
    items = "".join(
        f'<li><a href="{html.escape(source.uri)}" title="{html.escape(source.uri)}" '
        f'target="_blank" rel="noopener noreferrer">{html.escape(source.display_title)}</a></li>'
        for source in sources
    )
    return f'<div class="{html.escape(css_class)}"><h5>Sources:</h5><ul>{items}</ul></div>'
