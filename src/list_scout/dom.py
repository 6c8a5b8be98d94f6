from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from functools import lru_cache
from html.parser import HTMLParser
import re
from typing import Any, Iterator, Optional, Sequence


_WS_RE = re.compile(r"\s+")
_IDENT_RE = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")
_PSEUDO_RE = re.compile(r":([A-Za-z][A-Za-z-]*)")

ROOT_TAG = "__root__"
TEXT_TAG = "#text"

VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "param", "source", "track", "wbr"}
)
_NO_TEXT_TAGS = frozenset({"script", "style", "template"})

# opening tag -> (open tags it closes implicitly, tags that stop the search)
_IMPLIED_END: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    "li": (frozenset({"li"}), frozenset({"ul", "ol", "menu"})),
    "tr": (frozenset({"tr", "td", "th"}), frozenset({"table", "tbody", "thead", "tfoot"})),
    "td": (frozenset({"td", "th"}), frozenset({"tr", "table"})),
    "th": (frozenset({"td", "th"}), frozenset({"tr", "table"})),
    "dt": (frozenset({"dt", "dd"}), frozenset({"dl"})),
    "dd": (frozenset({"dt", "dd"}), frozenset({"dl"})),
    "option": (frozenset({"option"}), frozenset({"select", "datalist"})),
}


class SelectorSyntaxError(ValueError):
    pass


class FrameAccessDenied(Exception):
    def __init__(self, src: Optional[str] = None) -> None:
        self.src = src
        super().__init__(f"frame content is not accessible: {src or '<no src>'}")


@dataclass
class _HtmlNode:
    tag: str
    attrs: dict[str, str]
    parent: Optional[int]
    children: list[int] = field(default_factory=list)
    data: str = ""


class _HtmlTreeBuilder(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.nodes: list[_HtmlNode] = [_HtmlNode(tag=ROOT_TAG, attrs={}, parent=None)]
        self.stack: list[int] = [0]

    def _close_implied(self, tag: str) -> None:
        rule = _IMPLIED_END.get(tag)
        if rule is None:
            return
        closes, bounds = rule
        cut: Optional[int] = None
        for i in range(len(self.stack) - 1, 0, -1):
            open_tag = self.nodes[self.stack[i]].tag
            if open_tag in bounds:
                break
            if open_tag in closes:
                cut = i
        if cut is not None:
            del self.stack[cut:]

    def _push_node(self, tag: str, attrs: Sequence[tuple[str, Optional[str]]], *, self_close: bool) -> None:
        t = str(tag or "").strip().lower()
        self._close_implied(t)
        parent = self.stack[-1] if self.stack else 0
        clean_attrs: dict[str, str] = {}
        for k, v in attrs:
            if not k:
                continue
            clean_attrs[str(k).strip().lower()] = "" if v is None else str(v)

        idx = len(self.nodes)
        self.nodes.append(_HtmlNode(tag=t, attrs=clean_attrs, parent=parent))
        self.nodes[parent].children.append(idx)
        if not self_close and t not in VOID_TAGS:
            self.stack.append(idx)

    def handle_starttag(self, tag: str, attrs: Sequence[tuple[str, Optional[str]]]) -> None:
        self._push_node(tag, attrs, self_close=False)

    def handle_startendtag(self, tag: str, attrs: Sequence[tuple[str, Optional[str]]]) -> None:
        self._push_node(tag, attrs, self_close=True)

    def handle_endtag(self, tag: str) -> None:
        if len(self.stack) <= 1:
            return
        t = str(tag or "").strip().lower()
        for i in range(len(self.stack) - 1, 0, -1):
            if self.nodes[self.stack[i]].tag == t:
                del self.stack[i:]
                return

    def handle_data(self, data: str) -> None:
        if not data or not data.strip() or not self.stack:
            return
        parent = self.stack[-1]
        idx = len(self.nodes)
        self.nodes.append(_HtmlNode(tag=TEXT_TAG, attrs={}, parent=parent, data=data))
        self.nodes[parent].children.append(idx)


def _parse_html_nodes(html: str) -> list[_HtmlNode]:
    p = _HtmlTreeBuilder()
    p.feed(html or "")
    p.close()
    return p.nodes


# ---------------------------------------------------------------------------
# selectors


@dataclass(frozen=True)
class _Compound:
    tag: Optional[str]
    id_value: Optional[str]
    classes: tuple[str, ...]
    attrs: tuple[tuple[str, Optional[str], Optional[str]], ...]
    pseudos: tuple[tuple[str, Any], ...]


_Chain = tuple[tuple[str, _Compound], ...]


def _split_top_level(sel: str, sep: str) -> list[str]:
    out: list[str] = []
    buf: list[str] = []
    depth = 0
    quote: Optional[str] = None
    for ch in sel:
        if quote is not None:
            buf.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch in "[(":
            depth += 1
        elif ch in "])":
            depth -= 1
            if depth < 0:
                raise SelectorSyntaxError(f"unbalanced {ch!r}")
        elif ch == sep and depth == 0:
            out.append("".join(buf))
            buf = []
            continue
        buf.append(ch)
    if quote is not None or depth != 0:
        raise SelectorSyntaxError("unterminated quote or bracket")
    out.append("".join(buf))
    return out


def _split_chain(group: str) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    buf: list[str] = []
    comb: Optional[str] = None
    depth = 0
    quote: Optional[str] = None

    def flush() -> None:
        nonlocal comb
        if not buf:
            return
        if not out and comb == ">":
            raise SelectorSyntaxError("selector starts with a combinator")
        out.append((comb or " ", "".join(buf)))
        buf.clear()
        comb = None

    for ch in group:
        if quote is not None:
            buf.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
            buf.append(ch)
            continue
        if ch in "[(":
            depth += 1
            buf.append(ch)
            continue
        if ch in "])":
            depth -= 1
            buf.append(ch)
            continue
        if depth == 0:
            if ch.isspace():
                flush()
                continue
            if ch == ">":
                flush()
                if comb == ">":
                    raise SelectorSyntaxError("doubled '>' combinator")
                comb = ">"
                continue
            if ch in "+~":
                raise SelectorSyntaxError(f"unsupported combinator {ch!r}")
        buf.append(ch)

    flush()
    if comb is not None:
        raise SelectorSyntaxError("selector ends with a combinator")
    if not out:
        raise SelectorSyntaxError("empty selector")
    return out


def _read_ident(token: str, pos: int) -> tuple[str, int]:
    n = len(token)
    i = pos
    while i < n and token[i] not in ".#[:":
        i += 1
    return token[pos:i], i


def _find_close_paren(token: str, pos: int) -> int:
    depth = 0
    for i in range(pos, len(token)):
        if token[i] == "(":
            depth += 1
        elif token[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    raise SelectorSyntaxError("unterminated '('")


_ATTR_BODY_RE = re.compile(r"^\s*([A-Za-z_:][\w:.-]*)\s*(?:([*^$~|]?=)\s*(.*?))?\s*$", re.S)


def _parse_attr(body: str) -> tuple[str, Optional[str], Optional[str]]:
    m = _ATTR_BODY_RE.match(body)
    if not m:
        raise SelectorSyntaxError(f"bad attribute selector [{body}]")
    key, op, val = m.group(1).lower(), m.group(2), m.group(3)
    if op is None:
        return key, None, None
    val = val or ""
    if len(val) >= 2 and val[0] == val[-1] and val[0] in ("'", '"'):
        val = val[1:-1]
    elif not val or any(ch.isspace() for ch in val):
        raise SelectorSyntaxError(f"bad attribute value in [{body}]")
    return key, op, val


def _parse_compound(token: str) -> _Compound:
    t = str(token or "").strip()
    if not t:
        raise SelectorSyntaxError("empty compound selector")

    i = 0
    n = len(t)
    tag: Optional[str] = None
    id_value: Optional[str] = None
    classes: list[str] = []
    attrs: list[tuple[str, Optional[str], Optional[str]]] = []
    pseudos: list[tuple[str, Any]] = []

    if t[0] == "*":
        tag = "*"
        i = 1
    elif t[0].isalpha():
        start = i
        i += 1
        while i < n and (t[i].isalnum() or t[i] in ("_", "-")):
            i += 1
        tag = t[start:i].lower()

    while i < n:
        ch = t[i]
        if ch == "#":
            ident, i = _read_ident(t, i + 1)
            if not ident:
                raise SelectorSyntaxError(f"empty id in {t!r}")
            id_value = ident
            continue
        if ch == ".":
            ident, i = _read_ident(t, i + 1)
            if not ident:
                raise SelectorSyntaxError(f"empty class in {t!r}")
            classes.append(ident)
            continue
        if ch == "[":
            end = t.find("]", i + 1)
            if end < 0:
                raise SelectorSyntaxError(f"unterminated '[' in {t!r}")
            attrs.append(_parse_attr(t[i + 1 : end]))
            i = end + 1
            continue
        if ch == ":":
            m = _PSEUDO_RE.match(t, i)
            if not m:
                raise SelectorSyntaxError(f"bad pseudo-class in {t!r}")
            name = m.group(1).lower()
            i = m.end()
            arg: Optional[str] = None
            if i < n and t[i] == "(":
                end = _find_close_paren(t, i)
                arg = t[i + 1 : end].strip()
                i = end + 1
            pseudos.append(_parse_pseudo(name, arg))
            continue
        raise SelectorSyntaxError(f"unexpected {ch!r} in {t!r}")

    return _Compound(
        tag=tag,
        id_value=id_value,
        classes=tuple(classes),
        attrs=tuple(attrs),
        pseudos=tuple(pseudos),
    )


def _parse_pseudo(name: str, arg: Optional[str]) -> tuple[str, Any]:
    if name == "not":
        if not arg:
            raise SelectorSyntaxError(":not() needs an argument")
        return "not", tuple(_parse_compound(part) for part in _split_top_level(arg, ","))
    if name == "nth-of-type":
        if arg is None or not arg.isdigit() or int(arg) < 1:
            raise SelectorSyntaxError(f":nth-of-type() needs a positive integer, got {arg!r}")
        return "nth-of-type", int(arg)
    if name in ("first-child", "last-child", "first-of-type", "root"):
        if arg is not None:
            raise SelectorSyntaxError(f":{name} takes no argument")
        return name, None
    raise SelectorSyntaxError(f"unsupported pseudo-class :{name}")


@lru_cache(maxsize=512)
def parse_selector(selector: str) -> tuple[_Chain, ...]:
    sel = str(selector or "").strip()
    if not sel:
        raise SelectorSyntaxError("empty selector")
    chains: list[_Chain] = []
    for group in _split_top_level(sel, ","):
        group = group.strip()
        if not group:
            raise SelectorSyntaxError(f"empty group in {sel!r}")
        chains.append(tuple((comb, _parse_compound(tok)) for comb, tok in _split_chain(group)))
    return tuple(chains)


def _class_tokens(node: _HtmlNode) -> tuple[str, ...]:
    cls = node.attrs.get("class") or ""
    return tuple(x for x in _WS_RE.split(cls.strip()) if x)


def _element_siblings(nodes: list[_HtmlNode], idx: int) -> list[int]:
    parent = nodes[idx].parent
    if parent is None:
        return [idx]
    return [c for c in nodes[parent].children if nodes[c].tag != TEXT_TAG]


def _nth_of_type(nodes: list[_HtmlNode], idx: int) -> int:
    tag = nodes[idx].tag
    pos = 0
    for sib in _element_siblings(nodes, idx):
        if nodes[sib].tag == tag:
            pos += 1
        if sib == idx:
            return pos
    return pos


def _attr_ok(node: _HtmlNode, key: str, op: Optional[str], expected: Optional[str]) -> bool:
    if key not in node.attrs:
        return False
    if op is None:
        return True
    val = node.attrs.get(key, "")
    if op == "=":
        return val == expected
    if not expected:
        return False
    if op == "*=":
        return expected in val
    if op == "^=":
        return val.startswith(expected)
    if op == "$=":
        return val.endswith(expected)
    if op == "~=":
        return expected in val.split()
    if op == "|=":
        return val == expected or val.startswith(expected + "-")
    return False


def _matches(nodes: list[_HtmlNode], idx: int, sel: _Compound) -> bool:
    node = nodes[idx]
    if node.tag in (TEXT_TAG, ROOT_TAG):
        return False
    if sel.tag and sel.tag != "*" and node.tag != sel.tag:
        return False

    if sel.id_value is not None and node.attrs.get("id") != sel.id_value:
        return False

    if sel.classes:
        cls_set = set(_class_tokens(node))
        if any(c not in cls_set for c in sel.classes):
            return False

    for key, op, expected in sel.attrs:
        if not _attr_ok(node, key, op, expected):
            return False

    for name, arg in sel.pseudos:
        if name == "not":
            if any(_matches(nodes, idx, inner) for inner in arg):
                return False
        elif name == "nth-of-type":
            if _nth_of_type(nodes, idx) != arg:
                return False
        elif name == "first-of-type":
            if _nth_of_type(nodes, idx) != 1:
                return False
        elif name == "first-child":
            if _element_siblings(nodes, idx)[0] != idx:
                return False
        elif name == "last-child":
            if _element_siblings(nodes, idx)[-1] != idx:
                return False
        elif name == "root":
            if node.parent != 0:
                return False
    return True


def _match_left(nodes: list[_HtmlNode], idx: int, chain: _Chain, pos: int) -> bool:
    if pos == 0:
        return True
    comb = chain[pos][0]
    left = chain[pos - 1][1]
    p = nodes[idx].parent
    if comb == ">":
        return p is not None and _matches(nodes, p, left) and _match_left(nodes, p, chain, pos - 1)
    while p is not None:
        if _matches(nodes, p, left) and _match_left(nodes, p, chain, pos - 1):
            return True
        p = nodes[p].parent
    return False


def _chain_matches(nodes: list[_HtmlNode], idx: int, chain: _Chain) -> bool:
    if not _matches(nodes, idx, chain[-1][1]):
        return False
    return _match_left(nodes, idx, chain, len(chain) - 1)


def _iter_descendants(nodes: list[_HtmlNode], start_id: int) -> Iterator[int]:
    stack = list(reversed(nodes[start_id].children))
    while stack:
        idx = stack.pop()
        if nodes[idx].tag == TEXT_TAG:
            continue
        yield idx
        if nodes[idx].children:
            stack.extend(reversed(nodes[idx].children))


# ---------------------------------------------------------------------------
# public tree


@dataclass
class _FrameSlot:
    document: Optional["Document"]
    cross_origin: bool


class Document:
    """Read-only parsed page: a flat node table plus page-level metadata.

    Nodes are addressed by integer index. `Element` objects are cheap views
    over (document, index); parents are looked up through the table, so no
    node owns its parent.
    """

    def __init__(self, nodes: list[_HtmlNode], *, url: Optional[str] = None) -> None:
        self._nodes = nodes
        self.url = url
        self._text_cache: dict[int, str] = {}
        self._frames: dict[int, _FrameSlot] = {}
        self._id_counts: Counter[str] = Counter(
            n.attrs["id"] for n in nodes if n.tag not in (TEXT_TAG, ROOT_TAG) and n.attrs.get("id")
        )

    @classmethod
    def from_html(cls, html: str, *, url: Optional[str] = None) -> "Document":
        return cls(_parse_html_nodes(html if isinstance(html, str) else ""), url=url)

    def __repr__(self) -> str:
        return f"Document(url={self.url!r}, nodes={len(self._nodes)})"

    @property
    def root(self) -> "Element":
        return Element(self, 0)

    @property
    def title(self) -> str:
        el = self.select_one("title")
        return el.text if el is not None else ""

    def element(self, idx: int) -> "Element":
        if idx < 0 or idx >= len(self._nodes) or self._nodes[idx].tag == TEXT_TAG:
            raise IndexError(f"no element at index {idx}")
        return Element(self, idx)

    def elements(self) -> Iterator["Element"]:
        for idx in _iter_descendants(self._nodes, 0):
            yield Element(self, idx)

    def select(self, selector: str) -> list["Element"]:
        return self.root.select(selector)

    def select_one(self, selector: str) -> Optional["Element"]:
        return self.root.select_one(selector)

    def id_count(self, ident: str) -> int:
        return self._id_counts.get(ident, 0)

    def attach_frame(
        self, frame: "Element", document: Optional["Document"] = None, *, cross_origin: bool = False
    ) -> None:
        if frame.document is not self or frame.tag not in ("iframe", "frame"):
            raise ValueError("attach_frame expects an iframe element of this document")
        self._frames[frame.index] = _FrameSlot(document=document, cross_origin=cross_origin)

    def frame_document(self, frame: "Element") -> "Document":
        src = frame.get("src")
        slot = self._frames.get(frame.index)
        if slot is not None:
            if slot.cross_origin or slot.document is None:
                raise FrameAccessDenied(src)
            return slot.document
        srcdoc = frame.get("srcdoc")
        if srcdoc is None:
            raise FrameAccessDenied(src)
        sub = Document.from_html(srcdoc, url=self.url)
        self._frames[frame.index] = _FrameSlot(document=sub, cross_origin=False)
        return sub

    def _text(self, idx: int) -> str:
        cached = self._text_cache.get(idx)
        if cached is not None:
            return cached
        nodes = self._nodes
        parts: list[str] = []
        stack = [idx]
        while stack:
            cur = stack.pop()
            node = nodes[cur]
            if node.tag == TEXT_TAG:
                piece = node.data.strip()
                if piece:
                    parts.append(piece)
                continue
            if node.tag in _NO_TEXT_TAGS:
                continue
            if node.children:
                stack.extend(reversed(node.children))
        out = _WS_RE.sub(" ", " ".join(parts)).strip() if parts else ""
        self._text_cache[idx] = out
        return out


@dataclass(frozen=True)
class Element:
    document: Document = field(repr=False)
    index: int

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id else ""
        cls = "".join(f".{c}" for c in self.classes[:2])
        return f"<{self.tag}{ident}{cls} @{self.index}>"

    @property
    def _node(self) -> _HtmlNode:
        return self.document._nodes[self.index]

    @property
    def tag(self) -> str:
        return self._node.tag

    @property
    def is_root(self) -> bool:
        return self.index == 0

    @property
    def attrs(self) -> dict[str, str]:
        return dict(self._node.attrs)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._node.attrs.get(name.lower(), default)

    @property
    def id(self) -> str:
        return (self._node.attrs.get("id") or "").strip()

    @property
    def class_name(self) -> str:
        return self._node.attrs.get("class") or ""

    @property
    def classes(self) -> tuple[str, ...]:
        return _class_tokens(self._node)

    @property
    def text(self) -> str:
        return self.document._text(self.index)

    @property
    def own_text(self) -> str:
        nodes = self.document._nodes
        parts = [nodes[c].data.strip() for c in self._node.children if nodes[c].tag == TEXT_TAG]
        return _WS_RE.sub(" ", " ".join(p for p in parts if p)).strip()

    @property
    def parent(self) -> Optional["Element"]:
        p = self._node.parent
        if p is None or p == 0:
            return None
        return Element(self.document, p)

    @property
    def children(self) -> list["Element"]:
        nodes = self.document._nodes
        return [Element(self.document, c) for c in self._node.children if nodes[c].tag != TEXT_TAG]

    @property
    def first_element_child(self) -> Optional["Element"]:
        kids = self.children
        return kids[0] if kids else None

    @property
    def nth_of_type(self) -> int:
        return _nth_of_type(self.document._nodes, self.index)

    def same_tag_sibling_count(self) -> int:
        nodes = self.document._nodes
        return sum(1 for s in _element_siblings(nodes, self.index) if nodes[s].tag == self.tag)

    @property
    def depth(self) -> int:
        d = 0
        p = self._node.parent
        while p is not None:
            d += 1
            p = self.document._nodes[p].parent
        return d

    def iter_ancestors(self) -> Iterator["Element"]:
        cur = self.parent
        while cur is not None:
            yield cur
            cur = cur.parent

    def iter_descendants(self) -> Iterator["Element"]:
        for idx in _iter_descendants(self.document._nodes, self.index):
            yield Element(self.document, idx)

    def contains(self, other: "Element") -> bool:
        if other.document is not self.document:
            return False
        cur: Optional[int] = other.index
        nodes = self.document._nodes
        while cur is not None:
            if cur == self.index:
                return True
            cur = nodes[cur].parent
        return False

    def matches(self, selector: str) -> bool:
        nodes = self.document._nodes
        return any(_chain_matches(nodes, self.index, chain) for chain in parse_selector(selector))

    def select(self, selector: str) -> list["Element"]:
        chains = parse_selector(selector)
        nodes = self.document._nodes
        out: list[Element] = []
        for idx in _iter_descendants(nodes, self.index):
            if any(_chain_matches(nodes, idx, chain) for chain in chains):
                out.append(Element(self.document, idx))
        return out

    def select_one(self, selector: str) -> Optional["Element"]:
        chains = parse_selector(selector)
        nodes = self.document._nodes
        for idx in _iter_descendants(nodes, self.index):
            if any(_chain_matches(nodes, idx, chain) for chain in chains):
                return Element(self.document, idx)
        return None

    def closest(self, selector: str) -> Optional["Element"]:
        chains = parse_selector(selector)
        nodes = self.document._nodes
        cur: Optional[int] = self.index
        while cur is not None and cur != 0:
            if any(_chain_matches(nodes, cur, chain) for chain in chains):
                return Element(self.document, cur)
            cur = nodes[cur].parent
        return None


def is_css_ident(token: str) -> bool:
    return bool(_IDENT_RE.match(token))


def css_path(el: Element) -> str:
    """Selector that resolves to exactly `el` within its document."""
    doc = el.document
    parts: list[str] = []
    cur: Optional[Element] = el
    while cur is not None:
        tag = cur.tag if _IDENT_RE.match(cur.tag) else "*"
        ident = cur.id
        if ident and _IDENT_RE.match(ident) and doc.id_count(ident) == 1:
            parts.append(f"{tag}#{ident}")
            break
        seg = tag
        for c in cur.classes:
            if _IDENT_RE.match(c):
                seg += f".{c}"
                break
        if cur.same_tag_sibling_count() > 1:
            seg += f":nth-of-type({cur.nth_of_type})"
        parent = cur.parent
        if parent is None:
            seg += ":root"
        parts.append(seg)
        cur = parent
    return " > ".join(reversed(parts))
