"""Formatting of schema descriptions into wrapped Go doc comments."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_MD_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")

_COMMENT_PREFIX_WIDTH = 3  # "// "
_MIN_CONTENT_WIDTH = 20


@dataclass(frozen=True)
class DocCommentLink:
    """A link definition pulled out of a description."""

    text: str
    url: str


@dataclass
class DocComment:
    """Doc comment paragraphs plus the link definitions they refer to."""

    paragraphs: list[str] = field(default_factory=list)
    links: list[DocCommentLink] = field(default_factory=list)


def extract_links(doc: str) -> tuple[str, list[DocCommentLink]]:
    """Turn Markdown links into ``[text]`` references and collect their targets.

    Only the first URL given for a link text is kept.
    """
    links: list[DocCommentLink] = []
    seen: set[str] = set()

    def replace(match: re.Match[str]) -> str:
        text, url = match.group(1), match.group(2)
        if text not in seen:
            seen.add(text)
            links.append(DocCommentLink(text, url))
        return f"[{text}]"

    return _MD_LINK_RE.sub(replace, doc), links


def split_paragraphs(doc: str) -> list[str]:
    """Split a description into paragraphs with whitespace collapsed.

    Each line starts a paragraph unless it is indented or starts with a
    lower-case letter, in which case it continues the previous one.
    Blank lines end a paragraph.
    """
    doc = doc.strip()
    if not doc:
        return []
    if "\n" not in doc:
        return [" ".join(doc.split())]

    paragraphs: list[str] = []
    current: list[str] = []

    def flush() -> None:
        text = " ".join(" ".join(current).split())
        if text:
            paragraphs.append(text)
        current.clear()

    for line in doc.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            flush()
            continue
        if current and (line[:1] in (" ", "\t") or "a" <= trimmed[0] <= "z"):
            current.append(trimmed)
            continue
        flush()
        current.append(trimmed)
    flush()
    return paragraphs


def format_doc_comment(name: str, doc: str) -> DocComment:
    """Format a type's doc comment so that it starts with the type name."""
    placeholder = [f"{name} is a generated type."]
    doc = doc.strip()
    if not doc:
        return DocComment(paragraphs=placeholder)

    doc, links = extract_links(doc)
    paragraphs = split_paragraphs(doc)
    if not paragraphs:
        return DocComment(paragraphs=placeholder, links=links)

    first = paragraphs[0]
    if not (first.startswith(name + " ") or first.startswith(name + ".")):
        head = first[0]
        # Keep acronyms such as "URL" as they are.
        keep = head == head.upper() and len(first) > 1 and first[1] == first[1].upper()
        paragraphs[0] = f"{name} {head if keep else head.lower()}{first[1:]}"

    return DocComment(paragraphs=paragraphs, links=links)


def format_field_doc_comment(doc: str) -> DocComment:
    """Format a field's doc comment, capitalising its first letter."""
    doc = doc.strip()
    if not doc:
        return DocComment()

    doc, links = extract_links(doc)
    paragraphs = split_paragraphs(doc)
    if not paragraphs:
        return DocComment()

    first = paragraphs[0]
    paragraphs[0] = first[:1].upper() + first[1:]
    return DocComment(paragraphs=paragraphs, links=links)


def wrap_comment(dc: DocComment, max_width: int) -> list[str]:
    """Wrap a doc comment into lines fitting ``max_width`` once prefixed by ``// ``.

    Paragraphs are separated by empty lines; link definitions follow last.
    """
    content_width = max(max_width - _COMMENT_PREFIX_WIDTH, _MIN_CONTENT_WIDTH)

    lines: list[str] = []
    for index, paragraph in enumerate(dc.paragraphs):
        if index:
            lines.append("")
        lines.extend(wrap_text(paragraph, content_width))

    if dc.links:
        lines.append("")
        lines.extend(f"[{link.text}]: {link.url}" for link in dc.links)

    return lines


def wrap_text(text: str, max_width: int) -> list[str]:
    """Word-wrap one paragraph; a word longer than the width is kept whole."""
    lines: list[str] = []
    while text:
        if len(text) <= max_width:
            lines.append(text)
            break

        cut = max_width
        while cut > 0 and text[cut] != " ":
            cut -= 1
        if cut == 0:
            cut = text.find(" ")
            if cut == -1:
                lines.append(text)
                break

        lines.append(text[:cut])
        text = text[cut:].lstrip(" ")
    return lines