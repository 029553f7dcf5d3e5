"""
Atlassian Document Format (ADF) conversion.

Jira Cloud stores descriptions and comments as ADF documents. This module
converts markdown-like text into ADF and renders ADF back into text. The text
to ADF direction recognises headings, fenced code blocks, bullet and ordered
lists, and inline bold, italic, code and links. Everything else is prose.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, model_validator

from ...exceptions import ConversionAmbiguousError

logger = logging.getLogger("mcp-jira-cloud.models.adf")


class Mark(BaseModel):
    """Inline formatting applied to a text node."""

    type: str
    attrs: dict[str, Any] | None = None


class DocumentNode(BaseModel):
    """
    A node of an ADF document tree.

    Text nodes carry ``text`` (and optionally ``marks``) but no children;
    every other node may carry children but no text.
    """

    type: str
    text: str | None = None
    marks: list[Mark] | None = None
    attrs: dict[str, Any] | None = None
    content: list["DocumentNode"] | None = None
    version: int | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> "DocumentNode":
        if self.type == "text":
            if not self.text:
                raise ValueError("text nodes require non-empty text")
            if self.content:
                raise ValueError("text nodes cannot have children")
        else:
            if self.text is not None:
                raise ValueError(f"'{self.type}' nodes cannot carry text")
            if self.marks:
                raise ValueError(f"'{self.type}' nodes cannot carry marks")
        return self

    def to_adf(self) -> dict[str, Any]:
        """Serialize to the JSON structure the Jira API expects."""
        return self.model_dump(exclude_none=True)

    @classmethod
    def from_adf(cls, data: dict[str, Any]) -> "DocumentNode":
        return cls.model_validate(data)


DocumentNode.model_rebuild()


_FENCE_OPEN = re.compile(r"^\s{0,3}```\s*([\w+#.-]*)\s*$")
_FENCE_CLOSE = re.compile(r"^\s{0,3}```\s*$")
_HEADING = re.compile(r"^\s{0,3}(#+)\s+(.*?)\s*$")
_BULLET_ITEM = re.compile(r"^\s*[-*]\s+(.*)$")
_ORDERED_ITEM = re.compile(r"^\s*(\d+)[.)]\s+(.*)$")
_INLINE = re.compile(
    r"(?P<code>`(?P<code_text>[^`\n]+)`)"
    r"|(?P<link>\[(?P<link_text>[^\]\n]+)\]\((?P<href>[^)\s]+)\))"
    r"|(?P<strong>\*\*(?P<strong_text>(?!\s)[^*\n]+?(?<!\s))\*\*)"
    r"|(?P<em>(?<![\w*])\*(?P<em_text>(?!\s)[^*\n]+?(?<!\s))\*(?![\w*]))"
    r"|(?P<em_u>(?<!\w)_(?P<em_u_text>(?!\s)[^_\n]+?(?<!\s))_(?!\w))"
)


def normalize_text(text: str) -> str:
    """
    Canonical form of prose as it survives a trip through ADF.

    Line endings become ``\\n``, whitespace-only lines count as blank, leading
    and trailing blank lines are dropped and runs of blank lines collapse to
    one.
    """
    lines: list[str] = []
    for line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if line.strip():
            lines.append(line)
        elif lines and lines[-1] != "":
            lines.append("")
    while lines and lines[-1] == "":
        lines.pop()
    return "\n".join(lines)


def _split_blocks(lines: list[str]) -> list[tuple[list[str], bool]]:
    """Split lines into blocks on blank lines, keeping closed fences whole.

    Returns:
        ``(lines, ambiguous)`` pairs; ``ambiguous`` marks a block holding a
        fence that is never closed.
    """
    blocks: list[tuple[list[str], bool]] = []
    current: list[str] = []
    ambiguous = False
    index = 0

    while index < len(lines):
        line = lines[index]
        if _FENCE_OPEN.match(line):
            closing = next(
                (
                    j
                    for j in range(index + 1, len(lines))
                    if _FENCE_CLOSE.match(lines[j])
                ),
                None,
            )
            if closing is not None:
                if current:
                    blocks.append((current, ambiguous))
                    current, ambiguous = [], False
                blocks.append((lines[index : closing + 1], False))
                index = closing + 1
                continue
            ambiguous = True

        if line.strip():
            current.append(line)
        elif current:
            blocks.append((current, ambiguous))
            current, ambiguous = [], False
        index += 1

    if current:
        blocks.append((current, ambiguous))
    return blocks


def _text_node(text: str, marks: list[Mark] | None = None) -> DocumentNode:
    return DocumentNode(type="text", text=text, marks=marks or None)


def _inline_nodes(text: str) -> list[DocumentNode]:
    nodes: list[DocumentNode] = []
    position = 0
    for match in _INLINE.finditer(text):
        if match.start() > position:
            nodes.append(_text_node(text[position : match.start()]))
        if match.group("code"):
            nodes.append(_text_node(match.group("code_text"), [Mark(type="code")]))
        elif match.group("link"):
            nodes.append(
                _text_node(
                    match.group("link_text"),
                    [Mark(type="link", attrs={"href": match.group("href")})],
                )
            )
        elif match.group("strong"):
            nodes.append(_text_node(match.group("strong_text"), [Mark(type="strong")]))
        elif match.group("em"):
            nodes.append(_text_node(match.group("em_text"), [Mark(type="em")]))
        else:
            nodes.append(_text_node(match.group("em_u_text"), [Mark(type="em")]))
        position = match.end()
    if position < len(text):
        nodes.append(_text_node(text[position:]))
    return nodes


def _paragraph(lines: list[str], *, inline: bool = True) -> DocumentNode:
    content: list[DocumentNode] = []
    for number, line in enumerate(lines):
        if number:
            content.append(DocumentNode(type="hardBreak"))
        if inline:
            content.extend(_inline_nodes(line))
        elif line:
            content.append(_text_node(line))
    return DocumentNode(type="paragraph", content=content)


def _code_block(lines: list[str]) -> DocumentNode:
    opening = _FENCE_OPEN.match(lines[0])
    if opening is None or len(lines) < 2 or not _FENCE_CLOSE.match(lines[-1]):
        raise ConversionAmbiguousError("Code fence is not closed")
    code = "\n".join(lines[1:-1])
    language = opening.group(1)
    return DocumentNode(
        type="codeBlock",
        attrs={"language": language} if language else None,
        content=[_text_node(code)] if code else [],
    )


def _list_block(lines: list[str]) -> DocumentNode | None:
    bullets = [_BULLET_ITEM.match(line) for line in lines]
    if all(bullets):
        items = [match.group(1) for match in bullets if match]
        list_type, attrs = "bulletList", None
    else:
        ordered = [_ORDERED_ITEM.match(line) for line in lines]
        if not all(ordered):
            return None
        items = [match.group(2) for match in ordered if match]
        start = int(ordered[0].group(1)) if ordered[0] else 1
        list_type, attrs = "orderedList", ({"order": start} if start != 1 else None)

    return DocumentNode(
        type=list_type,
        attrs=attrs,
        content=[
            DocumentNode(type="listItem", content=[_paragraph([item])])
            for item in items
        ],
    )


def _parse_block(lines: list[str], ambiguous: bool) -> list[DocumentNode]:
    if ambiguous:
        raise ConversionAmbiguousError("Block contains an unclosed code fence")
    if _FENCE_OPEN.match(lines[0]):
        return [_code_block(lines)]

    list_node = _list_block(lines)
    if list_node is not None:
        return [list_node]

    nodes: list[DocumentNode] = []
    prose: list[str] = []
    for line in lines:
        heading = _HEADING.match(line)
        if heading is None:
            prose.append(line)
            continue
        if prose:
            nodes.append(_paragraph(prose))
            prose = []
        level = min(len(heading.group(1)), 6)
        nodes.append(
            DocumentNode(
                type="heading",
                attrs={"level": level},
                content=_inline_nodes(heading.group(2)),
            )
        )
    if prose:
        nodes.append(_paragraph(prose))
    return nodes


def to_document(text: str) -> DocumentNode:
    """
    Convert markdown-like text to an ADF document.

    Args:
        text: Plain or markdown-like text

    Returns:
        Root ``doc`` node (version 1)
    """
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    content: list[DocumentNode] = []
    for block, ambiguous in _split_blocks(lines):
        try:
            content.extend(_parse_block(block, ambiguous))
        except ConversionAmbiguousError as e:
            logger.debug(f"Falling back to plain paragraph: {e}")
            content.append(_paragraph(block, inline=False))
    return DocumentNode(type="doc", version=1, content=content)


def as_adf(value: str | dict[str, Any] | None) -> dict[str, Any] | None:
    """Accept either text or a ready ADF document for a rich-text field."""
    if value is None:
        return None
    if isinstance(value, dict):
        return DocumentNode.from_adf(value).to_adf()
    return to_document(value).to_adf()


def _apply_marks(text: str, marks: list[dict[str, Any]]) -> str:
    types = {mark.get("type"): mark for mark in marks if isinstance(mark, dict)}
    if "code" in types:
        text = f"`{text}`"
    if "em" in types:
        text = f"*{text}*"
    if "strong" in types:
        text = f"**{text}**"
    if "strike" in types:
        text = f"~~{text}~~"
    if "link" in types:
        href = (types["link"].get("attrs") or {}).get("href", "")
        text = f"[{text}]({href})"
    return text


def _render_inline(nodes: list[Any]) -> str:
    parts: list[str] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        node_type = node.get("type")
        attrs = node.get("attrs") or {}
        if node_type == "text":
            parts.append(_apply_marks(node.get("text", ""), node.get("marks") or []))
        elif node_type == "hardBreak":
            parts.append("\n")
        elif node_type == "mention":
            parts.append(attrs.get("text") or f"@{attrs.get('id', '')}")
        elif node_type == "emoji":
            parts.append(attrs.get("text") or attrs.get("shortName", ""))
        elif node_type in ("inlineCard", "blockCard"):
            parts.append(attrs.get("url", ""))
        elif node_type == "status":
            parts.append(f"[{attrs.get('text', '')}]")
        elif node_type == "date":
            try:
                stamp = int(attrs.get("timestamp", ""))
            except (TypeError, ValueError):
                continue
            parts.append(
                datetime.fromtimestamp(stamp / 1000, tz=timezone.utc).date().isoformat()
            )
        else:
            parts.append(_render_inline(node.get("content") or []))
    return "".join(parts)


def _render_list(node: dict[str, Any]) -> str:
    ordered = node.get("type") == "orderedList"
    number = int((node.get("attrs") or {}).get("order", 1))
    lines: list[str] = []
    for item in node.get("content") or []:
        prefix = f"{number}. " if ordered else "- "
        number += 1
        body = "\n".join(
            part
            for part in (_render_block(child) for child in item.get("content") or [])
            if part
        )
        indent = " " * len(prefix)
        body_lines = body.split("\n")
        lines.append(prefix + body_lines[0])
        lines.extend(indent + line if line else line for line in body_lines[1:])
    return "\n".join(lines)


def _render_table(node: dict[str, Any]) -> str:
    lines: list[str] = []
    for row_index, row in enumerate(node.get("content") or []):
        cells = row.get("content") or []
        rendered = [
            _render_blocks(cell.get("content") or []).replace("\n", " ")
            for cell in cells
        ]
        lines.append("| " + " | ".join(rendered) + " |")
        if row_index == 0 and cells and all(
            cell.get("type") == "tableHeader" for cell in cells
        ):
            lines.append("|" + "|".join(" --- " for _ in cells) + "|")
    return "\n".join(lines)


def _render_block(node: Any) -> str:
    if not isinstance(node, dict):
        return ""
    node_type = node.get("type")
    content = node.get("content") or []

    if node_type == "paragraph":
        return _render_inline(content)
    if node_type == "heading":
        level = int((node.get("attrs") or {}).get("level", 1))
        return f"{'#' * level} {_render_inline(content)}"
    if node_type == "codeBlock":
        language = (node.get("attrs") or {}).get("language") or ""
        code = "".join(child.get("text", "") for child in content if isinstance(child, dict))
        return f"```{language}\n{code}\n```"
    if node_type in ("bulletList", "orderedList"):
        return _render_list(node)
    if node_type == "blockquote":
        quoted = _render_blocks(content)
        return "\n".join(f"> {line}" if line else ">" for line in quoted.split("\n"))
    if node_type == "rule":
        return "---"
    if node_type == "table":
        return _render_table(node)
    if node_type in ("mediaSingle", "mediaGroup", "media"):
        return "[attachment]"
    if node_type in ("text", "hardBreak", "mention", "emoji", "inlineCard", "status", "date"):
        return _render_inline([node])
    return _render_blocks(content)


def _render_blocks(nodes: list[Any]) -> str:
    rendered = (_render_block(node) for node in nodes)
    return "\n\n".join(part for part in rendered if part)


def to_text(document: DocumentNode | dict[str, Any] | list | str | None) -> str:
    """
    Render ADF content as markdown-like text.

    Unknown node types contribute the text of their children.

    Args:
        document: ADF document, node, list of nodes, or already-plain text

    Returns:
        Rendered text, empty when there is no content
    """
    if document is None:
        return ""
    if isinstance(document, str):
        return document
    if isinstance(document, DocumentNode):
        document = document.to_adf()
    if isinstance(document, list):
        return _render_blocks(document)
    if document.get("type") == "doc":
        return _render_blocks(document.get("content") or [])
    return _render_block(document)
