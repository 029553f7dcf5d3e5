"""Tests for Atlassian Document Format conversion."""

import pytest
from pydantic import ValidationError

from mcp_jira_cloud.models.jira.adf import (
    DocumentNode,
    as_adf,
    normalize_text,
    to_document,
    to_text,
)


def block_types(text: str) -> list[str]:
    return [node.type for node in to_document(text).content or []]


class TestDocumentNode:
    def test_text_node_requires_text(self):
        with pytest.raises(ValidationError):
            DocumentNode(type="text", text="")

    def test_block_node_cannot_carry_text(self):
        with pytest.raises(ValidationError):
            DocumentNode(type="paragraph", text="oops")

    def test_round_trip_through_dict(self):
        data = {
            "type": "doc",
            "version": 1,
            "content": [
                {
                    "type": "paragraph",
                    "content": [
                        {"type": "text", "text": "bold", "marks": [{"type": "strong"}]}
                    ],
                }
            ],
        }
        assert DocumentNode.from_adf(data).to_adf() == data


class TestNormalizeText:
    def test_collapses_blank_runs_and_trims(self):
        assert normalize_text("\n\n a\r\n  \n\n\nb\n\n") == " a\n\nb"

    def test_keeps_single_lines(self):
        assert normalize_text("one\ntwo") == "one\ntwo"


class TestToDocument:
    def test_document_envelope(self):
        doc = to_document("Hello").to_adf()
        assert doc == {
            "type": "doc",
            "version": 1,
            "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "Hello"}]}
            ],
        }

    def test_lines_in_a_paragraph_use_hard_breaks(self):
        paragraph = to_document("first\nsecond").content[0]
        assert [n.type for n in paragraph.content] == ["text", "hardBreak", "text"]

    def test_headings(self):
        doc = to_document("## Title\nBody text")
        heading, paragraph = doc.content
        assert heading.type == "heading"
        assert heading.attrs == {"level": 2}
        assert heading.content[0].text == "Title"
        assert paragraph.type == "paragraph"

    def test_heading_level_is_capped(self):
        assert to_document("######## Deep").content[0].attrs == {"level": 6}

    def test_code_fence_keeps_blank_lines(self):
        doc = to_document("```python\nx = 1\n\ny = 2\n```")
        (code,) = doc.content
        assert code.type == "codeBlock"
        assert code.attrs == {"language": "python"}
        assert code.content[0].text == "x = 1\n\ny = 2"

    def test_unclosed_fence_falls_back_to_plain_paragraph(self):
        doc = to_document("```\nprint('hi')")
        (paragraph,) = doc.content
        assert paragraph.type == "paragraph"
        texts = [n.text for n in paragraph.content if n.type == "text"]
        assert texts == ["```", "print('hi')"]
        assert all(not n.marks for n in paragraph.content)

    def test_bullet_list(self):
        (bullets,) = to_document("- one\n* two").content
        assert bullets.type == "bulletList"
        assert len(bullets.content) == 2
        assert bullets.content[0].content[0].content[0].text == "one"

    def test_ordered_list_start(self):
        (ordered,) = to_document("3. three\n4. four").content
        assert ordered.type == "orderedList"
        assert ordered.attrs == {"order": 3}

    def test_mixed_list_markers_are_prose(self):
        assert block_types("- one\n2. two") == ["paragraph"]

    def test_inline_marks(self):
        paragraph = to_document(
            "Use **bold**, *em*, `code` and [docs](https://example.com)"
        ).content[0]
        marked = {
            n.text: [m.type for m in n.marks] for n in paragraph.content if n.marks
        }
        assert marked == {
            "bold": ["strong"],
            "em": ["em"],
            "code": ["code"],
            "docs": ["link"],
        }
        link = next(n for n in paragraph.content if n.text == "docs")
        assert link.marks[0].attrs == {"href": "https://example.com"}

    def test_snake_case_words_are_not_emphasis(self):
        paragraph = to_document("set max_retry_after value").content[0]
        assert [n.text for n in paragraph.content] == ["set max_retry_after value"]

    def test_empty_text(self):
        assert to_document("").to_adf() == {"type": "doc", "version": 1, "content": []}


class TestAsAdf:
    def test_none(self):
        assert as_adf(None) is None

    def test_text(self):
        assert as_adf("Hi")["type"] == "doc"

    def test_document_is_validated(self):
        with pytest.raises(ValidationError):
            as_adf({"type": "doc", "content": [{"type": "text", "text": ""}]})


class TestToText:
    @pytest.mark.parametrize(
        "text",
        [
            "Plain sentence.",
            "Line one\nLine two\n\nSecond paragraph",
            "\n\n  leading blank lines\n\n\n\nand gaps  \n\n",
            "  indented prose stays indented",
            "Windows\r\nline endings\r\n\r\nwork too",
        ],
    )
    def test_prose_round_trip(self, text):
        assert to_text(to_document(text)) == normalize_text(text)

    @pytest.mark.parametrize(
        "text",
        [
            "# Title\n\nBody",
            "- one\n- two",
            "2. second\n3. third",
            "```sql\nSELECT 1\n```",
            "Some **bold** and `code`",
        ],
    )
    def test_markdown_round_trip(self, text):
        assert to_text(to_document(text)) == text

    def test_rich_inline_nodes(self):
        doc = {
            "type": "doc",
            "version": 1,
            "content": [
                {
                    "type": "paragraph",
                    "content": [
                        {"type": "mention", "attrs": {"id": "acc-1", "text": "@Alice"}},
                        {"type": "text", "text": " is "},
                        {"type": "status", "attrs": {"text": "BLOCKED"}},
                        {"type": "text", "text": " until "},
                        {"type": "date", "attrs": {"timestamp": "1700000000000"}},
                    ],
                }
            ],
        }
        assert to_text(doc) == "@Alice is [BLOCKED] until 2023-11-14"

    def test_table(self):
        doc = {
            "type": "doc",
            "content": [
                {
                    "type": "table",
                    "content": [
                        {
                            "type": "tableRow",
                            "content": [
                                {"type": "tableHeader", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "A"}]}]},
                                {"type": "tableHeader", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "B"}]}]},
                            ],
                        },
                        {
                            "type": "tableRow",
                            "content": [
                                {"type": "tableCell", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "1"}]}]},
                                {"type": "tableCell", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "2"}]}]},
                            ],
                        },
                    ],
                }
            ],
        }
        assert to_text(doc) == "| A | B |\n| --- | --- |\n| 1 | 2 |"

    def test_unknown_nodes_render_children(self):
        doc = {
            "type": "doc",
            "content": [
                {
                    "type": "panel",
                    "content": [
                        {"type": "paragraph", "content": [{"type": "text", "text": "Note"}]}
                    ],
                }
            ],
        }
        assert to_text(doc) == "Note"

    def test_plain_string_and_none(self):
        assert to_text("already text") == "already text"
        assert to_text(None) == ""
