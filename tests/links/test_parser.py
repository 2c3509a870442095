"""Tests for links/parser.py module.

Covers:
- parse_code_links() suffix forms and document order
- ordinary markdown links are ignored
- context capture
- format_link() reproduces the matched text
- extract_repo_info() success and MalformedLinkError
"""

from __future__ import annotations

import pytest

from coderef.links.errors import MalformedLinkError
from coderef.links.models import ReferenceType, RepoInfo
from coderef.links.parser import extract_repo_info, format_link, parse_code_links


class TestParseSuffixes:
    """Tests for the location suffix forms."""

    def test_single_line(self) -> None:
        """`:N` yields a line reference."""
        links = parse_code_links("See [init](github://acme/widgets/src/app.ts:10).")

        assert len(links) == 1
        link = links[0]
        assert link.reference_type is ReferenceType.LINE
        assert (link.owner, link.repo, link.file_path) == ("acme", "widgets", "src/app.ts")
        assert link.start_line == 10
        assert link.end_line is None
        assert link.label == "init"

    def test_line_range(self) -> None:
        """`:N-M` yields a range reference."""
        [link] = parse_code_links("[setup](github://acme/widgets/src/app.ts:10-20)")

        assert link.reference_type is ReferenceType.RANGE
        assert (link.start_line, link.end_line) == (10, 20)

    def test_function(self) -> None:
        """`#name` yields a function reference."""
        [link] = parse_code_links("[handler](github://acme/widgets/src/server.py#handle_request)")

        assert link.reference_type is ReferenceType.FUNCTION
        assert link.function_name == "handle_request"
        assert link.file_path == "src/server.py"
        assert link.class_name is None

    def test_dotted_function_scopes_to_class(self) -> None:
        """`#Class.method` keeps the full name and exposes the class."""
        [link] = parse_code_links("[m](github://acme/widgets/src/router.ts#Router.dispatch)")

        assert link.function_name == "Router.dispatch"
        assert link.class_name == "Router"

    def test_no_suffix_is_line_without_start(self) -> None:
        """A bare path parses as a line reference with no line number."""
        [link] = parse_code_links("[file](github://acme/widgets/README.md)")

        assert link.reference_type is ReferenceType.LINE
        assert link.start_line is None
        assert link.file_path == "README.md"

    def test_non_canonical_number_stays_in_path(self) -> None:
        """Leading zeros are not a line suffix."""
        [link] = parse_code_links("[x](github://acme/widgets/src/app.ts:010)")

        assert link.file_path == "src/app.ts:010"
        assert link.start_line is None

    def test_hash_takes_priority_over_colon(self) -> None:
        """A `#` suffix wins over a colon earlier in the path."""
        [link] = parse_code_links("[x](github://acme/widgets/dir:1/mod.py#run)")

        assert link.reference_type is ReferenceType.FUNCTION
        assert link.file_path == "dir:1/mod.py"
        assert link.function_name == "run"


class TestParseDocument:
    """Tests for scanning whole documents."""

    def test_empty_text(self) -> None:
        """Empty input has no links."""
        assert parse_code_links("") == []

    def test_ignores_other_schemes(self) -> None:
        """Ordinary markdown links are skipped."""
        text = "[docs](https://example.com) and [code](github://acme/widgets/a.py:1)"

        links = parse_code_links(text)

        assert [link.label for link in links] == ["code"]

    def test_document_order(self) -> None:
        """Links are returned in the order they appear."""
        text = (
            "[one](github://acme/widgets/a.py:1)\n"
            "middle\n"
            "[two](github://acme/widgets/b.py:2-3) [three](github://acme/widgets/c.py#go)\n"
        )

        links = parse_code_links(text)

        assert [link.label for link in links] == ["one", "two", "three"]

    def test_link_cannot_span_lines(self) -> None:
        """A target broken by a newline is not a link."""
        assert parse_code_links("[x](github://acme/widgets/a.py\n:1)") == []

    def test_empty_label_is_not_a_link(self) -> None:
        """`[]` never opens a link."""
        assert parse_code_links("[](github://acme/widgets/a.py:1)") == []

    def test_bracket_before_link_is_skipped(self) -> None:
        """A stray bracketed word does not swallow the following link."""
        [link] = parse_code_links("[note] [code](github://acme/widgets/a.py:4)")

        assert link.label == "code"
        assert link.original_text == "[code](github://acme/widgets/a.py:4)"

    def test_missing_path_is_not_a_link(self) -> None:
        """owner/repo without a file path is ignored."""
        assert parse_code_links("[x](github://acme/widgets)") == []


class TestContext:
    """Tests for the context captured around a link."""

    def test_text_before_link_on_same_line(self) -> None:
        """Leading text on the line is the context."""
        [link] = parse_code_links("Configure the port: [cfg](github://acme/widgets/cfg.py:3)")

        assert link.context == "Configure the port:"

    def test_line_directly_above(self) -> None:
        """A link on its own line takes the line directly above."""
        text = "## Startup\n[main](github://acme/widgets/main.go#main)"

        [link] = parse_code_links(text)

        assert link.context == "## Startup"

    def test_blank_line_above_gives_no_context(self) -> None:
        """Only one line back is considered."""
        text = "## Startup\n\n[main](github://acme/widgets/main.go#main)"

        [link] = parse_code_links(text)

        assert link.context == ""

    def test_no_context_at_document_start(self) -> None:
        """A link opening the document has empty context."""
        [link] = parse_code_links("[main](github://acme/widgets/main.go#main)")

        assert link.context == ""


class TestFormatLink:
    """Tests for format_link."""

    @pytest.mark.parametrize(
        "text",
        [
            "[a](github://acme/widgets/src/app.ts:7)",
            "[b](github://acme/widgets/src/app.ts:7-9)",
            "[c](github://acme/widgets/src/app.ts#Widget.render)",
            "[d](github://acme/widgets/src/app.ts)",
        ],
    )
    def test_reproduces_original_text(self, text: str) -> None:
        """Serializing a parsed link gives back the matched span."""
        [link] = parse_code_links(f"before {text} after")

        assert link.original_text == text
        assert format_link(link) == text


class TestExtractRepoInfo:
    """Tests for extract_repo_info."""

    def test_reads_coordinates(self) -> None:
        """Owner, repo and path are returned without the suffix."""
        info = extract_repo_info("github://acme/widgets/src/deep/mod.rs:12-14")

        assert info == RepoInfo(owner="acme", repo="widgets", file_path="src/deep/mod.rs")

    @pytest.mark.parametrize(
        "url",
        ["https://github.com/acme/widgets", "github://acme", "github://acme/widgets", "github:///widgets/a.py"],
    )
    def test_malformed(self, url: str) -> None:
        """URLs outside the grammar raise MalformedLinkError."""
        with pytest.raises(MalformedLinkError) as exc_info:
            extract_repo_info(url)

        assert exc_info.value.url == url
        assert str(exc_info.value) == f"Invalid GitHub URL format: {url}"
