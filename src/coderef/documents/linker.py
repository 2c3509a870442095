"""Document link registration and snippet rendering.

Registration binds each github:// placeholder in a document to a tracked
reference once. Rendering swaps placeholders for fenced code blocks using
the references' current content.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from coderef.documents.models import DocumentLink, LinkRegistration
from coderef.extraction.extractor import CodeExtractor, language_for_path
from coderef.links.models import CodeLink, ReferenceType
from coderef.links.parser import parse_code_links
from coderef.links.validation import validate_link
from coderef.tracking.hashing import content_hash
from coderef.tracking.models import CodeReference, new_id

if TYPE_CHECKING:
    from coderef.store.repository import ReferenceStore

log = structlog.get_logger(__name__)


def fenced_snippet(file_path: str, content: str) -> str:
    return f"```{language_for_path(file_path)}\n{content}\n```"


def render_document(text: str, bindings: Iterable[tuple[DocumentLink, CodeReference]]) -> str:
    """Replace each active reference's placeholder with its snippet.

    Placeholders of deleted or conflicted references are left as written.
    """
    rendered = text
    for link, ref in bindings:
        if not ref.is_active:
            continue
        rendered = rendered.replace(link.placeholder, fenced_snippet(ref.file_path, ref.content), 1)
    return rendered


class DocumentLinker:
    """Registers document placeholders as tracked references."""

    def __init__(self, store: ReferenceStore, extractor: CodeExtractor, *, default_ref: str | None = None) -> None:
        self._store = store
        self._extractor = extractor
        self._default_ref = default_ref

    async def _create_reference(self, link: CodeLink, ref: str | None) -> CodeReference:
        owner, repo, path = link.owner, link.repo, link.file_path
        if link.reference_type is ReferenceType.FUNCTION:
            assert link.function_name is not None
            fn = await self._extractor.extract_function(owner, repo, path, link.function_name, ref)
            content, start, end = fn.content, fn.start_line, fn.end_line
        else:
            start = link.start_line or 0
            end = link.end_line if link.reference_type is ReferenceType.RANGE else start
            lines = await self._extractor.extract_range(owner, repo, path, start, end or start, ref)
            content = lines.content
            end = end if link.reference_type is ReferenceType.RANGE else None

        function_name = None
        if link.function_name is not None:
            function_name = link.function_name.rpartition(".")[2]
        reference = CodeReference(
            id=new_id(),
            repository_owner=owner,
            repository_name=repo,
            file_path=path,
            reference_type=link.reference_type,
            content=content,
            content_hash=content_hash(content),
            start_line=start,
            end_line=end,
            function_name=function_name,
            class_name=link.class_name,
            commit_sha=ref,
        )
        return self._store.add_reference(reference)

    def _existing(self, link: CodeLink) -> CodeReference | None:
        if link.reference_type is ReferenceType.FUNCTION:
            return self._store.find_reference(
                link.owner,
                link.repo,
                link.file_path,
                link.reference_type,
                function_name=(link.function_name or "").rpartition(".")[2],
                class_name=link.class_name,
            )
        return self._store.find_reference(
            link.owner,
            link.repo,
            link.file_path,
            link.reference_type,
            start_line=link.start_line,
            end_line=link.end_line if link.reference_type is ReferenceType.RANGE else None,
        )

    async def register(self, document_id: str, text: str, *, ref: str | None = None) -> list[LinkRegistration]:
        """Parse text and bind every valid link to a tracked reference.

        Existing bindings for the document are replaced. A link that fails
        validation or extraction is reported and the others still register.
        """
        ref = ref or self._default_ref
        links = parse_code_links(text)
        removed = self._store.clear_document_links(document_id)
        if removed:
            log.debug("document_links_cleared", document_id=document_id, count=removed)

        results: list[LinkRegistration] = []
        for position, link in enumerate(links):
            try:
                validate_link(link)
                reference = self._existing(link)
                created = reference is None
                if reference is None:
                    reference = await self._create_reference(link, ref)
                self._store.add_document_link(
                    DocumentLink(
                        document_id=document_id,
                        reference_id=reference.id,
                        placeholder=link.original_text,
                        context=link.context,
                        position=position,
                    )
                )
            except Exception as e:
                log.warning("link_registration_failed", document_id=document_id, link=link.original_text, error=str(e))
                results.append(LinkRegistration(link.original_text, error=str(e)))
                continue
            results.append(LinkRegistration(link.original_text, reference.id, created))

        log.info(
            "document_links_registered",
            document_id=document_id,
            registered=sum(1 for r in results if r.ok),
            total=len(links),
        )
        return results

    def render(self, document_id: str, text: str) -> str:
        """Render text with the snippets bound to document_id."""
        links = self._store.links_for_document(document_id)
        refs = {r.id: r for r in self._store.get_references(link.reference_id for link in links)}
        return render_document(text, ((link, refs[link.reference_id]) for link in links if link.reference_id in refs))
