from __future__ import annotations

from dataclasses import dataclass

from casemap.application.ports.document_loader_port import DocumentLoaderPort, DocumentPayload
from casemap.domain.errors import DocumentError


@dataclass
class PlainTextLoaderAdapter(DocumentLoaderPort):
    def load(self, path: str) -> DocumentPayload:  # type: ignore[override]
        try:
            with open(path, encoding="utf-8") as f:
                text = f.read()
        except OSError as ex:
            raise DocumentError(f"TXT load failed: {ex}") from ex
        return DocumentPayload(text=text, title=None, source_path=path)


@dataclass
class PDFTextExtractorAdapter(DocumentLoaderPort):
    """Offline text-layer extraction; scanned PDFs without a text layer come back empty."""

    def load(self, path: str) -> DocumentPayload:  # type: ignore[override]
        if path.lower().endswith(".txt"):
            return PlainTextLoaderAdapter().load(path)
        try:
            from pypdf import PdfReader  # lazy import to avoid hard dependency in tests
        except ImportError as ex:  # pragma: no cover
            raise DocumentError("pypdf is not installed") from ex

        try:
            reader = PdfReader(path)
            # one page per paragraph block so the chunker sees page breaks
            pages = [p.extract_text() or "" for p in reader.pages]
            text = "\n\n".join(pages).strip()
            title = reader.metadata.title if getattr(reader, "metadata", None) else None
        except Exception as ex:  # noqa: BLE001
            raise DocumentError(f"PDF parse failed: {ex}") from ex
        return DocumentPayload(text=text, title=title, source_path=path)
