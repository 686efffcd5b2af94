"""Domain errors (typed).

Adapters translate third-party failures into this family so the
application layer never sees SDK exceptions.
"""

from dataclasses import dataclass


class DomainError(Exception):
    """Base class for domain-specific errors."""


class ValidationError(DomainError):
    """Invalid input/domain state."""


class EmbeddingError(DomainError):
    """Embedding backend failed or is misconfigured."""


class LLMError(DomainError):
    """LLM backend failed or is misconfigured."""


class ExtractionError(LLMError):
    """Graph extraction returned nothing usable (no content, non-JSON, not an object)."""


class DocumentError(DomainError):
    """Document loading/OCR failed."""


@dataclass(frozen=True)
class OCRTimeoutError(DocumentError):
    """OCR job did not finish within the polling budget."""

    job_id: str
    attempts: int

    def __str__(self) -> str:
        return f"OCR job {self.job_id} timed out after {self.attempts} polls"


class LayoutError(DomainError):
    """Layered drawing engine failed."""
