"""Contract document rendering client.

The renderer is an external HTTP service: it receives the structured contract
terms and answers with the PDF bytes. We only keep the stored URL and the
sha256 of the bytes.
"""

import hashlib
import logging
from dataclasses import dataclass

import httpx

from app.config import settings
from app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass
class RenderedDocument:
    content: bytes
    hash: str
    content_type: str = "application/pdf"


class DocumentService:
    """Client for the document-rendering collaborator."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def render(self, terms: dict, template: str = "charter_contract") -> RenderedDocument:
        """Render contract terms to a PDF.

        Raises:
            ExternalServiceError: Renderer unreachable or returned an error
        """
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=settings.document_renderer_timeout
            ) as client:
                response = await client.post(
                    settings.document_renderer_url,
                    json={"template": template, "data": terms},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Document renderer failed: {e}")
            raise ExternalServiceError("document-renderer", str(e)) from e

        content = response.content
        if not content:
            raise ExternalServiceError("document-renderer", "empty document")

        return RenderedDocument(
            content=content,
            hash=hashlib.sha256(content).hexdigest(),
            content_type=response.headers.get("content-type", "application/pdf"),
        )


# Singleton instance
document_service = DocumentService()
