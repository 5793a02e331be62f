"""Page-bounded PDF derivatives built with pypdf."""

import io
import logging

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from pagevault.utils.exceptions import ProcessingException, ValidationException

logger = logging.getLogger(__name__)


class DerivativeService:
    """Builds preview copies of stored PDFs. Works on in-memory buffers only."""

    @staticmethod
    def _open(content: bytes) -> PdfReader:
        try:
            reader = PdfReader(io.BytesIO(content))
            if reader.is_encrypted:
                raise ProcessingException("Encrypted documents are not supported")
            # Force the page tree to load so corrupt files fail here
            len(reader.pages)
        except ProcessingException:
            raise
        except (PyPdfError, ValueError, KeyError, TypeError, OSError) as exc:
            raise ProcessingException("Document is not a readable PDF", details={"error": str(exc)}) from exc
        return reader

    @staticmethod
    def count_pages(content: bytes) -> int:
        """Return the page count of a PDF or raise ProcessingException."""
        return len(DerivativeService._open(content).pages)

    @staticmethod
    def extract_bounded_copy(content: bytes, page_cap: int) -> bytes:
        """
        Build a new PDF holding the first min(page_cap, total) pages.

        Args:
            content: Original PDF bytes
            page_cap: Maximum number of pages to keep

        Returns:
            Bytes of an independent, valid PDF

        Raises:
            ValidationException: page_cap is negative
            ProcessingException: content cannot be parsed or written
        """
        if page_cap < 0:
            raise ValidationException("Page cap must not be negative", details={"pageCap": page_cap})

        reader = DerivativeService._open(content)
        total = len(reader.pages)
        keep = min(page_cap, total)

        writer = PdfWriter()
        try:
            for index in range(keep):
                writer.add_page(reader.pages[index])
            buffer = io.BytesIO()
            writer.write(buffer)
        except (PyPdfError, ValueError, KeyError, TypeError, OSError) as exc:
            raise ProcessingException("Failed to build document preview", details={"error": str(exc)}) from exc

        logger.debug("Built bounded copy", extra={"pdf.pages_kept": keep, "pdf.pages_total": total})
        return buffer.getvalue()


derivative_service = DerivativeService()
