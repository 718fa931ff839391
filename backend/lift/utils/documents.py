import logging
import re
from io import BytesIO
from typing import Optional

from lift import config
from lift.config import ALLOWED_UPLOAD_TYPES, PDF_MIME, PPTX_MIME
from lift.errors import ExtractionError, UnsupportedFileTypeError, ValidationError

logger = logging.getLogger("lift.utils.documents")

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_INLINE_SPACE = re.compile(r"[ \t\r\f\v]+")


def normalize_block(text: Optional[str]) -> str:
    """Collapse runs of spaces, trim lines and drop surrounding blank lines."""
    if not text:
        return ""
    lines = [_INLINE_SPACE.sub(" ", line).strip() for line in text.splitlines()]
    return "\n".join(lines).strip()


def _base_content_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def check_upload_size(size: int) -> None:
    """Reject uploads above ``MAX_UPLOAD_BYTES``."""
    if size > config.MAX_UPLOAD_BYTES:
        raise ValidationError(f"Uploaded file is too large (max {config.MAX_UPLOAD_BYTES // (1024 * 1024)} MB).")


def extract_text_blocks(content: bytes, content_type: Optional[str], filename: str = "") -> list[str]:
    """Extract ordered, non-empty text blocks from an uploaded document.

    PDFs yield one block per page and PPTX decks one block per slide. Only the
    two MIME types in ``ALLOWED_UPLOAD_TYPES`` are accepted.

    Raises:
        ValidationError: the upload is empty or too large.
        UnsupportedFileTypeError: the MIME type is not PDF or PPTX.
        ExtractionError: the parser failed or no readable text was found.
    """
    mime = _base_content_type(content_type)
    if mime not in ALLOWED_UPLOAD_TYPES:
        raise UnsupportedFileTypeError(
            f"Unsupported file type{f' for {filename}' if filename else ''}: "
            f"{mime or 'unknown'}. Use PDF or PPTX."
        )
    if not content:
        raise ValidationError(f"Uploaded file {filename} is empty." if filename else "Uploaded file is empty.")
    check_upload_size(len(content))

    if mime == PDF_MIME:
        blocks = _pdf_blocks(content, filename)
    else:
        blocks = _pptx_blocks(content, filename)

    blocks = [b for b in (normalize_block(b) for b in blocks) if b]
    if not blocks:
        raise ExtractionError("No readable text found.")
    logger.info("Extracted %d block(s) from %s (%s)", len(blocks), filename or "upload", mime)
    return blocks


def _pdf_blocks(content: bytes, filename: str) -> list[str]:
    from pypdf import PdfReader

    try:
        reader = PdfReader(BytesIO(content))
        pages = []
        for i, page in enumerate(reader.pages):
            page_text = page.extract_text() or ""
            if not page_text.strip():
                logger.debug("Page %d of %s: no text extracted", i + 1, filename or "upload")
            pages.append(page_text)
        return pages
    except Exception as exc:
        logger.warning("pypdf failed on %s: %s", filename or "upload", exc)
        raise ExtractionError(f"Unable to extract text from this PDF file: {exc}") from exc


def _pptx_blocks(content: bytes, filename: str) -> list[str]:
    from pptx import Presentation

    try:
        prs = Presentation(BytesIO(content))
        slides = []
        for slide in prs.slides:
            chunks: list[str] = []
            for shape in slide.shapes:
                if getattr(shape, "has_text_frame", False) and shape.text_frame:
                    chunks.append(shape.text_frame.text)
                elif getattr(shape, "has_table", False):
                    for row in shape.table.rows:
                        cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                        if cells:
                            chunks.append(" | ".join(cells))
            slides.append("\n".join(c for c in chunks if c.strip()))
        return slides
    except Exception as exc:
        logger.warning("python-pptx failed on %s: %s", filename or "upload", exc)
        raise ExtractionError(f"Unable to extract text from this PowerPoint file: {exc}") from exc


def chunk_text(text: Optional[str], max_chars: int) -> list[str]:
    """Split pasted notes on blank lines and pack paragraphs into chunks.

    Each chunk holds at most ``max_chars`` characters. A single paragraph longer
    than that is truncated. Whitespace-only input yields no chunks.
    """
    paragraphs = [normalize_block(p) for p in _PARAGRAPH_BREAK.split(text or "")]
    chunks: list[str] = []
    current = ""
    for para in paragraphs:
        if not para:
            continue
        if len(para) > max_chars:
            logger.info("Truncating paragraph of %d chars to %d", len(para), max_chars)
            para = para[:max_chars].rstrip()
        if not current:
            current = para
        elif len(current) + 2 + len(para) <= max_chars:
            current = f"{current}\n\n{para}"
        else:
            chunks.append(current)
            current = para
    if current:
        chunks.append(current)
    return chunks
