"""Best-effort text extraction from uploaded business plan files."""

from dataclasses import dataclass
from io import BytesIO

from app.core.logging import get_logger

logger = get_logger(__name__)

# Extensions the upload form offers; anything else is still accepted
ACCEPTED_EXTENSIONS = {
    ".pdf", ".doc", ".docx", ".ppt", ".pptx", ".xls", ".xlsx", ".txt", ".md",
}

# Legacy and spreadsheet formats decoded as raw bytes without format-specific extraction
BINARY_EXTENSIONS = {".doc", ".ppt", ".xls", ".xlsx"}


class DocumentExtractionError(Exception):
    """Raised when a PDF, DOCX or PPTX file cannot be opened or read."""

    def __init__(self, message: str, extractor: str):
        super().__init__(message)
        self.extractor = extractor


@dataclass
class FileTextResult:
    """Result of text extraction from a file."""

    text: str
    detected_encoding: str
    truncated: bool = False
    is_binary_passthrough: bool = False
    extraction_method: str = "decode"


def _get_extension(filename: str) -> str:
    """Extract lowercase file extension from filename."""
    if "." in filename:
        return "." + filename.rsplit(".", 1)[-1].lower()
    return ""


def is_accepted_extension(filename: str) -> bool:
    return _get_extension(filename) in ACCEPTED_EXTENSIONS


def _decode_bytes(raw_bytes: bytes) -> tuple[str, str]:
    """
    Decode bytes using a fallback chain.

    Latin-1 maps every byte, so this never fails: binary content comes back
    as noisy text rather than an error.

    Returns:
        Tuple of (decoded_text, encoding_name)
    """
    # Check for UTF-8 BOM first
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        try:
            return raw_bytes.decode("utf-8-sig"), "utf-8-sig"
        except UnicodeDecodeError:
            pass

    try:
        return raw_bytes.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        return raw_bytes.decode("latin-1"), "latin-1"


def _extract_pdf_text(raw_bytes: bytes) -> str:
    """Page text via PyMuPDF, pages separated by blank lines."""
    import fitz

    try:
        doc = fitz.open(stream=BytesIO(raw_bytes), filetype="pdf")
    except Exception as e:
        raise DocumentExtractionError(f"Failed to open PDF: {e}", extractor="pdf")

    try:
        pages = [doc[page_num].get_text("text").strip() for page_num in range(len(doc))]
    finally:
        doc.close()
    return "\n\n".join(page for page in pages if page)


def _extract_docx_text(raw_bytes: bytes) -> str:
    """Paragraphs, then tables as pipe-delimited rows."""
    from docx import Document

    try:
        doc = Document(BytesIO(raw_bytes))
    except Exception as e:
        raise DocumentExtractionError(f"Failed to open DOCX: {e}", extractor="docx")

    parts = [para.text.strip() for para in doc.paragraphs if para.text.strip()]
    for table in doc.tables:
        rows = [" | ".join(cell.text.strip() for cell in row.cells) for row in table.rows]
        table_text = "\n".join(rows)
        if table_text.strip():
            parts.append(table_text)
    return "\n\n".join(parts)


def _extract_pptx_text(raw_bytes: bytes) -> str:
    """Slide text frames and speaker notes, one block per slide."""
    from pptx import Presentation

    try:
        prs = Presentation(BytesIO(raw_bytes))
    except Exception as e:
        raise DocumentExtractionError(f"Failed to open PPTX: {e}", extractor="pptx")

    slides: list[str] = []
    for slide_num, slide in enumerate(prs.slides, start=1):
        lines: list[str] = []
        for shape in slide.shapes:
            if shape.has_text_frame:
                for paragraph in shape.text_frame.paragraphs:
                    text = "".join(run.text for run in paragraph.runs).strip()
                    if text:
                        lines.append(text)
        if slide.has_notes_slide and slide.notes_slide.notes_text_frame:
            notes = slide.notes_slide.notes_text_frame.text.strip()
            if notes:
                lines.append(f"[Speaker Notes] {notes}")
        if lines:
            slides.append(f"[Slide {slide_num}]\n" + "\n".join(lines))
    return "\n\n".join(slides)


DOCUMENT_EXTRACTORS = {
    ".pdf": _extract_pdf_text,
    ".docx": _extract_docx_text,
    ".pptx": _extract_pptx_text,
}


def truncate_text(text: str, max_chars: int) -> tuple[str, bool]:
    """Cut text to at most max_chars characters."""
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars], True


def extract_text_from_upload(
    filename: str,
    raw_bytes: bytes,
    max_chars: int,
) -> FileTextResult:
    """
    Extract analysis text from an uploaded file.

    PDFs, DOCX documents and PPTX decks go through their document parsers.
    A file that fails to parse or yields no text, and every other format, is
    decoded as text and forwarded as-is.

    Args:
        filename: Original filename
        raw_bytes: Raw file bytes
        max_chars: Maximum characters to keep

    Returns:
        FileTextResult with (possibly truncated) text and detected encoding
    """
    extension = _get_extension(filename)
    extractor = DOCUMENT_EXTRACTORS.get(extension)

    if extractor is not None:
        try:
            text = extractor(raw_bytes)
            if not text.strip():
                raise DocumentExtractionError("no text found", extractor=extension.lstrip("."))
        except DocumentExtractionError as e:
            logger.warning(f"{e.extractor} extraction failed for {filename}, decoding bytes: {e}")
        else:
            text, truncated = truncate_text(text, max_chars)
            return FileTextResult(
                text=text,
                detected_encoding="utf-8",
                truncated=truncated,
                extraction_method=extension.lstrip("."),
            )

    text, encoding = _decode_bytes(raw_bytes)
    text, truncated = truncate_text(text, max_chars)
    return FileTextResult(
        text=text,
        detected_encoding=encoding,
        truncated=truncated,
        is_binary_passthrough=extension in BINARY_EXTENSIONS or extractor is not None,
    )
