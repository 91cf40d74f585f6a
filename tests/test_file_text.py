"""Tests for file text extraction."""

import io

from app.core.file_text import (
    extract_text_from_upload,
    is_accepted_extension,
    truncate_text,
)

MAX_CHARS = 50_000


def test_extract_text_txt_utf8():
    """Test extracting text from a UTF-8 .txt file."""
    content = "We solve X for Y"

    result = extract_text_from_upload("plan.txt", content.encode("utf-8"), MAX_CHARS)

    assert result.text == content
    assert result.detected_encoding == "utf-8"
    assert result.truncated is False
    assert result.is_binary_passthrough is False


def test_extract_text_md_utf8():
    """Test extracting text from a UTF-8 .md file."""
    content = "# Executive Summary\n\nWe sell **software** to bakeries."

    result = extract_text_from_upload("plan.md", content.encode("utf-8"), MAX_CHARS)

    assert result.text == content


def test_extract_text_utf8_bom():
    """BOM is stripped rather than forwarded to the model."""
    raw_bytes = b"\xef\xbb\xbf" + "Market: 10M users".encode("utf-8")

    result = extract_text_from_upload("plan.txt", raw_bytes, MAX_CHARS)

    assert result.text == "Market: 10M users"
    assert result.detected_encoding == "utf-8-sig"


def test_extract_text_latin1_fallback():
    """Non-UTF-8 bytes fall back to latin-1 instead of failing."""
    raw_bytes = "Café revenue".encode("latin-1")

    result = extract_text_from_upload("plan.txt", raw_bytes, MAX_CHARS)

    assert result.text == "Café revenue"
    assert result.detected_encoding == "latin-1"


def test_unreadable_pdf_falls_back_to_decoded_bytes():
    """A PDF the parser cannot open is decoded rather than dropped."""
    raw_bytes = b"%PDF-1.4\n\xff\xfe binary stream"

    result = extract_text_from_upload("deck.pdf", raw_bytes, MAX_CHARS)

    assert result.is_binary_passthrough is True
    assert result.text.startswith("%PDF-1.4")


def test_exactly_max_chars_not_truncated():
    content = "a" * MAX_CHARS

    result = extract_text_from_upload("plan.txt", content.encode("utf-8"), MAX_CHARS)

    assert len(result.text) == MAX_CHARS
    assert result.truncated is False


def test_long_text_truncated_to_max_chars():
    content = "b" * (MAX_CHARS + 1)

    result = extract_text_from_upload("plan.txt", content.encode("utf-8"), MAX_CHARS)

    assert len(result.text) == MAX_CHARS
    assert result.truncated is True


def test_truncation_counts_characters_not_bytes():
    content = "é" * 10

    text, truncated = truncate_text(content, 5)

    assert text == "é" * 5
    assert truncated is True


def test_accepted_extensions():
    assert is_accepted_extension("plan.PDF")
    assert is_accepted_extension("deck.pptx")
    assert is_accepted_extension("notes.md")
    assert not is_accepted_extension("script.exe")
    assert not is_accepted_extension("noextension")


def test_legacy_office_formats_pass_through():
    result = extract_text_from_upload("model.xlsx", b"PK\x03\x04 sheet bytes", MAX_CHARS)

    assert result.is_binary_passthrough is True
    assert result.extraction_method == "decode"


def test_extract_pdf_text():
    import fitz

    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Executive Summary: bakery software")
    raw_bytes = doc.tobytes()
    doc.close()

    result = extract_text_from_upload("plan.pdf", raw_bytes, MAX_CHARS)

    assert result.extraction_method == "pdf"
    assert result.is_binary_passthrough is False
    assert "Executive Summary: bakery software" in result.text
    assert "%PDF" not in result.text


def test_extract_docx_paragraphs_and_tables():
    from docx import Document

    doc = Document()
    doc.add_heading("Market", level=1)
    doc.add_paragraph("We sell software to bakeries.")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Year 1"
    table.rows[0].cells[1].text = "$120k"
    buffer = io.BytesIO()
    doc.save(buffer)

    result = extract_text_from_upload("plan.docx", buffer.getvalue(), MAX_CHARS)

    assert result.extraction_method == "docx"
    assert "Market" in result.text
    assert "We sell software to bakeries." in result.text
    assert "Year 1 | $120k" in result.text


def test_extract_pptx_slides_and_notes():
    from pptx import Presentation

    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[1])
    slide.shapes.title.text = "Traction"
    slide.placeholders[1].text = "40 paying bakeries"
    slide.notes_slide.notes_text_frame.text = "Mention churn"
    buffer = io.BytesIO()
    prs.save(buffer)

    result = extract_text_from_upload("deck.pptx", buffer.getvalue(), MAX_CHARS)

    assert result.extraction_method == "pptx"
    assert result.text.startswith("[Slide 1]")
    assert "Traction" in result.text
    assert "40 paying bakeries" in result.text
    assert "[Speaker Notes] Mention churn" in result.text


def test_extracted_document_text_is_truncated():
    from docx import Document

    doc = Document()
    doc.add_paragraph("z" * 200)
    buffer = io.BytesIO()
    doc.save(buffer)

    result = extract_text_from_upload("plan.docx", buffer.getvalue(), 50)

    assert result.text == "z" * 50
    assert result.truncated is True
