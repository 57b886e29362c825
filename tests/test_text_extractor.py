import io
from unittest.mock import MagicMock

import docx
import fitz
import pytest

from doc_summarizer.errors import BlobNotFoundError, BlobStoreError, ExtractionError, FailureReason
from doc_summarizer.extraction.text_extractor import TextExtractor, normalize_extension


def _pdf_bytes(*pages: str, **save_kwargs) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes(**save_kwargs)
    doc.close()
    return data


def _docx_bytes(*paragraphs: str, table_rows=()) -> bytes:
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def extractor(blob_store):
    return TextExtractor(blob_store)


def test_plain_text(extractor, blob_store):
    blob = blob_store.store("Meeting notes: budget approved.".encode("utf-8"), ".txt")
    assert extractor.extract(blob.ref, ".txt") == "Meeting notes: budget approved."


def test_pdf_pages_are_joined(extractor, blob_store):
    blob = blob_store.store(_pdf_bytes("Revenue grew by ten percent", "Costs were flat"), ".pdf")

    text = extractor.extract(blob.ref, "pdf")

    assert "Revenue grew by ten percent" in text
    assert "Costs were flat" in text


def test_docx_paragraphs_and_tables(extractor, blob_store):
    data = _docx_bytes("Project overview", "Second paragraph", table_rows=[("Name", "Value"), ("alpha", "42")])
    blob = blob_store.store(data, ".docx")

    text = extractor.extract(blob.ref, ".DOCX")

    assert "Project overview" in text
    assert "Second paragraph" in text
    assert "alpha | 42" in text


def test_unknown_extension_fails_without_download():
    store = MagicMock()
    extractor = TextExtractor(store)

    with pytest.raises(ExtractionError) as exc_info:
        extractor.extract("some-ref.xlsx", ".xlsx")

    assert exc_info.value.reason == FailureReason.UNSUPPORTED_FORMAT
    store.fetch.assert_not_called()


def test_download_uses_bounded_timeout():
    store = MagicMock()
    store.fetch.return_value = b"plain words"
    extractor = TextExtractor(store, download_timeout=7)

    extractor.extract("ref.txt", ".txt")

    store.fetch.assert_called_once_with("ref.txt", timeout=7)


@pytest.mark.parametrize("error", [BlobNotFoundError("gone"), BlobStoreError("timed out")])
def test_blob_failures_are_download_failed(error):
    store = MagicMock()
    store.fetch.side_effect = error
    extractor = TextExtractor(store)

    with pytest.raises(ExtractionError) as exc_info:
        extractor.extract("ref.pdf", ".pdf")

    assert exc_info.value.reason == FailureReason.DOWNLOAD_FAILED
    assert exc_info.value.retryable


def test_missing_local_blob_is_download_failed(extractor):
    with pytest.raises(ExtractionError) as exc_info:
        extractor.extract("doesnotexist.txt", ".txt")
    assert exc_info.value.reason == FailureReason.DOWNLOAD_FAILED


def test_zero_bytes_is_corrupted():
    store = MagicMock()
    store.fetch.return_value = b""
    extractor = TextExtractor(store)

    with pytest.raises(ExtractionError) as exc_info:
        extractor.extract("ref.pdf", ".pdf")

    assert exc_info.value.reason == FailureReason.CORRUPTED_OR_PASSWORD_PROTECTED


def test_invalid_pdf_is_corrupted(extractor, blob_store):
    blob = blob_store.store(b"this is not a pdf at all", ".pdf")

    with pytest.raises(ExtractionError) as exc_info:
        extractor.extract(blob.ref, ".pdf")

    assert exc_info.value.reason == FailureReason.CORRUPTED_OR_PASSWORD_PROTECTED
    assert not exc_info.value.retryable


def test_password_protected_pdf(extractor, blob_store):
    data = _pdf_bytes(
        "Secret contents",
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner-secret",
        user_pw="user-secret",
    )
    blob = blob_store.store(data, ".pdf")

    with pytest.raises(ExtractionError) as exc_info:
        extractor.extract(blob.ref, ".pdf")

    assert exc_info.value.reason == FailureReason.CORRUPTED_OR_PASSWORD_PROTECTED
    assert "password" in exc_info.value.message.lower()


def test_pdf_without_text_has_no_extractable_text(extractor, blob_store):
    blob = blob_store.store(_pdf_bytes(""), ".pdf")

    with pytest.raises(ExtractionError) as exc_info:
        extractor.extract(blob.ref, ".pdf")

    assert exc_info.value.reason == FailureReason.NO_EXTRACTABLE_TEXT


def test_garbage_text_has_no_extractable_text(extractor, blob_store):
    blob = blob_store.store("%%%% ---- //// #### !!!! a".encode("utf-8"), ".txt")

    with pytest.raises(ExtractionError) as exc_info:
        extractor.extract(blob.ref, ".txt")

    assert exc_info.value.reason == FailureReason.NO_EXTRACTABLE_TEXT


def test_register_custom_extractor():
    store = MagicMock()
    store.fetch.return_value = b"<p>Hello html</p>"
    extractor = TextExtractor(store)
    extractor.register_extractor("html", lambda data: data.decode().replace("<p>", "").replace("</p>", ""))

    assert extractor.supports(".html")
    assert extractor.extract("ref.html", ".html") == "Hello html"


def test_normalize_extension():
    assert normalize_extension("PDF") == ".pdf"
    assert normalize_extension(".Docx") == ".docx"
    assert normalize_extension("") == ""
