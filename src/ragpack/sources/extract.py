"""Turn downloaded bytes into plain text."""

import codecs
import io
import logging
import zipfile
from typing import Optional

import trafilatura
from docx import Document
from docx.opc.exceptions import PackageNotFoundError as DocxPackageError
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pptx import Presentation
from pptx.exc import PackageNotFoundError as PptxPackageError
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ragpack.errors import FetchError
from ragpack.utils import ContentFormat, sniff_format

logger = logging.getLogger(__name__)

# Raised by the Office readers for files that are not valid OOXML packages
OFFICE_ERRORS = (
    zipfile.BadZipFile,
    DocxPackageError,
    PptxPackageError,
    InvalidFileException,
    KeyError,
    ValueError,
)


def extract_text(
    url: str,
    content_type: Optional[str],
    content: bytes,
    encoding: Optional[str] = None,
) -> str:
    """Extract readable text from a document of any supported format.

    ``encoding`` overrides the charset parameter of ``content_type``; text
    and HTML are decoded with the declared charset, and plain text falls
    back to UTF-8.

    Raises FetchError for binary payloads with no text extractor.
    """
    fmt = sniff_format(url, content_type, content)
    encoding = encoding or _charset_param(content_type)
    logger.debug(f"Extracting {fmt.value} content from {url} ({len(content)} bytes)")

    if fmt is ContentFormat.PDF:
        return pdf_to_text(content, url)
    if fmt is ContentFormat.DOCX:
        return _read_office(docx_to_text, content, url, "Word document")
    if fmt is ContentFormat.XLSX:
        return _read_office(xlsx_to_text, content, url, "spreadsheet")
    if fmt is ContentFormat.PPTX:
        return _read_office(pptx_to_text, content, url, "presentation")
    if fmt is ContentFormat.HTML:
        # Without a declared charset trafilatura sniffs the bytes itself
        charset = _known_encoding(encoding)
        return html_to_text(content.decode(charset, errors="replace") if charset else content)
    if fmt is ContentFormat.TEXT:
        return content.decode(_known_encoding(encoding) or "utf-8", errors="replace")
    raise FetchError(f"Unsupported binary content at {url} ({content_type or 'unknown type'})")


def _charset_param(content_type: Optional[str]) -> Optional[str]:
    for param in (content_type or "").split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset":
            return value.strip().strip("\"'") or None
    return None


def _known_encoding(encoding: Optional[str]) -> Optional[str]:
    if not encoding:
        return None
    try:
        return codecs.lookup(encoding).name
    except LookupError:
        logger.warning(f"Ignoring unknown charset {encoding!r}")
        return None


def html_to_text(html: str | bytes) -> str:
    """Main-content extraction, falling back to all visible text.

    trafilatura discards pages it considers too short or pure boilerplate;
    html2txt keeps everything, which suits small pages and fragments.
    """
    if not html:
        return ""
    text = trafilatura.extract(html, include_comments=False, include_tables=True)
    if not text:
        text = trafilatura.html2txt(html)
    return text or ""


def pdf_to_text(content: bytes, url: str = "") -> str:
    """Concatenate the text layer of every page, separated by blank lines."""
    try:
        reader = PdfReader(io.BytesIO(content))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError, IndexError) as exc:
        raise FetchError(f"Cannot read PDF {url}: {exc}") from exc
    return "\n\n".join(page for page in pages if page.strip())


def _read_office(reader, content: bytes, url: str, label: str) -> str:
    try:
        return reader(content)
    except OFFICE_ERRORS as exc:
        raise FetchError(f"Cannot read {label} {url}: {exc}") from exc


def docx_to_text(content: bytes) -> str:
    """Paragraphs in document order, then each table as ``a | b`` rows."""
    document = Document(io.BytesIO(content))
    parts = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        rows = [" | ".join(cell.text.strip() for cell in row.cells) for row in table.rows]
        parts.append("\n".join(row for row in rows if row.strip(" |")))
    return "\n\n".join(part for part in parts if part)


def xlsx_to_text(content: bytes) -> str:
    """One section per sheet, with non-empty rows as ``a | b`` lines."""
    workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    sheets = []
    try:
        for sheet in workbook.worksheets:
            rows = []
            for row in sheet.iter_rows(values_only=True):
                cells = ["" if value is None else str(value) for value in row]
                if any(cell.strip() for cell in cells):
                    rows.append(" | ".join(cells))
            if rows:
                sheets.append(f"{sheet.title}\n" + "\n".join(rows))
    finally:
        workbook.close()
    return "\n\n".join(sheets)


def pptx_to_text(content: bytes) -> str:
    """Text of every shape, slide by slide; tables as ``a | b`` rows."""
    presentation = Presentation(io.BytesIO(content))
    slides = []
    for slide in presentation.slides:
        texts = []
        for shape in slide.shapes:
            if shape.has_text_frame and shape.text_frame.text.strip():
                texts.append(shape.text_frame.text.strip())
            if shape.has_table:
                texts.extend(
                    " | ".join(cell.text.strip() for cell in row.cells)
                    for row in shape.table.rows
                )
        if texts:
            slides.append("\n".join(texts))
    return "\n\n".join(slides)
