"""Document loaders that turn URLs and PDF uploads into plain text."""
import io
import re
from typing import Optional

import httpx
import structlog
from bs4 import BeautifulSoup
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from askdocs import config
from askdocs.errors import DocumentLoadError

logger = structlog.get_logger()

STRIPPED_TAGS = ["script", "style", "nav"]


def html_to_text(html: str) -> str:
    """Extract visible body text from HTML, dropping scripts, styles and nav."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(STRIPPED_TAGS):
        tag.decompose()

    root = soup.body or soup
    return re.sub(r"\s+", " ", root.get_text(" ")).strip()


async def fetch_url_content(
    url: str,
    timeout: float = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Fetch a web page and return its cleaned text.

    Args:
        url: Page URL
        timeout: Request timeout in seconds (default from config)
        transport: Optional httpx transport, used to stub requests in tests

    Raises:
        DocumentLoadError: If the page cannot be fetched
    """
    logger.info("url_fetch_started", url=url)

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout or config.URL_FETCH_TIMEOUT,
            transport=transport,
        ) as client:
            response = await client.get(
                url,
                headers={"User-Agent": "Mozilla/5.0 (compatible; AskDocs/0.1)"},
            )
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("url_fetch_failed", url=url, error=str(e))
        raise DocumentLoadError(f"Failed to fetch content from URL: {e}") from e

    text = html_to_text(response.text)

    logger.info("url_fetch_completed", url=url, text_length=len(text))

    return text


def extract_pdf_text(data: bytes) -> str:
    """Extract the text of every page of a PDF, one page per line.

    Raises:
        DocumentLoadError: If the bytes are not a readable PDF
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, OSError) as e:
        logger.error("pdf_extraction_failed", error=str(e), size=len(data))
        raise DocumentLoadError(
            "Could not read the PDF file. Check that the file is valid."
        ) from e

    logger.info("pdf_text_extracted", page_count=len(pages))

    return "\n".join(pages)
