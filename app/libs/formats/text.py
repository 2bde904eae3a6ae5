import re
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse


def escape_html(value: str) -> str:
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def plain_text_to_rich_html(value: str) -> str:
    """
    Turn plain text into paragraph HTML
    - blank lines separate paragraphs
    - single newlines become <br />
    """
    paragraphs = [chunk.strip() for chunk in re.split(r"\n{2,}", value)]
    html = "".join(
        f"<p>{escape_html(chunk).replace(chr(10), '<br />')}</p>"
        for chunk in paragraphs
        if chunk
    )
    return html or "<p>Course content imported from text file.</p>"


def collapse_whitespace(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def url_file_parts(url: str) -> tuple[str, str]:
    """Return (stem, lower-case extension) of the file a URL points at."""
    path = PurePosixPath(unquote(urlparse(url).path))
    return path.stem, path.suffix.lower()
