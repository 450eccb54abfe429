"""Storage-format gate for page bodies.

Confluence stores page bodies in its XHTML-based storage format. Bodies
written in Markdown or in the legacy wiki markup are rendered as literal text
by the REST API, so they are rejected here with an explanation and a worked
example instead of being sent.

Detection ignores CDATA sections and <pre>/<code> elements, which lets code
samples that happen to contain Markdown look-alikes through unchanged.
"""

import logging
import re
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from src.confluence_client.errors import ContentFormatError

logger = logging.getLogger(__name__)

STORAGE_FORMAT_EXAMPLE = """<h1>Release notes</h1>
<p>This release adds <strong>bold</strong> and <em>italic</em> text.</p>
<ul>
  <li><p>First item</p></li>
  <li><p>Second item with a <a href="https://example.com">link</a></p></li>
</ul>
<ac:structured-macro ac:name="code">
  <ac:parameter ac:name="language">python</ac:parameter>
  <ac:plain-text-body><![CDATA[print("hello")]]></ac:plain-text-body>
</ac:structured-macro>"""

FORMAT_GUIDE = f"""# Confluence storage format

Page bodies sent to create_page and update_page must be Confluence storage
format (XHTML). Markdown and the legacy wiki markup are rejected.

| Element | Storage format |
|---|---|
| Heading | <h1>Title</h1> ... <h6>Title</h6> |
| Paragraph | <p>Text</p> |
| Bold / italic | <strong>bold</strong>, <em>italic</em> |
| Inline code | <code>value</code> |
| Bullet list | <ul><li><p>Item</p></li></ul> |
| Numbered list | <ol><li><p>Item</p></li></ol> |
| Link | <a href="https://example.com">text</a> |
| Table | <table><tbody><tr><th>H</th></tr><tr><td>V</td></tr></tbody></table> |
| Code block | <ac:structured-macro ac:name="code"> with <ac:plain-text-body><![CDATA[...]]></ac:plain-text-body> |
| Info panel | <ac:structured-macro ac:name="info"><ac:rich-text-body><p>Text</p></ac:rich-text-body></ac:structured-macro> |

Example:

{STORAGE_FORMAT_EXAMPLE}
"""

# Regions whose content is literal and must not trigger detection
_LITERAL_REGIONS = [
    re.compile(r'<!\[CDATA\[.*?\]\]>', re.DOTALL),
    re.compile(r'<pre\b[^>]*>.*?</pre>', re.DOTALL | re.IGNORECASE),
    re.compile(r'<code\b[^>]*>.*?</code>', re.DOTALL | re.IGNORECASE),
]

MARKDOWN_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("heading", re.compile(r'^\s{0,3}#{1,6}\s+\S', re.MULTILINE)),
    ("bold", re.compile(r'\*\*[^*\n]+\*\*')),
    ("fenced code block", re.compile(r'^\s*```', re.MULTILINE)),
    ("link", re.compile(r'\[[^\]\n]+\]\([^)\s]+\)')),
    ("table", re.compile(
        r'^\s*\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)+\|?\s*$', re.MULTILINE
    )),
]

WIKI_MARKUP_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("heading", re.compile(r'^\s*h[1-6]\.\s', re.MULTILINE)),
    ("macro", re.compile(
        r'\{(code|noformat|info|panel|note|warning|tip|quote)(:[^}\n]*)?\}'
    )),
    ("link", re.compile(r'\[[^\]|\n]+\|[^\]\n]+\]')),
    ("monospace", re.compile(r'\{\{[^}\n]+\}\}')),
]


def _strip_literal_regions(body: str) -> str:
    for pattern in _LITERAL_REGIONS:
        body = pattern.sub(' ', body)
    return body


def _first_match(
    text: str,
    patterns: List[Tuple[str, re.Pattern]]
) -> Optional[Tuple[str, str]]:
    for name, pattern in patterns:
        match = pattern.search(text)
        if match:
            return name, match.group(0).strip()
    return None


def _rejection(format_name: str, marker: str, sample: str) -> ContentFormatError:
    return ContentFormatError(
        f"Content appears to be {format_name} ({marker}: '{sample[:40]}'). "
        f"Confluence expects storage format (XHTML). Example:\n\n"
        f"{STORAGE_FORMAT_EXAMPLE}",
        detected_format=format_name
    )


def has_markup_tag(body: str) -> bool:
    """True when the body contains at least one element tag."""
    soup = BeautifulSoup(body, 'html.parser')
    return soup.find() is not None


def validate_or_convert(raw_body: Optional[str]) -> str:
    """Gate a page body on Confluence storage format.

    Args:
        raw_body: Body submitted by the caller

    Returns:
        The body, unmodified, when it is storage format

    Raises:
        ContentFormatError: If the body is empty, Markdown, wiki markup or
            plain text without any element tag
    """
    if raw_body is None or not raw_body.strip():
        raise ContentFormatError(
            "Content cannot be empty. Provide the page body in storage "
            f"format (XHTML). Example:\n\n{STORAGE_FORMAT_EXAMPLE}",
            detected_format="empty"
        )

    searchable = _strip_literal_regions(raw_body)

    found = _first_match(searchable, MARKDOWN_PATTERNS)
    if found:
        logger.debug(f"Rejected Markdown body ({found[0]})")
        raise _rejection("Markdown", *found)

    found = _first_match(searchable, WIKI_MARKUP_PATTERNS)
    if found:
        logger.debug(f"Rejected wiki markup body ({found[0]})")
        raise _rejection("wiki markup", *found)

    if not has_markup_tag(raw_body):
        raise ContentFormatError(
            "Content is plain text without any storage-format tags. Wrap "
            f"paragraphs in <p>...</p>. Example:\n\n{STORAGE_FORMAT_EXAMPLE}",
            detected_format="plain text"
        )

    return raw_body
