"""Content validation for page bodies.

Only Confluence storage format (XHTML) is accepted for writes; Markdown and
wiki markup bodies are rejected with a worked example.
"""

from .storage_format import (
    FORMAT_GUIDE,
    STORAGE_FORMAT_EXAMPLE,
    validate_or_convert,
)

__all__ = ['FORMAT_GUIDE', 'STORAGE_FORMAT_EXAMPLE', 'validate_or_convert']
