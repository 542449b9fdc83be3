"""Object key layout shared by the storage adapters."""

import re

_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]")


def safe_filename(name: str) -> str:
    """Reduce a name to a single safe path segment.

    Example:
        >>> safe_filename(" site report (v2).csv ")
        'site-report-v2.csv'
    """
    return _UNSAFE.sub("", _WHITESPACE.sub("-", name.strip()))


def export_object_key(company_id: str, filename: str) -> str:
    """exports/{company_id}/{filename}

    Raises:
        ValueError: If either segment is empty after sanitising
    """
    company_segment = safe_filename(company_id)
    file_segment = safe_filename(filename)
    if not company_segment or not file_segment or file_segment in (".", ".."):
        raise ValueError(f"Invalid export key segments: {company_id!r}, {filename!r}")
    return f"exports/{company_segment}/{file_segment}"
