"""Locator helpers"""
import os
import posixpath
import re
import urllib.parse
from typing import List

PLACEHOLDER_TITLE = "Pending title"

_URL_RE = re.compile(r"https?://\S+")


def extract_urls(text: str) -> List[str]:
    """Distinct http(s) locators in order of first appearance."""
    seen = set()
    urls = []
    for match in _URL_RE.findall(text or ""):
        if match in seen:
            continue
        seen.add(match)
        urls.append(match)
    return urls


def default_title_from_url(raw_url: str) -> str:
    """Last path segment without extension, else the host, else the placeholder."""
    try:
        parsed = urllib.parse.urlparse(raw_url)
    except ValueError:
        return PLACEHOLDER_TITLE
    segment = posixpath.basename(parsed.path.rstrip("/")).strip() if parsed.path else ""
    if not segment:
        return parsed.netloc or PLACEHOLDER_TITLE
    name, _ext = posixpath.splitext(segment)
    return name or PLACEHOLDER_TITLE


def source_host_from_url(raw_url: str) -> str:
    try:
        host = urllib.parse.urlparse(raw_url).hostname or ""
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[len("www."):]
    return host


def output_missing(output_path: str) -> bool:
    """An output path is recorded but no longer resolves to a regular file."""
    output_path = (output_path or "").strip()
    if not output_path:
        return False
    return not os.path.isfile(output_path)
