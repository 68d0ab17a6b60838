"""
Domain rules for company records.

Name normalization and slug generation run before every write, so the
stored name and slug always agree.
They contain no framework imports and no IO operations.
"""

import re
from enum import Enum
from typing import Any, Mapping

BUSINESS_SUFFIXES = frozenset({"LLC", "INC", "LTD", "CO", "CORP"})
NAME_MAX_LENGTH = 250
SLUG_PATTERN = r"^[a-z0-9-]+$"


class CompanyStatus(str, Enum):
    """Operational state of a company."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


def normalize_company_name(name: str, suffixes: frozenset[str] = BUSINESS_SUFFIXES) -> str:
    """Title-case a company name, keeping business suffixes upper-case.

    Whitespace runs collapse to one space. A trailing suffix may carry
    dots (``Inc.``).

    >>> normalize_company_name("  acme   widgets llc ")
    'Acme Widgets LLC'
    """
    words = name.split()
    normalized = []
    for index, word in enumerate(words):
        is_last = index == len(words) - 1
        if word.upper() in suffixes or (is_last and word.replace(".", "").upper() in suffixes):
            normalized.append(word.upper())
        else:
            normalized.append(word[0].upper() + word[1:].lower())
    return " ".join(normalized)


def generate_slug(name: str) -> str:
    """Derive a URL-safe identifier from a company name.

    >>> generate_slug("Smith & Sons, Ltd.")
    'smith-and-sons-ltd'
    """
    slug = name.lower().replace("&", "and")
    slug = re.sub(r"[^\w\s-]", "", slug, flags=re.ASCII)
    slug = re.sub(r"[\s_]+", "-", slug.strip())
    return re.sub(r"-+", "-", slug)


def normalize_company(document: Mapping[str, Any]) -> dict[str, Any]:
    """Pre-write hook: normalize the name and keep the slug in sync."""
    data = dict(document)
    name = data.get("name")
    if isinstance(name, str) and name.strip():
        data["name"] = normalize_company_name(name)
        data["slug"] = generate_slug(data["name"])
    return data
