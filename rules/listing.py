"""
Action Listing - Readable, paginated trigger overview
=====================================================

Used by the ``list`` builtin and the bridge status routes. The
listing is computed once per reload from the active rules.
"""

import re
from typing import Iterable, List

from .engine import RuleSet
from .reactions import Callback

PAGE_SIZE = 900

_ESCAPE = re.compile(r"\\(.)", re.DOTALL)


def escape_bb(text: str) -> str:
    """Escape text so the chat client does not read it as BBCode."""
    return text.replace("[", "\\[")


def describe_pattern(pattern: str) -> str:
    """
    Render a compiled trigger readable.

    Word boundary anchors at both ends are dropped and escaped
    characters are unescaped, so ``\\bgood\\ morning\\b`` becomes
    ``good morning``.
    """
    if pattern.startswith(r"\b"):
        pattern = pattern[2:]
    if pattern.endswith(r"\b") and not pattern.endswith(r"\\b"):
        pattern = pattern[:-2]
    return _ESCAPE.sub(r"\1", pattern)


def describe_rules(rules: RuleSet) -> List[str]:
    """Sorted, deduplicated descriptions of all user-defined triggers."""
    descriptions = set()
    for rule in rules:
        if isinstance(rule.reaction, Callback):
            continue
        for pattern in rule.patterns:
            description = describe_pattern(pattern).strip()
            if description:
                descriptions.add(escape_bb(description))
    return sorted(descriptions)


def paginate(lines: Iterable[str], page_size: int = PAGE_SIZE) -> List[str]:
    """
    Pack lines into newline-joined pages.

    Lines are added to the current page while it stays within
    ``page_size`` characters; a line that would overflow it starts a
    new page. A single line longer than ``page_size`` gets a page of
    its own.
    """
    pages: List[str] = []
    current = ""
    for line in lines:
        if not current:
            current = line
        elif len(current) + 1 + len(line) <= page_size:
            current = f"{current}\n{line}"
        else:
            pages.append(current)
            current = line
    if current:
        pages.append(current)
    return pages


def build_pages(rules: RuleSet, page_size: int = PAGE_SIZE) -> List[str]:
    return paginate(describe_rules(rules), page_size)


def render_page(pages: List[str], requested: int) -> str:
    """
    Format one page for a reply.

    ``requested`` is 1-indexed. Numbers below 1 select the first page,
    numbers past the end select the last one.
    """
    if not pages:
        return "No actions"
    number = min(max(requested, 1), len(pages))
    return f"Page {number}/{len(pages)}\n{pages[number - 1]}"
