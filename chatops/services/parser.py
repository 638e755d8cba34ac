"""Parse human-written chat messages into test case and defect drafts.

Structured test case::

    TC: Login fails with special characters
    Preconditions:
    - User must exist
    Steps:
    1. Enter password with special chars
    Expected Result:
    - Should succeed
    Priority: High

Structured defect::

    BUG: Export button not working
    Steps to Reproduce:
    1. Click Export
    Actual Result:
    - Nothing happens
    Expected Result:
    - File should download
    Severity: High

Anything without markers is unstructured: a single line becomes the title and
nothing else is filled in.

Sections are found in two passes. The first pass records every line that
starts with a known ``Keyword:``; the second slices the text between
consecutive keyword positions. A section therefore always ends at the next
keyword, whatever the field order. When a keyword repeats, the first
occurrence is kept.

Parsing never raises. Use ``validate_test_case`` / ``validate_defect`` to find
out whether required fields are missing.
"""

import re
from typing import Dict, List, Optional, Tuple

from chatops.models.drafts import DefectDraft, TestCaseDraft, ValidationResult


# Order matters: longer labels sharing a prefix come first.
_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("steps_to_reproduce", r"Steps +to +Reproduce"),
    ("steps", r"Steps"),
    ("description", r"Description"),
    ("preconditions", r"Pre-?conditions?"),
    ("environment", r"Environment"),
    ("expected_result", r"Expected +Results?"),
    ("actual_result", r"Actual +Results?"),
    ("priority", r"Priority"),
    ("severity", r"Severity"),
    ("status", r"Status"),
    ("type", r"Type"),
    ("tags", r"Tags"),
    ("linked_ids", r"Linked +(?:TCs?|Test *Cases?)"),
)

_KEYWORD_RE = re.compile(
    r"^ *(?:" + "|".join(f"(?P<{name}>{label})" for name, label in _KEYWORDS) + r") *:",
    re.IGNORECASE | re.MULTILINE,
)

_TEST_CASE_TITLE_RE = re.compile(r"^(?:TC|Title) *: *(.*)$", re.IGNORECASE)
_DEFECT_TITLE_RE = re.compile(r"^(?:BUG|Title) *: *(.*)$", re.IGNORECASE)

_SPACE_RUN_RE = re.compile(r"[ \t\u00a0\u2007\u202f]+")
_ORDERED_ITEM_RE = re.compile(r"^\s*\d+\.\s*(.*)$")
_BULLET_ITEM_RE = re.compile(r"^\s*[-•]\s*(.*)$")
_TOKEN_RE = re.compile(r"\w+")
SHORT_ID_RE = re.compile(r"^[A-Z]+-\d+$")


def normalize_whitespace(text: Optional[str]) -> str:
    if not text:
        return ""
    text = str(text).replace("\r\n", "\n").replace("\r", "\n")
    lines = [_SPACE_RUN_RE.sub(" ", line).rstrip() for line in text.split("\n")]
    return "\n".join(lines).strip()


def is_section_header(line: str) -> bool:
    return _KEYWORD_RE.match(line) is not None


def split_sections(text: str) -> Dict[str, str]:
    """Map each keyword found in ``text`` to the raw block that follows it."""
    markers = [(m.start(), m.end(), m.lastgroup) for m in _KEYWORD_RE.finditer(text)]
    blocks: Dict[str, str] = {}
    for i, (_, end, name) in enumerate(markers):
        if name in blocks:
            continue
        stop = markers[i + 1][0] if i + 1 < len(markers) else len(text)
        blocks[name] = text[end:stop]
    return blocks


def extract_title(text: str, marker_re: "re.Pattern[str]") -> Optional[str]:
    if not text:
        return None
    lines = text.split("\n")

    marked = marker_re.match(lines[0])
    if marked:
        return marked.group(1).strip() or None
    if len(lines) == 1:
        return lines[0].strip() or None

    for line in lines:
        stripped = line.strip()
        if stripped and not is_section_header(stripped):
            return stripped
    return None


def text_after_title(text: Optional[str], title: Optional[str]) -> Optional[str]:
    """Everything after the line holding ``title``; used as a fallback description."""
    normalized = normalize_whitespace(text)
    if not normalized or not title:
        return None
    lines = normalized.split("\n")
    for idx, line in enumerate(lines):
        if title in line and not is_section_header(line):
            rest = "\n".join(lines[idx + 1:]).strip()
            return rest or None
    return None


# Block tokenizers

def _ordered_items(block: Optional[str]) -> List[str]:
    if not block:
        return []
    items = []
    for line in block.split("\n"):
        m = _ORDERED_ITEM_RE.match(line)
        if m and m.group(1).strip():
            items.append(m.group(1).strip())
    return items


def _bullet_items(block: Optional[str]) -> List[str]:
    if not block:
        return []
    items = []
    for line in block.split("\n"):
        m = _BULLET_ITEM_RE.match(line)
        if m and m.group(1).strip():
            items.append(m.group(1).strip())
    return items


def _free_items(block: Optional[str]) -> List[str]:
    """Free text or bullets: one item per non-blank line, bullet stripped."""
    if not block:
        return []
    items = []
    for line in block.split("\n"):
        m = _BULLET_ITEM_RE.match(line)
        item = (m.group(1) if m else line).strip()
        if item:
            items.append(item)
    return items


def _scalar(block: Optional[str]) -> Optional[str]:
    if not block:
        return None
    m = _TOKEN_RE.search(block)
    return m.group(0).upper() if m else None


def _first_line(block: Optional[str]) -> str:
    if not block:
        return ""
    for line in block.split("\n"):
        if line.strip():
            return line.strip()
    return ""


def _comma_list(block: Optional[str]) -> List[str]:
    return [part.strip() for part in _first_line(block).split(",") if part.strip()]


def _text(block: Optional[str]) -> Optional[str]:
    if block is None:
        return None
    return block.strip() or None


# Public parsers

def parse_test_case(text: Optional[str]) -> TestCaseDraft:
    normalized = normalize_whitespace(text)
    sections = split_sections(normalized)

    return TestCaseDraft(
        title=extract_title(normalized, _TEST_CASE_TITLE_RE),
        description=_text(sections.get("description")),
        preconditions=_bullet_items(sections.get("preconditions")),
        steps=_ordered_items(sections.get("steps")),
        expected_result=_free_items(sections.get("expected_result")),
        priority=_scalar(sections.get("priority")),
        status=_scalar(sections.get("status")),
        type=_scalar(sections.get("type")),
        tags=_comma_list(sections.get("tags")),
    )


def parse_defect(text: Optional[str]) -> DefectDraft:
    normalized = normalize_whitespace(text)
    sections = split_sections(normalized)

    steps_block = sections.get("steps_to_reproduce", sections.get("steps"))
    linked = [item.upper() for item in _comma_list(sections.get("linked_ids"))]

    draft = DefectDraft(
        title=extract_title(normalized, _DEFECT_TITLE_RE),
        description=_text(sections.get("description")),
        environment=_environment(sections.get("environment")),
        steps_to_reproduce=_ordered_items(steps_block),
        actual_result=_free_items(sections.get("actual_result")),
        expected_result=_free_items(sections.get("expected_result")),
        severity=_scalar(sections.get("severity")),
        priority=_scalar(sections.get("priority")),
        status=_scalar(sections.get("status")),
        tags=_comma_list(sections.get("tags")),
        linked_ids=[item for item in linked if SHORT_ID_RE.match(item)],
    )
    if draft.description is None:
        draft.description = _compose_defect_description(draft)
    return draft


def _environment(block: Optional[str]) -> Optional[str]:
    bullets = _bullet_items(block)
    if bullets:
        return ", ".join(bullets)
    inline = _free_items(block)
    return ", ".join(inline) if inline else None


def _compose_defect_description(draft: DefectDraft) -> Optional[str]:
    parts = []
    if draft.steps_to_reproduce:
        parts.append("Steps: " + "; ".join(draft.steps_to_reproduce))
    if draft.actual_result:
        parts.append("Actual: " + "; ".join(draft.actual_result))
    if draft.expected_result:
        parts.append("Expected: " + "; ".join(draft.expected_result))
    return "\n".join(parts) if parts else None


# Validation

def validate_test_case(draft: TestCaseDraft, strict: bool = False) -> ValidationResult:
    errors: List[str] = []

    if not draft.title or not draft.title.strip():
        errors.append("Title is required (TC: ...)")

    if strict:
        if not draft.steps:
            errors.append("At least one step is required")
        if not draft.expected_result:
            errors.append("Expected result is required")

    return ValidationResult(errors=errors)


def validate_defect(draft: DefectDraft, strict: bool = False) -> ValidationResult:
    errors: List[str] = []

    if not draft.title or not draft.title.strip():
        errors.append("Title is required (BUG: ...)")

    if strict:
        if not draft.steps_to_reproduce:
            errors.append("Steps to reproduce are required")
        if not draft.actual_result:
            errors.append("Actual result is required")
        if not draft.expected_result:
            errors.append("Expected result is required")

    return ValidationResult(errors=errors)
