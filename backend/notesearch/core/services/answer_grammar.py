"""
Output grammar shared by the synthesis prompt and the sectionizer.

The generator is only *asked* to follow this layout; nothing enforces it.
Both sides must import their headings and marker syntax from here so that a
change to the layout is a change to one place.

    ## Overall Summary
    <free text synthesizing all included sources>

    ## Per-Source Details
    ### <storeDisplayName #1>
    <text using only that source's evidence>
    ### <storeDisplayName #2>
    ...

Inline citations use ``[Document: <label>]``.
"""
from __future__ import annotations
import re

GRAMMAR_VERSION = "1"

OVERALL_SUMMARY = "Overall Summary"
PER_SOURCE_DETAILS = "Per-Source Details"

SECTION_PREFIX = "## "
SOURCE_PREFIX = "### "

NO_INFO_IN_SOURCE = "No relevant information found in this source."
UNKNOWN_DOCUMENT = "Unknown document"


def document_marker(label: str) -> str:
    return f"[Document: {label}]"


# "## Heading" (exactly two hashes) / "### Heading" (exactly three). Optional
# closing hashes must be separated by whitespace, so "C#" survives.
SECTION_HEADING_RE = re.compile(r"^[ \t]{0,3}##(?!#)[ \t]*(?P<name>.*?)(?:[ \t]+#+)?[ \t]*$", re.M)
SOURCE_HEADING_RE = re.compile(r"^[ \t]{0,3}###(?!#)[ \t]*(?P<name>.*?)(?:[ \t]+#+)?[ \t]*$", re.M)
CITATION_RE = re.compile(r"\[Document:[ \t]*(?P<label>[^\]\n]+?)[ \t]*\]")


def heading_name(raw: str) -> str:
    """Normalize a captured heading: trim, drop a wrapping **bold** pair."""
    name = raw.strip()
    if len(name) > 4 and name.startswith("**") and name.endswith("**"):
        name = name[2:-2].strip()
    return name
