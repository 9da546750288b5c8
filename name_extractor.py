"""
name_extractor.py
=================
Derives a human-readable competition label from a file name, falling back
to a "Drift series/lyga: <name>" line in the document text.
"""

import re

UNKNOWN_COMPETITION = "Unknown Competition"

# Keywords, underscores and the covered season years
RE_FILENAME_NOISE = re.compile(r'rezultatai|results|_|202[1-3]', re.IGNORECASE)

RE_EXTENSION = re.compile(r'\.(?:pdf|xlsx|xls)$', re.IGNORECASE)

RE_SERIES_LINE = re.compile(
    r'Drift (?:serija|series|lyga|league):?\s*(.*)',
    re.IGNORECASE,
)


def extract_competition_name(file_name: str, content: str = "") -> str:
    """
    Returns the competition label for a results document. Pure; never fails.

    Examples:
        >>> extract_competition_name("2022_Results_SeriesX.pdf")
        'SeriesX'
        >>> extract_competition_name("rezultatai_2021.xlsx")
        'Unknown Competition'
    """
    name = RE_FILENAME_NOISE.sub("", file_name or "")
    name = RE_EXTENSION.sub("", name.strip()).strip()
    if name:
        return name

    # Spreadsheets pass empty content, so this only helps PDFs
    m = RE_SERIES_LINE.search(content or "")
    if m and m.group(1).strip():
        return m.group(1).strip()

    return UNKNOWN_COMPETITION
