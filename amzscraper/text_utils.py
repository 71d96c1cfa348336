"""
Text helpers for pulling numbers, dates and ids out of rendered page text.

All functions are pure: no I/O, no browser access.
"""

import re
from typing import Optional

# German and English month names. April, August, September and November
# are spelled the same in both languages.
MONTHS = {
    "januar": "01",
    "februar": "02",
    "märz": "03",
    "maerz": "03",
    "april": "04",
    "mai": "05",
    "juni": "06",
    "juli": "07",
    "august": "08",
    "september": "09",
    "oktober": "10",
    "november": "11",
    "dezember": "12",
    "january": "01",
    "february": "02",
    "march": "03",
    "may": "05",
    "june": "06",
    "july": "07",
    "october": "10",
    "december": "12",
}

_NON_DIGITS = re.compile(r"\D")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.,-]+")


def extract_int(text: Optional[str]) -> Optional[int]:
    """
    Strip every non-digit character from ``text`` and parse the rest.

    Returns None when ``text`` is missing or holds no digits at all, so
    "1.234 Bestellungen" gives 1234 and "keine" gives None.
    """
    if not text:
        return None
    digits = _NON_DIGITS.sub("", text)
    if not digits:
        return None
    return int(digits, 10)


def parse_localized_date(text: Optional[str]) -> Optional[str]:
    """
    Parse "<day> <month-name> <year>" (German or English) into YYYY-MM-DD.

    Dots and commas are dropped first, so "5. März 2024" and "5 March, 2024"
    both work. US ordering ("March 5 2024") is not supported and gives None,
    as does anything that is not exactly three tokens.
    """
    if not text:
        return None
    parts = re.sub(r"[.,]", "", text).split()
    if len(parts) != 3:
        return None
    day, month_name, year = parts
    month = MONTHS.get(month_name.lower())
    if not month or not re.fullmatch(r"\d{4}", year) or not re.fullmatch(r"\d{1,2}", day):
        return None
    return f"{year}-{month}-{day.zfill(2)}"


def regex_group_or_empty(text: Optional[str], pattern, group: int = 1) -> str:
    if not text:
        return ""
    match = re.search(pattern, text)
    if not match:
        return ""
    return match.group(group) or ""


def sanitize_filename_part(text: Optional[str]) -> str:
    """Collapse whitespace and path-unsafe characters into single dashes."""
    if not text:
        return ""
    return _UNSAFE_FILENAME_CHARS.sub("-", text.strip()).strip("-")
