"""
Text normalization helpers.
"""

import re
import unicodedata


def slugify(text: str) -> str:
    """
    Convert a path segment or name to a lowercase hyphenated slug.

    Accents are folded to ASCII, camelCase words are split and any run
    of characters other than letters and digits becomes one hyphen.
    """
    text = unicodedata.normalize("NFKD", str(text))
    text = text.encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", text)
    text = text.lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")
