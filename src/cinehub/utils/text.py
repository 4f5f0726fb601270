"""Text helpers shared by every parser and by the enrichment client."""

import html
import re
import unicodedata


def decode_entities(text: str) -> str:
    """
    Decode HTML entities in scraped text.

    Named and numeric entities are both handled ("&#039;", "&amp;", "&eacute;").
    Non-breaking spaces become plain spaces so titles compare equal.

    Args:
        text: Raw text, possibly containing entities

    Returns:
        Decoded text
    """
    return html.unescape(text).replace("\xa0", " ")


def normalise_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces and strip the ends."""
    return re.sub(r"\s+", " ", text).strip()


def clean_text(text: str) -> str:
    """Decode entities and normalise whitespace in one step."""
    return normalise_whitespace(decode_entities(text))


def slugify(text: str) -> str:
    """
    Convert text to a URL-safe slug.

    Accents are stripped ("Amélie" -> "amelie"), every run of characters
    outside [a-z0-9] becomes a single hyphen, and leading/trailing hyphens
    are removed.

    Args:
        text: Text to slugify

    Returns:
        Lowercase slug with hyphens
    """
    # Decompose accented characters and drop the combining marks
    text = unicodedata.normalize("NFD", text.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))

    text = re.sub(r"[^a-z0-9]+", "-", text)

    return text.strip("-")


def clean_search_title(title: str) -> str:
    """
    Clean a listing title for a TMDb search.

    Cinema listings decorate titles with extras that confuse the search:
    - Pipe suffixes: "Film | Cicle Bergman" -> "Film"
    - Parenthetical notes: "Film (VOSE)" -> "Film"
    - Punctuation other than apostrophes and hyphens

    Args:
        title: Title as scraped from the cinema website

    Returns:
        Title suitable for a search query
    """
    title = re.sub(r"\s*\|.*$", "", title)
    title = re.sub(r"\s*\(.*?\)\s*", " ", title)
    title = re.sub(r"[^\w\s\-']", " ", title)
    return normalise_whitespace(title)
