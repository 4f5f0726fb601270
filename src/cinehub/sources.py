"""Parser registry mapping source slugs to parser instances."""

from collections.abc import Callable

from cinehub.parsers.base import BaseParser
from cinehub.parsers.filmoteca import FilmotecaParser
from cinehub.parsers.mooby import MoobyParser
from cinehub.parsers.renoir import RenoirParser
from cinehub.parsers.verdi import VerdiParser
from cinehub.parsers.zumzeig import ZumzeigParser

# Registry mapping source slugs to parser factories
PARSER_REGISTRY: dict[str, Callable[[], BaseParser]] = {
    "filmoteca": FilmotecaParser,
    "zumzeig": ZumzeigParser,
    "renoir": RenoirParser,
    "verdi": VerdiParser,
    "mooby-aribau": lambda: MoobyParser("BAL-ARIBAU", "Mooby Aribau", "mooby-aribau"),
    "mooby-balmes": lambda: MoobyParser("BAL-BALMES", "Mooby Balmes", "mooby-balmes"),
}


def get_parser(slug: str) -> BaseParser | None:
    """
    Get a parser instance by source slug.

    Args:
        slug: The source slug (e.g., "filmoteca", "mooby-aribau")

    Returns:
        Parser instance or None if the slug is not configured
    """
    factory = PARSER_REGISTRY.get(slug)
    return factory() if factory else None


__all__ = ["PARSER_REGISTRY", "get_parser"]
