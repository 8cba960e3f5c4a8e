"""URL target parsing.

Resolves the raw request target against the ``Host`` header the way a
browser would, then flattens the query string into a plain dict.
"""

from dataclasses import dataclass
from urllib.parse import parse_qsl, urljoin, urlsplit

DEFAULT_HOST = "localhost"


@dataclass(frozen=True, slots=True)
class ParsedURL:
    """The parts of a request target the dispatcher cares about."""

    href: str
    path: str
    query_string: str


def parse_target(target: str, host: str | None = None) -> ParsedURL:
    """Resolve *target* (``/path?query`` or absolute-form) against *host*.

    Examples::

        parse_target("/search?q=js", "example.com").path          -> "/search"
        parse_target("http://other/x?a=1", "example.com").path    -> "/x"
    """
    try:
        href = urljoin(f"http://{host or DEFAULT_HOST}/", target)
    except ValueError:
        # Unparseable Host header, e.g. an unbalanced "["
        href = urljoin(f"http://{DEFAULT_HOST}/", target)
    parts = urlsplit(href)
    return ParsedURL(href=href, path=parts.path or "/", query_string=parts.query)


def parse_query(query_string: str) -> dict[str, str]:
    """Flatten a query string into a dict. The last value wins on duplicates.

    ``parse_query("a=1&b=2&a=3") -> {"a": "3", "b": "2"}``
    """
    return dict(parse_qsl(query_string, keep_blank_values=True))
