"""Route path compilation and parameter extraction.

A route path is a ``/``-separated template. A segment that starts with
``:name`` declares a named parameter; it captures a non-empty run of
characters within one segment of the concrete URL path. Anything after
the name in that segment is a literal suffix::

    "/users/:id"                -> params ("id",)
    "/teams/:team/users/:user"  -> params ("team", "user")
    "/files/:name.json"         -> params ("name",), "/files/report.json"
    "/health"                   -> static, no params

Every other character matches literally, case-sensitively, and the
pattern is anchored at both ends. Matching runs on the undecoded path,
so ``%2F`` inside a segment never splits it.
"""

import re

from redact.errors import ConfigurationError

_PARAM_SEGMENT = re.compile(r":(\w+)(.*)", re.DOTALL)


def _split_segment(segment: str, path: str) -> tuple[str | None, str]:
    """Return ``(name, literal suffix)`` for a parameter segment, else ``(None, segment)``."""
    if not segment.startswith(":"):
        return None, segment
    match = _PARAM_SEGMENT.fullmatch(segment)
    if match is None:
        msg = f"Segment {segment!r} in route path {path!r} needs a parameter name after ':'"
        raise ConfigurationError(msg)
    return match.group(1), match.group(2)


def is_dynamic(path: str) -> bool:
    """True if *path* has at least one segment starting with ``:``."""
    return any(segment.startswith(":") for segment in path.split("/"))


def extract_param_names(path: str) -> tuple[str, ...]:
    """Return parameter names in declaration order.

    Raises ``ConfigurationError`` if a name is declared twice or a
    segment starts with ``:`` but has no name.
    """
    names: list[str] = []
    for segment in path.split("/"):
        name, _ = _split_segment(segment, path)
        if name is None:
            continue
        if name in names:
            msg = f"Duplicate parameter {name!r} in route path {path!r}"
            raise ConfigurationError(msg)
        names.append(name)
    return tuple(names)


def compile_path(path: str) -> re.Pattern[str]:
    """Compile *path* into an anchored regex with one group per parameter."""
    parts: list[str] = []
    for segment in path.split("/"):
        name, literal = _split_segment(segment, path)
        if name is None:
            parts.append(re.escape(literal))
        else:
            parts.append("([^/]+)" + re.escape(literal))
    return re.compile("^" + "/".join(parts) + "$")


def match_path(
    pattern: re.Pattern[str],
    names: tuple[str, ...],
    path: str,
) -> dict[str, str] | None:
    """Match a concrete *path*; return captured values keyed by name, or None."""
    match = pattern.fullmatch(path)
    if match is None:
        return None
    return dict(zip(names, match.groups(), strict=True))
