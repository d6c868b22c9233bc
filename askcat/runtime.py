"""Runtime: turns editor text into a prompt and a finished process into an answer."""

from __future__ import annotations

import logging
import re

from askcat.errors import ApiError, CancelledNoop, ParseError
from askcat.providers import Provider, parse_error, parse_response, strip_think
from askcat.schemas import TransportResult

logger = logging.getLogger(__name__)

# Leading line-comment markers: Lua/SQL "--", C-style "//", shell/Python "#", Lisp ";".
# "#" and ";" only count when followed by whitespace, so "#include" is left alone.
_COMMENT_PREFIX_RE = re.compile(r"^\s*(?:-{2,}|/{2,}|#+(?=\s|$)|;+(?=\s|$))\s*")


def clean_prompt(text: str | None) -> str:
    """Strip a leading comment marker and surrounding whitespace.

    "-- what is a monad?"  ->  "what is a monad?"
    """
    if not text:
        return ""
    return _COMMENT_PREFIX_RE.sub("", text, count=1).strip()


def interpret_result(result: TransportResult, provider: Provider) -> str:
    """Map a finished transport call to the answer text.

    Raises CancelledNoop if the process was killed, ApiError for a provider or
    transport failure, ParseError for an unreadable success body.
    """
    if result.killed:
        raise CancelledNoop()

    if result.code == 0:
        try:
            return strip_think(parse_response(result.stdout, provider))
        except ParseError as e:
            # curl exits 0 on HTTP 4xx/5xx; the body may still be an error object.
            message = parse_error(result.stdout)
            if message:
                raise ApiError(message) from e
            logger.warning(f"Unparseable {provider.value} response: {e.reason}")
            raise

    message = (
        parse_error(result.stderr)
        or parse_error(result.stdout)
        or result.stderr.strip()
        or "Unknown error"
    )
    logger.warning(f"Request failed (exit={result.code}): {message}")
    raise ApiError(message)
