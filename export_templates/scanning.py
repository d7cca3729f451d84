"""Low-level string scanning for export templates.

Three helpers carry all of the tokenizing the engine needs:

- :func:`find_function_calls` locates ``{name(...)}`` occurrences by counting
  parentheses.
- :func:`split_by_comma` splits a call's argument list on top-level commas.
- :func:`split_comparison` splits an ``if`` condition on ``==``/``!=``.

Known limitation
----------------
:func:`find_function_calls` does not treat quotes specially: a quoted literal
holding an unbalanced parenthesis (``"A(B"``) throws the depth count off and
the enclosing call is not reported. Existing templates are written against
this behavior, so it is kept as-is.
"""

from __future__ import annotations

_QUOTES = ('"', "'")


def _call_end(template: str, open_paren: int) -> int | None:
    """Return the index of the ``)`` that balances ``template[open_paren]``."""

    depth = 0
    for j in range(open_paren, len(template)):
        ch = template[j]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return j
    return None


def match_function_call(template: str, start: int, name: str) -> str | None:
    """Return the ``{name(...)}`` call beginning exactly at ``start``.

    ``None`` when the text at ``start`` is not such a call or its closing
    parenthesis is missing or not immediately followed by ``}``.
    """

    prefix = "{" + name + "("
    if not template.startswith(prefix, start):
        return None
    end = _call_end(template, start + len(prefix) - 1)
    if end is None or end + 1 >= len(template) or template[end + 1] != "}":
        return None
    return template[start : end + 2]


def find_function_calls(template: str, name: str) -> list[str]:
    """Find every ``{name(...)}`` call in ``template``, left to right.

    Matches never overlap: after a match the scan resumes just past its
    closing ``)}``. An opening ``{name(`` whose parentheses never balance, or
    whose balancing ``)`` is not followed by ``}``, is skipped.

    >>> find_function_calls("{or(a, b(c))} and {or(d)}", "or")
    ['{or(a, b(c))}', '{or(d)}']
    """

    prefix = "{" + name + "("
    matches: list[str] = []
    i = 0
    while i < len(template):
        start = template.find(prefix, i)
        if start == -1:
            break
        match = match_function_call(template, start, name)
        if match is None:
            i = start + 1
            continue
        matches.append(match)
        i = start + len(match)
    return matches


def _toggles_quote(text: str, i: int) -> bool:
    return text[i] in _QUOTES and (i == 0 or text[i - 1] != "\\")


def split_by_comma(text: str) -> list[str]:
    """Split an argument list on commas outside parentheses and quotes.

    Segments are returned untrimmed. A backslash right before a quote keeps
    that quote from opening or closing a quoted span. A trailing empty
    segment is not emitted.

    >>> split_by_comma('a, "b, c", d(e, f)')
    ['a', ' "b, c"', ' d(e, f)']
    """

    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None

    for i, ch in enumerate(text):
        if _toggles_quote(text, i):
            if quote is None:
                quote = ch
            elif ch == quote:
                quote = None
            current.append(ch)
        elif ch == "(" and quote is None:
            depth += 1
            current.append(ch)
        elif ch == ")" and quote is None:
            depth -= 1
            current.append(ch)
        elif ch == "," and depth == 0 and quote is None:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)

    if current:
        parts.append("".join(current))
    return parts


def split_comparison(text: str, operator: str) -> list[str]:
    """Split ``text`` on every unquoted occurrence of ``operator``.

    >>> split_comparison('txn.name=="Test==Inc"', "==")
    ['txn.name', '"Test==Inc"']
    """

    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    i = 0
    while i < len(text):
        ch = text[i]
        if _toggles_quote(text, i):
            if quote is None:
                quote = ch
            elif ch == quote:
                quote = None
            current.append(ch)
            i += 1
        elif quote is None and text.startswith(operator, i):
            parts.append("".join(current))
            current = []
            i += len(operator)
        else:
            current.append(ch)
            i += 1

    if current:
        parts.append("".join(current))
    return parts


def is_quoted(token: str) -> bool:
    """True when ``token`` is wrapped in a matching pair of quotes."""

    return len(token) >= 2 and token[0] in _QUOTES and token[-1] == token[0]


__all__ = [
    "find_function_calls",
    "is_quoted",
    "match_function_call",
    "split_by_comma",
    "split_comparison",
]
