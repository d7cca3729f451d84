"""Template evaluation for export field mappings.

A template is literal text with ``{...}`` tokens, evaluated against one
transaction, a flat map of additional variables and (optionally) the ledger
lookup tables. Recognized tokens:

- ``{if(<condition>, <then>, <else>)}``
- ``{or(<arg>, ...)}``: first argument that resolves non-empty
- ``{concat(<arg>, ...)}``: all arguments joined with no separator
- ``{ledgerPresetKey(<arg>)}``: preset key matched through the lookup chain
- ``{ledgerLookup(<key>)}``: ledger record for ``<key>``
- ``{lookup:<path>}``: ledger record matched through the lookup chain
- ``{txn.<path>}``: transaction field
- ``{<name>}``: additional variable, only when ``<name>`` is a known key

Function arguments are resolved by :func:`resolve_value`, which recurses into
nested calls. Anything that cannot be resolved renders as an empty string;
the only error raised is :class:`TemplateTooComplex`.

Substitution is a single left-to-right pass. Text produced by a substitution
is emitted as-is and never re-scanned for tokens. Inside a call's argument
list, braced calls that come earlier in :data:`FUNCTION_NAMES` are replaced
before the arguments are split.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from .config import EngineLimits
from .logging_setup import get_logger
from .lookups import get_ledger_preset_key, get_nested_value, perform_ledger_lookup, stringify
from .models import LedgerContext, Transaction, TransactionRecord
from .scanning import is_quoted, match_function_call, split_by_comma, split_comparison

_logger = get_logger("export_templates.template")

# Call names in the order they are tried at a ``{``.
FUNCTION_NAMES: tuple[str, ...] = ("if", "or", "concat", "ledgerPresetKey", "ledgerLookup")
_LEDGER_FUNCTIONS = frozenset({"ledgerPresetKey", "ledgerLookup"})

_NESTED_CALL_RE = re.compile(r"^(if|or|concat|ledgerLookup|ledgerPresetKey)\(")
_LOOKUP_TOKEN_RE = re.compile(r"\{lookup:([^}]+)\}")
_TXN_TOKEN_RE = re.compile(r"\{txn\.([^}]+)\}")


class TemplateTooComplex(ValueError):
    """Raised when a template exceeds the configured nesting or length limits."""


class _Evaluator:
    """Evaluation state for one ``process_template`` call (read-only inputs)."""

    __slots__ = ("txn", "variables", "context", "limits")

    def __init__(
        self,
        txn: TransactionRecord,
        variables: Mapping[str, str],
        context: LedgerContext | None,
        limits: EngineLimits,
    ) -> None:
        self.txn = txn
        self.variables = variables
        self.context = context
        self.limits = limits

    # ---- Driver ---------------------------------------------------------

    def _check_depth(self, depth: int) -> None:
        if depth > self.limits.max_depth:
            _logger.warning("template nesting exceeds %d levels", self.limits.max_depth)
            raise TemplateTooComplex(
                f"template nesting exceeds the limit of {self.limits.max_depth} levels"
            )

    def render(self, template: str, depth: int) -> str:
        self._check_depth(depth)

        out: list[str] = []
        i = 0
        n = len(template)
        while i < n:
            brace = template.find("{", i)
            if brace == -1:
                out.append(template[i:])
                break
            out.append(template[i:brace])
            i = brace

            token, value = self._token_at(template, i, depth)
            if token is None or value is None:
                # Not a token, or one that cannot be resolved here: keep the
                # brace and continue scanning inside it.
                out.append("{")
                i += 1
            else:
                out.append(value)
                i += len(token)
        return "".join(out)

    def _token_at(self, template: str, i: int, depth: int) -> tuple[str | None, str | None]:
        for name in FUNCTION_NAMES:
            call = match_function_call(template, i, name)
            if call is not None:
                return call, self.call(name, call[len(name) + 2 : -2], depth)

        m = _LOOKUP_TOKEN_RE.match(template, i)
        if m is not None:
            if self.context is None:
                return m.group(0), None
            value = perform_ledger_lookup(self.txn, m.group(1), self.context)
            return m.group(0), value or ""

        m = _TXN_TOKEN_RE.match(template, i)
        if m is not None:
            return m.group(0), stringify(get_nested_value(self.txn, m.group(1)))

        close = template.find("}", i + 1)
        if close != -1:
            name = template[i + 1 : close]
            if name in self.variables:
                return template[i : close + 1], self.variables[name] or ""
        return None, None

    def _expand_earlier_calls(self, inner: str, name: str, depth: int) -> str:
        """Substitute ``{...}``-wrapped calls that run before ``name``.

        Calls are ordered ``if`` < ``or`` < ``concat`` < ``ledgerPresetKey`` <
        ``ledgerLookup``; a braced call of an earlier kind inside the argument
        list is replaced by its value before the arguments are split, so
        ``{ledgerLookup({ledgerPresetKey(...)})}`` looks up the computed key.
        """

        earlier = FUNCTION_NAMES[: FUNCTION_NAMES.index(name)]
        if not earlier or "{" not in inner:
            return inner

        out: list[str] = []
        i = 0
        while i < len(inner):
            brace = inner.find("{", i)
            if brace == -1:
                out.append(inner[i:])
                break
            out.append(inner[i:brace])
            i = brace

            call, value = self._earlier_call_at(inner, i, earlier, depth)
            if call is None or value is None:
                out.append("{")
                i += 1
            else:
                out.append(value)
                i += len(call)
        return "".join(out)

    def _earlier_call_at(
        self, inner: str, i: int, names: tuple[str, ...], depth: int
    ) -> tuple[str | None, str | None]:
        for inner_name in names:
            call = match_function_call(inner, i, inner_name)
            if call is not None:
                self._check_depth(depth + 1)
                return call, self.call(inner_name, call[len(inner_name) + 2 : -2], depth + 1)
        return None, None

    # ---- Functions ------------------------------------------------------

    def call(self, name: str, inner: str, depth: int) -> str | None:
        """Evaluate one function call; ``None`` leaves the call text in place."""

        inner = self._expand_earlier_calls(inner, name, depth)

        if name == "if":
            args = split_by_comma(inner)
            if len(args) != 3:
                _logger.debug("if() expects 3 arguments, got %d: %r", len(args), inner)
                return None
            cond, when_true, when_false = (a.strip() for a in args)
            chosen = when_true if self.condition(cond, depth) else when_false
            return self.resolve(chosen, depth) or ""

        if name == "or":
            for arg in split_by_comma(inner):
                value = self.resolve(arg.strip(), depth)
                if value:
                    return value
            return ""

        if name == "concat":
            return "".join(
                self.resolve(arg.strip(), depth) or "" for arg in split_by_comma(inner)
            )

        ctx = self.context
        if ctx is None:
            return None

        if name == "ledgerPresetKey":
            key = get_ledger_preset_key(inner.strip(), self.txn, self.variables, ctx)
            return key or ""

        # ledgerLookup: the raw interior is the key unless it is a nested call.
        key = inner
        if _NESTED_CALL_RE.match(inner.strip()):
            key = self.resolve(inner.strip(), depth)
        if not key:
            return ""
        return ctx.ledger_records.get(key) or ""

    # ---- Values and conditions -----------------------------------------

    def resolve(self, token: str, depth: int) -> str | None:
        """Resolve one argument; ``None`` when nothing matches."""

        if is_quoted(token):
            return token[1:-1]

        m = _NESTED_CALL_RE.match(token)
        if m is not None:
            if m.group(1) in _LEDGER_FUNCTIONS and self.context is None:
                return None
            return self.render("{" + token + "}", depth + 1)

        if token.startswith("lookup:"):
            if self.context is None:
                return None
            return perform_ledger_lookup(self.txn, token[len("lookup:") :], self.context)

        if token.startswith("txn."):
            value = get_nested_value(self.txn, token[len("txn.") :])
            return None if value is None else stringify(value)

        return self.variables.get(token)

    def condition(self, cond: str, depth: int) -> bool:
        # "!=" takes precedence over "==".
        for operator, equal in (("!=", False), ("==", True)):
            if operator not in cond:
                continue
            parts = split_comparison(cond, operator)
            if len(parts) == 2:
                left = self.resolve(parts[0].strip(), depth) or ""
                right = self.resolve(parts[1].strip(), depth) or ""
                return left == right if equal else left != right
        return bool(self.resolve(cond, depth))


def _evaluator(
    transaction: TransactionRecord | Transaction,
    additional_vars: Mapping[str, str] | None,
    ledger_context: LedgerContext | None,
    limits: EngineLimits | None,
) -> _Evaluator:
    if isinstance(transaction, Transaction):
        transaction = transaction.to_record()
    return _Evaluator(
        transaction,
        additional_vars if additional_vars is not None else {},
        ledger_context,
        limits if limits is not None else EngineLimits.from_env(),
    )


def process_template(
    template: str,
    transaction: TransactionRecord | Transaction,
    additional_vars: Mapping[str, str] | None = None,
    ledger_context: LedgerContext | None = None,
    *,
    limits: EngineLimits | None = None,
) -> str:
    """Substitute every recognized token in ``template`` and return the result.

    Parameters
    ----------
    template:
        Template text, e.g. ``"{if(txn.status==\\"sent\\", \\"A\\", \\"B\\")}"``.
    transaction:
        The transaction as a camelCase mapping or a :class:`Transaction`.
    additional_vars:
        Plain ``{name}`` substitutions supplied by the export.
    ledger_context:
        Lookup tables. Without it, ``ledgerLookup``/``ledgerPresetKey`` calls
        and ``{lookup:...}`` tokens are left in the output untouched.
    limits:
        Evaluation ceilings; read from the environment when omitted.

    Raises
    ------
    TemplateTooComplex
        When the template is longer than ``limits.max_length`` or nests
        function calls deeper than ``limits.max_depth``.
    """

    ev = _evaluator(transaction, additional_vars, ledger_context, limits)
    if len(template) > ev.limits.max_length:
        _logger.warning(
            "template of %d characters exceeds limit %d", len(template), ev.limits.max_length
        )
        raise TemplateTooComplex(
            f"template length {len(template)} exceeds the limit of {ev.limits.max_length}"
        )
    return ev.render(template, 0)


def resolve_value(
    token: str,
    transaction: TransactionRecord | Transaction,
    additional_vars: Mapping[str, str] | None = None,
    ledger_context: LedgerContext | None = None,
    *,
    limits: EngineLimits | None = None,
) -> str:
    """Resolve one function argument to its display string.

    Precedence: quoted literal, nested function call (``if``/``or``/
    ``concat``/``ledgerLookup``/``ledgerPresetKey``), ``lookup:<path>``,
    ``txn.<path>``, then additional variable. Misses resolve to ``""``.
    """

    ev = _evaluator(transaction, additional_vars, ledger_context, limits)
    return ev.resolve(token.strip(), 0) or ""


def evaluate_condition(
    condition: str,
    transaction: TransactionRecord | Transaction,
    additional_vars: Mapping[str, str] | None = None,
    ledger_context: LedgerContext | None = None,
    *,
    limits: EngineLimits | None = None,
) -> bool:
    """Evaluate an ``if`` condition (``a==b``, ``a!=b`` or a bare truthy value)."""

    ev = _evaluator(transaction, additional_vars, ledger_context, limits)
    return ev.condition(condition.strip(), 0)


__all__ = [
    "FUNCTION_NAMES",
    "TemplateTooComplex",
    "evaluate_condition",
    "process_template",
    "resolve_value",
]
