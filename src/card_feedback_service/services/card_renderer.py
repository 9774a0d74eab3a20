"""
Adaptive Card template expansion.

Implements the subset of the Adaptive Card templating language used by the
refresh card:

- ``${path}`` bindings resolved against ``$root``, ``$data`` and ``$index``.
  A string consisting of a single binding keeps the bound value's type;
  bindings embedded in longer strings are interpolated as text.
- ``$data`` on an object rebinds the data scope. When it evaluates to a list
  inside an array, the object is repeated once per item.
- ``$when`` drops the object when its expression is falsy.
- ``formatNumber(value, decimals)`` and ``count(list)`` functions.

Expansion is pure: the template document is never modified.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, replace
from typing import Any

_BINDING = re.compile(r"\$\{([^{}]*)\}")
_CALL = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\((.*)\)$", re.DOTALL)
_INDEXED = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")


class CardTemplateError(ValueError):
    """Raised when a template expression cannot be evaluated."""


class _Drop:
    """Marker for an element removed by ``$when``."""


_DROPPED = _Drop()


@dataclass(frozen=True)
class _Repeated:
    """Expansion of a ``$data`` list, spliced into the enclosing array."""

    items: list[Any]


@dataclass(frozen=True)
class _Scope:
    root: Any
    data: Any
    index: int | None = None


def _split_arguments(text: str) -> list[str]:
    args: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for char in text:
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in "'\"":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    tail = "".join(current).strip()
    if tail or args:
        args.append(tail)
    return args


def _format_number(value: Any, decimals: Any = 0) -> str:
    try:
        number = float(value)
        places = int(decimals)
    except (TypeError, ValueError) as exc:
        raise CardTemplateError(f"formatNumber() expects numbers, got {value!r}") from exc
    return f"{number:,.{places}f}"


def _count(value: Any) -> int:
    if not isinstance(value, list | tuple | dict | str):
        raise CardTemplateError(f"count() expects a collection, got {value!r}")
    return len(value)


_FUNCTIONS = {
    "formatNumber": _format_number,
    "count": _count,
}


def _lookup(value: Any, key: str) -> Any:
    if isinstance(value, dict):
        return value.get(key)
    return None


def _resolve_path(path: str, scope: _Scope) -> Any:
    segments = path.split(".")
    value: Any = None
    for position, segment in enumerate(segments):
        match = _INDEXED.match(segment)
        if match is None:
            raise CardTemplateError(f"Invalid path segment '{segment}' in '{path}'")
        name, indexes = match.group(1), match.group(2)
        if position == 0:
            if name == "$root":
                value = scope.root
            elif name == "$data":
                value = scope.data
            elif name == "$index":
                value = scope.index
            else:
                value = _lookup(scope.data, name)
        else:
            value = _lookup(value, name)
        for index in re.findall(r"\[(\d+)\]", indexes):
            if not isinstance(value, list) or int(index) >= len(value):
                return None
            value = value[int(index)]
    return value


def _evaluate(expression: str, scope: _Scope) -> Any:
    expression = expression.strip()
    if not expression:
        raise CardTemplateError("Empty binding expression")

    call = _CALL.match(expression)
    if call is not None:
        name = call.group(1)
        function = _FUNCTIONS.get(name)
        if function is None:
            raise CardTemplateError(f"Unknown template function '{name}'")
        arguments = [_evaluate(argument, scope) for argument in _split_arguments(call.group(2))]
        return function(*arguments)

    if len(expression) >= 2 and expression[0] == expression[-1] and expression[0] in "'\"":
        return expression[1:-1]
    if _NUMBER.match(expression):
        return float(expression) if "." in expression else int(expression)
    if expression in ("true", "false"):
        return expression == "true"
    if expression == "null":
        return None
    return _resolve_path(expression, scope)


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _expand_string(text: str, scope: _Scope) -> Any:
    whole = _BINDING.fullmatch(text)
    if whole is not None:
        value = _evaluate(whole.group(1), scope)
        return text if value is None else value

    def substitute(match: re.Match[str]) -> str:
        value = _evaluate(match.group(1), scope)
        return match.group(0) if value is None else _to_text(value)

    return _BINDING.sub(substitute, text)


def _bound_value(raw: Any, scope: _Scope) -> Any:
    # Unresolved single bindings yield None here rather than the binding text
    if isinstance(raw, str):
        whole = _BINDING.fullmatch(raw)
        if whole is not None:
            return _evaluate(whole.group(1), scope)
        return _expand_string(raw, scope)
    return raw


class CardTemplate:
    """A card template that can be expanded against a data context."""

    def __init__(self, document: Any) -> None:
        self._document = copy.deepcopy(document)

    def expand(self, context: dict[str, Any]) -> Any:
        """
        Merge the template with ``context`` (``{"$root": {...}}``).

        Raises:
            CardTemplateError: If an expression is malformed or uses an
                unknown function.
        """
        root = context.get("$root")
        expanded = self._expand(self._document, _Scope(root=root, data=root))
        if isinstance(expanded, _Repeated):
            return expanded.items
        if isinstance(expanded, _Drop):
            return None
        return expanded

    def _expand(self, node: Any, scope: _Scope) -> Any:
        if isinstance(node, dict):
            return self._expand_object(node, scope)
        if isinstance(node, list):
            return self._expand_array(node, scope)
        if isinstance(node, str):
            return _expand_string(node, scope)
        return node

    def _expand_array(self, node: list[Any], scope: _Scope) -> list[Any]:
        result: list[Any] = []
        for item in node:
            expanded = self._expand(item, scope)
            if isinstance(expanded, _Drop):
                continue
            if isinstance(expanded, _Repeated):
                result.extend(expanded.items)
            else:
                result.append(expanded)
        return result

    def _expand_object(self, node: dict[str, Any], scope: _Scope) -> Any:
        if "$data" in node:
            bound = _bound_value(node["$data"], scope)
            body = {key: value for key, value in node.items() if key != "$data"}
            if isinstance(bound, list):
                items: list[Any] = []
                for index, item in enumerate(bound):
                    expanded = self._expand_object(body, replace(scope, data=item, index=index))
                    if not isinstance(expanded, _Drop):
                        items.append(expanded)
                return _Repeated(items)
            return self._expand_object(body, replace(scope, data=bound))

        if "$when" in node and not _bound_value(node["$when"], scope):
            return _DROPPED

        result: dict[str, Any] = {}
        for key, value in node.items():
            if key == "$when":
                continue
            expanded = self._expand(value, scope)
            if isinstance(expanded, _Drop):
                continue
            if isinstance(expanded, _Repeated):
                expanded = expanded.items
            result[key] = expanded
        return result
