"""Turn raw statement and expression text into readable diagram labels.

The rewrite is regex based and deliberately shallow: it knows nothing about
expression structure, so deeply nested calls may come out odd. Labels are
display-only and are never written back into the source.
"""

from __future__ import annotations

import re

# Rule 2: print-like calls
_PRINT_RE = re.compile(
    r"^(?:System\.out\.print(?:ln|f)?|console\.(?:log|info|warn|error)|print)\s*\((.*)\)$",
    re.DOTALL,
)

# Rule 3: declaration noise
_TYPE_WORDS = (
    "int", "long", "short", "byte", "float", "double", "boolean", "char",
    "String", "var", "let", "const", "final", "static",
)
_TYPE_RE = re.compile(r"\b(?:" + "|".join(_TYPE_WORDS) + r")\b")
_THIS_RE = re.compile(r"\bthis\.")

# Rule 4: method idioms. Arguments must not contain parentheses.
_OPERAND = r"([\w.\[\]]+)"
_ARG = r"([^()]*)"
_IDIOMS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\.equals(?:IgnoreCase)?\(" + _ARG + r"\)"), r" is equal to \1"),
    (re.compile(r"\.isEmpty\(\)"), " is empty"),
    (re.compile(r"\.(?:contains|includes)\(" + _ARG + r"\)"), r" contains \1"),
    (re.compile(_OPERAND + r"\.(?:size|length)\(\)"), r"size of \1"),
    (re.compile(_OPERAND + r"\.length\b(?!\()"), r"size of \1"),
]

# Rule 5
_LITERALS = {"true": "True", "false": "False", "null": "Null"}
_LITERAL_RE = re.compile(r"\b(true|false|null)\b")

# Rule 6: whole-statement updates only
_INCREMENT_RE = re.compile(r"^(?:" + _OPERAND + r"\s*\+\+|\+\+\s*" + _OPERAND + r")$")
_DECREMENT_RE = re.compile(r"^(?:" + _OPERAND + r"\s*--|--\s*" + _OPERAND + r")$")
_COMPOUND_RE = re.compile(r"^" + _OPERAND + r"\s*([-+*/])=\s*(.+)$", re.DOTALL)
_COMPOUND_VERBS = {
    "+": "increase {} by {}",
    "-": "decrease {} by {}",
    "*": "multiply {} by {}",
    "/": "divide {} by {}",
}

# Rule 7
ASSIGN = ":="
_ASSIGN_RE = re.compile(r"(?<![=!<>:+\-*/%&|^])=(?![=>])")
_COMPARISONS = (
    ("===", " ≡ "),
    ("!==", " ≠ "),
    ("==", " ≡ "),
    ("!=", " ≠ "),
    ("<=", " ≤ "),
    (">=", " ≥ "),
)

# Rule 8
_NOT_RE = re.compile(r"!(?!=)")

_WS_RE = re.compile(r"\s+")


def _rewrite_update(text: str) -> str:
    m = _INCREMENT_RE.match(text)
    if m:
        return "increment " + (m.group(1) or m.group(2))
    m = _DECREMENT_RE.match(text)
    if m:
        return "decrement " + (m.group(1) or m.group(2))
    m = _COMPOUND_RE.match(text)
    if m:
        target, op, amount = m.groups()
        return _COMPOUND_VERBS[op].format(target, amount.strip())
    return text


def naturalize(code: str | None) -> str:
    """Rewrite a statement or expression as a readable label.

    Rules run in a fixed order; later rules see the output of earlier ones.
    The result is a fixed point: naturalizing it again changes nothing.
    """
    if not code:
        return ""
    text = code.strip()
    if text.endswith(";"):
        text = text[:-1].rstrip()

    m = _PRINT_RE.match(text)
    if m:
        text = "Print " + m.group(1).strip()

    text = _THIS_RE.sub("", text)
    text = _TYPE_RE.sub("", text)
    text = _WS_RE.sub(" ", text).strip()

    for pattern, repl in _IDIOMS:
        text = pattern.sub(repl, text)

    text = _LITERAL_RE.sub(lambda m: _LITERALS[m.group(1)], text)

    text = _rewrite_update(text)

    text = _ASSIGN_RE.sub(f" {ASSIGN} ", text)
    for op, symbol in _COMPARISONS:
        text = text.replace(op, symbol)

    text = text.replace("&&", " and ").replace("||", " or ")
    text = _NOT_RE.sub("not ", text)

    return _WS_RE.sub(" ", text).strip()
