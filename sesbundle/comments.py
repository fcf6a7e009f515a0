"""Comment removal for JavaScript bundle text.

Deletes ``// ...`` line comments and ``/* ... */`` block comments while
leaving string, template and regular-expression literals untouched. This is
a character scanner, not a parser: it tracks just enough context to tell a
``/`` that opens a comment or regex from a division operator.

A ``/`` opens a regex only where an operand is expected. Identifiers,
numbers, literals, ``]`` and postfix ``++``/``--`` end an operand; a ``)``
ends one too unless it closes an ``if``, ``while``, ``for`` or ``with``
header.
"""

from __future__ import annotations

import re

_IDENTIFIER = re.compile(r"[A-Za-z0-9_$]+")

# After these tokens a "/" starts a regular expression literal, not a division.
_REGEX_PRECEDERS = frozenset("(,=:[!&|?{};+-*/%<>~^")
_REGEX_KEYWORDS = frozenset({
    "await", "case", "delete", "do", "else", "in", "instanceof",
    "new", "of", "return", "throw", "typeof", "void", "yield",
})
# A ")" closing the header of one of these starts a statement, not an operand.
_CONTROL_KEYWORDS = frozenset({"if", "while", "for", "with"})


def _skip_string(source: str, start: int, quote: str) -> int:
    """Return the index just past the string literal opened at ``start``.

    Unterminated literals end at the first raw newline (or end of input).
    """
    i = start + 1
    n = len(source)
    while i < n:
        ch = source[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n":
            return i
        i += 1
    return n


def _scan_template(source: str, start: int) -> tuple[int, bool]:
    """Scan template literal text starting at ``start`` (inside the backticks).

    Returns:
        (index, entered_expression): index just past the closing backtick with
        False, or just past a ``${`` with True.
    """
    i = start
    n = len(source)
    while i < n:
        ch = source[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "`":
            return i + 1, False
        if ch == "$" and source.startswith("{", i + 1):
            return i + 2, True
        i += 1
    return n, False


def _skip_regex(source: str, start: int) -> int | None:
    """Return the index past the regex literal opened at ``start``, flags included.

    Returns None when no closing slash occurs on the same line, in which case
    the slash was a division after all.
    """
    i = start + 1
    n = len(source)
    in_class = False
    while i < n:
        ch = source[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "\n":
            return None
        if in_class:
            if ch == "]":
                in_class = False
        elif ch == "[":
            in_class = True
        elif ch == "/":
            i += 1
            match = _IDENTIFIER.match(source, i)
            return match.end() if match else i
        i += 1
    return None


def strip_comments(source: str) -> str:
    """Remove all JavaScript comments from ``source``.

    Line comments are removed up to, but not including, their newline.
    An unterminated block comment swallows the rest of the input.

    Args:
        source: JavaScript-like source text

    Returns:
        str: The source with comment text deleted

    Examples:
        >>> strip_comments("a = 1; // one\\nb = '//not a comment';")
        "a = 1; \\nb = '//not a comment';"
    """
    out: list[str] = []
    n = len(source)
    i = 0
    # True while the scanner expects an operand, where "/" opens a regex
    regex_ok = True
    last_word = ""
    brace_depth = 0
    template_stack: list[int] = []
    # one entry per open "(": whether it belongs to an if/while/for/with header
    paren_stack: list[bool] = []

    while i < n:
        ch = source[i]
        nxt = source[i + 1] if i + 1 < n else ""

        if ch == "/" and nxt == "/":
            end = source.find("\n", i)
            if end == -1:
                break
            i = end
            continue

        if ch == "/" and nxt == "*":
            end = source.find("*/", i + 2)
            if end == -1:
                break
            i = end + 2
            continue

        if ch.isspace():
            out.append(ch)
            i += 1
            continue

        word = last_word
        last_word = ""

        if ch in "'\"":
            end = _skip_string(source, i, ch)
            out.append(source[i:end])
            regex_ok = False
            i = end
            continue

        if ch == "`":
            end, entered = _scan_template(source, i + 1)
            out.append(source[i:end])
            if entered:
                template_stack.append(brace_depth)
                brace_depth += 1
            regex_ok = entered
            i = end
            continue

        if ch == "/" and regex_ok:
            end = _skip_regex(source, i)
            if end is not None:
                out.append(source[i:end])
                regex_ok = False
                i = end
                continue

        if ch == "}":
            brace_depth -= 1
            if template_stack and brace_depth == template_stack[-1]:
                template_stack.pop()
                end, entered = _scan_template(source, i + 1)
                out.append(source[i:end])
                if entered:
                    template_stack.append(brace_depth)
                    brace_depth += 1
                regex_ok = entered
                i = end
                continue
            out.append(ch)
            regex_ok = True
            i += 1
            continue

        match = _IDENTIFIER.match(source, i)
        if match:
            last_word = match.group()
            out.append(last_word)
            regex_ok = last_word in _REGEX_KEYWORDS
            i = match.end()
            continue

        if ch in "+-" and nxt == ch:
            # prefix keeps expecting an operand, postfix ends one
            out.append(source[i:i + 2])
            i += 2
            continue

        if ch == "{":
            brace_depth += 1
        elif ch == "(":
            paren_stack.append(word in _CONTROL_KEYWORDS)
        elif ch == ")":
            out.append(ch)
            regex_ok = paren_stack.pop() if paren_stack else False
            i += 1
            continue

        out.append(ch)
        regex_ok = ch in _REGEX_PRECEDERS
        i += 1

    return "".join(out)
