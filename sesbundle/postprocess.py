"""Postprocessing of bundler output so it can be evaluated inside SES.

The bundle is rewritten with an ordered chain of regular-expression
substitutions, then wrapped in a zero-argument arrow function and patched for
a few globals the sandbox does not provide.

Pipeline
--------
1. Trim whitespace and any byte-order mark; optionally strip comments (must
   come first so commented out code is never matched as code).
2. REWRITE_RULES, in order:
   - ``.import(``            -> ``["import"](``
   - ``a.b.eval(x)``         -> ``(1, a.b.eval)(x)``
   - ``eval(x)``             -> ``(1, eval)(x)``
   - ``<!--`` / ``-->``      -> ``< !--`` / ``-- >``
   - ``(function (Buffer){`` -> ``(function (){``
3. Empty result raises EmptyBundleError.
4. Wrap as ``() => (...)``.
5. Global patches (regeneratorRuntime, self, stdlib., setImmediate).

Limitations
-----------
This works on text, not on a syntax tree:

- the eval rules cannot see through nested parentheses, and also rewrite
  ``eval(`` found inside string literals or (when comments are kept) inside
  comments;
- the ``self`` and ``stdlib.`` patches are blind substring replacements, so
  ``"myself"`` becomes ``"mywindow"``.

Both behaviours are kept as-is because existing bundles depend on the exact
output.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from sesbundle.comments import strip_comments
from sesbundle.core.errors import EmptyBundleError
from sesbundle.core.models import PostProcessOptions


class RewriteRule(NamedTuple):
    """One named substitution in the rewrite chain."""

    name: str
    pattern: re.Pattern[str]
    replacement: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


# re.ASCII keeps \w and \b aligned with JavaScript regex semantics.
DYNAMIC_IMPORT = RewriteRule(
    "dynamic-import",
    re.compile(r"\.import\("),
    '["import"](',
)

MEMBER_EVAL = RewriteRule(
    "member-eval",
    re.compile(r"((?:\b[\w\d]*[\]\)]?\.)+eval)(\([^)]*\))", re.ASCII),
    r"(1, \1)\2",
)

# Must run after MEMBER_EVAL, otherwise "a.eval(x)" becomes "a.(1, eval)(x)".
BARE_EVAL = RewriteRule(
    "bare-eval",
    re.compile(r"(\b)(eval)(\([^)]*\))", re.ASCII),
    r"\1(1, \2)\3",
)

HTML_COMMENT_OPEN = RewriteRule(
    "html-comment-open",
    re.compile(r"<!--"),
    "< !--",
)

HTML_COMMENT_CLOSE = RewriteRule(
    "html-comment-close",
    re.compile(r"-->"),
    "-- >",
)

BUFFER_ARGUMENT = RewriteRule(
    "buffer-argument",
    re.compile(r"^\(function \(Buffer\)\{(\r?)$", re.MULTILINE),
    r"(function (){\1",
)

REWRITE_RULES: tuple[RewriteRule, ...] = (
    DYNAMIC_IMPORT,
    MEMBER_EVAL,
    BARE_EVAL,
    HTML_COMMENT_OPEN,
    HTML_COMMENT_CLOSE,
    BUFFER_ARGUMENT,
)

REGENERATOR_DECLARATION = "var regeneratorRuntime;\n"

# whitespace plus the byte-order mark, which str.strip() leaves in place
_SURROUNDING_WHITESPACE = re.compile(r"^[\s\ufeff]+|[\s\ufeff]+\Z")

# polkadot schedules its result callback with setImmediate, which SES lacks
SET_IMMEDIATE_CALLBACK = "setImmediate(() => resultCb(result))"


def rewrite_dynamic_import(text: str) -> str:
    """Convert ``.import(`` into indexed form, ``["import"](``."""
    return DYNAMIC_IMPORT.apply(text)


def make_eval_indirect(text: str) -> str:
    """Turn every direct eval call into an indirect one.

    Member calls go first: ``stuff.eval(x)`` becomes ``(1, stuff.eval)(x)``,
    then bare calls: ``eval(x)`` becomes ``(1, eval)(x)``.
    """
    return BARE_EVAL.apply(MEMBER_EVAL.apply(text))


def escape_html_comments(text: str) -> str:
    """Space out ``<!--`` and ``-->`` which SES rejects as HTML comments.

    Idempotent: the inserted space breaks the original token.
    """
    return HTML_COMMENT_CLOSE.apply(HTML_COMMENT_OPEN.apply(text))


def remove_buffer_argument(text: str) -> str:
    """Drop the ``Buffer`` parameter browserify injects into module wrappers.

    Buffer is passed to the sandbox as an endowment; a parameter of the same
    name would shadow it with undefined.
    """
    return BUFFER_ARGUMENT.apply(text)


def wrap_bundle(text: str) -> str:
    """Wrap bundle contents in an anonymous zero-argument arrow function.

    A single trailing semicolon is dropped first. Text that already starts
    with "(" and ends with ")" is used as the arrow body directly.
    """
    if text.endswith(";"):
        text = text[:-1]
    if text.startswith("(") and text.endswith(")"):
        return "() => " + text
    return "() => (\n" + text + "\n)"


def apply_global_patches(text: str) -> str:
    """Patch globals that SES does not provide.

    - Declares ``regeneratorRuntime`` when Babel output references it
    - Maps ``self`` to ``window``
    - Flattens filecoin's ``stdlib.`` namespace
    - Makes polkadot's setImmediate result callback synchronous (first match only)
    """
    if "regeneratorRuntime" in text:
        text = REGENERATOR_DECLARATION + text

    text = text.replace("self", "window")
    text = text.replace("stdlib.", "")
    text = text.replace(SET_IMMEDIATE_CALLBACK, "resultCb(result)", 1)
    return text


def postprocess(text: str | None, options: PostProcessOptions | None = None) -> str | None:
    """Postprocess a bundle string so that it can be evaluated in SES.

    Args:
        text: Raw bundler output. Anything that is not a str (the bundler
            produced nothing) short-circuits to None.
        options: PostProcessOptions; defaults keep comments.

    Returns:
        str | None: The wrapped, patched bundle, or None for non-str input

    Raises:
        EmptyBundleError: If nothing is left after the rewrite chain

    Examples:
        >>> postprocess("foo.eval(bar)")
        '() => (1, foo.eval)(bar)'
        >>> postprocess("doStuff();")
        '() => (\\ndoStuff()\\n)'
        >>> postprocess("(a,b)")
        '() => (a,b)'
    """
    if not isinstance(text, str):
        return None

    options = options or PostProcessOptions()

    text = _SURROUNDING_WHITESPACE.sub("", text)

    if options.strip_comments:
        text = strip_comments(text)

    for rule in REWRITE_RULES:
        text = rule.apply(text)

    if len(text) == 0:
        raise EmptyBundleError("Bundled code is empty after postprocessing.")

    text = wrap_bundle(text)
    return apply_global_patches(text)
