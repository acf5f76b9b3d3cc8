"""
Macro Expansion
===============
Variable substitution and tokenizing for build-step strings.

Supported references:
    $VAR, ${VAR}  : always
    %VAR%         : only in expand_environment (Windows-style tool homes)
    $$            : a literal "$"

Unknown references are left untouched so a later pass (or the shell on the
node) can still resolve them.
"""
import re
import shlex
from typing import Mapping, Optional

_MACRO_RE = re.compile(r"\$(\$|[A-Za-z0-9_]+|\{[A-Za-z0-9_.]+\})")
_WINDOWS_VAR_RE = re.compile(r"%([A-Za-z0-9_]+)%")
_WHITESPACE_RUN_RE = re.compile(r"[\t\r\n]+")


def replace_macro(text: Optional[str], variables: Mapping[str, str]) -> Optional[str]:
    """
    Replace $VAR and ${VAR} references in ``text`` with values from ``variables``.

    Parameters
    ----------
    text : str | None
        Input string. None is returned unchanged.
    variables : Mapping[str, str]
        Lookup table. Keys not present leave the reference as written.

    Returns
    -------
    str | None
        The expanded string.
    """
    if text is None:
        return None

    def _sub(match: re.Match) -> str:
        key = match.group(1)
        if key == "$":
            return "$"
        if key.startswith("{"):
            key = key[1:-1]
        value = variables.get(key)
        if value is None:
            return match.group(0)
        return str(value)

    return _MACRO_RE.sub(_sub, text)


def expand_environment(text: Optional[str], env: Mapping[str, str]) -> Optional[str]:
    """Expand $VAR, ${VAR} and %VAR% references against an environment."""
    if text is None:
        return None

    def _sub(match: re.Match) -> str:
        value = env.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return replace_macro(_WINDOWS_VAR_RE.sub(_sub, text), env)


def collapse_whitespace(text: str) -> str:
    """Collapse runs of tabs, carriage returns and newlines into one space."""
    return _WHITESPACE_RUN_RE.sub(" ", text)


def tokenize(text: Optional[str]) -> list[str]:
    """
    Split an argument string on whitespace, honouring double and single quotes.

    Backslashes are kept literally so Windows paths survive.
    """
    if not text or not text.strip():
        return []
    lexer = shlex.shlex(text, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    lexer.escape = ""
    try:
        return list(lexer)
    except ValueError:
        # Unbalanced quote: pass the words through as written
        return text.split()
