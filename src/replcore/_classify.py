"""Syntactic classification of raw input into fragments.

Classification never compiles anything. Each check is a regular expression
over the raw text and the first match wins, in this order:

1. import statements
2. class declarations
3. function definitions
4. annotated assignments (``name: T = value``)
5. plain assignments (``name = value``)
6. anything else is an expression

Annotated assignments must be tried before plain ones: a plain assignment
pattern that tolerated an annotation would swallow them.
"""

import keyword
import logging
import re

from ._fragments import (
    Binding,
    Expression,
    Fragment,
    FunctionDefinition,
    Import,
    TypedBinding,
    TypeDeclaration,
)

logger = logging.getLogger(__name__)

_NAME = r"[A-Za-z_]\w*"
_DOTTED = rf"{_NAME}(?:\.{_NAME})*"
_MODULE_ALIAS = rf"{_DOTTED}(?:\s+as\s+{_NAME})?"
_NAME_ALIAS = rf"{_NAME}(?:\s+as\s+{_NAME})?"
_NAME_ALIASES = rf"{_NAME_ALIAS}(?:\s*,\s*{_NAME_ALIAS})*"
_NAME_ALIASES_INLINE = _NAME_ALIASES.replace(r"\s", r"[ \t]")
_IMPORT_STATEMENT = (
    rf"(?:import[ \t]+{_MODULE_ALIAS}(?:[ \t]*,[ \t]*{_MODULE_ALIAS})*"
    rf"|from[ \t]+(?:\.*{_DOTTED}|\.+)[ \t]+import[ \t]+"
    rf"(?:\*|{_NAME_ALIASES_INLINE}|\(\s*{_NAME_ALIASES}\s*,?\s*\)))"
)
_COMMENT = r"(?:[ \t]*#[^\n]*)?"
_COMMENT_LINES = r"(?:\s*#[^\n]*)*"
_DECORATORS = r"(?:[ \t]*@[^\n]*\n)*"

_IMPORT_PATTERN = re.compile(
    rf"{_COMMENT_LINES}\s*{_IMPORT_STATEMENT}{_COMMENT}"
    rf"(?:[ \t]*(?:;|\n)\s*{_IMPORT_STATEMENT}{_COMMENT})*[ \t]*;?{_COMMENT_LINES}\s*",
)
_TYPE_PATTERN = re.compile(rf"\s*{_DECORATORS}[ \t]*class[ \t]+(?P<name>{_NAME})[ \t]*[(:\[]")
_FUNCTION_PATTERN = re.compile(rf"\s*{_DECORATORS}[ \t]*(?:async[ \t]+)?def[ \t]+(?P<name>{_NAME})[ \t]*[(\[]")
_TYPED_BINDING_PATTERN = re.compile(
    rf"\s*(?P<name>{_NAME})[ \t]*:[ \t]*(?P<type>[^=\n]*[^=\s])[ \t]*=(?!=)\s*(?P<value>\S.*?)\s*",
    re.DOTALL,
)
_BINDING_PATTERN = re.compile(rf"\s*(?P<name>{_NAME})[ \t]*=(?!=)\s*(?P<value>\S.*?)\s*", re.DOTALL)


def is_valid_import(text: str) -> bool:
    return _IMPORT_PATTERN.fullmatch(text) is not None


def _match_name(pattern: re.Pattern[str], text: str) -> re.Match[str] | None:
    match = pattern.match(text)
    if match is None or keyword.iskeyword(match.group("name")):
        return None
    return match


def classify(text: str) -> Fragment:
    """Classify raw input text into a fragment.

    Args:
        text: The raw fragment text, kept verbatim on the returned fragment.

    Returns:
        The fragment variant matching the first applicable syntactic check.

    """
    fragment: Fragment
    if is_valid_import(text):
        fragment = Import(source=text)
    elif (match := _match_name(_TYPE_PATTERN, text)) is not None:
        fragment = TypeDeclaration(source=text, type_name=match.group("name"))
    elif (match := _match_name(_FUNCTION_PATTERN, text)) is not None:
        fragment = FunctionDefinition(source=text, name=match.group("name"))
    elif (match := _TYPED_BINDING_PATTERN.fullmatch(text)) is not None and not keyword.iskeyword(match["name"]):
        fragment = TypedBinding(
            source=text,
            name=match.group("name"),
            declared_type=match.group("type").strip(),
            value=match.group("value"),
        )
    elif (match := _BINDING_PATTERN.fullmatch(text)) is not None and not keyword.iskeyword(match["name"]):
        fragment = Binding(source=text, name=match.group("name"), value=match.group("value"))
    else:
        fragment = Expression(source=text)

    logger.debug("Classified %r as %s", text, fragment.kind)
    return fragment
