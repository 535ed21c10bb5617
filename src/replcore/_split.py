"""Split Python source into top-level fragments for replay."""

import io
import logging
import tokenize

logger = logging.getLogger(__name__)

# Clauses that continue the compound statement before them.
_CONTINUATIONS = frozenset({"else", "elif", "except", "finally"})
_SKIPPED = frozenset({tokenize.NL, tokenize.COMMENT, tokenize.ENCODING, tokenize.ENDMARKER})


def _fragment_starts(source: str) -> list[int]:
    """Zero-based line numbers where a new top-level fragment begins."""
    starts: list[int] = []
    depth = 0
    at_line_start = True
    after_decorator = False

    try:
        for token in tokenize.generate_tokens(io.StringIO(source).readline):
            if token.type == tokenize.INDENT:
                depth += 1
            elif token.type == tokenize.DEDENT:
                depth -= 1
            elif token.type == tokenize.NEWLINE:
                at_line_start = True
            elif token.type not in _SKIPPED and at_line_start:
                at_line_start = False
                if depth == 0 and not after_decorator and token.string not in _CONTINUATIONS:
                    starts.append(token.start[0] - 1)
                if depth == 0:
                    after_decorator = token.string == "@"
    except (tokenize.TokenError, SyntaxError) as e:
        # The rest of the source becomes part of the last fragment and fails there.
        logger.debug("Stopped splitting at a tokenizer error: %s", e)

    return starts


def split_fragments(source: str) -> list[str]:
    """Split source text into the fragments a session would receive one by one.

    A fragment starts at every top-level logical line, except that
    ``else``/``elif``/``except``/``finally`` clauses stay with their statement and
    decorators stay with the definition they decorate. Comment lines between
    fragments belong to the preceding fragment.

    Args:
        source: Python source text.

    Returns:
        Fragment texts in source order, without trailing whitespace.

    """
    lines = source.splitlines(keepends=True)
    starts = _fragment_starts(source)
    bounds = [*starts, len(lines)]
    fragments = ["".join(lines[begin:end]).rstrip() for begin, end in zip(bounds, bounds[1:], strict=False)]
    return [fragment for fragment in fragments if fragment]


def has_code(text: str) -> bool:
    """Check whether text contains anything besides whitespace and comments."""
    try:
        return any(
            token.type not in _SKIPPED and token.type != tokenize.NEWLINE
            for token in tokenize.generate_tokens(io.StringIO(text).readline)
        )
    except (tokenize.TokenError, SyntaxError):
        # Malformed input still has content for the compiler to reject.
        return True
