"""
Query normalization: SQL text -> NormalizedSignature.

Two queries that differ only in literal values normalize to the same
signature, which is what grouping for N+1 and frequency detection relies on:

    SELECT * FROM users WHERE id = 42      -> SELECT * FROM USERS WHERE ID = ?
    SELECT * FROM users WHERE id = 7       -> SELECT * FROM USERS WHERE ID = ?
    SELECT * FROM t WHERE id IN (1, 2, 3)  -> SELECT * FROM T WHERE ID IN (?)

The sqlparse lexer does the work: its token types tell string and numeric
literals apart from identifiers and keywords, so `t0_` or `id_1` never lose
their digits. SQL the lexer cannot tokenize cleanly (an unterminated quote,
for example) goes through a regex pass with the same output contract.
"""

from __future__ import annotations

import logging
import re

from sqlparse import tokens as T
from sqlparse.lexer import tokenize

from querydoctor.analyzer.cache import ContentCache

logger = logging.getLogger(__name__)

PLACEHOLDER = "?"
IN_LIST = "IN (?)"

_STRING_LITERAL = re.compile(r"'(?:[^'\\]|\\.|'')*'", re.DOTALL)
_QUOTED_VALUE = re.compile(r'((?:[=<>]|\bLIKE\b)\s*)"(?:[^"\\]|\\.)*"', re.IGNORECASE)
_NUMBER = re.compile(r"(?<![\w.])-?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?(?![\w.])")
_BOOLEAN = re.compile(r"\b(?:TRUE|FALSE)\b", re.IGNORECASE)
BOOLEAN_LITERALS = frozenset({"TRUE", "FALSE"})
_PARAMETER = re.compile(r"(?<![\w:]):[A-Za-z_]\w*|\$\d+|%s|\?")
_IN_OPEN = re.compile(r"\bIN\s*\(", re.IGNORECASE)
_LINE_COMMENT = re.compile(r"--[^\n]*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)


class _LexerRejected(Exception):
    """The lexer produced error tokens; use the regex pass."""


def _collapse_in_lists(text: str) -> str:
    """Replace every `IN ( ... )` (values or subquery) with `IN (?)`."""
    out: list[str] = []
    pos = 0
    while True:
        match = _IN_OPEN.search(text, pos)
        if match is None:
            out.append(text[pos:])
            break
        out.append(text[pos:match.start()])
        depth = 1
        i = match.end()
        while i < len(text) and depth:
            if text[i] == "(":
                depth += 1
            elif text[i] == ")":
                depth -= 1
            i += 1
        out.append(IN_LIST)
        pos = i
    return "".join(out)


def _collapse(text: str) -> str:
    return " ".join(text.split()).upper()


class QueryNormalizer:
    """
    Maps SQL text to its normalized signature.

    Deterministic and idempotent: normalize(normalize(sql)) == normalize(sql).
    Results are memoized in a bounded ContentCache.

    Example:
        normalizer = QueryNormalizer()
        normalizer.normalize("SELECT * FROM users WHERE email = 'a@b.c'")
        # 'SELECT * FROM USERS WHERE EMAIL = ?'
    """

    def __init__(self, cache: ContentCache[str] | None = None) -> None:
        self.cache: ContentCache[str] = cache if cache is not None else ContentCache()

    def normalize(self, sql: str) -> str:
        if not sql or not sql.strip():
            return ""
        return self.cache.get_or_compute(sql, lambda: self._normalize_uncached(sql))

    __call__ = normalize

    def _normalize_uncached(self, sql: str) -> str:
        try:
            return self.normalize_with_lexer(sql)
        except _LexerRejected:
            logger.debug("Lexer rejected SQL, normalizing with regex: %.80s", sql)
        except Exception as e:
            logger.debug("Lexer failed (%s), normalizing with regex", e)
        return self.normalize_with_regex(sql)

    def normalize_with_lexer(self, sql: str) -> str:
        """Token-stream normalization. Raises if the lexer reports errors."""
        stream = list(tokenize(sql))
        if any(ttype in T.Error for ttype, _ in stream):
            raise _LexerRejected(sql)

        out: list[str] = []
        previous: tuple[object, str] | None = None
        i = 0
        while i < len(stream):
            ttype, value = stream[i]

            if ttype in T.Comment or ttype in T.Whitespace:
                out.append(" ")
                i += 1
                continue

            if ttype in T.Keyword and value.upper() == "IN":
                close = self._matching_paren(stream, i + 1)
                if close is not None:
                    out.append(IN_LIST)
                    previous = (T.Punctuation, ")")
                    i = close + 1
                    continue

            if self._is_value(ttype, value, previous):
                out.append(PLACEHOLDER)
            else:
                out.append(value)
            previous = (ttype, value)
            i += 1

        return _collapse("".join(out))

    @staticmethod
    def _is_value(ttype: object, value: str, previous: tuple[object, str] | None) -> bool:
        if ttype in T.String.Single or ttype in T.Number or ttype in T.Name.Placeholder:
            return True
        if (ttype in T.Keyword or ttype in T.Name) and value.upper() in BOOLEAN_LITERALS:
            return True
        if ttype is T.Literal:
            # Dollar-quoted string
            return True
        if ttype in T.String.Symbol:
            # MySQL allows "value"; only treat it as a value after a comparison
            return previous is not None and previous[0] in T.Operator.Comparison
        return False

    @staticmethod
    def _matching_paren(stream: list[tuple[object, str]], start: int) -> int | None:
        """Index of the ')' closing the '(' that follows start, skipping whitespace."""
        i = start
        while i < len(stream) and (stream[i][0] in T.Whitespace or stream[i][0] in T.Comment):
            i += 1
        if i >= len(stream) or stream[i][1] != "(":
            return None
        depth = 0
        while i < len(stream):
            ttype, value = stream[i]
            if ttype in T.Punctuation:
                if value == "(":
                    depth += 1
                elif value == ")":
                    depth -= 1
                    if depth == 0:
                        return i
            i += 1
        return None

    def normalize_with_regex(self, sql: str) -> str:
        """Regex normalization for SQL the lexer cannot handle."""
        text = _BLOCK_COMMENT.sub(" ", sql)
        text = _STRING_LITERAL.sub(PLACEHOLDER, text)
        text = _LINE_COMMENT.sub(" ", text)
        text = _QUOTED_VALUE.sub(lambda m: m.group(1) + PLACEHOLDER, text)
        text = _PARAMETER.sub(PLACEHOLDER, text)
        text = _NUMBER.sub(PLACEHOLDER, text)
        text = _BOOLEAN.sub(PLACEHOLDER, text)
        text = _collapse_in_lists(text)
        return _collapse(text)
