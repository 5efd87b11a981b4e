"""
SQL placeholder analysis with a single tokenization pass.

    SQL → Tokenize → Placeholders → Standardize for dialect

Supported placeholder styles:
- positional: ``?``, ``%s`` and numbered ``:1``
- named: ``:name`` and ``%(name)s``

String literals (including PostgreSQL ``$tag$ ... $tag$`` bodies), quoted
identifiers, comments, PostgreSQL ``::`` casts, the PL/SQL ``:=`` operator and
the jsonb ``?|`` and ``?&`` operators are never mistaken for placeholders. A
colon directly after an identifier character or a bracket is not a
placeholder either, so array slices such as ``arr[1:2]`` pass through.

A bare ``?`` outside a literal is always a placeholder; write the jsonb key
operator as ``jsonb_exists(doc, key)`` when the statement also takes binds.
"""
import re
from dataclasses import dataclass
from enum import Enum, auto

__all__ = [
    'TokenType',
    'Token',
    'Placeholder',
    'tokenize_sql',
    'find_placeholders',
    'count_positional',
    'placeholder_names',
    'has_placeholders',
    'standardize_placeholders',
]


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    COMMENT = auto()
    CAST = auto()               # :: or :=
    POSITIONAL_PH = auto()      # %s or ?
    NUMBERED_PH = auto()        # :1
    NAMED_PH = auto()           # :name or %(name)s


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int


@dataclass(slots=True)
class Placeholder:
    """A bind placeholder found in statement text."""
    token: Token
    index: int                      # Position among positional placeholders (-1 for named)
    name: str | None = None         # Name for named placeholders, digits for numbered


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*"|(?<!\w)\$(?P<dtag>(?:[A-Za-z_]\w*)?)\$.*?\$(?P=dtag)\$)
    |(?P<comment>--[^\n]*|/\*.*?\*/)
    |(?P<cast>::|:=)
    |(?P<pyformat>%\((?P<pname>[^)]+)\)s)
    |(?P<percent_s>%s)
    |(?P<jsonb_op>\?[|&])
    |(?P<qmark>\?)
    |(?P<numbered>(?<![\w\]\[]):(?P<num>\d+))
    |(?P<named>(?<![\w\]\[]):(?P<cname>[A-Za-z_][A-Za-z0-9_$#]*))
""", re.VERBOSE | re.DOTALL)

_HAS_PLACEHOLDER = re.compile(r'%s|\?|%\([^)]+\)s|(?<!:):[A-Za-z0-9_]')

_LONE_PERCENT = re.compile(r'(?<!%)%(?!%)')


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL statement text

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('comment'):
            ttype = TokenType.COMMENT
        elif match.group('cast'):
            ttype = TokenType.CAST
        elif match.group('pyformat') or match.group('named'):
            ttype = TokenType.NAMED_PH
        elif match.group('jsonb_op'):
            ttype = TokenType.SQL_TEXT
        elif match.group('percent_s') or match.group('qmark'):
            ttype = TokenType.POSITIONAL_PH
        elif match.group('numbered'):
            ttype = TokenType.NUMBERED_PH
        else:
            continue

        tokens.append(Token(ttype, match.group(0), start, end))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def _placeholder_name(token: Token) -> str:
    if token.text.startswith('%('):
        return token.text[2:-2]
    return token.text[1:]


def find_placeholders(sql: str) -> list[Placeholder]:
    """Return the placeholders of a statement in text order.
    """
    placeholders = []
    positional_index = 0
    for token in tokenize_sql(sql):
        if token.type == TokenType.POSITIONAL_PH:
            placeholders.append(Placeholder(token, positional_index))
            positional_index += 1
        elif token.type == TokenType.NUMBERED_PH:
            placeholders.append(Placeholder(token, positional_index, _placeholder_name(token)))
            positional_index += 1
        elif token.type == TokenType.NAMED_PH:
            placeholders.append(Placeholder(token, -1, _placeholder_name(token)))
    return placeholders


def count_positional(sql: str) -> int:
    """Count positional placeholders (``?``, ``%s``, ``:1``) outside literals.

    Repeated numbered placeholders (``:1 ... :1``) refer to one bind value.
    """
    count = 0
    numbers = set()
    for ph in find_placeholders(sql):
        if ph.token.type == TokenType.POSITIONAL_PH:
            count += 1
        elif ph.token.type == TokenType.NUMBERED_PH:
            numbers.add(int(ph.name))
    return count + (max(numbers) if numbers else 0)


def placeholder_names(sql: str) -> list[str]:
    """Distinct named placeholders in order of first appearance."""
    names: list[str] = []
    for ph in find_placeholders(sql):
        if ph.index == -1 and ph.name not in names:
            names.append(ph.name)
    return names


def has_placeholders(sql: str | None) -> bool:
    """Check if SQL has any parameter placeholders.
    """
    if not sql:
        return False
    if not _HAS_PLACEHOLDER.search(sql):
        return False
    return bool(find_placeholders(sql))


def standardize_placeholders(sql: str, dialect: str = 'postgresql') -> str:
    """Rewrite placeholders into the paramstyle of the dialect's driver.

    - sqlite: ``%s`` → ``?``, ``%(name)s`` → ``:name``
    - postgresql: ``?`` → ``%s``, ``:name`` → ``%(name)s``
    - oracle: ``?``/``%s`` → ``:1``, ``:2`` ..., ``%(name)s`` → ``:name``

    Literal ``%`` in SQL text is doubled for the pyformat driver (psycopg)
    when placeholders are present.

    Parameters
        sql: SQL statement text
        dialect: Database dialect

    Returns
        SQL with standardized placeholders
    """
    if not sql or not has_placeholders(sql):
        return sql

    result = []
    positional = 0
    for token in tokenize_sql(sql):
        if token.type == TokenType.POSITIONAL_PH:
            positional += 1
            if dialect == 'sqlite':
                result.append('?')
            elif dialect == 'postgresql':
                result.append('%s')
            elif dialect == 'oracle':
                result.append(f':{positional}')
            else:
                result.append(token.text)
        elif token.type == TokenType.NAMED_PH:
            name = _placeholder_name(token)
            if dialect == 'postgresql':
                result.append(f'%({name})s')
            elif dialect in {'sqlite', 'oracle'}:
                result.append(f':{name}')
            else:
                result.append(token.text)
        elif dialect == 'postgresql' and token.type in {TokenType.SQL_TEXT, TokenType.STRING_LITERAL}:
            result.append(_LONE_PERCENT.sub('%%', token.text) if '%' in token.text else token.text)
        else:
            result.append(token.text)
    return ''.join(result)
