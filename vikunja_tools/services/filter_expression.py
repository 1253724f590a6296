"""Client-side evaluator for Vikunja filter expressions.

Grammar:
    expression := conjunction ("||" conjunction)*
    conjunction := term ("&&" term)*
    term := "(" expression ")" | field operator value

Operators: = != > >= < <= like in "not in". Values are numbers, true/false,
quoted or bare strings, dates (2025-01-31 or full ISO 8601), "now" with an
optional offset (now+7d, now-1w) and comma-separated lists for in/not in.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Union

from vikunja_tools.models.task import Task
from vikunja_tools.utils.errors import FilterSyntaxError

FILTER_EXAMPLE = "done = false && priority >= 3"

# lower-cased spelling -> Task attribute
FIELD_ALIASES = {
    "done": "done",
    "priority": "priority",
    "percentdone": "percent_done",
    "percent_done": "percent_done",
    "duedate": "due_date",
    "due_date": "due_date",
    "startdate": "start_date",
    "start_date": "start_date",
    "enddate": "end_date",
    "end_date": "end_date",
    "doneat": "done_at",
    "done_at": "done_at",
    "created": "created",
    "updated": "updated",
    "assignees": "assignees",
    "labels": "labels",
    "project": "project_id",
    "project_id": "project_id",
    "projectid": "project_id",
    "title": "title",
    "description": "description",
}
BOOLEAN_FIELDS = {"done"}
INTEGER_FIELDS = {"priority", "project_id"}
FLOAT_FIELDS = {"percent_done"}
DATE_FIELDS = {"due_date", "start_date", "end_date", "done_at", "created", "updated"}
SET_FIELDS = {"assignees", "labels"}
TEXT_FIELDS = {"title", "description"}
# The server cannot filter on these
CLIENT_ONLY_FIELDS = TEXT_FIELDS

OPERATORS = ("=", "!=", ">", ">=", "<", "<=", "like", "in", "not in")
ORDERING_OPERATORS = {">", ">=", "<", "<="}

NOW_OFFSET_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "M": timedelta(days=30),
    "y": timedelta(days=365),
}
NOW_PATTERN = re.compile(r"^now(?:([+-])(\d+)([smhdwMy]))?$")
DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

TOKEN_PATTERN = re.compile(
    r"""\s*(?:
        (?P<lparen>\()
      | (?P<rparen>\))
      | (?P<and>&&)
      | (?P<or>\|\|)
      | (?P<op>>=|<=|!=|=|>|<)
      | (?P<string>"[^"]*"|'[^']*')
      | (?P<word>[^\s()&|<>=!"']+)
    )""",
    re.VERBOSE,
)


@dataclass
class Token:
    kind: str
    text: str
    position: int


def _syntax_error(expression: str, reason: str, position: Optional[int] = None) -> FilterSyntaxError:
    where = f" at position {position}" if position is not None else ""
    return FilterSyntaxError(
        f"Invalid filter expression{where}: {reason}. Example: {FILTER_EXAMPLE}",
        details={"field": "filter", "filter": expression, "position": position, "example": FILTER_EXAMPLE},
    )


def tokenize(expression: str) -> list[Token]:
    tokens = []
    position = 0
    stripped_end = len(expression.rstrip())
    while position < stripped_end:
        match = TOKEN_PATTERN.match(expression, position)
        if not match or match.end() == position:
            raise _syntax_error(expression, f"unexpected character {expression[position]!r}", position)
        kind = match.lastgroup
        text = match.group(kind)
        tokens.append(Token(kind, text, match.start(kind)))
        position = match.end()
    return tokens


# Nodes

@dataclass
class Comparison:
    field: str
    operator: str
    values: list[Any]
    date_only: bool = False

    def matches(self, task: Task) -> bool:
        actual = getattr(task, self.field)
        if self.field in SET_FIELDS:
            return self._matches_set(actual)
        if self.operator in ("in", "not in"):
            found = any(_equal(actual, value, self.date_only) for value in self.values)
            return found if self.operator == "in" else not found

        expected = self.values[0]
        if self.operator == "like":
            return actual is not None and str(expected).lower() in str(actual).lower()
        if self.operator == "=":
            return _equal(actual, expected, self.date_only)
        if self.operator == "!=":
            return not _equal(actual, expected, self.date_only)
        if actual is None:
            return False
        if self.date_only:
            actual = actual.date()
            expected = expected.date()
        if self.operator == ">":
            return actual > expected
        if self.operator == ">=":
            return actual >= expected
        if self.operator == "<":
            return actual < expected
        return actual <= expected

    def _matches_set(self, members: list) -> bool:
        found = any(_member_matches(member, value) for member in members for value in self.values)
        if self.operator in ("=", "in", "like"):
            return found
        return not found


@dataclass
class Conjunction:
    terms: list["Node"]

    def matches(self, task: Task) -> bool:
        return all(term.matches(task) for term in self.terms)


@dataclass
class Disjunction:
    terms: list["Node"]

    def matches(self, task: Task) -> bool:
        return any(term.matches(task) for term in self.terms)


Node = Union[Comparison, Conjunction, Disjunction]


def _equal(actual: Any, expected: Any, date_only: bool) -> bool:
    if actual is None:
        return False
    if date_only and isinstance(actual, datetime):
        return actual.date() == expected.date()
    if isinstance(actual, str) and isinstance(expected, str):
        return actual.lower() == expected.lower()
    return actual == expected


def _member_matches(member: Any, value: Any) -> bool:
    """Assignees/labels match by id, or by username/title when given a name."""
    if isinstance(value, int):
        return member.id == value
    name = str(value).lower()
    candidates = (getattr(member, "title", ""), getattr(member, "username", ""), getattr(member, "name", ""))
    return any(candidate and candidate.lower() == name for candidate in candidates)


@dataclass
class FilterExpression:
    """Parsed expression; evaluate with matches(task)."""
    source: str
    root: Node
    fields: frozenset[str] = field(default_factory=frozenset)

    @property
    def requires_client_side(self) -> bool:
        """True when the expression uses a field the server cannot filter on."""
        return bool(self.fields & CLIENT_ONLY_FIELDS)

    def matches(self, task: Task) -> bool:
        return self.root.matches(task)

    def apply(self, tasks: list[Task]) -> list[Task]:
        return [task for task in tasks if self.matches(task)]


class _Parser:
    def __init__(self, expression: str, now: datetime):
        self.expression = expression
        self.tokens = tokenize(expression)
        self.index = 0
        self.now = now
        self.fields: set[str] = set()

    def peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise _syntax_error(self.expression, "unexpected end of expression")
        self.index += 1
        return token

    def parse(self) -> Node:
        if not self.tokens:
            raise _syntax_error(self.expression, "expression is empty")
        node = self.parse_disjunction()
        token = self.peek()
        if token is not None:
            raise _syntax_error(self.expression, f"unexpected {token.text!r}", token.position)
        return node

    def parse_disjunction(self) -> Node:
        terms = [self.parse_conjunction()]
        while self.peek() is not None and self.peek().kind == "or":
            self.advance()
            terms.append(self.parse_conjunction())
        return terms[0] if len(terms) == 1 else Disjunction(terms)

    def parse_conjunction(self) -> Node:
        terms = [self.parse_term()]
        while self.peek() is not None and self.peek().kind == "and":
            self.advance()
            terms.append(self.parse_term())
        return terms[0] if len(terms) == 1 else Conjunction(terms)

    def parse_term(self) -> Node:
        token = self.advance()
        if token.kind == "lparen":
            node = self.parse_disjunction()
            closing = self.peek()
            if closing is None or closing.kind != "rparen":
                raise _syntax_error(self.expression, "missing closing parenthesis", token.position)
            self.advance()
            return node
        if token.kind != "word":
            raise _syntax_error(self.expression, f"expected a field name, got {token.text!r}", token.position)
        return self.parse_comparison(token)

    def parse_comparison(self, field_token: Token) -> Comparison:
        field_name = FIELD_ALIASES.get(field_token.text.lower())
        if field_name is None:
            known = "done, priority, percentDone, dueDate, startDate, endDate, doneAt, created, updated, assignees, labels, project, title, description"
            raise _syntax_error(
                self.expression, f"unknown field {field_token.text!r} (known fields: {known})", field_token.position
            )
        self.fields.add(field_name)

        operator = self.parse_operator()
        if operator in ORDERING_OPERATORS and field_name in SET_FIELDS | BOOLEAN_FIELDS:
            raise _syntax_error(
                self.expression, f"operator {operator!r} cannot be used with {field_token.text}", field_token.position
            )

        raw_values = self.parse_values(list_allowed=operator in ("in", "not in"))
        date_only = field_name in DATE_FIELDS and all(DATE_ONLY_PATTERN.match(raw) for raw in raw_values)
        values = [self.convert(field_name, raw, field_token) for raw in raw_values]
        return Comparison(field_name, operator, values, date_only)

    def parse_operator(self) -> str:
        token = self.advance()
        if token.kind == "op":
            return token.text
        if token.kind == "word":
            word = token.text.lower()
            if word in ("like", "in"):
                return word
            if word == "not":
                following = self.advance()
                if following.kind == "word" and following.text.lower() == "in":
                    return "not in"
        raise _syntax_error(
            self.expression, f"expected an operator ({', '.join(OPERATORS)}), got {token.text!r}", token.position
        )

    def parse_values(self, list_allowed: bool) -> list[str]:
        token = self.advance()
        if token.kind not in ("word", "string"):
            raise _syntax_error(self.expression, f"expected a value, got {token.text!r}", token.position)
        if not list_allowed:
            return [_unquote(token)]

        # "1,2,3", "1, 2, 3" and quoted members are all accepted
        pieces = [_unquote(token)] if token.kind == "string" else [token.text]
        continues = token.kind == "word" and token.text.endswith(",")
        while True:
            nxt = self.peek()
            if nxt is None or nxt.kind not in ("word", "string"):
                break
            if not continues and not (nxt.kind == "word" and nxt.text.startswith(",")):
                break
            self.advance()
            pieces.append(_unquote(nxt) if nxt.kind == "string" else nxt.text)
            continues = nxt.kind == "word" and nxt.text.endswith(",")
        values = []
        for piece in pieces:
            values.extend(part.strip() for part in piece.split(",") if part.strip())
        if not values:
            raise _syntax_error(self.expression, "empty value list", token.position)
        return values

    def convert(self, field_name: str, raw: str, field_token: Token) -> Any:
        try:
            if field_name in BOOLEAN_FIELDS:
                if raw.lower() not in ("true", "false"):
                    raise ValueError(f"{raw!r} is not true or false")
                return raw.lower() == "true"
            if field_name in INTEGER_FIELDS:
                return int(raw)
            if field_name in FLOAT_FIELDS:
                return float(raw)
            if field_name in DATE_FIELDS:
                return parse_filter_date(raw, self.now)
            if field_name in SET_FIELDS:
                return int(raw) if raw.isdigit() else raw
            return raw
        except ValueError as e:
            raise _syntax_error(
                self.expression, f"invalid value for {field_token.text}: {e}", field_token.position
            ) from e


def _unquote(token: Token) -> str:
    return token.text[1:-1] if token.kind == "string" else token.text


def parse_filter_date(raw: str, now: Optional[datetime] = None) -> datetime:
    """Parse now[+-N unit], YYYY-MM-DD or full ISO 8601 into an aware datetime."""
    now = now or datetime.now(timezone.utc)
    relative = NOW_PATTERN.match(raw)
    if relative:
        sign, amount, unit = relative.groups()
        if not sign:
            return now
        offset = NOW_OFFSET_UNITS[unit] * int(amount)
        return now + offset if sign == "+" else now - offset
    if DATE_ONLY_PATTERN.match(raw):
        day = date.fromisoformat(raw)
        return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"{raw!r} is not a date (use 2025-01-31, 2025-01-31T12:00:00.000Z or now+7d)")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_filter(expression: str, now: Optional[datetime] = None) -> FilterExpression:
    """Parse expression, raising FilterSyntaxError with an example on failure."""
    if expression is None or not expression.strip():
        raise _syntax_error(expression or "", "expression is empty")
    parser = _Parser(expression, now or datetime.now(timezone.utc))
    root = parser.parse()
    return FilterExpression(source=expression, root=root, fields=frozenset(parser.fields))
