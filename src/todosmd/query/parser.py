"""
Query string parsing.

Grammar:

    query   := or
    or      := and ( "|" and )*          "OR" / "or" are synonyms for "|"
    and     := primary+
    primary := FILTER | "(" or ")"
    FILTER  := key:value token, both sides non-empty

AND binds tighter than OR. The parse tree is flattened into disjunctive
normal form: a list of filter groups, each an AND-list of raw ``key:value``
tokens. A task matches the query when any group matches.

    parse_query_to_filter_groups("(a:1 | a:2) b:3")
        → [["a:1", "b:3"], ["a:2", "b:3"]]
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from todosmd.errors import QuerySyntaxError

MAX_FILTER_GROUPS = 256
MAX_NESTING_DEPTH = 64

_OPERATORS = ("(", ")", "|")
_OPERATOR_SPLIT_RE = re.compile(r"([()|])")


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

def is_filter_token(token: str) -> bool:
    key, sep, value = token.partition(":")
    return bool(sep and key and value)


def tokenize_query(query: Union[str, List[str]]) -> List[str]:
    """
    Split a query into operator and filter tokens.

    A string is split on whitespace. A list is taken as already-split words,
    so an element like ``"text:two words"`` keeps its space. In both cases
    parentheses and ``|`` are separated from whatever they touch, and words
    that are neither operators nor ``key:value`` filters are dropped.
    """
    words = query.split() if isinstance(query, str) else list(query)

    tokens: List[str] = []
    for word in words:
        for piece in _OPERATOR_SPLIT_RE.split(word):
            piece = piece.strip()
            if not piece:
                continue
            if piece in _OPERATORS:
                tokens.append(piece)
            elif piece in ("OR", "or"):
                tokens.append("|")
            elif is_filter_token(piece):
                tokens.append(piece)
    return tokens


# ---------------------------------------------------------------------------
# Parse tree
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FilterNode:
    token: str


@dataclass(frozen=True)
class AndNode:
    children: Tuple["Node", ...]


@dataclass(frozen=True)
class OrNode:
    children: Tuple["Node", ...]


Node = Union[FilterNode, AndNode, OrNode]


class _Parser:
    def __init__(self, tokens: List[str]) -> None:
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    def peek(self) -> Optional[str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def advance(self) -> str:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def parse(self) -> Node:
        node = self.parse_or()
        if self.peek() is not None:
            # Only a stray ")" can stop parse_or early
            raise QuerySyntaxError("Unexpected ')' with no matching '('")
        return node

    def parse_or(self) -> Node:
        children = [self.parse_and()]
        while self.peek() == "|":
            self.advance()
            if self.peek() in (None, ")", "|"):
                raise QuerySyntaxError("Expected a filter or '(' after '|'")
            children.append(self.parse_and())
        return children[0] if len(children) == 1 else OrNode(tuple(children))

    def parse_and(self) -> Node:
        children: List[Node] = []
        while self.peek() not in (None, "|", ")"):
            children.append(self.parse_primary())

        if not children:
            token = self.peek()
            if token == "|":
                raise QuerySyntaxError("Expected a filter or '(' before '|'")
            if token == ")":
                raise QuerySyntaxError("Unexpected ')' with no matching '('")
            raise QuerySyntaxError("Expected a filter or '('")
        return children[0] if len(children) == 1 else AndNode(tuple(children))

    def parse_primary(self) -> Node:
        token = self.advance()
        if token != "(":
            return FilterNode(token)

        if self.peek() == ")":
            raise QuerySyntaxError("Expected a filter inside '()', got an empty group")
        if self.peek() is None:
            raise QuerySyntaxError("Expected ')' to close '('")

        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise QuerySyntaxError(f"Query nests parentheses deeper than {MAX_NESTING_DEPTH}")
        node = self.parse_or()
        self.depth -= 1

        if self.peek() != ")":
            raise QuerySyntaxError("Expected ')' to close '('")
        self.advance()
        return node


def parse_query(tokens: List[str]) -> Optional[Node]:
    """
    Parse tokens from tokenize_query into a tree.

    Returns:
        The root node, or None for an empty token list

    Raises:
        QuerySyntaxError: unbalanced parentheses, dangling operator, empty group
    """
    if not tokens:
        return None
    return _Parser(tokens).parse()


# ---------------------------------------------------------------------------
# DNF expansion
# ---------------------------------------------------------------------------

def _too_many_groups() -> QuerySyntaxError:
    return QuerySyntaxError(
        f"Query expands to more than {MAX_FILTER_GROUPS} filter groups; simplify the OR clauses"
    )


def expand_to_dnf(node: Node) -> List[List[str]]:
    """Rewrite a parse tree as OR-of-AND groups. OR concatenates, AND cross-multiplies."""
    if isinstance(node, FilterNode):
        return [[node.token]]

    if isinstance(node, OrNode):
        groups: List[List[str]] = []
        for child in node.children:
            groups.extend(expand_to_dnf(child))
            if len(groups) > MAX_FILTER_GROUPS:
                raise _too_many_groups()
        return groups

    groups = [[]]
    for child in node.children:
        child_groups = expand_to_dnf(child)
        if len(groups) * len(child_groups) > MAX_FILTER_GROUPS:
            raise _too_many_groups()
        groups = [left + right for left in groups for right in child_groups]
    return groups


def parse_query_to_filter_groups(query: Union[str, List[str]]) -> List[List[str]]:
    """Tokenize, parse and expand a query. An empty query gives ``[]``."""
    node = parse_query(tokenize_query(query))
    if node is None:
        return []
    return expand_to_dnf(node)


# ---------------------------------------------------------------------------
# Group post-processing
# ---------------------------------------------------------------------------

def apply_default_status_to_groups(groups: List[List[str]], status: str) -> List[List[str]]:
    """
    Add ``status:<status>`` to every group that does not set a status.

    Call sites default differently (``list`` shows open tasks, ``stats``
    counts everything), so the policy is passed in rather than assumed.
    """
    default = f"status:{status}"
    if not groups:
        return [[default]]
    return [
        list(group) if any(t.startswith("status:") for t in group) else [*group, default]
        for group in groups
    ]


def normalize_filter_groups(groups: List[List[str]]) -> List[List[str]]:
    """Map "no groups" to a single empty group, which matches every task."""
    if not groups:
        return [[]]
    return [list(group) for group in groups]
