"""
bsl_checkers/tree.py
════════════════════

Concrete syntax tree for BSL sources.

The parser (:mod:`bsl_checkers.grammar`) produces a tree of
:class:`SyntaxNode` objects.  Every node carries

  • a rule kind tag (:class:`RuleKind`)
  • its children, in source order
  • a back-reference to its parent (``None`` for the root only)
  • a 1-based :class:`SourceSpan`
  • for terminals, the token text

Nodes are linked once, when the parent is constructed, and never
mutated afterwards, so a tree can be shared between checkers running on
different threads.

``SyntaxNode.text`` mirrors ANTLR's ``getText()``: the concatenation of
all token texts below the node, without whitespace or comments.  Checkers
search this text, not the raw source slice.

Upward traversal
────────────────
:func:`ancestor_of_kind` is the workhorse of guard searches.  It walks
parent links iteratively and stops after ``max_depth`` steps, raising
:class:`~bsl_checkers.errors.TreeStructureError`, so a corrupted parent
chain can never loop forever.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

import sexpdata
from sexpdata import Symbol

from bsl_checkers.errors import TreeStructureError

# Deeper than any hand-written module; only a broken parent chain gets here.
MAX_ANCESTOR_DEPTH = 10_000


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — NODE KINDS & SPANS
# ═════════════════════════════════════════════════════════════════════════

class RuleKind(Enum):
    """Grammar rule a node was produced by.

    Values equal the rule names in ``BSL_GRAMMAR`` so the tree builder can
    map parse nodes with ``RuleKind(expr_name)``.
    """
    # structure
    FILE = "file"
    MODULE_VAR = "module_var"
    PROCEDURE = "procedure"
    FUNCTION = "function"
    ANNOTATION = "annotation"
    PARAM_LIST = "param_list"
    PARAM = "param"
    CODE_BLOCK = "code_block"
    LOCAL_VAR = "local_var"
    LABEL = "label"

    # statements
    ASSIGNMENT = "assignment"
    CALL_STATEMENT = "call_statement"
    RETURN_STATEMENT = "return_statement"
    RAISE_STATEMENT = "raise_statement"
    BREAK_STATEMENT = "break_statement"
    CONTINUE_STATEMENT = "continue_statement"
    GOTO_STATEMENT = "goto_statement"
    EXECUTE_STATEMENT = "execute_statement"
    HANDLER_STATEMENT = "handler_statement"
    AWAIT_STATEMENT = "await_statement"
    IF_STATEMENT = "if_statement"
    IF_BRANCH = "if_branch"
    ELSIF_BRANCH = "elsif_branch"
    ELSE_BRANCH = "else_branch"
    WHILE_STATEMENT = "while_statement"
    FOR_STATEMENT = "for_statement"
    FOR_EACH_STATEMENT = "for_each_statement"
    TRY_STATEMENT = "try_statement"
    EXCEPT_BRANCH = "except_branch"

    # expressions
    COMPLEX_IDENTIFIER = "complex_identifier"
    NEW_EXPRESSION = "new_expression"
    TYPE_NAME = "type_name"
    DO_CALL = "do_call"
    TERNARY = "ternary"
    AWAIT_EXPRESSION = "await_expression"

    # terminals
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    PUNCTUATION = "punctuation"

    @classmethod
    def for_rule(cls, rule_name: str) -> Optional["RuleKind"]:
        """Return the kind for a grammar rule name, or None if untagged."""
        try:
            return cls(rule_name)
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class SourceSpan:
    """A 1-based, end-exclusive region of a source file."""
    start_line: int = 0
    start_column: int = 0
    end_line: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        return (
            f"{self.start_line}:{self.start_column}-"
            f"{self.end_line}:{self.end_column}"
        )

    @classmethod
    def covering(cls, first: "SourceSpan", last: "SourceSpan") -> "SourceSpan":
        return cls(first.start_line, first.start_column,
                   last.end_line, last.end_column)


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — SYNTAX NODE
# ═════════════════════════════════════════════════════════════════════════

class SyntaxNode:
    """A node of the BSL syntax tree.

    Interior nodes are built from already-finished children; the
    constructor adopts them, which is the only place parent links are
    written.
    """

    __slots__ = ("kind", "children", "span", "token", "_parent", "_text")

    def __init__(
        self,
        kind: RuleKind,
        children: Sequence["SyntaxNode"] = (),
        span: Optional[SourceSpan] = None,
        token: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.children: Tuple[SyntaxNode, ...] = tuple(children)
        self.token = token
        self._parent: Optional[SyntaxNode] = None
        self._text: Optional[str] = token

        if span is None:
            if self.children:
                span = SourceSpan.covering(self.children[0].span,
                                           self.children[-1].span)
            else:
                span = SourceSpan()
        self.span = span

        for child in self.children:
            if child._parent is not None:
                raise TreeStructureError(
                    f"{child!r} already belongs to {child._parent!r}"
                )
            child._parent = self

    # ── structure ────────────────────────────────────────────────────

    @property
    def parent(self) -> Optional["SyntaxNode"]:
        return self._parent

    @property
    def is_terminal(self) -> bool:
        return self.token is not None

    @property
    def text(self) -> str:
        """Token texts of the whole subtree, concatenated without trivia."""
        if self._text is None:
            self._text = "".join(leaf.token or "" for leaf in self.leaves())
        return self._text

    def child_of_kind(self, kind: RuleKind) -> Optional["SyntaxNode"]:
        """First direct child of *kind*, or None."""
        for child in self.children:
            if child.kind is kind:
                return child
        return None

    def children_of_kind(self, kind: RuleKind) -> List["SyntaxNode"]:
        return [c for c in self.children if c.kind is kind]

    def ancestors(self, max_depth: int = MAX_ANCESTOR_DEPTH) -> Iterator["SyntaxNode"]:
        """Yield parents from the nearest up to the root."""
        node = self._parent
        depth = 0
        while node is not None:
            depth += 1
            if depth > max_depth:
                raise TreeStructureError(
                    f"ancestor chain of {self!r} exceeds {max_depth} levels",
                    depth=depth,
                )
            yield node
            node = node._parent

    def walk(self) -> Iterator["SyntaxNode"]:
        """Pre-order, depth-first iteration over the subtree."""
        stack: List[SyntaxNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def leaves(self) -> Iterator["SyntaxNode"]:
        for node in self.walk():
            if node.is_terminal:
                yield node

    def __repr__(self) -> str:
        if self.is_terminal:
            return f"<{self.kind.name} {self.token!r} @{self.span}>"
        return f"<{self.kind.name} @{self.span}>"


def ancestor_of_kind(
    node: SyntaxNode,
    kind: RuleKind,
    max_depth: int = MAX_ANCESTOR_DEPTH,
) -> Optional[SyntaxNode]:
    """Nearest strict ancestor of *node* tagged *kind*, or None at the root."""
    for ancestor in node.ancestors(max_depth):
        if ancestor.kind is kind:
            return ancestor
    return None


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — SYNTAX TREE
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class SyntaxTree:
    """A parsed source file: root node plus the text it came from."""
    root: SyntaxNode
    source: str = ""
    file_name: str = "<string>"

    @property
    def lines(self) -> List[str]:
        return self.source.splitlines()

    @property
    def language(self) -> str:
        """``"os"`` for OneScript files, ``"bsl"`` for everything else."""
        return "os" if self.file_name.lower().endswith(".os") else "bsl"

    def iter_kind(self, kind: RuleKind) -> Iterator[SyntaxNode]:
        for node in self.root.walk():
            if node.kind is kind:
                yield node

    def node_count(self) -> int:
        return sum(1 for _ in self.root.walk())


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — DUMPS
# ═════════════════════════════════════════════════════════════════════════

def _to_sexp_list(node: SyntaxNode) -> list:
    if node.is_terminal:
        return [Symbol(node.kind.value), node.token]
    return [Symbol(node.kind.value)] + [_to_sexp_list(c) for c in node.children]


def to_sexp(node: SyntaxNode) -> str:
    """Render a subtree as an S-expression, e.g. ``(type_name "Mail")``."""
    return sexpdata.dumps(_to_sexp_list(node))


def format_tree(node: SyntaxNode, indent: str = "  ") -> str:
    """Indented one-node-per-line rendering used by ``dump-ast``."""
    lines: List[str] = []
    stack: List[Tuple[SyntaxNode, int]] = [(node, 0)]
    while stack:
        current, depth = stack.pop()
        if current.is_terminal:
            lines.append(f"{indent * depth}{current.kind.value} {current.token!r}")
        else:
            lines.append(f"{indent * depth}{current.kind.value} [{current.span}]")
        stack.extend((c, depth + 1) for c in reversed(current.children))
    return "\n".join(lines)


__all__ = [
    "MAX_ANCESTOR_DEPTH",
    "RuleKind",
    "SourceSpan",
    "SyntaxNode",
    "SyntaxTree",
    "ancestor_of_kind",
    "to_sexp",
    "format_tree",
]
