# tests/test_tree.py
"""Tests for SyntaxNode structure, text, spans and bounded ancestor search."""

import pytest

from bsl_checkers.errors import TreeStructureError
from bsl_checkers.tree import (
    RuleKind,
    SourceSpan,
    SyntaxNode,
    ancestor_of_kind,
    format_tree,
    to_sexp,
)


def _chain(depth):
    """A leaf wrapped in *depth* code blocks; returns (leaf, root)."""
    leaf = SyntaxNode(RuleKind.IDENTIFIER, span=SourceSpan(1, 1, 1, 2), token="x")
    node = leaf
    for _ in range(depth):
        node = SyntaxNode(RuleKind.CODE_BLOCK, [node])
    return leaf, node


class TestSyntaxNode:

    def test_parent_links(self, parse_bsl):
        tree = parse_bsl("А = Новый COMОбъект(\"X\");")
        assert tree.root.parent is None
        for node in tree.root.walk():
            for child in node.children:
                assert child.parent is node

    def test_child_adopted_only_once(self):
        leaf = SyntaxNode(RuleKind.IDENTIFIER, token="x")
        SyntaxNode(RuleKind.CODE_BLOCK, [leaf])
        with pytest.raises(TreeStructureError):
            SyntaxNode(RuleKind.CODE_BLOCK, [leaf])

    def test_text_concatenates_tokens_without_trivia(self, parse_bsl):
        tree = parse_bsl("""\
            Если А = 1 Тогда // проверка
                Б = 2;
            КонецЕсли;
        """)
        (branch,) = tree.iter_kind(RuleKind.IF_BRANCH)
        assert branch.text == "ЕслиА=1ТогдаБ=2;"

    def test_span_covers_children(self, parse_bsl):
        tree = parse_bsl('Компонента = Новый COMОбъект("X");')
        (new_expr,) = tree.iter_kind(RuleKind.NEW_EXPRESSION)
        assert new_expr.span == SourceSpan(1, 14, 1, 34)

    def test_walk_is_preorder(self):
        a = SyntaxNode(RuleKind.IDENTIFIER, token="a")
        b = SyntaxNode(RuleKind.IDENTIFIER, token="b")
        inner = SyntaxNode(RuleKind.COMPLEX_IDENTIFIER, [a])
        root = SyntaxNode(RuleKind.CODE_BLOCK, [inner, b])
        assert list(root.walk()) == [root, inner, a, b]

    def test_walk_handles_deep_nesting(self):
        leaf, root = _chain(5000)
        assert sum(1 for _ in root.walk()) == 5001
        assert root.text == "x"


class TestAncestorOfKind:

    def test_nearest_ancestor(self, parse_bsl):
        tree = parse_bsl("""\
            Если Внешнее Тогда
                Если Внутреннее Тогда
                    А = Новый Mail;
                КонецЕсли;
            КонецЕсли;
        """)
        (new_expr,) = tree.iter_kind(RuleKind.NEW_EXPRESSION)
        inner = ancestor_of_kind(new_expr, RuleKind.IF_BRANCH)
        outer = ancestor_of_kind(inner, RuleKind.IF_BRANCH)
        assert "Внутреннее" in inner.text
        assert outer.text.startswith("ЕслиВнешнее")
        assert ancestor_of_kind(outer, RuleKind.IF_BRANCH) is None

    def test_strict_ancestor_excludes_self(self, parse_bsl):
        tree = parse_bsl("Если А Тогда Б = 1; КонецЕсли;")
        (branch,) = tree.iter_kind(RuleKind.IF_BRANCH)
        assert ancestor_of_kind(branch, RuleKind.IF_BRANCH) is None

    def test_none_at_root(self):
        leaf, _ = _chain(3)
        assert ancestor_of_kind(leaf, RuleKind.IF_BRANCH) is None

    def test_depth_bound(self):
        leaf, _ = _chain(20)
        with pytest.raises(TreeStructureError) as exc_info:
            ancestor_of_kind(leaf, RuleKind.FILE, max_depth=5)
        assert exc_info.value.depth == 6

    def test_within_bound(self):
        leaf, root = _chain(5)
        assert ancestor_of_kind(leaf, RuleKind.CODE_BLOCK, max_depth=5) is leaf.parent
        assert ancestor_of_kind(leaf, RuleKind.FILE, max_depth=5) is None


class TestSyntaxTree:

    @pytest.mark.parametrize("file_name, language", [
        ("Module.bsl", "bsl"),
        ("src/CommonModules/Util/Ext/Module.BSL", "bsl"),
        ("script.os", "os"),
        ("Main.OS", "os"),
    ])
    def test_language_from_file_name(self, parse_bsl, file_name, language):
        assert parse_bsl("", file_name=file_name).language == language

    def test_lines(self, parse_bsl):
        tree = parse_bsl("А = 1;\nБ = 2;\n")
        assert tree.lines == ["А = 1;", "Б = 2;"]


class TestDumps:

    def test_sexp(self, parse_bsl):
        tree = parse_bsl("x = New Mail;")
        (new_expr,) = tree.iter_kind(RuleKind.NEW_EXPRESSION)
        out = to_sexp(new_expr)
        assert out.startswith("(new_expression")
        assert '(type_name "Mail")' in out

    def test_format_tree(self, parse_bsl):
        tree = parse_bsl("x = New Mail;")
        out = format_tree(tree.root)
        lines = out.splitlines()
        assert lines[0].startswith("file [")
        assert any(line.strip() == "type_name 'Mail'" for line in lines)
