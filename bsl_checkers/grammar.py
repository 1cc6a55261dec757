"""
bsl_checkers/grammar.py
═══════════════════════

PEG grammar for a practical subset of BSL (1C:Enterprise / OneScript)
and the visitor that turns a parsimonious parse tree into a
:class:`~bsl_checkers.tree.SyntaxTree`.

Usage::

    from bsl_checkers.grammar import parse

    tree = parse('''
        Если ТипПлатформы = ТипПлатформы.Linux_x86 Тогда
            Сообщить("linux");
        КонецЕсли;
    ''', file_name="Module.bsl")

Covered syntax
──────────────
  • module variables, procedures and functions (``&Annotations``,
    ``Асинх``, ``Знач`` parameters, defaults, ``Экспорт``)
  • local ``Перем`` declarations and ``~Метка:`` labels
  • assignment, call, ``Возврат``, ``ВызватьИсключение``, ``Прервать``,
    ``Продолжить``, ``Перейти``, ``Выполнить``, ``ДобавитьОбработчик``,
    ``УдалитьОбработчик``, ``Ждать``
  • ``Если / ИначеЕсли / Иначе``, ``Пока``, ``Для``, ``Для Каждого``,
    ``Попытка / Исключение``
  • boolean, comparison and arithmetic operators, member access,
    indexing, calls, ``Новый Тип(...)`` and ``Новый(...)``, ``?(,,)``,
    ``Ждать`` as a unary operator
  • string, number, date, boolean, ``Неопределено`` and ``Null`` literals

Every keyword is accepted in Russian and English, in any letter case.
Whitespace, ``//`` comments and ``#`` preprocessor / region lines are
trivia and do not appear in the tree.

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

import bisect
import logging
from pathlib import Path
from typing import Dict, List, Tuple, Union

from parsimonious.exceptions import IncompleteParseError, ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from bsl_checkers.errors import BslParseError, TreeStructureError
from bsl_checkers.tree import RuleKind, SourceSpan, SyntaxNode, SyntaxTree

_log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  PART 1 — KEYWORDS
# ═══════════════════════════════════════════════════════════════════

# rule suffix → (english, russian)
KEYWORDS: Dict[str, Tuple[str, str]] = {
    "if": ("If", "Если"),
    "then": ("Then", "Тогда"),
    "elsif": ("ElsIf", "ИначеЕсли"),
    "else": ("Else", "Иначе"),
    "endif": ("EndIf", "КонецЕсли"),
    "new": ("New", "Новый"),
    "procedure": ("Procedure", "Процедура"),
    "endprocedure": ("EndProcedure", "КонецПроцедуры"),
    "function": ("Function", "Функция"),
    "endfunction": ("EndFunction", "КонецФункции"),
    "return": ("Return", "Возврат"),
    "var": ("Var", "Перем"),
    "export": ("Export", "Экспорт"),
    "val": ("Val", "Знач"),
    "while": ("While", "Пока"),
    "for": ("For", "Для"),
    "each": ("Each", "Каждого"),
    "in": ("In", "Из"),
    "to": ("To", "По"),
    "do": ("Do", "Цикл"),
    "enddo": ("EndDo", "КонецЦикла"),
    "try": ("Try", "Попытка"),
    "except": ("Except", "Исключение"),
    "endtry": ("EndTry", "КонецПопытки"),
    "raise": ("Raise", "ВызватьИсключение"),
    "break": ("Break", "Прервать"),
    "continue": ("Continue", "Продолжить"),
    "goto": ("Goto", "Перейти"),
    "execute": ("Execute", "Выполнить"),
    "addhandler": ("AddHandler", "ДобавитьОбработчик"),
    "removehandler": ("RemoveHandler", "УдалитьОбработчик"),
    "async": ("Async", "Асинх"),
    "await": ("Await", "Ждать"),
    "and": ("And", "И"),
    "or": ("Or", "Или"),
    "not": ("Not", "Не"),
    "true": ("True", "Истина"),
    "false": ("False", "Ложь"),
    "undefined": ("Undefined", "Неопределено"),
    "null": ("Null", "Null"),
}

_ALL_KEYWORDS = "|".join(
    sorted({w.lower() for pair in KEYWORDS.values() for w in pair},
           key=len, reverse=True)
)
_NAME = r"(?!(?:" + _ALL_KEYWORDS + r")(?!\w))[^\W\d]\w*"


def _keyword_rules() -> str:
    rules = []
    for suffix, (english, russian) in KEYWORDS.items():
        words = english.lower() if english == russian else f"{english.lower()}|{russian.lower()}"
        rules.append(f'    kw_{suffix:<16}= ~r"(?:{words})(?!\\w)"i')
    return "\n".join(rules) + "\n"


# ═══════════════════════════════════════════════════════════════════
#  PART 2 — GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════
#
#  Rules whose names match a RuleKind value become tree nodes; every
#  other rule is transparent.  A tagged rule must never be a bare
#  reference to another rule, because parsimonious collapses such
#  aliases into the referenced expression.

_STRUCTURE_RULES = r'''
    file                = _ module_item* eof
    module_item         = module_var / procedure / function / block_item

    # ─────────────────────────────────────────────────────────────
    # Module level
    # ─────────────────────────────────────────────────────────────

    module_var          = annotation* kw_var _ identifier (_ "," _ identifier)* _ kw_export? _ ";" _
    procedure           = annotation* (kw_async _)? kw_procedure _ identifier _ param_list _ kw_export? _ code_block kw_endprocedure _ (";" _)?
    function            = annotation* (kw_async _)? kw_function _ identifier _ param_list _ kw_export? _ code_block kw_endfunction _ (";" _)?
    annotation          = annotation_name _ annotation_args? _
    annotation_name     = ~r"&[^\W\d]\w*"
    annotation_args     = "(" ~r"[^)]*" ")"
    param_list          = "(" _ (param (_ "," _ param)*)? _ ")"
    param               = (kw_val _)? identifier (_ "=" _ expression)?

    # ─────────────────────────────────────────────────────────────
    # Statements
    # ─────────────────────────────────────────────────────────────

    code_block          = block_item*
    block_item          = local_var / label / compound_item / simple_item / empty_item
    local_var           = kw_var _ identifier (_ "," _ identifier)* _ ";" _
    label               = "~" identifier _ ":" _
    compound_item       = compound_statement _ (";" _)?
    simple_item         = simple_statement _ (";" _ / &block_end)
    empty_item          = ";" _
    block_end           = kw_endif / kw_elsif / kw_else / kw_enddo / kw_except
                        / kw_endtry / kw_endprocedure / kw_endfunction
                        / kw_procedure / kw_function / kw_async / annotation / eof

    compound_statement  = if_statement / while_statement / for_each_statement
                        / for_statement / try_statement
    simple_statement    = return_statement / raise_statement / break_statement
                        / continue_statement / goto_statement / execute_statement
                        / handler_statement / await_statement / assignment
                        / call_statement

    assignment          = complex_identifier _ "=" _ expression
    call_statement      = complex_identifier _
    return_statement    = kw_return (_ expression)?
    raise_statement     = kw_raise (_ expression)?
    break_statement     = kw_break _
    continue_statement  = kw_continue _
    goto_statement      = kw_goto _ "~" identifier
    execute_statement   = kw_execute _ expression
    handler_statement   = (kw_addhandler / kw_removehandler) _ expression _ "," _ expression
    await_statement     = kw_await _ expression

    if_statement        = if_branch elsif_branch* else_branch? kw_endif
    if_branch           = kw_if _ expression _ kw_then _ code_block
    elsif_branch        = kw_elsif _ expression _ kw_then _ code_block
    else_branch         = kw_else _ code_block

    while_statement     = kw_while _ expression _ kw_do _ code_block kw_enddo
    for_statement       = kw_for _ identifier _ "=" _ expression _ kw_to _ expression _ kw_do _ code_block kw_enddo
    for_each_statement  = kw_for _ kw_each _ identifier _ kw_in _ expression _ kw_do _ code_block kw_enddo
    try_statement       = kw_try _ code_block except_branch kw_endtry
    except_branch       = kw_except _ code_block

    # ─────────────────────────────────────────────────────────────
    # Expressions
    # ─────────────────────────────────────────────────────────────

    expression          = or_expr
    or_expr             = and_expr (_ kw_or _ and_expr)*
    and_expr            = not_expr (_ kw_and _ not_expr)*
    not_expr            = (kw_not _ not_expr) / compare_expr
    compare_expr        = add_expr (_ compare_op _ add_expr)*
    compare_op          = "<>" / "<=" / ">=" / "=" / "<" / ">"
    add_expr            = mul_expr (_ add_op _ mul_expr)*
    add_op              = "+" / "-"
    mul_expr            = unary_expr (_ mul_op _ unary_expr)*
    mul_op              = "*" / "/" / "%"
    unary_expr          = (unary_op _ unary_expr) / await_expression / primary
    await_expression    = kw_await _ unary_expr
    unary_op            = "+" / "-"

    primary             = ternary / literal / grouped / complex_identifier
    grouped             = "(" _ expression _ ")"
    ternary             = "?" _ "(" _ expression _ "," _ expression _ "," _ expression _ ")"

    complex_identifier  = (new_expression / identifier) modifier*
    modifier            = _ (access_property / access_index / do_call)
    access_property     = "." _ member_name
    access_index        = "[" _ expression _ "]"
    do_call             = "(" _ call_args _ ")"
    call_args           = call_arg (_ "," _ call_arg)*
    call_arg            = expression?

    new_expression      = (kw_new _ type_name (_ do_call)?) / (kw_new _ do_call)

    # ─────────────────────────────────────────────────────────────
    # Literals
    # ─────────────────────────────────────────────────────────────

    literal             = string / date / number / kw_true / kw_false
                        / kw_undefined / kw_null
    string              = ~r'"(?:[^"]|"")*"'
    date                = ~r"'[^'\n]*'"
    number              = ~r"\d+(?:\.\d+)?"

    # ─────────────────────────────────────────────────────────────
    # Names & trivia
    # ─────────────────────────────────────────────────────────────

    member_name         = ~r"[^\W\d]\w*"
    _                   = ~r"(?:\s|//[^\n]*|\#[^\n]*)*"
    eof                 = ~r"\Z"
'''

BSL_GRAMMAR_TEXT: str = (
    _STRUCTURE_RULES
    + '    identifier          = ~r"' + _NAME + '"i\n'
    + '    type_name           = ~r"' + _NAME + '"i\n'
    + _keyword_rules()
)

BSL_GRAMMAR = Grammar(BSL_GRAMMAR_TEXT)


# ═══════════════════════════════════════════════════════════════════
#  PART 3 — PARSE TREE → SYNTAX TREE
# ═══════════════════════════════════════════════════════════════════

class _LineIndex:
    """Maps character offsets to 1-based (line, column) pairs."""

    def __init__(self, text: str) -> None:
        self._starts: List[int] = [0]
        for idx, ch in enumerate(text):
            if ch == "\n":
                self._starts.append(idx + 1)

    def position(self, offset: int) -> Tuple[int, int]:
        line = bisect.bisect_right(self._starts, offset) - 1
        return line + 1, offset - self._starts[line] + 1

    def span(self, start: int, end: int) -> SourceSpan:
        start_line, start_col = self.position(start)
        end_line, end_col = self.position(end)
        return SourceSpan(start_line, start_col, end_line, end_col)


# token rules that are not RuleKind values themselves
_LEAF_KINDS: Dict[str, RuleKind] = {
    "member_name": RuleKind.IDENTIFIER,
    "annotation_name": RuleKind.IDENTIFIER,
}


class SyntaxTreeBuilder(NodeVisitor):
    """Transforms a Parsimonious parse tree into :class:`SyntaxNode` objects.

    Each visit returns a list of finished nodes; untagged rules simply
    pass their children's lists up, so only tagged rules and tokens end
    up in the tree.
    """

    unwrapped_exceptions = (BslParseError, TreeStructureError, RecursionError)

    def __init__(self, text: str) -> None:
        self._index = _LineIndex(text)

    def visit__(self, node: Node, visited_children: list) -> List[SyntaxNode]:
        return []

    def generic_visit(self, node: Node, visited_children: list) -> List[SyntaxNode]:
        kind = RuleKind.for_rule(node.expr_name)

        if not node.children and node.text:
            if kind is None:
                kind = _LEAF_KINDS.get(node.expr_name)
            if kind is None:
                if node.expr_name.startswith("kw_"):
                    kind = RuleKind.KEYWORD
                else:
                    kind = RuleKind.PUNCTUATION
            return [SyntaxNode(kind, span=self._index.span(node.start, node.end),
                               token=node.text)]

        children = [c for group in visited_children for c in group]
        if kind is None:
            return children
        if children:
            return [SyntaxNode(kind, children)]
        # empty interior node, e.g. a code block with no statements
        return [SyntaxNode(kind, span=self._index.span(node.start, node.start))]


# ═══════════════════════════════════════════════════════════════════
#  PART 4 — PUBLIC ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════

def parse(text: str, file_name: str = "<string>") -> SyntaxTree:
    """Parse BSL *text* into a :class:`SyntaxTree`.

    Raises :class:`BslParseError` with the failing position when the
    text is not valid in the supported subset.
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    try:
        parse_tree = BSL_GRAMMAR.parse(text)
    except IncompleteParseError as exc:
        raise BslParseError(
            f"unexpected input {_excerpt(text, exc.pos)!r}",
            file=file_name, line=exc.line(), column=exc.column(),
        ) from exc
    except ParseError as exc:
        raise BslParseError(
            f"syntax error near {_excerpt(text, exc.pos)!r}",
            file=file_name, line=exc.line(), column=exc.column(),
        ) from exc
    except RecursionError as exc:
        raise BslParseError("source nesting is too deep to parse",
                            file=file_name) from exc

    try:
        (root,) = SyntaxTreeBuilder(text).visit(parse_tree)
    except RecursionError as exc:
        raise BslParseError("source nesting is too deep to parse",
                            file=file_name) from exc

    tree = SyntaxTree(root=root, source=text, file_name=file_name)
    _log.debug("parsed %s: %d nodes", file_name, tree.node_count())
    return tree


def parse_file(path: Union[str, Path]) -> SyntaxTree:
    """Read a UTF-8 (optionally BOM-prefixed) source file and parse it.

    Undecodable or unreadable files also raise :class:`BslParseError`.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise BslParseError(
            f"not valid UTF-8 (byte 0x{exc.object[exc.start]:02x} at offset {exc.start})",
            file=str(p),
        ) from exc
    except OSError as exc:
        raise BslParseError(f"cannot read file: {exc.strerror or exc}",
                            file=str(p)) from exc
    return parse(text, file_name=str(p))


def _excerpt(text: str, pos: int, width: int = 20) -> str:
    fragment = text[pos:pos + width]
    return fragment.split("\n", 1)[0] or "<end of input>"


__all__ = [
    "KEYWORDS",
    "BSL_GRAMMAR",
    "BSL_GRAMMAR_TEXT",
    "SyntaxTreeBuilder",
    "parse",
    "parse_file",
]
