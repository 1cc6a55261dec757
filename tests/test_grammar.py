# tests/test_grammar.py
"""
Tests for the BSL PEG grammar and the parse() entry point: keyword
handling in both languages, statement coverage, trivia and parse errors.
"""

import pytest
from parsimonious.exceptions import IncompleteParseError, ParseError

from bsl_checkers.errors import BslParseError
from bsl_checkers.grammar import BSL_GRAMMAR, KEYWORDS, parse
from bsl_checkers.tree import RuleKind


class TestGrammarWellFormed:

    def test_grammar_compiles(self):
        assert BSL_GRAMMAR is not None
        assert "file" in BSL_GRAMMAR

    def test_key_rules_present(self):
        for rule in ("file", "procedure", "function", "code_block", "if_statement",
                     "if_branch", "elsif_branch", "else_branch", "new_expression",
                     "type_name", "expression", "identifier"):
            assert rule in BSL_GRAMMAR, f"Rule {rule!r} missing"

    def test_every_keyword_has_a_rule(self):
        for suffix in KEYWORDS:
            assert f"kw_{suffix}" in BSL_GRAMMAR

    def test_empty_input(self):
        tree = parse("")
        assert tree.root.kind is RuleKind.FILE
        assert tree.root.children == ()


class TestKeywords:

    @pytest.mark.parametrize("text", ["Если", "ЕСЛИ", "если", "If", "IF", "if"])
    def test_if_keyword_any_case_any_language(self, text):
        assert BSL_GRAMMAR["kw_if"].parse(text).text == text

    @pytest.mark.parametrize("text", ["Новый", "НОВЫЙ", "New", "new"])
    def test_new_keyword(self, text):
        BSL_GRAMMAR["kw_new"].parse(text)

    def test_keyword_requires_word_boundary(self):
        with pytest.raises((ParseError, IncompleteParseError)):
            BSL_GRAMMAR["kw_if"].parse("Если1")

    @pytest.mark.parametrize("name", ["Если", "КонецЕсли", "Then", "новый", "И", "Null",
                                      "Перем", "Перейти", "Ждать"])
    def test_identifier_rejects_keywords(self, name):
        with pytest.raises((ParseError, IncompleteParseError)):
            BSL_GRAMMAR["identifier"].parse(name)

    @pytest.mark.parametrize("name", ["Индекс", "Newton", "ЕслиНужно", "_x1", "Linux_x86"])
    def test_identifier_accepts_keyword_prefixed_names(self, name):
        assert BSL_GRAMMAR["identifier"].parse(name).text == name


class TestStatements:

    def test_procedure_with_annotation_and_params(self, parse_bsl):
        tree = parse_bsl("""\
            &НаСервере
            Процедура Тест(Знач А, Б = 1) Экспорт
                Возврат;
            КонецПроцедуры
        """)
        (proc,) = tree.root.children
        assert proc.kind is RuleKind.PROCEDURE
        assert proc.child_of_kind(RuleKind.ANNOTATION) is not None
        params = proc.child_of_kind(RuleKind.PARAM_LIST).children_of_kind(RuleKind.PARAM)
        assert len(params) == 2

    def test_function(self, parse_bsl):
        tree = parse_bsl("""\
            Функция Сумма(А, Б)
                Возврат А + Б;
            КонецФункции
        """)
        assert tree.root.children[0].kind is RuleKind.FUNCTION
        assert len(list(tree.iter_kind(RuleKind.RETURN_STATEMENT))) == 1

    def test_module_variables(self, parse_bsl):
        tree = parse_bsl("Перем А, Б Экспорт;\nПерем В;\n")
        assert len(list(tree.iter_kind(RuleKind.MODULE_VAR))) == 2

    def test_local_variables(self, parse_bsl):
        tree = parse_bsl("""\
            Процедура Тест()
                Перем Компонента, Имя;
                Компонента = Новый COMОбъект("X");
            КонецПроцедуры
        """)
        (proc,) = tree.root.children
        block = proc.child_of_kind(RuleKind.CODE_BLOCK)
        (local,) = block.children_of_kind(RuleKind.LOCAL_VAR)
        names = [n.text for n in local.children_of_kind(RuleKind.IDENTIFIER)]
        assert names == ["Компонента", "Имя"]
        assert list(tree.iter_kind(RuleKind.MODULE_VAR)) == []
        assert len(block.children_of_kind(RuleKind.ASSIGNMENT)) == 1

    def test_labels_and_goto(self, parse_bsl):
        tree = parse_bsl("""\
            ~Повтор: Счетчик = Счетчик + 1;
            Если Счетчик < 3 Тогда
                Перейти ~Повтор;
            КонецЕсли;
        """)
        (label,) = tree.iter_kind(RuleKind.LABEL)
        assert label.text == "~Повтор:"
        (goto,) = tree.iter_kind(RuleKind.GOTO_STATEMENT)
        assert goto.text == "Перейти~Повтор"

    def test_execute_and_event_handlers(self, parse_bsl):
        tree = parse_bsl("""\
            Выполнить "Сообщить(1)";
            Execute("Message(2)");
            ДобавитьОбработчик Объект.ПриИзменении, ОбработчикИзменения;
            RemoveHandler Object.OnChange, ChangeHandler;
        """)
        assert len(list(tree.iter_kind(RuleKind.EXECUTE_STATEMENT))) == 2
        assert len(list(tree.iter_kind(RuleKind.HANDLER_STATEMENT))) == 2
        assert list(tree.iter_kind(RuleKind.CALL_STATEMENT)) == []

    def test_async_and_await(self, parse_bsl):
        tree = parse_bsl("""\
            &НаКлиенте
            Асинх Процедура Загрузить()
                Ждать ЗагрузитьАсинх();
                Результат = Ждать ВопросАсинх("?", РежимДиалогаВопрос.ДаНет);
            КонецПроцедуры
        """)
        (proc,) = tree.root.children
        assert proc.kind is RuleKind.PROCEDURE
        assert proc.child_of_kind(RuleKind.KEYWORD).text == "Асинх"
        assert len(list(tree.iter_kind(RuleKind.AWAIT_STATEMENT))) == 1
        assert len(list(tree.iter_kind(RuleKind.AWAIT_EXPRESSION))) == 1

    def test_if_elsif_else(self, parse_bsl):
        tree = parse_bsl("""\
            Если А = 1 Тогда
                Б = 1;
            ИначеЕсли А = 2 Тогда
                Б = 2;
            Иначе
                Б = 3;
            КонецЕсли;
        """)
        (stmt,) = tree.iter_kind(RuleKind.IF_STATEMENT)
        assert [c.kind for c in stmt.children] == [
            RuleKind.IF_BRANCH,
            RuleKind.ELSIF_BRANCH,
            RuleKind.ELSE_BRANCH,
            RuleKind.KEYWORD,
        ]

    def test_english_syntax(self, parse_bsl):
        tree = parse_bsl("""\
            If a Then
                b = New COMObject("X");
            EndIf;
        """)
        assert len(list(tree.iter_kind(RuleKind.IF_BRANCH))) == 1
        assert len(list(tree.iter_kind(RuleKind.NEW_EXPRESSION))) == 1

    def test_loops(self, parse_bsl):
        tree = parse_bsl("""\
            Для Каждого Элемент Из Коллекция Цикл
                Продолжить;
            КонецЦикла;
            Для Сч = 1 По 10 Цикл
                Прервать;
            КонецЦикла;
            Пока Истина Цикл
                Прервать
            КонецЦикла;
        """)
        assert len(list(tree.iter_kind(RuleKind.FOR_EACH_STATEMENT))) == 1
        assert len(list(tree.iter_kind(RuleKind.FOR_STATEMENT))) == 1
        assert len(list(tree.iter_kind(RuleKind.WHILE_STATEMENT))) == 1
        assert len(list(tree.iter_kind(RuleKind.BREAK_STATEMENT))) == 2

    def test_try_except(self, parse_bsl):
        tree = parse_bsl("""\
            Попытка
                Объект = Новый COMОбъект("Excel.Application");
            Исключение
                ВызватьИсключение ОписаниеОшибки();
            КонецПопытки;
        """)
        (stmt,) = tree.iter_kind(RuleKind.TRY_STATEMENT)
        assert stmt.child_of_kind(RuleKind.EXCEPT_BRANCH) is not None
        assert len(list(tree.iter_kind(RuleKind.RAISE_STATEMENT))) == 1

    def test_expressions(self, parse_bsl):
        tree = parse_bsl("""\
            А = ?(Б > 0 И Не В, "a""b", '20240101');
            Г = (1 + 2) * -3 % 4 <> 5;
            Д = Объект.Свойство[0].Метод(, 1);
        """)
        assert len(list(tree.iter_kind(RuleKind.ASSIGNMENT))) == 3
        assert len(list(tree.iter_kind(RuleKind.TERNARY))) == 1
        assert len(list(tree.iter_kind(RuleKind.STRING))) == 1
        assert len(list(tree.iter_kind(RuleKind.DATE))) == 1

    def test_new_without_type_name(self, parse_bsl):
        tree = parse_bsl('А = Новый("COMObject");')
        (new_expr,) = tree.iter_kind(RuleKind.NEW_EXPRESSION)
        assert new_expr.child_of_kind(RuleKind.TYPE_NAME) is None
        assert new_expr.child_of_kind(RuleKind.DO_CALL) is not None

    def test_new_without_arguments(self, parse_bsl):
        tree = parse_bsl("А = Новый Почта;")
        (new_expr,) = tree.iter_kind(RuleKind.NEW_EXPRESSION)
        assert new_expr.child_of_kind(RuleKind.TYPE_NAME).text == "Почта"

    def test_last_statement_without_semicolon(self, parse_bsl):
        tree = parse_bsl('Сообщить("x")')
        assert len(list(tree.iter_kind(RuleKind.CALL_STATEMENT))) == 1


class TestTrivia:

    def test_comments_and_preprocessor_lines(self, parse_bsl):
        tree = parse_bsl("""\
            #Область Основная
            // комментарий
            #Если Сервер Тогда
            А = 1; // хвост
            #КонецЕсли
            #КонецОбласти
        """)
        assert len(list(tree.iter_kind(RuleKind.ASSIGNMENT))) == 1
        assert "комментарий" not in tree.root.text

    def test_multiline_string(self, parse_bsl):
        tree = parse_bsl('Текст = "первая\n|вторая";\n')
        (string,) = tree.iter_kind(RuleKind.STRING)
        assert string.span.start_line == 1
        assert string.span.end_line == 2

    def test_byte_order_mark_is_ignored(self):
        tree = parse("\ufeffА = 1;")
        assert len(list(tree.iter_kind(RuleKind.ASSIGNMENT))) == 1


class TestParseErrors:

    def test_unterminated_if(self):
        with pytest.raises(BslParseError) as exc_info:
            parse("Если А Тогда\n    Б = 1;\n", file_name="Broken.bsl")
        err = exc_info.value
        assert err.file == "Broken.bsl"
        assert err.line >= 1
        assert str(err).startswith("Broken.bsl:")

    def test_garbage_after_statement(self):
        with pytest.raises(BslParseError):
            parse("А = 1; ) (")

    def test_keyword_used_as_variable(self):
        with pytest.raises(BslParseError):
            parse("Тогда = 1;")
