"""
Lexer tests for the Crafter scanner
Token kinds, values and source spans
"""

import pytest
from parsing import lex, Token
from error_handling import CrafterSyntaxError


def kinds(tokens):
  return [(token.type, token.value) for token in tokens]


class TestTokenKinds:
  """Test classification of each token kind"""

  def test_declaration_tokens(self):
    tokens = lex("maano x = 5")
    assert kinds(tokens) == [
        ("KEYWORD", "maano"),
        ("IDENTIFIER", "x"),
        ("OPERATOR", "="),
        ("NUMBER", 5),
    ]

  def test_all_keywords(self):
    tokens = lex("maano likho agar warna jabtak")
    assert all(token.type == "KEYWORD" for token in tokens)

  def test_keywords_are_case_sensitive(self):
    assert kinds(lex("Maano")) == [("IDENTIFIER", "Maano")]

  def test_numbers_are_integers(self):
    token = lex("1234")[0]
    assert token.value == 1234
    assert isinstance(token.value, int)

  def test_letters_and_digits_split(self):
    assert kinds(lex("x1")) == [("IDENTIFIER", "x"), ("NUMBER", 1)]

  def test_two_character_operators(self):
    values = [token.value for token in lex("<= >= == != < > ! =")]
    assert values == ["<=", ">=", "==", "!=", "<", ">", "!", "="]

  def test_operators_without_spaces(self):
    assert kinds(lex("i<=10")) == [
        ("IDENTIFIER", "i"),
        ("OPERATOR", "<="),
        ("NUMBER", 10),
    ]

  def test_string_value_excludes_quotes(self):
    assert kinds(lex('likho "hello world"')) == [
        ("KEYWORD", "likho"),
        ("STRING", "hello world"),
    ]

  def test_braces(self):
    assert kinds(lex("{}")) == [("BRACE", "{"), ("BRACE", "}")]

  def test_empty_source(self):
    assert lex("") == []
    assert lex("  \n\t\n") == []


class TestSourceSpans:
  """Test line and column tracking"""

  def test_columns_are_one_based(self):
    tokens = lex("maano x = 5")
    assert [(t.line, t.column) for t in tokens] == [(1, 1), (1, 7), (1, 9), (1, 11)]

  def test_end_column_is_inclusive(self):
    keyword = lex("maano x")[0]
    assert keyword.end_line == 1
    assert keyword.end_column == 5

  def test_lines_advance(self):
    tokens = lex("maano x = 1\n\nlikho x")
    assert (tokens[4].line, tokens[4].column) == (3, 1)
    assert (tokens[5].line, tokens[5].column) == (3, 7)

  def test_tabs_count_as_one_column(self):
    token = lex("\tx")[0]
    assert token.column == 2

  def test_string_may_span_lines(self):
    token = lex('"a\nb"')[0]
    assert token.value == "a\nb"
    assert (token.line, token.column) == (1, 1)
    assert (token.end_line, token.end_column) == (2, 2)

  def test_filename_recorded(self):
    token = lex("x", "demo.crafter")[0]
    assert token.span.filename == "demo.crafter"
    assert str(token.span) == "demo.crafter:1:1-1"

  def test_tokens_are_immutable(self):
    token = lex("x")[0]
    assert isinstance(token, Token)
    with pytest.raises(Exception):
      token.value = "y"


class TestLexErrors:
  """Test scanner failures"""

  def test_unexpected_character(self):
    with pytest.raises(CrafterSyntaxError) as exc_info:
      lex("maano x = 5\nlikho x @ 2")

    error = exc_info.value
    assert error.message == "Unexpected character '@'"
    assert (error.line, error.column) == (2, 9)

  def test_unterminated_string(self):
    with pytest.raises(CrafterSyntaxError) as exc_info:
      lex('likho "abc')

    error = exc_info.value
    assert error.message == "Unterminated string literal"
    assert (error.line, error.column) == (1, 7)
    assert error.suggestions

  def test_error_shows_context(self):
    with pytest.raises(CrafterSyntaxError) as exc_info:
      lex("likho 3 % 2")

    text = str(exc_info.value)
    assert "Syntax error at line 1, column 9" in text
    assert "   1: likho 3 % 2" in text
    assert "^" in text

  def test_diagnostic_record(self):
    with pytest.raises(CrafterSyntaxError) as exc_info:
      lex("#")

    diagnostic = exc_info.value.diagnostic
    assert diagnostic['kind'] == "syntax"
    assert diagnostic['severity'] == "error"
    assert (diagnostic['line'], diagnostic['column']) == (1, 1)


class TestNumberLiterals:
  """Digit runs keep their spelling and saturate past float range"""

  def test_huge_literal_is_infinite(self):
    token = lex("9" * 400)[0]
    assert token.type == "NUMBER"
    assert token.value == float("inf")
    assert token.span.text == "9" * 400

  def test_expression_keeps_literal_spelling(self, parser):
    source = "likho " + "9" * 400 + " + 1"
    statement = parser.parse_string(source)['body'][0]
    assert statement['value'] == "9" * 400 + " + 1"
