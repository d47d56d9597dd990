"""
Crafter Programming Language Parser
Scanner, recursive-descent parser and pretty printers with source spans
"""

from collections import deque
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Deque, Iterator, Tuple

# Import pyparsing with error handling
try:
    from pyparsing import (
        Regex, ZeroOrMore, StringEnd, ParseException, ParseResults, ParserElement,
        lineno, col
    )
    # Enable packrat parsing for performance
    ParserElement.enable_packrat()
except ImportError:
    raise ImportError("pyparsing library not found. Install with: pip install pyparsing")

from error_handling import CrafterSyntaxError, describe_scan_failure
from stdlib import COMPARISON_OPERATORS, parse_integer_literal


# Keywords, in their literal spellings
DECLARE_KW = "maano"
PRINT_KW = "likho"
IF_KW = "agar"
ELSE_KW = "warna"
WHILE_KW = "jabtak"

KEYWORDS = frozenset({DECLARE_KW, PRINT_KW, IF_KW, ELSE_KW, WHILE_KW})

# Token types that may appear in a flattened expression
EXPRESSION_TOKEN_TYPES = frozenset({"OPERATOR", "IDENTIFIER", "NUMBER"})


@dataclass(frozen=True)
class SourceSpan:
    """Source location information for a token"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = ""

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


@dataclass(frozen=True)
class Token:
    """Crafter token with source information"""
    type: str
    value: Any
    span: SourceSpan

    @property
    def line(self) -> int:
        return self.span.start_line

    @property
    def column(self) -> int:
        return self.span.start_col

    @property
    def end_line(self) -> int:
        return self.span.end_line

    @property
    def end_column(self) -> int:
        return self.span.end_col

    def __str__(self) -> str:
        return f"{self.type}({self.value})"


# ============================================================================
# TOKENIZER
# ============================================================================

class CrafterTokenizer:
    """Crafter tokenizer built from pyparsing scanner elements"""

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token patterns for Crafter"""

        # String literals run to the next quote; no escape sequences
        string_literal = Regex(r'"[^"]*"').set_parse_action(
            self._token_action("STRING", lambda text: text[1:-1]))

        # Letter runs are keywords or identifiers
        word = Regex(r'[a-zA-Z]+').set_parse_action(self._word_action)

        # Integer literals only
        number = Regex(r'[0-9]+').set_parse_action(self._token_action("NUMBER", parse_integer_literal))

        # Single operators, optionally followed by '='
        operator = Regex(r'[+\-*/=<>!]=?').set_parse_action(self._token_action("OPERATOR", str))

        brace = Regex(r'[{}]').set_parse_action(self._token_action("BRACE", str))

        token = string_literal | word | number | operator | brace

        # Tabs must survive so that columns match the editor
        self.scanner = (ZeroOrMore(token) + StringEnd()).parse_with_tabs()

    def _make_span(self, source: str, loc: int, text: str) -> SourceSpan:
        end_loc = loc + len(text) - 1
        return SourceSpan(
            self.filename,
            lineno(loc, source), col(loc, source),
            lineno(end_loc, source), col(end_loc, source),
            text
        )

    def _token_action(self, token_type: str, convert):
        def action(source: str, loc: int, toks: ParseResults) -> Token:
            text = toks[0]
            return Token(token_type, convert(text), self._make_span(source, loc, text))
        return action

    def _word_action(self, source: str, loc: int, toks: ParseResults) -> Token:
        text = toks[0]
        token_type = "KEYWORD" if text in KEYWORDS else "IDENTIFIER"
        return Token(token_type, text, self._make_span(source, loc, text))

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize Crafter source code"""
        try:
            result = self.scanner.parse_string(text, parse_all=True)
        except ParseException as e:
            raise CrafterSyntaxError.from_diagnostic(describe_scan_failure(e, text), text) from e
        return list(result)


def lex(source: str, filename: str = "<input>") -> List[Token]:
    """Convert source text into located tokens"""
    return CrafterTokenizer(filename).tokenize(source)


# ============================================================================
# AST CONSTRUCTION (Immutable Dictionaries)
# ============================================================================

def make_location(token: Token) -> Dict:
    """Location of a statement, taken from its keyword token"""
    return {'line': token.line, 'column': token.column}


def make_program(body: List[Dict]) -> Dict:
    return {'type': 'PROGRAM', 'body': body}


def make_declaration(name: str, value: str, keyword: Token) -> Dict:
    return {'type': 'DECLARATION', 'name': name, 'value': value, 'loc': make_location(keyword)}


def make_print(is_string: bool, value: str, keyword: Token) -> Dict:
    return {'type': 'PRINT', 'is_string': is_string, 'value': value, 'loc': make_location(keyword)}


def make_condition(left: Token, operator: str, right: Token) -> Dict:
    return {'left': left, 'operator': operator, 'right': right}


def make_conditional(condition: Dict, body: List[Dict], else_body: List[Dict], keyword: Token) -> Dict:
    return {
        'type': 'CONDITIONAL',
        'condition': condition,
        'body': body,
        'else_body': else_body,
        'loc': make_location(keyword)
    }


def make_loop(condition: Dict, body: List[Dict], keyword: Token) -> Dict:
    return {'type': 'LOOP', 'condition': condition, 'body': body, 'loc': make_location(keyword)}


# ============================================================================
# PARSER
# ============================================================================

class TokenQueue:
    """Destructive front-to-back view over a token list"""

    def __init__(self, tokens: List[Token]):
        self.tokens: Deque[Token] = deque(tokens)
        self.last_token: Optional[Token] = None

    def __len__(self) -> int:
        return len(self.tokens)

    def peek(self) -> Optional[Token]:
        return self.tokens[0] if self.tokens else None

    def shift(self) -> Optional[Token]:
        if not self.tokens:
            return None
        token = self.tokens.popleft()
        self.last_token = token
        return token


def brace_check_error(message: str, token: Token) -> CrafterSyntaxError:
    return CrafterSyntaxError(message, token.line, token.column, token.end_line, token.end_column)


def check_brace_balance(tokens: List[Token]) -> None:
    """Fail on an unmatched '}' or on the innermost unclosed '{'"""
    stack: List[Token] = []
    for token in tokens:
        if token.type != "BRACE":
            continue
        if token.value == "{":
            stack.append(token)
        elif not stack:
            raise brace_check_error("Unmatched '}'", token)
        else:
            stack.pop()

    if stack:
        raise brace_check_error("Missing closing brace '}'", stack[-1])


class CrafterParser:
    """Recursive-descent parser, one statement form per keyword"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.statement_parsers = {
            DECLARE_KW: self._parse_declaration,
            PRINT_KW: self._parse_print,
            IF_KW: self._parse_conditional,
            WHILE_KW: self._parse_loop,
        }

    def parse_tokens(self, tokens: List[Token]) -> Dict:
        """Build the program AST; the caller's token list is left intact"""
        queue = TokenQueue(tokens)
        body = []
        while queue:
            body.append(self._parse_statement(queue))

        if self.debug:
            print(f"Parsed {len(body)} statements")
        return make_program(body)

    def parse_string(self, text: str, filename: str = "<input>") -> Dict:
        """Tokenize and parse Crafter source code"""
        tokens = self.tokenize(text, filename)
        try:
            check_brace_balance(tokens)
            return self.parse_tokens(tokens)
        except CrafterSyntaxError as e:
            e.attach_source(text)
            raise

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        tokens = CrafterTokenizer(filename).tokenize(text)
        if self.debug:
            print(f"Scanned {len(tokens)} tokens")
        return tokens

    # ------------------------------------------------------------------------

    def _error(self, message: str, token: Optional[Token]) -> CrafterSyntaxError:
        if token is None:
            return CrafterSyntaxError(message)
        return CrafterSyntaxError(message, token.line, token.column, token.end_line, token.end_column)

    def _expect(self, queue: TokenQueue, token_type: str, value: Optional[str] = None) -> Token:
        wanted = token_type.lower() + (f" '{value}'" if value is not None else "")
        token = queue.shift()
        if token is None:
            raise self._error(f"Unexpected end of input, expected {wanted}", queue.last_token)
        if token.type != token_type or (value is not None and token.value != value):
            raise self._error(f"Unexpected token '{token.value}', expected {wanted}", token)
        return token

    def _expect_one_of(self, queue: TokenQueue, token_types: Tuple[str, ...]) -> Token:
        wanted = " or ".join(t.lower() for t in token_types)
        token = queue.shift()
        if token is None:
            raise self._error(f"Unexpected end of input, expected {wanted}", queue.last_token)
        if token.type not in token_types:
            raise self._error(f"Unexpected token '{token.value}', expected {wanted}", token)
        return token

    def _parse_statement(self, queue: TokenQueue) -> Dict:
        token = queue.shift()
        if token.type == "KEYWORD" and token.value in self.statement_parsers:
            return self.statement_parsers[token.value](token, queue)
        raise self._error(f"Unexpected token '{token.value}'", token)

    def _parse_expression(self, queue: TokenQueue) -> str:
        """Greedy run of operator/identifier/number tokens, joined by spaces"""
        parts = []
        while queue and queue.peek().type in EXPRESSION_TOKEN_TYPES:
            parts.append(queue.shift().span.text)
        return " ".join(parts)

    def _parse_comparison(self, queue: TokenQueue) -> Dict:
        left = self._expect_one_of(queue, ("IDENTIFIER", "NUMBER"))
        op = self._expect(queue, "OPERATOR")
        if op.value not in COMPARISON_OPERATORS:
            raise self._error(f"Unexpected operator '{op.value}', expected a comparison operator", op)
        right = self._expect_one_of(queue, ("IDENTIFIER", "NUMBER"))
        return make_condition(left, op.value, right)

    def _parse_block(self, queue: TokenQueue) -> List[Dict]:
        opener = self._expect(queue, "BRACE", "{")
        body = []
        while queue and queue.peek().type != "BRACE":
            body.append(self._parse_statement(queue))

        closing = queue.shift()
        if closing is None:
            raise self._error("Missing closing brace '}'", opener)
        if closing.value != "}":
            raise self._error(f"Unexpected token '{closing.value}', expected brace '}}'", closing)
        return body

    def _parse_declaration(self, keyword: Token, queue: TokenQueue) -> Dict:
        identifier = self._expect(queue, "IDENTIFIER")
        self._expect(queue, "OPERATOR", "=")
        value = self._parse_expression(queue)
        if not value:
            raise self._error("Expected expression after '='", identifier)
        return make_declaration(identifier.value, value, keyword)

    def _parse_print(self, keyword: Token, queue: TokenQueue) -> Dict:
        # One token of lookahead decides between the two print forms
        next_token = queue.peek()
        if next_token is not None and next_token.type == "STRING":
            queue.shift()
            return make_print(True, next_token.value, keyword)

        value = self._parse_expression(queue)
        if not value:
            raise self._error(f"Expected expression after '{PRINT_KW}'", keyword)
        return make_print(False, value, keyword)

    def _parse_conditional(self, keyword: Token, queue: TokenQueue) -> Dict:
        condition = self._parse_comparison(queue)
        body = self._parse_block(queue)

        else_body = []
        next_token = queue.peek()
        if next_token is not None and next_token.type == "KEYWORD" and next_token.value == ELSE_KW:
            queue.shift()
            else_body = self._parse_block(queue)

        return make_conditional(condition, body, else_body, keyword)

    def _parse_loop(self, keyword: Token, queue: TokenQueue) -> Dict:
        condition = self._parse_comparison(queue)
        body = self._parse_block(queue)
        return make_loop(condition, body, keyword)


def parse(tokens: List[Token], debug: bool = False) -> Dict:
    """Build the AST for a token list"""
    return CrafterParser(debug).parse_tokens(tokens)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> CrafterParser:
    """Create a Crafter parser"""
    return CrafterParser(debug=debug)


def create_debug_parser() -> CrafterParser:
    """Create a Crafter parser with debug enabled"""
    return CrafterParser(debug=True)


# ============================================================================
# AST UTILITIES
# ============================================================================

def child_blocks(node: Dict) -> List[List[Dict]]:
    """Statement lists nested directly under a node"""
    if node['type'] == 'CONDITIONAL':
        return [node['body'], node['else_body']]
    if node['type'] in ('PROGRAM', 'LOOP'):
        return [node['body']]
    return []


def iter_statements(body: List[Dict]) -> Iterator[Dict]:
    """Yield every statement in a block, depth first in source order"""
    for statement in body:
        yield statement
        for block in child_blocks(statement):
            yield from iter_statements(block)


def find_nodes_by_type(ast: Dict, node_type: str) -> List[Dict]:
    """Find all statements of a specific type in an AST"""
    return [node for node in iter_statements(ast['body']) if node['type'] == node_type]


def format_operand(token: Token) -> str:
    return str(token.value)


def format_condition(condition: Dict) -> str:
    return f"{format_operand(condition['left'])} {condition['operator']} {format_operand(condition['right'])}"


def describe_node(node: Dict) -> str:
    """One-line label for an AST node"""
    node_type = node['type']
    if node_type == 'DECLARATION':
        return f"declaration [name: {node['name']}] ({node['value']})"
    if node_type == 'PRINT':
        if node['is_string']:
            return f'print "{node["value"]}"'
        return f"print ({node['value']})"
    if node_type in ('CONDITIONAL', 'LOOP'):
        return f"{node_type.lower()} ({format_condition(node['condition'])})"
    return node_type.lower()


def format_tokens(tokens: List[Token]) -> str:
    """Pretty print tokens, one per line"""
    return '\n'.join(
        f'{i}. {token.type}: "{token.value}"' for i, token in enumerate(tokens, 1)
    )


def format_ast(ast: Dict, indent: int = 0) -> str:
    """Pretty print an AST, two spaces per nesting level"""
    lines: List[str] = []

    def emit(node: Dict, depth: int):
        lines.append("  " * depth + describe_node(node))
        if node['type'] == 'CONDITIONAL':
            lines.append("  " * (depth + 1) + "then")
            for child in node['body']:
                emit(child, depth + 2)
            if node['else_body']:
                lines.append("  " * (depth + 1) + "else")
                for child in node['else_body']:
                    emit(child, depth + 2)
        else:
            for block in child_blocks(node):
                for child in block:
                    emit(child, depth + 1)

    emit(ast, indent)
    return '\n'.join(lines)


def token_to_dict(token: Token) -> Dict[str, Any]:
    return {
        "type": token.type,
        "value": token.value,
        "span": {
            "filename": token.span.filename,
            "start_line": token.span.start_line,
            "start_col": token.span.start_col,
            "end_line": token.span.end_line,
            "end_col": token.span.end_col,
        }
    }


def ast_to_dict(node: Dict) -> Dict[str, Any]:
    """Convert an AST to a JSON-friendly dictionary"""
    result = {}
    for key, value in node.items():
        if key == 'condition':
            result[key] = {
                'left': token_to_dict(value['left']),
                'operator': value['operator'],
                'right': token_to_dict(value['right'])
            }
        elif key in ('body', 'else_body'):
            result[key] = [ast_to_dict(child) for child in value]
        else:
            result[key] = value
    return result


if __name__ == "__main__":
    # Example usage and testing
    parser = create_debug_parser()

    test_program = """
    maano x = 5
    maano y = 10
    likho x + y
    """
    try:
        tokens = parser.tokenize(test_program)
        print(format_tokens(tokens))
        print("\nProgram parse result:")
        print(format_ast(parser.parse_tokens(tokens)))
    except CrafterSyntaxError as e:
        print(e)
