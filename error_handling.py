"""
Error handling for the Crafter toolchain with detailed diagnostics
Diagnostics are plain dictionaries; the syntax error class wraps one
"""

from typing import List, Optional, Dict
from pyparsing import ParseException, col, lineno


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_diagnostic(
    message: str,
    line: int = 1,
    column: int = 1,
    severity: str = "error",
    kind: str = "syntax",
    end_line: Optional[int] = None,
    end_column: Optional[int] = None
) -> Dict:
    """Create an immutable diagnostic structure"""
    return {
        'message': message,
        'line': line,
        'column': column,
        'severity': severity,
        'kind': kind,
        'end_line': end_line,
        'end_column': end_column
    }


def make_stack_frame(statement_type: str, line: int, column: int) -> Dict:
    """Create a stack frame for an active statement"""
    return {
        'type': statement_type,
        'line': line,
        'column': column
    }


def format_diagnostic(diagnostic: Dict) -> str:
    """Format a diagnostic as a single line"""
    return (f"{diagnostic['severity']} at line {diagnostic['line']}, "
            f"column {diagnostic['column']}: {diagnostic['message']}")


def format_stack_trace(frames: List[Dict]) -> str:
    """Format stack frames innermost first, one frame per line"""
    if not frames:
        return ""
    return '\n'.join(
        f"#{index} {frame['type'].lower()} at line {frame['line']}, col {frame['column']}"
        for index, frame in enumerate(reversed(frames), 1)
    )


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2,
                      end_col: Optional[int] = None) -> str:
    """Get context lines around a location with a caret underline"""
    lines = source_text.split('\n')
    if not 1 <= line_num <= len(lines):
        return ""

    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)
    width = max(1, (end_col or col_num) - col_num + 1)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}{'^' * width}")

    return '\n'.join(context_parts)


def generate_suggestions(message: str) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []

    if "Unterminated string" in message:
        suggestions.append("Close the string with a matching '\"'")

    if "Unexpected token '+'" in message or "Unexpected token '-'" in message:
        suggestions.append("'likho' prints either one string or one expression, not both joined with an operator")

    if "comparison operator" in message:
        suggestions.append("Conditions compare two values with one of < > <= >= == !=")

    if "closing brace" in message or "Unmatched '}'" in message:
        suggestions.append("Every '{' opening an 'agar', 'warna' or 'jabtak' block needs a matching '}'")

    if "Unexpected character" in message:
        suggestions.append("Only letters, digits, strings, braces and + - * / = < > ! are allowed")

    if "Expected expression" in message:
        suggestions.append("Write a value such as 5, x or x + 1 here")

    return suggestions


def describe_scan_failure(exc: ParseException, source_text: str) -> Dict:
    """Convert a scanner failure into a syntax diagnostic"""
    loc = exc.loc
    line_num = lineno(loc, source_text)
    col_num = col(loc, source_text)

    char = source_text[loc] if loc < len(source_text) else ""
    if char == '"':
        message = "Unterminated string literal"
    else:
        message = f"Unexpected character '{char}'"

    return make_diagnostic(message, line_num, col_num, "error", "syntax")


# ============================================================================
# EXCEPTION CLASS
# ============================================================================

class CrafterSyntaxError(Exception):
    """Lexing or parsing failure with its location"""

    def __init__(self, message: str, line: int = 1, column: int = 1,
                 end_line: Optional[int] = None, end_column: Optional[int] = None,
                 context: Optional[str] = None):
        self.message = message
        self.line = line
        self.column = column
        self.end_line = end_line
        self.end_column = end_column
        self.context = context
        self.suggestions = generate_suggestions(message)
        super().__init__(message)

    @classmethod
    def from_diagnostic(cls, diagnostic: Dict, source_text: Optional[str] = None) -> 'CrafterSyntaxError':
        error = cls(diagnostic['message'], diagnostic['line'], diagnostic['column'],
                    diagnostic.get('end_line'), diagnostic.get('end_column'))
        if source_text is not None:
            error.attach_source(source_text)
        return error

    @property
    def diagnostic(self) -> Dict:
        return make_diagnostic(self.message, self.line, self.column, "error", "syntax",
                               self.end_line, self.end_column)

    def attach_source(self, source_text: str) -> None:
        """Record the source lines surrounding the error"""
        end_col = self.end_column if self.end_line in (None, self.line) else None
        self.context = get_context_lines(source_text, self.line, self.column, end_col=end_col) or None

    def __str__(self) -> str:
        error_msg = f"Syntax error at line {self.line}, column {self.column}:\n"
        error_msg += f"  {self.message}\n"

        if self.context:
            error_msg += f"  Context:\n{self.context}\n"

        if self.suggestions:
            error_msg += "  Suggestions:\n"
            for suggestion in self.suggestions:
                error_msg += f"    - {suggestion}\n"

        return error_msg
