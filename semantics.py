"""
Crafter Semantics Analysis - Lint Pass
Advisory checks over an already parsed AST; never fails
"""

from typing import Dict, List, Optional, Tuple
import re

from parsing import KEYWORDS, Token, iter_statements
from error_handling import make_diagnostic


IDENTIFIER_PATTERN = re.compile(r'[a-zA-Z]+')

DEFAULT_LOCATION = {'line': 1, 'column': 1}


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def identifiers_in(expr) -> List[str]:
  """Identifiers mentioned in an expression string, keywords excluded"""
  if not isinstance(expr, str):
    return []
  return [name for name in IDENTIFIER_PATTERN.findall(expr) if name not in KEYWORDS]


def operand_identifiers(condition: Dict) -> List[str]:
  """Identifier operands of a comparison"""
  return [
      token.value for token in (condition['left'], condition['right'])
      if token.type == "IDENTIFIER"
  ]


def is_declared_in(body: List[Dict], name: str) -> bool:
  """Whether any declaration inside a block, nested blocks included, targets name"""
  return any(
      statement['type'] == 'DECLARATION' and statement['name'] == name
      for statement in iter_statements(body)
  )


def index_name_tokens(tokens: Optional[List[Token]]) -> Dict[Tuple[int, int], Token]:
  """Map each declaration keyword position to the identifier token after it"""
  index = {}
  if not tokens:
    return index
  for keyword, name in zip(tokens, tokens[1:]):
    if keyword.type == "KEYWORD" and name.type == "IDENTIFIER":
      index[(keyword.line, keyword.column)] = name
  return index


def make_warning(message: str, loc: Dict, name_token: Optional[Token] = None) -> Dict:
  if name_token is not None:
    return make_diagnostic(message, loc['line'], loc['column'], "warning", "lint",
                           name_token.end_line, name_token.end_column)
  return make_diagnostic(message, loc['line'], loc['column'], "warning", "lint")


# ============================================================================
# LINT WALK
# ============================================================================

def lint(tokens: Optional[List[Token]], ast: Dict, debug: bool = False) -> List[Dict]:
  """
  Walk the program once and report advisory warnings.

  Loop warnings are emitted during the walk; unused and undeclared variable
  warnings follow, in first-seen order.
  """
  warnings = []
  declared: Dict[str, Dict] = {}
  used: Dict[str, Dict] = {}

  def mark_used(names: List[str], loc: Dict):
    for name in names:
      used.setdefault(name, loc)

  for node in iter_statements(ast['body']):
    loc = node.get('loc') or DEFAULT_LOCATION
    node_type = node['type']

    if debug:
      print(f"Linting: {node_type} at line {loc['line']}")

    if node_type == 'DECLARATION':
      declared.setdefault(node['name'], loc)
      mark_used(identifiers_in(node['value']), loc)

    elif node_type == 'PRINT':
      if not node['is_string']:
        mark_used(identifiers_in(node['value']), loc)

    elif node_type == 'CONDITIONAL':
      mark_used(operand_identifiers(node['condition']), loc)

    elif node_type == 'LOOP':
      mark_used(operand_identifiers(node['condition']), loc)
      loop_var = node['condition']['left'].value
      if not is_declared_in(node['body'], loop_var):
        warnings.append(make_warning(
            f"Loop variable '{loop_var}' is never updated inside the loop (possible infinite loop).",
            loc))

  name_tokens = index_name_tokens(tokens)

  for name, loc in declared.items():
    if name not in used:
      warnings.append(make_warning(
          f"Variable '{name}' is declared but never used.",
          loc, name_tokens.get((loc['line'], loc['column']))))

  for name, loc in used.items():
    if name not in declared:
      warnings.append(make_warning(f"Variable '{name}' is used before declaration.", loc))

  return warnings


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_analyzer(debug: bool = False):
  """Factory function returning an analyzer"""
  return type('Analyzer', (), {
      'lint': lambda self, tokens, ast: lint(tokens, ast, debug),
      'debug': debug
  })()


def create_debug_analyzer():
  """Factory function returning a debug analyzer"""
  return create_analyzer(debug=True)
