"""
Crafter Interpreter - Tree Walking
Faults and breakpoints travel back up the walk as signal records, not exceptions.
All mutable run state lives in a per-call execution context.
"""

from typing import Dict, Iterable, List, Optional, Tuple
import re

from error_handling import make_diagnostic, make_stack_frame
from parsing import Token
from stdlib import ARITHMETIC_OPERATORS, Number, compare, format_number, parse_number


DEFAULT_MAX_ITERATIONS = 1000

DEFAULT_LOCATION = {'line': 1, 'column': 1}

# Expressions are re-split on the four arithmetic operators at run time.
# There is no precedence: "2 + 3 * 4" folds left to right into 20.
# Operands are floats, so overflow saturates to infinity.
OPERATOR_SPLIT = re.compile(r'([+\-*/])')

IDENTIFIER = re.compile(r'[a-zA-Z]+')


# ============================================================================
# DATA STRUCTURES (Dictionaries)
# ============================================================================

def make_execution_context(breakpoints: Optional[Iterable[int]] = None,
                           max_iterations: int = DEFAULT_MAX_ITERATIONS,
                           debug: bool = False) -> Dict:
  """Create the state for one interpretation run"""
  if max_iterations < 1:
    raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
  return {
      'environment': {},
      'output': [],
      'stack': [],
      'breakpoints': frozenset(breakpoints or ()),
      'max_iterations': max_iterations,
      'iteration_limit_reached': False,
      'notices': [],
      'debug': debug
  }


def make_runtime_error(message: str, loc: Dict) -> Dict:
  """Signal for a fault; the stack snapshot is attached on the way out"""
  return {
      'status': 'runtime_error',
      'message': message,
      'line': loc['line'],
      'column': loc['column'],
      'stack_trace': None
  }


def make_breakpoint_signal(loc: Dict, stack: List[Dict]) -> Dict:
  """Signal for a statement whose line carries a breakpoint"""
  return {
      'status': 'paused',
      'message': f"Breakpoint hit at line {loc['line']}, col {loc['column']}",
      'line': loc['line'],
      'column': loc['column'],
      'stack_trace': list(stack)
  }


# ============================================================================
# EXPRESSIONS
# ============================================================================

def eval_operand(text: str, context: Dict, loc: Dict) -> Tuple[Optional[Number], Optional[Dict]]:
  """Evaluate one operand of a flattened expression"""
  number = parse_number(text)
  if number is not None:
    return number, None

  if IDENTIFIER.fullmatch(text):
    if text in context['environment']:
      return context['environment'][text], None
    return None, make_runtime_error(f"Undefined variable '{text}'", loc)

  if not text:
    return None, make_runtime_error("Missing operand in expression", loc)
  return None, make_runtime_error(f"Invalid operand '{text}'", loc)


def eval_expression(expr: str, context: Dict, loc: Dict) -> Tuple[Optional[Number], Optional[Dict]]:
  """Left fold over operands, strictly left to right"""
  parts = [part.strip() for part in OPERATOR_SPLIT.split(expr)]

  result, signal = eval_operand(parts[0], context, loc)
  if signal is not None:
    return None, signal

  for op, operand_text in zip(parts[1::2], parts[2::2]):
    operand, signal = eval_operand(operand_text, context, loc)
    if signal is not None:
      return None, signal
    if op == '/' and operand == 0:
      return None, make_runtime_error("Division by zero", loc)
    result = ARITHMETIC_OPERATORS[op](result, operand)

  return result, None


def eval_token(token: Token, context: Dict, loc: Dict) -> Tuple[Optional[Number], Optional[Dict]]:
  """Evaluate a comparison operand token"""
  if token.type == "NUMBER":
    return float(token.value), None
  return eval_operand(str(token.value), context, loc)


def eval_condition(condition: Dict, context: Dict, loc: Dict) -> Tuple[bool, Optional[Dict]]:
  left, signal = eval_token(condition['left'], context, loc)
  if signal is not None:
    return False, signal
  right, signal = eval_token(condition['right'], context, loc)
  if signal is not None:
    return False, signal
  return compare(condition['operator'], left, right), None


# ============================================================================
# STATEMENTS
# ============================================================================

def exec_declaration(statement: Dict, context: Dict, loc: Dict) -> Optional[Dict]:
  value, signal = eval_expression(statement['value'], context, loc)
  if signal is not None:
    return signal
  context['environment'][statement['name']] = value
  return None


def exec_print(statement: Dict, context: Dict, loc: Dict) -> Optional[Dict]:
  if statement['is_string']:
    context['output'].append(statement['value'])
    return None

  value, signal = eval_expression(statement['value'], context, loc)
  if signal is not None:
    return signal
  context['output'].append(format_number(value))
  return None


def exec_conditional(statement: Dict, context: Dict, loc: Dict) -> Optional[Dict]:
  holds, signal = eval_condition(statement['condition'], context, loc)
  if signal is not None:
    return signal
  if holds:
    return exec_block(statement['body'], context)
  return exec_block(statement['else_body'], context)


def exec_loop(statement: Dict, context: Dict, loc: Dict) -> Optional[Dict]:
  max_iterations = context['max_iterations']
  iterations = 0

  while iterations < max_iterations:
    holds, signal = eval_condition(statement['condition'], context, loc)
    if signal is not None:
      return signal
    if not holds:
      return None

    signal = exec_block(statement['body'], context)
    if signal is not None:
      return signal
    iterations += 1

  # Only report the cap when the loop would have kept going
  holds, signal = eval_condition(statement['condition'], context, loc)
  if signal is not None:
    return signal
  if holds:
    context['iteration_limit_reached'] = True
    context['notices'].append(make_diagnostic(
        f"Loop stopped after {max_iterations} iterations (iteration limit reached).",
        loc['line'], loc['column'], "warning", "limit"))
  return None


STATEMENT_EXECUTORS = {
    'DECLARATION': exec_declaration,
    'PRINT': exec_print,
    'CONDITIONAL': exec_conditional,
    'LOOP': exec_loop,
}


def exec_statement(statement: Dict, context: Dict) -> Optional[Dict]:
  """Run one statement inside its own stack frame"""
  loc = statement.get('loc') or DEFAULT_LOCATION

  if loc['line'] in context['breakpoints']:
    return make_breakpoint_signal(loc, context['stack'])

  if context['debug']:
    print(f"Evaluating: {statement['type']} at line {loc['line']}")

  context['stack'].append(make_stack_frame(statement['type'], loc['line'], loc['column']))
  signal = STATEMENT_EXECUTORS[statement['type']](statement, context, loc)

  # The innermost frame that sees a fault records the snapshot
  if signal is not None and signal['status'] == 'runtime_error' and signal['stack_trace'] is None:
    signal = {**signal, 'stack_trace': list(context['stack'])}

  context['stack'].pop()
  return signal


def exec_block(body: List[Dict], context: Dict) -> Optional[Dict]:
  for statement in body:
    signal = exec_statement(statement, context)
    if signal is not None:
      return signal
  return None


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def make_outcome(context: Dict, signal: Optional[Dict]) -> Dict:
  """Summarize a finished, failed or paused run"""
  lines = list(context['output'])
  status = 'ok' if signal is None else signal['status']
  text = '\n'.join(lines)

  error = None
  breakpoint = None
  if status == 'runtime_error':
    error = make_diagnostic(signal['message'], signal['line'], signal['column'], "error", "runtime")
  elif status == 'paused':
    breakpoint = {'line': signal['line'], 'column': signal['column']}

  return {
      'status': status,
      'output': text if status == 'ok' else '',
      'partial_output': '' if status == 'ok' else text,
      'lines': lines,
      'error': error,
      'breakpoint': breakpoint,
      'stack_trace': (signal['stack_trace'] or []) if signal is not None else [],
      'iteration_limit_reached': context['iteration_limit_reached'],
      'notices': list(context['notices']),
      'environment': dict(context['environment'])
  }


def interpret(ast: Dict, breakpoints: Optional[Iterable[int]] = None,
              max_iterations: int = DEFAULT_MAX_ITERATIONS, debug: bool = False) -> Dict:
  """
  Run a program AST from its first statement.

  Returns an outcome with status 'ok', 'runtime_error' or 'paused'. A paused
  run cannot be resumed; running again starts over.
  """
  context = make_execution_context(breakpoints, max_iterations, debug)
  signal = exec_block(ast['body'], context)
  return make_outcome(context, signal)


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter(debug: bool = False, max_iterations: int = DEFAULT_MAX_ITERATIONS):
  """Factory function returning an interpreter"""
  def interpret_program(ast: Dict, breakpoints: Optional[Iterable[int]] = None) -> Dict:
    return interpret(ast, breakpoints, max_iterations, debug)

  return type('Interpreter', (), {
      'interpret': lambda self, ast, breakpoints=None: interpret_program(ast, breakpoints),
      'max_iterations': max_iterations,
      'debug': debug
  })()
