"""
Crafter Standard Library
Built-in arithmetic and comparison operators and number formatting
"""

from typing import Callable, Dict, Optional, Union
import math
import operator


Number = Union[int, float]

# Integral values at or above this magnitude display in exponent form
EXPONENT_DISPLAY_THRESHOLD = 1e21


# ============================================================================
# ARITHMETIC
# ============================================================================

def crafter_div(x: Number, y: Number) -> float:
  """Float division; results too large to represent become infinite"""
  if y == 0:
    raise ZeroDivisionError("Division by zero")
  return float(x) / float(y)


ARITHMETIC_OPERATORS: Dict[str, Callable[[Number, Number], Number]] = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': crafter_div,
}


# ============================================================================
# COMPARISON
# ============================================================================

COMPARISON_OPERATORS: Dict[str, Callable[[Number, Number], bool]] = {
    '<': operator.lt,
    '>': operator.gt,
    '<=': operator.le,
    '>=': operator.ge,
    '==': operator.eq,
    '!=': operator.ne,
}


def compare(op: str, left: Number, right: Number) -> bool:
  """Apply a comparison operator; unknown operators never hold"""
  comparison = COMPARISON_OPERATORS.get(op)
  if comparison is None:
    return False
  return comparison(left, right)


# ============================================================================
# NUMBERS
# ============================================================================

def parse_number(text: str) -> Optional[float]:
  """Parse an integer literal operand as a float, or None if text is not one"""
  if text.isascii() and text.isdigit():
    return float(text)
  return None


def format_number(value: Number) -> str:
  """Render a number the way the output panel shows it"""
  value = float(value)
  if math.isnan(value):
    return "NaN"
  if math.isinf(value):
    return "Infinity" if value > 0 else "-Infinity"
  if value.is_integer() and abs(value) < EXPONENT_DISPLAY_THRESHOLD:
    return str(int(value))
  return repr(value)


def parse_integer_literal(text: str) -> Number:
  """Value of a digit run; runs beyond float range become infinity"""
  approximate = float(text)
  if math.isinf(approximate):
    return approximate
  return int(text)
