"""
Crafter compile-and-run pipeline
Single entry point the host calls for a compile request, plus stage views
"""

from typing import Dict, Iterable, List, Optional, Set
import time

from error_handling import (
  CrafterSyntaxError,
  format_diagnostic,
  format_stack_trace,
  get_context_lines
)
from interpreter import DEFAULT_MAX_ITERATIONS, interpret
from parsing import check_brace_balance, format_ast, format_tokens, lex, parse
from semantics import lint


STAGES = ('tokens', 'ast', 'ir', 'run')

NO_IR_TEXT = ("Crafter intermediate representation:\n"
              "(the AST is interpreted directly - there is no separate IR phase)")


# ============================================================================
# DATA STRUCTURES (Dictionaries)
# ============================================================================

def make_result(status: str, **fields) -> Dict:
  """Create a run result; unspecified fields take their empty values"""
  result = {
      'status': status,
      'success': status == 'ok',
      'paused': status == 'paused',
      'output': '',
      'partial_output': '',
      'warnings': [],
      'diagnostics': [],
      'breakpoint': None,
      'stack_trace': [],
      'iteration_limit_reached': False,
      'tokens': [],
      'ast': None,
      'timing': {}
  }
  result.update(fields)
  return result


def elapsed_ms(start: float) -> float:
  return (time.perf_counter() - start) * 1000.0


# ============================================================================
# PIPELINE
# ============================================================================

def run_program(source: str, breakpoints: Optional[Iterable[int]] = None,
                max_iterations: int = DEFAULT_MAX_ITERATIONS, debug: bool = False,
                filename: str = "<input>") -> Dict:
  """
  Lex, parse, lint and interpret source in one request.

  Status is one of 'ok', 'syntax_error', 'runtime_error' or 'paused'. Lint
  warnings are included whenever parsing succeeded.
  """
  timing = {'lexer': 0.0, 'parser': 0.0, 'lint': 0.0, 'interpret': 0.0, 'total': 0.0}
  started = time.perf_counter()
  tokens = []

  try:
    stage_start = time.perf_counter()
    tokens = lex(source, filename)
    timing['lexer'] = elapsed_ms(stage_start)

    stage_start = time.perf_counter()
    check_brace_balance(tokens)
    ast = parse(tokens, debug)
    timing['parser'] = elapsed_ms(stage_start)
  except CrafterSyntaxError as e:
    if e.context is None:
      e.attach_source(source)
    timing['total'] = elapsed_ms(started)
    return make_result('syntax_error', diagnostics=[e.diagnostic], tokens=tokens, timing=timing)

  stage_start = time.perf_counter()
  warnings = lint(tokens, ast, debug)
  timing['lint'] = elapsed_ms(stage_start)

  stage_start = time.perf_counter()
  outcome = interpret(ast, breakpoints, max_iterations, debug)
  timing['interpret'] = elapsed_ms(stage_start)
  timing['total'] = elapsed_ms(started)

  diagnostics = list(outcome['notices'])
  if outcome['error'] is not None:
    diagnostics.insert(0, outcome['error'])

  if debug:
    print(f"Run finished with status {outcome['status']} in {timing['total']:.2f}ms")

  return make_result(
      outcome['status'],
      output=outcome['output'],
      partial_output=outcome['partial_output'],
      warnings=warnings,
      diagnostics=diagnostics,
      breakpoint=outcome['breakpoint'],
      stack_trace=outcome['stack_trace'],
      iteration_limit_reached=outcome['iteration_limit_reached'],
      tokens=tokens,
      ast=ast,
      timing=timing
  )


def run_stage(source: str, stage: str) -> str:
  """Text for a single compiler stage view; syntax errors propagate"""
  if stage == 'tokens':
    return format_tokens(lex(source))
  if stage == 'ast':
    tokens = lex(source)
    check_brace_balance(tokens)
    return format_ast(parse(tokens))
  if stage == 'ir':
    return NO_IR_TEXT
  if stage == 'run':
    result = run_program(source)
    if result['success']:
      return result['output']
    return '\n'.join(d['message'] for d in result['diagnostics'])
  raise ValueError(f"Unknown stage '{stage}', expected one of {', '.join(STAGES)}")


def toggle_breakpoint(breakpoints: Set[int], line: int) -> Set[int]:
  """Return a new breakpoint set with line added or removed"""
  if line in breakpoints:
    return set(breakpoints) - {line}
  return set(breakpoints) | {line}


# ============================================================================
# REPORTING
# ============================================================================

def format_report(result: Dict, source: Optional[str] = None) -> str:
  """Render a run result the way the output panel shows it"""
  parts: List[str] = []
  status = result['status']

  if status == 'ok':
    parts.append(result['output'])
  elif status == 'paused':
    bp = result['breakpoint']
    parts.append(f"Breakpoint\nExecution paused at line {bp['line']}, col {bp['column']}.")
  else:
    title = "Syntax Error" if status == 'syntax_error' else "Runtime Error"
    error = result['diagnostics'][0]
    block = f"{title}\n{format_diagnostic(error)}"
    if source is not None:
      context = get_context_lines(source, error['line'], error['column'])
      if context:
        block += f"\n{context}"
    trace = format_stack_trace(result['stack_trace'])
    if trace:
      block += f"\n\nStack Trace:\n{trace}"
    parts.append(block)

  notices = [d for d in result['diagnostics'] if d['kind'] == 'limit']
  if notices:
    parts.append("Notices:\n" + '\n'.join(f"- {format_diagnostic(d)}" for d in notices))

  if result['warnings']:
    parts.append("Lint Warnings:\n" + '\n'.join(f"- {w['message']}" for w in result['warnings']))

  return '\n\n'.join(part for part in parts if part)
