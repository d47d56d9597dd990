"""
Crafter Programming Language - Main Entry Point
A small teaching language with staged compiler views and breakpoints
"""

import sys
import json
import argparse
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from error_handling import CrafterSyntaxError, format_diagnostic
from interpreter import DEFAULT_MAX_ITERATIONS
from parsing import (
  KEYWORDS, Token, ast_to_dict, check_brace_balance, create_debug_parser, create_parser,
  format_ast, format_tokens
)
from pipeline import format_report, run_program, toggle_breakpoint
from semantics import create_analyzer, create_debug_analyzer


VERSION = "Crafter v0.3.0"


def positive_int(text: str) -> int:
  value = int(text)
  if value < 1:
    raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
  return value


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Crafter Programming Language - staged teaching interpreter',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.crafter              # Run a Crafter script
  %(prog)s -i                          # Interactive mode
  %(prog)s --tokens script.crafter     # Show the token stream
  %(prog)s --ast script.crafter        # Show the syntax tree
  %(prog)s --lint script.crafter       # Show lint warnings only
  %(prog)s -b 4 -b 9 script.crafter    # Run until line 4 or 9 is reached
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Crafter script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show the tokens'
  )

  parser.add_argument(
      '--ast',
      action='store_true',
      help='Parse file and show the syntax tree'
  )

  parser.add_argument(
      '--json',
      action='store_true',
      help='With --ast, print the syntax tree as JSON'
  )

  parser.add_argument(
      '--lint',
      action='store_true',
      help='Parse file and show lint warnings'
  )

  parser.add_argument(
      '-b', '--break',
      dest='breakpoints',
      type=positive_int,
      action='append',
      default=[],
      metavar='LINE',
      help='Pause before the first statement on LINE (repeatable)'
  )

  parser.add_argument(
      '--max-iterations',
      type=positive_int,
      default=DEFAULT_MAX_ITERATIONS,
      help=f'Iteration cap for each loop (default {DEFAULT_MAX_ITERATIONS})'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def read_script(script_path: str) -> str:
  """Read a script, exiting with a hint when it cannot be read"""
  try:
    with open(script_path, 'r', encoding='utf-8') as f:
      return f.read()
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found")
    print(f"  Hint: Check the file path and make sure the file exists")
    sys.exit(1)
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'")
    print(f"  Hint: Make sure you have read permissions for this file")
    sys.exit(1)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}")
    print(f"  Hint: Make sure the file is a text file with UTF-8 encoding")
    sys.exit(1)


def show_tokens(script_path: str, debug: bool = False) -> None:
  """Tokenize a script file and show the tokens"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()
  try:
    tokens = parser.tokenize(source, script_path)
  except CrafterSyntaxError as e:
    print(f"Syntax error in '{script_path}': {e}")
    sys.exit(1)

  print(f"Scanned {len(tokens)} tokens:")
  print("=" * 50)
  print(format_tokens(tokens))


def show_ast(script_path: str, as_json: bool = False, debug: bool = False) -> None:
  """Parse a script file and show the syntax tree"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()
  try:
    ast = parser.parse_string(source, script_path)
  except CrafterSyntaxError as e:
    print(f"Syntax error in '{script_path}': {e}")
    sys.exit(1)

  if as_json:
    print(json.dumps(ast_to_dict(ast), indent=2))
  else:
    print(format_ast(ast))


def tokenize_and_parse(parser, source: str, filename: str = "<input>") -> Tuple[List[Token], Dict]:
  """Scan once and parse the same tokens"""
  tokens = parser.tokenize(source, filename)
  try:
    check_brace_balance(tokens)
    return tokens, parser.parse_tokens(tokens)
  except CrafterSyntaxError as e:
    e.attach_source(source)
    raise


def show_lint(script_path: str, debug: bool = False) -> None:
  """Parse a script file and show lint warnings"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()
  analyzer = create_debug_analyzer() if debug else create_analyzer()
  try:
    tokens, ast = tokenize_and_parse(parser, source, script_path)
  except CrafterSyntaxError as e:
    print(f"Syntax error in '{script_path}': {e}")
    sys.exit(1)

  warnings = analyzer.lint(tokens, ast)
  if not warnings:
    print("No lint warnings")
    return
  for warning in warnings:
    print(format_diagnostic(warning))


def run_script_file(script_path: str, breakpoints: Set[int], max_iterations: int,
                    debug: bool = False) -> None:
  """Run a Crafter script file and print its report"""
  source = read_script(script_path)
  result = run_program(source, breakpoints, max_iterations, debug, script_path)

  print(format_report(result, source))

  if debug:
    timing = result['timing']
    print(f"\nTiming: " + ", ".join(f"{stage} {ms:.2f}ms" for stage, ms in timing.items()))

  if result['status'] in ('syntax_error', 'runtime_error'):
    sys.exit(1)


def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser("~/.crafter_history")
  try:
    readline.read_history_file(history_file)
  except (FileNotFoundError, PermissionError, OSError):
    pass  # First time, no history yet, or permission denied

  readline.set_history_length(1000)

  completions = sorted(KEYWORDS) + [
      ":run", ":break", ":breaks", ":tokens", ":ast", ":lint",
      ":show", ":clear", ":help", ":quit"
  ]

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def print_session_help() -> None:
  print("Session Commands:")
  print("  :run          - Run the buffered program")
  print("  :break N      - Toggle a breakpoint on line N")
  print("  :breaks       - List breakpoints")
  print("  :tokens       - Show the buffered program's tokens")
  print("  :ast          - Show the buffered program's syntax tree")
  print("  :lint         - Show lint warnings")
  print("  :show         - Show the buffered program with line numbers")
  print("  :clear        - Clear the program buffer")
  print("  :help         - Show this help")
  print("  :quit         - Exit")
  print()
  print("Language features:")
  print("  maano x = 5                        - Declare or update a variable")
  print("  likho x + 1                        - Print an expression")
  print('  likho "hello"                      - Print a string')
  print("  agar x > 1 { ... } warna { ... }   - Conditional")
  print("  jabtak i <= 5 { ... }              - Loop (capped iterations)")


def handle_session_command(command: str, buffer: List[str], breakpoints: Set[int],
                           max_iterations: int, debug: bool) -> Set[int]:
  """Run one ':' command; returns the possibly updated breakpoint set"""
  source = '\n'.join(buffer)
  parser = create_debug_parser() if debug else create_parser()
  name, _, argument = command.partition(' ')

  try:
    if name == ':run':
      result = run_program(source, breakpoints, max_iterations, debug)
      print(format_report(result, source))
    elif name == ':break':
      try:
        line = int(argument)
      except ValueError:
        print(f"Expected a line number, got '{argument}'")
        return breakpoints
      breakpoints = toggle_breakpoint(breakpoints, line)
      print(f"Breakpoints: {sorted(breakpoints) or 'none'}")
    elif name == ':breaks':
      print(f"Breakpoints: {sorted(breakpoints) or 'none'}")
    elif name == ':tokens':
      print(format_tokens(parser.tokenize(source)))
    elif name == ':ast':
      print(format_ast(parser.parse_string(source)))
    elif name == ':lint':
      tokens, ast = tokenize_and_parse(parser, source)
      warnings = create_analyzer(debug).lint(tokens, ast)
      for warning in warnings:
        print(format_diagnostic(warning))
      if not warnings:
        print("No lint warnings")
    elif name == ':show':
      for number, line in enumerate(buffer, 1):
        marker = '*' if number in breakpoints else ' '
        print(f"{marker}{number:4d}: {line}")
    elif name == ':clear':
      buffer.clear()
    elif name == ':help':
      print_session_help()
    else:
      print(f"Unknown command '{name}', type :help for commands")
  except CrafterSyntaxError as e:
    print(f"Syntax error: {e}")

  return breakpoints


def run_interactive_mode(max_iterations: int = DEFAULT_MAX_ITERATIONS, debug: bool = False) -> None:
  """Buffer program lines and run them on request"""
  print(f"{VERSION} - Interactive Mode")
  print("Type program lines, ':run' to execute, ':help' for commands, ':quit' to exit")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()

  buffer: List[str] = []
  breakpoints: Set[int] = set()

  while True:
    try:
      line = input(f"crafter:{len(buffer) + 1}> ")
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    command = line.strip()
    if command == ':quit':
      break
    if command.startswith(':'):
      breakpoints = handle_session_command(command, buffer, breakpoints, max_iterations, debug)
      continue
    buffer.append(line)


def main(argv: Optional[List[str]] = None) -> None:
  """Main entry point for Crafter"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  if args.script:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist")
      sys.exit(1)

    if args.tokens:
      show_tokens(args.script, debug=args.debug)
    elif args.ast:
      show_ast(args.script, as_json=args.json, debug=args.debug)
    elif args.lint:
      show_lint(args.script, debug=args.debug)
    else:
      run_script_file(args.script, set(args.breakpoints), args.max_iterations, debug=args.debug)

  elif args.interactive:
    run_interactive_mode(args.max_iterations, debug=args.debug)

  else:
    arg_parser.print_help()


if __name__ == "__main__":
  main()
