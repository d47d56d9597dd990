"""
Command line tests for Crafter
"""

import json
import pytest
import main as main_module
from main import create_arg_parser, handle_session_command, main
from parsing import CrafterTokenizer


@pytest.fixture
def script(tmp_path):
  def write(source):
    path = tmp_path / "script.crafter"
    path.write_text(source, encoding='utf-8')
    return str(path)
  return write


class TestArguments:

  def test_repeatable_breakpoints(self):
    args = create_arg_parser().parse_args(["-b", "2", "--break", "5", "x.crafter"])
    assert args.breakpoints == [2, 5]

  def test_defaults(self):
    args = create_arg_parser().parse_args(["x.crafter"])
    assert args.breakpoints == []
    assert args.max_iterations == 1000
    assert args.debug is False

  def test_rejects_non_positive_cap(self):
    with pytest.raises(SystemExit):
      create_arg_parser().parse_args(["--max-iterations", "0", "x.crafter"])


class TestCommands:
  """Test running scripts from the command line"""

  def test_run_script(self, script, capsys):
    main([script("maano x = 5\nmaano y = 10\nlikho x + y")])
    assert capsys.readouterr().out.strip() == "15"

  def test_runtime_error_exits_nonzero(self, script, capsys):
    with pytest.raises(SystemExit) as exc_info:
      main([script("likho 1 / 0")])
    assert exc_info.value.code == 1
    assert "Runtime Error" in capsys.readouterr().out

  def test_breakpoint_flag(self, script, capsys):
    main(["-b", "2", script('likho "a"\nlikho "b"')])
    assert "Execution paused at line 2, col 1." in capsys.readouterr().out

  def test_max_iterations_flag(self, script, capsys):
    main(["--max-iterations", "2", script("maano i = 0\njabtak i < 1 {\n  maano i = 0\n}")])
    assert "Loop stopped after 2 iterations" in capsys.readouterr().out

  def test_tokens(self, script, capsys):
    main(["--tokens", script("likho 1")])
    out = capsys.readouterr().out
    assert "Scanned 2 tokens:" in out
    assert '2. NUMBER: "1"' in out

  def test_ast(self, script, capsys):
    main(["--ast", script("likho 1")])
    assert capsys.readouterr().out.strip() == "program\n  print (1)"

  def test_ast_json(self, script, capsys):
    main(["--ast", "--json", script("likho 1")])
    data = json.loads(capsys.readouterr().out)
    assert data['body'][0]['type'] == 'PRINT'

  def test_lint(self, script, capsys):
    main(["--lint", script("maano x = 1")])
    out = capsys.readouterr().out
    assert "warning at line 1, column 1: Variable 'x' is declared but never used." in out

  def test_syntax_error_exits_nonzero(self, script, capsys):
    with pytest.raises(SystemExit):
      main(["--ast", script("likho")])
    assert "Expected expression after 'likho'" in capsys.readouterr().out

  def test_missing_script(self, tmp_path, capsys):
    with pytest.raises(SystemExit):
      main([str(tmp_path / "nope.crafter")])
    assert "does not exist" in capsys.readouterr().out


class TestSession:
  """Test interactive session commands"""

  def test_break_rejects_non_numbers(self, capsys):
    breakpoints = handle_session_command(":break two", ['likho 1'], {1}, 1000, False)
    assert breakpoints == {1}
    assert "Expected a line number, got 'two'" in capsys.readouterr().out

  def test_break_toggles(self, capsys):
    breakpoints = handle_session_command(":break 2", ['likho 1', 'likho 2'], set(), 1000, False)
    assert breakpoints == {2}

  def test_run_errors_are_not_reported_as_line_numbers(self, monkeypatch, capsys):
    def failing_run(*args, **kwargs):
      raise ValueError("run failed")

    monkeypatch.setattr(main_module, "run_program", failing_run)
    with pytest.raises(ValueError, match="run failed"):
      handle_session_command(":run", ['likho 1'], set(), 1000, False)
    assert "Expected a line number" not in capsys.readouterr().out

  def test_run_prints_report(self, capsys):
    handle_session_command(":run", ['maano x = 2', 'likho x * 3'], set(), 1000, False)
    assert capsys.readouterr().out.strip() == "6"

  def test_lint_command(self, capsys):
    handle_session_command(":lint", ['maano x = 2'], set(), 1000, False)
    assert "Variable 'x' is declared but never used." in capsys.readouterr().out


class TestSinglePass:
  """Lint views scan the source once"""

  def test_lint_tokenizes_once(self, script, monkeypatch, capsys):
    calls = []
    original = CrafterTokenizer.tokenize

    def counting_tokenize(self, text):
      calls.append(text)
      return original(self, text)

    monkeypatch.setattr(CrafterTokenizer, "tokenize", counting_tokenize)
    main(["--lint", script("maano x = 1\nlikho x")])
    assert len(calls) == 1
    assert "No lint warnings" in capsys.readouterr().out

  def test_lint_reports_brace_errors_with_context(self, script, capsys):
    with pytest.raises(SystemExit):
      main(["--lint", script("agar 1 < 2 { likho 1")])
    out = capsys.readouterr().out
    assert "Missing closing brace '}'" in out
    assert "   1: agar 1 < 2 { likho 1" in out
