"""
End-to-end tests: parse, check and run through the driver
"""

import pytest

from context import TypeContext, ValueContext
from error_handling import EvalFailure, TypeCheckError
from main import check_item, create_arg_parser, main, run_item, run_source, user_bindings
from values import NumberType, NumberValue, TupleType, TupleValue


class TestRunItem:
  """One top-level item at a time, as the REPL does"""

  def test_let_in_scenario(self, parser, type_context, value_context):
    item = parser.parse_statement("let x = 5 in (x, x)")
    ty, _ = check_item(item, type_context)
    assert ty == TupleType((NumberType(), NumberType()))
    line, _, _ = run_item(item, type_context, value_context)
    assert line == "(5, 5) : type (Number, Number)"

  def test_contexts_advance_together(self, parser, type_context, value_context):
    item = parser.parse_statement("let x = add 2 3")
    line, type_context, value_context = run_item(item, type_context, value_context)
    assert line == "x = 5 : Number"
    assert type_context.lookup_type("x") == NumberType()
    assert value_context.lookup("x") == NumberValue(5)

  def test_type_error_leaves_contexts(self, parser, type_context, value_context):
    with pytest.raises(TypeCheckError):
      run_item(parser.parse_statement("let x = nope"), type_context, value_context)
    assert "x" not in type_context
    assert "x" not in value_context

  def test_eval_failure(self, parser, type_context, value_context):
    with pytest.raises(EvalFailure, match="Division by zero"):
      run_item(parser.parse_statement("div 1 0"), type_context, value_context)

  def test_user_bindings(self, parser, type_context, value_context):
    for source in ("let x = 1", "let add = \\n: Number => n"):
      _, type_context, value_context = run_item(parser.parse_statement(source), type_context, value_context)
    lines = user_bindings(type_context)
    assert lines == ["  x = 1 : Number", "  add = [Closure] : Fn(Number, Number)"]

  def test_no_user_bindings_by_default(self):
    assert user_bindings(TypeContext.default()) == []


class TestRunSource:
  """Whole programs"""

  def test_program_output(self, capsys):
    source = (
        "# records, tuples and closures\n"
        "let point = {x = 3, y = 4};\n"
        "let norm1 = \\p: {x: Number, y: Number} => add p.x p.y;\n"
        "norm1 point;\n"
        "let pair = (\"a\", point.x);\n"
        "pair.1\n"
    )
    assert run_source(source) == 0
    assert capsys.readouterr().out.splitlines() == ["7 : Number", "3 : Number"]

  def test_dependent_identity(self, capsys):
    source = (
        "let id = \\T: Type => \\x: T => x;\n"
        "id String \"kappa\";\n"
        "id Number 7\n"
    )
    assert run_source(source) == 0
    assert capsys.readouterr().out.splitlines() == ['"kappa" : String', "7 : Number"]

  def test_fn_builtin(self, capsys):
    source = (
        "let F = Fn Number String;\n"
        "F;\n"
        "(\\g: F => g) show\n"
    )
    assert run_source(source) == 0
    assert capsys.readouterr().out.splitlines() == [
        "Fn(Number, String) : Type",
        "[BuiltinFunc show] : Fn(Number, String)",
    ]

  def test_type_errors_are_batched_and_located(self, capsys):
    assert run_source("let t = (a, b)", "demo.kp") == 1
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "demo.kp:1:10: Undeclared variable a"
    assert "demo.kp:1:13: Undeclared variable b" in lines

  def test_eval_failure_exits_with_error(self, capsys):
    assert run_source("div 10 0", "demo.kp") == 1
    assert capsys.readouterr().out.strip() == "demo.kp: EvalError: Division by zero"

  def test_parse_error(self, capsys):
    assert run_source("let = 1", "demo.kp") == 1
    assert capsys.readouterr().out.startswith("Parse error in 'demo.kp'")

  def test_check_only(self, capsys):
    assert run_source("let x = 1;\nconcat \"a\" (show x)", check_only=True) == 0
    assert capsys.readouterr().out.splitlines() == ["x : Number", "String"]

  def test_debug_output(self, capsys):
    assert run_source("let x = 1", debug=True) == 0
    output = capsys.readouterr().out
    assert "Parsed 1 top-level items" in output
    assert "Checking: Let(x)" in output
    assert "Evaluating: Let(x)" in output
    assert "x = 1 : Number" in output


class TestCommandLine:
  """Argument handling"""

  def test_arguments(self):
    args = create_arg_parser().parse_args(["script.kp", "--check", "--debug"])
    assert args.script == "script.kp"
    assert args.check and args.debug
    assert args.history == "~/.kappa_history"

  def test_runs_script(self, tmp_path, monkeypatch, capsys):
    script = tmp_path / "hello.kp"
    script.write_text('concat "hello, " "world"\n', encoding="utf-8")
    monkeypatch.setattr("sys.argv", ["kappa", str(script)])
    with pytest.raises(SystemExit) as info:
      main()
    assert info.value.code == 0
    assert capsys.readouterr().out.strip() == '"hello, world" : String'

  def test_missing_script(self, tmp_path, monkeypatch, capsys):
    monkeypatch.setattr("sys.argv", ["kappa", str(tmp_path / "missing.kp")])
    with pytest.raises(SystemExit) as info:
      main()
    assert info.value.code == 1
    assert "does not exist" in capsys.readouterr().out

  def test_parse_flag(self, tmp_path, monkeypatch, capsys):
    script = tmp_path / "tiny.kp"
    script.write_text("add 1 2", encoding="utf-8")
    monkeypatch.setattr("sys.argv", ["kappa", "--parse", str(script)])
    main()
    output = capsys.readouterr().out
    assert "Parsed 1 top-level items" in output
    assert "Call @ 0..7" in output
