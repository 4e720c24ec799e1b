"""
Tests for the tree-walking evaluator
"""

import pytest

from context import ValueContext
from error_handling import EvalFailure
from interpreter import evaluate, evaluate_stmt, evaluate_type, substitute_type, substitute_value
from syntax import (
  Block,
  Call,
  Ident,
  Lambda,
  Let,
  NilLit,
  NumberLit,
  Paren,
  RecordField,
  RecordLit,
  RecordTypeLit,
  StringLit,
  TupleField,
  TupleLit,
  TupleTypeLit,
  Var,
)
from values import (
  ClosureValue,
  FuncType,
  NilValue,
  NumberType,
  NumberValue,
  ParamType,
  ParamValue,
  RecordType,
  RecordValue,
  StringType,
  StringValue,
  StuckCall,
  StuckField,
  TupleType,
  TupleValue,
  TypeValue,
  fresh_param_ident,
)


def var(name):
  return Var(Ident(name))


def call(callee, *arguments):
  for argument in arguments:
    callee = Call(callee, argument)
  return callee


def record(**fields):
  return RecordLit(tuple((Ident(name), expr) for name, expr in fields.items()))


class TestLiterals:
  """Literal forms and tuple collapsing"""

  def test_scalars(self, value_context):
    assert evaluate(NilLit(), value_context) == NilValue()
    assert evaluate(NumberLit(3), value_context) == NumberValue(3)
    assert evaluate(StringLit("s"), value_context) == StringValue("s")

  def test_empty_tuple_is_nil(self, value_context):
    assert evaluate(TupleLit(()), value_context) == NilValue()

  def test_single_tuple_is_its_item(self, value_context):
    assert evaluate(TupleLit((NumberLit(4),)), value_context) == NumberValue(4)

  def test_tuple(self, value_context):
    result = evaluate(TupleLit((NumberLit(1), StringLit("a"))), value_context)
    assert result == TupleValue((NumberValue(1), StringValue("a")))

  def test_record(self, value_context):
    result = evaluate(record(x=NumberLit(1), y=StringLit("a")), value_context)
    assert result == RecordValue({"x": NumberValue(1), "y": StringValue("a")})

  @pytest.mark.parametrize("expr", [
      NumberLit(1),
      TupleLit((NumberLit(1), NumberLit(2))),
      record(x=NumberLit(1)),
      call(var("add"), NumberLit(1), NumberLit(2)),
  ])
  def test_parens_are_transparent(self, value_context, expr):
    assert evaluate(Paren(expr), value_context) == evaluate(expr, value_context)


class TestTypeLiterals:
  """Type expressions evaluate to type values"""

  def test_tuple_type(self, value_context):
    result = evaluate(TupleTypeLit((var("Number"), var("String"))), value_context)
    assert result == TypeValue(TupleType((NumberType(), StringType())))

  def test_tuple_type_collapses(self, value_context):
    assert evaluate_type(TupleTypeLit((var("Number"),)), value_context) == NumberType()

  def test_record_type(self, value_context):
    expr = RecordTypeLit(((Ident("x"), var("Number")),))
    assert evaluate_type(expr, value_context) == RecordType({"x": NumberType()})

  def test_fn(self, value_context):
    expr = call(var("Fn"), var("Number"), var("String"))
    assert evaluate(expr, value_context) == TypeValue(FuncType(NumberType(), StringType()))

  def test_evaluate_type_rejects_values(self, value_context):
    with pytest.raises(EvalFailure, match="expected a type"):
      evaluate_type(NumberLit(1), value_context)


class TestFieldAccess:
  """Record and tuple projections"""

  def test_record_field(self, value_context):
    expr = RecordField(record(x=NumberLit(1), y=StringLit("a")), Ident("x"))
    assert evaluate(expr, value_context) == NumberValue(1)

  def test_missing_record_field(self, value_context):
    with pytest.raises(EvalFailure, match="doesn't have a field named y"):
      evaluate(RecordField(record(x=NumberLit(1)), Ident("y")), value_context)

  def test_record_field_on_number(self, value_context):
    with pytest.raises(EvalFailure, match="expected record"):
      evaluate(RecordField(NumberLit(1), Ident("x")), value_context)

  def test_tuple_field(self, value_context):
    expr = TupleField(TupleLit((NumberLit(1), StringLit("b"))), 1)
    assert evaluate(expr, value_context) == StringValue("b")

  def test_tuple_field_out_of_range(self, value_context):
    with pytest.raises(EvalFailure, match="at least 3 elements"):
      evaluate(TupleField(TupleLit((NumberLit(1), NumberLit(2))), 2), value_context)


class TestBindings:
  """Variables, blocks and statements"""

  def test_unknown_variable(self, value_context):
    with pytest.raises(EvalFailure, match="Unknown variable nope"):
      evaluate(var("nope"), value_context)

  def test_let_in_block(self, value_context):
    block = Block((Let(Ident("x"), NumberLit(5)),), TupleLit((var("x"), var("x"))))
    assert evaluate(block, value_context) == TupleValue((NumberValue(5), NumberValue(5)))

  def test_block_without_result(self, value_context):
    assert evaluate(Block((Let(Ident("x"), NumberLit(5)),)), value_context) == NilValue()

  def test_block_scope_does_not_leak(self, value_context):
    evaluate(Block((Let(Ident("x"), NumberLit(5)),)), value_context)
    assert value_context.lookup("x") is None

  def test_evaluate_stmt_extends(self, value_context):
    context = evaluate_stmt(Let(Ident("x"), NumberLit(5)), value_context)
    assert context.lookup("x") == NumberValue(5)
    assert value_context.lookup("x") is None


class TestApplication:
  """Closures and builtins"""

  def test_closure_value(self, value_context):
    result = evaluate(Lambda(Ident("x"), var("Number"), var("x")), value_context)
    assert isinstance(result, ClosureValue)
    assert result.context is value_context

  def test_apply_closure(self, value_context):
    double = Lambda(Ident("x"), var("Number"), call(var("add"), var("x"), var("x")))
    assert evaluate(call(double, NumberLit(21)), value_context) == NumberValue(42)

  def test_closure_captures_its_context(self, value_context):
    # let k = 1; let f = \x => add x k; let k = 100; f 1
    block = Block(
        (
            Let(Ident("k"), NumberLit(1)),
            Let(Ident("f"), Lambda(Ident("x"), var("Number"), call(var("add"), var("x"), var("k")))),
            Let(Ident("k"), NumberLit(100)),
        ),
        call(var("f"), NumberLit(1)))
    assert evaluate(block, value_context) == NumberValue(2)

  def test_apply_non_function(self, value_context):
    with pytest.raises(EvalFailure, match="expected a function"):
      evaluate(call(NumberLit(1), NumberLit(2)), value_context)

  def test_builtin_rejection_propagates(self, value_context):
    with pytest.raises(EvalFailure, match="Division by zero"):
      evaluate(call(var("div"), NumberLit(1), NumberLit(0)), value_context)

  def test_debug_traces(self, value_context, capsys):
    evaluate(call(var("show"), NumberLit(1)), value_context, debug=True)
    output = capsys.readouterr().out
    assert "Evaluating: Call" in output
    assert "Invoking builtin: show" in output

  def test_empty_context_has_no_builtins(self):
    with pytest.raises(EvalFailure):
      evaluate(var("add"), ValueContext())


class TestStuckTerms:
  """Parameter placeholders block application and projection"""

  @pytest.fixture
  def f(self):
    return ParamValue("f", fresh_param_ident())

  def test_application_on_a_parameter_is_stuck(self, value_context, f):
    context = value_context.extend("f", f)
    result = evaluate(call(var("f"), var("Number")), context)
    assert result == StuckCall(f, TypeValue(NumberType()))
    assert str(evaluate_type(call(var("f"), var("Number")), context)) == "f Number"

  def test_stuck_call_stays_stuck(self, value_context, f):
    context = value_context.extend("f", f)
    result = evaluate(call(var("f"), NumberLit(1), NumberLit(2)), context)
    assert result == StuckCall(StuckCall(f, NumberValue(1)), NumberValue(2))

  def test_projection_on_a_parameter_is_stuck(self, value_context, f):
    context = value_context.extend("r", f)
    assert evaluate(RecordField(var("r"), Ident("t")), context) == StuckField(f, "t")
    assert evaluate(TupleField(var("r"), 1), context) == StuckField(f, 1)

  def test_substitution_reduces_stuck_calls(self, value_context, f):
    # f 1 with f := \n: Number => (Number, String)
    stuck = StuckCall(f, NumberValue(1))
    closure = evaluate(
        Lambda(Ident("n"), var("Number"), TupleTypeLit((var("Number"), var("String")))),
        value_context)
    ty = substitute_type(FuncType(stuck.as_type(), NumberType()), f.ident, closure)
    assert ty == FuncType(TupleType((NumberType(), StringType())), NumberType())

  def test_substitution_reduces_stuck_fields(self, f):
    argument = RecordValue({"t": TypeValue(StringType())})
    assert substitute_type(StuckField(f, "t").as_type(), f.ident, argument) == StringType()
    pair = TupleValue((NumberValue(1), TypeValue(NumberType())))
    assert substitute_value(StuckField(f, 1), f.ident, pair) == TypeValue(NumberType())

  def test_substitution_keeps_other_parameters(self, f):
    other = ParamType("U", fresh_param_ident())
    assert substitute_type(other, f.ident, TypeValue(NumberType())) == other
    assert substitute_type(ParamType("f", f.ident), f.ident, TypeValue(NumberType())) == NumberType()

  def test_substituting_a_non_type_fails(self, f):
    with pytest.raises(EvalFailure, match="expected a type, found 5"):
      substitute_type(ParamType("f", f.ident), f.ident, NumberValue(5))
