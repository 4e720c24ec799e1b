"""
Kappa Interpreter - tree-walking evaluator
Reduces expressions to values against a persistent value context.
Evaluation trusts the checker for typing but never for shapes: every
runtime confusion is reported as an EvalFailure.
"""

from typing import Dict

from context import ValueContext
from error_handling import EvalFailure
from syntax import (
  Block,
  Call,
  Expr,
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
  describe,
)
from values import (
  BuiltinFunc,
  ClosureValue,
  FuncType,
  NeutralType,
  NilValue,
  NumberValue,
  ParamType,
  ParamValue,
  RecordType,
  RecordValue,
  StringValue,
  StuckCall,
  StuckField,
  TupleType,
  TupleValue,
  Type,
  TypeValue,
  Value,
  collapse_tuple,
  collapse_tuple_type,
  is_neutral,
)


# ============================================================================
# FIELD ACCESS
# ============================================================================

def access_record_field(value: Value, name: str) -> Value:
  if is_neutral(value):
    return StuckField(value, name)
  if isinstance(value, RecordValue):
    if name in value.fields:
      return value.fields[name]
    raise EvalFailure(f"record {value} doesn't have a field named {name}")
  raise EvalFailure(f"expected record with field `{name}`, found {value}")


def access_tuple_field(value: Value, index: int) -> Value:
  if is_neutral(value):
    return StuckField(value, index)
  if isinstance(value, TupleValue):
    if 0 <= index < len(value.items):
      return value.items[index]
    raise EvalFailure(
        f"expected tuple with at least {index + 1} elements, "
        f"found one with only {len(value.items)}: {value}")
  raise EvalFailure(f"expected tuple with at least {index + 1} elements, found {value}")


# ============================================================================
# APPLICATION
# ============================================================================

def apply(callee: Value, argument: Value, debug: bool = False) -> Value:
  """Call a closure or builtin with one argument"""
  if is_neutral(callee):
    return StuckCall(callee, argument)
  if isinstance(callee, ClosureValue):
    context = callee.context.extend(callee.param, argument)
    return evaluate(callee.body, context, debug)
  if isinstance(callee, BuiltinFunc):
    if debug:
      print(f"Invoking builtin: {callee.name}")
    return callee.invoke(argument)
  raise EvalFailure(f"expected a function, found {callee}")


# ============================================================================
# EVALUATION FUNCTIONS
# ============================================================================

def evaluate(expr: Expr, context: ValueContext, debug: bool = False) -> Value:
  """
  Evaluate an expression to a value.
  Raises EvalFailure at the first runtime error.
  """
  if debug:
    print(f"Evaluating: {describe(expr)}")

  if isinstance(expr, NilLit):
    return NilValue()
  elif isinstance(expr, NumberLit):
    return NumberValue(expr.value)
  elif isinstance(expr, StringLit):
    return StringValue(expr.value)
  elif isinstance(expr, TupleLit):
    return collapse_tuple(tuple(evaluate(item, context, debug) for item in expr.items))
  elif isinstance(expr, TupleTypeLit):
    items = tuple(evaluate_type(item, context, debug) for item in expr.items)
    return TypeValue(collapse_tuple_type(items))
  elif isinstance(expr, RecordLit):
    return RecordValue(eval_fields(expr, lambda e: evaluate(e, context, debug)))
  elif isinstance(expr, RecordTypeLit):
    fields = eval_fields(expr, lambda e: evaluate_type(e, context, debug))
    return TypeValue(RecordType(fields))
  elif isinstance(expr, TupleField):
    return access_tuple_field(evaluate(expr.base, context, debug), expr.index)
  elif isinstance(expr, RecordField):
    return access_record_field(evaluate(expr.base, context, debug), expr.name.name)
  elif isinstance(expr, Block):
    return eval_block(expr, context, debug)
  elif isinstance(expr, Var):
    value = context.lookup(expr.name)
    if value is None:
      raise EvalFailure(f"Unknown variable {expr.name}")
    return value
  elif isinstance(expr, Lambda):
    # The annotation only matters to the checker
    return ClosureValue(expr.param.name, expr.body, context)
  elif isinstance(expr, Call):
    callee = evaluate(expr.callee, context, debug)
    argument = evaluate(expr.argument, context, debug)
    return apply(callee, argument, debug)
  elif isinstance(expr, Paren):
    return evaluate(expr.inner, context, debug)
  else:
    raise EvalFailure(f"cannot evaluate {describe(expr)}")


def eval_fields(expr, evaluate_field) -> Dict:
  """Evaluate record fields in order, rejecting repeated names"""
  fields = {}
  for ident, field_expr in expr.fields:
    if ident.name in fields:
      raise EvalFailure(f"duplicate field `{ident.name}` in record")
    fields[ident.name] = evaluate_field(field_expr)
  return fields


def eval_block(block: Block, context: ValueContext, debug: bool = False) -> Value:
  """Run the statements, threading the context, then the trailing expression"""
  for statement in block.statements:
    context = evaluate_stmt(statement, context, debug)
  if block.result is None:
    return NilValue()
  return evaluate(block.result, context, debug)


def evaluate_stmt(stmt: Let, context: ValueContext, debug: bool = False) -> ValueContext:
  """Evaluate a statement and return the context it leaves behind"""
  if debug:
    print(f"Evaluating: {describe(stmt)}")
  value = evaluate(stmt.expr, context, debug)
  return context.extend(stmt.name.name, value)


def evaluate_type(expr: Expr, context: ValueContext, debug: bool = False) -> Type:
  """Evaluate an expression that must denote a type"""
  return _denoted_type(evaluate(expr, context, debug))


# ============================================================================
# INSTANTIATION
# ============================================================================

def substitute_value(value: Value, ident: int, argument: Value, debug: bool = False) -> Value:
  """
  Replace the parameter `ident` in `value` by `argument`.
  Stuck applications and field accesses are retried, so the result is
  reduced as far as the argument allows.
  """
  if isinstance(value, ParamValue):
    return argument if value.ident == ident else value
  if isinstance(value, StuckCall):
    return apply(substitute_value(value.callee, ident, argument, debug),
                 substitute_value(value.argument, ident, argument, debug), debug)
  if isinstance(value, StuckField):
    base = substitute_value(value.base, ident, argument, debug)
    if isinstance(value.key, int):
      return access_tuple_field(base, value.key)
    return access_record_field(base, value.key)
  if isinstance(value, TypeValue):
    return TypeValue(substitute_type(value.type, ident, argument, debug))
  if isinstance(value, RecordValue):
    return RecordValue({name: substitute_value(item, ident, argument, debug)
                        for name, item in value.fields.items()})
  if isinstance(value, TupleValue):
    return TupleValue(tuple(substitute_value(item, ident, argument, debug)
                            for item in value.items))
  return value


def substitute_type(ty: Type, ident: int, argument: Value, debug: bool = False) -> Type:
  """Instantiate a dependent type; identities are unique so nothing is captured"""
  if isinstance(ty, ParamType):
    if ty.ident != ident:
      return ty
    return _denoted_type(argument)
  if isinstance(ty, NeutralType):
    return _denoted_type(substitute_value(ty.term, ident, argument, debug))
  if isinstance(ty, RecordType):
    return RecordType({name: substitute_type(item, ident, argument, debug)
                       for name, item in ty.fields.items()})
  if isinstance(ty, TupleType):
    return TupleType(tuple(substitute_type(item, ident, argument, debug) for item in ty.items))
  if isinstance(ty, FuncType):
    return FuncType(substitute_type(ty.input, ident, argument, debug),
                    substitute_type(ty.output, ident, argument, debug),
                    ty.binder, ty.binder_name)
  return ty


def _denoted_type(value: Value) -> Type:
  ty = value.as_type()
  if ty is None:
    raise EvalFailure(f"expected a type, found {value}")
  return ty
