"""
Kappa Semantics Analysis - type checking and inference
Every failure is recorded in the pass's collector and replaced by the
ErrorType sentinel, so one pass reports every independent error.
Type annotations are evaluated with the interpreter, which is what lets a
parameter type depend on earlier bindings.
"""

from typing import Callable, Dict

from context import Binding, TypeContext
from error_handling import EvalFailure, ErrorCollector, collect_type_errors
from interpreter import evaluate, evaluate_type, substitute_type
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
  ErrorType,
  FuncType,
  NilType,
  NumberType,
  ParamValue,
  RecordType,
  StringType,
  TupleType,
  Type,
  TypeType,
  Value,
  collapse_tuple_type,
  fresh_param_ident,
  mentions,
)


# ============================================================================
# ENTRY POINTS
# ============================================================================

def infer_type(expr: Expr, type_context: TypeContext, debug: bool = False,
               collector: ErrorCollector = None) -> Type:
  """
  Infer the type of an expression.
  Raises TypeCheckError carrying every diagnostic of the pass.
  """
  return collect_type_errors(
      lambda errors: infer(expr, type_context, errors, debug), collector)


def typeck_stmt(stmt: Let, type_context: TypeContext, debug: bool = False,
                collector: ErrorCollector = None) -> TypeContext:
  """
  Check a statement and return the type context it leaves behind.
  Raises TypeCheckError carrying every diagnostic of the pass.
  """
  return collect_type_errors(
      lambda errors: check_stmt(stmt, type_context, errors, debug), collector)


# ============================================================================
# CHECKER / EVALUATOR SEAM
# ============================================================================

def evaluate_annotation(ty_expr: Expr, type_context: TypeContext,
                        errors: ErrorCollector, debug: bool = False) -> Type:
  """Evaluate a checked type expression, reporting failures as diagnostics"""
  try:
    return evaluate_type(ty_expr, type_context.values(), debug)
  except EvalFailure as failure:
    return errors.emit(f"type failed to evaluate: {failure.message}", ty_expr.span)


def binding_value(stmt: Let, ty: Type, type_context: TypeContext,
                  errors: ErrorCollector, emitted_before: int, debug: bool = False) -> Value:
  """
  The value a let-bound name stands for while checking what follows it.
  A value that applies or projects a lambda parameter stays stuck on it,
  so a later application can still instantiate it. When the value cannot
  be computed at all, the name gets an opaque placeholder of its own.
  """
  placeholder = ParamValue(stmt.name.name, fresh_param_ident())
  if len(errors) > emitted_before or isinstance(ty, ErrorType):
    return placeholder

  try:
    return evaluate(stmt.expr, type_context.values(), debug)
  except EvalFailure as failure:
    if debug:
      print(f"Binding {stmt.name.name} stays opaque: {failure.message}")
    return placeholder


# ============================================================================
# EXPRESSION CHECKING
# ============================================================================

def infer(expr: Expr, type_context: TypeContext, errors: ErrorCollector,
          debug: bool = False) -> Type:
  """Infer the type of any expression inside an open pass"""
  if debug:
    print(f"Checking: {describe(expr)}")

  handler = HANDLERS.get(type(expr))
  if handler is None:
    return errors.emit(f"cannot type {describe(expr)}", expr.span)
  return handler(expr, type_context, errors, debug)


def check_type_expr(ty_expr: Expr, type_context: TypeContext,
                    errors: ErrorCollector, debug: bool = False) -> Type:
  """Check that an expression denotes a type; returns TypeType or ErrorType"""
  ty = infer(ty_expr, type_context, errors, debug)
  if isinstance(ty, (TypeType, ErrorType)):
    return ty
  return errors.emit(f"expected a type, found a value of type {ty}", ty_expr.span)


def infer_tuple(expr: TupleLit, type_context, errors, debug=False) -> Type:
  # TODO: dependent tuples, where later item types mention earlier items
  items = tuple(infer(item, type_context, errors, debug) for item in expr.items)
  return collapse_tuple_type(items)


def infer_tuple_type(expr: TupleTypeLit, type_context, errors, debug=False) -> Type:
  for item in expr.items:
    check_type_expr(item, type_context, errors, debug)
  return TypeType()


def infer_record(expr: RecordLit, type_context, errors, debug=False) -> Type:
  fields: Dict[str, Type] = {}
  for ident, field_expr in expr.fields:
    ty = infer(field_expr, type_context, errors, debug)
    if ident.name in fields:
      errors.emit(f"duplicate field `{ident.name}` in record", ident.span)
      continue
    fields[ident.name] = ty
  return RecordType(fields)


def infer_record_type(expr: RecordTypeLit, type_context, errors, debug=False) -> Type:
  seen = set()
  for ident, field_expr in expr.fields:
    check_type_expr(field_expr, type_context, errors, debug)
    if ident.name in seen:
      errors.emit(f"duplicate field `{ident.name}` in record type", ident.span)
    seen.add(ident.name)
  return TypeType()


def infer_tuple_field(expr: TupleField, type_context, errors, debug=False) -> Type:
  tuple_type = infer(expr.base, type_context, errors, debug)

  if isinstance(tuple_type, ErrorType):
    return tuple_type
  if isinstance(tuple_type, TupleType):
    if expr.index < len(tuple_type.items):
      return tuple_type.items[expr.index]
    return errors.emit(
        f"field number {expr.index} is out of range for tuple {tuple_type}", expr.span)
  return errors.emit(
      f"expected a tuple with at least {expr.index + 1} elements, found {tuple_type}",
      expr.base.span)


def infer_record_field(expr: RecordField, type_context, errors, debug=False) -> Type:
  record_type = infer(expr.base, type_context, errors, debug)
  name = expr.name.name

  if isinstance(record_type, ErrorType):
    return record_type
  if isinstance(record_type, RecordType):
    if name in record_type.fields:
      return record_type.fields[name]
    return errors.emit(
        f"record {record_type} doesn't have a field named {name}", expr.name.span)
  return errors.emit(
      f"expected a record with field `{name}`, found {record_type}", expr.base.span)


def infer_block(expr: Block, type_context, errors, debug=False) -> Type:
  for statement in expr.statements:
    type_context = check_stmt(statement, type_context, errors, debug)

  if expr.result is None:
    return NilType()
  return infer(expr.result, type_context, errors, debug)


def infer_var(expr: Var, type_context, errors, debug=False) -> Type:
  binding = type_context.lookup(expr.name)
  if binding is None:
    return errors.emit(f"Undeclared variable {expr.name}", expr.ident.span)
  return binding.type


def infer_lambda(expr: Lambda, type_context, errors, debug=False) -> Type:
  name = expr.param.name
  ident = fresh_param_ident()
  placeholder = ParamValue(name, ident)

  if expr.annotation is None:
    errors.emit(f"Cannot infer the type of {name}", expr.param.span)
    # Still check the body so its own errors are reported
    infer(expr.body, type_context.extend(name, Binding(ErrorType(), placeholder)), errors, debug)
    return ErrorType()

  input_type = check_type_expr(expr.annotation, type_context, errors, debug)
  if isinstance(input_type, TypeType):
    input_type = evaluate_annotation(expr.annotation, type_context, errors, debug)

  body_context = type_context.extend(name, Binding(input_type, placeholder))
  output_type = infer(expr.body, body_context, errors, debug)

  binder = ident if mentions(output_type, ident) else None
  return FuncType(input_type, output_type, binder, name)


def infer_call(expr: Call, type_context, errors, debug=False) -> Type:
  callee_type = infer(expr.callee, type_context, errors, debug)
  argument_type = infer(expr.argument, type_context, errors, debug)

  if isinstance(callee_type, ErrorType):
    return callee_type
  if not isinstance(callee_type, FuncType):
    return errors.emit(
        f"expected a function, found a value of type {callee_type}", expr.callee.span)
  if callee_type.input != argument_type:
    return errors.emit(
        f"expected {callee_type.input}, found {argument_type}", expr.argument.span)

  if callee_type.binder is None:
    return callee_type.output
  if isinstance(argument_type, ErrorType):
    return argument_type

  # The result type mentions the parameter, so it needs the argument itself
  try:
    argument = evaluate(expr.argument, type_context.values(), debug)
  except EvalFailure as failure:
    return errors.emit(
        f"dependent argument failed to evaluate: {failure.message}", expr.argument.span)
  try:
    return substitute_type(callee_type.output, callee_type.binder, argument, debug)
  except EvalFailure as failure:
    return errors.emit(
        f"result type failed to evaluate: {failure.message}", expr.argument.span)


HANDLERS: Dict[type, Callable] = {
    NilLit: lambda expr, type_context, errors, debug=False: NilType(),
    NumberLit: lambda expr, type_context, errors, debug=False: NumberType(),
    StringLit: lambda expr, type_context, errors, debug=False: StringType(),
    TupleLit: infer_tuple,
    TupleTypeLit: infer_tuple_type,
    RecordLit: infer_record,
    RecordTypeLit: infer_record_type,
    TupleField: infer_tuple_field,
    RecordField: infer_record_field,
    Block: infer_block,
    Var: infer_var,
    Lambda: infer_lambda,
    Call: infer_call,
    Paren: lambda expr, type_context, errors, debug=False: infer(expr.inner, type_context, errors, debug),
}


# ============================================================================
# STATEMENT CHECKING
# ============================================================================

def check_stmt(stmt: Let, type_context: TypeContext, errors: ErrorCollector,
               debug: bool = False) -> TypeContext:
  """Check a statement inside an open pass and extend the context with it"""
  if debug:
    print(f"Checking: {describe(stmt)}")

  emitted_before = len(errors)
  ty = infer(stmt.expr, type_context, errors, debug)
  value = binding_value(stmt, ty, type_context, errors, emitted_before, debug)
  return type_context.extend(stmt.name.name, Binding(ty, value))
