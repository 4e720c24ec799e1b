"""
Kappa Standard Library
Builtin names with their types and values, seeded identically into the
default type and value contexts
"""

from typing import Callable, List, Tuple

from error_handling import EvalFailure
from values import (
  BuiltinFunc,
  FuncType,
  NilType,
  NumberType,
  NumberValue,
  StringType,
  StringValue,
  Type,
  TypeType,
  TypeValue,
  Value,
)


# ============================================================================
# ARGUMENT VALIDATION
# ============================================================================

def type_mismatch_error(func_name: str, expected: str, actual: Value) -> EvalFailure:
  """Builtin received an argument of the wrong shape"""
  return EvalFailure(f"{func_name} expected {expected}, found {actual}")


def expect_type(func_name: str, value: Value) -> Type:
  ty = value.as_type()
  if ty is None:
    raise type_mismatch_error(func_name, "a type", value)
  return ty


def expect_number(func_name: str, value: Value) -> int:
  if not isinstance(value, NumberValue):
    raise type_mismatch_error(func_name, "a number", value)
  return value.value


def expect_string(func_name: str, value: Value) -> str:
  if not isinstance(value, StringValue):
    raise type_mismatch_error(func_name, "a string", value)
  return value.value


def make_builtin_function(name: str, func: Callable[[Value], Value]) -> BuiltinFunc:
  """Create a built-in function value"""
  return BuiltinFunc(name, func)


def binary_op(name: str, op: Callable, expect: Callable, wrap: Callable) -> BuiltinFunc:
  """
  Factory for curried two-argument builtins

  Args:
    name: Builtin name for error messages
    op: Python function over the unwrapped arguments
    expect: Validator unwrapping each argument
    wrap: Constructor for the result value

  Returns:
    Builtin taking the first argument and returning a builtin for the second
  """
  def first(left: Value) -> Value:
    left_raw = expect(name, left)

    def second(right: Value) -> Value:
      return wrap(op(left_raw, expect(name, right)))

    return make_builtin_function(f"{name} {left}", second)

  return make_builtin_function(name, first)


# ============================================================================
# TYPE FORMERS
# ============================================================================

def kappa_fn(input_value: Value) -> Value:
  """Fn A B is the type of functions from A to B"""
  input_type = expect_type("Fn", input_value)

  def with_output(output_value: Value) -> Value:
    return TypeValue(FuncType(input_type, expect_type("Fn", output_value)))

  return make_builtin_function(f"Fn {input_type}", with_output)


# ============================================================================
# ARITHMETIC & STRINGS
# ============================================================================

def truncating_div(x: int, y: int) -> int:
  if y == 0:
    raise EvalFailure("Division by zero")
  quotient = abs(x) // abs(y)
  return quotient if (x >= 0) == (y >= 0) else -quotient


def kappa_show(value: Value) -> Value:
  """Decimal rendering of a number"""
  return StringValue(str(expect_number("show", value)))


def kappa_length(value: Value) -> Value:
  """Number of characters in a string"""
  return NumberValue(len(expect_string("length", value)))


# ============================================================================
# BUILT-IN REGISTRY
# ============================================================================

def _fn(*types: Type) -> Type:
  """Curried function type over the given argument and result types"""
  result = types[-1]
  for argument in reversed(types[:-1]):
    result = FuncType(argument, result)
  return result


def _build_registry() -> List[Tuple[str, Type, Value]]:
  number, string, type_ = NumberType(), StringType(), TypeType()
  return [
      # Types
      ("Type", type_, TypeValue(type_)),
      ("Number", type_, TypeValue(number)),
      ("String", type_, TypeValue(string)),
      ("Nil", type_, TypeValue(NilType())),
      ("Fn", _fn(type_, type_, type_), make_builtin_function("Fn", kappa_fn)),

      # Arithmetic
      ("add", _fn(number, number, number),
       binary_op("add", lambda x, y: x + y, expect_number, NumberValue)),
      ("sub", _fn(number, number, number),
       binary_op("sub", lambda x, y: x - y, expect_number, NumberValue)),
      ("mul", _fn(number, number, number),
       binary_op("mul", lambda x, y: x * y, expect_number, NumberValue)),
      ("div", _fn(number, number, number),
       binary_op("div", truncating_div, expect_number, NumberValue)),

      # Strings
      ("concat", _fn(string, string, string),
       binary_op("concat", lambda x, y: x + y, expect_string, StringValue)),
      ("show", _fn(number, string), make_builtin_function("show", kappa_show)),
      ("length", _fn(string, number), make_builtin_function("length", kappa_length)),
  ]


BUILTINS: List[Tuple[str, Type, Value]] = _build_registry()


def builtins() -> List[Tuple[str, Type, Value]]:
  """Ordered (name, type, value) triples with unique names"""
  return list(BUILTINS)


def get_builtin(name: str) -> Tuple[Type, Value]:
  """Get a builtin's type and value by name"""
  for builtin_name, ty, value in BUILTINS:
    if builtin_name == name:
      return ty, value
  raise EvalFailure(f"Unknown built-in: {name}")


def list_builtin_names() -> List[str]:
  """List all available builtins"""
  return [name for name, _, _ in BUILTINS]
