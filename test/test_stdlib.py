"""
Tests for the builtin registry
"""

import pytest

from error_handling import EvalFailure
from stdlib import builtins, get_builtin, list_builtin_names, truncating_div
from values import (
  BuiltinFunc,
  FuncType,
  NumberType,
  NumberValue,
  StringType,
  StringValue,
  TypeType,
  TypeValue,
)


def call(name, *arguments):
  """Apply a curried builtin to its arguments one at a time"""
  _, value = get_builtin(name)
  for argument in arguments:
    value = value.invoke(argument)
  return value


class TestRegistry:
  """Shape of the registry"""

  def test_names_are_unique(self):
    names = list_builtin_names()
    assert len(names) == len(set(names))

  def test_core_names_present(self):
    for name in ("Type", "Number", "String", "Nil", "Fn"):
      assert name in list_builtin_names()

  def test_builtins_returns_a_copy(self):
    builtins().clear()
    assert len(builtins()) == len(list_builtin_names())

  def test_type_names_are_types(self):
    for name in ("Type", "Number", "String", "Nil"):
      ty, value = get_builtin(name)
      assert ty == TypeType()
      assert isinstance(value, TypeValue)

  def test_unknown_builtin(self):
    with pytest.raises(EvalFailure):
      get_builtin("nope")


class TestFn:
  """The function type former"""

  def test_builds_function_type(self):
    result = call("Fn", TypeValue(NumberType()), TypeValue(StringType()))
    assert result == TypeValue(FuncType(NumberType(), StringType()))

  def test_declared_type(self):
    ty, _ = get_builtin("Fn")
    assert ty == FuncType(TypeType(), FuncType(TypeType(), TypeType()))

  def test_partial_application_is_a_builtin(self):
    assert isinstance(call("Fn", TypeValue(NumberType())), BuiltinFunc)

  def test_rejects_non_types(self):
    with pytest.raises(EvalFailure, match="Fn expected a type"):
      call("Fn", NumberValue(1))

  def test_rejects_non_type_output(self):
    with pytest.raises(EvalFailure):
      call("Fn", TypeValue(NumberType()), StringValue("x"))


class TestArithmetic:
  """Number builtins"""

  @pytest.mark.parametrize("name, left, right, expected", [
      ("add", 2, 3, 5),
      ("sub", 2, 3, -1),
      ("mul", 4, 3, 12),
      ("div", 7, 2, 3),
      ("div", -7, 2, -3),
  ])
  def test_results(self, name, left, right, expected):
    assert call(name, NumberValue(left), NumberValue(right)) == NumberValue(expected)

  def test_division_by_zero(self):
    with pytest.raises(EvalFailure, match="Division by zero"):
      call("div", NumberValue(1), NumberValue(0))

  def test_truncates_toward_zero(self):
    assert truncating_div(-9, 4) == -2
    assert truncating_div(9, -4) == -2

  def test_rejects_strings(self):
    with pytest.raises(EvalFailure, match="add expected a number"):
      call("add", StringValue("1"))


class TestStrings:
  """String builtins"""

  def test_concat(self):
    assert call("concat", StringValue("ab"), StringValue("cd")) == StringValue("abcd")

  def test_show(self):
    assert call("show", NumberValue(-12)) == StringValue("-12")

  def test_length(self):
    assert call("length", StringValue("kappa")) == NumberValue(5)

  def test_length_rejects_numbers(self):
    with pytest.raises(EvalFailure):
      call("length", NumberValue(5))
