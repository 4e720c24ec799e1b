"""
Kappa types and runtime values
Types are ordinary data that can also be reified as values, so type
expressions evaluate like any other expression
"""

from dataclasses import dataclass, field
import itertools
from typing import Any, Callable, Dict, Optional, Tuple, Union

from utilities import escape_string, join, mapping


# ============================================================================
# TYPES
# ============================================================================

class Type:
  """Base class of all types; equality is alpha-equivalence"""

  __hash__ = None

  def __eq__(self, other: object) -> bool:
    if not isinstance(other, Type):
      return NotImplemented
    return types_equal(self, other)

  def __ne__(self, other: object) -> bool:
    result = self.__eq__(other)
    if result is NotImplemented:
      return result
    return not result


@dataclass(frozen=True, eq=False)
class NilType(Type):
  def __str__(self) -> str:
    return "Nil"


@dataclass(frozen=True, eq=False)
class NumberType(Type):
  def __str__(self) -> str:
    return "Number"


@dataclass(frozen=True, eq=False)
class StringType(Type):
  def __str__(self) -> str:
    return "String"


@dataclass(frozen=True, eq=False)
class TypeType(Type):
  """The type of types"""
  def __str__(self) -> str:
    return "Type"


@dataclass(frozen=True, eq=False)
class ErrorType(Type):
  """Stands in after a diagnosed failure; equal to every type"""
  def __str__(self) -> str:
    return "TypeError"


@dataclass(frozen=True, eq=False)
class RecordType(Type):
  fields: Dict[str, Type]

  def __str__(self) -> str:
    return "{" + join(", ", map(mapping(": "), self.fields.items())) + "}"


@dataclass(frozen=True, eq=False)
class TupleType(Type):
  items: Tuple[Type, ...]

  def __str__(self) -> str:
    return f"type ({join(', ', self.items)})"


@dataclass(frozen=True, eq=False)
class FuncType(Type):
  """
  Function type. `binder` is the identity of the parameter that `output`
  depends on, or None when the output does not mention it.
  """
  input: Type
  output: Type
  binder: Optional[int] = None
  binder_name: str = field(default="_", compare=False)

  def __str__(self) -> str:
    if self.binder is None:
      return f"Fn({self.input}, {self.output})"
    return f"Fn({self.binder_name}: {self.input}, {self.output})"


@dataclass(frozen=True, eq=False)
class ParamType(Type):
  """A lambda parameter used in type position, known only by identity"""
  name: str
  ident: int

  def __str__(self) -> str:
    return self.name


@dataclass(frozen=True, eq=False)
class NeutralType(Type):
  """A type that waits on a parameter, such as `F Number` or `r.t`"""
  term: Any

  def __str__(self) -> str:
    return str(self.term)


_param_idents = itertools.count()


def fresh_param_ident() -> int:
  """Process-wide unique parameter identity"""
  return next(_param_idents)


def types_equal(left: Type, right: Type, renaming: Optional[Dict[int, int]] = None) -> bool:
  """
  Structural equality up to renaming of function binders.
  `renaming` maps binders of `right` to the binders of `left` they stand for.
  """
  if isinstance(left, ErrorType) or isinstance(right, ErrorType):
    return True
  renaming = renaming or {}

  if isinstance(left, ParamType) and isinstance(right, ParamType):
    return renaming.get(right.ident, right.ident) == left.ident
  if type(left) is not type(right):
    return False

  if isinstance(left, NeutralType):
    return values_equal(left.term, right.term, renaming)
  if isinstance(left, RecordType):
    return (left.fields.keys() == right.fields.keys() and
            all(types_equal(left.fields[name], right.fields[name], renaming)
                for name in left.fields))
  if isinstance(left, TupleType):
    return (len(left.items) == len(right.items) and
            all(types_equal(a, b, renaming) for a, b in zip(left.items, right.items)))
  if isinstance(left, FuncType):
    if not types_equal(left.input, right.input, renaming):
      return False
    if (left.binder is None) != (right.binder is None):
      return False
    if right.binder is not None:
      renaming = {**renaming, right.binder: left.binder}
    return types_equal(left.output, right.output, renaming)

  # Nil, Number, String, Type
  return True


def mentions(ty: Type, ident: int) -> bool:
  """Whether the parameter `ident` occurs in `ty`"""
  if isinstance(ty, ParamType):
    return ty.ident == ident
  if isinstance(ty, NeutralType):
    return value_mentions(ty.term, ident)
  if isinstance(ty, RecordType):
    return any(mentions(item, ident) for item in ty.fields.values())
  if isinstance(ty, TupleType):
    return any(mentions(item, ident) for item in ty.items)
  if isinstance(ty, FuncType):
    return mentions(ty.input, ident) or mentions(ty.output, ident)
  return False


def collapse_tuple_type(items: Tuple[Type, ...]) -> Type:
  """Zero items is Nil, one item is itself"""
  if len(items) == 0:
    return NilType()
  if len(items) == 1:
    return items[0]
  return TupleType(tuple(items))


# ============================================================================
# VALUES
# ============================================================================

class Value:
  """Base class of all runtime values"""

  def as_type(self) -> Optional[Type]:
    """The type this value denotes, if it denotes one"""
    return None


@dataclass(frozen=True)
class NilValue(Value):
  def __str__(self) -> str:
    return "nil"


@dataclass(frozen=True)
class NumberValue(Value):
  value: int

  def __str__(self) -> str:
    return str(self.value)


@dataclass(frozen=True)
class StringValue(Value):
  value: str

  def __str__(self) -> str:
    return escape_string(self.value)


@dataclass(frozen=True)
class RecordValue(Value):
  fields: Dict[str, Value]

  def __str__(self) -> str:
    return "{" + join(", ", map(mapping("="), self.fields.items())) + "}"


@dataclass(frozen=True)
class TupleValue(Value):
  items: Tuple[Value, ...]

  def __str__(self) -> str:
    return f"({join(', ', self.items)})"


@dataclass(frozen=True, eq=False)
class ClosureValue(Value):
  """Closure sharing (never copying) the context it was created in"""
  param: str
  body: Any
  context: Any = field(repr=False)

  def __str__(self) -> str:
    return "[Closure]"


@dataclass(frozen=True, eq=False)
class BuiltinFunc(Value):
  """Primitive capability: invoke with one value, raise EvalFailure to reject"""
  name: str
  func: Callable[[Value], Value] = field(repr=False)

  def invoke(self, argument: Value) -> Value:
    return self.func(argument)

  def __str__(self) -> str:
    return f"[BuiltinFunc {self.name}]"


@dataclass(frozen=True, eq=False)
class TypeValue(Value):
  """A type reified as a value"""
  type: Type

  def __eq__(self, other: object) -> bool:
    if not isinstance(other, TypeValue):
      return NotImplemented
    return self.type == other.type

  __hash__ = None

  def as_type(self) -> Optional[Type]:
    return self.type

  def __str__(self) -> str:
    return str(self.type)


@dataclass(frozen=True)
class ParamValue(Value):
  """Placeholder for a parameter whose argument is not known while checking"""
  name: str
  ident: int

  def as_type(self) -> Optional[Type]:
    return ParamType(self.name, self.ident)

  def __str__(self) -> str:
    return self.name


@dataclass(frozen=True)
class StuckCall(Value):
  """Application whose callee is a parameter, so it cannot reduce yet"""
  callee: Value
  argument: Value

  def as_type(self) -> Optional[Type]:
    return NeutralType(self)

  def __str__(self) -> str:
    if isinstance(self.argument, StuckCall):
      return f"{self.callee} ({self.argument})"
    return f"{self.callee} {self.argument}"


@dataclass(frozen=True)
class StuckField(Value):
  """Field access on a parameter; `key` is a record name or a tuple index"""
  base: Value
  key: Union[str, int]

  def as_type(self) -> Optional[Type]:
    return NeutralType(self)

  def __str__(self) -> str:
    if isinstance(self.base, StuckCall):
      return f"({self.base}).{self.key}"
    return f"{self.base}.{self.key}"


def is_neutral(value: Value) -> bool:
  """Whether the value is blocked on a parameter placeholder"""
  return isinstance(value, (ParamValue, StuckCall, StuckField))


def values_equal(left: Value, right: Value, renaming: Optional[Dict[int, int]] = None) -> bool:
  """Equality of values found inside types, up to renaming of binders"""
  renaming = renaming or {}

  if isinstance(left, ParamValue) and isinstance(right, ParamValue):
    return renaming.get(right.ident, right.ident) == left.ident
  if type(left) is not type(right):
    return False

  if isinstance(left, StuckCall):
    return (values_equal(left.callee, right.callee, renaming) and
            values_equal(left.argument, right.argument, renaming))
  if isinstance(left, StuckField):
    return left.key == right.key and values_equal(left.base, right.base, renaming)
  if isinstance(left, TypeValue):
    return types_equal(left.type, right.type, renaming)
  if isinstance(left, RecordValue):
    return (left.fields.keys() == right.fields.keys() and
            all(values_equal(left.fields[name], right.fields[name], renaming)
                for name in left.fields))
  if isinstance(left, TupleValue):
    return (len(left.items) == len(right.items) and
            all(values_equal(a, b, renaming) for a, b in zip(left.items, right.items)))
  return left == right


def value_mentions(value: Value, ident: int) -> bool:
  """Whether the parameter `ident` occurs in `value`"""
  if isinstance(value, ParamValue):
    return value.ident == ident
  if isinstance(value, StuckCall):
    return value_mentions(value.callee, ident) or value_mentions(value.argument, ident)
  if isinstance(value, StuckField):
    return value_mentions(value.base, ident)
  if isinstance(value, TypeValue):
    return mentions(value.type, ident)
  if isinstance(value, RecordValue):
    return any(value_mentions(item, ident) for item in value.fields.values())
  if isinstance(value, TupleValue):
    return any(value_mentions(item, ident) for item in value.items)
  return False


def collapse_tuple(items: Tuple[Value, ...]) -> Value:
  """Zero items is nil, one item is itself"""
  if len(items) == 0:
    return NilValue()
  if len(items) == 1:
    return items[0]
  return TupleValue(tuple(items))
