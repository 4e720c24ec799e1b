"""
Kappa abstract syntax
Immutable, span-tagged expression and statement nodes shared by the
checker and the evaluator
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Span:
  """Byte-offset pair into the source text"""
  start: int
  end: int

  def merge(self, other: 'Span') -> 'Span':
    """Smallest span covering both spans"""
    return Span(min(self.start, other.start), max(self.end, other.end))

  def __str__(self) -> str:
    return f"{self.start}..{self.end}"


NO_SPAN = Span(0, 0)


def _span_field():
  return field(default=NO_SPAN, compare=False, repr=False)


@dataclass(frozen=True)
class Ident:
  """A name together with the place it was written"""
  name: str
  span: Span = _span_field()

  def __str__(self) -> str:
    return self.name


# ============================================================================
# EXPRESSIONS
# ============================================================================

class Expr:
  """Base class of all expression nodes"""
  span: Span


@dataclass(frozen=True)
class NilLit(Expr):
  span: Span = _span_field()


@dataclass(frozen=True)
class NumberLit(Expr):
  value: int
  span: Span = _span_field()


@dataclass(frozen=True)
class StringLit(Expr):
  value: str
  span: Span = _span_field()


@dataclass(frozen=True)
class RecordLit(Expr):
  """Record value `{x = 1, y = "a"}`"""
  fields: Tuple[Tuple[Ident, Expr], ...]
  span: Span = _span_field()


@dataclass(frozen=True)
class RecordTypeLit(Expr):
  """Record type `{x: Number, y: String}`"""
  fields: Tuple[Tuple[Ident, Expr], ...]
  span: Span = _span_field()


@dataclass(frozen=True)
class TupleLit(Expr):
  """Tuple value; zero items is nil and one item is that item"""
  items: Tuple[Expr, ...]
  span: Span = _span_field()


@dataclass(frozen=True)
class TupleTypeLit(Expr):
  """Tuple type `type (Number, String)`"""
  items: Tuple[Expr, ...]
  span: Span = _span_field()


@dataclass(frozen=True)
class TupleField(Expr):
  base: Expr
  index: int
  span: Span = _span_field()


@dataclass(frozen=True)
class RecordField(Expr):
  base: Expr
  name: Ident
  span: Span = _span_field()


@dataclass(frozen=True)
class Block(Expr):
  """Statements run in order, then the optional trailing expression"""
  statements: Tuple['Let', ...]
  result: Optional[Expr] = None
  span: Span = _span_field()


@dataclass(frozen=True)
class Var(Expr):
  ident: Ident
  span: Span = _span_field()

  @property
  def name(self) -> str:
    return self.ident.name


@dataclass(frozen=True)
class Lambda(Expr):
  """Closure `\\param: annotation => body`"""
  param: Ident
  annotation: Optional[Expr]
  body: Expr
  span: Span = _span_field()


@dataclass(frozen=True)
class Call(Expr):
  callee: Expr
  argument: Expr
  span: Span = _span_field()


@dataclass(frozen=True)
class Paren(Expr):
  """Parenthesized expression, kept only for its span"""
  inner: Expr
  span: Span = _span_field()


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class Let:
  """Bind `name` for the rest of the enclosing block"""
  name: Ident
  expr: Expr
  span: Span = _span_field()


Stmt = Let


def describe(node) -> str:
  """Short node label for debug traces"""
  label = type(node).__name__
  if isinstance(node, Var):
    return f"{label}({node.name})"
  if isinstance(node, Let):
    return f"{label}({node.name})"
  if isinstance(node, (NumberLit, StringLit)):
    return f"{label}({node.value!r})"
  if isinstance(node, TupleField):
    return f"{label}(.{node.index})"
  if isinstance(node, RecordField):
    return f"{label}(.{node.name})"
  if isinstance(node, Lambda):
    return f"{label}({node.param})"
  return label
