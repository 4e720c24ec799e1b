"""
Persistent contexts for Kappa
Append-only environments whose extensions share every older entry, so a
closure can keep the context it was created in without copying it
"""

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

from stdlib import builtins
from values import Type, Value


@dataclass(frozen=True)
class _Node:
  name: str
  entry: Any
  parent: Optional['_Node']


@dataclass(frozen=True)
class Binding:
  """What a type context knows about a name"""
  type: Type
  value: Value


class Context:
  """
  Ordered, append-only list of (name, entry) pairs.

  Lookup scans from the most recent entry backwards, so later entries
  shadow earlier ones. `extend` returns a new context in O(1); the old
  context stays valid and unchanged. `fallback` is consulted after the
  last node and lets one context be layered over another.
  """

  __slots__ = ('_head', '_fallback')

  def __init__(self, head: Optional[_Node] = None, fallback: Any = None):
    self._head = head
    self._fallback = fallback

  def extend(self, name: str, entry: Any) -> 'Context':
    return type(self)(_Node(name, entry, self._head), self._fallback)

  def lookup(self, name: str) -> Optional[Any]:
    node = self._head
    while node is not None:
      if node.name == name:
        return node.entry
      node = node.parent
    if self._fallback is not None:
      return self._fallback.lookup(name)
    return None

  def __contains__(self, name: str) -> bool:
    return self.lookup(name) is not None

  def __iter__(self) -> Iterator[Tuple[str, Any]]:
    """Own entries, most recent first, shadowed ones included"""
    node = self._head
    while node is not None:
      yield node.name, node.entry
      node = node.parent

  def bindings(self) -> List[Tuple[str, Any]]:
    """Visible (name, entry) pairs, oldest first"""
    seen = set()
    visible = []
    for name, entry in self:
      if name not in seen:
        seen.add(name)
        visible.append((name, entry))
    visible.reverse()
    return visible

  def __repr__(self) -> str:
    names = ", ".join(name for name, _ in self.bindings())
    return f"{type(self).__name__}([{names}])"


class ValueContext(Context):
  """Context of runtime values"""

  __slots__ = ()

  @classmethod
  def default(cls) -> 'ValueContext':
    context = cls()
    for name, _, value in builtins():
      context = context.extend(name, value)
    return context


class _BindingValues:
  """Read-only value view of a type context"""

  __slots__ = ('_context',)

  def __init__(self, context: 'TypeContext'):
    self._context = context

  def lookup(self, name: str) -> Optional[Value]:
    binding = self._context.lookup(name)
    return binding.value if binding is not None else None


class TypeContext(Context):
  """Context of Binding(type, value) pairs used while checking"""

  __slots__ = ()

  @classmethod
  def default(cls) -> 'TypeContext':
    context = cls()
    for name, ty, value in builtins():
      context = context.extend(name, Binding(ty, value))
    return context

  def lookup_type(self, name: str) -> Optional[Type]:
    binding = self.lookup(name)
    return binding.type if binding is not None else None

  def values(self) -> ValueContext:
    """The value-bearing projection, sharing this context"""
    return ValueContext(None, _BindingValues(self))
