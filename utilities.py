"""
Utilities module for the Kappa checker/interpreter
Contains common text helpers shared by the parser and the renderers
"""

from typing import Any, Callable, Iterable, Tuple


# ==================== STRING ESCAPES ====================

ESCAPES = {
    'n': '\n',
    'r': '\r',
    't': '\t',
}


def unescape(text: str) -> str:
  """
  Resolve backslash escapes in the body of a string literal

  Args:
    text: Literal body without the surrounding quotes

  Returns:
    The string the literal denotes. Unknown escapes keep the escaped
    character, so a backslash before a quote yields the quote.
  """
  output = []
  escaping = False

  for char in text:
    if not escaping and char == '\\':
      escaping = True
      continue

    output.append(ESCAPES.get(char, char) if escaping else char)
    escaping = False

  return ''.join(output)


def escape_string(text: str) -> str:
  """
  Render a string as a double-quoted literal that unescape() reads back

  Args:
    text: Raw string value

  Returns:
    Quoted literal text
  """
  reverse = {value: key for key, value in ESCAPES.items()}
  parts = ['"']
  for char in text:
    if char in ('\\', '"'):
      parts.append('\\' + char)
    elif char in reverse:
      parts.append('\\' + reverse[char])
    else:
      parts.append(char)
  parts.append('"')
  return ''.join(parts)


# ==================== JOINING ====================

def join(separator: str, items: Iterable[Any]) -> str:
  """Join the str() of each item"""
  return separator.join(str(item) for item in items)


def mapping(separator: str) -> Callable[[Tuple[Any, Any]], str]:
  """
  Factory for rendering a (key, value) pair with a separator

  Examples:
    join(", ", map(mapping("="), {"x": 1}.items())) -> 'x=1'
  """
  def render(pair: Tuple[Any, Any]) -> str:
    key, value = pair
    return f"{key}{separator}{value}"

  return render


def truncate(text: str, limit: int = 60) -> str:
  """Shorten long renderings for one-line display"""
  if len(text) > limit:
    return text[:limit - 3] + "..."
  return text
