"""
Error taxonomy and diagnostic collection for Kappa
Type errors are batched per checking pass, evaluation errors fail fast,
parse errors are enhanced with source context
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, TypeVar
from pyparsing import ParseException
import re

from syntax import Span
from values import ErrorType, Type


T = TypeVar('T')


# ============================================================================
# DIAGNOSTICS (type errors)
# ============================================================================

@dataclass(frozen=True)
class Diagnostic:
    """A type error with the span it was found at"""
    message: str
    span: Span

    def __str__(self) -> str:
        return f"{self.message} @ {self.span}"


class CollectorStateError(RuntimeError):
    """A checking pass was opened twice, or used while closed"""
    pass


class ErrorCollector:
    """Scoped, non-reentrant sink for the diagnostics of one checking pass"""

    def __init__(self):
        self._open = False
        self._diagnostics: List[Diagnostic] = []

    @property
    def in_use(self) -> bool:
        return self._open

    def begin(self) -> None:
        if self._open:
            raise CollectorStateError("a checking pass is already open on this collector")
        self._open = True
        self._diagnostics = []

    def emit(self, message: str, span: Span) -> Type:
        """Record a diagnostic and return the sentinel type to keep checking"""
        if not self._open:
            raise CollectorStateError("diagnostic emitted outside of a checking pass")
        self._diagnostics.append(Diagnostic(message, span))
        return ErrorType()

    def end(self) -> List[Diagnostic]:
        if not self._open:
            raise CollectorStateError("no checking pass is open on this collector")
        diagnostics, self._diagnostics = self._diagnostics, []
        self._open = False
        return diagnostics

    def __len__(self) -> int:
        return len(self._diagnostics)


class TypeCheckError(Exception):
    """Every diagnostic found by one checking pass"""

    def __init__(self, diagnostics: List[Diagnostic]):
        self.diagnostics = list(diagnostics)
        self.message = "; ".join(d.message for d in self.diagnostics)
        super().__init__(self.message)

    def __str__(self) -> str:
        count = len(self.diagnostics)
        noun = "error" if count == 1 else "errors"
        lines = [f"{count} type {noun}:"]
        lines.extend(f"  {diagnostic}" for diagnostic in self.diagnostics)
        return "\n".join(lines)


def collect_type_errors(check: Callable[[ErrorCollector], T],
                        collector: Optional[ErrorCollector] = None) -> T:
    """
    Run one checking pass. Returns the pass result if nothing was emitted,
    raises TypeCheckError with every diagnostic otherwise. The scope is
    closed even when the pass raises.
    """
    collector = collector if collector is not None else ErrorCollector()
    collector.begin()
    try:
        result = check(collector)
    finally:
        diagnostics = collector.end()

    if diagnostics:
        raise TypeCheckError(diagnostics)
    return result


# ============================================================================
# EVALUATION FAILURES
# ============================================================================

class EvalFailure(Exception):
    """Fail-fast runtime error from the evaluator or a builtin"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"EvalError: {self.message}"


# ============================================================================
# SOURCE POSITIONS
# ============================================================================

def line_col(source_text: str, byte_offset: int) -> Tuple[int, int]:
    """1-based line and column of a byte offset"""
    prefix = source_text.encode('utf-8')[:byte_offset].decode('utf-8', errors='ignore')
    line = prefix.count('\n') + 1
    column = len(prefix) - (prefix.rfind('\n') + 1) + 1
    return line, column


def get_context_lines(source_text: str, line_num: int, col_num: int,
                      context_lines: int = 2, width: int = 1) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:  # Error line
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}{'^' * max(1, width)}")

    return '\n'.join(context_parts)


def format_diagnostic(diagnostic: Diagnostic, source_text: str,
                      filename: str = "<input>", context_lines: int = 0) -> str:
    """Render a diagnostic as `file:line:col: message` plus the marked source"""
    line, column = line_col(source_text, diagnostic.span.start)
    end_line, end_column = line_col(source_text, diagnostic.span.end)
    width = end_column - column if end_line == line else 1

    header = f"{filename}:{line}:{column}: {diagnostic.message}"
    return header + "\n" + get_context_lines(source_text, line, column, context_lines, width)


def format_type_errors(error: TypeCheckError, source_text: str,
                       filename: str = "<input>") -> str:
    """Render every diagnostic of a failed pass"""
    return "\n".join(format_diagnostic(d, source_text, filename) for d in error.diagnostics)


# ============================================================================
# PARSE ERRORS
# ============================================================================

class KappaParseError(Exception):
    """Parse error with location, source context and suggestions"""

    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.message = message
        self.location = location
        self.line = line
        self.column = column
        self.expected = expected or []
        self.got = got
        self.context = context
        self.suggestions = suggestions or []
        super().__init__(message)

    def __str__(self) -> str:
        if self.line:
            parts = [f"Parse error at line {self.line}, column {self.column}:"]
        else:
            parts = ["Parse error:"]
        parts.append(f"  {self.message}")

        if self.expected:
            parts.append(f"  Expected: {', '.join(self.expected)}")
        if self.got:
            parts.append(f"  Got: {self.got}")
        if self.context:
            parts.append(f"  Context:\n{self.context}")
        if self.suggestions:
            parts.append("  Suggestions:")
            parts.extend(f"    - {suggestion}" for suggestion in self.suggestions)

        return "\n".join(parts) + "\n"


def expected_tokens(exc: ParseException) -> List[str]:
    """What the grammar was looking for, as pyparsing words it"""
    found = re.search(r"Expected\s+(.+?)(?:,\s+found|\s+\(|$)", str(exc))
    return [found.group(1)] if found else ["valid syntax"]


def found_text(source_text: str, line_num: int, col_num: int) -> str:
    """Up to ten characters of source at the error position"""
    lines = source_text.split('\n')
    if line_num > len(lines):
        return "end of input"

    text = lines[line_num - 1][col_num - 1:col_num + 9].strip()
    return f"'{text}'" if text else "end of line"


def generate_suggestions(got: str, expected: List[str]) -> List[str]:
    """Hints for the mistakes people make most with this syntax"""
    hints = []
    wanted = str(expected)

    if "->" in got:
        hints.append("Closures are written `\\x: Type => body`, function types `Fn A B`")
    if "=>" in wanted:
        hints.append("A closure parameter is followed by an optional `: Type` and then `=>`")
    if "'in'" in wanted:
        hints.append("`let x = e` inside an expression needs `in body`, or use `{ let x = e; body }`")
    if got.startswith("':") and "'='" in wanted:
        hints.append("Record values use `=`, record types use `:`; they cannot be mixed")
    if got.startswith("';'"):
        hints.append("Only top-level items and block statements are separated by `;`")

    return hints


def enhance_parse_exception(exc: ParseException, source_text: str) -> KappaParseError:
    """Convert a pyparsing exception into a KappaParseError"""
    expected = expected_tokens(exc)
    got = found_text(source_text, exc.lineno, exc.column)

    return KappaParseError(
        message=str(exc),
        location=exc.loc,
        line=exc.lineno,
        column=exc.column,
        expected=expected,
        got=got,
        context=get_context_lines(source_text, exc.lineno, exc.column),
        suggestions=generate_suggestions(got, expected)
    )
