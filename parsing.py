"""
Kappa Programming Language Parser
pyparsing grammar producing the span-tagged AST of syntax.py
"""

from dataclasses import dataclass, fields
from functools import reduce
from typing import Iterator, List, Optional, Tuple, Union

from pyparsing import (
    DelimitedList, FollowedBy, Forward, Group, Keyword, Literal, Located, OneOrMore, Opt,
    ParseException, ParserElement, Regex, Suppress, ZeroOrMore
)

from error_handling import KappaParseError, enhance_parse_exception
from syntax import (
    Block, Call, Expr, Ident, Lambda, Let, NilLit, NumberLit, Paren,
    RecordField, RecordLit, RecordTypeLit, Span, StringLit, TupleField,
    TupleLit, TupleTypeLit, Var, describe
)
from utilities import unescape

# Enable packrat parsing for performance
ParserElement.enable_packrat()


# ============================================================================
# SPANS
# ============================================================================

def byte_span(text: str, start: int, end: int) -> Span:
    """Span of character offsets start..end, measured in UTF-8 bytes"""
    if text.isascii():
        return Span(start, end)
    return Span(len(text[:start].encode('utf-8')), len(text[:end].encode('utf-8')))


def _located(text: str, tokens) -> Tuple[Span, list]:
    """Unpack the [start, tokens, end] triple produced by Located"""
    start, inner, end = tokens
    return byte_span(text, start, end), list(inner)


@dataclass(frozen=True)
class _Access:
    """Pending `.0` or `.name` suffix, folded onto its base expression"""
    key: Union[int, Ident]
    span: Span


# ============================================================================
# PARSE ACTIONS
# ============================================================================

def _make_ident(s, loc, t):
    span, inner = _located(s, t)
    return Ident(inner[0], span)


def _make_var(s, loc, t):
    span, inner = _located(s, t)
    return Var(Ident(inner[0], span), span)


def _make_number(s, loc, t):
    span, inner = _located(s, t)
    return NumberLit(int(inner[0]), span)


def _make_string(s, loc, t):
    span, inner = _located(s, t)
    return StringLit(unescape(inner[0][1:-1]), span)


def _make_nil(s, loc, t):
    span, _ = _located(s, t)
    return NilLit(span)


def _field_pairs(groups) -> tuple:
    return tuple((group[0], group[1]) for group in groups)


def _make_record(s, loc, t):
    span, inner = _located(s, t)
    return RecordLit(_field_pairs(inner), span)


def _make_record_type(s, loc, t):
    span, inner = _located(s, t)
    return RecordTypeLit(_field_pairs(inner), span)


def _make_block(s, loc, t):
    span, inner = _located(s, t)
    statements = tuple(inner[0])
    result = inner[1] if len(inner) > 1 else None
    return Block(statements, result, span)


def _make_tuple_type(s, loc, t):
    span, inner = _located(s, t)
    return TupleTypeLit(tuple(inner), span)


def _make_parens(s, loc, t):
    """`(e)` stays a parenthesized expression, `()`, `(e,)` and `(a, b)` are tuples"""
    span, inner = _located(s, t)
    trailing_comma = bool(inner) and isinstance(inner[-1], str)
    items = tuple(item for item in inner if not isinstance(item, str))
    if len(items) == 1 and not trailing_comma:
        return Paren(items[0], span)
    return TupleLit(items, span)


def _make_access(s, loc, t):
    span, inner = _located(s, t)
    key = inner[0]
    if isinstance(key, str):
        key = int(key)
    return _Access(key, span)


def _apply_access(base: Expr, access: _Access) -> Expr:
    span = base.span.merge(access.span)
    if isinstance(access.key, int):
        return TupleField(base, access.key, span)
    return RecordField(base, access.key, span)


def _make_postfix(t):
    return reduce(_apply_access, t[1:], t[0])


def _make_application(t):
    return reduce(lambda callee, argument: Call(callee, argument, callee.span.merge(argument.span)),
                  t[1:], t[0])


def _make_lambda(s, loc, t):
    span, inner = _located(s, t)
    if len(inner) == 3:
        param, annotation, body = inner
    else:
        (param, body), annotation = inner, None
    return Lambda(param, annotation, body, span)


def _make_let(s, loc, t):
    span, inner = _located(s, t)
    name, expr = inner
    return Let(name, expr, span)


def _make_let_in(s, loc, t):
    span, inner = _located(s, t)
    binding, body = inner
    return Block((binding,), body, span)


# ============================================================================
# GRAMMAR
# ============================================================================

class KappaGrammar:
    """Kappa grammar definition using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_grammar()

    def _setup_grammar(self):
        """Setup the Kappa grammar"""

        # Forward declaration for recursive structures
        expression = Forward()

        # Keywords
        let_kw = Keyword("let")
        in_kw = Keyword("in")
        type_kw = Keyword("type")
        keyword = let_kw | in_kw | type_kw

        identifier = ~keyword + Regex(r"[A-Za-z_][A-Za-z0-9_]*")
        ident = Located(identifier).set_parse_action(_make_ident)

        # Literals
        number = Located(Regex(r"\d+")).set_parse_action(_make_number)
        string_literal = Located(Regex(r'"(?:[^"\\]|\\.)*"')).set_parse_action(_make_string)
        variable = Located(identifier.copy()).set_parse_action(_make_var)

        # Braces: nil, record value, record type, block
        nil = Located(Literal("{") + Literal("}")).set_parse_action(_make_nil)

        record_field = Group(ident + Suppress("=") + expression)
        record = Located(
            Suppress("{") + DelimitedList(record_field, allow_trailing_delim=True) + Suppress("}")
        ).set_parse_action(_make_record)

        record_type_field = Group(ident + Suppress(":") + expression)
        record_type = Located(
            Suppress("{") + DelimitedList(record_type_field, allow_trailing_delim=True) + Suppress("}")
        ).set_parse_action(_make_record_type)

        let_binding = Located(
            Suppress(let_kw) + ident + Suppress("=") + expression
        ).set_parse_action(_make_let)

        block = Located(
            Suppress("{") +
            Group(
                ZeroOrMore(let_binding + Suppress(";")) +
                # The last let may drop its ";" when nothing follows
                Opt(let_binding + FollowedBy("}"))
            ) +
            Opt(expression) +
            Suppress("}")
        ).set_parse_action(_make_block)

        # Parentheses: tuple type, tuple, parenthesized expression
        tuple_type = Located(
            Suppress(type_kw) + Suppress("(") +
            Opt(DelimitedList(expression, allow_trailing_delim=True)) +
            Suppress(")")
        ).set_parse_action(_make_tuple_type)

        parens = Located(
            Suppress("(") +
            Opt(expression + ZeroOrMore(Suppress(",") + expression) + Opt(Literal(","))) +
            Suppress(")")
        ).set_parse_action(_make_parens)

        atom = (
            nil |
            record |
            record_type |
            block |
            tuple_type |
            parens |
            number |
            string_literal |
            variable
        )

        # Field access binds tighter than application
        field_key = Regex(r"\d+") | ident
        access = Located(Suppress(".") + field_key).set_parse_action(_make_access)
        postfix = (atom + ZeroOrMore(access)).set_parse_action(_make_postfix)

        # Juxtaposition is left-associative application
        application = OneOrMore(postfix).set_parse_action(_make_application)

        closure = Located(
            Suppress("\\") + ident +
            Opt(Suppress(":") + application) +
            Suppress("=>") + expression
        ).set_parse_action(_make_lambda)

        let_in = Located(
            let_binding + Suppress(in_kw) + expression
        ).set_parse_action(_make_let_in)

        expression <<= let_in | closure | application

        # A top-level item is an expression or a bare let
        statement = expression | let_binding
        program = ZeroOrMore(statement + Opt(Suppress(";")))

        comment = Regex(r"#[^\n]*")
        program.ignore(comment)
        for element in (expression, statement, program):
            element.parse_with_tabs()

        # Store the main parsers
        self.program = program
        self.statement = statement
        self.expression = expression
        self.atom = atom

    def _parse(self, element: ParserElement, text: str) -> list:
        try:
            return list(element.parse_string(text, parse_all=True))
        except ParseException as e:
            raise enhance_parse_exception(e, text)

    def parse_program(self, text: str) -> List[Union[Expr, Let]]:
        """Parse a complete Kappa program"""
        if self.debug:
            print(f"Parsing program ({len(text)} chars)")
        return self._parse(self.program, text)

    def parse_statement(self, text: str) -> Union[Expr, Let]:
        """Parse a single statement: a let binding or an expression"""
        return self._parse(self.statement, text)[0]

    def parse_expression(self, text: str) -> Expr:
        """Parse a single Kappa expression"""
        return self._parse(self.expression, text)[0]


class KappaParser:
    """Main Kappa parser"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = KappaGrammar(debug)

    def parse_file(self, filepath: str) -> List[Union[Expr, Let]]:
        """Parse a Kappa source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise KappaParseError(f"File not found: {filepath}")
        except UnicodeDecodeError as e:
            raise KappaParseError(f"Cannot decode file {filepath}: {e}")
        return self.grammar.parse_program(content)

    def parse_program(self, text: str) -> List[Union[Expr, Let]]:
        """Parse Kappa source code from string"""
        return self.grammar.parse_program(text)

    def parse_statement(self, text: str) -> Union[Expr, Let]:
        return self.grammar.parse_statement(text)

    def parse_expression(self, text: str) -> Expr:
        """Parse a single Kappa expression"""
        return self.grammar.parse_expression(text)


def create_parser(debug: bool = False) -> KappaParser:
    """Create a Kappa parser"""
    return KappaParser(debug=debug)


# ============================================================================
# AST DISPLAY
# ============================================================================

def _children(node) -> Iterator[Tuple[Optional[str], Union[Expr, Let]]]:
    """(label, child) pairs of a node; record fields are labelled by name"""
    for node_field in fields(node):
        value = getattr(node, node_field.name)
        if isinstance(value, (Expr, Let)):
            yield node_field.name, value
        elif isinstance(value, tuple):
            for item in value:
                if isinstance(item, tuple):
                    name, expr = item
                    yield name.name, expr
                else:
                    yield None, item


def pretty_print_ast(node: Union[Expr, Let], indent: int = 0) -> str:
    """Pretty print an AST node for debugging"""
    result = "  " * indent + f"{describe(node)} @ {node.span}\n"

    for label, child in _children(node):
        if label is None:
            result += pretty_print_ast(child, indent + 1)
        else:
            result += "  " * (indent + 1) + f"{label}:\n"
            result += pretty_print_ast(child, indent + 2)

    return result
