"""
Kappa Programming Language - Main Entry Point
A small expression language with records, tuples, closures and types as values
"""

import sys
import argparse
from pathlib import Path
from typing import List, Tuple, Union
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from context import TypeContext, ValueContext
from error_handling import EvalFailure, KappaParseError, TypeCheckError, format_type_errors
from interpreter import evaluate, evaluate_stmt
from parsing import create_parser, pretty_print_ast
from semantics import infer_type, typeck_stmt
from stdlib import get_builtin, list_builtin_names
from syntax import Expr, Let
from utilities import truncate
from values import Type

VERSION = 'Kappa v0.1.0'
DEFAULT_HISTORY = "~/.kappa_history"

Item = Union[Expr, Let]


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Kappa Programming Language - records, tuples, closures and first-class types',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.kp              # Check and run a Kappa script
  %(prog)s -i                     # Interactive mode
  %(prog)s --parse script.kp      # Parse and show the AST
  %(prog)s --check script.kp      # Type check only, show each item's type
  %(prog)s --debug script.kp      # Run with debug output
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Kappa script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the AST (for debugging)'
  )

  parser.add_argument(
      '--check',
      action='store_true',
      help='Type check file without evaluating it'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--history',
      default=DEFAULT_HISTORY,
      metavar='FILE',
      help=f'REPL history file (default: {DEFAULT_HISTORY})'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


# ============================================================================
# RUNNING ITEMS
# ============================================================================

def check_item(item: Item, type_context: TypeContext,
               debug: bool = False) -> Tuple[Type, TypeContext]:
  """Type check one top-level item, returning its type and the next context"""
  if isinstance(item, Let):
    type_context = typeck_stmt(item, type_context, debug)
    return type_context.lookup_type(item.name.name), type_context
  return infer_type(item, type_context, debug), type_context


def run_item(item: Item, type_context: TypeContext, value_context: ValueContext,
             debug: bool = False) -> Tuple[str, TypeContext, ValueContext]:
  """
  Check then evaluate one top-level item.
  Both contexts advance together: on any error the caller keeps the old ones.
  """
  ty, next_type_context = check_item(item, type_context, debug)

  if isinstance(item, Let):
    value_context = evaluate_stmt(item, value_context, debug)
    value = value_context.lookup(item.name.name)
    return f"{item.name} = {value} : {ty}", next_type_context, value_context

  value = evaluate(item, value_context, debug)
  return f"{value} : {ty}", next_type_context, value_context


def run_source(source: str, filename: str = "<input>", debug: bool = False,
               check_only: bool = False) -> int:
  """Run a whole program, printing results; returns the exit status"""
  parser = create_parser(debug)
  try:
    items = parser.parse_program(source)
  except KappaParseError as e:
    print(f"Parse error in '{filename}': {e}")
    return 1

  if debug:
    print(f"Parsed {len(items)} top-level items")

  type_context = TypeContext.default()
  value_context = ValueContext.default()

  for item in items:
    try:
      if check_only:
        ty, type_context = check_item(item, type_context, debug)
        label = f"{item.name} : {ty}" if isinstance(item, Let) else f"{ty}"
      else:
        label, type_context, value_context = run_item(item, type_context, value_context, debug)
    except TypeCheckError as e:
      print(format_type_errors(e, source, filename))
      return 1
    except EvalFailure as e:
      print(f"{filename}: {e}")
      return 1

    # Scripts only echo expressions, bindings show up with --check or --debug
    if check_only or debug or not isinstance(item, Let):
      print(label)

  return 0


# ============================================================================
# SCRIPT MODE
# ============================================================================

def read_script(script_path: str) -> str:
  try:
    return Path(script_path).read_text(encoding='utf-8')
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'")
    print("  Hint: Make sure you have read permissions for this file")
    sys.exit(1)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}")
    print("  Hint: Make sure the file is a text file with UTF-8 encoding")
    sys.exit(1)


def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a Kappa script file and show the AST"""
  parser = create_parser(debug)

  print(f"Parsing {script_path}...")
  try:
    items = parser.parse_file(script_path)
  except KappaParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)

  print(f"\nParsed {len(items)} top-level items:")
  print("=" * 50)

  for i, item in enumerate(items, 1):
    print(f"\nItem {i}:")
    print(pretty_print_ast(item))


def check_file(script_path: str, debug: bool = False) -> None:
  """Type check a Kappa script file without running it"""
  sys.exit(run_source(read_script(script_path), script_path, debug, check_only=True))


def run_script_file(script_path: str, debug: bool = False) -> None:
  """Run a Kappa script file"""
  sys.exit(run_source(read_script(script_path), script_path, debug))


# ============================================================================
# INTERACTIVE MODE
# ============================================================================

def setup_readline(history_file: str = DEFAULT_HISTORY):
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(history_file)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First time, no history yet

  readline.set_history_length(1000)

  completions = ["let", "in", "type"] + list_builtin_names() + [
      ":type", ":parse", ":env", ":help", ":quit", "exit."
  ]

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  # Save history on exit
  import atexit
  atexit.register(readline.write_history_file, history_file)


def user_bindings(type_context: TypeContext) -> List[str]:
  """Lines describing the bindings made during the session"""
  builtin_names = set(list_builtin_names())
  lines = []
  for name, binding in type_context.bindings():
    if name in builtin_names and binding.value is get_builtin(name)[1]:
      continue
    lines.append(f"  {name} = {truncate(str(binding.value))} : {binding.type}")
  return lines


def print_help() -> None:
  print("REPL Commands:")
  print("  :type <expr>      - Show the type of an expression")
  print("  :parse <expr>     - Show the parsed AST")
  print("  :env              - Show current bindings")
  print("  :help             - Show this help")
  print("  :quit, exit.      - Exit REPL")
  print()
  print("Language features:")
  print("  let x = 5                       - Binding for the rest of the session")
  print("  let x = 5 in (x, x)             - Local binding")
  print("  { let y = 2; add y 3 }          - Block")
  print("  \\x: Number => show x            - Closure with a typed parameter")
  print("  {x = 1, y = \"a\"}.y              - Record and field access")
  print("  Fn Number String                - Function type")
  print("  type (Number, String)           - Tuple type")


def run_interactive_mode(debug: bool = False, history_file: str = DEFAULT_HISTORY) -> None:
  """Run Kappa in interactive mode"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit.' to quit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline(history_file)

  parser = create_parser(debug)
  type_context = TypeContext.default()
  value_context = ValueContext.default()

  while True:
    try:
      code = input("kappa> ").strip()
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    if code in ("exit.", ":quit"):
      break

    if not code:
      continue

    if code == ":help":
      print_help()
      continue

    if code == ":env":
      print("Current bindings:")
      lines = user_bindings(type_context)
      print("\n".join(lines) if lines else "  (no user-defined bindings)")
      continue

    command, text = None, code.rstrip(";")
    for prefix in (":parse ", ":type "):
      if code.startswith(prefix):
        command, text = prefix.strip(), code[len(prefix):]

    try:
      if command == ":parse":
        print(pretty_print_ast(parser.parse_statement(text)))
      elif command == ":type":
        print(infer_type(parser.parse_expression(text), type_context, debug))
      else:
        item = parser.parse_statement(text)
        line, type_context, value_context = run_item(item, type_context, value_context, debug)
        print(line)
    except KappaParseError as e:
      print(f"Parse error: {e}")
    except TypeCheckError as e:
      print(format_type_errors(e, text))
    except EvalFailure as e:
      print(e)


def show_language_info() -> None:
  """Show Kappa language information"""
  print("Kappa Programming Language")
  print("=" * 50)
  print("A small expression language with:")
  print("• Records, tuples and closures")
  print("• Types as first-class values")
  print("• Batched type errors with source locations")
  print()


def main() -> None:
  """Main entry point for Kappa"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args()

  if len(sys.argv) == 1:
    # No arguments - show info and start interactive mode
    show_language_info()
    print("Use 'kappa --help' for command line options")
    print()
    run_interactive_mode()
    return

  if args.script:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist")
      sys.exit(1)

    if args.parse:
      parse_file(args.script, debug=args.debug)
    elif args.check:
      check_file(args.script, debug=args.debug)
    else:
      run_script_file(args.script, debug=args.debug)

  elif args.interactive:
    run_interactive_mode(debug=args.debug, history_file=args.history)

  else:
    arg_parser.print_help()
    print()
    show_language_info()


if __name__ == "__main__":
  main()
