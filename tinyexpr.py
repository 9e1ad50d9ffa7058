"""Command line entry point and REPL wiring."""
from __future__ import annotations
import argparse
import sys
from typing import List, Optional

from evaluator import TinyNestingError
from interpreter import Interpreter, TinyRuntimeError, TracebackFormatter, format_value
from lexer import TinyTokenizeError, format_tokens, tokenize
from parser import TinySyntaxError, treeify
from printer import dump


def _run_one(interpreter: Interpreter, text: str, *, show_tokens: bool, show_tree: bool) -> None:
    tokens = tokenize(text)
    if show_tokens:
        print(format_tokens(tokens))
    tree = treeify(tokens)
    if show_tree:
        print(dump(tree))
    result = interpreter.evaluate(tree)
    if result is not None:
        print(format_value(result))


def _report_runtime_error(interpreter: Interpreter, error: TinyRuntimeError, *, traceback_json: bool = False) -> None:
    formatter = TracebackFormatter(interpreter)
    print(formatter.format_text(error, verbose=interpreter.verbose), file=sys.stderr)
    if traceback_json:
        print(formatter.to_json(error), file=sys.stderr)


def run_repl(verbose: bool, *, show_tokens: bool = False, show_tree: bool = False) -> int:
    print("tinyexpr REPL. One expression per line, Ctrl-D to quit.")
    interpreter = Interpreter(verbose=verbose)

    while True:
        try:
            line = input(">>> ")
        except EOFError:
            print()
            break
        if line.strip() == "":
            continue
        try:
            _run_one(interpreter, line, show_tokens=show_tokens, show_tree=show_tree)
        except (TinyTokenizeError, TinySyntaxError) as error:
            print(f"ParseError: {error}", file=sys.stderr)
        except TinyRuntimeError as error:
            _report_runtime_error(interpreter, error)
        except TinyNestingError as error:
            print(f"EvaluationError: {error}", file=sys.stderr)

    return 0


def run_cli(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="tiny expression language evaluator")
    parser.add_argument("program", nargs="?", help="Source file path or literal source with -source")
    parser.add_argument("-source", "--source", dest="source_mode", action="store_true", help="Treat program argument as literal source text")
    parser.add_argument("-verbose", "--verbose", dest="verbose", action="store_true", help="Emit variable snapshots in tracebacks")
    parser.add_argument("--tokens", action="store_true", help="Print the token list before evaluating")
    parser.add_argument("--tree", action="store_true", help="Print the parsed tree before evaluating")
    parser.add_argument("--trace", action="store_true", help="Print every backend step after evaluating")
    parser.add_argument("--traceback-json", action="store_true", help="Also emit JSON traceback")
    args = parser.parse_args(argv)

    if args.program is None:
        if args.source_mode:
            print("-source requires a program string", file=sys.stderr)
            return 1
        return run_repl(verbose=args.verbose, show_tokens=args.tokens, show_tree=args.tree)

    if args.source_mode:
        lines = [args.program]
    else:
        try:
            with open(args.program, "r", encoding="utf-8") as handle:
                lines = handle.read().splitlines()
        except OSError as exc:
            print(f"Failed to read {args.program}: {exc}", file=sys.stderr)
            return 1

    interpreter = Interpreter(verbose=args.verbose)
    status = 0
    try:
        # one expression per non-blank line; bindings carry over
        for line in lines:
            if line.strip():
                _run_one(interpreter, line, show_tokens=args.tokens, show_tree=args.tree)
    except (TinyTokenizeError, TinySyntaxError) as error:
        print(f"ParseError: {error}", file=sys.stderr)
        status = 1
    except TinyRuntimeError as error:
        _report_runtime_error(interpreter, error, traceback_json=args.traceback_json)
        status = 1
    except TinyNestingError as error:
        print(f"EvaluationError: {error}", file=sys.stderr)
        status = 1
    if args.trace:
        print(interpreter.logger.format_text())
    return status


if __name__ == "__main__":
    raise SystemExit(run_cli())
