from __future__ import annotations

import argparse
import io
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, TextIO

from lark.exceptions import UnexpectedInput

from . import ast
from .interp import EvaluationError, Interpreter
from .parser import ParseError, parse_program
from .runtime import Store, Value
from .transform import TransformError, transform
from .validator import ValidationError, validate

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


@dataclass
class RunResult:
    globals: Store
    result: Value


def check_source(source: str) -> ast.Program:
    """Parse, validate and type-tag `source`; returns the transformed program."""
    program = parse_program(source)
    validated = validate(program)
    return transform(validated)


def run_source(source: str, stdout: Optional[TextIO] = None) -> RunResult:
    transformed = check_source(source)
    interpreter = Interpreter(transformed, stdout=stdout)
    result = interpreter.run()
    return RunResult(globals=interpreter.globals, result=result)


def _configure_logging(verbosity: int) -> None:
    """0 -> WARNING, 1 -> INFO, 2+ -> DEBUG."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("cpplite")
    for old in list(root.handlers):
        root.removeHandler(old)
    root.setLevel(level)
    root.addHandler(handler)


def _report(kind: str, message: str) -> None:
    print(f"cpplite: {kind}: {message}", file=sys.stderr)


def _syntax_message(exc: UnexpectedInput) -> str:
    lines = str(exc).strip().splitlines()
    return lines[0] if lines else exc.__class__.__name__


def _execute(source: str, check_only: bool, show_store: bool) -> int:
    if check_only:
        check_source(source)
        logger.info("program is valid")
        return EXIT_OK
    buffer = io.StringIO()
    try:
        outcome = run_source(source, stdout=buffer)
    finally:
        sys.stdout.write(buffer.getvalue())
    logger.info("main returned %s", outcome.result)
    if show_store:
        if buffer.getvalue():
            sys.stdout.write("\n")
        for line in outcome.globals.dump():
            print(line)
    return EXIT_OK


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="cpplite",
        description="cpplite: validate, type-tag and evaluate a C++Lite program",
    )
    ap.add_argument("source", type=Path, help="C++Lite source file")
    ap.add_argument(
        "--check",
        action="store_true",
        help="Stop after validation and operator tagging; do not run the program",
    )
    ap.add_argument(
        "--show-store",
        action="store_true",
        help="Print the final global store after the program's own output",
    )
    ap.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    args = ap.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        source = args.source.read_text()
    except OSError as exc:
        _report("error", f"cannot read {args.source}: {exc.strerror or exc}")
        return EXIT_USAGE

    try:
        return _execute(source, args.check, args.show_store)
    except UnexpectedInput as exc:
        _report("syntax error", _syntax_message(exc))
    except ParseError as exc:
        _report("syntax error", str(exc))
    except ValidationError as exc:
        _report("validation error", str(exc))
    except TransformError as exc:
        _report("transform error", str(exc))
    except EvaluationError as exc:
        _report("runtime error", str(exc))
    except RecursionError:
        _report("runtime error", "maximum call depth exceeded")
    return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
