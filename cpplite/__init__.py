"""C++Lite: validator, typed-operator transformer and evaluator."""

from __future__ import annotations

from .driver import RunResult, check_source, run_source
from .interp import Interpreter, evaluate
from .parser import parse_program
from .transform import transform
from .validator import validate

__all__ = [
    "Interpreter",
    "RunResult",
    "check_source",
    "evaluate",
    "parse_program",
    "run_source",
    "transform",
    "validate",
]
