import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import pyparsing as pp

from feval import interpreter, parser, translate, type_checker
from feval.printer import show_expr

logger = logging.getLogger(__name__)


def compile_expr(src: str):
    tree = parser.parse_expr(src)
    logger.debug("AST: %s", show_expr(tree))
    tree = translate.translate(tree)
    logger.debug("Translated: %s", show_expr(tree))
    return tree


def check(src: str) -> type_checker.Type:
    return type_checker.typecheck(compile_expr(src))


def run(src: str) -> tuple[Any, type_checker.Type]:
    """Type check a program and, only if that succeeds, evaluate it."""
    tree = compile_expr(src)
    ty = type_checker.typecheck(tree)
    return interpreter.evaluate(tree), ty


def read_more(src: str) -> str:
    while src.endswith("\\"):
        src = src[:-1] + "\n" + input("| ")
    return src


def repl():
    while True:
        try:
            src = read_more(input("> "))
            if not src.strip():
                continue
            value, ty = run(src)
            print(f"{interpreter.show_value(value)} : {ty}")
        except EOFError:
            break
        except pp.ParseBaseException as e:
            print(e.explain(depth=0))
        except type_checker.TypeCheckError as e:
            print(f"Type error: {e}")
        except interpreter.EvalError as e:
            print(f"Evaluation error: {e}")
        except RecursionError:
            print("Recursion too deep")


def eval_command(args: argparse.Namespace) -> None:
    value, _ = run(args.program_file.read_text())
    print(interpreter.show_value(value))


def check_command(args: argparse.Namespace) -> None:
    print(check(args.program_file.read_text()))


def repl_command(args: argparse.Namespace) -> None:
    repl()


def main(argv: Optional[list[str]] = None) -> int:
    arg_parser = argparse.ArgumentParser(prog="feval")
    arg_parser.add_argument("--debug", action="store_true")
    arg_parser.add_argument("--recursion-limit", type=int, default=10_000)
    subparsers = arg_parser.add_subparsers(dest="command")

    eval_ = subparsers.add_parser("eval")
    eval_.add_argument("program_file", type=Path)
    eval_.set_defaults(func=eval_command)

    check_ = subparsers.add_parser("check")
    check_.add_argument("program_file", type=Path)
    check_.set_defaults(func=check_command)

    repl_ = subparsers.add_parser("repl")
    repl_.set_defaults(func=repl_command)

    args = arg_parser.parse_args(argv)
    if args.debug:
        logging.basicConfig(level=logging.DEBUG)
    sys.setrecursionlimit(max(sys.getrecursionlimit(), args.recursion_limit))

    try:
        getattr(args, "func", repl_command)(args)
    except pp.ParseBaseException as e:
        print(e.explain(depth=0), file=sys.stderr)
        return 1
    except type_checker.TypeCheckError as e:
        print(f"Type error: {e}", file=sys.stderr)
        return 1
    except interpreter.EvalError as e:
        print(f"Evaluation error: {e}", file=sys.stderr)
        return 1
    except RecursionError:
        print("Recursion too deep", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
