"""scopegen CLI - read Rust declarations, write the derived impls."""

from __future__ import annotations

from dataclasses import dataclass
import json
import sys

from . import derive_file
from .backend import emit_rust
from .errors import GenerationError
from .frontend import ParseError, TokenizeError, parse
from .ir import SourceFile
from .middleend import analyze
from .middleend.validate import validate
from .options import CONTRACTS, REBORROW, WIDEN, Options, resolve_options
from .serialize import analysis_to_dict, source_to_dict

DERIVE_CHOICES: dict[str, tuple[str, ...]] = {
    "widen": (WIDEN,),
    "reborrow": (REBORROW,),
    "both": CONTRACTS,
}

PHASES: list[str] = ["parse", "validate", "analyze"]

USAGE: str = """\
scopegen [OPTIONS] [INPUT] [-o OUTPUT]

Generate IntoStatic / ToBorrowed impls for Rust structs and enums.
Reads INPUT, or stdin when no INPUT is given.

Options:
  --derive WHICH      Impls to generate: widen, reborrow, both
                      (default: whatever each #[derive(...)] asks for)
  --legacy            Treat every reference as scope-dependent and allow
                      bounded lifetime parameters
  --strict            Use the strict policy even if the input says legacy
  --crate NAME        Crate path for the traits (default: lifetime)
  --stop-at PHASE     Stop after phase: parse, validate, analyze
  -o, --output FILE   Write output to FILE instead of stdout
  --help              Show this help message
"""


@dataclass
class Args:
    traits: tuple[str, ...] | None = None
    strict: bool | None = None
    crate: str | None = None
    stop_at: str | None = None
    input_file: str | None = None
    output_file: str | None = None


def _usage_error(msg: str) -> int:
    print("error: " + msg, file=sys.stderr)
    return 2


def parse_args(args: list[str]) -> tuple[Args | None, int]:
    """Parse command-line arguments. Returns (args, 0), or (None, exit_code) to stop."""
    result = Args()
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return (None, 0)
        elif arg in ("--derive", "--crate", "--stop-at", "-o", "--output"):
            if i + 1 >= len(args):
                return (None, _usage_error(arg + " requires an argument"))
            value = args[i + 1]
            if arg == "--derive":
                if value not in DERIVE_CHOICES:
                    return (None, _usage_error("unknown derive '" + value + "'"))
                result.traits = DERIVE_CHOICES[value]
            elif arg == "--crate":
                result.crate = value
            elif arg == "--stop-at":
                if value not in PHASES:
                    return (None, _usage_error("unknown phase '" + value + "'"))
                result.stop_at = value
            else:
                result.output_file = value
            i += 2
        elif arg == "--legacy":
            result.strict = False
            i += 1
        elif arg == "--strict":
            result.strict = True
            i += 1
        elif arg.startswith("-") and arg != "-":
            return (None, _usage_error("unknown flag '" + arg + "'"))
        else:
            if result.input_file is not None:
                return (None, _usage_error("unexpected argument '" + arg + "'"))
            if arg != "-":
                result.input_file = arg
            i += 1
    return (result, 0)


def read_source(input_file: str | None) -> tuple[str, int]:
    """Read source from file or stdin. Returns (source, exit_code) where exit_code 0 means OK."""
    if input_file is not None:
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError:
            print("error: cannot open '" + input_file + "'", file=sys.stderr)
            return ("", 1)
    else:
        raw = sys.stdin.buffer.read()
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("error: invalid utf-8 in input", file=sys.stderr)
        return ("", 1)
    return (source, 0)


def write_output(output: str, output_file: str | None) -> int:
    """Write output to file or stdout. Returns 0 on success, 1 on error."""
    if output_file is not None:
        try:
            with open(output_file, "w") as f:
                f.write(output)
        except OSError:
            print("error: cannot write '" + output_file + "'", file=sys.stderr)
            return 1
        return 0
    sys.stdout.write(output)
    return 0


def to_json(obj: object) -> str:
    return json.dumps(obj, indent=2) + "\n"


def _run_phases(parsed: SourceFile, options: Options, stop_at: str | None) -> str:
    if stop_at == "parse":
        return to_json(source_to_dict(parsed))
    policy = options.policy()
    if stop_at == "validate":
        for decl in parsed.decls:
            validate(decl, policy)
        return ""
    if stop_at == "analyze":
        decls = [analysis_to_dict(d, analyze(d, policy)) for d in parsed.decls]
        return to_json({"decls": decls})
    impls = derive_file(parsed, options)
    if len(impls) == 0:
        return ""
    return emit_rust(impls)


def run_pipeline(source: str, args: Args) -> tuple[int, str]:
    """Run parse -> validate -> generate. Returns (exit_code, output)."""
    try:
        parsed = parse(source)
    except (TokenizeError, ParseError) as e:
        print("error:" + str(e.line) + ":" + str(e.col) + ": " + e.msg, file=sys.stderr)
        return (1, "")
    options = resolve_options(parsed, args.strict, args.crate, args.traits)
    try:
        output = _run_phases(parsed, options, args.stop_at)
    except GenerationError as e:
        print("error: " + str(e), file=sys.stderr)
        return (1, "")
    return (0, output)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args, code = parse_args(argv if argv is not None else sys.argv[1:])
    if args is None:
        return code
    source, err = read_source(args.input_file)
    if err != 0:
        return err
    if source.strip() == "":
        print("error: no input provided", file=sys.stderr)
        return 2
    exit_code, output = run_pipeline(source, args)
    if exit_code != 0:
        return exit_code
    if len(output) > 0 or args.output_file is not None:
        return write_output(output, args.output_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
