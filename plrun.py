import sys
from pathlib import Path

from plbridge import (
    BuiltinSession, MemoryContext, load_config, Boolean, FloatingPoint, SignedInteger, UnsignedInteger, String,
)
from plbridge.pl_coerce import to_string

USAGE = "usage: plrun [--allow-dangerous] [--config=PATH] <data-file> <function> [args...]"


def parse_literal_arg(text: str):
    """Turn a command-line word into a literal: ints, floats, true/false, else a string."""
    low = text.lower()
    if low in ("true", "false"):
        return Boolean(low == "true")
    for base in (0, 10):
        try:
            value = int(text, base)
        except ValueError:
            continue
        return SignedInteger(value) if value < 0 else UnsignedInteger(value)
    try:
        return FloatingPoint(float(text))
    except ValueError:
        pass
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return String(text[1:-1])
    return String(text)


def run(argv) -> int:
    """Call one builtin against the contents of a data file and print the result."""
    args = list(argv)
    allow_dangerous = False
    config_path = None
    positional = []
    for arg in args:
        if arg == "--allow-dangerous":
            allow_dangerous = True
        elif arg.startswith("--config="):
            config_path = arg.split("=", 1)[1]
        else:
            positional.append(arg)

    if len(positional) < 2:
        print(USAGE, file=sys.stderr)
        return 2

    data_file, function, *rest = positional
    try:
        data = Path(data_file).read_bytes()
    except FileNotFoundError:
        print(f"Error: file not found: {data_file}", file=sys.stderr)
        return 1

    try:
        config = load_config(config_path, {"dangerous-functions": "allow"} if allow_dangerous else None)
    except (OSError, ValueError) as e:
        print(f"Error: bad configuration: {e}", file=sys.stderr)
        return 1

    ctx = MemoryContext(data)
    with BuiltinSession(ctx, config) as session:
        result = session.call(function, [parse_literal_arg(a) for a in rest])

    # Console output of the call (errors are reported below)
    for effect in ctx.console:
        topics = effect.get('topics')
        if topics == ['info']:
            print(effect.get('message', ''))
        elif topics != ['error']:
            print(f"{topics[0]}: {effect.get('message', '')}", file=sys.stderr)

    if not result.ok:
        print(result.format_error(), file=sys.stderr)
        return 1
    if result.value is not None:
        print(to_string(result.value, True))
    return 0


def main():
    raise SystemExit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
