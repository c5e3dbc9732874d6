"""Call one function of a Python tool or agent module.

Usage: python python_launcher.py ENTRY FUNCTION ARGS_JSON

Runs as a plain script in the child process, so it only uses the standard
library. The function's return value is written to ``$LLM_OUTPUT`` unless the
function already wrote something there itself.
"""

import asyncio
import importlib.util
import inspect
import json
import os
import sys
import traceback


def load_module(entry):
    directory = os.path.dirname(os.path.abspath(entry))
    if directory not in sys.path:
        sys.path.insert(0, directory)
    name = os.path.splitext(os.path.basename(entry))[0]
    spec = importlib.util.spec_from_file_location(f"_fnkit_entry_{name}", entry)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def accepted_arguments(func, args):
    """Drop keys the function cannot take, unless it has ``**kwargs``."""
    params = inspect.signature(func).parameters.values()
    if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in params):
        return dict(args)
    names = {
        p.name for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
    }
    return {k: v for k, v in args.items() if k in names}


async def resolve(awaitable):
    """Await any awaitable; asyncio.run itself only takes coroutines."""
    return await awaitable


def write_output(result):
    path = os.environ.get("LLM_OUTPUT")
    if result is None or not path:
        return
    if os.path.exists(path) and os.path.getsize(path) > 0:
        return
    if isinstance(result, str):
        text = result
    else:
        text = json.dumps(result, ensure_ascii=False, indent=2, default=str)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def main(argv):
    if len(argv) != 4:
        print("usage: python_launcher.py ENTRY FUNCTION ARGS_JSON", file=sys.stderr)
        return 2
    entry, function, payload = argv[1], argv[2], argv[3]
    args = json.loads(payload)

    module = load_module(entry)
    func = getattr(module, function, None)
    if not callable(func):
        print(f"{entry}: no function named '{function}'", file=sys.stderr)
        return 2

    result = func(**accepted_arguments(func, args))
    if inspect.isawaitable(result):
        result = asyncio.run(resolve(result))
    write_output(result)
    return 0


if __name__ == "__main__":
    try:
        code = main(sys.argv)
    except SystemExit:
        raise
    except BaseException:
        traceback.print_exc()
        code = 1
    sys.stdout.flush()
    sys.exit(code)
