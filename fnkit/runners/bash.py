"""Bash runner: ``bash <entry> [action] --name value ...``."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from fnkit.runners.base import Runner


def to_cli_args(args: dict[str, Any], options: Mapping[str, str] | None = None) -> list[str]:
    """Render arguments as long options.

    ``True`` becomes a bare ``--name``; ``False`` and ``None`` are omitted;
    lists repeat the option once per element. Underscores in names become
    hyphens unless ``options`` holds the spelling the tool declared.
    """
    options = options or {}
    argv: list[str] = []
    for name, value in args.items():
        option = options.get(name) or "--" + name.replace("_", "-")
        values = value if isinstance(value, list) else [value]
        for item in values:
            if item is None or item is False:
                continue
            if item is True:
                argv.append(option)
            else:
                argv.extend([option, _scalar(item)])
    return argv


def _scalar(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


class BashRunner(Runner):
    language = "bash"

    def command(
        self,
        entry: Path,
        args: dict[str, Any],
        function: str | None = None,
        options: Mapping[str, str] | None = None,
    ) -> list[str]:
        argv = [self.settings.bash_bin, str(entry)]
        if function:
            argv.append(function)
        return argv + to_cli_args(args, options)
