"""Python runner: the bundled launcher imports the file and calls the function."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from fnkit.runners.base import LAUNCHERS_DIR, Runner

PYTHON_LAUNCHER = LAUNCHERS_DIR / "python_launcher.py"


class PythonRunner(Runner):
    language = "python"

    def command(
        self,
        entry: Path,
        args: dict[str, Any],
        function: str | None = None,
        options: Mapping[str, str] | None = None,
    ) -> list[str]:
        return [
            self.settings.python_bin,
            str(PYTHON_LAUNCHER),
            str(entry),
            function or "run",
            json.dumps(args, ensure_ascii=False),
        ]
