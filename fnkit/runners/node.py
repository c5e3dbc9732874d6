"""Node runner: the bundled launcher requires the file and calls the function."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from fnkit.runners.base import LAUNCHERS_DIR, Runner

NODE_LAUNCHER = LAUNCHERS_DIR / "node_launcher.js"


class NodeRunner(Runner):
    language = "javascript"

    def command(
        self,
        entry: Path,
        args: dict[str, Any],
        function: str | None = None,
        options: Mapping[str, str] | None = None,
    ) -> list[str]:
        return [
            self.settings.node_bin,
            str(NODE_LAUNCHER),
            str(entry),
            function or "run",
            json.dumps(args, ensure_ascii=False),
        ]
