"""Default application paths."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class AppPaths:
    """
    Commonly used paths for exports and logs.

    ``EMGFLOW_DATA_ROOT`` and ``EMGFLOW_LOG_DIR`` override the default
    ``data``/``logs`` folders under the current working directory so that
    packaged installs can store files elsewhere.
    """

    base_dir: Path = field(default_factory=Path.cwd)
    data_root: Path = field(init=False)
    exports: Path = field(init=False)
    logs: Path = field(init=False)

    def __post_init__(self) -> None:
        env_data_root = os.environ.get("EMGFLOW_DATA_ROOT")
        if env_data_root:
            self.data_root = Path(env_data_root).expanduser()
        else:
            self.data_root = Path(self.base_dir) / "data"

        env_logs_dir = os.environ.get("EMGFLOW_LOG_DIR")
        if env_logs_dir:
            self.logs = Path(env_logs_dir).expanduser()
        else:
            self.logs = Path(self.base_dir) / "logs"

        self.exports = self.data_root / "exports"

    def ensure(self) -> None:
        """Create directories if they do not yet exist."""
        for path in (self.data_root, self.exports, self.logs):
            path.mkdir(parents=True, exist_ok=True)
