from __future__ import annotations

import os
from pathlib import Path


def load_dotenv(*paths: str | Path, override: bool = False) -> list[Path]:
    """
    Load local .env files into os.environ, returning the files that were read.

    - Only meant for local runs (keep GITHUB_TOKEN out of version control).
    - Never logs values.
    - Lines are plain KEY=value; `export ` prefixes and matching quotes are stripped.
    - Earlier files win over later ones unless `override` is set.
    """
    loaded: list[Path] = []
    for path in paths or (".env",):
        env_path = Path(path)
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].lstrip()
            key, sep, value = line.partition("=")
            key = key.strip()
            if not sep or not key:
                continue

            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]

            if override or key not in os.environ:
                os.environ[key] = value
        loaded.append(env_path)

    return loaded
