from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from coinboard.main import app

DEFAULT_OUTPUT = REPO_ROOT / "docs" / "openapi.json"


def main(argv: list[str] | None = None) -> Path:
    parser = argparse.ArgumentParser(description="Write the coinboard OpenAPI document.")
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT)
    args = parser.parse_args(argv)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(
        json.dumps(app.openapi(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return args.output


if __name__ == "__main__":
    main()
