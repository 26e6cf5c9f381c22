"""Local deterministic agent for CLI backend integration tests."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> int:
    """Print a JSON echo of the prompt file."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--prompt-file", required=True)
    parser.add_argument("--model", default="echo")
    args = parser.parse_args(argv)

    prompt = Path(args.prompt_file).read_text("utf-8")
    lines = [line for line in prompt.splitlines() if line.strip()]
    payload = {
        "backend": "echo_agent",
        "model": args.model,
        "echo": lines[-1].strip() if lines else "",
    }
    sys.stdout.write(json.dumps(payload))
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
