#!/usr/bin/env python3
"""Write the gateway emulator's OpenAPI schema to docs/api/openapi.json.

Run it after changing emulator routes so the published schema matches what
the integration tests talk to.

Usage:
    python scripts/generate_openapi.py [output-file]
"""

import json
import sys
from collections import defaultdict
from pathlib import Path

from dstore.server.main import create_app


def main() -> int:
    default = Path(__file__).parent.parent / "docs" / "api" / "openapi.json"
    output = Path(sys.argv[1]) if len(sys.argv) > 1 else default

    schema = create_app().openapi()
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w") as f:
        json.dump(schema, f, indent=2)

    routes = defaultdict(list)
    for path, methods in schema.get("paths", {}).items():
        for method, operation in methods.items():
            tag = (operation.get("tags") or ["untagged"])[0]
            routes[tag].append(f"{method.upper()} {path}")

    print(f"Wrote {output}")
    for tag in sorted(routes):
        print(f"  {tag}:")
        for route in routes[tag]:
            print(f"    {route}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
