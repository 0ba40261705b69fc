"""
Repair TR/EN project pairs whose sibling write did not complete.

    python scripts/reconcile_pairs.py
"""

import json
import logging
import sys

from database import db
from projects import reconcile_pairs


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    if db is None:
        print("DATABASE_URL is not set", file=sys.stderr)
        return 1
    summary = reconcile_pairs(db)
    print(json.dumps(summary, indent=2))
    return 1 if summary["unresolved"] else 0


if __name__ == "__main__":
    sys.exit(main())
