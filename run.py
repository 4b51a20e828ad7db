"""Development server for the barbershop backend."""
from __future__ import annotations

import argparse
import os

from barbershop import create_app
from barbershop.extensions import db


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the barbershop API locally.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 5000)))
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create any missing tables before serving",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    flask_app = create_app()

    if args.create_tables:
        with flask_app.app_context():
            db.create_all()

    # show what routes are actually mounted
    print("\n=== URL MAP ===")
    for r in sorted(flask_app.url_map.iter_rules(), key=lambda x: x.rule):
        print(r)
    print("===============\n")

    debug_enabled = os.environ.get("FLASK_DEBUG", "0") in {"1", "true", "True"}
    flask_app.run(host=args.host, port=args.port, debug=debug_enabled)


if __name__ == "__main__":
    main()
