"""Command line entry point.

    python -m herald serve [--host HOST] [--port PORT]
    python -m herald hash-password [--password PASSWORD]
"""

from __future__ import annotations

import argparse
import getpass
import sys
from typing import Optional
from typing import Sequence


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from herald.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "herald.main:create_app",
        factory=True,
        host=args.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def _hash_password(args: argparse.Namespace) -> int:
    from herald.auth.passwords import hash_password

    password = args.password
    if not password:
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm:  ")
        if password != confirm:
            print("Passwords do not match.", file=sys.stderr)
            return 1
    if not password:
        print("Password must not be empty.", file=sys.stderr)
        return 1

    print(hash_password(password, time_cost=args.time_cost))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="herald", description="Herald content backend")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=None, help="Defaults to $PORT or 3000")
    serve.set_defaults(func=_serve)

    hasher = sub.add_parser("hash-password", help="Print a value for ADMIN_PASSWORD_HASH")
    hasher.add_argument("--password", help="Plain-text password (omit to be prompted)")
    hasher.add_argument("--time-cost", type=int, default=None, help="Argon2 passes (library default when omitted)")
    hasher.set_defaults(func=_hash_password)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
