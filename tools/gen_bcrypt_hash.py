import argparse
import getpass
import os
import sys

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from auth import hash_password


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a bcrypt hash for staff entries in .env.")
    parser.add_argument(
        "--password",
        help="Password to hash. If omitted, you will be prompted.",
    )
    parser.add_argument(
        "--env-key",
        help="If provided, prints in ENV format: KEY=value",
    )
    parser.add_argument(
        "--username",
        help="If provided with --env-key (USER1/USER2...), prints: KEY=username:hash",
    )
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if not password:
        raise SystemExit("Empty password is not allowed.")

    hashed = hash_password(password)

    if args.env_key:
        if args.username:
            print(f"{args.env_key}={args.username}:{hashed}")
        else:
            print(f"{args.env_key}={hashed}")
    else:
        print(hashed)


if __name__ == "__main__":
    main()
