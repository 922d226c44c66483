"""Command-line sync — download content and/or upload registrations."""

import getpass
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from admin_carrier.app import Carrier, configure_logging
from admin_carrier.errors import AuthError, NetworkError


def main():
    if len(sys.argv) < 2 or sys.argv[1] not in ("download", "upload", "status"):
        print("Usage: python sync_now.py download|upload|status")
        sys.exit(1)

    configure_logging()
    carrier = Carrier()
    carrier.start()
    try:
        action = sys.argv[1]
        if action != "status" and not carrier.sessions.is_logged_in():
            username = input("Username: ").strip()
            password = getpass.getpass("Password: ")
            try:
                carrier.sessions.login(username, password)
            except (AuthError, NetworkError) as e:
                print(f"Login failed: {e}")
                sys.exit(1)

        if action == "download":
            result = carrier.sync.download()
        elif action == "upload":
            result = carrier.sync.upload()
        else:
            result = carrier.sync.get_sync_status()

        for key, value in result.items():
            print(f"  {key}: {value}")
        if result.get("status") in ("error", "not_logged_in"):
            sys.exit(1)
    finally:
        carrier.shutdown()


if __name__ == "__main__":
    main()
