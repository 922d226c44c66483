"""Emergency reset — wipes every piece of local carrier state.

Use only when the store is damaged beyond automatic recovery. Asks for
two separate confirmations before doing anything.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from admin_carrier.app import Carrier, configure_logging

CONFIRM_PHRASE = "RESET"


def _ask(prompt: str) -> str:
    try:
        return input(prompt).strip()
    except EOFError:
        return ""


def main():
    configure_logging()
    print("This deletes the content snapshot, ALL pending registrations")
    print("(including ones not yet uploaded), settings and the session.")

    first = _ask("Continue? [y/N]: ").lower() == "y"
    if not first:
        print("Cancelled.")
        sys.exit(1)
    second = _ask(f"Type {CONFIRM_PHRASE} to confirm: ") == CONFIRM_PHRASE
    if not second:
        print("Cancelled.")
        sys.exit(1)

    # The script exits on its own; the running carrier must be restarted
    carrier = Carrier(reload=lambda: print("Restart the carrier to continue."))
    carrier.cleanup.emergency_reset(confirmed=first, reconfirmed=second)


if __name__ == "__main__":
    main()
