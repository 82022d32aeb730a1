"""Validate a Celo transaction request with the chainfmt CLI.

This script demonstrates calling chainfmt from another tool and reading
its JSON output and JSON errors.
"""

import json
import subprocess
import tempfile

REQUEST = {
    "to": "0x" + "b2" * 20,
    "feeCurrency": "0x765de816845861e75a25fca122bb6898b8b1282a",
    "gasPrice": "0x3b9aca00",
    "type": "cip64",
}


def main():
    """Format a request that mixes gasPrice with a fee currency and show the rejection."""
    with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False) as f:
        json.dump(REQUEST, f)

    result = subprocess.run(
        ["chainfmt", "--chain", "celo", "format", "transaction-request", f.name],
        capture_output=True,
        text=True
    )

    if result.returncode != 0:
        error = json.loads(result.stderr)
        print(f"Rejected ({error['error']}): {error['message']}")
        return

    print(json.dumps(json.loads(result.stdout), indent=2))


if __name__ == "__main__":
    main()
