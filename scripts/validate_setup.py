#!/usr/bin/env python3
"""Validation script to check the Echo Notes setup on this machine."""

import sys
from pathlib import Path

# Add the parent directory to the path so we can import echo_notes
sys.path.insert(0, str(Path(__file__).parent.parent))

from echo_notes.config import config
from echo_notes.setup_validator import SetupValidator, ValidationStatus

ICONS = {
    ValidationStatus.PASS: "✅",
    ValidationStatus.WARNING: "⚠️ ",
    ValidationStatus.FAIL: "❌",
}


def print_report(title, report):
    print(f"\n{title}")
    for result in report.results:
        print(f"{ICONS[result.status]} {result.name}: {result.message}")
        if result.status is not ValidationStatus.PASS and result.fix_instructions:
            for line in result.fix_instructions.splitlines():
                print(f"   {line}")


def main():
    """Run all validation checks."""
    print("Echo Notes - Setup Validation")
    print("=" * 50)

    validator = SetupValidator(config)
    server_report = validator.run_server_validation()
    print_report("Server", server_report)
    client_report = validator.run_client_validation()
    print_report("Recording", client_report)

    print("\n" + "=" * 50)
    if server_report.setup_complete and client_report.setup_complete:
        print("✅ Setup validation PASSED")
        print("\nNext steps:")
        print("1. Start the server: python -m echo_notes.main")
        print("2. Record a note: python scripts/record_note.py --save")
        return 0

    print("❌ Setup validation FAILED")
    return 1


if __name__ == "__main__":
    sys.exit(main())
