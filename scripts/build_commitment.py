#!/usr/bin/env python3
"""
Commitment Builder
==================

Builds the Merkle commitment a creator needs to open a packet, plus the
leaf and proof path each claimant needs to claim from it.

Input is a JSON list of {"claimant": "...", "secret": "..."} records.
Output is JSON with the commitment root, tree depth and per-claimant
bundles. Secrets are not echoed.

Usage:
    python scripts/build_commitment.py eligible.json
    python scripts/build_commitment.py eligible.json --packet-id 7 --mock-proofs
"""

import argparse
import json
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import TypeAdapter, ValidationError

from shared.zk.commitment import EligibleClaimant, build_commitment


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Build a red packet claim commitment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "input",
        type=Path,
        help="JSON file with eligible claimant records ('-' for stdin)",
    )
    parser.add_argument(
        "--packet-id",
        type=int,
        default=None,
        help="Packet id, to include each claimant's public signals",
    )
    parser.add_argument(
        "--mock-proofs",
        action="store_true",
        help="Attach mock proofs (development only, needs --packet-id)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write JSON here instead of stdout",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    raw = sys.stdin.read() if str(args.input) == "-" else args.input.read_text()
    try:
        entries = TypeAdapter(list[EligibleClaimant]).validate_json(raw)
        commitment = build_commitment(
            entries,
            packet_id=args.packet_id,
            mock_proofs=args.mock_proofs,
        )
    except (ValidationError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    output = json.dumps(commitment.model_dump(exclude_none=True), indent=2)
    if args.output:
        args.output.write_text(output + "\n")
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
