#!/usr/bin/env python3
"""Decode a lock payload from the command line.

Usage
-----
    python scripts/decode_payload.py 1 0101
    python scripts/decode_payload.py 10 027fffff40000000640508
    python scripts/decode_payload.py --base64 11 Aqq7zN3u/wo=
"""

from __future__ import annotations

import argparse
import base64
import binascii
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from lockhandler.decoder import decode  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Decode a LoRaWAN lock payload.")
    parser.add_argument("port", type=int, help="Application port (1, 10 or 11)")
    parser.add_argument("payload", help="Payload as hex (default) or base64")
    parser.add_argument("--base64", action="store_true", help="Payload is base64 (as in TTN uplink JSON)")
    args = parser.parse_args()

    try:
        raw = base64.b64decode(args.payload, validate=True) if args.base64 else bytes.fromhex(args.payload)
    except (binascii.Error, ValueError) as exc:
        print(f"Invalid payload: {exc}", file=sys.stderr)
        return 2

    result = decode(args.port, raw)
    print(type(result).__name__)
    print(result.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
