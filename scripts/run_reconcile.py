#!/usr/bin/env python3
"""
Drift reconciliation - keeps the vector index consistent with the dream store.
Runs once, or every --interval seconds until interrupted.
"""

import argparse
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dreamweaver.core.config import VECTOR_PROVIDER, get_correction_mode
from dreamweaver.core.corrections import run_drift_audit
from dreamweaver.core.db import init_db
from dreamweaver.core.vectorization import DreamVectorizationService
from dreamweaver.vector.errors import VectorServiceError


def drift_audit_task(service: DreamVectorizationService, owner_id=None, mode=None) -> int:
    """Detect drift and run corrections. Returns the number of findings."""
    mode = mode or get_correction_mode()
    print("🔍 Running drift audit...")

    findings, results = run_drift_audit(service, owner_id=owner_id, mode=mode)

    if not findings:
        print("✅ No drift detected")
        return 0

    print(f"⚠️  Found {len(findings)} drift issues")

    if mode == "off":
        print("📊 Correction mode=off, logging only")
    elif mode == "propose":
        print("📝 Correction mode=propose, plans logged")
    else:
        applied = sum(1 for r in results if r.action_taken)
        failed = sum(1 for r in results if not r.success)
        print(f"🔧 Correction mode=apply, {applied} applied, {failed} failed")

    print("✓ Drift audit completed")
    return len(findings)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Reconcile the dream vector index with the dream store")
    parser.add_argument("--interval", type=float, default=0, help="Repeat every N seconds (0 runs once)")
    parser.add_argument("--owner", help="Only audit this user's dreams")
    parser.add_argument("--mode", choices=["off", "propose", "apply"], help="Override CORRECTION_MODE")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the reconcile script."""
    args = parse_args(argv)

    if VECTOR_PROVIDER != "pinecone":
        print(f"WARNING: VECTOR_PROVIDER={VECTOR_PROVIDER} keeps the index inside this process; "
              "corrections here do not reach a running API server")

    init_db()
    service = DreamVectorizationService.from_config()

    try:
        while True:
            try:
                drift_audit_task(service, owner_id=args.owner, mode=args.mode)
            except VectorServiceError as e:
                print(f"💥 Drift audit failed: {e}")
                if args.interval <= 0:
                    sys.exit(1)

            if args.interval <= 0:
                break
            time.sleep(args.interval)
    except KeyboardInterrupt:
        print("\n👋 Shutting down gracefully...")


if __name__ == "__main__":
    main()
