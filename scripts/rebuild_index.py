#!/usr/bin/env python3
"""
Index Rebuild Utility
Rebuilds the dream vector index from the relational dream store after lost or corrupted vectors.
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dreamweaver.core.dao import list_dreams, list_owner_ids
from dreamweaver.core.config import PUBLIC_NAMESPACE, VECTOR_PROVIDER, user_namespace, validate_vector_config
from dreamweaver.core.db import init_db
from dreamweaver.core.vectorization import DreamVectorizationService
from dreamweaver.vector.errors import VectorServiceError


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Rebuild the dream vector index")
    parser.add_argument("--owner", help="Only rebuild this user's dreams")
    parser.add_argument("--no-clear", action="store_true", help="Upsert over the existing index instead of clearing it")
    return parser.parse_args(argv)


def main(argv=None):
    """Rebuild vector index from the dream store."""
    args = parse_args(argv)

    issues = validate_vector_config()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}")
        sys.exit(1)

    if VECTOR_PROVIDER != "pinecone":
        print(f"WARNING: VECTOR_PROVIDER={VECTOR_PROVIDER} keeps the index inside this process; "
              "a running API server will not see this rebuild")

    init_db()

    print("Starting vector index rebuild...")

    service = DreamVectorizationService.from_config()
    owners = [args.owner] if args.owner else list_owner_ids()

    if not args.no_clear:
        # Scoped rebuilds keep the shared public namespace; vectorize re-mirrors the owner's public dreams
        namespaces = [user_namespace(owner) for owner in owners]
        if not args.owner:
            namespaces.append(PUBLIC_NAMESPACE)
        try:
            for namespace in namespaces:
                service.vector_store.clear(namespace)
            print(f"✓ Cleared {len(namespaces)} namespaces")
        except VectorServiceError as e:
            print(f"WARNING: Failed to clear existing index: {e}")

    dreams = [dream for owner in owners for dream in list_dreams(owner)]
    print(f"Found {len(dreams)} dreams in dream store")

    if not dreams:
        print("No dreams to rebuild. Exiting.")
        return

    embedded_count = 0
    failed_count = 0

    for dream in dreams:
        result = service.vectorize(dream, dream.owner_id)
        if not result.success:
            print(f"ERROR: Failed to embed dream {dream.id}: {result.error}")
            failed_count += 1
            continue

        embedded_count += 1
        if embedded_count % 10 == 0:
            print(f"  ... embedded {embedded_count}/{len(dreams)} dreams")

    print(f"✓ Successfully rebuilt index with {embedded_count} dreams")
    if failed_count:
        print(f"WARNING: {failed_count} dreams failed to embed")

    # Quick smoke test against the first owner's namespace
    check = service.find_similar(dreams[0].content, dreams[0].owner_id, limit=min(3, embedded_count) or 1)
    if check.success:
        print(f"✓ Verification search returned {len(check.matches)} results")
    else:
        print(f"WARNING: Verification search failed: {check.error}")

    print("Index rebuild complete!")


if __name__ == "__main__":
    main()
