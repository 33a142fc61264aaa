#!/usr/bin/env python3
"""
Export or bulk-import the notes document of the configured bucket.

Usage:
    python scripts/manage_notes.py export notes.json
    python scripts/manage_notes.py import notes.json [--merge] [--dry-run]

`import` replaces the whole document unless --merge is given, in which
case the file's notes are applied on top of the existing ones (a blank
note in the file clears that key).

Requires:
    - .env file (or environment) with R2 credentials, as for the server
"""

import asyncio
import json
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from src.config.settings import get_settings
from src.infrastructure.storage.client import StorageConfig, create_storage_client
from src.infrastructure.storage.metadata import MetadataStore, NoteSaveError


def load_notes_file(filepath: str) -> dict[str, str]:
    """
    Read a notes file: a JSON object mapping object key to note.

    Raises ValueError if the file is not such an object.
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError("notes file must contain a JSON object")

    bad = [k for k, v in data.items() if not isinstance(v, str)]
    if bad:
        raise ValueError(f"non-string notes for keys: {', '.join(bad[:5])}")

    return data


def merge_notes(current: dict[str, str], incoming: dict[str, str]) -> dict[str, str]:
    """Apply incoming notes over current ones; blank incoming notes clear keys."""
    merged = dict(current)
    for key, note in incoming.items():
        if note.strip():
            merged[key] = note
        else:
            merged.pop(key, None)
    return merged


def build_metadata_store() -> MetadataStore:
    settings = get_settings()

    missing = settings.validate_required_fields()
    if missing:
        print(f"ERROR: Missing configuration: {', '.join(missing)}")
        sys.exit(1)

    if settings.r2_mock_mode:
        print("WARNING: R2_MOCK_MODE is set; working against an empty in-memory bucket")
        storage = create_storage_client(mock_mode=True)
    else:
        storage = create_storage_client(config=StorageConfig(
            access_key_id=settings.r2_access_key_id,
            secret_access_key=settings.r2_secret_access_key,
            bucket_name=settings.r2_bucket_name,
            endpoint_url=settings.r2_endpoint,
        ))

    return MetadataStore(storage, metadata_key=settings.metadata_key)


async def export_notes(store: MetadataStore, filepath: str) -> int:
    notes = await store.get()

    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(notes, f, indent=2, ensure_ascii=False)
        f.write('\n')

    print(f"Exported {len(notes)} notes to {filepath}")
    return 0


async def import_notes(
    store: MetadataStore,
    filepath: str,
    merge: bool = False,
    dry_run: bool = False,
) -> int:
    try:
        incoming = load_notes_file(filepath)
    except (OSError, ValueError) as e:
        print(f"ERROR: Cannot read {filepath}: {e}")
        return 1

    if merge:
        try:
            current = await store.read_for_update()
        except NoteSaveError as e:
            print(f"ERROR: Cannot read current notes: {e.__cause__ or e}")
            return 1
        notes = merge_notes(current, incoming)
    else:
        notes = incoming

    if dry_run:
        print("\n=== DRY RUN - No data will be written ===\n")
        for key, note in sorted(notes.items()):
            if note.strip():
                print(f"{key}: {note[:60]}")
        return 0

    try:
        written = await store.replace(notes)
    except NoteSaveError as e:
        print(f"ERROR: {e}: {e.__cause__}")
        return 1
    print(f"Wrote {len(written)} notes to {store.key}")
    return 0


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Export or import bucket notes')
    sub = parser.add_subparsers(dest='command', required=True)

    export_parser = sub.add_parser('export', help='Write the notes document to a file')
    export_parser.add_argument('file', help='Destination JSON file')

    import_parser = sub.add_parser('import', help='Load notes from a JSON file')
    import_parser.add_argument('file', help='Source JSON file')
    import_parser.add_argument('--merge', action='store_true', help='Merge into existing notes')
    import_parser.add_argument('--dry-run', action='store_true', help='Show result, don\'t write')

    args = parser.parse_args()
    store = build_metadata_store()

    if args.command == 'export':
        code = asyncio.run(export_notes(store, args.file))
    else:
        code = asyncio.run(import_notes(store, args.file, merge=args.merge, dry_run=args.dry_run))

    sys.exit(code)


if __name__ == '__main__':
    main()
