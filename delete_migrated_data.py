#!/usr/bin/env python3
"""
Tenant Cleanup Script - Drop the migrated keyspace from the target

Purpose:
  Remove what migrate_tenant_data.py wrote to the TARGET keyspace.
  Used for cleanup, testing, or reverting a migration before re-running it.

Safety Features:
  - Multi-step confirmation (must type 'DROP KEYSPACE' or 'TRUNCATE TABLES')
  - Dry-run mode (--dry-run)
  - Optional snapshot before dropping (--backup, runs nodetool snapshot)
  - Refuses to touch the source keyspace
  - Shows exactly what will be removed before executing

Usage:
  # Preview what would be dropped (safe)
  python delete_migrated_data.py --dry-run

  # Drop with a snapshot first (recommended)
  python delete_migrated_data.py --backup

  # Empty specific tables only, keep the keyspace
  python delete_migrated_data.py --tables Content,Revisions
"""

import argparse
import asyncio
import subprocess
import sys
from datetime import datetime
from typing import Dict, List

from tenant_migration.config import READ_CONFIG, WRITE_CONFIG, validate_config
from tenant_migration.connection import open_connection
from tenant_migration.errors import MigrationError
from tenant_migration.schema import list_tables

REQUIRED_VARS = ['READ_DB_HOST', 'READ_DB_KEYSPACE', 'WRITE_DB_HOST', 'WRITE_DB_KEYSPACE']


def is_source_keyspace(source_config: Dict, target_config: Dict) -> bool:
    """True when the 'target' is actually the shared source keyspace."""
    return (
        source_config['host'] == target_config['host']
        and source_config['port'] == target_config['port']
        and source_config['keyspace'] == target_config['keyspace']
    )


def analyze_drop_scope(existing_tables: List[str], requested: List[str]) -> Dict:
    """Work out which tables the cleanup touches."""
    if requested:
        existing = set(existing_tables)
        to_clear = [table for table in requested if table in existing]
        missing = [table for table in requested if table not in existing]
    else:
        to_clear = list(existing_tables)
        missing = []

    return {
        'mode': 'truncate' if requested else 'drop',
        'tables': to_clear,
        'missing': missing,
    }


def show_drop_plan(analysis: Dict):
    """Display what will be removed."""
    print("\n" + "="*70)
    print("DROP PLAN REVIEW")
    print("="*70)
    print(f"\nTarget: {WRITE_CONFIG['host']}:{WRITE_CONFIG['port']}")
    print(f"Keyspace: {WRITE_CONFIG['keyspace']}")

    if analysis['mode'] == 'drop':
        print(f"\nThe keyspace and its {len(analysis['tables'])} table(s) will be DROPPED:\n")
    else:
        print(f"\nThe following {len(analysis['tables'])} table(s) will be TRUNCATED:\n")

    for table in analysis['tables']:
        print(f"  - {table}")

    if analysis['missing']:
        print(f"\nSkipped (not in target): {', '.join(analysis['missing'])}")

    print("="*70)


def get_confirmation(analysis: Dict) -> bool:
    """Multi-step confirmation before dropping."""
    phrase = 'DROP KEYSPACE' if analysis['mode'] == 'drop' else 'TRUNCATE TABLES'

    print("\n" + "!"*70)
    print("WARNING: This will PERMANENTLY remove data from the target cluster!")
    print("!"*70)

    # Show plan
    show_drop_plan(analysis)

    # Step 1: Confirm understanding
    print("\nStep 1/2: Do you understand this will remove this data?")
    response = input("Type 'yes' to continue: ").strip().lower()
    if response != 'yes':
        print("Cancelled.")
        return False

    # Step 2: Final confirmation
    print(f"\nStep 2/2: Type '{phrase}' to confirm:")
    response = input("> ").strip()
    if response != phrase:
        print(f"Cancelled. You must type exactly: {phrase}")
        return False

    return True


def build_snapshot_command(config: Dict, tag: str) -> List[str]:
    return ['nodetool', '-h', config['host'], 'snapshot', '-t', tag, config['keyspace']]


def backup_keyspace(config: Dict) -> str:
    """Take a snapshot of the keyspace before dropping it."""
    tag = f"before_cleanup_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
    print(f"\nCreating snapshot '{tag}' of {config['keyspace']}...", end='', flush=True)

    result = subprocess.run(build_snapshot_command(config, tag), stdout=subprocess.PIPE,
                            stderr=subprocess.PIPE, text=True, timeout=600)
    if result.returncode != 0:
        print(" Failed")
        raise MigrationError(f"nodetool snapshot failed: {result.stderr.strip()[:200]}")

    print(" Done")
    return tag


def drop_data(target, analysis: Dict):
    """Drop the keyspace, or truncate the selected tables."""
    if analysis['mode'] == 'drop':
        print(f"\n  DROP KEYSPACE \"{target.keyspace}\"...", end='', flush=True)
        target.session.execute(f'DROP KEYSPACE IF EXISTS "{target.keyspace}"')
        print(" Done")
        return

    print("\nTruncating tables...")
    failed = []
    for table in analysis['tables']:
        print(f"  TRUNCATE \"{table}\"...", end='', flush=True)
        try:
            target.session.execute(f'TRUNCATE "{table}"')
            print(" Done")
        except Exception as e:
            print(f" Error: {e}")
            failed.append(table)

    print(f"\nCompleted: {len(analysis['tables']) - len(failed)} truncated, {len(failed)} failed")
    if failed:
        print(f"Failed: {', '.join(failed)}")


def main():
    parser = argparse.ArgumentParser(
        description='Drop migrated tenant data from the target cluster',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python delete_migrated_data.py --dry-run              # Preview only
  python delete_migrated_data.py --tables Content       # Truncate specific tables
  python delete_migrated_data.py --backup               # Snapshot, then drop keyspace
        '''
    )

    parser.add_argument('--dry-run', action='store_true',
                        help='Preview what would be dropped (no changes)')
    parser.add_argument('--backup', action='store_true',
                        help='Take a nodetool snapshot before dropping')
    parser.add_argument('--tables', type=str,
                        help='Comma-separated list of tables to truncate instead of dropping the keyspace')
    parser.add_argument('--no-confirm', action='store_true',
                        help='Skip confirmation (DANGEROUS)')

    args = parser.parse_args()

    print("\n" + "="*70)
    print("TENANT CLEANUP SCRIPT")
    print("="*70)
    print(f"Source: {READ_CONFIG['host']}:{READ_CONFIG['port']}/{READ_CONFIG['keyspace']} (never modified)")
    print(f"Target: {WRITE_CONFIG['host']}:{WRITE_CONFIG['port']}/{WRITE_CONFIG['keyspace']} (data will be DROPPED here)")
    print("="*70)

    validate_config(REQUIRED_VARS)

    if is_source_keyspace(READ_CONFIG, WRITE_CONFIG):
        print("❌ Target keyspace is the source keyspace. Refusing to drop shared data.")
        sys.exit(1)

    requested = [t.strip() for t in (args.tables or '').split(',') if t.strip()]

    target = open_connection(WRITE_CONFIG, create_missing_keyspace=False)
    try:
        print("\nAnalyzing...")
        existing_tables = asyncio.run(list_tables(target))
        analysis = analyze_drop_scope(existing_tables, requested)

        if requested and not analysis['tables']:
            print("\nNo tables to truncate.")
            print("Requested tables not found in the target keyspace.")
            return

        # Dry run
        if args.dry_run:
            show_drop_plan(analysis)
            print("\nDRY-RUN: Nothing was dropped.")
            print("Remove --dry-run to execute.")
            return

        # Get confirmation
        if not args.no_confirm:
            if not get_confirmation(analysis):
                return

        # Backup if requested
        if args.backup:
            backup_keyspace(WRITE_CONFIG)

        drop_data(target, analysis)

        print("\nCleanup completed!")

    finally:
        target.close()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nCancelled by user.")
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}")
        sys.exit(1)
