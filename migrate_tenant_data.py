#!/usr/bin/env python3
"""
Tenant Data Migration - shared Cassandra cluster to a per-tenant keyspace

Copies every row that belongs to one tenant out of the shared, multi-tenant
keyspace into an isolated keyspace, then rsyncs the tenant's files.

How it works:
  - Tables indexed by tenant (Tenant, Config, Principals) are queried directly
  - Tables keyed by IDs found earlier (roles, content, revisions...) are
    fetched with IN queries on those IDs
  - Tables with no usable index (Folders, Discussions, Messages, Etherpad,
    LibraryIndex) are scanned in full and filtered
  - Tables are copied in stages; a stage starts only when the previous one
    has finished, and the tables inside a stage are copied concurrently

Usage:
  python migrate_tenant_data.py                  # Interactive run
  python migrate_tenant_data.py --tenant cam     # Override READ_TENANT_ALIAS
  python migrate_tenant_data.py --verify         # Compare row counts afterwards
  python migrate_tenant_data.py --status         # Show last run's status
  python migrate_tenant_data.py --external-members
"""

import argparse
import asyncio
import os
import sys

from tenant_migration.config import (
    BATCH_SIZE,
    FETCH_SIZE,
    FILE_CONTENT_TYPES,
    READ_CONFIG,
    REQUIRED_VARS,
    WRITE_CONFIG,
    validate_config,
)
from tenant_migration.connection import open_connection
from tenant_migration.errors import PipelineAborted
from tenant_migration.file_transfer import transfer_files
from tenant_migration.key_registry import MigrationContext
from tenant_migration.maintenance import find_external_members, print_external_members
from tenant_migration.pipeline import run_pipeline, verify_copy
from tenant_migration.schema import make_sure_tables_exist
from tenant_migration.state import (
    finish_run,
    get_state_file_path,
    load_migration_state,
    print_migration_status,
    save_migration_state,
    set_unit_state,
    start_run,
)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Tenant Data Migration Tool - shared Cassandra to per-tenant keyspace",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python migrate_tenant_data.py                         # Normal interactive run
  python migrate_tenant_data.py --status                # Show migration status
  python migrate_tenant_data.py --tenant cam --yes      # Unattended run for 'cam'
  python migrate_tenant_data.py --skip-files --verify   # Data only, then compare counts
  python migrate_tenant_data.py --external-members      # Report members from other tenants
        """
    )

    parser.add_argument(
        '--status',
        action='store_true',
        help='Show migration status from the state file of the tenant'
    )

    parser.add_argument(
        '--tenant',
        type=str,
        default='',
        help='Tenant alias to migrate (defaults to READ_TENANT_ALIAS)'
    )

    parser.add_argument(
        '--yes',
        action='store_true',
        help='Do not ask for confirmation'
    )

    parser.add_argument(
        '--skip-schema',
        action='store_true',
        help='Do not create the target tables before copying'
    )

    parser.add_argument(
        '--skip-files',
        action='store_true',
        help='Copy the data only, do not rsync the tenant files'
    )

    parser.add_argument(
        '--verify',
        action='store_true',
        help='Re-read the target after the copy and compare row counts. Rows keep the '
             'source alias, so with a different WRITE_TENANT_ALIAS the tenant-alias '
             'tables (Tenant, Config, Principals) report mismatches'
    )

    parser.add_argument(
        '--external-members',
        action='store_true',
        help='Only report group members that belong to other tenants'
    )

    parser.add_argument(
        '--batch-size',
        type=int,
        default=BATCH_SIZE,
        help=f'Inserts per batch (default: {BATCH_SIZE})'
    )

    return parser.parse_args()


def resolve_configs(tenant: str):
    """Source and target records, with --tenant applied."""
    source_config = dict(READ_CONFIG)
    target_config = dict(WRITE_CONFIG)
    if tenant:
        source_config['tenant_alias'] = tenant
        target_config['tenant_alias'] = os.getenv('WRITE_TENANT_ALIAS') or tenant
    return source_config, target_config


async def migrate(source, target, source_config, target_config, args, state, state_file):
    """Schema bootstrap, staged copy and optional verification."""
    context = MigrationContext(source_config['tenant_alias'])

    if not args.skip_schema:
        await make_sure_tables_exist(target)
    else:
        print("  ⊗ Skipping schema creation (--skip-schema)")

    def record(stage_name, result):
        set_unit_state(state, stage_name, result)
        save_migration_state(state_file, state)

    report = await run_pipeline(
        source, target, context,
        batch_size=args.batch_size,
        on_result=record
    )

    if args.verify:
        await verify_copy(target, context, report, target_alias=target_config['tenant_alias'])

    return report


async def report_external_members(source, source_config):
    context = MigrationContext(source_config['tenant_alias'])
    by_group = await find_external_members(source, context)
    print_external_members(by_group)


def main():
    """Main function to orchestrate the migration."""
    args = parse_args()

    print("\n🚀 Tenant Data Migration Tool")
    print("="*50)

    source_config, target_config = resolve_configs(args.tenant)

    # Handle --status flag
    if args.status:
        if not source_config['tenant_alias']:
            print("❌ --status requires --tenant or READ_TENANT_ALIAS to identify the state file")
            print("   Example: python migrate_tenant_data.py --status --tenant cam")
            sys.exit(1)
        print_migration_status(get_state_file_path(source_config['tenant_alias']))
        sys.exit(0)

    # Validate configuration
    required = [var for var in REQUIRED_VARS if not (args.tenant and var == 'READ_TENANT_ALIAS')]
    validate_config(required)

    tenant_alias = source_config['tenant_alias']

    print(f"\nConfiguration:")
    print(f"  Source: {source_config['host']}:{source_config['port']}/{source_config['keyspace']}")
    print(f"  Target: {target_config['host']}:{target_config['port']}/{target_config['keyspace']}")
    print(f"  Tenant: {tenant_alias} (on target: {target_config['tenant_alias']})")
    print(f"  Batch Size: {args.batch_size} inserts")
    print(f"  Fetch Size: {FETCH_SIZE} rows per page")
    if args.skip_files:
        print(f"  ⊗ File transfer: disabled (--skip-files)")
    else:
        print(f"  File types: {', '.join(FILE_CONTENT_TYPES)} + assets")

    if not args.external_members and not args.yes:
        confirmation = input("\nProceed with migration? (yes/no): ").strip().lower()
        if confirmation not in ['yes', 'y']:
            print("❌ Migration cancelled by user.")
            sys.exit(0)

    source = open_connection(source_config, create_missing_keyspace=False)
    target = None

    try:
        if args.external_members:
            asyncio.run(report_external_members(source, source_config))
            return

        target = open_connection(target_config)

        state_file = get_state_file_path(tenant_alias)
        state = load_migration_state(state_file)
        if state.get("status") == "running":
            print(f"  ⚠ Previous run did not finish; starting again from the first stage")
        start_run(
            state, tenant_alias,
            f"{source_config['host']}/{source_config['keyspace']}",
            f"{target_config['host']}/{target_config['keyspace']}"
        )
        save_migration_state(state_file, state)
        print(f"  State file: {state_file}")

        try:
            report = asyncio.run(migrate(source, target, source_config, target_config, args, state, state_file))
        except PipelineAborted as e:
            finish_run(state, "failed", str(e))
            save_migration_state(state_file, state)
            for result in e.failed:
                print(f"  ✗ {result.table}: {result.error}")
            raise
        except Exception as e:
            finish_run(state, "failed", str(e))
            save_migration_state(state_file, state)
            raise

        if not args.skip_files:
            transfer_files(source_config, target_config)

        finish_run(state, "completed")
        save_migration_state(state_file, state)

        # Print final summary
        print("\n" + "="*70)
        print("FINAL MIGRATION SUMMARY")
        print("="*70)
        print(f"Tenant: {tenant_alias}")
        print(f"Tables copied: {len(report.results)}")
        print(f"Rows written: {report.rows_written}")
        skipped = [result.table for result in report.results if result.skipped]
        if skipped:
            print(f"⊗ Skipped (no keys): {', '.join(skipped)}")
        if report.mismatches:
            print(f"⚠ Row count mismatches: {', '.join(table for table, _, _ in report.mismatches)}")
        print(f"\nState file: {state_file}")

        print("\n✅ Migration process completed!")
        print(f"\nTo view migration status: python migrate_tenant_data.py --status --tenant {tenant_alias}")
    finally:
        source.close()
        if target is not None:
            target.close()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n❌ Migration interrupted by user.")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Migration failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
