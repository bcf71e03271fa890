#!/usr/bin/env python3
"""
Tenant Schema Script - create the target keyspace and tables

Creates the per-tenant keyspace (if missing) on the target cluster and
every table the data migration writes to. All statements are
CREATE ... IF NOT EXISTS, so the script can be run any number of times.

migrate_tenant_data.py runs the same bootstrap before copying unless
--skip-schema is given; this script is for preparing the target ahead of
time and checking what is already there.

Usage:
  python create_tenant_schema.py            # Create keyspace and tables
  python create_tenant_schema.py --list     # Only list existing tables
"""

import argparse
import asyncio
import sys

from tenant_migration.config import WRITE_CONFIG, validate_config
from tenant_migration.connection import open_connection
from tenant_migration.schema import CREATE_TABLE_STATEMENTS, list_tables, make_sure_tables_exist

REQUIRED_VARS = ['WRITE_DB_HOST', 'WRITE_DB_KEYSPACE']


async def create_schema(target, list_only: bool = False):
    """Create the tables (unless list_only) and print what the keyspace holds."""
    if not list_only:
        await make_sure_tables_exist(target)

    tables = await list_tables(target)
    print(f"\n  Tables in {target.keyspace} ({len(tables)}):")
    for idx, table in enumerate(tables, 1):
        print(f"    {idx}. {table}")

    expected = len(CREATE_TABLE_STATEMENTS)
    if len(tables) < expected:
        print(f"\n  ⚠ Expected at least {expected} tables, found {len(tables)}")
    return tables


def main():
    """Main function to create the target schema."""
    parser = argparse.ArgumentParser(
        description='Create the per-tenant keyspace and tables on the target cluster',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python create_tenant_schema.py            # Create keyspace and tables
  python create_tenant_schema.py --list     # Show existing tables only
        '''
    )
    parser.add_argument('--list', action='store_true',
                        help='Only list the tables in the target keyspace')
    args = parser.parse_args()

    print("\n🚀 Starting Schema Creation...")

    # Validate configuration
    validate_config(REQUIRED_VARS)

    print(f"\nTarget Server: {WRITE_CONFIG['host']}:{WRITE_CONFIG['port']}")
    print(f"Target Keyspace: {WRITE_CONFIG['keyspace']}")
    print(f"Replication: {WRITE_CONFIG['strategy_class']} x{WRITE_CONFIG['replication']}")

    target = open_connection(WRITE_CONFIG, create_missing_keyspace=not args.list)
    try:
        asyncio.run(create_schema(target, list_only=args.list))
    finally:
        target.close()

    print("\n✅ Schema creation completed!")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n❌ Schema creation interrupted by user.")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Unexpected error: {e}")
        sys.exit(1)
