"""
Configuration for the tenant migration.

Everything is read from environment variables, optionally through a .env
file in the working directory:

  READ_*  - source cluster (the shared, multi-tenant one)
  WRITE_* - target cluster (the isolated, per-tenant one)

Example .env:

  READ_DB_HOST=10.0.0.5
  READ_DB_KEYSPACE=oae
  READ_TENANT_ALIAS=cam
  WRITE_DB_HOST=10.0.1.7
  WRITE_DB_KEYSPACE=oae_cam
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

REQUIRED_VARS = [
    'READ_DB_HOST', 'READ_DB_KEYSPACE', 'READ_TENANT_ALIAS',
    'WRITE_DB_HOST', 'WRITE_DB_KEYSPACE'
]


def build_db_config(prefix: str, default_tenant_alias: str = None) -> Dict[str, Any]:
    """
    Build one connection record from the PREFIX_* environment variables.

    The target record falls back to the source tenant alias, since both
    sides normally hold the same tenant under the same alias.
    """
    return {
        'host': os.getenv(f'{prefix}_DB_HOST'),
        'port': int(os.getenv(f'{prefix}_DB_PORT', 9042)),
        'keyspace': os.getenv(f'{prefix}_DB_KEYSPACE'),
        'tenant_alias': os.getenv(f'{prefix}_TENANT_ALIAS', default_tenant_alias),
        # Milliseconds, same unit as the connect/reconnect settings of the cluster
        'timeout': int(os.getenv(f'{prefix}_DB_TIMEOUT', 3000)),
        'read_timeout': int(os.getenv(f'{prefix}_DB_READ_TIMEOUT', 96000)),
        'strategy_class': os.getenv(f'{prefix}_DB_STRATEGY_CLASS', 'SimpleStrategy'),
        'replication': int(os.getenv(f'{prefix}_DB_REPLICATION', 1)),
        'file_host': {
            'host': os.getenv(f'{prefix}_FILE_HOST'),
            'user': os.getenv(f'{prefix}_FILE_USER'),
            'path': os.getenv(f'{prefix}_FILE_PATH', '/shared'),
        },
    }


# Source database configuration (READ)
READ_CONFIG = build_db_config('READ')

# Destination database configuration (WRITE)
WRITE_CONFIG = build_db_config('WRITE', READ_CONFIG['tenant_alias'])

# Number of insert statements per Cassandra batch
BATCH_SIZE = int(os.getenv('BATCH_SIZE', 50))

# Rows per page when reading from the source
FETCH_SIZE = int(os.getenv('FETCH_SIZE', 5000))

# File folders (files/<type>/<tenant>) to rsync after the data copy
FILE_CONTENT_TYPES = [
    t.strip()
    for t in os.getenv('FILE_CONTENT_TYPES', 'c,f,u,g').split(',')
    if t.strip()
]

FILE_STAGING_DIR = Path(os.getenv('FILE_STAGING_DIR', '.migration_files'))

# State file for tracking migration progress
STATE_FILE_DIR = Path(os.getenv('MIGRATION_STATE_DIR', '.migration_state'))


def missing_config_vars(required_vars: List[str] = None) -> List[str]:
    """Return the required environment variables that are not set."""
    if required_vars is None:
        required_vars = REQUIRED_VARS
    return [var for var in required_vars if not os.getenv(var)]


def validate_config(required_vars: List[str] = None):
    """Validate that all required environment variables are set."""
    missing = missing_config_vars(required_vars)

    if missing:
        print(f"❌ Error: Missing required environment variables: {', '.join(missing)}")
        print("Please update your .env file with the required settings.")
        sys.exit(1)
