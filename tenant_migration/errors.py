"""Errors raised while migrating tenant data."""


class MigrationError(Exception):
    """Base class for every failure the migration reports."""


class ConnectivityError(MigrationError):
    """Source or target cluster cannot be reached."""


class SchemaMissingError(MigrationError):
    """A write hit a table the schema bootstrap did not create."""

    def __init__(self, table: str, cause: Exception = None):
        super().__init__(f"Table '{table}' does not exist on target: {cause}")
        self.table = table
        self.cause = cause


class BatchWriteError(MigrationError):
    """A batch of inserts failed. The whole batch counts as failed."""

    def __init__(self, table: str, batch_number: int, size: int, cause: Exception = None):
        super().__init__(f"Batch {batch_number} ({size} rows) into '{table}' failed: {cause}")
        self.table = table
        self.batch_number = batch_number
        self.size = size
        self.cause = cause


class PlanError(MigrationError):
    """The stage plan breaks the producer-before-consumer ordering."""


class PipelineAborted(MigrationError):
    """One or more copy units failed; the run stops at the end of that stage."""

    def __init__(self, stage: str, failed: list):
        names = ', '.join(result.unit for result in failed)
        super().__init__(f"Stage '{stage}' failed: {names}")
        self.stage = stage
        self.failed = failed


class FileTransferError(MigrationError):
    """An rsync or ssh command for the file copy exited non-zero."""

    def __init__(self, command: list, returncode: int, stderr: str = ''):
        super().__init__(f"'{' '.join(command)}' exited with {returncode}: {stderr.strip()}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
