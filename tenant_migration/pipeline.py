"""
Stage-by-stage execution of the copy plan.

Stages run strictly one after another; the units inside a stage run
concurrently with asyncio.gather. A stage always settles completely
(every unit has finished, successfully or not) before the failure policy
decides whether the run goes on.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from tenant_migration.config import BATCH_SIZE
from tenant_migration.copy_unit import CopyResult, CopyUnit, UnitState
from tenant_migration.errors import PipelineAborted, PlanError
from tenant_migration.key_registry import MigrationContext
from tenant_migration.tables import STAGES

Stage = Tuple[str, Sequence[CopyUnit]]


def validate_plan(stages: Sequence[Stage]):
    """
    Check that every registry entry is produced by exactly one unit, in a
    stage strictly before any unit that reads it.

    Raises:
        PlanError: The plan would let a unit read an entry that is not ready
    """
    producers: Dict[str, str] = {}
    unit_names = set()

    for stage_name, units in stages:
        produced_here: Dict[str, str] = {}

        for unit in units:
            if unit.name in unit_names:
                raise PlanError(f"Unit '{unit.name}' appears more than once in the plan")
            unit_names.add(unit.name)

            for key in unit.writes:
                owner = producers.get(key) or produced_here.get(key)
                if owner:
                    raise PlanError(f"'{key}' is produced by both '{owner}' and '{unit.name}'")
                produced_here[key] = unit.name

        for unit in units:
            for key in unit.reads:
                if key in produced_here:
                    raise PlanError(
                        f"'{unit.name}' reads '{key}' in stage '{stage_name}', "
                        f"the same stage that produces it ('{produced_here[key]}')"
                    )
                if key not in producers:
                    raise PlanError(f"'{unit.name}' reads '{key}' before any stage produces it")

        producers.update(produced_here)


class FailurePolicy:
    """Decides whether the run continues after a stage with failed units."""

    def should_abort(self, stage_name: str, failed: List[CopyResult]) -> bool:
        return bool(failed)


ABORT_ON_ERROR = FailurePolicy()


@dataclass
class StageReport:
    name: str
    results: List[CopyResult] = field(default_factory=list)
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def failed(self) -> List[CopyResult]:
        return [result for result in self.results if result.state is UnitState.FAILED]


@dataclass
class PipelineReport:
    tenant_alias: str
    stages: List[StageReport] = field(default_factory=list)
    mismatches: List[Tuple[str, int, int]] = field(default_factory=list)

    @property
    def results(self) -> List[CopyResult]:
        return [result for stage in self.stages for result in stage.results]

    @property
    def rows_written(self) -> int:
        return sum(result.rows_written for result in self.results)


async def run_stage(index: int, total: int, stage: Stage, source, target,
                    context: MigrationContext, batch_size: int = BATCH_SIZE) -> StageReport:
    """Run every unit of one stage concurrently and wait for all of them."""
    stage_name, units = stage

    print("\n" + "=" * 70)
    print(f"  [{index}/{total}] Stage '{stage_name}' ({len(units)} table(s))")
    print("=" * 70)

    report = StageReport(stage_name, started_at=time.monotonic())
    report.results = list(await asyncio.gather(
        *(unit.run(source, target, context, batch_size) for unit in units)
    ))
    report.finished_at = time.monotonic()

    written = sum(result.rows_written for result in report.results)
    if report.failed:
        print(f"  ❌ Stage '{stage_name}': {len(report.failed)} of {len(units)} table(s) failed")
    else:
        print(f"  ✓ Stage '{stage_name}' complete: {written} rows written")

    return report


async def run_pipeline(source, target, context: MigrationContext,
                       stages: Sequence[Stage] = None,
                       batch_size: int = BATCH_SIZE,
                       policy: FailurePolicy = ABORT_ON_ERROR,
                       on_result: Optional[Callable[[str, CopyResult], None]] = None) -> PipelineReport:
    """
    Copy one tenant from source to target.

    Args:
        source: Connection to the shared cluster
        target: Connection to the tenant's keyspace
        context: Tenant alias and a fresh key registry
        stages: Stage plan, tables.STAGES by default
        batch_size: Maximum inserts per batch
        policy: Failure policy applied after each stage
        on_result: Called with (stage name, CopyResult) for every unit

    Returns:
        PipelineReport with one StageReport per stage that ran

    Raises:
        PlanError: The stage plan is invalid; nothing was copied
        PipelineAborted: A stage had failed units and the policy stopped the run
    """
    if stages is None:
        stages = STAGES

    validate_plan(stages)

    report = PipelineReport(context.tenant_alias)
    total = len(stages)

    for index, stage in enumerate(stages, 1):
        stage_report = await run_stage(index, total, stage, source, target, context, batch_size)
        report.stages.append(stage_report)

        if on_result is not None:
            for result in stage_report.results:
                on_result(stage_report.name, result)

        failed = stage_report.failed
        if failed and policy.should_abort(stage_report.name, failed):
            raise PipelineAborted(stage_report.name, failed)

    return report


async def verify_copy(target, context: MigrationContext, report: PipelineReport,
                      stages: Sequence[Stage] = None,
                      target_alias: str = None) -> List[Tuple[str, int, int]]:
    """
    Re-run each verified unit's fetch against the target and compare the
    number of rows with what was copied. Mismatches are reported, not raised.

    Rows are copied unchanged, so when target_alias differs from the source
    alias the tables looked up by tenant alias (Tenant, Config, Principals)
    find nothing and show up as mismatches.

    Returns:
        List of (table, rows copied, rows found on target) that differ
    """
    if stages is None:
        stages = STAGES

    print("\n" + "=" * 70)
    print("  Verifying copied data")
    print("=" * 70)

    # Same key sets, but the target may hold the tenant under another alias
    target_context = MigrationContext(target_alias or context.tenant_alias, context.registry)
    copied = {result.unit: result.rows_written for result in report.results}
    mismatches = []

    for _, units in stages:
        for unit in units:
            if not unit.verify or unit.name not in copied:
                continue
            fetched = await unit.fetcher.fetch(target, target_context)
            found = len(fetched.rows)
            if found != copied[unit.name]:
                print(f"  ✗ {unit.table}: Number of rows fetched/inserted don't match: "
                      f"{copied[unit.name]} / {found}")
                mismatches.append((unit.table, copied[unit.name], found))

    if mismatches:
        print(f"  ⚠ {len(mismatches)} table(s) differ between source and target")
    else:
        print("  ✓ Row counts match on every verified table")

    report.mismatches = mismatches
    return mismatches
