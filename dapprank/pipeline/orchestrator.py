"""Analysis orchestrator using a pipeline-based execution model.

Steps run strictly in order against one report at a time. The context
carries the collaborators every step may need, including the single rate
limiter shared by all classifier calls of the run.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ..cache.cache_manager import CacheManager
from ..config.constants import DappRankConstants
from ..engines.script_analyzer import ScriptAnalyzer, ScriptClassifier
from ..exceptions import AnalysisStepError, DappRankError
from ..governance.owner import OwnerAnalyzer
from ..ipfs.client import KuboClient
from ..llm.rate_limiter import RateLimiter
from ..llm.retry import RetryPolicy
from ..report.report import Report
from ..storage.base import ContentStore
from .steps import ALL_STEPS, DISTRIBUTION_STEPS, GOVERNANCE_STEPS, NETWORKING_STEPS, AnalysisStep

logger = logging.getLogger("dapprank.pipeline")

DRY_RUN_STEPS = {
    "distribution": DISTRIBUTION_STEPS,
    "networking": DISTRIBUTION_STEPS + NETWORKING_STEPS,
    "governance": GOVERNANCE_STEPS,
    "all": ALL_STEPS,
}


@dataclass
class AnalysisContext:
    """Collaborators shared by every step of a run."""
    kubo: KuboClient
    cache: CacheManager
    classifier: ScriptClassifier
    rate_limiter: RateLimiter
    owner_analyzer: OwnerAnalyzer
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    script_analyzer: ScriptAnalyzer = field(init=False)

    def __post_init__(self):
        self.script_analyzer = ScriptAnalyzer(
            classifier=self.classifier,
            cache=self.cache,
            rate_limiter=self.rate_limiter,
            retry_policy=self.retry_policy,
        )


class AnalysisPipeline:
    """Ordered list of analysis steps."""

    def __init__(self, steps: list[AnalysisStep] | None = None) -> None:
        self.steps: list[AnalysisStep] = list(steps if steps is not None else ALL_STEPS)

    async def run(self, report: Report, ctx: AnalysisContext) -> Report:
        for step in self.steps:
            started = time.monotonic()
            try:
                await step.run(report, ctx)
            except Exception as e:
                raise AnalysisStepError(step.name, str(e)) from e
            logger.debug("Step %s finished in %.2fs", step.name, time.monotonic() - started)
        return report

    def list_steps(self) -> list[str]:
        return [s.name for s in self.steps]


class AnalyzeManager:
    """Runs the pipeline over the scanned archive and tracks progress in ``/state.json``."""

    def __init__(self, store: ContentStore, context: AnalysisContext, force: bool = False):
        self.store = store
        self.context = context
        self.force = force
        self.pipeline = AnalysisPipeline()

    async def load_state(self) -> dict[str, Any]:
        if not await self.store.exists(DappRankConstants.STATE_FILE):
            return {}
        return await self.store.read_json(DappRankConstants.STATE_FILE)

    async def save_state(self, state: dict[str, Any]) -> None:
        await self.store.write_json(DappRankConstants.STATE_FILE, state)

    async def list_blocks(self, name: str) -> list[int]:
        entries = await self.store.list_directory(f"{DappRankConstants.ARCHIVE_DIR}/{name}")
        return sorted(int(e["name"]) for e in entries if e["type"] == "directory" and e["name"].isdigit())

    async def latest_blocks(self) -> dict[str, int]:
        """Latest scanned block of every archived name."""
        if not await self.store.exists(DappRankConstants.ARCHIVE_DIR):
            return {}
        latest = {}
        for entry in await self.store.list_directory(DappRankConstants.ARCHIVE_DIR):
            if entry["type"] != "directory":
                continue
            blocks = await self.list_blocks(entry["name"])
            if blocks:
                latest[entry["name"]] = blocks[-1]
        return latest

    async def analyze_domain(self, name: str, block_number: int) -> Report | None:
        """Analyze one name at one block. Returns None if the report already exists."""
        report = Report(self.store, name, block_number)
        if not self.force and await report.exists():
            logger.info("Report already exists for %s at block %d, skipping", name, block_number)
            return None
        logger.info("Analyzing %s at block %d", name, block_number)
        await self.pipeline.run(report, self.context)
        await report.write(force=self.force)
        await self._ensure_name_metadata(name)
        await self.store.flush()
        logger.info("Analysis complete for %s at block %d", name, block_number)
        return report

    async def _ensure_name_metadata(self, name: str) -> None:
        path = f"{DappRankConstants.ARCHIVE_DIR}/{name}/metadata.json"
        if not await self.store.exists(path):
            await self.store.write_json(path, {"category": ""})

    async def _analyze_many(self, targets: list[tuple[str, int]]) -> list[tuple[str, int]]:
        failures = []
        for name, block in targets:
            try:
                await self.analyze_domain(name, block)
            except DappRankError as e:
                logger.error("Error analyzing %s at block %d: %s", name, block, e)
                failures.append((name, block))
        return failures

    async def analyze_forwards(self) -> list[tuple[str, int]]:
        """Analyze names whose latest block is newer than the last forward run."""
        state = await self.load_state()
        scanned_until = state.get("scannedUntil", 0)
        latest_analyzed = state.get("latestAnalyzed", 0)
        targets = sorted(
            ((name, block) for name, block in (await self.latest_blocks()).items()
             if latest_analyzed < block <= scanned_until),
            key=lambda t: (t[1], t[0]),
        )
        logger.info("Analyzing %d names forwards from block %d", len(targets), latest_analyzed)
        failures = await self._analyze_many(targets)
        state["latestAnalyzed"] = scanned_until
        if "oldestAnalyzed" not in state and targets:
            state["oldestAnalyzed"] = targets[0][1]
        await self.save_state(state)
        await self.store.flush()
        return failures

    async def analyze_backwards(self) -> list[tuple[str, int]]:
        """Analyze names whose latest block is older than anything analyzed so far."""
        state = await self.load_state()
        start = state.get("oldestAnalyzed", state.get("scannedUntil", 0) + 1)
        targets = sorted(
            ((name, block) for name, block in (await self.latest_blocks()).items() if block < start),
            key=lambda t: (-t[1], t[0]),
        )
        logger.info("Analyzing %d names backwards from block %d", len(targets), start)
        failures = []
        for name, block in targets:
            failures.extend(await self._analyze_many([(name, block)]))
            state["oldestAnalyzed"] = min(state.get("oldestAnalyzed", start), block)
            await self.save_state(state)
        await self.store.flush()
        return failures

    async def analyze_specific_name(self, name: str) -> Report | None:
        block = await self._latest_block_of(name)
        return await self.analyze_domain(name, block)

    async def dry_run(self, name: str, kind: str = "all") -> dict[str, Any]:
        """Run a subset of the steps on the latest block of ``name`` without writing."""
        if kind not in DRY_RUN_STEPS:
            raise ValueError(f"Unknown dry run type '{kind}', expected one of {', '.join(DRY_RUN_STEPS)}")
        block = await self._latest_block_of(name)
        report = Report(self.store, name, block)
        await AnalysisPipeline(DRY_RUN_STEPS[kind]).run(report, self.context)
        return report.to_dict()

    async def _latest_block_of(self, name: str) -> int:
        if not await self.store.exists(f"{DappRankConstants.ARCHIVE_DIR}/{name}"):
            raise DappRankError(f"ENS name {name} not found in archive folder")
        blocks = await self.list_blocks(name)
        if not blocks:
            raise DappRankError(f"No block data found for {name}")
        return blocks[-1]
