"""Browsable indexes over the latest scored report of every live name."""
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..config.constants import DappRankConstants
from ..exceptions import DappRankError, StoreError
from ..models import RankScore
from ..scoring.rank import CATEGORY_WEIGHTS, calculate_rank_score
from ..storage.base import ContentStore

logger = logging.getLogger(__name__)

CATEGORIES = ("total", "distribution", "networking", "governance", "manifest")
CATEGORY_SHORT_NAMES = {
    "total": "total",
    "distribution": "dist",
    "networking": "net",
    "governance": "gov",
    "manifest": "mani",
}
LIVE_INDEX = f"{DappRankConstants.INDEX_DIR}/live"
SCORE_INDEX = f"{DappRankConstants.INDEX_DIR}/score"


@dataclass
class LiveApp:
    name: str
    block_number: int

    @property
    def report_dir(self) -> str:
        return f"{DappRankConstants.ARCHIVE_DIR}/{self.name}/{self.block_number}"

    @property
    def report_path(self) -> str:
        return f"{self.report_dir}/report.json"


@dataclass
class ScoredApp(LiveApp):
    rank_score: RankScore

    @property
    def scores(self) -> dict[str, int]:
        categories = self.rank_score.categories
        return {
            "total": self.rank_score.overall_score,
            "dist": categories["distribution"].score,
            "net": categories["networking"].score,
            "gov": categories["governance"].score,
            "mani": categories["manifest"].score,
        }

    def score_file(self) -> dict[str, Any]:
        return {
            "rankVersion": self.rank_score.rank_version,
            "overallScore": self.rank_score.overall_score,
            "categories": {name: c.score for name, c in self.rank_score.categories.items()},
        }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class IndexBuilder:

    def __init__(self, store: ContentStore, bucket_size: int = DappRankConstants.BUCKET_SIZE):
        self.store = store
        self.bucket_size = bucket_size

    async def initialize(self) -> None:
        await self.store.ensure_directory(LIVE_INDEX)
        await self.store.ensure_directory(SCORE_INDEX)

    async def get_all_live_apps(self) -> list[LiveApp]:
        """Latest block of every archived name that still has content."""
        archive = DappRankConstants.ARCHIVE_DIR
        if not await self.store.exists(archive):
            return []
        apps = []
        for folder in await self.store.list_directory(archive):
            if folder["type"] != "directory":
                continue
            name = folder["name"]
            try:
                blocks = [
                    int(e["name"]) for e in await self.store.list_directory(f"{archive}/{name}")
                    if e["type"] == "directory" and e["name"].isdigit()
                ]
            except StoreError as e:
                logger.warning("Could not process domain %s: %s", name, e)
                continue
            if not blocks:
                continue
            app = LiveApp(name, max(blocks))
            if not await self.store.exists(app.report_path):
                continue
            try:
                metadata = await self.store.read_json(f"{app.report_dir}/metadata.json")
            except (StoreError, ValueError):
                continue
            contenthash = metadata.get("contenthash")
            if not contenthash or contenthash == "0x":
                logger.debug("Skipping %s - empty contenthash", name)
                continue
            apps.append(app)
        return sorted(apps, key=lambda a: a.name)

    async def score_apps(self, apps: list[LiveApp]) -> list[ScoredApp]:
        logger.info("Calculating rank scores for %d apps...", len(apps))
        scored = []
        for app in apps:
            try:
                report = await self.store.read_json(app.report_path)
                rank_score = await calculate_rank_score(report, self.store, app.report_dir)
            except (DappRankError, ValueError) as e:
                logger.warning("Skipping %s: %s", app.name, e)
                continue
            scored.append(ScoredApp(app.name, app.block_number, rank_score))
        logger.info("Successfully scored %d apps", len(scored))
        return scored

    async def clean_index(self, index_path: str) -> None:
        """Remove everything under ``index_path`` except its stats.json."""
        if not await self.store.exists(index_path):
            return
        for entry in await self.store.list_directory(index_path):
            if entry["name"] == "stats.json":
                continue
            await self.store.remove_file(f"{index_path}/{entry['name']}", recursive=True)

    async def build_live_index(self, apps: list[ScoredApp]) -> None:
        logger.info("Building live index...")
        await self.clean_index(LIVE_INDEX)
        ordered = sorted(apps, key=lambda a: a.name)
        totals = [a.scores["total"] for a in ordered]
        for app in ordered:
            app_dir = f"{LIVE_INDEX}/{app.name}"
            await self.store.copy_file(app.report_path, f"{app_dir}/report.json")
            await self.store.write_json(f"{app_dir}/score.json", app.score_file())
        await self.store.write_json(f"{LIVE_INDEX}/stats.json", {
            "count": len(ordered),
            "lastUpdated": _now(),
            "scoreStats": {
                "min": min(totals) if totals else 0,
                "max": max(totals) if totals else 0,
                "avg": sum(totals) / len(totals) if totals else 0,
            },
            "maxScores": {"total": 100, **CATEGORY_WEIGHTS},
        })
        await self.store.flush()
        logger.info("Live index created: %d apps", len(ordered))

    async def build_score_index(self, category: str, apps: list[ScoredApp]) -> dict[str, int]:
        category_path = f"{SCORE_INDEX}/{category}"
        key = CATEGORY_SHORT_NAMES[category]
        await self.store.ensure_directory(category_path)
        await self.clean_index(category_path)
        ordered = sorted(apps, key=lambda a: (-a.scores[key], a.name))
        total_ranges = math.ceil(len(ordered) / self.bucket_size)
        for i in range(total_ranges):
            start = i * self.bucket_size + 1
            range_path = f"{category_path}/{start}-{start + self.bucket_size - 1}"
            await self.store.ensure_directory(range_path)
            bucket = ordered[i * self.bucket_size:(i + 1) * self.bucket_size]
            for app in bucket:
                for file_name in ("report.json", "score.json"):
                    await self.store.copy_file(f"{LIVE_INDEX}/{app.name}/{file_name}", f"{range_path}/{app.name}/{file_name}")
            await self.store.write_json(f"{range_path}/stats.json", {
                "count": len(bucket),
                "category": category,
                "lastUpdated": _now(),
            })
        await self.store.write_json(f"{category_path}/stats.json", {
            "count": len(ordered),
            "category": category,
            "lastUpdated": _now(),
        })
        await self.store.flush()
        logger.info("%s: %d ranges created", category, total_ranges)
        return {"totalRanges": total_ranges, "totalApps": len(ordered)}

    async def build_all_indexes(self) -> dict[str, Any]:
        started = time.monotonic()
        await self.initialize()
        live_apps = await self.get_all_live_apps()
        logger.info("Found %d live apps", len(live_apps))
        scored = await self.score_apps(live_apps)
        summary: dict[str, Any] = {"totalApps": len(live_apps), "scoredApps": len(scored), "categories": {}}
        if not scored:
            logger.warning("No apps could be scored. Not creating any indexes.")
        else:
            await self.build_live_index(scored)
            for category in CATEGORIES:
                summary["categories"][category] = await self.build_score_index(category, scored)
        summary["elapsedSeconds"] = round(time.monotonic() - started, 2)
        return summary
