"""Rank scorer.

Maps a report onto a 0-100 censorship-resistance score across four
weighted categories. The result depends only on the report and, for the
manifest category, the stored manifest asset.
"""
import json
import logging
from typing import Any, Mapping

from ..config.constants import DappRankConstants
from ..exceptions import ManifestMissingError, ReportVersionError, StoreError
from ..models import CategoryScore, NetworkingType, OwnerType, RankScore
from ..storage.base import ContentStore

logger = logging.getLogger(__name__)

CATEGORY_WEIGHTS = {
    "distribution": 35,
    "networking": 30,
    "governance": 20,
    "manifest": 15,
}

GOVERNANCE_SCORES = {
    OwnerType.DAO_GOVERNOR.value: 20,
    OwnerType.DAO_MOLOCH_BAAL.value: 20,
    OwnerType.SAFE.value: 16,
    OwnerType.EOA.value: 10,
    OwnerType.CONTRACT_WALLET_SINGLE_OWNER.value: 10,
    OwnerType.EIP7702.value: 10,
    OwnerType.CONTRACT_UNKNOWN.value: 5,
    OwnerType.NO_OWNER_FOUND.value: 0,
    OwnerType.ERROR.value: 0,
}

SCRIPT_PENALTY, SCRIPT_PENALTY_CAP = 5, 30
MEDIA_PENALTY, MEDIA_PENALTY_CAP = 1, 5
AUXILIARY_PENALTY, AUXILIARY_PENALTY_CAP = 5, 20
RPC_PENALTY, RPC_PENALTY_WITH_WINDOW_PROVIDER = 5, 2
BUNDLER_PENALTY = 5


def _files(report: Mapping[str, Any]) -> list[dict[str, Any]]:
    return list(report.get("files") or [])


def score_distribution(report: Mapping[str, Any]) -> int:
    scripts = media = 0
    for file in _files(report):
        purity = file.get("distributionPurity") or {}
        scripts += len(purity.get("externalScripts") or [])
        media += len(purity.get("externalMedia") or [])
    script_penalty = min(scripts * SCRIPT_PENALTY, SCRIPT_PENALTY_CAP)
    media_penalty = min(media * MEDIA_PENALTY, MEDIA_PENALTY_CAP)
    logger.debug(
        "Distribution: %d external scripts (-%d), %d external media (-%d)",
        scripts, script_penalty, media, media_penalty,
    )
    return max(0, CATEGORY_WEIGHTS["distribution"] - script_penalty - media_penalty)


def score_networking(report: Mapping[str, Any]) -> int:
    files = _files(report)
    if not any(file.get("networking") for file in files):
        logger.debug("Networking: static app, full score")
        return CATEGORY_WEIGHTS["networking"]

    counts = {t.value: 0 for t in NetworkingType}
    for file in files:
        for entry in file.get("networking") or []:
            if entry.get("type") in counts:
                counts[entry["type"]] += 1
    has_fallbacks = any(file.get("fallbacks") for file in files)
    has_window_provider = any(file.get("usesWindowEthereum") is True for file in files)
    logger.debug("Networking types: %s, fallbacks=%s, window.ethereum=%s", counts, has_fallbacks, has_window_provider)

    score = CATEGORY_WEIGHTS["networking"]
    score -= min(counts[NetworkingType.AUXILIARY.value] * AUXILIARY_PENALTY, AUXILIARY_PENALTY_CAP)
    if counts[NetworkingType.RPC.value] and not has_fallbacks:
        score -= RPC_PENALTY_WITH_WINDOW_PROVIDER if has_window_provider else RPC_PENALTY
    if counts[NetworkingType.BUNDLER.value] and not has_fallbacks:
        score -= BUNDLER_PENALTY
    return max(0, min(CATEGORY_WEIGHTS["networking"], score))


def score_governance(report: Mapping[str, Any]) -> int:
    owner = report.get("ownerAnalysis") or {}
    score = GOVERNANCE_SCORES.get(owner.get("type") or "", 0)
    logger.debug("Governance: owner type '%s' = %d points", owner.get("type"), score)
    return score


def score_manifest_content(manifest: Mapping[str, Any]) -> int:
    score = 0
    if isinstance(manifest.get("name"), str) and manifest["name"].strip():
        score += 6
    if isinstance(manifest.get("description"), str) and manifest["description"].strip():
        score += 4
    if isinstance(manifest.get("icons"), list) and manifest["icons"]:
        score += 3
    if isinstance(manifest.get("screenshots"), list) and manifest["screenshots"]:
        score += 2
    return score


async def score_manifest(report: Mapping[str, Any], store: ContentStore, report_dir: str) -> int:
    if not report.get("webmanifest"):
        logger.debug("Manifest: no manifest referenced")
        return 0
    manifest_path = f"{report_dir}/assets/{report['webmanifest']}"
    try:
        manifest = json.loads(await store.read_file_string(manifest_path))
    except (StoreError, ValueError) as e:
        raise ManifestMissingError(
            f"Manifest file referenced but not found in assets: {manifest_path}\n"
            "This may indicate a corrupted report. Please re-analyze."
        ) from e
    if not isinstance(manifest, dict):
        return 0
    return score_manifest_content(manifest)


def validate_report_version(report: Mapping[str, Any]) -> None:
    version = report.get("version")
    if not version:
        raise ReportVersionError("Report missing version field")
    if version != DappRankConstants.ANALYSIS_VERSION:
        raise ReportVersionError(
            "Report version mismatch\n"
            f"Found version: {version}, expected: {DappRankConstants.ANALYSIS_VERSION}\n"
            "Please re-analyze with: dapprank analyze <ens-name> --force"
        )


async def calculate_rank_score(report: Mapping[str, Any], store: ContentStore, report_dir: str) -> RankScore:
    """Score a report stored at ``report_dir`` (``/archive/<name>/<block>``)."""
    validate_report_version(report)
    scores = {
        "distribution": score_distribution(report),
        "networking": score_networking(report),
        "governance": score_governance(report),
        "manifest": await score_manifest(report, store, report_dir),
    }
    return RankScore(
        rank_version=DappRankConstants.RANK_VERSION,
        overall_score=sum(scores.values()),
        categories={name: CategoryScore(score, CATEGORY_WEIGHTS[name]) for name, score in scores.items()},
    )
