"""Analysis steps, grouped in the order they must run.

Each step is an async ``(report, context)`` callable. Steps read what
earlier steps stored in the report and write their own results through
``Report.set`` so every field is shape checked.
"""
import copy
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ..exceptions import ContenthashError, StoreError
from ..ipfs.contenthash import decode_contenthash
from ..ipfs.walker import detect_mime_type, list_files
from ..models import ScriptAnalysis
from ..report.report import Report
from ..static_analysis.assets import get_favicon, get_webmanifest
from ..static_analysis.html_analyzer import analyze_html
from ..engines.deduplication import deduplicate_distribution_items

if TYPE_CHECKING:
    from .orchestrator import AnalysisContext

logger = logging.getLogger(__name__)

MANIFEST_ASSET = "manifest.json"


@dataclass(frozen=True)
class AnalysisStep:
    name: str
    run: Callable[[Report, "AnalysisContext"], Awaitable[None]]


def _files(report: Report) -> list[dict[str, Any]]:
    return copy.deepcopy(list(report.content["files"]))


# ── Distribution ─────────────────────────────────────────────────────

async def decode_stored_contenthash(report: Report, ctx: "AnalysisContext") -> None:
    metadata = await report.read_metadata()
    report.set("decodedContenthash", decode_contenthash(metadata.get("contenthash", "")))


async def resolve_content(report: Report, ctx: "AnalysisContext") -> None:
    decoded = report.content["decodedContenthash"]
    if decoded["codec"] == "ipfs-ns":
        cid = decoded["value"]
    elif decoded["codec"] == "ipns-ns":
        path = await ctx.kubo.name_resolve(f"/ipns/{decoded['value']}")
        cid = path.removeprefix("/ipfs/").split("/")[0]
    else:
        raise ContenthashError(f"Unsupported contenthash codec: {decoded['codec']}")
    report.set("analyzedCid", cid)


async def detect_root_mime_type(report: Report, ctx: "AnalysisContext") -> None:
    report.set("rootMimeType", await detect_mime_type(ctx.kubo, report.content["analyzedCid"]))


async def walk_files(report: Report, ctx: "AnalysisContext") -> None:
    files = await list_files(ctx.kubo, report.content["analyzedCid"])
    report.set("files", [f.serialize() for f in files])


async def compute_total_size(report: Report, ctx: "AnalysisContext") -> None:
    report.set("totalSize", sum(f["size"] for f in report.content["files"]))


async def analyze_html_files(report: Report, ctx: "AnalysisContext") -> None:
    files = []
    for file in _files(report):
        if file["path"].endswith(".html"):
            logger.info("Analyzing HTML file: %s", file["path"])
            html = await ctx.kubo.cat_text(file["cid"])
            file = {**file, **analyze_html(html)}
        files.append(file)
    report.set("files", files)


async def extract_webmanifest(report: Report, ctx: "AnalysisContext") -> None:
    manifest = await get_webmanifest(ctx.kubo, list(report.content["files"]))
    if manifest.data is None:
        return
    report.put_file(MANIFEST_ASSET, manifest.data)
    for path, data in manifest.icons + manifest.screenshots:
        report.put_file(path, data)
    report.set("webmanifest", MANIFEST_ASSET)


async def extract_favicon(report: Report, ctx: "AnalysisContext") -> None:
    favicon = await get_favicon(ctx.kubo, list(report.content["files"]))
    if favicon.data:
        report.set("favicon", favicon.path)
        report.put_file(favicon.path, favicon.data)


# ── Networking ───────────────────────────────────────────────────────

def apply_script_analysis(file: dict[str, Any], analysis: ScriptAnalysis) -> dict[str, Any]:
    """Fold a script classification into a file entry."""
    if analysis.window_ethereum:
        file["usesWindowEthereum"] = True
    if analysis.networking:
        file["networking"] = [n.serialize() for n in analysis.networking]
    if analysis.fallbacks:
        file["fallbacks"] = [f.serialize() for f in analysis.fallbacks]
    if analysis.dynamic_resource_loading:
        purity = file.setdefault("distributionPurity", {"externalScripts": [], "externalMedia": []})
        for finding in analysis.dynamic_resource_loading:
            key = "externalScripts" if finding.is_script_like else "externalMedia"
            for url in finding.urls or ["<arbitrary>"]:
                purity.setdefault(key, []).append(
                    {"type": finding.type, "url": url, "method": finding.method, "source": "dynamic"}
                )
        for key in ("externalScripts", "externalMedia"):
            purity[key] = deduplicate_distribution_items(purity.get(key, []))
    return file


async def analyze_scripts(report: Report, ctx: "AnalysisContext") -> None:
    files = _files(report)
    failed = list(report.content["failedScriptAnalysis"])
    for file in files:
        try:
            analysis = await ctx.script_analyzer.analyze_file(ctx.kubo, file)
        except StoreError:
            raise
        except Exception as e:
            logger.warning("Script analysis failed for %s: %s", file["path"], e)
            failed.append({"path": file["path"], "error": str(e)})
            continue
        if analysis is not None:
            apply_script_analysis(file, analysis)
    report.set("files", files)
    report.set("failedScriptAnalysis", failed)


# ── Governance ───────────────────────────────────────────────────────

async def analyze_owner(report: Report, ctx: "AnalysisContext") -> None:
    analysis = await ctx.owner_analyzer.analyze(report.name)
    report.set("ownerAnalysis", analysis.serialize())


# ── Cleanup ──────────────────────────────────────────────────────────

def has_signal(file: dict[str, Any]) -> bool:
    metadata = file.get("metadata") or {}
    if file["path"] == "index.html" and (metadata.get("title") or metadata.get("description")):
        return True
    purity = file.get("distributionPurity") or {}
    if purity.get("externalScripts") or purity.get("externalMedia"):
        return True
    return bool(file.get("networking") or file.get("fallbacks") or file.get("libraries"))


async def prune_files(report: Report, ctx: "AnalysisContext") -> None:
    kept = []
    for file in _files(report):
        if not has_signal(file):
            continue
        file.pop("inlineScripts", None)
        kept.append(file)
    logger.debug("Keeping %d of %d files in report", len(kept), len(report.content["files"]))
    report.set("files", kept)


DISTRIBUTION_STEPS = [
    AnalysisStep("decode-contenthash", decode_stored_contenthash),
    AnalysisStep("resolve-content", resolve_content),
    AnalysisStep("detect-root-mime-type", detect_root_mime_type),
    AnalysisStep("walk-files", walk_files),
    AnalysisStep("total-size", compute_total_size),
    AnalysisStep("analyze-html", analyze_html_files),
    AnalysisStep("webmanifest", extract_webmanifest),
    AnalysisStep("favicon", extract_favicon),
]

NETWORKING_STEPS = [AnalysisStep("analyze-scripts", analyze_scripts)]

GOVERNANCE_STEPS = [AnalysisStep("analyze-owner", analyze_owner)]

CLEANUP_STEPS = [AnalysisStep("prune-files", prune_files)]

ALL_STEPS = DISTRIBUTION_STEPS + NETWORKING_STEPS + GOVERNANCE_STEPS + CLEANUP_STEPS
