"""Script analysis engine.

Classifies the networking behavior of one script unit: a ``.js`` file or
the concatenated inline scripts of an HTML file. Results are cached per
prompt generation and content reference, classifier calls pass through the
shared rate limiter, failures follow a :class:`RetryPolicy`, and scripts
too large for the classifier are split through a work queue of chunks.
"""
import asyncio
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Protocol

from ..cache.cache_manager import CacheManager
from ..exceptions import ContextOverflowError, RateLimitError
from ..ipfs.client import KuboClient
from ..llm.rate_limiter import RateLimiter
from ..llm.retry import RetryPolicy
from ..models import ScriptAnalysis
from .chunking import split_script
from .deduplication import deduplicate_by_key, deduplicate_fallbacks
from .url_validator import validate_findings

logger = logging.getLogger(__name__)

MAX_SPLIT_DEPTH = 8


class ScriptClassifier(Protocol):
    prompt_hash: str

    async def classify(self, source: str, label: str) -> dict[str, Any]:
        ...


def join_inline_scripts(scripts: list[str]) -> str:
    return "\n\n".join(f"// HTML Inline script {i}\n{script}" for i, script in enumerate(scripts, 1))


def merge_results(results: list[ScriptAnalysis]) -> ScriptAnalysis:
    """Concatenate chunk findings, OR the window flag, and deduplicate."""
    merged = ScriptAnalysis(window_ethereum=any(r.window_ethereum for r in results))
    for result in results:
        merged.networking.extend(result.networking)
        merged.fallbacks.extend(result.fallbacks)
        merged.dynamic_resource_loading.extend(result.dynamic_resource_loading)
    return deduplicate(merged)


def deduplicate(analysis: ScriptAnalysis) -> ScriptAnalysis:
    analysis.networking = deduplicate_by_key(analysis.networking)
    analysis.fallbacks = deduplicate_fallbacks(analysis.fallbacks)
    analysis.dynamic_resource_loading = deduplicate_by_key(analysis.dynamic_resource_loading)
    return analysis


class ScriptAnalyzer:

    def __init__(
        self,
        classifier: ScriptClassifier,
        cache: CacheManager,
        rate_limiter: RateLimiter,
        retry_policy: RetryPolicy | None = None,
        max_split_depth: int = MAX_SPLIT_DEPTH,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.classifier = classifier
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_split_depth = max_split_depth
        self._sleep = sleep

    @property
    def prompt_hash(self) -> str:
        return self.classifier.prompt_hash

    async def analyze_file(self, kubo: KuboClient, entry: dict[str, Any]) -> ScriptAnalysis | None:
        """Analyze the script unit of a file entry, or return None if it has none."""
        inline = entry.get("inlineScripts") or []
        if inline:
            source = join_inline_scripts(inline)
            return await self.analyze_source(source, f"{entry['path']}#inline-scripts", entry["cid"])
        if entry["path"].endswith(".js"):
            source = await kubo.cat_text(entry["cid"])
            return await self.analyze_source(source, entry["path"], entry["cid"])
        return None

    async def analyze_source(self, source: str, label: str, content_ref: str) -> ScriptAnalysis:
        cached = self.cache.get(self.prompt_hash, content_ref)
        if cached is not None:
            logger.debug("Using cached analysis for %s", label)
            return ScriptAnalysis.from_dict(cached)

        started = time.monotonic()
        logger.info("Running AI analysis for %s", label)
        analysis = merge_results(await self._classify_chunks(source, label))

        analysis.networking, dropped_networking = validate_findings(analysis.networking, source, label)
        analysis.dynamic_resource_loading, dropped_dynamic = validate_findings(
            analysis.dynamic_resource_loading, source, label
        )
        analysis.invalid_dynamic_urls = dropped_networking + dropped_dynamic
        analysis = deduplicate(analysis)

        self.cache.set(self.prompt_hash, content_ref, analysis.serialize())
        logger.debug(
            "Analyzed %s in %.1fs: window.ethereum=%s networking=%d fallbacks=%d dynamic=%d",
            label, time.monotonic() - started, analysis.window_ethereum, len(analysis.networking),
            len(analysis.fallbacks), len(analysis.dynamic_resource_loading),
        )
        return analysis

    async def _classify_chunks(self, source: str, label: str) -> list[ScriptAnalysis]:
        queue: deque[tuple[str, int]] = deque([(source, 0)])
        results: list[ScriptAnalysis] = []
        while queue:
            text, depth = queue.popleft()
            try:
                raw = await self._classify_with_retry(text, label)
            except ContextOverflowError:
                if depth >= self.max_split_depth or len(text) < 2:
                    raise
                first, second = split_script(text)
                logger.warning("Token limit exceeded for %s, splitting into chunks (depth %d)", label, depth + 1)
                queue.appendleft((second, depth + 1))
                queue.appendleft((first, depth + 1))
                continue
            results.append(ScriptAnalysis.from_dict(raw))
        return results

    async def _classify_with_retry(self, text: str, label: str) -> dict[str, Any]:
        state = self.retry_policy.start()
        while True:
            await self.rate_limiter.wait_for_slot()
            try:
                return await self.classifier.classify(text, label)
            except ContextOverflowError:
                raise
            except Exception as e:
                if isinstance(e, RateLimitError):
                    self.rate_limiter.on_rate_limit_error()
                delay = state.next_delay(e)
                if delay is None:
                    logger.error("Failed to analyze %s after %d attempt(s): %s", label, state.attempts, e)
                    raise
                logger.warning("Error analyzing %s (attempt %d), retrying in %.0fs: %s", label, state.attempts - 1, delay, e)
                await self._sleep(delay)
