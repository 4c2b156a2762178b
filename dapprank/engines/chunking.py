"""Split oversized scripts at a syntax node boundary near the middle."""
import logging

import esprima
from esprima.error_handler import Error as EsprimaError

logger = logging.getLogger(__name__)


def _node_starts(script: str) -> list[int]:
    starts: list[int] = []

    def collect(node, metadata):
        node_range = getattr(node, "range", None)
        if node_range:
            starts.append(node_range[0])

    options = {"range": True, "tolerant": True}
    try:
        esprima.parseModule(script, options, collect)
    except (EsprimaError, RecursionError):
        starts.clear()
        esprima.parseScript(script, options, collect)
    return starts


def split_script(script: str) -> tuple[str, str]:
    """Split ``script`` in two at the AST node start closest to its midpoint.

    Falls back to a plain character split when the script does not parse.
    """
    midpoint = len(script) / 2
    split_index = len(script) // 2
    try:
        starts = [s for s in _node_starts(script) if 0 < s < len(script)]
        if starts:
            split_index = min(starts, key=lambda s: abs(s - midpoint))
    except (EsprimaError, RecursionError) as e:
        logger.warning("AST parsing failed, falling back to character split: %s", e)
    return script[:split_index], script[split_index:]
