"""Automatic chunking layer for token-limited generation.

This module splits requests for many items into several backend calls that
each fit the output-token budget, then stitches the results back together.

Architecture:
    The chunking layer consists of:
    - definitions.py: Plan, continuation context and result structures
    - estimator.py: Tokens-per-item estimation from shape complexity
    - planners.py: Chunk planning logic (determines chunk sizes)
    - orchestrator.py: Sequential chunk execution, validation and combining
    - telemetry.py: Structured logging and events
"""

from __future__ import annotations

from .definitions import ChunkPlan, ChunkResult, ContinuationContext, summarize_item
from .estimator import estimate_tokens_per_item
from .orchestrator import ChunkOrchestrator
from .planners import ChunkPlanner

__all__ = [
    "ChunkPlan",
    "ChunkResult",
    "ContinuationContext",
    "ChunkPlanner",
    "ChunkOrchestrator",
    "estimate_tokens_per_item",
    "summarize_item",
]
