"""Generator boundary: outbound calls and payload normalization."""

from functools import lru_cache

from intelligence.adapter import DiagnosisEngineAdapter, RegionRef


@lru_cache
def get_adapter() -> DiagnosisEngineAdapter:
    """Get or create the process-wide generator adapter."""
    return DiagnosisEngineAdapter()


__all__ = ["DiagnosisEngineAdapter", "RegionRef", "get_adapter"]
