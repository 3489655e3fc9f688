"""Agent modules for page extraction."""
from agents.orchestrator import BatchResult, CooldownScheduler, run_batch, run_batch_async
from agents.parsing import parse_extraction_response

__all__ = ["BatchResult", "CooldownScheduler", "parse_extraction_response", "run_batch", "run_batch_async"]
