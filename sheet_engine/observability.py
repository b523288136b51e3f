"""
LangSmith tracing for the analysis pipeline

Every helper is a no-op unless LANGCHAIN_API_KEY is set, so the engine
runs offline without a tracing backend.
"""
import os
import logging
from datetime import datetime
from typing import Dict, Any, Optional
from functools import wraps
import traceback

from langsmith import Client, traceable
from langsmith.run_trees import RunTree

logger = logging.getLogger(__name__)

DEFAULT_PROJECT = "sheet-engine"
DEFAULT_ENDPOINT = "https://api.smith.langchain.com"


class ObservabilityManager:
    """Owns the LangSmith client and the run session of this process"""

    def __init__(self, api_key: Optional[str] = None, project: Optional[str] = None):
        self.client: Optional[Client] = None
        self.project = project or os.getenv("LANGCHAIN_PROJECT", DEFAULT_PROJECT)
        self.session_name = f"{self.project}-{datetime.now().strftime('%Y%m%d-%H%M%S')}"
        self.enabled = self._connect(api_key or os.getenv("LANGCHAIN_API_KEY"))

    def _connect(self, api_key: Optional[str]) -> bool:
        if not api_key:
            logger.debug("LANGCHAIN_API_KEY not set - tracing disabled")
            return False

        endpoint = os.getenv("LANGCHAIN_ENDPOINT", DEFAULT_ENDPOINT)
        try:
            os.environ["LANGCHAIN_TRACING_V2"] = "true"
            os.environ["LANGCHAIN_PROJECT"] = self.project
            os.environ["LANGCHAIN_ENDPOINT"] = endpoint
            self.client = Client(api_url=endpoint, api_key=api_key)
        except Exception as e:
            logger.error(f"Failed to set up LangSmith client: {e}")
            return False

        logger.info(f"LangSmith tracing enabled - project: {self.project}")
        return True

    def _traced(self, func, run_name: str, metadata: Dict[str, Any]):
        """Wrap func in a traceable run that logs failures before re-raising"""
        if not self.enabled:
            return func

        @wraps(func)
        @traceable(name=run_name, metadata=metadata)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{run_name} failed: {e}")
                logger.debug(f"Traceback: {traceback.format_exc()}")
                raise

        return wrapper

    def trace_agent(self, agent_name: str):
        """Decorator tracing one pipeline stage (loader, classifier, ...)"""
        def decorator(func):
            return self._traced(func, agent_name, {"agent_type": agent_name})
        return decorator

    def trace_workflow_step(self, step_name: str, metadata: Optional[Dict[str, Any]] = None):
        """Decorator tracing one step of AnalysisWorkflow"""
        def decorator(func):
            return self._traced(
                func,
                f"workflow_step_{step_name}",
                {"step_type": "workflow_step", "step_name": step_name, **(metadata or {})},
            )
        return decorator

    def log_analysis_metrics(self, source_file: str, metrics: Dict[str, Any]):
        """Attach file-level metrics (timings, counts, confidence) to the session"""
        if not self.enabled:
            return

        try:
            run = RunTree(
                name="analysis_metrics",
                run_type="chain",
                inputs={"source_file": source_file},
                session_name=self.session_name,
                extra={"metadata": {"source_file": source_file, **metrics}},
            )
            run.post()
            run.end(outputs={"metrics": metrics})
            run.patch()
        except Exception as e:
            logger.error(f"Failed to log metrics for '{source_file}': {e}")

    def create_agent_span(self, agent_name: str, inputs: Dict[str, Any]) -> Optional[RunTree]:
        """Open a manual span for a stage whose work is split across helpers"""
        if not self.enabled:
            return None

        try:
            span = RunTree(
                name=agent_name,
                run_type="chain",
                inputs=inputs,
                session_name=self.session_name,
                extra={"agent_type": agent_name, "engine": self.project},
            )
            span.post()
            return span
        except Exception as e:
            logger.error(f"Failed to open span for {agent_name}: {e}")
            return None

    def end_agent_span(self, span: Optional[RunTree], outputs: Dict[str, Any], error: Optional[str] = None):
        if span is None:
            return

        try:
            span.end(outputs=outputs, error=error)
            span.patch()
        except Exception as e:
            logger.error(f"Failed to close span {span.name}: {e}")


observability = ObservabilityManager()


def trace_agent(agent_name: str):
    return observability.trace_agent(agent_name)


def trace_workflow_step(step_name: str, metadata: Optional[Dict[str, Any]] = None):
    return observability.trace_workflow_step(step_name, metadata)
