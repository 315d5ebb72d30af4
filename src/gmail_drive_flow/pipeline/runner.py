"""Flow orchestrator: authenticate → search → batch pipeline."""

from __future__ import annotations

import logging
from collections.abc import Callable

from gmail_drive_flow.config.settings import GmailDriveFlowSettings
from gmail_drive_flow.core.auth import authenticate, build_drive_service, build_gmail_service
from gmail_drive_flow.core.clock import Clock
from gmail_drive_flow.core.drive_client import DriveStorage
from gmail_drive_flow.core.exceptions import ConfigurationError
from gmail_drive_flow.core.gmail_client import GmailClient
from gmail_drive_flow.core.models import FlowConfig, FlowProgress, RunResult, ScopedError
from gmail_drive_flow.core.query import build_search_query
from gmail_drive_flow.pipeline.batch import BatchPipeline
from gmail_drive_flow.pipeline.context import ExecutionContext

logger = logging.getLogger(__name__)


class FlowRunner:
    """Runs Gmail to Drive flows.

    Stage 1 - Search:  build the Gmail query for the flow and list matching threads
    Stage 2 - Process: walk threads in batches, saving admitted attachments to Drive

    The execution context (rate limiter windows and circuit breakers) lives
    as long as the runner, so consecutive runs share quota accounting.
    """

    def __init__(
        self,
        settings: GmailDriveFlowSettings | None = None,
        on_progress: Callable[[FlowProgress], None] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._settings = settings or GmailDriveFlowSettings()
        self._on_progress = on_progress
        self._clock = clock or Clock()

        # Components initialized lazily
        self._client: GmailClient | None = None
        self._storage: DriveStorage | None = None
        self._context: ExecutionContext | None = None

    @property
    def on_progress(self) -> Callable[[FlowProgress], None] | None:
        return self._on_progress

    @on_progress.setter
    def on_progress(self, callback: Callable[[FlowProgress], None] | None) -> None:
        self._on_progress = callback

    @property
    def context(self) -> ExecutionContext:
        if self._context is None:
            self._context = ExecutionContext.from_settings(self._settings, self._clock)
        return self._context

    def _ensure_initialized(self) -> tuple[GmailClient, DriveStorage]:
        """Authenticate and build the API clients if not already done."""
        if self._client is None or self._storage is None:
            self._settings.ensure_directories()

            creds = authenticate(
                self._settings.credentials_path,
                self._settings.token_path,
            )
            self._client = GmailClient(
                build_gmail_service(creds), page_size=self._settings.threads_page_size
            )
            self._storage = DriveStorage(build_drive_service(creds))

        return self._client, self._storage

    def build_query(self, flow: FlowConfig, user_email: str | None = None) -> str:
        return build_search_query(flow, user_email, window=self._settings.search_window)

    def run(
        self,
        flow: FlowConfig,
        *,
        user_email: str | None = None,
        offset: int = 0,
        limit: int | None = None,
        timeout_ms: int | None = None,
    ) -> RunResult:
        """Search for the flow's threads and save their attachments.

        Args:
            flow: The flow to run.
            user_email: Fallback sender when the flow names none.
            offset: Skip the first N matching threads.
            limit: Cap threads processed (defaults to flow or settings max_threads).
            timeout_ms: Stop starting new threads after this many ms.

        Returns:
            RunResult with counts, saved records and scoped errors.

        Raises:
            ConfigurationError: If the flow is missing its name or folder.
            AuthenticationError: If Google authentication fails.
        """
        _validate_flow(flow)
        client, storage = self._ensure_initialized()
        context = self.context

        deadline_ms = None
        if timeout_ms is not None:
            deadline_ms = context.clock.now_ms() + timeout_ms

        query = self.build_query(flow, user_email)
        if limit is not None:
            max_threads = limit
        else:
            max_threads = flow.max_threads or self._settings.max_threads
        logger.info("Running flow %r with query %r", flow.flow_name, query)

        try:
            threads = context.mail.call(
                lambda: client.search(query, offset, max_threads),
                f"Gmail search for query: {query}",
            )
        except Exception as e:
            logger.error("Search failed for flow %r: %s", flow.flow_name, e)
            return RunResult(errors=[ScopedError("run", 1, f"Search failed: {e}")])

        pipeline = BatchPipeline(context, storage, on_progress=self._on_progress)
        return pipeline.run(threads, flow, deadline_ms=deadline_ms)


def _validate_flow(flow: FlowConfig) -> None:
    if not flow.flow_name.strip():
        raise ConfigurationError("Flow name is required")
    if not flow.drive_folder.strip():
        raise ConfigurationError(f"Flow {flow.flow_name!r} has no Drive folder")
