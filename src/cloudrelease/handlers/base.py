"""
cloudrelease.handlers.base - Abstract Base Handler
====================================================

Every hook handler shares one lifecycle, implemented here as a template
method so subclasses only write the hook-specific work:

    ┌──────────────────────────────────────────────────────────┐
    │  BaseHandler.handle(*args)            ← Public API        │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ 1. response = _new_response()      ← Override this  │  │
    │  │ 2. _execute(response, *args)       ← Override this  │  │
    │  │ 3. map the outcome:                                 │  │
    │  │      returned normally   → Ok(response)             │  │
    │  │      OperatorError       → SoftFailure(message)     │  │
    │  │      anything else       → HardFailure(error)       │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Diagnostics:
    Progress lines and soft-failure messages go to the diagnostic stream
    (stderr unless one is injected), which the orchestrator shows to the
    operator verbatim. Structured logs go through structlog as usual.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional, TextIO

import structlog
from pydantic import BaseModel

from cloudrelease.core.config import CloudReleaseConfig
from cloudrelease.core.deadline import Deadline
from cloudrelease.core.exceptions import InfrastructureError, OperatorError
from cloudrelease.core.results import HandlerResult, HardFailure, Ok, SoftFailure
from cloudrelease.credentials.context import RequestContext
from cloudrelease.integrations.aws.base import AWSClientFactory


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


class BaseHandler(ABC):
    """Abstract base class for the three hook handlers.

    What BaseHandler Handles:
        - Mapping exceptions onto Ok / SoftFailure / HardFailure
        - Writing diagnostics and progress lines
        - Building the per-request RequestContext (with its deadline)

    What Subclasses Must Implement:
        - hook: Name used in logs (e.g., "configure_release")
        - _new_response(): An empty response model
        - _execute(response, *args): The hook's work

    Attributes:
        _config: Plugin configuration.
        _clients: Client factory handed to every RequestContext.
        _diagnostics: Stream operator-facing text is written to.
        _deadline_factory: Creates the Deadline for each request.
    """

    hook: str = "base"

    def __init__(
        self,
        config: CloudReleaseConfig,
        clients: AWSClientFactory,
        diagnostics: Optional[TextIO] = None,
        deadline_factory: Optional[Callable[[], Deadline]] = None,
    ) -> None:
        self._config = config
        self._clients = clients
        self._diagnostics = diagnostics
        self._deadline_factory = deadline_factory or (
            lambda: Deadline(config.request_timeout_seconds)
        )
        self._logger = logger.bind(hook=self.hook)

    # =========================================================================
    # Template Method
    # =========================================================================
    def handle(self, *args: Any) -> HandlerResult:
        """Run the hook and classify the outcome.

        Subclasses should NOT override this method; override ``_execute``.
        """
        self._logger.info("hook_starting")
        response = self._new_response()
        try:
            self._execute(response, *args)
        except OperatorError as e:
            self._write(e.message)
            self._logger.info("hook_soft_failure", error_code=e.error_code, error=e.message)
            return SoftFailure(message=e.message, response=response, error=e)
        except InfrastructureError as e:
            self._logger.error(
                "hook_hard_failure",
                error_code=e.error_code,
                error=e.message,
                retryable=e.retryable,
            )
            return HardFailure(error=e)
        except Exception as e:
            self._logger.exception("hook_unexpected_error", error=str(e))
            return HardFailure(error=e)

        self._logger.info("hook_completed")
        return Ok(response=response)

    @abstractmethod
    def _new_response(self) -> BaseModel:
        ...

    @abstractmethod
    def _execute(self, response: Any, *args: Any) -> None:
        """Do the hook's work, populating ``response`` in place.

        Raise an OperatorError for anything the operator must fix; any other
        exception is reported as an infrastructure failure.
        """
        ...

    # =========================================================================
    # Helpers
    # =========================================================================
    def _context(self, request_config: Mapping[str, Any], env: Mapping[str, str]) -> RequestContext:
        return RequestContext.from_request(
            self._config,
            self._clients,
            request_config,
            env,
            deadline=self._deadline_factory(),
        )

    def _write(self, text: str) -> None:
        stream = self._diagnostics if self._diagnostics is not None else sys.stderr
        stream.write(text if text.endswith("\n") else text + "\n")

    def _progress(self, line: str) -> None:
        self._write(line)
