"""Analyzers that consume captured events, and a manager that runs them together."""

from __future__ import annotations

import abc
import logging
from collections.abc import Iterator
from typing import Any, Optional

_LOG = logging.getLogger(__name__)


class Analyzer(abc.ABC):
    """A component that receives events from the previous stage."""

    @abc.abstractmethod
    def start(self) -> None:
        """Prepare the analyzer for work."""

    @abc.abstractmethod
    def consume_event(self, event: Any) -> None:
        """Handle one event from the previous component."""

    @abc.abstractmethod
    def shutdown(self) -> None:
        """Release every resource the analyzer holds."""

    @abc.abstractmethod
    def type(self) -> str:
        """Return the name identifying this kind of analyzer."""


class AnalyzerManager:
    """Analyzers keyed by their type; a later analyzer replaces one of the same type."""

    def __init__(self, *analyzers: Analyzer) -> None:
        if not analyzers:
            raise ValueError("no analyzers found, but must provide at least one analyzer")
        self._analyzers: dict[str, Analyzer] = {
            analyzer.type(): analyzer for analyzer in analyzers
        }

    def __repr__(self) -> str:
        return f"AnalyzerManager({list(self._analyzers)!r})"

    def __len__(self) -> int:
        return len(self._analyzers)

    def __iter__(self) -> Iterator[str]:
        return iter(self._analyzers)

    def __contains__(self, analyzer_type: object) -> bool:
        return analyzer_type in self._analyzers

    def __getitem__(self, analyzer_type: str) -> Analyzer:
        return self._analyzers[analyzer_type]

    def get(self, analyzer_type: str) -> Optional[Analyzer]:
        """Return the analyzer of the given type, or None."""
        return self._analyzers.get(analyzer_type)

    def start_all(self, logger: Optional[logging.Logger] = None) -> None:
        """Start every analyzer; the first failure stops the rest and propagates."""
        log = logger or _LOG
        for analyzer in self._analyzers.values():
            log.info("Starting analyzer [%s]", analyzer.type())
            analyzer.start()

    def shutdown_all(self, logger: Optional[logging.Logger] = None) -> None:
        """Shut down every analyzer, logging failures.

        Every analyzer is asked to shut down.  If the last one fails, its
        error is raised; failures of earlier ones are only logged.
        """
        log = logger or _LOG
        last_error: Optional[Exception] = None
        for analyzer in self._analyzers.values():
            log.info("Shutdown analyzer [%s]", analyzer.type())
            try:
                analyzer.shutdown()
            except Exception as exc:  # noqa: BLE001 - every analyzer must be tried
                log.info("Error shutting down analyzer: %s", exc)
                last_error = exc
            else:
                last_error = None
        if last_error is not None:
            raise last_error