from __future__ import annotations

import logging
from typing import Callable, Optional

from .backends import FileBackend
from .packages import PackageBackend
from .resources import RESOURCE_REGISTRY, Backends, Resource
from .types import Catalog, ReconciliationResult, ResourceDeclaration, ResourceOutcome, Status

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResourceDeclaration], None]


class ConvergenceEngine:
    """Applies a catalog to the live system, one resource at a time."""

    def __init__(
        self,
        files: FileBackend,
        packages: PackageBackend,
        *,
        dry_run: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
        should_continue: Optional[Callable[[], bool]] = None,
    ):
        self.backends = Backends(files=files, packages=packages)
        self.dry_run = dry_run
        self.progress_callback = progress_callback
        self.should_continue = should_continue
        self._cancelled = False

    def cancel(self) -> None:
        """Stop before the next resource; finished resources are kept."""
        self._cancelled = True

    def run(self, catalog: Catalog) -> ReconciliationResult:
        result = ReconciliationResult(dry_run=self.dry_run)
        resources = list(catalog)
        try:
            for index, declaration in enumerate(resources):
                if self._stop_requested():
                    result.not_started = [pending.ref for pending in resources[index:]]
                    logger.warning(
                        "run aborted; %d resource(s) not started", len(result.not_started)
                    )
                    break
                if self.progress_callback:
                    self.progress_callback(declaration)
                outcome = self._apply(declaration)
                logger.debug("resource=%s status=%s", declaration.ref, outcome.status.value)
                result.outcomes.append(outcome)
        finally:
            # A cancel only applies to the run it interrupted.
            self._cancelled = False
        return result

    def _apply(self, declaration: ResourceDeclaration) -> ResourceOutcome:
        try:
            resource: Resource = RESOURCE_REGISTRY[declaration.type](declaration)
            return resource.apply(self.backends, dry_run=self.dry_run)
        except Exception as exc:  # noqa: BLE001
            logger.error("resource=%s failed: %s", declaration.ref, exc, exc_info=True)
            return self._failed(declaration, f"{type(exc).__name__}: {exc}")

    def _stop_requested(self) -> bool:
        if self._cancelled:
            return True
        return self.should_continue is not None and not self.should_continue()

    @staticmethod
    def _failed(declaration: ResourceDeclaration, detail: str) -> ResourceOutcome:
        return ResourceOutcome(
            resource=declaration.title,
            type=declaration.type,
            status=Status.FAILED,
            error=detail,
        )
