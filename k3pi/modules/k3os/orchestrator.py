"""Parallel execution of install units.

Units run on a fixed-size worker pool. Each unit yields exactly one
``InstallResult``; a failing unit never stops or affects the others, and the
run always waits for every unit before reporting.
"""

import logging
import queue
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .errors import InstallError
from .installer import InstallUnit

logger = logging.getLogger("k3pi.orchestrator")

DEFAULT_WORKERS = 5


@dataclass
class InstallResult:
    """Outcome of one install unit."""
    unit: InstallUnit
    error: Optional[BaseException] = None
    slot: int = 0
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None


class Orchestrator:
    """Runs install units on a bounded pool of workers."""

    def __init__(self, workers: int = DEFAULT_WORKERS):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.workers = workers
        self._slots: "queue.Queue[int]" = queue.Queue()
        for slot in range(1, workers + 1):
            self._slots.put(slot)

    def _run_unit(self, unit: InstallUnit) -> InstallResult:
        slot = self._slots.get()
        start_time = time.monotonic()
        logger.info("Installer %d running %s ...", slot, unit)
        try:
            unit.install()
            error = None
        except Exception as e:
            error = e
        finally:
            self._slots.put(slot)

        duration = time.monotonic() - start_time
        if error is None:
            logger.info("Installer %d running %s ... OK (%.1fs)", slot, unit, duration)
        else:
            logger.error("Installer %d running %s ... Failed: %s", slot, unit, error)
        return InstallResult(unit=unit, error=error, slot=slot, duration=duration)

    def run(self, units: Sequence[InstallUnit]) -> List[InstallResult]:
        """Run every unit and return one result per unit, in completion order."""
        results: List[InstallResult] = []
        if not units:
            return results

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="installer") as executor:
            futures = [executor.submit(self._run_unit, unit) for unit in units]
            for future in as_completed(futures):
                results.append(future.result())

        return results


def check_results(results: Sequence[InstallResult]) -> None:
    """Raise ``InstallError`` listing every failed unit, if any failed."""
    failures = [result for result in results if not result.success]
    if failures:
        logger.error("Install failed with errors on %d of %d node(s)", len(failures), len(results))
        raise InstallError(failures)
    logger.info("Install OK")

