"""
Warning registry for deferred collection, aggregation, and output.

Implements a collect-aggregate-flush pattern for warnings generated inside
replication loops. A noiseless design, for example, triggers the same
perfect-fit warning in every one of thousands of trials; instead of emitting
each of them, the registry buffers them and emits aggregated summaries after
the loop completes.

Three verbosity levels control output behavior:

- ``quiet``   : Emit only critical warnings (numerical).
- ``default`` : Emit one aggregated summary per warning category.
- ``verbose`` : Emit every individual warning record.

The ``get_diagnostics()`` method always returns the full record set
regardless of verbosity.
"""

import time
import warnings
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from .warnings_categories import NumericalWarning

_VALID_VERBOSE_LEVELS = frozenset({'quiet', 'default', 'verbose'})

# Categories treated as critical: emitted even in quiet mode.
_CRITICAL_CATEGORIES = frozenset({NumericalWarning})


@dataclass
class WarningRecord:
    """Single warning record captured by the registry."""

    category: type
    message: str
    simulation: Any = None
    iteration: Any = None
    timestamp: float = field(default_factory=time.time)


class WarningRegistry:
    """
    Centralized warning collector for replication loops.

    Buffers warnings during the trial loop and emits aggregated summaries
    (or individual records) when ``flush()`` is called.

    Parameters
    ----------
    verbose : str, default ``'default'``
        Output verbosity level. One of ``'quiet'``, ``'default'``,
        ``'verbose'``. Case-insensitive.

    Raises
    ------
    ValueError
        If *verbose* is not one of the three valid levels.
    """

    def __init__(self, verbose: str = 'default') -> None:
        normalized = verbose.lower() if isinstance(verbose, str) else verbose
        if normalized not in _VALID_VERBOSE_LEVELS:
            raise ValueError(
                f"Invalid verbose level {verbose!r}. "
                f"Must be one of {sorted(_VALID_VERBOSE_LEVELS)}."
            )
        self._verbose: str = normalized
        self._records: list[WarningRecord] = []
        self._flushed: bool = False

    def __len__(self) -> int:
        return len(self._records)

    def collect(
        self,
        category: type,
        message: str,
        simulation: Any = None,
        iteration: Any = None,
    ) -> None:
        """
        Buffer a warning record without emitting it.

        Parameters
        ----------
        category : type
            Warning class.
        message : str
            Human-readable warning text.
        simulation : str or None
            Configuration label, if the loop runs inside a sweep.
        iteration : int or None
            Trial index that raised the warning.
        """
        self._records.append(
            WarningRecord(
                category=category,
                message=message,
                simulation=simulation,
                iteration=iteration,
            )
        )

    def collect_caught(
        self,
        caught: list,
        simulation: Any = None,
        iteration: Any = None,
    ) -> None:
        """Buffer warnings captured by ``warnings.catch_warnings(record=True)``."""
        for w in caught:
            self.collect(w.category, str(w.message), simulation, iteration)

    def flush(self, total_iterations: int | None = None) -> None:
        """
        Aggregate and emit buffered warnings, then mark as flushed.

        Subsequent calls are no-ops. An empty registry produces no output.

        Parameters
        ----------
        total_iterations : int or None
            Total number of trials run. Used in aggregated summary messages
            to report the affected share.
        """
        if self._flushed:
            return
        self._flushed = True

        if not self._records:
            return

        if self._verbose == 'quiet':
            self._flush_quiet(total_iterations)
        elif self._verbose == 'default':
            self._flush_default(total_iterations)
        else:  # verbose
            self._flush_verbose()

    def get_diagnostics(self) -> list[dict]:
        """
        Return structured diagnostic data for all collected warnings.

        Returns
        -------
        list of dict
            Each dict contains:

            - ``category`` : str, warning class name.
            - ``message`` : str, representative message text.
            - ``count`` : int, number of occurrences.
            - ``iterations`` : list of (simulation, iteration) tuples.
        """
        diagnostics = []
        for cat, records in self._aggregate_by_category().items():
            diagnostics.append({
                'category': cat.__name__,
                'message': records[0].message,
                'count': len(records),
                'iterations': self._affected(records),
            })
        return diagnostics

    def _aggregate_by_category(self) -> dict[type, list[WarningRecord]]:
        """Group records by warning category, preserving insertion order."""
        grouped: dict[type, list[WarningRecord]] = defaultdict(list)
        for rec in self._records:
            grouped[rec.category].append(rec)
        return dict(grouped)

    @staticmethod
    def _affected(records: list[WarningRecord]) -> list[tuple]:
        seen = []
        for r in records:
            key = (r.simulation, r.iteration)
            if r.iteration is not None and key not in seen:
                seen.append(key)
        return seen

    def _format_summary(
        self,
        category: type,
        records: list[WarningRecord],
        total_iterations: int | None,
    ) -> str:
        """Build an aggregated summary string for one category."""
        n_affected = len(self._affected(records))

        if total_iterations and n_affected > 0:
            ratio_str = f"{n_affected}/{total_iterations} iterations"
        elif n_affected > 0:
            ratio_str = f"{n_affected} iterations"
        else:
            ratio_str = f"{len(records)} occurrences"

        return f"[{category.__name__}] {records[0].message} ({ratio_str})"

    def _flush_quiet(self, total_iterations: int | None) -> None:
        """Emit only critical-category warnings (aggregated)."""
        for cat, records in self._aggregate_by_category().items():
            if cat in _CRITICAL_CATEGORIES:
                msg = self._format_summary(cat, records, total_iterations)
                warnings.warn(msg, cat, stacklevel=3)

    def _flush_default(self, total_iterations: int | None) -> None:
        """Emit one aggregated summary per category."""
        for cat, records in self._aggregate_by_category().items():
            msg = self._format_summary(cat, records, total_iterations)
            warnings.warn(msg, cat, stacklevel=3)

    def _flush_verbose(self) -> None:
        """Emit every individual warning record."""
        for rec in self._records:
            warnings.warn(rec.message, rec.category, stacklevel=3)
