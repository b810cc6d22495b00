"""Replicate aggregation: run N independent null draws, sequentially or on a pool."""

import functools
import logging
import math
import os
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from typing import Callable, List, Literal, Optional, Sequence

import numpy as np
import pandas as pd

from ..errors import ReplicateGenerationError

logger = logging.getLogger(__name__)

N_WORKERS_ENV = "ECOLUTILS_N_WORKERS"


def default_n_workers(reserved_cores: int = 1) -> int:
    """
    Number of workers to use when none is given.

    Reads ``ECOLUTILS_N_WORKERS`` if set, otherwise all cores minus
    ``reserved_cores`` (at least one).
    """
    if os.environ.get(N_WORKERS_ENV):
        return max(1, int(os.environ[N_WORKERS_ENV]))
    return max(1, (os.cpu_count() or 1) - reserved_cores)


class ReplicatePool:
    """
    Caller-owned worker pool for replicate computations.

    Use as a context manager so the pool is created and destroyed around one
    analysis (or a batch of analyses)::

        with ReplicatePool(n_workers=4) as pool:
            result = classify_niche_breadth(community, n=1000, pool=pool)

    Parameters
    ----------
    n_workers : int, optional
        Pool size. Defaults to :func:`default_n_workers`.
    reserved_cores : int
        Cores left free when ``n_workers`` is not given.
    kind : {'process', 'thread'}
        Executor type.
    """

    def __init__(
        self,
        n_workers: Optional[int] = None,
        reserved_cores: int = 1,
        kind: Literal["process", "thread"] = "process",
    ):
        if kind not in ("process", "thread"):
            raise ValueError(f"Unknown pool kind: {kind}")
        self.n_workers = n_workers if n_workers is not None else default_n_workers(reserved_cores)
        if self.n_workers < 1:
            raise ValueError("n_workers must be >= 1")
        self.kind = kind
        self._executor = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(cancel=exc_type is not None)
        return False

    @property
    def running(self) -> bool:
        return self._executor is not None

    def start(self) -> None:
        if self._executor is not None:
            return
        executor_cls = ProcessPoolExecutor if self.kind == "process" else ThreadPoolExecutor
        self._executor = executor_cls(max_workers=self.n_workers)
        logger.debug(f"Started {self.kind} pool with {self.n_workers} workers")

    def submit(self, fn: Callable, *args, **kwargs):
        if self._executor is None:
            raise RuntimeError("ReplicatePool is not running; use it as a context manager")
        return self._executor.submit(fn, *args, **kwargs)

    def shutdown(self, cancel: bool = False) -> None:
        if self._executor is None:
            return
        self._executor.shutdown(wait=True, cancel_futures=cancel)
        self._executor = None
        logger.debug(f"Shut down {self.kind} pool")


def _seed_sequence(random_state) -> np.random.SeedSequence:
    if isinstance(random_state, np.random.SeedSequence):
        return random_state
    if isinstance(random_state, np.random.Generator):
        return np.random.SeedSequence(int(random_state.integers(2**63)))
    return np.random.SeedSequence(random_state)


def _chunk_bounds(n_items: int, chunk_size: int) -> List[tuple]:
    return [(start, min(start + chunk_size, n_items)) for start in range(0, n_items, chunk_size)]


def _run_chunk(fn: Callable, start: int, seeds: Sequence[np.random.SeedSequence]) -> list:
    results = []
    for offset, seed in enumerate(seeds):
        index = start + offset
        try:
            results.append(fn(np.random.default_rng(seed)))
        except ReplicateGenerationError as e:
            raise ReplicateGenerationError(f"Replicate {index} failed: {e}", replicate=index) from e
        except Exception as e:
            raise ReplicateGenerationError(
                f"Replicate {index} failed: {type(e).__name__}: {e}", replicate=index
            ) from e
    return results


def _run_on_pool(fn: Callable, seeds: list, pool: ReplicatePool, chunk_size: Optional[int]) -> list:
    n_items = len(seeds)
    if chunk_size is None:
        chunk_size = max(1, math.ceil(n_items / (pool.n_workers * 4)))
    bounds = _chunk_bounds(n_items, chunk_size)

    futures = {
        pool.submit(_run_chunk, fn, start, seeds[start:stop]): position
        for position, (start, stop) in enumerate(bounds)
    }
    chunks = [None] * len(bounds)

    try:
        for done, future in enumerate(as_completed(futures), start=1):
            chunks[futures[future]] = future.result()
            logger.debug(f"Collected replicate chunk {done}/{len(bounds)}")
    except ReplicateGenerationError:
        for future in futures:
            future.cancel()
        raise
    except Exception as e:
        for future in futures:
            future.cancel()
        raise ReplicateGenerationError(f"Replicate worker failed: {type(e).__name__}: {e}") from e
    except KeyboardInterrupt:
        for future in futures:
            future.cancel()
        logger.warning("Interrupted; discarding collected replicates")
        raise

    return [result for chunk in chunks for result in chunk]


def run_replicates(
    fn: Callable[[np.random.Generator], object],
    n_replicates: int,
    random_state=None,
    pool: Optional[ReplicatePool] = None,
    n_workers: Optional[int] = None,
    chunk_size: Optional[int] = None,
) -> list:
    """
    Evaluate ``fn(rng)`` for ``n_replicates`` independent random generators.

    Replicate ``i`` always receives the ``i``-th child of
    ``SeedSequence(random_state)``, so a fixed seed gives the same results
    whether the work runs sequentially or on a pool.

    Parameters
    ----------
    fn : callable
        Function of one ``numpy.random.Generator``. Must be picklable for
        process pools.
    n_replicates : int
        Number of replicates.
    random_state : int, SeedSequence or Generator, optional
        Seed for the replicate streams.
    pool : ReplicatePool, optional
        Running pool to use. If None and ``n_workers`` > 1, a pool is created
        for this call only; otherwise replicates run sequentially.
    n_workers : int, optional
        Size of the per-call pool.
    chunk_size : int, optional
        Replicates per submitted task.

    Returns
    -------
    list
        Results in replicate-index order.

    Raises
    ------
    ReplicateGenerationError
        If any replicate fails; no partial results are returned.
    """
    if n_replicates < 1:
        raise ValueError(f"n_replicates must be >= 1, got {n_replicates}")

    seeds = _seed_sequence(random_state).spawn(n_replicates)

    if pool is None and n_workers is not None and n_workers > 1:
        with ReplicatePool(n_workers=n_workers) as call_pool:
            return _run_on_pool(fn, seeds, call_pool, chunk_size)

    if pool is not None:
        if not pool.running:
            raise RuntimeError("ReplicatePool is not running; use it as a context manager")
        logger.debug(f"Running {n_replicates} replicates on {pool.n_workers} {pool.kind} workers")
        return _run_on_pool(fn, seeds, pool, chunk_size)

    logger.debug(f"Running {n_replicates} replicates sequentially")
    return _run_chunk(fn, 0, seeds)


def _null_replicate(
    data,
    null_generator: Callable,
    statistic: Callable,
    columns: Optional[pd.Index],
    rng: np.random.Generator,
) -> np.ndarray:
    stat = statistic(null_generator(data, rng))
    if isinstance(stat, pd.Series) and columns is not None and not stat.index.equals(columns):
        raise ReplicateGenerationError("Statistic labels do not match the observed columns")
    values = np.asarray(stat, dtype=float).ravel()
    if columns is not None and len(values) != len(columns):
        raise ReplicateGenerationError(
            f"Statistic returned {len(values)} values, expected {len(columns)}"
        )
    return values


def build_null_distribution(
    data,
    n_replicates: int,
    null_generator: Callable,
    statistic: Callable,
    columns: Optional[Sequence] = None,
    random_state=None,
    pool: Optional[ReplicatePool] = None,
    n_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Collect the statistic over ``n_replicates`` null draws.

    Parameters
    ----------
    data : object
        Observed data handed to ``null_generator`` (read-only).
    n_replicates : int
        Number of null draws.
    null_generator : callable
        ``null_generator(data, rng)`` returning one randomized replicate.
    statistic : callable
        Reduces a replicate to a vector (Series or array).
    columns : sequence, optional
        Labels of the statistic vector, normally the index of the observed
        statistic. Every replicate must match them.
    random_state, pool, n_workers
        See :func:`run_replicates`.

    Returns
    -------
    pd.DataFrame
        ``n_replicates`` x columns matrix of null statistics.
    """
    if columns is not None:
        columns = pd.Index(columns)

    fn = functools.partial(_null_replicate, data, null_generator, statistic, columns)
    rows = run_replicates(
        fn, n_replicates, random_state=random_state, pool=pool, n_workers=n_workers
    )

    matrix = np.vstack(rows)
    null = pd.DataFrame(matrix, columns=columns)
    null.index.name = "replicate"

    logger.info(f"Built null distribution: {null.shape[0]} replicates × {null.shape[1]} values")
    return null
