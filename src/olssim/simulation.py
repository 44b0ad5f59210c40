"""
Monte Carlo simulation drivers.

Implements the replicate-and-aggregate loop: :func:`run_trial` executes one
trial function and stamps its rows with the iteration index,
:func:`replicate` repeats a trial ``m`` times for one configuration, and
:func:`sweep` runs :func:`replicate` once per named configuration and stacks
everything into a single result table.

Execution is sequential. The only state shared across trials is the random
stream, a ``numpy.random.Generator`` passed explicitly (or created from
``seed``) and threaded through every trial.

Failures are never swallowed: the first exception raised by a trial aborts
the whole run. Before it propagates, the exception is annotated with the
configuration label and iteration that triggered it.
"""

import inspect
import logging
import warnings
from collections.abc import Mapping
from itertools import product
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError, InvalidParameterError, OLSSimError
from .results import (
    ARG,
    ITER,
    SIM,
    as_result_frame,
    concat_results,
    empty_results,
    trial_columns,
)
from .trials import TrialFunction
from .validation import validate_replications
from .warning_registry import WarningRegistry

# Configure logging
logger = logging.getLogger('olssim')

_RESERVED_ARGS = frozenset({'iter_id', 'rng'})


def _trial_name(trial_fn) -> str:
    return getattr(trial_fn, '__name__', type(trial_fn).__name__)


def _resolve_rng(rng, seed) -> np.random.Generator:
    if rng is not None and seed is not None:
        raise InvalidParameterError("pass either rng or seed, not both")
    if rng is None:
        return np.random.default_rng(seed)
    if not isinstance(rng, np.random.Generator):
        raise InvalidParameterError(
            f"rng must be a numpy.random.Generator, got {type(rng).__name__}"
        )
    return rng


def _accepts(signature: Optional[inspect.Signature], name: str) -> bool:
    if signature is None:
        return True
    params = signature.parameters.values()
    return name in signature.parameters or any(
        p.kind is inspect.Parameter.VAR_KEYWORD for p in params
    )


def _check_reserved(config: Mapping) -> None:
    reserved = sorted(_RESERVED_ARGS.intersection(config))
    if reserved:
        raise ConfigurationError(
            f"configuration argument(s) {reserved} are reserved for the simulation driver"
        )


def _call_with_config(fn, kwargs: dict, config: Mapping, rng):
    """Call *fn* with *kwargs* (plus ``rng`` when accepted) after checking the binding."""
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        signature = None
    if _accepts(signature, 'rng'):
        kwargs = {**kwargs, 'rng': rng}

    if signature is not None:
        try:
            signature.bind(**kwargs)
        except TypeError as exc:
            raise ConfigurationError(
                f"trial function {_trial_name(fn)} rejected configuration "
                f"{sorted(config)}: {exc}"
            ) from exc
    return fn(**kwargs)


def _annotate(exc: BaseException, simulation: Any, iteration: Any) -> None:
    """Attach the failing configuration and iteration to *exc*."""
    if isinstance(exc, OLSSimError):
        if simulation is not None:
            exc.context['simulation'] = simulation
        exc.context['iteration'] = iteration

    if simulation is not None:
        location = f"simulation {simulation!r}, iteration {iteration}"
    else:
        location = f"iteration {iteration}"
    exc.add_note(f"while running {location}")


def run_trial(
    trial_fn: TrialFunction,
    config: Mapping,
    iter_id: Any,
    rng: Optional[np.random.Generator] = None,
    **extra,
) -> pd.DataFrame:
    """
    Execute one trial and stamp its rows with the iteration identifier.

    Parameters
    ----------
    trial_fn : callable
        Trial function, called as ``trial_fn(**config, **extra,
        iter_id=iter_id, rng=rng)``. ``rng`` is only passed when the function
        accepts it.
    config : mapping
        Configuration keyword arguments.
    iter_id : hashable
        Iteration identifier.
    rng : np.random.Generator, optional
        Random stream handed to the trial.
    **extra
        Additional keyword arguments, typically those returned by the
        trial's ``prepare`` hook.

    Returns
    -------
    pd.DataFrame
        The trial's rows with ``.iter`` set to *iter_id* wherever it is
        missing or null. Non-null ``.iter`` values set by the trial are kept.

    Raises
    ------
    ConfigurationError
        If *config* uses a reserved name (``iter_id``, ``rng``) or does not
        match the trial function's signature.
    """
    _check_reserved(config)
    kwargs = dict(config)
    kwargs.update(extra)
    kwargs['iter_id'] = iter_id

    rows = _call_with_config(trial_fn, kwargs, config, rng)
    frame = as_result_frame(rows, trial_columns(trial_fn))

    if ITER not in frame.columns:
        frame[ITER] = iter_id
    else:
        frame[ITER] = frame[ITER].where(frame[ITER].notna(), iter_id)
    return frame


def _run_block(
    m: int,
    trial_fn: TrialFunction,
    config: Mapping,
    rng: np.random.Generator,
    registry: WarningRegistry,
    simulation: Any = None,
) -> List[pd.DataFrame]:
    """Run ``m`` trials of one configuration, returning their frames in order."""
    label = f" [{simulation}]" if simulation is not None else ''
    logger.info(
        "Running %d replications of %s%s", m, _trial_name(trial_fn), label
    )

    _check_reserved(config)
    extra: Dict[str, Any] = {}
    prepare = getattr(trial_fn, 'prepare', None)
    if m > 0 and callable(prepare):
        try:
            extra = _call_with_config(prepare, dict(config), config, rng) or {}
        except Exception as exc:
            _annotate(exc, simulation, 'prepare')
            logger.error("Preparing %s%s failed: %s", _trial_name(trial_fn), label, exc)
            raise

    frames = []
    for i in range(1, m + 1):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            try:
                frame = run_trial(trial_fn, config, i, rng=rng, **extra)
            except Exception as exc:
                _annotate(exc, simulation, i)
                logger.error(
                    "Trial %s%s failed at iteration %d: %s",
                    _trial_name(trial_fn), label, i, exc,
                )
                raise
        registry.collect_caught(caught, simulation=simulation, iteration=i)
        frames.append(frame)
        logger.debug("Completed iteration %d/%d%s", i, m, label)

    logger.info("Finished %d replications of %s%s", m, _trial_name(trial_fn), label)
    return frames


def replicate(
    m: int,
    trial_fn: TrialFunction,
    *,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    verbose: str = 'default',
    **fixed_args,
) -> pd.DataFrame:
    """
    Run a trial function ``m`` times for one fixed configuration.

    Parameters
    ----------
    m : int
        Number of replications, >= 0.
    trial_fn : callable
        Trial function (see :mod:`olssim.trials`).
    rng : np.random.Generator, optional
        Random stream shared by all trials.
    seed : int, optional
        Seed for a new random stream when *rng* is not given.
    verbose : {'quiet', 'default', 'verbose'}, default 'default'
        How warnings raised by the trials are reported after the loop: only
        numerical ones, one aggregated summary per category, or every
        individual warning.
    **fixed_args
        Configuration passed to every trial, e.g. ``n=100``.

    Returns
    -------
    pd.DataFrame
        Rows of iteration 1 first, then iteration 2, and so on, with an
        ``.iter`` column holding ``1..m``. For ``m == 0`` an empty frame with
        the trial's declared columns plus ``.iter``.

    Raises
    ------
    InvalidParameterError
        If *m* is not a non-negative integer or both *rng* and *seed* are
        given.
    Exception
        Any error raised by a trial, annotated with the iteration index.

    Examples
    --------
    >>> trial = OLSTrial('y ~ x1', beta=[0, 1], sigma=1, empirical=True)
    >>> results = replicate(500, trial, n=100, seed=42)
    >>> results.groupby('term')['estimate'].mean()  # doctest: +SKIP
    """
    m = validate_replications(m)
    rng = _resolve_rng(rng, seed)
    registry = WarningRegistry(verbose)

    frames = _run_block(m, trial_fn, fixed_args, rng, registry)
    registry.flush(total_iterations=m)

    columns = trial_columns(trial_fn)
    return concat_results(frames, columns + [c for c in (ITER,) if c not in columns])


def _normalize_configs(configs) -> list:
    if isinstance(configs, Mapping):
        items = list(configs.items())
    elif isinstance(configs, (list, tuple)):
        items = [(i, c) for i, c in enumerate(configs, start=1)]
    else:
        raise ConfigurationError(
            f"configs must be a mapping of name to arguments or a list of "
            f"argument mappings, got {type(configs).__name__}"
        )
    for name, config in items:
        if not isinstance(config, Mapping):
            raise ConfigurationError(
                f"configuration {name!r} must be a mapping of keyword "
                f"arguments, got {type(config).__name__}"
            )
    return items


def sweep(
    m: int,
    trial_fn: TrialFunction,
    configs: Union[Mapping, Sequence[Mapping]],
    *,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    verbose: str = 'default',
) -> pd.DataFrame:
    """
    Replicate a trial function across a set of configurations.

    Parameters
    ----------
    m : int
        Replications per configuration, >= 0.
    trial_fn : callable
        Trial function (see :mod:`olssim.trials`).
    configs : mapping or sequence of mappings
        Named configurations ``{name: {arg: value, ...}}``, run in insertion
        order. A plain list of argument mappings is labelled ``1..k``.
    rng : np.random.Generator, optional
        Random stream shared by all configurations.
    seed : int, optional
        Seed for a new random stream when *rng* is not given.
    verbose : {'quiet', 'default', 'verbose'}, default 'default'
        Warning reporting level (see :func:`replicate`).

    Returns
    -------
    pd.DataFrame
        The blocks of every configuration concatenated in configuration
        order. Each row carries ``.sim`` (the configuration name) and
        ``.arg`` (a dict snapshot of its arguments) besides ``.iter``.

    Raises
    ------
    ConfigurationError
        If *configs* is malformed or an entry does not fit the trial.
    Exception
        Any error raised by a trial, annotated with the configuration name
        and iteration index.

    Examples
    --------
    >>> trial = OLSTrial('y ~ x1', beta=[0, 1], sigma=1)
    >>> results = sweep(200, trial, config_grid(n=[10, 50, 250]), seed=7)
    >>> summarize(results, truth={'(Intercept)': 0, 'x1': 1})  # doctest: +SKIP
    """
    m = validate_replications(m)
    items = _normalize_configs(configs)
    rng = _resolve_rng(rng, seed)
    registry = WarningRegistry(verbose)

    blocks = []
    for name, config in items:
        frames = _run_block(m, trial_fn, config, rng, registry, simulation=name)
        for frame in frames:
            if len(frame) == 0:
                continue
            frame[SIM] = name
            frame[ARG] = [dict(config) for _ in range(len(frame))]
            blocks.append(frame)
    registry.flush(total_iterations=m * len(items))

    columns = trial_columns(trial_fn)
    columns += [c for c in (ITER, SIM, ARG) if c not in columns]
    if not blocks:
        return empty_results(columns, extra=())
    return pd.concat(blocks, ignore_index=True)


def config_grid(**axes) -> Dict[str, dict]:
    """
    Build a configuration set from the cartesian product of keyword axes.

    Parameters
    ----------
    **axes
        Argument name to a list of values. A scalar, string or mapping (such
        as a coefficient dict) is a single value.

    Returns
    -------
    dict
        ``{label: config}`` in product order, labels like ``'n=10, sigma=1'``.

    Examples
    --------
    >>> config_grid(n=[10, 20], sigma=1.0)
    {'n=10, sigma=1.0': {'n': 10, 'sigma': 1.0}, 'n=20, sigma=1.0': {'n': 20, 'sigma': 1.0}}
    """
    names = list(axes)
    values = []
    for name in names:
        v = axes[name]
        if isinstance(v, (str, bytes, Mapping)) or not hasattr(v, '__iter__'):
            v = [v]
        values.append(list(v))

    grid = {}
    for combo in product(*values):
        config = dict(zip(names, combo))
        label = ', '.join(f'{k}={v}' for k, v in config.items())
        grid[label] = config
    return grid
