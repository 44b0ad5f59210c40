"""
Linear model specification and data generation.

A :class:`ModelSpec` is an explicit value describing a linear model: the
response name, an ordered tuple of :class:`Term` objects, and an intercept
flag. Design matrices are built from it by the pure function
:func:`design_matrix`; :func:`generate` draws a response from the model with
known coefficients and noise scale.

Terms
-----
- ``x1``        : the column ``x1``.
- ``x1:x2``     : the interaction (element-wise product) of two columns.
- ``I(x1**2)``  : an arithmetic expression evaluated against the data.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError, DimensionMismatchError, InvalidParameterError
from .validation import validate_noise_scale

INTERCEPT = '(Intercept)'
EXPECTED_VALUE = 'ev'
_EXPECTED_VALUE_RE = re.compile(rf'\b{EXPECTED_VALUE}\b')


@dataclass(frozen=True)
class Term:
    """
    One column of the design matrix.

    Parameters
    ----------
    name : str
        Label used for the design column and the ``term`` field of results.
    expr : str, optional
        Expression evaluated against the data. Defaults to *name*.
    """

    name: str
    expr: str = ''

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("term name must be a non-empty string")
        if not self.expr:
            object.__setattr__(self, 'expr', self.name)

    @classmethod
    def parse(cls, text: str) -> Term:
        """Build a term from its formula text (``x1``, ``a:b``, ``I(expr)``)."""
        text = text.strip()
        if not text:
            raise ConfigurationError("empty term in model specification")
        if text.startswith('I(') and text.endswith(')'):
            return cls(name=text, expr=text[2:-1].strip())
        if ':' in text:
            parts = [p.strip() for p in text.split(':')]
            if not all(parts):
                raise ConfigurationError(f"malformed interaction term {text!r}")
            return cls(name=text, expr=' * '.join(parts))
        return cls(name=text)

    @property
    def is_column(self) -> bool:
        """True when the term is a bare column reference."""
        return self.expr.isidentifier()

    def evaluate(self, data: pd.DataFrame) -> pd.Series:
        """Evaluate the term against *data* as a float Series."""
        if self.expr in data.columns:
            return data[self.expr].astype(float)
        if self.is_column:
            raise ConfigurationError(
                f"term {self.name!r} references column {self.expr!r} "
                f"which is not in the data (columns: {list(data.columns)})"
            )
        try:
            value = data.eval(self.expr, engine='python')
        except (NameError, SyntaxError, KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"cannot evaluate term {self.name!r}: {exc}"
            ) from exc
        if np.ndim(value) == 0:
            value = pd.Series(value, index=data.index)
        return pd.Series(value, index=data.index, dtype=float)


def _split_top_level(rhs: str) -> list:
    """Split a formula right-hand side on top-level '+' and '-' signs."""
    tokens = []
    depth = 0
    sign = '+'
    current = []
    for ch in rhs:
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth < 0:
                raise ConfigurationError(f"unbalanced parentheses in {rhs!r}")
        if depth == 0 and ch in '+-':
            text = ''.join(current).strip()
            if text:
                tokens.append((sign, text))
            elif ch == '-' and sign == '-':
                raise ConfigurationError(f"malformed formula right-hand side {rhs!r}")
            sign = ch
            current = []
            continue
        current.append(ch)
    if depth != 0:
        raise ConfigurationError(f"unbalanced parentheses in {rhs!r}")
    text = ''.join(current).strip()
    if text:
        tokens.append((sign, text))
    return tokens


@dataclass(frozen=True)
class ModelSpec:
    """
    Linear model specification.

    Parameters
    ----------
    response : str
        Name of the response column.
    terms : sequence of str or Term
        Ordered covariate terms. Strings are parsed with :meth:`Term.parse`.
        No term may be named or reference ``ev``.
    intercept : bool, default True
        Whether the design matrix starts with an ``(Intercept)`` column.

    Examples
    --------
    >>> spec = ModelSpec('y', ['x1', 'x2'])
    >>> spec.columns
    ['(Intercept)', 'x1', 'x2']
    >>> ModelSpec.from_formula('y ~ x1 + I(x1**2) - 1').formula
    'y ~ x1 + I(x1**2) - 1'
    """

    response: str
    terms: Tuple[Term, ...] = field(default_factory=tuple)
    intercept: bool = True

    def __post_init__(self):
        if not self.response:
            raise ConfigurationError("response name must be a non-empty string")
        if self.response in (INTERCEPT, EXPECTED_VALUE):
            raise ConfigurationError(
                f"response cannot be named {self.response!r}"
            )
        terms = tuple(
            t if isinstance(t, Term) else Term.parse(str(t))
            for t in self.terms
        )
        object.__setattr__(self, 'terms', terms)

        names = [t.name for t in terms]
        duplicated = sorted({n for n in names if names.count(n) > 1})
        if duplicated:
            raise ConfigurationError(f"duplicated model terms: {duplicated}")
        if any(_EXPECTED_VALUE_RE.search(t.name) or _EXPECTED_VALUE_RE.search(t.expr)
               for t in terms):
            raise ConfigurationError(
                f"model terms cannot use {EXPECTED_VALUE!r}, the column generate() "
                f"writes the noiseless response to"
            )
        if not terms and not self.intercept:
            raise ConfigurationError("model has neither an intercept nor any terms")

    @classmethod
    def from_formula(cls, formula: str) -> ModelSpec:
        """
        Parse an R-style formula such as ``'y ~ x1 + x2'``.

        ``- 1`` or ``+ 0`` drops the intercept; ``+ 1`` keeps it. Other
        term removals are not supported.
        """
        if formula.count('~') != 1:
            raise ConfigurationError(
                f"formula must contain exactly one '~', got {formula!r}"
            )
        lhs, rhs = (part.strip() for part in formula.split('~'))
        if not lhs:
            raise ConfigurationError(f"formula has no response: {formula!r}")

        intercept = True
        terms = []
        for sign, text in _split_top_level(rhs):
            if text == '1':
                intercept = sign == '+'
            elif text == '0':
                if sign == '-':
                    raise ConfigurationError(f"cannot remove '0' in {formula!r}")
                intercept = False
            elif sign == '-':
                raise ConfigurationError(
                    f"removing term {text!r} is not supported in {formula!r}"
                )
            else:
                terms.append(Term.parse(text))
        return cls(response=lhs, terms=tuple(terms), intercept=intercept)

    @property
    def term_names(self) -> list:
        return [t.name for t in self.terms]

    @property
    def columns(self) -> list:
        """Design-matrix column names, intercept first."""
        return ([INTERCEPT] if self.intercept else []) + self.term_names

    @property
    def n_params(self) -> int:
        return len(self.terms) + int(self.intercept)

    @property
    def covariates(self) -> list:
        """Columns referenced directly by bare-name terms."""
        return [t.expr for t in self.terms if t.is_column]

    @property
    def formula(self) -> str:
        rhs = ' + '.join(self.term_names)
        if not rhs:
            return f'{self.response} ~ 1'
        if not self.intercept:
            rhs += ' - 1'
        return f'{self.response} ~ {rhs}'

    def __str__(self) -> str:
        return self.formula


def as_model_spec(spec: Union[ModelSpec, str]) -> ModelSpec:
    """Accept a :class:`ModelSpec` or its formula text."""
    if isinstance(spec, ModelSpec):
        return spec
    if isinstance(spec, str):
        return ModelSpec.from_formula(spec)
    raise ConfigurationError(
        f"model_spec must be a ModelSpec or a formula string, got {type(spec).__name__}"
    )


def design_matrix(data: pd.DataFrame, model_spec: Union[ModelSpec, str]) -> pd.DataFrame:
    """
    Build the design matrix of *model_spec* on *data*.

    Parameters
    ----------
    data : pd.DataFrame
        Dataset containing every column the terms reference.
    model_spec : ModelSpec or str
        Model specification or formula text.

    Returns
    -------
    pd.DataFrame
        Float columns named by ``model_spec.columns``, indexed like *data*.

    Raises
    ------
    ConfigurationError
        If a term cannot be evaluated on *data*.
    """
    spec = as_model_spec(model_spec)
    columns = {}
    if spec.intercept:
        columns[INTERCEPT] = pd.Series(1.0, index=data.index)
    for term in spec.terms:
        columns[term.name] = term.evaluate(data)
    return pd.DataFrame(columns, index=data.index)


def _align_coefficients(beta, columns: Sequence[str]) -> np.ndarray:
    if isinstance(beta, Mapping):
        if set(beta) != set(columns):
            raise DimensionMismatchError(
                f"coefficient names {sorted(map(str, beta))} do not match "
                f"design columns {list(columns)}"
            )
        values = [beta[c] for c in columns]
    else:
        values = beta

    try:
        arr = np.atleast_1d(np.asarray(values, dtype=float))
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(
            f"coefficients must be numeric, got {beta!r}"
        ) from exc
    if arr.ndim != 1 or arr.size != len(columns):
        raise DimensionMismatchError(
            f"beta has {arr.size} entries but the design matrix has "
            f"{len(columns)} columns {list(columns)}"
        )
    return arr


def generate(
    data: pd.DataFrame,
    model_spec: Union[ModelSpec, str],
    beta,
    sigma: float,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """
    Generate a response from a linear model with known parameters.

    Computes ``ev = X @ beta`` and ``y = ev + eps`` with
    ``eps ~ N(0, sigma**2)`` i.i.d. across rows.

    Parameters
    ----------
    data : pd.DataFrame
        Covariates. Not modified.
    model_spec : ModelSpec or str
        Model specification; the response is written to
        ``model_spec.response``.
    beta : array-like or mapping
        True coefficients aligned to ``model_spec.columns`` (intercept first),
        or a mapping from column name to coefficient.
    sigma : float
        Residual standard deviation, >= 0. With ``sigma=0`` the response
        equals ``ev`` exactly.
    rng : np.random.Generator, optional
        Random stream for the noise draw.

    Returns
    -------
    pd.DataFrame
        A copy of *data* with the response column and ``ev`` added.

    Raises
    ------
    DimensionMismatchError
        If *beta* does not match the design-matrix columns.
    InvalidParameterError
        If *sigma* is negative or not finite, or *beta* is not numeric.
    ConfigurationError
        If a term cannot be evaluated on *data*, or *data* already has an
        ``ev`` column.
    """
    spec = as_model_spec(model_spec)
    sigma = validate_noise_scale(sigma)
    if EXPECTED_VALUE in data.columns:
        raise ConfigurationError(
            f"data already has a column named {EXPECTED_VALUE!r}; generate() "
            f"would overwrite it with the noiseless response"
        )
    X = design_matrix(data, spec)
    coef = _align_coefficients(beta, list(X.columns))

    ev = X.to_numpy() @ coef
    if sigma == 0:
        noise = np.zeros(len(ev))
    else:
        if rng is None:
            rng = np.random.default_rng()
        noise = rng.normal(0.0, sigma, size=len(ev))

    out = data.copy()
    out[spec.response] = ev + noise
    out[EXPECTED_VALUE] = ev
    return out
