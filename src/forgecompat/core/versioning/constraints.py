"""Constraint expressions and the matcher that evaluates them.

A constraint is a textual semantic-version range. Supported forms:

- Exact: ``1.2.3`` or ``=1.2.3``
- Comparison: ``>=1.2.0``, ``<=2.0.0``, ``>1.0.0``, ``<2.0.0``, ``!=1.5.0``
- Caret: ``^1.2.3`` (``>=1.2.3 <2.0.0``; ``^0.2.3`` stays within ``0.2``;
  ``^0.0.3`` stays on ``0.0.3``)
- Tilde: ``~1.2.0`` / ``~1.2`` (``>=1.2.0 <1.3.0``), ``~1`` (``>=1.0.0 <2.0.0``)
- Wildcard: ``1.2.x``, ``1.2.*``, ``1.x``, ``*``
- Hyphen range: ``1.2.0 - 1.4.0`` (inclusive)
- Conjunction: clauses separated by whitespace or commas, all must hold
- Disjunction: ``||`` between conjunctions, any may hold

Partial operands are zero-padded (``>=3.8`` means ``>=3.8.0``; a bare ``3.8``
means exactly ``3.8.0``). Upper bounds implied by caret, tilde, wildcard and
partial hyphen ranges compare on the numeric core only, so ``~3.8.0`` never
admits ``3.9.0-beta``. A wildcard combined with a comparison operator is
rejected.

The empty constraint matches nothing. ``ConstraintMatcher.satisfies`` fails
closed on anything it cannot parse; ``ConstraintMatcher.parse`` is the
validating path and raises.
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from typing import Iterable

from forgecompat.core.versioning.semver import SemanticVersion
from forgecompat.exceptions import InvalidVersion, UnresolvableConstraint

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tokenizing
# ---------------------------------------------------------------------------

_OPERATORS = (">=", "<=", "!=", ">", "<", "=", "^", "~")

_OP_SPACING_RE = re.compile(r"(>=|<=|!=|>|<|=|\^|~)\s+")

_HYPHEN_RE = re.compile(r"^\s*(?P<low>\S+)\s+-\s+(?P<high>\S+)\s*$")

_ATOM_RE = re.compile(r"^(?P<op>>=|<=|!=|>|<|=|\^|~)?[vV]?(?P<operand>.+)$")

_OPERAND_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*|[xX*])"
    r"(?:\.(?P<minor>0|[1-9]\d*|[xX*]))?"
    r"(?:\.(?P<patch>0|[1-9]\d*|[xX*]))?"
    r"(?:-(?P<labels>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_WILDCARDS = frozenset({"x", "X", "*"})


# ---------------------------------------------------------------------------
# Comparator: one bound
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Comparator:
    """A single bound such as ``>=3.8.0``.

    Attributes:
        op: One of ``=``, ``!=``, ``>=``, ``>``, ``<=``, ``<``.
        version: The bound.
        core_only: Compare only the numeric core of the candidate. Used for
            the exclusive upper bounds implied by range shorthands.
    """

    op: str
    version: SemanticVersion
    core_only: bool = False

    def test(self, candidate: SemanticVersion) -> bool:
        """Return True if *candidate* lies within this bound."""
        left: SemanticVersion = candidate
        if self.core_only:
            left = SemanticVersion(*candidate.core)
        right = self.version
        if self.op == "=":
            return left == right
        if self.op == "!=":
            return left != right
        if self.op == ">=":
            return left >= right
        if self.op == ">":
            return left > right
        if self.op == "<=":
            return left <= right
        if self.op == "<":
            return left < right
        raise ValueError(f"Unknown operator: {self.op!r}")  # pragma: no cover

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


# ---------------------------------------------------------------------------
# Constraint: parsed expression
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Constraint:
    """A parsed constraint in disjunctive normal form.

    Attributes:
        raw: The expression as authored.
        alternatives: Conjunctions of comparators; the constraint holds when
            every comparator of at least one alternative holds. An alternative
            with no comparators matches every version. No alternatives at all
            (the empty expression) matches nothing.
    """

    raw: str
    alternatives: tuple[tuple[Comparator, ...], ...]

    def satisfies(self, version: SemanticVersion | str) -> bool:
        """Evaluate the constraint against *version*.

        A version string that does not parse never satisfies.
        """
        if isinstance(version, str):
            try:
                version = SemanticVersion.parse(version)
            except InvalidVersion:
                return False
        return any(all(c.test(version) for c in alt) for alt in self.alternatives)

    @property
    def is_empty(self) -> bool:
        return not self.alternatives

    def __repr__(self) -> str:
        return f"Constraint({self.raw!r})"


def _split_operand(operand: str, raw: str) -> tuple[list[int], bool, tuple[str, ...]]:
    """Split an operand into its numeric prefix, wildcard flag and labels."""
    m = _OPERAND_RE.match(operand)
    if not m:
        raise UnresolvableConstraint(f"Invalid version in constraint {raw!r}: {operand!r}")

    segments = [m.group("major"), m.group("minor"), m.group("patch")]
    numbers: list[int] = []
    wildcard = False
    for seg in segments:
        if seg is None:
            break
        if seg in _WILDCARDS:
            wildcard = True
            continue
        if wildcard:
            # "1.x.3": a number after a wildcard is meaningless.
            raise UnresolvableConstraint(f"Invalid wildcard in constraint {raw!r}: {operand!r}")
        numbers.append(int(seg))

    labels = tuple(m.group("labels").split(".")) if m.group("labels") else ()
    if labels and (wildcard or len(numbers) < 3):
        raise UnresolvableConstraint(
            f"Pre-release labels need a full version in constraint {raw!r}: {operand!r}"
        )
    return numbers, wildcard, labels


def _padded(numbers: list[int], labels: tuple[str, ...] = ()) -> SemanticVersion:
    padded = (numbers + [0, 0, 0])[:3]
    return SemanticVersion(padded[0], padded[1], padded[2], labels)


def _bump(numbers: list[int], index: int) -> SemanticVersion:
    bumped = numbers[:index] + [numbers[index] + 1]
    return _padded(bumped)


def _partial_range(numbers: list[int]) -> tuple[Comparator, ...]:
    """Comparators for ``1.x`` / ``1.2.x`` style ranges."""
    if not numbers:
        return ()
    if len(numbers) >= 3:
        return (Comparator("=", _padded(numbers)),)
    return (
        Comparator(">=", _padded(numbers)),
        Comparator("<", _bump(numbers, len(numbers) - 1), core_only=True),
    )


def _parse_atom(token: str, raw: str) -> tuple[Comparator, ...]:
    m = _ATOM_RE.match(token)
    if not m:
        raise UnresolvableConstraint(f"Invalid constraint atom {token!r} in {raw!r}")
    op = m.group("op")
    numbers, wildcard, labels = _split_operand(m.group("operand"), raw)

    if op is None or op == "=":
        if wildcard:
            return _partial_range(numbers)
        return (Comparator("=", _padded(numbers, labels)),)

    if wildcard:
        raise UnresolvableConstraint(
            f"Wildcards cannot be combined with {op!r} in constraint {raw!r}"
        )

    lower = _padded(numbers, labels)
    if op in ("!=", ">=", ">", "<=", "<"):
        return (Comparator(op, lower),)

    if op == "^":
        nonzero = next((i for i, n in enumerate(numbers) if n != 0), len(numbers) - 1)
        return (
            Comparator(">=", lower),
            Comparator("<", _bump(numbers, nonzero), core_only=True),
        )

    # Tilde
    index = 0 if len(numbers) == 1 else 1
    return (
        Comparator(">=", lower),
        Comparator("<", _bump(numbers, index), core_only=True),
    )


def _parse_hyphen(low: str, high: str, raw: str) -> tuple[Comparator, ...]:
    low_numbers, low_wild, low_labels = _split_operand(low.lstrip("vV"), raw)
    high_numbers, high_wild, high_labels = _split_operand(high.lstrip("vV"), raw)
    if low_wild or high_wild:
        raise UnresolvableConstraint(f"Wildcards are not allowed in hyphen range {raw!r}")
    upper: Comparator
    if len(high_numbers) < 3:
        upper = Comparator("<", _bump(high_numbers, len(high_numbers) - 1), core_only=True)
    else:
        upper = Comparator("<=", _padded(high_numbers, high_labels))
    return (Comparator(">=", _padded(low_numbers, low_labels)), upper)


def _parse_conjunction(part: str, raw: str) -> tuple[Comparator, ...]:
    hyphen = _HYPHEN_RE.match(part)
    if hyphen:
        return _parse_hyphen(hyphen.group("low"), hyphen.group("high"), raw)

    normalized = _OP_SPACING_RE.sub(r"\1", part.replace(",", " "))
    tokens = normalized.split()
    if not tokens:
        raise UnresolvableConstraint(f"Empty clause in constraint {raw!r}")

    comparators: list[Comparator] = []
    for token in tokens:
        if token in _OPERATORS:
            raise UnresolvableConstraint(f"Dangling operator {token!r} in constraint {raw!r}")
        comparators.extend(_parse_atom(token, raw))
    return tuple(comparators)


def parse_constraint(raw: str) -> Constraint:
    """Parse a constraint expression.

    Args:
        raw: The expression. Empty or whitespace-only yields a constraint that
            matches nothing.

    Returns:
        The parsed ``Constraint``.

    Raises:
        UnresolvableConstraint: If the expression is malformed.
    """
    if raw is None or not raw.strip():
        return Constraint(raw=raw or "", alternatives=())
    alternatives = tuple(
        _parse_conjunction(part, raw) for part in raw.strip().split("||")
    )
    return Constraint(raw=raw, alternatives=alternatives)


# ---------------------------------------------------------------------------
# ConstraintMatcher
# ---------------------------------------------------------------------------


# Distinct expressions kept parsed at once; the least recently used go first.
PARSE_CACHE_SIZE: int = 1024


@functools.lru_cache(maxsize=PARSE_CACHE_SIZE)
def _parse_or_none(constraint: str) -> Constraint | None:
    try:
        return parse_constraint(constraint)
    except UnresolvableConstraint as exc:
        logger.debug("Unparseable constraint %r: %s", constraint, exc)
        return None


class ConstraintMatcher:
    """Evaluates versions against constraint expressions.

    Parsed constraints are memoized in a bounded LRU cache shared by all
    matchers, so catalog-wide rescans do not re-parse the same expression for
    every candidate. Unparseable expressions are memoized as ``None`` and
    match nothing.
    """

    def parse(self, constraint: str) -> Constraint:
        """Parse *constraint*, raising on malformed input.

        Raises:
            UnresolvableConstraint: If the expression is malformed.
        """
        return parse_constraint(constraint)

    def _lookup(self, constraint: str) -> Constraint | None:
        return _parse_or_none(constraint)

    def satisfies(self, version: SemanticVersion | str, constraint: str) -> bool:
        """Return True if *version* satisfies *constraint*.

        Never raises: malformed constraints and unparseable versions both
        evaluate to False.
        """
        if not constraint or not constraint.strip():
            return False
        parsed = self._lookup(constraint)
        if parsed is None:
            return False
        return parsed.satisfies(version)

    def filter_matching(self, constraint: str, versions: Iterable[str]) -> list[str]:
        """Return the members of *versions* that satisfy *constraint*, in order."""
        return [v for v in versions if self.satisfies(v, constraint)]


_DEFAULT_MATCHER = ConstraintMatcher()


def satisfies(version: SemanticVersion | str, constraint: str) -> bool:
    """Module-level convenience around a shared ``ConstraintMatcher``."""
    return _DEFAULT_MATCHER.satisfies(version, constraint)


def ensure_valid_constraint(constraint: str) -> str:
    """Validate a user-submitted constraint.

    Args:
        constraint: The submitted expression.

    Returns:
        The stripped expression. An empty submission returns ``""`` (no
        constraint), which callers store as-is.

    Raises:
        UnresolvableConstraint: If a non-empty expression is malformed.
    """
    stripped = (constraint or "").strip()
    if stripped:
        parse_constraint(stripped)
    return stripped
