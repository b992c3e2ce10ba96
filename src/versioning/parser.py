"""Constraint parsing for version requests."""

import re
from typing import Tuple

from common.errors import ConstraintParseError
from .models import Constraint, ConstraintKind

_EXACT_RE = re.compile(
    r'^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)'
    r'(?:-(?P<pre>[0-9A-Za-z\-\.]+))?(?:\+(?P<build>[0-9A-Za-z\-\.]+))?$'
)
_FLOAT_RE = re.compile(r'^(?P<fixed>\d+(?:\.\d+)?)\.x$')
_FLOAT_PATCH_RE = re.compile(r'^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)(?P<wild>x+|\*)$')


def _normalize(raw: str) -> str:
    """Trim and fold ``*`` wildcards on a whole segment into ``x``."""
    s = raw.strip()
    if s[-2:] in ('.*', '.X'):
        s = s[:-2] + '.x'
    return s


def _split_numbers(text: str) -> Tuple[int, ...]:
    return tuple(int(p) for p in text.split('.'))


def parse_constraint(raw: str) -> Constraint:
    """Parse a version request string into a Constraint.

    Accepted forms:
        ``2.1.x`` / ``2.x`` / ``2.1.*``  floating on the trailing segments
        ``2.1.4xx`` / ``2.1.4*``         floating on the patch digits
        ``<2.1.9``                       strictly below the given version
        ``2.1.9`` / ``3.0.0-preview5``   exact

    Raises:
        ConstraintParseError: when the string matches none of the above.
    """
    if raw is None:
        raise ConstraintParseError("None", "empty version")
    s = _normalize(str(raw))
    if not s:
        raise ConstraintParseError(str(raw), "empty version")

    if s.startswith('<'):
        inner = s[1:].strip()
        m = _EXACT_RE.match(inner)
        if not m:
            raise ConstraintParseError(str(raw), "'<' requires a full version")
        return Constraint(
            kind=ConstraintKind.LESS_THAN,
            raw=s,
            version=inner,
            prefix=(int(m.group('major')), int(m.group('minor')), int(m.group('patch'))),
        )

    m = _FLOAT_RE.match(s)
    if m:
        return Constraint(kind=ConstraintKind.FLOAT_MINOR_PATCH, raw=s, prefix=_split_numbers(m.group('fixed')))

    m = _FLOAT_PATCH_RE.match(s)
    if m:
        wild = m.group('wild')
        width = None if wild == '*' else len(m.group('patch')) + len(wild)
        return Constraint(
            kind=ConstraintKind.FLOAT_PATCH,
            raw=s,
            prefix=(int(m.group('major')), int(m.group('minor'))),
            patch_prefix=m.group('patch'),
            patch_width=width,
        )

    m = _EXACT_RE.match(s)
    if m:
        return Constraint(
            kind=ConstraintKind.EXACT,
            raw=s,
            version=s,
            prefix=(int(m.group('major')), int(m.group('minor')), int(m.group('patch'))),
        )

    raise ConstraintParseError(str(raw))


def float_line(major: int, minor: int) -> Constraint:
    """Constraint for the latest version in a major.minor line."""
    return Constraint(kind=ConstraintKind.FLOAT_MINOR_PATCH, raw=f"{major}.{minor}.x", prefix=(major, minor))


def float_major(major: int) -> Constraint:
    """Constraint for the latest version within a major."""
    return Constraint(kind=ConstraintKind.FLOAT_MINOR_PATCH, raw=f"{major}.x", prefix=(major,))
