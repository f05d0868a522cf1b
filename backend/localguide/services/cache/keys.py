"""Cache key builders. Single place for key formats.

Persisted keys round coordinates to 4 decimal places (~11 m) and sort
the category set, so equal logical queries always map to the same
entry regardless of category order or float noise.
"""

from collections.abc import Iterable

from localguide.config import NEARBY_CACHE_PREFIX

CACHE_KEY_SEP = ":"


def _coord(value: float) -> str:
    # round() can yield -0.0, which would format differently from 0.0
    return f"{round(value, 4) + 0.0:.4f}"


def _radius(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def _categories(categories: Iterable[str]) -> str:
    return ",".join(sorted({c.strip() for c in categories if c and c.strip()}))


def nearby_cache_key(
    latitude: float,
    longitude: float,
    radius: float,
    categories: Iterable[str] = (),
) -> str:
    """Persisted-tier key for a nearby search.

    Example:
        >>> nearby_cache_key(14.59951, 120.98423, 5000, ["cafes", "bars"])
        'nearbyBusinesses_v1:14.5995:120.9842:5000:bars,cafes'
    """
    return CACHE_KEY_SEP.join(
        [
            NEARBY_CACHE_PREFIX,
            _coord(latitude),
            _coord(longitude),
            _radius(radius),
            _categories(categories),
        ]
    )


def request_signature(
    latitude: float,
    longitude: float,
    radius: float,
    categories: Iterable[str] = (),
    limit: int = 20,
    offset: int = 0,
) -> str:
    """Volatile-tier key: the full request, pagination included."""
    parts = [
        _coord(latitude),
        _coord(longitude),
        _radius(radius),
        _categories(categories),
        str(limit),
        str(offset),
    ]
    return "_".join(parts)
