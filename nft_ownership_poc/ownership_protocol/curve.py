"""
⚠️ DRAFT — requires crypto review before production use

secp256k1 setup and public key handling via petlib.

Public keys arrive as affine (X, Y) integer pairs. They are decoded through
the uncompressed SEC1 form and checked explicitly against the curve before
any arithmetic uses them.
"""

from typing import Any, Optional, Tuple
from dataclasses import dataclass
import threading

try:
    from petlib.ec import EcGroup, EcPt
    from petlib.bn import Bn
except ImportError:
    raise ImportError(
        "petlib is required for ring signatures. "
        "Install with: pip install petlib"
    )

from .exceptions import ConfigurationError, CryptographicError
from .config import (
    CURVE_NAME,
    CURVE_LIBRARY,
    CURVE_NID,
    GROUP_ORDER,
    FIELD_PRIME,
    COORDINATE_SIZE_BYTES,
)


# ============================================================================
# CURVE SETUP
# ============================================================================


@dataclass
class CurveParameters:
    """
    Elliptic curve parameters for ring signatures.

    Attributes:
        curve: Curve name (e.g., "secp256k1")
        library: Cryptographic library (e.g., "petlib")
        group: Elliptic curve group (EcGroup)
        G: Standard generator
        order: Group order
    """

    curve: str
    library: str
    group: Any  # EcGroup
    G: Any  # EcPt
    order: int

    def __post_init__(self):
        if not isinstance(self.order, int):
            self.order = int(self.order)

        if self.order != GROUP_ORDER:
            raise CryptographicError(
                f"Group order mismatch: expected {GROUP_ORDER}, got {self.order}"
            )


def setup_curve(
    curve_name: Optional[str] = None, library: Optional[str] = None
) -> CurveParameters:
    """
    Initialize the secp256k1 group and its standard generator.

    Raises:
        ConfigurationError: If curve/library combination is unsupported
        CryptographicError: If curve initialization fails
    """
    curve_name = curve_name or CURVE_NAME
    library = library or CURVE_LIBRARY

    if curve_name != "secp256k1":
        raise ConfigurationError(f"Only secp256k1 is supported, got {curve_name}")

    if library != "petlib":
        raise ConfigurationError(f"Only petlib is supported, got {library}")

    try:
        group = EcGroup(CURVE_NID)
        return CurveParameters(
            curve=curve_name,
            library=library,
            group=group,
            G=group.generator(),
            order=int(group.order()),
        )
    except CryptographicError:
        raise
    except Exception as e:
        raise CryptographicError(
            f"Failed to initialize curve {curve_name}: {e}"
        ) from e


# ============================================================================
# SCALAR AND POINT CONVERSION
# ============================================================================


def to_bn(value) -> Bn:
    if isinstance(value, Bn):
        return value
    if isinstance(value, int):
        return Bn.from_decimal(str(value))
    raise TypeError(f"Expected Bn or int, got {type(value)}")


def is_valid_coordinate(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and (
        0 <= value < FIELD_PRIME
    )


def point_from_coordinates(
    x: int, y: int, params: Optional[CurveParameters] = None
) -> Any:
    """
    Decode an affine (x, y) pair into a curve point.

    Raises:
        CryptographicError: If the pair is not a point on the curve
    """
    if params is None:
        params = get_cached_curve_params()

    if not (is_valid_coordinate(x) and is_valid_coordinate(y)):
        raise CryptographicError("coordinate outside the base field")

    encoded = (
        b"\x04"
        + x.to_bytes(COORDINATE_SIZE_BYTES, "big")
        + y.to_bytes(COORDINATE_SIZE_BYTES, "big")
    )
    try:
        point = EcPt.from_binary(encoded, params.group)
    except Exception as e:
        raise CryptographicError(f"point is not on {params.curve}") from e

    if point is None or not params.group.check_point(point):
        raise CryptographicError(f"point is not on {params.curve}")

    return point


def is_on_curve(x: int, y: int, params: Optional[CurveParameters] = None) -> bool:
    try:
        point_from_coordinates(x, y, params)
    except CryptographicError:
        return False
    return True


def point_to_coordinates(point: Any) -> Tuple[int, int]:
    """
    Affine coordinates of a finite point.

    Raises:
        CryptographicError: For the point at infinity
    """
    if point.is_infinite():
        raise CryptographicError("point at infinity has no affine coordinates")
    x, y = point.get_affine()
    return int(x), int(y)


# ============================================================================
# MODULE-LEVEL CACHE
# ============================================================================

_CURVE_PARAMS_CACHE: Optional[CurveParameters] = None
_CACHE_LOCK = threading.Lock()


def get_cached_curve_params() -> CurveParameters:
    """
    Get cached curve parameters (initialize if needed).

    Thread-safe using double-checked locking.
    """
    global _CURVE_PARAMS_CACHE

    if _CURVE_PARAMS_CACHE is not None:
        return _CURVE_PARAMS_CACHE

    with _CACHE_LOCK:
        if _CURVE_PARAMS_CACHE is None:
            _CURVE_PARAMS_CACHE = setup_curve()

    return _CURVE_PARAMS_CACHE


def clear_curve_params_cache():
    """Clear cached curve parameters. Next access reinitializes."""
    global _CURVE_PARAMS_CACHE

    with _CACHE_LOCK:
        _CURVE_PARAMS_CACHE = None
