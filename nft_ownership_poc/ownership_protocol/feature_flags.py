"""
Prototype feature flags for the ownership protocol.

WARNING: Enabling exclusion proofs changes what a successful flow means.
"""

from __future__ import annotations

import os
from typing import Final

_TRUE_VALUES: Final[tuple[str, ...]] = ("1", "true", "yes", "on")
_FALSE_VALUES: Final[tuple[str, ...]] = ("0", "false", "no", "off")
_DEFAULT_ALLOW_EXCLUSION: Final[bool] = False
_ENV_VAR_NAME: Final[str] = "OWNERSHIP_PROTOCOL_ALLOW_EXCLUSION"

_exclusion_override: bool | None = None


def _format_valid_options() -> str:
    return ", ".join(_TRUE_VALUES + _FALSE_VALUES)


def _normalize_flag(value: str | bool | None) -> bool | None:
    if value is None:
        return None

    if isinstance(value, bool):
        return value

    if not isinstance(value, str):
        raise ValueError(
            f"Invalid flag value: {value!r}. Valid options: {_format_valid_options()}"
        )

    if value == "":
        return None

    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False

    raise ValueError(
        f"Invalid flag value: {value!r}. Valid options: {_format_valid_options()}"
    )


def allow_exclusion_proofs(prefer: str | bool | None = None) -> bool:
    """
    Resolve whether orchestrators accept non-membership (empty value) proofs.

    Precedence: explicit preference, in-memory override, environment,
    default (disabled).

    Raises:
        ValueError: If a provided value is invalid.
    """
    preferred = _normalize_flag(prefer)
    if preferred is not None:
        return preferred

    if _exclusion_override is not None:
        return _exclusion_override

    env_flag = _normalize_flag(os.getenv(_ENV_VAR_NAME))
    if env_flag is not None:
        return env_flag

    return _DEFAULT_ALLOW_EXCLUSION


def set_allow_exclusion_proofs(value: str | bool | None) -> None:
    """
    Set in-memory override (testing only). ``None`` clears it.

    Raises:
        ValueError: If the value is invalid.
    """
    global _exclusion_override
    _exclusion_override = _normalize_flag(value)
