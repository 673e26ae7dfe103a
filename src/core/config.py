"""Runtime configuration model for RetroState.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import DEFAULT_DATA_ROOT, DEFAULT_RANDOM_SEED
from core.errors import StateConfigError


@dataclass(frozen=True)
class RetroStateConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for the state archive.
        token_seed: Optional seed for reproducible token sequences.
        random_seed: Seed used for generated verification payloads.
    """

    data_root: Path
    token_seed: int | None
    random_seed: int

    @classmethod
    def from_env(cls) -> "RetroStateConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            StateConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("RETROSTATE_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        token_seed_value = os.getenv("RETROSTATE_TOKEN_SEED")
        random_seed_value = os.getenv("RETROSTATE_RANDOM_SEED", str(DEFAULT_RANDOM_SEED))
        token_seed = None
        if token_seed_value:
            token_seed = _parse_int_setting("RETROSTATE_TOKEN_SEED", token_seed_value)
        random_seed = _parse_int_setting("RETROSTATE_RANDOM_SEED", random_seed_value)
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            token_seed=token_seed,
            random_seed=random_seed,
        )


def _parse_int_setting(variable_name: str, raw_value: str) -> int:
    """Parse one integer environment value.

    Args:
        variable_name: Environment variable name for error messages.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer value.

    Raises:
        StateConfigError: If value cannot be parsed into int.
    """
    try:
        return int(raw_value)
    except ValueError as error:
        raise StateConfigError(
            f"Invalid {variable_name} value: "
            f"expected integer, got '{raw_value}'. "
            f"Set {variable_name} to a numeric value."
        ) from error
