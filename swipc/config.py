"""
YAML options file for swipc.

Example::

    parser:
      max_nesting: 32
    validator:
      max_service_name_length: 8
      max_managed_port_name_length: 12

Every section and key is optional; missing values keep their defaults.
"""

import yaml
from dataclasses import dataclass, replace
from typing import Optional

from .parser import DEFAULT_MAX_NESTING
from .types import MANAGED_PORT_NAME_MAX_LEN, SERVICE_NAME_MAX_LEN

# Each nested type costs a handful of Python frames; stay well under the
# interpreter's recursion limit.
MAX_NESTING_LIMIT = 128

_KEYS = {
    "parser": {"max_nesting"},
    "validator": {"max_service_name_length", "max_managed_port_name_length"},
}


class ConfigError(Exception):
    """Raised when an options file fails validation."""
    pass


@dataclass(frozen=True)
class Options:
    """Tunables for one compile."""
    max_nesting: int = DEFAULT_MAX_NESTING
    max_service_name_length: int = SERVICE_NAME_MAX_LEN
    max_managed_port_name_length: int = MANAGED_PORT_NAME_MAX_LEN

    def override(self, **changes) -> "Options":
        """Return a copy with the non-None ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items()
                                if v is not None})


def _positive_int(section: dict, key: str, context: str) -> Optional[int]:
    """Read an optional integer >= 1, raising ConfigError if it is anything else."""
    if key not in section or section[key] is None:
        return None
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(
            f"Field '{key}' in {context} section must be an integer, "
            f"got {value!r}"
        )
    if value < 1:
        raise ConfigError(
            f"Field '{key}' in {context} section must be >= 1, got {value}"
        )
    return value


def parse_config(yaml_str: str) -> Options:
    """Parse a YAML options string into Options.

    Args:
        yaml_str: YAML string; may be empty, which yields the defaults.

    Returns:
        Options with file values applied over the defaults.

    Raises:
        ConfigError: If the YAML is invalid or has unknown or bad fields.
    """
    if not yaml_str or not yaml_str.strip():
        return Options()

    try:
        data = yaml.safe_load(yaml_str)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}")

    if data is None:
        return Options()
    if not isinstance(data, dict):
        raise ConfigError("YAML root must be a mapping")

    for section_name, section in data.items():
        if section_name not in _KEYS:
            raise ConfigError(f"Unknown section '{section_name}'")
        if section is not None and not isinstance(section, dict):
            raise ConfigError(f"Section '{section_name}' must be a mapping")
        for key in section or {}:
            if key not in _KEYS[section_name]:
                raise ConfigError(
                    f"Unknown field '{key}' in {section_name} section"
                )

    # ---- parser section ----
    parser_section = data.get("parser") or {}
    max_nesting = _positive_int(parser_section, "max_nesting", "parser")
    if max_nesting is not None and max_nesting > MAX_NESTING_LIMIT:
        raise ConfigError(
            f"Field 'max_nesting' in parser section must be <= "
            f"{MAX_NESTING_LIMIT}, got {max_nesting}"
        )

    # ---- validator section ----
    validator_section = data.get("validator") or {}

    return Options().override(
        max_nesting=max_nesting,
        max_service_name_length=_positive_int(
            validator_section, "max_service_name_length", "validator"),
        max_managed_port_name_length=_positive_int(
            validator_section, "max_managed_port_name_length", "validator"),
    )
