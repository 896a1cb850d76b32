"""
Configuration module for OpenDW.

This module provides configuration management for the OpenDW library,
including numerical tolerances, the solver backend and logging preferences.

Configuration can be set via:
1. Environment variables (OPENDW_*)
2. Config file (~/.opendw/config.toml or ./opendw.toml)
3. Programmatic API

Example:
    >>> from opendw.config import config
    >>> config.get_tolerance("reduced_cost")
    1e-06
    >>> config.set_tolerance("reduced_cost", 1e-8)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

# Default identifier-space hint for extracted coefficient relations
DEFAULT_MAX_NB_ELEMS = 10_000_000


def _default_log_level() -> str:
    return os.environ.get('OPENDW_LOG_LEVEL', 'INFO').upper()


def _default_solver() -> str:
    return os.environ.get('OPENDW_SOLVER', 'highs').lower()


def _default_tolerances() -> dict[str, float]:
    return {
        "optimality": 1e-6,
        "feasibility": 1e-6,
        "integrality": 1e-5,
        "reduced_cost": 1e-6,
    }


@dataclass
class OpenDWConfig:
    """
    Configuration for the OpenDW library.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        default_solver: Default solver backend (highs)
        num_threads: Number of threads the solver backend may use
        max_nb_elems: Capacity hint used when sizing extracted matrices
        tolerances: Numerical tolerances
    """

    # Logging
    log_level: str = field(default_factory=_default_log_level)

    # Solver settings
    default_solver: str = field(default_factory=_default_solver)
    num_threads: int = 1

    # Sizing
    max_nb_elems: int = DEFAULT_MAX_NB_ELEMS

    # Numerical tolerances
    tolerances: dict[str, float] = field(default_factory=_default_tolerances)

    def __post_init__(self):
        """Fill tolerances missing from a partial dict."""
        self.tolerances = {**_default_tolerances(), **self.tolerances}

    # =========================================================================
    # Tolerance helpers
    # =========================================================================

    def get_tolerance(self, name: str) -> float:
        """Get a tolerance value by name."""
        return self.tolerances.get(name, 1e-6)

    def set_tolerance(self, name: str, value: float) -> None:
        """Set a tolerance value."""
        self.tolerances[name] = value

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "log_level": self.log_level,
            "default_solver": self.default_solver,
            "num_threads": self.num_threads,
            "max_nb_elems": self.max_nb_elems,
            "tolerances": self.tolerances.copy(),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> 'OpenDWConfig':
        """Create config from dictionary."""
        return cls(
            log_level=d.get("log_level", _default_log_level()),
            default_solver=d.get("default_solver", _default_solver()),
            num_threads=int(d.get("num_threads", 1)),
            max_nb_elems=int(d.get("max_nb_elems", DEFAULT_MAX_NB_ELEMS)),
            tolerances=dict(d.get("tolerances", {})),
        )

    def save(self, path: Optional[Path] = None) -> None:
        """
        Save configuration to a TOML file.

        Args:
            path: Path to save to (default: ./opendw.toml)
        """
        if path is None:
            path = Path("opendw.toml")

        # Simple TOML-like format (no dependency needed)
        lines = [
            "# OpenDW Configuration",
            "",
            "[general]",
            f'log_level = "{self.log_level}"',
            f'default_solver = "{self.default_solver}"',
            f"num_threads = {self.num_threads}",
            f"max_nb_elems = {self.max_nb_elems}",
            "",
            "[tolerances]",
        ]
        for name, value in self.tolerances.items():
            lines.append(f"{name} = {value}")

        path.write_text("\n".join(lines))

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'OpenDWConfig':
        """
        Load configuration from a TOML file.

        Args:
            path: Path to load from (default: ./opendw.toml or ~/.opendw/config.toml)

        Returns:
            Loaded configuration (or default if file not found)
        """
        if path is None:
            # Try local config first, then user config
            local_config = Path("opendw.toml")
            user_config = Path.home() / ".opendw" / "config.toml"

            if local_config.exists():
                path = local_config
            elif user_config.exists():
                path = user_config
            else:
                return cls()  # Return default config

        if not path.exists():
            return cls()

        # Simple TOML-like parsing (no dependency needed)
        config_dict: dict[str, Any] = {"tolerances": {}}
        current_section = None

        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if line.startswith("[") and line.endswith("]"):
                current_section = line[1:-1]
                continue

            if "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"')

                # Convert types
                if value.isdigit():
                    value = int(value)
                elif value.replace(".", "").replace("e", "").replace("-", "").isdigit():
                    value = float(value)

                if current_section == "tolerances":
                    config_dict["tolerances"][key] = float(value)
                else:
                    config_dict[key] = value

        return cls.from_dict(config_dict)


# Global configuration instance
config = OpenDWConfig()


def get_tolerance(name: str) -> float:
    """Get a tolerance from the global configuration."""
    return config.get_tolerance(name)


def set_tolerance(name: str, value: float) -> None:
    """Set a tolerance on the global configuration."""
    config.set_tolerance(name, value)
