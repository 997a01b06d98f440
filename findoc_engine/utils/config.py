"""
Configuration for the financial document engine.
Defaults match the documented constants; environment variables override them.
"""
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from findoc_engine.core.models import AgingPolicy, CompliancePolicy
from findoc_engine.core.validators import CHECK_DIGIT_STRATEGIES, IdentifierConfig


class Config:
    """Configuration manager reading FINDOC_* environment variables"""

    def __init__(self, env_file: Optional[str] = None, use_environment: bool = True) -> None:
        """
        Initialize configuration.

        Args:
            env_file: Optional .env file loaded before reading variables
            use_environment: If False, ignore the process environment and use defaults
        """
        self.env_file = env_file
        self.use_environment = use_environment
        self._load_environment()
        self._config = self._load_config()

    def _load_environment(self) -> None:
        """Load environment variables from explicit .env file if provided."""
        if not self.env_file:
            return
        env_path = Path(self.env_file)
        if env_path.exists():
            load_dotenv(env_path)

    def _load_config(self) -> Dict[str, Any]:
        return {
            "log_level": self._get_str("FINDOC_LOG_LEVEL", default="INFO"),
            "log_file": self._get_str("FINDOC_LOG_FILE", default=""),
            # Tax identifiers
            "tin_length": self._get_int("FINDOC_TIN_LENGTH", default=10),
            "tin_allow_hyphens": self._get_bool("FINDOC_TIN_ALLOW_HYPHENS", default=False),
            "check_digit": self._get_str("FINDOC_CHECK_DIGIT", default="none").lower(),
            # Receivables aging
            "aging_high_overdue_ratio": self._get_decimal("FINDOC_AGING_HIGH_OVERDUE_RATIO", "0.5"),
            "aging_medium_overdue_ratio": self._get_decimal("FINDOC_AGING_MEDIUM_OVERDUE_RATIO", "0.25"),
            "aging_high_average_days": self._get_decimal("FINDOC_AGING_HIGH_AVERAGE_DAYS", "60"),
            "aging_medium_average_days": self._get_decimal("FINDOC_AGING_MEDIUM_AVERAGE_DAYS", "30"),
            # Compliance
            "compliance_check_interval_days": self._get_int(
                "FINDOC_COMPLIANCE_CHECK_INTERVAL_DAYS", default=30
            ),
        }

    def _get_str(self, key: str, default: str = "") -> str:
        if not self.use_environment:
            return default
        return os.getenv(key, default)

    def _get_int(self, key: str, default: int = 0) -> int:
        if not self.use_environment:
            return default
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def _get_bool(self, key: str, default: bool = False) -> bool:
        if not self.use_environment:
            return default
        value = os.getenv(key, str(default)).lower()
        return value in ("true", "1", "yes", "on")

    def _get_decimal(self, key: str, default: str) -> Decimal:
        raw = self._get_str(key, default)
        try:
            return Decimal(raw)
        except InvalidOperation:
            return Decimal(default)

    def identifier_config(self) -> IdentifierConfig:
        strategy = CHECK_DIGIT_STRATEGIES.get(self["check_digit"])
        if strategy is None:
            raise ValueError(
                f"Unknown check digit strategy {self['check_digit']!r}; "
                f"expected one of {sorted(CHECK_DIGIT_STRATEGIES)}"
            )
        return IdentifierConfig(
            length=self["tin_length"],
            allow_hyphens=self["tin_allow_hyphens"],
            check_digit=strategy,
        )

    def aging_policy(self) -> AgingPolicy:
        return AgingPolicy(
            high_overdue_ratio=self["aging_high_overdue_ratio"],
            medium_overdue_ratio=self["aging_medium_overdue_ratio"],
            high_average_days=self["aging_high_average_days"],
            medium_average_days=self["aging_medium_average_days"],
        )

    def compliance_policy(self) -> CompliancePolicy:
        return CompliancePolicy(check_interval_days=self["compliance_check_interval_days"])

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Get configuration value using bracket notation."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if configuration key exists."""
        return key in self._config
