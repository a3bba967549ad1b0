"""Configuration for a ledgerbook company session.

Settings are pydantic models so that a YAML file, a dict from the host
application, or keyword arguments all go through the same validation.

Example:
    Load settings and open a session::

        from pathlib import Path
        from ledgerbook.config import LedgerbookConfig
        from ledgerbook.engine import LedgerEngine

        config = LedgerbookConfig.from_yaml(Path("company.yaml"))
        config.setup_logging()
        engine = LedgerEngine(config)

    where ``company.yaml`` contains::

        classifier:
          strict: false
          custom_groups:
            - name: Stock-in-hand
              parentType: ASSETS
        engine:
          line_policy: sum
          currency_places: 2
"""

import logging
from pathlib import Path
import sys
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
import yaml

from .classifier import AccountClassifier
from .models import LinePolicy, NaturalClass
from .statement import DEFAULT_PARTICULARS


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Layer ``override`` on top of ``base`` without mutating either.

    Mappings present on both sides are merged key by key; any other value in
    ``override`` wins outright.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        merged[key] = (
            deep_merge(current, value)
            if isinstance(current, dict) and isinstance(value, dict)
            else value
        )
    return merged


class LoggingConfig(BaseModel):
    """Where the `ledgerbook` logger writes and at what level."""

    enabled: bool = Field(default=True, description="Configure the package logger at all")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Optional[str] = Field(
        default=None, description="Also write records to this file"
    )
    console_output: bool = Field(default=True, description="Write records to stdout")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )


class CustomGroupConfig(BaseModel):
    """A company-defined account group.

    Accepts the stored record layout ``{name, parentType}`` as well as
    ``{name, natural_class}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, description="Group name")
    natural_class: NaturalClass = Field(alias="parentType", description="Natural class")

    @field_validator("natural_class", mode="before")
    @classmethod
    def _upper_case_class(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class ClassifierConfig(BaseModel):
    """Group classification settings."""

    strict: bool = Field(
        default=False, description="Raise on unregistered groups instead of falling back"
    )
    custom_groups: List[CustomGroupConfig] = Field(
        default_factory=list, description="Extra groups registered for the company"
    )

    @field_validator("custom_groups")
    @classmethod
    def validate_unique_names(cls, v: List[CustomGroupConfig]) -> List[CustomGroupConfig]:
        """Reject a group configured twice under different classes."""
        seen: Dict[str, NaturalClass] = {}
        for group in v:
            existing = seen.setdefault(group.name, group.natural_class)
            if existing is not group.natural_class:
                raise ValueError(
                    f"Group '{group.name}' is configured as both {existing.value} "
                    f"and {group.natural_class.value}"
                )
        return v


class EngineConfig(BaseModel):
    """Calculation settings."""

    line_policy: LinePolicy = Field(
        default=LinePolicy.SUM,
        description="How several lines against one account in a transaction count",
    )
    currency_places: int = Field(default=2, ge=0, le=6, description="Decimal places for money")
    fallback_particulars: str = Field(
        default=DEFAULT_PARTICULARS,
        description="Statement particulars when a transaction has no contra account",
    )


class LedgerbookConfig(BaseModel):
    """Complete configuration of one company session."""

    company_name: str = Field(default="", description="Display name of the company")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "LedgerbookConfig":
        """Read a company settings file.

        Top-level keys starting with an underscore hold YAML anchors and are
        dropped before validation.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValidationError: If a setting is invalid.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        data = {k: v for k, v in data.items() if not k.startswith("_")}

        return cls(**data)

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], base_config: Optional["LedgerbookConfig"] = None
    ) -> "LedgerbookConfig":
        """Build settings from a dict, layered over ``base_config`` when given."""
        if base_config is None:
            return cls(**data)
        merged = deep_merge(base_config.model_dump(by_alias=True), data)
        return cls(**merged)

    def to_yaml(self, path: Path) -> None:
        """Write the settings as YAML, creating parent directories as needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json", by_alias=True),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    def setup_logging(self) -> None:
        """Point the ``ledgerbook`` logger at the configured destinations.

        Handlers from an earlier call are closed and replaced, so reconfiguring
        neither duplicates output nor leaves log files open.
        """
        settings = self.logging
        if not settings.enabled:
            return

        package_logger = logging.getLogger("ledgerbook")
        package_logger.setLevel(settings.level)
        for old_handler in list(package_logger.handlers):
            package_logger.removeHandler(old_handler)
            old_handler.close()

        handlers: List[logging.Handler] = []
        if settings.console_output:
            handlers.append(logging.StreamHandler(sys.stdout))
        if settings.log_file:
            log_path = Path(settings.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

        formatter = logging.Formatter(settings.format)
        for handler in handlers:
            handler.setFormatter(formatter)
            package_logger.addHandler(handler)

    def build_classifier(self) -> AccountClassifier:
        """Fresh classifier with the configured custom groups."""
        return AccountClassifier(
            strict=self.classifier.strict,
            custom_groups={g.name: g.natural_class for g in self.classifier.custom_groups},
        )
