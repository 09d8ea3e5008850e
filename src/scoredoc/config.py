"""
Producer configuration.

One explicit record instead of keyword-argument sprawl. Every field has
a documented default, and the record can be loaded from YAML:

    pred_type: class
    cutoffs:
      setosa: 0.2
      versicolor: 0.3
      virginica: 0.5
    validation_mode: warn
    timeout: 10
    name: iris
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError


class PredType(Enum):
    """What the emitted document returns."""

    RESPONSE = "response"        # raw prediction (regression) / class (classification)
    PROBABILITY = "probability"  # full per-class score map
    CLASS = "class"              # single predicted class label


class ValidationMode(Enum):
    OFF = "off"
    WARN = "warn"
    ERROR = "error"


DEFAULT_TIMEOUT = 30.0


def _describe_errors(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'config'}: {err['msg']}"
        for err in e.errors()
    )


class ProducerConfig(BaseModel):
    """
    Properties:
        pred_type: prediction type (default: response)
        cutoffs: class label -> positive cutoff, or None (default: None)
        validation_mode: gateway mode (default: off)
        timeout: gateway timeout in seconds, or None for no limit (default: 30)
        name: document name (default: "scoring")
        metadata: string key/value pairs copied into the document (default: empty)

    Invalid values raise ConfigError, whether the record is built directly
    or loaded with from_dict / from_yaml.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    pred_type: PredType = Field(default=PredType.RESPONSE, description="Prediction type")
    cutoffs: Optional[Mapping[str, float]] = Field(
        default=None,
        description="Class label -> positive cutoff",
    )
    validation_mode: ValidationMode = Field(default=ValidationMode.OFF, description="Gateway mode")
    timeout: Optional[float] = Field(default=DEFAULT_TIMEOUT, description="Gateway timeout (seconds)")
    name: str = Field(default="scoring", description="Document name")
    metadata: Mapping[str, str] = Field(
        default_factory=dict,
        validate_default=True,
        description="Free-form document metadata",
    )

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {_describe_errors(e)}") from e

    @field_validator("cutoffs", mode="before")
    @classmethod
    def validate_cutoff_labels(cls, v: Any) -> Any:
        """Cutoffs are a mapping keyed by the class label's string form."""
        if v is None:
            return v
        if not isinstance(v, Mapping):
            raise ValueError("cutoffs must be a mapping of class label to number")
        return {str(label): value for label, value in v.items()}

    @field_validator("cutoffs")
    @classmethod
    def freeze_cutoffs(cls, v: Optional[Mapping[str, float]]) -> Optional[Mapping[str, float]]:
        return None if v is None else MappingProxyType(dict(v))

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"timeout must be positive, got {v!r}")
        return v

    @field_validator("metadata", mode="before")
    @classmethod
    def validate_metadata(cls, v: Any) -> Any:
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError("metadata must be a mapping")
        return {str(k): str(val) for k, val in v.items()}

    @field_validator("metadata")
    @classmethod
    def freeze_metadata(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(v))

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> ProducerConfig:
        try:
            return cls.model_validate(dict(d or {}))
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {_describe_errors(e)}") from e

    @classmethod
    def from_yaml(cls, s: str) -> ProducerConfig:
        try:
            d = yaml.safe_load(s)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid configuration YAML: {e}")
        if d is not None and not isinstance(d, dict):
            raise ConfigError("Configuration YAML must be a mapping")
        return cls.from_dict(d)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pred_type": self.pred_type.value,
            "cutoffs": dict(self.cutoffs) if self.cutoffs is not None else None,
            "validation_mode": self.validation_mode.value,
            "timeout": self.timeout,
            "name": self.name,
            "metadata": dict(self.metadata),
        }


def load_config(path) -> ProducerConfig:
    """Read a ProducerConfig from a YAML file."""
    try:
        text = Path(path).read_text()
    except OSError as e:
        raise ConfigError(f"Cannot read configuration {path}: {e}")
    return ProducerConfig.from_yaml(text)
