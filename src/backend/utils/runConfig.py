import json
import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class RunConfigError(ValueError):
    pass


class RunConfig(BaseModel):
    """
    Options for one batch run. JSON config files use the camelCase keys; unknown keys are rejected.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    question_path: Optional[str] = Field(default=None, alias="questionPath")
    question_text: Optional[str] = Field(default=None, alias="questionText")
    question_filename: Optional[str] = Field(default=None, alias="questionFilename")
    baseline_netlist_path: Optional[str] = Field(default=None, alias="baselineNetlistPath")
    baseline_netlist_text: Optional[str] = Field(default=None, alias="baselineNetlistText")
    baseline_image_path: Optional[str] = Field(default=None, alias="baselineImagePath")
    bundle_includes: Optional[bool] = Field(default=None, alias="bundleIncludes")
    outdir: Optional[str] = None
    openai_model: Optional[str] = Field(default=None, alias="openaiModel")
    grok_model: Optional[str] = Field(default=None, alias="grokModel")
    gemini_model: Optional[str] = Field(default=None, alias="geminiModel")
    claude_model: Optional[str] = Field(default=None, alias="claudeModel")
    enabled_providers: Optional[List[str]] = Field(default=None, alias="enabledProviders")
    schematic_dpi: Optional[int] = Field(default=None, alias="schematicDpi", gt=0)

    @field_validator(
        "question_path",
        "question_filename",
        "baseline_netlist_path",
        "baseline_image_path",
        "outdir",
        "openai_model",
        "grok_model",
        "gemini_model",
        "claude_model",
        mode="before",
    )
    @classmethod
    def _blankToNone(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    def providerModels(self) -> Dict[str, Optional[str]]:
        return {
            "openai": self.openai_model,
            "xai": self.grok_model,
            "google": self.gemini_model,
            "anthropic": self.claude_model,
        }


def readRunConfig(config_path: str) -> RunConfig:
    abs_path = os.path.abspath(config_path)
    if not os.path.exists(abs_path):
        raise RunConfigError(f"Config file not found: {config_path}")

    try:
        with open(abs_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise RunConfigError(f"Invalid config JSON: {e}") from e

    try:
        return RunConfig.model_validate(raw)
    except ValidationError as e:
        issues = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        raise RunConfigError(f"Invalid config JSON: {issues}") from e


def mergeRunConfig(cli: Dict[str, Any], cfg: RunConfig) -> RunConfig:
    """
    CLI values win when explicitly set (booleans included); blank strings and None leave the config value alone.
    """
    overrides = {}
    for key, value in cli.items():
        if key not in RunConfig.model_fields:
            continue
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        overrides[key] = value
    return cfg.model_copy(update=overrides)
