"""Configuration management for justdothething.

Loads settings from a YAML configuration file with environment variable
overrides for sensitive values (identity provider keys). Supports .env
files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Literal

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings

from justdothething.classify.tuning import ContentTuning, FocusTuning
from justdothething.domain.models import YellStyle

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/justdothething.yaml")

CheckInterval = Literal[5, 10, 15, 30, 60, 120, 300]
Cooldown = Literal[10, 30, 60, 120, 300]


class MonitorSettings(BaseModel):
    """User-facing Yell Mode settings.

    Read-only from the controller's point of view within a cycle; the
    settings store may replace them between cycles.
    """

    model_config = {"frozen": True}

    check_interval_seconds: CheckInterval = Field(default=10)
    cooldown_seconds: Cooldown = Field(default=30)
    style: YellStyle = Field(default=YellStyle.COACH)
    use_face_detection: bool = Field(default=True)
    secondary_monitor: bool = Field(
        default=False,
        description="A second monitor sits above the primary; upward glances count as focused",
    )


class CaptureConfig(BaseModel):
    screen_monitor_index: int = Field(default=1, ge=0, description="mss monitor index (0 = all monitors)")
    webcam_device_index: int = Field(default=0, ge=0, description="OpenCV camera device index")
    webcam_resolution_width: int | None = Field(default=None)
    webcam_resolution_height: int | None = Field(default=None)


class PerceptionConfig(BaseModel):
    scene_model_path: Path = Field(default=Path("models/mobilenetv2.onnx"))
    scene_labels_path: Path = Field(default=Path("models/imagenet_labels.txt"))
    scene_input_size: int = Field(default=224, gt=0)
    top_k: int = Field(default=25, ge=1, le=50)
    face_min_detection_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    face_min_tracking_confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class SpeechConfig(BaseModel):
    backend: Literal["command", "notification"] = Field(default="command")
    command: str | None = Field(
        default=None, description="Speech binary; autodetected (espeak-ng, espeak, say) if unset",
    )
    notification_title: str = Field(default="JustDoTheThing")
    notification_timeout: int = Field(default=5, gt=0)


class ServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000, ge=1, le=65535)
    supabase_url: str = Field(default="")
    supabase_anon_key: SecretStr = Field(default=SecretStr(""))
    user_cache_ttl: float = Field(default=300.0, ge=0)
    request_timeout: float = Field(default=10.0, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the justdothething system.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "JUSTDOTHETHING_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    perception: PerceptionConfig = Field(default_factory=PerceptionConfig)
    content: ContentTuning = Field(default_factory=ContentTuning)
    focus: FocusTuning = Field(default_factory=FocusTuning)
    speech: SpeechConfig = Field(default_factory=SpeechConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _apply_env_overrides(yaml_data: dict) -> None:
    """Map the identity provider's conventional env vars onto the server section."""
    url = os.environ.get("SUPABASE_URL", "")
    anon_key = os.environ.get("SUPABASE_ANON_KEY", "")

    if not url and not anon_key:
        return

    server = yaml_data.setdefault("server", {})
    if url and not server.get("supabase_url"):
        server["supabase_url"] = url
    if anon_key and not server.get("supabase_anon_key"):
        server["supabase_anon_key"] = anon_key


# ---------------------------------------------------------------------------
# Live settings
# ---------------------------------------------------------------------------


SettingsListener = Callable[[MonitorSettings, MonitorSettings], None]


class Subscription:
    """Handle returned by ``subscribe``; ``cancel()`` detaches the listener."""

    def __init__(self, detach: Callable[[], None]) -> None:
        self._detach = detach
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._detach()


class SettingsStore:
    """Holds the live ``MonitorSettings`` and notifies listeners on change."""

    def __init__(self, initial: MonitorSettings | None = None) -> None:
        self._settings = initial or MonitorSettings()
        self._listeners: list[SettingsListener] = []

    @property
    def current(self) -> MonitorSettings:
        return self._settings

    def update(self, **changes: object) -> MonitorSettings:
        """Validate and apply a partial update.

        Raises:
            pydantic.ValidationError: If any value is outside the allowed set.
        """
        merged = {**self._settings.model_dump(), **changes}
        new = MonitorSettings.model_validate(merged)
        old, self._settings = self._settings, new
        if new != old:
            logger.info("Monitor settings changed: %s", _diff(old, new))
            for listener in list(self._listeners):
                try:
                    listener(old, new)
                except Exception as e:
                    logger.error("Settings listener failed: %s", e)
        return new

    def replace(self, settings: MonitorSettings) -> MonitorSettings:
        return self.update(**settings.model_dump())

    def subscribe(self, listener: SettingsListener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(lambda: self._listeners.remove(listener))


def _diff(old: MonitorSettings, new: MonitorSettings) -> dict[str, object]:
    before = old.model_dump()
    return {k: v for k, v in new.model_dump().items() if before.get(k) != v}


__all__ = [
    "CaptureConfig",
    "LoggingConfig",
    "MonitorSettings",
    "PerceptionConfig",
    "ServerConfig",
    "Settings",
    "SettingsStore",
    "SpeechConfig",
    "Subscription",
    "ValidationError",
    "load_settings",
]
