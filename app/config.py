from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from adapters.layout.grid import LayoutConfig
from domain.models import (
    DEFAULT_EDGE_COLOR,
    DEFAULT_NODE_COLOR,
    DEFAULT_NODE_SIZE,
    MIN_NODE_SIZE,
    Size,
)
from domain.services.diagram_session import SessionConfig
from domain.services.history import DEFAULT_HISTORY_LIMIT

DEFAULT_CONFIG_PATH = Path("config/diagram.yaml")


class SizeSettings(BaseModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)

    def to_size(self) -> Size:
        return Size(self.width, self.height)


class CanvasSettings(BaseModel):
    history_limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=1)
    default_node_size: SizeSettings = SizeSettings(
        width=DEFAULT_NODE_SIZE.width, height=DEFAULT_NODE_SIZE.height
    )
    min_node_size: SizeSettings = SizeSettings(
        width=MIN_NODE_SIZE.width, height=MIN_NODE_SIZE.height
    )
    default_node_color: str = DEFAULT_NODE_COLOR
    default_edge_color: str = DEFAULT_EDGE_COLOR
    snap_threshold: float = Field(default=20.0, ge=0)
    max_stroke_points: int = Field(default=2000, ge=2)
    default_smoothing: float = 0.5
    staging_columns: int = Field(default=3, ge=1)
    staging_gap: float = Field(default=30.0, ge=0)
    place_all_origin_x: float = 50.0
    place_all_offset_y: float = 60.0

    @field_validator("default_smoothing", mode="after")
    @classmethod
    def clamp_smoothing(cls, value: float) -> float:
        return max(0.0, min(1.0, value))

    @field_validator("default_node_color", "default_edge_color", mode="before")
    @classmethod
    def normalize_color(cls, value: object) -> str:
        return str(value or "").strip().lower()

    def to_session_config(self) -> SessionConfig:
        return SessionConfig(
            default_node_size=self.default_node_size.to_size(),
            min_node_size=self.min_node_size.to_size(),
            default_node_color=self.default_node_color or DEFAULT_NODE_COLOR,
            default_edge_color=self.default_edge_color or DEFAULT_EDGE_COLOR,
            snap_threshold=self.snap_threshold,
            max_stroke_points=self.max_stroke_points,
            default_smoothing=self.default_smoothing,
            staging_columns=self.staging_columns,
            staging_gap=self.staging_gap,
            place_all_origin_x=self.place_all_origin_x,
            place_all_offset_y=self.place_all_offset_y,
        )


class LayoutSettings(BaseModel):
    block_size: SizeSettings = SizeSettings(
        width=DEFAULT_NODE_SIZE.width, height=DEFAULT_NODE_SIZE.height
    )
    padding: float = Field(default=40.0, ge=0)
    gap_main: float = Field(default=80.0, ge=0)
    gap_cross: float = Field(default=50.0, ge=0)

    def to_layout_config(self) -> LayoutConfig:
        return LayoutConfig(
            node_size=self.block_size.to_size(),
            padding=self.padding,
            gap_main=self.gap_main,
            gap_cross=self.gap_cross,
        )


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DSYNC_", env_nested_delimiter="__")

    canvas: CanvasSettings = CanvasSettings()
    layout: LayoutSettings = LayoutSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("DSYNC_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
