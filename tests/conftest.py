from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest

from app.config import AppSettings, CanvasSettings, LayoutSettings


def _clear_dsync_env() -> None:
    for key in list(os.environ):
        if key.startswith("DSYNC_"):
            os.environ.pop(key, None)


_clear_dsync_env()


@pytest.fixture(autouse=True)
def clear_dsync_env() -> Generator[None, None, None]:
    _clear_dsync_env()
    yield
    _clear_dsync_env()


@pytest.fixture
def canvas_settings() -> CanvasSettings:
    return CanvasSettings(
        history_limit=10,
        snap_threshold=20.0,
        max_stroke_points=50,
        default_smoothing=0.5,
    )


@pytest.fixture
def canvas_settings_factory(
    canvas_settings: CanvasSettings,
) -> Callable[..., CanvasSettings]:
    def _factory(**overrides: object) -> CanvasSettings:
        return canvas_settings.model_copy(update=overrides)

    return _factory


@pytest.fixture
def layout_settings() -> LayoutSettings:
    return LayoutSettings()


@pytest.fixture
def app_settings(canvas_settings: CanvasSettings, layout_settings: LayoutSettings) -> AppSettings:
    return AppSettings(canvas=canvas_settings, layout=layout_settings)


@pytest.fixture
def app_settings_factory(
    canvas_settings_factory: Callable[..., CanvasSettings],
    layout_settings: LayoutSettings,
) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        return AppSettings(canvas=canvas_settings_factory(**overrides), layout=layout_settings)

    return _factory
