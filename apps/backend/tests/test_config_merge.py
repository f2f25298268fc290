import pytest
from pydantic import ValidationError

from spycam.config import PipelineConfig, merge_pipeline_config


def test_config_defaults_match_display_constraints() -> None:
    cfg = PipelineConfig()

    assert cfg.frame_interval_ms == 4000
    assert cfg.rotation_degrees == 270
    assert (cfg.target_width, cfg.target_height) == (280, 280)
    assert cfg.threshold == 128
    assert cfg.size_cap_bytes == 25_000
    assert cfg.display.sprite_msg_code == 0x20
    assert cfg.display.teardown_msg_code == 0x10
    assert set(cfg.diagnostics.model_dump()) == {"enabled"}


def test_config_merge_nested() -> None:
    cfg = PipelineConfig()

    updated = merge_pipeline_config(
        cfg,
        {
            "threshold": 100,
            "diagnostics": {
                "enabled": False,
            },
        },
    )

    assert updated.threshold == 100
    assert updated.diagnostics.enabled is False
    assert updated.display.sprite_msg_code == 0x20


def test_config_rotation_normalised_and_validated() -> None:
    assert PipelineConfig(rotation_degrees=-90).rotation_degrees == 270

    with pytest.raises(ValidationError):
        merge_pipeline_config(PipelineConfig(), {"rotation_degrees": 45})


def test_config_interval_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPYCAM_FRAME_INTERVAL_MS", "1500")

    assert PipelineConfig().frame_interval_ms == 1500


def test_config_patch_cannot_redirect_diagnostic_output() -> None:
    with pytest.raises(ValidationError):
        merge_pipeline_config(PipelineConfig(), {"diagnostics": {"directory": "/tmp/elsewhere"}})

    with pytest.raises(ValidationError):
        merge_pipeline_config(PipelineConfig(), {"diagnostics": {"filename": "../owned.txt"}})

    with pytest.raises(ValidationError):
        merge_pipeline_config(PipelineConfig(), {"unknown_knob": 1})
