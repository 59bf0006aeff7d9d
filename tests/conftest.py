"""Shared test fixtures."""

from typing import Any

import pytest

from lfasr.models import LfasrConfig


@pytest.fixture
def lfasr_config() -> LfasrConfig:
    return LfasrConfig(
        host="https://lfasr.test/api",
        app_id="app-123",
        secret_key="secret-key",
        max_file_bytes=1024,
        piece_size_bytes=4,
        poll_interval=0.0,
        poll_timeout=0.0,
        request_timeout=5.0,
        option_defaults={"language": "cn", "has_participle": ""},
    )


@pytest.fixture
def upstream_segments() -> list[dict[str, Any]]:
    return [
        {
            "bg": "0",
            "ed": "1200",
            "onebest": " Hello there. ",
            "speaker": "1",
            "wordsResultList": [
                {"wordBg": "5", "wordEd": "40", "wordsName": "Hello", "wc": "0.9800"},
                {"wordBg": "41", "wordEd": "90", "wordsName": "there", "wc": "0.9100"},
            ],
        },
        {"bg": "1200", "ed": "1500", "onebest": "   ", "speaker": "1"},
        {"bg": "1500", "ed": "3000", "onebest": "General Kenobi.", "speaker": "2"},
    ]


def _envelope(data: Any = None, ok: Any = 0, err_no: int = 0, failed: str | None = None) -> dict[str, Any]:
    return {"ok": ok, "err_no": err_no, "failed": failed, "data": data}


@pytest.fixture
def envelope():
    """Builds speech API response envelopes."""
    return _envelope
