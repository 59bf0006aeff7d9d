"""Project-wide configuration using dynaconf."""

import os
from pathlib import Path

from dynaconf import Dynaconf

_root = Path(os.environ.get("APP_ROOT_PATH", "."))

settings = Dynaconf(
    envvar_prefix="APP",
    root_path=_root,
    settings_files=["settings.toml", ".secrets.toml"],
    environments=True,
    load_dotenv=True,
    default_env="development",
    # Speech API
    lfasr_host="https://raasr.xfyun.cn/api",
    lfasr_app_id="",
    lfasr_secret_key="",
    lfasr_max_file_bytes=100 * 1024 * 1024,
    lfasr_piece_size_bytes=10 * 1024 * 1024,
    lfasr_poll_interval_seconds=5.0,
    lfasr_poll_timeout_seconds=120.0,
    lfasr_request_timeout_seconds=30.0,
    lfasr_default_sample_rate=16000,
    # Transcription option defaults, sent with every prepare call unless blank
    lfasr_option_language="cn",
    lfasr_option_lfasr_type="",
    lfasr_option_has_participle="",
    lfasr_option_max_alternatives="",
    lfasr_option_speaker_number="",
    lfasr_option_has_seperate="",
    lfasr_option_role_type="",
    lfasr_option_pd="",
    lfasr_option_hot_word="",
    # Client
    client_server_url="http://localhost:5001",
    client_target_sample_rate=16000,
    client_timeout_seconds=300.0,
)
