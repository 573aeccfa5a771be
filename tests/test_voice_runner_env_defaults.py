from jarvice_interview.config import Settings


def test_voice_runner_env_defaults_are_used(monkeypatch):
    monkeypatch.setenv("JARVICE_ROLE_TYPE", "data engineering")
    monkeypatch.setenv("JARVICE_LIVE_MODEL", "gemini-live-test")
    monkeypatch.setenv("JARVICE_LIVE_VOICE", "Puck")
    monkeypatch.setenv("JARVICE_API_BASE_URL", "http://backend.test")
    monkeypatch.setenv("JARVICE_CONNECT_TIMEOUT_S", "3")
    monkeypatch.setenv("JARVICE_SAVE_DELAY_S", "0")

    from scripts.voice_interview import build_parser

    args = build_parser().parse_args([])
    assert args.role_type == "data engineering"
    assert args.model == "gemini-live-test"
    assert args.voice == "Puck"
    assert args.api_base_url == "http://backend.test"
    assert args.connect_timeout == 3.0
    assert args.save_delay == 0.0


def test_voice_runner_flags_override_settings(monkeypatch):
    for name in ("JARVICE_LIVE_MODEL", "JARVICE_LIVE_VOICE", "JARVICE_API_BASE_URL"):
        monkeypatch.delenv(name, raising=False)

    from scripts.voice_interview import build_parser, settings_from_args

    base = Settings(live_model="base-model", live_voice="Zephyr", api_base_url="http://base.test")
    args = build_parser().parse_args(["--voice", "Kore", "--frame-size", "2048", "--connect-timeout", "7.5"])
    settings = settings_from_args(args, base=base)

    assert settings.live_model == "base-model"
    assert settings.live_voice == "Kore"
    assert settings.api_base_url == "http://base.test"
    assert settings.frame_size == 2048
    assert settings.connect_timeout_s == 7.5
    # The base instance is left untouched.
    assert base.live_voice == "Zephyr"


def test_voice_runner_frame_size_defaults_to_settings(monkeypatch):
    monkeypatch.delenv("JARVICE_FRAME_SIZE", raising=False)

    from scripts.voice_interview import build_parser, settings_from_args

    base = Settings(frame_size=1024)
    args = build_parser().parse_args([])
    assert args.frame_size is None
    assert settings_from_args(args, base=base).frame_size == 1024

    monkeypatch.setenv("JARVICE_FRAME_SIZE", "2048")
    assert build_parser().parse_args([]).frame_size == 2048
