import pytest
from pydantic import ValidationError

from monobot.app.core.config_core import Settings


def _settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


def test_csv_ids_are_parsed_and_junk_is_dropped():
    settings = _settings(TELEGRAM_ADMINS=" 111, 222 ,abc", TELEGRAM_CHATS="-100500")

    assert settings.admin_ids == [111, 222]
    assert settings.chat_ids == [-100500]


def test_mono_tokens_keep_order():
    settings = _settings(MONO_TOKENS="tok-b,tok-a,")

    assert settings.mono_tokens == ["tok-b", "tok-a"]


def test_schedule_time_is_optional():
    assert _settings().schedule_cron is None
    assert _settings(SCHEDULE_TIME="  ").schedule_cron is None


@pytest.mark.parametrize(
    "value, cron",
    [
        ("0 21 * * *", "0 21 * * *"),
        ("30  9 * * 1-5", "30 9 * * 1-5"),
        ("21:05", "5 21 * * *"),
        ("7:00", "0 7 * * *"),
    ],
)
def test_schedule_time_accepts_cron_and_hhmm(value, cron):
    assert _settings(SCHEDULE_TIME=value).schedule_cron == cron


@pytest.mark.parametrize("value", ["25:00", "9-30", "noon", "61 21 * * *", "0 21 * *"])
def test_bad_schedule_time_is_rejected(value):
    with pytest.raises(ValidationError):
        _settings(SCHEDULE_TIME=value)


def test_rate_limit_policy_accepts_only_known_values():
    assert _settings(RATE_LIMIT_POLICY="WAIT").RATE_LIMIT_POLICY == "wait"
    with pytest.raises(ValidationError):
        _settings(RATE_LIMIT_POLICY="retry")


def test_webhook_path_gets_leading_slash():
    assert _settings(WEBHOOK_PATH="hook").WEBHOOK_PATH == "/hook"


def test_debug_dump_hides_secrets():
    settings = _settings(TELEGRAM_TOKEN="123:secret", MONO_TOKENS="mono-secret")
    dump = str(settings.debug_dump())

    assert "123:secret" not in dump
    assert "mono-secret" not in dump
    assert set(settings.secret_values()) >= {"123:secret", "mono-secret"}
