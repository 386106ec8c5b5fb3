import json
from types import SimpleNamespace

import pytest

from mfasession import cli
from mfasession.errors import SessionTokenUnavailable
from mfasession.sts.issuer import TemporaryCredential


PROFILE = {
    "region": "eu-west-1",
    "aws_access_key_id": "AKIALONGTERM",
    "aws_secret_access_key": "long-term-secret",
    "serial": "arn:aws:iam::123456789012:mfa/me",
    "mfa_secret_key": "JBSWY3DPEHPK3PXP",
}


@pytest.fixture
def paths(tmp_path):
    settings = tmp_path / "package.json"
    settings.write_text(json.dumps({"profiles": {"default": PROFILE}}), encoding="utf-8")
    return {
        "settings": settings,
        "config": tmp_path / "aws" / "config",
        "credentials": tmp_path / "aws" / "credentials",
    }


def _argv(paths, *rest):
    return [
        "--settings",
        str(paths["settings"]),
        "--config-file",
        str(paths["config"]),
        "--credentials-file",
        str(paths["credentials"]),
        *rest,
    ]


class _StubIssuer:
    result = TemporaryCredential(
        aws_access_key_id="ASIATEMP",
        aws_secret_access_key="temp-secret",
        aws_session_token="a-very-long-session-token-value-0123456789",
        expiration="2026-10-19T10:00:00+00:00",
    )
    error = None

    def __init__(self, timeout=30.0, duration_seconds=None):
        self.timeout = timeout

    def issue(self, code, serial, profile_name, profile):
        if self.error is not None:
            raise self.error
        return self.result


def test_renew_writes_files_and_masks_output(paths, monkeypatch, capsys):
    monkeypatch.setattr(cli, "AwsCliIssuer", _StubIssuer)
    assert cli.main(_argv(paths, "renew")) == cli.EXIT_OK

    output = capsys.readouterr().out
    assert "TOKEN RENEWED SUCCESSFULLY" in output
    assert "a-very-lon...0123456789" in output
    assert "aws_session_token = a-very-long-session-token-value-0123456789" in paths["credentials"].read_text(
        encoding="utf-8"
    )
    assert "[default]" in paths["config"].read_text(encoding="utf-8")


def test_renew_issuer_failure_exit_code(paths, monkeypatch, capsys):
    class FailingIssuer(_StubIssuer):
        error = SessionTokenUnavailable("MultiFactorAuthentication failed")

    monkeypatch.setattr(cli, "AwsCliIssuer", FailingIssuer)
    assert cli.main(_argv(paths, "renew")) == cli.EXIT_ERROR
    assert "MultiFactorAuthentication failed" in capsys.readouterr().out
    assert not paths["credentials"].exists()


def test_renew_unsaved_credential_exit_code(paths, tmp_path, monkeypatch, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    paths["credentials"] = blocker / "credentials"
    paths["config"] = blocker / "config"
    monkeypatch.setattr(cli, "AwsCliIssuer", _StubIssuer)

    assert cli.main(_argv(paths, "renew")) == cli.EXIT_NOT_SAVED
    output = capsys.readouterr().out
    assert "export AWS_SESSION_TOKEN=a-very-long-session-token-value-0123456789" in output


def test_renew_unknown_profile(paths, capsys):
    assert cli.main(_argv(paths, "renew", "prod")) == cli.EXIT_ERROR
    assert "Profile [prod] does not exist" in capsys.readouterr().out


def test_code_prints_six_digits(paths, capsys):
    assert cli.main(_argv(paths, "code")) == cli.EXIT_OK
    first_line = capsys.readouterr().out.splitlines()[0]
    assert len(first_line) == 6 and first_line.isdigit()


def test_show_stored_credentials(paths, capsys):
    paths["credentials"].parent.mkdir(parents=True)
    paths["credentials"].write_text("[default]\nregion = eu-west-1\n", encoding="utf-8")
    assert cli.main(_argv(paths, "show")) == cli.EXIT_OK
    assert "REGION: eu-west-1" in capsys.readouterr().out


def test_show_missing_profile(paths, capsys):
    assert cli.main(_argv(paths, "show", "nope")) == cli.EXIT_ERROR


def test_provision_uri_without_qr(paths, capsys):
    assert cli.main(_argv(paths, "provision-uri", "--account", "me@example.com", "--no-qr")) == cli.EXIT_OK
    output = capsys.readouterr().out
    assert "otpauth://totp/" in output
    assert "secret=JBSWY3DPEHPK3PXP" in output


def test_code_uses_one_timestamp(paths, monkeypatch, capsys):
    monkeypatch.setattr(cli, "time", SimpleNamespace(time=lambda: 1700000009.5))
    assert cli.main(_argv(paths, "code")) == cli.EXIT_OK
    assert capsys.readouterr().out.splitlines() == ["324550", "Valid for 1s."]
