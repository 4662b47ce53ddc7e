# tests/test_cli_integration.py
"""CLI integration tests using Typer's CliRunner."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from baluflix.cli import app


runner = CliRunner()


@pytest.fixture
def mock_service(service, media_store):
    """Patch the CLI factories to return in-memory backends."""
    with patch("baluflix.cli._get_service", return_value=service):
        with patch("baluflix.cli._get_media", return_value=media_store):
            yield service


class TestCLI:
    def test_add_and_list(self, mock_service):
        result = runner.invoke(app, ["add", "https://youtu.be/abc123", "--title", "Intro"])
        assert result.exit_code == 0
        assert "Added" in result.stdout
        assert "abc123" in result.stdout

        result = runner.invoke(app, ["list", "--all"])
        assert result.exit_code == 0
        assert "Intro" in result.stdout
        assert "draft" in result.stdout

    def test_list_empty(self, mock_service):
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "empty" in result.stdout.lower()

    def test_add_bad_type(self, mock_service):
        result = runner.invoke(app, ["add", "abc123", "--title", "X", "--type", "Podcast"])
        assert result.exit_code == 1

    def test_publish(self, mock_service):
        video = mock_service.create_from_reference("Intro", "abc123")
        result = runner.invoke(app, ["publish", video.key])
        assert result.exit_code == 0
        assert "Published" in result.stdout

        result = runner.invoke(app, ["list"])
        assert video.key in result.stdout

    def test_publish_unknown(self, mock_service):
        result = runner.invoke(app, ["publish", "nonexistent"])
        assert result.exit_code == 1

    def test_upload(self, mock_service, media_store, tmp_path):
        src = tmp_path / "clip.mp4"
        src.write_bytes(b"0123456789")
        result = runner.invoke(app, ["upload", str(src), "--title", "Local clip"])
        assert result.exit_code == 0, result.stdout
        assert "Uploaded" in result.stdout
        [video] = mock_service.list_all()
        assert video.title == "Local clip"
        assert media_store.exists(video.filename)

    def test_token(self, auth, credentials):
        with patch("baluflix.server.build_auth", return_value=auth):
            result = runner.invoke(
                app, ["token", "--username", credentials[0], "--password", credentials[1]]
            )
        assert result.exit_code == 0
        token = result.stdout.strip()
        assert auth.authorize(token).username == credentials[0]

    def test_token_rejected(self, auth):
        with patch("baluflix.server.build_auth", return_value=auth):
            result = runner.invoke(app, ["token", "--username", "admin", "--password", "nope"])
        assert result.exit_code == 1

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "baluflix" in result.output.lower()
