"""
Unit tests for remote descriptors and URL validation.
"""

import base64
import tempfile
import unittest

from gitsource.core.exceptions import ConfigurationError
from gitsource.sync.remote import CredentialedRemote, parse_remote_url
from gitsource.utils.validation import validate_url


class TestParseRemoteUrl(unittest.TestCase):
    """Tests for remote URL parsing."""

    def test_https_url(self):
        """Test parsing an https URL."""
        parsed = parse_remote_url("https://github.com/user/docs.git")

        self.assertEqual(parsed.host, "github.com")
        self.assertEqual(parsed.owner, "user")
        self.assertEqual(parsed.name, "docs")
        self.assertEqual(parsed.web_link, "https://github.com/user/docs")

    def test_scp_like_url(self):
        """Test parsing an scp-like SSH remote."""
        parsed = parse_remote_url("git@gitlab.com:group/sub/site.git")

        self.assertEqual(parsed.host, "gitlab.com")
        self.assertEqual(parsed.owner, "group/sub")
        self.assertEqual(parsed.name, "site")
        self.assertEqual(parsed.web_link, "https://gitlab.com/group/sub/site")

    def test_ssh_url_with_port(self):
        """Test parsing an ssh:// URL."""
        parsed = parse_remote_url("ssh://git@example.com:2222/team/repo")

        self.assertEqual(parsed.host, "example.com")
        self.assertEqual(parsed.name, "repo")

    def test_file_url(self):
        """Test that local remotes have no web link."""
        parsed = parse_remote_url("file:///srv/git/content.git")

        self.assertIsNone(parsed.host)
        self.assertEqual(parsed.name, "content")
        self.assertIsNone(parsed.web_link)

    def test_local_path(self):
        """Test parsing a plain path."""
        self.assertEqual(parse_remote_url("/srv/git/content/").name, "content")


class TestCredentialedRemote(unittest.TestCase):
    """Tests for the remote descriptor."""

    URL = "https://github.com/user/private.git"

    def test_defaults(self):
        """Test default values."""
        remote = CredentialedRemote(url=self.URL)

        self.assertIsNone(remote.branch)
        self.assertEqual(remote.shallow_depth, 1)
        self.assertFalse(remote.has_credentials)
        self.assertEqual(remote.transport_options(), [])

    def test_username_without_token(self):
        """Test that credentials must come in pairs."""
        with self.assertRaises(ConfigurationError):
            CredentialedRemote(url=self.URL, username="bot")

        with self.assertRaises(ConfigurationError):
            CredentialedRemote(url=self.URL, token="abc")

    def test_invalid_url(self):
        """Test that an invalid URL is rejected."""
        with self.assertRaises(ConfigurationError):
            CredentialedRemote(url="not a url")

    def test_negative_depth(self):
        """Test that a negative depth is rejected."""
        with self.assertRaises(ConfigurationError):
            CredentialedRemote(url=self.URL, shallow_depth=-1)

    def test_blank_branch(self):
        """Test that a blank branch is rejected."""
        with self.assertRaises(ConfigurationError):
            CredentialedRemote(url=self.URL, branch="  ")

    def test_transport_options(self):
        """Test credentials and proxy become transient -c options."""
        remote = CredentialedRemote(
            url=self.URL,
            username="bot",
            token="s3cret",
            proxy_url="http://proxy.local:3128",
        )

        options = remote.transport_options()
        expected = base64.b64encode(b"bot:s3cret").decode("ascii")

        self.assertEqual(options[0], "-c")
        self.assertEqual(options[1], f"http.extraHeader=Authorization: Basic {expected}")
        self.assertEqual(options[2:], ["-c", "http.proxy=http://proxy.local:3128"])

    def test_repr_hides_token(self):
        """Test that the token never appears in repr."""
        remote = CredentialedRemote(url=self.URL, username="bot", token="s3cret")

        self.assertNotIn("s3cret", repr(remote))
        self.assertIn("***", repr(remote))


class TestValidateUrl(unittest.TestCase):
    """Tests for URL validation."""

    def test_valid_urls(self):
        """Test accepted remote forms."""
        for url in [
            "https://github.com/user/repo",
            "http://git.example.com/team/repo.git",
            "git://example.com/repo.git",
            "ssh://git@example.com/team/repo.git",
            "git@github.com:user/repo.git",
            "file:///srv/git/repo.git",
        ]:
            is_valid, error = validate_url(url)
            self.assertTrue(is_valid, url)
            self.assertIsNone(error)

    def test_local_directory(self):
        """Test that an existing directory is a valid remote."""
        with tempfile.TemporaryDirectory() as tmpdir:
            is_valid, _ = validate_url(tmpdir)
            self.assertTrue(is_valid)

    def test_invalid_urls(self):
        """Test rejected inputs."""
        for url in ["", "   ", "https://github.com", "ftp://example.com/repo", "/no/such/dir"]:
            is_valid, error = validate_url(url)
            self.assertFalse(is_valid, url)
            self.assertIsNotNone(error)


if __name__ == "__main__":
    unittest.main()
