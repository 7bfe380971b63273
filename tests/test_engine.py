"""
End-to-end tests for the git content source.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

from gitsource.core.config import PipelineConfig, SourceOptions
from gitsource.core.exceptions import ConfigurationError, RemoteMismatchError
from gitsource.core.pipeline import StageStatus
from gitsource.content.store import ContentStore
from gitsource.engine import GitSource, load_sources

from gitrepo import GIT_AVAILABLE, RemoteRepo, git

FILES = {
    "index.md": "---\ntitle: Home\n---\n# Home\n",
    "blog/index.md": "---\ntitle: Blog\n---\n",
    "blog/first.md": "---\ntitle: First Post\ntags: [python, git]\n---\nBody",
    "blog/second.md": "---\ntitle: Second Post\ntags: [python]\n---\nBody",
    "assets/logo.svg": "<svg/>",
}


@unittest.skipUnless(GIT_AVAILABLE, "git is not installed")
class TestGitSource(unittest.TestCase):
    """Tests for the full sync, import and reference pipeline."""

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        self.remote = RemoteRepo(self.tmpdir, FILES)
        self.base_dir = self.tmpdir / "mirrors"
        self.config = PipelineConfig()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def options(self, **overrides) -> SourceOptions:
        values = {
            "remote": self.remote.url,
            "base_dir": str(self.base_dir),
            "target": "site",
            "pattern": ["**/*.md"],
            "type_name": "Post",
            "refs": {"tags": {"type_name": "Tag", "create": True}},
        }
        values.update(overrides)
        return SourceOptions(**values)

    def test_load(self):
        """Test importing a repository with tags."""
        store = ContentStore()

        state = GitSource(self.options(), store, self.config).load()

        self.assertTrue(state.succeeded)
        self.assertEqual(state.get_stage_status("references"), StageStatus.COMPLETED)

        posts = store.get_collection("Post")
        self.assertEqual(len(posts), 4)
        self.assertEqual(
            sorted(node.path for node in posts.nodes()),
            ["/", "/blog", "/blog/first", "/blog/second"],
        )

        tags = store.get_collection("Tag")
        self.assertEqual(sorted(node.id for node in tags.nodes()), ["git", "python"])
        self.assertEqual(len(store.get_referrers(tags.get_node("python"))), 2)
        self.assertIsNone(state.data["sync"].web_link)

    def test_ids_are_stable(self):
        """Test that a second run reproduces the same node ids."""
        first = ContentStore()
        second = ContentStore()

        GitSource(self.options(), first, self.config).load()
        self.remote.commit({"blog/first.md": "---\ntitle: Edited\n---\n"})
        GitSource(self.options(), second, self.config).load()

        first_ids = {node.file_info.path: node.id for node in first.get_collection("Post").nodes()}
        second_ids = {node.file_info.path: node.id for node in second.get_collection("Post").nodes()}
        self.assertEqual(first_ids, second_ids)

        edited = second.get_collection("Post").get_node(first_ids["blog/first.md"])
        self.assertEqual(edited.title, "Edited")

    def test_mismatched_mirror_raises(self):
        """Test that a mirror of another remote is a configuration error."""
        other = RemoteRepo(self.tmpdir, {"other.md": "x"}, name="other")
        git("clone", other.url, str(self.base_dir / "site"))

        with self.assertRaises(RemoteMismatchError):
            GitSource(self.options(), ContentStore(), self.config).load()

        self.assertTrue((self.base_dir / "site" / "other.md").exists())

    def test_run_keeps_failure_on_state(self):
        """Test that run reports failures without raising."""
        state = GitSource(
            self.options(private_repo=True), ContentStore(), self.config
        ).run()

        self.assertIsInstance(state.failure, ConfigurationError)
        self.assertEqual(state.get_stage_status("sync"), StageStatus.FAILED)
        self.assertEqual(state.get_stage_status("import"), StageStatus.PENDING)

    def test_unreachable_remote_imports_nothing(self):
        """Test that a network failure degrades to an empty import."""
        missing = (self.tmpdir / "missing.git").as_uri()
        store = ContentStore()

        state = GitSource(self.options(remote=missing), store, self.config).load()

        self.assertTrue(state.succeeded)
        self.assertTrue(state.stage_results["sync"].metrics["degraded"])
        self.assertEqual(state.stage_results["import"].metrics["nodes_created"], 0)
        self.assertEqual(store.node_count, 0)

    def test_rerun_drops_deleted_files(self):
        """Test that a second load into the same store forgets files deleted upstream."""
        store = ContentStore()
        GitSource(self.options(), store, self.config).load()

        git("rm", "blog/second.md", cwd=self.remote.work)
        git("commit", "-m", "remove second", cwd=self.remote.work)
        git("push", "origin", "main", cwd=self.remote.work)
        state = GitSource(self.options(), store, self.config).load()

        posts = store.get_collection("Post")
        self.assertEqual(
            sorted(node.path for node in posts.nodes()), ["/", "/blog", "/blog/first"]
        )
        self.assertEqual(state.stage_results["import"].metrics["nodes_removed"], 4)

        tags = store.get_collection("Tag")
        self.assertEqual(len(store.get_referrers(tags.get_node("python"))), 1)
        self.assertEqual(store.edge_count, 2)

    def test_load_sources_continues_after_failure(self):
        """Test that one failing source does not stop the others."""
        store = ContentStore()
        sources = [
            self.options(target="broken", private_repo=True),
            self.options(target="site", type_name="Page", refs={}),
        ]

        states = load_sources(sources, store=store, config=self.config)

        self.assertFalse(states[0].succeeded)
        self.assertTrue(states[1].succeeded)
        self.assertEqual(len(store.get_collection("Page")), 4)

    def test_dict_options(self):
        """Test that plain dictionaries are accepted as options."""
        source = GitSource(
            {
                "remote": self.remote.url,
                "baseDir": str(self.base_dir),
                "typeName": "Doc",
                "pattern": "blog/*.md",
            },
            config=self.config,
        )

        source.load()

        self.assertTrue((self.base_dir / "remote").is_dir())
        self.assertEqual(len(source.store.get_collection("Doc")), 3)


class TestInvalidRemote(unittest.TestCase):
    """Tests for remotes that can't be synced at all."""

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def load(self, remote: str):
        store = ContentStore()
        state = GitSource(
            {"remote": remote, "target": "mirror", "baseDir": str(self.tmpdir)},
            store,
            PipelineConfig(),
        ).load()
        return state, store

    def test_malformed_url_degrades(self):
        """Test that a malformed URL imports nothing instead of raising."""
        state, store = self.load("not a url")

        self.assertTrue(state.succeeded)
        self.assertTrue(state.stage_results["sync"].metrics["degraded"])
        self.assertEqual(state.stage_results["import"].metrics["nodes_created"], 0)
        self.assertEqual(store.node_count, 0)
        self.assertFalse((self.tmpdir / "mirror").exists())

    def test_missing_local_repository_degrades(self):
        """Test that a local path that does not exist imports nothing."""
        state, store = self.load(str(self.tmpdir / "gone.git"))

        self.assertTrue(state.succeeded)
        self.assertIn("Invalid repository URL", state.data["sync"].error)
        self.assertEqual(store.node_count, 0)


if __name__ == "__main__":
    unittest.main()
