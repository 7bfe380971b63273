"""
Unit tests for the content store.
"""

import json
import tempfile
import unittest
from pathlib import Path

from gitsource.core.exceptions import CollectionNotFoundError, ConfigurationError
from gitsource.content.store import ContentStore, FileInfo
from gitsource.content.transformers import parse_front_matter, register_default_transformers
from gitsource.utils.text import slugify


class TestSlugify(unittest.TestCase):
    """Tests for slug normalization."""

    def test_slugify(self):
        """Test common inputs."""
        self.assertEqual(slugify("Hello World"), "hello-world")
        self.assertEqual(slugify("getting_started"), "getting-started")
        self.assertEqual(slugify("camelCaseName"), "camel-case-name")
        self.assertEqual(slugify("Crème Brûlée!"), "creme-brulee")
        self.assertEqual(slugify("  --v1.2--  "), "v1-2")
        self.assertEqual(slugify("___"), "")


class TestContentStore(unittest.TestCase):
    """Tests for collections and nodes."""

    def setUp(self):
        self.store = ContentStore(name="test")

    def test_add_collection_is_idempotent(self):
        """Test that adding a type twice returns the same collection."""
        first = self.store.add_collection("Post")
        second = self.store.add_collection("Post", route="/blog/:slug")

        self.assertIs(first, second)
        self.assertEqual(first.route, "/blog/:slug")

    def test_get_missing_collection(self):
        """Test that unknown collections raise."""
        with self.assertRaises(CollectionNotFoundError):
            self.store.get_collection("Nope")

    def test_add_node_replaces_by_id(self):
        """Test that nodes are inserted or updated by id."""
        posts = self.store.add_collection("Post")

        posts.add_node("a", title="First", path="/a")
        posts.add_node("a", title="Second", path="/a")

        self.assertEqual(len(posts), 1)
        self.assertEqual(self.store.node_count, 1)
        self.assertEqual(self.store.get_node("Post", "a").title, "Second")

    def test_same_id_in_different_collections(self):
        """Test that ids are scoped to a collection."""
        self.store.add_collection("Post").add_node("x")
        self.store.add_collection("Tag").add_node("x")

        self.assertEqual(self.store.node_count, 2)

    def test_route_template(self):
        """Test path resolution from a collection route."""
        tags = self.store.add_collection("Tag", route="/tag/:slug")

        node = tags.add_node("Machine Learning", title="Machine Learning")

        self.assertEqual(node.path, "/tag/machine-learning")

    def test_route_template_with_field(self):
        """Test route parameters taken from fields."""
        posts = self.store.add_collection("Post", route="/:year/:id")

        node = posts.add_node("hello", fields={"year": 2024})

        self.assertEqual(node.path, "/2024/hello")

    def test_route_template_missing_param(self):
        """Test that an unknown route parameter is a configuration error."""
        posts = self.store.add_collection("Post", route="/:category/:slug")

        with self.assertRaises(ConfigurationError):
            posts.add_node("hello")

    def test_explicit_path_wins_over_route(self):
        """Test that a given path is kept."""
        posts = self.store.add_collection("Post", route="/blog/:slug")

        self.assertEqual(posts.add_node("a", path="/custom").path, "/custom")

    def test_transformer_fields(self):
        """Test that registered transformers fill node fields."""
        register_default_transformers(self.store)
        posts = self.store.add_collection("Post")

        node = posts.add_node(
            "a",
            mime_type="text/markdown",
            content="---\ntitle: Hello\ntags: [python, git]\n---\nBody\n",
        )

        self.assertEqual(node.title, "Hello")
        self.assertEqual(node.fields["tags"], ["python", "git"])
        self.assertTrue(node.content.endswith("Body\n"))

    def test_edges(self):
        """Test reference edges between nodes."""
        post = self.store.add_collection("Post").add_node("p1")
        tag = self.store.add_collection("Tag").add_node("python")

        self.assertTrue(self.store.add_edge(post, "Tag", "python", "tags"))
        self.assertFalse(self.store.add_edge(post, "Tag", "missing", "tags"))

        self.assertEqual(self.store.edge_count, 1)
        self.assertEqual(self.store.get_references(post), [tag])
        self.assertEqual(self.store.get_referrers(tag), [post])
        edge = next(self.store.iter_edges())
        self.assertEqual(edge.field_name, "tags")

    def test_make_uid_is_stable(self):
        """Test that ids are deterministic for a given string."""
        self.assertEqual(self.store.make_uid("docs/a.md"), self.store.make_uid("docs/a.md"))
        self.assertNotEqual(self.store.make_uid("docs/a.md"), self.store.make_uid("docs/b.md"))
        self.assertEqual(len(self.store.make_uid("x")), 32)

    def test_lookup_mime(self):
        """Test MIME lookup by file name."""
        self.assertEqual(self.store.lookup_mime("post.md"), "text/markdown")
        self.assertEqual(self.store.lookup_mime("data.json"), "application/json")
        self.assertIsNone(self.store.lookup_mime("file.unknownext"))

    def test_statistics(self):
        """Test store statistics."""
        self.store.add_collection("Post").add_node("a")
        self.store.add_collection("Tag")

        stats = self.store.get_statistics()

        self.assertEqual(stats["node_count"], 1)
        self.assertEqual(stats["collections"], {"Post": 1, "Tag": 0})

    def test_save(self):
        """Test JSON export."""
        posts = self.store.add_collection("Post")
        posts.add_reference("tags", "Tag")
        posts.add_node(
            "a",
            path="/a",
            file_info=FileInfo(extension=".md", directory="", path="a.md", name="a"),
            mime_type="text/markdown",
            content="secret body",
        )

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "out" / "graph.json"
            self.store.save(path)
            data = json.loads(path.read_text())

        self.assertEqual(data["name"], "test")
        self.assertEqual(data["collections"][0]["references"], {"tags": "Tag"})
        self.assertEqual(data["nodes"][0]["file_info"]["path"], "a.md")
        self.assertNotIn("content", data["nodes"][0])


class TestFrontMatter(unittest.TestCase):
    """Tests for the front matter transformer."""

    def test_no_front_matter(self):
        """Test plain documents."""
        self.assertEqual(parse_front_matter("# Title\n"), {})

    def test_unterminated(self):
        """Test an opening delimiter without a closing one."""
        self.assertEqual(parse_front_matter("---\ntitle: x\n"), {})

    def test_invalid_yaml(self):
        """Test that broken YAML yields no fields."""
        self.assertEqual(parse_front_matter("---\ntitle: [unclosed\n---\n"), {})

    def test_non_mapping(self):
        """Test that a YAML list is ignored."""
        self.assertEqual(parse_front_matter("---\n- a\n- b\n---\n"), {})


if __name__ == "__main__":
    unittest.main()
