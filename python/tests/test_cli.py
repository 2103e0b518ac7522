"""
Tests for the versionrecommender command line.
Runs the CLI as a subprocess against a temporary project.
"""
import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


class VersionRecommenderCliTest(unittest.TestCase):
    """End-to-end tests of the CLI subcommands"""

    @classmethod
    def setUpClass(cls):
        """Set up the import path of the package"""
        cls.python_dir = Path(__file__).parent.parent
        cls.env = dict(os.environ, PYTHONPATH=str(cls.python_dir))

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.project = Path(self.tmp.name)
        self._write_repository()
        self.config_file = self.project / "versionrecommendation.json"
        self.config_file.write_text(json.dumps({
            "repositories": {"ivy": [{"url": "repo"}]},
            "providers": [
                {"name": "filter", "type": "ivy", "dependency": "org.test:filter:1.0.0"},
                {"name": "defaults", "type": "properties", "versions": {"org.other:*": "7.0"}},
            ],
        }), encoding="utf-8")

    def tearDown(self):
        self.tmp.cleanup()

    def _write_repository(self):
        for rev, lib_rev in (("1.0.0", "1.5"), ("1.0.1", "1.6"), ("2.0.0", "2.0")):
            path = self.project / "repo" / "org.test" / "filter" / rev / "ivys" / f"ivy-{rev}.xml"
            path.parent.mkdir(parents=True)
            path.write_text(f"""<ivy-module version="2.0">
    <info organisation="org.test" module="filter" revision="{rev}"/>
    <dependencies>
        <dependency org="org.test" name="lib" rev="{lib_rev}"/>
    </dependencies>
</ivy-module>
""", encoding="utf-8")

    def _run(self, *args):
        """Run versionrecommender and return the result"""
        cmd = [sys.executable, "-m", "versionrecommender", "-c", str(self.config_file)] + list(args)
        return subprocess.run(cmd, capture_output=True, text=True, env=self.env)

    def test_lookup(self):
        """Test lookup of a module of the ivy provider"""
        result = self._run("lookup", "org.test:lib")

        self.assertEqual(result.returncode, 0, f"lookup failed: {result.stderr}")
        self.assertEqual(result.stdout.strip(), "1.5")

    def test_lookup_wildcard(self):
        """Test lookup falling through to the properties provider"""
        result = self._run("lookup", "org.other:anything")

        self.assertEqual(result.returncode, 0, f"lookup failed: {result.stderr}")
        self.assertEqual(result.stdout.strip(), "7.0")

    def test_lookup_unknown_module(self):
        """Test that a module without recommendation fails"""
        result = self._run("lookup", "org.unknown:lib")

        self.assertEqual(result.returncode, 1)
        self.assertIn("org.unknown:lib", result.stderr)

    def test_show_json(self):
        """Test json output of a provider's version map"""
        result = self._run("show", "filter", "--format", "json")

        self.assertEqual(result.returncode, 0, f"show failed: {result.stderr}")
        self.assertEqual(json.loads(result.stdout), {"org.test:filter": "1.0.0", "org.test:lib": "1.5"})

    def test_set_store_reset(self):
        """Test the override lifecycle across processes"""
        self.assertEqual(self._run("set", "filter", "2.0.0").returncode, 0)
        self.assertEqual(self._run("lookup", "org.test:lib").stdout.strip(), "2.0")
        self.assertEqual(self._run("lookup", "org.test:filter").stdout.strip(), "2.0.0")
        self.assertEqual(self._run("lookup", "org.other:anything").stdout.strip(), "7.0")

        result = self._run("store", "filter")
        self.assertEqual(result.returncode, 0, f"store failed: {result.stderr}")
        self.assertEqual((self.project / ".ivyFilter.version").read_text(encoding="utf-8"), "2.0.0")

        self.assertEqual(self._run("reset").returncode, 0)
        self.assertEqual(self._run("lookup", "org.test:lib").stdout.strip(), "2.0")

    def test_set_local_from_parameter(self):
        """Test that set-local prefers the configured version over a -P parameter"""
        result = self._run("-P", "filterVersion=1.0.1", "set-local", "filter")

        self.assertEqual(result.returncode, 0, f"set-local failed: {result.stderr}")
        working = self.project / "build" / "versionRecommendation" / ".ivyFilter.version"
        self.assertEqual(working.read_text(encoding="utf-8"), "1.0.0-LOCAL")

    def test_set_without_version(self):
        """Test that set without version or parameter fails"""
        result = self._run("set", "filter")

        self.assertEqual(result.returncode, 1)
        self.assertIn("filterVersion", result.stderr)

    def test_update(self):
        """Test update to the newest patch version"""
        result = self._run("update")

        self.assertEqual(result.returncode, 0, f"update failed: {result.stderr}")
        self.assertIn("filter: 1.0.0 -> 1.0.1", result.stdout)
        self.assertEqual(self._run("show", "filter").stdout.splitlines(),
                         ["org.test:filter:1.0.1", "org.test:lib:1.6"])

    def test_store_nothing(self):
        """Test that store of a provider without working version fails"""
        result = self._run("store", "filter")

        self.assertNotEqual(result.returncode, 0)
        self.assertIn("Nothing to store", result.stderr)

    def test_unknown_provider(self):
        """Test operations on a provider that is not configured"""
        result = self._run("reset", "missing")

        self.assertEqual(result.returncode, 1)
        self.assertIn("missing", result.stderr)

    def test_no_command(self):
        """Test that the help is shown without subcommand"""
        result = self._run()

        self.assertEqual(result.returncode, 1)
        self.assertIn("usage", result.stdout.lower())


if __name__ == "__main__":
    unittest.main()
