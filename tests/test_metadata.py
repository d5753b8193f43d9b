import json
import tempfile
import unittest
from pathlib import Path

import httpx

from vaultgraph.metadata.provider import (
    HttpMetadataProvider,
    JsonFileMetadataProvider,
    MetadataUnavailable,
    StaticMetadataProvider,
)
from vaultgraph.metadata.records import DocumentRecord, parse_records

from sample_vault import SAMPLE_METADATA


class TestRecords(unittest.TestCase):
    def test_from_dict(self):
        rec = DocumentRecord.from_dict(SAMPLE_METADATA[0])
        self.assertEqual(rec.path, "Welcome.md")
        self.assertEqual(rec.name, "Welcome")
        self.assertEqual(rec.tags, ("welcome", "intro"))
        self.assertEqual(rec.links[0].target_path, "FolderA/SubFolder/Abilities.md")
        self.assertEqual(rec.backlinks[0].source_path, "Graph-Test.md")
        self.assertEqual(rec.backlinks[0].file_name, "Graph-Test")

    def test_tags_are_cleaned(self):
        rec = DocumentRecord.from_dict({"relativePath": "A.md", "tags": ["#x", "", 3, " y "]})
        self.assertEqual(rec.tags, ("x", "y"))

    def test_single_string_tag(self):
        rec = DocumentRecord.from_dict({"relativePath": "A.md", "tags": "#project"})
        self.assertEqual(rec.tags, ("project",))

    def test_missing_and_malformed_fields(self):
        rec = DocumentRecord.from_dict({"links": None, "backlinks": ["nope", {"relativePath": "B.md"}]})
        self.assertEqual(rec.path, "")
        self.assertEqual(rec.links, ())
        self.assertEqual(len(rec.backlinks), 1)

    def test_parse_records_skips_non_objects(self):
        records = parse_records([{"relativePath": "A.md"}, "junk", None])
        self.assertEqual([r.path for r in records], ["A.md"])


class TestStaticProvider(unittest.TestCase):
    def test_accepts_dicts_and_records(self):
        p = StaticMetadataProvider([{"relativePath": "A.md"}, DocumentRecord(path="B.md")])
        self.assertEqual([r.path for r in p.get_metadata()], ["A.md", "B.md"])


class TestJsonFileProvider(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = Path(self.tmp.name)

    def test_reads_export(self):
        path = self.root / "metadata.json"
        path.write_text(json.dumps(SAMPLE_METADATA), encoding="utf-8")
        records = JsonFileMetadataProvider(path).get_metadata()
        self.assertEqual(len(records), 5)

    def test_missing_file(self):
        with self.assertRaises(MetadataUnavailable):
            JsonFileMetadataProvider(self.root / "nope.json").get_metadata()

    def test_invalid_json(self):
        path = self.root / "metadata.json"
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(MetadataUnavailable):
            JsonFileMetadataProvider(path).get_metadata()

    def test_invalid_utf8(self):
        path = self.root / "metadata.json"
        path.write_bytes(b'[{"relativePath": "\xff\xfe.md"}]')
        with self.assertRaises(MetadataUnavailable):
            JsonFileMetadataProvider(path).get_metadata()

    def test_top_level_must_be_a_list(self):
        path = self.root / "metadata.json"
        path.write_text('{"relativePath": "A.md"}', encoding="utf-8")
        with self.assertRaises(MetadataUnavailable):
            JsonFileMetadataProvider(path).get_metadata()

    def test_empty_list_is_valid(self):
        path = self.root / "metadata.json"
        path.write_text("[]", encoding="utf-8")
        self.assertEqual(JsonFileMetadataProvider(path).get_metadata(), [])


class TestHttpProvider(unittest.TestCase):
    URL = "http://vaults.test/Demo/metadata.json"

    def provider(self, handler):
        return HttpMetadataProvider(url=self.URL, timeout_s=1, transport=httpx.MockTransport(handler))

    def test_fetches_export(self):
        def handler(request):
            self.assertEqual(str(request.url), self.URL)
            return httpx.Response(200, json=SAMPLE_METADATA)

        records = self.provider(handler).get_metadata()
        self.assertEqual([r.name for r in records][:2], ["Welcome", "Abilities"])

    def test_error_status(self):
        p = self.provider(lambda request: httpx.Response(503))
        with self.assertRaises(MetadataUnavailable):
            p.get_metadata()

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(MetadataUnavailable):
            self.provider(handler).get_metadata()

    def test_invalid_body(self):
        p = self.provider(lambda request: httpx.Response(200, content=b"<html>"))
        with self.assertRaises(MetadataUnavailable):
            p.get_metadata()


if __name__ == "__main__":
    unittest.main()
