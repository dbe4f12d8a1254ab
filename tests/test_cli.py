"""Tests for the profile_document and quote_reader scripts."""
from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from scripts.profile_document import main as profile_main
from scripts.quote_reader import main as quote_main

TEXT = "One is here. Two is here. Three is here.\n\nFour is here. Five is here. Six is here."


@pytest.fixture()
def doc(tmp_path: Path) -> Path:
    path = tmp_path / "doc.txt"
    path.write_text(TEXT, encoding="utf-8")
    return path


class TestProfileDocument:
    def test_stats(self, doc: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert profile_main(["--input", str(doc), "--stats"]) == 0
        out = orjson.loads(capsys.readouterr().out)
        assert out["sentences"] == 6
        assert out["paragraphs"] == 2

    def test_full_profile_with_sections(
        self, doc: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert profile_main(["--input", str(doc), "--sections"]) == 0
        out = orjson.loads(capsys.readouterr().out)
        assert len(out["sentences"]) == 6
        assert out["sections"]["is_scientific_format"] is False

    def test_store_then_read(
        self, doc: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        db = tmp_path / "docs.duckdb"
        args = ["--db", str(db), "--doc-ref", "d1"]
        assert profile_main(["--input", str(doc), "--store", *args]) == 0
        capsys.readouterr()
        assert profile_main([*args, "--stats"]) == 0
        assert orjson.loads(capsys.readouterr().out)["sentences"] == 6

    def test_locate_offsets(self, doc: Path, capsys: pytest.CaptureFixture[str]) -> None:
        args = ["--input", str(doc), "--stats", "--locate", "13", "--locate", "50"]
        assert profile_main([*args, "--locate", "999"]) == 0
        first, second, outside = orjson.loads(capsys.readouterr().out)["locate"]
        assert (first["line"], first["sentence"], first["paragraph"]) == (1, 2, 1)
        assert (second["line"], second["sentence"], second["paragraph"]) == (3, 4, 2)
        assert second["line_text"] == "Four is here. Five is here. Six is here."
        assert outside == {
            "offset": 999, "line": None, "line_text": None, "sentence": None, "paragraph": None,
        }

    def test_missing_db(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = profile_main(["--db", str(tmp_path / "none.duckdb"), "--doc-ref", "x"])
        assert code == 2
        assert "Error:" in capsys.readouterr().err

    def test_no_source(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert profile_main([]) == 2
        assert "Error:" in capsys.readouterr().err


class TestQuoteReader:
    def test_found_prints_text(self, doc: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert quote_main(["--input", str(doc), "--request", "the third sentence"]) == 0
        assert capsys.readouterr().out == 'Sentence 3 (line 1): "Three is here."\n'

    def test_not_found_exit_code(self, doc: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert quote_main(["--input", str(doc), "--request", "paragraph 9"]) == 1
        assert "not found" in capsys.readouterr().out

    def test_ambiguous_exit_code(self, doc: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert quote_main(["--input", str(doc), "--request", "what is this about"]) == 1
        assert "Could not determine" in capsys.readouterr().out

    def test_json_output(self, doc: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = quote_main(["--input", str(doc), "--request", "first and last paragraphs", "--json"])
        assert code == 0
        out = orjson.loads(capsys.readouterr().out)
        assert out["mode"] == "compound"
        assert [p["status"] for p in out["parts"]] == ["found", "found"]

    def test_from_store(
        self, doc: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        db = tmp_path / "docs.duckdb"
        profile_main(["--input", str(doc), "--store", "--db", str(db), "--doc-ref", "d1"])
        capsys.readouterr()
        code = quote_main(["--db", str(db), "--doc-ref", "d1", "--request", "the last sentence"])
        assert code == 0
        assert capsys.readouterr().out == 'Sentence 6 (line 3): "Six is here."\n'

    def test_unknown_doc_ref(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        db = tmp_path / "docs.duckdb"
        text_path = tmp_path / "x.txt"
        text_path.write_text("Hi.", encoding="utf-8")
        profile_main(["--input", str(text_path), "--store", "--db", str(db), "--doc-ref", "x"])
        capsys.readouterr()
        assert quote_main(["--db", str(db), "--doc-ref", "other", "--request", "sentence 1"]) == 2
        assert "document not found: other" in capsys.readouterr().err

    def test_config_file(
        self, doc: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        cfg = tmp_path / "engine.json"
        cfg.write_bytes(orjson.dumps({"max_rendered_matches": 1}))
        code = quote_main([
            "--input", str(doc), "--config", str(cfg), "--request", "every mention of 'here'",
        ])
        assert code == 0
        assert capsys.readouterr().out.rstrip().endswith("... and 5 more")

    def test_bad_config(self, doc: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        cfg = tmp_path / "engine.json"
        cfg.write_bytes(orjson.dumps({"bogus": 1}))
        assert quote_main(["--input", str(doc), "--config", str(cfg), "--request", "line 1"]) == 2
        assert "unknown config keys" in capsys.readouterr().err
