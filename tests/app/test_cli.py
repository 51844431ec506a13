from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from catalogsync.app import CatalogNotFoundError, RefreshPreview
from catalogsync.domain.reconciliation import RuleSet, diff_catalogs
from catalogsync.ui import cli
from tests.helpers.catalogs import make_catalog, make_product

if TYPE_CHECKING:
    from pathlib import Path


def test_cli_import_passes_source_and_name(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_import(source: str, **kwargs: object) -> object:
        captured.update(kwargs, source=source)
        return make_catalog([make_product("p1")])

    monkeypatch.setattr(cli, "import_catalog", fake_import)

    cli.main(["import", "feed.xml", "--name", "Spring"])

    assert captured == {"source": "feed.xml", "display_name": "Spring"}


def test_cli_merge_collects_repeated_attributes(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_merge(catalog_id: str, **kwargs: object) -> object:
        captured.update(kwargs, catalog_id=catalog_id)
        return make_catalog()

    monkeypatch.setattr(cli, "merge_catalog_duplicates", fake_merge)

    cli.main(["merge", "catalog-1", "--attribute", "Size", "--attribute", "Color"])
    assert captured == {"catalog_id": "catalog-1", "attribute_names": ["Size", "Color"]}

    cli.main(["merge", "catalog-1"])
    assert captured["attribute_names"] is None


def test_cli_refresh_builds_rules_and_applies_everything(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    old = make_catalog([make_product("p1", price=1.0)])
    new = make_catalog([make_product("p1", price=2.0), make_product("n1")])
    preview = RefreshPreview(old=old, new=new, diffs=diff_catalogs(old, new))
    captured: dict[str, object] = {}

    def fake_preview(catalog_id: str, **kwargs: object) -> RefreshPreview:
        captured.update(kwargs)
        return preview

    def fake_apply(applied: RefreshPreview, selection: object) -> None:
        captured["applied"] = applied
        captured["selection"] = selection

    monkeypatch.setattr(cli, "preview_refresh", fake_preview)
    monkeypatch.setattr(cli, "apply_refresh", fake_apply)

    cli.main(
        [
            "refresh",
            "catalog-1",
            "--source",
            "other.xml",
            "--compare-name",
            "--ignore-price",
            "--include-merged",
            "--apply-all",
        ]
    )

    assert captured["source"] == "other.xml"
    assert captured["rules"] == RuleSet(
        compare_name=True, compare_price=False, ignore_ids_in_merge_map=False
    )
    assert captured["applied"] is preview
    assert captured["selection"] == {"p1": {"price"}, "n1": set()}


def test_cli_refresh_without_apply_only_reports(monkeypatch: pytest.MonkeyPatch) -> None:
    old = make_catalog([make_product("p1", price=1.0)])
    new = make_catalog([make_product("p1", price=2.0)])
    applied: list[object] = []

    monkeypatch.setattr(
        cli,
        "preview_refresh",
        lambda *_, **__: RefreshPreview(old=old, new=new, diffs=diff_catalogs(old, new)),
    )
    monkeypatch.setattr(cli, "apply_refresh", lambda *args: applied.append(args))

    cli.main(["refresh", "catalog-1"])

    assert applied == []


def test_cli_export_writes_to_stdout(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(cli, "export_catalog", lambda *_, **__: "<yml_catalog/>\n")

    cli.main(["export", "catalog-1"])

    assert capsys.readouterr().out == "<yml_catalog/>\n"


def test_cli_export_to_file_leaves_stdout_empty(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    captured: dict[str, object] = {}

    def fake_export(catalog_id: str, **kwargs: object) -> str:
        captured.update(kwargs)
        return "<yml_catalog/>\n"

    monkeypatch.setattr(cli, "export_catalog", fake_export)

    cli.main(["export", "catalog-1", "--output", str(tmp_path / "out.xml")])

    assert captured["destination"] == tmp_path / "out.xml"
    assert capsys.readouterr().out == ""


def test_cli_unknown_catalog_exits_with_usage_code(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_analyze(*_: object, **__: object) -> None:
        raise CatalogNotFoundError("No catalog with id missing")

    monkeypatch.setattr(cli, "analyze_catalog_duplicates", fake_analyze)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["duplicates", "missing"])

    assert excinfo.value.code == 2


def test_cli_unexpected_failure_exits_with_error_code(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_list(*_: object, **__: object) -> None:
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(cli, "list_catalogs", fake_list)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["list"])

    assert excinfo.value.code == 1


def test_cli_requires_a_command() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == 2
