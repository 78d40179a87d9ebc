"""Tests for the config-sync command line tool."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from config_sync.tool.config_sync import main

from ..conftest import FakeClient

APP_CONFIG = """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: app-config
  namespace: ignored
data:
  greeting: hello
"""

SYNC_FILE = """\
apiVersion: configs.configsync.io/v1alpha1
kind: ConfigSync
metadata:
  name: app
  namespace: default
spec:
  source:
    configMapRef:
      namespace: bundles
      name: app-bundle
  target:
    namespace: apps
"""


@pytest.fixture(name="cluster")
def cluster_fixture(client: FakeClient) -> Generator[FakeClient, None, None]:
    """Route the command line tool to the fake cluster."""
    client.add(
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "app-bundle", "namespace": "bundles"},
            "data": {"app.yaml": APP_CONFIG, "README.md": "docs"},
        }
    )
    with patch("config_sync.tool.common.build_client", return_value=client):
        yield client


@pytest.fixture(name="snapshot_dir")
def snapshot_dir_fixture(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Create ConfigMap snapshots inside a directory owned by the test."""
    snapshot_dir = tmp_path / "snapshots"
    snapshot_dir.mkdir()
    monkeypatch.setenv("TMPDIR", str(snapshot_dir))
    monkeypatch.setattr("tempfile.tempdir", None)
    return snapshot_dir


@pytest.fixture(name="sync_file")
def sync_file_fixture(tmp_path: Path) -> Path:
    """Write a ConfigSync object to a file."""
    path = tmp_path / "sync.yaml"
    path.write_text(SYNC_FILE)
    return path


def test_sync(
    cluster: FakeClient,
    sync_file: Path,
    snapshot_dir: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Test a sync fetches the ConfigMap and applies it to the target."""
    main(["sync", str(sync_file)])

    obj = cluster.get("v1", "ConfigMap", "apps", "app-config")
    assert obj is not None
    assert obj["data"] == {"greeting": "hello"}
    assert [dry_run for dry_run, _ in cluster.requests] == [True, False]

    out = capsys.readouterr().out.splitlines()
    assert out[0].startswith("Applied ConfigMap/apps/app-config (")
    assert out[1].startswith("Synced app at ")
    assert list(snapshot_dir.iterdir()) == []


def test_sync_keep_snapshot(
    cluster: FakeClient, sync_file: Path, snapshot_dir: Path
) -> None:
    """Test the ConfigMap snapshot can be kept for inspection."""
    main(["sync", str(sync_file), "--keep-snapshot"])

    (snapshot,) = list(snapshot_dir.iterdir())
    assert sorted(p.name for p in snapshot.iterdir()) == ["README.md", "app.yaml"]


def test_sync_without_dry_run(cluster: FakeClient, sync_file: Path) -> None:
    """Test the dry-run can be disabled from the command line."""
    main(["sync", str(sync_file), "--no-dry-run", "--field-manager", "ops"])

    assert [dry_run for dry_run, _ in cluster.requests] == [False]


def test_fetch(
    cluster: FakeClient,
    sync_file: Path,
    snapshot_dir: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Test fetch prints the resolved snapshot without applying."""
    main(["fetch", str(sync_file)])

    snapshot = yaml.safe_load(capsys.readouterr().out)
    assert snapshot["description"] == "configmap"
    assert len(snapshot["identity"]) == 64
    assert Path(snapshot["local_path"]).parent == snapshot_dir
    assert cluster.requests == []


def test_apply(
    cluster: FakeClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test applying a local directory with a namespace override."""
    manifests = tmp_path / "manifests"
    manifests.mkdir()
    (manifests / "app.yaml").write_text(APP_CONFIG)

    main(["apply", str(manifests), "-n", "staging"])

    assert cluster.get("v1", "ConfigMap", "staging", "app-config") is not None
    assert capsys.readouterr().out == (
        f"Applied ConfigMap/staging/app-config ({manifests / 'app.yaml'})\n"
    )


def test_apply_rejected(
    cluster: FakeClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test a rejected manifest prints the results and exits with an error."""
    cluster.reject = lambda obj: "denied by policy"
    (tmp_path / "app.yaml").write_text(APP_CONFIG)

    with pytest.raises(SystemExit) as exc_info:
        main(["apply", str(tmp_path)])

    assert exc_info.value.code == 1
    captured = capsys.readouterr()
    assert captured.out.startswith("DryRunFailed ConfigMap/ignored/app-config")
    assert "config-sync error:" in captured.err
    assert "denied by policy" in captured.err
    assert cluster.objects.keys() == {("v1", "ConfigMap", "bundles", "app-bundle")}


def test_missing_sync_file(
    cluster: FakeClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test a missing ConfigSync file is reported."""
    with pytest.raises(SystemExit) as exc_info:
        main(["sync", str(tmp_path / "missing.yaml")])

    assert exc_info.value.code == 1
    assert "Failed to read" in capsys.readouterr().err


def test_missing_config_map(
    client: FakeClient, sync_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test a sync of a ConfigMap that does not exist fails."""
    with patch("config_sync.tool.common.build_client", return_value=client):
        with pytest.raises(SystemExit):
            main(["sync", str(sync_file)])

    assert "ConfigMap bundles/app-bundle not found" in capsys.readouterr().err


def test_apply_decode_error(
    cluster: FakeClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test documents applied before a malformed one are still printed."""
    (tmp_path / "app.yaml").write_text(APP_CONFIG + "---\nkey: [unterminated\n")

    with pytest.raises(SystemExit):
        main(["apply", str(tmp_path)])

    captured = capsys.readouterr()
    assert captured.out == (
        f"Applied ConfigMap/ignored/app-config ({tmp_path / 'app.yaml'})\n"
    )
    assert "Failed to decode document 1" in captured.err
