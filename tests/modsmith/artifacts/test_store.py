# tests/modsmith/artifacts/test_store.py
from __future__ import annotations
import json
from pathlib import Path

import pytest

from modsmith.artifacts.store import SIDECAR_NAME, ArtifactStore
from modsmith.artifacts.types import Artifact, ArtifactType
from modsmith.core.errors import ArtifactNotFoundError


# -------- helpers --------

def makeStore(tmp_path: Path, *, retentionLimit: int = 10) -> ArtifactStore:
    return ArtifactStore(
        {
            ArtifactType.COMPILED_PACKAGE: tmp_path / "builds" / "plugins",
            ArtifactType.ARCHIVE_PACKAGE: tmp_path / "builds" / "packs",
        },
        retentionLimit=retentionLimit,
    )


def makeArtifact(
    projectDir: Path,
    buildNumber: int,
    *,
    project: str = "Alpha",
    version: str = "1.0.0",
    kind: ArtifactType = ArtifactType.COMPILED_PACKAGE,
    builtAt: str | None = None,
    writeFile: bool = True,
) -> Artifact:
    outputPath = projectDir / f"{project}-{version}-build{buildNumber}.{kind.value}"
    if writeFile:
        projectDir.mkdir(parents=True, exist_ok=True)
        outputPath.write_bytes(b"x" * buildNumber)
    return Artifact(
        id=f"{project}-{kind.value}-{buildNumber}",
        projectName=project,
        version=version,
        outputPath=outputPath,
        builtAt=builtAt or f"2025-01-01T00:00:{buildNumber:02d}.000Z",
        durationMs=10,
        fileSizeBytes=buildNumber,
        artifactType=kind,
        buildNumber=buildNumber,
    )


# -------- load --------

def test_load_missingSidecar_isEmpty(tmp_path):
    store = makeStore(tmp_path)
    history = store.load(tmp_path / "builds" / "plugins" / "Alpha")
    assert history.projectName == "Alpha"
    assert history.artifacts == []


@pytest.mark.parametrize("content", ["{not json", "[]", '{"artifacts": "nope"}', ""])
def test_load_corruptSidecar_isEmpty(tmp_path, content):
    store = makeStore(tmp_path)
    projectDir = tmp_path / "builds" / "plugins" / "Alpha"
    projectDir.mkdir(parents=True)
    (projectDir / SIDECAR_NAME).write_text(content, encoding="utf-8")

    assert store.load(projectDir).artifacts == []


def test_load_acceptsLegacyKeys(tmp_path):
    store = makeStore(tmp_path)
    projectDir = tmp_path / "builds" / "plugins" / "Alpha"
    projectDir.mkdir(parents=True)
    payload = {
        "projectName": "Alpha",
        "artifacts": [{
            "id": "a1",
            "projectName": "Alpha",
            "version": "1.0.0",
            "outputPath": str(projectDir / "Alpha-1.0.0-build1.jar"),
            "builtAt": "2025-01-01T00:00:00.000Z",
            "durationMs": 5,
            "fileSize": 123,
            "artifactType": "jar",
            "output": "BUILD SUCCESSFUL",
            "outputTruncated": True,
        }],
    }
    (projectDir / SIDECAR_NAME).write_text(json.dumps(payload), encoding="utf-8")

    [artifact] = store.load(projectDir).artifacts
    assert artifact.fileSizeBytes == 123
    assert artifact.buildLog == "BUILD SUCCESSFUL"
    assert artifact.logTruncated is True
    assert artifact.buildNumber is None


def test_load_dropsEntriesOutsideProjectDir(tmp_path):
    store = makeStore(tmp_path)
    projectDir = tmp_path / "builds" / "plugins" / "Alpha"
    inside = makeArtifact(projectDir, 1)
    outside = makeArtifact(tmp_path / "elsewhere", 2)
    payload = {"projectName": "Alpha", "artifacts": [inside.model_dump(mode="json"), outside.model_dump(mode="json")]}
    (projectDir / SIDECAR_NAME).write_text(json.dumps(payload), encoding="utf-8")

    assert [artifact.id for artifact in store.load(projectDir).artifacts] == [inside.id]


# -------- append / prune --------

def test_append_persistsInOrder(tmp_path):
    store = makeStore(tmp_path)
    projectDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    for number in (1, 2, 3):
        store.append(projectDir, makeArtifact(projectDir, number))

    ids = [artifact.id for artifact in store.load(projectDir).artifacts]
    assert ids == ["Alpha-jar-1", "Alpha-jar-2", "Alpha-jar-3"]


def test_append_prunesOldestAndDeletesFile(tmp_path):
    store = makeStore(tmp_path, retentionLimit=3)
    projectDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    artifacts = [makeArtifact(projectDir, number) for number in range(1, 5)]

    evicted: list[Artifact] = []
    for artifact in artifacts:
        evicted.extend(store.append(projectDir, artifact))

    assert [artifact.id for artifact in evicted] == ["Alpha-jar-1"]
    assert not artifacts[0].outputPath.exists()
    kept = store.load(projectDir).artifacts
    assert [artifact.buildNumber for artifact in kept] == [2, 3, 4]
    assert all(artifact.outputPath.exists() for artifact in kept)


def test_append_evictionToleratesMissingFile(tmp_path):
    store = makeStore(tmp_path, retentionLimit=1)
    projectDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    first = makeArtifact(projectDir, 1)
    store.append(projectDir, first)
    first.outputPath.unlink()

    store.append(projectDir, makeArtifact(projectDir, 2))
    assert [artifact.buildNumber for artifact in store.load(projectDir).artifacts] == [2]


def test_append_keepsFileSharedWithKeptEntry(tmp_path):
    store = makeStore(tmp_path, retentionLimit=1)
    projectDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    first = makeArtifact(projectDir, 1)
    store.append(projectDir, first)
    again = first.model_copy(update={"id": "again"})

    store.append(projectDir, again)
    assert first.outputPath.exists()


def test_append_rejectsOutputOutsideProjectDir(tmp_path):
    store = makeStore(tmp_path)
    projectDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    stray = makeArtifact(tmp_path / "elsewhere", 1)
    with pytest.raises(ValueError):
        store.append(projectDir, stray)


def test_append_writesNoTempFiles(tmp_path):
    store = makeStore(tmp_path)
    projectDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    store.append(projectDir, makeArtifact(projectDir, 1))
    assert sorted(entry.name for entry in projectDir.iterdir()) == ["Alpha-1.0.0-build1.jar", SIDECAR_NAME]


# -------- remove --------

def test_remove(tmp_path):
    store = makeStore(tmp_path)
    projectDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    store.append(projectDir, makeArtifact(projectDir, 1))
    store.append(projectDir, makeArtifact(projectDir, 2))

    assert store.remove(projectDir, "Alpha-jar-1") is True
    assert store.remove(projectDir, "Alpha-jar-1") is False
    assert [artifact.id for artifact in store.load(projectDir).artifacts] == ["Alpha-jar-2"]


# -------- queries --------

def test_listAll_newestFirstAcrossRoots(tmp_path):
    store = makeStore(tmp_path)
    pluginDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    packDir = store.projectDirFor(ArtifactType.ARCHIVE_PACKAGE, "Beta")
    store.append(pluginDir, makeArtifact(pluginDir, 1, builtAt="2025-01-01T10:00:00.000Z"))
    store.append(packDir, makeArtifact(packDir, 1, project="Beta", kind=ArtifactType.ARCHIVE_PACKAGE, builtAt="2025-01-02T10:00:00.000Z"))
    store.append(pluginDir, makeArtifact(pluginDir, 2, builtAt="2025-01-03T10:00:00.000Z"))

    assert [artifact.id for artifact in store.listAll()] == ["Alpha-jar-2", "Beta-zip-1", "Alpha-jar-1"]


def test_listAll_filtersStaleWithoutRewriting(tmp_path):
    store = makeStore(tmp_path)
    projectDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    gone = makeArtifact(projectDir, 1)
    store.append(projectDir, gone)
    store.append(projectDir, makeArtifact(projectDir, 2))
    gone.outputPath.unlink()
    sidecarBefore = (projectDir / SIDECAR_NAME).read_bytes()

    assert [artifact.id for artifact in store.listAll()] == ["Alpha-jar-2"]
    assert (projectDir / SIDECAR_NAME).read_bytes() == sidecarBefore


def test_listAll_emptyWhenRootsMissing(tmp_path):
    assert makeStore(tmp_path).listAll() == []


def test_findById_searchesEveryRoot(tmp_path):
    store = makeStore(tmp_path)
    pluginDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    packDir = store.projectDirFor(ArtifactType.ARCHIVE_PACKAGE, "Beta")
    plugin = makeArtifact(pluginDir, 1)
    pack = makeArtifact(packDir, 1, project="Beta", kind=ArtifactType.ARCHIVE_PACKAGE)
    store.append(pluginDir, plugin)
    store.append(packDir, pack)

    assert store.findById(plugin.id) == (plugin, pluginDir)
    assert store.findById(pack.id) == (pack, packDir)
    assert store.findById("missing") is None


def test_projectDirFor_sanitisesName(tmp_path):
    store = makeStore(tmp_path)
    projectDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "../Evil:Mod")
    assert projectDir.parent == tmp_path / "builds" / "plugins"
    assert projectDir.name == "_Evil_Mod"


# -------- housekeeping --------

def test_deleteArtifact(tmp_path):
    store = makeStore(tmp_path)
    projectDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    artifact = makeArtifact(projectDir, 1)
    store.append(projectDir, artifact)

    deleted = store.deleteArtifact(artifact.id)
    assert deleted.id == artifact.id
    assert not artifact.outputPath.exists()
    assert store.findById(artifact.id) is None

    with pytest.raises(ArtifactNotFoundError):
        store.deleteArtifact(artifact.id)


def test_clearAll(tmp_path):
    store = makeStore(tmp_path)
    pluginDir = store.projectDirFor(ArtifactType.COMPILED_PACKAGE, "Alpha")
    packDir = store.projectDirFor(ArtifactType.ARCHIVE_PACKAGE, "Beta")
    store.append(pluginDir, makeArtifact(pluginDir, 1))
    store.append(pluginDir, makeArtifact(pluginDir, 2))
    store.append(packDir, makeArtifact(packDir, 1, project="Beta", kind=ArtifactType.ARCHIVE_PACKAGE))
    (packDir / "notes.txt").write_text("keep me", encoding="utf-8")

    assert store.clearAll() == 3
    assert not pluginDir.exists()
    assert sorted(entry.name for entry in packDir.iterdir()) == ["notes.txt"]
    assert store.listAll() == []


def test_retentionLimitValidated(tmp_path):
    with pytest.raises(ValueError):
        makeStore(tmp_path, retentionLimit=0)
