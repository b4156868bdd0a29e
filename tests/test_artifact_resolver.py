import pytest

from mcfetch.exceptions import ArtifactConflict
from mcfetch.models import ArtifactKind, AssetIndex, VersionManifest
from mcfetch.rules import Platform
from mcfetch.services.artifact_resolver import ArtifactResolver

LINUX = Platform(name="linux", arch="x86_64", version="6.0", archbits="64")
OSX = Platform(name="osx", arch="x86_64", version="10.14", archbits="64")
WIN32 = Platform(name="windows", arch="x86", version="10.0", archbits="32")

REPO = "https://libs.example.com/"


def manifest(**overrides):
    data = {
        "id": "1.0",
        "downloads": {
            "client": {"url": "https://x/client.jar", "sha1": "11", "size": 10},
        },
        "assetIndex": {"id": "1.0", "url": "https://x/index.json", "sha1": "22"},
        "libraries": [],
    }
    data.update(overrides)
    return VersionManifest.from_dict(data)


def test_fixed_artifacts():
    resolved = ArtifactResolver(LINUX, REPO).resolve(manifest())
    assert resolved.version_json.path == "versions/1.0/1.0.json"
    assert resolved.version_jar.path == "versions/1.0/1.0.jar"
    assert resolved.version_jar.sha1 == "11"
    assert resolved.asset_index.path == "assets/indexes/1.0.json"
    assert resolved.assets == []


def test_server_side():
    m = manifest(
        downloads={
            "client": {"url": "https://x/client.jar"},
            "server": {"url": "https://x/server.jar", "sha1": "33"},
        }
    )
    resolved = ArtifactResolver(LINUX, REPO).resolve(m, "server")
    assert resolved.version_jar.path == "versions/1.0/1.0-server.jar"
    assert resolved.asset_index is None
    assert ArtifactResolver(LINUX, REPO).resolve(manifest(), "server").version_jar is None


def test_rejects_unknown_side():
    with pytest.raises(ValueError):
        ArtifactResolver(LINUX, REPO).resolve(manifest(), "both")


def test_inherited_jar_location():
    m = manifest(id="1.0-fabric", jar="1.0")
    assert ArtifactResolver(LINUX, REPO).resolve(m).version_jar.path == "versions/1.0/1.0.jar"


def test_library_rules_filter_by_platform():
    m = manifest(
        libraries=[
            {"name": "a.b:everywhere:1"},
            {
                "name": "a.b:not-osx:1",
                "rules": [{"action": "allow"}, {"action": "disallow", "os": {"name": "osx"}}],
            },
        ]
    )
    linux = [a.name for a in ArtifactResolver(LINUX, REPO).resolve(m).libraries]
    osx = [a.name for a in ArtifactResolver(OSX, REPO).resolve(m).libraries]
    assert linux == ["a.b:everywhere:1", "a.b:not-osx:1"]
    assert osx == ["a.b:everywhere:1"]


def test_library_without_downloads_uses_repository():
    m = manifest(
        libraries=[
            {"name": "a.b:default:1"},
            {"name": "a.b:custom:1", "url": "https://maven.example.org"},
        ]
    )
    libs = ArtifactResolver(LINUX, REPO).resolve(m).libraries
    assert libs[0].url == REPO + "a/b/default/1/default-1.jar"
    assert libs[0].path == "libraries/a/b/default/1/default-1.jar"
    assert libs[1].url == "https://maven.example.org/a/b/custom/1/custom-1.jar"
    assert libs[0].sha1 is None


def test_natives_only_library():
    m = manifest(
        libraries=[
            {
                "name": "org.lwjgl:lwjgl-platform:2.9",
                "natives": {"linux": "natives-linux", "windows": "natives-windows-${arch}"},
                "downloads": {
                    "classifiers": {
                        "natives-linux": {"url": "https://x/linux.jar", "sha1": "44"},
                        "natives-windows-32": {"url": "https://x/win32.jar", "sha1": "55"},
                    }
                },
            }
        ]
    )
    linux = ArtifactResolver(LINUX, REPO).resolve(m).libraries
    assert len(linux) == 1
    assert linux[0].kind is ArtifactKind.NATIVE
    assert linux[0].url == "https://x/linux.jar"
    assert linux[0].path.endswith("lwjgl-platform-2.9-natives-linux.jar")

    win = ArtifactResolver(WIN32, REPO).resolve(m).libraries
    assert [a.sha1 for a in win] == ["55"]

    assert ArtifactResolver(OSX, REPO).resolve(m).libraries == []


def test_library_with_artifact_and_natives():
    m = manifest(
        libraries=[
            {
                "name": "org.lwjgl:lwjgl:3.2",
                "natives": {"linux": "natives-linux"},
                "downloads": {"artifact": {"url": "https://x/lwjgl.jar", "sha1": "66"}},
            }
        ]
    )
    libs = ArtifactResolver(LINUX, REPO).resolve(m).libraries
    assert [a.kind for a in libs] == [ArtifactKind.LIBRARY, ArtifactKind.NATIVE]
    # 没有 classifiers 描述时从仓库推导地址
    assert libs[1].url == REPO + "org/lwjgl/lwjgl/3.2/lwjgl-3.2-natives-linux.jar"


def test_same_path_same_hash_is_deduplicated():
    lib = {"name": "a.b:c:1", "downloads": {"artifact": {"url": "https://x/c.jar", "sha1": "77"}}}
    resolved = ArtifactResolver(LINUX, REPO).resolve(manifest(libraries=[lib, dict(lib)]))
    assert len(resolved.libraries) == 1


def test_same_path_different_hash_conflicts():
    m = manifest(
        libraries=[
            {"name": "a.b:c:1", "downloads": {"artifact": {"url": "https://x/1.jar", "sha1": "77"}}},
            {"name": "a.b:c:1", "downloads": {"artifact": {"url": "https://x/2.jar", "sha1": "88"}}},
        ]
    )
    with pytest.raises(ArtifactConflict) as info:
        ArtifactResolver(LINUX, REPO).resolve(m)
    assert info.value.context["path"] == "libraries/a/b/c/1/c-1.jar"


def test_assets_are_content_addressed_and_deduplicated():
    index = AssetIndex.from_dict(
        "1.0",
        {
            "objects": {
                "a.ogg": {"hash": "abcdef01", "size": 3},
                "copy-of-a.ogg": {"hash": "abcdef01", "size": 3},
                "b.png": {"hash": "12345678", "size": 4},
            }
        },
    )
    resolver = ArtifactResolver(LINUX, REPO, assets_url="https://assets.example.com")
    assets = resolver.resolve(manifest(), asset_index=index).assets
    assert sorted(a.path for a in assets) == [
        "assets/objects/12/12345678",
        "assets/objects/ab/abcdef01",
    ]
    assert {a.url for a in assets} == {
        "https://assets.example.com/12/12345678",
        "https://assets.example.com/ab/abcdef01",
    }


def test_resolve_is_deterministic():
    m = manifest(libraries=[{"name": "a.b:c:1"}, {"name": "a.b:d:1"}])
    resolver = ArtifactResolver(LINUX, REPO)
    assert list(resolver.resolve(m)) == list(resolver.resolve(m))
