import asyncio
import dataclasses

import pytest

from conftest import LINUX, version_entry
from mcfetch.exceptions import AggregateInstallError, InstallCancelled
from mcfetch.folder import MinecraftFolder
from mcfetch.orchestrator import install, install_task
from mcfetch.services.diagnostics import diagnose

ALPHA = "libraries/com/example/alpha/1.0/alpha-1.0.jar"
NATIVE = "libraries/org/lwjgl/lwjgl-platform/2.9/lwjgl-platform-2.9-natives-linux.jar"


async def install_vanilla(repo, game_dir, options, client, side="client"):
    return await install(side, version_entry(repo), game_dir, options, client, LINUX)


@pytest.mark.asyncio
async def test_install_then_diagnose_is_complete(repo, vanilla, options, client, game_dir):
    manifest = await install_vanilla(repo, game_dir, options, client)
    assert manifest.id == "1.0"

    folder = MinecraftFolder(game_dir)
    assert folder.get_version_json("1.0").is_file()
    assert folder.get_version_jar("1.0").read_bytes() == b"client-jar-1.0"
    assert folder.resolve(ALPHA).read_bytes() == b"alpha-library"
    assert folder.resolve(NATIVE).is_file()
    assert not folder.resolve(NATIVE.replace("linux", "windows")).exists()
    assert folder.get_asset_index("1.0").is_file()
    for obj in manifest_objects(repo):
        assert folder.get_asset_object(obj).is_file()

    report = await diagnose("1.0", game_dir, options=options, platform=LINUX)
    assert report.is_complete


def manifest_objects(repo):
    return [path.rsplit("/", 1)[-1] for path in repo.files if path.startswith("/assets/")]


@pytest.mark.asyncio
async def test_second_install_makes_no_requests(repo, vanilla, options, client, game_dir):
    await install_vanilla(repo, game_dir, options, client)
    repo.requests.clear()
    await install_vanilla(repo, game_dir, options, client)
    assert repo.requests == []


@pytest.mark.asyncio
async def test_reinstall_fetches_only_missing(repo, vanilla, options, client, game_dir):
    await install_vanilla(repo, game_dir, options, client)
    folder = MinecraftFolder(game_dir)
    folder.resolve(ALPHA).unlink()

    report = await diagnose("1.0", game_dir, options=options, platform=LINUX)
    assert [lib.name for lib in report.missing_libraries] == ["com.example:alpha:1.0"]
    assert not report.missing_assets

    repo.requests.clear()
    await install_vanilla(repo, game_dir, options, client)
    assert repo.requests == ["/maven/com/example/alpha/1.0/alpha-1.0.jar"]


@pytest.mark.asyncio
async def test_corrupt_file_is_repaired_only_with_checksum(repo, vanilla, options, client, game_dir):
    await install_vanilla(repo, game_dir, options, client)
    folder = MinecraftFolder(game_dir)
    folder.resolve(ALPHA).write_bytes(b"tampered")
    repo.requests.clear()

    relaxed = dataclasses.replace(options, checksum=False)
    await install_vanilla(repo, game_dir, relaxed, client)
    assert repo.requests == []
    assert folder.resolve(ALPHA).read_bytes() == b"tampered"

    await install_vanilla(repo, game_dir, options, client)
    assert folder.resolve(ALPHA).read_bytes() == b"alpha-library"


@pytest.mark.asyncio
async def test_diagnose_reports_each_missing_kind(repo, vanilla, options, client, game_dir):
    await install_vanilla(repo, game_dir, options, client)
    folder = MinecraftFolder(game_dir)
    folder.get_version_jar("1.0").write_bytes(b"")
    folder.resolve(NATIVE).unlink()
    victim = manifest_objects(repo)[0]
    folder.get_asset_object(victim).unlink()

    report = await diagnose("1.0", game_dir, options=options, platform=LINUX)
    assert report.missing_version_jar
    assert [lib.name for lib in report.missing_libraries] == ["org.lwjgl:lwjgl-platform:2.9"]
    assert [a.sha1 for a in report.missing_assets.values()] == [victim]
    assert not report.missing_asset_index

    folder.get_asset_index("1.0").write_text("{broken", encoding="utf-8")
    report = await diagnose("1.0", game_dir, options=options, platform=LINUX)
    assert report.missing_asset_index
    assert not report.missing_assets


@pytest.mark.asyncio
async def test_diagnose_without_version_json(game_dir):
    report = await diagnose("9.9", game_dir, platform=LINUX)
    assert report.missing_version_json
    assert not report.missing_version_jar
    assert not report.missing_libraries


@pytest.mark.asyncio
async def test_partial_failure_keeps_other_files(repo, vanilla, options, client, game_dir):
    repo.fail("maven/com/example/alpha/1.0/alpha-1.0.jar", times=10, status=503)
    with pytest.raises(AggregateInstallError) as info:
        await install_vanilla(repo, game_dir, options, client)
    assert info.value.failed_names == ["com.example:alpha:1.0"]

    folder = MinecraftFolder(game_dir)
    assert not folder.resolve(ALPHA).exists()
    assert folder.resolve(NATIVE).is_file()
    assert folder.get_version_jar("1.0").is_file()
    for obj in manifest_objects(repo):
        assert folder.get_asset_object(obj).is_file()


@pytest.mark.asyncio
async def test_missing_version_json_skips_everything(repo, vanilla, options, client, game_dir):
    repo.files.pop("/v1/1.0.json")
    with pytest.raises(AggregateInstallError) as info:
        await install_vanilla(repo, game_dir, options, client)
    assert info.value.failed_names == ["fetch-json"]
    assert repo.paths("jars/") == []
    assert repo.paths("maven/") == []


@pytest.mark.asyncio
async def test_server_install(repo, vanilla, options, client, game_dir):
    await install_vanilla(repo, game_dir, options, client, side="server")
    folder = MinecraftFolder(game_dir)
    assert folder.get_version_jar("1.0", "server").read_bytes() == b"server-jar-1.0"
    assert not folder.get_version_jar("1.0").exists()
    assert repo.paths("assets/") == []

    report = await diagnose("1.0", game_dir, side="server", platform=LINUX)
    assert report.is_complete


@pytest.mark.asyncio
async def test_install_task_phases(repo, vanilla, options, client, game_dir):
    task = install_task("client", version_entry(repo), game_dir, options, client, LINUX)
    assert [child.name for child in task.children] == [
        "fetch-json",
        "fetch-jar",
        "fetch-libraries",
        "fetch-asset-index",
        "fetch-assets",
    ]
    manifest = await task.execute()
    assert manifest.id == "1.0"
    leaf_names = {leaf.name for leaf in task.leaves()}
    assert "com.example:alpha:1.0" in leaf_names
    assert "minecraft/sounds/step.ogg" in leaf_names


@pytest.mark.asyncio
async def test_cancel_during_assets_keeps_finished_files(repo, vanilla, options, client, game_dir):
    serial = dataclasses.replace(options, max_concurrent=1)
    gate = repo.hold("assets/")
    task = install_task("client", version_entry(repo), game_dir, serial, client, LINUX)
    running = asyncio.ensure_future(task.execute())
    while not repo.paths("assets/"):
        await asyncio.sleep(0.01)
    task.cancel()
    gate.set()

    with pytest.raises(InstallCancelled):
        await running

    folder = MinecraftFolder(game_dir)
    assert folder.get_version_jar("1.0").is_file()
    assert folder.resolve(ALPHA).is_file()
    assert folder.resolve(NATIVE).is_file()
    assert folder.get_asset_index("1.0").is_file()
    missing = [obj for obj in manifest_objects(repo) if not folder.get_asset_object(obj).exists()]
    assert len(missing) == 1

    repo.holds.clear()
    repo.requests.clear()
    await install_vanilla(repo, game_dir, options, client)
    assert repo.requests == [f"/assets/{missing[0][:2]}/{missing[0]}"]
