"""
Forge 加载器

下载并运行 Forge 官方安装器，将其生成的版本清单与库文件迁移到游戏目录。
"""

import asyncio
import json
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from mcfetch.download import DownloadManager
from mcfetch.exceptions import (
    LoaderError,
    LoaderInstallerFailure,
    ManifestNotFound,
    ManifestParseError,
)
from mcfetch.folder import MinecraftFolder
from mcfetch.loaders.base import compose_version_id, write_version_manifest
from mcfetch.models import (
    ArtifactDescriptor,
    ArtifactKind,
    Coordinate,
    ForgeArtifact,
    ForgeVersionMeta,
    InstallOptions,
)
from mcfetch.services.http_client import HttpClient
from mcfetch.services.manifest_parser import read_manifest_json

FORGE_GROUP = "net.minecraftforge"
FORGE_ARTIFACTS = ("forge", "minecraftforge")


def forge_version_id(meta: ForgeVersionMeta) -> str:
    return compose_version_id(meta.mcversion, "forge", f"{meta.mcversion}-{meta.version}")


class ForgeInstaller:
    """
    Forge 安装流程

    1. 检查原版清单与 jar 已安装
    2. 下载并校验安装器 jar 到临时目录
    3. 在临时目录构造最小游戏目录并运行安装器
    4. 改写生成的清单，迁移库文件，写入游戏目录
    """

    def __init__(
        self,
        meta: ForgeVersionMeta,
        location: Union[str, MinecraftFolder],
        options: Optional[InstallOptions] = None,
        client: Optional[HttpClient] = None,
    ):
        self.meta = meta
        self.folder = MinecraftFolder.of(location)
        self.options = options or InstallOptions()
        self._owned_client = client is None
        self.client = client or HttpClient(timeout=self.options.timeout)
        self.version_id = forge_version_id(meta)

    def artifact_url(self, artifact: ForgeArtifact) -> str:
        return self.options.forge_maven_url.rstrip("/") + "/" + artifact.path.lstrip("/")

    def build_command(self, installer: Path, work_dir: Path) -> List[str]:
        """安装器命令行"""
        return [
            self.options.java_path,
            "-jar",
            str(installer),
            "--installClient",
            str(work_dir),
        ]

    async def install(self) -> str:
        mc = self.meta.mcversion
        base_json = self.folder.get_version_json(mc)
        base_jar = self.folder.get_version_jar(mc)
        if not base_json.is_file():
            raise ManifestNotFound(
                f"请先安装原版 {mc}", context={"version": mc, "path": str(base_json)}
            )
        if not base_jar.is_file():
            raise LoaderError(
                f"原版 {mc} 的 jar 不存在", context={"version": mc, "path": str(base_jar)}
            )

        work_dir = self._make_work_dir()

        try:
            installer = await self._download_installer(work_dir)
            self._prepare_layout(work_dir, base_json, base_jar)
            existing = self._version_manifests(work_dir)
            await self._run_installer(installer, work_dir)
            data = await self._collect_manifest(work_dir, existing)
            self._patch_manifest(data)
            self._migrate_libraries(work_dir)
            version_id = await write_version_manifest(self.folder, data)
        finally:
            if self._owned_client:
                await self.client.close()
            if self.options.clear_temp_dir_after_install:
                shutil.rmtree(work_dir, ignore_errors=True)
                logger.debug(f"[清理] 临时目录 {work_dir}")

        logger.success(f"[完成] Forge {self.meta.version} 安装为 {version_id}")
        return version_id

    def _make_work_dir(self) -> Path:
        """
        创建本次安装独占的工作目录

        temp_dir 只作为父目录使用，清理时只删除本次创建的子目录。
        """
        parent = None
        try:
            if self.options.temp_dir:
                parent = Path(self.options.temp_dir)
                parent.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix="mcfetch-forge-", dir=parent))
        except OSError as e:
            raise LoaderError(
                f"无法创建 Forge 临时目录: {e}", context={"temp_dir": self.options.temp_dir}
            ) from e

    async def _download_installer(self, work_dir: Path) -> Path:
        installer = self.meta.installer
        name = installer.path.rstrip("/").rsplit("/", 1)[-1] or "forge-installer.jar"
        dest = work_dir / name
        artifact = ArtifactDescriptor(
            kind=ArtifactKind.LIBRARY,
            name=name,
            path=name,
            url=self.artifact_url(installer),
            sha1=installer.sha1,
        )
        downloader = DownloadManager(
            client=self.client,
            checksum=self.options.checksum,
            max_retries=self.options.max_retries,
            retry_delay=self.options.retry_delay,
        )
        await downloader.fetch(artifact, dest)
        return dest

    def _prepare_layout(self, work_dir: Path, base_json: Path, base_jar: Path):
        """安装器要求目标目录像一个启动器目录"""
        mc = self.meta.mcversion
        version_dir = work_dir / "versions" / mc
        try:
            version_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(base_json, version_dir / base_json.name)
            shutil.copyfile(base_jar, version_dir / base_jar.name)

            profiles = work_dir / "launcher_profiles.json"
            if not profiles.exists():
                profiles.write_text(json.dumps({"profiles": {}}), encoding="utf-8")
        except OSError as e:
            raise LoaderError(
                f"无法准备 Forge 安装目录: {e}", context={"work_dir": str(work_dir)}
            ) from e

    async def _run_installer(self, installer: Path, work_dir: Path):
        command = self.build_command(installer, work_dir)
        logger.info(f"[Forge] 运行安装器: {' '.join(command)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(work_dir),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise LoaderInstallerFailure(f"无法启动 Forge 安装器: {e}") from e

        stdout, _ = await process.communicate()
        output = stdout.decode("utf-8", errors="replace") if stdout else ""
        if process.returncode != 0:
            raise LoaderInstallerFailure(
                f"Forge 安装器退出码 {process.returncode}",
                output=output,
                returncode=process.returncode,
            )
        logger.debug(f"[Forge] 安装器输出:\n{output}")

    @staticmethod
    def _version_manifests(work_dir: Path) -> List[str]:
        """versions/<id>/<id>.json 形式的版本 ID"""
        return [
            candidate.stem
            for candidate in sorted((work_dir / "versions").glob("*/*.json"))
            if candidate.stem == candidate.parent.name
        ]

    def _is_own_manifest(self, data: dict) -> bool:
        """清单中的 Forge 库版本是否对应正在安装的版本"""
        for library in data.get("libraries") or []:
            try:
                coordinate = Coordinate.parse(library.get("name", ""))
            except ManifestParseError:
                continue
            if coordinate.group == FORGE_GROUP and coordinate.artifact in FORGE_ARTIFACTS:
                return self.meta.version in coordinate.version
        return False

    async def _collect_manifest(self, work_dir: Path, existing: List[str]) -> dict:
        """
        找到本次安装器运行生成的清单

        只考虑运行前不存在的版本目录，多个候选时优先选 Forge 库版本匹配的那个。
        """
        created = [v for v in self._version_manifests(work_dir) if v not in existing]
        manifests = [await read_manifest_json(work_dir, v) for v in created]
        for data in manifests:
            if self._is_own_manifest(data):
                return data
        if manifests:
            logger.warning(
                f"[警告] 安装器生成的清单中没有 Forge {self.meta.version} 库，使用 {created[0]}"
            )
            return manifests[0]
        raise LoaderInstallerFailure(
            "Forge 安装器没有生成版本清单", context={"temp_dir": str(work_dir)}
        )

    def _patch_manifest(self, data: dict):
        data["id"] = self.version_id
        data["inheritsFrom"] = self.meta.mcversion
        universal = self.meta.universal
        if universal is None:
            return
        for library in data.get("libraries") or []:
            name = library.get("name", "")
            try:
                coordinate = Coordinate.parse(name)
            except ManifestParseError:
                continue
            if coordinate.group != FORGE_GROUP or coordinate.artifact not in FORGE_ARTIFACTS:
                continue
            downloads = library.setdefault("downloads", {})
            artifact = downloads.get("artifact") or {}
            if artifact.get("url"):
                continue
            artifact.update(
                {
                    "path": artifact.get("path") or coordinate.path(),
                    "url": self.artifact_url(universal),
                }
            )
            if universal.sha1:
                artifact["sha1"] = universal.sha1
            downloads["artifact"] = artifact
            library.pop("url", None)

    def _migrate_libraries(self, work_dir: Path):
        source = work_dir / "libraries"
        if not source.is_dir():
            return
        target = self.folder.libraries_dir
        count = 0
        for path in source.rglob("*"):
            if not path.is_file():
                continue
            dest = target / path.relative_to(source)
            if dest.exists():
                continue
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(path, dest)
            except OSError as e:
                raise LoaderError(
                    f"无法迁移库文件: {e}", context={"source": str(path), "dest": str(dest)}
                ) from e
            count += 1
        logger.info(f"[Forge] 迁移了 {count} 个库文件")


async def install(
    meta: Union[ForgeVersionMeta, dict],
    location: Union[str, MinecraftFolder],
    options: Optional[InstallOptions] = None,
    client: Optional[HttpClient] = None,
) -> str:
    """
    安装 Forge 派生版本

    Args:
        meta: Forge 版本元数据
        location: 游戏根目录，原版 mcversion 必须已安装
        options: 安装选项 (temp_dir, clear_temp_dir_after_install, java_path, forge_maven_url)

    Returns:
        派生版本 ID，例如 1.12.2-forge1.12.2-14.23.5.2823

    Raises:
        ManifestNotFound: 原版未安装
        LoaderInstallerFailure: 安装器失败或没有生成清单
        LoaderError: 原版 jar 缺失，或临时目录与库文件迁移出错
    """
    if isinstance(meta, dict):
        meta = ForgeVersionMeta.from_dict(meta)
    return await ForgeInstaller(meta, location, options, client).install()
