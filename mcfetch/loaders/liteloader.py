"""
LiteLoader 加载器

在原版或 Forge 版本之上生成 LiteLoader 派生版本清单。
"""

from typing import Optional, Union

from loguru import logger

from mcfetch.exceptions import IncompleteInstallation
from mcfetch.folder import MinecraftFolder
from mcfetch.loaders.base import compose_version_id, write_version_manifest
from mcfetch.models import DiagnosisReport, InstallOptions, LiteLoaderVersionMeta
from mcfetch.orchestrator import install_dependencies
from mcfetch.services.diagnostics import diagnose
from mcfetch.services.http_client import HttpClient
from mcfetch.services.manifest_parser import parse

LAUNCH_WRAPPER_MAIN = "net.minecraft.launchwrapper.Launch"
RELEASE_REPOSITORY = "http://dl.liteloader.com/versions/"


def build_manifest(meta: LiteLoaderVersionMeta, base, base_id: str) -> dict:
    """根据元数据与已合并的父清单构建 LiteLoader 清单"""
    repository = meta.url if meta.type.upper() == "SNAPSHOT" else RELEASE_REPOSITORY
    libraries = [{"name": f"com.mumfrey:liteloader:{meta.version}", "url": repository}]
    # 未指定 url 的库使用默认库仓库
    libraries.extend(dict(lib) for lib in meta.libraries)

    data = {
        "id": compose_version_id(base_id, "liteloader", meta.version),
        "type": meta.type.lower(),
        "inheritsFrom": base_id,
        "mainClass": LAUNCH_WRAPPER_MAIN,
        "libraries": libraries,
    }
    if meta.timestamp:
        data["releaseTime"] = data["time"] = meta.timestamp

    tweak = ["--tweakClass", meta.tweak_class]
    if base.minecraft_arguments is not None:
        data["minecraftArguments"] = f"{base.minecraft_arguments} {' '.join(tweak)}"
    else:
        data["arguments"] = {"game": tweak}
    return data


async def install(
    meta: Union[LiteLoaderVersionMeta, dict],
    location: Union[str, MinecraftFolder],
    base_version: Optional[str] = None,
) -> str:
    """
    安装 LiteLoader 派生版本清单（不下载库文件）

    Args:
        meta: LiteLoader 版本元数据
        location: 游戏根目录
        base_version: 父版本 ID，默认 meta.mcversion，可为 Forge 版本

    Returns:
        派生版本 ID

    Raises:
        ManifestNotFound: 父版本未安装
    """
    if isinstance(meta, dict):
        meta = LiteLoaderVersionMeta.from_dict(meta)
    folder = MinecraftFolder.of(location)
    base_id = base_version or meta.mcversion

    base = await parse(folder, base_id)
    logger.info(f"[LiteLoader] 在 {base_id} 之上安装 {meta.version}")
    return await write_version_manifest(folder, build_manifest(meta, base, base_id))


async def install_and_check(
    meta: Union[LiteLoaderVersionMeta, dict],
    location: Union[str, MinecraftFolder],
    base_version: Optional[str] = None,
    options: Optional[InstallOptions] = None,
    client: Optional[HttpClient] = None,
) -> DiagnosisReport:
    """
    安装 LiteLoader、补全依赖并诊断

    Raises:
        IncompleteInstallation: 诊断仍有缺失文件
    """
    folder = MinecraftFolder.of(location)
    version_id = await install(meta, folder, base_version)
    manifest = await parse(folder, version_id)
    await install_dependencies(manifest, folder, options, client)

    report = await diagnose(version_id, folder, options=options)
    if not report.is_complete:
        raise IncompleteInstallation(
            f"LiteLoader 版本 {version_id} 安装不完整",
            report=report,
            context=report.to_dict(),
        )
    return report
