"""
Fabric 加载器

从 Fabric meta 获取加载器 profile，生成继承自原版的派生版本清单。
"""

from typing import Optional, Union

from loguru import logger

from mcfetch.exceptions import LoaderError, NetworkFailure
from mcfetch.folder import MinecraftFolder
from mcfetch.loaders.base import compose_version_id, write_version_manifest
from mcfetch.models import InstallOptions
from mcfetch.services.http_client import HttpClient


def split_game_version(game_version: str) -> str:
    """'1.14.1+build.10' -> '1.14.1'"""
    return game_version.split("+", 1)[0]


def fabric_version_id(game_version: str, loader_version: str) -> str:
    return compose_version_id(
        split_game_version(game_version), "fabric", f"{game_version}-{loader_version}"
    )


async def install(
    game_version: str,
    loader_version: str,
    location: Union[str, MinecraftFolder],
    options: Optional[InstallOptions] = None,
    client: Optional[HttpClient] = None,
) -> str:
    """
    安装 Fabric 派生版本清单（不下载库文件）

    Args:
        game_version: Minecraft 版本，可带 +build.N 后缀
        loader_version: Fabric 加载器版本
        location: 游戏根目录

    Returns:
        派生版本 ID
    """
    options = options or InstallOptions()
    mc_version = split_game_version(game_version)
    version_id = fabric_version_id(game_version, loader_version)

    meta_url = options.fabric_meta_url
    if not meta_url.endswith("/"):
        meta_url += "/"
    url = f"{meta_url}versions/loader/{mc_version}/{loader_version}/profile/json"

    owned = client is None
    client = client or HttpClient(timeout=options.timeout)
    logger.info(f"[Fabric] 获取加载器 profile: {mc_version} / {loader_version}")
    try:
        profile = await client.get_json(url)
    except NetworkFailure as e:
        raise LoaderError(
            f"无法获取 Fabric profile: {mc_version} {loader_version}",
            context={"url": url, "error": str(e)},
        ) from e
    finally:
        if owned:
            await client.close()

    if not isinstance(profile, dict):
        raise LoaderError("Fabric profile 格式无效", context={"url": url})

    profile["id"] = version_id
    profile["inheritsFrom"] = mc_version
    profile.setdefault("type", "release")
    return await write_version_manifest(location, profile)
