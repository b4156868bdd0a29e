"""
加载器公共功能

版本 ID 组合、派生版本清单写入。
"""

import json
from typing import Union

import aiofiles
from loguru import logger

from mcfetch.folder import MinecraftFolder


def compose_version_id(base_id: str, loader: str, loader_version: str) -> str:
    """
    组合派生版本 ID

    compose_version_id("1.12.2", "forge", "1.12.2-14.23.5.2823")
    -> "1.12.2-forge1.12.2-14.23.5.2823"
    """
    return f"{base_id}-{loader}{loader_version}"


async def write_version_manifest(
    location: Union[str, MinecraftFolder], data: dict
) -> str:
    """
    写入版本清单到 versions/<id>/<id>.json

    Returns:
        版本 ID
    """
    folder = MinecraftFolder.of(location)
    version_id = data["id"]
    path = folder.get_version_json(version_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(json.dumps(data, indent=4))
    logger.success(f"[完成] 版本清单已写入: {path}")
    return version_id
