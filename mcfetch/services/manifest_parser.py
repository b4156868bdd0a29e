"""
版本清单解析服务

读取本地版本 JSON，沿 inheritsFrom 链加载父清单并合并为完整清单。
"""

import copy
import json
from collections.abc import Mapping
from typing import List, Optional, Union

import aiofiles
from loguru import logger

from mcfetch.exceptions import ManifestNotFound, ManifestParseError
from mcfetch.folder import MinecraftFolder
from mcfetch.models import Coordinate, VersionManifest

MAX_INHERITANCE_DEPTH = 10


def _library_key(library: dict) -> str:
    name = library.get("name", "") if isinstance(library, dict) else ""
    try:
        return Coordinate.parse(name).key
    except ManifestParseError:
        return name


def merge_libraries(parent: list, child: list) -> list:
    """
    合并库列表：子清单的库追加在父清单之后，坐标相同（忽略版本）时保留子清单的条目
    """
    child_keys = {_library_key(lib) for lib in child}
    merged = [copy.deepcopy(lib) for lib in parent if _library_key(lib) not in child_keys]
    merged.extend(copy.deepcopy(lib) for lib in child)
    return merged


def deep_merge(base: dict, merge: dict) -> dict:
    """
    Deep merge 两个字典，列表拼接，标量以 merge 为准

    参数:
        base (dict): 父清单
        merge (dict): 子清单

    返回:
        dict: 合并后的完整字典
    """
    merged = copy.deepcopy(base)

    for key, merge_val in merge.items():
        base_val = merged.get(key)
        if key in merged:
            if isinstance(base_val, Mapping) and isinstance(merge_val, Mapping):
                merged[key] = deep_merge(base_val, merge_val)  # type: ignore
            elif isinstance(base_val, list) and isinstance(merge_val, list):
                merged[key] = base_val + copy.deepcopy(merge_val)
            else:
                merged[key] = copy.deepcopy(merge_val)
        else:
            merged[key] = copy.deepcopy(merge_val)

    return merged


def merge_manifests(parent: dict, child: dict) -> dict:
    """
    将子清单合并到父清单之上

    子清单的标量字段覆盖父清单，列表字段拼接在父清单之后，
    libraries 中坐标重复的条目保留子清单的版本。

    Args:
        parent: 父清单 JSON（已完成自身的继承合并）
        child: 子清单 JSON

    Returns:
        合并后的清单 JSON，不含 inheritsFrom
    """
    child_body = {k: v for k, v in child.items() if k not in ("inheritsFrom", "libraries")}
    merged = deep_merge(parent, child_body)
    merged["libraries"] = merge_libraries(
        parent.get("libraries") or [], child.get("libraries") or []
    )
    merged.pop("inheritsFrom", None)

    if "jar" in child:
        merged["jar"] = child["jar"]
    elif "downloads" in child:
        # 自带 jar 的子清单不混用父清单的下载描述
        merged["downloads"] = copy.deepcopy(child["downloads"])
        merged.pop("jar", None)
    else:
        merged["jar"] = parent.get("jar") or parent.get("id")

    return merged


async def read_manifest_json(
    location: Union[str, MinecraftFolder], version_id: str
) -> dict:
    """
    读取本地版本 JSON

    Raises:
        ManifestNotFound: 文件不存在或无法解析
    """
    folder = MinecraftFolder.of(location)
    path = folder.get_version_json(version_id)
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            data = json.loads(await f.read())
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestNotFound(
            f"版本清单不存在或无法读取: {version_id}",
            context={"version": version_id, "path": str(path), "error": str(e)},
        ) from e

    if not isinstance(data, dict):
        raise ManifestNotFound(
            f"版本清单格式无效: {version_id}",
            context={"version": version_id, "path": str(path)},
        )
    data.setdefault("id", version_id)
    return data


async def load_chain(
    location: Union[str, MinecraftFolder], version_id: str
) -> List[dict]:
    """
    加载版本及其所有父版本的 JSON

    Returns:
        列表，第一个为 version_id 自身，之后依次为父版本
    """
    chain: List[dict] = []
    seen = set()
    current: Optional[str] = version_id

    while current is not None:
        if current in seen:
            raise ManifestParseError(
                f"版本继承存在循环: {current}", context={"version": version_id}
            )
        if len(chain) >= MAX_INHERITANCE_DEPTH:
            raise ManifestParseError(
                f"版本继承层级过深: {version_id}", context={"version": version_id}
            )
        seen.add(current)
        data = await read_manifest_json(location, current)
        chain.append(data)

        parent = data.get("inheritsFrom")
        if parent is not None and not isinstance(parent, str):
            raise ManifestParseError(
                "inheritsFrom 必须是字符串", context={"version": current}
            )
        current = parent

    return chain


def resolve_chain(chain: List[dict]) -> dict:
    """从最顶层父版本开始依次合并"""
    merged = copy.deepcopy(chain[-1])
    for child in reversed(chain[:-1]):
        merged = merge_manifests(merged, child)
    return merged


async def parse(
    location: Union[str, MinecraftFolder], version_id: str
) -> VersionManifest:
    """
    解析本地版本清单（包含继承合并）

    Args:
        location: 游戏根目录
        version_id: 版本 ID

    Returns:
        合并后的 VersionManifest

    Raises:
        ManifestNotFound: 版本或其父版本的 JSON 不存在
    """
    chain = await load_chain(location, version_id)
    if len(chain) > 1:
        logger.debug(
            f"[解析] {version_id} 继承自 {' -> '.join(d['id'] for d in chain[1:])}"
        )
    return VersionManifest.from_dict(resolve_chain(chain))
