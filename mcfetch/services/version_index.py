"""
远程版本索引服务

获取所有已知版本列表，远程内容未变化时直接返回调用方提供的旧索引。
"""

from typing import Optional

from loguru import logger

from mcfetch.models import InstallOptions, VersionIndex
from mcfetch.services.http_client import HttpClient


async def fetch_remote_manifest_index(
    fallback: Optional[VersionIndex] = None,
    *,
    options: Optional[InstallOptions] = None,
    client: Optional[HttpClient] = None,
) -> VersionIndex:
    """
    获取远程版本索引

    Args:
        fallback: 之前获取的索引，远程未变化时原样返回（同一对象）
        options: 安装选项，提供索引地址以及默认的 fallback
        client: HTTP 客户端，未提供时临时创建

    Returns:
        VersionIndex
    """
    options = options or InstallOptions()
    fallback = fallback or options.fallback
    owned = client is None
    client = client or HttpClient(timeout=options.timeout)

    try:
        status, data, headers = await client.get_conditional(
            options.version_manifest_url,
            last_modified=fallback.timestamp if fallback else None,
            etag=fallback.etag if fallback else None,
        )
    finally:
        if owned:
            await client.close()

    if fallback is not None:
        if status == 304:
            logger.debug("[索引] 远程版本索引未变化 (304)")
            return fallback
        last_modified = headers.get("Last-Modified")
        if last_modified and last_modified == fallback.timestamp:
            logger.debug("[索引] 远程版本索引时间戳未变化")
            return fallback

    index = VersionIndex.from_dict(
        data,
        timestamp=headers.get("Last-Modified"),
        etag=headers.get("ETag"),
    )
    logger.info(f"[索引] 已获取 {len(index.versions)} 个版本")
    return index
