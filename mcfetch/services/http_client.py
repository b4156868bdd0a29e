"""
HTTP 客户端

封装 aiohttp 会话，提供 JSON 请求、条件请求以及流式下载。
"""

import asyncio
import os
from typing import Any, Dict, Optional, Tuple, Union

import aiofiles
import aiohttp
from loguru import logger

from mcfetch.exceptions import NetworkFailure


class HttpClient:
    """基于 aiohttp 的 HTTP 客户端"""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 60.0,
        chunk_size: int = 8192,
    ):
        self._session = session
        self._owned_session = session is None
        self.timeout = timeout
        self.chunk_size = chunk_size

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owned_session = True
        return self._session

    async def get_json(self, url: str) -> Any:
        """发送 GET 请求并解析 JSON"""
        logger.debug(f"[请求] GET {url}")
        try:
            async with self.session.get(url) as response:
                if response.status != 200:
                    raise NetworkFailure(
                        f"HTTP {response.status}",
                        context={"url": url, "status": response.status},
                    )
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkFailure(f"请求失败: {e}", context={"url": url}) from e

    async def get_conditional(
        self,
        url: str,
        last_modified: Optional[str] = None,
        etag: Optional[str] = None,
    ) -> Tuple[int, Any, Dict[str, str]]:
        """
        条件 GET 请求

        Returns:
            tuple: (状态码, JSON 内容或 None, 响应头)
        """
        headers = {}
        if last_modified:
            headers["If-Modified-Since"] = last_modified
        if etag:
            headers["If-None-Match"] = etag

        logger.debug(f"[请求] 条件 GET {url}")
        try:
            async with self.session.get(url, headers=headers) as response:
                response_headers = dict(response.headers)
                if response.status == 304:
                    return 304, None, response_headers
                if response.status != 200:
                    raise NetworkFailure(
                        f"HTTP {response.status}",
                        context={"url": url, "status": response.status},
                    )
                return 200, await response.json(content_type=None), response_headers
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkFailure(f"请求失败: {e}", context={"url": url}) from e

    async def download(
        self, url: str, dest: Union[str, "os.PathLike[str]"]
    ) -> int:
        """
        将 url 的内容流式写入 dest

        Returns:
            写入的字节数
        """
        downloaded = 0
        try:
            async with self.session.get(url) as response:
                if response.status != 200:
                    raise NetworkFailure(
                        f"HTTP {response.status}",
                        context={"url": url, "status": response.status},
                    )
                async with aiofiles.open(dest, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.chunk_size):
                        await f.write(chunk)
                        downloaded += len(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkFailure(f"下载失败: {e}", context={"url": url}) from e
        return downloaded

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
