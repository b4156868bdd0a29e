"""
下载管理器

下载单个文件：已存在且校验通过则跳过，否则下载到临时文件，校验通过后原子移动到目标位置。
失败时按指数退避重试，并记录下载统计。
"""

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from loguru import logger

from mcfetch.download.task import CancellationToken
from mcfetch.download.verifier import FileVerifier, VerifyResult
from mcfetch.exceptions import (
    DownloadError,
    InstallCancelled,
    NetworkFailure,
    VerificationFailure,
)
from mcfetch.models import ArtifactDescriptor
from mcfetch.services.http_client import HttpClient


@dataclass
class DownloadStats:
    """下载统计"""

    total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    bytes_downloaded: int = 0


class DownloadManager:
    """下载管理器"""

    def __init__(
        self,
        client: Optional[HttpClient] = None,
        checksum: bool = True,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        self.client = client or HttpClient()
        self.checksum = checksum
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.verifier = FileVerifier()
        self.stats = DownloadStats()
        self._failed_downloads: List[str] = []

    async def is_installed(self, artifact: ArtifactDescriptor, dest: Path) -> bool:
        """checksum 关闭时只检查存在性"""
        if not self.checksum:
            return self.verifier.exists(dest)
        result = await self.verifier.verify(dest, artifact.sha1, artifact.size)
        if result is VerifyResult.SIZE_MISMATCH or result is VerifyResult.HASH_MISMATCH:
            logger.warning(f"[警告] '{artifact.name}' 已存在但校验失败 ({result.value})，将重新下载")
        return result.ok

    async def fetch(
        self,
        artifact: ArtifactDescriptor,
        dest: Path,
        token: Optional[CancellationToken] = None,
    ) -> bool:
        """
        确保 artifact 存在于 dest

        Returns:
            True 表示进行了下载，False 表示已存在而跳过

        Raises:
            DownloadError: 重试后仍然失败
        """
        self.stats.total += 1

        if await self.is_installed(artifact, dest):
            self.stats.skipped += 1
            logger.debug(f"[跳过] '{artifact.name}' 已存在且校验通过")
            return False

        if not artifact.url:
            self.stats.failed += 1
            self._failed_downloads.append(artifact.name)
            raise DownloadError(
                f"'{artifact.name}' 缺失且没有下载地址",
                context={"path": artifact.path},
            )

        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = dest.with_name(f".{dest.name}.part")

        logger.info(f"[开始] 下载: {artifact.name}")

        for attempt in range(self.max_retries + 1):
            try:
                size = await self.client.download(artifact.url, tmp_path)
                result = await self.verifier.verify(tmp_path, artifact.sha1, artifact.size)
                if not result.ok:
                    raise VerificationFailure(
                        f"校验失败 ({result.value}): {artifact.name}",
                        context={
                            "file": artifact.name,
                            "expected_sha1": artifact.sha1,
                            "expected_size": artifact.size,
                        },
                    )
                os.replace(tmp_path, dest)

                self.stats.completed += 1
                self.stats.bytes_downloaded += size
                logger.success(f"[完成] '{artifact.name}' 下载完成")
                return True

            except (NetworkFailure, VerificationFailure, OSError) as e:
                # 清理不完整的文件
                if tmp_path.exists():
                    try:
                        tmp_path.unlink()
                    except OSError:
                        pass

                if attempt < self.max_retries and not (token and token.cancelled):
                    delay = self.retry_delay * (2**attempt)
                    logger.warning(
                        f"[重试] 下载 '{artifact.name}' 失败 (第 {attempt + 1} 次): {e}. "
                        f"{delay:.1f}s 后重试..."
                    )
                    await asyncio.sleep(delay)
                    continue

                self.stats.failed += 1
                self._failed_downloads.append(artifact.name)
                logger.error(f"[错误] 下载 '{artifact.name}' 最终失败: {e}")

                if token and token.cancelled:
                    raise InstallCancelled(f"'{artifact.name}' 下载已取消") from e
                if isinstance(e, DownloadError):
                    raise
                raise DownloadError(
                    f"下载失败: {artifact.name}", context={"error": str(e)}
                ) from e

        return False

    def get_stats(self) -> DownloadStats:
        """获取下载统计"""
        return self.stats

    def get_failed(self) -> List[str]:
        """获取失败的下载列表"""
        return self._failed_downloads.copy()
