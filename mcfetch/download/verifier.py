"""
文件校验器

实现 SHA1 校验、文件大小检查、文件存在性检查。
"""

import hashlib
import os
from enum import Enum
from typing import Optional, Union

import aiofiles

PathLike = Union[str, "os.PathLike[str]"]


class VerifyResult(Enum):
    """校验结果"""

    VALID = "valid"
    MISSING = "missing"
    SIZE_MISMATCH = "size-mismatch"
    HASH_MISMATCH = "hash-mismatch"

    @property
    def ok(self) -> bool:
        return self is VerifyResult.VALID


class FileVerifier:
    """文件校验器"""

    @staticmethod
    async def calc_sha1(file_path: PathLike) -> Optional[str]:
        """
        计算文件的 SHA1 值

        Args:
            file_path: 文件路径

        Returns:
            SHA1 哈希值或 None（如果文件不存在）
        """
        if not os.path.exists(file_path):
            return None

        sha1 = hashlib.sha1()
        try:
            async with aiofiles.open(file_path, "rb") as f:
                while True:
                    data = await f.read(65536)
                    if not data:
                        break
                    sha1.update(data)
            return sha1.hexdigest()
        except (IOError, OSError):
            return None

    @staticmethod
    def exists(file_path: PathLike) -> bool:
        """检查文件是否存在"""
        return os.path.isfile(file_path)

    @staticmethod
    def get_size(file_path: PathLike) -> int:
        """获取文件大小"""
        try:
            return os.path.getsize(file_path)
        except (IOError, OSError):
            return 0

    @staticmethod
    async def verify(
        file_path: PathLike,
        expected_sha1: Optional[str] = None,
        expected_size: Optional[int] = None,
    ) -> VerifyResult:
        """
        校验文件

        没有预期哈希时只检查大小，两者都没有时只检查存在性。
        哈希比较不区分大小写。

        Args:
            file_path: 文件路径
            expected_sha1: 预期的 SHA1 值
            expected_size: 预期的文件大小

        Returns:
            VerifyResult
        """
        if not FileVerifier.exists(file_path):
            return VerifyResult.MISSING

        if expected_size is not None and FileVerifier.get_size(file_path) != expected_size:
            return VerifyResult.SIZE_MISMATCH

        if expected_sha1:
            current_sha1 = await FileVerifier.calc_sha1(file_path)
            if current_sha1 is None:
                return VerifyResult.MISSING
            if current_sha1.lower() != expected_sha1.lower():
                return VerifyResult.HASH_MISMATCH

        return VerifyResult.VALID
