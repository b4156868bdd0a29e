"""
McFetch 下载层

包含下载管理、安装任务树、文件校验等功能。
"""

from mcfetch.download.manager import DownloadManager, DownloadStats
from mcfetch.download.task import CancellationToken, InstallTask, TaskState
from mcfetch.download.verifier import FileVerifier, VerifyResult

__all__ = [
    "DownloadManager",
    "DownloadStats",
    "CancellationToken",
    "InstallTask",
    "TaskState",
    "FileVerifier",
    "VerifyResult",
]
